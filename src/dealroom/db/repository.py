"""Repository pattern for all dealroom database operations.

Single interface for: documents, chunks (with embeddings), cosine search,
links, conversations and messages.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from dealroom.db.models import (
    STATUS_COMPLETED,
    STATUS_PROCESSING,
    Chunk,
    Citation,
    Conversation,
    Document,
    Link,
    Message,
)
from dealroom.db.vectors import from_blob, to_blob

_DOCUMENT_COLS = (
    "id, project_id, stored_name, original_name, size_bytes, media_type, "
    "embedding_model, status, token_count, page_estimate, created_at, updated_at"
)
_CHUNK_COLS = "id, document_id, chunk_index, content, metadata, token_count, created_at"


class Repository:
    """Data access layer for all dealroom database entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see dealroom.db.schema.initialize).
        """
        self._conn = conn
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group writes into one commit; roll all of them back on any exception.

        Repository writes inside the block do not commit on their own. Nested
        blocks join the outermost one.
        """
        self._depth += 1
        try:
            yield
            if self._depth == 1:
                self._conn.commit()
        except BaseException:
            if self._depth == 1:
                self._conn.rollback()
            raise
        finally:
            self._depth -= 1

    def _commit(self) -> None:
        if self._depth == 0:
            self._conn.commit()

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def add_document(self, document: Document) -> Document:
        """Insert a new document row and return it as stored."""
        self._conn.execute(
            """
            INSERT INTO documents (id, project_id, stored_name, original_name,
                                   size_bytes, media_type, embedding_model, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                document.id,
                document.project_id,
                document.stored_name,
                document.original_name,
                document.size_bytes,
                document.media_type,
                document.embedding_model,
                document.status,
            ),
        )
        self._commit()
        return self.get_document(document.id)  # type: ignore[return-value]

    def get_document(self, document_id: str) -> Document | None:
        row = self._conn.execute(
            f"SELECT {_DOCUMENT_COLS} FROM documents WHERE id = ?", (document_id,)
        ).fetchone()
        return _row_to_document(row) if row else None

    def list_documents(self, project_id: str) -> list[Document]:
        """Return all documents of *project_id*, oldest first."""
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLS} FROM documents WHERE project_id = ? "
            "ORDER BY created_at, rowid",
            (project_id,),
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def list_documents_by_status(self, status: str) -> list[Document]:
        """Return every document in *status* across all projects, oldest first."""
        rows = self._conn.execute(
            f"SELECT {_DOCUMENT_COLS} FROM documents WHERE status = ? "
            "ORDER BY created_at, rowid",
            (status,),
        ).fetchall()
        return [_row_to_document(r) for r in rows]

    def finish_document(
        self,
        document_id: str,
        status: str,
        token_count: int | None = None,
        page_estimate: int | None = None,
    ) -> bool:
        """Move a ``processing`` document to a terminal *status*.

        Returns True if the row changed. A document that is already terminal
        (or missing) is left untouched and False is returned.
        """
        cur = self._conn.execute(
            """
            UPDATE documents
            SET status = ?,
                token_count = COALESCE(?, token_count),
                page_estimate = COALESCE(?, page_estimate),
                updated_at = datetime('now')
            WHERE id = ? AND status = ?
            """,
            (status, token_count, page_estimate, document_id, STATUS_PROCESSING),
        )
        self._commit()
        return cur.rowcount == 1

    def delete_document(self, document_id: str) -> None:
        """Delete a document; its chunks go with it (ON DELETE CASCADE)."""
        self._conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        self._commit()

    def has_completed_documents(self, project_id: str, embedding_model: str) -> bool:
        row = self._conn.execute(
            """
            SELECT 1 FROM documents
            WHERE project_id = ? AND status = ? AND embedding_model = ?
            LIMIT 1
            """,
            (project_id, STATUS_COMPLETED, embedding_model),
        ).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def append_chunk(self, chunk: Chunk) -> str:
        """Insert *chunk* as the next chunk of its document. Returns the new id.

        Raises:
            ValueError: If ``chunk.chunk_index`` is not the next contiguous index.
        """
        expected = self.count_chunks(chunk.document_id)
        if chunk.chunk_index != expected:
            raise ValueError(
                f"chunk_index {chunk.chunk_index} out of order for document "
                f"{chunk.document_id!r} (expected {expected})"
            )
        chunk_id = chunk.id or str(uuid.uuid4())
        self._conn.execute(
            """
            INSERT INTO chunks (id, document_id, chunk_index, content, embedding,
                                metadata, token_count)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                chunk_id,
                chunk.document_id,
                chunk.chunk_index,
                chunk.content,
                to_blob(chunk.embedding),
                chunk.metadata,
                chunk.token_count,
            ),
        )
        self._commit()
        chunk.id = chunk_id
        return chunk_id

    def get_chunks(self, document_id: str) -> list[Chunk]:
        """Return the chunks of *document_id* ordered by ``chunk_index``."""
        rows = self._conn.execute(
            f"SELECT {_CHUNK_COLS}, embedding FROM chunks WHERE document_id = ? "
            "ORDER BY chunk_index",
            (document_id,),
        ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    def count_chunks(self, document_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM chunks WHERE document_id = ?", (document_id,)
        ).fetchone()[0]

    def sum_chunk_tokens(self, document_id: str) -> int:
        return self._conn.execute(
            "SELECT COALESCE(SUM(token_count), 0) FROM chunks WHERE document_id = ?",
            (document_id,),
        ).fetchone()[0]

    def delete_chunks(self, document_id: str) -> int:
        """Delete every chunk of *document_id*. Returns the number removed."""
        cur = self._conn.execute(
            "DELETE FROM chunks WHERE document_id = ?", (document_id,)
        )
        self._commit()
        return cur.rowcount

    # ------------------------------------------------------------------
    # Cosine similarity search
    # ------------------------------------------------------------------

    def search_similar(
        self,
        project_id: str,
        embedding_model: str,
        embedding: list[float],
        limit: int = 5,
    ) -> list[tuple[Chunk, float]]:
        """Rank chunks of completed project documents by cosine similarity.

        Returns (chunk, similarity) pairs, similarity descending, ties broken
        by ascending (document_id, chunk_index).
        """
        rows = self._conn.execute(
            """
            SELECT c.id, c.document_id, c.chunk_index, c.content, c.metadata,
                   c.token_count, c.created_at,
                   1.0 - vec_distance_cosine(c.embedding, ?) AS similarity
            FROM chunks c
            JOIN documents d ON d.id = c.document_id
            WHERE d.project_id = ? AND d.status = ? AND d.embedding_model = ?
            ORDER BY similarity DESC, c.document_id ASC, c.chunk_index ASC
            LIMIT ?
            """,
            (to_blob(embedding), project_id, STATUS_COMPLETED, embedding_model, limit),
        ).fetchall()
        return [(_row_to_chunk(r), float(r["similarity"])) for r in rows]

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def add_link(self, link: Link) -> Link:
        self._conn.execute(
            """
            INSERT INTO links (id, project_id, slug, name, status, expires_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (link.id, link.project_id, link.slug, link.name, link.status, link.expires_at),
        )
        self._commit()
        return self.get_link_by_slug(link.slug)  # type: ignore[return-value]

    def get_link_by_slug(self, slug: str) -> Link | None:
        row = self._conn.execute(
            "SELECT id, project_id, slug, name, status, expires_at, created_at "
            "FROM links WHERE slug = ?",
            (slug,),
        ).fetchone()
        return _row_to_link(row) if row else None

    def list_links(self, project_id: str) -> list[Link]:
        rows = self._conn.execute(
            "SELECT id, project_id, slug, name, status, expires_at, created_at "
            "FROM links WHERE project_id = ? ORDER BY created_at, rowid",
            (project_id,),
        ).fetchall()
        return [_row_to_link(r) for r in rows]

    def set_link_status(self, slug: str, status: str) -> bool:
        """Set the status of the link *slug*. Returns False if there is no such link."""
        cur = self._conn.execute("UPDATE links SET status = ? WHERE slug = ?", (status, slug))
        self._commit()
        return cur.rowcount == 1

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def add_conversation(self, conversation: Conversation) -> Conversation:
        self._conn.execute(
            "INSERT INTO conversations (id, link_id, investor_email) VALUES (?, ?, ?)",
            (conversation.id, conversation.link_id, conversation.investor_email),
        )
        self._commit()
        return self.get_conversation(conversation.id)  # type: ignore[return-value]

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        row = self._conn.execute(
            """
            SELECT id, link_id, investor_email, started_at, total_tokens, cost_usd, is_active
            FROM conversations WHERE id = ?
            """,
            (conversation_id,),
        ).fetchone()
        return _row_to_conversation(row) if row else None

    def increment_conversation_totals(
        self, conversation_id: str, tokens: int, cost_usd: float
    ) -> tuple[int, float] | None:
        """Atomically add *tokens* and *cost_usd* to a conversation's totals.

        The increment happens inside a single UPDATE statement, so concurrent
        callers on other connections can never overwrite each other's deltas.

        Returns:
            The updated (total_tokens, cost_usd), or None if the conversation
            does not exist.
        """
        rows = self._conn.execute(
            """
            UPDATE conversations
            SET total_tokens = total_tokens + ?,
                cost_usd = cost_usd + ?
            WHERE id = ?
            RETURNING total_tokens, cost_usd
            """,
            (tokens, cost_usd, conversation_id),
        ).fetchall()
        self._commit()
        if not rows:
            return None
        row = rows[0]
        return int(row["total_tokens"]), float(row["cost_usd"])

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def add_message(self, message: Message) -> Message:
        message_id = message.id or str(uuid.uuid4())
        citations = (
            json.dumps([c.to_dict() for c in message.citations])
            if message.citations
            else None
        )
        self._conn.execute(
            """
            INSERT INTO messages (id, conversation_id, role, content, token_count, citations)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                message_id,
                message.conversation_id,
                message.role,
                message.content,
                message.token_count,
                citations,
            ),
        )
        self._commit()
        row = self._conn.execute(
            "SELECT id, conversation_id, role, content, token_count, citations, timestamp "
            "FROM messages WHERE id = ?",
            (message_id,),
        ).fetchone()
        return _row_to_message(row)

    def list_messages(self, conversation_id: str, limit: int | None = None) -> list[Message]:
        """Return messages of *conversation_id* in timestamp order.

        With *limit*, only the most recent *limit* messages are returned (still
        oldest first).
        """
        sql = (
            "SELECT id, conversation_id, role, content, token_count, citations, timestamp "
            "FROM messages WHERE conversation_id = ? ORDER BY timestamp DESC, rowid DESC"
        )
        params: tuple = (conversation_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (conversation_id, limit)
        rows = self._conn.execute(sql, params).fetchall()
        return [_row_to_message(r) for r in reversed(rows)]


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        project_id=row["project_id"],
        stored_name=row["stored_name"],
        original_name=row["original_name"],
        size_bytes=row["size_bytes"],
        media_type=row["media_type"],
        embedding_model=row["embedding_model"],
        status=row["status"],
        token_count=row["token_count"],
        page_estimate=row["page_estimate"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    embedding = from_blob(row["embedding"]) if "embedding" in row.keys() else []
    return Chunk(
        id=row["id"],
        document_id=row["document_id"],
        chunk_index=row["chunk_index"],
        content=row["content"],
        embedding=embedding,
        metadata=row["metadata"],
        token_count=row["token_count"],
        created_at=row["created_at"],
    )


def _row_to_link(row: sqlite3.Row) -> Link:
    return Link(
        id=row["id"],
        project_id=row["project_id"],
        slug=row["slug"],
        name=row["name"],
        status=row["status"],
        expires_at=row["expires_at"],
        created_at=row["created_at"],
    )


def _row_to_conversation(row: sqlite3.Row) -> Conversation:
    return Conversation(
        id=row["id"],
        link_id=row["link_id"],
        investor_email=row["investor_email"],
        started_at=row["started_at"],
        total_tokens=row["total_tokens"],
        cost_usd=row["cost_usd"],
        is_active=bool(row["is_active"]),
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    citations = None
    if row["citations"]:
        citations = [
            Citation(source=c["source"], excerpt=c["excerpt"], page=c.get("page"))
            for c in json.loads(row["citations"])
        ]
    return Message(
        id=row["id"],
        conversation_id=row["conversation_id"],
        role=row["role"],
        content=row["content"],
        token_count=row["token_count"],
        citations=citations,
        timestamp=row["timestamp"],
    )
