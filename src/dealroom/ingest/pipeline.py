"""One ingestion run for one document.

    read stored bytes → extract → chunk (per page / sheet) → purge stale
    chunks → embed + append → complete

Any IngestionError turns the document ``failed`` (chunks purged first) and is
not re-raised: uploads are asynchronous and nobody waits on the result.
Anything else propagates and leaves the row in ``processing`` for
``IngestionQueue.recover()``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from dealroom.chat.pricing import platform_cost
from dealroom.db.models import STATUS_PROCESSING, Document
from dealroom.db.repository import Repository
from dealroom.errors import DocumentNotFound, EmptyExtraction, IngestionError
from dealroom.ingest.chunker import DEFAULT_MAX_CHUNK_CHARS, SentenceChunker
from dealroom.ingest.embedding_writer import ChunkDraft, EmbeddingIndexer
from dealroom.ingest.extract import ExtractedText, extract
from dealroom.ingest.files import FileStore
from dealroom.ingest.lifecycle import DocumentLifecycle
from dealroom.notify import Notifier
from dealroom.rag.llm_client import Embedder

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Turns a ``processing`` document into chunks and a terminal status.

    Args:
        repo:            Repository bound to the calling thread's connection.
        file_store:      Where upload bytes live.
        embedder:        Embedding provider handle.
        notifier:        Receives ``document_processed``.
        max_chunk_chars: Chunk size cap in characters.
        rates:           Platform rate table used for the embedding cost log line.
    """

    def __init__(
        self,
        repo: Repository,
        file_store: FileStore,
        embedder: Embedder,
        notifier: Notifier | None = None,
        max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS,
        rates: dict[str, float] | None = None,
    ) -> None:
        self._repo = repo
        self._files = file_store
        self._chunker = SentenceChunker(max_chunk_chars)
        self._indexer = EmbeddingIndexer(repo, embedder)
        self._lifecycle = DocumentLifecycle(repo, notifier)
        self._rates = rates

    def process(
        self,
        document_id: str,
        on_progress: Callable[[int], None] | None = None,
    ) -> Document:
        """Run the pipeline for *document_id* and return the final row.

        Raises:
            DocumentNotFound: No such document.
        """
        document = self._repo.get_document(document_id)
        if document is None:
            raise DocumentNotFound(document_id)
        if document.status != STATUS_PROCESSING:
            logger.info("Document %s is %s; nothing to do", document_id, document.status)
            return document

        try:
            extracted = extract(self._files.read(document.stored_name), document.media_type)
            drafts = self.chunk_segments(extracted)
            if not drafts:
                raise EmptyExtraction(f"No text extracted from {document.original_name!r}")

            logger.info(
                "Processing %s: %d chunks from %d chars",
                document.original_name,
                len(drafts),
                len(extracted.text),
            )
            # A previous run of this document may have died half-way.
            stale = self._repo.delete_chunks(document_id)
            if stale:
                logger.info("Purged %d stale chunks of document %s", stale, document_id)

            chunks = self._indexer.index(document, drafts, on_progress=on_progress)
        except IngestionError as exc:
            return self._lifecycle.fail(document_id, str(exc))

        embedded_tokens = sum(c.token_count for c in chunks)
        logger.info(
            "Embedding cost for %s: %d tokens, $%.6f",
            document.original_name,
            embedded_tokens,
            platform_cost(embedded_tokens, "embedding", self._rates),
        )
        return self._lifecycle.complete(document_id, char_count=len(extracted.text))

    def chunk_segments(self, extracted: ExtractedText) -> list[ChunkDraft]:
        """Chunk each segment separately so page and sheet labels survive."""
        drafts: list[ChunkDraft] = []
        for label, text in extracted.segments:
            page = label if isinstance(label, int) else None
            sheet = label if isinstance(label, str) else None
            drafts.extend(
                ChunkDraft(text=piece, page=page, sheet=sheet)
                for piece in self._chunker.chunk(text)
            )
        return drafts
