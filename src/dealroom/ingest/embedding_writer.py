"""Embedding indexer: embed each chunk and persist it in order.

For chunk i of a document:
1. Embed the chunk text via the injected embedder.
2. Append the chunk (content, vector, metadata, token estimate) with
   ``chunk_index = i``.
3. Only then move on to chunk i+1.

The strict sequence bounds memory to one vector and keeps ``chunk_index``
contiguous. Failures propagate: the pipeline owns cleanup.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass

from dealroom.db.models import Chunk, Document
from dealroom.db.repository import Repository
from dealroom.rag.llm_client import Embedder
from dealroom.tokens import estimate_tokens

logger = logging.getLogger(__name__)


@dataclass
class ChunkDraft:
    """A chunk of text plus where it came from, before it has an embedding."""

    text: str
    page: int | None = None
    sheet: str | None = None


class EmbeddingIndexer:
    """Write chunks to the DB with embeddings from *embedder*.

    Args:
        repo:     Open Repository instance.
        embedder: Embedding provider handle.
    """

    def __init__(self, repo: Repository, embedder: Embedder) -> None:
        self._repo = repo
        self._embedder = embedder

    def index(
        self,
        document: Document,
        drafts: list[ChunkDraft],
        on_progress: Callable[[int], None] | None = None,
    ) -> list[Chunk]:
        """Embed *drafts* and persist them as chunks 0..n-1 of *document*.

        Raises:
            EmbeddingProviderError: On the first failing embedding call.
        """
        stored: list[Chunk] = []
        for index, draft in enumerate(drafts):
            embedding = self._embedder.embed(draft.text)
            chunk = Chunk(
                document_id=document.id,
                chunk_index=index,
                content=draft.text,
                embedding=embedding,
                metadata=_metadata(document.original_name, index, draft),
                token_count=estimate_tokens(draft.text),
            )
            self._repo.append_chunk(chunk)
            stored.append(chunk)
            if on_progress is not None:
                on_progress(index)

        logger.debug("Indexed %d chunks for document %s", len(stored), document.id)
        return stored


def _metadata(filename: str, index: int, draft: ChunkDraft) -> str:
    meta: dict = {"filename": filename, "chunk_index": index}
    if draft.page is not None:
        meta["page"] = draft.page
    if draft.sheet is not None:
        meta["sheet"] = draft.sheet
    return json.dumps(meta)
