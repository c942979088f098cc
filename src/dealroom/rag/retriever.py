"""Dense retriever: cosine similarity over a project's completed documents.

score(chunk) = 1 - vec_distance_cosine(chunk.embedding, embed(query))

Ranking happens in SQL via sqlite-vec, so every eligible chunk is scored and
the project / status filter is applied before the limit, not after.
Ties fall back to (document_id, chunk_index) ascending.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dealroom.db.models import Chunk
from dealroom.db.repository import Repository
from dealroom.rag.llm_client import Embedder

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


@dataclass
class ScoredChunk:
    """A retrieved chunk together with its cosine similarity to the query.

    Attributes:
        chunk: The Chunk instance from the database.
        similarity: Cosine similarity in [-1, 1] (1 = same direction).
    """

    chunk: Chunk
    similarity: float


def retrieve(
    project_id: str,
    query: str,
    repo: Repository,
    embedder: Embedder,
    top_k: int = DEFAULT_TOP_K,
) -> list[ScoredChunk]:
    """Return up to *top_k* chunks of *project_id*, most similar first.

    Returns an empty list (no error, no embedding call) when the project has
    no completed documents embedded with ``embedder.model``.

    Raises:
        ValueError: *top_k* < 1.
        EmbeddingProviderError: The query could not be embedded.
    """
    if top_k < 1:
        raise ValueError("top_k must be >= 1")

    if not repo.has_completed_documents(project_id, embedder.model):
        logger.info("Project %s has no completed documents; no grounding", project_id)
        return []

    query_embedding = embedder.embed(query)
    results = repo.search_similar(project_id, embedder.model, query_embedding, limit=top_k)
    return [ScoredChunk(chunk=chunk, similarity=score) for chunk, score in results]
