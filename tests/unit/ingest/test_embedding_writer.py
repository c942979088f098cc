"""Tests for EmbeddingIndexer."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from dealroom.errors import EmbeddingProviderError
from dealroom.ingest.embedding_writer import ChunkDraft, EmbeddingIndexer


def test_index_persists_contiguous_chunks(repo, embedder, make_document):
    doc = make_document(name="deck.pdf", media_type="application/pdf")
    drafts = [
        ChunkDraft("Page one text.", page=1),
        ChunkDraft("More page one.", page=1),
        ChunkDraft("Page two text.", page=2),
    ]

    chunks = EmbeddingIndexer(repo, embedder).index(doc, drafts)

    assert [c.chunk_index for c in chunks] == [0, 1, 2]
    stored = repo.get_chunks(doc.id)
    assert [c.content for c in stored] == [d.text for d in drafts]
    assert [c.page for c in stored] == [1, 1, 2]
    assert all(c.id for c in stored)


def test_index_metadata_and_tokens(repo, embedder, make_document):
    doc = make_document(name="model.xlsx")
    EmbeddingIndexer(repo, embedder).index(doc, [ChunkDraft("x" * 9, sheet="P&L")])

    stored = repo.get_chunks(doc.id)[0]
    assert stored.metadata_dict == {"filename": "model.xlsx", "chunk_index": 0, "sheet": "P&L"}
    assert stored.token_count == 3  # ceil(9 / 4)


def test_index_embeds_strictly_in_order(repo, embedder, make_document):
    doc = make_document()
    drafts = [ChunkDraft(f"chunk {i}") for i in range(4)]
    EmbeddingIndexer(repo, embedder).index(doc, drafts)
    assert embedder.calls == [d.text for d in drafts]


def test_index_stores_returned_vector(repo, make_document):
    doc = make_document()
    fake = MagicMock()
    fake.embed.return_value = [0.25, 0.5, 1.0]
    EmbeddingIndexer(repo, fake).index(doc, [ChunkDraft("one")])
    assert repo.get_chunks(doc.id)[0].embedding == [0.25, 0.5, 1.0]


def test_index_progress_callback(repo, embedder, make_document):
    doc = make_document()
    seen: list[int] = []
    EmbeddingIndexer(repo, embedder).index(
        doc, [ChunkDraft("a"), ChunkDraft("b")], on_progress=seen.append
    )
    assert seen == [0, 1]


def test_index_stops_at_first_embedding_failure(repo, make_document):
    doc = make_document()
    fake = MagicMock()
    fake.embed.side_effect = [[1.0, 0.0], EmbeddingProviderError("quota"), [0.0, 1.0]]

    with pytest.raises(EmbeddingProviderError):
        EmbeddingIndexer(repo, fake).index(
            doc, [ChunkDraft("a"), ChunkDraft("b"), ChunkDraft("c")]
        )

    assert fake.embed.call_count == 2
    assert [c.chunk_index for c in repo.get_chunks(doc.id)] == [0]
