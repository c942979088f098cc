"""Tests for IngestionPipeline: one run from stored bytes to terminal status."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from dealroom.db.models import STATUS_COMPLETED, STATUS_FAILED, STATUS_PROCESSING, Chunk
from dealroom.errors import DocumentNotFound, EmbeddingProviderError
from dealroom.ingest.embedding_writer import ChunkDraft
from dealroom.ingest.extract import ExtractedText
from dealroom.ingest.pipeline import IngestionPipeline
from dealroom.notify import DOCUMENT_PROCESSED


@pytest.fixture
def pipeline(repo, file_store, embedder):
    return IngestionPipeline(repo, file_store, embedder, max_chunk_chars=50)


def test_text_document_completes(repo, pipeline, make_document):
    doc = make_document(b"Our ARR is $2.4M. We have 40 customers. Churn is low.")
    result = pipeline.process(doc.id)
    assert result.status == STATUS_COMPLETED
    chunks = repo.get_chunks(doc.id)
    assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
    assert result.token_count == sum(c.token_count for c in chunks)


def test_unsupported_type_fails_without_chunks(repo, pipeline, make_document):
    doc = make_document(b"\x89PNG...", name="logo.png", media_type="image/png")
    result = pipeline.process(doc.id)
    assert result.status == STATUS_FAILED
    assert repo.count_chunks(doc.id) == 0


def test_empty_text_fails(repo, pipeline, make_document):
    doc = make_document(b"   \n\x00  ")
    assert pipeline.process(doc.id).status == STATUS_FAILED


def test_missing_stored_file_fails(repo, pipeline, file_store, make_document):
    doc = make_document()
    file_store.delete(doc.stored_name)
    assert pipeline.process(doc.id).status == STATUS_FAILED


def test_embedding_failure_purges_partial_chunks(repo, file_store, make_document):
    doc = make_document(b"One. " * 40)
    fake = MagicMock()
    fake.embed.side_effect = [[1.0, 0.0], [0.0, 1.0], EmbeddingProviderError("quota")]
    pipeline = IngestionPipeline(repo, file_store, fake, max_chunk_chars=20)

    result = pipeline.process(doc.id)

    assert result.status == STATUS_FAILED
    assert result.token_count == 0
    assert repo.count_chunks(doc.id) == 0


def test_unknown_document_raises(pipeline):
    with pytest.raises(DocumentNotFound):
        pipeline.process("ghost")


def test_terminal_document_left_untouched(repo, pipeline, embedder, make_document):
    doc = make_document()
    pipeline.process(doc.id)
    calls = len(embedder.calls)
    assert pipeline.process(doc.id).status == STATUS_COMPLETED
    assert len(embedder.calls) == calls


def test_rerun_after_crash_purges_stale_chunks(repo, pipeline, make_document):
    doc = make_document(b"Alpha beta. Gamma delta.")
    # A crashed earlier run left a stray chunk behind.
    repo.append_chunk(Chunk(document_id=doc.id, chunk_index=0, content="stale", embedding=[1.0]))

    result = pipeline.process(doc.id)

    assert result.status == STATUS_COMPLETED
    assert "stale" not in [c.content for c in repo.get_chunks(doc.id)]


def test_unexpected_error_propagates_and_leaves_processing(repo, pipeline, make_document):
    doc = make_document()
    with patch("dealroom.ingest.pipeline.extract", side_effect=RuntimeError("boom")):
        with pytest.raises(RuntimeError):
            pipeline.process(doc.id)
    assert repo.get_document(doc.id).status == STATUS_PROCESSING


def test_document_processed_notification(repo, file_store, embedder, make_document):
    notifier = MagicMock()
    doc = make_document(b"Hello world.")
    IngestionPipeline(repo, file_store, embedder, notifier=notifier).process(doc.id)
    event, payload = notifier.notify.call_args.args
    assert event == DOCUMENT_PROCESSED
    assert payload["document_id"] == doc.id


def test_pdf_pages_become_chunk_metadata(repo, pipeline, make_document):
    doc = make_document(b"%PDF", name="deck.pdf", media_type="application/pdf")
    extracted = ExtractedText([(1, "Cover page."), (3, "Financials. ARR is $2.4M.")])
    with patch("dealroom.ingest.pipeline.extract", return_value=extracted):
        pipeline.process(doc.id)
    assert [c.page for c in repo.get_chunks(doc.id)] == [1, 3]


def test_chunk_segments_labels(pipeline):
    extracted = ExtractedText([("Revenue", "=== Sheet: Revenue ===\n\nARR,100"), (None, "")])
    assert pipeline.chunk_segments(extracted) == [
        ChunkDraft(text="=== Sheet: Revenue === ARR,100", page=None, sheet="Revenue")
    ]


def test_progress_callback(repo, pipeline, make_document):
    doc = make_document(b"First. Second.")
    seen: list[int] = []
    pipeline.process(doc.id, on_progress=seen.append)
    assert seen == [0]
