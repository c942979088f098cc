"""Tests for the background IngestionQueue."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from dealroom.db.connection import Database
from dealroom.db.models import STATUS_COMPLETED, STATUS_FAILED, STATUS_PROCESSING
from dealroom.ingest.pipeline import IngestionPipeline
from dealroom.ingest.queue import IngestionQueue


@pytest.fixture
def database(tmp_path, tmp_db):
    # tmp_db has already created and migrated this file.
    return Database(tmp_path / ".dealroom.db")


@pytest.fixture
def factory(file_store, embedder):
    def _factory(repo):
        return IngestionPipeline(repo, file_store, embedder, max_chunk_chars=100)

    return _factory


def test_workers_must_be_positive(database, factory):
    with pytest.raises(ValueError):
        IngestionQueue(database, factory, workers=0)


def test_submitted_documents_are_processed(repo, database, factory, make_document):
    docs = [make_document(f"Document {i} text.".encode()) for i in range(5)]
    docs.append(make_document(b"\x00", name="x.bin", media_type="application/octet-stream"))

    with IngestionQueue(database, factory, workers=3) as queue:
        for d in docs:
            assert queue.submit(d.id)
        queue.join()

    statuses = [repo.get_document(d.id).status for d in docs]
    assert statuses == [STATUS_COMPLETED] * 5 + [STATUS_FAILED]


def test_duplicate_submit_is_rejected_while_pending(database, make_document):
    doc = make_document()
    queue = IngestionQueue(database, MagicMock(), workers=1)
    assert queue.submit(doc.id) is True
    assert queue.submit(doc.id) is False


def test_resubmit_allowed_after_processing(database, factory, make_document):
    doc = make_document()
    with IngestionQueue(database, factory, workers=1) as queue:
        queue.submit(doc.id)
        queue.join()
        assert queue.submit(doc.id) is True
        queue.join()


def test_recover_enqueues_processing_documents(repo, database, factory, make_document):
    stuck = make_document(b"Left behind by a crash.")
    done = make_document(b"Already done.")
    repo.finish_document(done.id, STATUS_COMPLETED)

    with IngestionQueue(database, factory, workers=2) as queue:
        assert queue.recover(repo) == 1
        queue.join()

    assert repo.get_document(stuck.id).status == STATUS_COMPLETED


def test_worker_survives_pipeline_crash(repo, database, make_document):
    first = make_document()
    second = make_document()
    pipeline = MagicMock()
    pipeline.process.side_effect = [RuntimeError("worker crash"), MagicMock(status="completed")]

    with IngestionQueue(database, lambda repo: pipeline, workers=1) as queue:
        queue.submit(first.id)
        queue.submit(second.id)
        queue.join()

    assert pipeline.process.call_count == 2
    # The crashed document stays recoverable.
    assert repo.get_document(first.id).status == STATUS_PROCESSING


def test_each_worker_gets_its_own_connection(database, make_document):
    seen: set[int] = set()
    lock = threading.Lock()

    def _factory(repo):
        with lock:
            seen.add(id(repo._conn))
        return MagicMock()

    with IngestionQueue(database, _factory, workers=3):
        pass

    assert len(seen) == 3


def _join_within(queue, seconds=10.0):
    waiter = threading.Thread(target=queue.join, daemon=True)
    waiter.start()
    waiter.join(seconds)
    return not waiter.is_alive()


def test_join_returns_when_workers_cannot_open_database(repo, make_document):
    database = MagicMock()
    database.connect.side_effect = OSError("disk unavailable")
    docs = [make_document() for _ in range(3)]

    with IngestionQueue(database, MagicMock(), workers=2) as queue:
        for d in docs:
            queue.submit(d.id)
        assert _join_within(queue)
        # Released, so a later recover() can enqueue them again.
        assert queue.submit(docs[0].id) is True
        assert _join_within(queue)

    assert all(repo.get_document(d.id).status == STATUS_PROCESSING for d in docs)


def test_worker_retries_setup_on_next_document(repo, database, factory, make_document):
    calls = []

    def _flaky_factory(worker_repo):
        calls.append(worker_repo)
        if len(calls) == 1:
            raise RuntimeError("pipeline setup failed")
        return factory(worker_repo)

    doc = make_document(b"Recovered after a failed start.")
    with IngestionQueue(database, _flaky_factory, workers=1) as queue:
        queue.submit(doc.id)
        assert _join_within(queue)

    assert len(calls) == 2
    assert repo.get_document(doc.id).status == STATUS_COMPLETED
