"""Shared pytest fixtures."""

from __future__ import annotations

import hashlib
import logging
import re

import pytest

from dealroom.db.connection import Database
from dealroom.db.models import Document
from dealroom.db.repository import Repository
from dealroom.db.schema import initialize
from dealroom.ingest.files import FileStore

FAKE_MODEL = "test/hashed-bag-of-words"
FAKE_DIMS = 64

_WORD_RE = re.compile(r"[a-z0-9$]+")


class FakeEmbedder:
    """Deterministic hashed bag-of-words embedder.

    Texts sharing words get positive cosine similarity. Every call is
    recorded in ``calls``.
    """

    def __init__(self, model: str = FAKE_MODEL, dimensions: int = FAKE_DIMS) -> None:
        self.model = model
        self.dimensions = dimensions
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        vector = [0.0] * self.dimensions
        for word in _WORD_RE.findall(text.lower()):
            digest = hashlib.md5(word.encode("utf-8")).hexdigest()
            vector[int(digest, 16) % self.dimensions] += 1.0
        if not any(vector):
            vector[0] = 1.0
        return vector


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".dealroom.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db) -> Repository:
    return Repository(tmp_db)


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def file_store(tmp_path) -> FileStore:
    return FileStore(tmp_path / "uploads")


@pytest.fixture
def make_document(repo, file_store):
    """Store bytes and insert a ``processing`` document for them."""
    counter = iter(range(1, 10_000))

    def _make(
        data: bytes = b"Hello world.",
        name: str = "doc.txt",
        media_type: str = "text/plain",
        project_id: str = "proj-1",
        embedding_model: str = FAKE_MODEL,
    ) -> Document:
        return repo.add_document(
            Document(
                id=f"doc-{next(counter)}",
                project_id=project_id,
                stored_name=file_store.save(data, name),
                original_name=name,
                size_bytes=len(data),
                media_type=media_type,
                embedding_model=embedding_model,
            )
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_dealroom_logger():
    """Undo the CLI's logging setup so caplog keeps seeing dealroom records."""
    yield
    logger = logging.getLogger("dealroom")
    logger.handlers = []
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
