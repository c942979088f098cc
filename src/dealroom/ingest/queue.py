"""Background ingestion: a queue of document ids drained by worker threads.

Uploads enqueue and return. Each worker owns a SQLite connection (sqlite3
connections are thread-bound) and builds its own pipeline from it. Delivery
is at-least-once: a crash mid-run leaves the document in ``processing`` and
``recover()`` enqueues it again; the pipeline purges stale chunks before
re-indexing, so a second run is safe. A worker that cannot open the
database stays alive, leaves its documents in ``processing`` and retries the
connection on the next item.
"""

from __future__ import annotations

import logging
import queue
import sqlite3
import threading
from collections.abc import Callable

from dealroom.db.connection import Database
from dealroom.db.models import STATUS_PROCESSING
from dealroom.db.repository import Repository
from dealroom.ingest.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[Repository], IngestionPipeline]

_STOP = object()


class IngestionQueue:
    """Worker pool consuming document ids.

    Args:
        database:         Connection factory; each worker calls ``connect()``.
        pipeline_factory: Builds a pipeline around a worker's repository.
        workers:          Number of worker threads.
    """

    def __init__(
        self,
        database: Database,
        pipeline_factory: PipelineFactory,
        workers: int = 2,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._database = database
        self._factory = pipeline_factory
        self._workers = workers
        self._queue: queue.Queue = queue.Queue()
        self._pending: set[str] = set()
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._threads:
            return
        for n in range(self._workers):
            thread = threading.Thread(
                target=self._run, name=f"dealroom-ingest-{n}", daemon=True
            )
            thread.start()
            self._threads.append(thread)

    def join(self) -> None:
        """Block until every submitted document has been processed."""
        self._queue.join()

    def stop(self) -> None:
        """Finish queued work, then stop the workers."""
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join()
        self._threads = []

    def __enter__(self) -> IngestionQueue:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def submit(self, document_id: str) -> bool:
        """Enqueue *document_id*. Returns False if it is already queued or running."""
        with self._lock:
            if document_id in self._pending:
                return False
            self._pending.add(document_id)
        self._queue.put(document_id)
        return True

    def recover(self, repo: Repository) -> int:
        """Enqueue every document still in ``processing``. Returns the count."""
        count = 0
        for document in repo.list_documents_by_status(STATUS_PROCESSING):
            if self.submit(document.id):
                count += 1
        if count:
            logger.info("Re-enqueued %d documents left in processing", count)
        return count

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _run(self) -> None:
        conn, pipeline = self._open()
        try:
            while True:
                item = self._queue.get()
                try:
                    if item is _STOP:
                        return
                    if pipeline is None:
                        conn, pipeline = self._open()
                    if pipeline is None:
                        logger.error(
                            "Document %s left in processing: worker has no database", item
                        )
                        self._release(item)
                    else:
                        self._process(pipeline, item)
                finally:
                    self._queue.task_done()
        finally:
            if conn is not None:
                conn.close()

    def _open(self) -> tuple[sqlite3.Connection | None, IngestionPipeline | None]:
        """Open this worker's connection and pipeline, or (None, None) on failure."""
        conn = None
        try:
            conn = self._database.connect()
            return conn, self._factory(Repository(conn))
        except Exception:
            logger.exception("%s could not open the database", threading.current_thread().name)
            if conn is not None:
                conn.close()
            return None, None

    def _process(self, pipeline: IngestionPipeline, document_id: str) -> None:
        try:
            document = pipeline.process(document_id)
            logger.info("Document %s finished as %s", document_id, document.status)
        except Exception:
            # Row stays in processing; recover() will pick it up again.
            logger.exception("Ingestion of document %s crashed", document_id)
        finally:
            self._release(document_id)

    def _release(self, document_id: str) -> None:
        with self._lock:
            self._pending.discard(document_id)
