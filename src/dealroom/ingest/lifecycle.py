"""Document status transitions: processing → completed | failed.

Both terminal states are final. Writes are guarded in SQL so that a
repeated terminal write (e.g. a redelivered queue item) is a no-op.
"""

from __future__ import annotations

import logging

from dealroom.db.models import STATUS_COMPLETED, STATUS_FAILED, STATUS_PROCESSING, Document
from dealroom.db.repository import Repository
from dealroom.errors import DocumentNotFound, EmptyExtraction
from dealroom.notify import DOCUMENT_PROCESSED, LogNotifier, Notifier, send_quietly
from dealroom.tokens import estimate_pages

logger = logging.getLogger(__name__)


class DocumentLifecycle:
    """Owns status and aggregate stats of documents.

    Args:
        repo:     Open Repository instance.
        notifier: Receives ``document_processed`` after completion.
    """

    def __init__(self, repo: Repository, notifier: Notifier | None = None) -> None:
        self._repo = repo
        self._notifier = notifier or LogNotifier()

    def complete(self, document_id: str, char_count: int) -> Document:
        """Mark *document_id* completed and record token/page totals.

        Raises:
            DocumentNotFound: The document row is gone.
            EmptyExtraction: The document has no chunks.
        """
        document = self._get(document_id)
        chunk_count = self._repo.count_chunks(document_id)
        if chunk_count == 0:
            raise EmptyExtraction(f"Document {document_id!r} has no chunks")

        token_count = self._repo.sum_chunk_tokens(document_id)
        page_estimate = estimate_pages(char_count)
        changed = self._repo.finish_document(
            document_id, STATUS_COMPLETED, token_count=token_count, page_estimate=page_estimate
        )
        if not changed:
            logger.info(
                "Document %s already %s; completion ignored", document_id, document.status
            )
            return self._get(document_id)

        logger.info(
            "Document %s completed: %d chunks, %d tokens, ~%d pages",
            document_id,
            chunk_count,
            token_count,
            page_estimate,
        )
        send_quietly(
            self._notifier,
            DOCUMENT_PROCESSED,
            {
                "document_id": document_id,
                "project_id": document.project_id,
                "file_name": document.original_name,
                "pages_processed": page_estimate,
                "tokens_used": token_count,
            },
        )
        return self._get(document_id)

    def fail(self, document_id: str, reason: str) -> Document:
        """Purge any chunks of a ``processing`` *document_id*, then mark it failed."""
        document = self._get(document_id)
        if document.status != STATUS_PROCESSING:
            logger.info("Document %s already %s; failure ignored", document_id, document.status)
            return document

        purged = self._repo.delete_chunks(document_id)
        self._repo.finish_document(document_id, STATUS_FAILED, token_count=0)
        logger.warning(
            "Document %s (%s) failed: %s (%d partial chunks purged)",
            document_id,
            document.original_name,
            reason,
            purged,
        )
        return self._get(document_id)

    def _get(self, document_id: str) -> Document:
        document = self._repo.get_document(document_id)
        if document is None:
            raise DocumentNotFound(document_id)
        return document
