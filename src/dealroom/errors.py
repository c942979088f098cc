"""Dealroom exception hierarchy.

Ingestion errors are caught by the pipeline and turned into a ``failed``
document status. Chat-path errors propagate to the caller unchanged.
"""

from __future__ import annotations


class DealroomError(Exception):
    """Base class for every error raised by the dealroom core."""


# ------------------------------------------------------------------
# Ingestion
# ------------------------------------------------------------------


class IngestionError(DealroomError):
    """A document could not be turned into queryable chunks."""


class UnsupportedMediaType(IngestionError):
    def __init__(self, media_type: str) -> None:
        super().__init__(f"Unsupported media type: {media_type!r}")
        self.media_type = media_type


class CorruptFile(IngestionError):
    """The file matched a supported type but could not be parsed."""


class EmptyExtraction(IngestionError):
    """Extraction succeeded but produced no text to chunk."""


class EmbeddingProviderError(IngestionError):
    """The embedding provider failed (quota, timeout, bad vector)."""


class StoredFileMissing(IngestionError):
    def __init__(self, stored_name: str) -> None:
        super().__init__(f"Stored file not found: {stored_name!r}")
        self.stored_name = stored_name


# ------------------------------------------------------------------
# Chat path
# ------------------------------------------------------------------


class CompletionProviderError(DealroomError):
    """A chat completion provider call failed."""


class UnknownModel(CompletionProviderError):
    def __init__(self, model_id: str, known: list[str]) -> None:
        super().__init__(
            f"Unknown model {model_id!r}. Known models: {', '.join(sorted(known))}"
        )
        self.model_id = model_id


class DocumentNotFound(DealroomError):
    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document not found: {document_id!r}")
        self.document_id = document_id


class LinkNotFound(DealroomError):
    def __init__(self, slug: str, reason: str = "not found") -> None:
        super().__init__(f"Chat link {slug!r} {reason}")
        self.slug = slug


class ConversationNotFound(DealroomError):
    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation not found: {conversation_id!r}")
        self.conversation_id = conversation_id


class ConversationMismatch(DealroomError):
    """The conversation exists but belongs to a different link."""

    def __init__(self, conversation_id: str, link_id: str) -> None:
        super().__init__(
            f"Conversation {conversation_id!r} does not belong to link {link_id!r}"
        )
        self.conversation_id = conversation_id
        self.link_id = link_id


class InvalidMessage(DealroomError):
    """The user message is empty or too long."""


class InvalidLinkExpiry(DealroomError):
    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid link expiry {value!r}: expected an ISO timestamp "
            "such as 2030-01-31 18:00:00 or 2030-01-31T18:00:00Z"
        )
        self.value = value
