"""Domain models for the dealroom database layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

DOCUMENT_STATUSES = (STATUS_PROCESSING, STATUS_COMPLETED, STATUS_FAILED)

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"


@dataclass
class Document:
    id: str
    project_id: str
    stored_name: str
    original_name: str
    size_bytes: int
    media_type: str
    embedding_model: str
    status: str = STATUS_PROCESSING
    token_count: int = 0
    page_estimate: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Chunk:
    document_id: str
    chunk_index: int
    content: str
    embedding: list[float] = field(default_factory=list)
    metadata: str = field(default_factory=lambda: "{}")
    token_count: int = 0
    id: str | None = None  # set after insert
    created_at: str | None = None

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.metadata)

    @property
    def filename(self) -> str:
        return str(self.metadata_dict.get("filename") or "Unknown")

    @property
    def page(self) -> int | None:
        page = self.metadata_dict.get("page")
        return int(page) if page else None


@dataclass
class Link:
    id: str
    project_id: str
    slug: str
    name: str
    status: str = "active"
    expires_at: str | None = None
    created_at: str | None = None


@dataclass
class Conversation:
    id: str
    link_id: str
    investor_email: str | None = None
    started_at: str | None = None
    total_tokens: int = 0
    cost_usd: float = 0.0
    is_active: bool = True


@dataclass
class Citation:
    source: str
    excerpt: str
    page: int | None = None

    def to_dict(self) -> dict:
        data: dict = {"source": self.source, "excerpt": self.excerpt}
        if self.page is not None:
            data["page"] = self.page
        return data


@dataclass
class Message:
    conversation_id: str
    role: str
    content: str
    token_count: int = 0
    citations: list[Citation] | None = None
    id: str | None = None
    timestamp: str | None = None
