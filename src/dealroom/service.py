"""Core entry points: document ingestion and investor chat.

``DataroomService`` wires the collaborators together for one connection.
Uploads return as soon as the ``processing`` row exists; the queue does the
rest. Chat runs synchronously: retrieve → assemble → complete → persist →
ledger. Nothing is persisted unless the completion succeeded, and the
conversation, both messages and the totals commit together or not at all.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from dealroom.chat.ledger import ConversationLedger, LedgerTotals
from dealroom.chat.pricing import DEFAULT_CHAT_COST_MODEL
from dealroom.db.models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    Conversation,
    Document,
    Link,
    Message,
)
from dealroom.db.repository import Repository
from dealroom.errors import (
    ConversationMismatch,
    ConversationNotFound,
    DocumentNotFound,
    InvalidLinkExpiry,
    InvalidMessage,
    LinkNotFound,
)
from dealroom.ingest.extract import guess_media_type
from dealroom.ingest.files import FileStore
from dealroom.ingest.queue import IngestionQueue
from dealroom.notify import INVESTOR_ENGAGED, LogNotifier, Notifier, send_quietly
from dealroom.rag.assembler import assemble
from dealroom.rag.llm_client import Embedder
from dealroom.rag.providers import ChatTurn
from dealroom.rag.retriever import DEFAULT_TOP_K, retrieve
from dealroom.rag.router import ModelRouter
from dealroom.tokens import estimate_tokens

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000
DEFAULT_CHAT_MODEL = "gpt-4o"
DEFAULT_HISTORY_LIMIT = 20

LINK_ACTIVE = "active"
LINK_DISABLED = "disabled"

# SQLite datetime('now') layout.
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class ChatResult:
    assistant_message: Message
    conversation_id: str
    totals: LedgerTotals


class DataroomService:
    """Ingestion and chat for one repository connection.

    Args:
        repo:          Repository bound to the calling thread.
        file_store:    Upload storage.
        embedder:      Embedding handle; also decides which documents are searchable.
        queue:         Ingestion queue that receives new document ids.
        router:        Completion router. Defaults to all built-in provider families.
        notifier:      Receives ``investor_engaged``.
        top_k:         Chunks retrieved per chat message.
        history_limit: Stored messages replayed to the model per turn.
        cost_model:    Pricing key charged for chat exchanges.
        rates:         Platform rate table. Defaults to PLATFORM_RATES.
    """

    def __init__(
        self,
        repo: Repository,
        file_store: FileStore,
        embedder: Embedder,
        queue: IngestionQueue,
        router: ModelRouter | None = None,
        notifier: Notifier | None = None,
        top_k: int = DEFAULT_TOP_K,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        cost_model: str = DEFAULT_CHAT_COST_MODEL,
        rates: dict[str, float] | None = None,
    ) -> None:
        self._repo = repo
        self._files = file_store
        self._embedder = embedder
        self._queue = queue
        self._router = router or ModelRouter()
        self._notifier = notifier or LogNotifier()
        self._top_k = top_k
        self._history_limit = history_limit
        self._cost_model = cost_model
        self._ledger = ConversationLedger(repo, rates)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def ingest(
        self,
        project_id: str,
        data: bytes,
        original_name: str,
        media_type: str | None = None,
    ) -> Document:
        """Store *data*, create its ``processing`` row, enqueue it, and return the row.

        Extraction and embedding failures surface later as a ``failed`` status,
        never as an exception here.
        """
        stored_name = self._files.save(data, original_name)
        document = self._repo.add_document(
            Document(
                id=str(uuid.uuid4()),
                project_id=project_id,
                stored_name=stored_name,
                original_name=original_name,
                size_bytes=len(data),
                media_type=media_type or guess_media_type(original_name),
                embedding_model=self._embedder.model,
            )
        )
        self._queue.submit(document.id)
        logger.info(
            "Queued %s (%s, %d bytes) as %s",
            original_name,
            document.media_type,
            len(data),
            document.id,
        )
        return document

    def delete_document(self, document_id: str) -> None:
        """Remove the stored file, the row and its chunks.

        Raises:
            DocumentNotFound: No such document.
        """
        document = self._repo.get_document(document_id)
        if document is None:
            raise DocumentNotFound(document_id)
        self._files.delete(document.stored_name)
        self._repo.delete_document(document_id)
        logger.info("Deleted document %s (%s)", document_id, document.original_name)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def create_link(
        self,
        project_id: str,
        name: str,
        slug: str | None = None,
        expires_at: str | None = None,
    ) -> Link:
        """Create a shareable chat link for *project_id*.

        *expires_at* is normalized to UTC ``YYYY-MM-DD HH:MM:SS``.

        Raises:
            InvalidLinkExpiry: *expires_at* is not an ISO timestamp.
        """
        return self._repo.add_link(
            Link(
                id=str(uuid.uuid4()),
                project_id=project_id,
                slug=slug or secrets.token_urlsafe(8),
                name=name,
                expires_at=normalize_expiry(expires_at) if expires_at else None,
            )
        )

    def disable_link(self, slug: str) -> None:
        """Stop *slug* from accepting new chat messages.

        Raises:
            LinkNotFound: No such link.
        """
        if not self._repo.set_link_status(slug, LINK_DISABLED):
            raise LinkNotFound(slug)
        logger.info("Disabled link %s", slug)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def chat(
        self,
        link_slug: str,
        conversation_id: str | None,
        user_text: str,
        model_id: str = DEFAULT_CHAT_MODEL,
        investor_email: str | None = None,
    ) -> ChatResult:
        """Answer *user_text* from the documents of the link's project.

        With *conversation_id* None a new conversation is started; it is
        created only once the completion has succeeded.

        Raises:
            LinkNotFound: The link is missing, inactive or expired.
            InvalidMessage: *user_text* is blank or longer than MAX_MESSAGE_LENGTH.
            ConversationNotFound: *conversation_id* does not exist.
            ConversationMismatch: The conversation belongs to another link.
            UnknownModel: *model_id* is not in the model catalog.
            EmbeddingProviderError: The query could not be embedded.
            CompletionProviderError: The completion call failed.
        """
        link = self._active_link(link_slug)
        if not user_text or not user_text.strip():
            raise InvalidMessage("Message cannot be empty")
        if len(user_text) > MAX_MESSAGE_LENGTH:
            raise InvalidMessage(
                f"Message too long: {len(user_text)} characters "
                f"(maximum {MAX_MESSAGE_LENGTH})"
            )
        self._router.resolve(model_id)

        history: list[Message] = []
        if conversation_id is not None:
            conversation = self._repo.get_conversation(conversation_id)
            if conversation is None:
                raise ConversationNotFound(conversation_id)
            if conversation.link_id != link.id:
                raise ConversationMismatch(conversation_id, link.id)
            if self._history_limit:
                history = self._repo.list_messages(conversation_id, limit=self._history_limit)

        chunks = retrieve(
            link.project_id, user_text, self._repo, self._embedder, top_k=self._top_k
        )
        context = assemble(chunks)
        turns = [ChatTurn(role=m.role, content=m.content) for m in history]
        turns.append(ChatTurn(role=ROLE_USER, content=user_text))
        completion = self._router.complete(turns, context, model_id)

        started: Conversation | None = None
        user_tokens = estimate_tokens(user_text)
        with self._repo.transaction():
            if conversation_id is None:
                started = self._repo.add_conversation(
                    Conversation(
                        id=str(uuid.uuid4()), link_id=link.id, investor_email=investor_email
                    )
                )
                conversation_id = started.id
            self._repo.add_message(
                Message(
                    conversation_id=conversation_id,
                    role=ROLE_USER,
                    content=user_text,
                    token_count=user_tokens,
                )
            )
            assistant = self._repo.add_message(
                Message(
                    conversation_id=conversation_id,
                    role=ROLE_ASSISTANT,
                    content=completion.content,
                    token_count=completion.token_count,
                    citations=completion.citations or None,
                )
            )
            totals = self._ledger.record_exchange(
                conversation_id, user_tokens, completion.token_count, self._cost_model
            )

        if started is not None:
            self._announce(link, started)
        return ChatResult(
            assistant_message=assistant, conversation_id=conversation_id, totals=totals
        )

    def _active_link(self, slug: str) -> Link:
        link = self._repo.get_link_by_slug(slug)
        if link is None:
            raise LinkNotFound(slug)
        if link.status != LINK_ACTIVE:
            raise LinkNotFound(slug, reason=f"is {link.status}")
        if link.expires_at:
            try:
                expires = _parse_timestamp(link.expires_at)
            except ValueError:
                logger.warning("Link %s has unreadable expiry %r", slug, link.expires_at)
                raise LinkNotFound(slug, reason="has an invalid expiry") from None
            if expires <= datetime.now(timezone.utc):
                raise LinkNotFound(slug, reason="has expired")
        return link

    def _announce(self, link: Link, conversation: Conversation) -> None:
        logger.info("Started conversation %s on link %s", conversation.id, link.slug)
        if conversation.investor_email:
            send_quietly(
                self._notifier,
                INVESTOR_ENGAGED,
                {
                    "project_id": link.project_id,
                    "link_id": link.id,
                    "link_name": link.name,
                    "conversation_id": conversation.id,
                    "investor_email": conversation.investor_email,
                },
            )


def normalize_expiry(value: str) -> str:
    """Return *value* as a UTC ``YYYY-MM-DD HH:MM:SS`` string.

    Accepts anything ``datetime.fromisoformat`` reads plus a trailing ``Z``.
    Naive values are taken as UTC.

    Raises:
        InvalidLinkExpiry: *value* is not an ISO timestamp.
    """
    try:
        parsed = _parse_timestamp(value.strip())
    except ValueError:
        raise InvalidLinkExpiry(value) from None
    return parsed.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def _parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp; naive values are UTC (SQLite ``datetime('now')``)."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
