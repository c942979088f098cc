"""Notification collaborator.

Delivery (email, webhooks) lives outside the core. The core only calls
``notify(event, payload)`` and never lets a delivery failure escape.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

DOCUMENT_PROCESSED = "document_processed"
INVESTOR_ENGAGED = "investor_engaged"


class Notifier(Protocol):
    def notify(self, event: str, payload: dict[str, Any]) -> None: ...


class LogNotifier:
    """Default notifier: records events in the log."""

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        logger.info("Notification %s: %s", event, payload)


def send_quietly(notifier: Notifier, event: str, payload: dict[str, Any]) -> None:
    """Fire-and-forget delivery: failures are logged, never raised."""
    try:
        notifier.notify(event, payload)
    except Exception:
        logger.warning("Failed to send %s notification", event, exc_info=True)
