"""Per-conversation token and cost accounting.

Totals only ever grow, by exactly the deltas recorded. The increment is one
``UPDATE ... RETURNING`` statement, so concurrent exchanges on separate
connections serialize in SQLite and no update is lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dealroom.chat.pricing import platform_cost
from dealroom.db.repository import Repository
from dealroom.errors import ConversationNotFound

logger = logging.getLogger(__name__)


@dataclass
class LedgerTotals:
    total_tokens: int
    cost_usd: float


class ConversationLedger:
    """Records one user/assistant exchange against a conversation's totals.

    Args:
        repo:  Repository bound to the caller's connection.
        rates: Platform rate table (USD per 1K tokens). Defaults to PLATFORM_RATES.
    """

    def __init__(self, repo: Repository, rates: dict[str, float] | None = None) -> None:
        self._repo = repo
        self._rates = rates

    def record_exchange(
        self,
        conversation_id: str,
        user_tokens: int,
        assistant_tokens: int,
        cost_model: str,
    ) -> LedgerTotals:
        """Add the exchange's tokens and cost; return the new totals.

        cost = user_tokens/1000 * rate + assistant_tokens/1000 * rate

        Raises:
            ValueError: A negative token count, or an unknown *cost_model*.
            ConversationNotFound: No such conversation.
        """
        if user_tokens < 0 or assistant_tokens < 0:
            raise ValueError("token counts must be >= 0")

        cost = platform_cost(user_tokens, cost_model, self._rates) + platform_cost(
            assistant_tokens, cost_model, self._rates
        )
        totals = self._repo.increment_conversation_totals(
            conversation_id, user_tokens + assistant_tokens, cost
        )
        if totals is None:
            raise ConversationNotFound(conversation_id)

        logger.debug(
            "Conversation %s: +%d tokens, +$%.6f",
            conversation_id,
            user_tokens + assistant_tokens,
            cost,
        )
        return LedgerTotals(total_tokens=totals[0], cost_usd=totals[1])
