"""Chat accounting: platform pricing and the conversation ledger."""

from dealroom.chat.ledger import ConversationLedger, LedgerTotals
from dealroom.chat.pricing import PLATFORM_RATES, platform_cost

__all__ = ["ConversationLedger", "LedgerTotals", "PLATFORM_RATES", "platform_cost"]
