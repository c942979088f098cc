"""Platform pricing: USD per 1K tokens, 10x margin over provider cost."""

from __future__ import annotations

# Provider base cost per 1K tokens, for reference:
#   gpt-4o average        $0.01
#   text-embedding-3-*    $0.00013
PLATFORM_RATES: dict[str, float] = {
    "gpt4o": 0.10,
    "embedding": 0.0013,
}

DEFAULT_CHAT_COST_MODEL = "gpt4o"


def per_thousand_rate(cost_model: str, rates: dict[str, float] | None = None) -> float:
    """Return the USD rate per 1K tokens for *cost_model*.

    Raises:
        ValueError: *cost_model* is not in the rate table.
    """
    table = rates if rates is not None else PLATFORM_RATES
    try:
        return table[cost_model]
    except KeyError:
        raise ValueError(
            f"Unknown cost model {cost_model!r}; expected one of {sorted(table)}"
        ) from None


def platform_cost(tokens: int, cost_model: str, rates: dict[str, float] | None = None) -> float:
    """``tokens / 1000 * rate(cost_model)`` in USD."""
    return tokens / 1000 * per_thousand_rate(cost_model, rates)
