"""Character-based token and page estimates.

These are approximations for internal cost accounting, not provider billing
truth: 4 characters ≈ 1 token, 5 characters ≈ 1 word, 500 words ≈ 1 page.
"""

from __future__ import annotations

import math

CHARS_PER_TOKEN = 4
CHARS_PER_WORD = 5
WORDS_PER_PAGE = 500


def estimate_tokens(text: str) -> int:
    """Return ``ceil(len(text) / 4)``; an empty string is 0 tokens."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_pages(char_count: int) -> int:
    """Return ``ceil((char_count / 5) / 500)``."""
    return math.ceil((char_count / CHARS_PER_WORD) / WORDS_PER_PAGE)
