"""Tests for the character-based estimates."""

from __future__ import annotations

from dealroom.tokens import estimate_pages, estimate_tokens


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
    assert estimate_tokens("x" * 999) == 250


def test_estimate_pages():
    assert estimate_pages(0) == 0
    assert estimate_pages(2400) == 1
    assert estimate_pages(2500) == 1
    assert estimate_pages(2501) == 2
