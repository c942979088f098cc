"""Tests for platform pricing."""

from __future__ import annotations

import pytest

from dealroom.chat.pricing import PLATFORM_RATES, per_thousand_rate, platform_cost


def test_default_rates():
    assert PLATFORM_RATES == {"gpt4o": 0.10, "embedding": 0.0013}


def test_platform_cost_per_thousand():
    assert platform_cost(1000, "gpt4o") == pytest.approx(0.10)
    assert platform_cost(60, "gpt4o") == pytest.approx(0.006)
    assert platform_cost(0, "embedding") == 0


def test_custom_rate_table():
    assert platform_cost(500, "house", {"house": 2.0}) == pytest.approx(1.0)


def test_unknown_cost_model():
    with pytest.raises(ValueError, match="claude"):
        per_thousand_rate("claude")
