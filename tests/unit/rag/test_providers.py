"""Tests for the per-family completion provider adapters."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from dealroom.errors import CompletionProviderError
from dealroom.rag.llm_client import CompletionReply
from dealroom.rag.providers import (
    MAX_OUTPUT_TOKENS,
    MODEL_CATALOG,
    TEMPERATURE,
    ChatTurn,
    ClaudeCompatibleProvider,
    GeminiCompatibleProvider,
    OpenAICompatibleProvider,
    ProviderFamily,
    default_providers,
    litellm_model,
)

HISTORY = [
    ChatTurn("user", "What is the ARR?"),
    ChatTurn("assistant", "ARR is $2.4M."),
    ChatTurn("user", "And burn?"),
]


# ------------------------------------------------------------------
# Message shapes
# ------------------------------------------------------------------


def test_openai_messages_pass_history_through():
    messages = OpenAICompatibleProvider().build_messages("SYS", HISTORY)
    assert messages == [
        {"role": "system", "content": "SYS"},
        {"role": "user", "content": "What is the ARR?"},
        {"role": "assistant", "content": "ARR is $2.4M."},
        {"role": "user", "content": "And burn?"},
    ]


def test_claude_messages_alternate():
    messages = ClaudeCompatibleProvider().build_messages("SYS", HISTORY)
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]


def test_claude_merges_consecutive_roles():
    history = [ChatTurn("user", "one"), ChatTurn("user", "two"), ChatTurn("assistant", "ok")]
    messages = ClaudeCompatibleProvider().build_messages("SYS", history)
    assert messages[1:] == [
        {"role": "user", "content": "one\n\ntwo"},
        {"role": "assistant", "content": "ok"},
    ]


def test_claude_drops_leading_assistant_turns():
    history = [ChatTurn("assistant", "orphan"), ChatTurn("user", "hi")]
    messages = ClaudeCompatibleProvider().build_messages("SYS", history)
    assert messages[1:] == [{"role": "user", "content": "hi"}]


def test_claude_does_not_mutate_history():
    history = [ChatTurn("user", "one"), ChatTurn("user", "two")]
    ClaudeCompatibleProvider().build_messages("SYS", history)
    assert history[0].content == "one"


def test_gemini_flattens_history_into_one_prompt():
    messages = GeminiCompatibleProvider().build_messages("SYS", HISTORY)
    assert messages == [
        {"role": "system", "content": "SYS"},
        {
            "role": "user",
            "content": "user: What is the ARR?\nassistant: ARR is $2.4M.\nuser: And burn?",
        },
    ]


# ------------------------------------------------------------------
# complete()
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    "provider, expected_model",
    [
        (OpenAICompatibleProvider(), "openai/gpt-4o"),
        (ClaudeCompatibleProvider(), "anthropic/gpt-4o"),
        (GeminiCompatibleProvider(), "gemini/gpt-4o"),
    ],
)
def test_complete_uses_family_prefix_and_fixed_params(provider, expected_model):
    with patch(
        "dealroom.rag.providers.llm_client.complete",
        return_value=CompletionReply("answer", 30),
    ) as mock_complete:
        reply = provider.complete("SYS", HISTORY, "gpt-4o")

    args, kwargs = mock_complete.call_args
    assert args[0] == expected_model
    assert kwargs == {"max_tokens": MAX_OUTPUT_TOKENS, "temperature": TEMPERATURE}
    assert reply.text == "answer"
    assert reply.token_count == 30


def test_complete_wraps_failures():
    with patch(
        "dealroom.rag.providers.llm_client.complete", side_effect=RuntimeError("overloaded")
    ):
        with pytest.raises(CompletionProviderError, match="claude.*overloaded"):
            ClaudeCompatibleProvider().complete("SYS", HISTORY, "claude-3-opus-20240229")


def test_missing_usage_counts_zero_for_openai():
    with patch(
        "dealroom.rag.providers.llm_client.complete", return_value=CompletionReply("abcdefgh")
    ):
        reply = OpenAICompatibleProvider().complete("SYS", HISTORY, "gpt-4o")
    assert reply.token_count == 0


def test_gemini_estimates_missing_usage_from_output():
    with patch(
        "dealroom.rag.providers.llm_client.complete", return_value=CompletionReply("abcdefghi")
    ):
        reply = GeminiCompatibleProvider().complete("SYS", HISTORY, "gemini-2.5-pro")
    assert reply.token_count == 3  # ceil(9 / 4)


# ------------------------------------------------------------------
# Catalog
# ------------------------------------------------------------------


def test_default_providers_cover_every_catalog_family():
    providers = default_providers()
    assert {spec.family for spec in MODEL_CATALOG.values()} <= set(providers)
    assert providers[ProviderFamily.GEMINI].family is ProviderFamily.GEMINI


def test_litellm_model():
    assert litellm_model("gpt-4o") == "openai/gpt-4o"
    assert litellm_model("claude-sonnet-4") == "anthropic/claude-sonnet-4-20250514"
    assert litellm_model("gemini-flash") == "gemini/gemini-2.5-flash"
    assert litellm_model("llama-3") is None
