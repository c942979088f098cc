"""Completion provider adapters, one per provider family.

Every adapter receives the same shape (system prompt + user/assistant
history + concrete model name) and owns its family's wire-format quirks.
Calls go through LiteLLM, which lifts system messages into Anthropic's
top-level ``system`` parameter and Gemini's system instruction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from dealroom.errors import CompletionProviderError
from dealroom.rag import llm_client
from dealroom.tokens import estimate_tokens

# Platform-wide generation ceilings; not configurable per request.
TEMPERATURE = 0.3
MAX_OUTPUT_TOKENS = 1000


class ProviderFamily(str, Enum):
    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"


@dataclass(frozen=True)
class ModelSpec:
    family: ProviderFamily
    provider_model: str


# Public model id → provider family + concrete provider model name.
MODEL_CATALOG: dict[str, ModelSpec] = {
    "gpt-4o": ModelSpec(ProviderFamily.OPENAI, "gpt-4o"),
    "gpt-4": ModelSpec(ProviderFamily.OPENAI, "gpt-4"),
    "gpt-3.5-turbo": ModelSpec(ProviderFamily.OPENAI, "gpt-3.5-turbo"),
    "o3-mini": ModelSpec(ProviderFamily.OPENAI, "o3-mini"),
    "claude-sonnet-4": ModelSpec(ProviderFamily.CLAUDE, "claude-sonnet-4-20250514"),
    "claude-3-sonnet": ModelSpec(ProviderFamily.CLAUDE, "claude-3-5-sonnet-20241022"),
    "claude-3-haiku": ModelSpec(ProviderFamily.CLAUDE, "claude-3-5-haiku-20241022"),
    "claude-3-opus": ModelSpec(ProviderFamily.CLAUDE, "claude-3-opus-20240229"),
    "gemini-pro": ModelSpec(ProviderFamily.GEMINI, "gemini-2.5-pro"),
    "gemini-flash": ModelSpec(ProviderFamily.GEMINI, "gemini-2.5-flash"),
}


@dataclass
class ChatTurn:
    role: str  # "user" | "assistant"
    content: str


@dataclass
class ProviderReply:
    text: str
    token_count: int


class CompletionProvider(ABC):
    """Capability implemented by one adapter per provider family."""

    family: ProviderFamily
    litellm_prefix: str

    def complete(
        self, system_prompt: str, history: list[ChatTurn], model_name: str
    ) -> ProviderReply:
        """Run one completion.

        Raises:
            CompletionProviderError: The provider call failed. Never retried here.
        """
        model = f"{self.litellm_prefix}/{model_name}"
        messages = self.build_messages(system_prompt, history)
        try:
            reply = llm_client.complete(
                model, messages, max_tokens=MAX_OUTPUT_TOKENS, temperature=TEMPERATURE
            )
        except Exception as exc:
            raise CompletionProviderError(
                f"{self.family.value} completion with '{model_name}' failed: {exc}"
            ) from exc
        return ProviderReply(text=reply.text, token_count=self.token_count(reply))

    @abstractmethod
    def build_messages(self, system_prompt: str, history: list[ChatTurn]) -> list[dict]:
        """Translate the uniform request into this family's message list."""

    def token_count(self, reply: llm_client.CompletionReply) -> int:
        return reply.total_tokens or 0


class OpenAICompatibleProvider(CompletionProvider):
    """System prompt travels as the first message; history passes through."""

    family = ProviderFamily.OPENAI
    litellm_prefix = "openai"

    def build_messages(self, system_prompt: str, history: list[ChatTurn]) -> list[dict]:
        return [{"role": "system", "content": system_prompt}] + [
            {"role": t.role, "content": t.content} for t in history
        ]


class ClaudeCompatibleProvider(CompletionProvider):
    """Anthropic requires strict user/assistant alternation starting with user."""

    family = ProviderFamily.CLAUDE
    litellm_prefix = "anthropic"

    def build_messages(self, system_prompt: str, history: list[ChatTurn]) -> list[dict]:
        turns: list[dict] = []
        for turn in history:
            if turns and turns[-1]["role"] == turn.role:
                turns[-1]["content"] += f"\n\n{turn.content}"
            else:
                turns.append({"role": turn.role, "content": turn.content})
        while turns and turns[0]["role"] != "user":
            turns.pop(0)
        return [{"role": "system", "content": system_prompt}] + turns


class GeminiCompatibleProvider(CompletionProvider):
    """History is flattened into one ``role: content`` transcript prompt."""

    family = ProviderFamily.GEMINI
    litellm_prefix = "gemini"

    def build_messages(self, system_prompt: str, history: list[ChatTurn]) -> list[dict]:
        transcript = "\n".join(f"{t.role}: {t.content}" for t in history)
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": transcript},
        ]

    def token_count(self, reply: llm_client.CompletionReply) -> int:
        # Usage metadata is not always reported; fall back to the output estimate.
        return reply.total_tokens or estimate_tokens(reply.text)


def default_providers() -> dict[ProviderFamily, CompletionProvider]:
    """One adapter per family, keyed by family."""
    adapters: list[CompletionProvider] = [
        OpenAICompatibleProvider(),
        ClaudeCompatibleProvider(),
        GeminiCompatibleProvider(),
    ]
    return {a.family: a for a in adapters}


def litellm_model(model_id: str) -> str | None:
    """LiteLLM model string for a public model id (None if unknown)."""
    spec = MODEL_CATALOG.get(model_id)
    if spec is None:
        return None
    prefix = default_providers()[spec.family].litellm_prefix
    return f"{prefix}/{spec.provider_model}"
