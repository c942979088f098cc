"""LiteLLM client wrapper: embeddings, completions, API key validation.

All LLM and embedding calls route through this module. Nothing here retries
a chat completion: retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Protocol

import litellm

from dealroom.db.vectors import check_vector
from dealroom.errors import EmbeddingProviderError

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def provider_of(model: str) -> str:
    """Return the LiteLLM provider prefix of *model* (``openai`` if none)."""
    return model.split("/")[0].lower() if "/" in model else "openai"


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = provider_of(model)
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return  # No key required (e.g. ollama)

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


# ------------------------------------------------------------------
# Completions
# ------------------------------------------------------------------


@dataclass
class CompletionReply:
    """Text of the first choice plus the provider-reported total token usage."""

    text: str
    total_tokens: int | None = None


def complete(
    model: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
    **extra: Any,
) -> CompletionReply:
    """Call litellm.completion() once (``num_retries=0``).

    Args:
        model: LiteLLM model string (provider/model format).
        messages: OpenAI-style message list.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature.
        **extra: Provider-specific keyword arguments passed through.

    Raises:
        Whatever LiteLLM raises; provider adapters translate it.
    """
    response = litellm.completion(
        model=model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        num_retries=0,
        **extra,
    )
    text = response.choices[0].message.content or ""
    usage = getattr(response, "usage", None)
    total = getattr(usage, "total_tokens", None) if usage is not None else None
    return CompletionReply(text=text, total_tokens=int(total) if total else None)


# ------------------------------------------------------------------
# Embeddings
# ------------------------------------------------------------------


class Embedder(Protocol):
    """Embedding provider handle injected into the pipeline and retriever."""

    model: str
    dimensions: int

    def embed(self, text: str) -> list[float]: ...


class LiteLLMEmbedder:
    """Embed text with ``litellm.embedding()``.

    Args:
        model:       LiteLLM embedding model string (provider/model format).
        dimensions:  Expected vector length; other lengths are rejected.
        num_retries: LiteLLM transport retries per call (0 = none).
    """

    def __init__(self, model: str, dimensions: int, num_retries: int = 0) -> None:
        self.model = model
        self.dimensions = dimensions
        self.num_retries = num_retries

    def embed(self, text: str) -> list[float]:
        try:
            response = litellm.embedding(
                model=self.model,
                input=[text],
                num_retries=self.num_retries,
            )
            vector = [float(v) for v in response.data[0]["embedding"]]
        except Exception as exc:
            raise EmbeddingProviderError(
                f"Embedding call to '{self.model}' failed: {exc}"
            ) from exc

        try:
            check_vector(vector, self.dimensions)
        except ValueError as exc:
            raise EmbeddingProviderError(f"'{self.model}' returned a bad vector: {exc}") from exc
        return vector
