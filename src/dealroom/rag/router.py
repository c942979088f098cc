"""Model router: public model id → provider adapter, plus citation extraction."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dealroom.db.models import Citation
from dealroom.errors import UnknownModel
from dealroom.rag.assembler import AssembledContext
from dealroom.rag.providers import (
    MODEL_CATALOG,
    ChatTurn,
    CompletionProvider,
    ModelSpec,
    ProviderFamily,
    default_providers,
)
from dealroom.rag.retriever import ScoredChunk

logger = logging.getLogger(__name__)

EXCERPT_CHARS = 200


@dataclass
class Completion:
    content: str
    token_count: int
    citations: list[Citation] = field(default_factory=list)


class ModelRouter:
    """Dispatch completions to the adapter of the requested model's family.

    Args:
        providers: Adapter per family. Defaults to ``default_providers()``.
        catalog:   Public model id → ModelSpec. Defaults to ``MODEL_CATALOG``.
    """

    def __init__(
        self,
        providers: dict[ProviderFamily, CompletionProvider] | None = None,
        catalog: dict[str, ModelSpec] | None = None,
    ) -> None:
        self._providers = providers if providers is not None else default_providers()
        self._catalog = catalog if catalog is not None else MODEL_CATALOG

    @property
    def model_ids(self) -> list[str]:
        return sorted(self._catalog)

    def resolve(self, model_id: str) -> tuple[CompletionProvider, ModelSpec]:
        """Raises UnknownModel for ids outside the catalog (or without an adapter)."""
        spec = self._catalog.get(model_id)
        if spec is None or spec.family not in self._providers:
            raise UnknownModel(model_id, list(self._catalog))
        return self._providers[spec.family], spec

    def complete(
        self,
        history: list[ChatTurn],
        context: AssembledContext,
        model_id: str,
    ) -> Completion:
        """Complete *history* (ending with the new user turn) under *context*.

        Raises:
            UnknownModel: *model_id* is not in the catalog.
            CompletionProviderError: The provider call failed.
        """
        provider, spec = self.resolve(model_id)
        logger.debug(
            "Routing %s to %s (%s), %d context chunks",
            model_id,
            spec.family.value,
            spec.provider_model,
            len(context.chunks),
        )
        reply = provider.complete(context.system_prompt, history, spec.provider_model)
        return Completion(
            content=reply.text,
            token_count=reply.token_count,
            citations=extract_citations(reply.text, context.chunks),
        )


def extract_citations(answer: str, chunks: list[ScoredChunk]) -> list[Citation]:
    """Cite every chunk whose filename stem appears in *answer*.

    The stem is the filename up to its first ``.``, compared case-insensitively.
    """
    lowered = answer.lower()
    citations: list[Citation] = []
    for scored in chunks:
        chunk = scored.chunk
        stem = chunk.filename.lower().split(".")[0]
        if stem and stem in lowered:
            citations.append(
                Citation(
                    source=chunk.filename,
                    excerpt=chunk.content[:EXCERPT_CHARS] + "...",
                    page=chunk.page,
                )
            )
    return citations
