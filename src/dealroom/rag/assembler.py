"""Context assembler: retrieved chunks → context block → system prompt.

No truncation happens here. The retriever's ``top_k`` is the only bound on
context size; callers facing a small context window lower ``top_k``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dealroom.rag.retriever import ScoredChunk

_NO_CONTEXT = "(No company documents are available yet.)"

SYSTEM_TEMPLATE = """\
You are an AI assistant helping investors understand a startup's pitch. \
Use the provided context to answer questions accurately. \
If the information isn't in the context, say so clearly.

Context from documents:
{context}

Guidelines:
- Answer based primarily on the provided context
- Be concise but comprehensive
- Include relevant citations when referencing specific information
- If asked about information not in the context, acknowledge the limitation
- Maintain a professional, investor-focused tone"""


@dataclass
class AssembledContext:
    chunks: list[ScoredChunk] = field(default_factory=list)
    context_block: str = ""
    system_prompt: str = ""


def render_block(scored: ScoredChunk) -> str:
    """``Source: <filename>[, page <n>]\\nContent: <content>``"""
    chunk = scored.chunk
    page = f", page {chunk.page}" if chunk.page else ""
    return f"Source: {chunk.filename}{page}\nContent: {chunk.content}"


def assemble(chunks: list[ScoredChunk]) -> AssembledContext:
    """Render *chunks* in rank order and build the system prompt around them."""
    context_block = "\n\n".join(render_block(sc) for sc in chunks)
    return AssembledContext(
        chunks=list(chunks),
        context_block=context_block,
        system_prompt=SYSTEM_TEMPLATE.format(context=context_block or _NO_CONTEXT),
    )
