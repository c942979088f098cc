"""Sentence-aware chunker with a hard character cap.

Text is sanitized first: SQLite TEXT columns and downstream JSON encoders
reject raw control bytes and lone surrogates.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

DEFAULT_MAX_CHUNK_CHARS = 1000

# C0 controls except \t \n \r, plus DEL. NUL is removed outright.
_CONTROL_RE = re.compile(r"[\x01-\x08\x0b\x0c\x0e-\x1f\x7f]")
# Lone UTF-16 surrogates left behind by lossy decoding.
_SURROGATE_RE = re.compile(r"[\ud800-\udfff]")
_WHITESPACE_RE = re.compile(r"\s+")
# A run of terminators followed by whitespace ends a sentence ("$2.4M" does not).
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")

_SEPARATOR = " "


def sanitize(text: str) -> str:
    """Strip control characters and surrogates and collapse whitespace.

    Idempotent: ``sanitize(sanitize(t)) == sanitize(t)``.
    """
    text = text.replace("\x00", "")
    text = _CONTROL_RE.sub(" ", text)
    text = _SURROGATE_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def split_sentences(text: str) -> list[str]:
    """Split sanitized *text* into sentences, terminators kept, empties dropped."""
    return [s.strip() for s in _SENTENCE_BOUNDARY_RE.split(text) if s.strip()]


class SentenceChunker:
    """Greedy sentence packer.

    Sentences are joined with a single space until the next one would push
    the buffer past ``max_chunk_chars``; the buffer is then flushed. A
    sentence longer than the cap on its own is hard-split into
    ``max_chunk_chars``-sized pieces, the short tail starting the next
    buffer. Pieces are cut verbatim: concatenated, they give back the
    sentence, spaces at the cut points included.
    """

    def __init__(self, max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS) -> None:
        if max_chunk_chars < 1:
            raise ValueError("max_chunk_chars must be >= 1")
        self.max_chunk_chars = max_chunk_chars

    def chunk(self, text: str) -> Iterator[str]:
        """Yield chunk strings for *text* in order. Empty input yields nothing."""
        cap = self.max_chunk_chars
        buffer = ""

        for sentence in split_sentences(sanitize(text)):
            if len(sentence) > cap:
                if buffer:
                    yield from self._emit(buffer)
                    buffer = ""
                cut = len(sentence) - len(sentence) % cap
                for start in range(0, cut, cap):
                    yield from self._emit(sentence[start : start + cap])
                buffer = sentence[cut:]
                continue

            if not buffer:
                buffer = sentence
            elif len(buffer) + len(_SEPARATOR) + len(sentence) <= cap:
                buffer = f"{buffer}{_SEPARATOR}{sentence}"
            else:
                yield from self._emit(buffer)
                buffer = sentence

        if buffer:
            yield from self._emit(buffer)

    @staticmethod
    def _emit(piece: str) -> Iterator[str]:
        # Input is already sanitized; only whitespace-only cuts are dropped.
        if piece.strip():
            yield piece


def chunk(text: str, max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS) -> list[str]:
    """Convenience wrapper: ``list(SentenceChunker(max_chunk_chars).chunk(text))``."""
    return list(SentenceChunker(max_chunk_chars).chunk(text))
