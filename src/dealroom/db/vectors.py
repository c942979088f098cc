"""Embedding vector encoding for sqlite-vec.

Chunk embeddings are stored as compact float32 BLOBs in ``chunks.embedding``
and ranked with sqlite-vec's ``vec_distance_cosine()`` scalar function.
"""

from __future__ import annotations

import math
from array import array

from sqlite_vec import serialize_float32


def to_blob(embedding: list[float]) -> bytes:
    """Encode *embedding* as a little-endian float32 BLOB."""
    if not embedding:
        raise ValueError("embedding must contain at least one dimension")
    return serialize_float32(embedding)


def from_blob(blob: bytes) -> list[float]:
    """Decode a float32 BLOB produced by ``to_blob()``."""
    values = array("f")
    values.frombytes(blob)
    return values.tolist()


def check_vector(embedding: list[float], dimensions: int) -> None:
    """Raise ValueError unless *embedding* has *dimensions* finite, non-zero values.

    A zero vector has no direction, so cosine similarity is undefined for it.
    """
    if len(embedding) != dimensions:
        raise ValueError(
            f"expected {dimensions}-dimensional embedding, got {len(embedding)}"
        )
    if not all(math.isfinite(v) for v in embedding):
        raise ValueError("embedding contains non-finite values")
    if not any(embedding):
        raise ValueError("embedding is the zero vector")
