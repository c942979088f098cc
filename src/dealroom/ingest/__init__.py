"""Dealroom ingest pipeline: extraction, chunking, embedding, lifecycle, queue."""

from dealroom.ingest.chunker import SentenceChunker, chunk, sanitize
from dealroom.ingest.embedding_writer import ChunkDraft, EmbeddingIndexer
from dealroom.ingest.extract import ExtractedText, extract, guess_media_type
from dealroom.ingest.files import FileStore
from dealroom.ingest.lifecycle import DocumentLifecycle
from dealroom.ingest.pipeline import IngestionPipeline
from dealroom.ingest.queue import IngestionQueue

__all__ = [
    "ChunkDraft",
    "DocumentLifecycle",
    "EmbeddingIndexer",
    "ExtractedText",
    "FileStore",
    "IngestionPipeline",
    "IngestionQueue",
    "SentenceChunker",
    "chunk",
    "extract",
    "guess_media_type",
    "sanitize",
]
