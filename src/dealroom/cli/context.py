"""Shared CLI wiring: config, database, embedder, queue and service.

Commands build everything per invocation from the merged config; ``--db``
overrides ``storage.db_path``.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from dealroom.cli.errors import err_config, err_no_api_key, err_no_db
from dealroom.config import ConfigError, DealroomConfig, load_config
from dealroom.db.connection import Database
from dealroom.db.repository import Repository
from dealroom.db.schema import initialize
from dealroom.ingest.files import FileStore
from dealroom.ingest.pipeline import IngestionPipeline
from dealroom.ingest.queue import IngestionQueue
from dealroom.notify import LogNotifier
from dealroom.rag.llm_client import LiteLLMEmbedder, provider_of, validate_api_key
from dealroom.service import DataroomService

console = Console()


def load_cli_config(db: Path | None = None) -> DealroomConfig:
    """load_config() from the CWD, with *db* applied as a CLI override."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    if db is not None:
        cfg.storage.db_path = str(db)
    return cfg


def open_db(db_path: Path | str, create: bool = False) -> sqlite3.Connection:
    """Open *db_path* with the schema initialised; exit 1 if it is missing."""
    path = Path(db_path)
    if not create and not path.exists():
        console.print(err_no_db(str(path)))
        raise typer.Exit(1)
    conn = Database(path).connect()
    initialize(conn)
    return conn


def require_api_key(model: str) -> None:
    """Exit 1 with an actionable message if *model*'s provider key is unset."""
    try:
        validate_api_key(model)
    except EnvironmentError as exc:
        console.print(err_no_api_key(provider_of(model)))
        raise typer.Exit(1) from exc


def build_embedder(cfg: DealroomConfig) -> LiteLLMEmbedder:
    return LiteLLMEmbedder(
        model=cfg.embedding.model,
        dimensions=cfg.embedding.dimensions,
        num_retries=cfg.embedding.num_retries,
    )


def build_queue(cfg: DealroomConfig, embedder: LiteLLMEmbedder) -> IngestionQueue:
    """Worker pool whose pipelines share the embedder and upload directory."""
    file_store = FileStore(cfg.storage.upload_dir)
    notifier = LogNotifier()

    def _factory(repo: Repository) -> IngestionPipeline:
        return IngestionPipeline(
            repo,
            file_store,
            embedder,
            notifier=notifier,
            max_chunk_chars=cfg.chunking.max_chunk_chars,
            rates=cfg.pricing.rates,
        )

    return IngestionQueue(
        Database(cfg.storage.db_path), _factory, workers=cfg.ingestion.workers
    )


def build_service(
    cfg: DealroomConfig,
    conn: sqlite3.Connection,
    embedder: LiteLLMEmbedder,
    queue: IngestionQueue,
) -> DataroomService:
    return DataroomService(
        Repository(conn),
        FileStore(cfg.storage.upload_dir),
        embedder,
        queue,
        notifier=LogNotifier(),
        top_k=cfg.retrieval.top_k,
        history_limit=cfg.chat.history_limit,
        cost_model=cfg.pricing.chat_cost_model,
        rates=cfg.pricing.rates,
    )
