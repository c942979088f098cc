"""dealroom recover: re-run documents left in ``processing`` by a crash."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from dealroom.cli.context import (
    build_embedder,
    build_queue,
    load_cli_config,
    open_db,
    require_api_key,
)
from dealroom.db.models import STATUS_PROCESSING
from dealroom.db.repository import Repository

console = Console()


def recover_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Re-enqueue every document still in processing and wait for the results."""
    cfg = load_cli_config(db)
    conn = open_db(cfg.storage.db_path)
    try:
        repo = Repository(conn)
        stuck = repo.list_documents_by_status(STATUS_PROCESSING)
        if not stuck:
            console.print("[green]✓[/] No documents in processing.")
            return

        require_api_key(cfg.embedding.model)
        embedder = build_embedder(cfg)
        with build_queue(cfg, embedder) as queue:
            count = queue.recover(repo)
            with console.status(f"Re-processing {count} document(s)…"):
                queue.join()

        for d in stuck:
            final = repo.get_document(d.id)
            status = final.status if final else "deleted"
            console.print(f"  {d.original_name} ({d.id}): {status}")
    finally:
        conn.close()
