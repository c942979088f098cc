"""dealroom remove: delete a document with its chunks and stored file.

Usage:
  dealroom remove --document <id>
  dealroom remove --document <id> --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from dealroom.cli.context import (
    build_embedder,
    build_queue,
    build_service,
    load_cli_config,
    open_db,
)
from dealroom.cli.errors import err_document_not_found
from dealroom.db.repository import Repository

console = Console()


def remove_cmd(
    document: Annotated[
        str,
        typer.Option("--document", "-d", help="Document id to remove."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a document and all its chunks from the dataroom."""
    cfg = load_cli_config(db)
    conn = open_db(cfg.storage.db_path)

    try:
        repo = Repository(conn)
        existing = repo.get_document(document)
        if existing is None:
            console.print(err_document_not_found(document))
            raise typer.Exit(0)

        chunk_count = repo.count_chunks(existing.id)
        console.print(f"\nRemove document: [bold]{existing.original_name}[/]")
        console.print(
            f"  Project: {existing.project_id}  |  "
            f"Status: {existing.status}  |  Chunks: {chunk_count}"
        )

        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        embedder = build_embedder(cfg)
        service = build_service(cfg, conn, embedder, build_queue(cfg, embedder))
        service.delete_document(existing.id)

        console.print(f"\n[green]✓[/] Removed: {existing.original_name}")
        console.print(f"  {chunk_count} chunks deleted")
    finally:
        conn.close()
