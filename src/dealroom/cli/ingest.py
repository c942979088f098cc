"""dealroom ingest: upload files into a project and wait for processing.

Media type is taken from --media-type or guessed from the file extension:
  .txt .md .markdown → text
  .pdf               → pypdf, page by page
  .xlsx              → openpyxl, sheet by sheet
  .docx              → placeholder text
Anything else is stored and then marked failed by the pipeline.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from dealroom.cli.context import (
    build_embedder,
    build_queue,
    build_service,
    load_cli_config,
    open_db,
    require_api_key,
)
from dealroom.cli.errors import err_file_not_found
from dealroom.db.models import STATUS_COMPLETED, STATUS_FAILED, Document
from dealroom.db.repository import Repository

console = Console()

_STATUS_STYLE = {STATUS_COMPLETED: "green", STATUS_FAILED: "red"}


def ingest_cmd(
    project: Annotated[
        str,
        typer.Option("--project", "-p", help="Project id the documents belong to."),
    ],
    file: Annotated[
        list[Path],
        typer.Option("--file", "-f", help="File to upload (repeatable)."),
    ],
    media_type: Annotated[
        str | None,
        typer.Option("--media-type", help="Declared media type (default: from extension)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database (created if missing)."),
    ] = None,
) -> None:
    """Upload one or more files and wait until each is completed or failed."""
    for path in file:
        if not path.is_file():
            console.print(err_file_not_found(str(path)))
            raise typer.Exit(1)

    cfg = load_cli_config(db)
    require_api_key(cfg.embedding.model)
    embedder = build_embedder(cfg)

    conn = open_db(cfg.storage.db_path, create=True)
    try:
        with build_queue(cfg, embedder) as queue:
            service = build_service(cfg, conn, embedder, queue)
            queued = [
                service.ingest(project, path.read_bytes(), path.name, media_type)
                for path in file
            ]
            with console.status(f"Processing {len(queued)} document(s)…"):
                queue.join()

        repo = Repository(conn)
        final = [repo.get_document(d.id) or d for d in queued]
        console.print(_documents_table(final))
    finally:
        conn.close()

    if any(d.status == STATUS_FAILED for d in final):
        console.print("[yellow]Some documents failed; run with --verbose for the reason.[/]")
        raise typer.Exit(1)


def _documents_table(documents: list[Document]) -> Table:
    table = Table(title="Ingested documents")
    table.add_column("Document")
    table.add_column("ID", style="dim")
    table.add_column("Status")
    table.add_column("Tokens", justify="right")
    table.add_column("Pages", justify="right")
    for d in documents:
        style = _STATUS_STYLE.get(d.status, "yellow")
        table.add_row(
            d.original_name,
            d.id,
            f"[{style}]{d.status}[/]",
            f"{d.token_count:,}",
            str(d.page_estimate or "-"),
        )
    return table
