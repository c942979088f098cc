"""dealroom status: documents of a project with their processing state."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dealroom.cli.context import load_cli_config, open_db
from dealroom.db.models import STATUS_COMPLETED, STATUS_FAILED, STATUS_PROCESSING
from dealroom.db.repository import Repository

console = Console()


def status_cmd(
    project: Annotated[
        str,
        typer.Option("--project", "-p", help="Project id to show."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Show every document of a project: status, chunks, tokens, pages."""
    cfg = load_cli_config(db)
    conn = open_db(cfg.storage.db_path)
    try:
        repo = Repository(conn)
        documents = repo.list_documents(project)
        if not documents:
            console.print(
                Panel(
                    f"[yellow]No documents in project '{project}'.[/]\n"
                    f"  Run:  dealroom ingest --project {project} --file <path>",
                    title="[bold]Dataroom[/]",
                    expand=False,
                )
            )
            return

        table = Table(title=f"Project {project}")
        table.add_column("Document")
        table.add_column("ID", style="dim")
        table.add_column("Type")
        table.add_column("Status")
        table.add_column("Chunks", justify="right")
        table.add_column("Tokens", justify="right")
        table.add_column("Pages", justify="right")
        table.add_column("Uploaded")

        for d in documents:
            table.add_row(
                d.original_name,
                d.id,
                d.media_type,
                _status_label(d.status),
                str(repo.count_chunks(d.id)),
                f"{d.token_count:,}",
                str(d.page_estimate or "-"),
                d.created_at or "",
            )
        console.print(table)

        counts = {
            s: sum(1 for d in documents if d.status == s)
            for s in (STATUS_COMPLETED, STATUS_PROCESSING, STATUS_FAILED)
        }
        console.print(
            f"Completed: [bold]{counts[STATUS_COMPLETED]}[/]  |  "
            f"Processing: [bold]{counts[STATUS_PROCESSING]}[/]  |  "
            f"Failed: [bold]{counts[STATUS_FAILED]}[/]"
        )
        if counts[STATUS_PROCESSING]:
            console.print("  [dim]Stuck in processing? Run:  dealroom recover[/]")
    finally:
        conn.close()


def _status_label(status: str) -> str:
    if status == STATUS_COMPLETED:
        return "[green]✓ completed[/]"
    if status == STATUS_FAILED:
        return "[red]✗ failed[/]"
    return "[yellow]… processing[/]"
