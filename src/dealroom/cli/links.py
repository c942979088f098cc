"""dealroom links CLI commands.

Commands:
  dealroom links create --project P --name N [--slug S] [--expires-at T]
  dealroom links list --project P
  dealroom links disable --slug S
"""

from __future__ import annotations

import sqlite3
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
)
from dealroom.cli.errors import describe_error
from dealroom.db.repository import Repository
from dealroom.errors import DealroomError

console = Console()

links_app = typer.Typer(
    name="links",
    help="Manage shareable investor chat links (create, list, disable).",
    add_completion=False,
)


@links_app.command("create")
def links_create_cmd(
    project: Annotated[
        str,
        typer.Option("--project", "-p", help="Project the link gives access to."),
    ],
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Display name, e.g. the investor's fund."),
    ],
    slug: Annotated[
        str | None,
        typer.Option("--slug", help="URL slug (generated when omitted)."),
    ] = None,
    expires_at: Annotated[
        str | None,
        typer.Option(
            "--expires-at",
            help="ISO expiry, e.g. 2030-01-31 18:00:00 (UTC unless an offset is given).",
        ),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Create a chat link for a project."""
    cfg = load_cli_config(db)
    conn = open_db(cfg.storage.db_path)
    try:
        embedder = build_embedder(cfg)
        service = build_service(cfg, conn, embedder, build_queue(cfg, embedder))
        try:
            link = service.create_link(project, name, slug=slug, expires_at=expires_at)
        except sqlite3.IntegrityError as exc:
            console.print(
                f"[red]Error:[/] Slug '{slug}' is already taken.\n"
                "  Choose another --slug or omit it to generate one."
            )
            raise typer.Exit(1) from exc
        except DealroomError as exc:
            console.print(describe_error(exc))
            raise typer.Exit(1) from exc
        console.print(f"[green]✓[/] Link created: [bold]{link.slug}[/] → project {project}")
    finally:
        conn.close()


@links_app.command("list")
def links_list_cmd(
    project: Annotated[
        str,
        typer.Option("--project", "-p", help="Project id."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """List the chat links of a project."""
    cfg = load_cli_config(db)
    conn = open_db(cfg.storage.db_path)
    try:
        links = Repository(conn).list_links(project)
    finally:
        conn.close()

    if not links:
        console.print(f"[yellow]No links for project '{project}'.[/]")
        raise typer.Exit(0)

    table = Table(title="Chat links", show_header=True, header_style="bold")
    table.add_column("Slug", style="bold")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Expires")
    for link in links:
        table.add_row(link.slug, link.name, link.status, link.expires_at or "never")
    console.print(table)


@links_app.command("disable")
def links_disable_cmd(
    slug: Annotated[
        str,
        typer.Option("--slug", "-s", help="Slug of the link to disable."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Disable a chat link; existing conversations are kept."""
    cfg = load_cli_config(db)
    conn = open_db(cfg.storage.db_path)
    try:
        embedder = build_embedder(cfg)
        service = build_service(cfg, conn, embedder, build_queue(cfg, embedder))
        try:
            service.disable_link(slug)
        except DealroomError as exc:
            console.print(describe_error(exc))
            raise typer.Exit(1) from exc
    finally:
        conn.close()
    console.print(f"[green]✓[/] Link disabled: [bold]{slug}[/]")
