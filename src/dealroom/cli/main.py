"""Dealroom CLI entry point."""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from dealroom.cli.chat import chat_cmd
from dealroom.cli.ingest import ingest_cmd
from dealroom.cli.init import init_cmd
from dealroom.cli.links import links_app
from dealroom.cli.recover import recover_cmd
from dealroom.cli.remove import remove_cmd
from dealroom.cli.status import status_cmd


def _version_callback(value: bool) -> None:
    if value:
        try:
            ver = importlib.metadata.version("dealroom")
        except importlib.metadata.PackageNotFoundError:
            ver = "dev"
        typer.echo(f"dealroom {ver}")
        raise typer.Exit()


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Route ``dealroom.*`` log records to stderr through rich."""
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    handler = RichHandler(
        console=Console(stderr=True), show_path=False, rich_tracebacks=debug
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("dealroom")
    root.handlers = [handler]
    root.setLevel(level)
    root.propagate = False


app = typer.Typer(
    name="dealroom",
    help=(
        "Dealroom: investor chat grounded in your company documents.\n\n"
        "  dealroom ingest  Upload documents (PDF, spreadsheet, text) into a project.\n"
        "  dealroom chat    Ask questions through a shareable chat link."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log pipeline progress (INFO)."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Log everything (DEBUG)."),
    ] = False,
) -> None:
    """Dealroom: investor chat grounded in your company documents."""
    configure_logging(verbose=verbose, debug=debug)


app.command("init")(init_cmd)
app.command("ingest")(ingest_cmd)
app.command("status")(status_cmd)
app.command("remove")(remove_cmd)
app.command("recover")(recover_cmd)
app.command("chat")(chat_cmd)
app.add_typer(links_app, name="links")


@app.command("version")
def version_cmd() -> None:
    """Show the installed Dealroom version."""
    try:
        ver = importlib.metadata.version("dealroom")
    except importlib.metadata.PackageNotFoundError:
        ver = "dev"
    typer.echo(f"dealroom {ver}")


if __name__ == "__main__":
    app()
