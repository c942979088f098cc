"""dealroom chat: ask one question through a chat link.

Prints the answer, the cited documents and the conversation's running
totals. Pass the printed conversation id back with --conversation to
continue the same conversation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from dealroom.cli.context import (
    build_embedder,
    build_queue,
    build_service,
    load_cli_config,
    open_db,
    require_api_key,
)
from dealroom.cli.errors import describe_error
from dealroom.errors import DealroomError
from dealroom.rag.providers import litellm_model

console = Console()


def chat_cmd(
    link: Annotated[
        str,
        typer.Option("--link", "-l", help="Chat link slug."),
    ],
    message: Annotated[
        str,
        typer.Option("--message", "-m", help="Question to ask."),
    ],
    model: Annotated[
        str | None,
        typer.Option("--model", help="Model id, e.g. gpt-4o, claude-sonnet-4, gemini-pro."),
    ] = None,
    conversation: Annotated[
        str | None,
        typer.Option("--conversation", "-c", help="Continue an existing conversation."),
    ] = None,
    email: Annotated[
        str | None,
        typer.Option("--email", help="Investor email (new conversations only)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the database."),
    ] = None,
) -> None:
    """Answer a question from the documents of the link's project."""
    cfg = load_cli_config(db)
    model_id = model or cfg.chat.model

    require_api_key(cfg.embedding.model)
    provider_model = litellm_model(model_id)
    if provider_model is not None:
        require_api_key(provider_model)

    conn = open_db(cfg.storage.db_path)
    try:
        embedder = build_embedder(cfg)
        service = build_service(cfg, conn, embedder, build_queue(cfg, embedder))
        try:
            with console.status(f"Asking {model_id}…"):
                result = service.chat(
                    link, conversation, message, model_id, investor_email=email
                )
        except DealroomError as exc:
            console.print(describe_error(exc))
            raise typer.Exit(1) from exc
    finally:
        conn.close()

    answer = result.assistant_message
    console.print(Panel(Markdown(answer.content), title=f"[bold]{model_id}[/]", expand=False))

    if answer.citations:
        console.print("[bold]Sources[/]")
        for c in answer.citations:
            page = f", page {c.page}" if c.page else ""
            console.print(f"  • {c.source}{page}")

    console.print(
        f"\nConversation: [bold]{result.conversation_id}[/]  |  "
        f"Tokens: {result.totals.total_tokens:,}  |  "
        f"Cost: ${result.totals.cost_usd:.4f}"
    )
