"""Dealroom rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from dealroom.cli.errors import err_no_db
    console.print(err_no_db(".dealroom.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from dealroom.errors import (
    CompletionProviderError,
    ConversationMismatch,
    ConversationNotFound,
    DealroomError,
    DocumentNotFound,
    EmbeddingProviderError,
    LinkNotFound,
    UnknownModel,
)


def err_no_api_key(provider: str) -> str:
    """No API key for *provider*.

    Example:
        No API key for 'openai'. Set:  export OPENAI_API_KEY=sk-...
    """
    env_map = {
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
        "gemini": "GEMINI_API_KEY",
        "cohere": "COHERE_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "azure": "AZURE_API_KEY",
    }
    env_var = env_map.get(provider.lower(), f"{provider.upper()}_API_KEY")
    return (
        f"[red]Error:[/] No API key for '{provider}'.\n"
        f"  Set:  export {env_var}=..."
    )


def err_no_db(db_path: str = ".dealroom.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  dealroom init"
    )


def err_config(message: str) -> str:
    return f"[red]Error:[/] Invalid configuration.\n  {message}"


def err_file_not_found(path: str) -> str:
    return (
        f"[red]Error:[/] File not found: '{path}'\n"
        "  Check the path and try again."
    )


def err_document_not_found(document_id: str) -> str:
    return (
        f"[yellow]Document not found:[/] '{document_id}' is not in the dataroom.\n"
        "  Run:  dealroom status --project <id>  to see all documents."
    )


def err_link_not_found(exc: LinkNotFound) -> str:
    return (
        f"[red]Error:[/] {exc}.\n"
        "  Run:  dealroom links list --project <id>  to see available links."
    )


def err_unknown_model(exc: UnknownModel) -> str:
    return f"[red]Error:[/] {exc}\n  Pass one of them with --model."


def err_conversation(exc: DealroomError) -> str:
    return (
        f"[red]Error:[/] {exc}\n"
        "  Omit --conversation to start a new conversation on this link."
    )


def err_provider(exc: DealroomError) -> str:
    """Provider call failed; nothing was recorded, so a retry is safe."""
    return (
        f"[red]Error:[/] {exc}\n"
        "  No message was recorded. Check the provider status and retry."
    )


def describe_error(exc: DealroomError) -> str:
    """Rich message for any core error raised on the chat or document path."""
    if isinstance(exc, UnknownModel):
        return err_unknown_model(exc)
    if isinstance(exc, LinkNotFound):
        return err_link_not_found(exc)
    if isinstance(exc, (ConversationNotFound, ConversationMismatch)):
        return err_conversation(exc)
    if isinstance(exc, DocumentNotFound):
        return err_document_not_found(exc.document_id)
    if isinstance(exc, (CompletionProviderError, EmbeddingProviderError)):
        return err_provider(exc)
    return f"[red]Error:[/] {exc}"
