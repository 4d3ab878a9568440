"""Main CLI entry point for tokentalk."""

import json
from pathlib import Path
from typing import Optional

import typer

from tokentalk import __app_name__, __version__
from tokentalk.chat.diagnostics import DiagnosticSink, RecordingDiagnosticSink
from tokentalk.chat.state_machine import TokenConversationEngine, TurnResult
from tokentalk.config.settings import LogLevel, Settings, create_default_config, get_settings
from tokentalk.data.history import InteractionHistory, show_history
from tokentalk.data.pending import FilePendingStore, PendingStore
from tokentalk.data.tokens import JsonTokenStore
from tokentalk.ui.console import (
    console,
    create_table,
    print_assistant,
    print_error,
    print_success,
    print_warning,
    print_welcome,
)
from tokentalk.utils.errors import handle_errors
from tokentalk.utils.logs import setup_logging

# Create Typer app
app = typer.Typer(
    name=__app_name__,
    help="Conversational manager for token substitutions",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"[primary]{__app_name__}[/primary] version [token]{__version__}[/token]")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Optional[LogLevel] = typer.Option(
        None, "--log-level", case_sensitive=False, help="Logging level"
    ),
):
    """tokentalk - create, read and delete tokens by talking to it."""
    create_default_config()
    setup_logging(log_level)


def build_engine(
    settings: Settings,
    persistent_pending: bool = False,
    diagnostics: Optional[DiagnosticSink] = None,
) -> TokenConversationEngine:
    """Wire an engine to the configured stores.

    Args:
        settings: Application settings
        persistent_pending: Keep create-flow ids on disk, for hosts that run
            one process per turn
        diagnostics: Sink to report to (logging by default)
    """
    storage = settings.storage
    if persistent_pending:
        pending: PendingStore = FilePendingStore(storage.pending_path, ttl=storage.pending_ttl)
    else:
        pending = PendingStore(ttl=storage.pending_ttl, maxsize=storage.pending_maxsize)

    return TokenConversationEngine(
        store=JsonTokenStore(storage.tokens_path),
        pending=pending,
        diagnostics=diagnostics,
        history=InteractionHistory(storage.history_path),
        namespace=settings.conversation.namespace,
        keyword=settings.conversation.keyword,
    )


@app.command()
@handle_errors()
def chat(
    message: Optional[str] = typer.Argument(None, help="Initial message (optional)"),
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Session id"),
):
    """Start interactive chat mode.

    [green]Examples:[/green]
        tokentalk chat
        tokentalk chat "create new token with id 8"
    """
    settings = get_settings()
    session_id = session or settings.conversation.default_session
    engine = build_engine(settings)
    context: Optional[str] = None

    print_welcome()
    console.print("[muted]Type 'cancel' to abandon a question, 'quit' to exit[/muted]\n")

    def _turn(text: str) -> Optional[str]:
        result = engine.process_turn(text, prior_context=context, session_id=session_id)
        if result.rewritten_text != text:
            console.print(f"[muted]heard: {result.rewritten_text}[/muted]")
        if not result.handled:
            console.print("[muted]Not a token command.[/muted]")
            return context
        if result.response:
            print_assistant(result.response, None if result.closed else result.context)
        return None if result.closed else result.context

    if message:
        context = _turn(message)

    while True:
        try:
            prompt_text = "[prompt]>[/prompt] " if context else "[prompt]You:[/prompt] "
            user_input = console.input(prompt_text).strip()

            if not user_input:
                continue

            # Quit only when no question is pending
            if user_input.lower() in ("quit", "exit", "q") and context is None:
                console.print("[muted]Goodbye![/muted]")
                break

            if user_input.lower() == "cancel" and context is not None:
                engine.pending.clear(session_id)
                context = None
                console.print("[muted]Cancelled.[/muted]")
                continue

            context = _turn(user_input)

        except KeyboardInterrupt:
            if context is not None:
                engine.pending.clear(session_id)
                context = None
                console.print("\n[muted]Cancelled.[/muted]")
            else:
                console.print("\n[muted]Use 'quit' to exit[/muted]")
        except EOFError:
            break


@app.command()
@handle_errors()
def say(
    text: str = typer.Argument(..., help="What the user said"),
    context: Optional[str] = typer.Option(
        None, "--context", "-c", help="Context returned by the previous turn"
    ),
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Session id"),
    as_json: bool = typer.Option(False, "--json", help="Print the turn result as JSON"),
):
    """Process a single turn and exit.

    Pass the printed context back with --context on the next call to continue
    the conversation.

    [green]Examples:[/green]
        tokentalk say "create token"
        tokentalk say "42" --context drupai_token.create_response
    """
    settings = get_settings()
    sink = RecordingDiagnosticSink()
    engine = build_engine(settings, persistent_pending=True, diagnostics=sink)
    result = engine.process_turn(
        text,
        prior_context=context,
        session_id=session or settings.conversation.default_session,
    )

    if as_json:
        payload = _result_to_dict(result)
        payload["diagnostics"] = [
            {"level": d.level.value, "message": d.message} for d in sink.entries
        ]
        print(json.dumps(payload, indent=2))
        return

    if not result.handled:
        console.print("[muted]Not a token command.[/muted]")
        return
    if result.response:
        print_assistant(result.response, result.context)
    if result.closed:
        console.print("[muted]Conversation closed.[/muted]")


def _result_to_dict(result: TurnResult) -> dict:
    return {
        "rewritten_text": result.rewritten_text,
        "response": result.response,
        "context": result.context,
        "closed": result.closed,
        "handled": result.handled,
    }


@app.command()
@handle_errors()
def tokens():
    """List stored tokens."""
    store = JsonTokenStore(get_settings().storage.tokens_path)
    all_tokens = store.get_all()

    if not all_tokens:
        console.print("[muted]No available tokens[/muted]")
        return

    table = create_table("Tokens", [("ID", "token"), ("Value", "assistant")])
    for token in all_tokens:
        table.add_row(str(token.token_id), token.value)
    console.print(table)


@app.command()
@handle_errors()
def add(
    token_id: int = typer.Argument(..., help="Token ID"),
    value: str = typer.Argument(..., help="Token value"),
):
    """Add a token without going through a conversation."""
    if token_id <= 0:
        print_error("Token ID must be a positive number")
        return
    if not value.strip():
        print_error("Token value must not be empty")
        return

    store = JsonTokenStore(get_settings().storage.tokens_path)
    if token_id in store:
        print_warning(f"Token ID {token_id} already exists; lookups keep the older value")
    store.create(token_id, value.strip())
    print_success(f"New token ID {token_id} created with value: {value.strip()}")


@app.command()
@handle_errors()
def remove(token_id: int = typer.Argument(..., help="Token ID")):
    """Delete a token without going through a conversation."""
    store = JsonTokenStore(get_settings().storage.tokens_path)
    token = store.find(token_id)
    if token is None:
        print_warning(f"Token ID {token_id} does not exist")
        return
    store.delete(token_id)
    print_success(f"Token ID {token_id} with value: {token.value}. Has been deleted")


@app.command()
@handle_errors()
def history(
    limit: int = typer.Option(20, "--limit", "-l", help="Number of interactions to show"),
    export: Optional[str] = typer.Option(None, "--export", "-e", help="Export to a .json file"),
):
    """View the log of substituted texts.

    [green]Examples:[/green]
        tokentalk history
        tokentalk history --export interactions.json
    """
    interaction_history = InteractionHistory(get_settings().storage.history_path)

    if export:
        if not export.endswith(".json"):
            print_error("Export file must end with .json")
            return
        count = interaction_history.export_json(Path(export), limit=limit)
        print_success(f"Exported {count} interactions to {export}")
        return

    show_history(interaction_history, limit=limit)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
