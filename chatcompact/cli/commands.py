"""CLI commands for chatcompact."""

import asyncio
import json
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from chatcompact import __logo__, __version__
from chatcompact.history.messages import ConversationMessage, ConversationScope

app = typer.Typer(
    name="chatcompact",
    help=f"{__logo__} chatcompact - rolling summaries for long chat histories",
    no_args_is_help=True,
)

console = Console()

PREVIEW_CHARS = 80


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _load_transcript(path: Path) -> list[ConversationMessage]:
    """Read a JSONL transcript with one ``{"role", "content"}`` object per line."""
    if not path.exists():
        console.print(f"[red]Error: transcript not found: {path}[/red]")
        raise typer.Exit(1)

    messages = []
    for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            messages.append(ConversationMessage.from_dict(json.loads(line)))
        except (json.JSONDecodeError, ValueError, AttributeError) as e:
            console.print(f"[red]Error: {path}:{lineno}: {e}[/red]")
            raise typer.Exit(1)
    return messages


def _make_provider(config):
    """Create the LLM provider for the configured summary model."""
    provider_cfg = config.get_provider_config()
    api_key = provider_cfg.api_key or None

    if config.provider_name == "anthropic":
        from chatcompact.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(
            api_key=api_key,
            default_model=config.compaction.model,
            api_base=provider_cfg.api_base,
        )

    from chatcompact.providers.litellm_provider import LiteLLMProvider
    return LiteLLMProvider(
        api_key=api_key,
        default_model=config.compaction.model,
        api_base=provider_cfg.api_base,
    )


def _make_store(config, required: bool = False):
    from chatcompact.history.store import JsonSummaryStore

    if not config.store.enabled and not required:
        return None
    return JsonSummaryStore(config.store_path, auto_create=config.store.auto_create)


def _preview(text: str) -> str:
    text = text.replace("\n", " ")
    return text if len(text) <= PREVIEW_CHARS else text[:PREVIEW_CHARS - 3] + "..."


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} chatcompact v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """chatcompact - rolling summaries for long chat histories."""
    pass


@app.command()
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file"),
):
    """Write a default config file."""
    from chatcompact.config.loader import get_config_path, save_config
    from chatcompact.config.schema import Config

    config_path = get_config_path()
    if config_path.exists() and not force:
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        console.print("Use --force to overwrite it.")
        raise typer.Exit(1)

    save_config(Config(), config_path)
    console.print(f"[green]✓[/green] Wrote config to {config_path}")


# ============================================================================
# Compaction
# ============================================================================


@app.command()
def compact(
    transcript: Path = typer.Argument(..., help="JSONL transcript, one message per line"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner ID for cache partitioning"),
    conversation: str = typer.Option(..., "--conversation", "-c", help="Conversation key"),
    no_store: bool = typer.Option(False, "--no-store", help="Skip the durable summary store"),
    as_json: bool = typer.Option(False, "--json", help="Print the prepared messages as JSON"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Prepare a bounded message sequence for a transcript."""
    from chatcompact.config.loader import load_config
    from chatcompact.history.compactor import HistoryCompactor
    from chatcompact.history.summarizer import SummarizationError

    _configure_logging(verbose)
    config = load_config()
    messages = _load_transcript(transcript)

    store = None if no_store else _make_store(config)
    compactor = HistoryCompactor.from_config(config, _make_provider(config), store=store)
    scope = ConversationScope(owner_id=owner, conversation_key=conversation)

    try:
        result = asyncio.run(compactor.prepare(messages, scope))
    except SummarizationError as e:
        console.print(f"[red]Error: summarization failed: {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps({
            "messages": result.messages,
            "did_summarize": result.did_summarize,
            "used_cached_summary": result.used_cached_summary,
        }, ensure_ascii=False, indent=2))
        return

    table = Table(title=f"Prepared history ({len(result.messages)} messages)")
    table.add_column("#", style="dim")
    table.add_column("Role", style="cyan")
    table.add_column("Content")
    for i, msg in enumerate(result.messages, start=1):
        table.add_row(str(i), msg["role"], _preview(msg["content"]))
    console.print(table)

    console.print(f"Summarized: {'[green]yes[/green]' if result.did_summarize else 'no'}")
    console.print(f"Cached summary: {'[green]yes[/green]' if result.used_cached_summary else 'no'}")


@app.command("hash")
def hash_transcript(
    transcript: Path = typer.Argument(..., help="JSONL transcript, one message per line"),
):
    """Print the content fingerprint of a transcript."""
    from chatcompact.history.hasher import hash_messages

    typer.echo(hash_messages(_load_transcript(transcript)))


# ============================================================================
# Durable cache
# ============================================================================

cache_app = typer.Typer(help="Inspect the durable summary store")
app.add_typer(cache_app, name="cache")


@cache_app.command("list")
def cache_list(
    owner: str = typer.Option(None, "--owner", "-o", help="Only rows for this owner"),
):
    """List stored summaries."""
    from chatcompact.config.loader import load_config
    from chatcompact.history.store import SummaryStoreUnavailable

    store = _make_store(load_config(), required=True)
    try:
        rows = asyncio.run(store.list_rows(owner))
    except SummaryStoreUnavailable as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not rows:
        console.print("No stored summaries.")
        return

    table = Table(title="Stored summaries")
    table.add_column("Owner", style="cyan")
    table.add_column("Conversation")
    table.add_column("Messages", justify="right")
    table.add_column("Hash", style="dim")
    table.add_column("Updated")
    for row in rows:
        table.add_row(
            row.owner_id,
            row.conversation_key,
            str(row.source_message_count),
            row.source_hash[:12],
            row.updated_at,
        )
    console.print(table)


@cache_app.command("show")
def cache_show(
    owner: str = typer.Argument(..., help="Owner ID"),
    conversation: str = typer.Argument(..., help="Conversation key"),
):
    """Print one stored summary."""
    from chatcompact.config.loader import load_config
    from chatcompact.history.store import SummaryStoreUnavailable

    store = _make_store(load_config(), required=True)
    try:
        row = asyncio.run(store.get(owner, conversation))
    except SummaryStoreUnavailable as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if row is None:
        console.print(f"[yellow]No summary stored for {owner}:{conversation}[/yellow]")
        raise typer.Exit(1)

    console.print(f"[cyan]Source:[/cyan] {row.source_message_count} messages, hash {row.source_hash}")
    console.print(f"[cyan]Updated:[/cyan] {row.updated_at}")
    console.print(row.summary)


@cache_app.command("migrate")
def cache_migrate():
    """Provision the durable summary store."""
    from chatcompact.config.loader import load_config
    from chatcompact.history.store import SummaryStoreUnavailable

    store = _make_store(load_config(), required=True)
    try:
        store.migrate()
    except SummaryStoreUnavailable as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Summary store ready at {store.root}")
