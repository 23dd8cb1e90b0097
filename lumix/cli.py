"""Lumix CLI — Typer + Rich terminal interface.

Commands: ask, replay, config show/path, keys list/save.
Replies stream straight into the terminal through the adaptive emitter.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from lumix import __version__
from lumix.cli_display import (
    BufferSink,
    ConsoleSink,
    render_config,
    render_interrupted_marker,
    render_stream_summary,
)
from lumix.keys import KEYS_FILE, key_env_names, load_keys_env, mask_key, save_keys
from lumix.providers.registry import DEFAULT_CONFIG_PATH, create_provider, load_config
from lumix.providers.transcript import TranscriptProvider
from lumix.schemas.config import LumixConfig
from lumix.schemas.streaming import StreamOutcome, StreamResult
from lumix.session import ChatSession
from lumix.streaming.errors import StreamStartError

console = Console()
err_console = Console(stderr=True)

# ── App and sub-apps ─────────────────────────────────────────────

app = typer.Typer(
    name="lumix",
    help="Streaming chat client with adaptive reply pacing.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Show configuration.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

keys_app = typer.Typer(
    name="keys",
    help="Manage API keys.",
    no_args_is_help=True,
)
app.add_typer(keys_app, name="keys")


# ── Version callback ───────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"lumix {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log decoder and emitter activity to stderr.",
    ),
) -> None:
    """Lumix — streaming chat client with adaptive reply pacing."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    # Keys from ~/.lumix/keys.env and .env, without overriding the shell
    load_keys_env()


# ── Helpers ──────────────────────────────────────────────────────


def _load_config(path: Path | None) -> LumixConfig:
    """Load configuration, exit on error."""
    try:
        return load_config(path)
    except (FileNotFoundError, ValueError) as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None


def _finish_stream(result: StreamResult, sink: ConsoleSink, summary: bool) -> None:
    if result.outcome == StreamOutcome.INTERRUPTED:
        render_interrupted_marker(console, result)
    else:
        sink.newline()
    if summary:
        render_stream_summary(err_console, result)
    if result.outcome == StreamOutcome.INTERRUPTED:
        raise typer.Exit(1)


def _run(coro):
    """Run a coroutine, mapping start failures and Ctrl+C to exit codes."""
    try:
        return asyncio.run(coro)
    except StreamStartError as e:
        err_console.print(f"[red]Stream could not start:[/red] {e}")
        raise typer.Exit(1) from None
    except KeyboardInterrupt:
        console.print()
        err_console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130) from None


# ── lumix ask ────────────────────────────────────────────────────


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="What to ask."),
    system: str = typer.Option("", "--system", "-s", help="System prompt prepended to the question."),
    stream: bool = typer.Option(True, "--stream/--no-stream", help="Stream the reply or fetch it in one piece."),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Path to a TOML config file."),
    summary: bool = typer.Option(False, "--summary", help="Print stream statistics afterwards."),
) -> None:
    """Ask a question and render the reply."""
    config = _load_config(config_path)
    provider = create_provider(config.provider)
    sink = ConsoleSink(console)
    session = ChatSession(provider, sink, emitter_config=config.emitter)

    if not stream:
        _run(session.reply(prompt, system))
        sink.newline()
        return

    result = _run(session.stream_reply(prompt, system))
    _finish_stream(result, sink, summary)


# ── lumix replay ─────────────────────────────────────────────────


@app.command()
def replay(
    transcript: Path = typer.Argument(..., help="Recorded SSE response (data: lines)."),
    chunk_size: int = typer.Option(64, "--chunk-size", min=1, help="Bytes per simulated read."),
    fast: bool = typer.Option(False, "--fast", help="Disable smooth-mode pacing."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Decode without rendering; print the summary only."),
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Path to a TOML config file."),
) -> None:
    """Replay a recorded stream through the decoder and emitter."""
    if not transcript.is_file():
        err_console.print(f"[red]Transcript not found:[/red] {transcript}")
        raise typer.Exit(1)

    config = _load_config(config_path)
    emitter_config = config.emitter
    if fast or quiet:
        emitter_config = emitter_config.model_copy(update={"smooth_delay_ms": 0})

    provider = TranscriptProvider(transcript, chunk_size=chunk_size)
    if quiet:
        session = ChatSession(provider, BufferSink(), emitter_config=emitter_config)
        result = _run(session.stream_reply(""))
        render_stream_summary(console, result)
        return

    sink = ConsoleSink(console)
    session = ChatSession(provider, sink, emitter_config=emitter_config)
    result = _run(session.stream_reply(""))
    _finish_stream(result, sink, summary=True)


# ── lumix config ─────────────────────────────────────────────────


@config_app.command("show")
def config_show(
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Path to a TOML config file."),
) -> None:
    """Show the active configuration."""
    config = _load_config(config_path)
    render_config(console, config, str(config_path or DEFAULT_CONFIG_PATH))


@config_app.command("path")
def config_path_cmd() -> None:
    """Show configuration file locations."""
    files = [
        ("Defaults", DEFAULT_CONFIG_PATH),
        ("Keys", KEYS_FILE),
        ("Project .env", Path.cwd() / ".env"),
    ]

    table = Table(title="Configuration Paths", show_header=False)
    table.add_column("Config", style="bold")
    table.add_column("Path")
    table.add_column("Status")

    for name, path in files:
        status = "[green]found[/green]" if path.exists() else "[red]missing[/red]"
        table.add_row(name, str(path), status)

    console.print(table)


# ── lumix keys ───────────────────────────────────────────────────


@keys_app.command("list")
def keys_list(
    config_path: Path | None = typer.Option(None, "--config", "-c", help="Path to a TOML config file."),
) -> None:
    """Show which API keys are configured (masked)."""
    config = _load_config(config_path)

    table = Table(title="API Keys")
    table.add_column("Env Var", style="bold")
    table.add_column("Value")

    configured = 0
    for name in key_env_names(config.provider.api_key_env):
        value = os.environ.get(name, "")
        if value:
            configured += 1
            table.add_row(name, mask_key(value))

    if not configured:
        console.print(
            f"[yellow]No API keys configured.[/yellow] Set {config.provider.api_key_env} "
            "or run [bold]lumix keys save[/bold]."
        )
        return

    console.print(table)
    console.print(f"{configured} key(s) in rotation")


@keys_app.command("save")
def keys_save(
    env_var: str = typer.Option("GEMINI_API_KEY", "--env", help="Variable name to store the key under."),
) -> None:
    """Save an API key to ~/.lumix/keys.env."""
    value = typer.prompt(f"{env_var}", hide_input=True).strip()
    if not value:
        err_console.print("[red]Empty key, nothing saved.[/red]")
        raise typer.Exit(1)
    path = save_keys({env_var: value})
    console.print(f"[green]Saved[/green] {env_var} to {path}")


if __name__ == "__main__":
    app()
