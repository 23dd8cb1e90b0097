"""Display sinks and summary rendering for the Lumix CLI.

ConsoleSink writes display units straight to a Rich console as they
arrive; BufferSink collects them in memory (used by `replay --quiet`
and by tests).
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from lumix.schemas.config import LumixConfig
from lumix.schemas.streaming import StreamMode, StreamOutcome, StreamResult

# ── Brand Colors ──────────────────────────────────────────────────

BRAND = {
    "accent": "#7aa2ff",
    "dim": "#6a7a8a",
    "amber": "#ffaa00",
    "red": "#ff4444",
    "green": "#00ff88",
}

_OUTCOME_STYLE: dict[StreamOutcome, str] = {
    StreamOutcome.COMPLETED: f"bold {BRAND['green']}",
    StreamOutcome.INTERRUPTED: f"bold {BRAND['red']}",
    StreamOutcome.ABANDONED: f"bold {BRAND['amber']}",
}


class ConsoleSink:
    """Appends display units to a Rich console without line breaks."""

    def __init__(self, console: Console, *, style: str | None = None) -> None:
        self._console = console
        self._style = style
        self.units = 0

    def append(self, text: str) -> None:
        self._console.print(
            text, end="", style=self._style, markup=False, highlight=False, soft_wrap=True,
        )
        self._console.file.flush()
        self.units += 1

    def newline(self) -> None:
        self._console.print()


class BufferSink:
    """Collects display units in memory.

    With max_units set, the sink asks the emitter to abandon the reply
    once that many units have been received.
    """

    def __init__(self, max_units: int | None = None) -> None:
        self.parts: list[str] = []
        self._max_units = max_units

    def append(self, text: str) -> bool:
        self.parts.append(text)
        return self._max_units is None or len(self.parts) < self._max_units

    @property
    def text(self) -> str:
        return "".join(self.parts)


def render_interrupted_marker(console: Console, result: StreamResult) -> None:
    """Inline marker printed after a partial reply."""
    console.print(
        Text(f" [stream interrupted: {result.error}]", style=BRAND["red"]),
        soft_wrap=True,
    )


def render_stream_summary(console: Console, result: StreamResult) -> None:
    """One-line summary of how the stream went."""
    text = Text()
    text.append(result.outcome.value, style=_OUTCOME_STYLE[result.outcome])
    text.append(
        f" · {result.delta_count} deltas · {result.units_emitted} units"
        f" · {len(result.full_text)} chars · {result.duration_seconds:.1f}s",
        style=BRAND["dim"],
    )
    if result.mode == StreamMode.SMOOTH and result.switched_at is not None:
        text.append(f" · smooth from delta {result.switched_at}", style=BRAND["accent"])
    console.print(text)


def render_config(console: Console, config: LumixConfig, source: str) -> None:
    """Render the active configuration as two tables."""
    provider = Table(title="Provider", show_header=False, show_lines=True)
    provider.add_column("Setting", style="bold")
    provider.add_column("Value")
    provider.add_row("Kind", config.provider.kind.value)
    provider.add_row("Model", config.provider.model)
    provider.add_row("API Base", config.provider.api_base)
    provider.add_row("Key Env", config.provider.api_key_env)
    provider.add_row("Timeout", f"{config.provider.timeout:g}s")
    provider.add_row("Max Retries", str(config.provider.max_retries))
    provider.add_row("Backoff", f"{config.provider.backoff:g}s")

    emitter = Table(title="Emitter", show_header=False, show_lines=True)
    emitter.add_column("Setting", style="bold")
    emitter.add_column("Value")
    emitter.add_row("Threshold Length", f"{config.emitter.threshold_len} chars")
    emitter.add_row("Switch Fraction", f"{config.emitter.smooth_switch_fraction:.2f}")
    emitter.add_row("Switch Point", f"{config.emitter.switch_length:g} chars")
    emitter.add_row("Smooth Delay", f"{config.emitter.smooth_delay_ms} ms")

    console.print(Panel(Text(source, style=BRAND["dim"]), title="Config Source", expand=False))
    console.print(provider)
    console.print(emitter)
