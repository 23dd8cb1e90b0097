"""Streaming schemas for the decode → emit pipeline.

Defines the records that flow between the Stream Decoder, the Adaptive
Emitter and the display sink, plus the progress chunk and final result
handed back to callers of ChatSession.stream_reply().
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class StreamMode(StrEnum):
    """Emission mode for the Adaptive Emitter.

    A stream starts in FAST and may switch to SMOOTH exactly once.
    """

    FAST = "fast"
    SMOOTH = "smooth"


class StreamOutcome(StrEnum):
    """How a streamed reply ended."""

    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    ABANDONED = "abandoned"


class DeltaEvent(BaseModel):
    """An incremental fragment of reply text decoded from one wire record."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1, description="Newly available reply text")


class DisplayUnit(BaseModel):
    """The smallest piece of text handed to the sink in one step."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1, description="Text appended to the visible buffer")
    delay_ms: int = Field(
        default=0, ge=0, description="Pause before the next unit becomes visible"
    )


class StreamState(BaseModel):
    """Accumulated state of one streaming response.

    Owned by a single emitter for the lifetime of one reply and advanced
    with model_copy(); never shared between concurrent replies.
    """

    model_config = ConfigDict(frozen=True)

    full_text: str = Field(default="", description="Concatenation of all deltas so far")
    mode: StreamMode = Field(default=StreamMode.FAST, description="Current emission mode")
    delta_count: int = Field(default=0, ge=0, description="Number of deltas consumed")
    switched_at: int | None = Field(
        default=None,
        description="1-based index of the delta that triggered the SMOOTH switch",
    )


class StreamChunk(BaseModel):
    """Progress notification delivered to on_chunk callbacks."""

    delta: str = Field(description="New text in this chunk")
    accumulated: str = Field(description="Full text accumulated so far")
    delta_count: int = Field(ge=0, description="Running count of deltas received")
    mode: StreamMode = Field(default=StreamMode.FAST, description="Emitter mode after this delta")
    is_complete: bool = Field(
        default=False, description="True on final chunk"
    )


class StreamResult(BaseModel):
    """Final result of a streamed reply."""

    full_text: str = Field(default="", description="All reply text received")
    outcome: StreamOutcome = Field(description="How the stream ended")
    mode: StreamMode = Field(default=StreamMode.FAST, description="Emitter mode at the end")
    delta_count: int = Field(default=0, ge=0, description="Deltas received")
    units_emitted: int = Field(default=0, ge=0, description="Display units delivered to the sink")
    switched_at: int | None = Field(
        default=None, description="Delta index that triggered SMOOTH mode, if any"
    )
    error: str = Field(default="", description="Error message when the stream was interrupted")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Wall-clock duration")

    @property
    def ok(self) -> bool:
        """True when the stream ended cleanly."""
        return self.outcome == StreamOutcome.COMPLETED
