"""Streaming pipeline: raw SSE bytes → DeltaEvents → paced DisplayUnits."""

from lumix.streaming.decoder import StreamDecoder, extract_delta_text
from lumix.streaming.emitter import AdaptiveEmitter, Sink, split_display_units, step
from lumix.streaming.errors import StreamError, StreamInterruptedError, StreamStartError

__all__ = [
    "AdaptiveEmitter",
    "Sink",
    "StreamDecoder",
    "StreamError",
    "StreamInterruptedError",
    "StreamStartError",
    "extract_delta_text",
    "split_display_units",
    "step",
]
