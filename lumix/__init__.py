"""Lumix — streaming chat client with adaptive reply pacing."""

__version__ = "0.1.0"

from lumix.schemas import (
    DeltaEvent,
    DisplayUnit,
    EmitterConfig,
    LumixConfig,
    ProviderConfig,
    StreamChunk,
    StreamMode,
    StreamOutcome,
    StreamResult,
    StreamState,
)
from lumix.session import ChatSession
from lumix.streaming import (
    AdaptiveEmitter,
    StreamDecoder,
    StreamError,
    StreamInterruptedError,
    StreamStartError,
    step,
)

__all__ = [
    "AdaptiveEmitter",
    "ChatSession",
    "DeltaEvent",
    "DisplayUnit",
    "EmitterConfig",
    "LumixConfig",
    "ProviderConfig",
    "StreamChunk",
    "StreamDecoder",
    "StreamError",
    "StreamInterruptedError",
    "StreamMode",
    "StreamOutcome",
    "StreamResult",
    "StreamStartError",
    "StreamState",
    "step",
]
