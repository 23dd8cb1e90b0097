"""Lumix schema definitions.

All Pydantic v2 models used by the decoder, emitter, providers and CLI.
"""

from lumix.schemas.config import (
    EmitterConfig,
    LumixConfig,
    ProviderConfig,
    ProviderKind,
)
from lumix.schemas.streaming import (
    DeltaEvent,
    DisplayUnit,
    StreamChunk,
    StreamMode,
    StreamOutcome,
    StreamResult,
    StreamState,
)

__all__ = [
    "DeltaEvent",
    "DisplayUnit",
    "EmitterConfig",
    "LumixConfig",
    "ProviderConfig",
    "ProviderKind",
    "StreamChunk",
    "StreamMode",
    "StreamOutcome",
    "StreamResult",
    "StreamState",
]
