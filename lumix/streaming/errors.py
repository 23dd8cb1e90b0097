"""Exceptions raised by the streaming pipeline."""

from __future__ import annotations


class StreamError(RuntimeError):
    """Base class for stream failures."""


class StreamStartError(StreamError):
    """The request failed before any reply bytes arrived.

    No decoder or emitter state exists yet, so the caller may safely
    retry the whole request.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamInterruptedError(StreamError):
    """The transport failed after streaming had begun.

    Text decoded before the failure stays valid; deltas_received records
    how many deltas made it through.
    """

    def __init__(self, message: str, *, deltas_received: int = 0) -> None:
        super().__init__(message)
        self.deltas_received = deltas_received
