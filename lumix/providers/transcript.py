"""Transcript provider — replays a recorded SSE response from disk.

Useful for tuning the emitter without network access: the file is served
in fixed-size byte chunks, so the decoder sees the same kind of arbitrary
chunk boundaries a live connection produces.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from lumix.providers.base import ChatProvider
from lumix.schemas.config import ProviderConfig
from lumix.streaming.decoder import StreamDecoder
from lumix.streaming.errors import StreamStartError


class TranscriptProvider(ChatProvider):
    """Serves a recorded SSE transcript as if it were a live stream."""

    def __init__(
        self,
        path: Path,
        *,
        chunk_size: int = 64,
        config: ProviderConfig | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config or ProviderConfig(model=f"transcript:{path.name}"), **kwargs)
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._path = path
        self._chunk_size = chunk_size

    def _read(self) -> bytes:
        try:
            return self._path.read_bytes()
        except OSError as e:
            raise StreamStartError(f"Cannot read transcript {self._path}: {e}") from e

    async def complete(self, prompt: str = "", system: str = "") -> str:
        """Decode the whole transcript and return its reply text."""
        decoder = StreamDecoder()
        events = decoder.feed(self._read()) + decoder.close()
        return "".join(event.text for event in events)

    async def open_stream(self, prompt: str = "", system: str = "") -> AsyncIterator[bytes]:
        data = self._read()
        for offset in range(0, len(data), self._chunk_size):
            yield data[offset:offset + self._chunk_size]
            # Let other tasks run between chunks, like a real socket read
            await asyncio.sleep(0)
