"""Chat session: provider → decoder → emitter → sink.

One ChatSession wraps a provider and a sink. Every call to stream_reply()
creates a fresh StreamDecoder and AdaptiveEmitter, so concurrent replies
on separate sessions share no mutable state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import aclosing

from lumix.providers.base import ChatProvider
from lumix.schemas.config import EmitterConfig
from lumix.schemas.streaming import StreamChunk, StreamOutcome, StreamResult
from lumix.streaming.decoder import StreamDecoder
from lumix.streaming.emitter import AdaptiveEmitter, Sink
from lumix.streaming.errors import StreamInterruptedError

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[StreamChunk], object]


async def _notify(on_chunk: ChunkCallback | None, chunk: StreamChunk) -> None:
    if on_chunk is None:
        return
    result = on_chunk(chunk)
    if asyncio.iscoroutine(result):
        await result


class ChatSession:
    """Sends prompts through a provider and renders replies into a sink."""

    def __init__(
        self,
        provider: ChatProvider,
        sink: Sink,
        *,
        emitter_config: EmitterConfig | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._sink = sink
        self._emitter_config = emitter_config or EmitterConfig()
        self._sleep = sleep

    @property
    def provider(self) -> ChatProvider:
        return self._provider

    async def stream_reply(
        self,
        prompt: str,
        system: str = "",
        *,
        on_chunk: ChunkCallback | None = None,
    ) -> StreamResult:
        """Stream a reply into the sink.

        on_chunk (sync or async) receives a StreamChunk after every delta
        and one final chunk with is_complete=True carrying the full text,
        however the stream ended.

        Returns:
            StreamResult. A mid-stream transport failure is reported as
            outcome INTERRUPTED with the text received so far; a sink that
            abandons the reply yields ABANDONED and the transport is closed.

        Raises:
            StreamStartError: If the request failed before streaming began.
        """
        start = time.monotonic()
        decoder = StreamDecoder()
        emitter = AdaptiveEmitter(self._sink, self._emitter_config, sleep=self._sleep)
        outcome = StreamOutcome.COMPLETED
        error = ""

        source = self._provider.open_stream(prompt, system)
        try:
            async with aclosing(decoder.iter_deltas(source)) as deltas:
                async for delta in deltas:
                    await emitter.emit(delta)
                    state = emitter.state
                    await _notify(on_chunk, StreamChunk(
                        delta=delta.text,
                        accumulated=state.full_text,
                        delta_count=state.delta_count,
                        mode=state.mode,
                    ))
                    if emitter.abandoned:
                        outcome = StreamOutcome.ABANDONED
                        break
        except StreamInterruptedError as e:
            outcome = StreamOutcome.INTERRUPTED
            error = str(e)
            logger.warning(
                "Stream interrupted after %d deltas: %s", e.deltas_received, e
            )

        state = emitter.state
        await _notify(on_chunk, StreamChunk(
            delta="",
            accumulated=state.full_text,
            delta_count=state.delta_count,
            mode=state.mode,
            is_complete=True,
        ))

        if decoder.skipped_records:
            logger.debug("Skipped %d malformed records", decoder.skipped_records)

        return StreamResult(
            full_text=state.full_text,
            outcome=outcome,
            mode=state.mode,
            delta_count=state.delta_count,
            units_emitted=emitter.units_emitted,
            switched_at=state.switched_at,
            error=error,
            duration_seconds=time.monotonic() - start,
        )

    async def reply(self, prompt: str, system: str = "") -> str:
        """Fetch a single-shot reply and write it to the sink as one unit.

        Raises:
            StreamStartError: If the request failed.
        """
        text = await self._provider.complete(prompt, system)
        if text:
            self._sink.append(text)
        return text
