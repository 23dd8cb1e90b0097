"""Stream Decoder — turns raw SSE bytes into an ordered DeltaEvent sequence.

The generative-language API streams newline-delimited records:

    data: {"candidates": [{"content": {"parts": [{"text": "Hel"}]}}]}
    data: {"candidates": [{"content": {"parts": [{"text": "lo"}]}}]}
    data: [DONE]

Chunk boundaries from the transport are arbitrary; a line (and a UTF-8
character) may be split across chunks. The decoder carries incomplete
text over until a full line has been seen, so any chunking of the same
byte stream produces the same deltas.

Usage:
    decoder = StreamDecoder()
    async for delta in decoder.iter_deltas(provider.open_stream(prompt)):
        ...
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from lumix.schemas.streaming import DeltaEvent
from lumix.streaming.errors import StreamError, StreamInterruptedError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def extract_delta_text(record: Any) -> str:
    """Return candidates[0].content.parts[0].text, or "" if any step is missing."""
    try:
        text = record["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


class StreamDecoder:
    """Incremental decoder for one streaming response.

    Not restartable: create a new instance per response.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._text_decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._done = False
        self._closed = False
        self._iterated = False
        self.delta_count = 0
        self.skipped_records = 0

    @property
    def done(self) -> bool:
        """True once the [DONE] sentinel has been seen."""
        return self._done

    def feed(self, chunk: bytes | str) -> list[DeltaEvent]:
        """Feed one transport chunk and return the deltas it completes."""
        if self._done or self._closed:
            return []

        if isinstance(chunk, bytes):
            chunk = self._text_decoder.decode(chunk)
        self._buffer += chunk

        events: list[DeltaEvent] = []
        while not self._done:
            newline = self._buffer.find("\n")
            if newline == -1:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            event = self._parse_line(line)
            if event is not None:
                events.append(event)
        if self._done:
            self._buffer = ""
        return events

    def close(self) -> list[DeltaEvent]:
        """Signal end of transport and flush a final unterminated line."""
        if self._closed:
            return []
        tail = ""
        if not self._done:
            tail = self._buffer + self._text_decoder.decode(b"", final=True)
        self._buffer = ""
        self._closed = True

        if not tail:
            return []
        event = self._parse_line(tail)
        return [event] if event is not None else []

    async def iter_deltas(
        self, chunks: AsyncIterable[bytes | str]
    ) -> AsyncIterator[DeltaEvent]:
        """Lazily decode an async chunk source into DeltaEvents.

        Stops reading at [DONE] or end of the source, and always closes the
        source on exit (including when the consumer stops early).

        Raises:
            StreamInterruptedError: If reading from the source fails.
            RuntimeError: If called more than once on the same decoder.
        """
        if self._iterated:
            raise RuntimeError("StreamDecoder is single-use; create a new one per response")
        self._iterated = True

        iterator = chunks.__aiter__()
        try:
            while not self._done:
                try:
                    chunk = await iterator.__anext__()
                except StopAsyncIteration:
                    break
                except StreamInterruptedError as e:
                    e.deltas_received = self.delta_count
                    raise
                except StreamError:
                    raise
                except Exception as e:
                    raise StreamInterruptedError(
                        f"Stream interrupted after {self.delta_count} deltas: {e}",
                        deltas_received=self.delta_count,
                    ) from e

                for event in self.feed(chunk):
                    yield event

            for event in self.close():
                yield event
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    def _parse_line(self, line: str) -> DeltaEvent | None:
        line = line.rstrip("\r")
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX):].strip()
        if not payload:
            return None
        if payload == DONE_SENTINEL:
            self._done = True
            return None

        try:
            record = json.loads(payload)
        except (ValueError, RecursionError):
            # ValueError also covers integer-length limits
            self.skipped_records += 1
            logger.debug("Skipping malformed record: %.80s", payload)
            return None

        text = extract_delta_text(record)
        if not text:
            return None

        self.delta_count += 1
        return DeltaEvent(text=text)
