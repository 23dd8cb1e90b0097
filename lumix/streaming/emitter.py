"""Adaptive Emitter — paces decoded deltas into display units.

Early in a reply every delta is shown at once (FAST mode) so the reader
reaches useful content quickly. Once the accumulated text passes
``smooth_switch_fraction * threshold_len`` characters the emitter switches,
for the rest of the reply, to SMOOTH mode: each delta is split into words
and whitespace runs that appear one at a time with a short pause.

The mode logic lives in the pure ``step()`` function; ``AdaptiveEmitter``
adds the sink and the cooperative pacing around it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Protocol

from lumix.schemas.config import EmitterConfig
from lumix.schemas.streaming import DeltaEvent, DisplayUnit, StreamMode, StreamState

logger = logging.getLogger(__name__)

_WHITESPACE_SPLIT_RE = re.compile(r"(\s+)")


class Sink(Protocol):
    """Receives display units in order.

    Returning False from append() asks the emitter to abandon the
    remaining units (e.g. the view was closed).
    """

    def append(self, text: str) -> bool | None: ...


def split_display_units(text: str) -> list[str]:
    """Split text into words and whitespace runs, dropping empty pieces."""
    return [piece for piece in _WHITESPACE_SPLIT_RE.split(text) if piece]


def step(
    state: StreamState, delta: DeltaEvent, config: EmitterConfig
) -> tuple[StreamState, list[DisplayUnit]]:
    """Advance the stream state by one delta.

    Returns the new state and the display units for this delta. The
    FAST → SMOOTH switch happens on the delta that pushes the accumulated
    length past the switch point, and never reverses.
    """
    full_text = state.full_text + delta.text
    delta_count = state.delta_count + 1
    mode = state.mode
    switched_at = state.switched_at

    progress = len(full_text) / config.threshold_len
    if mode == StreamMode.FAST and progress > config.smooth_switch_fraction:
        mode = StreamMode.SMOOTH
        switched_at = delta_count

    if mode == StreamMode.SMOOTH:
        units = [
            DisplayUnit(text=piece, delay_ms=config.smooth_delay_ms)
            for piece in split_display_units(delta.text)
        ]
    else:
        units = [DisplayUnit(text=delta.text, delay_ms=0)]

    new_state = state.model_copy(
        update={
            "full_text": full_text,
            "mode": mode,
            "delta_count": delta_count,
            "switched_at": switched_at,
        }
    )
    return new_state, units


class AdaptiveEmitter:
    """Feeds display units for one reply into a sink, honoring pacing.

    Each unit's delay_ms is a suspension before the *next* unit becomes
    visible; no pause precedes the first unit of the stream. Calling
    abandon() (or a sink returning False) stops all further sink calls and
    pauses while full_text keeps accumulating.
    """

    def __init__(
        self,
        sink: Sink,
        config: EmitterConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._sink = sink
        self._config = config or EmitterConfig()
        self._sleep = sleep
        self._state = StreamState()
        self._pending_delay_ms: int | None = None
        self._abandoned = False
        self.units_emitted = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def full_text(self) -> str:
        return self._state.full_text

    @property
    def mode(self) -> StreamMode:
        return self._state.mode

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def abandon(self) -> None:
        """Stop delivering units; accumulation continues."""
        if not self._abandoned:
            logger.debug("Emitter abandoned after %d units", self.units_emitted)
        self._abandoned = True

    async def emit(self, delta: DeltaEvent) -> list[DisplayUnit]:
        """Consume one delta and deliver its units to the sink.

        Returns the units computed for the delta, whether or not they were
        delivered.
        """
        previous_mode = self._state.mode
        self._state, units = step(self._state, delta, self._config)
        if self._state.mode != previous_mode:
            logger.info(
                "Switching to %s mode at %d chars (delta %d)",
                self._state.mode, len(self._state.full_text), self._state.delta_count,
            )

        for unit in units:
            if self._abandoned:
                break
            if self._pending_delay_ms is not None:
                await self._sleep(self._pending_delay_ms / 1000)
                # The sink may have been abandoned during the pause
                if self._abandoned:
                    break
            if self._sink.append(unit.text) is False:
                self.abandon()
            self.units_emitted += 1
            self._pending_delay_ms = unit.delay_ms

        return units
