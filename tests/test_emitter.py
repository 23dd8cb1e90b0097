"""Tests for the Adaptive Emitter — mode switch, splitting, pacing."""

from __future__ import annotations

import asyncio

import pytest

from lumix.cli_display import BufferSink
from lumix.schemas.config import EmitterConfig
from lumix.schemas.streaming import DeltaEvent, StreamMode, StreamState
from lumix.streaming.emitter import AdaptiveEmitter, split_display_units, step


def _delta(text: str) -> DeltaEvent:
    return DeltaEvent(text=text)


class _SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# ── split_display_units ──────────────────────────────────────────


class TestSplitDisplayUnits:
    def test_words_and_whitespace_runs(self):
        assert split_display_units("hello  world\n") == ["hello", "  ", "world", "\n"]

    def test_leading_whitespace_kept(self):
        assert split_display_units(" a") == [" ", "a"]

    def test_empty_string(self):
        assert split_display_units("") == []

    def test_whitespace_only(self):
        assert split_display_units(" \t ") == [" \t "]

    def test_single_word(self):
        assert split_display_units("word") == ["word"]

    def test_join_reconstructs_text(self):
        text = "  Mixed\twhitespace\n\nand   words "
        assert "".join(split_display_units(text)) == text


# ── step ─────────────────────────────────────────────────────────


class TestStep:
    def test_short_reply_stays_fast(self):
        config = EmitterConfig()
        state, units = step(StreamState(), _delta("x" * 200), config)
        assert state.mode == StreamMode.FAST
        assert len(units) == 1
        assert units[0].text == "x" * 200
        assert units[0].delay_ms == 0

    def test_accumulates_text_and_count(self):
        config = EmitterConfig()
        state, _ = step(StreamState(), _delta("Hel"), config)
        state, _ = step(state, _delta("lo"), config)
        assert state.full_text == "Hello"
        assert state.delta_count == 2

    def test_step_does_not_mutate_input_state(self):
        original = StreamState()
        step(original, _delta("abc"), EmitterConfig())
        assert original.full_text == ""
        assert original.delta_count == 0

    def test_switch_on_crossing_delta(self):
        config = EmitterConfig()
        state = StreamState(full_text="x" * 1790, delta_count=5)
        state, units = step(state, _delta("one two three"), config)
        assert state.mode == StreamMode.SMOOTH
        assert state.switched_at == 6
        assert [u.text for u in units] == ["one", " ", "two", " ", "three"]
        assert all(u.delay_ms == 12 for u in units)

    def test_exactly_at_switch_point_stays_fast(self):
        config = EmitterConfig()
        state, units = step(StreamState(), _delta("x" * 1800), config)
        assert state.mode == StreamMode.FAST
        assert units[0].delay_ms == 0

    def test_one_past_switch_point_goes_smooth(self):
        config = EmitterConfig()
        state, _ = step(StreamState(), _delta("x" * 1801), config)
        assert state.mode == StreamMode.SMOOTH

    def test_smooth_is_irreversible(self):
        config = EmitterConfig()
        state = StreamState(full_text="x" * 2000, mode=StreamMode.SMOOTH, delta_count=3, switched_at=2)
        state, units = step(state, _delta("a b"), config)
        assert state.mode == StreamMode.SMOOTH
        assert state.switched_at == 2
        assert [u.text for u in units] == ["a", " ", "b"]

    def test_whitespace_only_delta_in_smooth_mode(self):
        config = EmitterConfig(threshold_len=10, smooth_switch_fraction=0.0)
        state, units = step(StreamState(), _delta("\n\n"), config)
        assert state.mode == StreamMode.SMOOTH
        assert [u.text for u in units] == ["\n\n"]

    def test_custom_config(self):
        config = EmitterConfig(threshold_len=100, smooth_switch_fraction=0.5, smooth_delay_ms=30)
        state, units = step(StreamState(), _delta("word " * 11), config)
        assert state.mode == StreamMode.SMOOTH
        assert units[0].delay_ms == 30

    def test_units_reconstruct_full_text(self):
        config = EmitterConfig(threshold_len=50)
        deltas = ["The quick ", "brown fox ", "jumps over\n", "the lazy dog. ", "  It was ",
                  "not amused, ", "and\tsaid so ", "at length."]
        state = StreamState()
        emitted: list[str] = []
        for text in deltas:
            state, units = step(state, _delta(text), config)
            emitted.extend(u.text for u in units)
        assert "".join(emitted) == "".join(deltas) == state.full_text

    def test_fast_units_precede_smooth_units(self):
        config = EmitterConfig(threshold_len=20)
        state = StreamState()
        delays: list[int] = []
        for text in ["aaaa ", "bbbb ", "cccc ", "dddd ", "eeee ", "ffff "]:
            state, units = step(state, _delta(text), config)
            delays.extend(u.delay_ms for u in units)
        first_smooth = delays.index(12)
        assert all(d == 0 for d in delays[:first_smooth])
        assert all(d == 12 for d in delays[first_smooth:])


# ── AdaptiveEmitter ──────────────────────────────────────────────


class TestAdaptiveEmitter:
    @pytest.mark.asyncio
    async def test_fast_mode_delivers_whole_deltas(self):
        sink = BufferSink()
        sleep = _SleepRecorder()
        emitter = AdaptiveEmitter(sink, EmitterConfig(), sleep=sleep)
        for text in ["Hel", "lo ", "world"]:
            await emitter.emit(_delta(text))
        assert sink.parts == ["Hel", "lo ", "world"]
        assert emitter.full_text == "Hello world"
        assert emitter.units_emitted == 3
        # No pause before the very first unit
        assert sleep.calls == [0.0, 0.0]

    @pytest.mark.asyncio
    async def test_smooth_mode_pacing(self):
        sink = BufferSink()
        sleep = _SleepRecorder()
        config = EmitterConfig(threshold_len=10, smooth_switch_fraction=0.5)
        emitter = AdaptiveEmitter(sink, config, sleep=sleep)

        await emitter.emit(_delta("abc"))
        assert emitter.mode == StreamMode.FAST
        await emitter.emit(_delta("de fg"))
        assert emitter.mode == StreamMode.SMOOTH

        assert sink.parts == ["abc", "de", " ", "fg"]
        assert sleep.calls == pytest.approx([0.0, 0.012, 0.012])

    @pytest.mark.asyncio
    async def test_sink_abandon_stops_delivery_but_keeps_accumulating(self):
        sink = BufferSink(max_units=2)
        config = EmitterConfig(threshold_len=1, smooth_switch_fraction=0.0)
        emitter = AdaptiveEmitter(sink, config, sleep=_SleepRecorder())

        await emitter.emit(_delta("a b c"))
        assert emitter.abandoned is True
        assert sink.parts == ["a", " "]

        units = await emitter.emit(_delta(" more"))
        assert [u.text for u in units] == [" ", "more"]
        assert sink.parts == ["a", " "]
        assert emitter.full_text == "a b c more"
        assert emitter.units_emitted == 2

    @pytest.mark.asyncio
    async def test_abandon_during_pause(self):
        sink = BufferSink()
        config = EmitterConfig(threshold_len=1, smooth_switch_fraction=0.0)
        emitter: AdaptiveEmitter

        async def sleep(_seconds: float) -> None:
            emitter.abandon()

        emitter = AdaptiveEmitter(sink, config, sleep=sleep)
        await emitter.emit(_delta("one two"))
        assert sink.parts == ["one"]
        assert emitter.full_text == "one two"

    @pytest.mark.asyncio
    async def test_state_resets_per_instance(self):
        sink = BufferSink()
        first = AdaptiveEmitter(sink, EmitterConfig(threshold_len=5), sleep=_SleepRecorder())
        await first.emit(_delta("long enough text"))
        assert first.mode == StreamMode.SMOOTH

        second = AdaptiveEmitter(sink, EmitterConfig(threshold_len=5), sleep=_SleepRecorder())
        assert second.mode == StreamMode.FAST
        assert second.full_text == ""

    @pytest.mark.asyncio
    async def test_concurrent_emitters_are_independent(self):
        config = EmitterConfig(threshold_len=10, smooth_delay_ms=1)
        sink_a, sink_b = BufferSink(), BufferSink()
        emitter_a = AdaptiveEmitter(sink_a, config)
        emitter_b = AdaptiveEmitter(sink_b, config)
        deltas_a = ["alpha ", "beta ", "gamma delta ", "epsilon"]
        deltas_b = ["one ", "two three ", "four five six"]

        async def run(emitter, deltas):
            for text in deltas:
                await emitter.emit(_delta(text))
                await asyncio.sleep(0)

        await asyncio.gather(run(emitter_a, deltas_a), run(emitter_b, deltas_b))
        assert sink_a.text == "".join(deltas_a)
        assert sink_b.text == "".join(deltas_b)
