"""Tests for streaming and configuration schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from lumix.schemas.config import EmitterConfig, LumixConfig, ProviderConfig, ProviderKind
from lumix.schemas.streaming import (
    DeltaEvent,
    DisplayUnit,
    StreamChunk,
    StreamMode,
    StreamOutcome,
    StreamResult,
    StreamState,
)


class TestStreamChunk:
    def test_basic(self):
        chunk = StreamChunk(delta="hello", accumulated="hello", delta_count=1)
        assert chunk.delta == "hello"
        assert chunk.accumulated == "hello"
        assert chunk.delta_count == 1
        assert chunk.mode == StreamMode.FAST
        assert chunk.is_complete is False

    def test_complete(self):
        chunk = StreamChunk(
            delta="", accumulated="full content", delta_count=10, is_complete=True,
        )
        assert chunk.is_complete is True
        assert chunk.delta == ""

    def test_delta_count_non_negative(self):
        with pytest.raises(ValidationError):
            StreamChunk(delta="x", accumulated="x", delta_count=-1)


class TestDeltaAndUnit:
    def test_delta_requires_text(self):
        with pytest.raises(ValidationError):
            DeltaEvent(text="")

    def test_delta_is_immutable(self):
        delta = DeltaEvent(text="hi")
        with pytest.raises(ValidationError):
            delta.text = "changed"

    def test_unit_default_delay(self):
        assert DisplayUnit(text="word").delay_ms == 0

    def test_unit_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            DisplayUnit(text="word", delay_ms=-1)


class TestStreamState:
    def test_initial_state(self):
        state = StreamState()
        assert state.full_text == ""
        assert state.mode == StreamMode.FAST
        assert state.delta_count == 0
        assert state.switched_at is None

    def test_frozen(self):
        state = StreamState()
        with pytest.raises(ValidationError):
            state.full_text = "x"


class TestStreamResult:
    def test_ok_only_when_completed(self):
        assert StreamResult(outcome=StreamOutcome.COMPLETED).ok is True
        assert StreamResult(outcome=StreamOutcome.INTERRUPTED).ok is False
        assert StreamResult(outcome=StreamOutcome.ABANDONED).ok is False


class TestEmitterConfig:
    def test_defaults(self):
        config = EmitterConfig()
        assert config.threshold_len == 3000
        assert config.smooth_delay_ms == 12
        assert config.smooth_switch_fraction == 0.6
        assert config.switch_length == pytest.approx(1800)

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValidationError):
            EmitterConfig(threshold_len=0)

    def test_fraction_bounds(self):
        with pytest.raises(ValidationError):
            EmitterConfig(smooth_switch_fraction=1.5)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            EmitterConfig(threshold=10)


class TestProviderConfig:
    def test_defaults(self):
        config = ProviderConfig()
        assert config.kind == ProviderKind.GEMINI
        assert config.api_key_env == "GEMINI_API_KEY"
        assert config.max_retries == 3

    def test_kind_from_string(self):
        assert ProviderConfig(kind="relay").kind == ProviderKind.RELAY

    def test_invalid_kind(self):
        with pytest.raises(ValidationError):
            ProviderConfig(kind="carrier-pigeon")

    def test_top_level_defaults(self):
        config = LumixConfig()
        assert config.provider == ProviderConfig()
        assert config.emitter == EmitterConfig()
