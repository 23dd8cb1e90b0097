"""Configuration schemas.

Loaded from defaults.toml (or a user-supplied TOML file) by
lumix.providers.registry and overridden by CLI flags.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ProviderKind(StrEnum):
    """Which transport the client talks to."""

    GEMINI = "gemini"
    RELAY = "relay"


class EmitterConfig(BaseModel):
    """Tunable constants for the Adaptive Emitter.

    The defaults are heuristics: a "typical" reply of ~3000 characters,
    switching to word-by-word pacing once 60% of that has arrived.
    """

    model_config = ConfigDict(extra="forbid")

    threshold_len: int = Field(
        default=3000, gt=0, description="Approximate length of a typical reply in characters"
    )
    smooth_delay_ms: int = Field(
        default=12, ge=0, description="Pacing delay per display unit in SMOOTH mode"
    )
    smooth_switch_fraction: float = Field(
        default=0.6, ge=0.0, le=1.0,
        description="Fraction of threshold_len after which SMOOTH mode starts",
    )

    @property
    def switch_length(self) -> float:
        """Accumulated length that must be exceeded to enter SMOOTH mode."""
        return self.threshold_len * self.smooth_switch_fraction


class ProviderConfig(BaseModel):
    """Connection settings for the generative-language API or a relay."""

    model_config = ConfigDict(extra="forbid")

    kind: ProviderKind = Field(default=ProviderKind.GEMINI, description="Transport type")
    model: str = Field(default="gemini-2.5-flash", description="Model identifier")
    api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the API (or of the relay server)",
    )
    api_key_env: str = Field(
        default="GEMINI_API_KEY", description="Environment variable holding the primary API key"
    )
    timeout: float = Field(default=120.0, gt=0, description="Request timeout in seconds")
    max_retries: int = Field(
        default=3, ge=1, le=10, description="Attempts before a stream is reported as not started"
    )
    backoff: float = Field(
        default=1.0, ge=0.0, description="Base backoff in seconds between attempts"
    )


class LumixConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="forbid")

    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    emitter: EmitterConfig = Field(default_factory=EmitterConfig)
