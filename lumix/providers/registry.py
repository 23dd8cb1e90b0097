"""TOML configuration loader and provider factory.

Loads provider and emitter settings from defaults.toml (shipped with the
package) or from a user-supplied file, and builds the matching provider.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from lumix.providers.base import ChatProvider
from lumix.providers.gemini import GeminiProvider
from lumix.providers.relay import RelayProvider
from lumix.schemas.config import LumixConfig, ProviderConfig, ProviderKind

# Default config directory relative to the lumix package
CONFIG_DIR = Path(__file__).parent.parent / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "defaults.toml"

_PROVIDERS: dict[ProviderKind, type[ChatProvider]] = {
    ProviderKind.GEMINI: GeminiProvider,
    ProviderKind.RELAY: RelayProvider,
}


def load_config(config_path: Path | None = None) -> LumixConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to a TOML file. Defaults to lumix/config/defaults.toml.

    Returns:
        LumixConfig with values from the file; missing sections use defaults.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML is malformed or fails validation.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            raw: dict[str, Any] = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e

    try:
        return LumixConfig.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {path}: {e}") from e


def create_provider(config: ProviderConfig, **kwargs: Any) -> ChatProvider:
    """Instantiate the provider for config.kind.

    Extra keyword arguments (transport, sleep, keys) are passed through.
    """
    provider_cls = _PROVIDERS[config.kind]
    if provider_cls is not GeminiProvider:
        kwargs.pop("keys", None)
    return provider_cls(config, **kwargs)
