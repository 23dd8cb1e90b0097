"""API key management for Lumix.

Keys are loaded into os.environ with this priority:
  1. Environment variables (highest — already set in shell)
  2. ~/.lumix/keys.env (saved with `lumix keys save`)
  3. .env in current directory (project-level)

Several keys may be configured (the primary key env var plus
LUMIX_KEY_1 … LUMIX_KEY_9); requests rotate through them round-robin.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Directory for user-level Lumix configuration
LUMIX_HOME = Path.home() / ".lumix"
KEYS_FILE = LUMIX_HOME / "keys.env"

ROTATION_ENV_PREFIX = "LUMIX_KEY_"
_MAX_ROTATION_KEYS = 9


def load_keys_env() -> None:
    """Load API keys from ~/.lumix/keys.env and .env into os.environ.

    Existing env vars are NOT overwritten, and later files don't
    overwrite earlier ones.
    """
    files = [KEYS_FILE, Path.cwd() / ".env"]
    for env_file in files:
        if env_file.is_file():
            _load_env_file(env_file)


def _load_env_file(path: Path) -> None:
    """Set vars from a KEY=VALUE .env file that aren't already set."""
    for key, value in read_env_file(path).items():
        if not os.environ.get(key):
            os.environ[key] = value
            logger.debug("Loaded %s from %s", key, path)


def read_env_file(path: Path) -> dict[str, str]:
    """Parse a simple KEY=VALUE .env file; unreadable files yield {}."""
    values: dict[str, str] = {}
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            if key:
                values[key] = value.strip().strip("'\"")
    except OSError:
        logger.debug("Could not read %s", path)
    return values


def save_keys(keys: dict[str, str], path: Path | None = None) -> Path:
    """Merge API keys into ~/.lumix/keys.env (only non-empty values saved).

    Returns:
        Path to the saved file.
    """
    target = path or KEYS_FILE
    target.parent.mkdir(parents=True, exist_ok=True)

    merged = read_env_file(target) if target.is_file() else {}
    merged.update(keys)

    lines = ["# Lumix API keys", "# Saved by `lumix keys save`", ""]
    for env_var, value in merged.items():
        if value:
            lines.append(f"{env_var}={value}")

    target.write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Restrict permissions on Unix (best-effort)
    try:
        target.chmod(0o600)
    except OSError:
        pass

    return target


def key_env_names(primary_env: str) -> list[str]:
    """All env var names that may hold a key, primary first."""
    return [primary_env] + [
        f"{ROTATION_ENV_PREFIX}{i}" for i in range(1, _MAX_ROTATION_KEYS + 1)
    ]


def mask_key(value: str) -> str:
    """Show only the last four characters of a key."""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


class KeyRing:
    """Round-robin rotation over the configured API keys."""

    def __init__(self, keys: list[str]) -> None:
        self._keys = [k for k in keys if k]
        self._index = 0

    @classmethod
    def from_env(cls, primary_env: str) -> KeyRing:
        """Build a ring from the primary env var and LUMIX_KEY_<n>, deduplicated."""
        seen: list[str] = []
        for name in key_env_names(primary_env):
            value = os.environ.get(name, "")
            if value and value not in seen:
                seen.append(value)
        return cls(seen)

    def __len__(self) -> int:
        return len(self._keys)

    def next_key(self) -> str | None:
        """Return the next key, or None if no keys are configured."""
        if not self._keys:
            return None
        key = self._keys[self._index]
        self._index = (self._index + 1) % len(self._keys)
        return key
