"""Lumix provider layer.

Providers are the transport of the streaming pipeline: every request to the
generative-language API (directly or through a relay) goes through the
ChatProvider interface.
"""

from lumix.providers.base import ChatProvider
from lumix.providers.gemini import GeminiProvider
from lumix.providers.registry import create_provider, load_config
from lumix.providers.relay import RelayProvider
from lumix.providers.transcript import TranscriptProvider

__all__ = [
    "ChatProvider",
    "GeminiProvider",
    "RelayProvider",
    "TranscriptProvider",
    "create_provider",
    "load_config",
]
