"""Relay server provider.

A relay is a thin HTTP service that holds the API keys and forwards a
prompt to the generative-language API: ``POST /api/gemini`` with
``{"message": ...}`` answering ``{"reply": ...}``. It only supports
single-shot replies, so streaming falls back to ChatProvider's default.
"""

from __future__ import annotations

import logging

from lumix.providers.base import ChatProvider, build_prompt_text, error_message
from lumix.streaming.errors import StreamStartError

logger = logging.getLogger(__name__)

RELAY_PATH = "/api/gemini"


class RelayProvider(ChatProvider):
    """Client for a relay server."""

    async def complete(self, prompt: str, system: str = "") -> str:
        url = self._config.api_base.rstrip("/") + RELAY_PATH
        data = await self._post_json(url, {"message": build_prompt_text(prompt, system)})

        if not isinstance(data, dict):
            raise StreamStartError(f"Unexpected relay response: {str(data)[:80]}")
        if data.get("error"):
            raise StreamStartError(f"Relay error: {error_message(data)}")

        reply = data.get("reply", "")
        if not isinstance(reply, str) or not reply:
            logger.warning("Empty reply from relay at %s", url)
            return ""
        return reply
