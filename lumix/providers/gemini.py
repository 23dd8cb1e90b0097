"""Generative-language API provider.

Talks to the API directly over httpx: ``:streamGenerateContent?alt=sse``
for streamed replies and ``:generateContent`` for single-shot replies.
Requests rotate across all configured API keys.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import httpx

from lumix.keys import KeyRing
from lumix.providers.base import (
    ChatProvider,
    build_prompt_text,
    is_retryable_status,
    short_error_reason,
)
from lumix.schemas.config import ProviderConfig
from lumix.streaming.decoder import extract_delta_text
from lumix.streaming.errors import StreamInterruptedError, StreamStartError

logger = logging.getLogger(__name__)


class GeminiProvider(ChatProvider):
    """Direct client for the generative-language API."""

    def __init__(
        self,
        config: ProviderConfig,
        *,
        keys: KeyRing | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, **kwargs)
        self._keys = keys if keys is not None else KeyRing.from_env(config.api_key_env)

    def _endpoint(self, method: str) -> str:
        base = self._config.api_base.rstrip("/")
        model = self._config.model.removeprefix("models/")
        return f"{base}/models/{model}:{method}"

    def _build_payload(self, prompt: str, system: str) -> dict[str, Any]:
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": build_prompt_text(prompt, system)}],
                }
            ]
        }

    def _headers(self) -> dict[str, str]:
        api_key = self._keys.next_key()
        if api_key is None:
            raise StreamStartError(
                f"No API keys configured. Set {self._config.api_key_env} "
                "or run `lumix keys save`."
            )
        return {"x-goog-api-key": api_key}

    async def complete(self, prompt: str, system: str = "") -> str:
        """Send a single-shot generateContent request."""
        data = await self._post_json(
            self._endpoint("generateContent"),
            self._build_payload(prompt, system),
            headers=self._headers,
        )
        text = extract_delta_text(data)
        if not text:
            logger.warning("Empty reply from %s", self._config.model)
        return text

    async def open_stream(self, prompt: str, system: str = "") -> AsyncIterator[bytes]:
        """Stream the reply as raw SSE bytes.

        Connection errors, timeouts and 408/429/5xx statuses are retried
        with exponential backoff until the first byte arrives; after that a
        transport failure ends the stream with StreamInterruptedError.

        Raises:
            StreamStartError: If the stream could not be started.
            StreamInterruptedError: If the connection drops mid-stream.
        """
        url = self._endpoint("streamGenerateContent")
        payload = self._build_payload(prompt, system)
        last_error: Exception | None = None

        for attempt in range(self._config.max_retries):
            headers = self._headers()
            try:
                async with self._client() as client:
                    async with client.stream(
                        "POST", url, json=payload, headers=headers, params={"alt": "sse"},
                    ) as response:
                        if response.is_success:
                            logger.debug(
                                "Stream opened for %s (attempt %d)", self._config.model, attempt + 1
                            )
                            async with aclosing(self._read_body(response)) as chunks:
                                async for chunk in chunks:
                                    yield chunk
                            return

                        body = await response.aread()
                        error = self._status_error(response, body)
                        if not is_retryable_status(response.status_code):
                            raise error
                        last_error = error
            except httpx.TransportError as e:
                last_error = e

            await self._backoff(attempt, last_error)

        raise self._exhausted(last_error)

    async def _read_body(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield body chunks; a failure before the first byte is left to the retry loop."""
        received = False
        try:
            async for chunk in response.aiter_bytes():
                received = True
                yield chunk
        except httpx.TransportError as e:
            if not received:
                raise
            raise StreamInterruptedError(
                f"Stream from {self._config.model} interrupted ({short_error_reason(e)})"
            ) from e
