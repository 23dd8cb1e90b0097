"""Abstract base class for chat providers.

A provider is the Transport of the streaming pipeline: it sends the user's
prompt and exposes the reply either as a single string (complete()) or as
a sequence of raw SSE byte chunks (open_stream()). ChatSession talks to
providers only through this interface.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx

from lumix.schemas.config import ProviderConfig, ProviderKind
from lumix.streaming.errors import StreamStartError

logger = logging.getLogger(__name__)

# HTTP statuses worth retrying before a stream has started
_RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


def is_retryable_status(status: int) -> bool:
    return status in _RETRYABLE_STATUSES


def short_error_reason(error: Exception) -> str:
    """Extract a short, user-friendly reason from a transport error."""
    if isinstance(error, httpx.TimeoutException):
        return "timeout"
    if isinstance(error, httpx.ConnectError):
        return "connection error"
    if isinstance(error, StreamStartError) and error.status_code is not None:
        status = error.status_code
        if status == 429:
            return "rate limit"
        if status in (502, 503, 504):
            return "service unavailable"
        if status >= 500:
            return "server error"
        return f"HTTP {status}"
    return str(error)[:80] or type(error).__name__


def error_message(data: Any) -> str:
    """Pull a readable message out of a decoded error payload.

    Understands both the API's ``{"error": {"message": ...}}`` shape and
    the relay's ``{"error": true, "message"/"details": ...}`` shape.
    """
    if not isinstance(data, dict):
        return str(data)[:200]

    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error.get("status") or error)
    if isinstance(error, str):
        return error
    details = data.get("message") or data.get("details")
    if isinstance(details, dict):
        return error_message(details)
    return str(details or data)[:200]


def error_message_from_body(body: bytes) -> str:
    """Like error_message(), for a raw response body."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return body.decode("utf-8", errors="replace")[:200]
    return error_message(data)


def build_prompt_text(prompt: str, system: str = "") -> str:
    """Combine the system prompt and the user prompt into one text part."""
    return f"{system}\n\n{prompt}" if system else prompt


def sse_frame(text: str) -> bytes:
    """Encode reply text as a single content-bearing SSE line."""
    record = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return f"data: {json.dumps(record, ensure_ascii=False)}\n\n".encode("utf-8")


SSE_DONE_FRAME = b"data: [DONE]\n\n"


class ChatProvider(ABC):
    """Abstract interface for anything that can answer a prompt.

    Initialized from a ProviderConfig. Subclasses implement complete();
    providers that support true streaming also override open_stream().
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._transport = transport
        self._sleep = sleep

    # ── Identity ──────────────────────────────────────────────

    @property
    def kind(self) -> ProviderKind:
        return self._config.kind

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def config(self) -> ProviderConfig:
        """The full ProviderConfig backing this provider."""
        return self._config

    @property
    def supports_streaming(self) -> bool:
        """Whether open_stream() delivers incremental output."""
        return type(self).open_stream is not ChatProvider.open_stream

    # ── Core interface ────────────────────────────────────────

    @abstractmethod
    async def complete(self, prompt: str, system: str = "") -> str:
        """Send a single-shot request and return the full reply text.

        Raises:
            StreamStartError: If the request fails after all retries.
        """

    async def open_stream(self, prompt: str, system: str = "") -> AsyncIterator[bytes]:
        """Yield the reply as raw SSE byte chunks.

        Default implementation falls back to complete() and emits the reply
        as one data frame followed by the [DONE] sentinel, so single-shot
        providers flow through the same decoder.
        """
        reply = await self.complete(prompt, system)
        if reply:
            yield sse_frame(reply)
        yield SSE_DONE_FRAME

    # ── HTTP helpers ──────────────────────────────────────────

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout),
            transport=self._transport,
        )

    async def _backoff(self, attempt: int, error: Exception) -> None:
        """Sleep before the next attempt unless this was the last one."""
        if attempt >= self._config.max_retries - 1:
            return
        delay = self._config.backoff * (2**attempt)
        logger.warning(
            "Retry %d/%d for %s (%s, backoff: %.1fs)",
            attempt + 1, self._config.max_retries, self._config.model,
            short_error_reason(error), delay,
        )
        await self._sleep(delay)

    def _status_error(self, response: httpx.Response, body: bytes) -> StreamStartError:
        status = response.status_code
        if status in (401, 403):
            message = (
                f"Authentication failed for {self._config.model}. "
                f"Check that {self._config.api_key_env} is set correctly."
            )
        else:
            message = f"Request to {self._config.model} failed ({status}): {error_message_from_body(body)}"
        return StreamStartError(message, status_code=status)

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        headers: Callable[[], dict[str, str]] = dict,
        params: dict[str, str] | None = None,
    ) -> Any:
        """POST a JSON payload with retry and return the decoded JSON body.

        Transient failures (connection errors, timeouts, 408/429/5xx) are
        retried with exponential backoff; other error statuses fail fast.

        Raises:
            StreamStartError: On a non-retryable status or after all retries.
        """
        last_error: Exception | None = None

        for attempt in range(self._config.max_retries):
            try:
                async with self._client() as client:
                    response = await client.post(url, json=payload, headers=headers(), params=params)
            except httpx.TransportError as e:
                last_error = e
            else:
                if response.is_success:
                    try:
                        return response.json()
                    except json.JSONDecodeError as e:
                        raise StreamStartError(
                            f"Invalid JSON response from {self._config.model}",
                            status_code=response.status_code,
                        ) from e
                error = self._status_error(response, response.content)
                if response.status_code not in _RETRYABLE_STATUSES:
                    raise error
                last_error = error

            await self._backoff(attempt, last_error)

        raise self._exhausted(last_error)

    def _exhausted(self, last_error: Exception | None) -> StreamStartError:
        status = last_error.status_code if isinstance(last_error, StreamStartError) else None
        error = StreamStartError(
            f"Request to {self._config.model} failed after "
            f"{self._config.max_retries} attempts: {last_error}",
            status_code=status,
        )
        error.__cause__ = last_error
        return error
