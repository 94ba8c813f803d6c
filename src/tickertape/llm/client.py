"""Built-in OpenAI-compatible httpx client with tenacity retry.

Provides a sync HTTP client for OpenAI-compatible chat completion APIs,
implementing the LanguageModel protocol: ``invoke`` for complete responses
with tool calling, ``stream`` for server-sent-event token streaming.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator, Sequence
from typing import Any

import httpx
import tenacity

from tickertape.cancellation import check_cancelled
from tickertape.exceptions import (
    ConfigError,
    ModelAuthError,
    ModelRateLimitError,
    ModelResponseError,
)
from tickertape.llm.protocols import ModelMessage, ToolCall, ToolSpec

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_AUTH_ERROR_STATUS_CODES = {401, 403}
_SSE_DATA_PREFIX = "data:"
_SSE_DONE = "[DONE]"


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception is retryable.

    Retryable: 429, 500, 502, 503, 504, connection errors.
    Not retryable: 401, 403, 400, other client errors.
    """
    if isinstance(exc, ModelAuthError):
        return False
    if isinstance(exc, ModelRateLimitError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


def _check_status(response: httpx.Response) -> None:
    """Map error statuses to ModelError subclasses. Body must be read."""
    if response.status_code in _AUTH_ERROR_STATUS_CODES:
        raise ModelAuthError(
            f"Authentication failed: HTTP {response.status_code} - "
            f"{response.text}",
            status_code=response.status_code,
        )

    if response.status_code == 429:
        retry_after_raw = response.headers.get("Retry-After")
        retry_after: float | None = None
        if retry_after_raw is not None:
            try:
                retry_after = float(retry_after_raw)
            except (ValueError, TypeError):
                pass
        raise ModelRateLimitError(
            f"Rate limited: HTTP 429 - {response.text}",
            retry_after=retry_after,
        )

    response.raise_for_status()


def _parse_arguments(raw: Any) -> dict[str, Any]:
    """Decode a tool call's argument payload; anything unusable becomes {}."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (ValueError, TypeError):
        logger.debug("Discarding unparseable tool arguments: %r", raw)
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIClient:
    """Sync httpx client for OpenAI-compatible chat completions.

    Implements the LanguageModel protocol. Supports retry with exponential
    backoff for transient errors (429, 5xx). Fails immediately on
    authentication errors (401, 403).

    Usage::

        with OpenAIClient(api_key="sk-...") as client:
            message = client.invoke("Hello", model="gpt-4o", system_prompt="Be brief.")
            print(message.text)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        max_retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the OpenAI-compatible client.

        Args:
            api_key: API key.
            base_url: API base URL.
            timeout: Request timeout in seconds.
            max_retries: Maximum number of attempts for retryable errors.
            transport: Optional httpx transport (used by tests).

        Raises:
            ConfigError: If no API key is provided.
        """
        if not api_key:
            raise ConfigError(
                "No API key provided. Set OPENAI_API_KEY in the environment or .env file."
            )
        self._base_url = base_url.rstrip("/")
        self._max_retries = max_retries
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
        )

    def _retryer(self) -> tenacity.Retrying:
        return tenacity.Retrying(
            retry=tenacity.retry_if_exception(_is_retryable),
            wait=(
                tenacity.wait_exponential(multiplier=1, min=1, max=30)
                + tenacity.wait_random(0, 2)
            ),
            stop=tenacity.stop_after_attempt(self._max_retries),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    @staticmethod
    def _messages(prompt: str, system_prompt: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

    def invoke(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        tools: Sequence[ToolSpec] | None = None,
        signal: threading.Event | None = None,
    ) -> ModelMessage:
        """Send a chat completion request with retry and parse the reply.

        Args:
            prompt: User message.
            model: Model identifier.
            system_prompt: System message.
            tools: Tools the model may call.
            signal: Cancellation signal, checked before the request.

        Returns:
            The assistant text and any requested tool calls.

        Raises:
            ModelAuthError: On 401/403 (no retry).
            ModelRateLimitError: On 429 after all retries exhausted.
            ModelResponseError: On unexpected response format.
            RunCancelledError: If *signal* is set.
            httpx.HTTPStatusError: On other non-retryable HTTP errors.
        """
        check_cancelled(signal)
        payload: dict[str, Any] = {
            "model": model,
            "messages": self._messages(prompt, system_prompt),
        }
        if tools:
            payload["tools"] = [tool.to_openai() for tool in tools]
            payload["tool_choice"] = "auto"

        data = self._retryer()(self._do_post, payload)
        return self.parse_message(data)

    def _do_post(self, payload: dict[str, Any]) -> dict:
        """Execute a single chat completion request (no retry)."""
        response = self._client.post(f"{self._base_url}/chat/completions", json=payload)
        _check_status(response)

        data = response.json()
        if "choices" not in data:
            raise ModelResponseError(
                f"Unexpected response format: missing 'choices' key. "
                f"Response: {data}"
            )
        return data

    def stream(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        signal: threading.Event | None = None,
    ) -> Iterator[str]:
        """Stream a chat completion, yielding content fragments.

        Only opening the stream is retried; once fragments have been
        yielded a failure propagates.

        Raises:
            RunCancelledError: If *signal* is set before or during streaming.
        """
        check_cancelled(signal)
        payload: dict[str, Any] = {
            "model": model,
            "messages": self._messages(prompt, system_prompt),
            "stream": True,
        }
        response = self._retryer()(self._open_stream, payload)
        try:
            for line in response.iter_lines():
                check_cancelled(signal)
                fragment = self.parse_sse_line(line)
                if fragment is None:
                    break
                if fragment:
                    yield fragment
        finally:
            response.close()

    def _open_stream(self, payload: dict[str, Any]) -> httpx.Response:
        request = self._client.build_request(
            "POST", f"{self._base_url}/chat/completions", json=payload
        )
        response = self._client.send(request, stream=True)
        if response.is_error:
            response.read()
            response.close()
            _check_status(response)
        return response

    @staticmethod
    def parse_sse_line(line: str) -> str | None:
        """Extract the content delta from one server-sent-event line.

        Returns:
            The content fragment ("" for lines without content), or None once
            the ``[DONE]`` marker is reached.
        """
        line = line.strip()
        if not line.startswith(_SSE_DATA_PREFIX):
            return ""
        data = line[len(_SSE_DATA_PREFIX):].strip()
        if data == _SSE_DONE:
            return None
        try:
            chunk = json.loads(data)
            delta = chunk["choices"][0].get("delta") or {}
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            logger.debug("Skipping malformed stream chunk: %r", data)
            return ""
        return delta.get("content") or ""

    @staticmethod
    def parse_message(response: dict) -> ModelMessage:
        """Build a ModelMessage from a chat completion response dict.

        Raises:
            ModelResponseError: If the response format is unexpected.
        """
        try:
            message = response["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ModelResponseError(
                f"Cannot extract message from response: {exc}. "
                f"Response: {response}"
            ) from exc

        tool_calls: list[ToolCall] = []
        for index, raw in enumerate(message.get("tool_calls") or []):
            function = raw.get("function") or {}
            name = function.get("name")
            if not name:
                continue
            tool_calls.append(
                ToolCall(
                    id=raw.get("id") or f"call_{index}",
                    name=name,
                    arguments=_parse_arguments(function.get("arguments")),
                )
            )

        return ModelMessage(text=message.get("content") or "", tool_calls=tuple(tool_calls))

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def __enter__(self) -> OpenAIClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
