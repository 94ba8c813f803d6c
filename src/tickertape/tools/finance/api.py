"""Alpha Vantage REST client shared by the finance tools.

Alpha Vantage takes every parameter, including the endpoint (``function``)
and the API key, as a query parameter, and reports most errors in a 200
response body rather than via the status code.
"""

from __future__ import annotations

import json
import logging
import math
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import httpx
import tenacity

from tickertape.cancellation import check_cancelled
from tickertape.exceptions import ConfigError, DataProviderError

logger = logging.getLogger(__name__)

BASE_URL = "https://www.alphavantage.co/query"
PROVIDER = "Alpha Vantage"

# Body keys Alpha Vantage uses to report failures, with a label for each
_ERROR_KEYS = (
    ("Error Message", "Error"),
    ("Note", "Rate Limit"),
    ("Information", "Info"),
)

ParamValue = str | int | float | Sequence[str] | None


@dataclass(frozen=True)
class ApiResponse:
    """Decoded response body and the URL it came from (without the API key)."""

    data: dict[str, Any]
    url: str


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, (httpx.ConnectError, httpx.ConnectTimeout))


class AlphaVantageClient:
    """Sync httpx client for the Alpha Vantage query endpoint.

    Usage::

        client = AlphaVantageClient(api_key="demo")
        response = client.call("GLOBAL_QUOTE", {"symbol": "IBM"})
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 2,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ConfigError("Alpha Vantage API key is not configured")
        self._api_key = api_key
        self._base_url = base_url
        self._max_retries = max_retries
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def call(
        self,
        function: str,
        params: Mapping[str, ParamValue] | None = None,
        *,
        signal: threading.Event | None = None,
    ) -> ApiResponse:
        """Call one Alpha Vantage function.

        None-valued params are omitted; list values are sent as repeated
        query parameters.

        Raises:
            DataProviderError: On a non-2xx status or an error body.
            RunCancelledError: If *signal* is set before the request.
        """
        check_cancelled(signal)

        query: list[tuple[str, str]] = [("function", function)]
        for key, value in (params or {}).items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                query.extend((key, str(v)) for v in value)
            else:
                query.append((key, str(value)))

        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_exception(_is_retryable),
            wait=tenacity.wait_exponential(multiplier=1, min=1, max=10),
            stop=tenacity.stop_after_attempt(self._max_retries),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        response = retryer(
            self._client.get, self._base_url, params=[*query, ("apikey", self._api_key)]
        )
        public_url = str(httpx.URL(self._base_url, params=query))

        if response.is_error:
            raise DataProviderError(
                PROVIDER,
                f"request failed: {response.status_code} {response.reason_phrase}",
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise DataProviderError(PROVIDER, f"invalid JSON response: {exc}") from exc
        if not isinstance(data, dict):
            raise DataProviderError(PROVIDER, "unexpected response shape")

        for key, label in _ERROR_KEYS:
            if data.get(key):
                raise DataProviderError(PROVIDER, f"{label}: {data[key]}")

        logger.debug("Alpha Vantage %s OK", function)
        return ApiResponse(data=data, url=public_url)

    def close(self) -> None:
        self._client.close()


def format_tool_result(data: Any, source_urls: Sequence[str]) -> str:
    """Serialize a tool result with its source URLs."""
    return json.dumps(
        {"data": data, "sourceUrls": list(source_urls)},
        ensure_ascii=False,
        default=str,
    )


def parse_number(value: Any) -> float | None:
    """Parse an Alpha Vantage numeric string; "None", "-" and garbage become None."""
    if value is None or value in ("None", "-", ""):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def parse_int(value: Any) -> int | None:
    number = parse_number(value)
    return None if number is None else int(number)
