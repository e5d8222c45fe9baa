# ToolJet API Probe MCP Server
# File: fetcher.py
# Version: v1
"""Retrying HTTP fetcher for arbitrary JSON APIs.

Implements:

- Fetcher.fetch_with_retry() – one logical GET with bounded retries
- is_json_response() – classify a fetch result as JSON or not
- generate_hints() – human-readable hints per status / error type
- truncate() – short snippets of raw payloads for error reports

The fetcher never raises for HTTP statuses: every received response is
returned as-is. Only transport failures (connection refused, DNS, timeouts)
before a status line arrives are retried, with exponential backoff. Each
attempt, body read included, is bounded by ``timeout_ms``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx
from httpx import RequestError

from .config import ProbeConfig
from .errors import NETWORK_ERROR, TIMEOUT
from .models import FetchResult

logger = logging.getLogger(__name__)


def classify_error(exc: BaseException) -> str:
    """Map a transport exception onto a stable error code."""
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return TIMEOUT
    return NETWORK_ERROR


def _error_message(exc: BaseException, timeout_ms: int) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"Request timed out after {timeout_ms}ms"
    return str(exc) or type(exc).__name__


def _decode_body(response: httpx.Response) -> Tuple[Any, bool]:
    """Return ``(body, is_json)``: the decoded payload, or the raw text."""
    try:
        return response.json(), True
    except ValueError:
        return response.text, False


@dataclass
class Fetcher:
    """Async GET with retry and exponential backoff.

    ``transport`` and ``sleep`` are injectable so tests can run without a
    network or real delays.
    """

    config: ProbeConfig = field(default_factory=ProbeConfig)
    transport: Optional[httpx.AsyncBaseTransport] = None
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep

    async def fetch_with_retry(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        query_params: Optional[Dict[str, str]] = None,
        max_retries: Optional[int] = None,
        initial_delay_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> FetchResult:
        """Fetch ``url`` once, retrying only while no response is received.

        Delay before retry ``n`` (1-based) is ``initial_delay_ms * 2 ** (n - 1)``,
        so ``max_retries=2, initial_delay_ms=500`` sleeps 500ms then 1000ms.
        """
        if max_retries is None:
            max_retries = self.config.max_retries
        if initial_delay_ms is None:
            initial_delay_ms = self.config.initial_delay_ms
        if timeout_ms is None:
            timeout_ms = self.config.timeout_ms

        timeout_s = timeout_ms / 1000.0
        last_exc: Optional[BaseException] = None
        attempt = 0

        while attempt <= max_retries:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout_s),
                verify=self.config.verify_tls,
                transport=self.transport,
            ) as http_client:
                loop = asyncio.get_running_loop()
                deadline = loop.time() + timeout_s
                request = http_client.build_request(
                    "GET",
                    url,
                    headers=headers or None,
                    params=query_params or None,
                )

                try:
                    response = await asyncio.wait_for(
                        http_client.send(request, stream=True),
                        timeout_s,
                    )
                except (RequestError, asyncio.TimeoutError) as exc:
                    last_exc = exc
                    attempt += 1

                    if attempt <= max_retries:
                        delay_ms = initial_delay_ms * 2 ** (attempt - 1)
                        logger.warning(
                            "GET %s failed (%s); retry %d/%d in %dms",
                            url,
                            classify_error(exc),
                            attempt,
                            max_retries,
                            delay_ms,
                        )
                        await self.sleep(delay_ms / 1000.0)
                    continue

                # A status line arrived: whatever happens next is final.
                try:
                    return await self._read_response(
                        url, response, deadline - loop.time(), timeout_ms
                    )
                finally:
                    await response.aclose()

        error_type = classify_error(last_exc) if last_exc else NETWORK_ERROR
        message = _error_message(last_exc, timeout_ms) if last_exc else "No response"
        logger.error(
            "GET %s gave no response after %d attempt(s): %s",
            url,
            max_retries + 1,
            message,
        )
        return FetchResult(
            success=False,
            status=0,
            error=message,
            error_type=error_type,
        )

    async def _read_response(
        self,
        url: str,
        response: httpx.Response,
        remaining_s: float,
        timeout_ms: int,
    ) -> FetchResult:
        status = response.status_code
        result = FetchResult(
            success=200 <= status < 300,
            status=status,
            status_text=response.reason_phrase or None,
            headers={k.lower(): v for k, v in response.headers.items()},
        )

        try:
            await asyncio.wait_for(response.aread(), max(remaining_s, 0.0))
        except (RequestError, asyncio.TimeoutError) as exc:
            result.success = False
            result.error = _error_message(exc, timeout_ms)
            result.error_type = classify_error(exc)
            logger.error(
                "GET %s answered %d but its body could not be read: %s",
                url,
                status,
                result.error,
            )
            return result

        result.body, result.is_json = _decode_body(response)
        return result


def is_json_response(result: FetchResult) -> bool:
    """True when the fetched body decoded as JSON (any JSON value counts)."""
    return result.is_json


def generate_hints(status: int, error_type: Optional[str] = None) -> str:
    """Return a short troubleshooting hint for a failed probe."""
    if status == 401:
        return (
            "Authentication failed. Check if your API key or token is correct "
            "and properly formatted in the Authorization header."
        )

    if status == 403:
        return (
            "Access forbidden. Your credentials may be valid but lack "
            "permission to access this resource."
        )

    if status == 404:
        return "Resource not found. Verify the URL path is correct and the endpoint exists."

    if status == 429:
        return "Rate limit exceeded. Wait before retrying or check your rate limit settings."

    if status >= 500:
        return (
            "Server error. The API is experiencing issues. "
            "Try again later or contact the API provider."
        )

    if error_type == NETWORK_ERROR:
        return "Cannot connect to server. Check if the URL is correct and the server is running."

    if error_type == TIMEOUT:
        return "Request timed out. The server may be slow or unreachable."

    return "Request failed. Check your URL, headers, and network connection."


def truncate(value: Any, max_length: int = 500) -> str:
    """Render ``value`` as text and cut it to ``max_length`` characters."""
    if isinstance(value, str):
        text = value
    else:
        text = json.dumps(value, indent=2, ensure_ascii=False, default=str)

    if len(text) <= max_length:
        return text

    return text[:max_length] + "..."
