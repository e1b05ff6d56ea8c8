from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

from memory_agent.errors import AuthenticationRequired, MalformedInput, RemoteUnavailable, Unauthorized

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_RETRYABLE_EXCEPTIONS = (httpx.TransportError,)


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    json: object | None = None,
    params: dict[str, Any] | None = None,
    retries: int = 2,
    backoff_base: float = 0.25,
    backoff_max: float = 2.0,
    allowed_statuses: set[int] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> httpx.Response:
    """
    Send a request, retrying transport failures and transient statuses.

    Raises:
        AuthenticationRequired: On 401
        Unauthorized: On 403
        RemoteUnavailable: On transport failure, timeout or 5xx after retries
        MalformedInput: On any other 4xx
    """
    attempts = max(0, retries) + 1

    for attempt in range(attempts):
        try:
            response = await client.request(method, url, json=json, params=params)
        except _RETRYABLE_EXCEPTIONS as exc:
            if attempt >= attempts - 1:
                raise RemoteUnavailable(
                    f"HTTP request failed after retries for {url}: {exc.__class__.__name__}"
                ) from exc
            logger.debug(f"{method} {url} failed ({exc.__class__.__name__}), retrying")
            await sleep(_backoff(attempt, backoff_base, backoff_max))
            continue

        status = response.status_code
        if allowed_statuses is not None and status in allowed_statuses:
            return response
        if 200 <= status < 300:
            return response
        if status in _RETRYABLE_STATUS_CODES and attempt < attempts - 1:
            logger.debug(f"{method} {url} returned {status}, retrying")
            await sleep(_backoff(attempt, backoff_base, backoff_max))
            continue
        if status == 401:
            raise AuthenticationRequired(f"HTTP 401 for {url}")
        if status == 403:
            raise Unauthorized(f"HTTP 403 for {url}")
        if 400 <= status < 500 and status != 429:
            raise MalformedInput(f"HTTP status {status} for {url}")
        raise RemoteUnavailable(f"HTTP status {status} for {url}")

    raise RemoteUnavailable(f"HTTP request failed for {url}")


def _backoff(attempt: int, base: float, maximum: float) -> float:
    return min(maximum, base * (2**attempt)) * (0.5 + random.random())
