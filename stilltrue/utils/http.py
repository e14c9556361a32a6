"""Async HTTP helper shared by the LLM, encyclopedia and search clients."""

import asyncio
import logging
import os
from typing import Any

import httpx

from stilltrue.services.errors import UpstreamError
from stilltrue.utils.env import env_float, env_int

logger = logging.getLogger("http")

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def max_retries() -> int:
    return env_int("HTTP_MAX_RETRIES", 2, 0, 5)


def backoff_base() -> float:
    return env_float("HTTP_BACKOFF_BASE_SEC", 0.5, 0.0, 10.0)


async def retry_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retries: int | None = None,
    backoff: float | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request, retrying transport errors and retryable statuses.

    ``retries`` counts extra attempts after the first one. Backoff doubles
    after each failed attempt. Raises ``UpstreamError`` once attempts are
    exhausted or on a non-retryable error status.
    """
    retries = max_retries() if retries is None else retries
    backoff = backoff_base() if backoff is None else backoff
    attempts = retries + 1
    last_error: str = "no attempt made"
    last_status: int | None = None

    for attempt in range(attempts):
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            last_error = f"timeout: {e!r}"
            last_status = None
            logger.warning("Timeout on %s %s (attempt %d/%d)", method, url, attempt + 1, attempts)
        except httpx.RequestError as e:
            last_error = f"request error: {e!r}"
            last_status = None
            logger.warning("Request error on %s %s (attempt %d/%d): %s", method, url, attempt + 1, attempts, e)
        else:
            if resp.status_code < 400:
                return resp
            last_status = resp.status_code
            last_error = f"HTTP {resp.status_code}: {resp.text[:300]}"
            if resp.status_code not in RETRYABLE_STATUS:
                raise UpstreamError(last_error, status_code=resp.status_code)
            logger.warning("Retryable HTTP %d on attempt %d/%d", resp.status_code, attempt + 1, attempts)

        if attempt < attempts - 1 and backoff > 0:
            await asyncio.sleep(backoff * (2 ** attempt))

    raise UpstreamError(f"{method} {url} failed after {attempts} attempts ({last_error})", status_code=last_status)


def user_agent() -> str:
    return os.getenv("HTTP_USER_AGENT", "stilltrue/0.3 (educational fact service)")
