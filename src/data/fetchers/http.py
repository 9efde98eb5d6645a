"""Shared aiohttp request helper for the remote screening services.

Requests reuse a caller-provided session for connection pooling, or open a
temporary one with the configured timeout.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from config.settings_pydantic import settings
from src.exceptions import NetworkFailureError

logger = logging.getLogger("wheelscreener")

# JSON body decoded from a service response
JsonBody = Any


def build_url(path: str, base_url: str | None = None) -> str:
    """Join a service path onto the configured base URL."""
    base = (base_url or settings.api_base_url).rstrip("/")
    return f"{base}/{path.lstrip('/')}"


def auth_headers(token: str | None = None) -> dict[str, str]:
    """Bearer header when an API token is configured."""
    token = token if token is not None else settings.api_token
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


async def request_json(
    method: str,
    url: str,
    *,
    session: aiohttp.ClientSession | None = None,
    payload: Any = None,
    params: dict[str, str] | None = None,
    timeout_seconds: float | None = None,
) -> JsonBody:
    """Issue one HTTP request and decode its JSON body.

    Args:
        method: HTTP method (GET or POST).
        url: Absolute URL.
        session: Optional aiohttp session for connection pooling.
        payload: JSON body for POST requests.
        params: Query string parameters.
        timeout_seconds: Total timeout. Defaults to settings.request_timeout_seconds.

    Returns:
        Decoded JSON body.

    Raises:
        NetworkFailureError: On connection errors, timeouts, non-2xx status or
            a body that is not JSON.
    """
    timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.request_timeout_seconds)
    request_kwargs: dict[str, Any] = {"headers": auth_headers()}
    if payload is not None:
        request_kwargs["json"] = payload
    if params:
        request_kwargs["params"] = params

    logger.debug(f"{method} {url}")
    try:
        if session is not None:
            async with session.request(method, url, timeout=timeout, **request_kwargs) as response:
                response.raise_for_status()
                return await response.json()

        async with (
            aiohttp.ClientSession(timeout=timeout) as temp_session,
            temp_session.request(method, url, **request_kwargs) as response,
        ):
            response.raise_for_status()
            return await response.json()
    except aiohttp.ClientResponseError as e:
        raise NetworkFailureError(
            f"{method} {url} failed with status {e.status}: {e.message}",
            status=e.status,
        ) from e
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise NetworkFailureError(f"{method} {url} failed: {e}") from e
    except ValueError as e:
        raise NetworkFailureError(f"{method} {url} returned a body that is not JSON") from e
