"""Shared HTTP client manager.

Keeps one pooled ``httpx.AsyncClient`` per client id so that repeated calendar
imports reuse connections instead of creating a client per fetch.
"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_lock = asyncio.Lock()

DEFAULT_LIMITS = httpx.Limits(max_connections=10, max_keepalive_connections=5)

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "StudySync/0.1 (+calendar-import)",
    "Accept": "text/calendar, application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
}


def build_timeout(read_seconds: float = 30.0) -> httpx.Timeout:
    """Build the timeout used for calendar fetches."""
    return httpx.Timeout(connect=10.0, read=read_seconds, write=10.0, pool=30.0)


def request_headers() -> dict[str, str]:
    """Default headers plus the current correlation id, if any."""
    from studysync.api.middleware import get_request_id

    headers = DEFAULT_HEADERS.copy()
    request_id = get_request_id()
    if request_id != "no-request-id":
        headers["X-Request-ID"] = request_id
    return headers


async def get_shared_client(
    client_id: str = "default",
    limits: Optional[httpx.Limits] = None,
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        limits: Custom connection limits
        timeout: Custom timeout configuration

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        client = _shared_clients.get(client_id)
        if client is None or client.is_closed:
            effective_limits = limits or DEFAULT_LIMITS
            logger.debug(
                "Creating shared HTTP client '%s' (max_connections=%s)",
                client_id,
                effective_limits.max_connections,
            )
            try:
                client = httpx.AsyncClient(
                    limits=effective_limits,
                    timeout=timeout or build_timeout(),
                    follow_redirects=True,
                    headers=DEFAULT_HEADERS.copy(),
                )
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e
            _shared_clients[client_id] = client
            logger.info("Created shared HTTP client '%s'", client_id)

        return client


async def close_all_clients() -> None:
    """Close all shared HTTP clients.

    Called during application shutdown and between tests.
    """
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            if client.is_closed:
                continue
            try:
                await client.aclose()
                logger.debug("Closed shared HTTP client '%s'", client_id)
            except httpx.HTTPError as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
        logger.debug("All shared HTTP clients closed")
