"""HTTP client for downloading ICS calendars, directly or through a CORS relay."""

import base64
import binascii
import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from studysync.calendar.models import ICSResponse
from studysync.core.config_manager import get_config_value
from studysync.core.http_client import build_timeout, get_shared_client, request_headers
from studysync.exceptions import ICSAuthError, ICSFetchError, ICSNetworkError, ICSTimeoutError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:text/calendar"
BASE64_MARKER = "base64,"
EMPTY_CALENDAR_MESSAGE = "Calendar file appears to be empty"


def decode_calendar_payload(content: str) -> str:
    """Unwrap a ``data:text/calendar...;base64,`` payload.

    Anything that is not a base64 calendar data URL is returned unchanged.
    Undecodable base64 is logged and yields an empty string, which callers
    treat as an empty calendar.

    Examples:
        >>> decode_calendar_payload("data:text/calendar;base64,QkVHSU46VkNBTEVOREFS")
        'BEGIN:VCALENDAR'
        >>> decode_calendar_payload("BEGIN:VCALENDAR")
        'BEGIN:VCALENDAR'
    """
    if not (content.startswith(DATA_URL_PREFIX) and BASE64_MARKER in content):
        return content

    encoded = content.split(BASE64_MARKER, 1)[1].strip()
    try:
        raw = base64.b64decode(encoded)
    except (binascii.Error, ValueError):
        logger.warning("Calendar data URL carried invalid base64 (%d chars)", len(encoded))
        return ""
    logger.debug("Decoded base64 calendar payload (%d bytes)", len(raw))
    return raw.decode("utf-8", errors="replace")


def validate_calendar_url(url: str) -> bool:
    """Check that a URL is http(s) with a hostname."""
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https"):
        logger.debug("Blocked non-HTTP(S) URL: %s", url)
        return False
    if not parsed.hostname:
        logger.debug("Blocked URL with missing hostname: %s", url)
        return False
    return True


class ICSFetcher:
    """Async downloader for ICS calendars.

    When a relay URL is configured the calendar is requested as
    ``<relay>?url=<calendar url>`` and read from the ``contents`` field of the
    JSON envelope; otherwise the calendar URL is requested directly. There is
    no retry: a failure is reported to the caller as-is.
    """

    def __init__(self, settings: Any, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize ICS fetcher.

        Args:
            settings: Application settings (``relay_url``, ``request_timeout``)
            client: Optional HTTP client; the shared pooled client is used otherwise
        """
        self.settings = settings
        self._client = client
        self.relay_url: str = get_config_value(settings, "relay_url", "") or ""
        self.timeout: int = int(get_config_value(settings, "request_timeout", 30))
        logger.debug("ICS fetcher initialized (relay: %s)", self.relay_url or "disabled")

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client("ics_fetcher", timeout=build_timeout(self.timeout))

    async def fetch(self, url: str) -> ICSResponse:
        """Download ICS content from a URL.

        Args:
            url: Direct link to an .ics file

        Returns:
            ICSResponse; ``success`` is False for non-2xx statuses, bad URLs and
            empty payloads, with ``error_message`` describing the failure

        Raises:
            ICSAuthError: The server answered 401/403
            ICSTimeoutError: The request timed out
            ICSNetworkError: DNS/connection failure
            ICSFetchError: Other transport failures or a malformed relay envelope
        """
        url = url.strip()
        if not validate_calendar_url(url):
            return ICSResponse(success=False, error_message=f"Invalid calendar URL: {url!r}")

        client = await self._get_client()
        via_relay = bool(self.relay_url)

        try:
            if via_relay:
                logger.debug("Fetching ICS from %s via relay %s", url, self.relay_url)
                response = await client.get(
                    self.relay_url,
                    params={"url": url},
                    headers=request_headers(),
                    timeout=self.timeout,
                )
            else:
                logger.debug("Fetching ICS from %s", url)
                response = await client.get(url, headers=request_headers(), timeout=self.timeout)
        except httpx.TimeoutException as e:
            logger.warning("Timeout fetching ICS from %s", url)
            raise ICSTimeoutError(f"Request timeout after {self.timeout}s") from e
        except httpx.NetworkError as e:
            logger.warning("Network error fetching ICS from %s: %s", url, e)
            raise ICSNetworkError(f"Network error: {e}") from e
        except httpx.HTTPError as e:
            logger.warning("HTTP error fetching ICS from %s: %s", url, e)
            raise ICSFetchError(f"Failed to fetch calendar: {e}") from e

        return self._create_response(response, via_relay)

    def _create_response(self, response: httpx.Response, via_relay: bool) -> ICSResponse:
        status = response.status_code
        if status in (401, 403):
            raise ICSAuthError(f"Failed to fetch calendar: {status}", status)
        if not response.is_success:
            logger.warning("ICS fetch failed with HTTP %d", status)
            return ICSResponse(
                success=False,
                status_code=status,
                error_message=f"Failed to fetch calendar: {status}",
                via_relay=via_relay,
            )

        content = self._extract_relay_contents(response) if via_relay else response.text
        content = decode_calendar_payload(content)

        if not content.strip():
            logger.error("Empty ICS content received")
            return ICSResponse(
                success=False,
                status_code=status,
                error_message=EMPTY_CALENDAR_MESSAGE,
                via_relay=via_relay,
            )

        if "BEGIN:VCALENDAR" not in content:
            logger.warning("Content does not appear to be valid ICS format")

        logger.debug("Fetched ICS content (%d bytes)", len(content))
        return ICSResponse(success=True, content=content, status_code=status, via_relay=via_relay)

    @staticmethod
    def _extract_relay_contents(response: httpx.Response) -> str:
        try:
            envelope = response.json()
        except ValueError as e:
            raise ICSFetchError("Relay returned a non-JSON response") from e
        if not isinstance(envelope, dict):
            raise ICSFetchError("Relay returned an unexpected JSON shape")
        contents = envelope.get("contents")
        return contents if isinstance(contents, str) else ""
