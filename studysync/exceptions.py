"""Exception hierarchy for studysync.

Fetch and provider errors are recovered at the import boundary and turned into
user-facing messages; validation errors map to HTTP 400 in the API.
"""

from typing import Optional


class StudySyncError(Exception):
    """Base exception for all studysync errors."""


class ICSFetchError(StudySyncError):
    """Retrieving a remote calendar failed.

    Raised when:
    - The URL is not a valid http(s) URL
    - The server answers with a non-success status
    - The payload is empty after decoding
    """


class ICSAuthError(ICSFetchError):
    """The calendar server rejected the request (HTTP 401/403)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ICSNetworkError(ICSFetchError):
    """DNS, connection or TLS failure while fetching a calendar."""


class ICSTimeoutError(ICSFetchError):
    """The calendar server did not answer within the configured timeout."""


class ProviderError(StudySyncError):
    """The calendar provider API request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """The provider rejected the access token (HTTP 401/403)."""


class EventValidationError(StudySyncError):
    """An event field (date, time, source) is invalid.

    Should result in HTTP 400 Bad Request response.
    """


class AssistantActionError(StudySyncError):
    """An assistant reply could not be turned into a calendar action.

    Raised when:
    - The reply contains no JSON object
    - The JSON does not describe a known action shape
    """
