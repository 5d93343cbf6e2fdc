"""Structured errors raised by the request executor.

Every failure that reaches a caller is an `ApiError` carrying the HTTP status
(when a response was received), whether it was a timeout, the original
exception and the parsed response body.
"""

from typing import Any, Optional

# HTTP status codes that trigger a retry (5xx server errors)
RETRYABLE_STATUS_CODES = frozenset({500, 502, 503, 504})

# Substrings of transport error messages that identify a network-level failure
NETWORK_ERROR_SIGNATURES = (
    "Failed to fetch",
    "NetworkError",
    "Request timeout",
    "Connection refused",
    "Connection reset",
    "Name or service not known",
    "nodename nor servname provided",
    "Temporary failure in name resolution",
    "Network is unreachable",
    "All connection attempts failed",
)

# Notification messages, keyed by category
NOTIFICATION_MESSAGES = {
    "timeout": "Request timed out. Please check your connection and try again.",
    "network": "Network error. Please check your internet connection.",
    "server": "Server error. Please try again in a moment.",
    "not_found": "Requested resource not found.",
    "unauthorized": "Authentication required. Please log in again.",
    "forbidden": "You do not have permission to perform this action.",
    "client": "The request was rejected: {message}",
    "generic": "An unexpected error occurred. Please try again.",
}


def matches_network_signature(message: str) -> bool:
    return any(signature in message for signature in NETWORK_ERROR_SIGNATURES)


class ApiError(Exception):
    """Base class for all request failures (the structured error)."""

    retryable = False

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        is_timeout: bool = False,
        cause: Optional[BaseException] = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.is_timeout = is_timeout
        self.cause = cause
        self.data = data

    @property
    def category(self) -> str:
        """Human-facing failure category used to pick the notification text."""
        if self.is_timeout:
            return "timeout"
        if isinstance(self, NetworkError) or matches_network_signature(self.message):
            return "network"
        if self.status is not None:
            if self.status >= 500:
                return "server"
            if self.status == 404:
                return "not_found"
            if self.status == 401:
                return "unauthorized"
            if self.status == 403:
                return "forbidden"
            if 400 <= self.status < 500:
                return "client"
        return "generic"

    @property
    def user_message(self) -> str:
        return NOTIFICATION_MESSAGES[self.category].format(message=self.message)

    def to_dict(self) -> dict:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "status": self.status,
            "is_timeout": self.is_timeout,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, status={self.status!r}, is_timeout={self.is_timeout!r})"


class RequestTimeoutError(ApiError):
    """An attempt exceeded its timeout budget."""

    retryable = True

    def __init__(self, message: str = "Request timeout", cause: Optional[BaseException] = None):
        super().__init__(message, is_timeout=True, cause=cause)


class NetworkError(ApiError):
    """Transport failure (connection refused, DNS, reset...)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, retryable: bool = True):
        super().__init__(message, cause=cause)
        self.retryable = retryable


class ServerError(ApiError):
    """5xx response. Retryable only for the statuses in RETRYABLE_STATUS_CODES."""

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status in RETRYABLE_STATUS_CODES


class ClientError(ApiError):
    """4xx response. Never retried."""


class ParseError(ApiError):
    """Malformed response body. Degrades to raw text, never reaches callers."""


class RequestCancelledError(ApiError):
    """The attempt chain was cancelled by executor teardown."""

    def __init__(self, message: str = "Request cancelled", cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause)


class AuthenticationError(ApiError):
    """No usable authentication token was available for the request."""
