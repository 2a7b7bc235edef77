"""
Exceptions for chat-completion API communication.

Every failure carries an ``ErrorKind`` tag (and, for API-level failures, the
HTTP status code and body) so that retryability is a pure function of the
error's data rather than of its class chain.
"""

from enum import Enum
from typing import Optional

from ...utils.error_handling import VibeError


class ErrorKind(Enum):
    """Stable classification of request failures."""
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    UNAUTHORIZED = "unauthorized"
    BAD_REQUEST = "bad_request"
    SERVER_ERROR = "server_error"
    NO_RESPONSE = "no_response"
    INVALID_JSON = "invalid_json"
    EMPTY_RESPONSE = "empty_response"
    CONNECTION = "connection"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset({ErrorKind.TIMEOUT, ErrorKind.RATE_LIMIT, ErrorKind.SERVER_ERROR})


class LLMClientError(VibeError):
    """Base exception for chat-completion client errors."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message, details={"kind": kind.value, "status_code": status_code})
        self.kind = kind
        self.status_code = status_code
        self.body = body

    @property
    def is_retryable(self) -> bool:
        return is_retryable(self)


class LLMConnectionError(LLMClientError):
    """Exception raised when the API host cannot be reached."""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.CONNECTION)


class LLMTimeoutError(LLMClientError):
    """Exception raised when a request times out."""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.TIMEOUT)


class LLMServerError(LLMClientError):
    """Exception raised when the API answers with a non-200 status."""

    def __init__(self, message: str, kind: ErrorKind, status_code: int, body: str = ""):
        super().__init__(message, kind, status_code=status_code, body=body)


class LLMResponseError(LLMClientError):
    """Exception raised when a 200 response cannot be used."""
    pass


_STATUS_KINDS = {
    400: (ErrorKind.BAD_REQUEST, "Bad request - check your configuration"),
    401: (ErrorKind.UNAUTHORIZED, "Authentication failed"),
    403: (ErrorKind.UNAUTHORIZED, "Authentication failed"),
    429: (ErrorKind.RATE_LIMIT, "Rate limit exceeded - please wait before retrying"),
    500: (ErrorKind.SERVER_ERROR, "Server error - please try again"),
    502: (ErrorKind.SERVER_ERROR, "Server error - please try again"),
    503: (ErrorKind.SERVER_ERROR, "Server error - please try again"),
}


def api_error(status_code: int, body: str) -> LLMServerError:
    """Build the error for a non-200 API response."""
    kind, message = _STATUS_KINDS.get(status_code, (ErrorKind.UNKNOWN, "Unknown error"))
    return LLMServerError(
        f"API error (status {status_code}): {message}",
        kind,
        status_code,
        body,
    )


def is_retryable(error: BaseException) -> bool:
    """
    Decide whether a failed request should be attempted again.

    Timeouts, rate limits and server errors are retryable, as is any API
    error with status 429 or >= 500. Everything else is terminal.
    """
    if not isinstance(error, LLMClientError):
        return False
    if error.kind in RETRYABLE_KINDS:
        return True
    return error.status_code is not None and (error.status_code == 429 or error.status_code >= 500)
