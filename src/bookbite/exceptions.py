"""Exception hierarchy for bookbite.

All exceptions inherit from :class:`BookBiteError`, which carries a
``kind`` attribute drawn from the closed :class:`ErrorKind` taxonomy.
Every failed call raises exactly one of these, so callers can either
catch a specific subclass or branch on ``exc.kind``.

Subclass hierarchy::

    BookBiteError
    +-- InvalidResponseError   (invalid_response)
    +-- ClientError            (client_error, 4xx + raw body)
    +-- ServerError            (server_error, 5xx)
    +-- UnexpectedStatusError  (unexpected_status)
    +-- TransportError         (transport_failure)
    +-- DecodingError          (decoding_failure)
    +-- CacheError             (cache_io_failure)
    +-- ConfigError            (config)
"""

from __future__ import annotations

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    """Closed set of failure categories surfaced by the communication layer."""

    INVALID_RESPONSE = "invalid_response"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    UNEXPECTED_STATUS = "unexpected_status"
    TRANSPORT_FAILURE = "transport_failure"
    DECODING_FAILURE = "decoding_failure"
    CACHE_IO_FAILURE = "cache_io_failure"
    CONFIG = "config"


class BookBiteError(Exception):
    """Base exception for all bookbite errors.

    Every subclass sets a class-level ``kind`` so that a caller holding a
    generic ``BookBiteError`` can still tell which variant occurred.

    Args:
        message: Human-readable error description.
    """

    kind: ErrorKind = ErrorKind.INVALID_RESPONSE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidResponseError(BookBiteError):
    """Raised when the server's reply is not a usable HTTP response or stream."""

    kind = ErrorKind.INVALID_RESPONSE

    def __init__(self, message: str = "Invalid response received from server"):
        super().__init__(message)


class ClientError(BookBiteError):
    """Raised for HTTP 4xx responses.

    The raw response body is attached undecoded; interpreting it (for
    example spotting a 409 "already exists") is the caller's job.
    """

    kind = ErrorKind.CLIENT_ERROR

    def __init__(self, status_code: int, body: bytes = b""):
        super().__init__(f"Client error with status code: {status_code}")
        self.status_code = status_code
        self.body = body

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ServerError(BookBiteError):
    """Raised when the API returns an HTTP 5xx server error."""

    kind = ErrorKind.SERVER_ERROR

    def __init__(self, status_code: int):
        super().__init__(f"Server error with status code: {status_code}")
        self.status_code = status_code


class UnexpectedStatusError(BookBiteError):
    """Raised for any status code outside the 2xx/4xx/5xx ranges."""

    kind = ErrorKind.UNEXPECTED_STATUS

    def __init__(self, status_code: int):
        super().__init__(f"Unexpected status code: {status_code}")
        self.status_code = status_code


class TransportError(BookBiteError):
    """Raised on failures before any HTTP response arrived (timeout, DNS, refused).

    Also used for an ``error`` frame on the chat stream, in which case
    ``cause`` is ``None`` and the message is the server-supplied text.
    """

    kind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class DecodingError(BookBiteError):
    """Raised when a 2xx body cannot be decoded into the requested type."""

    kind = ErrorKind.DECODING_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to decode response: {message}")
        self.cause = cause


class CacheError(BookBiteError):
    """Raised when a cache file cannot be read, decoded, written, or removed."""

    kind = ErrorKind.CACHE_IO_FAILURE


class ConfigError(BookBiteError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    kind = ErrorKind.CONFIG
