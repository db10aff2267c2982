"""Pure mapping from a call outcome to the :mod:`bookbite.exceptions` taxonomy.

Nothing here performs I/O or keeps state; the transport and the streaming
client both call into these functions so a given status code always
surfaces as the same exception type.
"""

from __future__ import annotations

from typing import Optional

from bookbite.exceptions import (
    BookBiteError,
    ClientError,
    DecodingError,
    ServerError,
    TransportError,
    UnexpectedStatusError,
)


def classify_status(status_code: int, body: bytes = b"") -> Optional[BookBiteError]:
    """Map an HTTP status code to an error, or ``None`` for 2xx.

    Args:
        status_code: The response status code.
        body: Raw response body, attached undecoded to 4xx errors.
    """
    if 200 <= status_code < 300:
        return None
    if 400 <= status_code < 500:
        return ClientError(status_code, body)
    if 500 <= status_code < 600:
        return ServerError(status_code)
    return UnexpectedStatusError(status_code)


def classify_transport_failure(exc: BaseException) -> TransportError:
    """Wrap a failure that happened before any HTTP response arrived."""
    detail = str(exc) or type(exc).__name__
    return TransportError(f"Network request failed: {detail}", cause=exc)


def classify_decode_failure(exc: BaseException) -> DecodingError:
    """Wrap a failure to turn a 2xx body into the requested type."""
    return DecodingError(str(exc) or type(exc).__name__, cause=exc)
