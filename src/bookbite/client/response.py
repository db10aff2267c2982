"""Typed decoding of response bodies.

:func:`decode_body` turns the raw bytes of a 2xx response into the type the
caller asked for -- a Pydantic model, a container of models, or a plain
JSON type -- using a cached :class:`pydantic.TypeAdapter` per target type.
Timestamps inside models go through
:func:`~bookbite.models.parse_timestamp`, so a bad date surfaces as a
:class:`~bookbite.exceptions.DecodingError` naming the offending string.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter, ValidationError

from bookbite.client.classifier import classify_decode_failure


@lru_cache(maxsize=None)
def _adapter(response_type: Any) -> TypeAdapter:
    return TypeAdapter(response_type)


def decode_body(content: bytes, response_type: Any) -> Any:
    """Decode *content* into *response_type*.

    An empty body decodes to ``None`` when the target type admits it
    (``Optional[...]``, ``Any``); otherwise it is a decoding failure.

    Raises:
        DecodingError: If the body is not valid JSON for *response_type*.
    """
    adapter = _adapter(response_type)
    try:
        if not content.strip():
            return adapter.validate_python(None)
        return adapter.validate_json(content)
    except ValidationError as exc:
        raise classify_decode_failure(exc) from exc
