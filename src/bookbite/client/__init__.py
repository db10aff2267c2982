"""HTTP client module for bookbite.

Provides the asynchronous transport that every repository sends its
requests through: header assembly, optional bearer auth, hooks, retry with
linear backoff on transport failures, status classification, and typed
decoding of the response body.

Example::

    from bookbite.client import AsyncClient

    async with AsyncClient(config) as client:
        book = await client.get("books/42", Book)
"""

from bookbite.client.async_client import AsyncClient

__all__ = ["AsyncClient"]
