"""Book repositories: remote, offline and hybrid variants behind one interface.

Use :func:`create_book_repository` to build the variant selected by
:class:`~bookbite.models.DataSource`.
"""

from __future__ import annotations

from typing import Optional

from bookbite.cache import CacheStore
from bookbite.client import AsyncClient
from bookbite.exceptions import ConfigError
from bookbite.hooks import HookRunner
from bookbite.models import DataSource
from bookbite.repository.base import DEFAULT_PAGE_SIZE, BookRepository
from bookbite.repository.hybrid import HybridBookRepository
from bookbite.repository.local import LocalBookRepository
from bookbite.repository.remote import RemoteBookRepository


def create_book_repository(
    data_source: DataSource,
    client: AsyncClient,
    cache: Optional[CacheStore],
    hook_runner: Optional[HookRunner] = None,
) -> BookRepository:
    """Compose the repository for *data_source*.

    ``remote`` talks to the server with write-through caching (none when
    *cache* is ``None``), ``local`` serves only from *cache*, and
    ``hybrid`` wraps both.

    Raises:
        ConfigError: If ``local`` or ``hybrid`` is requested without a cache.
    """
    if data_source is not DataSource.REMOTE and cache is None:
        raise ConfigError(f"Data source '{data_source.value}' requires the cache to be enabled")
    if data_source is DataSource.LOCAL:
        return LocalBookRepository(cache)
    remote = RemoteBookRepository(client, cache, hook_runner=hook_runner)
    if data_source is DataSource.HYBRID:
        return HybridBookRepository(remote, LocalBookRepository(cache))
    return remote


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "BookRepository",
    "HybridBookRepository",
    "LocalBookRepository",
    "RemoteBookRepository",
    "create_book_repository",
]
