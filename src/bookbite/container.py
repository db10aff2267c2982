"""Startup wiring for the communication layer.

:class:`Container` builds every collaborator once, in dependency order,
and hands them out as plain attributes. Nothing in the package reaches for
a global transport or cache; application code holds the container and
passes what it needs along.

Example::

    async with Container() as services:
        featured = await services.books.fetch_featured_books()
        await services.chat.send_message_streaming(book_id, conversation_id, text, print)
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import httpx

from bookbite.cache import CacheStore
from bookbite.chat import (
    ChatRepository,
    ChatStreamClient,
    LocalChatRepository,
    RemoteChatRepository,
)
from bookbite.client import AsyncClient
from bookbite.config import load_client_config, resolve_cache_root
from bookbite.exceptions import CacheError
from bookbite.hooks import Hook, HookRunner
from bookbite.models import ClientConfig, DataSource
from bookbite.output import OutputManager, get_output, set_output
from bookbite.ratings import RatingsService
from bookbite.repository import BookRepository, create_book_repository
from bookbite.search import SearchSession

_BYTES_PER_MB = 1024 * 1024


class Container:
    """Owns the configured client, cache, repositories and services.

    Args:
        config: Resolved configuration. Loaded with
            :func:`~bookbite.config.load_client_config` when omitted.
        hooks: Observers registered on the shared :class:`HookRunner`.
        transport: Optional :mod:`httpx` transport passed to the client.
        output: Diagnostics sink. A new :class:`OutputManager` honouring
            ``config.verbose`` is installed when omitted.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        hooks: Optional[list[Hook]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        output: Optional[OutputManager] = None,
    ) -> None:
        self.config = config or load_client_config()
        self.output = output or OutputManager(verbose=self.config.verbose)
        set_output(self.output)

        self.hook_runner = HookRunner(hooks)
        self.client = AsyncClient(self.config, hook_runner=self.hook_runner, transport=transport)
        self.cache: Optional[CacheStore] = None
        if self.config.cache.enabled:
            self.cache = CacheStore(resolve_cache_root(self.config))

        self.books: BookRepository = create_book_repository(
            self.config.data_source, self.client, self.cache, hook_runner=self.hook_runner
        )
        self.chat: ChatRepository
        if self.config.data_source is DataSource.LOCAL:
            self.chat = LocalChatRepository()
        else:
            self.chat = RemoteChatRepository(self.client, ChatStreamClient(self.client))
        self.search = SearchSession(self.books)
        self.ratings = RatingsService(self.client)

    async def __aenter__(self) -> Container:
        await self.client.open()
        self.prune_cache()
        return self

    async def __aexit__(self, *args: object) -> None:
        self.search.clear()
        await self.client.aclose()

    def prune_cache(self) -> int:
        """Sweep expired entries, then evict down to the configured size.

        Failures are reported as warnings; pruning never blocks startup.

        Returns:
            The number of entries removed.
        """
        if self.cache is None:
            return 0
        cache_config = self.config.cache
        try:
            removed = self.cache.sweep_older_than(timedelta(days=cache_config.expiration_days))
            removed += self.cache.evict_to_size(cache_config.max_size_mb * _BYTES_PER_MB)
        except CacheError as exc:
            get_output().warning(f"Cache pruning failed: {exc.message}")
            return 0
        if removed:
            get_output().info(f"Pruned {removed} cache entries from {self.cache.directory}")
        return removed
