"""Remote-first repository that degrades to the cache when the server is unreachable."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from bookbite.exceptions import TransportError
from bookbite.models import (
    Book,
    BookCategory,
    BooksPage,
    SearchPage,
    Summary,
    SummaryGenerationJob,
    SummaryStyle,
)
from bookbite.output import get_output
from bookbite.repository.base import DEFAULT_PAGE_SIZE, BookRepository
from bookbite.repository.local import LocalBookRepository
from bookbite.repository.remote import RemoteBookRepository


class HybridBookRepository(BookRepository):
    """Delegates to a remote repository and falls back to a local one.

    The first read that fails with a
    :class:`~bookbite.exceptions.TransportError` switches the repository
    into *degraded* mode: that read and every later one is answered from
    the cache without any network attempt, until :meth:`retry_online` is
    called. Any other error propagates unchanged. Import, summary
    generation and refreshes always go to the server.
    """

    def __init__(self, remote: RemoteBookRepository, local: LocalBookRepository) -> None:
        self._remote = remote
        self._local = local
        self._degraded = False

    @property
    def is_degraded(self) -> bool:
        return self._degraded

    def retry_online(self) -> None:
        """Leave degraded mode; the next read goes to the server again."""
        self._degraded = False

    async def _read(self, call: Callable[[BookRepository], Awaitable[Any]]) -> Any:
        if self._degraded:
            return await call(self._local)
        try:
            return await call(self._remote)
        except TransportError as exc:
            get_output().warning(f"Server unreachable, serving cached data: {exc.message}")
            self._degraded = True
            return await call(self._local)

    async def fetch_all_books(self) -> list[Book]:
        return await self._read(lambda repo: repo.fetch_all_books())

    async def fetch_featured_books(self) -> list[Book]:
        return await self._read(lambda repo: repo.fetch_featured_books())

    async def fetch_bestseller_books(self) -> list[Book]:
        return await self._read(lambda repo: repo.fetch_bestseller_books())

    async def fetch_book(self, book_id: str) -> Optional[Book]:
        return await self._read(lambda repo: repo.fetch_book(book_id))

    async def fetch_summary(self, book_id: str) -> Optional[Summary]:
        return await self._read(lambda repo: repo.fetch_summary(book_id))

    async def search_books(
        self, query: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> SearchPage:
        return await self._read(lambda repo: repo.search_books(query, page, limit))

    async def fetch_categories(self) -> list[BookCategory]:
        return await self._read(lambda repo: repo.fetch_categories())

    async def fetch_books_by_category(
        self, category: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> BooksPage:
        return await self._read(
            lambda repo: repo.fetch_books_by_category(category, page, limit)
        )

    async def refresh_book(self, book_id: str) -> Optional[Book]:
        return await self._remote.refresh_book(book_id)

    async def refresh_summary(self, book_id: str) -> Optional[Summary]:
        return await self._remote.refresh_summary(book_id)

    async def import_book(self, isbn: str) -> Book:
        return await self._remote.import_book(isbn)

    async def generate_summary(
        self, book_id: str, style: SummaryStyle = SummaryStyle.FULL
    ) -> SummaryGenerationJob:
        return await self._remote.generate_summary(book_id, style)

    async def check_summary_job(self, job_id: str) -> SummaryGenerationJob:
        return await self._remote.check_summary_job(job_id)

    def clear_cache(self) -> None:
        self._local.clear_cache()
