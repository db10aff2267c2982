"""Network-backed book repository with write-through caching.

:class:`RemoteBookRepository` applies one cache policy per operation:

* **cache-first** -- :meth:`~RemoteBookRepository.fetch_book` and
  :meth:`~RemoteBookRepository.fetch_summary` answer from the cache when
  they can, otherwise fetch and write the result through. A 404 yields
  ``None`` and caches nothing.
* **always-fresh** -- the curated lists (featured, bestsellers), the full
  book list and the category list always go to the server and then
  replace their cache entry.
* **network-only** -- search, category listings, import and summary
  generation never read the cache.

Write-through is best-effort: a failing cache write is reported to the
``on_cache_write`` hooks and as a warning, but the fetched value is still
returned.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional
from urllib.parse import quote

from bookbite.cache import CacheCategory, CacheStore
from bookbite.client import AsyncClient
from bookbite.exceptions import CacheError, ClientError
from bookbite.hooks import CacheWriteOutcome, HookRunner
from bookbite.models import (
    Book,
    BookCategory,
    BooksPage,
    GenerateSummaryRequest,
    ImportBookRequest,
    SearchPage,
    Summary,
    SummaryGenerationJob,
    SummaryStyle,
)
from bookbite.output import get_output
from bookbite.repository.base import DEFAULT_PAGE_SIZE, BookRepository

_FRESH = {"fresh": "true"}


def _segment(value: str) -> str:
    """Percent-encode *value* for use as a single path segment."""
    return quote(value, safe="")


class RemoteBookRepository(BookRepository):
    """Book repository that talks to the content API.

    Args:
        client: An open :class:`~bookbite.client.AsyncClient`.
        cache: Store used for write-through and cache-first reads. ``None``
            disables caching entirely.
        hook_runner: Receives the outcome of every write-through attempt.
    """

    def __init__(
        self,
        client: AsyncClient,
        cache: Optional[CacheStore] = None,
        hook_runner: Optional[HookRunner] = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._hook_runner = hook_runner or HookRunner()

    # ------------------------------------------------------------------ #
    # Always-fresh lists
    # ------------------------------------------------------------------ #

    async def fetch_all_books(self) -> list[Book]:
        await asyncio.sleep(0)
        page: BooksPage = await self._client.get("books", BooksPage)
        await asyncio.sleep(0)
        self._write_through(CacheCategory.BOOK_LIST, page.books)
        return page.books

    async def fetch_featured_books(self) -> list[Book]:
        """Fetch the featured list, bypassing server-side caching."""
        await asyncio.sleep(0)
        page: BooksPage = await self._client.get("books/featured", BooksPage, params=_FRESH)
        await asyncio.sleep(0)
        books = [book for book in page.books if book.is_featured]
        self._write_through(CacheCategory.FEATURED_LIST, books)
        return books

    async def fetch_bestseller_books(self) -> list[Book]:
        await asyncio.sleep(0)
        page: BooksPage = await self._client.get(
            "books/nyt-bestsellers", BooksPage, params=_FRESH
        )
        await asyncio.sleep(0)
        self._write_through(CacheCategory.BESTSELLER_LIST, page.books)
        return page.books

    async def fetch_categories(self) -> list[BookCategory]:
        await asyncio.sleep(0)
        categories = await self._client.get("books/categories", list[BookCategory])
        await asyncio.sleep(0)
        self._write_through(CacheCategory.CATEGORY_LIST, categories)
        return categories

    # ------------------------------------------------------------------ #
    # Cache-first lookups
    # ------------------------------------------------------------------ #

    async def fetch_book(self, book_id: str) -> Optional[Book]:
        return await self._cache_first(
            CacheCategory.SINGLE_BOOK, book_id, f"books/{_segment(book_id)}", Book
        )

    async def fetch_summary(self, book_id: str) -> Optional[Summary]:
        return await self._cache_first(
            CacheCategory.SUMMARY, book_id, f"summaries/book/{_segment(book_id)}", Summary
        )

    async def refresh_book(self, book_id: str) -> Optional[Book]:
        """Drop the cached book, then fetch it again from the server."""
        self._evict(CacheCategory.SINGLE_BOOK, book_id)
        return await self.fetch_book(book_id)

    async def refresh_summary(self, book_id: str) -> Optional[Summary]:
        self._evict(CacheCategory.SUMMARY, book_id)
        return await self.fetch_summary(book_id)

    # ------------------------------------------------------------------ #
    # Network-only
    # ------------------------------------------------------------------ #

    async def search_books(
        self, query: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> SearchPage:
        """Search the server. An empty query lists every book, page by page."""
        await asyncio.sleep(0)
        return await self._client.get(
            "books/search",
            SearchPage,
            params={"q": query or None, "page": page, "limit": limit},
        )

    async def fetch_books_by_category(
        self, category: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> BooksPage:
        await asyncio.sleep(0)
        return await self._client.get(
            f"books/category/{_segment(category)}",
            BooksPage,
            params={"page": page, "limit": limit},
        )

    async def import_book(self, isbn: str) -> Book:
        """Ask the server to import a book by ISBN and cache the result."""
        await asyncio.sleep(0)
        book: Book = await self._client.post(
            "books/import", ImportBookRequest(isbn=isbn), Book
        )
        await asyncio.sleep(0)
        self._write_through(CacheCategory.SINGLE_BOOK, book, key=book.id)
        return book

    async def generate_summary(
        self, book_id: str, style: SummaryStyle = SummaryStyle.FULL
    ) -> SummaryGenerationJob:
        """Start server-side summary generation and return the job handle."""
        await asyncio.sleep(0)
        return await self._client.post(
            f"summaries/book/{_segment(book_id)}/generate",
            GenerateSummaryRequest(style=style),
            SummaryGenerationJob,
        )

    async def check_summary_job(self, job_id: str) -> SummaryGenerationJob:
        await asyncio.sleep(0)
        return await self._client.get(
            f"summaries/job/{_segment(job_id)}", SummaryGenerationJob
        )

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear_all()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _cache_first(
        self, category: CacheCategory, key: str, path: str, response_type: Any
    ) -> Any:
        cached = self._read_cached(category, key)
        if cached is not None:
            get_output().debug(f"Cache hit for {category.value} {key}")
            return cached

        await asyncio.sleep(0)
        try:
            value = await self._client.get(path, response_type)
        except ClientError as exc:
            if exc.is_not_found:
                return None
            raise
        await asyncio.sleep(0)
        self._write_through(category, value, key=key)
        return value

    def _read_cached(self, category: CacheCategory, key: str) -> Any:
        """Read a cache entry, treating an unreadable one as a miss."""
        if self._cache is None:
            return None
        try:
            return self._cache.get(category, key)
        except CacheError as exc:
            get_output().warning(f"Ignoring unreadable cache entry: {exc.message}")
            return None

    def _evict(self, category: CacheCategory, key: str) -> None:
        if self._cache is not None:
            self._cache.remove(category, key)

    def _write_through(
        self, category: CacheCategory, value: Any, key: Optional[str] = None
    ) -> None:
        report_key = key or category.value
        if self._cache is None:
            self._hook_runner.run_cache_write(
                category.value, report_key, CacheWriteOutcome.SKIPPED
            )
            return
        try:
            self._cache.put(category, value, key=key)
        except CacheError as exc:
            get_output().warning(f"Could not cache {category.value}: {exc.message}")
            self._hook_runner.run_cache_write(
                category.value, report_key, CacheWriteOutcome.FAILED, exc
            )
            return
        self._hook_runner.run_cache_write(category.value, report_key, CacheWriteOutcome.WRITTEN)
