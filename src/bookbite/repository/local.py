"""Offline book repository served entirely from the response cache.

:class:`LocalBookRepository` never touches the network. Lists, books and
summaries come straight from their cache entries; search and category
listings are answered by filtering every cached book. Operations that only
the server can perform raise :class:`~bookbite.exceptions.TransportError`.
"""

from __future__ import annotations

import math
from collections import Counter
from typing import Any, Optional

from bookbite.cache import CacheCategory, CacheStore
from bookbite.exceptions import TransportError
from bookbite.models import (
    Book,
    BookCategory,
    BooksPage,
    PaginationInfo,
    SearchPage,
    Summary,
    SummaryGenerationJob,
    SummaryStyle,
)
from bookbite.repository.base import DEFAULT_PAGE_SIZE, BookRepository

_LIST_CATEGORIES = (
    CacheCategory.BOOK_LIST,
    CacheCategory.FEATURED_LIST,
    CacheCategory.BESTSELLER_LIST,
)


def _offline(operation: str) -> TransportError:
    return TransportError(f"{operation} is unavailable offline")


def _matches(book: Book, needle: str) -> bool:
    return (
        needle in book.title.lower()
        or (book.subtitle is not None and needle in book.subtitle.lower())
        or any(needle in author.lower() for author in book.authors)
        or any(needle in category.lower() for category in book.categories)
    )


def _page_slice(items: list[Any], page: int, limit: int) -> tuple[list[Any], int]:
    page = max(page, 1)
    limit = max(limit, 1)
    total_pages = math.ceil(len(items) / limit)
    start = (page - 1) * limit
    return items[start : start + limit], total_pages


class LocalBookRepository(BookRepository):
    """Read-only repository over a :class:`~bookbite.cache.CacheStore`.

    Args:
        cache: The store populated by earlier online sessions.
    """

    def __init__(self, cache: CacheStore) -> None:
        self._cache = cache

    async def fetch_all_books(self) -> list[Book]:
        return self._cache.get(CacheCategory.BOOK_LIST) or []

    async def fetch_featured_books(self) -> list[Book]:
        return self._cache.get(CacheCategory.FEATURED_LIST) or []

    async def fetch_bestseller_books(self) -> list[Book]:
        return self._cache.get(CacheCategory.BESTSELLER_LIST) or []

    async def fetch_book(self, book_id: str) -> Optional[Book]:
        """Return the cached book, falling back to any cached list containing it."""
        book = self._cache.get(CacheCategory.SINGLE_BOOK, book_id)
        if book is not None:
            return book
        for candidate in self._cached_books():
            if candidate.id == book_id:
                return candidate
        return None

    async def fetch_summary(self, book_id: str) -> Optional[Summary]:
        return self._cache.get(CacheCategory.SUMMARY, book_id)

    async def search_books(
        self, query: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> SearchPage:
        """Case-insensitive match on title, subtitle, author and category.

        An empty query matches every cached book.
        """
        needle = query.strip().lower()
        books = self._cached_books()
        if needle:
            books = [book for book in books if _matches(book, needle)]
        results, total_pages = _page_slice(books, page, limit)
        return SearchPage(
            results=results,
            pagination=PaginationInfo(
                page=page,
                limit=limit,
                total=len(books),
                total_pages=total_pages,
                has_more=page < total_pages,
            ),
        )

    async def fetch_categories(self) -> list[BookCategory]:
        """Cached category list, or one derived from the cached books."""
        categories = self._cache.get(CacheCategory.CATEGORY_LIST)
        if categories is not None:
            return categories
        counts = Counter(
            category for book in self._cached_books() for category in book.categories
        )
        return [
            BookCategory(name=name, book_count=count)
            for name, count in sorted(counts.items())
        ]

    async def fetch_books_by_category(
        self, category: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> BooksPage:
        wanted = category.lower()
        books = [
            book
            for book in self._cached_books()
            if any(name.lower() == wanted for name in book.categories)
        ]
        results, total_pages = _page_slice(books, page, limit)
        return BooksPage(
            books=results,
            total=len(books),
            page=page,
            limit=limit,
            total_pages=total_pages,
        )

    async def refresh_book(self, book_id: str) -> Optional[Book]:
        raise _offline("Refreshing a book")

    async def refresh_summary(self, book_id: str) -> Optional[Summary]:
        raise _offline("Refreshing a summary")

    async def import_book(self, isbn: str) -> Book:
        raise _offline("Importing a book")

    async def generate_summary(
        self, book_id: str, style: SummaryStyle = SummaryStyle.FULL
    ) -> SummaryGenerationJob:
        raise _offline("Summary generation")

    async def check_summary_job(self, job_id: str) -> SummaryGenerationJob:
        raise _offline("Summary job status")

    def clear_cache(self) -> None:
        self._cache.clear_all()

    def _cached_books(self) -> list[Book]:
        """Every book in the cached lists, deduplicated by id in first-seen order."""
        seen: dict[str, Book] = {}
        for category in _LIST_CATEGORIES:
            for book in self._cache.get(category) or []:
                seen.setdefault(book.id, book)
        return list(seen.values())
