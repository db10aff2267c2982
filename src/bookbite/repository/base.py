"""Abstract interface shared by the remote, local and hybrid book repositories."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from bookbite.models import Book, BookCategory, BooksPage, SearchPage, Summary

DEFAULT_PAGE_SIZE = 20


class BookRepository(ABC):
    """Read access to books, summaries and curated lists.

    Lookups of a single entity return ``None`` when the entity does not
    exist; every other failure is raised as a
    :class:`~bookbite.exceptions.BookBiteError`.
    """

    @abstractmethod
    async def fetch_all_books(self) -> list[Book]:
        ...

    @abstractmethod
    async def fetch_featured_books(self) -> list[Book]:
        ...

    @abstractmethod
    async def fetch_bestseller_books(self) -> list[Book]:
        ...

    @abstractmethod
    async def fetch_book(self, book_id: str) -> Optional[Book]:
        ...

    @abstractmethod
    async def fetch_summary(self, book_id: str) -> Optional[Summary]:
        ...

    @abstractmethod
    async def search_books(
        self, query: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> SearchPage:
        ...

    @abstractmethod
    async def fetch_categories(self) -> list[BookCategory]:
        ...

    @abstractmethod
    async def fetch_books_by_category(
        self, category: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> BooksPage:
        ...

    @abstractmethod
    def clear_cache(self) -> None:
        """Drop every cached entry this repository can see."""
