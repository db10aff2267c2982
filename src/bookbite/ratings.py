"""Reader ratings lookup with a bounded in-memory cache.

Ratings are decoration: a failed lookup is reported as a warning and
yields ``None`` instead of raising, so callers can render a book without
one.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Optional
from urllib.parse import quote

from bookbite.client import AsyncClient
from bookbite.exceptions import BookBiteError
from bookbite.models import Book, BookRating, BookRatingResponse
from bookbite.output import get_output

DEFAULT_MAX_ENTRIES = 200


class RatingsService:
    """Fetches :class:`~bookbite.models.BookRating` objects by book id or ISBN.

    Args:
        client: An open :class:`~bookbite.client.AsyncClient`.
        max_entries: Capacity of the least-recently-used rating cache.
    """

    def __init__(self, client: AsyncClient, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._client = client
        self._max_entries = max_entries
        self._cache: OrderedDict[str, BookRating] = OrderedDict()

    def __len__(self) -> int:
        return len(self._cache)

    async def fetch_rating(self, book_id: str) -> Optional[BookRating]:
        return await self._lookup(
            f"rating_{book_id}", f"books/{quote(book_id, safe='')}/ratings", f"book {book_id}"
        )

    async def fetch_rating_by_isbn(self, isbn: str) -> Optional[BookRating]:
        return await self._lookup(
            f"isbn_rating_{isbn}", f"isbn/{quote(isbn, safe='')}/ratings", f"ISBN {isbn}"
        )

    async def rating_for_book(self, book: Book) -> Optional[BookRating]:
        """Look *book* up by id, then by ISBN-13, then by ISBN-10."""
        rating = await self.fetch_rating(book.id)
        if rating is None and book.isbn13:
            rating = await self.fetch_rating_by_isbn(book.isbn13)
        if rating is None and book.isbn10:
            rating = await self.fetch_rating_by_isbn(book.isbn10)
        return rating

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _lookup(self, key: str, path: str, label: str) -> Optional[BookRating]:
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            return cached

        try:
            response: BookRatingResponse = await self._client.get(path, BookRatingResponse)
        except BookBiteError as exc:
            get_output().warning(f"Failed to fetch rating for {label}: {exc.message}")
            return None

        self._cache[key] = response.rating
        while len(self._cache) > self._max_entries:
            self._cache.popitem(last=False)
        return response.rating
