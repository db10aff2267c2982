"""Search-as-you-type coordination on top of a book repository.

:class:`SearchSession` keeps at most one search in flight. Starting a new
search cancels the previous task before the new one begins, so results of
a superseded query are never applied. Pages are accumulated by
:meth:`SearchSession.load_more`.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from bookbite.exceptions import BookBiteError
from bookbite.models import Book
from bookbite.repository.base import DEFAULT_PAGE_SIZE, BookRepository


class SearchSession:
    """Paginated search state for one search box.

    Must be used from inside a running event loop: :meth:`search` and
    :meth:`load_more` schedule their work as :class:`asyncio.Task` objects
    and return them so callers can await completion.

    Attributes:
        query: The query of the current search ("" lists every book).
        results: Accumulated results across loaded pages.
        has_more: Whether the server reported further pages.
        error: The failure of the last search or page load, if any.
        is_searching: A first page is in flight.
        is_loading_more: A follow-up page is in flight.
        current_page: The last page applied to ``results``.
    """

    def __init__(self, repository: BookRepository, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._repository = repository
        self._page_size = page_size
        self._task: Optional[asyncio.Task] = None
        self._reset()

    def _reset(self) -> None:
        self.query = ""
        self.results: list[Book] = []
        self.has_more = False
        self.error: Optional[BookBiteError] = None
        self.is_searching = False
        self.is_loading_more = False
        self.current_page = 1

    def search(self, query: str) -> asyncio.Task:
        """Cancel any in-flight work and start a new search for *query*."""
        self._cancel()
        self._reset()
        self.query = query.strip()
        self.is_searching = True
        self._task = asyncio.create_task(self._run(self.query, 1, append=False))
        return self._task

    def load_more(self) -> Optional[asyncio.Task]:
        """Fetch the next page, or return ``None`` when there is nothing to do."""
        if not self.has_more or self.is_loading_more or self.is_searching:
            return None
        self.is_loading_more = True
        self.error = None
        self._task = asyncio.create_task(
            self._run(self.query, self.current_page + 1, append=True)
        )
        return self._task

    def clear(self) -> None:
        """Cancel any in-flight work and reset all state."""
        self._cancel()
        self._reset()

    async def wait(self) -> None:
        """Wait for the current task, if any, without raising if it was cancelled."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, query: str, page: int, append: bool) -> None:
        try:
            result = await self._repository.search_books(query, page, self._page_size)
            await asyncio.sleep(0)
        except BookBiteError as exc:
            self.error = exc
            if not append:
                self.results = []
        else:
            if append:
                self.results.extend(result.results)
            else:
                self.results = list(result.results)
            self.has_more = result.has_more
            self.current_page = result.pagination.page if result.pagination else page
        finally:
            if self._task is asyncio.current_task():
                self.is_searching = False
                self.is_loading_more = False
