"""File-backed JSON cache for API responses.

Each cached entity lives in its own JSON file directly under the cache
root, named after its category and (for keyed categories) the entity id::

    books.json                  book_list
    featured_books.json         featured_list
    nyt_bestseller_books.json   bestseller_list
    categories.json             category_list
    book_<id>.json              single_book
    summary_<id>.json           summary

Files are written atomically (temp file + ``os.replace``) and decoded back
into the category's model type on read. There is no TTL: entries live
until they are removed, cleared, or swept by
:meth:`CacheStore.sweep_older_than` / :meth:`CacheStore.evict_to_size`.
The store is not synchronised; concurrent writers to one entry race and
the last rename wins.

See Also:
    :class:`~bookbite.models.CacheConfig` -- ``expiration_days`` and
    ``max_size_mb`` feed the two eviction methods.
"""

from __future__ import annotations

import enum
import hashlib
import os
import re
import shutil
import time
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import TypeAdapter
from rich.filesize import decimal

from bookbite.config import atomic_write
from bookbite.exceptions import CacheError
from bookbite.models import Book, BookCategory, CacheInfo, Summary
from bookbite.output import get_output

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]{0,127}$")


class CacheCategory(str, enum.Enum):
    """Kinds of cached payload, each mapped to its own file name and model type."""

    BOOK_LIST = "book_list"
    SINGLE_BOOK = "single_book"
    SUMMARY = "summary"
    FEATURED_LIST = "featured_list"
    BESTSELLER_LIST = "bestseller_list"
    CATEGORY_LIST = "category_list"

    @property
    def is_keyed(self) -> bool:
        """Whether entries of this category are addressed by an entity id."""
        return self in (CacheCategory.SINGLE_BOOK, CacheCategory.SUMMARY)

    @property
    def file_stem(self) -> str:
        return _FILE_STEMS[self]

    @property
    def payload_type(self) -> Any:
        return _PAYLOAD_TYPES[self]


_FILE_STEMS = {
    CacheCategory.BOOK_LIST: "books",
    CacheCategory.SINGLE_BOOK: "book",
    CacheCategory.SUMMARY: "summary",
    CacheCategory.FEATURED_LIST: "featured_books",
    CacheCategory.BESTSELLER_LIST: "nyt_bestseller_books",
    CacheCategory.CATEGORY_LIST: "categories",
}

_PAYLOAD_TYPES: dict[CacheCategory, Any] = {
    CacheCategory.BOOK_LIST: list[Book],
    CacheCategory.SINGLE_BOOK: Book,
    CacheCategory.SUMMARY: Summary,
    CacheCategory.FEATURED_LIST: list[Book],
    CacheCategory.BESTSELLER_LIST: list[Book],
    CacheCategory.CATEGORY_LIST: list[BookCategory],
}


@lru_cache(maxsize=None)
def _adapter(payload_type: Any) -> TypeAdapter:
    return TypeAdapter(payload_type)


def _created_at(stat: os.stat_result) -> float:
    """Creation time where the platform records it, else modification time."""
    return getattr(stat, "st_birthtime", stat.st_mtime)


class CacheStore:
    """Key-addressed JSON file store for books, summaries and curated lists.

    Args:
        root: Directory holding the entry files. Created if missing.

    Raises:
        CacheError: If the root directory cannot be created.

    Example::

        store = CacheStore(Path("~/.cache/bookbite/responses").expanduser())
        store.put(CacheCategory.SINGLE_BOOK, book, key=book.id)
        cached = store.get(CacheCategory.SINGLE_BOOK, key=book.id)
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self._root = Path(root)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheError(f"Cannot create cache directory {self._root}: {exc}") from exc

    @property
    def directory(self) -> Path:
        return self._root

    # ------------------------------------------------------------------ #
    # Entry operations
    # ------------------------------------------------------------------ #

    def path_for(self, category: CacheCategory, key: Optional[str] = None) -> Path:
        """Return the file an entry lives in.

        Keys that are not safe as a file-name component are replaced by
        ``~`` plus their SHA-256 hex digest. A safe key never starts with
        ``~``, so a hashed name cannot collide with a literal key.

        Raises:
            ValueError: If a keyed category is used without a key.
        """
        if not category.is_keyed:
            return self._root / f"{category.file_stem}.json"
        if not key:
            raise ValueError(f"Cache category {category.value} requires a key")
        if not _SAFE_KEY.match(key):
            key = "~" + hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._root / f"{category.file_stem}_{key}.json"

    def put(self, category: CacheCategory, value: Any, key: Optional[str] = None) -> None:
        """Serialise *value* and write it atomically, replacing any existing entry.

        Raises:
            CacheError: If the value cannot be serialised or the file written.
        """
        path = self.path_for(category, key)
        try:
            data = _adapter(category.payload_type).dump_json(value, by_alias=True)
            atomic_write(path, data.decode("utf-8"))
        except (OSError, ValueError) as exc:
            raise CacheError(f"Failed to write cache entry {path.name}: {exc}") from exc

    def get(self, category: CacheCategory, key: Optional[str] = None) -> Any:
        """Return the decoded entry, or ``None`` if there is none.

        Raises:
            CacheError: If the file exists but cannot be read or decoded.
        """
        path = self.path_for(category, key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheError(f"Failed to read cache entry {path.name}: {exc}") from exc
        try:
            return _adapter(category.payload_type).validate_json(raw)
        except ValueError as exc:
            raise CacheError(f"Corrupt cache entry {path.name}: {exc}") from exc

    def contains(self, category: CacheCategory, key: Optional[str] = None) -> bool:
        return self.path_for(category, key).is_file()

    def remove(self, category: CacheCategory, key: Optional[str] = None) -> None:
        """Delete an entry. Removing an absent entry is a no-op."""
        path = self.path_for(category, key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise CacheError(f"Failed to remove cache entry {path.name}: {exc}") from exc

    def clear_all(self) -> None:
        """Remove every entry by deleting and recreating the cache root."""
        try:
            if self._root.exists():
                shutil.rmtree(self._root)
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheError(f"Failed to clear cache {self._root}: {exc}") from exc
        get_output().debug(f"Cleared cache at {self._root}")

    # ------------------------------------------------------------------ #
    # Statistics
    # ------------------------------------------------------------------ #

    def _entries(self) -> list[tuple[Path, os.stat_result]]:
        try:
            return [
                (path, path.stat())
                for path in self._root.glob("*.json")
                if path.is_file()
            ]
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise CacheError(f"Failed to list cache {self._root}: {exc}") from exc

    def size_bytes(self) -> int:
        """Total size of all entry files in bytes."""
        return sum(stat.st_size for _, stat in self._entries())

    def entry_count(self) -> int:
        return len(self._entries())

    def info(self) -> CacheInfo:
        """Return directory, size, entry count and a human-readable size."""
        entries = self._entries()
        size = sum(stat.st_size for _, stat in entries)
        return CacheInfo(
            directory=str(self._root),
            size_bytes=size,
            entry_count=len(entries),
            formatted_size=decimal(size),
        )

    # ------------------------------------------------------------------ #
    # Eviction
    # ------------------------------------------------------------------ #

    def sweep_older_than(self, age: timedelta, now: Optional[float] = None) -> int:
        """Delete entries created before ``now - age``.

        Args:
            age: Maximum age an entry may have.
            now: Reference epoch timestamp; defaults to the current time.

        Returns:
            The number of entries removed.
        """
        cutoff = (time.time() if now is None else now) - age.total_seconds()
        removed = 0
        for path, stat in self._entries():
            if _created_at(stat) < cutoff:
                self._unlink(path)
                removed += 1
        if removed:
            get_output().debug(f"Swept {removed} expired cache entries")
        return removed

    def evict_to_size(self, max_bytes: int) -> int:
        """Delete the oldest entries until the total size is at most *max_bytes*.

        Returns:
            The number of entries removed.
        """
        entries = sorted(self._entries(), key=lambda item: _created_at(item[1]))
        total = sum(stat.st_size for _, stat in entries)
        removed = 0
        for path, stat in entries:
            if total <= max_bytes:
                break
            self._unlink(path)
            total -= stat.st_size
            removed += 1
        if removed:
            get_output().debug(f"Evicted {removed} cache entries to fit {decimal(max_bytes)}")
        return removed

    def _unlink(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise CacheError(f"Failed to remove cache entry {path.name}: {exc}") from exc
