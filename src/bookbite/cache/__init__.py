"""Persistent response cache for bookbite.

This package provides :class:`CacheStore`, a file-per-entity JSON store
that the repositories use for write-through caching of books, summaries
and curated lists, and :class:`CacheCategory`, the closed set of entry
kinds it accepts.
"""

from bookbite.cache.store import CacheCategory, CacheStore

__all__ = ["CacheCategory", "CacheStore"]
