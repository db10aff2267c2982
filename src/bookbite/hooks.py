"""Observer hooks for the request, stream, and cache lifecycle.

This module provides three components:

* :class:`Hook` -- Base class with no-op callbacks. Subclass it and
  override the callbacks you care about (metrics, tracing, test doubles).
* :class:`HookContext` -- A mutable dataclass that carries request and
  response state through the hook chain. Fields are progressively populated
  as the request/response lifecycle advances.
* :class:`HookRunner` -- Executes the callbacks across all registered hooks
  in registration order.

Pre-request hooks form a pipeline: each hook may return new headers that
replace the context's headers for subsequent hooks (e.g. injecting a
request id). All other callbacks are observers only. A hook that raises
never masks the outcome it was told about.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional

from bookbite.output import get_output


class CacheWriteOutcome(str, enum.Enum):
    """Result of a best-effort write-through into the cache."""

    WRITTEN = "written"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class HookContext:
    """Mutable context object threaded through the hook chain.

    Attributes:
        method: HTTP method (e.g. ``"GET"``).
        url: The request path relative to the base URL.
        headers: Request headers dict (mutable).
        params: Query parameters dict.
        attempt: Zero-based attempt index for retried calls.
        status_code: HTTP response status code.
        response_headers: Response headers dict.
        response_body: Raw response bytes.
        error: Exception instance if an error occurred, otherwise ``None``.
    """

    method: str = ""
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    attempt: int = 0
    status_code: int = 0
    response_headers: dict[str, str] = field(default_factory=dict)
    response_body: bytes = b""
    error: Optional[Exception] = None


class Hook:
    """Base class for lifecycle observers. All callbacks default to no-ops."""

    def on_pre_request(self, ctx: HookContext) -> Optional[dict[str, str]]:
        """Called before each attempt. Return a headers dict to replace them."""
        return None

    def on_post_response(self, ctx: HookContext) -> None:
        """Called once an HTTP response has been received."""

    def on_error(self, error: Exception) -> None:
        """Called with the error a call is about to surface."""

    def on_cache_write(
        self,
        category: str,
        key: str,
        outcome: CacheWriteOutcome,
        error: Optional[Exception] = None,
    ) -> None:
        """Called after every write-through attempt, successful or not."""


class HookRunner:
    """Executes hooks across all registered observers in registration order.

    The runner holds an immutable snapshot of the hook list taken at
    creation time.
    """

    def __init__(self, hooks: Optional[list[Hook]] = None) -> None:
        self._hooks = list(hooks or [])

    def run_pre_request(self, ctx: HookContext) -> HookContext:
        """Execute ``on_pre_request`` hooks, threading headers through the chain."""
        for hook in self._hooks:
            result = hook.on_pre_request(ctx)
            if isinstance(result, dict):
                ctx.headers = result
        return ctx

    def run_post_response(self, ctx: HookContext) -> None:
        for hook in self._hooks:
            self._guarded(hook.on_post_response, ctx)

    def run_error(self, error: Exception) -> None:
        """Execute ``on_error`` hooks.

        If a hook's error handler itself raises, that secondary exception is
        reported as a warning and otherwise dropped so the original failure
        reaches the caller.
        """
        for hook in self._hooks:
            self._guarded(hook.on_error, error)

    def run_cache_write(
        self,
        category: str,
        key: str,
        outcome: CacheWriteOutcome,
        error: Optional[Exception] = None,
    ) -> None:
        for hook in self._hooks:
            self._guarded(hook.on_cache_write, category, key, outcome, error)

    @staticmethod
    def _guarded(callback: Any, *args: Any) -> None:
        try:
            callback(*args)
        except Exception as exc:
            get_output().warning(f"Hook {callback.__qualname__} failed: {exc}")
