"""Tests for the hook runner."""

from __future__ import annotations

from typing import Optional
from unittest.mock import MagicMock, patch

import pytest

from bookbite.exceptions import CacheError, ServerError
from bookbite.hooks import CacheWriteOutcome, Hook, HookContext, HookRunner


class _HeaderHook(Hook):
    def __init__(self, name: str, value: str) -> None:
        self.name = name
        self.value = value

    def on_pre_request(self, ctx: HookContext) -> Optional[dict[str, str]]:
        return {**ctx.headers, self.name: self.value}


class _Recorder(Hook):
    def __init__(self) -> None:
        self.events: list[tuple] = []

    def on_post_response(self, ctx: HookContext) -> None:
        self.events.append(("response", ctx.status_code))

    def on_error(self, error: Exception) -> None:
        self.events.append(("error", error))

    def on_cache_write(self, category, key, outcome, error=None) -> None:  # type: ignore[no-untyped-def]
        self.events.append(("cache", category, key, outcome, error))


class _Broken(Hook):
    def on_post_response(self, ctx: HookContext) -> None:
        raise RuntimeError("observer bug")

    def on_error(self, error: Exception) -> None:
        raise RuntimeError("observer bug")

    def on_cache_write(self, category, key, outcome, error=None) -> None:  # type: ignore[no-untyped-def]
        raise RuntimeError("observer bug")


class TestPreRequest:
    def test_headers_thread_through_chain(self) -> None:
        runner = HookRunner([_HeaderHook("X-Request-Id", "r1"), _HeaderHook("X-Trace", "t1")])
        ctx = runner.run_pre_request(HookContext(headers={"Accept": "application/json"}))
        assert ctx.headers == {
            "Accept": "application/json",
            "X-Request-Id": "r1",
            "X-Trace": "t1",
        }

    def test_none_keeps_headers(self) -> None:
        ctx = HookRunner([Hook()]).run_pre_request(HookContext(headers={"A": "1"}))
        assert ctx.headers == {"A": "1"}

    def test_pre_request_failures_propagate(self) -> None:
        hook = Hook()
        hook.on_pre_request = MagicMock(side_effect=ValueError("bad header"))  # type: ignore[method-assign]
        with pytest.raises(ValueError, match="bad header"):
            HookRunner([hook]).run_pre_request(HookContext())


class TestObservers:
    def test_callbacks_in_registration_order(self) -> None:
        first, second = _Recorder(), _Recorder()
        runner = HookRunner([first, second])
        error = ServerError(500)

        runner.run_post_response(HookContext(status_code=200))
        runner.run_error(error)
        runner.run_cache_write("book", "1", CacheWriteOutcome.WRITTEN)

        expected = [
            ("response", 200),
            ("error", error),
            ("cache", "book", "1", CacheWriteOutcome.WRITTEN, None),
        ]
        assert first.events == expected
        assert second.events == expected

    def test_cache_failure_carries_error(self) -> None:
        recorder = _Recorder()
        failure = CacheError("disk full")
        HookRunner([recorder]).run_cache_write("summary", "7", CacheWriteOutcome.FAILED, failure)
        assert recorder.events == [("cache", "summary", "7", CacheWriteOutcome.FAILED, failure)]

    def test_broken_observer_is_reported_not_raised(self) -> None:
        recorder = _Recorder()
        output = MagicMock()
        runner = HookRunner([_Broken(), recorder])
        with patch("bookbite.hooks.get_output", return_value=output):
            runner.run_post_response(HookContext(status_code=204))
            runner.run_error(ServerError(502))
            runner.run_cache_write("books", "books", CacheWriteOutcome.SKIPPED)
        assert output.warning.call_count == 3
        assert "observer bug" in output.warning.call_args[0][0]
        assert len(recorder.events) == 3

    def test_runner_snapshots_hook_list(self) -> None:
        hooks: list[Hook] = []
        runner = HookRunner(hooks)
        recorder = _Recorder()
        hooks.append(recorder)
        runner.run_error(ServerError(500))
        assert recorder.events == []
