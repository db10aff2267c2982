"""Tests for Container wiring, lifecycle and cache pruning."""

from __future__ import annotations

import asyncio
import os
import time
from pathlib import Path
from typing import Any, Optional
from unittest.mock import MagicMock, patch

import httpx
import pytest

from bookbite.cache import CacheCategory
from bookbite.chat import LocalChatRepository, RemoteChatRepository
from bookbite.container import Container
from bookbite.exceptions import CacheError
from bookbite.hooks import CacheWriteOutcome, Hook
from bookbite.models import Book, CacheConfig, ClientConfig, DataSource
from bookbite.output import OutputManager, get_output
from bookbite.repository import (
    HybridBookRepository,
    LocalBookRepository,
    RemoteBookRepository,
)


def _config(
    tmp_path: Path,
    data_source: DataSource = DataSource.REMOTE,
    enabled: bool = True,
    **cache: Any,
) -> ClientConfig:
    return ClientConfig(
        base_url="http://test.local/api",
        data_source=data_source,
        cache=CacheConfig(enabled=enabled, directory=str(tmp_path / "responses"), **cache),
    )


def _quiet() -> OutputManager:
    return OutputManager(no_color=True, quiet=True)


def _transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "1", "title": "Meditations"})

    return httpx.MockTransport(handler)


class TestWiring:
    def test_remote(self, tmp_path: Path) -> None:
        container = Container(_config(tmp_path), output=_quiet())
        assert isinstance(container.books, RemoteBookRepository)
        assert isinstance(container.chat, RemoteChatRepository)
        assert container.cache is not None
        assert container.cache.directory == tmp_path / "responses"

    def test_local(self, tmp_path: Path) -> None:
        container = Container(_config(tmp_path, DataSource.LOCAL), output=_quiet())
        assert isinstance(container.books, LocalBookRepository)
        assert isinstance(container.chat, LocalChatRepository)

    def test_hybrid(self, tmp_path: Path) -> None:
        container = Container(_config(tmp_path, DataSource.HYBRID), output=_quiet())
        assert isinstance(container.books, HybridBookRepository)
        assert isinstance(container.chat, RemoteChatRepository)

    def test_cache_disabled(self, tmp_path: Path) -> None:
        container = Container(_config(tmp_path, enabled=False), output=_quiet())
        assert container.cache is None
        assert not (tmp_path / "responses").exists()

    def test_output_installed(self, tmp_path: Path) -> None:
        output = _quiet()
        container = Container(_config(tmp_path), output=output)
        assert container.output is output
        assert get_output() is output

    def test_config_loaded_from_environment(
        self, isolated_env: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BOOKBITE_DATA_SOURCE", "LOCAL")
        monkeypatch.setenv("BOOKBITE_CACHE_DIR", str(isolated_env / "env-cache"))
        container = Container(output=_quiet())
        assert container.config.data_source is DataSource.LOCAL
        assert container.cache.directory == isolated_env / "env-cache"


class TestLifecycle:
    def test_context_manager_opens_client(self, tmp_path: Path) -> None:
        class _Writes(Hook):
            def __init__(self) -> None:
                self.outcomes: list[CacheWriteOutcome] = []

            def on_cache_write(self, category, key, outcome, error=None) -> None:  # type: ignore[no-untyped-def]
                self.outcomes.append(outcome)

        hook = _Writes()

        async def main() -> Optional[Book]:
            async with Container(
                _config(tmp_path), hooks=[hook], transport=_transport(), output=_quiet()
            ) as services:
                return await services.books.fetch_book("1")

        book = asyncio.run(main())
        assert book.title == "Meditations"
        assert hook.outcomes == [CacheWriteOutcome.WRITTEN]

    def test_exit_clears_search(self, tmp_path: Path) -> None:
        async def main() -> Container:
            async with Container(
                _config(tmp_path), transport=_transport(), output=_quiet()
            ) as services:
                services.search.query = "pending"
            return services

        assert asyncio.run(main()).search.query == ""


class TestPruning:
    def test_enter_sweeps_expired_entries(self, tmp_path: Path) -> None:
        config = _config(tmp_path, expiration_days=7)
        container = Container(config, transport=_transport(), output=_quiet())
        container.cache.put(CacheCategory.SINGLE_BOOK, Book(id="old", title="Old"), key="old")
        container.cache.put(CacheCategory.SINGLE_BOOK, Book(id="new", title="New"), key="new")
        past = time.time() - 30 * 24 * 3600
        os.utime(container.cache.path_for(CacheCategory.SINGLE_BOOK, "old"), (past, past))

        async def main() -> None:
            async with container:
                pass

        asyncio.run(main())
        assert not container.cache.contains(CacheCategory.SINGLE_BOOK, "old")
        assert container.cache.contains(CacheCategory.SINGLE_BOOK, "new")

    def test_size_limit_applied(self, tmp_path: Path) -> None:
        container = Container(_config(tmp_path, max_size_mb=0), output=_quiet())
        container.cache.put(CacheCategory.BOOK_LIST, [Book(id="1", title="T")])
        assert container.prune_cache() == 1
        assert container.cache.entry_count() == 0

    def test_removal_reported_unless_quiet(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        container = Container(
            _config(tmp_path, max_size_mb=0), output=OutputManager(no_color=True)
        )
        container.cache.put(CacheCategory.BOOK_LIST, [Book(id="1", title="T")])
        container.prune_cache()
        assert "Pruned 1 cache entries" in capsys.readouterr().err

        quiet = Container(_config(tmp_path, max_size_mb=0), output=_quiet())
        quiet.cache.put(CacheCategory.BOOK_LIST, [Book(id="1", title="T")])
        assert quiet.prune_cache() == 1
        assert capsys.readouterr().err == ""

    def test_no_cache_is_noop(self, tmp_path: Path) -> None:
        container = Container(_config(tmp_path, enabled=False), output=_quiet())
        assert container.prune_cache() == 0

    def test_failure_warns(self, tmp_path: Path) -> None:
        output = MagicMock()
        container = Container(_config(tmp_path), output=_quiet())
        with patch("bookbite.container.get_output", return_value=output), patch.object(
            container.cache, "sweep_older_than", side_effect=CacheError("permission denied")
        ):
            assert container.prune_cache() == 0
        output.warning.assert_called_once()
        assert "permission denied" in output.warning.call_args[0][0]
