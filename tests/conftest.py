"""Shared test fixtures for bookbite.

Provides an isolated config/cache environment and resets the global
output state between tests. These fixtures are automatically discovered
by pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from bookbite.output import OutputManager, reset_output, set_output

_BOOKBITE_ENV = (
    "BOOKBITE_SERVER_URL",
    "BOOKBITE_AUTH_TOKEN",
    "BOOKBITE_DATA_SOURCE",
    "BOOKBITE_CACHE_DIR",
    "BOOKBITE_VERBOSE",
)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet_output_between_tests() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards.

    Tests that assert on diagnostics install their own manager or patch
    ``get_output``.
    """
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Isolated environment
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG dirs and the working directory at *tmp_path*.

    Clears every ``BOOKBITE_*`` variable so the host environment cannot
    leak into config resolution. Returns *tmp_path*.
    """
    monkeypatch.setattr("bookbite.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    for name in _BOOKBITE_ENV:
        monkeypatch.delenv(name, raising=False)
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return tmp_path
