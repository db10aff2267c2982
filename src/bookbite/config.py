"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for bookbite:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.bookbite/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_cache_dir`.
* **User config** -- A single :class:`~bookbite.models.ClientConfig` JSON
  file storing defaults (server URL, timeouts, cache settings).
* **Precedence resolution** -- :func:`load_client_config` merges explicit
  overrides, environment variables, project-local config, and user config
  into the effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`), which the response cache reuses for its entries.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from bookbite.exceptions import ConfigError
from bookbite.models import ClientConfig

_APP_NAME = "bookbite"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "bookbite.json"

_TRUTHY = {"1", "true", "yes", "on"}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses XDG base directories (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/bookbite/`` (default ``~/.config/bookbite/``).
    On macOS/Windows: ``~/.bookbite/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Cached data can be safely deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/bookbite/`` (default ``~/.cache/bookbite/``).
    On macOS/Windows: ``~/.bookbite/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def resolve_cache_root(config: ClientConfig) -> Path:
    """Return the directory the response cache should live in for *config*."""
    if config.cache.directory:
        return Path(config.cache.directory).expanduser()
    return get_cache_dir() / "responses"


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up and the original exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config files ---


def _user_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json_object(path: Path, label: str) -> Optional[dict[str, Any]]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} at {path}: expected a JSON object")
    return data


def load_user_config() -> Optional[dict[str, Any]]:
    """Load the raw user config from ``<config dir>/config.json``, if present."""
    return _read_json_object(_user_config_path(), "user config")


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./bookbite.json``, if present.

    Project config sits between the user file and environment variables in
    the precedence chain; it typically pins ``base_url`` for a checkout.
    """
    return _read_json_object(Path.cwd() / _PROJECT_CONFIG_FILENAME, "project config")


def save_client_config(config: ClientConfig) -> None:
    """Persist *config* atomically as the user config file."""
    data = config.model_dump(mode="json", exclude_none=True)
    atomic_write(_user_config_path(), json.dumps(data, indent=2) + "\n")


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_overrides() -> dict[str, Any]:
    """Collect ``BOOKBITE_*`` environment variables into a config fragment."""
    data: dict[str, Any] = {}
    server_url = os.environ.get("BOOKBITE_SERVER_URL")
    if server_url:
        data["base_url"] = server_url
    token = os.environ.get("BOOKBITE_AUTH_TOKEN")
    if token:
        data["auth_token"] = token
    data_source = os.environ.get("BOOKBITE_DATA_SOURCE")
    if data_source:
        data["data_source"] = data_source.lower()
    cache_dir = os.environ.get("BOOKBITE_CACHE_DIR")
    if cache_dir:
        data["cache"] = {"directory": cache_dir}
    verbose = os.environ.get("BOOKBITE_VERBOSE")
    if verbose is not None:
        data["verbose"] = verbose.strip().lower() in _TRUTHY
    return data


def load_client_config(overrides: Optional[dict[str, Any]] = None) -> ClientConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. Explicit ``overrides`` (nested dicts merge field by field)
        2. Environment variables (``BOOKBITE_SERVER_URL``,
           ``BOOKBITE_AUTH_TOKEN``, ``BOOKBITE_DATA_SOURCE``,
           ``BOOKBITE_CACHE_DIR``, ``BOOKBITE_VERBOSE``)
        3. Project config (``./bookbite.json``)
        4. User config (``~/.config/bookbite/config.json``)
        5. Defaults

    Raises:
        ConfigError: If a config file is not valid JSON or the merged values
            fail validation.
    """
    merged: dict[str, Any] = {}
    for layer in (
        load_user_config(),
        load_project_config(),
        _env_overrides(),
        overrides,
    ):
        if layer:
            merged = _deep_merge(merged, layer)
    try:
        return ClientConfig.model_validate(merged)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
