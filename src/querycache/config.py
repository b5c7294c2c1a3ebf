"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for querycache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.querycache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~querycache.models.GlobalConfig`
  JSON file storing cache, storage, request and output defaults.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`), which the file-backed storage primitive reuses for
collection writes.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from querycache.exceptions import ConfigError
from querycache.models import GlobalConfig

_APP_NAME = "querycache"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "querycache.json"

ENV_COLLECTION = "QUERYCACHE_COLLECTION"
ENV_TTL = "QUERYCACHE_TTL"
ENV_STORAGE = "QUERYCACHE_STORAGE"
ENV_BASE_URL = "QUERYCACHE_BASE_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/querycache/`` (default ``~/.config/querycache/``).
    On macOS/Windows: ``~/.querycache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Default home of the persistent collections. Its contents can be deleted
    at any time; the next query simply misses.

    On Linux/BSD: ``$XDG_CACHE_HOME/querycache/`` (default ``~/.cache/querycache/``).
    On macOS/Windows: ``~/.querycache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/querycache/`` (default ``~/.local/share/querycache/``).
    On macOS/Windows: ``~/.querycache/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


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
        fd = None  # prevent double-close below
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


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~querycache.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


def reset_global_config() -> None:
    """Delete the global config file so defaults apply again."""
    path = _global_config_path()
    if path.is_file():
        path.unlink()


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local overrides from ``./querycache.json``.

    The file holds a partial :class:`~querycache.models.GlobalConfig`, for
    example ``{"cache": {"collection_key": "my-app"}}``, so that a
    repository can pin its own collection and TTL.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return *base* with *override* merged in, recursing into nested dicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def resolve_config(
    cli_collection: Optional[str] = None,
    cli_ttl: Optional[int] = None,
    cli_storage: Optional[str] = None,
    cli_base_url: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_collection``, ``cli_ttl``, ``cli_storage``, ``cli_base_url``)
        2. Environment variables (``QUERYCACHE_COLLECTION``, ``QUERYCACHE_TTL``,
           ``QUERYCACHE_STORAGE``, ``QUERYCACHE_BASE_URL``)
        3. Project config (``./querycache.json``)
        4. User config (``~/.config/querycache/config.json``)
        5. Defaults

    Returns:
        The effective :class:`~querycache.models.GlobalConfig`.

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    # 5 + 4
    data = load_global_config().model_dump(mode="json")

    # 3
    project = load_project_config()
    if project is not None:
        data = _deep_merge(data, project)

    # 2
    env_collection = os.environ.get(ENV_COLLECTION)
    if env_collection:
        data["cache"]["collection_key"] = env_collection
    env_ttl = os.environ.get(ENV_TTL)
    if env_ttl:
        try:
            data["cache"]["ttl_seconds"] = int(env_ttl)
        except ValueError as exc:
            raise ConfigError(f"{ENV_TTL} must be an integer, got {env_ttl!r}") from exc
    env_storage = os.environ.get(ENV_STORAGE)
    if env_storage:
        data["storage"]["backend"] = env_storage
    env_base_url = os.environ.get(ENV_BASE_URL)
    if env_base_url:
        data["request"]["base_url"] = env_base_url

    # 1
    if cli_collection is not None:
        data["cache"]["collection_key"] = cli_collection
    if cli_ttl is not None:
        data["cache"]["ttl_seconds"] = cli_ttl
    if cli_storage is not None:
        data["storage"]["backend"] = cli_storage
    if cli_base_url is not None:
        data["request"]["base_url"] = cli_base_url

    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
