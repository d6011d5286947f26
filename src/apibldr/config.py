"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for apibldr:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apibldr/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir` and :func:`get_workspaces_dir`.
* **Global config** -- A single :class:`~apibldr.models.GlobalConfig` JSON
  file storing defaults (store backend, debounce delay, output format,
  default workspace).
* **Workspaces** -- One directory per named workspace under the data
  directory, holding the persisted document sections. See
  :func:`workspace_dir`, :func:`list_workspaces` and :func:`open_store`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  effective configuration.

Config file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import re
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from apibldr.exceptions import ConfigError
from apibldr.models import GlobalConfig

if TYPE_CHECKING:
    from apibldr.store.backends import SectionStore

_APP_NAME = "apibldr"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "apibldr.json"

DEFAULT_WORKSPACE = "default"

ENV_WORKSPACE = "APIBLDR_WORKSPACE"
ENV_STORE = "APIBLDR_STORE"

_WORKSPACE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/apibldr/`` (default ``~/.config/apibldr/``).
    On macOS/Windows: ``~/.apibldr/``.
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (workspaces, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/apibldr/`` (default ``~/.local/share/apibldr/``).
    On macOS/Windows: ``~/.apibldr/data/``.
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_workspaces_dir() -> Path:
    """Return ``<data_dir>/workspaces/``, creating it if necessary."""
    path = get_data_dir() / "workspaces"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
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
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
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
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~apibldr.models.GlobalConfig`, or a default
        instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(config: GlobalConfig, key: str, value: str) -> GlobalConfig:
    """Return a copy of *config* with the dotted *key* set to *value*.

    The string *value* is coerced to the type of the current field (bool,
    int or str) and the result is validated.

    Raises:
        ConfigError: If the key does not exist or the value does not
            validate.
    """
    data = config.model_dump(mode="json")
    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            raise ConfigError(f"Invalid config key: {key}")
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        raise ConfigError(f"Unknown config key: {key}")

    current = target[final_key]
    coerced: Any = value
    if isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            raise ConfigError(f"Expected integer for {key}, got: {value}") from None
    target[final_key] = coerced

    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid value for {key}: {exc}") from exc


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./apibldr.json``.

    Project-local config sits between global config and environment variables
    in the precedence chain. It typically sets ``default_workspace`` so that
    a repository can pin which workspace its document lives in.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
        return json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_config(
    cli_workspace: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> tuple[GlobalConfig, str]:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_workspace``, ``cli_format``)
        2. Environment variables (``APIBLDR_WORKSPACE``, ``APIBLDR_STORE``)
        3. Project config (``./apibldr.json``)
        4. User config (``~/.config/apibldr/config.json``)
        5. Defaults

    Returns:
        A tuple of ``(global_config, workspace_name)``.
    """
    global_cfg = load_global_config()

    workspace = global_cfg.default_workspace or DEFAULT_WORKSPACE

    project = load_project_config()
    if project is not None and project.get("default_workspace"):
        workspace = str(project["default_workspace"])

    env_workspace = os.environ.get(ENV_WORKSPACE)
    if env_workspace:
        workspace = env_workspace

    if cli_workspace is not None:
        workspace = cli_workspace

    env_store = os.environ.get(ENV_STORE)
    if env_store:
        global_cfg.store.backend = env_store

    if cli_format is not None:
        global_cfg.output.format = cli_format

    return global_cfg, workspace


# --- Workspaces ---


def workspace_dir(name: str) -> Path:
    """Return the directory of workspace *name* (not created).

    Raises:
        ConfigError: If *name* is not a valid workspace name.
    """
    if not _WORKSPACE_NAME_RE.match(name):
        raise ConfigError(
            f"Invalid workspace name '{name}'. Use letters, digits, '.', '_' and '-'."
        )
    return get_workspaces_dir() / name


def list_workspaces() -> list[str]:
    """Return all workspace names found on disk, sorted alphabetically."""
    return sorted(p.name for p in get_workspaces_dir().iterdir() if p.is_dir())


def open_store(config: GlobalConfig, workspace: str) -> SectionStore:
    """Open the section store of *workspace* using the configured backend.

    Raises:
        ConfigError: If the configured backend is unknown.
    """
    from apibldr.store.backends import BACKENDS, DiskCacheStore, FileStore, MemoryStore

    backend = config.store.backend
    if backend not in BACKENDS:
        raise ConfigError(
            f"Unknown store backend '{backend}'. Choose one of: {', '.join(sorted(BACKENDS))}"
        )
    if backend == "memory":
        return MemoryStore()
    directory = workspace_dir(workspace)
    if backend == "diskcache":
        return DiskCacheStore(directory / "cache")
    return FileStore(directory)
