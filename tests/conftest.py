"""Shared test fixtures for apibldr.

Provides reusable fixtures for loading document fixtures, creating isolated
config environments, driving the synchronization controller on a virtual
clock, managing output state, and running CLI commands. These fixtures are
automatically discovered by pytest and available to all test modules without
explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from apibldr.models import Document
from apibldr.output import OutputFormat, OutputManager, reset_output, set_output
from apibldr.store.backends import MemoryStore
from apibldr.sync.scheduler import ManualScheduler


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Raw document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_text() -> str:
    """The petstore fixture as YAML text."""
    return (FIXTURES_DIR / "petstore.yaml").read_text(encoding="utf-8")


@pytest.fixture
def petstore_raw(petstore_text: str) -> dict[str, Any]:
    """The petstore fixture parsed into a plain dict."""
    return yaml.safe_load(petstore_text)


@pytest.fixture
def minimal_raw() -> dict[str, Any]:
    """Load the minimal single-path document."""
    with open(FIXTURES_DIR / "minimal.json") as f:
        return json.load(f)


@pytest.fixture
def petstore_document(petstore_raw: dict[str, Any]) -> Document:
    """The petstore fixture as a canonical document."""
    return Document.from_dict(petstore_raw)


@pytest.fixture
def minimal_document(minimal_raw: dict[str, Any]) -> Document:
    return Document.from_dict(minimal_raw)


# ---------------------------------------------------------------------------
# Store and scheduler fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    """A virtual clock; advance it explicitly to fire debounce timers."""
    return ManualScheduler()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config or workspaces. Clears all APIBLDR_* environment variables,
    forces the XDG layout, and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    config_dir = tmp_path / "config"
    cache_dir = tmp_path / "cache"
    data_dir = tmp_path / "data"

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))
    monkeypatch.setenv("XDG_DATA_HOME", str(data_dir))
    monkeypatch.setattr("apibldr.config._is_xdg_platform", lambda: True)

    for var in ["APIBLDR_WORKSPACE", "APIBLDR_STORE"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Set up a quiet output manager for tests that don't care about output.

    Installs a PLAIN-format, quiet OutputManager as the global output
    and resets it after the test completes.
    """
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Set up JSON output for tests that check JSON-formatted output.

    Installs a JSON-format OutputManager as the global output
    and resets it after the test completes.
    """
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
