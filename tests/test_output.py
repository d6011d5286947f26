"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- print_table / print_mapping / print_document in each format
- Validation issue reporting
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from apibldr import output as output_module
from apibldr.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)
from apibldr.validator import ValidationIssue


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("apibldr.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("apibldr.output._is_tty", lambda: True)


@pytest.fixture()
def clean_env(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("TERM", raising=False)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    """Test that AUTO format resolves correctly based on environment."""

    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, clean_env):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_tty_but_no_color(self, tty, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty, clean_env):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON

    def test_explicit_rich_stays_rich(self, non_tty):
        assert OutputManager(format=OutputFormat.RICH).format == OutputFormat.RICH


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False

    def test_no_color_flag_overrides(self, tty, clean_env):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    """Data goes to stdout, diagnostics go to stderr."""

    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello world\n")
        captured = capfd.readouterr()
        assert captured.out == "hello world\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("diagnostic text")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "diagnostic text" in captured.err

    def test_error_prefix_in_no_color(self, capfd, non_tty):
        OutputManager(no_color=True).error("boom")
        assert capfd.readouterr().err == "Error: boom\n"


class TestQuietAndVerbose:
    @pytest.mark.parametrize("method", ["info", "success", "suggest"])
    def test_quiet_suppresses(self, capfd, non_tty, method):
        mgr = OutputManager(no_color=True, quiet=True)
        getattr(mgr, method)("hidden")
        assert capfd.readouterr().err == ""

    @pytest.mark.parametrize("method", ["warning", "error"])
    def test_quiet_keeps_problems(self, capfd, non_tty, method):
        mgr = OutputManager(no_color=True, quiet=True)
        getattr(mgr, method)("shown")
        assert "shown" in capfd.readouterr().err

    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(no_color=True).debug("trace")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, verbose=True)
        assert mgr.is_verbose
        mgr.debug("trace")
        assert capfd.readouterr().err == "[debug] trace\n"


# ------------------------------------------------------------------ #
# Structured data
# ------------------------------------------------------------------ #


class TestPrintTable:
    headers = ["Name", "Source"]
    rows = [["Pet", "schemas"], ["Error", "responses"]]

    def test_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(self.headers, self.rows)
        assert json.loads(capfd.readouterr().out) == [
            {"Name": "Pet", "Source": "schemas"},
            {"Name": "Error", "Source": "responses"},
        ]

    def test_plain(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(self.headers, self.rows)
        assert capfd.readouterr().out == "Name\tSource\nPet\tschemas\nError\tresponses\n"

    def test_rich(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(
            self.headers, self.rows, title="References"
        )
        out = capfd.readouterr().out
        assert "References" in out
        assert "Pet" in out


class TestPrintMapping:
    def test_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_mapping({"sync.debounce_ms": 300})
        assert json.loads(capfd.readouterr().out) == {"sync.debounce_ms": 300}

    def test_plain(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_mapping({"a": 1, "b": "x"})
        assert capfd.readouterr().out == "a\t1\nb\tx\n"


class TestPrintDocument:
    def test_plain_is_verbatim(self, capfd, non_tty):
        text = "openapi: 3.1.0\ninfo:\n  title: T\n"
        OutputManager(format=OutputFormat.PLAIN).print_document(text)
        assert capfd.readouterr().out == text


class TestPrintIssues:
    def test_errors_and_warnings(self, capfd, non_tty):
        issues = [
            ValidationIssue(message="Missing required field: info.title", location="info.title"),
            ValidationIssue(message="Reference dangles", severity="warning"),
        ]
        OutputManager(no_color=True).print_issues(issues)
        captured = capfd.readouterr()
        assert captured.out == ""
        assert captured.err == (
            "Error: Missing required field: info.title\nWarning: Reference dangles\n"
        )


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_output(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr

    def test_reset_output(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        reset_output()
        assert get_output() is not mgr

    def test_convenience_functions_delegate(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.print_data("data")
        output_module.warning("careful")
        captured = capfd.readouterr()
        assert captured.out == "data\n"
        assert captured.err == "Warning: careful\n"
