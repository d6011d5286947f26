"""Typer application and CLI entry point for apibldr.

This module wires together the top-level Typer application: the global
options handled by :func:`main_callback`, the whole-document commands
(``import``, ``export``, ``show``, ``validate``, ``reset``, ``refs``) and the
section editing groups (``info``, ``server``, ``path``, ``op``, ``schema``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. :class:`~apibldr.exceptions.ApibldrError` exits with its
own exit code; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`apibldr.config`: Workspace and global configuration resolution.
    :mod:`apibldr.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from apibldr import __version__
from apibldr.commands.config import config_app
from apibldr.commands.document import (
    export_command,
    import_command,
    refs_command,
    reset_command,
    show_command,
    validate_command,
)
from apibldr.commands.edit import info_app, op_app, path_app, schema_app, server_app
from apibldr.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="apibldr",
    help="Build and edit OpenAPI 3.1 documents section by section.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

app.command("import")(import_command)
app.command("export")(export_command)
app.command("show")(show_command)
app.command("validate")(validate_command)
app.command("reset")(reset_command)
app.command("refs")(refs_command)

app.add_typer(info_app, name="info", help="Edit the info section.")
app.add_typer(server_app, name="server", help="Manage servers.")
app.add_typer(path_app, name="path", help="Manage paths.")
app.add_typer(op_app, name="op", help="Manage operations.")
app.add_typer(schema_app, name="schema", help="Manage reusable schemas.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"apibldr {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    workspace: Optional[str] = typer.Option(
        None, "--workspace", "-w", help="Workspace name to use."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~apibldr.output.OutputManager` and the
    logging level from CLI flags, and stores shared options (``workspace``,
    ``force``) in ``ctx.obj`` for the sub-commands.
    """
    from apibldr.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    ctx.ensure_object(dict)
    ctx.obj["workspace"] = workspace
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from apibldr.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``apibldr`` console script.

    Unhandled :class:`~apibldr.exceptions.ApibldrError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        exit_code = app(standalone_mode=False)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        import click

        from apibldr.exceptions import ApibldrError
        from apibldr.output import error

        if isinstance(exc, ApibldrError):
            error(str(exc))
            sys.exit(exc.exit_code)
        if isinstance(exc, click.exceptions.ClickException):
            exc.show()
            sys.exit(exc.exit_code)
        if isinstance(exc, click.exceptions.Abort):
            sys.stderr.write("\nCancelled.\n")
            sys.exit(130)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
    # typer.Exit codes are returned, not raised, outside standalone mode
    sys.exit(exit_code if isinstance(exit_code, int) else 0)
