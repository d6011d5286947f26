"""Whole-document commands: import, export, show, validate, reset, refs.

These are registered directly on the root app (``apibldr import ...``)
rather than as a sub-command group.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from apibldr.commands import open_workspace
from apibldr.output import get_output, info, print_issues, success, suggest, warning


def import_command(
    ctx: typer.Context,
    source: str = typer.Argument(help="File path, http(s) URL, or '-' for stdin."),
) -> None:
    """Replace the workspace document with an imported one.

    The document is parsed as JSON or YAML and validated. Any blocking
    issue rejects the import and leaves the workspace untouched.

    Example::

        apibldr import openapi.yaml
        curl -s https://example.com/openapi.json | apibldr import -
    """
    from apibldr.exceptions import ImportRejectedError

    with open_workspace(ctx) as ws:
        try:
            issues = ws.import_source(source)
        except ImportRejectedError as exc:
            print_issues(exc.issues)
            raise
        print_issues(issues)
        success(f"Imported '{ws.document.info.title}' ({len(ws.document.paths)} paths)")


def export_command(
    ctx: typer.Context,
    fmt: str = typer.Option("yaml", "--format", help="Export format: yaml or json."),
    output_file: Optional[Path] = typer.Option(None, "-o", "--output", help="Write to a file instead of stdout."),
) -> None:
    """Export the workspace document.

    Validation issues are reported on stderr but never block the export.

    Example::

        apibldr export --format json -o openapi.json
    """
    with open_workspace(ctx) as ws:
        text = ws.export(fmt)
        print_issues(ws.controller.issues)
    if output_file is not None:
        output_file.write_text(text, encoding="utf-8")
        success(f"Wrote {output_file}")
    else:
        get_output().print_data(text)


def show_command(ctx: typer.Context) -> None:
    """Show the workspace document (highlighted YAML, or JSON with ``--json``)."""
    from apibldr.output import OutputFormat

    output = get_output()
    with open_workspace(ctx) as ws:
        if output.format == OutputFormat.JSON:
            output.print_data(ws.export("json"))
        else:
            output.print_document(ws.export("yaml"), "yaml")


def validate_command(ctx: typer.Context) -> None:
    """Validate the workspace document; exits 1 when blocking issues exist."""
    from apibldr.exit_codes import EXIT_GENERIC_FAILURE
    from apibldr.validator import blocking_issues

    with open_workspace(ctx) as ws:
        issues = ws.validate()
    print_issues(issues)
    if blocking_issues(issues):
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)
    if issues:
        success(f"Valid with {len(issues)} warning(s).")
    else:
        success("Document is valid.")


def reset_command(ctx: typer.Context) -> None:
    """Discard the workspace document and start over from the default.

    Asks for confirmation unless ``--force`` is active.
    """
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Discard the current document?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    with open_workspace(ctx) as ws:
        ws.reset()
    success("Workspace reset to the default document.")


def refs_command(
    ctx: typer.Context,
    kind: str = typer.Argument("schemas", help="Component kind: schemas or responses."),
) -> None:
    """List the component references available to ``$ref`` slots."""
    from apibldr.exceptions import InvalidUsageError
    from apibldr.references import ComponentKind

    try:
        component_kind = ComponentKind(kind)
    except ValueError:
        raise InvalidUsageError(f"Unknown component kind '{kind}'. Use schemas or responses.") from None

    with open_workspace(ctx) as ws:
        targets = ws.references(component_kind)

    if not targets:
        warning(f"No {component_kind.value} defined.")
        suggest("Add one with: apibldr schema add NAME --file schema.yaml")
        return
    get_output().print_table(
        ["Name", "Source", "Reference"],
        [[t.name, t.source_label, t.ref] for t in targets],
        title=f"Referenceable {component_kind.value} ({len(targets)})",
    )
