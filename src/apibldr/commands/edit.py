"""Section editing commands -- info, servers, paths, operations, schemas.

Each command builds a small mutator function and hands it to
:meth:`~apibldr.workspace.Workspace.edit`, so the CLI goes through exactly
the same synchronization path as any other editing surface. Closing the
workspace at the end of the command flushes the edited section.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer

from apibldr.commands import open_workspace
from apibldr.editing.state import (
    RESPONSE_TEMPLATES,
    EditableComponents,
    EditableInfo,
    EditableList,
    EditableMediaType,
    EditablePath,
    EditableResponse,
    EditableServer,
    new_operation,
    new_response,
    response_from_template,
)
from apibldr.editing.transform import component_schema_from_yaml, normalize_path
from apibldr.exceptions import InvalidUsageError
from apibldr.models import HTTP_METHODS
from apibldr.output import get_output, print_issues, success, warning
from apibldr.references import build_ref

if TYPE_CHECKING:
    from apibldr.workspace import Workspace

info_app = typer.Typer(no_args_is_help=True)
server_app = typer.Typer(no_args_is_help=True)
path_app = typer.Typer(no_args_is_help=True)
op_app = typer.Typer(no_args_is_help=True)
schema_app = typer.Typer(no_args_is_help=True)


def _report(ws: Workspace) -> None:
    """Show the issues of the freshly flushed document."""
    ws.flush()
    print_issues(ws.controller.issues)


# ------------------------------------------------------------------ #
# info
# ------------------------------------------------------------------ #


@info_app.command("set")
def info_set(
    ctx: typer.Context,
    title: Optional[str] = typer.Option(None, "--title", help="API title."),
    version: Optional[str] = typer.Option(None, "--version", help="API version."),
    description: Optional[str] = typer.Option(None, "--description", help="API description."),
    terms: Optional[str] = typer.Option(None, "--terms", help="Terms of service (a URL)."),
    contact_name: Optional[str] = typer.Option(None, "--contact-name"),
    contact_url: Optional[str] = typer.Option(None, "--contact-url"),
    contact_email: Optional[str] = typer.Option(None, "--contact-email"),
    license_name: Optional[str] = typer.Option(None, "--license-name"),
    license_url: Optional[str] = typer.Option(None, "--license-url"),
) -> None:
    """Set fields of the info section. Pass an empty string to clear a field.

    Example::

        apibldr info set --title "Petstore" --version 2.0.0 --contact-email api@example.com
    """
    changes = {
        "title": title,
        "version": version,
        "description": description,
        "terms_of_service": terms,
        "contact_name": contact_name,
        "contact_url": contact_url,
        "contact_email": contact_email,
        "license_name": license_name,
        "license_url": license_url,
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        raise InvalidUsageError("Nothing to set. Pass at least one option, e.g. --title.")

    def mutate(record: EditableInfo) -> None:
        for key, value in changes.items():
            setattr(record, key, value)

    with open_workspace(ctx) as ws:
        ws.edit("info", mutate)
        _report(ws)
    success(f"Updated info: {', '.join(sorted(changes))}")


# ------------------------------------------------------------------ #
# servers
# ------------------------------------------------------------------ #


@server_app.command("add")
def server_add(
    ctx: typer.Context,
    url: str = typer.Argument(help="Server URL, may contain {variables}."),
    description: str = typer.Option("", "--description", "-d", help="Server description."),
) -> None:
    """Add a server."""
    with open_workspace(ctx) as ws:
        ws.edit("servers", lambda servers: servers.add(EditableServer(url=url, description=description)))
        _report(ws)
    success(f"Added server {url}")


@server_app.command("remove")
def server_remove(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL of the server to remove."),
) -> None:
    """Remove the first server with the given URL."""

    def mutate(servers: EditableList[EditableServer]) -> None:
        record = servers.find(url)
        if record is None:
            raise InvalidUsageError(f"No server with URL '{url}'")
        servers.pop_id(record.id)

    with open_workspace(ctx) as ws:
        ws.edit("servers", mutate)
    success(f"Removed server {url}")


@server_app.command("list")
def server_list(ctx: typer.Context) -> None:
    """List servers."""
    with open_workspace(ctx) as ws:
        servers = ws.document.servers
    get_output().print_table(
        ["URL", "Description"],
        [[s.url, s.description or ""] for s in servers],
        title=f"Servers ({len(servers)})",
    )


# ------------------------------------------------------------------ #
# paths and operations
# ------------------------------------------------------------------ #


@path_app.command("add")
def path_add(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path template, e.g. /users/{id}."),
    summary: str = typer.Option("", "--summary", help="Path summary."),
    description: str = typer.Option("", "--description", help="Path description."),
) -> None:
    """Add an empty path (add operations with ``apibldr op add``)."""
    key = normalize_path(path)
    if not key:
        raise InvalidUsageError("Path must not be empty")

    def mutate(paths: EditableList[EditablePath]) -> None:
        if _find_path(paths, key) is not None:
            raise InvalidUsageError(f"Path '{key}' already exists")
        paths.add(EditablePath(path=key, summary=summary, description=description))

    with open_workspace(ctx) as ws:
        ws.edit("paths", mutate)
        _report(ws)
    success(f"Added path {key}")


def _find_path(paths: EditableList[EditablePath], key: str) -> Optional[EditablePath]:
    for record in paths:
        if normalize_path(record.path) == key:
            return record
    return None


@path_app.command("remove")
def path_remove(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path to remove, with all its operations."),
) -> None:
    """Remove a path and all its operations."""
    key = normalize_path(path)

    def mutate(paths: EditableList[EditablePath]) -> None:
        record = _find_path(paths, key)
        if record is None:
            raise InvalidUsageError(f"No path '{key}'")
        paths.pop_id(record.id)

    with open_workspace(ctx) as ws:
        ws.edit("paths", mutate)
    success(f"Removed path {key}")


@path_app.command("list")
def path_list(ctx: typer.Context) -> None:
    """List paths with their operations."""
    with open_workspace(ctx) as ws:
        paths = ws.document.paths
    rows = [
        [path, " ".join(method.upper() for method in item.operations()), item.summary or ""]
        for path, item in paths.items()
    ]
    get_output().print_table(["Path", "Methods", "Summary"], rows, title=f"Paths ({len(rows)})")


def _parse_response(spec: str) -> EditableResponse:
    """Build a response record from ``CODE[:DESCRIPTION[:REF]]``.

    A bare component name as REF is expanded to ``#/components/schemas/NAME``.
    """
    code, _, rest = spec.partition(":")
    description, _, ref = rest.partition(":")
    code = code.strip()
    if not code:
        raise InvalidUsageError(f"Invalid response '{spec}'. Use CODE[:DESCRIPTION[:REF]].")
    response = new_response(code, description or "Successful operation")
    ref = ref.strip()
    if ref:
        if not ref.startswith("#"):
            ref = build_ref("schemas", ref)
        response.content = EditableList([EditableMediaType(use_reference=True, ref=ref)])
    return response


@op_app.command("add")
def op_add(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path of the operation (created if missing)."),
    method: str = typer.Argument(help="HTTP method: get, post, put, delete, patch, options, head, trace."),
    summary: str = typer.Option("", "--summary", help="Operation summary."),
    operation_id: str = typer.Option("", "--operation-id", help="Unique operationId."),
    tags: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)."),
    responses: Optional[list[str]] = typer.Option(
        None, "--response", "-r", help="Response CODE[:DESCRIPTION[:REF]] (repeatable)."
    ),
    templates: Optional[list[str]] = typer.Option(
        None, "--template", "-t", help="Response template: success, created, badRequest, notFound (repeatable)."
    ),
) -> None:
    """Add an operation to a path.

    Without ``--response`` or ``--template`` the operation gets a single
    ``200`` response.

    Example::

        apibldr op add /users get --summary "List users" -r "200:OK:User" -t notFound
    """
    key = normalize_path(path)
    method = method.lower()
    if not key:
        raise InvalidUsageError("Path must not be empty")
    if method not in HTTP_METHODS:
        raise InvalidUsageError(f"Unknown method '{method}'. Use one of: {', '.join(HTTP_METHODS)}")

    records = [_parse_response(item) for item in responses or []]
    for name in templates or []:
        if name not in RESPONSE_TEMPLATES:
            raise InvalidUsageError(
                f"Unknown response template '{name}'. Use one of: {', '.join(RESPONSE_TEMPLATES)}"
            )
        records.append(response_from_template(name))

    operation = new_operation(method, records)
    operation.summary = summary
    operation.operation_id = operation_id
    operation.tags = list(tags or [])

    def mutate(paths: EditableList[EditablePath]) -> None:
        record = _find_path(paths, key)
        if record is None:
            record = paths.add(EditablePath(path=key))
        if record.operations.find(method) is not None:
            raise InvalidUsageError(f"{method.upper()} {key} already exists")
        record.operations.add(operation)

    with open_workspace(ctx) as ws:
        ws.edit("paths", mutate)
        _report(ws)
    success(f"Added {method.upper()} {key}")


@op_app.command("remove")
def op_remove(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path of the operation."),
    method: str = typer.Argument(help="HTTP method."),
) -> None:
    """Remove one operation from a path."""
    key = normalize_path(path)
    method = method.lower()

    def mutate(paths: EditableList[EditablePath]) -> None:
        record = _find_path(paths, key)
        operation = record.operations.find(method) if record is not None else None
        if operation is None:
            raise InvalidUsageError(f"No operation {method.upper()} {key}")
        record.operations.pop_id(operation.id)

    with open_workspace(ctx) as ws:
        ws.edit("paths", mutate)
    success(f"Removed {method.upper()} {key}")


# ------------------------------------------------------------------ #
# component schemas
# ------------------------------------------------------------------ #


@schema_app.command("add")
def schema_add(
    ctx: typer.Context,
    name: str = typer.Argument(help="Component name, referenced as #/components/schemas/NAME."),
    file: Path = typer.Option(..., "--file", "-f", help="YAML or JSON file with the schema."),
    group: str = typer.Option("Common", "--group", "-g", help="Component group."),
) -> None:
    """Add or replace a reusable schema from a YAML/JSON file."""
    if not file.is_file():
        raise InvalidUsageError(f"File not found: {file}")
    record = component_schema_from_yaml(name, file.read_text(encoding="utf-8"), group)

    def mutate(components: EditableComponents) -> bool:
        existing = components.schemas.find(name)
        if existing is None:
            components.schemas.add(record)
            return False
        components.schemas[components.schemas.index_of(existing.id)] = record
        return True

    with open_workspace(ctx) as ws:
        replaced = ws.edit("components", mutate)
        _report(ws)
    success(f"{'Replaced' if replaced else 'Added'} schema {name} ({group})")


@schema_app.command("remove")
def schema_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Component name."),
) -> None:
    """Remove a reusable schema. References to it are left dangling."""

    def mutate(components: EditableComponents) -> None:
        record = components.schemas.find(name)
        if record is None:
            raise InvalidUsageError(f"No schema '{name}'")
        components.schemas.pop_id(record.id)

    with open_workspace(ctx) as ws:
        ws.edit("components", mutate)
        ws.flush()
        dangling = [issue for issue in ws.controller.issues if not issue.is_blocking]
    success(f"Removed schema {name}")
    if dangling:
        warning(f"{len(dangling)} reference(s) no longer resolve")


@schema_app.command("list")
def schema_list(ctx: typer.Context) -> None:
    """List reusable schemas by group."""
    with open_workspace(ctx) as ws:
        records = list(ws.state.components.schemas)
    rows = []
    for record in records:
        if record.use_reference:
            kind, detail = "alias", record.ref
        else:
            schema = record.inline_schema
            kind = schema.type.value if schema.type is not None else ""
            detail = ", ".join(prop.name for prop in schema.properties[:5])
        rows.append([record.name, record.group, kind, detail])
    get_output().print_table(["Name", "Group", "Type", "Details"], rows, title=f"Schemas ({len(rows)})")
