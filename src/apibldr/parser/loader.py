"""Load documents from a URL, local file, or stdin, and gate imports.

This module handles all I/O for fetching raw OpenAPI documents and converting
them into Python dictionaries. JSON and YAML are both accepted: the content is
tried as JSON first, then as YAML.

The public functions are:

* :func:`load_source` -- read and parse a document from any supported source.
* :func:`parse_content` -- parse already-read text.
* :func:`import_document` -- parse, validate and build a
  :class:`~apibldr.models.Document`, rejecting anything with blocking issues.

An import either fully succeeds or raises; callers replace their document
only with the returned value, so a failed import leaves no partial state.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import ValidationError

from apibldr.exceptions import ImportRejectedError, ParseError
from apibldr.models import Document
from apibldr.validator import ValidationIssue, blocking_issues, validate


def load_source(source: str) -> dict[str, Any]:
    """Load a document from URL, file path, or stdin ('-').

    Args:
        source: A URL (http/https), file path, or '-' for stdin.

    Returns:
        The parsed document as a dictionary.

    Raises:
        ParseError: If the source cannot be loaded or parsed.
    """
    content, hint = read_source(source)
    return parse_content(content, hint=hint)


def read_source(source: str) -> tuple[str, str]:
    """Read raw text from *source*, returning ``(content, format_hint)``."""
    if source == "-":
        return _read_stdin(), ""
    elif source.startswith(("http://", "https://")):
        return _read_url(source)
    else:
        return _read_file(source)


def _read_stdin() -> str:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise ParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise ParseError("No input received from stdin")
    return content


def _read_url(url: str) -> tuple[str, str]:
    """Fetch a document over HTTP(S); the content type becomes the format hint."""
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ParseError(f"HTTP {exc.response.status_code} fetching document from {url}") from exc
    except httpx.RequestError as exc:
        raise ParseError(f"Failed to fetch document from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return response.text, hint


def _read_file(path: str) -> tuple[str, str]:
    """Read a local file; ``.json``/``.yaml``/``.yml`` extensions become the format hint."""
    file_path = Path(path)
    if not file_path.is_file():
        raise ParseError(f"File not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ParseError(f"Failed to read {path}: {exc}") from exc

    if not content.strip():
        raise ParseError(f"File is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"
    return content, hint


def _stringify_keys(node: Any) -> Any:
    """YAML turns ``200:`` into an int key; mapping keys are always strings here."""
    if isinstance(node, dict):
        return {str(key): _stringify_keys(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_stringify_keys(item) for item in node]
    return node


def parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML. Valid
    JSON is also valid YAML, but JSON parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The parsed dictionary.

    Raises:
        ParseError: If the content cannot be parsed as either format, or is
            not a mapping at the top level.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
            if not isinstance(result, dict):
                raise ParseError(
                    "Document must be a JSON/YAML object (got "
                    f"{type(result).__name__})"
                )
            return result
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise ParseError(f"Invalid JSON: {exc}") from exc

    try:
        result = yaml.safe_load(content)
        if not isinstance(result, dict):
            raise ParseError(
                "Document must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return _stringify_keys(result)
    except yaml.YAMLError as exc:
        yaml_error = exc

    msg = "Failed to parse document as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise ParseError(msg)


def _model_issues(exc: ValidationError) -> list[ValidationIssue]:
    issues = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        issues.append(ValidationIssue(message=f"Invalid value at {location}: {error['msg']}", location=location))
    return issues


def build_document(data: dict[str, Any]) -> tuple[Document, list[ValidationIssue]]:
    """Validate parsed data and turn it into a :class:`Document`.

    Returns:
        ``(document, issues)`` where *issues* holds the non-blocking
        warnings.

    Raises:
        ImportRejectedError: On blocking validation issues, or when the data
            has a shape the canonical model cannot hold.
    """
    issues = validate(data)
    blocking = blocking_issues(issues)
    if blocking:
        raise ImportRejectedError(
            f"Import rejected: {len(blocking)} validation issue(s)", issues=blocking
        )
    try:
        document = Document.from_dict(data)
    except ValidationError as exc:
        model_issues = _model_issues(exc)
        raise ImportRejectedError(
            f"Import rejected: {len(model_issues)} unsupported value(s)", issues=model_issues
        ) from exc
    return document, issues


def import_document(content: str, hint: str = "") -> tuple[Document, list[ValidationIssue]]:
    """Parse and validate document text for import.

    Raises:
        ParseError: If *content* is neither JSON nor YAML.
        ImportRejectedError: See :func:`build_document`.
    """
    return build_document(parse_content(content, hint=hint))
