"""Export a canonical document as JSON or YAML text.

Both formats keep insertion order. YAML output never uses anchors or aliases,
even where the same object appears twice, so every export is plain,
self-contained text that :func:`~apibldr.parser.loader.import_document` reads
back into an equivalent document.
"""

from __future__ import annotations

import enum
import json
from typing import Any

import yaml

from apibldr.exceptions import InvalidUsageError
from apibldr.models import Document

YAML_WIDTH = 120


class ExportFormat(str, enum.Enum):
    YAML = "yaml"
    JSON = "json"


class _NoAliasDumper(yaml.SafeDumper):
    def ignore_aliases(self, data: Any) -> bool:
        return True


def to_json(document: Document) -> str:
    """Serialise *document* as indented JSON (two spaces, trailing newline)."""
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False) + "\n"


def to_yaml(document: Document) -> str:
    """Serialise *document* as block-style YAML."""
    return yaml.dump(
        document.to_dict(),
        Dumper=_NoAliasDumper,
        sort_keys=False,
        indent=2,
        width=YAML_WIDTH,
        allow_unicode=True,
        default_flow_style=False,
    )


def dump(document: Document, fmt: str | ExportFormat = ExportFormat.YAML) -> str:
    """Serialise *document* in the requested format.

    Raises:
        InvalidUsageError: If *fmt* is not ``yaml`` or ``json``.
    """
    if not isinstance(fmt, ExportFormat):
        try:
            fmt = ExportFormat(fmt.lower())
        except ValueError:
            raise InvalidUsageError(f"Unknown export format '{fmt}'. Use yaml or json.") from None
    if fmt is ExportFormat.JSON:
        return to_json(document)
    return to_yaml(document)
