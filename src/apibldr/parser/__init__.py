"""Import and export of whole documents.

Typical usage::

    from apibldr.parser import import_document, dump

    document, warnings = import_document(Path("openapi.yaml").read_text())
    print(dump(document, "json"))

Sub-modules:

* :mod:`~apibldr.parser.loader` -- I/O layer (URL, file, stdin), JSON/YAML
  parsing and the validation gate for imports.
* :mod:`~apibldr.parser.serializer` -- JSON and YAML export.
"""

from apibldr.parser.loader import import_document, load_source, parse_content
from apibldr.parser.serializer import ExportFormat, dump, to_json, to_yaml

__all__ = [
    "ExportFormat",
    "dump",
    "import_document",
    "load_source",
    "parse_content",
    "to_json",
    "to_yaml",
]
