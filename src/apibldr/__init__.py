"""apibldr -- build OpenAPI 3.1 documents section by section.

This package keeps two shapes of the same API description in sync: a flat,
index-addressable *editing state* suited to incremental edits, and a nested
*canonical document* suited to serialization, validation and
cross-referencing. Edits flow through a debounced synchronization controller
that folds the editing state, validates the result, persists each section and
publishes the new document.

Typical workflow::

    apibldr import openapi.yaml          # seed the workspace
    apibldr op add /users get --response 200:OK:#/components/schemas/User
    apibldr export --format yaml         # print the canonical document

Modules:
    models: Pydantic canonical document and configuration models.
    document: Section assembly, defaults and load-time merge precedence.
    editing: Editing-state records and the fold/unfold transforms.
    references: ``$ref`` construction and selectable reference targets.
    validator: Structural rule checks producing non-fatal issues.
    store: Section-keyed persistence backends and merge-safe loading.
    sync: Debounced fold -> validate -> persist -> publish controller.
    workspace: Session facade tying the above together.
    app: Typer application factory and CLI entry point.
"""

__version__ = "0.3.0"
