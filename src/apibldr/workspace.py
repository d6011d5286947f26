"""A workspace: one persisted document and the machinery that edits it.

:class:`Workspace` wires the pieces together the way every front-end needs
them:

1. load the persisted sections from a :class:`~apibldr.store.backends.SectionStore`;
2. seed the document (persisted > initial > default, per section);
3. unfold it into the editing state;
4. hand both to a :class:`~apibldr.sync.controller.SyncController` that
   persists every flush back into the same store.

Example::

    with Workspace.open("petstore") as ws:
        ws.edit("info", lambda info: setattr(info, "title", "Petstore"))
    # pending edits are flushed when the block exits
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from apibldr.config import load_global_config, open_store
from apibldr.document import default_document, seed_document
from apibldr.editing.state import EditingState
from apibldr.editing.transform import fold_components, to_editable
from apibldr.models import Document, GlobalConfig, SectionKind
from apibldr.parser.loader import build_document, import_document, load_source
from apibldr.parser.serializer import ExportFormat, dump
from apibldr.references import ComponentKind, ReferenceResolver, ReferenceTarget
from apibldr.store.backends import SectionStore
from apibldr.store.persistence import PersistenceLayer
from apibldr.sync.controller import DEFAULT_DELAY, SyncController
from apibldr.sync.scheduler import Scheduler
from apibldr.validator import ValidationIssue, validate

logger = logging.getLogger(__name__)


class Workspace:
    """Load, edit, validate and export one persisted document.

    Args:
        store: Backend holding the persisted sections.
        initial: Document to start from for sections that were never
            persisted; :func:`~apibldr.document.default_document` otherwise.
        scheduler: Timer source for the controller (manual by default).
        delay: Debounce delay in seconds.
    """

    def __init__(
        self,
        store: SectionStore,
        initial: Optional[Document] = None,
        scheduler: Optional[Scheduler] = None,
        delay: float = DEFAULT_DELAY,
    ) -> None:
        self._initial = initial
        self._persistence = PersistenceLayer(store)
        persisted = self._persistence.load_all()
        document = seed_document(persisted, initial)
        logger.debug("Seeded workspace from persisted sections: %s", sorted(persisted))
        state = to_editable(document, self._persistence.load_groups())
        self._controller = SyncController(
            state,
            document,
            persistence=self._persistence,
            scheduler=scheduler,
            delay=delay,
        )
        self._resolver = ReferenceResolver(
            lambda: fold_components(self.state.components), self._persistence
        )

    @classmethod
    def open(
        cls,
        name: str,
        config: Optional[GlobalConfig] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> Workspace:
        """Open workspace *name* with the backend and delay from *config*."""
        config = config or load_global_config()
        store = open_store(config, name)
        return cls(store, scheduler=scheduler, delay=config.sync.debounce_ms / 1000)

    # --- views ---

    @property
    def document(self) -> Document:
        return self._controller.document

    @property
    def state(self) -> EditingState:
        return self._controller.state

    @property
    def controller(self) -> SyncController:
        return self._controller

    @property
    def resolver(self) -> ReferenceResolver:
        return self._resolver

    @property
    def persistence(self) -> PersistenceLayer:
        return self._persistence

    # --- operations ---

    def edit(self, kind: str | SectionKind, mutator: Callable[[Any], Any]) -> Any:
        """Mutate one section through the controller (see :meth:`SyncController.edit`)."""
        return self._controller.edit(kind, mutator)

    def flush(self) -> Document:
        """Flush every pending section now and return the document."""
        return self._controller.flush_all()

    def import_text(self, text: str, hint: str = "") -> list[ValidationIssue]:
        """Replace the document with the parsed *text*.

        Returns:
            Non-blocking validation warnings of the imported document.

        Raises:
            ParseError: If *text* is neither JSON nor YAML.
            ImportRejectedError: If the document has blocking issues.
        """
        document, issues = import_document(text, hint=hint)
        self._controller.replace_document(document)
        return issues

    def import_source(self, source: str) -> list[ValidationIssue]:
        """Like :meth:`import_text`, reading from a path, URL or ``-``."""
        document, issues = build_document(load_source(source))
        self._controller.replace_document(document)
        return issues

    def export(self, fmt: str | ExportFormat = ExportFormat.YAML) -> str:
        """Flush pending edits and serialise the document."""
        return dump(self.flush(), fmt)

    def validate(self) -> list[ValidationIssue]:
        return validate(self.flush())

    def references(self, kind: str | ComponentKind = ComponentKind.SCHEMAS) -> list[ReferenceTarget]:
        return self._resolver.list_references(kind)

    def reset(self) -> Document:
        """Forget everything persisted and return to the initial (or default) document."""
        document = self._initial if self._initial is not None else default_document()
        self._controller.replace_document(document, persist=False)
        self._persistence.clear()
        return document

    def close(self) -> None:
        """Flush pending edits and release the store."""
        self._controller.close()
        self._persistence.close()

    def __enter__(self) -> Workspace:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
