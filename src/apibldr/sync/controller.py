"""Debounced synchronization of the editing state into the canonical document.

:class:`SyncController` is the only component that turns editing state into a
canonical document. Each section has its own lifecycle:

``IDLE`` --(edit)--> ``PENDING_FLUSH`` --(quiet period elapses)--> flush --> ``IDLE``

Another edit while a section is pending cancels its timer and re-arms it
(debounce, not throttle), so a burst of edits produces exactly one flush.

A flush runs synchronously inside the timer callback:

1. fold the section's editing state into its canonical value;
2. assemble it into the current document (one atomic snapshot, so sections
   flushed in any order never interleave);
3. validate the new document;
4. persist the section (failures are logged by the persistence layer and do
   not stop the flush);
5. publish a :class:`SyncEvent` to every subscriber.

Validation issues never block a flush: the document is always published
together with its issues.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Optional

from apibldr.document import assemble
from apibldr.editing.state import EditingState
from apibldr.editing.transform import fold_section, to_canonical, to_editable
from apibldr.exceptions import InvalidUsageError
from apibldr.models import SECTION_KINDS, Document, SectionKind
from apibldr.sync.scheduler import ManualScheduler, Scheduler, TimerHandle
from apibldr.validator import ValidationIssue, validate

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.3


class SyncStatus(str, enum.Enum):
    """Lifecycle state of one section."""

    IDLE = "idle"
    PENDING_FLUSH = "pending_flush"


@dataclass
class SyncEvent:
    """Published after every flush or document replacement.

    Attributes:
        kind: The flushed section, or ``None`` when the whole document was
            replaced (import, reset).
        document: The new canonical document.
        issues: Validation issues of *document*.
        persisted: Whether every write of this flush reached the store.
    """

    kind: Optional[str]
    document: Document
    issues: list[ValidationIssue] = field(default_factory=list)
    persisted: bool = True


Subscriber = Callable[[SyncEvent], None]


class SyncController:
    """Owns the editing state and publishes the canonical document.

    Args:
        state: Editing state to drive. Mutate it only through :meth:`edit`.
        document: Current canonical document; folded from *state* if omitted.
        persistence: A :class:`~apibldr.store.persistence.PersistenceLayer`,
            or ``None`` to keep everything in memory.
        scheduler: Timer source; a :class:`ManualScheduler` by default.
        delay: Quiet period in seconds before a pending section is flushed.
        validator: Callable returning the issues of a document.

    Example::

        controller = SyncController(to_editable(doc), doc, scheduler=AsyncioScheduler())
        controller.subscribe(lambda event: print(event.document.info.title))
        controller.edit("info", lambda info: setattr(info, "title", "Pets"))
    """

    def __init__(
        self,
        state: EditingState,
        document: Optional[Document] = None,
        persistence: Any = None,
        scheduler: Optional[Scheduler] = None,
        delay: float = DEFAULT_DELAY,
        validator: Callable[[Document], list[ValidationIssue]] = validate,
    ) -> None:
        self._state = state
        self._document = document if document is not None else to_canonical(state)
        self._persistence = persistence
        self._scheduler: Scheduler = scheduler if scheduler is not None else ManualScheduler()
        self._delay = delay
        self._validator = validator
        self._timers: dict[str, TimerHandle] = {}
        self._subscribers: list[Subscriber] = []
        self._issues = self._validator(self._document)
        self._closed = False

    # --- read-only views ---

    @property
    def state(self) -> EditingState:
        """The current editing state (replaced wholesale by :meth:`replace_document`)."""
        return self._state

    @property
    def document(self) -> Document:
        """The last published canonical document."""
        return self._document

    @property
    def issues(self) -> list[ValidationIssue]:
        return list(self._issues)

    @property
    def delay(self) -> float:
        return self._delay

    def pending(self) -> list[str]:
        """Sections edited since their last flush, in edit order."""
        return list(self._timers)

    def status(self, kind: str | SectionKind) -> SyncStatus:
        if SectionKind(kind).value in self._timers:
            return SyncStatus.PENDING_FLUSH
        return SyncStatus.IDLE

    # --- subscriptions ---

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for :class:`SyncEvent` notifications.

        Returns:
            A zero-argument function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, event: SyncEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Sync subscriber %r failed", callback)

    # --- editing ---

    def _check_open(self) -> None:
        if self._closed:
            raise InvalidUsageError("Synchronization controller is closed")

    def edit(self, kind: str | SectionKind, mutator: Callable[[Any], Any]) -> Any:
        """Apply *mutator* to one section of the editing state and schedule a flush.

        The mutation happens immediately; the canonical document only changes
        once the section has been quiet for :attr:`delay` seconds.

        Args:
            kind: Section to edit.
            mutator: Called with the section's record (or record list).

        Returns:
            Whatever *mutator* returned.
        """
        self._check_open()
        kind = SectionKind(kind)
        result = mutator(self._state.section(kind))
        self._arm(kind.value)
        return result

    def _arm(self, key: str) -> None:
        previous = self._timers.pop(key, None)
        if previous is not None:
            previous.cancel()
        self._timers[key] = self._scheduler.call_later(self._delay, partial(self._on_timer, key))

    def _on_timer(self, key: str) -> None:
        self._timers.pop(key, None)
        self.flush(key)

    def _persist(self, kind: SectionKind, value: Any) -> bool:
        if self._persistence is None:
            return True
        if kind is SectionKind.COMPONENTS:
            return self._persistence.save_components(value, self._state.components.groups())
        return self._persistence.save_section(kind, value)

    def flush(self, kind: str | SectionKind) -> Document:
        """Fold, validate, persist and publish one section now.

        Cancels the section's pending timer, if any. Flushing an idle section
        is allowed and republishes the same content.
        """
        kind = SectionKind(kind)
        handle = self._timers.pop(kind.value, None)
        if handle is not None:
            handle.cancel()

        value = fold_section(kind, self._state)
        document = assemble({kind.value: value}, previous=self._document)
        issues = self._validator(document)
        self._document = document
        self._issues = issues
        persisted = self._persist(kind, value)
        logger.debug("Flushed %s (%d issues, persisted=%s)", kind.value, len(issues), persisted)
        self._publish(SyncEvent(kind=kind.value, document=document, issues=list(issues), persisted=persisted))
        return document

    def flush_all(self) -> Document:
        """Flush every pending section immediately, in edit order."""
        for key in list(self._timers):
            self.flush(key)
        return self._document

    def replace_document(
        self,
        document: Document,
        groups: Optional[dict[str, str]] = None,
        persist: bool = True,
    ) -> None:
        """Replace the whole document, as an import does.

        Pending edits are discarded, the editing state is rebuilt from
        *document*, every section is persisted (unless *persist* is false)
        and subscribers are notified once.

        Args:
            document: The new canonical document.
            groups: Component group per schema name; names not listed keep
                the group they had in the current state.
            persist: Write every section to the store.
        """
        self._check_open()
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

        merged = self._state.components.groups()
        merged.update(groups or {})
        self._state = to_editable(document, merged)
        self._document = document
        self._issues = self._validator(document)

        persisted = True
        if persist:
            for key in SECTION_KINDS:
                kind = SectionKind(key)
                persisted = self._persist(kind, getattr(document, key)) and persisted
        logger.debug("Replaced document (%d issues, persisted=%s)", len(self._issues), persisted)
        self._publish(SyncEvent(kind=None, document=document, issues=list(self._issues), persisted=persisted))

    def close(self, flush: bool = True) -> None:
        """Stop accepting edits; pending sections are flushed first unless *flush* is false."""
        if self._closed:
            return
        if flush:
            self.flush_all()
        else:
            for handle in self._timers.values():
                handle.cancel()
            self._timers.clear()
        self._subscribers.clear()
        self._closed = True
