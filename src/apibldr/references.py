"""Reference resolution between the components section and its consumers.

Operations, request bodies and responses point at reusable components with
``#/components/<kind>/<name>`` strings. This module builds and parses those
strings, lists the names a reference may point at, and finds pointers whose
target does not exist.

Reference targets come from two places:

* **live** -- the components currently in the document being edited;
* **persisted** -- components saved in the workspace store, which may not be
  loaded into the live document (for example after a failed edit).

Live names always come first and win on a name collision; a persisted name is
listed only when no live component has the same name.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Iterator, Optional

from pydantic import BaseModel

from apibldr.models import REF_KEY, Components, Document

REF_PREFIX = "#/components/"


class ComponentKind(str, enum.Enum):
    """Reusable component kinds that may be referenced."""

    SCHEMAS = "schemas"
    RESPONSES = "responses"

    @classmethod
    def _missing_(cls, value: object) -> Optional[ComponentKind]:
        # Accept the singular forms used on the command line.
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower() + "s" or member.value == value.lower():
                    return member
        return None


class ReferenceTarget(BaseModel):
    """One name a reference may point at."""

    name: str
    source_label: str
    ref: str


LIVE = "live"
PERSISTED = "persisted"


def build_ref(kind: str | ComponentKind, name: str) -> str:
    """Return the reference string for component *name* of *kind*.

    Example::

        build_ref("schemas", "User")   # "#/components/schemas/User"
    """
    return f"{REF_PREFIX}{ComponentKind(kind).value}/{name}"


def parse_ref(ref: str) -> Optional[tuple[ComponentKind, str]]:
    """Split an internal component reference into ``(kind, name)``.

    Returns ``None`` for external references, unknown kinds or a missing name.
    """
    if not ref.startswith(REF_PREFIX):
        return None
    kind, _, name = ref[len(REF_PREFIX):].partition("/")
    if not name or kind not in {member.value for member in ComponentKind}:
        return None
    return ComponentKind(kind), name


def _component_names(components: Optional[Components], kind: ComponentKind) -> list[str]:
    if components is None:
        return []
    if kind is ComponentKind.SCHEMAS:
        return list(components.schemas)
    return list(components.responses or {})


class ReferenceResolver:
    """List the component names available to a ``$ref`` slot.

    Args:
        live: Zero-argument callable returning the current (live)
            :class:`~apibldr.models.Components`.
        persistence: Optional
            :class:`~apibldr.store.persistence.PersistenceLayer` supplying
            persisted component names.
    """

    def __init__(self, live: Callable[[], Components], persistence: Any = None) -> None:
        self._live = live
        self._persistence = persistence

    def _persisted_names(self, kind: ComponentKind) -> list[str]:
        if self._persistence is None:
            return []
        if kind is ComponentKind.SCHEMAS:
            summaries = self._persistence.load_component_summaries()
            if summaries:
                return [summary.name for summary in summaries]
        return _component_names(self._persistence.load_section("components"), kind)

    def list_references(self, kind: str | ComponentKind = ComponentKind.SCHEMAS) -> list[ReferenceTarget]:
        """Return every referenceable name of *kind*, live names first.

        Raises:
            ValueError: If *kind* is not a component kind.
        """
        kind = ComponentKind(kind)
        targets: list[ReferenceTarget] = []
        seen: set[str] = set()
        for label, names in (
            (LIVE, _component_names(self._live(), kind)),
            (PERSISTED, self._persisted_names(kind)),
        ):
            for name in names:
                if name in seen:
                    continue
                seen.add(name)
                targets.append(ReferenceTarget(name=name, source_label=label, ref=build_ref(kind, name)))
        return targets


def _walk_refs(node: Any, location: str) -> Iterator[tuple[str, str]]:
    """Yield ``(location, ref)`` for every ``$ref`` string below *node*."""
    if isinstance(node, dict):
        ref = node.get(REF_KEY)
        if isinstance(ref, str):
            yield location, ref
        for key, value in node.items():
            if key != REF_KEY:
                yield from _walk_refs(value, f"{location}.{key}" if location else str(key))
    elif isinstance(node, list):
        for index, value in enumerate(node):
            yield from _walk_refs(value, f"{location}[{index}]")


def find_dangling_refs(document: Document | dict[str, Any]) -> list[tuple[str, str]]:
    """Return ``(location, ref)`` for internal references whose target is missing.

    External references (anything not starting with ``#/components/``) are
    not checked.
    """
    data = document.to_dict() if isinstance(document, Document) else document
    components = data.get("components") if isinstance(data, dict) else None
    if not isinstance(components, dict):
        components = {}

    dangling: list[tuple[str, str]] = []
    for location, ref in _walk_refs(data, ""):
        if not ref.startswith(REF_PREFIX):
            continue
        parsed = ref[len(REF_PREFIX):].split("/", 1)
        if len(parsed) != 2:
            dangling.append((location, ref))
            continue
        kind, name = parsed
        section = components.get(kind)
        if not isinstance(section, dict) or name not in section:
            dangling.append((location, ref))
    return dangling


__all__ = [
    "ComponentKind",
    "REF_PREFIX",
    "ReferenceResolver",
    "ReferenceTarget",
    "build_ref",
    "find_dangling_refs",
    "parse_ref",
]
