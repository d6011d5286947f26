"""Section-level persistence on top of a :class:`~apibldr.store.backends.SectionStore`.

Each section of the canonical document (``info``, ``servers``, ``paths``,
``components``) is stored independently as the JSON text of its canonical
value, under a key equal to the section name. Alongside ``components`` the
layer keeps :data:`COMPONENT_SUMMARIES_KEY`: one lightweight
:class:`ComponentSummary` per named schema, carrying the component group the
editor filed it under.

Failure policy:

* **Writes** are fire-and-forget. Any exception raised by the backend is
  logged at ``WARNING`` and :meth:`PersistenceLayer.save_section` returns
  ``False``; the caller's in-memory document is unaffected.
* **Reads** treat missing, unreadable, unparseable or structurally invalid
  data as absent, so a corrupt section falls back to the initial or default
  value on the next load.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from apibldr.models import SECTION_KINDS, Components, Info, PathItem, SectionKind, Server
from apibldr.store.backends import SectionStore

logger = logging.getLogger(__name__)

COMPONENT_SUMMARIES_KEY = "component_summaries"

_SECTION_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    SectionKind.INFO.value: TypeAdapter(Info),
    SectionKind.SERVERS.value: TypeAdapter(list[Server]),
    SectionKind.PATHS.value: TypeAdapter(dict[str, PathItem]),
    SectionKind.COMPONENTS.value: TypeAdapter(Components),
}


class ComponentSummary(BaseModel):
    """Per-schema record kept next to the ``components`` section.

    Serialised with the same camel-case ``componentGroup`` key the builder has
    always used, so older workspaces keep loading.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    type: str = "object"
    component_group: str = Field(default="Common", alias="componentGroup")
    description: Optional[str] = None
    properties: Optional[dict[str, Any]] = None
    required: Optional[list[str]] = None


_SUMMARIES_ADAPTER: TypeAdapter[list[ComponentSummary]] = TypeAdapter(list[ComponentSummary])


def _summaries_for(components: Components, groups: Mapping[str, str]) -> list[ComponentSummary]:
    summaries: list[ComponentSummary] = []
    for name, schema in components.schemas.items():
        data = schema.model_dump(mode="json", by_alias=True, exclude_none=True)
        schema_type = data.get("type", "object")
        summaries.append(
            ComponentSummary(
                name=name,
                type=schema_type if isinstance(schema_type, str) else "object",
                component_group=groups.get(name, "Common"),
                description=data.get("description"),
                properties=data.get("properties"),
                required=data.get("required"),
            )
        )
    return summaries


class PersistenceLayer:
    """Save and load document sections through a :class:`SectionStore`.

    Args:
        store: The backend holding the workspace.

    Example::

        layer = PersistenceLayer(MemoryStore())
        layer.save_section("servers", [Server(url="https://api.example.com")])
        layer.load_all()   # {"servers": [Server(url="https://api.example.com")]}
    """

    def __init__(self, store: SectionStore) -> None:
        self._store = store

    @property
    def store(self) -> SectionStore:
        return self._store

    # --- writes ---

    def _write(self, key: str, text: str) -> bool:
        try:
            self._store.set(key, text)
        except Exception as exc:  # never let a backend failure reach the caller
            logger.warning("Failed to persist '%s': %s", key, exc)
            return False
        logger.debug("Persisted '%s' (%d bytes)", key, len(text))
        return True

    def save_section(self, kind: str | SectionKind, value: Any) -> bool:
        """Overwrite the stored value of one section.

        Args:
            kind: Section name.
            value: The canonical section value (model, list or mapping).

        Returns:
            ``True`` if the backend accepted the write, ``False`` if the write
            failed and was logged.
        """
        key = SectionKind(kind).value
        data = _SECTION_ADAPTERS[key].dump_python(value, mode="json", by_alias=True, exclude_none=True)
        return self._write(key, json.dumps(data, ensure_ascii=False))

    def save_components(
        self, components: Components, groups: Optional[Mapping[str, str]] = None
    ) -> bool:
        """Save the components section and its per-schema summary records."""
        saved = self.save_section(SectionKind.COMPONENTS, components)
        summaries = _summaries_for(components, groups or {})
        data = _SUMMARIES_ADAPTER.dump_python(summaries, mode="json", by_alias=True, exclude_none=True)
        return self._write(COMPONENT_SUMMARIES_KEY, json.dumps(data, ensure_ascii=False)) and saved

    # --- reads ---

    def _read(self, key: str) -> Optional[Any]:
        try:
            text = self._store.get(key)
        except Exception as exc:
            logger.warning("Failed to read '%s': %s", key, exc)
            return None
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring corrupt stored '%s': %s", key, exc)
            return None

    def load_section(self, kind: str | SectionKind) -> Optional[Any]:
        """Return the stored value of one section, or ``None`` if absent or corrupt."""
        key = SectionKind(kind).value
        data = self._read(key)
        if data is None:
            return None
        try:
            return _SECTION_ADAPTERS[key].validate_python(data)
        except ValidationError as exc:
            logger.warning("Ignoring malformed stored '%s': %s", key, exc)
            return None

    def load_all(self) -> dict[str, Any]:
        """Return every section with stored, well-formed data.

        Sections that were never saved (or whose data is unusable) are simply
        absent from the result.
        """
        sections: dict[str, Any] = {}
        for kind in SECTION_KINDS:
            value = self.load_section(kind)
            if value is not None:
                sections[kind] = value
        return sections

    def load_component_summaries(self) -> list[ComponentSummary]:
        """Return the stored per-schema summary records (empty if none)."""
        data = self._read(COMPONENT_SUMMARIES_KEY)
        if data is None:
            return []
        try:
            return _SUMMARIES_ADAPTER.validate_python(data)
        except ValidationError as exc:
            logger.warning("Ignoring malformed component summaries: %s", exc)
            return []

    def load_groups(self) -> dict[str, str]:
        """Map stored schema names to their component group."""
        return {summary.name: summary.component_group for summary in self.load_component_summaries()}

    def clear(self) -> None:
        """Delete every stored section and the summary records."""
        for key in (*SECTION_KINDS, COMPONENT_SUMMARIES_KEY):
            try:
                self._store.delete(key)
            except Exception as exc:
                logger.warning("Failed to delete '%s': %s", key, exc)

    def close(self) -> None:
        self._store.close()
