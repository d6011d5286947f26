"""Assemble a canonical document from independently supplied sections.

Each editing surface owns one section (``info``, ``servers``, ``paths``,
``components``) and hands back a new value for it. This module merges those
values into a whole :class:`~apibldr.models.Document` and decides which value
a section starts from when a workspace is opened.

The public functions are:

* :func:`default_document` -- the structural starting document.
* :func:`empty_section` -- the empty value of one section.
* :func:`assemble` -- merge section values over a previous document.
* :func:`seed_document` -- load-time precedence: persisted > initial > default.

Nothing here validates; see :mod:`apibldr.validator`.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from apibldr.models import (
    DEFAULT_SPEC_VERSION,
    SECTION_KINDS,
    Components,
    Document,
    Info,
    SectionKind,
    Server,
)

SPEC_VERSION_KEY = "openapi"


def default_document() -> Document:
    """Return the document a brand-new workspace starts from."""
    return Document(
        spec_version=DEFAULT_SPEC_VERSION,
        info=Info(title="API Title", description="API Description", version="1.0.0"),
        servers=[Server(url="https://api.example.com", description="Production server")],
        paths={},
        components=Components(schemas={}),
    )


def empty_section(kind: str | SectionKind) -> Any:
    """Return the empty structural value of a section.

    Args:
        kind: One of ``info``, ``servers``, ``paths`` or ``components``.

    Raises:
        ValueError: If *kind* is not a section name.
    """
    kind = SectionKind(kind)
    if kind is SectionKind.INFO:
        return Info()
    if kind is SectionKind.SERVERS:
        return []
    if kind is SectionKind.PATHS:
        return {}
    return Components()


def assemble(
    sections: Mapping[str, Any],
    previous: Optional[Document] = None,
) -> Document:
    """Merge independently supplied sections into one document.

    Every section named in *sections* replaces the corresponding part of
    *previous*. A section that is omitted (or given as ``None``) keeps its
    value from *previous*, or becomes :func:`empty_section` when there is no
    previous document. The ``openapi`` key may be supplied to change the
    version string.

    Values may be models or plain mappings/lists; plain data is validated into
    the section's model.

    Args:
        sections: Mapping of section name to its new value.
        previous: Document whose sections are kept where none is supplied.

    Returns:
        A new :class:`~apibldr.models.Document`; *previous* is not modified.
    """
    data: dict[str, Any] = {}
    if previous is not None:
        data[SPEC_VERSION_KEY] = previous.spec_version
        if previous.model_extra:
            data.update(previous.model_extra)
        for kind in SECTION_KINDS:
            data[kind] = getattr(previous, kind)
    else:
        data[SPEC_VERSION_KEY] = DEFAULT_SPEC_VERSION
        for kind in SECTION_KINDS:
            data[kind] = empty_section(kind)

    version = sections.get(SPEC_VERSION_KEY)
    if version:
        data[SPEC_VERSION_KEY] = version

    for kind in SECTION_KINDS:
        value = sections.get(kind)
        if value is not None:
            data[kind] = value

    return Document.model_validate(data)


def seed_document(
    persisted: Mapping[str, Any],
    initial: Optional[Document] = None,
) -> Document:
    """Pick each section's starting value when a workspace is opened.

    Precedence, per section: persisted value > explicitly supplied *initial*
    value > :func:`default_document`. In-progress work that was persisted must
    never be overwritten by a caller re-opening the workspace with stale
    initial data.

    Args:
        persisted: Sections returned by
            :meth:`~apibldr.store.persistence.PersistenceLayer.load_all`.
        initial: Document supplied by the caller, if any.

    Returns:
        The seeded document.
    """
    base = initial if initial is not None else default_document()
    sections = {kind: persisted[kind] for kind in SECTION_KINDS if kind in persisted}
    return assemble(sections, previous=base)
