"""Editing state and the fold/unfold transformation engine.

The editing surfaces never touch the canonical document directly. They mutate
an :class:`~apibldr.editing.state.EditingState`, a flat mirror of the
document where every mapping is an ordered list of records addressed by
stable ids, and the synchronization controller folds that state back into a
:class:`~apibldr.models.Document`.

Typical usage::

    from apibldr.editing import to_editable, to_canonical

    state = to_editable(document)
    state.paths[0].path = "/users"
    document = to_canonical(state)

Sub-modules:

* :mod:`~apibldr.editing.state` -- the record types, the
  :class:`~apibldr.editing.state.EditableList` arena and record factories.
* :mod:`~apibldr.editing.transform` -- pure, total ``unfold_*``/``fold_*``
  functions for every section and nested shape.
"""

from apibldr.editing.state import EditableList, EditingState
from apibldr.editing.transform import fold_section, to_canonical, to_editable

__all__ = ["EditableList", "EditingState", "fold_section", "to_canonical", "to_editable"]
