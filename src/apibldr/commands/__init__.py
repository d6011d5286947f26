"""Built-in CLI sub-commands for apibldr.

* :mod:`~apibldr.commands.document` -- whole-document commands (``import``,
  ``export``, ``show``, ``validate``, ``reset``, ``refs``).
* :mod:`~apibldr.commands.edit` -- section editing groups (``info``,
  ``server``, ``path``, ``op``, ``schema``).
* :mod:`~apibldr.commands.config` -- view and modify global settings.

Every command opens the active workspace with :func:`open_workspace`, drives
it through the synchronization controller, and closes it (flushing pending
edits) before returning.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

if TYPE_CHECKING:
    from apibldr.workspace import Workspace


def open_workspace(ctx: typer.Context) -> Workspace:
    """Open the workspace selected by ``--workspace``, env or config."""
    from apibldr.config import resolve_config
    from apibldr.output import debug
    from apibldr.workspace import Workspace

    obj = ctx.obj or {}
    config, name = resolve_config(cli_workspace=obj.get("workspace"))
    debug(f"Opening workspace '{name}' ({config.store.backend} store)")
    return Workspace.open(name, config)
