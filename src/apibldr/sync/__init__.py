"""Synchronization of editing state into the canonical document.

* :mod:`~apibldr.sync.scheduler` -- the :class:`Scheduler` port with asyncio
  and manual (virtual clock) implementations.
* :mod:`~apibldr.sync.controller` -- :class:`SyncController`, the per-section
  debounce state machine.
"""

from apibldr.sync.controller import SyncController, SyncEvent, SyncStatus
from apibldr.sync.scheduler import AsyncioScheduler, ManualScheduler, Scheduler

__all__ = [
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "SyncController",
    "SyncEvent",
    "SyncStatus",
]
