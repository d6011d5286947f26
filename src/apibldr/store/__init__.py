"""Workspace persistence -- section stores and the persistence layer.

* :mod:`~apibldr.store.backends` -- the :class:`SectionStore` interface and
  its memory, file and :mod:`diskcache` implementations.
* :mod:`~apibldr.store.persistence` -- :class:`PersistenceLayer`, which
  serialises canonical sections into a store and reads them back.
"""

from apibldr.store.backends import BACKENDS, DiskCacheStore, FileStore, MemoryStore, SectionStore
from apibldr.store.persistence import COMPONENT_SUMMARIES_KEY, ComponentSummary, PersistenceLayer

__all__ = [
    "BACKENDS",
    "COMPONENT_SUMMARIES_KEY",
    "ComponentSummary",
    "DiskCacheStore",
    "FileStore",
    "MemoryStore",
    "PersistenceLayer",
    "SectionStore",
]
