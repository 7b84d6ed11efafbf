"""Runtime resolution of translation keys against registered catalogs.

A :class:`LocRegistry` holds one :class:`LocTable` per module identity.
Identities are always passed explicitly; components that only ever look up
strings for one module can hold a :class:`Localizer` bound to it instead.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional

from .entries import LocTable

__all__ = ["LocRegistry", "Localizer", "missing_marker"]

logger = logging.getLogger(__name__)


def missing_marker(key: str) -> str:
    """Placeholder shown when no usable text exists for ``key``."""

    return f"#{key}"


class LocRegistry:
    """Module identity to catalog mapping shared by concurrent readers.

    Registering an identity that already has a catalog replaces it as a
    whole; entries are never updated in place.  Writers serialise on a lock
    and publish a fresh mapping, so :meth:`resolve` reads a consistent
    snapshot without locking.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: Mapping[str, LocTable] = {}

    def register(self, module_id: str, table: LocTable) -> None:
        with self._lock:
            replaced = module_id in self._tables
            tables: Dict[str, LocTable] = dict(self._tables)
            tables[module_id] = table
            self._tables = tables
        if replaced:
            logger.info("replaced localization data for %s (%d entries)", module_id, len(table))
        else:
            logger.debug("registered localization data for %s (%d entries)", module_id, len(table))

    def setup(self, module_id: str, catalog: str) -> None:
        """Register the catalog serialised in ``catalog`` for ``module_id``."""

        self.register(module_id, LocTable.loads(catalog))

    def setup_with_fallbacks(self, module_id: str) -> None:
        """Register an empty catalog so every lookup shows its fallback."""

        self.register(module_id, LocTable())

    def load(self, module_id: str, path: Path) -> None:
        self.register(module_id, LocTable.load(path))

    def is_registered(self, module_id: str) -> bool:
        return module_id in self._tables

    def table(self, module_id: str) -> Optional[LocTable]:
        return self._tables.get(module_id)

    def resolve(self, module_id: str, key: str, fallback: Optional[str] = None) -> str:
        table = self._tables.get(module_id)
        if table is None:
            return missing_marker(key)

        entry = table.get(key)
        if entry is None or not entry.message:
            return fallback if fallback else missing_marker(key)
        return entry.message

    def bind(self, module_id: str) -> "Localizer":
        return Localizer(self, module_id)


class Localizer:
    """Lookup helper bound to one module identity of a registry."""

    def __init__(self, registry: LocRegistry, module_id: str) -> None:
        self.registry = registry
        self.module_id = module_id

    def localize(self, key: str, fallback: Optional[str] = None) -> str:
        return self.registry.resolve(self.module_id, key, fallback)

    __call__ = localize
