# ==============================================================================
# In-Memory Dependency Catalog
# ==============================================================================
"""
Process-local DependencyCatalog.

Holds which objects are registered downstream of which table. Used by the
CLI (one ingestion table feeding one sink-backed target) and by tests that
build chains of views.

Usage:
    catalog = InMemoryCatalog()
    target = catalog.add(TargetTable("default.events"))
    catalog.add(MaterializedView("default.events_mv", target_name="default.events"),
                source="default.kafka_queue")
"""

import threading
from typing import Any, Optional

from streamtable.base.dependencies import DependencyCatalog, Dependent


class TargetTable(Dependent):
    """A table rows can be written into. Always resolves to itself."""

    def __init__(self, name: str, sink: Any = None):
        self._name = name
        self.sink = sink

    @property
    def name(self) -> str:
        return self._name

    def resolve_target(self) -> Optional[Any]:
        return self

    def __repr__(self) -> str:
        return f"TargetTable({self._name!r})"


class MaterializedView(Dependent):
    """
    A view forwarding rows into a target table.

    Not ready while its target is missing from the catalog.
    """

    def __init__(self, name: str, target_name: str, catalog: "InMemoryCatalog | None" = None):
        self._name = name
        self.target_name = target_name
        self._catalog = catalog

    @property
    def name(self) -> str:
        return self._name

    def resolve_target(self) -> Optional[Any]:
        if self._catalog is None:
            return None
        return self._catalog.try_get(self.target_name)

    def __repr__(self) -> str:
        return f"MaterializedView({self._name!r} -> {self.target_name!r})"


class InMemoryCatalog(DependencyCatalog):
    """Thread-safe name -> Dependent map with a dependency edge list."""

    def __init__(self):
        self._lock = threading.Lock()
        self._objects: dict[str, Dependent] = {}
        self._edges: dict[str, list[str]] = {}

    def add(self, dependent: Dependent, source: str | None = None) -> Dependent:
        """
        Register dependent, optionally downstream of source.

        Views added without their own catalog are bound to this one.
        """
        if isinstance(dependent, MaterializedView) and dependent._catalog is None:
            dependent._catalog = self
        with self._lock:
            self._objects[dependent.name] = dependent
            if source is not None:
                self._link(source, dependent.name)
        return dependent

    def link(self, source: str, dependent_name: str) -> None:
        """Register dependent_name downstream of source without adding an object."""
        with self._lock:
            self._link(source, dependent_name)

    def remove(self, name: str) -> None:
        """Detach an object. Edges pointing at it are kept so it reads as missing."""
        with self._lock:
            self._objects.pop(name, None)

    def get_dependents(self, name: str) -> list[str]:
        with self._lock:
            return list(self._edges.get(name, []))

    def try_get(self, name: str) -> Optional[Dependent]:
        with self._lock:
            return self._objects.get(name)

    def _link(self, source: str, dependent_name: str) -> None:
        edges = self._edges.setdefault(source, [])
        if dependent_name not in edges:
            edges.append(dependent_name)
