# ==============================================================================
# Dependency Readiness
# ==============================================================================
"""
Readiness of everything downstream of an ingestion table.

Streaming into a table nobody reads from would drop records on the floor, so
the scheduler only runs a round when at least one dependent exists and every
dependent, transitively, can accept writes.
"""

import logging

from streamtable.base.dependencies import DependencyCatalog

logger = logging.getLogger(__name__)


class DependencyChecker:
    """Depth-first readiness check over a DependencyCatalog."""

    def __init__(self, catalog: DependencyCatalog):
        self._catalog = catalog

    def count_dependents(self, name: str) -> int:
        """Number of objects registered directly downstream of name."""
        return len(self._catalog.get_dependents(name))

    def all_ready(self, name: str) -> bool:
        """
        Whether every dependent of name, recursively, resolves a target.

        A dependent that has been detached from the catalog, or whose target
        does not exist yet, makes the whole chain not ready. Each object is
        visited once, so a cyclic registration terminates.
        """
        visited: set[str] = set()
        stack = list(self._catalog.get_dependents(name))
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)

            dependent = self._catalog.try_get(current)
            if dependent is None:
                logger.debug("Dependent %s of %s is not attached", current, name)
                return False
            if dependent.resolve_target() is None:
                logger.debug("Dependent %s of %s has no target yet", current, name)
                return False

            stack.extend(self._catalog.get_dependents(current))
        return True
