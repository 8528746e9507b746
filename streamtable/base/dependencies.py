# ==============================================================================
# Dependency Catalog Abstract Classes
# ==============================================================================
"""
Contracts for the catalog of objects that consume from an ingestion table.

A dependent is anything registered downstream of a table: a plain target
table, or a view that forwards rows into a target of its own. The streaming
scheduler only needs to know whether each dependent can accept writes right
now, which it learns through resolve_target().
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class Dependent(ABC):
    """A downstream object registered against a table."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Fully qualified name, unique within the catalog."""
        ...

    @abstractmethod
    def resolve_target(self) -> Optional[Any]:
        """
        Return the object rows finally land in, or None when not ready.

        A plain table resolves to itself; a view resolves to its target
        table and reports None while that table does not exist.
        """
        ...


class DependencyCatalog(ABC):
    """Lookup of dependents by table name."""

    @abstractmethod
    def get_dependents(self, name: str) -> list[str]:
        """Names of the objects registered directly downstream of name."""
        ...

    @abstractmethod
    def try_get(self, name: str) -> Optional[Dependent]:
        """Return the dependent called name, or None if it is not attached."""
        ...
