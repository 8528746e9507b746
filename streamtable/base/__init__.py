# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the narrow contracts the ingestion engine
consumes: reader sessions, sinks and the dependency catalog.
"""

from streamtable.base.dependencies import DependencyCatalog, Dependent
from streamtable.base.reader import Reader
from streamtable.base.sinks import BaseSink

__all__ = [
    "BaseSink",
    "Dependent",
    "DependencyCatalog",
    "Reader",
]
