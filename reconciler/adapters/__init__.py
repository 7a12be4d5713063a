"""Adapters — bindings for the filesystem and the compiler backend.

Public re-exports for convenient access.
"""

from reconciler.adapters.base import Adapter, ExecutionContext
from reconciler.adapters.mock import MockAdapter
from reconciler.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
