"""
Blockchain adapter implementations.

Concrete adapters pull in their backend's client library, so only the base
class is imported here. Use AdapterFactory to load a backend's adapter.
"""

from .base import BaseAdapter, adapter_operation, translate_exception

__all__ = [
    "BaseAdapter",
    "adapter_operation",
    "translate_exception",
]
