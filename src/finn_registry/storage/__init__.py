"""
Storage for Finn Registry.

The authentication core depends only on the :class:`RegistryStore`
protocol; :class:`JsonRegistryStore` is the bundled implementation.
"""

from __future__ import annotations

from .base import RegistryStore
from .json_store import JsonRegistryStore

__all__ = [
    "RegistryStore",
    "JsonRegistryStore",
]
