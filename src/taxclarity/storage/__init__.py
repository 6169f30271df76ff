"""
TaxClarity storage package.

Async key-value persistence used by the onboarding store.
"""

from taxclarity.storage.adapter import KeyValueStorage
from taxclarity.storage.backends import JsonFileStorage, MemoryStorage, NullStorage

__all__ = [
    "KeyValueStorage",
    "JsonFileStorage",
    "MemoryStorage",
    "NullStorage",
]
