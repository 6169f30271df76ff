"""
Key-Value Storage Protocol.

Defines the narrow durable-storage interface the onboarding store
persists through. Implementations live in storage.backends; tests
swap in MemoryStorage or a failing stub.

The interface mirrors a mobile async key-value store: string keys,
string values, every call awaitable. Values are opaque to the backend.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStorage(Protocol):
    """
    Async key-value storage.

    get_item() returns None when the key has never been written (or was
    removed). set_item() overwrites any previous value for the key.
    Implementations may raise on I/O failure; callers decide whether
    that is fatal.
    """

    async def get_item(self, key: str) -> str | None:
        ...

    async def set_item(self, key: str, value: str) -> None:
        ...

    async def remove_item(self, key: str) -> None:
        ...
