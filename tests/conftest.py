"""
Pytest configuration and fixtures for TaxClarity tests.
"""

import asyncio
import os

import pytest

# Set test environment before importing taxclarity modules
os.environ["TAXCLARITY_ENV"] = "development"
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from taxclarity.onboarding.store import OnboardingStore
from taxclarity.storage.backends import MemoryStorage


def run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


class FailingStorage(MemoryStorage):
    """MemoryStorage whose reads and/or writes raise."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = True):
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.write_attempts = 0

    async def get_item(self, key: str) -> str | None:
        if self.fail_reads:
            raise OSError("disk unavailable")
        return await super().get_item(key)

    async def set_item(self, key: str, value: str) -> None:
        self.write_attempts += 1
        if self.fail_writes:
            raise OSError("disk full")
        await super().set_item(key, value)


class RecordingStorage(MemoryStorage):
    """MemoryStorage that records every write and yields during set_item."""

    def __init__(self):
        super().__init__()
        self.writes: list[str] = []

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.sleep(0)
        self.writes.append(value)
        await super().set_item(key, value)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def store(memory_storage):
    """A store over memory storage, not yet hydrated (sync tests)."""
    return OnboardingStore(memory_storage)


@pytest.fixture
def sample_remote_checklist():
    """Checklist payload as a DRF backend would return it."""
    return [
        {"id": 1, "title": "Register for Tax ID (TIN)", "description": "Visit taxid.jrb.gov.ng", "completed": True},
        {"id": 2, "title": "Gather income documents", "completed": False, "due_date": "2026-03-31"},
        {"id": 5, "title": "File tax return by March 31", "completed": False},
    ]
