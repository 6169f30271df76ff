"""
Snapshot write queue.

Mutations enqueue the full snapshot and return immediately. A single
worker task drains the queue and writes to storage one snapshot at a
time, so writes land in mutation order. Snapshots that pile up behind an
in-flight write are coalesced: only the newest one is written, since
every snapshot carries the whole state.

Write failures are logged and kept on `last_error`; they never reach the
code that triggered the mutation. The next scheduled snapshot (or
flush()) writes again.
"""

import asyncio
import logging

from taxclarity.storage.adapter import KeyValueStorage

from .state import OnboardingSnapshot

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """One-at-a-time, fire-and-forget snapshot persistence."""

    def __init__(self, storage: KeyValueStorage, key: str):
        self.storage = storage
        self.key = key
        self._queue: asyncio.Queue[OnboardingSnapshot] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        # Newest snapshot scheduled while no event loop was running
        self._backlog: OnboardingSnapshot | None = None
        # Newest snapshot whose write failed, retried by flush()
        self._unsaved: OnboardingSnapshot | None = None
        self.last_error: Exception | None = None
        self.writes_completed = 0

    @property
    def pending(self) -> bool:
        """Whether any scheduled snapshot has not reached storage yet."""
        return (
            self._backlog is not None
            or self._unsaved is not None
            or not self._queue.empty()
            or (self._worker is not None and not self._worker.done())
        )

    def schedule(self, snapshot: OnboardingSnapshot) -> None:
        """Queue a snapshot for writing. Never blocks, never raises."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Written by the next flush() or in-loop schedule()
            self._backlog = snapshot
            return

        self._backlog = None
        self._queue.put_nowait(snapshot)
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while not self._queue.empty():
            snapshot = self._queue.get_nowait()
            skipped = 0
            while not self._queue.empty():
                snapshot = self._queue.get_nowait()
                skipped += 1
            if skipped:
                logger.debug(f"Coalesced {skipped} queued snapshot(s) for {self.key!r}")
            await self._write(snapshot)

    async def _write(self, snapshot: OnboardingSnapshot) -> bool:
        try:
            await self.storage.set_item(self.key, snapshot.to_json())
        except asyncio.CancelledError:
            # Loop shut down mid-write
            self._unsaved = snapshot
            raise
        except Exception as e:
            self.last_error = e
            self._unsaved = snapshot
            logger.error(f"Failed to persist onboarding state under {self.key!r}: {e}")
            return False

        self.last_error = None
        self._unsaved = None
        self.writes_completed += 1
        return True

    async def flush(self) -> bool:
        """
        Wait until everything scheduled so far has been written.

        Writes a snapshot left over from a loop-less schedule() and
        retries the last failed write once. Returns True when storage
        holds the newest snapshot.
        """
        if self._backlog is not None:
            snapshot, self._backlog = self._backlog, None
            self._queue.put_nowait(snapshot)

        if not self._queue.empty() and (self._worker is None or self._worker.done()):
            self._worker = asyncio.get_running_loop().create_task(self._drain())

        if self._worker is not None and not self._worker.done():
            await self._worker

        if self._unsaved is not None:
            logger.info(f"Retrying failed write for {self.key!r}")
            await self._write(self._unsaved)

        return self._unsaved is None
