"""
Onboarding State Store.

Observable, persisted container for the profile, the checklist and the
onboarding flag. Screens read from it and call its mutators.

Every mutation:
1. runs a pure transition on the current snapshot
2. commits the new snapshot in memory
3. notifies observers synchronously with the full snapshot
4. schedules a full-snapshot write (fire-and-forget)

Transitions that produce an equal snapshot change nothing and trigger
neither notification nor write.

The store starts on the built-in defaults and is rehydrated from storage
by hydrate(). Writes are held back until hydration has finished so an
early mutation can never overwrite the persisted record before it is
read. Sub-states mutated before hydration keep their in-session value.
"""

import asyncio
import logging
from typing import Callable, Iterable

from taxclarity.storage.adapter import KeyValueStorage

from . import transitions
from .state import ChecklistItem, OnboardingSnapshot, UserProfile
from .writer import SnapshotWriter

logger = logging.getLogger(__name__)

STORAGE_KEY = "taxclarity-storage"

Listener = Callable[[OnboardingSnapshot], None]


class OnboardingStore:
    """
    Single-owner state container.

    Construct one per running app and share the instance. All mutators
    are synchronous and expected to run from one event context; no
    locking is done.
    """

    def __init__(self, storage: KeyValueStorage, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key
        self.writer = SnapshotWriter(storage, key)
        self._snapshot = OnboardingSnapshot()
        self._listeners: list[Listener] = []
        self._hydrated = False
        self._hydration: asyncio.Task | None = None
        # Sub-states mutated before hydration finished
        self._touched: set[str] = set()

    @classmethod
    async def open(cls, storage: KeyValueStorage, key: str = STORAGE_KEY) -> "OnboardingStore":
        """Create a store and wait for hydration."""
        store = cls(storage, key)
        await store.hydrate()
        return store

    # =========================================================================
    # Readers
    # =========================================================================

    @property
    def snapshot(self) -> OnboardingSnapshot:
        return self._snapshot

    @property
    def profile(self) -> UserProfile:
        return self._snapshot.profile

    @property
    def checklist(self) -> tuple[ChecklistItem, ...]:
        return self._snapshot.checklist

    @property
    def has_completed_onboarding(self) -> bool:
        return self._snapshot.has_completed_onboarding

    @property
    def is_hydrated(self) -> bool:
        """False while readers are still seeing provisional defaults."""
        return self._hydrated

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(listener)

        return _unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self) -> None:
        snapshot = self._snapshot
        for listener in list(self._listeners):
            # A listener mutated the store; the nested notification already
            # delivered the newer snapshot to every listener.
            if self._snapshot is not snapshot:
                break
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Onboarding store listener {listener!r} failed")

    # =========================================================================
    # Mutators
    # =========================================================================

    def set_user_type(self, user_type: str) -> None:
        self._apply(transitions.set_user_type(self._snapshot, user_type))

    def set_income_range(self, income_range: str) -> None:
        self._apply(transitions.set_income_range(self._snapshot, income_range))

    def set_state(self, state_name: str) -> None:
        self._apply(transitions.set_state(self._snapshot, state_name))

    def reset_profile(self) -> None:
        self._apply(transitions.reset_profile(self._snapshot))

    def set_checklist(self, items: Iterable[ChecklistItem | dict]) -> None:
        """Replace the checklist wholesale (integration point for remote sync)."""
        self._apply(transitions.set_checklist(self._snapshot, items))

    def toggle_checklist_item(self, item_id: str) -> None:
        """Flip one item's completion. Unknown ids are ignored."""
        self._apply(transitions.toggle_checklist_item(self._snapshot, item_id))

    def reset_checklist(self) -> None:
        self._apply(transitions.reset_checklist(self._snapshot))

    def set_has_completed_onboarding(self, value: bool) -> None:
        self._apply(transitions.set_has_completed_onboarding(self._snapshot, value))

    def _apply(self, new_snapshot: OnboardingSnapshot) -> None:
        changed = transitions.changed_sub_states(self._snapshot, new_snapshot)
        if not changed:
            return

        self._snapshot = new_snapshot
        if self._hydrated:
            self.writer.schedule(new_snapshot)
        else:
            self._touched |= changed
            self._start_hydration()
        self._notify()

    # =========================================================================
    # Persistence Lifecycle
    # =========================================================================

    def _start_hydration(self) -> None:
        """Kick off hydration in the background if a loop is running."""
        if self._hydration is not None and not self._hydration.cancelled():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._hydration = loop.create_task(self._rehydrate())

    async def hydrate(self) -> OnboardingSnapshot:
        """
        Load the persisted snapshot (once) and merge it into memory.

        Safe to call repeatedly; later calls wait for the first one.
        """
        if self._hydrated:
            return self._snapshot
        if self._hydration is None or self._hydration.cancelled():
            self._hydration = asyncio.get_running_loop().create_task(self._rehydrate())
        await self._hydration
        return self._snapshot

    async def _rehydrate(self) -> None:
        raw = None
        try:
            raw = await self.storage.get_item(self.key)
        except Exception as e:
            logger.warning(f"Failed to load onboarding state from {self.key!r}: {e}")

        if raw is None:
            logger.debug(f"No persisted onboarding state under {self.key!r}, using defaults")
            merged = self._snapshot
        else:
            persisted = OnboardingSnapshot.from_json(raw)
            merged = transitions.merge_hydrated(persisted, self._snapshot, self._touched)

        touched = self._touched
        self._touched = set()
        self._hydrated = True

        if merged != self._snapshot:
            self._snapshot = merged
            self._notify()

        if touched:
            self.writer.schedule(self._snapshot)

        logger.info(
            f"Onboarding state hydrated "
            f"(persisted={raw is not None}, kept_in_session={sorted(touched)})"
        )

    async def flush(self) -> bool:
        """Wait for hydration and every scheduled write. True if storage is current."""
        await self.hydrate()
        return await self.writer.flush()

    async def aclose(self) -> None:
        """Flush pending writes and drop observers."""
        saved = await self.flush()
        if not saved:
            logger.warning(f"Closing onboarding store with unsaved state under {self.key!r}")
        self._listeners.clear()


def create_store(settings=None) -> OnboardingStore:
    """
    Build the app's store over the file backend.

    Uses the configured data directory and storage key. Call hydrate()
    (or flush()) from the event loop before treating reads as final.
    """
    from taxclarity.config import get_settings
    from taxclarity.storage.backends import JsonFileStorage

    settings = settings or get_settings()
    storage = JsonFileStorage(settings.taxclarity_data_dir)
    return OnboardingStore(storage, key=settings.taxclarity_storage_key)
