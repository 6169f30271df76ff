"""
Tests for OnboardingStore: mutations, observers, hydration and write-through.
"""

import asyncio
import json

import pytest

from conftest import FailingStorage, RecordingStorage, run
from taxclarity.onboarding.state import (
    ChecklistItem,
    OnboardingSnapshot,
    UserProfile,
    default_checklist,
)
from taxclarity.onboarding.store import STORAGE_KEY, OnboardingStore, create_store
from taxclarity.storage.backends import JsonFileStorage, MemoryStorage


def _record(**state) -> str:
    return json.dumps({"state": state, "version": 0})


class TestMutations:
    """Operations against in-memory state."""

    def test_starts_on_defaults(self, store):
        assert store.profile == UserProfile()
        assert store.checklist == default_checklist()
        assert store.has_completed_onboarding is False
        assert store.is_hydrated is False

    def test_setters_idempotent(self, store):
        store.set_user_type("freelancer")
        once = store.snapshot
        store.set_user_type("freelancer")
        assert store.snapshot == once
        assert store.profile == UserProfile(user_type="freelancer")

    def test_setters_independent(self, store):
        store.set_user_type("small_business_owner")
        store.set_income_range("25m_50m")
        store.set_state("Kaduna")
        store.set_user_type("salary_earner")
        assert store.profile == UserProfile("salary_earner", "25m_50m", "Kaduna")

    def test_toggle_unknown_id_is_noop(self, store):
        before = store.snapshot
        store.toggle_checklist_item("does-not-exist")
        assert store.snapshot is before

    def test_reset_after_arbitrary_mutations(self, store):
        store.set_user_type("freelancer")
        store.set_state("Lagos")
        store.toggle_checklist_item("3")
        store.set_checklist([{"id": "q", "title": "Q", "completed": True}])
        store.set_income_range("above_50m")

        store.reset_profile()
        store.reset_checklist()

        assert store.profile == UserProfile(user_type=None, income_range=None, state=None)
        assert store.checklist == default_checklist()

    def test_replace_semantics(self, store):
        store.set_checklist([{"id": "a", "title": "X", "completed": True}])
        assert store.checklist == (ChecklistItem(id="a", title="X", completed=True),)

    def test_wrong_argument_types_propagate(self, store):
        before = store.snapshot
        with pytest.raises(TypeError):
            store.set_user_type(3)
        with pytest.raises(TypeError):
            store.set_has_completed_onboarding("yes")
        with pytest.raises(ValueError):
            store.set_checklist([{"id": "a", "title": "A"}, {"id": "a", "title": "A"}])
        assert store.snapshot == before

    def test_end_to_end_scenario(self, store):
        store.set_user_type("freelancer")
        store.set_income_range("800k_3m")
        store.set_state("Lagos")
        store.toggle_checklist_item("1")
        store.toggle_checklist_item("1")
        store.set_has_completed_onboarding(True)

        assert store.profile == UserProfile("freelancer", "800k_3m", "Lagos")
        assert store.snapshot.find_item("1").completed is False
        assert store.checklist[1:] == default_checklist()[1:]
        assert store.has_completed_onboarding is True


class TestObservers:
    """Synchronous notification on every change."""

    def test_listener_receives_snapshot(self, store):
        seen = []
        store.subscribe(seen.append)

        store.set_state("Imo")
        store.toggle_checklist_item("2")

        assert len(seen) == 2
        assert seen[0].profile.state == "Imo"
        assert seen[1] is store.snapshot

    def test_no_notification_without_change(self, store):
        seen = []
        store.subscribe(seen.append)
        store.toggle_checklist_item("nope")
        store.reset_profile()
        store.reset_checklist()
        assert seen == []

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        store.set_state("Osun")
        unsubscribe()
        store.set_state("Ondo")
        unsubscribe()  # second call is harmless
        assert [s.profile.state for s in seen] == ["Osun"]

    def test_failing_listener_does_not_block_others(self, store):
        seen = []

        def broken(snapshot):
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(seen.append)
        store.set_has_completed_onboarding(True)

        assert store.has_completed_onboarding is True
        assert len(seen) == 1

    def test_mutating_listener_does_not_leak_stale_snapshot(self, store):
        seen = []

        def fill_income(snapshot):
            if snapshot.profile.state == "Lagos" and snapshot.profile.income_range is None:
                store.set_income_range("800k_3m")

        store.subscribe(fill_income)
        store.subscribe(seen.append)
        store.set_state("Lagos")

        assert store.profile == UserProfile(state="Lagos", income_range="800k_3m")
        assert seen == [store.snapshot]
        assert seen[-1].profile.income_range == "800k_3m"


class TestPersistence:
    """Hydration, write-through and restart."""

    def test_round_trip_across_restart(self, memory_storage):
        async def first_session():
            store = await OnboardingStore.open(memory_storage)
            store.set_user_type("small_business_owner")
            store.set_income_range("12m_25m")
            store.set_state("FCT - Abuja")
            store.set_checklist([
                {"id": "b", "title": "Second", "completed": True},
                {"id": "a", "title": "First"},
            ])
            store.set_has_completed_onboarding(True)
            await store.aclose()
            return store.snapshot

        written = run(first_session())
        restarted = run(OnboardingStore.open(memory_storage))

        assert restarted.snapshot == written
        assert [item.id for item in restarted.checklist] == ["b", "a"]
        assert restarted.is_hydrated is True

    def test_writes_under_fixed_key(self, memory_storage):
        async def session():
            store = await OnboardingStore.open(memory_storage)
            store.set_state("Benue")
            await store.flush()

        run(session())
        assert list(memory_storage.items) == [STORAGE_KEY]
        record = json.loads(memory_storage.items[STORAGE_KEY])
        assert record["state"]["userProfile"]["state"] == "Benue"

    def test_no_write_without_mutation(self, memory_storage):
        run(OnboardingStore.open(memory_storage))
        assert memory_storage.items == {}

    def test_writes_follow_mutation_order(self):
        storage = RecordingStorage()

        async def session():
            store = await OnboardingStore.open(storage)
            notified = []
            store.subscribe(notified.append)
            for name in ["Abia", "Bauchi", "Borno", "Ekiti", "Gombe"]:
                store.set_state(name)
                await asyncio.sleep(0)
            await store.flush()
            return notified

        notified = run(session())
        written = [OnboardingSnapshot.from_json(raw) for raw in storage.writes]

        assert written, "expected at least one write"
        assert written[-1] == notified[-1]
        # Writes are an ordered subsequence of the mutation history
        positions = [notified.index(snapshot) for snapshot in written]
        assert positions == sorted(positions)

    def test_write_failure_is_soft(self):
        storage = FailingStorage(fail_writes=True)

        async def session():
            store = await OnboardingStore.open(storage)
            store.set_user_type("freelancer")
            saved = await store.flush()
            return store, saved

        store, saved = run(session())
        assert saved is False
        assert store.profile.user_type == "freelancer"
        assert isinstance(store.writer.last_error, OSError)

        storage.fail_writes = False

        async def recover():
            store.set_state("Lagos")
            return await store.flush()

        assert run(recover()) is True
        assert store.writer.last_error is None
        persisted = OnboardingSnapshot.from_json(storage.items[STORAGE_KEY])
        assert persisted.profile == UserProfile(user_type="freelancer", state="Lagos")

    def test_read_failure_falls_back_to_defaults(self):
        storage = FailingStorage(fail_reads=True, fail_writes=False)
        store = run(OnboardingStore.open(storage))
        assert store.is_hydrated is True
        assert store.snapshot == OnboardingSnapshot()

    def test_corrupt_record_falls_back(self):
        storage = MemoryStorage({STORAGE_KEY: "}}} not json"})
        store = run(OnboardingStore.open(storage))
        assert store.snapshot == OnboardingSnapshot()

    def test_deeply_nested_record_falls_back(self):
        storage = MemoryStorage({STORAGE_KEY: "[" * 200000 + "]" * 200000})

        async def session():
            store = await OnboardingStore.open(storage)
            assert store.is_hydrated is True
            assert store.snapshot == OnboardingSnapshot()
            store.set_state("Edo")
            return await store.flush()

        assert run(session()) is True
        record = json.loads(storage.items[STORAGE_KEY])
        assert record["state"]["userProfile"]["state"] == "Edo"

    def test_partial_record_recovery(self):
        storage = MemoryStorage({STORAGE_KEY: _record(
            userProfile={"userType": "salary_earner", "incomeRange": "below_800k", "state": "Kogi"},
            checklist="not a list",
            hasCompletedOnboarding=True,
        )})
        store = run(OnboardingStore.open(storage))

        assert store.profile == UserProfile("salary_earner", "below_800k", "Kogi")
        assert store.checklist == default_checklist()
        assert store.has_completed_onboarding is True

    def test_hydration_notifies_observers(self):
        storage = MemoryStorage({STORAGE_KEY: _record(hasCompletedOnboarding=True)})
        store = OnboardingStore(storage)
        seen = []
        store.subscribe(seen.append)

        run(store.hydrate())
        run(store.hydrate())  # idempotent

        assert len(seen) == 1
        assert seen[0].has_completed_onboarding is True


class TestEarlyMutations:
    """Mutations that happen before hydration completes."""

    def test_pre_hydration_mutation_kept_and_persisted(self):
        storage = MemoryStorage({STORAGE_KEY: _record(
            userProfile={"userType": "freelancer", "incomeRange": "3m_12m", "state": "Enugu"},
        )})

        async def session():
            store = OnboardingStore(storage)
            store.set_has_completed_onboarding(True)
            assert store.is_hydrated is False
            # Nothing written before the persisted record was read
            assert json.loads(storage.items[STORAGE_KEY])["state"].get("hasCompletedOnboarding") is None
            await store.flush()
            return store

        store = run(session())
        assert store.profile == UserProfile("freelancer", "3m_12m", "Enugu")
        assert store.has_completed_onboarding is True

        persisted = OnboardingSnapshot.from_json(storage.items[STORAGE_KEY])
        assert persisted == store.snapshot

    def test_mutation_without_event_loop(self, store, memory_storage):
        # Sync mutation: nothing can be written until a loop flushes
        store.set_state("Yobe")
        assert memory_storage.items == {}

        assert run(store.flush()) is True
        persisted = OnboardingSnapshot.from_json(memory_storage.items[STORAGE_KEY])
        assert persisted.profile.state == "Yobe"

    def test_loopless_mutation_after_hydration(self, memory_storage):
        store = run(OnboardingStore.open(memory_storage))
        store.toggle_checklist_item("3")
        assert store.writer.pending is True

        run(store.flush())
        persisted = OnboardingSnapshot.from_json(memory_storage.items[STORAGE_KEY])
        assert persisted.find_item("3").completed is True
        assert store.writer.pending is False


class TestCreateStore:
    """Production factory."""

    def test_uses_configured_location(self, tmp_path):
        from taxclarity.config import TaxClaritySettings

        settings = TaxClaritySettings(taxclarity_data_dir=tmp_path, taxclarity_storage_key="test-state")
        store = create_store(settings)

        assert isinstance(store.storage, JsonFileStorage)
        assert store.key == "test-state"

        async def session():
            await store.hydrate()
            store.set_income_range("800k_3m")
            await store.aclose()

        run(session())
        assert (tmp_path / "test-state.json").exists()
