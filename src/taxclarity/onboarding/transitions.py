"""
Pure state transitions.

One function per store operation. Each takes the current snapshot and
returns the next one without touching storage or observers. Argument
types are checked here so a caller bug fails before anything changes.
"""

from dataclasses import replace
from typing import Any, Iterable

from .state import (
    ChecklistItem,
    OnboardingSnapshot,
    UserProfile,
    coerce_checklist,
    default_checklist,
)


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be str, got {type(value).__name__}")
    return value


# =============================================================================
# Profile
# =============================================================================

def set_user_type(snapshot: OnboardingSnapshot, user_type: str) -> OnboardingSnapshot:
    _require_str(user_type, "user_type")
    return replace(snapshot, profile=replace(snapshot.profile, user_type=user_type))


def set_income_range(snapshot: OnboardingSnapshot, income_range: str) -> OnboardingSnapshot:
    _require_str(income_range, "income_range")
    return replace(snapshot, profile=replace(snapshot.profile, income_range=income_range))


def set_state(snapshot: OnboardingSnapshot, state_name: str) -> OnboardingSnapshot:
    _require_str(state_name, "state_name")
    return replace(snapshot, profile=replace(snapshot.profile, state=state_name))


def reset_profile(snapshot: OnboardingSnapshot) -> OnboardingSnapshot:
    return replace(snapshot, profile=UserProfile())


# =============================================================================
# Checklist
# =============================================================================

def set_checklist(
    snapshot: OnboardingSnapshot,
    items: Iterable[ChecklistItem | dict],
) -> OnboardingSnapshot:
    """Replace the whole checklist. No merge with the current items."""
    return replace(snapshot, checklist=coerce_checklist(items))


def toggle_checklist_item(snapshot: OnboardingSnapshot, item_id: str) -> OnboardingSnapshot:
    """
    Flip `completed` on the item with `item_id`.

    Unknown ids are a no-op: the same snapshot is returned.
    """
    _require_str(item_id, "item_id")
    if snapshot.find_item(item_id) is None:
        return snapshot
    checklist = tuple(
        item.toggled() if item.id == item_id else item
        for item in snapshot.checklist
    )
    return replace(snapshot, checklist=checklist)


def reset_checklist(snapshot: OnboardingSnapshot) -> OnboardingSnapshot:
    return replace(snapshot, checklist=default_checklist())


# =============================================================================
# App State
# =============================================================================

def set_has_completed_onboarding(snapshot: OnboardingSnapshot, value: bool) -> OnboardingSnapshot:
    if not isinstance(value, bool):
        raise TypeError(f"value must be bool, got {type(value).__name__}")
    return replace(snapshot, has_completed_onboarding=value)


# =============================================================================
# Hydration
# =============================================================================

# Top-level sub-states, as tracked by the store for hydration merges
PROFILE = "profile"
CHECKLIST = "checklist"
ONBOARDING = "has_completed_onboarding"

SUB_STATES = (PROFILE, CHECKLIST, ONBOARDING)


def changed_sub_states(before: OnboardingSnapshot, after: OnboardingSnapshot) -> set[str]:
    """Names of the sub-states that differ between two snapshots."""
    return {name for name in SUB_STATES if getattr(before, name) != getattr(after, name)}


def merge_hydrated(
    persisted: OnboardingSnapshot,
    current: OnboardingSnapshot,
    touched: set[str],
) -> OnboardingSnapshot:
    """
    Combine a freshly loaded snapshot with in-session changes.

    Sub-states mutated in this session before hydration finished keep
    their in-memory value; all others come from the persisted snapshot.
    """
    return replace(persisted, **{name: getattr(current, name) for name in touched})
