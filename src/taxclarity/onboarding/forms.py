"""
Onboarding Forms - Profile setup and next steps.

The store accepts any string for the profile fields. Validation against
the reference tables happens here, on the caller side, before the
values reach the store.
"""

import logging
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from taxclarity.reference import (
    VALID_INCOME_RANGES,
    VALID_STATES,
)

from .store import OnboardingStore

logger = logging.getLogger(__name__)


# =============================================================================
# Form Model
# =============================================================================

class ProfileForm(BaseModel):
    """
    Profile setup form data.

    All three fields are required before the user can continue.
    """

    user_type: Literal["salary_earner", "freelancer", "small_business_owner"] = Field(
        description="Taxpayer category"
    )

    income_range: str = Field(
        description="Annual income bucket key (e.g. '800k_3m')"
    )

    state: str = Field(
        description="State of residence, as listed in NIGERIAN_STATES"
    )

    @field_validator("income_range", mode="before")
    @classmethod
    def validate_income_range(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip()
        if v not in VALID_INCOME_RANGES:
            raise ValueError(f"Unknown income range: {v!r}")
        return v

    @field_validator("state", mode="before")
    @classmethod
    def validate_state(cls, v: str) -> str:
        return normalize_state(v)


# Users type "Abuja"; the table says "FCT - Abuja"
STATE_ALIASES = {
    "abuja": "FCT - Abuja",
    "fct": "FCT - Abuja",
}


def normalize_state(value: str) -> str:
    """
    Map user input to a listed state name.

    Strips whitespace and resolves aliases. Raises ValueError for
    anything not in NIGERIAN_STATES.
    """
    if isinstance(value, str):
        value = value.strip()
    if value in VALID_STATES:
        return value
    if isinstance(value, str) and value.lower() in STATE_ALIASES:
        canonical = STATE_ALIASES[value.lower()]
        logger.info(f"Normalized state {value!r} to {canonical!r}")
        return canonical
    raise ValueError(f"Unknown state: {value!r}")


# =============================================================================
# Flow Helpers
# =============================================================================

def submit_profile(store: OnboardingStore, form: ProfileForm) -> None:
    """Save a validated profile form to the store (profile setup → next steps)."""
    store.set_user_type(form.user_type)
    store.set_income_range(form.income_range)
    store.set_state(form.state)
    logger.info(f"Profile saved: {form.user_type}, {form.income_range}, {form.state}")


def checklist_progress(store: OnboardingStore) -> tuple[int, int]:
    """(completed, total) for the next-steps screen."""
    snapshot = store.snapshot
    return snapshot.completed_count, len(snapshot.checklist)


def finish_onboarding(store: OnboardingStore) -> bool:
    """
    Mark onboarding as done (the "Done" button on next steps).

    Returns whether every checklist item was completed at that point;
    when it wasn't, the screen sets a reminder instead of celebrating.
    """
    all_done = store.snapshot.all_completed
    store.set_has_completed_onboarding(True)
    if not all_done:
        done, total = checklist_progress(store)
        logger.info(f"Onboarding finished with checklist at {done}/{total}")
    return all_done
