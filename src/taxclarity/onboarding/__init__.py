"""
TaxClarity Onboarding.

Local state behind the onboarding flow:
1. Welcome - no state
2. Profile setup - user type, income range, state of residence
3. Next steps - compliance checklist, then the onboarding flag

State is held by OnboardingStore and persisted as one snapshot.
"""

from .state import ChecklistItem, OnboardingSnapshot, UserProfile
from .store import STORAGE_KEY, OnboardingStore, create_store

__all__ = [
    "ChecklistItem",
    "OnboardingSnapshot",
    "UserProfile",
    "OnboardingStore",
    "STORAGE_KEY",
    "create_store",
]
