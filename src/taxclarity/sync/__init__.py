"""
TaxClarity remote sync (placeholder).

Not wired into the store; see client.py for the draft contract.
"""

from taxclarity.sync.client import (
    RemoteChecklistItem,
    RemoteProfile,
    SyncError,
    TaxClarityApiClient,
    apply_remote_checklist,
)

__all__ = [
    "RemoteChecklistItem",
    "RemoteProfile",
    "SyncError",
    "TaxClarityApiClient",
    "apply_remote_checklist",
]
