"""
Remote sync client (placeholder contract).

The backend does not exist yet and the endpoint layout is still being
agreed, so this models a single DRF-style draft:

    POST  /api/profile/create/      create a profile from the local one
    GET   /api/profile/{id}/        fetch a profile
    GET   /api/checklist/           checklist items (?user_id=)
    PATCH /api/checklist/{id}/      update one item's completion

Nothing in the store calls this module. apply_remote_checklist() is the
one place that moves remote data into local state, through
OnboardingStore.set_checklist().
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from taxclarity.onboarding.state import ChecklistItem, UserProfile
from taxclarity.onboarding.store import OnboardingStore

logger = logging.getLogger(__name__)


ENDPOINTS = {
    "create_profile": "/api/profile/create/",
    "get_profile": "/api/profile/{user_id}/",
    "get_checklist": "/api/checklist/",
    "update_checklist": "/api/checklist/{item_id}/",
}


class SyncError(Exception):
    """Remote call failed (transport, HTTP status, or unexpected payload)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Wire Models
# =============================================================================

def _id_to_str(v: Any) -> Any:
    # DRF primary keys arrive as ints
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


class RemoteProfile(BaseModel):
    """Profile record as returned by the backend."""
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    user_type: str
    income_range: str
    state: str
    created_at: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _id_to_str(v)

    def to_user_profile(self) -> UserProfile:
        return UserProfile(
            user_type=self.user_type,
            income_range=self.income_range,
            state=self.state,
        )


class RemoteChecklistItem(BaseModel):
    """Checklist item as returned by the backend. Extra fields are dropped locally."""
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: str | None = None
    completed: bool = False
    due_date: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _id_to_str(v)

    def to_checklist_item(self) -> ChecklistItem:
        return ChecklistItem(id=self.id, title=self.title, completed=self.completed)


# =============================================================================
# Client
# =============================================================================

class TaxClarityApiClient:
    """
    Thin synchronous HTTP client for the TaxClarity backend.

    Usage:
        with TaxClarityApiClient("http://localhost:8000") as api:
            items = api.get_checklist(user_id="42")
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings=None, **kwargs) -> "TaxClarityApiClient":
        from taxclarity.config import get_settings

        settings = settings or get_settings()
        return cls(
            settings.taxclarity_api_base_url,
            timeout=settings.taxclarity_api_timeout,
            **kwargs,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "TaxClarityApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise SyncError(f"{method} {path} timed out") from e
        except httpx.HTTPStatusError as e:
            raise SyncError(
                f"{method} {path} failed: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise SyncError(f"{method} {path} failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise SyncError(f"{method} {path} returned invalid JSON") from e

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    def create_profile(self, profile: UserProfile) -> RemoteProfile:
        """Create the remote profile from a complete local one."""
        if not profile.is_complete:
            raise ValueError("Cannot create a remote profile with unset fields")

        data = self._request("POST", ENDPOINTS["create_profile"], json={
            "user_type": profile.user_type,
            "income_range": profile.income_range,
            "state": profile.state,
        })
        return self._parse(RemoteProfile, data)

    def get_profile(self, user_id: str) -> RemoteProfile:
        data = self._request("GET", ENDPOINTS["get_profile"].format(user_id=user_id))
        return self._parse(RemoteProfile, data)

    # -------------------------------------------------------------------------
    # Checklist
    # -------------------------------------------------------------------------

    def get_checklist(self, user_id: str | None = None) -> list[RemoteChecklistItem]:
        params = {"user_id": user_id} if user_id else {}
        data = self._request("GET", ENDPOINTS["get_checklist"], params=params)

        # DRF pagination wraps lists in {"results": [...]}
        if isinstance(data, dict) and "results" in data:
            data = data["results"]
        if not isinstance(data, list):
            raise SyncError(f"Expected a list of checklist items, got {type(data).__name__}")
        return [self._parse(RemoteChecklistItem, item) for item in data]

    def update_checklist_item(self, item_id: str, completed: bool) -> RemoteChecklistItem:
        data = self._request(
            "PATCH",
            ENDPOINTS["update_checklist"].format(item_id=item_id),
            json={"completed": completed},
        )
        return self._parse(RemoteChecklistItem, data)

    @staticmethod
    def _parse(model: type[BaseModel], data: Any):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise SyncError(f"Unexpected {model.__name__} payload: {e.error_count()} error(s)") from e


def apply_remote_checklist(
    store: OnboardingStore,
    client: TaxClarityApiClient,
    user_id: str | None = None,
) -> list[ChecklistItem]:
    """
    Replace the local checklist with the server's.

    Items are stored verbatim and in server order. On SyncError the local
    checklist is left untouched and the error propagates.
    """
    remote_items = client.get_checklist(user_id=user_id)
    items = [item.to_checklist_item() for item in remote_items]
    store.set_checklist(items)
    logger.info(f"Applied {len(items)} remote checklist item(s)")
    return items
