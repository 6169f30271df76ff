"""
Onboarding State Shape.

Profile, checklist and onboarding flag, held together in one immutable
snapshot. The snapshot is the unit of persistence: it is always written
whole under a single storage key.

Decoding is tolerant. Unknown fields are ignored, missing fields take
their defaults, and a malformed sub-state falls back to its own default
without discarding the other sub-states.
"""

from dataclasses import dataclass, field, replace
from typing import Any
import json
import logging

from taxclarity.reference import DEFAULT_CHECKLIST

logger = logging.getLogger(__name__)

# Envelope version of the persisted record
PERSIST_VERSION = 0


@dataclass(frozen=True)
class UserProfile:
    """Three independently settable fields. None means unset."""
    user_type: str | None = None
    income_range: str | None = None
    state: str | None = None

    @property
    def is_complete(self) -> bool:
        """All three fields set (profile screen can continue)."""
        return None not in (self.user_type, self.income_range, self.state)

    def to_dict(self) -> dict:
        return {
            "userType": self.user_type,
            "incomeRange": self.income_range,
            "state": self.state,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        """
        Decode a profile, field by field.

        A field that is missing or not a string is left unset.
        """
        if not isinstance(data, dict):
            raise ValueError(f"profile must be an object, got {type(data).__name__}")

        def _field(key: str) -> str | None:
            value = data.get(key)
            if value is None or isinstance(value, str):
                return value
            logger.warning(f"Ignoring non-string profile field {key!r}: {value!r}")
            return None

        return cls(
            user_type=_field("userType"),
            income_range=_field("incomeRange"),
            state=_field("state"),
        )


@dataclass(frozen=True)
class ChecklistItem:
    """One compliance task. Only `completed` ever changes after creation."""
    id: str
    title: str
    completed: bool = False

    def __post_init__(self):
        if not isinstance(self.id, str):
            raise TypeError(f"checklist item id must be str, got {type(self.id).__name__}")
        if not isinstance(self.title, str):
            raise TypeError(f"checklist item title must be str, got {type(self.title).__name__}")
        if not isinstance(self.completed, bool):
            raise TypeError(
                f"checklist item completed must be bool, got {type(self.completed).__name__}"
            )

    def toggled(self) -> "ChecklistItem":
        return replace(self, completed=not self.completed)

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, "completed": self.completed}

    @classmethod
    def from_dict(cls, data: dict) -> "ChecklistItem":
        """Decode an item. `completed` defaults to False when absent."""
        if not isinstance(data, dict):
            raise ValueError(f"checklist item must be an object, got {type(data).__name__}")
        try:
            return cls(
                id=data["id"],
                title=data["title"],
                completed=data.get("completed", False),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"invalid checklist item {data!r}: {e}") from e


def default_checklist() -> tuple[ChecklistItem, ...]:
    """Built-in seed checklist, all items incomplete."""
    return tuple(ChecklistItem(id=i["id"], title=i["title"]) for i in DEFAULT_CHECKLIST)


def coerce_checklist(items: Any) -> tuple[ChecklistItem, ...]:
    """
    Normalize an ordered sequence of items (ChecklistItem or mappings).

    Order and field values are kept verbatim. Raises ValueError for a
    non-sequence, a malformed mapping, or duplicate ids.
    """
    if isinstance(items, (str, bytes, dict)) or not hasattr(items, "__iter__"):
        raise ValueError(f"checklist must be a sequence of items, got {type(items).__name__}")

    result = []
    seen: set[str] = set()
    for item in items:
        if not isinstance(item, ChecklistItem):
            item = ChecklistItem.from_dict(item)
        if item.id in seen:
            raise ValueError(f"duplicate checklist item id: {item.id!r}")
        seen.add(item.id)
        result.append(item)
    return tuple(result)


@dataclass(frozen=True)
class OnboardingSnapshot:
    """
    Full store state at a point in time.

    Immutable: transitions return a new snapshot, so observers can hold
    on to the one they were given.
    """
    profile: UserProfile = field(default_factory=UserProfile)
    checklist: tuple[ChecklistItem, ...] = field(default_factory=default_checklist)
    has_completed_onboarding: bool = False

    @property
    def completed_count(self) -> int:
        return sum(1 for item in self.checklist if item.completed)

    @property
    def all_completed(self) -> bool:
        """Every checklist item done (an empty checklist counts as done)."""
        return all(item.completed for item in self.checklist)

    def find_item(self, item_id: str) -> ChecklistItem | None:
        for item in self.checklist:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict:
        """Serialize to the persisted shape (inner state, no envelope)."""
        return {
            "userProfile": self.profile.to_dict(),
            "checklist": [item.to_dict() for item in self.checklist],
            "hasCompletedOnboarding": self.has_completed_onboarding,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OnboardingSnapshot":
        """
        Deserialize with partial-default recovery.

        Each sub-state is decoded on its own. If one is malformed it is
        replaced by its default and the others are kept.
        """
        if not isinstance(data, dict):
            logger.warning(f"Persisted state is not an object ({type(data).__name__}), using defaults")
            return cls()

        defaults = cls()

        profile = defaults.profile
        if "userProfile" in data:
            try:
                profile = UserProfile.from_dict(data["userProfile"])
            except ValueError as e:
                logger.warning(f"Discarding persisted profile: {e}")

        checklist = defaults.checklist
        if "checklist" in data:
            try:
                checklist = coerce_checklist(data["checklist"])
            except (TypeError, ValueError) as e:
                logger.warning(f"Discarding persisted checklist: {e}")

        completed = defaults.has_completed_onboarding
        if "hasCompletedOnboarding" in data:
            value = data["hasCompletedOnboarding"]
            if isinstance(value, bool):
                completed = value
            else:
                logger.warning(f"Discarding persisted onboarding flag: {value!r}")

        return cls(profile=profile, checklist=checklist, has_completed_onboarding=completed)

    def to_json(self) -> str:
        """Serialize to the persisted record (with version envelope)."""
        return json.dumps({"state": self.to_dict(), "version": PERSIST_VERSION})

    @classmethod
    def from_json(cls, json_str: str) -> "OnboardingSnapshot":
        """
        Deserialize a persisted record.

        Accepts the versioned envelope or a bare state object. An
        unparseable record decodes to the defaults.
        """
        try:
            data = json.loads(json_str)
        except (TypeError, ValueError, RecursionError) as e:
            # RecursionError: nesting deeper than the interpreter allows
            logger.warning(f"Persisted state is not valid JSON, using defaults: {e}")
            return cls()

        if isinstance(data, dict) and isinstance(data.get("state"), dict):
            version = data.get("version", PERSIST_VERSION)
            if version != PERSIST_VERSION:
                logger.info(f"Reading persisted state version {version!r} as version {PERSIST_VERSION}")
            data = data["state"]
        return cls.from_dict(data)
