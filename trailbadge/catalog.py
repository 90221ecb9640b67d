"""Badge catalog — immutable badge definitions and their unlock conditions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import ClassVar, Iterator, Optional, Union

from trailbadge.errors import CatalogError, UnknownBadgeError


class BadgeCategory(Enum):
    EXPLORATION = "exploration"
    FESTIVAL = "festival"
    ACHIEVEMENT = "achievement"
    SOCIAL = "social"
    SPECIAL = "special"
    SEASONAL = "seasonal"


class BadgeRarity(Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"

    @property
    def rank(self) -> int:
        """Ordinal weight, 1 (common) to 5 (mythic)."""
        return list(BadgeRarity).index(self) + 1


class ConditionType(Enum):
    COMPLETE_OFFICIAL_ROUTE = "complete_official_route"
    COMPLETE_ROUTES_COUNT = "complete_routes_count"
    WALK_DISTANCE = "walk_distance"
    VISIT_LOCATIONS = "visit_locations"
    FESTIVAL_ACTIVITY = "festival_activity"
    SOCIAL_SHARE = "social_share"
    CONSECUTIVE_DAYS = "consecutive_days"
    SPECIFIC_DATE = "specific_date"
    AR_NAVIGATION = "ar_navigation"
    PHOTO_TAKEN = "photo_taken"


def _check_target(target: object, minimum: int = 1) -> None:
    if isinstance(target, bool) or not isinstance(target, int) or target < minimum:
        raise CatalogError(f"condition target must be an integer >= {minimum}, got {target!r}")


# ── Conditions ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CounterCondition:
    """Unlocks once a single UserStats counter reaches `target`."""

    target: int

    type: ClassVar[ConditionType]
    stat: ClassVar[str]

    def __post_init__(self) -> None:
        _check_target(self.target)


@dataclass(frozen=True)
class CompleteOfficialRoute(CounterCondition):
    type: ClassVar[ConditionType] = ConditionType.COMPLETE_OFFICIAL_ROUTE
    stat: ClassVar[str] = "completed_official_routes"


@dataclass(frozen=True)
class CompleteRoutesCount(CounterCondition):
    type: ClassVar[ConditionType] = ConditionType.COMPLETE_ROUTES_COUNT
    stat: ClassVar[str] = "completed_routes"


@dataclass(frozen=True)
class WalkDistance(CounterCondition):
    """`target` is in meters."""

    type: ClassVar[ConditionType] = ConditionType.WALK_DISTANCE
    stat: ClassVar[str] = "total_distance"


@dataclass(frozen=True)
class VisitLocations(CounterCondition):
    type: ClassVar[ConditionType] = ConditionType.VISIT_LOCATIONS
    stat: ClassVar[str] = "visited_locations"


@dataclass(frozen=True)
class SocialShare(CounterCondition):
    type: ClassVar[ConditionType] = ConditionType.SOCIAL_SHARE
    stat: ClassVar[str] = "social_shares"


@dataclass(frozen=True)
class ConsecutiveDays(CounterCondition):
    type: ClassVar[ConditionType] = ConditionType.CONSECUTIVE_DAYS
    stat: ClassVar[str] = "consecutive_days"


@dataclass(frozen=True)
class PhotoTaken(CounterCondition):
    type: ClassVar[ConditionType] = ConditionType.PHOTO_TAKEN
    stat: ClassVar[str] = "photos_taken"


@dataclass(frozen=True)
class ARNavigation:
    """Unlocks on the first AR navigation; `target` only scales progress."""

    target: int = 1

    type: ClassVar[ConditionType] = ConditionType.AR_NAVIGATION

    def __post_init__(self) -> None:
        _check_target(self.target)


@dataclass(frozen=True)
class FestivalActivity:
    """Unlocks from a route-completion event tagged with `festival`."""

    festival: str
    route_type: Optional[str] = None

    type: ClassVar[ConditionType] = ConditionType.FESTIVAL_ACTIVITY

    def __post_init__(self) -> None:
        if not isinstance(self.festival, str) or not self.festival.strip():
            raise CatalogError("festival condition needs a non-empty festival tag")
        if self.route_type is not None and not self.route_type.strip():
            raise CatalogError("festival route_type must be non-empty when given")


@dataclass(frozen=True)
class SpecificDate:
    """One-time eligibility: the user qualifies if seen before `before`."""

    before: datetime

    type: ClassVar[ConditionType] = ConditionType.SPECIFIC_DATE

    def __post_init__(self) -> None:
        if not isinstance(self.before, datetime) or self.before.tzinfo is None:
            raise CatalogError("specific-date deadline must be a timezone-aware datetime")


Condition = Union[
    CompleteOfficialRoute,
    CompleteRoutesCount,
    WalkDistance,
    VisitLocations,
    SocialShare,
    ConsecutiveDays,
    PhotoTaken,
    ARNavigation,
    FestivalActivity,
    SpecificDate,
]

COUNTER_CONDITIONS: dict[ConditionType, type[CounterCondition]] = {
    cls.type: cls
    for cls in (
        CompleteOfficialRoute,
        CompleteRoutesCount,
        WalkDistance,
        VisitLocations,
        SocialShare,
        ConsecutiveDays,
        PhotoTaken,
    )
}


# ── Definitions ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class BadgeDefinition:
    id: str
    name: str
    description: str
    icon: str
    category: BadgeCategory
    rarity: BadgeRarity
    condition: Condition
    reward_experience: int = 0
    reward_title: Optional[str] = None
    is_active: bool = True
    active_months: Optional[frozenset[int]] = None
    valid_until: Optional[datetime] = None
    unlock_message: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise CatalogError("badge id must be non-empty")
        if isinstance(self.reward_experience, bool) or not isinstance(self.reward_experience, int) \
                or self.reward_experience < 0:
            raise CatalogError(f"{self.id}: reward_experience must be an integer >= 0")
        if self.valid_until is not None and self.valid_until.tzinfo is None:
            raise CatalogError(f"{self.id}: valid_until must be timezone-aware")
        if self.active_months is not None:
            months = frozenset(self.active_months)
            if not months or any(m < 1 or m > 12 for m in months):
                raise CatalogError(f"{self.id}: active_months must be months 1-12")
            object.__setattr__(self, "active_months", months)

    def is_obtainable(self, now: datetime) -> bool:
        """Whether the badge can be newly unlocked at `now`."""
        if not self.is_active:
            return False
        if self.active_months is not None and now.month not in self.active_months:
            return False
        if self.valid_until is not None and now > self.valid_until:
            return False
        return True

    @property
    def message(self) -> str:
        return self.unlock_message or f"{self.icon} Badge unlocked: {self.name}!"


class BadgeCatalog:
    """Read-only set of badge definitions with O(1) lookup by id."""

    def __init__(self, definitions) -> None:
        self._definitions: tuple[BadgeDefinition, ...] = tuple(definitions)
        self._by_id: dict[str, BadgeDefinition] = {}
        for definition in self._definitions:
            if definition.id in self._by_id:
                raise CatalogError(f"duplicate badge id: {definition.id!r}")
            self._by_id[definition.id] = definition

    def all(self) -> tuple[BadgeDefinition, ...]:
        return self._definitions

    def get(self, badge_id: str) -> BadgeDefinition:
        try:
            return self._by_id[badge_id]
        except KeyError:
            raise UnknownBadgeError(badge_id) from None

    def by_category(self, category: BadgeCategory) -> list[BadgeDefinition]:
        return [d for d in self._definitions if d.category == category]

    def __contains__(self, badge_id: object) -> bool:
        return badge_id in self._by_id

    def __iter__(self) -> Iterator[BadgeDefinition]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)


# ── Built-in catalog ────────────────────────────────────────────────────

BADGES: list[BadgeDefinition] = [
    # --- Festival ---
    BadgeDefinition(
        id="dragon_boat",
        name="Dragon Boat Blessings",
        description="Complete an official Dragon Boat Festival route",
        icon="🏮",
        category=BadgeCategory.FESTIVAL,
        rarity=BadgeRarity.EPIC,
        condition=FestivalActivity(festival="dragon_boat", route_type="official"),
        reward_experience=500,
        reward_title="Keeper of Dragon Boat Traditions",
        active_months=frozenset({5, 6}),
        unlock_message="🎉 Dragon Boat Blessings unlocked! Tradition blooms along your footsteps!",
    ),

    # --- Exploration ---
    BadgeDefinition(
        id="first_route",
        name="First Steps",
        description="Complete your first route",
        icon="🗺️",
        category=BadgeCategory.EXPLORATION,
        rarity=BadgeRarity.COMMON,
        condition=CompleteRoutesCount(target=1),
        reward_experience=100,
        reward_title="Novice Explorer",
        unlock_message="🎉 Welcome, explorer! This is only the beginning!",
    ),
    BadgeDefinition(
        id="official_explorer",
        name="Guided Explorer",
        description="Complete 3 official routes",
        icon="🧭",
        category=BadgeCategory.EXPLORATION,
        rarity=BadgeRarity.COMMON,
        condition=CompleteOfficialRoute(target=3),
        reward_experience=120,
    ),
    BadgeDefinition(
        id="wanderer",
        name="Wanderer",
        description="Visit 20 locations",
        icon="📍",
        category=BadgeCategory.EXPLORATION,
        rarity=BadgeRarity.RARE,
        condition=VisitLocations(target=20),
        reward_experience=200,
    ),

    # --- Achievement ---
    BadgeDefinition(
        id="route_master",
        name="Route Master",
        description="Complete 10 routes",
        icon="🏆",
        category=BadgeCategory.ACHIEVEMENT,
        rarity=BadgeRarity.RARE,
        condition=CompleteRoutesCount(target=10),
        reward_experience=300,
        reward_title="Seasoned Explorer",
        unlock_message="🎉 You are a Route Master now! Keep exploring!",
    ),
    BadgeDefinition(
        id="city_walker",
        name="City Walker",
        description="Walk 5 km in total",
        icon="👟",
        category=BadgeCategory.ACHIEVEMENT,
        rarity=BadgeRarity.COMMON,
        condition=WalkDistance(target=5_000),
        reward_experience=100,
    ),
    BadgeDefinition(
        id="marathoner",
        name="Marathoner",
        description="Walk a marathon's distance in total",
        icon="🏃",
        category=BadgeCategory.ACHIEVEMENT,
        rarity=BadgeRarity.EPIC,
        condition=WalkDistance(target=42_195),
        reward_experience=400,
    ),
    BadgeDefinition(
        id="ar_pioneer",
        name="AR Pioneer",
        description="Navigate with AR for the first time",
        icon="📱",
        category=BadgeCategory.ACHIEVEMENT,
        rarity=BadgeRarity.RARE,
        condition=ARNavigation(target=1),
        reward_experience=200,
        reward_title="AR Navigator",
        unlock_message="🎉 You are an AR pioneer! Technology makes exploring brighter!",
    ),
    BadgeDefinition(
        id="shutterbug",
        name="Shutterbug",
        description="Take 10 check-in photos",
        icon="📸",
        category=BadgeCategory.ACHIEVEMENT,
        rarity=BadgeRarity.COMMON,
        condition=PhotoTaken(target=10),
        reward_experience=100,
    ),
    BadgeDefinition(
        id="week_streak",
        name="Seven Day Trail",
        description="Be active 7 days in a row",
        icon="🔥",
        category=BadgeCategory.ACHIEVEMENT,
        rarity=BadgeRarity.RARE,
        condition=ConsecutiveDays(target=7),
        reward_experience=250,
    ),

    # --- Social ---
    BadgeDefinition(
        id="share_master",
        name="Sharing Star",
        description="Share routes to social media 5 times",
        icon="📤",
        category=BadgeCategory.SOCIAL,
        rarity=BadgeRarity.COMMON,
        condition=SocialShare(target=5),
        reward_experience=150,
        reward_title="Social Sharer",
        unlock_message="🎉 Thanks for sharing! More people will discover the beauty!",
    ),

    # --- Seasonal ---
    BadgeDefinition(
        id="spring_walker",
        name="Spring in Bloom",
        description="Complete 5 routes during spring",
        icon="🌸",
        category=BadgeCategory.SEASONAL,
        rarity=BadgeRarity.RARE,
        condition=CompleteRoutesCount(target=5),
        reward_experience=250,
        reward_title="Spring Wanderer",
        active_months=frozenset({3, 4, 5}),
        unlock_message="🎉 Spring walks beside you!",
    ),

    # --- Special ---
    BadgeDefinition(
        id="founder",
        name="Founding Explorer",
        description="Reserved for early users who joined before February 2025",
        icon="⭐",
        category=BadgeCategory.SPECIAL,
        rarity=BadgeRarity.LEGENDARY,
        condition=SpecificDate(before=datetime(2025, 2, 1, tzinfo=timezone.utc)),
        reward_experience=1000,
        reward_title="Founding Explorer",
        unlock_message="🎉 Thank you for being one of our earliest explorers! This honor is yours forever!",
    ),
]


def default_catalog() -> BadgeCatalog:
    """Return the built-in badge catalog."""
    return BadgeCatalog(BADGES)


# ── JSON catalog files ──────────────────────────────────────────────────

def _parse_datetime(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise CatalogError(f"invalid date: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def condition_from_dict(data: dict) -> Condition:
    """Build a condition from its `{type, target, parameters}` form."""
    if not isinstance(data, dict):
        raise CatalogError(f"condition must be an object, got {data!r}")
    try:
        ctype = ConditionType(data.get("type"))
    except ValueError:
        raise CatalogError(f"unknown condition type: {data.get('type')!r}") from None

    target = data.get("target", 1)
    params = data.get("parameters") or {}
    if not isinstance(params, dict):
        raise CatalogError("condition parameters must be an object")

    if ctype in COUNTER_CONDITIONS:
        return COUNTER_CONDITIONS[ctype](target=target)
    if ctype is ConditionType.AR_NAVIGATION:
        return ARNavigation(target=target)
    if ctype is ConditionType.FESTIVAL_ACTIVITY:
        if "festival" not in params:
            raise CatalogError("festival_activity condition is missing parameters.festival")
        return FestivalActivity(festival=params["festival"], route_type=params.get("route_type"))
    if "before" not in params:
        raise CatalogError("specific_date condition is missing parameters.before")
    return SpecificDate(before=_parse_datetime(params["before"]))


def condition_to_dict(condition: Condition) -> dict:
    """Inverse of condition_from_dict."""
    if isinstance(condition, FestivalActivity):
        params = {"festival": condition.festival}
        if condition.route_type is not None:
            params["route_type"] = condition.route_type
        return {"type": condition.type.value, "target": 1, "parameters": params}
    if isinstance(condition, SpecificDate):
        return {
            "type": condition.type.value,
            "target": 1,
            "parameters": {"before": condition.before.isoformat()},
        }
    return {"type": condition.type.value, "target": condition.target}


def definition_from_dict(data: dict) -> BadgeDefinition:
    """Build a BadgeDefinition from a catalog-file entry."""
    if not isinstance(data, dict) or "id" not in data:
        raise CatalogError("catalog entry must be an object with an id")
    badge_id = data["id"]
    try:
        rewards = data.get("rewards") or {}
        valid_until = data.get("valid_until")
        months = data.get("active_months")
        return BadgeDefinition(
            id=badge_id,
            name=data.get("name", badge_id),
            description=data.get("description", ""),
            icon=data.get("icon", "🏅"),
            category=BadgeCategory(data.get("category", "achievement")),
            rarity=BadgeRarity(data.get("rarity", "common")),
            condition=condition_from_dict(data.get("condition", {})),
            reward_experience=rewards.get("experience", data.get("reward_experience", 0)),
            reward_title=rewards.get("title", data.get("reward_title")),
            is_active=bool(data.get("is_active", True)),
            active_months=frozenset(months) if months is not None else None,
            valid_until=_parse_datetime(valid_until) if valid_until else None,
            unlock_message=data.get("unlock_message", ""),
        )
    except (AttributeError, TypeError, ValueError) as exc:
        raise CatalogError(f"{badge_id}: {exc}") from None


def load_catalog(path: str | Path) -> BadgeCatalog:
    """Load a catalog from a JSON file holding a list (or `{"badges": [...]}`)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise CatalogError(f"cannot read catalog {path}: {exc}") from None
    except json.JSONDecodeError as exc:
        raise CatalogError(f"catalog {path} is not valid JSON: {exc}") from None

    if isinstance(data, dict):
        data = data.get("badges")
    if not isinstance(data, list):
        raise CatalogError(f"catalog {path} must contain a list of badges")
    return BadgeCatalog(definition_from_dict(entry) for entry in data)
