"""User activity counters and the consecutive-day policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

import pytz

logger = logging.getLogger(__name__)

COUNTER_FIELDS = (
    "completed_routes",
    "completed_official_routes",
    "visited_locations",
    "social_shares",
    "ar_navigation_used",
    "photos_taken",
    "consecutive_days",
    "experience",
)


@dataclass
class UserStats:
    completed_routes: int = 0
    completed_official_routes: int = 0
    total_distance: float = 0.0         # meters
    visited_locations: int = 0
    social_shares: int = 0
    ar_navigation_used: int = 0
    photos_taken: int = 0
    consecutive_days: int = 0
    experience: int = 0
    earned_titles: list[str] = field(default_factory=list)
    registered_at: Optional[datetime] = None
    last_active_day: Optional[date] = None

    def to_dict(self) -> dict:
        data = {name: getattr(self, name) for name in COUNTER_FIELDS}
        data["total_distance"] = self.total_distance
        data["earned_titles"] = list(self.earned_titles)
        data["registered_at"] = self.registered_at.isoformat() if self.registered_at else None
        data["last_active_day"] = self.last_active_day.isoformat() if self.last_active_day else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "UserStats":
        """Parse a stored stats object. Raises ValueError/TypeError on bad data."""
        if not isinstance(data, dict):
            raise TypeError("stats must be an object")

        stats = cls()
        for name in COUNTER_FIELDS:
            value = data.get(name, 0)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
            setattr(stats, name, value)

        distance = data.get("total_distance", 0.0)
        if isinstance(distance, bool) or not isinstance(distance, (int, float)) or not distance >= 0:
            raise ValueError(f"total_distance must be a non-negative number, got {distance!r}")
        stats.total_distance = float(distance)

        titles = data.get("earned_titles", [])
        if not isinstance(titles, list) or not all(isinstance(t, str) for t in titles):
            raise ValueError("earned_titles must be a list of strings")
        stats.earned_titles = list(titles)

        if data.get("registered_at"):
            registered = datetime.fromisoformat(data["registered_at"])
            if registered.tzinfo is None:
                registered = registered.replace(tzinfo=pytz.utc)
            stats.registered_at = registered
        if data.get("last_active_day"):
            stats.last_active_day = date.fromisoformat(data["last_active_day"])
        return stats


@dataclass(frozen=True)
class UnlockedBadgeRecord:
    badge_id: str
    unlocked_at: datetime

    def to_dict(self) -> dict:
        return {"badge_id": self.badge_id, "unlocked_at": self.unlocked_at.isoformat()}

    @classmethod
    def from_dict(cls, data: dict) -> "UnlockedBadgeRecord":
        unlocked_at = datetime.fromisoformat(data["unlocked_at"])
        if unlocked_at.tzinfo is None:
            unlocked_at = unlocked_at.replace(tzinfo=pytz.utc)
        return cls(badge_id=str(data["badge_id"]), unlocked_at=unlocked_at)


@dataclass(frozen=True)
class BadgeProgress:
    badge_id: str
    current_progress: float             # 0.0 - 1.0


# ── Consecutive days ────────────────────────────────────────────────────

def local_now(now: datetime, tz_name: Optional[str] = None) -> datetime:
    """`now` converted to the named zone, or to system local time."""
    if tz_name is None:
        return now.astimezone()
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown timezone %r, using UTC for local time", tz_name)
        tz = pytz.utc
    return now.astimezone(tz)


def local_day(now: datetime, tz_name: Optional[str] = None) -> date:
    """Calendar day of `now` in the named zone, or in system local time."""
    return local_now(now, tz_name).date()


def update_consecutive_days(stats: UserStats, today: date) -> None:
    """Count one activity on `today` toward the consecutive-day streak.

    Same day: unchanged. Day after the last active day: +1.
    Anything else (first activity, gap, clock moved backwards): reset to 1.
    """
    last = stats.last_active_day
    if last == today:
        return
    if last is not None and last == today - timedelta(days=1):
        stats.consecutive_days += 1
    else:
        stats.consecutive_days = 1
    stats.last_active_day = today
