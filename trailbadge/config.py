"""Engine configuration and storage constants."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

# Default on-disk location for the CLI's JSON state file
DEFAULT_STATE_DIR = Path.home() / ".trailbadge"
DEFAULT_STATE_FILE = DEFAULT_STATE_DIR / "state.json"

# Persistence keys
USER_STATS_KEY = "user_stats"
USER_BADGES_KEY = "user_badges"
BADGE_PROGRESS_KEY = "badge_progress"
STATE_KEYS = (USER_STATS_KEY, USER_BADGES_KEY, BADGE_PROGRESS_KEY)

# Experience granted for every completed route, before any badge reward
ROUTE_EXPERIENCE = 10


class SpecificDatePolicy(Enum):
    """Which instant a specific-date badge is checked against."""
    REGISTRATION = "registration"        # when the user's stats were first created
    EVALUATION_TIME = "evaluation_time"  # the clock at evaluation


@dataclass(frozen=True)
class EngineConfig:
    route_experience: int = ROUTE_EXPERIENCE
    timezone: Optional[str] = None       # pytz zone name; None = system local time
    specific_date_policy: SpecificDatePolicy = SpecificDatePolicy.REGISTRATION

    def __post_init__(self) -> None:
        if self.route_experience < 0:
            raise ValueError("route_experience must be >= 0")
