"""Progress evaluator — map a badge condition and user stats to progress."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from trailbadge.catalog import (
    COUNTER_CONDITIONS,
    ARNavigation,
    BadgeDefinition,
    Condition,
    CounterCondition,
    FestivalActivity,
    SpecificDate,
)
from trailbadge.config import SpecificDatePolicy
from trailbadge.stats import UserStats


@dataclass(frozen=True)
class RouteEvent:
    """Metadata of the route completion that triggered an evaluation pass."""
    festival: Optional[str] = None
    route_type: str = "normal"          # "official" or "normal"


@dataclass(frozen=True)
class Evaluation:
    progress: float                     # 0.0 - 1.0
    unlocked: bool


LOCKED = Evaluation(progress=0.0, unlocked=False)
UNLOCKED = Evaluation(progress=1.0, unlocked=True)


def _counter(condition: CounterCondition, stats: UserStats, now: datetime,
             event: Optional[RouteEvent], policy: SpecificDatePolicy) -> Evaluation:
    value = getattr(stats, condition.stat)
    return Evaluation(
        progress=min(1.0, value / condition.target),
        unlocked=value >= condition.target,
    )


def _ar_navigation(condition: ARNavigation, stats: UserStats, now: datetime,
                   event: Optional[RouteEvent], policy: SpecificDatePolicy) -> Evaluation:
    used = stats.ar_navigation_used
    return Evaluation(
        progress=min(1.0, used / max(condition.target, 1)),
        unlocked=used >= 1,
    )


def _festival(condition: FestivalActivity, stats: UserStats, now: datetime,
              event: Optional[RouteEvent], policy: SpecificDatePolicy) -> Evaluation:
    # Event-driven: counters alone never satisfy a festival badge
    if event is None or event.festival != condition.festival:
        return LOCKED
    if condition.route_type is not None and event.route_type != condition.route_type:
        return LOCKED
    return UNLOCKED


def _specific_date(condition: SpecificDate, stats: UserStats, now: datetime,
                   event: Optional[RouteEvent], policy: SpecificDatePolicy) -> Evaluation:
    instant = stats.registered_at if policy is SpecificDatePolicy.REGISTRATION else now
    if instant is None:
        return LOCKED
    return UNLOCKED if instant < condition.before else LOCKED


EVALUATORS: dict[type, Callable[..., Evaluation]] = {
    **{cls: _counter for cls in COUNTER_CONDITIONS.values()},
    ARNavigation: _ar_navigation,
    FestivalActivity: _festival,
    SpecificDate: _specific_date,
}


def evaluate(
    condition: Condition,
    stats: UserStats,
    now: datetime,
    event: Optional[RouteEvent] = None,
    *,
    specific_date_policy: SpecificDatePolicy = SpecificDatePolicy.REGISTRATION,
) -> Evaluation:
    """Compute (progress, unlocked) for one condition. Pure; never mutates stats."""
    try:
        fn = EVALUATORS[type(condition)]
    except KeyError:
        raise TypeError(f"unsupported condition: {condition!r}") from None
    return fn(condition, stats, now, event, specific_date_policy)


def is_eligible(definition: BadgeDefinition, now: datetime) -> bool:
    """Whether `definition` may be newly unlocked at `now`."""
    return definition.is_obtainable(now)


def evaluate_all(
    definitions: Iterable[BadgeDefinition],
    stats: UserStats,
    now: datetime,
    *,
    specific_date_policy: SpecificDatePolicy = SpecificDatePolicy.REGISTRATION,
) -> dict[str, Evaluation]:
    """Evaluate every definition without event metadata, keyed by badge id."""
    return {
        d.id: evaluate(d.condition, stats, now, specific_date_policy=specific_date_policy)
        for d in definitions
    }
