"""Badge engine — record activity, unlock badges, queue unlock alerts.

Every mutating call runs one atomic step under the engine lock:

    mutate a copy of the stats -> evaluate locked badges -> commit -> swap in

If the commit fails nothing is swapped in, so experience is never granted
without the matching unlock record (and vice versa).
"""

from __future__ import annotations

import copy
import logging
import math
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from trailbadge.catalog import BadgeCatalog, BadgeCategory, BadgeDefinition, default_catalog
from trailbadge.config import EngineConfig
from trailbadge.errors import PersistenceError, StorageError
from trailbadge.evaluator import RouteEvent, evaluate, is_eligible
from trailbadge.stats import (
    BadgeProgress,
    UnlockedBadgeRecord,
    UserStats,
    local_now,
    update_consecutive_days,
)
from trailbadge.storage import MemoryStore, UserStatsStore

logger = logging.getLogger(__name__)

# Engine event kinds
STATS_CHANGED = "stats_changed"
BADGE_UNLOCKED = "badge_unlocked"
ALERT_ACKNOWLEDGED = "alert_acknowledged"
RESET = "reset"


@dataclass(frozen=True)
class UnlockAlert:
    badge: BadgeDefinition
    unlocked_at: datetime

    @property
    def message(self) -> str:
        return self.badge.message


@dataclass(frozen=True)
class EngineEvent:
    kind: str
    badge_id: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BadgeEngine:
    """Owns one user's stats, unlock records and pending unlock alerts."""

    def __init__(
        self,
        catalog: Optional[BadgeCatalog] = None,
        store: Optional[UserStatsStore] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.catalog = catalog if catalog is not None else default_catalog()
        self.store = store if store is not None else UserStatsStore(MemoryStore())
        self.config = config if config is not None else EngineConfig()
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._subscribers: list[Callable[[EngineEvent], None]] = []
        self._alerts: deque[UnlockAlert] = deque()

        self._stats = self.store.load()
        self._unlocked = self.store.load_unlocked()

        if self._stats.registered_at is None:
            self._stats.registered_at = self._now()
            try:
                self.store.save(self._stats)
            except StorageError as e:
                logger.warning("Could not save registration time: %s", e)

    def _now(self) -> datetime:
        now = self._clock()
        return now if now.tzinfo is not None else now.astimezone()

    # ── Activity ────────────────────────────────────────────────────────

    def record_route_completion(
        self,
        is_official: bool = False,
        festival_type: Optional[str] = None,
    ) -> list[BadgeDefinition]:
        """Count a completed route and evaluate with its festival metadata."""
        def mutate(stats: UserStats) -> None:
            stats.completed_routes += 1
            if is_official:
                stats.completed_official_routes += 1
            stats.experience += self.config.route_experience

        event = RouteEvent(
            festival=festival_type,
            route_type="official" if is_official else "normal",
        )
        return self._apply(mutate, event=event)

    def record_walk_distance(self, meters: float) -> list[BadgeDefinition]:
        """Add walked meters. Negative, non-finite or oversized input is ignored."""
        distance = math.nan
        if not isinstance(meters, bool) and isinstance(meters, (int, float)):
            try:
                distance = float(meters)
            except OverflowError:
                pass
        if not math.isfinite(distance) or distance < 0:
            logger.warning("Ignoring invalid walk distance: %r", meters)
            return []

        def mutate(stats: UserStats) -> None:
            stats.total_distance += distance

        return self._apply(mutate)

    def record_location_visit(self) -> list[BadgeDefinition]:
        return self._apply(lambda s: setattr(s, "visited_locations", s.visited_locations + 1))

    def record_social_share(self) -> list[BadgeDefinition]:
        return self._apply(lambda s: setattr(s, "social_shares", s.social_shares + 1))

    def record_ar_navigation(self) -> list[BadgeDefinition]:
        return self._apply(lambda s: setattr(s, "ar_navigation_used", s.ar_navigation_used + 1))

    def record_photo_taken(self) -> list[BadgeDefinition]:
        return self._apply(lambda s: setattr(s, "photos_taken", s.photos_taken + 1))

    def check_for_new_badges(self) -> list[BadgeDefinition]:
        """Re-evaluate without touching counters (e.g. a badge became active)."""
        return self._apply(None)

    # ── Evaluation ──────────────────────────────────────────────────────

    def _apply(
        self,
        mutate: Optional[Callable[[UserStats], None]],
        event: Optional[RouteEvent] = None,
    ) -> list[BadgeDefinition]:
        with self._lock:
            now = self._now()
            # Month windows and day boundaries follow the configured zone
            local = local_now(now, self.config.timezone)
            stats = copy.deepcopy(self._stats)
            if mutate is not None:
                mutate(stats)
                update_consecutive_days(stats, local.date())

            unlocked = dict(self._unlocked)
            alerts: list[UnlockAlert] = []
            for definition in self.catalog:
                if definition.id in unlocked:
                    continue
                if not is_eligible(definition, local):
                    logger.debug("Skipping %s: not obtainable at %s", definition.id, local)
                    continue
                result = evaluate(
                    definition.condition, stats, now, event,
                    specific_date_policy=self.config.specific_date_policy,
                )
                logger.debug("Evaluated %s: progress=%.3f", definition.id, result.progress)
                if not result.unlocked:
                    continue

                unlocked[definition.id] = UnlockedBadgeRecord(definition.id, now)
                stats.experience += definition.reward_experience
                if definition.reward_title and definition.reward_title not in stats.earned_titles:
                    stats.earned_titles.append(definition.reward_title)
                alerts.append(UnlockAlert(badge=definition, unlocked_at=now))

            if mutate is None and not alerts:
                return []

            try:
                self.store.commit(stats, unlocked, self._progress_cache(stats, unlocked, now))
            except StorageError as e:
                logger.error("State not saved, change rolled back: %s", e)
                raise PersistenceError(f"could not save badge state: {e}") from e

            self._stats = stats
            self._unlocked = unlocked
            self._alerts.extend(alerts)
            for alert in alerts:
                logger.info("Badge unlocked: %s (+%d XP)", alert.badge.id, alert.badge.reward_experience)

        events = [EngineEvent(STATS_CHANGED)]
        events.extend(EngineEvent(BADGE_UNLOCKED, a.badge.id) for a in alerts)
        self._emit(events)
        return [a.badge for a in alerts]

    def _progress_cache(
        self,
        stats: UserStats,
        unlocked: dict[str, UnlockedBadgeRecord],
        now: datetime,
    ) -> dict[str, float]:
        return {d.id: self._progress_of(d, stats, unlocked, now) for d in self.catalog}

    def _progress_of(
        self,
        definition: BadgeDefinition,
        stats: UserStats,
        unlocked: dict[str, UnlockedBadgeRecord],
        now: datetime,
    ) -> float:
        if definition.id in unlocked:
            return 1.0
        return evaluate(
            definition.condition, stats, now,
            specific_date_policy=self.config.specific_date_policy,
        ).progress

    def get_badge_progress(self, badge_id: str) -> float:
        """Progress in [0, 1]; 1.0 once unlocked, 0.0 for unknown ids."""
        with self._lock:
            if badge_id in self._unlocked:
                return 1.0
            if badge_id not in self.catalog:
                return 0.0
            return self._progress_of(self.catalog.get(badge_id), self._stats, self._unlocked, self._now())

    def progress(self) -> list[BadgeProgress]:
        with self._lock:
            now = self._now()
            return [
                BadgeProgress(d.id, self._progress_of(d, self._stats, self._unlocked, now))
                for d in self.catalog
            ]

    def progress_map(self) -> dict[str, float]:
        """Progress of every catalog badge, keyed by id."""
        return {p.badge_id: p.current_progress for p in self.progress()}

    # ── Read side ───────────────────────────────────────────────────────

    @property
    def stats(self) -> UserStats:
        """A copy of the current stats; mutating it has no effect."""
        with self._lock:
            return copy.deepcopy(self._stats)

    @property
    def unlocked_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._unlocked)

    def unlocked_records(self) -> list[UnlockedBadgeRecord]:
        with self._lock:
            return sorted(self._unlocked.values(), key=lambda r: r.unlocked_at)

    def is_unlocked(self, badge_id: str) -> bool:
        with self._lock:
            return badge_id in self._unlocked

    def available_badges(self) -> list[BadgeDefinition]:
        """Catalog badges not yet unlocked."""
        with self._lock:
            return [d for d in self.catalog if d.id not in self._unlocked]

    def unlocked_badges(self, category: Optional[BadgeCategory] = None) -> list[BadgeDefinition]:
        with self._lock:
            return [
                d for d in self.catalog
                if d.id in self._unlocked and (category is None or d.category == category)
            ]

    # ── Alerts ──────────────────────────────────────────────────────────

    def pending_alert(self) -> Optional[UnlockAlert]:
        """The oldest unacknowledged unlock, without removing it."""
        with self._lock:
            return self._alerts[0] if self._alerts else None

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._alerts)

    def acknowledge_alert(self) -> Optional[UnlockAlert]:
        """Dismiss the current alert so the next one surfaces."""
        with self._lock:
            if not self._alerts:
                return None
            alert = self._alerts.popleft()
        self._emit([EngineEvent(ALERT_ACKNOWLEDGED, alert.badge.id)])
        return alert

    # ── Observers ───────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[EngineEvent], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, events: list[EngineEvent]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for event in events:
            for callback in subscribers:
                try:
                    callback(event)
                except Exception:
                    logger.exception("Subscriber %r failed on %s", callback, event.kind)

    # ── Reset ───────────────────────────────────────────────────────────

    def reset(self) -> None:
        """Clear all counters, unlock records and pending alerts.

        The user counts as newly registered; the fresh registration time is
        saved so a restarted engine sees the same one.
        """
        with self._lock:
            fresh = UserStats(registered_at=self._now())
            try:
                self.store.reset()
                self.store.save(fresh)
            except StorageError as e:
                logger.error("Reset failed, state kept: %s", e)
                raise PersistenceError(f"could not reset badge state: {e}") from e
            self._stats = fresh
            self._unlocked = {}
            self._alerts.clear()
            logger.info("Badge state reset")
        self._emit([EngineEvent(RESET)])
