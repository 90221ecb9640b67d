"""Tests for JSON snapshots and the markdown report."""

import json
from datetime import datetime, timezone

from trailbadge.catalog import (
    BadgeCatalog,
    BadgeCategory,
    BadgeDefinition,
    BadgeRarity,
    CompleteRoutesCount,
    PhotoTaken,
)
from trailbadge.config import EngineConfig
from trailbadge.engine import BadgeEngine
from trailbadge.export import badge_to_dict, engine_to_dict, generate_report_md

NOW = datetime(2026, 5, 20, 9, 0, tzinfo=timezone.utc)


def _engine() -> BadgeEngine:
    catalog = BadgeCatalog([
        BadgeDefinition(
            id="first",
            name="First Steps",
            description="Complete a route",
            icon="👣",
            category=BadgeCategory.EXPLORATION,
            rarity=BadgeRarity.COMMON,
            condition=CompleteRoutesCount(target=1),
            reward_experience=100,
            reward_title="Novice Explorer",
        ),
        BadgeDefinition(
            id="photos",
            name="Shutterbug",
            description="Take 4 photos",
            icon="📸",
            category=BadgeCategory.SOCIAL,
            rarity=BadgeRarity.RARE,
            condition=PhotoTaken(target=4),
        ),
    ])
    return BadgeEngine(catalog=catalog, config=EngineConfig(timezone="UTC"), clock=lambda: NOW)


def test_badge_to_dict_locked():
    engine = _engine()
    data = badge_to_dict(engine.catalog.get("photos"), 0.25)
    assert data["unlocked"] is False
    assert data["unlocked_at"] is None
    assert data["condition"] == {"type": "photo_taken", "target": 4}
    assert data["rarity"] == "rare"


def test_engine_to_dict_is_json_serializable():
    engine = _engine()
    engine.record_route_completion()
    engine.record_photo_taken()
    data = json.loads(json.dumps(engine_to_dict(engine)))

    assert data["unlocked"] == ["first"]
    assert data["pending_alerts"] == 1
    assert data["pending_alert"]["badge_id"] == "first"
    badges = {b["id"]: b for b in data["badges"]}
    assert badges["first"]["progress"] == 1.0
    assert badges["first"]["unlocked_at"] == NOW.isoformat()
    assert badges["photos"]["progress"] == 0.25
    assert data["stats"]["earned_titles"] == ["Novice Explorer"]


def test_report_lists_unlocked_and_locked():
    engine = _engine()
    engine.record_route_completion()
    engine.record_walk_distance(2500)
    report = generate_report_md(engine)

    assert report.startswith("# trailbadge Report")
    assert "| Distance Walked | 2.5 km |" in report
    assert "## Titles" in report
    assert "- Novice Explorer" in report
    assert "## Badges (1/2)" in report
    assert "- [x] 👣 **First Steps**" in report
    assert "2026-05-20" in report
    assert "- [ ] 📸 **Shutterbug**" in report
    assert "0%" in report


def test_report_skips_empty_categories():
    report = generate_report_md(_engine())
    assert "### 🧭 Exploration" in report
    assert "Festival" not in report
    assert "## Titles" not in report
