"""Export utilities — JSON-ready state dump and markdown badge report."""

from __future__ import annotations

from datetime import date

from trailbadge.catalog import BadgeCategory, BadgeDefinition, condition_to_dict
from trailbadge.engine import BadgeEngine
from trailbadge.theme import CATEGORY_LABELS, format_distance


def badge_to_dict(definition: BadgeDefinition, progress: float, unlocked_at=None) -> dict:
    return {
        "id": definition.id,
        "name": definition.name,
        "description": definition.description,
        "icon": definition.icon,
        "category": definition.category.value,
        "rarity": definition.rarity.value,
        "condition": condition_to_dict(definition.condition),
        "reward_experience": definition.reward_experience,
        "reward_title": definition.reward_title,
        "progress": round(progress, 4),
        "unlocked": unlocked_at is not None,
        "unlocked_at": unlocked_at.isoformat() if unlocked_at else None,
    }


def engine_to_dict(engine: BadgeEngine) -> dict:
    """Snapshot stats, badges and the pending alert as plain JSON types."""
    records = {r.badge_id: r.unlocked_at for r in engine.unlocked_records()}
    progress = engine.progress_map()
    alert = engine.pending_alert()
    return {
        "stats": engine.stats.to_dict(),
        "badges": [
            badge_to_dict(d, progress.get(d.id, 0.0), records.get(d.id))
            for d in engine.catalog
        ],
        "unlocked": sorted(records),
        "pending_alerts": engine.pending_count,
        "pending_alert": {
            "badge_id": alert.badge.id,
            "message": alert.message,
            "unlocked_at": alert.unlocked_at.isoformat(),
        } if alert else None,
    }


def generate_report_md(engine: BadgeEngine) -> str:
    """Generate a markdown report of stats and the badge collection."""
    s = engine.stats
    unlocked = engine.unlocked_ids
    records = {r.badge_id: r.unlocked_at for r in engine.unlocked_records()}

    lines = [
        f"# trailbadge Report — {date.today().isoformat()}",
        "",
        "## Activity",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Routes Completed | {s.completed_routes:,} |",
        f"| Official Routes | {s.completed_official_routes:,} |",
        f"| Distance Walked | {format_distance(s.total_distance)} |",
        f"| Locations Visited | {s.visited_locations:,} |",
        f"| Social Shares | {s.social_shares:,} |",
        f"| AR Navigations | {s.ar_navigation_used:,} |",
        f"| Photos Taken | {s.photos_taken:,} |",
        f"| Consecutive Days | {s.consecutive_days} |",
        f"| Experience | {s.experience:,} XP |",
        "",
    ]

    if s.earned_titles:
        lines.append("## Titles")
        lines.append("")
        for title in s.earned_titles:
            lines.append(f"- {title}")
        lines.append("")

    lines.append(f"## Badges ({len(unlocked)}/{len(engine.catalog)})")
    lines.append("")
    for category in BadgeCategory:
        badges = engine.catalog.by_category(category)
        if not badges:
            continue
        lines.append(f"### {CATEGORY_LABELS[category]}")
        lines.append("")
        for b in badges:
            if b.id in unlocked:
                when = records[b.id].date().isoformat()
                lines.append(f"- [x] {b.icon} **{b.name}** ({b.rarity.value}) — {b.description} · {when}")
            else:
                pct = engine.get_badge_progress(b.id) * 100
                lines.append(f"- [ ] {b.icon} **{b.name}** ({b.rarity.value}) — {b.description} · {pct:.0f}%")
        lines.append("")

    lines.append("---")
    lines.append("*Generated by trailbadge*")
    lines.append("")

    return "\n".join(lines)
