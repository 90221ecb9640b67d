"""CLI entry point for trailbadge."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from rich.console import Console

from trailbadge import __version__
from trailbadge.catalog import BadgeCategory, default_catalog, load_catalog
from trailbadge.config import DEFAULT_STATE_FILE, EngineConfig, SpecificDatePolicy
from trailbadge.engine import BadgeEngine
from trailbadge.errors import TrailbadgeError
from trailbadge.export import badge_to_dict, engine_to_dict, generate_report_md
from trailbadge.storage import JsonFileStore, UserStatsStore

logger = logging.getLogger(__name__)

RECORD_COMMANDS = ("route", "walk", "visit", "share", "ar", "photo", "check")


def _setup_logging(verbose: bool) -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def build_engine(args: argparse.Namespace) -> BadgeEngine:
    """Wire catalog, JSON state file and config from parsed arguments."""
    catalog = load_catalog(args.catalog) if args.catalog else default_catalog()
    store = UserStatsStore(JsonFileStore(args.state))
    config = EngineConfig(
        timezone=args.timezone,
        specific_date_policy=SpecificDatePolicy(args.date_policy),
    )
    return BadgeEngine(catalog=catalog, store=store, config=config)


def print_status(engine: BadgeEngine) -> None:
    """Print a one-shot Rich summary of the user's stats."""
    from rich.panel import Panel
    from rich.text import Text

    from trailbadge.theme import CYAN, GREEN, MUTED, PURPLE, YELLOW, format_distance, render_banner

    console = Console()
    console.print(render_banner())

    s = engine.stats
    unlocked = len(engine.unlocked_ids)

    overview = Text()
    overview.append(f"  🗺️  {s.completed_routes}", style=f"bold {CYAN}")
    overview.append(" routes", style=MUTED)
    overview.append(f" ({s.completed_official_routes} official)", style=MUTED)
    overview.append(f"    👟 {format_distance(s.total_distance)}", style=f"bold {CYAN}")
    overview.append(" walked", style=MUTED)

    overview.append(f"\n  📍 {s.visited_locations}", style=f"bold {GREEN}")
    overview.append(" places", style=MUTED)
    overview.append(f"    📸 {s.photos_taken}", style=f"bold {GREEN}")
    overview.append(" photos", style=MUTED)
    overview.append(f"    📤 {s.social_shares}", style=f"bold {GREEN}")
    overview.append(" shares", style=MUTED)
    overview.append(f"    📱 {s.ar_navigation_used}", style=f"bold {GREEN}")
    overview.append(" AR", style=MUTED)

    overview.append(f"\n  🔥 {s.consecutive_days}", style=f"bold {YELLOW}")
    overview.append(" day streak", style=MUTED)
    overview.append(f"    ✨ {s.experience:,}", style=f"bold {YELLOW}")
    overview.append(" XP", style=MUTED)
    overview.append(f"    🏅 {unlocked}/{len(engine.catalog)}", style=f"bold {PURPLE}")
    overview.append(" badges", style=MUTED)

    if s.earned_titles:
        overview.append("\n  🎖️  ", style=MUTED)
        overview.append(", ".join(s.earned_titles), style=f"italic {PURPLE}")

    if engine.pending_count:
        overview.append(f"\n  🔔 {engine.pending_count}", style=f"bold {YELLOW}")
        overview.append(" unseen unlocks", style=MUTED)

    console.print(Panel(
        overview,
        title=f"[bold {GREEN}]🌲 trailbadge[/bold {GREEN}]",
        border_style=GREEN,
        padding=(1, 1),
    ))


def print_badges(engine: BadgeEngine, category: BadgeCategory | None = None) -> None:
    """Print the badge collection as a Rich table with progress bars."""
    from rich.table import Table

    from trailbadge.theme import CATEGORY_LABELS, MUTED, SURFACE, progress_bar, rarity_label

    console = Console()
    table = Table(border_style=SURFACE, show_edge=True, pad_edge=True)
    table.add_column("", no_wrap=True)
    table.add_column("Badge", style="bold")
    table.add_column("Category")
    table.add_column("Rarity", no_wrap=True)
    table.add_column("Progress", no_wrap=True, min_width=22)
    table.add_column("Reward", justify="right", style=MUTED)

    badges = engine.catalog.by_category(category) if category else engine.catalog.all()
    for b in badges:
        unlocked = engine.is_unlocked(b.id)
        table.add_row(
            b.icon,
            f"{b.name}\n[{MUTED}]{b.description}[/{MUTED}]",
            CATEGORY_LABELS[b.category],
            rarity_label(b.rarity),
            progress_bar(engine.get_badge_progress(b.id), unlocked=unlocked),
            f"{b.reward_experience} XP",
        )

    console.print(table)


def record(engine: BadgeEngine, args: argparse.Namespace, json_output: bool = False) -> None:
    """Apply one recording command, then show every unlock it caused."""
    command = args.command
    if command == "route":
        engine.record_route_completion(is_official=args.official, festival_type=args.festival)
    elif command == "walk":
        engine.record_walk_distance(args.meters)
    elif command == "visit":
        engine.record_location_visit()
    elif command == "share":
        engine.record_social_share()
    elif command == "ar":
        engine.record_ar_navigation()
    elif command == "photo":
        engine.record_photo_taken()
    else:
        engine.check_for_new_badges()

    # Alerts live in engine memory only, so drain them before exiting
    shown = []
    alert = engine.pending_alert()
    while alert is not None:
        shown.append(alert)
        engine.acknowledge_alert()
        alert = engine.pending_alert()

    if json_output:
        print(json.dumps({
            "command": command,
            "unlocked": [
                {"badge": badge_to_dict(a.badge, 1.0, a.unlocked_at), "message": a.message}
                for a in shown
            ],
            "stats": engine.stats.to_dict(),
        }, indent=2, ensure_ascii=False))
        return

    from rich.panel import Panel

    from trailbadge.theme import GREEN, MUTED, RARITY_COLORS

    console = Console()
    if not shown:
        console.print(f"[{MUTED}]Recorded. No new badges.[/{MUTED}]")
        return
    for a in shown:
        color = RARITY_COLORS[a.badge.rarity]
        console.print(Panel(
            f"{a.message}\n[{MUTED}]+{a.badge.reward_experience} XP[/{MUTED}]",
            title=f"[bold {color}]{a.badge.icon} {a.badge.name}[/bold {color}]",
            border_style=color if a.badge.rarity.rank > 1 else GREEN,
        ))


def main(argv: list[str] | None = None) -> None:
    """Entry point for the trailbadge CLI."""
    parser = argparse.ArgumentParser(
        prog="trailbadge",
        description="Badge and achievement tracker for route explorers.",
    )
    parser.add_argument(
        "--state",
        metavar="PATH",
        default=str(DEFAULT_STATE_FILE),
        help=f"JSON state file (default: {DEFAULT_STATE_FILE})",
    )
    parser.add_argument(
        "--catalog",
        metavar="PATH",
        help="JSON badge catalog to use instead of the built-in one",
    )
    parser.add_argument(
        "--timezone",
        metavar="TZ",
        help="Timezone for day boundaries, e.g. Asia/Shanghai (default: system local)",
    )
    parser.add_argument(
        "--date-policy",
        choices=[p.value for p in SpecificDatePolicy],
        default=SpecificDatePolicy.REGISTRATION.value,
        help="Instant that date-limited badges are checked against",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging on stderr",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"trailbadge {__version__}",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.add_parser("status", help="Show stats (default)")
    badges_p = sub.add_parser("badges", help="Show the badge collection")
    badges_p.add_argument(
        "--category",
        choices=[c.value for c in BadgeCategory],
        help="Only show one category",
    )
    route_p = sub.add_parser("route", help="Record a completed route")
    route_p.add_argument("--official", action="store_true", help="The route is an official route")
    route_p.add_argument("--festival", metavar="NAME", help="Festival tag, e.g. dragon_boat")
    walk_p = sub.add_parser("walk", help="Record walked distance")
    walk_p.add_argument("meters", type=float, help="Distance in meters")
    sub.add_parser("visit", help="Record a location visit")
    sub.add_parser("share", help="Record a social share")
    sub.add_parser("ar", help="Record an AR navigation")
    sub.add_parser("photo", help="Record a check-in photo")
    sub.add_parser("check", help="Re-check badges without recording activity")
    sub.add_parser("report", help="Print a markdown report")
    reset_p = sub.add_parser("reset", help="Erase all stats and badges")
    reset_p.add_argument("--yes", action="store_true", help="Confirm the reset")

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    command = args.command or "status"

    try:
        engine = build_engine(args)

        if command in RECORD_COMMANDS:
            record(engine, args, json_output=args.json_output)
        elif command == "badges":
            category = BadgeCategory(args.category) if args.category else None
            if args.json_output:
                data = engine_to_dict(engine)["badges"]
                if category:
                    data = [b for b in data if b["category"] == category.value]
                print(json.dumps(data, indent=2, ensure_ascii=False))
            else:
                print_badges(engine, category)
        elif command == "report":
            print(generate_report_md(engine))
        elif command == "reset":
            if not args.yes:
                print("Refusing to reset without --yes", file=sys.stderr)
                raise SystemExit(1)
            engine.reset()
            print("All badge data erased.")
        elif args.json_output:
            print(json.dumps(engine_to_dict(engine), indent=2, ensure_ascii=False))
        else:
            print_status(engine)
    except TrailbadgeError as e:
        Console(stderr=True).print(f"[bold red]Error:[/bold red] {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
