"""Shared visual constants and helpers for the trailbadge CLI."""

from __future__ import annotations

from rich.style import Style
from rich.text import Text

from trailbadge.catalog import BadgeCategory, BadgeRarity

# ── Color Palette ───────────────────────────────────────────────────────

SURFACE = "#161b22"
BORDER = "#30363d"
MUTED = "#8b949e"

CYAN = "#58a6ff"
GREEN = "#39d353"
PURPLE = "#bc8cff"
YELLOW = "#e3b341"
RED = "#f85149"
ORANGE = "#f0883e"
GRAY = "#6e7681"

# Rarity → border/label color (common is plain, mythic is hottest)
RARITY_COLORS: dict[BadgeRarity, str] = {
    BadgeRarity.COMMON: GRAY,
    BadgeRarity.RARE: CYAN,
    BadgeRarity.EPIC: PURPLE,
    BadgeRarity.LEGENDARY: ORANGE,
    BadgeRarity.MYTHIC: RED,
}

CATEGORY_LABELS: dict[BadgeCategory, str] = {
    BadgeCategory.EXPLORATION: "🧭 Exploration",
    BadgeCategory.FESTIVAL: "🏮 Festival",
    BadgeCategory.ACHIEVEMENT: "🏆 Milestone",
    BadgeCategory.SOCIAL: "💬 Social",
    BadgeCategory.SPECIAL: "⭐ Special",
    BadgeCategory.SEASONAL: "🍂 Seasonal",
}

# ── ASCII Banner ────────────────────────────────────────────────────────

BANNER = r"""
  _             _ _ _               _
 | |_ _ __ __ _(_) | |__   __ _  __| | __ _  ___
 | __| '__/ _` | | | '_ \ / _` |/ _` |/ _` |/ _ \
 | |_| | | (_| | | | |_) | (_| | (_| | (_| |  __/
  \__|_|  \__,_|_|_|_.__/ \__,_|\__,_|\__, |\___|
                                      |___/"""

TAGLINE = "every route leaves a mark"


def rarity_label(rarity: BadgeRarity) -> Text:
    """Rarity name with one pip per rank, e.g. 'epic ●●●'."""
    color = RARITY_COLORS[rarity]
    text = Text(rarity.value, style=Style(color=color, bold=rarity.rank >= 3))
    text.append(" " + "●" * rarity.rank, style=Style(color=color))
    return text


def progress_bar(progress: float, width: int = 16, unlocked: bool = False) -> Text:
    """Render a 0-1 progress fraction as a Rich Text bar with a percentage."""
    progress = max(0.0, min(1.0, progress))
    filled = int(progress * width)
    color = GREEN if unlocked else (YELLOW if progress >= 0.5 else CYAN)

    text = Text()
    text.append("█" * filled, style=Style(color=color))
    text.append("░" * (width - filled), style=Style(color=BORDER))
    text.append(f" {progress * 100:3.0f}%", style=Style(color=color, bold=unlocked))
    return text


def format_distance(meters: float) -> str:
    if meters >= 1000:
        return f"{meters / 1000:,.1f} km"
    return f"{meters:,.0f} m"


def render_banner() -> Text:
    """Render the trailbadge ASCII banner as styled Rich Text."""
    text = Text(justify="center")
    for line in BANNER.strip("\n").split("\n"):
        text.append(line + "\n", style=Style(color=GREEN, bold=True))
    text.append(f"  {TAGLINE}\n", style=Style(color=MUTED, italic=True))
    return text
