"""trailbadge — badge and achievement progress engine for route explorers."""

__version__ = "0.1.0"
