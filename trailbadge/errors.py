"""Exception hierarchy for trailbadge."""

from __future__ import annotations


class TrailbadgeError(Exception):
    """Base class for every error raised by trailbadge."""


class CatalogError(TrailbadgeError, ValueError):
    """A badge definition or catalog file is malformed."""


class UnknownBadgeError(TrailbadgeError, KeyError):
    """A badge id is not part of the catalog."""

    def __init__(self, badge_id: str) -> None:
        super().__init__(badge_id)
        self.badge_id = badge_id

    def __str__(self) -> str:
        return f"unknown badge: {self.badge_id!r}"


class StorageError(TrailbadgeError):
    """The persistence adapter could not read or write."""


class PersistenceError(TrailbadgeError):
    """A mutating engine call was rolled back because its state could not be saved."""
