"""Local persistence for user stats, unlock records and the progress cache.

Two layers:
1. PersistenceAdapter - a tiny key-value interface (memory or JSON file)
2. UserStatsStore - typed load/save/commit/reset on top of an adapter

Loading fails soft: missing or corrupt state comes back as defaults.
Writes either land completely or raise StorageError.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Mapping, Optional

from trailbadge.config import BADGE_PROGRESS_KEY, STATE_KEYS, USER_BADGES_KEY, USER_STATS_KEY
from trailbadge.errors import StorageError
from trailbadge.stats import UnlockedBadgeRecord, UserStats

logger = logging.getLogger(__name__)


# ============================================================================
# ADAPTERS
# ============================================================================

class PersistenceAdapter(ABC):
    """Durable key-value storage holding JSON text values."""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Return the value for key, or None when absent."""

    @abstractmethod
    def write_many(self, items: Mapping[str, str]) -> None:
        """Store every item in one step: all of them land, or none do."""

    @abstractmethod
    def delete_many(self, keys: Iterable[str]) -> None:
        """Remove keys; missing keys are ignored."""


class MemoryStore(PersistenceAdapter):
    """In-memory adapter, for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write_many(self, items: Mapping[str, str]) -> None:
        self._data.update(items)

    def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)


class JsonFileStore(PersistenceAdapter):
    """All keys in one JSON object file, replaced atomically on every write."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StorageError(f"cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not hold a JSON object")
        return data

    def _load_for_update(self) -> dict:
        try:
            return self._load()
        except StorageError as e:
            logger.warning("Overwriting unreadable state file: %s", e)
            return {}

    def _dump(self, data: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise StorageError(f"cannot write {self.path}: {e}") from e

    def read(self, key: str) -> Optional[str]:
        data = self._load()
        if key not in data:
            return None
        return json.dumps(data[key])

    def write_many(self, items: Mapping[str, str]) -> None:
        data = self._load_for_update()
        for key, text in items.items():
            data[key] = json.loads(text)
        self._dump(data)

    def delete_many(self, keys: Iterable[str]) -> None:
        if not self.path.exists():
            return
        data = self._load_for_update()
        for key in keys:
            data.pop(key, None)
        self._dump(data)


# ============================================================================
# TYPED STORE
# ============================================================================

class UserStatsStore:
    """Typed access to the three persisted keys."""

    def __init__(self, adapter: PersistenceAdapter) -> None:
        self.adapter = adapter

    def _read_json(self, key: str):
        try:
            text = self.adapter.read(key)
        except StorageError as e:
            logger.warning("Could not read %s: %s", key, e)
            return None
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Discarding corrupt %s: %s", key, e)
            return None

    def load(self) -> UserStats:
        """Return stored stats, or zero-valued defaults when missing or corrupt."""
        data = self._read_json(USER_STATS_KEY)
        if data is None:
            return UserStats()
        try:
            return UserStats.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.warning("Discarding corrupt %s: %s", USER_STATS_KEY, e)
            return UserStats()

    def load_unlocked(self) -> dict[str, UnlockedBadgeRecord]:
        """Return unlock records by badge id; unparseable entries are skipped."""
        data = self._read_json(USER_BADGES_KEY)
        if not isinstance(data, list):
            if data is not None:
                logger.warning("Discarding corrupt %s: expected a list", USER_BADGES_KEY)
            return {}

        records: dict[str, UnlockedBadgeRecord] = {}
        for item in data:
            try:
                record = UnlockedBadgeRecord.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping corrupt unlock record %r: %s", item, e)
                continue
            records.setdefault(record.badge_id, record)
        return records

    def load_progress(self) -> dict[str, float]:
        data = self._read_json(BADGE_PROGRESS_KEY)
        if not isinstance(data, dict):
            return {}
        return {
            str(k): float(v) for k, v in data.items()
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        }

    def save(self, stats: UserStats) -> None:
        self.adapter.write_many({USER_STATS_KEY: json.dumps(stats.to_dict())})

    def commit(
        self,
        stats: UserStats,
        unlocked: Mapping[str, UnlockedBadgeRecord],
        progress: Mapping[str, float],
    ) -> None:
        """Persist stats, unlock records and the progress cache together."""
        self.adapter.write_many({
            USER_STATS_KEY: json.dumps(stats.to_dict()),
            USER_BADGES_KEY: json.dumps([r.to_dict() for r in unlocked.values()]),
            BADGE_PROGRESS_KEY: json.dumps(dict(progress)),
        })

    def reset(self) -> None:
        """Remove stats, unlock records and the progress cache."""
        self.adapter.delete_many(STATE_KEYS)
