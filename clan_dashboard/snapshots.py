"""Snapshot store: bounded, append-only, timestamped history per category."""
import time
from typing import Any, Callable, Dict, List, Optional

from clan_dashboard.config import CATEGORIES, KEYS, MAX_SNAPSHOTS
from clan_dashboard.settings import SettingsStore
from clan_dashboard.storage import JSONFileStore, Ok, Err, ErrorKind


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def snapshot_key(category: str) -> Optional[str]:
    """Storage key for a category's history, None for unknown categories."""
    if category not in CATEGORIES:
        return None
    return KEYS[f"{category.upper()}_SNAPSHOTS"]


def _is_snapshot(entry: Any) -> bool:
    return (
        isinstance(entry, dict)
        and isinstance(entry.get("timestamp"), int)
        and not isinstance(entry.get("timestamp"), bool)
        and "data" in entry
    )


class ClanDataStore:
    """The most recently loaded clan record (the current roster source)."""

    def __init__(self, kv: JSONFileStore):
        self.kv = kv

    def get_clan_data(self) -> Optional[Dict[str, Any]]:
        result = self.kv.read(KEYS["CLAN_DATA"])
        if not result.ok:
            if result.kind is not ErrorKind.MISSING:
                print(f"[STORAGE] Error loading clan data: {result.message}")
            return None
        return result.value if isinstance(result.value, dict) else None

    def save_clan_data(self, clan_data: Dict[str, Any]) -> bool:
        result = self.kv.write(KEYS["CLAN_DATA"], clan_data)
        if not result.ok:
            print(f"[STORAGE] Error saving clan data: {result.message}")
        return result.ok

    def roster(self) -> List[Dict[str, Any]]:
        """Current member list, empty when no clan has been loaded."""
        clan_data = self.get_clan_data() or {}
        members = clan_data.get("memberList")
        if not isinstance(members, list):
            return []
        return [m for m in members if isinstance(m, dict) and m.get("tag")]


class SnapshotStore:
    """
    Append-only log of ``{"timestamp": ms, "data": ...}`` records per category.

    Insertion order is the history order. Timestamps come from ``clock`` and
    are not assumed to be monotonic; ties and out-of-order values are kept as
    appended. Each history keeps only the newest ``max_snapshots`` entries.
    """

    def __init__(
        self,
        kv: JSONFileStore,
        settings: SettingsStore,
        clock: Callable[[], int] = now_ms,
        max_snapshots: int = MAX_SNAPSHOTS,
    ):
        self.kv = kv
        self.settings = settings
        self.clock = clock
        self.max_snapshots = max_snapshots

    def load_result(self, category: str):
        """Load a category's history, keeping absence and corruption apart."""
        key = snapshot_key(category)
        if key is None:
            return Err(ErrorKind.INVALID, f"unknown category {category!r}")

        result = self.kv.read(key)
        if not result.ok:
            return result
        if not isinstance(result.value, list):
            return Err(ErrorKind.CORRUPT, f"{key} is not a list")
        return Ok([s for s in result.value if _is_snapshot(s)])

    def load_all(self, category: str) -> List[Dict[str, Any]]:
        """Full retained history, oldest first. Empty if absent or unreadable."""
        result = self.load_result(category)
        if not result.ok and result.kind is not ErrorKind.MISSING:
            print(f"[SNAPSHOT] Error loading {category} snapshots: {result.message}")
        return result.unwrap_or([])

    def latest(self, category: str) -> Optional[Dict[str, Any]]:
        snapshots = self.load_all(category)
        return snapshots[-1] if snapshots else None

    def by_time_range(self, category: str, start: int, end: int) -> List[Dict[str, Any]]:
        """Snapshots whose timestamp lies in ``[start, end]``, in history order."""
        return [s for s in self.load_all(category) if start <= s["timestamp"] <= end]

    def append_result(self, category: str, data: Any):
        key = snapshot_key(category)
        if key is None:
            return Err(ErrorKind.INVALID, f"unknown category {category!r}")

        previous = self.kv.read_bytes(key)
        snapshots = self.load_all(category)

        timestamp = self.clock()
        snapshots.append({"timestamp": timestamp, "data": data})
        trimmed = snapshots[-self.max_snapshots:]

        written = self.kv.write(key, trimmed)
        if not written.ok:
            return written

        settings = self.settings.get_settings()
        settings["lastSnapshotTime"] = timestamp
        saved = self.settings.save_settings_result(settings)
        if not saved.ok:
            # Put back exactly what was on disk, corrupt or not
            self.kv.restore_bytes(key, previous)
            return saved

        return Ok(timestamp)

    def append(self, category: str, data: Any) -> bool:
        """Append a snapshot stamped with the current time. Returns True on success."""
        result = self.append_result(category, data)
        if not result.ok:
            print(f"[SNAPSHOT] Error saving {category} snapshot: {result.message}")
        return result.ok
