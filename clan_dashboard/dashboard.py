"""The dashboard's persistent state, built once and handed to every consumer."""
from typing import Any, Callable, Dict, List, Optional

from clan_dashboard import backup
from clan_dashboard.activity import ActivityEngine, ActivityHistory
from clan_dashboard.config import ACTIVITY_HISTORY_DAYS, DATA_DIR, MAX_SNAPSHOTS, STORAGE_QUOTA_BYTES
from clan_dashboard.settings import SettingsStore
from clan_dashboard.snapshots import ClanDataStore, SnapshotStore, now_ms
from clan_dashboard.storage import JSONFileStore


class Dashboard:
    """
    Owns the key-value store and every component that reads or writes it.

    Construct one per process (or per test) and pass it by reference; nothing
    in the package keeps module-level mutable state.
    """

    def __init__(
        self,
        data_dir: str = DATA_DIR,
        quota_bytes: int = STORAGE_QUOTA_BYTES,
        clock: Callable[[], int] = now_ms,
        max_snapshots: int = MAX_SNAPSHOTS,
        history_days: int = ACTIVITY_HISTORY_DAYS,
    ):
        self.clock = clock
        self.kv = JSONFileStore(data_dir, quota_bytes)
        self.settings = SettingsStore(self.kv)
        self.clan_data = ClanDataStore(self.kv)
        self.snapshots = SnapshotStore(self.kv, self.settings, clock=clock, max_snapshots=max_snapshots)
        self.activity = ActivityEngine(self.snapshots, self.clan_data, self.settings, clock=clock)
        self.activity_history = ActivityHistory(self.kv, clock=clock, retention_days=history_days)

    # Snapshot store
    def append(self, category: str, data: Any) -> bool:
        return self.snapshots.append(category, data)

    def load_all(self, category: str) -> List[Dict[str, Any]]:
        return self.snapshots.load_all(category)

    def latest(self, category: str) -> Optional[Dict[str, Any]]:
        return self.snapshots.latest(category)

    def by_time_range(self, category: str, start: int, end: int) -> List[Dict[str, Any]]:
        return self.snapshots.by_time_range(category, start, end)

    # Activity inference
    def compute_activity(self, member_tag: str, window_days: int = 7) -> Dict[str, Any]:
        return self.activity.compute_activity(member_tag, window_days)

    def find_inactive_members(self, window_days: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.activity.find_inactive_members(window_days)

    # Settings and clan data
    def get_settings(self) -> Dict[str, Any]:
        return self.settings.get_settings()

    def save_settings(self, settings: Dict[str, Any]) -> bool:
        return self.settings.save_settings(settings)

    def get_clan_data(self) -> Optional[Dict[str, Any]]:
        return self.clan_data.get_clan_data()

    def save_clan_data(self, clan_data: Dict[str, Any]) -> bool:
        return self.clan_data.save_clan_data(clan_data)

    # Export / import
    def export_all(self) -> Dict[str, Any]:
        return backup.export_all(self)

    def import_all(self, bundle: Any) -> bool:
        return backup.import_all(self, bundle)

    def clear_all(self) -> bool:
        return backup.clear_all(self)

    def storage_info(self) -> Dict[str, Any]:
        return backup.storage_info(self)
