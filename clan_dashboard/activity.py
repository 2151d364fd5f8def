"""Member activity inference from time-separated clan snapshots."""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from clan_dashboard.config import ACTIVITY_HISTORY_DAYS, DAY_MS, KEYS
from clan_dashboard.settings import SettingsStore
from clan_dashboard.snapshots import ClanDataStore, SnapshotStore, now_ms
from clan_dashboard.storage import JSONFileStore, Ok, Err, ErrorKind


class ActivityErrorKind(Enum):
    INSUFFICIENT_HISTORY = "insufficient_history"
    EMPTY_WINDOW = "empty_window"
    MEMBER_MISSING = "member_missing"
    MALFORMED = "malformed"


def zero_activity(window_days: Any = 7) -> Dict[str, Any]:
    """Result reported when activity cannot be inferred."""
    return {
        "score": 0,
        "trophyChange": 0,
        "donationsChange": 0,
        "lastSeen": None,
        "isActive": False,
        "windowDays": window_days,
    }


def _find_member(snapshot: Dict[str, Any], member_tag: str):
    data = snapshot.get("data")
    if not isinstance(data, dict):
        return Err(ActivityErrorKind.MALFORMED, "snapshot data is not a clan record")
    members = data.get("memberList")
    if members is None:
        return Err(ActivityErrorKind.MEMBER_MISSING, "snapshot has no member list")
    if not isinstance(members, list):
        return Err(ActivityErrorKind.MALFORMED, "memberList is not a list")
    for member in members:
        if isinstance(member, dict) and member.get("tag") == member_tag:
            return Ok(member)
    return Err(ActivityErrorKind.MEMBER_MISSING, f"{member_tag} not in snapshot")


def _stat(member: Dict[str, Any], field: str) -> int:
    value = member.get(field)
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f"{field} is not a number")
    return int(value)


class ActivityEngine:
    """
    Quantify recent member activity from the ``clan`` snapshot history.

    The oldest and newest clan snapshots inside a trailing window are compared
    per member. Donations count double in the score; any non-zero movement of
    trophies or donations marks the member active.
    """

    def __init__(
        self,
        snapshots: SnapshotStore,
        clan_data: ClanDataStore,
        settings: SettingsStore,
        clock: Callable[[], int] = now_ms,
    ):
        self.snapshots = snapshots
        self.clan_data = clan_data
        self.settings = settings
        self.clock = clock

    def evaluate(self, member_tag: str, window_days: int = 7):
        """
        Compute activity for one member, reporting why it could not be inferred.

        Returns ``Ok(activity)`` or ``Err(ActivityErrorKind, message)``.
        """
        history = self.snapshots.load_all("clan")
        if len(history) < 2:
            return Err(ActivityErrorKind.INSUFFICIENT_HISTORY, f"{len(history)} clan snapshot(s) stored")

        if isinstance(window_days, bool) or not isinstance(window_days, (int, float)):
            return Err(ActivityErrorKind.MALFORMED, f"invalid window {window_days!r}")

        cutoff = self.clock() - window_days * DAY_MS
        recent = [s for s in history if s["timestamp"] >= cutoff]
        if not recent:
            return Err(ActivityErrorKind.EMPTY_WINDOW, f"no snapshots in the last {window_days} day(s)")

        # A single snapshot in the window compares against itself: all deltas 0
        oldest, newest = recent[0], recent[-1]
        first = _find_member(oldest, member_tag)
        if not first.ok:
            return first
        last = _find_member(newest, member_tag)
        if not last.ok:
            return last

        try:
            trophy_change = _stat(last.value, "trophies") - _stat(first.value, "trophies")
            donations_change = _stat(last.value, "donations") - _stat(first.value, "donations")
        except (TypeError, ValueError, OverflowError) as e:
            return Err(ActivityErrorKind.MALFORMED, f"bad member stats for {member_tag}: {e}")

        return Ok({
            "score": abs(trophy_change) + donations_change * 2,
            "trophyChange": trophy_change,
            "donationsChange": donations_change,
            "lastSeen": newest["timestamp"],
            "isActive": trophy_change != 0 or donations_change != 0,
            "windowDays": window_days,
        })

    def compute_activity(self, member_tag: str, window_days: int = 7) -> Dict[str, Any]:
        """Activity result for a member; the zero result whenever inference fails."""
        result = self.evaluate(member_tag, window_days)
        if not result.ok:
            if result.kind is ActivityErrorKind.MALFORMED:
                print(f"[ACTIVITY] {result.message}")
            return zero_activity(window_days)
        return result.value

    def roster_activity(self, window_days: int = 7) -> List[Dict[str, Any]]:
        """Every current roster member with its activity, in roster order."""
        return [
            {**member, "activity": self.compute_activity(member["tag"], window_days)}
            for member in self.clan_data.roster()
        ]

    def find_inactive_members(self, window_days: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Current roster members with no trophy or donation movement in the window.

        The roster comes from the latest loaded clan data, so members who
        joined after the window start report as inactive.
        """
        if window_days is None:
            window_days = self.settings.get_settings()["inactivityThresholdDays"]
        return [m for m in self.roster_activity(window_days) if not m["activity"]["isActive"]]


class ActivityHistory:
    """Per-member audit log of computed activity, trimmed to a retention window."""

    def __init__(
        self,
        kv: JSONFileStore,
        clock: Callable[[], int] = now_ms,
        retention_days: int = ACTIVITY_HISTORY_DAYS,
    ):
        self.kv = kv
        self.clock = clock
        self.retention_days = retention_days

    def get_all_activity_history(self) -> Dict[str, List[Dict[str, Any]]]:
        result = self.kv.read(KEYS["ACTIVITY_HISTORY"])
        if not result.ok:
            if result.kind is not ErrorKind.MISSING:
                print(f"[ACTIVITY] Error loading activity history: {result.message}")
            return {}
        return result.value if isinstance(result.value, dict) else {}

    def get_activity_history(self, member_tag: str) -> List[Dict[str, Any]]:
        history = self.get_all_activity_history().get(member_tag)
        return history if isinstance(history, list) else []

    def record_activity(self, member_tag: str, activity: Dict[str, Any]) -> bool:
        """Append an activity entry for a member and drop expired entries."""
        now = self.clock()
        cutoff = now - self.retention_days * DAY_MS
        history = self.get_activity_history(member_tag)
        history.append({"timestamp": now, **activity})
        trimmed = [
            h for h in history
            if isinstance(h, dict) and isinstance(h.get("timestamp"), int) and h["timestamp"] >= cutoff
        ]

        all_history = self.get_all_activity_history()
        all_history[member_tag] = trimmed
        result = self.kv.write(KEYS["ACTIVITY_HISTORY"], all_history)
        if not result.ok:
            print(f"[ACTIVITY] Error saving activity history: {result.message}")
        return result.ok
