"""Export, import and reset of everything the dashboard persists."""
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from clan_dashboard.config import CATEGORIES, EXPORT_VERSION, KEYS
from clan_dashboard.storage import save_json

# Bundle field -> storage key
BUNDLE_FIELDS: Dict[str, str] = {
    "settings": KEYS["SETTINGS"],
    "clanData": KEYS["CLAN_DATA"],
    "clanSnapshots": KEYS["CLAN_SNAPSHOTS"],
    "playerSnapshots": KEYS["PLAYER_SNAPSHOTS"],
    "warSnapshots": KEYS["WAR_SNAPSHOTS"],
    "capitalSnapshots": KEYS["CAPITAL_SNAPSHOTS"],
    "activityHistory": KEYS["ACTIVITY_HISTORY"],
}

_FIELD_TYPES = {
    "settings": dict,
    "clanData": dict,
    "clanSnapshots": list,
    "playerSnapshots": list,
    "warSnapshots": list,
    "capitalSnapshots": list,
    "activityHistory": dict,
}


def export_all(dashboard) -> Dict[str, Any]:
    """
    Collect every persisted record into one portable bundle.

    The bundle carries the merged settings, the current clan data, all four
    snapshot histories and the activity history log, tagged with
    ``exportDate`` (ISO-8601) and the format ``version``.
    """
    bundle: Dict[str, Any] = {
        "settings": dashboard.settings.get_settings(),
        "clanData": dashboard.clan_data.get_clan_data(),
    }
    for category in CATEGORIES:
        bundle[f"{category}Snapshots"] = dashboard.snapshots.load_all(category)
    bundle["activityHistory"] = dashboard.activity_history.get_all_activity_history()
    bundle["exportDate"] = datetime.now(timezone.utc).isoformat()
    bundle["version"] = EXPORT_VERSION
    return bundle


def export_json(dashboard) -> str:
    return json.dumps(export_all(dashboard), ensure_ascii=False, indent=2)


def write_export_file(dashboard, directory: str = ".") -> Optional[str]:
    """Write an export bundle to ``coc-dashboard-export-<ms>.json``. Returns the path."""
    path = os.path.join(directory, f"coc-dashboard-export-{dashboard.clock()}.json")
    if not save_json(path, export_all(dashboard)):
        return None
    return path


def import_all(dashboard, bundle: Any) -> bool:
    """
    Restore records from an export bundle (a dict or its JSON text).

    Each field present in the bundle replaces its record wholesale; fields that
    are absent or null leave the stored record untouched. The whole bundle is
    validated before anything is written.
    """
    if isinstance(bundle, (str, bytes)):
        try:
            bundle = json.loads(bundle)
        except ValueError as e:
            print(f"[IMPORT] Bundle is not valid JSON: {e}")
            return False
    if not isinstance(bundle, dict):
        print("[IMPORT] Bundle is not a JSON object")
        return False

    updates = {}
    for field, key in BUNDLE_FIELDS.items():
        value = bundle.get(field)
        if value is None:
            continue
        if not isinstance(value, _FIELD_TYPES[field]):
            print(f"[IMPORT] Field {field} has the wrong type, nothing imported")
            return False
        updates[key] = value

    success = True
    for key, value in updates.items():
        result = dashboard.kv.write(key, value)
        if not result.ok:
            print(f"[IMPORT] Error writing {key}: {result.message}")
            success = False
    if success:
        print(f"[IMPORT] Imported {len(updates)} record(s) (bundle version {bundle.get('version', '?')})")
    return success


def clear_all(dashboard) -> bool:
    """Delete every record the dashboard owns."""
    success = True
    for key in KEYS.values():
        if not dashboard.kv.remove(key).ok:
            success = False
    return success


def storage_info(dashboard) -> Dict[str, Any]:
    """Bytes used per record, total, quota and percentage used."""
    sizes = {name: dashboard.kv.size(key) for name, key in KEYS.items()}
    total = sum(sizes.values())
    limit = dashboard.kv.quota_bytes
    return {
        "totalSize": total,
        "sizes": sizes,
        "limit": limit,
        "percentUsed": (total / limit) * 100 if limit else 0.0,
    }


def snapshot_counts(dashboard) -> Dict[str, int]:
    return {c: len(dashboard.snapshots.load_all(c)) for c in CATEGORIES}


def export_activity_workbook(dashboard, target: Any, window_days: int = 7) -> bool:
    """Write a member activity report for the current roster as an .xlsx workbook.

    ``target`` is a file path or a binary file object.

    Workbook layout:
      - Sheet 'Summary': Clan | Tag | WindowDays | Members | Inactive | Generated
      - Sheet 'Activity': Tag | Name | Role | Trophies | Donations | TrophyChange
        | DonationsChange | Score | Active | LastSeen
    """
    clan = dashboard.clan_data.get_clan_data() or {}
    rows = dashboard.activity.roster_activity(window_days)
    inactive = [r for r in rows if not r["activity"]["isActive"]]

    wb = Workbook()
    ws_sum = wb.active
    ws_sum.title = "Summary"
    ws_sum.append(["Clan", "Tag", "WindowDays", "Members", "Inactive", "Generated"])
    ws_sum.append([
        clan.get("name", "Unknown"),
        clan.get("tag", ""),
        window_days,
        len(rows),
        len(inactive),
        datetime.now(timezone.utc).isoformat(),
    ])

    ws = wb.create_sheet("Activity")
    ws.append([
        "Tag", "Name", "Role", "Trophies", "Donations",
        "TrophyChange", "DonationsChange", "Score", "Active", "LastSeen",
    ])
    # Least active first
    for member in sorted(rows, key=lambda m: m["activity"]["score"]):
        activity = member["activity"]
        last_seen = activity["lastSeen"]
        ws.append([
            member.get("tag"),
            member.get("name", "Unknown"),
            member.get("role", ""),
            member.get("trophies", 0),
            member.get("donations", 0),
            activity["trophyChange"],
            activity["donationsChange"],
            activity["score"],
            "yes" if activity["isActive"] else "no",
            datetime.fromtimestamp(last_seen / 1000, timezone.utc).isoformat() if last_seen else "",
        ])

    for sheet in (ws_sum, ws):
        for col_idx, col in enumerate(sheet.columns, start=1):
            max_len = max(len(str(c.value)) if c.value is not None else 0 for c in col)
            sheet.column_dimensions[get_column_letter(col_idx)].width = max_len + 2

    try:
        wb.save(target)
    except OSError as e:
        print(f"[EXPORT] Error writing workbook {target}: {e}")
        return False
    return True
