"""Persisted dashboard settings (a single record, created lazily with defaults)."""
import math
from typing import Dict, Any

from clan_dashboard.config import KEYS, DEFAULT_SETTINGS, LEGACY_SETTING_KEYS
from clan_dashboard.storage import JSONFileStore, Err, ErrorKind

POSITIVE_SETTINGS = ("snapshotIntervalMinutes", "inactivityThresholdDays")


def is_positive_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


class SettingsStore:
    """Reads and writes the settings record of one ``JSONFileStore``."""

    def __init__(self, kv: JSONFileStore):
        self.kv = kv

    def get_settings(self) -> Dict[str, Any]:
        """
        Return stored settings merged over the defaults.

        Fields added after a record was saved still get their default value.
        A missing or unreadable record yields the defaults.
        """
        settings = dict(DEFAULT_SETTINGS)
        result = self.kv.read(KEYS["SETTINGS"])
        if not result.ok:
            if result.kind is not ErrorKind.MISSING:
                print(f"[SETTINGS] Using defaults, stored settings unreadable: {result.message}")
            return settings

        stored = result.value
        if not isinstance(stored, dict):
            print("[SETTINGS] Using defaults, stored settings are not a record")
            return settings

        stored = dict(stored)
        for old, new in LEGACY_SETTING_KEYS.items():
            if old in stored:
                value = stored.pop(old)
                stored.setdefault(new, value)
        settings.update(stored)

        # Intervals and thresholds must be positive numbers
        for key in POSITIVE_SETTINGS:
            if not is_positive_number(settings.get(key)):
                print(f"[SETTINGS] Ignoring invalid {key}={settings.get(key)!r}, using {DEFAULT_SETTINGS[key]}")
                settings[key] = DEFAULT_SETTINGS[key]
        return settings

    def save_settings_result(self, settings: Dict[str, Any]):
        if not isinstance(settings, dict):
            return Err(ErrorKind.INVALID, "settings must be a mapping")
        return self.kv.write(KEYS["SETTINGS"], settings)

    def save_settings(self, settings: Dict[str, Any]) -> bool:
        """Save settings. Returns True on success."""
        result = self.save_settings_result(settings)
        if not result.ok:
            print(f"[SETTINGS] Error saving settings: {result.message}")
        return result.ok

    def update_settings(self, **changes: Any) -> bool:
        settings = self.get_settings()
        settings.update(changes)
        return self.save_settings(settings)
