"""Configuration settings for the clan dashboard."""
import os
import json
from typing import Dict, Any

# Discord front end
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN", "")
COC_API_KEY = os.getenv("COC_API_KEY", "")

# Log channel (0 disables it)
LOG_CHANNEL_ID = int(os.getenv("LOG_CHANNEL_ID", "0"))

# API Configuration
COC_API_BASE_URL = os.getenv("COC_API_BASE_URL", "https://coc-apis.behitek.com")
COC_CONCURRENCY = int(os.getenv("COC_CONCURRENCY", "6"))
COC_TIMEOUT = int(os.getenv("COC_TIMEOUT", "12"))

# Optional bearer keys. The public wrapper needs none; the official API does.
# Example env: COC_API_KEYS='{"1.2.3.4":"KEY_A","5.6.7.8":"KEY_B"}'
COC_API_KEYS: Dict[str, str] = {}
COC_API_KEYS_RAW = os.getenv("COC_API_KEYS", "")
if COC_API_KEYS_RAW:
    try:
        parsed = json.loads(COC_API_KEYS_RAW)
        if isinstance(parsed, dict):
            COC_API_KEYS = parsed
    except ValueError:
        COC_API_KEYS = {}
if not COC_API_KEYS and COC_API_KEY:
    COC_API_KEYS = {"*": COC_API_KEY}

# Cache TTLs (seconds)
PLAYER_CACHE_TTL = int(os.getenv("PLAYER_CACHE_TTL", "300"))  # 5 minutes
CLAN_CACHE_TTL = int(os.getenv("CLAN_CACHE_TTL", "60"))  # 1 minute
WAR_CACHE_TTL = int(os.getenv("WAR_CACHE_TTL", "30"))  # 30 seconds

# Persistence
DATA_DIR = os.getenv("DASHBOARD_DATA_DIR", "data")
EXPORT_DIR = os.getenv("DASHBOARD_EXPORT_DIR", "exports")
STORAGE_QUOTA_BYTES = int(os.getenv("STORAGE_QUOTA_BYTES", str(5 * 1024 * 1024)))
MAX_SNAPSHOTS = int(os.getenv("MAX_SNAPSHOTS", "100"))
ACTIVITY_HISTORY_DAYS = int(os.getenv("ACTIVITY_HISTORY_DAYS", "30"))
EXPORT_VERSION = "1.0"

# Storage keys, one record or sequence per key
KEYS: Dict[str, str] = {
    "SETTINGS": "coc_settings",
    "CLAN_DATA": "coc_clan_data",
    "CLAN_SNAPSHOTS": "coc_clan_snapshots",
    "PLAYER_SNAPSHOTS": "coc_player_snapshots",
    "WAR_SNAPSHOTS": "coc_war_snapshots",
    "CAPITAL_SNAPSHOTS": "coc_capital_snapshots",
    "ACTIVITY_HISTORY": "coc_activity_history",
}

CATEGORIES = ("clan", "player", "war", "capital")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "defaultClanTag": "",
    "snapshotIntervalMinutes": int(os.getenv("SNAPSHOT_INTERVAL_MINUTES", "60")),
    "inactivityThresholdDays": int(os.getenv("INACTIVITY_THRESHOLD_DAYS", "5")),
    "darkMode": True,
    "lastSnapshotTime": None,
}

# Settings written by older dashboards used these names
LEGACY_SETTING_KEYS: Dict[str, str] = {
    "snapshotInterval": "snapshotIntervalMinutes",
    "inactivityThreshold": "inactivityThresholdDays",
}

DAY_MS = 24 * 60 * 60 * 1000

# Role display names
ROLE_NAMES: Dict[str, str] = {
    "leader": "Leader",
    "coLeader": "Co-Leader",
    "admin": "Elder",
    "member": "Member",
}

# Embed colours
COLOR_OK = 0x2ECC71
COLOR_WARN = 0xE67E22
COLOR_ERROR = 0xE74C3C
COLOR_INFO = 0x3498DB
