"""File-based storage helpers for persistent data.

Every record the dashboard owns lives under a string key and is stored as one
JSON document. Reads and writes report through ``Ok``/``Err`` so callers can
tell a missing record from a corrupt one, even where the public API collapses
both into an empty default.
"""
import json
import os
from enum import Enum
from typing import Any, List, Optional

from clan_dashboard.config import DATA_DIR, STORAGE_QUOTA_BYTES


class ErrorKind(Enum):
    MISSING = "missing"
    CORRUPT = "corrupt"
    QUOTA_EXCEEDED = "quota_exceeded"
    IO = "io"
    INVALID = "invalid"


class Ok:
    """Successful result carrying a value."""

    ok = True

    def __init__(self, value: Any = None):
        self.value = value

    def unwrap_or(self, default: Any) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


class Err:
    """Failed result carrying an error kind and a human readable message."""

    ok = False

    def __init__(self, kind: Any, message: str = ""):
        self.kind = kind
        self.message = message

    def unwrap_or(self, default: Any) -> Any:
        return default

    def __repr__(self) -> str:
        return f"Err({self.kind!r}, {self.message!r})"


def load_json(path: str) -> Optional[Any]:
    """Load JSON file, return None if file doesn't exist or is invalid."""
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            print(f"[STORAGE] Error loading {path}: {e}")
            return None
    return None


def save_json(path: str, data: Any) -> bool:
    """Save data to JSON file. Returns True on success."""
    try:
        os.makedirs(os.path.dirname(path) if os.path.dirname(path) else ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        return True
    except (OSError, TypeError, ValueError) as e:
        print(f"[STORAGE] Error saving {path}: {e}")
        return False


class JSONFileStore:
    """Durable key-value store: one ``<key>.json`` file per key.

    Capacity is bounded by ``quota_bytes`` across all keys, mirroring the few
    megabytes a browser grants local storage. A write that would push the total
    over the quota is refused and leaves the previous value in place.
    """

    def __init__(self, data_dir: str = DATA_DIR, quota_bytes: int = STORAGE_QUOTA_BYTES):
        self.data_dir = data_dir
        self.quota_bytes = quota_bytes
        os.makedirs(self.data_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.data_dir, f"{key}.json")

    def keys(self) -> List[str]:
        try:
            names = os.listdir(self.data_dir)
        except OSError:
            return []
        return sorted(n[:-5] for n in names if n.endswith(".json"))

    def size(self, key: str) -> int:
        """Size in bytes of the stored record, 0 when absent."""
        try:
            return os.path.getsize(self._path(key))
        except OSError:
            return 0

    def total_size(self) -> int:
        return sum(self.size(k) for k in self.keys())

    def read(self, key: str):
        path = self._path(key)
        if not os.path.exists(path):
            return Err(ErrorKind.MISSING, f"{key} not stored")
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Ok(json.load(f))
        except ValueError as e:
            print(f"[STORAGE] Corrupt record {key}: {e}")
            return Err(ErrorKind.CORRUPT, str(e))
        except OSError as e:
            print(f"[STORAGE] Error reading {key}: {e}")
            return Err(ErrorKind.IO, str(e))

    def read_bytes(self, key: str) -> Optional[bytes]:
        """Raw stored bytes, valid JSON or not. None when absent or unreadable."""
        try:
            with open(self._path(key), "rb") as f:
                return f.read()
        except OSError:
            return None

    def restore_bytes(self, key: str, payload: Optional[bytes]):
        """Put back bytes captured by ``read_bytes``; None removes the key."""
        if payload is None:
            return self.remove(key)
        return self._write_payload(key, payload)

    def write(self, key: str, value: Any):
        try:
            payload = json.dumps(value, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            return Err(ErrorKind.INVALID, f"{key} is not JSON serializable: {e}")
        return self._write_payload(key, payload)

    def _write_payload(self, key: str, payload: bytes):
        used = self.total_size() - self.size(key)
        if used + len(payload) > self.quota_bytes:
            print(f"[STORAGE] Quota exceeded writing {key} ({used + len(payload)} > {self.quota_bytes} bytes)")
            return Err(ErrorKind.QUOTA_EXCEEDED, f"storage quota of {self.quota_bytes} bytes exceeded")

        path = self._path(key)
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, "wb") as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as e:
            print(f"[STORAGE] Error saving {key}: {e}")
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            return Err(ErrorKind.IO, str(e))
        return Ok(None)

    def remove(self, key: str):
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            print(f"[STORAGE] Error removing {key}: {e}")
            return Err(ErrorKind.IO, str(e))
        return Ok(None)
