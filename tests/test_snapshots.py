from clan_dashboard.config import KEYS
from clan_dashboard.dashboard import Dashboard
from clan_dashboard.storage import Err, ErrorKind

from conftest import NOW


def test_append_stamps_current_time(dashboard, clock):
    assert dashboard.append("clan", {"tag": "#A"})
    snapshots = dashboard.load_all("clan")
    assert snapshots == [{"timestamp": NOW, "data": {"tag": "#A"}}]
    assert dashboard.get_settings()["lastSnapshotTime"] == NOW


def test_bounded_retention_drops_oldest_first(dashboard, clock):
    for i in range(105):
        clock.now = NOW + i
        assert dashboard.append("war", {"n": i})
    snapshots = dashboard.load_all("war")
    assert len(snapshots) == 100
    assert [s["data"]["n"] for s in snapshots] == list(range(5, 105))
    assert [s["timestamp"] for s in snapshots] == sorted(s["timestamp"] for s in snapshots)


def test_categories_are_independent(dashboard):
    dashboard.append("clan", {"c": 1})
    dashboard.append("player", {"p": 1})
    assert len(dashboard.load_all("clan")) == 1
    assert len(dashboard.load_all("player")) == 1
    assert dashboard.load_all("capital") == []


def test_latest(dashboard, clock):
    assert dashboard.latest("clan") is None
    dashboard.append("clan", {"n": 1})
    clock.now = NOW + 10
    dashboard.append("clan", {"n": 2})
    assert dashboard.latest("clan") == {"timestamp": NOW + 10, "data": {"n": 2}}


def test_by_time_range_is_inclusive(dashboard, clock):
    for offset in (0, 10, 20, 30):
        clock.now = NOW + offset
        dashboard.append("capital", {"t": offset})
    found = dashboard.by_time_range("capital", NOW + 10, NOW + 20)
    assert [s["data"]["t"] for s in found] == [10, 20]


def test_out_of_order_timestamps_keep_insertion_order(dashboard, clock):
    for ts in (NOW, NOW - 500, NOW - 500, NOW + 1):
        clock.now = ts
        assert dashboard.append("clan", {"ts": ts})
    stored = [s["timestamp"] for s in dashboard.load_all("clan")]
    assert stored == [NOW, NOW - 500, NOW - 500, NOW + 1]
    assert len(dashboard.by_time_range("clan", NOW - 500, NOW)) == 3


def test_unknown_category(dashboard):
    assert dashboard.append("guild", {}) is False
    assert dashboard.load_all("guild") == []
    assert dashboard.snapshots.load_result("guild").kind is ErrorKind.INVALID


def test_corrupt_history_reads_as_empty(dashboard, tmp_path):
    path = tmp_path / "data" / f"{KEYS['CLAN_SNAPSHOTS']}.json"
    path.write_text("[{broken", encoding="utf-8")
    assert dashboard.load_all("clan") == []
    assert dashboard.snapshots.load_result("clan").kind is ErrorKind.CORRUPT
    # A fresh history replaces the corrupt one
    assert dashboard.append("clan", {"n": 1})
    assert len(dashboard.load_all("clan")) == 1


def test_malformed_entries_are_skipped(dashboard):
    dashboard.kv.write(KEYS["CLAN_SNAPSHOTS"], [
        {"timestamp": NOW, "data": {}},
        {"timestamp": "yesterday", "data": {}},
        "junk",
        {"data": {}},
    ])
    assert dashboard.load_all("clan") == [{"timestamp": NOW, "data": {}}]


def test_snapshot_data_is_not_shared_with_caller(dashboard):
    data = {"memberList": [{"tag": "#A", "trophies": 1}]}
    dashboard.append("clan", data)
    data["memberList"][0]["trophies"] = 999
    loaded = dashboard.latest("clan")
    loaded["data"]["memberList"].clear()
    assert dashboard.latest("clan")["data"]["memberList"][0]["trophies"] == 1


def test_quota_failure_is_reported(tmp_path, clock):
    dash = Dashboard(data_dir=str(tmp_path / "small"), quota_bytes=300, clock=clock)
    assert dash.append("clan", {"n": 1})
    assert dash.append("clan", {"blob": "x" * 1000}) is False
    assert [s["data"] for s in dash.load_all("clan")] == [{"n": 1}]


def test_settings_failure_rolls_back_append(dashboard, clock, monkeypatch):
    dashboard.append("clan", {"n": 1})
    monkeypatch.setattr(
        dashboard.settings, "save_settings_result",
        lambda settings: Err(ErrorKind.QUOTA_EXCEEDED, "full"),
    )
    clock.now = NOW + 1
    assert dashboard.append("clan", {"n": 2}) is False
    assert [s["data"] for s in dashboard.load_all("clan")] == [{"n": 1}]


def test_settings_failure_on_first_append_leaves_no_history(dashboard, monkeypatch):
    monkeypatch.setattr(
        dashboard.settings, "save_settings_result",
        lambda settings: Err(ErrorKind.IO, "disk gone"),
    )
    assert dashboard.append("player", {"n": 1}) is False
    assert dashboard.snapshots.load_result("player").kind is ErrorKind.MISSING


def test_settings_failure_restores_corrupt_history_bytes(dashboard, tmp_path, monkeypatch):
    path = tmp_path / "data" / f"{KEYS['CLAN_SNAPSHOTS']}.json"
    path.write_text("[{broken", encoding="utf-8")
    monkeypatch.setattr(
        dashboard.settings, "save_settings_result",
        lambda settings: Err(ErrorKind.IO, "disk gone"),
    )
    assert dashboard.append("clan", {"n": 1}) is False
    assert path.read_text(encoding="utf-8") == "[{broken"
