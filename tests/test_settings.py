import json

from clan_dashboard.config import KEYS


def test_defaults_on_first_read(dashboard):
    settings = dashboard.get_settings()
    assert settings == {
        "defaultClanTag": "",
        "snapshotIntervalMinutes": 60,
        "inactivityThresholdDays": 5,
        "darkMode": True,
        "lastSnapshotTime": None,
    }


def test_saved_values_merge_over_defaults(dashboard):
    assert dashboard.save_settings({"defaultClanTag": "#ABC", "darkMode": False})
    settings = dashboard.get_settings()
    assert settings["defaultClanTag"] == "#ABC"
    assert settings["darkMode"] is False
    # Fields the saved record predates still get defaults
    assert settings["snapshotIntervalMinutes"] == 60
    assert settings["inactivityThresholdDays"] == 5


def test_legacy_keys_are_migrated(dashboard):
    dashboard.kv.write(KEYS["SETTINGS"], {"snapshotInterval": 15, "inactivityThreshold": 3})
    settings = dashboard.get_settings()
    assert settings["snapshotIntervalMinutes"] == 15
    assert settings["inactivityThresholdDays"] == 3
    assert "snapshotInterval" not in settings


def test_corrupt_settings_fall_back_to_defaults(dashboard, tmp_path):
    path = tmp_path / "data" / f"{KEYS['SETTINGS']}.json"
    path.write_text("{{{", encoding="utf-8")
    assert dashboard.get_settings()["snapshotIntervalMinutes"] == 60


def test_non_record_settings_fall_back_to_defaults(dashboard, tmp_path):
    path = tmp_path / "data" / f"{KEYS['SETTINGS']}.json"
    path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    assert dashboard.get_settings()["darkMode"] is True


def test_save_rejects_non_mapping(dashboard):
    assert dashboard.save_settings(["not", "settings"]) is False


def test_update_settings(dashboard):
    assert dashboard.settings.update_settings(inactivityThresholdDays=9)
    assert dashboard.get_settings()["inactivityThresholdDays"] == 9


def test_invalid_numeric_settings_fall_back_to_defaults(dashboard):
    for bad in (-1, 0, "30", True, None, float("inf")):
        dashboard.kv.write(KEYS["SETTINGS"], {"snapshotIntervalMinutes": bad, "inactivityThresholdDays": bad})
        settings = dashboard.get_settings()
        assert settings["snapshotIntervalMinutes"] == 60
        assert settings["inactivityThresholdDays"] == 5


def test_fractional_interval_is_kept(dashboard):
    assert dashboard.settings.update_settings(snapshotIntervalMinutes=0.5)
    assert dashboard.get_settings()["snapshotIntervalMinutes"] == 0.5
