import asyncio

import pytest

from clan_dashboard.trackers import AutoSnapshotController

from conftest import make_clan, make_member


@pytest.mark.asyncio
async def test_start_uses_interval_from_settings(dashboard):
    dashboard.save_settings({"snapshotIntervalMinutes": 15})
    controller = AutoSnapshotController(dashboard)
    controller.start()
    try:
        assert controller.running
        assert controller.interval_minutes == 15
    finally:
        controller.stop()
    assert not controller.running


@pytest.mark.asyncio
async def test_restart_cancels_previous_task(dashboard):
    controller = AutoSnapshotController(dashboard)
    first = controller.start(30)
    second = controller.restart()
    assert first is not second
    with pytest.raises(asyncio.CancelledError):
        await first
    assert first.cancelled()
    assert controller.running
    controller.stop()
    with pytest.raises(asyncio.CancelledError):
        await second


def test_take_snapshot_requires_loaded_clan(dashboard):
    controller = AutoSnapshotController(dashboard)
    assert controller.take_snapshot() is False
    assert dashboard.load_all("clan") == []

    dashboard.save_clan_data(make_clan([make_member("#A")]))
    assert controller.take_snapshot() is True
    assert len(dashboard.load_all("clan")) == 1


@pytest.mark.asyncio
async def test_loop_appends_snapshots(dashboard):
    dashboard.save_clan_data(make_clan([make_member("#A")]))
    controller = AutoSnapshotController(dashboard)
    # 0.6 ms interval
    controller.start(0.00001)
    try:
        for _ in range(200):
            if len(dashboard.load_all("clan")) >= 2:
                break
            await asyncio.sleep(0.005)
    finally:
        controller.stop()
    assert len(dashboard.load_all("clan")) >= 2


def test_stop_without_task_is_harmless(dashboard):
    controller = AutoSnapshotController(dashboard)
    controller.stop()
    assert not controller.running


@pytest.mark.asyncio
async def test_imported_negative_interval_uses_default(dashboard):
    dashboard.save_clan_data(make_clan([make_member("#A")]))
    assert dashboard.import_all({"settings": {"snapshotIntervalMinutes": -1}})
    controller = AutoSnapshotController(dashboard)
    controller.start()
    try:
        await asyncio.sleep(0.05)
        assert controller.interval_minutes == 60
        assert dashboard.load_all("clan") == []
    finally:
        controller.stop()


@pytest.mark.asyncio
async def test_non_numeric_interval_uses_default(dashboard):
    assert dashboard.import_all({"settings": {"snapshotIntervalMinutes": "30"}})
    controller = AutoSnapshotController(dashboard)
    controller.start()
    try:
        await asyncio.sleep(0)
        assert controller.running
        assert controller.interval_minutes == 60
    finally:
        controller.stop()


@pytest.mark.asyncio
async def test_explicit_invalid_interval_uses_default(dashboard):
    controller = AutoSnapshotController(dashboard)
    controller.start(-5)
    try:
        assert controller.interval_minutes == 60
    finally:
        controller.stop()


@pytest.mark.asyncio
async def test_loop_survives_a_failing_tick(dashboard, monkeypatch):
    dashboard.save_clan_data(make_clan([make_member("#A")]))
    controller = AutoSnapshotController(dashboard)
    calls = []
    real_take = controller.take_snapshot

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("disk hiccup")
        return real_take()

    monkeypatch.setattr(controller, "take_snapshot", flaky)
    controller.start(0.00001)
    try:
        for _ in range(200):
            if dashboard.load_all("clan"):
                break
            await asyncio.sleep(0.005)
        assert controller.running
    finally:
        controller.stop()
    assert len(calls) >= 2
    assert dashboard.load_all("clan")
