from unittest.mock import AsyncMock, MagicMock

import pytest

from clan_dashboard.clan import ClanService

from conftest import NOW, make_clan, make_member


def _api(comprehensive=None, player=None):
    api = MagicMock()
    api.get_comprehensive_clan_data = AsyncMock(return_value=comprehensive)
    api.get_player = AsyncMock(return_value=player)
    return api


def _comprehensive(clan, war=None, capital=None, errors=None):
    return {
        "success": clan is not None,
        "data": {"clan": clan, "war": war, "capital": capital, "errors": errors or []},
        "errors": errors or [],
    }


@pytest.mark.asyncio
async def test_load_clan_records_snapshots(dashboard):
    clan = make_clan([make_member("#A")])
    war = {"state": "inWar", "clan": {"name": "Test Clan"}, "opponent": {"name": "Rivals"}}
    capital = {"items": [{"state": "ended"}]}
    api = _api(_comprehensive(clan, war, capital))
    service = ClanService(dashboard, api)

    result = await service.load_clan("clan")
    api.get_comprehensive_clan_data.assert_awaited_once_with("#CLAN")
    assert result["success"] is True
    assert result["errors"] == []
    assert dashboard.get_clan_data() == clan
    assert dashboard.latest("clan")["data"] == clan
    assert dashboard.latest("war")["data"] == war
    assert dashboard.latest("capital")["data"] == capital
    assert dashboard.get_settings()["lastSnapshotTime"] == NOW


@pytest.mark.asyncio
async def test_load_clan_skips_war_when_not_in_war(dashboard):
    api = _api(_comprehensive(make_clan([]), war={"state": "notInWar"}))
    result = await ClanService(dashboard, api).load_clan("#CLAN")
    assert result["success"] is True
    assert dashboard.load_all("war") == []
    assert dashboard.load_all("capital") == []


@pytest.mark.asyncio
async def test_load_clan_failure_stores_nothing(dashboard):
    api = _api(_comprehensive(None, errors=["Failed to fetch clan data"]))
    result = await ClanService(dashboard, api).load_clan("#CLAN")
    assert result["success"] is False
    assert result["errors"] == ["Failed to fetch clan data"]
    assert dashboard.get_clan_data() is None
    assert dashboard.load_all("clan") == []


@pytest.mark.asyncio
async def test_load_player_records_snapshot_and_activity(dashboard, append_at):
    append_at("clan", make_clan([make_member("#A", 1000, 0)]), 2)
    append_at("clan", make_clan([make_member("#A", 1020, 3)]), 0)
    player = {"tag": "#A", "name": "Alice", "trophies": 1020}
    service = ClanService(dashboard, _api(player={"success": True, "data": player}))

    result = await service.load_player("#a")
    assert result["success"] is True
    assert result["activity"]["score"] == 26
    assert dashboard.latest("player")["data"] == player
    assert dashboard.activity_history.get_activity_history("#A")[0]["score"] == 26


@pytest.mark.asyncio
async def test_load_player_failure(dashboard):
    service = ClanService(dashboard, _api(player={"success": False, "error": "notFound"}))
    assert await service.load_player("#X") == {"success": False, "error": "notFound"}
    assert dashboard.load_all("player") == []


@pytest.mark.asyncio
async def test_refresh_default_clan(dashboard):
    api = _api(_comprehensive(make_clan([])))
    service = ClanService(dashboard, api)
    assert await service.refresh_default_clan() is None
    api.get_comprehensive_clan_data.assert_not_awaited()

    dashboard.save_settings({"defaultClanTag": "#CLAN"})
    result = await service.refresh_default_clan()
    assert result["success"] is True


def test_recent_activity(dashboard, append_at):
    service = ClanService(dashboard, _api())
    assert service.recent_activity() == []

    dashboard.save_clan_data(make_clan([]))
    append_at("war", {"state": "inWar", "clan": {"name": "Us"}, "opponent": {"name": "Them"}}, 1)
    append_at("clan", make_clan([]), 0)
    events = service.recent_activity()
    assert [e["type"] for e in events] == ["snapshot", "war"]
    assert events[1]["message"] == "War inWar - Us vs Them"
