"""Loading clan and player data from the API into the dashboard's store."""
from typing import Any, Dict, List, Optional

from clan_dashboard.coc_api import COCAPI, normalize_tag
from clan_dashboard.dashboard import Dashboard


class ClanService:
    """Fetches from the API and records what it fetched as snapshots."""

    def __init__(self, dashboard: Dashboard, coc_api: COCAPI):
        self.dashboard = dashboard
        self.coc_api = coc_api

    async def load_clan(self, clan_tag: str) -> Dict[str, Any]:
        """
        Fetch a clan with its current war and capital raids, then persist them.

        The clan record becomes the current roster and is appended to the
        ``clan`` history. War data is only recorded while a war is on; capital
        data whenever it arrived.

        Returns dict with:
            - success: whether clan data was fetched
            - clan / war / capital: the fetched payloads (or None)
            - errors: fetch and persistence problems, as messages
        """
        tag = normalize_tag(clan_tag)
        result = await self.coc_api.get_comprehensive_clan_data(tag)
        data = result.get("data") or {}
        errors: List[str] = list(result.get("errors") or [])
        clan = data.get("clan")

        if not result.get("success") or not clan:
            print(f"[CLAN] Failed to load clan {tag}: {', '.join(errors) or 'unknown error'}")
            return {"success": False, "clan": None, "war": None, "capital": None, "errors": errors}

        if not self.dashboard.save_clan_data(clan):
            errors.append("Failed to save clan data")
        if not self.dashboard.append("clan", clan):
            errors.append("Failed to save clan snapshot")

        war = data.get("war")
        if war and war.get("state") != "notInWar":
            if not self.dashboard.append("war", war):
                errors.append("Failed to save war snapshot")

        capital = data.get("capital")
        if capital:
            if not self.dashboard.append("capital", capital):
                errors.append("Failed to save capital snapshot")

        print(f"[CLAN] Loaded {clan.get('name', tag)} ({tag}), {len(clan.get('memberList') or [])} members")
        return {"success": True, "clan": clan, "war": war, "capital": capital, "errors": errors}

    async def load_player(self, player_tag: str, window_days: int = 7) -> Dict[str, Any]:
        """Fetch a player, record a ``player`` snapshot and attach their activity."""
        tag = normalize_tag(player_tag)
        result = await self.coc_api.get_player(tag)
        if not result["success"]:
            return {"success": False, "error": result["error"]}

        player = result["data"]
        self.dashboard.append("player", player)
        activity = self.dashboard.compute_activity(player.get("tag", tag), window_days)
        self.dashboard.activity_history.record_activity(player.get("tag", tag), activity)
        return {"success": True, "player": player, "activity": activity}

    async def refresh_default_clan(self) -> Optional[Dict[str, Any]]:
        """Reload the configured default clan, if any. No retry on failure."""
        settings = self.dashboard.get_settings()
        default_tag = settings.get("defaultClanTag")
        if not default_tag:
            saved = self.dashboard.get_clan_data()
            if not saved:
                print("[CLAN] No saved clan found")
            return None
        print(f"[CLAN] Refreshing default clan {default_tag}")
        return await self.load_clan(default_tag)

    def recent_activity(self) -> List[Dict[str, Any]]:
        """Latest snapshot and war events, newest first."""
        if not self.dashboard.get_clan_data():
            return []

        events: List[Dict[str, Any]] = []
        latest_clan = self.dashboard.latest("clan")
        if latest_clan:
            events.append({
                "type": "snapshot",
                "message": "Clan data snapshot saved",
                "time": latest_clan["timestamp"],
            })

        latest_war = self.dashboard.latest("war")
        if latest_war and isinstance(latest_war["data"], dict) and latest_war["data"].get("state") != "notInWar":
            war = latest_war["data"]
            events.append({
                "type": "war",
                "message": (
                    f"War {war.get('state')} - {(war.get('clan') or {}).get('name')} "
                    f"vs {(war.get('opponent') or {}).get('name')}"
                ),
                "time": latest_war["timestamp"],
            })

        events.sort(key=lambda e: e["time"], reverse=True)
        return events
