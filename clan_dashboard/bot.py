"""
Discord front end for the clan dashboard.

Slash commands load a clan from the API, show rankings, activity, war and
capital views, and manage settings, exports and the auto-snapshot task. All
state lives in the one ``Dashboard`` the bot is constructed with.
"""
import asyncio
import io
import json
from typing import Optional, Dict, Any
from datetime import datetime, timezone

import discord
from discord import app_commands
import aiohttp

from clan_dashboard import backup
from clan_dashboard.config import DISCORD_TOKEN, EXPORT_DIR, LOG_CHANNEL_ID, COLOR_OK, COLOR_ERROR
from clan_dashboard.calculations import calculate_war_metrics, calculate_capital_metrics
from clan_dashboard.clan import ClanService
from clan_dashboard.coc_api import COCAPI, normalize_tag
from clan_dashboard.dashboard import Dashboard
from clan_dashboard.embeds import (
    build_clan_embed, build_members_embed, build_activity_embed, build_inactive_embed,
    build_war_embed, build_capital_embed, build_player_embed, build_settings_embed,
    build_storage_embed
)
from clan_dashboard.trackers import AutoSnapshotController


class ClashDashboardBot(discord.Client):
    """Discord client owning the dashboard, the API client and the snapshot task."""

    def __init__(self, dashboard: Dashboard, *, intents: discord.Intents):
        super().__init__(intents=intents)
        self.tree = app_commands.CommandTree(self)
        self.dashboard = dashboard
        self.http_session: Optional[aiohttp.ClientSession] = None
        self.coc_api: Optional[COCAPI] = None
        self.clan_service: Optional[ClanService] = None
        self.auto_snapshot = AutoSnapshotController(dashboard)
        self._tasks_started = False

    async def setup_hook(self):
        """Called when bot is starting up."""
        self.http_session = aiohttp.ClientSession()
        self.coc_api = COCAPI(self.http_session)
        self.clan_service = ClanService(self.dashboard, self.coc_api)

    async def close(self):
        """Cleanup on shutdown."""
        self.auto_snapshot.stop()
        if self.http_session:
            await self.http_session.close()
        await super().close()

    async def log(self, msg: str):
        """Log message to console and Discord channel."""
        print(msg)
        if LOG_CHANNEL_ID:
            try:
                ch = self.get_channel(LOG_CHANNEL_ID) or await self.fetch_channel(LOG_CHANNEL_ID)
                await ch.send(f"[LOG {datetime.now().isoformat()}] {msg}")
            except discord.DiscordException as e:
                print(f"[LOG] Could not send to log channel: {e}")

    async def on_ready(self):
        print(f"[READY] {self.user} (id: {self.user.id})")
        try:
            synced = await self.tree.sync()
            print(f"[INFO] Slash commands synced. {len(synced)} commands registered.")
        except discord.DiscordException as e:
            await self.log(f"[WARN] Slash sync failed: {e}")

        if not self._tasks_started:
            self._tasks_started = True
            self.auto_snapshot.start()
            asyncio.create_task(self._refresh_on_startup())

    async def _refresh_on_startup(self):
        result = await self.clan_service.refresh_default_clan()
        if result is not None and not result["success"]:
            await self.log(f"[WARN] Background refresh failed: {', '.join(result['errors'])}")


def _member_from_roster(dashboard: Dashboard, tag: str) -> Dict[str, Any]:
    for member in dashboard.clan_data.roster():
        if member.get("tag") == tag:
            return member
    return {"tag": tag}


def register_commands(client: ClashDashboardBot) -> None:
    """Attach every slash command to the client's command tree."""
    dashboard = client.dashboard

    @client.tree.command(name="loadclan", description="Load a clan from the API and save a snapshot")
    @app_commands.describe(tag="Clan tag (example: #2PP). Defaults to the saved default clan.")
    async def loadclan(interaction: discord.Interaction, tag: Optional[str] = None):
        await interaction.response.send_message("🔄 Loading clan data...", ephemeral=True)
        tag = tag or dashboard.get_settings().get("defaultClanTag")
        if not tag:
            await interaction.edit_original_response(content="❌ Give a clan tag or set a default with `/setsettings`.")
            return

        result = await client.clan_service.load_clan(tag)
        if not result["success"]:
            await interaction.edit_original_response(content="❌ Failed to load clan data. Check the tag or API.")
            return

        if not dashboard.get_settings().get("defaultClanTag"):
            dashboard.settings.update_settings(defaultClanTag=normalize_tag(tag))

        embed = build_clan_embed(result["clan"], client.clan_service.recent_activity())
        content = "✅ Clan loaded successfully!"
        if result["errors"]:
            content += "\n⚠️ " + "\n⚠️ ".join(result["errors"])
        await interaction.edit_original_response(content=content, embed=embed)

    @client.tree.command(name="members", description="Member ranking with recent activity")
    @app_commands.describe(days="Activity window in days (default 7)")
    async def members(interaction: discord.Interaction, days: app_commands.Range[int, 1, 90] = 7):
        clan = dashboard.get_clan_data()
        if not clan:
            await interaction.response.send_message("❌ No clan loaded. Use `/loadclan` first.", ephemeral=True)
            return
        rows = dashboard.activity.roster_activity(days)
        await interaction.response.send_message(
            embed=build_members_embed(rows, clan.get("name", "Clan"), days), ephemeral=True
        )

    @client.tree.command(name="activity", description="Activity of one member over a trailing window")
    @app_commands.describe(tag="Player tag", days="Activity window in days (default 7)")
    async def activity(interaction: discord.Interaction, tag: str, days: app_commands.Range[int, 1, 90] = 7):
        tag_norm = normalize_tag(tag)
        result = dashboard.compute_activity(tag_norm, days)
        dashboard.activity_history.record_activity(tag_norm, result)
        member = _member_from_roster(dashboard, tag_norm)
        await interaction.response.send_message(embed=build_activity_embed(member, result), ephemeral=True)

    @client.tree.command(name="inactive", description="Members with no trophy or donation change")
    @app_commands.describe(days="Window in days (defaults to the inactivity threshold setting)")
    async def inactive(interaction: discord.Interaction, days: Optional[app_commands.Range[int, 1, 90]] = None):
        if not dashboard.get_clan_data():
            await interaction.response.send_message("❌ No clan loaded. Use `/loadclan` first.", ephemeral=True)
            return
        window = days or dashboard.get_settings()["inactivityThresholdDays"]
        found = dashboard.find_inactive_members(window)
        await interaction.response.send_message(embed=build_inactive_embed(found, window), ephemeral=True)

    @client.tree.command(name="war", description="Current war dashboard from the latest war snapshot")
    async def war(interaction: discord.Interaction):
        latest = dashboard.latest("war")
        metrics = calculate_war_metrics(latest["data"]) if latest else None
        await interaction.response.send_message(embed=build_war_embed(metrics), ephemeral=True)

    @client.tree.command(name="capital", description="Capital raid dashboard from the latest capital snapshot")
    async def capital(interaction: discord.Interaction):
        latest = dashboard.latest("capital")
        metrics = calculate_capital_metrics(latest["data"]) if latest else None
        await interaction.response.send_message(embed=build_capital_embed(metrics), ephemeral=True)

    @client.tree.command(name="player", description="Player profile with activity")
    @app_commands.describe(tag="Player tag (example: #2PQUE2J)")
    async def player(interaction: discord.Interaction, tag: str):
        await interaction.response.send_message("🔎 Fetching player info...", ephemeral=True)
        result = await client.clan_service.load_player(tag)
        if not result["success"]:
            await interaction.edit_original_response(content=f"❌ Could not fetch player: {result['error']}")
            return
        await interaction.edit_original_response(
            content=None, embed=build_player_embed(result["player"], result["activity"])
        )

    @client.tree.command(name="settings", description="Show dashboard settings")
    async def settings_cmd(interaction: discord.Interaction):
        await interaction.response.send_message(
            embed=build_settings_embed(dashboard.get_settings(), client.auto_snapshot.running), ephemeral=True
        )

    @client.tree.command(name="setsettings", description="Change dashboard settings")
    @app_commands.describe(
        default_clan_tag="Clan loaded on startup",
        snapshot_interval="Minutes between automatic clan snapshots",
        inactivity_threshold="Days without change before a member counts as inactive",
        dark_mode="Dark theme preference"
    )
    async def setsettings(
        interaction: discord.Interaction,
        default_clan_tag: Optional[str] = None,
        snapshot_interval: Optional[app_commands.Range[int, 1, 1440]] = None,
        inactivity_threshold: Optional[app_commands.Range[int, 1, 90]] = None,
        dark_mode: Optional[bool] = None,
    ):
        previous_interval = dashboard.get_settings()["snapshotIntervalMinutes"]
        changes: Dict[str, Any] = {}
        if default_clan_tag is not None:
            changes["defaultClanTag"] = normalize_tag(default_clan_tag)
        if snapshot_interval is not None:
            changes["snapshotIntervalMinutes"] = snapshot_interval
        if inactivity_threshold is not None:
            changes["inactivityThresholdDays"] = inactivity_threshold
        if dark_mode is not None:
            changes["darkMode"] = dark_mode

        if not dashboard.settings.update_settings(**changes):
            await interaction.response.send_message("❌ Failed to save settings.", ephemeral=True)
            return
        settings = dashboard.get_settings()
        if settings["snapshotIntervalMinutes"] != previous_interval:
            client.auto_snapshot.restart()

        await interaction.response.send_message(
            content="✅ Settings saved!",
            embed=build_settings_embed(settings, client.auto_snapshot.running),
            ephemeral=True
        )

    @client.tree.command(name="autosnapshot", description="Start or stop automatic clan snapshots")
    async def autosnapshot(interaction: discord.Interaction, enabled: bool):
        if enabled:
            client.auto_snapshot.start()
            msg = f"▶️ Auto-snapshot started (every {client.auto_snapshot.interval_minutes} minutes)."
        else:
            client.auto_snapshot.stop()
            msg = "⏹ Auto-snapshot stopped."
        await interaction.response.send_message(msg, ephemeral=True)

    @client.tree.command(name="exportdata", description="Export all dashboard data as JSON")
    async def exportdata(interaction: discord.Interaction):
        payload = backup.export_json(dashboard).encode("utf-8")
        file = discord.File(io.BytesIO(payload), filename=f"coc-dashboard-export-{dashboard.clock()}.json")
        await interaction.response.send_message("📦 Data exported successfully!", file=file, ephemeral=True)

    @client.tree.command(name="importdata", description="Import dashboard data from an export file")
    @app_commands.describe(file="A JSON file produced by /exportdata")
    async def importdata(interaction: discord.Interaction, file: discord.Attachment):
        await interaction.response.send_message("📥 Importing...", ephemeral=True)
        try:
            raw = await file.read()
        except discord.HTTPException as e:
            await interaction.edit_original_response(content=f"❌ Could not read attachment: {e}")
            return
        if dashboard.import_all(raw.decode("utf-8", errors="replace")):
            client.auto_snapshot.restart()
            await interaction.edit_original_response(content="✅ Data imported successfully!")
        else:
            await interaction.edit_original_response(content="❌ Failed to import data. Is this an export file?")

    @client.tree.command(name="activityreport", description="Download a member activity workbook (.xlsx)")
    @app_commands.describe(days="Activity window in days (default 7)")
    async def activityreport(interaction: discord.Interaction, days: app_commands.Range[int, 1, 90] = 7):
        if not dashboard.get_clan_data():
            await interaction.response.send_message("❌ No clan loaded. Use `/loadclan` first.", ephemeral=True)
            return
        buf = io.BytesIO()
        if not backup.export_activity_workbook(dashboard, buf, days):
            await interaction.response.send_message("❌ Failed to build the report.", ephemeral=True)
            return
        buf.seek(0)
        await interaction.response.send_message(
            "📊 Activity report:", file=discord.File(buf, filename=f"activity-{days}d.xlsx"), ephemeral=True
        )

    @client.tree.command(name="storage", description="Show storage usage")
    async def storage(interaction: discord.Interaction):
        embed = build_storage_embed(dashboard.storage_info(), backup.snapshot_counts(dashboard))
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @client.tree.command(name="cleardata", description="Delete ALL dashboard data")
    @app_commands.describe(confirm="Set to True to really delete everything")
    async def cleardata(interaction: discord.Interaction, confirm: bool = False):
        if not confirm:
            await interaction.response.send_message(
                "⚠️ This deletes settings, clan data and every snapshot. Re-run with `confirm: True`.",
                ephemeral=True
            )
            return
        backup_path = backup.write_export_file(dashboard, EXPORT_DIR)
        if backup_path is None:
            await interaction.response.send_message(
                "❌ Could not write a backup export, nothing was deleted.", ephemeral=True
            )
            return
        client.auto_snapshot.stop()
        ok = dashboard.clear_all()
        await client.log(
            f"[CLEAR] All data cleared by {interaction.user} ({'ok' if ok else 'partial'}), backup at {backup_path}"
        )
        await interaction.response.send_message(
            "🗑 All data cleared!" if ok else "❌ Some records could not be deleted.", ephemeral=True
        )

    @client.tree.command(name="status", description="Show bot status and stats")
    async def status(interaction: discord.Interaction):
        settings = dashboard.get_settings()
        clan = dashboard.get_clan_data() or {}
        emb = discord.Embed(
            title="📡 Dashboard Status",
            color=COLOR_OK if clan else COLOR_ERROR,
            timestamp=datetime.now(timezone.utc)
        )
        emb.add_field(name="Clan", value=f"{clan.get('name', '—')} `{clan.get('tag', '')}`", inline=True)
        emb.add_field(name="Auto-snapshot", value="running" if client.auto_snapshot.running else "stopped", inline=True)
        emb.add_field(name="API cache", value=json.dumps(client.coc_api.cache.get_stats()), inline=True)
        emb.add_field(
            name="Snapshots",
            value=" • ".join(f"{k} {v}" for k, v in backup.snapshot_counts(dashboard).items()),
            inline=False
        )
        emb.set_footer(text=f"Default clan: {settings.get('defaultClanTag') or 'none'}")
        await interaction.response.send_message(embed=emb, ephemeral=True)


def main():
    if not DISCORD_TOKEN:
        print("[FATAL] Set the DISCORD_TOKEN environment variable.")
        return
    intents = discord.Intents.default()
    client = ClashDashboardBot(Dashboard(), intents=intents)
    register_commands(client)
    try:
        client.run(DISCORD_TOKEN)
    except KeyboardInterrupt:
        print("[INFO] Shutting down...")


if __name__ == "__main__":
    main()
