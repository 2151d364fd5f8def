"""Discord embed builders for the dashboard views."""
from typing import Dict, Any, Optional, List
from datetime import datetime, timezone

import discord

from clan_dashboard.config import ROLE_NAMES, COLOR_OK, COLOR_WARN, COLOR_ERROR, COLOR_INFO
from clan_dashboard.snapshots import now_ms

# Discord rejects field values above 1024 characters
FIELD_LIMIT = 1024

BOLD_CAPS_START = 0x1D400


def _bold_upper(text: str) -> str:
    """Convert ASCII letters to mathematical bold uppercase for a headline effect."""
    out = []
    for ch in (text or "").upper():
        if 'A' <= ch <= 'Z':
            out.append(chr(BOLD_CAPS_START + (ord(ch) - ord('A'))))
        else:
            out.append(ch)
    return ''.join(out)


def format_number(num: Any) -> str:
    if num is None:
        return "0"
    try:
        return f"{int(num):,}"
    except (ValueError, TypeError):
        return str(num)


def format_signed(num: int) -> str:
    return f"+{num:,}" if num > 0 else f"{num:,}"


def format_relative_time(timestamp: Optional[int], now: Optional[int] = None) -> str:
    """'3 days ago' style rendering of an epoch-ms timestamp."""
    if not timestamp:
        return "Never"
    now = now_ms() if now is None else now
    seconds = (now - timestamp) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "Just now"


def role_name(role: Optional[str]) -> str:
    return ROLE_NAMES.get(role or "member", "Member")


def _join_lines(lines: List[str], limit: int = FIELD_LIMIT) -> str:
    """Join lines, cutting off with a '+N more' marker before the field limit."""
    out: List[str] = []
    used = 0
    for i, line in enumerate(lines):
        more = f"… +{len(lines) - i} more"
        if used + len(line) + 1 > limit - len(more) - 1:
            out.append(more)
            break
        out.append(line)
        used += len(line) + 1
    return "\n".join(out) or "—"


def clan_stats(clan: Dict[str, Any]) -> Dict[str, Any]:
    """Headline numbers for a clan record."""
    members = clan.get("memberList") or []
    wins = clan.get("warWins") or 0
    losses = clan.get("warLosses") or 0
    ties = clan.get("warTies") or 0
    total = wins + losses + ties
    return {
        "totalTrophies": sum(m.get("trophies") or 0 for m in members if isinstance(m, dict)),
        "members": clan.get("members") or len(members),
        "warWinRate": (wins / total) * 100 if total else 0.0,
        "totalDonations": sum(m.get("donations") or 0 for m in members if isinstance(m, dict)),
    }


def build_clan_embed(clan: Dict[str, Any], recent: Optional[List[Dict[str, Any]]] = None) -> discord.Embed:
    """Clan overview: level, points, war record and recent dashboard events."""
    stats = clan_stats(clan)
    embed = discord.Embed(
        title=_bold_upper(clan.get("name", "Unknown Clan")),
        description=f"`{clan.get('tag', '')}`\n{clan.get('description', '')}".strip(),
        color=COLOR_INFO,
        timestamp=datetime.now(timezone.utc)
    )
    badge = (clan.get("badgeUrls") or {}).get("medium")
    if badge:
        embed.set_thumbnail(url=badge)

    embed.add_field(name="🏰 Level", value=str(clan.get("clanLevel", "?")), inline=True)
    embed.add_field(name="👥 Members", value=f"{stats['members']}/50", inline=True)
    embed.add_field(name="🏆 Points", value=format_number(clan.get("clanPoints")), inline=True)
    embed.add_field(
        name="⚔️ War Record",
        value=(
            f"{clan.get('warWins', 0)}W / {clan.get('warLosses', 0)}L / {clan.get('warTies', 0)}T "
            f"• Win rate {stats['warWinRate']:.1f}%"
        ),
        inline=False
    )
    embed.add_field(name="📈 Member Trophies", value=format_number(stats["totalTrophies"]), inline=True)
    embed.add_field(name="📤 Donations (Season)", value=format_number(stats["totalDonations"]), inline=True)

    if recent:
        lines = [f"• {e['message']} ({format_relative_time(e['time'])})" for e in recent]
        embed.add_field(name="🕒 Recent Activity", value=_join_lines(lines), inline=False)

    embed.set_footer(text="Clan Dashboard • Overview")
    return embed


def build_members_embed(rows: List[Dict[str, Any]], clan_name: str, window_days: int = 7) -> discord.Embed:
    """Member ranking by trophies with each member's activity in the window."""
    ranked = sorted(rows, key=lambda m: m.get("trophies") or 0, reverse=True)
    lines = []
    for i, m in enumerate(ranked, start=1):
        activity = m.get("activity") or {}
        marker = "🟢" if activity.get("isActive") else "⚪"
        lines.append(
            f"{i}. {marker} **{m.get('name', '?')}** `{m.get('tag')}` • {role_name(m.get('role'))} • "
            f"TH{m.get('townHallLevel', '?')} • 🏆 {format_number(m.get('trophies'))} • "
            f"📤 {format_number(m.get('donations'))}/{format_number(m.get('donationsReceived'))}"
        )
    embed = discord.Embed(
        title=f"👥 Member Ranking — {clan_name}",
        description=_join_lines(lines, 4096),
        color=COLOR_INFO,
        timestamp=datetime.now(timezone.utc)
    )
    embed.set_footer(text=f"🟢 active in the last {window_days} day(s)")
    return embed


def build_activity_embed(member: Dict[str, Any], activity: Dict[str, Any]) -> discord.Embed:
    """Activity of one member over the window."""
    active = activity.get("isActive")
    embed = discord.Embed(
        title=f"{'🟢' if active else '🔴'} Activity — {member.get('name', member.get('tag', '?'))}",
        description=f"`{member.get('tag', '')}` • last {activity.get('windowDays', '?')} day(s)",
        color=COLOR_OK if active else COLOR_ERROR,
        timestamp=datetime.now(timezone.utc)
    )
    embed.add_field(name="Score", value=format_number(activity.get("score")), inline=True)
    embed.add_field(name="Trophy change", value=format_signed(activity.get("trophyChange", 0)), inline=True)
    embed.add_field(name="Donations change", value=format_signed(activity.get("donationsChange", 0)), inline=True)
    embed.add_field(name="Last snapshot", value=format_relative_time(activity.get("lastSeen")), inline=False)
    return embed


def build_inactive_embed(inactive: List[Dict[str, Any]], window_days: int) -> discord.Embed:
    """Inactivity finder result."""
    if not inactive:
        return discord.Embed(
            title="✅ All members are active!",
            description=f"Everyone moved trophies or donated in the last {window_days} day(s).",
            color=COLOR_OK,
            timestamp=datetime.now(timezone.utc)
        )

    lines = [
        f"• **{m.get('name', '?')}** `{m.get('tag')}` • {role_name(m.get('role'))} • "
        f"🏆 {format_signed(m['activity']['trophyChange'])} • "
        f"📤 {format_signed(m['activity']['donationsChange'])} • "
        f"seen {format_relative_time(m['activity']['lastSeen'])}"
        for m in inactive
    ]
    embed = discord.Embed(
        title=f"💤 Inactive Members — {len(inactive)}",
        description=_join_lines(lines, 4096),
        color=COLOR_WARN,
        timestamp=datetime.now(timezone.utc)
    )
    embed.set_footer(text=f"No trophy or donation change in the last {window_days} day(s)")
    return embed


def build_war_embed(metrics: Optional[Dict[str, Any]]) -> discord.Embed:
    """Current war dashboard."""
    if not metrics:
        return discord.Embed(title="⚔️ Not in war", color=COLOR_INFO, timestamp=datetime.now(timezone.utc))

    clan, opp = metrics["clan"], metrics["opponent"]
    embed = discord.Embed(
        title=f"⚔️ {clan['name']} vs {opp['name']}",
        description=f"State: **{metrics['state']}** • {metrics['teamSize']}v{metrics['teamSize']}",
        color=COLOR_INFO,
        timestamp=datetime.now(timezone.utc)
    )
    embed.add_field(
        name=clan["name"] or "Clan",
        value=f"⭐ {clan['stars']} • {clan['destruction']:.1f}% • {clan['attacks']} attacks",
        inline=True
    )
    embed.add_field(
        name=opp["name"] or "Opponent",
        value=f"⭐ {opp['stars']} • {opp['destruction']:.1f}% • {opp['attacks']} attacks",
        inline=True
    )
    lines = [
        f"{m['mapPosition'] or '?'}. {m['name']} — ⭐ {m['totalStars']} • "
        f"{m['avgDestruction']:.0f}% avg • {m['attacksUsed']}/{metrics['attacksPerMember']}"
        for m in metrics["members"]
    ]
    embed.add_field(name="Members", value=_join_lines(lines), inline=False)
    missing = [m for m in metrics["members"] if m["attacksMissed"] > 0]
    if missing:
        embed.add_field(
            name=f"⏳ Attacks remaining ({len(missing)})",
            value=_join_lines([f"• {m['name']} `{m['tag']}` ({m['attacksMissed']} left)" for m in missing]),
            inline=False
        )
    return embed


def build_capital_embed(metrics: Optional[Dict[str, Any]]) -> discord.Embed:
    """Latest capital raid weekend."""
    if not metrics:
        return discord.Embed(title="🏛 No capital raid data", color=COLOR_INFO, timestamp=datetime.now(timezone.utc))

    embed = discord.Embed(
        title="🏛 Capital Raid Weekend",
        description=f"State: **{metrics['state']}**",
        color=COLOR_INFO,
        timestamp=datetime.now(timezone.utc)
    )
    embed.add_field(name="Total Loot", value=format_number(metrics["capitalTotalLoot"]), inline=True)
    embed.add_field(name="Raids", value=str(metrics["raidsCompleted"]), inline=True)
    embed.add_field(name="Attacks", value=str(metrics["totalAttacks"]), inline=True)
    embed.add_field(name="Districts Destroyed", value=str(metrics["enemyDistrictsDestroyed"]), inline=True)
    embed.add_field(
        name="Rewards",
        value=f"Offense {format_number(metrics['offensiveReward'])} • Defense {format_number(metrics['defensiveReward'])}",
        inline=True
    )
    lines = [
        f"{i}. {m['name']} — {format_number(m['capitalResourcesLooted'])} • "
        f"{m['attacks']}/{m['attackLimit'] + m['bonusAttackLimit']} attacks"
        for i, m in enumerate(metrics["members"], start=1)
    ]
    embed.add_field(name="Contributors", value=_join_lines(lines), inline=False)
    return embed


def build_player_embed(player: Dict[str, Any], activity: Dict[str, Any]) -> discord.Embed:
    """Player profile with their activity in the loaded clan."""
    clan = player.get("clan") or {}
    embed = discord.Embed(
        title=_bold_upper(player.get("name", "Unknown")),
        description=f"`{player.get('tag', '')}`",
        color=COLOR_INFO,
        timestamp=datetime.now(timezone.utc)
    )
    league_icon = ((player.get("league") or {}).get("iconUrls") or {}).get("small")
    if league_icon:
        embed.set_thumbnail(url=league_icon)

    embed.add_field(
        name=f"📊 {_bold_upper('CORE')}",
        value=(
            f"XP: {player.get('expLevel', '?')} • TH: {player.get('townHallLevel', '?')} • "
            f"Trophies: {format_number(player.get('trophies'))} • Best: {format_number(player.get('bestTrophies'))} • "
            f"War Stars: {format_number(player.get('warStars'))}"
        ),
        inline=False
    )
    embed.add_field(
        name=f"📅 {_bold_upper('SEASON')}",
        value=(
            f"Donated: {format_number(player.get('donations'))} • Received: {format_number(player.get('donationsReceived'))} • "
            f"Attacks: {format_number(player.get('attackWins'))} • Defense: {format_number(player.get('defenseWins'))}"
        ),
        inline=False
    )
    embed.add_field(
        name=f"🏰 {_bold_upper('CLAN')}",
        value=f"{clan.get('name', 'No Clan')} • Role: {role_name(player.get('role'))}",
        inline=False
    )
    embed.add_field(
        name=f"📈 {_bold_upper('ACTIVITY')} ({activity.get('windowDays', 7)}D)",
        value=(
            f"{'Active' if activity.get('isActive') else 'Inactive'} • Score {format_number(activity.get('score'))} • "
            f"🏆 {format_signed(activity.get('trophyChange', 0))} • 📤 {format_signed(activity.get('donationsChange', 0))}"
        ),
        inline=False
    )
    return embed


def build_settings_embed(settings: Dict[str, Any], auto_running: bool = False) -> discord.Embed:
    embed = discord.Embed(title="⚙️ Dashboard Settings", color=COLOR_INFO, timestamp=datetime.now(timezone.utc))
    embed.add_field(name="Default clan", value=f"`{settings.get('defaultClanTag') or '—'}`", inline=True)
    embed.add_field(
        name="Snapshot interval",
        value=f"{settings.get('snapshotIntervalMinutes')} min {'(running)' if auto_running else '(stopped)'}",
        inline=True
    )
    embed.add_field(name="Inactivity threshold", value=f"{settings.get('inactivityThresholdDays')} day(s)", inline=True)
    embed.add_field(name="Dark mode", value="on" if settings.get("darkMode") else "off", inline=True)
    embed.add_field(name="Last snapshot", value=format_relative_time(settings.get("lastSnapshotTime")), inline=True)
    return embed


def build_storage_embed(info: Dict[str, Any], counts: Dict[str, int]) -> discord.Embed:
    percent = info["percentUsed"]
    embed = discord.Embed(
        title="💾 Storage",
        description=f"{info['totalSize'] / 1024:.1f} KiB of {info['limit'] / 1024:.0f} KiB ({percent:.1f}%)",
        color=COLOR_WARN if percent >= 80 else COLOR_INFO,
        timestamp=datetime.now(timezone.utc)
    )
    lines = [f"• {name.lower()}: {size / 1024:.1f} KiB" for name, size in info["sizes"].items()]
    embed.add_field(name="Records", value=_join_lines(lines), inline=False)
    embed.add_field(
        name="Snapshots",
        value=" • ".join(f"{category} {count}" for category, count in counts.items()),
        inline=False
    )
    return embed
