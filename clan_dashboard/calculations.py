"""War and capital raid metrics derived from API payloads."""
from typing import Dict, Any, Optional, List


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (ValueError, TypeError):
        return 0


def _float(value: Any) -> float:
    try:
        return float(value or 0)
    except (ValueError, TypeError):
        return 0.0


def calculate_war_metrics(war_data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Summarize the current war.

    Returns None when there is no war. Otherwise a dict with:
        - state, teamSize, attacksPerMember
        - clan / opponent: name, stars, destruction, attacks
        - members: per-member attacks used/missed, stars and destruction,
          sorted by stars then destruction (both descending)
    """
    if not war_data or war_data.get("state") == "notInWar":
        return None

    attacks_per_member = _int(war_data.get("attacksPerMember")) or 2

    def side(key: str) -> Dict[str, Any]:
        s = war_data.get(key) or {}
        return {
            "name": s.get("name"),
            "stars": _int(s.get("stars")),
            "destruction": _float(s.get("destructionPercentage")),
            "attacks": _int(s.get("attacks")),
        }

    members: List[Dict[str, Any]] = []
    for member in (war_data.get("clan") or {}).get("members") or []:
        if not isinstance(member, dict):
            continue
        attacks = member.get("attacks") or []
        used = len(attacks)
        total_stars = sum(_int(a.get("stars")) for a in attacks)
        total_destruction = sum(_float(a.get("destructionPercentage")) for a in attacks)
        members.append({
            "tag": member.get("tag"),
            "name": member.get("name"),
            "townhallLevel": member.get("townhallLevel"),
            "mapPosition": member.get("mapPosition"),
            "attacksUsed": used,
            "attacksMissed": attacks_per_member - used,
            "totalStars": total_stars,
            "totalDestruction": total_destruction,
            "avgDestruction": total_destruction / used if used else 0.0,
        })

    members.sort(key=lambda m: (m["totalStars"], m["totalDestruction"]), reverse=True)

    return {
        "state": war_data.get("state"),
        "teamSize": war_data.get("teamSize"),
        "attacksPerMember": attacks_per_member,
        "clan": side("clan"),
        "opponent": side("opponent"),
        "members": members,
    }


def calculate_capital_metrics(capital_data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Summarize the most recent capital raid season (the first item returned).

    Members are sorted by capital resources looted, descending.
    """
    if not capital_data or not capital_data.get("items"):
        return None

    season = capital_data["items"][0]
    members = [
        {
            "tag": m.get("tag"),
            "name": m.get("name"),
            "attacks": _int(m.get("attacks")),
            "attackLimit": _int(m.get("attackLimit")),
            "bonusAttackLimit": _int(m.get("bonusAttackLimit")),
            "capitalResourcesLooted": _int(m.get("capitalResourcesLooted")),
        }
        for m in season.get("members") or []
        if isinstance(m, dict)
    ]
    members.sort(key=lambda m: m["capitalResourcesLooted"], reverse=True)

    return {
        "state": season.get("state"),
        "startTime": season.get("startTime"),
        "endTime": season.get("endTime"),
        "capitalTotalLoot": _int(season.get("capitalTotalLoot")),
        "raidsCompleted": _int(season.get("raidsCompleted")),
        "totalAttacks": _int(season.get("totalAttacks")),
        "enemyDistrictsDestroyed": _int(season.get("enemyDistrictsDestroyed")),
        "offensiveReward": _int(season.get("offensiveReward")),
        "defensiveReward": _int(season.get("defensiveReward")),
        "members": members,
    }


def raids_left(capital_metrics: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Members who have not used all of their capital raid attacks."""
    if not capital_metrics:
        return []
    return [
        m for m in capital_metrics["members"]
        if m["attacks"] < m["attackLimit"] + m["bonusAttackLimit"]
    ]
