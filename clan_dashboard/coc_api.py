"""Clash of Clans API client with caching and structured results.

Every request resolves to ``{"success": True, "data": ...}`` or
``{"success": False, "error": "<message>"}``; network faults never propagate.
"""
import asyncio
import urllib.parse
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from clan_dashboard.cache import APICache, RequestDeduplicator
from clan_dashboard.config import (
    COC_API_KEYS, COC_API_BASE_URL, COC_CONCURRENCY, COC_TIMEOUT,
    PLAYER_CACHE_TTL, CLAN_CACHE_TTL, WAR_CACHE_TTL
)


def encode_tag(tag: Optional[str]) -> str:
    """Encode a clan/player tag for a URL path segment (#TAG -> %23TAG)."""
    if not tag:
        return ""
    tag = tag.strip()
    if tag.startswith("#"):
        tag = tag[1:]
    return "%23" + tag


def normalize_tag(tag: Optional[str]) -> str:
    """Upper-case tag with a leading '#'."""
    tag = (tag or "").strip().upper()
    if tag and not tag.startswith("#"):
        tag = "#" + tag
    return tag


def _ok(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def _fail(error: str) -> Dict[str, Any]:
    return {"success": False, "error": error}


class COCAPI:
    """Clash of Clans API client with caching and request deduplication."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        base_url: str = COC_API_BASE_URL,
        api_keys: Optional[Dict[str, str]] = None,
        timeout: float = COC_TIMEOUT,
        concurrency: int = COC_CONCURRENCY,
    ):
        self.session = http_session
        self.base_url = base_url.rstrip("/")
        self.api_keys = COC_API_KEYS if api_keys is None else api_keys
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.semaphore = asyncio.Semaphore(concurrency)
        self.cache = APICache()
        self.deduplicator = RequestDeduplicator()

    async def _get_once(self, url: str, headers: Dict[str, str]) -> Tuple[int, Dict[str, Any]]:
        async with self.session.get(url, headers=headers, timeout=self.timeout) as resp:
            if resp.status == 200:
                return resp.status, _ok(await resp.json())
            try:
                body = await resp.json()
            except (aiohttp.ContentTypeError, ValueError):
                body = {}
            message = body.get("message") if isinstance(body, dict) else None
            return resp.status, _fail(message or f"HTTP {resp.status}: {resp.reason}")

    async def _fetch(self, path: str) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        # The public wrapper needs no key; otherwise try keys in order
        header_sets = [{"Authorization": f"Bearer {k}"} for k in self.api_keys.values()] or [{}]
        result = _fail("no request made")
        async with self.semaphore:
            for headers in header_sets:
                try:
                    status, result = await self._get_once(url, headers)
                except asyncio.TimeoutError:
                    result = _fail(f"Timed out fetching {path}")
                    continue
                except aiohttp.ClientError as e:
                    result = _fail(f"Network error fetching {path}: {e}")
                    continue
                except ValueError as e:
                    result = _fail(f"Invalid JSON from {path}: {e}")
                    break
                # 403 means this key is not valid for our IP; try the next one
                if status != 403:
                    break
        if not result["success"]:
            print(f"[API] {path}: {result['error']}")
        return result

    async def _make_request(self, path: str, cache_key: Optional[str] = None,
                            ttl: float = 60.0) -> Dict[str, Any]:
        """
        Make an API request with caching and deduplication.

        Args:
            path: API endpoint path with the tag already encoded
            cache_key: Optional cache key (defaults to path)
            ttl: Cache TTL in seconds; 0 disables caching
        """
        cache_key = cache_key or path
        if ttl > 0:
            cached = await self.cache.get(cache_key, ttl)
            if cached is not None:
                return _ok(cached)

        result = await self.deduplicator.get_or_create(cache_key, lambda: self._fetch(path))
        if result["success"] and ttl > 0:
            await self.cache.set(cache_key, result["data"])
        return result

    # Players
    async def get_player(self, tag: str) -> Dict[str, Any]:
        return await self._make_request(
            f"/players/{encode_tag(tag)}", cache_key=f"player:{normalize_tag(tag)}", ttl=PLAYER_CACHE_TTL
        )

    # Clans
    async def search_clans(self, name: str) -> Dict[str, Any]:
        return await self._make_request(f"/clans?name={urllib.parse.quote(name)}", ttl=CLAN_CACHE_TTL)

    async def get_clan(self, clan_tag: str) -> Dict[str, Any]:
        return await self._make_request(
            f"/clans/{encode_tag(clan_tag)}", cache_key=f"clan:{normalize_tag(clan_tag)}", ttl=CLAN_CACHE_TTL
        )

    async def get_clan_members(self, clan_tag: str) -> Dict[str, Any]:
        return await self._make_request(f"/clans/{encode_tag(clan_tag)}/members", ttl=CLAN_CACHE_TTL)

    async def get_war_log(self, clan_tag: str) -> Dict[str, Any]:
        return await self._make_request(f"/clans/{encode_tag(clan_tag)}/warlog", ttl=CLAN_CACHE_TTL)

    async def get_current_war(self, clan_tag: str) -> Dict[str, Any]:
        return await self._make_request(
            f"/clans/{encode_tag(clan_tag)}/currentwar", cache_key=f"war:{normalize_tag(clan_tag)}", ttl=WAR_CACHE_TTL
        )

    async def get_war_league_group(self, clan_tag: str) -> Dict[str, Any]:
        return await self._make_request(
            f"/clans/{encode_tag(clan_tag)}/currentwar/leaguegroup", ttl=WAR_CACHE_TTL
        )

    async def get_capital_raid_seasons(self, clan_tag: str) -> Dict[str, Any]:
        return await self._make_request(
            f"/clans/{encode_tag(clan_tag)}/capitalraidseasons",
            cache_key=f"raid:{normalize_tag(clan_tag)}", ttl=CLAN_CACHE_TTL
        )

    async def get_gold_pass(self) -> Dict[str, Any]:
        return await self._make_request("/goldpass", ttl=CLAN_CACHE_TTL)

    async def invalidate_clan_cache(self, clan_tag: str) -> None:
        """Invalidate all cache entries for a clan."""
        tag = normalize_tag(clan_tag)
        for prefix in ("clan", "war", "raid"):
            await self.cache.invalidate(f"{prefix}:{tag}")

    # Aggregates
    async def get_comprehensive_clan_data(self, clan_tag: str) -> Dict[str, Any]:
        """
        Fetch clan, current war and capital raid data concurrently.

        Succeeds whenever the clan itself was fetched. A failed war fetch is
        expected (clans outside a war, private war logs) and just leaves
        ``war`` as None; a failed capital fetch is reported in ``errors``.
        """
        clan_res, war_res, capital_res = await asyncio.gather(
            self.get_clan(clan_tag),
            self.get_current_war(clan_tag),
            self.get_capital_raid_seasons(clan_tag),
            return_exceptions=True,
        )

        data: Dict[str, Any] = {"clan": None, "war": None, "capital": None, "errors": []}

        if isinstance(clan_res, dict) and clan_res.get("success"):
            data["clan"] = clan_res["data"]
        else:
            data["errors"].append("Failed to fetch clan data")

        if isinstance(war_res, dict) and war_res.get("success"):
            data["war"] = war_res["data"]

        if isinstance(capital_res, dict) and capital_res.get("success"):
            data["capital"] = capital_res["data"]
        else:
            data["errors"].append("Failed to fetch capital data")

        return {"success": data["clan"] is not None, "data": data, "errors": data["errors"]}

    async def batch_get_players(self, player_tags: List[str]) -> Dict[str, Any]:
        """Fetch several players concurrently; failures are listed per tag."""
        results = await asyncio.gather(
            *(self.get_player(tag) for tag in player_tags), return_exceptions=True
        )
        players: List[Dict[str, Any]] = []
        errors: List[Dict[str, str]] = []
        for tag, res in zip(player_tags, results):
            if isinstance(res, dict) and res.get("success"):
                players.append(res["data"])
            else:
                error = res.get("error") if isinstance(res, dict) else str(res)
                errors.append({"tag": tag, "error": error or "Unknown error"})
        return {"success": True, "players": players, "errors": errors}
