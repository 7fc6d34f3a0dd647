from collections.abc import Mapping
from typing import Any

from lxml import etree
from lxml import html

from activity_snapshots.clients.http import fetch_json
from activity_snapshots.clients.http import fetch_bytes
from activity_snapshots.core.errors import UpstreamFormatError


STEAM_API_URL = "https://api.steampowered.com"
STEAM_STORE_URL = "https://store.steampowered.com/app"
STORE_TITLE_PREFIX = "Steam 上的 "


def fetch_player_summary(steam_id: str, key: str) -> dict[str, Any]:
    """Fetch the public profile of one Steam user."""

    payload = fetch_json(
        f"{STEAM_API_URL}/ISteamUser/GetPlayerSummaries/v0002/",
        params={"key": key, "steamids": steam_id, "format": "json"},
    )
    response = payload.get("response") if isinstance(payload, Mapping) else None
    players = response.get("players") if isinstance(response, Mapping) else None
    if not isinstance(players, list) or not players or not isinstance(players[0], Mapping):
        raise UpstreamFormatError(f"Steam player {steam_id} not found")

    return dict(players[0])


def fetch_owned_games(steam_id: str, key: str) -> list[dict[str, Any]]:
    """Fetch the game library of one Steam user, free games included."""

    payload = fetch_json(
        f"{STEAM_API_URL}/IPlayerService/GetOwnedGames/v0001/",
        params={
            "key": key,
            "steamid": steam_id,
            "format": "json",
            "include_appinfo": "true",
            "include_played_free_games": "true",
        },
    )
    response = payload.get("response") if isinstance(payload, Mapping) else None
    if not isinstance(response, Mapping):
        raise UpstreamFormatError("Steam owned games response is invalid")

    # A private library answers with an empty `response` object.
    games = response.get("games", [])
    if not isinstance(games, list):
        raise UpstreamFormatError("Steam owned games list is invalid")

    return [dict(item) for item in games if isinstance(item, Mapping)]


def parse_store_title(page: str | bytes) -> str | None:
    """Extract the localized game name from a store page.

    Raises:
        UpstreamFormatError: If the page cannot be parsed as HTML.
    """

    if isinstance(page, str):
        # lxml refuses str input that carries an encoding declaration.
        page = page.encode("utf-8")
    if not page.strip():
        return None

    try:
        tree = html.fromstring(page)
    except (etree.ParserError, ValueError) as exc:
        raise UpstreamFormatError("Steam store page is not parseable HTML") from exc

    name = tree.xpath("string(//*[@id='appHubAppName'])").strip()
    if name:
        return name

    title = tree.xpath("string(//title)").strip()
    if title.startswith(STORE_TITLE_PREFIX):
        title = title[len(STORE_TITLE_PREFIX):]
    return title or None


def fetch_store_title(app_id: int) -> str | None:
    """Fetch the zh-CN store name of an app."""

    page = fetch_bytes(
        f"{STEAM_STORE_URL}/{app_id}",
        headers={
            "User-Agent": "Mozilla/5.0",
            "Accept-Language": "zh-CN,zh;q=0.9",
        },
        retries=1,
    )
    return parse_store_title(page)
