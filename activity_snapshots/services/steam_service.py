import logging
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from activity_snapshots.clients.steam_client import fetch_owned_games
from activity_snapshots.clients.steam_client import fetch_player_summary
from activity_snapshots.clients.steam_client import fetch_store_title
from activity_snapshots.core.errors import ActivitySnapshotError
from activity_snapshots.core.errors import ConfigurationError
from activity_snapshots.services.name_cache import NameCache
from activity_snapshots.settings import Settings
from activity_snapshots.storage import write_json_file


logger = logging.getLogger(__name__)

SNAPSHOT_FILE = "steam.json"
NAME_CACHE_FILE = "steam_namecn_map.json"
ICON_URL = "http://media.steampowered.com/steamcommunity/public/images/apps/{app_id}/{icon_hash}.jpg"


def user_info(player: Mapping[str, Any]) -> dict[str, object]:
    return {
        "id": player.get("steamid"),
        "name": player.get("personaname"),
        "avatar": player.get("avatarfull"),
        "createdTime": player.get("timecreated"),
        "lastLogOffTime": player.get("lastlogoff"),
    }


def game_icon(game: Mapping[str, Any]) -> str | None:
    icon_hash = game.get("img_icon_url") or game.get("img_logo_url")
    if not icon_hash:
        return None
    return ICON_URL.format(app_id=game.get("appid"), icon_hash=icon_hash)


def store_name_resolver(api_names: Mapping[str, str]) -> Callable[[str], str]:
    """Build a resolver that falls back to the API name when the store fails."""

    def resolve(app_id: str) -> str:
        fallback = api_names.get(app_id, "")
        try:
            return fetch_store_title(int(app_id)) or fallback
        except ActivitySnapshotError as exc:
            logger.warning("Store title for app %s unavailable: %s", app_id, exc)
            return fallback

    return resolve


def build_games(
    games: Iterable[Mapping[str, Any]],
    excluded_app_ids: Iterable[int],
    name_cache: NameCache,
) -> list[dict[str, object]]:
    """Shape owned games, resolving localized names through `name_cache`."""

    excluded = set(excluded_app_ids)
    kept = [game for game in games if game.get("appid") not in excluded]

    api_names = {str(game.get("appid")): str(game.get("name") or "") for game in kept}
    names = name_cache.resolve(api_names, store_name_resolver(api_names))

    return [
        {
            "id": game.get("appid"),
            "name": game.get("name"),
            "nameCN": names.get(str(game.get("appid"))) or game.get("name"),
            "playtimeForever": game.get("playtime_forever"),
            "playtime2Weeks": game.get("playtime_2weeks"),
            "timeLastPlayed": game.get("rtime_last_played"),
            "icon": game_icon(game),
        }
        for game in kept
    ]


def run_steam_pipeline(
    app_settings: Settings,
    excluded_app_ids: Iterable[int] | None = None,
) -> list[Path]:
    """Publish the Steam profile and game library.

    Raises:
        ConfigurationError: If STEAM_ID or STEAM_KEY is missing.
    """

    steam_id = app_settings.steam_id
    key = app_settings.steam_key
    if not steam_id or not key:
        raise ConfigurationError("STEAM_ID and STEAM_KEY must be set")

    if excluded_app_ids is None:
        excluded_app_ids = app_settings.excluded_steam_app_ids()

    data_dir = Path(app_settings.data_dir)

    with ThreadPoolExecutor(max_workers=2) as executor:
        player_future = executor.submit(fetch_player_summary, steam_id, key)
        games_future = executor.submit(fetch_owned_games, steam_id, key)
        player = player_future.result()
        owned_games = games_future.result()

    name_cache = NameCache.load(data_dir / NAME_CACHE_FILE)
    games = build_games(owned_games, excluded_app_ids, name_cache)

    written = [write_json_file(data_dir / SNAPSHOT_FILE, {"user": user_info(player), "games": games})]
    if name_cache.save_if_changed():
        written.append(name_cache.path)
    return written
