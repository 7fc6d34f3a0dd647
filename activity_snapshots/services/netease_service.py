import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from activity_snapshots.clients.netease_client import fetch_playlist_tracks
from activity_snapshots.clients.netease_client import fetch_recent_played
from activity_snapshots.core.errors import ActivitySnapshotError
from activity_snapshots.core.errors import ConfigurationError
from activity_snapshots.core.errors import UpstreamFormatError
from activity_snapshots.settings import Settings
from activity_snapshots.storage import write_json_file


logger = logging.getLogger(__name__)

RECENT_PLAYED_FILE = "netease/recentPlayed.json"
FAVORITE_FILE = "netease/favorite.json"


def song_info(song: Mapping[str, Any]) -> dict[str, object]:
    """Reshape a NetEase track into the published song item."""

    artists = song.get("ar")
    album = song.get("al")
    if not isinstance(artists, list) or not isinstance(album, Mapping):
        raise UpstreamFormatError(f"NetEase song {song.get('id')} is missing artist or album")

    return {
        "name": song.get("name"),
        "artist": "/".join(
            str(artist.get("name") or "") for artist in artists if isinstance(artist, Mapping)
        ),
        "album": album.get("name"),
        "pic": album.get("picUrl"),
        "id": song.get("id"),
        "url": f"https://music.163.com/#/song?id={song.get('id')}",
    }


def collect_recent_played(user_id: str) -> list[dict[str, object]]:
    songs: list[dict[str, object]] = []
    for record in fetch_recent_played(user_id):
        song = record.get("song")
        if not isinstance(song, Mapping):
            continue
        songs.append({**song_info(song), "score": record.get("score")})
    return songs


def collect_favorite(playlist_id: str) -> list[dict[str, object]]:
    """Return the favorite playlist; an unavailable playlist publishes empty."""

    try:
        return [song_info(track) for track in fetch_playlist_tracks(playlist_id)]
    except ActivitySnapshotError as exc:
        logger.warning("NetEase favorite playlist unavailable: %s", exc)
        return []


def run_netease_pipeline(app_settings: Settings) -> list[Path]:
    """Publish recent plays and the favorite playlist.

    Raises:
        ConfigurationError: If neither NETEASE_ID nor NETEASE_FAVORITE_ID is set.
    """

    user_id = app_settings.netease_id
    favorite_id = app_settings.netease_favorite_id
    if not user_id and not favorite_id:
        raise ConfigurationError("NETEASE_ID or NETEASE_FAVORITE_ID must be set")

    with ThreadPoolExecutor(max_workers=2) as executor:
        recent_future = executor.submit(collect_recent_played, user_id) if user_id else None
        favorite_future = executor.submit(collect_favorite, favorite_id) if favorite_id else None
        recent_played = recent_future.result() if recent_future else []
        favorite = favorite_future.result() if favorite_future else []

    data_dir = Path(app_settings.data_dir)
    return [
        write_json_file(data_dir / RECENT_PLAYED_FILE, recent_played),
        write_json_file(data_dir / FAVORITE_FILE, favorite),
    ]
