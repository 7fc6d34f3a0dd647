from collections.abc import Mapping
from typing import Any

from activity_snapshots.clients.http import fetch_bytes
from activity_snapshots.clients.http import fetch_json
from activity_snapshots.core.errors import UpstreamFormatError


FAVORITE_LIST_URL = "https://api.bilibili.com/x/v3/fav/resource/list"


def fetch_favorite_medias(media_id: str, page_size: int = 6) -> list[dict[str, Any]]:
    """Fetch the newest entries of a public Bilibili favorite folder."""

    payload = fetch_json(
        FAVORITE_LIST_URL,
        params={"media_id": media_id, "ps": str(page_size), "platform": "web"},
    )
    if not isinstance(payload, Mapping):
        raise UpstreamFormatError("Bilibili favorite response is invalid")

    if payload.get("code") != 0:
        raise UpstreamFormatError(f"Bilibili API error: {payload.get('message')}")

    data = payload.get("data")
    medias = data.get("medias") if isinstance(data, Mapping) else None
    if medias is None:
        return []
    if not isinstance(medias, list):
        raise UpstreamFormatError("Bilibili favorite medias are invalid")

    return [dict(item) for item in medias if isinstance(item, Mapping)]


def download_image(url: str) -> bytes:
    return fetch_bytes(url, headers={"Referer": "https://www.bilibili.com/"})
