from collections.abc import Mapping
from typing import Any

from activity_snapshots.clients.http import fetch_json
from activity_snapshots.core.errors import UpstreamFormatError


BANGUMI_API_URL = "https://api.bgm.tv/v0"
ANIME_SUBJECT_TYPE = 2
COLLECTIONS_PAGE_SIZE = 50


def fetch_anime_collections(user_id: str, user_agent: str) -> list[dict[str, Any]]:
    """Fetch every anime collection entry of a Bangumi user.

    See https://bangumi.github.io/api/ for the response shape. The endpoint
    is paged with `limit`/`offset`; pages are requested until `total`
    entries have been read or a page comes back empty.
    """

    collections: list[dict[str, Any]] = []
    offset = 0
    while True:
        payload = fetch_json(
            f"{BANGUMI_API_URL}/users/{user_id}/collections",
            params={
                "subject_type": ANIME_SUBJECT_TYPE,
                "limit": COLLECTIONS_PAGE_SIZE,
                "offset": offset,
            },
            headers={
                "Accept": "application/json",
                "User-Agent": user_agent,
            },
            timeout=15.0,
        )
        if not isinstance(payload, Mapping):
            raise UpstreamFormatError("Bangumi collections response is invalid")

        page = payload.get("data")
        if not isinstance(page, list):
            raise UpstreamFormatError("Bangumi collections response has no data")

        collections.extend(dict(item) for item in page if isinstance(item, Mapping))
        offset += len(page)

        total = payload.get("total")
        if not page or not isinstance(total, int) or offset >= total:
            return collections
