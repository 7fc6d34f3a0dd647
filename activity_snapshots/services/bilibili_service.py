import logging
import shutil
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from activity_snapshots.clients.bilibili_client import download_image
from activity_snapshots.clients.bilibili_client import fetch_favorite_medias
from activity_snapshots.settings import Settings
from activity_snapshots.storage import write_json_file


logger = logging.getLogger(__name__)

SNAPSHOT_FILE = "bilibili.json"
COVERS_DIR = "bilibili"


def media_item(media: Mapping[str, Any]) -> dict[str, object]:
    bvid = media.get("bvid")
    return {
        "title": media.get("title"),
        "cover": media.get("cover"),
        "intro": media.get("intro"),
        "id": media.get("id"),
        "bvid": bvid,
        "link": f"https://www.bilibili.com/video/{bvid}",
        "duration": media.get("duration"),
        "stats": media.get("cnt_info"),
    }


def replace_covers(covers_dir: Path, covers: Mapping[str, bytes]) -> None:
    """Recreate the cover directory holding exactly `covers`."""

    shutil.rmtree(covers_dir, ignore_errors=True)
    covers_dir.mkdir(parents=True, exist_ok=True)
    for bvid, content in covers.items():
        (covers_dir / f"{bvid}.jpg").write_bytes(content)


def run_bilibili_pipeline(app_settings: Settings) -> list[Path]:
    """Publish the favorite folder and its cover images."""

    medias = fetch_favorite_medias(app_settings.bilibili_media_id)
    items = [media_item(media) for media in medias]
    logger.info("Fetched %d favorite items from Bilibili", len(items))

    downloadable = [item for item in items if item["bvid"] and item["cover"]]
    with ThreadPoolExecutor(max_workers=6) as executor:
        contents = list(executor.map(lambda item: download_image(str(item["cover"])), downloadable))

    data_dir = Path(app_settings.data_dir)
    replace_covers(
        data_dir / COVERS_DIR,
        {str(item["bvid"]): content for item, content in zip(downloadable, contents)},
    )
    logger.info("Downloaded %d covers", len(contents))

    return [write_json_file(data_dir / SNAPSHOT_FILE, {"musicLiked": items})]
