from collections.abc import Mapping
from pathlib import Path
from typing import Any

from activity_snapshots.clients.bangumi_client import fetch_anime_collections
from activity_snapshots.core.errors import ConfigurationError
from activity_snapshots.core.errors import UpstreamFormatError
from activity_snapshots.settings import Settings
from activity_snapshots.storage import write_json_file


# Bangumi collection types: 1 wish, 2 done, 3 doing.
COLLECTION_FILES = {
    3: "bangumi/watching.json",
    1: "bangumi/toWatch.json",
    2: "bangumi/watched.json",
}


def anime_item(entry: Mapping[str, Any]) -> dict[str, object]:
    subject = entry.get("subject")
    if not isinstance(subject, Mapping):
        raise UpstreamFormatError(f"Bangumi collection {entry.get('subject_id')} has no subject")

    images = subject.get("images")
    tags = subject.get("tags") or []
    return {
        "id": entry.get("subject_id"),
        "date": subject.get("date"),
        "name": subject.get("name"),
        "name_cn": subject.get("name_cn"),
        "summary": subject.get("short_summary"),
        "tags": [
            {"name": tag.get("name"), "total": tag.get("total")}
            for tag in tags
            if isinstance(tag, Mapping)
        ],
        "pic": images.get("common") if isinstance(images, Mapping) else None,
        "updated_at": entry.get("updated_at"),
    }


def split_collections(entries: list[dict[str, Any]]) -> dict[int, list[dict[str, object]]]:
    """Group collection entries by type, keeping upstream order."""

    grouped: dict[int, list[dict[str, object]]] = {kind: [] for kind in COLLECTION_FILES}
    for entry in entries:
        kind = entry.get("type")
        if kind in grouped:
            grouped[kind].append(anime_item(entry))
    return grouped


def run_bangumi_pipeline(app_settings: Settings) -> list[Path]:
    """Publish watching / to-watch / watched anime lists.

    Raises:
        ConfigurationError: If BANGUMI_ID is missing.
    """

    if not app_settings.bangumi_id:
        raise ConfigurationError("BANGUMI_ID is not defined")

    entries = fetch_anime_collections(app_settings.bangumi_id, app_settings.bangumi_user_agent)
    grouped = split_collections(entries)

    data_dir = Path(app_settings.data_dir)
    return [
        write_json_file(data_dir / file_name, grouped[kind])
        for kind, file_name in COLLECTION_FILES.items()
    ]
