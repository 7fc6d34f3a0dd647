from collections.abc import Callable
from pathlib import Path

from activity_snapshots.services.bangumi_service import run_bangumi_pipeline
from activity_snapshots.services.bilibili_service import run_bilibili_pipeline
from activity_snapshots.services.github_service import run_github_pipeline
from activity_snapshots.services.netease_service import run_netease_pipeline
from activity_snapshots.services.steam_service import run_steam_pipeline
from activity_snapshots.settings import Settings


Pipeline = Callable[[Settings], list[Path]]

PIPELINES: dict[str, Pipeline] = {
    "github": run_github_pipeline,
    "netease": run_netease_pipeline,
    "bilibili": run_bilibili_pipeline,
    "bangumi": run_bangumi_pipeline,
    "steam": run_steam_pipeline,
}


class UnknownSourceError(KeyError):
    """Raised when a pipeline is requested for an unknown source name."""


def run_pipeline(source: str, app_settings: Settings) -> list[Path]:
    """Run the pipeline registered for `source` and return written files."""

    try:
        pipeline = PIPELINES[source]
    except KeyError as exc:
        raise UnknownSourceError(source) from exc
    return pipeline(app_settings)
