import json
import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter
from fastapi import Depends
from fastapi import HTTPException
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import ValidationError

from activity_snapshots.api.schemas.snapshots import PipelineRunResponse
from activity_snapshots.core.errors import ActivitySnapshotError
from activity_snapshots.core.errors import ConfigurationError
from activity_snapshots.core.security import bearer_scheme
from activity_snapshots.core.security import require_admin_token
from activity_snapshots.services.contribution_window import ContributionWindow
from activity_snapshots.services.github_service import CONTRIBUTIONS_FILE
from activity_snapshots.services.pipelines import UnknownSourceError
from activity_snapshots.services.pipelines import run_pipeline
from activity_snapshots.settings import Settings
from activity_snapshots.storage import read_json_file


logger = logging.getLogger(__name__)

router = APIRouter()


def get_settings() -> Settings:
    return Settings()


def _read_snapshot(data_dir: str, relative_path: str) -> Any:
    base = Path(data_dir).resolve()
    target = (base / relative_path).resolve()
    if not target.is_relative_to(base):
        raise HTTPException(status_code=400, detail="snapshot path is invalid")
    if target.suffix != ".json":
        raise HTTPException(status_code=404, detail="snapshot not found")

    try:
        return read_json_file(target)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="snapshot not found") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise HTTPException(status_code=500, detail="snapshot is unreadable") from exc


@router.get("/")
async def root() -> dict[str, str]:
    """Return a basic service greeting."""

    return {"message": "Hello World"}


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness probe response for health checks."""

    return {"status": "ok"}


@router.get("/snapshots/github/contributions", response_model=ContributionWindow)
def get_contribution_window(
    app_settings: Settings = Depends(get_settings),
) -> ContributionWindow:
    """Return the published contribution window for the calendar heatmap."""

    raw = _read_snapshot(app_settings.data_dir, CONTRIBUTIONS_FILE)
    try:
        return ContributionWindow.model_validate(raw)
    except ValidationError as exc:
        raise HTTPException(status_code=500, detail="snapshot is unreadable") from exc


@router.get("/snapshots/{snapshot_path:path}")
def get_snapshot(
    snapshot_path: str,
    app_settings: Settings = Depends(get_settings),
) -> Any:
    """Return any published JSON snapshot, e.g. `netease/favorite.json`."""

    return _read_snapshot(app_settings.data_dir, snapshot_path)


@router.post("/pipelines/{source}/run", response_model=PipelineRunResponse)
def run_source_pipeline(
    source: str,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    app_settings: Settings = Depends(get_settings),
) -> PipelineRunResponse:
    """Refresh one source's snapshots."""

    require_admin_token(credentials, app_settings.admin_token)

    try:
        written = run_pipeline(source, app_settings)
    except UnknownSourceError as exc:
        raise HTTPException(status_code=404, detail="source not found") from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ActivitySnapshotError as exc:
        logger.exception("%s pipeline failed", source)
        raise HTTPException(status_code=502, detail="Upstream API request failed") from exc

    return PipelineRunResponse(
        source=source,
        status="ok",
        files=[str(path) for path in written],
    )
