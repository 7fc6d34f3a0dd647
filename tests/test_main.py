import json
from pathlib import Path

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from activity_snapshots.api.routes.snapshots import _read_snapshot
from activity_snapshots.api.routes.snapshots import get_settings
from activity_snapshots.core.errors import ConfigurationError
from activity_snapshots.core.errors import NetworkError
from activity_snapshots.main import app
from activity_snapshots.settings import Settings


client = TestClient(app)

WINDOW = {
    "total": 3,
    "weeks": [
        [
            {"date": "2026-10-18", "count": 3, "level": 2},
            {"date": "2026-10-19", "count": 0, "level": 0},
        ]
    ],
}


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    # Starlette rebuilds the stack on the next request, with an empty limiter.
    app.middleware_stack = None


@pytest.fixture
def data_dir(tmp_path: Path):
    app.dependency_overrides[get_settings] = lambda: Settings(
        data_dir=str(tmp_path / "data"), admin_token="s3cret", _env_file=None
    )
    yield tmp_path / "data"
    app.dependency_overrides.clear()


def publish(data_dir: Path, relative_path: str, payload: object) -> None:
    target = data_dir / relative_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload), encoding="utf-8")


def test_read_root_returns_hello_world() -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Hello World"}


def test_health_live_returns_ok() -> None:
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_settings_reads_source_ids_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("STEAM_ID", "76561198000000000")
    monkeypatch.setenv("STEAM_GAMES_EXCLUDE", "10,20")

    settings = Settings(_env_file=None)

    assert settings.steam_id == "76561198000000000"
    assert settings.excluded_steam_app_ids() == [10, 20]


def test_get_contribution_window_returns_published_snapshot(data_dir: Path) -> None:
    publish(data_dir, "github/lastYearContributions.json", WINDOW)

    response = client.get("/snapshots/github/contributions")

    assert response.status_code == 200
    assert response.json() == WINDOW


def test_get_contribution_window_returns_404_before_first_publish(data_dir: Path) -> None:
    response = client.get("/snapshots/github/contributions")

    assert response.status_code == 404
    assert response.json() == {"detail": "snapshot not found"}


def test_get_snapshot_returns_any_published_file(data_dir: Path) -> None:
    publish(data_dir, "netease/favorite.json", [{"name": "晴天"}])

    response = client.get("/snapshots/netease/favorite.json")

    assert response.status_code == 200
    assert response.json() == [{"name": "晴天"}]


def test_get_snapshot_rejects_paths_outside_data_dir(data_dir: Path) -> None:
    publish(data_dir.parent, "secret.json", {"token": "x"})

    response = client.get("/snapshots/..%2Fsecret.json")

    assert response.status_code == 400
    assert response.json() == {"detail": "snapshot path is invalid"}


def test_read_snapshot_rejects_relative_escape(tmp_path: Path) -> None:
    publish(tmp_path, "secret.json", {"token": "x"})
    (tmp_path / "data").mkdir()

    with pytest.raises(HTTPException) as exc_info:
        _read_snapshot(str(tmp_path / "data"), "../secret.json")

    assert exc_info.value.status_code == 400


def test_run_pipeline_is_disabled_without_configured_token() -> None:
    app.dependency_overrides[get_settings] = lambda: Settings(admin_token=None, _env_file=None)
    try:
        response = client.post(
            "/pipelines/github/run", headers={"Authorization": "Bearer s3cret"}
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json() == {"detail": "Pipeline runs are disabled"}


def test_run_pipeline_requires_admin_token(data_dir: Path) -> None:
    response = client.post("/pipelines/github/run")

    assert response.status_code == 401


def test_run_pipeline_rejects_wrong_admin_token(data_dir: Path) -> None:
    response = client.post(
        "/pipelines/github/run", headers={"Authorization": "Bearer nope"}
    )

    assert response.status_code == 401
    assert response.json() == {"detail": "Admin token is invalid"}


def test_run_pipeline_returns_written_files(monkeypatch, data_dir: Path) -> None:
    def fake_run_pipeline(source: str, app_settings: Settings) -> list[Path]:
        assert source == "bangumi"
        return [Path(app_settings.data_dir) / "bangumi/watching.json"]

    monkeypatch.setattr(
        "activity_snapshots.api.routes.snapshots.run_pipeline", fake_run_pipeline
    )

    response = client.post(
        "/pipelines/bangumi/run", headers={"Authorization": "Bearer s3cret"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "source": "bangumi",
        "status": "ok",
        "files": [str(data_dir / "bangumi/watching.json")],
    }


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (ConfigurationError("BANGUMI_ID is not defined"), 400),
        (NetworkError("timeout"), 502),
    ],
)
def test_run_pipeline_maps_pipeline_errors(
    monkeypatch, data_dir: Path, error: Exception, status_code: int
) -> None:
    def failing_run_pipeline(source: str, app_settings: Settings) -> list[Path]:
        raise error

    monkeypatch.setattr(
        "activity_snapshots.api.routes.snapshots.run_pipeline", failing_run_pipeline
    )

    response = client.post(
        "/pipelines/bangumi/run", headers={"Authorization": "Bearer s3cret"}
    )

    assert response.status_code == status_code


def test_run_pipeline_returns_404_for_unknown_source(data_dir: Path) -> None:
    response = client.post(
        "/pipelines/myspace/run", headers={"Authorization": "Bearer s3cret"}
    )

    assert response.status_code == 404
    assert response.json() == {"detail": "source not found"}
