from pathlib import Path

import pytest

from activity_snapshots import cli
from activity_snapshots.core.errors import ConfigurationError
from activity_snapshots.settings import Settings


def test_main_runs_every_source_by_default(monkeypatch, tmp_path: Path) -> None:
    ran: list[tuple[str, str]] = []

    def fake_run_pipeline(source: str, app_settings: Settings) -> list[Path]:
        ran.append((source, app_settings.data_dir))
        return []

    monkeypatch.setattr(cli, "run_pipeline", fake_run_pipeline)

    exit_code = cli.main(["--data-dir", str(tmp_path)])

    assert exit_code == 0
    assert [source for source, _ in ran] == ["github", "netease", "bilibili", "bangumi", "steam"]
    assert {data_dir for _, data_dir in ran} == {str(tmp_path)}


def test_main_continues_after_failure_and_exits_non_zero(monkeypatch) -> None:
    ran: list[str] = []

    def fake_run_pipeline(source: str, app_settings: Settings) -> list[Path]:
        ran.append(source)
        if source == "steam":
            raise ConfigurationError("STEAM_ID and STEAM_KEY must be set")
        return [Path("data") / f"{source}.json"]

    monkeypatch.setattr(cli, "run_pipeline", fake_run_pipeline)

    exit_code = cli.main(["steam", "bangumi"])

    assert exit_code == 1
    assert ran == ["steam", "bangumi"]


def test_main_rejects_unknown_source() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["myspace"])

    assert exc_info.value.code == 2
