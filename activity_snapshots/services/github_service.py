import json
import logging
import re
from collections.abc import Iterable
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from datetime import datetime
from pathlib import Path
from typing import Any

from activity_snapshots.clients.github_client import fetch_contribution_days
from activity_snapshots.clients.github_client import fetch_language_colors
from activity_snapshots.clients.github_client import fetch_repo_languages
from activity_snapshots.clients.github_client import fetch_repo_releases
from activity_snapshots.clients.github_client import list_owned_repos
from activity_snapshots.core.errors import ActivitySnapshotError
from activity_snapshots.core.errors import ConfigurationError
from activity_snapshots.services.contribution_window import ContributionWindow
from activity_snapshots.services.contribution_window import normalize_contribution_window
from activity_snapshots.settings import Settings
from activity_snapshots.storage import read_json_file
from activity_snapshots.storage import write_json_file


logger = logging.getLogger(__name__)

LANGUAGES_FILE = "github/languageDistribution.json"
RELEASES_FILE = "github/releases.json"
CONTRIBUTIONS_FILE = "github/lastYearContributions.json"
LEGACY_SNAPSHOT_FILE = "github.json"

RELEASE_VERSION_PATTERN = re.compile(r"v?(\d+\.\d+\.\d+(?:-[\w.]+)?)")
MAX_RELEASES = 500
DEFAULT_COLOR = "#000000"


def merge_language_bytes(per_repo: Iterable[Mapping[str, int]]) -> dict[str, int]:
    """Sum byte counts per language across repositories."""

    totals: dict[str, int] = {}
    for languages in per_repo:
        for language, size in languages.items():
            totals[language] = totals.get(language, 0) + size
    return totals


def build_language_distribution(
    language_bytes: Mapping[str, int],
    colors: Mapping[str, str],
) -> dict[str, dict[str, object]]:
    total_bytes = sum(language_bytes.values())
    return {
        language: {
            "bytes": size,
            "color": colors.get(language) or DEFAULT_COLOR,
            "percentage": (size / total_bytes) * 100 if total_bytes > 0 else 0,
        }
        for language, size in sorted(language_bytes.items(), key=lambda item: (-item[1], item[0]))
    }


def fetch_language_distribution(
    repos: list[dict[str, Any]],
    token: str,
    excluded_repos: Iterable[str] = (),
    max_workers: int = 8,
) -> dict[str, dict[str, object]]:
    """Aggregate language bytes over repositories not listed in `excluded_repos`."""

    excluded = set(excluded_repos)
    full_names = [repo["full_name"] for repo in repos if repo["name"] not in excluded]

    colors = fetch_language_colors()
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        per_repo = list(executor.map(lambda name: fetch_repo_languages(name, token), full_names))

    return build_language_distribution(merge_language_bytes(per_repo), colors)


def _epoch_millis(raw_value: object) -> int:
    if not isinstance(raw_value, str) or not raw_value:
        return 0
    try:
        parsed = datetime.fromisoformat(raw_value.replace("Z", "+00:00"))
    except ValueError:
        return 0
    return int(parsed.timestamp() * 1000)


def release_info(repo: Mapping[str, Any], release: Mapping[str, Any]) -> dict[str, object] | None:
    """Shape one GitHub release; releases without a semver tag are skipped."""

    tag_name = release.get("tag_name")
    if not isinstance(tag_name, str):
        return None

    match = RELEASE_VERSION_PATTERN.search(tag_name)
    if not match:
        return None

    owner = repo.get("owner")
    is_org = isinstance(owner, Mapping) and owner.get("type") == "Organization"

    return {
        "id": str(release.get("id")),
        "type": "ReleaseEvent",
        "repo": repo["name"],
        "isOrg": is_org,
        "title": release.get("name") or tag_name,
        "sha": release.get("target_commitish") or "",
        "commit": f"https://github.com/{repo['full_name']}/releases/tag/{tag_name}",
        "created_at": _epoch_millis(release.get("published_at") or release.get("created_at")),
        "version": match.group(1),
    }


def dedupe_and_sort_releases(releases: Iterable[dict[str, object]]) -> list[dict[str, object]]:
    """Drop repeated (repo, version, sha) releases, newest first, capped."""

    seen: set[tuple[object, object, object]] = set()
    unique: list[dict[str, object]] = []
    for release in releases:
        key = (release["repo"], release["version"], release["sha"])
        if key in seen:
            continue
        seen.add(key)
        unique.append(release)

    unique.sort(key=lambda release: int(release["created_at"]), reverse=True)
    return unique[:MAX_RELEASES]


def fetch_releases(repos: list[dict[str, Any]], token: str) -> list[dict[str, object]]:
    """Collect releases across repositories; a failing repository is skipped."""

    logger.info("Checking %d repositories for releases", len(repos))
    infos: list[dict[str, object]] = []
    for repo in repos:
        try:
            releases = fetch_repo_releases(repo["full_name"], token)
        except ActivitySnapshotError as exc:
            logger.warning("%s: releases unavailable (%s)", repo["name"], exc)
            continue

        logger.debug("%s: found %d releases", repo["name"], len(releases))
        for release in releases:
            info = release_info(repo, release)
            if info is not None:
                infos.append(info)

    final_releases = dedupe_and_sort_releases(infos)
    logger.info("Final releases count: %d", len(final_releases))
    return final_releases


def fetch_contribution_window(username: str, api_url: str, today: date) -> ContributionWindow:
    raw_days = fetch_contribution_days(username, api_url)
    return normalize_contribution_window(raw_days, today)


def load_cached_contributions(data_dir: Path) -> Any | None:
    """Return the last published contribution window, if any survives."""

    try:
        return read_json_file(data_dir / CONTRIBUTIONS_FILE)
    except (OSError, json.JSONDecodeError):
        pass

    try:
        legacy = read_json_file(data_dir / LEGACY_SNAPSHOT_FILE)
    except (OSError, json.JSONDecodeError):
        return None

    if isinstance(legacy, Mapping):
        return legacy.get("lastYearContributions")
    return None


def run_github_pipeline(
    app_settings: Settings,
    today: date | None = None,
) -> list[Path]:
    """Publish language distribution, releases and the contribution window.

    Raises:
        ConfigurationError: If GITHUB_TOKEN or GITHUB_USERNAME is missing.
    """

    token = app_settings.github_token
    username = app_settings.github_username
    if not token or not username:
        raise ConfigurationError("GITHUB_TOKEN and GITHUB_USERNAME must be set")

    data_dir = Path(app_settings.data_dir)
    today = today or date.today()

    repos = list_owned_repos(username, token)
    language_distribution = fetch_language_distribution(
        repos, token, excluded_repos=app_settings.excluded_repo_names()
    )

    releases = fetch_releases(repos, token)

    contributions: Any | None
    try:
        window = fetch_contribution_window(username, app_settings.github_contributions_url, today)
        contributions = window.model_dump(mode="json")
    except ActivitySnapshotError:
        logger.exception("Failed to fetch contributions")
        contributions = load_cached_contributions(data_dir)
        if contributions is not None:
            logger.warning("Using cached lastYearContributions from previous data")

    written = [
        write_json_file(data_dir / LANGUAGES_FILE, language_distribution),
        write_json_file(data_dir / RELEASES_FILE, releases),
    ]
    if contributions is not None:
        written.append(write_json_file(data_dir / CONTRIBUTIONS_FILE, contributions))
    return written
