from collections.abc import Mapping
from typing import Any

from activity_snapshots.clients.http import fetch_json
from activity_snapshots.core.errors import UpstreamFormatError


GITHUB_API_URL = "https://api.github.com"
LANGUAGE_COLORS_URL = "https://raw.githubusercontent.com/ozh/github-colors/master/colors.json"
REPOS_PAGE_SIZE = 100


def _rest_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": "activity-snapshots",
    }


def list_owned_repos(username: str, token: str) -> list[dict[str, Any]]:
    """Fetch every non-fork repository owned by `username` from GitHub REST API."""

    repos: list[dict[str, Any]] = []
    page = 1
    while True:
        payload = fetch_json(
            f"{GITHUB_API_URL}/users/{username}/repos",
            headers=_rest_headers(token),
            params={
                "type": "owner",
                "per_page": REPOS_PAGE_SIZE,
                "sort": "updated",
                "direction": "desc",
                "page": page,
            },
        )
        if not isinstance(payload, list):
            raise UpstreamFormatError("GitHub repository list is invalid")

        for item in payload:
            if not isinstance(item, Mapping):
                continue
            if not isinstance(item.get("name"), str) or not isinstance(item.get("full_name"), str):
                continue
            if item.get("fork"):
                continue
            repos.append(dict(item))

        if len(payload) < REPOS_PAGE_SIZE:
            return repos
        page += 1


def fetch_repo_languages(full_name: str, token: str) -> dict[str, int]:
    """Fetch language byte counts for one repository."""

    payload = fetch_json(
        f"{GITHUB_API_URL}/repos/{full_name}/languages",
        headers=_rest_headers(token),
    )
    if not isinstance(payload, Mapping):
        raise UpstreamFormatError(f"GitHub languages response for {full_name} is invalid")

    return {
        language: int(size)
        for language, size in payload.items()
        if isinstance(language, str) and isinstance(size, (int, float))
    }


def fetch_language_colors() -> dict[str, str]:
    """Fetch the public language → color map used by GitHub linguist."""

    payload = fetch_json(LANGUAGE_COLORS_URL)
    if not isinstance(payload, Mapping):
        raise UpstreamFormatError("Language color map is invalid")

    colors: dict[str, str] = {}
    for language, info in payload.items():
        color = info.get("color") if isinstance(info, Mapping) else None
        colors[language] = color or "#000000"
    return colors


def fetch_repo_releases(full_name: str, token: str) -> list[dict[str, Any]]:
    payload = fetch_json(
        f"{GITHUB_API_URL}/repos/{full_name}/releases",
        headers=_rest_headers(token),
    )
    if not isinstance(payload, list):
        raise UpstreamFormatError(f"GitHub releases response for {full_name} is invalid")

    return [dict(item) for item in payload if isinstance(item, Mapping)]


def fetch_contribution_days(username: str, api_url: str) -> list[Any]:
    """Fetch raw contribution days for a user from the public contributions API.

    Records are returned as sent; the contribution window validates them.
    """

    payload = fetch_json(f"{api_url.rstrip('/')}/{username}")
    if not isinstance(payload, Mapping):
        raise UpstreamFormatError("Contributions response is invalid")

    contributions = payload.get("contributions")
    if not isinstance(contributions, list):
        raise UpstreamFormatError("Contributions response has no contribution list")

    return contributions
