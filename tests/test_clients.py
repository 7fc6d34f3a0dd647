import httpx
import pytest

from activity_snapshots.clients.bangumi_client import fetch_anime_collections
from activity_snapshots.clients.bilibili_client import fetch_favorite_medias
from activity_snapshots.clients.github_client import list_owned_repos
from activity_snapshots.clients.steam_client import fetch_owned_games
from activity_snapshots.clients.steam_client import fetch_store_title
from activity_snapshots.core.errors import UpstreamFormatError


def install_responses(monkeypatch: pytest.MonkeyPatch, bodies: list) -> list[dict]:
    calls: list[dict] = []

    def fake_request(method: str, url: str, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})
        body = bodies[len(calls) - 1]
        request = httpx.Request(method, url)
        if isinstance(body, str):
            return httpx.Response(200, text=body, request=request)
        return httpx.Response(200, json=body, request=request)

    monkeypatch.setattr("activity_snapshots.clients.http.httpx.request", fake_request)
    return calls


def repo(index: int, fork: bool = False) -> dict[str, object]:
    return {"name": f"repo-{index}", "full_name": f"sai/repo-{index}", "fork": fork}


def test_fetch_anime_collections_reads_every_page(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = install_responses(
        monkeypatch,
        [
            {"data": [{"subject_id": index} for index in range(50)], "total": 60},
            {"data": [{"subject_id": index} for index in range(50, 60)], "total": 60},
        ],
    )

    collections = fetch_anime_collections("sai", "lu-jiejie/static")

    assert [item["subject_id"] for item in collections] == list(range(60))
    assert [call["params"]["offset"] for call in calls] == [0, 50]
    assert calls[0]["params"]["limit"] == 50
    assert calls[0]["headers"]["User-Agent"] == "lu-jiejie/static"


def test_fetch_anime_collections_stops_on_empty_page(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = install_responses(
        monkeypatch,
        [
            {"data": [{"subject_id": 1}], "total": 80},
            {"data": [], "total": 80},
        ],
    )

    assert fetch_anime_collections("sai", "ua") == [{"subject_id": 1}]
    assert len(calls) == 2


def test_fetch_anime_collections_rejects_missing_data(monkeypatch: pytest.MonkeyPatch) -> None:
    install_responses(monkeypatch, [{"title": "Not Found"}])

    with pytest.raises(UpstreamFormatError):
        fetch_anime_collections("sai", "ua")


def test_list_owned_repos_pages_and_skips_forks(monkeypatch: pytest.MonkeyPatch) -> None:
    first_page = [repo(index, fork=index % 10 == 0) for index in range(100)]
    second_page = [repo(100), {"name": "no-full-name"}, "junk", repo(101, fork=True)]
    calls = install_responses(monkeypatch, [first_page, second_page])

    repos = list_owned_repos("sai", "token")

    assert len(repos) == 91
    assert repos[-1]["full_name"] == "sai/repo-100"
    assert not any(item["fork"] for item in repos)
    assert [call["params"]["page"] for call in calls] == [1, 2]
    assert calls[0]["headers"]["Authorization"] == "token token"


def test_list_owned_repos_stops_after_short_page(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = install_responses(monkeypatch, [[repo(1), repo(2)]])

    assert [item["name"] for item in list_owned_repos("sai", "token")] == ["repo-1", "repo-2"]
    assert len(calls) == 1


def test_fetch_favorite_medias_rejects_api_error(monkeypatch: pytest.MonkeyPatch) -> None:
    install_responses(monkeypatch, [{"code": -404, "message": "啥都木有"}])

    with pytest.raises(UpstreamFormatError, match="啥都木有"):
        fetch_favorite_medias("123")


def test_fetch_favorite_medias_treats_missing_medias_as_empty(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = install_responses(monkeypatch, [{"code": 0, "data": {"medias": None}}])

    assert fetch_favorite_medias("123") == []
    assert calls[0]["params"] == {"media_id": "123", "ps": "6", "platform": "web"}


def test_fetch_owned_games_of_private_library_is_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    install_responses(monkeypatch, [{"response": {}}])

    assert fetch_owned_games("765", "key") == []


def test_fetch_owned_games_rejects_missing_response(monkeypatch: pytest.MonkeyPatch) -> None:
    install_responses(monkeypatch, [{}])

    with pytest.raises(UpstreamFormatError):
        fetch_owned_games("765", "key")


def test_fetch_store_title_parses_page_with_encoding_declaration(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = install_responses(
        monkeypatch,
        [
            "<?xml version='1.0' encoding='utf-8'?>"
            "<html><body><div id='appHubAppName'>反恐精英</div></body></html>"
        ],
    )

    assert fetch_store_title(10) == "反恐精英"
    assert calls[0]["url"] == "https://store.steampowered.com/app/10"
