import base64
import json
from collections.abc import Mapping
from typing import Any

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher
from cryptography.hazmat.primitives.ciphers import algorithms
from cryptography.hazmat.primitives.ciphers import modes

from activity_snapshots.clients.http import fetch_json
from activity_snapshots.core.errors import UpstreamFormatError


RECENT_PLAYED_URL = "https://music.163.com/weapi/v1/play/record?csrf_token="
PLAYLIST_DETAIL_URL = "https://music.163.com/api/v3/playlist/detail"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_14_6) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/90.0.4430.212 Safari/537.36"
)

# Fixed weapi parameters published by the NetEase web client.
WEAPI_IV = b"0102030405060708"
WEAPI_NONCE = b"0CoJUm6Qyw8W8jud"
WEAPI_SECOND_KEY = b"TA3YiYCfY2dDJQgg"
WEAPI_ENC_SEC_KEY = (
    "84ca47bca10bad09a6b04c5c927ef077d9b9f1e37098aa3eac6ea70eb59df0aa"
    "28b691b7e75e4f1f9831754919ea784c8f74fbfadf2898b0be17849fd6560601"
    "62857830e241aba44991601f137624094c114ea8d17bce815b0cd4e5b8e2fbab"
    "a978c6d1d14dc3d1faf852bdd28818031ccdaaa13a6018e1024e2aae98844210"
)


def aes_encrypt(key: bytes, text: str) -> str:
    """AES-128-CBC encrypt `text` with PKCS7 padding and return base64."""

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(text.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(WEAPI_IV)).encryptor()
    encrypted = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(encrypted).decode("ascii")


def weapi_encrypt(payload: Mapping[str, Any]) -> dict[str, str]:
    """Build the form body expected by `/weapi/` endpoints."""

    text = json.dumps(payload, separators=(",", ":"))
    return {
        "params": aes_encrypt(WEAPI_SECOND_KEY, aes_encrypt(WEAPI_NONCE, text)),
        "encSecKey": WEAPI_ENC_SEC_KEY,
    }


def fetch_recent_played(user_id: str) -> list[dict[str, Any]]:
    """Fetch the weekly play ranking of a user."""

    payload = fetch_json(
        RECENT_PLAYED_URL,
        method="POST",
        data=weapi_encrypt({"uid": user_id, "type": "1"}),
        headers={
            "Accept": "*/*",
            "Accept-Language": "zh-CN,en-US;q=0.7,en;q=0.3",
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "Referer": "https://music.163.com/",
            "User-Agent": BROWSER_USER_AGENT,
        },
    )
    if not isinstance(payload, Mapping):
        raise UpstreamFormatError("NetEase play record response is invalid")

    week_data = payload.get("weekData") or []
    if not isinstance(week_data, list):
        raise UpstreamFormatError("NetEase weekData is invalid")
    return [dict(item) for item in week_data if isinstance(item, Mapping)]


def fetch_playlist_tracks(playlist_id: str) -> list[dict[str, Any]]:
    payload = fetch_json(
        PLAYLIST_DETAIL_URL,
        method="POST",
        data=f"id={playlist_id}&n=1000&s=8",
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Referer": "https://music.163.com/",
            "User-Agent": BROWSER_USER_AGENT,
        },
    )
    playlist = payload.get("playlist") if isinstance(payload, Mapping) else None
    tracks = playlist.get("tracks") if isinstance(playlist, Mapping) else None
    if not isinstance(tracks, list):
        raise UpstreamFormatError("NetEase playlist response has no tracks")

    return [dict(item) for item in tracks if isinstance(item, Mapping)]
