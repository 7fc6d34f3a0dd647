import logging
from collections.abc import Mapping
from typing import Any

import httpx
from tenacity import Retrying
from tenacity import before_sleep_log
from tenacity import retry_if_exception
from tenacity import stop_after_attempt
from tenacity import wait_exponential

from activity_snapshots.core.errors import AuthenticationError
from activity_snapshots.core.errors import HttpStatusError
from activity_snapshots.core.errors import NetworkError
from activity_snapshots.core.errors import UpstreamFormatError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_SECONDS = 0.5
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return False


def send_request(
    url: str,
    *,
    method: str = "GET",
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, Any] | None = None,
    data: Mapping[str, Any] | str | None = None,
    json_body: Any = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    retries: int = DEFAULT_RETRIES,
    backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
) -> httpx.Response:
    """Send one HTTP request, retrying transport errors and 429/5xx answers.

    Raises:
        NetworkError: If the request never got a response.
        AuthenticationError: If the upstream answered 401 or 403.
        HttpStatusError: For any other non-2xx answer.
    """

    request_kwargs: dict[str, Any] = {
        "headers": dict(headers or {}),
        "params": params,
        "timeout": timeout,
        "follow_redirects": True,
    }
    if isinstance(data, str):
        request_kwargs["content"] = data
    elif data is not None:
        request_kwargs["data"] = data
    if json_body is not None:
        request_kwargs["json"] = json_body

    retrying = Retrying(
        stop=stop_after_attempt(max(0, retries) + 1),
        wait=wait_exponential(multiplier=backoff_seconds, max=30),
        retry=retry_if_exception(_is_retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )

    try:
        for attempt in retrying:
            with attempt:
                response = httpx.request(method, url, **request_kwargs)
                response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status_code = exc.response.status_code
        if status_code in {401, 403}:
            raise AuthenticationError(url, status_code) from exc
        raise HttpStatusError(url, status_code) from exc
    except httpx.RequestError as exc:
        raise NetworkError(f"request to {url} failed: {exc}") from exc

    return response


def fetch_json(url: str, **kwargs: Any) -> Any:
    """Send a request and return the decoded JSON body."""

    response = send_request(url, **kwargs)
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamFormatError(f"{url} did not return JSON") from exc


def fetch_text(url: str, **kwargs: Any) -> str:
    return send_request(url, **kwargs).text


def fetch_bytes(url: str, **kwargs: Any) -> bytes:
    return send_request(url, **kwargs).content
