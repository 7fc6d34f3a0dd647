from collections import defaultdict
from collections import deque
from collections.abc import Awaitable
from collections.abc import Callable
from threading import RLock
from time import monotonic

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


PIPELINE_PATH_PREFIX = "/pipelines/"


class PipelineRateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory per-client rate limiter for POST /pipelines/{source}/run."""

    def __init__(
        self, app, requests_per_window: int = 6, window_seconds: int = 60
    ) -> None:
        super().__init__(app)
        self.max_requests = max(1, requests_per_window)
        self.window_seconds = max(1, window_seconds)
        # One queue of request timestamps per client key.
        self._ip_buckets: dict[str, deque[float]] = defaultdict(deque)
        self._lock = RLock()

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        # Only pipeline runs hit upstream APIs; snapshot reads pass through.
        if request.method != "POST" or not request.url.path.startswith(PIPELINE_PATH_PREFIX):
            return await call_next(request)

        ip = self._client_ip(request)
        now = monotonic()

        with self._lock:
            self._prune(now)
            bucket = self._ip_buckets[ip]

            if len(bucket) >= self.max_requests:
                retry_after = max(1, int(self.window_seconds - (now - bucket[0])))
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too Many Requests"},
                    headers={"Retry-After": str(retry_after)},
                )

            bucket.append(now)

        return await call_next(request)

    def _prune(self, now: float) -> None:
        """Drop expired timestamps and forget clients with none left."""

        cutoff = now - self.window_seconds
        for ip in list(self._ip_buckets):
            bucket = self._ip_buckets[ip]
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if not bucket:
                del self._ip_buckets[ip]

    @staticmethod
    def _client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip() or "unknown"

        if request.client and request.client.host:
            return request.client.host

        return "unknown"
