from fastapi import FastAPI

from activity_snapshots.api.routes.snapshots import router
from activity_snapshots.core.middleware import PipelineRateLimitMiddleware
from activity_snapshots.core.observability import configure_logging
from activity_snapshots.core.observability import init_sentry
from activity_snapshots.settings import Settings


def create_app() -> FastAPI:
    """Build the snapshot API with settings read at call time."""

    app_settings = Settings()
    configure_logging(app_settings)
    init_sentry(app_settings)

    application = FastAPI(title="activity-snapshots")
    application.add_middleware(
        PipelineRateLimitMiddleware,
        requests_per_window=app_settings.rate_limit_per_minute,
        window_seconds=app_settings.rate_limit_window_seconds,
    )
    application.include_router(router)
    return application


app = create_app()
