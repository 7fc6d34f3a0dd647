from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


def split_csv(raw_value: str) -> list[str]:
    """Split a comma-separated environment value, dropping blanks."""

    return [item.strip() for item in raw_value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Values are read from process environment and optionally from `.env`.
    Source credentials are optional here; each pipeline checks the ones it
    needs and fails on its own when they are absent.
    """

    github_token: str | None = None
    github_username: str | None = None
    github_excluded_repos: str = ""
    github_contributions_url: str = "https://github-contributions-api.jogruber.de/v4"

    netease_id: str | None = None
    netease_favorite_id: str | None = None

    bilibili_media_id: str = "3666821184"

    bangumi_id: str | None = None
    bangumi_user_agent: str = "lu-jiejie/static"

    steam_id: str | None = None
    steam_key: str | None = None
    steam_games_exclude: str = ""

    data_dir: str = "data"
    log_level: str = "INFO"

    sentry_dsn: str | None = None
    environment: str = "development"
    release: str | None = None
    sentry_traces_sample_rate: float = 0.1

    admin_token: str | None = None
    rate_limit_per_minute: int = 6
    rate_limit_window_seconds: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def excluded_repo_names(self) -> list[str]:
        return split_csv(self.github_excluded_repos)

    def excluded_steam_app_ids(self) -> list[int]:
        """Parse STEAM_GAMES_EXCLUDE into app ids, ignoring non-numeric items."""

        return [int(item) for item in split_csv(self.steam_games_exclude) if item.isdigit()]
