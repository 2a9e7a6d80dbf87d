from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./goaltracker.db"
    default_tz: str = "UTC"
    kernel_api_key: str | None = None
    log_level: str = "INFO"

    # Remote collaborators
    github_base_url: str = "https://api.github.com"
    github_token: str | None = None
    google_books_base_url: str = "https://www.googleapis.com/books/v1/volumes"
    open_library_covers_url: str = "https://covers.openlibrary.org/b/isbn"
    anthropic_base_url: str = "https://api.anthropic.com/v1/messages"
    anthropic_version: str = "2023-06-01"
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    http_timeout_s: float = 10.0

    # GitHub statistics reconciliation
    stats_retry_delay_s: float = 2.0  # GitHub answers 202 while computing stats
    stats_max_retries: int = 3
    sync_interval_hours: float = 1.0
    sync_concurrency: int = 4

    # Analytics windows
    recent_pace_sessions: int = 5
    mileage_weeks: int = 12
    recent_commit_weeks: int = 4

    # Default targets offered when a goal is created without one
    default_books_target: int = 12
    default_fitness_sessions_target: int = 100
    default_commits_target: int = 500

    model_config = {"env_file": ".env", "env_prefix": "GOALS_", "extra": "ignore"}


settings = Settings()
