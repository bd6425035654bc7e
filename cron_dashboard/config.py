"""Application settings loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (one level above cron_dashboard/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3000
    ROOT_PATH: str = ""  # Set when behind a reverse proxy with a path prefix

    MEMORY_DIR: str = "/data/memory"
    DIARIES_DIR: str = ""  # Empty means MEMORY_DIR/diaries
    STICKERS_DIR: str = "/data/stickers"
    CRON_DIR: str = "/data/cron"

    DEFAULT_AGENT_ID: str = "main"
    DISCORD_DM_TARGET: str = ""
    QUICK_SCHEDULE_DELAY_SECONDS: int = 15
    QUICK_SCHEDULE_TIMEOUT_SECONDS: int = 1200

    RUNS_DEFAULT_LIMIT: int = 20
    RUNS_MAX_LIMIT: int = 50

    BLOGWATCHER_BIN: str = "blogwatcher"
    BLOGWATCHER_CWD: str = "/app"

    @property
    def cron_jobs_file(self) -> str:
        return str(Path(self.CRON_DIR) / "jobs.json")

    @property
    def cron_runs_dir(self) -> str:
        return str(Path(self.CRON_DIR) / "runs")

    @property
    def diaries_dir(self) -> str:
        return self.DIARIES_DIR or str(Path(self.MEMORY_DIR) / "diaries")


settings = Settings()
