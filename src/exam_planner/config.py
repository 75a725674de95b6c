"""Runtime settings and logging setup."""
import sys
from functools import lru_cache
from pathlib import Path

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = str(Path.home() / ".exam_planner" / "planner.db")


class Settings(BaseSettings):
    """Settings loaded from EXAM_PLANNER_* environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="EXAM_PLANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_path: str = DEFAULT_DB_PATH
    block_minutes: int = Field(default=30, gt=0, description="Length of one study block")
    insert_batch_size: int = Field(default=100, gt=0)
    cache_ttl_seconds: float = Field(default=300.0, ge=0)
    max_daily_items: int = Field(default=6, gt=0)
    log_level: str = "WARNING"

    # Identity used by the terminal app (auth lives outside this package)
    user_id: str = "local-user"
    course_id: str = "demo-course"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Replace loguru's default sink with a single compact stderr sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or get_settings().log_level).upper(),
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
