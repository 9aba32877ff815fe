"""Application configuration."""

import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/112.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    database_path: str = "acfunlive.db"
    log_file: str | None = None
    watched_owner_ids: str | None = None
    poll_interval_seconds: float = 20
    retry_attempts: int = 3
    retry_delay_seconds: float = 10
    end_grace_seconds: float = 10
    initial_page_size: int = 10_000
    max_page_size: int = 100_000_000
    http_timeout_seconds: float = 10
    user_agent: str = DEFAULT_USER_AGENT
    admin_token: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("watched_owner_ids")
    @classmethod
    def _check_watched_owner_ids(cls, value: str | None) -> str | None:
        parse_watched_owner_ids(value)
        return value


def parse_watched_owner_ids(raw: str | None) -> set[int] | None:
    """Parse the owner uid watch list; None means every owner is tracked.

    Raises ValueError on an entry that is not a uid, so a typo never widens
    the watch list to every owner.
    """
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    ids: set[int] = set()
    for chunk in cleaned.split(","):
        value = chunk.strip()
        if not value:
            continue
        if not value.isdigit():
            raise ValueError(f"Invalid owner uid in watch list: {value!r}")
        ids.add(int(value))
    return ids or None
