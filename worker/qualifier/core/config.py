"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from qualifier.core.fetcher import (
    DEFAULT_USER_AGENT,
    MAX_PAGE_BYTES,
    SCAN_TIMEOUT_SECONDS,
    FetchPolicy,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    database_url: str
    worker_port: int = 9000
    scan_timeout_seconds: float = SCAN_TIMEOUT_SECONDS
    max_page_bytes: int = MAX_PAGE_BYTES
    user_agent: str = DEFAULT_USER_AGENT
    batch_size: int = 5
    max_workers: int = 4

    def fetch_policy(self) -> FetchPolicy:
        return FetchPolicy(
            timeout_seconds=self.scan_timeout_seconds,
            max_bytes=self.max_page_bytes,
            user_agent=self.user_agent,
        )


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        logger.warning("%s=%r is not a valid number; using default %s", name, raw, default)
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    database_url = os.getenv("DATABASE_URL", "")
    worker_port = _env_number("WORKER_PORT", 9000, int)
    scan_timeout_seconds = _env_number("SCAN_TIMEOUT_SECONDS", SCAN_TIMEOUT_SECONDS, float)
    max_page_bytes = _env_number("SCAN_MAX_PAGE_BYTES", MAX_PAGE_BYTES, int)
    user_agent = os.getenv("SCAN_USER_AGENT") or DEFAULT_USER_AGENT
    batch_size = _env_number("QUALIFICATION_BATCH_SIZE", 5, int)
    max_workers = _env_number("QUALIFICATION_MAX_WORKERS", 4, int)

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")

    return Settings(
        database_url=database_url,
        worker_port=worker_port,
        scan_timeout_seconds=scan_timeout_seconds,
        max_page_bytes=max_page_bytes,
        user_agent=user_agent,
        batch_size=batch_size,
        max_workers=max_workers,
    )
