from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_timeout: float = 30.0
    scraper_user_agent: str = DEFAULT_USER_AGENT
    scraper_timeout: float = 15.0
    detail_delay: float = 1.5
    search_delay: float = 2.0
    feed_delay: float = 1.0
    max_consecutive_failures: int = 5
    geocode_enabled: bool = False
    geocode_delay: float = 1.0
    geocode_timeout: float = 5.0
    geocode_user_agent: str = "SoundCheck-Scraper/1.0"
    api_allowed_origins: Tuple[str, ...] = ("http://localhost:8081",)

    def require_database(self) -> str:
        if not self.database_url:
            raise RuntimeError("DATABASE_URL environment variable is not set")
        return self.database_url

    def require_llm(self) -> str:
        if not self.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is not set")
        return self.openai_api_key


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        openai_timeout=float(os.getenv("OPENAI_TIMEOUT", "30")),
        scraper_user_agent=os.getenv("SCRAPER_USER_AGENT", DEFAULT_USER_AGENT),
        scraper_timeout=float(os.getenv("SCRAPER_TIMEOUT", "15")),
        detail_delay=float(os.getenv("SCRAPER_DETAIL_DELAY", "1.5")),
        search_delay=float(os.getenv("SCRAPER_SEARCH_DELAY", "2.0")),
        feed_delay=float(os.getenv("SCRAPER_FEED_DELAY", "1.0")),
        max_consecutive_failures=int(os.getenv("SCRAPER_MAX_CONSECUTIVE_FAILURES", "5")),
        geocode_enabled=_env_flag("GEOCODE_ENABLED"),
        geocode_delay=float(os.getenv("GEOCODE_DELAY", "1.0")),
        geocode_timeout=float(os.getenv("GEOCODE_TIMEOUT", "5")),
        geocode_user_agent=os.getenv("GEOCODE_USER_AGENT", "SoundCheck-Scraper/1.0"),
        api_allowed_origins=_env_list("API_ALLOWED_ORIGINS", "http://localhost:8081"),
    )


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())
