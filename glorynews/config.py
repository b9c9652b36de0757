"""Pydantic v2 settings for glorynews; all tunables via env vars prefixed GLORY_."""

from __future__ import annotations

import functools
import logging
from typing import List

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All configuration lives here; no hardcoded values elsewhere."""

    model_config = SettingsConfigDict(
        env_prefix="GLORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── Storage ──────────────────────────────────────────────────────────────
    cache_path: str = "~/.glorynews/cache.db"

    # ── League / club ────────────────────────────────────────────────────────
    league_name: str = "A-League Men"
    local_team_name: str = "Perth Glory"
    local_team_aliases: str | List[str] = "perth,glory"

    # ── HTTP / Scraping ───────────────────────────────────────────────────────
    user_agent: str = "GloryNews/1.0 (+https://github.com/glorynews)"
    request_timeout: float = 5.0
    refresh_timeout: float = 10.0
    max_retries: int = 3
    retry_min_wait: float = 1.0
    retry_max_wait: float = 8.0
    retry_jitter: float = 1.0
    block_private_hosts: bool = True

    # ── Rate limiting ─────────────────────────────────────────────────────────
    rate_limit_requests: int = 2
    rate_limit_window: float = 10.0
    rate_limit_max_wait: float = 5.0
    rate_limit_fail_open: bool = True

    # ── Caching ───────────────────────────────────────────────────────────────
    ladder_cache_ttl: int = 15 * 60
    news_cache_ttl: int = 15 * 60
    local_cache_max_age: int = 5 * 60

    # ── Sources ───────────────────────────────────────────────────────────────
    ladder_sources: str | List[str] = (
        "aleagues,keepup-ladder,espn,reddit,keepup-api,thesportsdb"
    )
    news_sources: str | List[str] = (
        "perthglory,keepup,footballaustralia,aleagues-news,thewest"
    )
    news_limit: int = 20

    # ── Scheduling ────────────────────────────────────────────────────────────
    ladder_refresh_cron: str = "*/15 * * * *"
    news_refresh_cron: str = "5,20,35,50 * * * *"

    # ── Logging ───────────────────────────────────────────────────────────────
    log_level: str = "INFO"

    # ── Field validators ──────────────────────────────────────────────────────

    @field_validator("local_team_aliases", mode="before")
    @classmethod
    def parse_alias_list(cls, v: object) -> List[str]:
        """Accept comma-separated string or list; aliases are matched lower-case."""
        if isinstance(v, str):
            return [a.strip().lower() for a in v.split(",") if a.strip()]
        if isinstance(v, list):
            return [str(a).strip().lower() for a in v if str(a).strip()]
        return []

    @field_validator("ladder_sources", "news_sources", mode="before")
    @classmethod
    def parse_source_list(cls, v: object) -> List[str]:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return v
        return []

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    # ── Model validators ──────────────────────────────────────────────────────

    @model_validator(mode="after")
    def validate_timeouts(self) -> "Settings":
        """A forced refresh must never get a shorter timeout than a normal read."""
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.refresh_timeout < self.request_timeout:
            raise ValueError(
                f"refresh_timeout ({self.refresh_timeout}) must be >= "
                f"request_timeout ({self.request_timeout})"
            )
        return self

    @model_validator(mode="after")
    def validate_rate_limit(self) -> "Settings":
        if self.rate_limit_requests < 1:
            raise ValueError("rate_limit_requests must be at least 1")
        if self.rate_limit_window <= 0:
            raise ValueError("rate_limit_window must be positive")
        return self

    @model_validator(mode="after")
    def validate_aliases(self) -> "Settings":
        if not self.local_team_aliases:
            raise ValueError("GLORY_LOCAL_TEAM_ALIASES must name at least one alias")
        return self

    def __repr__(self) -> str:
        return (
            f"Settings(cache_path={self.cache_path!r}, "
            f"local_team_name={self.local_team_name!r}, "
            f"ladder_sources={self.ladder_sources!r}, "
            f"news_sources={self.news_sources!r})"
        )

    def __str__(self) -> str:
        return self.__repr__()


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings singleton."""
    return Settings()


def get_log_level(settings: Settings) -> int:
    return getattr(logging, settings.log_level, logging.INFO)
