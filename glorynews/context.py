"""Process-wide collaborators, built once and passed to the services."""

from __future__ import annotations

import logging
import random
from typing import Any, List, Optional

import httpx

from glorynews.config import Settings
from glorynews.pipeline import LadderService, NewsService
from glorynews.scraping.http import SafeHTTPClient
from glorynews.scraping.ratelimit import TokenBucketRateLimiter
from glorynews.sources import build_ladder_sources, build_news_sources
from glorynews.sources.base import ArticleSource, StandingsSource
from glorynews.storage.cache import LocalCache, TwoTierCache
from glorynews.storage.database import SqliteCache
from glorynews.validation import StandingsValidator

logger = logging.getLogger(__name__)


class AppContext:
    """Owns the rate limiter, HTTP client, caches and both services.

    Use as an async context manager so the HTTP client and the SQLite
    connection are closed on exit::

        async with AppContext(settings) as ctx:
            table = await ctx.ladder.fetch_standings()

    ``ladder_sources``/``news_sources`` replace the registry-built adapters,
    and ``transport`` is handed to httpx; both exist for tests.
    """

    def __init__(
        self,
        config: Settings,
        *,
        rng: Optional[random.Random] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ladder_sources: Optional[List[StandingsSource]] = None,
        news_sources: Optional[List[ArticleSource]] = None,
    ) -> None:
        self.config = config
        self.rng = rng or random.Random()
        self.rate_limiter = TokenBucketRateLimiter(
            max_requests=config.rate_limit_requests,
            window=config.rate_limit_window,
            max_wait=config.rate_limit_max_wait,
            fail_open=config.rate_limit_fail_open,
        )
        self.client = SafeHTTPClient(
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            min_wait=config.retry_min_wait,
            max_wait=config.retry_max_wait,
            jitter=config.retry_jitter,
            user_agent=config.user_agent,
            rate_limiter=self.rate_limiter,
            block_private_hosts=config.block_private_hosts,
            transport=transport,
        )
        self.shared_cache = SqliteCache(config.cache_path)
        self.cache = TwoTierCache(LocalCache(max_age=config.local_cache_max_age), self.shared_cache)
        self.validator = StandingsValidator(
            local_aliases=config.local_team_aliases,
            league_name=config.league_name,
            rng=self.rng,
        )
        self.ladder = LadderService(
            config=config,
            cache=self.cache,
            validator=self.validator,
            sources=ladder_sources
            if ladder_sources is not None
            else build_ladder_sources(config, self.client, self.rng),
        )
        self.news = NewsService(
            config=config,
            cache=self.cache,
            sources=news_sources
            if news_sources is not None
            else build_news_sources(config, self.client, self.rng),
        )

    async def aclose(self) -> None:
        try:
            await self.client.aclose()
        finally:
            self.cache.close()
        logger.debug("context_closed")

    async def __aenter__(self) -> "AppContext":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
