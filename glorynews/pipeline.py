"""Orchestrators: cache → sources by priority → validate → cache → fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

from pydantic import TypeAdapter, ValidationError

from glorynews.config import Settings
from glorynews.models import Article, NewsFeed, RefreshSummary, StandingsTable
from glorynews.sources.backup import backup_table
from glorynews.sources.base import ArticleSource, BaseSource, StandingsSource
from glorynews.sources.fallback import FALLBACK_MESSAGE, fallback_articles
from glorynews.storage.cache import TwoTierCache
from glorynews.validation import StandingsValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")

LADDER_CACHE_KEY = "ladder_data"
ARTICLES_PREFIX = "articles:"
ARTICLE_PREFIX = "article:"

_ARTICLE_LIST = TypeAdapter(List[Article])


class Strategy(str, Enum):
    """How a :class:`SourceChain` combines its sources."""

    FIRST_MATCH = "first_match"  # sequential; stop at the first accepted result
    GATHER = "gather"  # concurrent; keep every result


@dataclass
class SourceResult(Generic[T]):
    source: BaseSource
    items: List[T] = field(default_factory=list)
    value: Any = None
    status: str = "ok"


Fetcher = Callable[[BaseSource, Optional[float]], Awaitable[List[Any]]]
Acceptor = Callable[[BaseSource, List[Any]], Optional[Any]]


async def _direct_fetch(source: BaseSource, timeout: Optional[float]) -> List[Any]:
    return await source.fetch(timeout=timeout)


class SourceChain(Generic[T]):
    """Runs a priority-ordered list of sources under one :class:`Strategy`.

    ``FIRST_MATCH`` awaits sources one by one and returns a single-element
    list holding the first result that ``accept`` turns into a non-None value
    (or an empty list).  ``GATHER`` starts every source at once and returns one
    result per source; a failing branch is recorded as ``failed`` and does not
    cancel its siblings.
    """

    def __init__(
        self,
        sources: Sequence[BaseSource],
        strategy: Strategy = Strategy.FIRST_MATCH,
        accept: Optional[Acceptor] = None,
        fetch: Fetcher = _direct_fetch,
    ) -> None:
        self.sources = list(sources)
        self.strategy = strategy
        self.accept = accept or (lambda source, items: items or None)
        self._fetch = fetch

    async def run(self, timeout: Optional[float] = None) -> List[SourceResult[T]]:
        if self.strategy is Strategy.FIRST_MATCH:
            return await self._first_match(timeout)
        return await self._gather(timeout)

    async def _first_match(self, timeout: Optional[float]) -> List[SourceResult[T]]:
        for source in self.sources:
            items = await self._fetch(source, timeout)
            value = self.accept(source, items)
            if value is not None:
                logger.info(
                    "source_selected",
                    extra={"source": source.source_id, "count": len(items)},
                )
                return [SourceResult(source=source, items=items, value=value)]
            logger.info(
                "source_skipped",
                extra={"source": source.source_id, "count": len(items)},
            )
        return []

    async def _gather(self, timeout: Optional[float]) -> List[SourceResult[T]]:
        outcomes = await asyncio.gather(
            *(self._fetch(source, timeout) for source in self.sources),
            return_exceptions=True,
        )
        results: List[SourceResult[T]] = []
        for source, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error(
                    "source_failed",
                    extra={"source": source.source_id, "error": str(outcome)},
                )
                results.append(SourceResult(source=source, status="failed"))
                continue
            value = self.accept(source, outcome)
            results.append(
                SourceResult(
                    source=source,
                    items=outcome,
                    value=value,
                    status="ok" if outcome else "empty",
                )
            )
        return results


# ---------------------------------------------------------------------------
# Ladder
# ---------------------------------------------------------------------------


class LadderService:
    """Serves the standings table; never raises and never returns an invalid table.

    Lookup order: local cache, shared cache, then the ladder sources in
    priority order.  A table assembled from the first source whose rows pass
    validation is written through to both cache tiers.  When every source
    fails the backup table is returned, and it is never cached so the next
    call retries the real sources.
    """

    def __init__(
        self,
        config: Settings,
        cache: TwoTierCache,
        validator: StandingsValidator,
        sources: Sequence[StandingsSource],
    ) -> None:
        self.config = config
        self.cache = cache
        self.validator = validator
        self.sources = list(sources)

    async def fetch_standings(
        self,
        force_refresh: bool = False,
        timeout: Optional[float] = None,
    ) -> StandingsTable:
        if force_refresh:
            await self.cache.invalidate(LADDER_CACHE_KEY)
            logger.info("ladder_cache_invalidated")
            if timeout is None:
                timeout = self.config.refresh_timeout
        else:
            cached = await self.cache.get(LADDER_CACHE_KEY, validator=self.validator.try_validate)
            if cached is not None:
                return cached
        if timeout is None:
            timeout = self.config.request_timeout

        chain: SourceChain = SourceChain(self.sources, Strategy.FIRST_MATCH, accept=self._accept)
        results = await chain.run(timeout=timeout)
        if not results:
            logger.warning("ladder_fallback", extra={"sources_tried": len(self.sources)})
            return backup_table(
                reason="Fallback",
                league_name=self.config.league_name,
                aliases=self.config.local_team_aliases,
            )

        table: StandingsTable = results[0].value
        await self.cache.set(
            LADDER_CACHE_KEY,
            table.model_dump(mode="json"),
            ttl_seconds=self.config.ladder_cache_ttl,
        )
        return table

    async def refresh_standings(self) -> StandingsTable:
        """Drop both cache tiers and fetch with the longer refresh timeout."""
        return await self.fetch_standings(force_refresh=True)

    def _accept(self, source: BaseSource, entries: List[Any]) -> Optional[StandingsTable]:
        if not entries:
            return None
        table = StandingsTable(
            entries=entries,
            league_name=self.config.league_name,
            source=source.source_info() if isinstance(source, StandingsSource) else None,
        )
        return self.validator.try_validate(table)


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------


def _cached_articles(data: Any) -> Optional[List[Article]]:
    try:
        articles = _ARTICLE_LIST.validate_python(data)
    except ValidationError:
        return None
    return articles or None


def _cached_article(data: Any) -> Optional[Article]:
    try:
        return Article.model_validate(data)
    except ValidationError:
        return None


def merge_articles(batches: Sequence[Sequence[Article]]) -> List[Article]:
    """Concatenate, keep the first copy of each id, sort newest first."""
    seen = set()
    merged: List[Article] = []
    for batch in batches:
        for article in batch:
            if article.id in seen:
                continue
            seen.add(article.id)
            merged.append(article)
    merged.sort(key=lambda a: a.publish_date, reverse=True)
    return merged


class NewsService:
    """Aggregates articles across sources with a per-source cache."""

    def __init__(
        self,
        config: Settings,
        cache: TwoTierCache,
        sources: Sequence[ArticleSource],
    ) -> None:
        self.config = config
        self.cache = cache
        self.sources: Dict[str, ArticleSource] = {s.source_id: s for s in sources}

    async def fetch_articles(self, source_id: Optional[str] = None) -> List[Article]:
        """Articles from one source, or from every source merged.

        Never raises.  An empty result (unknown source included) is replaced
        by the static fallback articles.
        """
        if source_id is not None:
            source = self.sources.get(source_id)
            if source is None:
                logger.warning("unknown_source", extra={"source": source_id})
                articles: List[Article] = []
            else:
                articles = await self._fetch_source(source, self.config.request_timeout)
        else:
            articles = await self._fetch_all(self.config.request_timeout)
        if not articles:
            logger.warning("news_fallback", extra={"source": source_id or "all"})
            return fallback_articles()
        return articles

    async def latest(self, limit: Optional[int] = None) -> NewsFeed:
        """The newest ``limit`` articles across all sources, with fallback flag."""
        limit = self.config.news_limit if limit is None else limit
        articles = await self._fetch_all(self.config.request_timeout)
        if not articles:
            logger.warning("news_fallback", extra={"source": "all"})
            return NewsFeed(
                articles=fallback_articles()[:limit],
                is_fallback=True,
                message=FALLBACK_MESSAGE,
            )
        return NewsFeed(articles=articles[:limit])

    async def get_article_by_id(self, article_id: str) -> Optional[Article]:
        key = f"{ARTICLE_PREFIX}{article_id}"
        cached = await self.cache.get(key, validator=_cached_article)
        if cached is not None:
            return cached

        articles = await self._fetch_all(self.config.request_timeout)
        article = next((a for a in articles if a.id == article_id), None)
        if article is None:
            # Fallback articles are linkable but never cached.
            return next((a for a in fallback_articles() if a.id == article_id), None)
        await self.cache.set(
            key, article.model_dump(mode="json"), ttl_seconds=self.config.news_cache_ttl
        )
        return article

    async def refresh_all(self) -> RefreshSummary:
        """Drop cached news and refetch every source with the refresh timeout."""
        started = time.monotonic()
        await self.clear_cache()
        chain: SourceChain = SourceChain(
            list(self.sources.values()), Strategy.GATHER, fetch=self._fetch_source
        )
        results = await chain.run(timeout=self.config.refresh_timeout)
        counts = {r.source.source_id: len(r.items) for r in results}
        summary = RefreshSummary(
            counts=counts,
            statuses={r.source.source_id: r.status for r in results},
            total=sum(counts.values()),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info("news_refreshed", extra={"total": summary.total, "counts": counts})
        return summary

    async def clear_cache(self) -> int:
        removed = await self.cache.invalidate_prefix(ARTICLES_PREFIX)
        removed += await self.cache.invalidate_prefix(ARTICLE_PREFIX)
        logger.info("news_cache_cleared", extra={"removed": removed})
        return removed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch_all(self, timeout: Optional[float]) -> List[Article]:
        chain: SourceChain = SourceChain(
            list(self.sources.values()), Strategy.GATHER, fetch=self._fetch_source
        )
        results = await chain.run(timeout=timeout)
        return merge_articles([r.items for r in results])

    async def _fetch_source(self, source: BaseSource, timeout: Optional[float]) -> List[Article]:
        key = f"{ARTICLES_PREFIX}{source.source_id}"
        cached = await self.cache.get(key, validator=_cached_articles)
        if cached is not None:
            return cached
        articles = await source.fetch(timeout=timeout)
        if articles:
            await self.cache.set(
                key,
                [a.model_dump(mode="json") for a in articles],
                ttl_seconds=self.config.news_cache_ttl,
            )
        return articles
