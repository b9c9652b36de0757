"""Ladder and news provider adapters and their registries."""

from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Type

from glorynews.config import Settings
from glorynews.scraping.http import SafeHTTPClient
from glorynews.sources.base import ArticleSource, BaseSource, StandingsSource
from glorynews.sources.community import RedditLadderSource
from glorynews.sources.ladder_api import KeepUpApiLadderSource, SportsDbLadderSource
from glorynews.sources.ladder_html import (
    ALeaguesLadderSource,
    EspnLadderSource,
    KeepUpLadderSource,
)
from glorynews.sources.scraped import (
    ALeaguesNewsSource,
    FootballAustraliaNewsSource,
    TheWestNewsSource,
)
from glorynews.sources.wordpress import KeepUpNewsSource, PerthGloryNewsSource

logger = logging.getLogger(__name__)

__all__ = [
    "ArticleSource",
    "BaseSource",
    "StandingsSource",
    "LADDER_SOURCES",
    "NEWS_SOURCES",
    "build_ladder_sources",
    "build_news_sources",
]

# Registry order is priority order.
LADDER_SOURCES: Dict[str, Type[StandingsSource]] = {
    cls.source_id: cls
    for cls in (
        ALeaguesLadderSource,
        KeepUpLadderSource,
        EspnLadderSource,
        RedditLadderSource,
        KeepUpApiLadderSource,
        SportsDbLadderSource,
    )
}

NEWS_SOURCES: Dict[str, Type[ArticleSource]] = {
    cls.source_id: cls
    for cls in (
        PerthGloryNewsSource,
        KeepUpNewsSource,
        FootballAustraliaNewsSource,
        ALeaguesNewsSource,
        TheWestNewsSource,
    )
}


def _build(registry: Dict[str, Type[BaseSource]], enabled: List[str], *args: object) -> List:
    sources = []
    for source_id in registry:
        if source_id in enabled:
            sources.append(registry[source_id](*args))
    unknown = [s for s in enabled if s not in registry]
    if unknown:
        logger.warning("unknown_sources_ignored", extra={"sources": unknown})
    return sources


def build_ladder_sources(
    config: Settings, client: SafeHTTPClient, rng: Optional[random.Random] = None
) -> List[StandingsSource]:
    """Instantiate the enabled ladder sources in priority order."""
    return _build(LADDER_SOURCES, config.ladder_sources, config, client, rng)


def build_news_sources(
    config: Settings, client: SafeHTTPClient, rng: Optional[random.Random] = None
) -> List[ArticleSource]:
    """Instantiate the enabled news sources in priority order."""
    return _build(NEWS_SOURCES, config.news_sources, config, client, rng)
