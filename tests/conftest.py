"""Shared pytest fixtures for the glorynews test suite."""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Callable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

FROZEN_TIME = datetime(2024, 11, 15, 12, 0, 0, tzinfo=timezone.utc)

TEAMS = [
    "Central Coast Mariners",
    "Melbourne City",
    "Adelaide United",
    "Melbourne Victory",
    "Macarthur FC",
    "Western United",
    "Western Sydney Wanderers",
    "Sydney FC",
    "Wellington Phoenix",
    "Newcastle Jets",
    "Perth Glory",
    "Brisbane Roar",
]


# ─── Anti-Flake Guardrails ───


@pytest.fixture(autouse=True)
def _deterministic_seed():
    """Reset random seed before every test to prevent ordering-dependent flakes."""
    random.seed(42)
    yield


class FakeClock:
    """Manually advanced clock, callable like ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture()
def settings(tmp_path):
    """Settings with a temp cache, no backoff sleeps and no DNS checks."""
    from glorynews.config import Settings

    return Settings(
        cache_path=str(tmp_path / "cache.db"),
        retry_min_wait=0,
        retry_max_wait=0,
        retry_jitter=0,
        block_private_hosts=False,
        rate_limit_max_wait=0,
        log_level="DEBUG",
    )


@pytest.fixture()
def mock_client():
    """A SafeHTTPClient stand-in whose helpers are AsyncMocks."""
    client = MagicMock()
    client.get_text = AsyncMock()
    client.get_json = AsyncMock()
    client.aclose = AsyncMock()
    return client


# ─── Data builders ───


def make_entry(index: int, name: Optional[str] = None, **overrides):
    """A complete, valid StandingsEntry for the team at *index*."""
    from glorynews.models import StandingsEntry
    from glorynews.text import slugify

    name = name or TEAMS[index % len(TEAMS)]
    won, drawn, lost = 10 - index % 10, index % 3, index % 10
    goals_for, goals_against = 20 + (12 - index), 10 + index
    data = dict(
        id=slugify(name),
        name=name,
        position=index + 1,
        played=won + drawn + lost,
        won=won,
        drawn=drawn,
        lost=lost,
        goals_for=goals_for,
        goals_against=goals_against,
        goal_difference=goals_for - goals_against,
        points=won * 3 + drawn,
        form=["W", "D", "L", "W", "W"],
        logo=f"https://cdn.example.com/{slugify(name)}.png",
        is_local_team="perth" in name.lower(),
    )
    data.update(overrides)
    return StandingsEntry(**data)


@pytest.fixture()
def entry_factory() -> Callable[..., object]:
    return make_entry


@pytest.fixture()
def entries_factory() -> Callable[..., List]:
    def _make(count: int = 12) -> List:
        return [make_entry(i) for i in range(count)]

    return _make


def article_dict(article_id: str = "perthglory-1", **overrides) -> dict:
    data = {
        "id": article_id,
        "title": f"Headline {article_id}",
        "content": "<p>Glory win at home.</p>",
        "publish_date": "2024-11-10T08:00:00Z",
        "source_url": f"https://www.perthglory.com.au/news/{article_id}",
        "author": "Club Media",
        "metadata": {
            "word_count": 4,
            "reading_time": 1,
            "source": "official",
            "priority": 1,
        },
    }
    data.update(overrides)
    return data


@pytest.fixture()
def raw_article():
    return article_dict


@pytest.fixture()
def article_factory():
    from glorynews.models import Article

    def _make(article_id: str = "perthglory-1", **overrides):
        return Article.model_validate(article_dict(article_id, **overrides))

    return _make


# ─── Fake sources ───


@pytest.fixture()
def static_ladder_source(settings, mock_client):
    """Factory for ladder sources that return canned rows and count calls."""
    from glorynews.sources.base import StandingsSource

    def _make(source_id: str, entries: List, name: Optional[str] = None):
        class StaticLadderSource(StandingsSource):
            calls = 0

            async def fetch_raw(self, timeout=None):
                type(self).calls += 1
                self.last_timeout = timeout
                return [e.model_copy(deep=True) for e in entries]

        StaticLadderSource.source_id = source_id
        StaticLadderSource.name = name or source_id.title()
        StaticLadderSource.url = f"https://{source_id}.example.com/ladder"
        return StaticLadderSource(settings, mock_client)

    return _make


@pytest.fixture()
def static_news_source(settings, mock_client):
    """Factory for news sources that return canned articles and count calls."""
    from glorynews.sources.base import ArticleSource

    def _make(source_id: str, articles: List, error: Optional[Exception] = None):
        class StaticNewsSource(ArticleSource):
            calls = 0

            async def fetch_raw(self, timeout=None):
                type(self).calls += 1
                self.last_timeout = timeout
                if error is not None:
                    raise error
                return list(articles)

        StaticNewsSource.source_id = source_id
        StaticNewsSource.name = source_id.title()
        return StaticNewsSource(settings, mock_client)

    return _make
