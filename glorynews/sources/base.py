"""Abstract base classes for every ladder and news source adapter."""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from typing import Generic, List, Optional, TypeVar

from glorynews.config import Settings
from glorynews.errors import NetworkError, ParseError
from glorynews.models import Article, SourceInfo, StandingsEntry
from glorynews.scraping.http import SafeHTTPClient
from glorynews.text import matches_alias

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseSource(ABC, Generic[T]):
    """Contract that every provider adapter must implement.

    Each subclass sets ``source_id`` (registry key), ``name`` and ``url`` as
    class-level constants.  ``fetch()`` wraps ``fetch_raw()`` with logging and
    error isolation: network, parse and any other failure degrade to an empty
    list so that the orchestrator's fallback chain can carry on.
    """

    source_id: str = "unknown"
    name: str = "Unknown"
    url: str = ""
    author: str = ""

    def __init__(
        self,
        config: Settings,
        client: SafeHTTPClient,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def fetch(self, timeout: Optional[float] = None) -> List[T]:
        """Fetch items, log counts, and isolate errors.

        Returns an empty list on any exception.  Task cancellation is not an
        ``Exception`` and still propagates to the caller.
        """
        try:
            items = await self.fetch_raw(timeout=timeout)
        except NetworkError as exc:
            logger.warning(
                "source_failed",
                extra={
                    "source": self.source_id,
                    "error_type": "network",
                    "status": exc.status_code,
                    "error": str(exc),
                },
            )
            return []
        except ParseError as exc:
            logger.warning(
                "source_failed",
                extra={"source": self.source_id, "error_type": "parsing", "error": str(exc)},
            )
            return []
        except Exception as exc:
            logger.error(
                "source_failed",
                extra={"source": self.source_id, "error_type": "unexpected", "error": str(exc)},
                exc_info=True,
            )
            return []
        logger.info("source_fetched", extra={"source": self.source_id, "count": len(items)})
        return items

    # ------------------------------------------------------------------
    # Abstract method
    # ------------------------------------------------------------------

    @abstractmethod
    async def fetch_raw(self, timeout: Optional[float] = None) -> List[T]:
        """Fetch from the provider and map onto the canonical schema."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_local_team(self, name: str) -> bool:
        return matches_alias(name, self.config.local_team_aliases)


class StandingsSource(BaseSource[StandingsEntry]):
    """A provider of ladder rows."""

    def source_info(self) -> SourceInfo:
        """Provenance recorded on tables built from this source's rows."""
        return SourceInfo(name=self.name, url=self.url, author=self.author)


class ArticleSource(BaseSource[Article]):
    """A provider of news articles."""

    source_class: str = "partner"
    priority: int = 2
