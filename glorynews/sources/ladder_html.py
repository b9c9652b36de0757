"""Scraped-HTML ladder sources: the league's own site, KeepUp and ESPN."""

from __future__ import annotations

import logging
from typing import List, Optional

from glorynews.models import StandingsEntry
from glorynews.sources.base import StandingsSource
from glorynews.sources.parsing import parse_html_tables

logger = logging.getLogger(__name__)


class HtmlLadderSource(StandingsSource):
    """Fetch a page and read the first ladder-shaped ``<table>`` on it.

    Subclasses only set the page URL and, where the page carries several
    tables, a CSS selector narrowing the search.
    """

    table_selector: str = "table"

    async def fetch_raw(self, timeout: Optional[float] = None) -> List[StandingsEntry]:
        markup = await self.client.get_text(self.url, timeout=timeout)
        entries = parse_html_tables(
            markup, self.config.local_team_aliases, table_selector=self.table_selector
        )
        if not entries:
            logger.info("ladder_table_not_found", extra={"source": self.source_id, "url": self.url})
        return entries


class ALeaguesLadderSource(HtmlLadderSource):
    source_id = "aleagues"
    name = "A-Leagues"
    url = "https://aleagues.com.au/ladder/"
    author = "Australian Professional Leagues"
    table_selector = "table.ladder-table, table"


class KeepUpLadderSource(HtmlLadderSource):
    source_id = "keepup-ladder"
    name = "KeepUp"
    url = "https://keepup.com.au/ladder/a-league-men/"
    author = "KeepUp"


class EspnLadderSource(HtmlLadderSource):
    source_id = "espn"
    name = "ESPN"
    url = "https://www.espn.com.au/football/standings/_/league/aus.1"
    author = "ESPN"
