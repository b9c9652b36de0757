"""Reddit r/Aleague ladder source: pipe tables posted by the community."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from glorynews.errors import ParseError
from glorynews.models import SourceInfo, StandingsEntry
from glorynews.sources.base import StandingsSource
from glorynews.sources.parsing import parse_pipe_tables

logger = logging.getLogger(__name__)

_SEARCH_URL = (
    "https://www.reddit.com/r/Aleague/search.json"
    "?q=ladder&restrict_sr=on&sort=new&limit=10"
)


class RedditLadderSource(StandingsSource):
    """Searches recent r/Aleague posts for a markdown ladder table.

    Uses the public JSON listing rather than an authenticated API client.
    Posts are tried newest first; the first self-text holding a complete
    table wins and its permalink and author become the table's provenance.
    """

    source_id = "reddit"
    name = "Reddit r/Aleague"
    url = "https://www.reddit.com/r/Aleague/"
    author = "r/Aleague community"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._matched_post: Optional[Dict[str, Any]] = None

    async def fetch_raw(self, timeout: Optional[float] = None) -> List[StandingsEntry]:
        self._matched_post = None
        listing = await self.client.get_json(_SEARCH_URL, timeout=timeout)
        try:
            children = listing["data"]["children"]
        except (KeyError, TypeError) as exc:
            raise ParseError(f"Unexpected Reddit listing shape: {exc}") from exc

        aliases = self.config.local_team_aliases
        for child in children:
            post = (child or {}).get("data") or {}
            entries = parse_pipe_tables(post.get("selftext") or "", aliases)
            if entries:
                self._matched_post = post
                logger.debug(
                    "reddit_ladder_found",
                    extra={"post_id": post.get("id"), "rows": len(entries)},
                )
                return entries
        return []

    def source_info(self) -> SourceInfo:
        post = self._matched_post
        if not post:
            return super().source_info()
        permalink = post.get("permalink") or ""
        return SourceInfo(
            name=self.name,
            url=f"https://www.reddit.com{permalink}" if permalink else self.url,
            author=f"u/{post['author']}" if post.get("author") else self.author,
        )
