"""Selector-driven news scraping for sites without a usable API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from glorynews.models import Article
from glorynews.sources.base import ArticleSource
from glorynews.text import count_words, parse_date, reading_time, slugify
from glorynews.validation import validate_articles

logger = logging.getLogger(__name__)

_SLUG_LENGTH = 100


@dataclass(frozen=True)
class ScrapedSite:
    """CSS selectors locating articles on one listing page."""

    base_url: str
    news_path: str
    article_list: str
    title: str
    content: str
    date: str
    image: str
    author: str = ""
    tags: str = ""
    default_author: str = "Perth Glory News"

    @property
    def listing_url(self) -> str:
        return urljoin(self.base_url, self.news_path)


def _text(element: Tag, selector: str) -> str:
    if not selector:
        return ""
    found = element.select_one(selector)
    return found.get_text(" ", strip=True) if found else ""


class ScrapedNewsSource(ArticleSource):
    """Parse a news listing page into Articles using a :class:`ScrapedSite`.

    Cards missing a title or body are skipped.  Article ids are the source id
    plus the title slug, so repeat scrapes of one story dedupe.
    """

    site: ScrapedSite
    source_class = "partner"
    priority = 3

    async def fetch_raw(self, timeout: Optional[float] = None) -> List[Article]:
        markup = await self.client.get_text(self.site.listing_url, timeout=timeout)
        soup = BeautifulSoup(markup, "html.parser")
        cards = soup.select(self.site.article_list)
        if not cards:
            logger.warning(
                "scrape_no_articles",
                extra={"source": self.source_id, "selector": self.site.article_list},
            )
        raw = [r for r in (self._card_to_dict(card) for card in cards) if r]
        return validate_articles(raw, self.source_id)

    def _card_to_dict(self, card: Tag) -> Optional[Dict[str, Any]]:
        site = self.site
        title = _text(card, site.title)
        content = _text(card, site.content)
        if not title or not content:
            return None

        image = card.select_one(site.image) if site.image else None
        image_url = (image.get("src") or image.get("data-src") or "") if image else ""
        link = card.find("a", href=True)
        words = count_words(content)
        tags = [t.get_text(strip=True) for t in card.select(site.tags)] if site.tags else []
        return {
            "id": f"{self.source_id}-{slugify(title)[:_SLUG_LENGTH]}",
            "title": title,
            "content": content,
            "publish_date": parse_date(_text(card, site.date)) or datetime.now(timezone.utc),
            "source_url": urljoin(site.base_url, link["href"]) if link else site.base_url,
            "author": _text(card, site.author) or site.default_author,
            "images": {"featured": urljoin(site.base_url, image_url) if image_url else None},
            "categories": ["News"],
            "tags": [t for t in tags if t],
            "metadata": {
                "word_count": max(words, 1),
                "reading_time": reading_time(words),
                "is_sponsored": False,
                "source": self.source_class,
                "priority": self.priority,
            },
        }


class FootballAustraliaNewsSource(ScrapedNewsSource):
    source_id = "footballaustralia"
    name = "Football Australia"
    url = "https://www.footballaustralia.com.au"
    site = ScrapedSite(
        base_url="https://www.footballaustralia.com.au",
        news_path="/news",
        article_list=".news-item",
        title=".news-title",
        content=".news-content",
        date=".news-date",
        image=".news-image img",
    )


class ALeaguesNewsSource(ScrapedNewsSource):
    source_id = "aleagues-news"
    name = "A-Leagues Men"
    url = "https://aleagues.com.au"
    site = ScrapedSite(
        base_url="https://aleagues.com.au",
        news_path="/mens/news",
        article_list=".article-card",
        title=".article-title",
        content=".article-body",
        date=".article-date",
        image=".article-image img",
    )


class TheWestNewsSource(ScrapedNewsSource):
    source_id = "thewest"
    name = "The West Australian"
    url = "https://thewest.com.au"
    site = ScrapedSite(
        base_url="https://thewest.com.au",
        news_path="/sport/soccer/perth-glory",
        article_list=".article-item",
        title=".article-headline",
        content=".article-content",
        date=".article-timestamp",
        image=".article-image img",
    )
