"""WordPress REST news sources (``/wp-json/wp/v2/posts?_embed``)."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from glorynews.errors import ParseError
from glorynews.models import Article
from glorynews.sources.base import ArticleSource
from glorynews.text import (
    count_words,
    extract_images,
    parse_date,
    reading_time,
    strip_html,
    unescape_title,
)
from glorynews.validation import validate_articles

# Keyword lists used to tag KeepUp posts with the club they are about.
A_LEAGUE_TEAMS: List[Tuple[str, Tuple[str, ...]]] = [
    ("Perth Glory", ("perth", "glory", "perth glory")),
    ("Melbourne City", ("melbourne city", "city fc")),
    ("Melbourne Victory", ("melbourne victory", "victory")),
    ("Sydney FC", ("sydney fc", "sydney f.c")),
    ("Western Sydney Wanderers", ("western sydney", "wanderers")),
    ("Brisbane Roar", ("brisbane", "roar")),
    ("Adelaide United", ("adelaide", "adelaide united")),
    ("Central Coast Mariners", ("central coast", "mariners")),
    ("Wellington Phoenix", ("wellington", "phoenix")),
    ("Macarthur FC", ("macarthur",)),
    ("Western United", ("western united",)),
]


def detect_team(title: str, content: str) -> Optional[str]:
    """Return the club mentioned most often in *title* and *content*, if any."""
    text = f"{title} {content}".lower()
    best, best_count = None, 0
    for team, keywords in A_LEAGUE_TEAMS:
        count = sum(len(re.findall(rf"\b{re.escape(k)}\b", text)) for k in keywords)
        if count > best_count:
            best, best_count = team, count
    return best


def _terms(embedded: Dict[str, Any], index: int) -> List[str]:
    groups = embedded.get("wp:term") or []
    if len(groups) <= index or not isinstance(groups[index], list):
        return []
    return [t["name"] for t in groups[index] if isinstance(t, dict) and t.get("name")]


class WordPressNewsSource(ArticleSource):
    """Maps WordPress posts with embedded author, media and terms onto Articles."""

    api_url: str = ""
    per_page: int = 20
    default_author: str = ""
    default_categories: Tuple[str, ...] = ()

    async def fetch_raw(self, timeout: Optional[float] = None) -> List[Article]:
        posts = await self.client.get_json(
            self.api_url,
            params={"_embed": "", "per_page": self.per_page},
            timeout=timeout,
        )
        if not isinstance(posts, list):
            raise ParseError(f"{self.name}: expected a list of posts")
        raw = [self._post_to_dict(p) for p in posts if isinstance(p, dict)]
        return validate_articles([r for r in raw if r], self.source_id)

    def _post_to_dict(self, post: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if post.get("id") is None:
            return None
        embedded = post.get("_embedded") or {}
        content = (post.get("content") or {}).get("rendered") or ""
        title = unescape_title((post.get("title") or {}).get("rendered") or "")

        media = (embedded.get("wp:featuredmedia") or [{}])[0] or {}
        sizes = (media.get("media_details") or {}).get("sizes") or {}
        featured = media.get("source_url")

        def size_url(size: str) -> Optional[str]:
            return (sizes.get(size) or {}).get("source_url")

        authors = embedded.get("author") or [{}]
        categories = _terms(embedded, 0) or list(self.default_categories)
        words = count_words(strip_html(content))
        return {
            "id": f"{self.source_id}-{post['id']}",
            "title": title,
            "content": content,
            "publish_date": parse_date(post.get("date_gmt") or post.get("date") or "")
            or datetime.now(timezone.utc),
            "source_url": post.get("link") or self.url,
            "author": (authors[0] or {}).get("name") or self.default_author,
            "images": {
                "featured": featured,
                "gallery": [u for u in extract_images(content) if u != featured],
                "thumbnails": {
                    "small": size_url("thumbnail"),
                    "medium": size_url("medium") or featured,
                    "large": size_url("large"),
                },
            },
            "categories": self._categories(categories, title, content),
            "tags": _terms(embedded, 1),
            "metadata": {
                "word_count": max(words, 1),
                "reading_time": reading_time(words),
                "is_sponsored": False,
                "source": self.source_class,
                "priority": self.priority,
            },
        }

    def _categories(self, categories: List[str], title: str, content: str) -> List[str]:
        return categories


class PerthGloryNewsSource(WordPressNewsSource):
    source_id = "perthglory"
    name = "Perth Glory Official"
    url = "https://www.perthglory.com.au"
    api_url = "https://www.perthglory.com.au/wp-json/wp/v2/posts"
    per_page = 30
    default_author = "Perth Glory FC"
    source_class = "official"
    priority = 1


class KeepUpNewsSource(WordPressNewsSource):
    """KeepUp posts, tagged with the A-League club each one is mostly about."""

    source_id = "keepup"
    name = "KeepUp"
    url = "https://keepup.com.au"
    api_url = "https://keepup.com.au/wp-json/wp/v2/posts"
    default_author = "KeepUp"
    default_categories = ("A-League",)
    source_class = "partner"
    priority = 2

    def _categories(self, categories: List[str], title: str, content: str) -> List[str]:
        team = detect_team(title, strip_html(content))
        if team and team not in categories:
            return categories + [team]
        return categories
