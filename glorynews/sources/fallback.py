"""Static articles served when every news source comes back empty."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from glorynews.models import Article

FALLBACK_MESSAGE = (
    "Live news is temporarily unavailable. Showing recent highlights instead."
)

_PLACEHOLDER = "https://via.placeholder.com"


def _images(label: str, short: str) -> dict:
    return {
        "featured": f"{_PLACEHOLDER}/800x600?text={label}",
        "thumbnails": {
            "small": f"{_PLACEHOLDER}/200x150?text={short}",
            "medium": f"{_PLACEHOLDER}/400x300?text={short}",
            "large": f"{_PLACEHOLDER}/800x600?text={short}",
        },
    }


_RAW = [
    {
        "id": "fallback-1",
        "title": "Perth Glory Season Overview",
        "content": (
            "Perth Glory FC is an Australian professional soccer club based in Perth, "
            "Western Australia. The club competes in the A-League, Australia's premier "
            "soccer competition. Known for their passionate fanbase and rich history, "
            "Perth Glory continues to be a major force in Australian football. Stay tuned "
            "for the latest match updates, player news, and team developments."
        ),
        "publish_date": datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
        "source_url": "https://www.perthglory.com.au",
        "author": "Perth Glory News Team",
        "images": _images("Perth+Glory+FC", "Perth+Glory"),
        "categories": ["Team News", "A-League"],
        "tags": ["Perth Glory", "A-League", "Season Preview"],
        "metadata": {
            "word_count": 120,
            "reading_time": 1,
            "source": "official",
            "priority": 1,
            "engagement": {"likes": 0, "shares": 0, "comments": 0},
        },
        "related": {"articles": [], "tags": ["Team News", "A-League", "Perth Glory"]},
    },
    {
        "id": "fallback-2",
        "title": "Latest Match Updates",
        "content": (
            "Stay connected with Perth Glory for all the latest match updates, player "
            "interviews, and behind-the-scenes content. Follow us for match previews, "
            "post-match analysis, and exclusive player content. Check our official "
            "channels for real-time match updates and team news."
        ),
        "publish_date": datetime(2024, 1, 10, 14, 30, tzinfo=timezone.utc),
        "source_url": "https://www.perthglory.com.au/news",
        "author": "Perth Glory Media Team",
        "images": _images("Match+Updates", "Match+Updates"),
        "categories": ["Match Updates", "News"],
        "tags": ["Match Day", "Perth Glory", "Updates"],
        "metadata": {
            "word_count": 110,
            "reading_time": 1,
            "source": "official",
            "priority": 2,
            "engagement": {"likes": 0, "shares": 0, "comments": 0},
        },
        "related": {"articles": ["fallback-1"], "tags": ["Match Updates", "Team News"]},
    },
    {
        "id": "fallback-3",
        "title": "A-League Season Highlights",
        "content": (
            "The A-League continues to deliver exciting football action across Australia. "
            "Perth Glory remains committed to excellence on and off the pitch. From "
            "transfer news to match reports, training updates to player profiles, "
            "comprehensive coverage of all things Perth Glory is on its way."
        ),
        "publish_date": datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc),
        "source_url": "https://www.perthglory.com.au/news",
        "author": "A-League News Desk",
        "images": _images("A-League+Highlights", "A-League"),
        "categories": ["A-League", "Highlights"],
        "tags": ["A-League", "Season", "Football"],
        "metadata": {
            "word_count": 105,
            "reading_time": 1,
            "source": "partner",
            "priority": 3,
            "engagement": {"likes": 0, "shares": 0, "comments": 0},
        },
        "related": {"articles": ["fallback-1", "fallback-2"], "tags": ["A-League", "Perth Glory"]},
    },
]


def fallback_articles() -> List[Article]:
    """Return fresh copies of the static fallback articles, newest first."""
    return [Article.model_validate(raw) for raw in _RAW]
