"""Text, date and number helpers shared by the source adapters."""

from __future__ import annotations

import html
import math
import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from bs4 import BeautifulSoup
from dateutil import parser as dateparser

_WORDS_PER_MINUTE = 200
_SEASON_START_MONTH = 10

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_INT_RE = re.compile(r"[-+−]?\d+")


def slugify(text: str) -> str:
    """Lower-case, accent-free, hyphen-separated slug."""
    normalised = unicodedata.normalize("NFD", str(text))
    normalised = "".join(c for c in normalised if not unicodedata.combining(c))
    slug = normalised.lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^\w-]+", "", slug)
    slug = re.sub(r"--+", "-", slug)
    return slug.strip("-")


def strip_html(markup: str) -> str:
    """Remove tags and collapse whitespace."""
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", markup or "")).strip()


def unescape_title(title: str) -> str:
    """Decode HTML entities (``&amp;``, ``&#039;`` ...) left in rendered titles."""
    return html.unescape(strip_html(title))


def count_words(text: str) -> int:
    return len([w for w in _WS_RE.split(text or "") if w])


def reading_time(word_count: int) -> int:
    """Minutes to read at 200 wpm, never less than one."""
    return max(1, math.ceil(word_count / _WORDS_PER_MINUTE))


def extract_images(markup: str) -> List[str]:
    """Return every ``<img src>`` in *markup*, in document order."""
    if not markup:
        return []
    soup = BeautifulSoup(markup, "html.parser")
    return [img["src"] for img in soup.find_all("img") if img.get("src")]


def season_label(now: Optional[datetime] = None) -> str:
    """Season containing *now*; the league year runs October to September."""
    now = now or datetime.now(timezone.utc)
    start = now.year if now.month >= _SEASON_START_MONTH else now.year - 1
    return f"{start}-{start + 1}"


def parse_date(text: str) -> Optional[datetime]:
    """Best-effort parse of a provider date string to aware UTC."""
    if not text:
        return None
    try:
        parsed = dateparser.parse(text)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_int(value: Any) -> Optional[int]:
    """Coerce a provider value ("12", "+3", "−3", 7.0) to int, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _INT_RE.search(str(value))
    if not match:
        return None
    return int(match.group().replace("−", "-"))


def first_present(*values: Any) -> Any:
    """Return the first value that is not None or an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


def matches_alias(name: str, aliases: Iterable[str]) -> bool:
    """Case-insensitive substring match of *name* against any alias."""
    lowered = (name or "").lower()
    return any(alias and alias in lowered for alias in aliases)
