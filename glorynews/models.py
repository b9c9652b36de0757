"""Pydantic models and enums for glorynews."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Dict, List, Literal, Optional, Tuple
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    field_validator,
)


class FormResult(str, Enum):
    """Outcome symbols used in a team's recent-form sequence."""

    WIN = "W"
    DRAW = "D"
    LOSS = "L"


FORM_SYMBOLS = tuple(r.value for r in FormResult)
FORM_LENGTH = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Standings
# ---------------------------------------------------------------------------


class StandingsEntry(BaseModel):
    """One team's row in the ladder.

    Counting fields are optional so that adapters can report what a provider
    actually gave them; the validator decides whether the row is usable.
    """

    id: str = ""
    name: str = ""
    position: int = 0  # 0 = unknown, assigned from table order by the validator
    played: Optional[int] = None
    won: Optional[int] = None
    drawn: Optional[int] = None
    lost: Optional[int] = None
    goals_for: Optional[int] = None
    goals_against: Optional[int] = None
    goal_difference: Optional[int] = None
    points: Optional[int] = None
    form: List[str] = Field(default_factory=list)
    logo: str = ""
    is_local_team: bool = False
    previous_position: Optional[int] = None

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = (
        "id", "name", "played", "won", "drawn", "lost", "points",
    )

    def missing_fields(self) -> List[str]:
        """Return the names of required fields that the source did not supply."""
        missing = []
        for name in self.REQUIRED_FIELDS:
            value = getattr(self, name)
            if value is None or value == "":
                missing.append(name)
        return missing


class SourceInfo(BaseModel):
    """Provenance of a standings table."""

    name: str
    url: str = ""
    author: str = ""


class StandingsTable(BaseModel):
    """Position-sorted ladder plus table-level metadata."""

    entries: List[StandingsEntry] = Field(default_factory=list)
    league_name: str = ""
    season: str = ""
    last_updated: Optional[datetime] = None
    source: Optional[SourceInfo] = None
    is_fallback: bool = False

    def local_team(self) -> Optional[StandingsEntry]:
        return next((e for e in self.entries if e.is_local_team), None)


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------


class Thumbnails(BaseModel):
    model_config = ConfigDict(frozen=True)

    small: Optional[str] = None
    medium: Optional[str] = None
    large: Optional[str] = None


class ArticleImages(BaseModel):
    model_config = ConfigDict(frozen=True)

    featured: Optional[str] = None
    gallery: List[str] = Field(default_factory=list)
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)


class Engagement(BaseModel):
    model_config = ConfigDict(frozen=True)

    likes: Optional[NonNegativeInt] = None
    shares: Optional[NonNegativeInt] = None
    comments: Optional[NonNegativeInt] = None


class ArticleMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    word_count: PositiveInt
    reading_time: PositiveInt
    is_sponsored: bool = False
    source: Literal["official", "social", "partner"]
    priority: Literal[1, 2, 3]
    engagement: Optional[Engagement] = None


class RelatedLinks(BaseModel):
    model_config = ConfigDict(frozen=True)

    articles: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class Article(BaseModel):
    """A normalised news article; immutable once built by a source."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    content: str
    publish_date: datetime
    source_url: str
    author: Optional[str] = None
    images: ArticleImages = Field(default_factory=ArticleImages)
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    metadata: ArticleMetadata
    related: Optional[RelatedLinks] = None

    @field_validator("source_url")
    @classmethod
    def validate_source_url(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"source_url must be an absolute http(s) URL, got {v!r}")
        return v

    @field_validator("publish_date")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Store every publish date as aware UTC so articles sort across sources."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class NewsFeed(BaseModel):
    """Aggregated article list handed to page handlers."""

    articles: List[Article] = Field(default_factory=list)
    is_fallback: bool = False
    message: str = ""
    generated_at: datetime = Field(default_factory=_utcnow)


class RefreshSummary(BaseModel):
    """Outcome of a full news refresh across every registered source."""

    counts: Dict[str, int] = Field(default_factory=dict)
    statuses: Dict[str, str] = Field(default_factory=dict)
    total: int = 0
    duration_ms: int = 0
    timestamp: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class CacheEntry(BaseModel):
    """A row of the shared cache: serialized value plus write time and TTL."""

    key: str
    value: str
    timestamp: float
    ttl_seconds: Optional[int] = None

    def is_expired(self, now: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return now - self.timestamp >= self.ttl_seconds
