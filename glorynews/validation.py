"""Standings validation/repair and article schema filtering."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from glorynews.errors import DataValidationError
from glorynews.models import (
    FORM_LENGTH,
    FORM_SYMBOLS,
    Article,
    SourceInfo,
    StandingsEntry,
    StandingsTable,
)
from glorynews.text import matches_alias, season_label, slugify

logger = logging.getLogger(__name__)

MIN_ENTRIES = 10


def normalize_form(form: Sequence[str], rng: random.Random) -> List[str]:
    """Return exactly five W/D/L symbols.

    Unknown symbols and missing slots are filled with a uniformly random
    outcome; extra results beyond the fifth are dropped.
    """
    result = []
    for symbol in list(form)[:FORM_LENGTH]:
        symbol = str(symbol).strip().upper()[:1]
        result.append(symbol if symbol in FORM_SYMBOLS else rng.choice(FORM_SYMBOLS))
    while len(result) < FORM_LENGTH:
        result.append(rng.choice(FORM_SYMBOLS))
    return result


def logo_path(name: str) -> str:
    return f"/images/teams/{slugify(name)}.png"


class StandingsValidator:
    """Enforces the ladder invariants and patches what can be patched.

    Fatal checks, in order: a table with entries, at least ten entries, every
    required field present, at least one local-team entry.  A table that passes
    is repaired (form, logos, goal difference, positions, metadata) and
    returned as a new object; the input is never mutated.
    """

    def __init__(
        self,
        local_aliases: Iterable[str] = ("perth", "glory"),
        league_name: str = "A-League Men",
        rng: Optional[random.Random] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.local_aliases = [a.lower() for a in local_aliases]
        self.league_name = league_name
        self.rng = rng or random.Random()
        self._now = now

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, table: Any) -> StandingsTable:
        """Return a usable table: the repaired input, or the backup table."""
        repaired = self.try_validate(table)
        if repaired is not None:
            return repaired
        from glorynews.sources.backup import backup_table

        return backup_table(
            reason="Validation Fallback",
            league_name=self.league_name,
            aliases=self.local_aliases,
            now=self._now(),
        )

    def try_validate(self, table: Any) -> Optional[StandingsTable]:
        """Like :meth:`validate` but returns None instead of the backup."""
        try:
            checked = self.check(table)
        except DataValidationError as exc:
            logger.warning("ladder_invalid", extra={"reason": str(exc)})
            return None
        return self.repair(checked)

    def check(self, table: Any) -> StandingsTable:
        """Run the fatal checks; return a private copy with the local team flagged.

        Raises DataValidationError on the first failed check.
        """
        if table is None:
            raise DataValidationError("no table")
        if isinstance(table, dict):
            try:
                table = StandingsTable.model_validate(table)
            except ValidationError as exc:
                raise DataValidationError(f"malformed table: {exc.error_count()} errors") from exc
        if not isinstance(table, StandingsTable):
            raise DataValidationError(f"unexpected table type {type(table).__name__}")
        if not table.entries:
            raise DataValidationError("table has no entries")
        if len(table.entries) < MIN_ENTRIES:
            raise DataValidationError(
                f"table has {len(table.entries)} entries, need at least {MIN_ENTRIES}"
            )
        for index, entry in enumerate(table.entries):
            missing = entry.missing_fields()
            if missing:
                raise DataValidationError(
                    f"entry {index} ({entry.name or '?'}) missing {', '.join(missing)}"
                )

        table = table.model_copy(deep=True)
        self._flag_local_team(table.entries)
        if not any(e.is_local_team for e in table.entries):
            raise DataValidationError("local team not found in table")
        return table

    def repair(self, table: StandingsTable) -> StandingsTable:
        """Apply non-fatal repairs to an already-checked table."""
        entries = [self._repair_entry(e) for e in table.entries]

        for index, entry in enumerate(entries, start=1):
            if entry.position <= 0:
                entry.position = index
        entries.sort(key=lambda e: e.position)
        positions = [e.position for e in entries]
        if positions != list(range(1, len(entries) + 1)):
            for index, entry in enumerate(entries, start=1):
                entry.position = index

        now = self._now()
        return table.model_copy(
            update={
                "entries": entries,
                "league_name": table.league_name or self.league_name,
                "season": table.season or season_label(now),
                "last_updated": table.last_updated or now,
                "source": table.source or SourceInfo(name="Unknown"),
            }
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _flag_local_team(self, entries: List[StandingsEntry]) -> None:
        """Ensure exactly one entry carries the local-team flag, if any matches."""
        flagged = [e for e in entries if e.is_local_team]
        if not flagged:
            flagged = [e for e in entries if matches_alias(e.name, self.local_aliases)]
        for entry in entries:
            entry.is_local_team = False
        if flagged:
            flagged[0].is_local_team = True

    def _repair_entry(self, entry: StandingsEntry) -> StandingsEntry:
        updates: dict = {}
        if len(entry.form) != FORM_LENGTH or any(s not in FORM_SYMBOLS for s in entry.form):
            updates["form"] = normalize_form(entry.form, self.rng)
        if not entry.logo:
            updates["logo"] = logo_path(entry.name)
        if entry.goals_for is not None and entry.goals_against is not None:
            goal_difference = entry.goals_for - entry.goals_against
            if entry.goal_difference != goal_difference:
                updates["goal_difference"] = goal_difference
        return entry.model_copy(update=updates)


def validate_articles(raw_articles: Iterable[dict], source: str) -> List[Article]:
    """Build Articles from adapter dicts, dropping (and logging) invalid ones."""
    articles: List[Article] = []
    for raw in raw_articles:
        try:
            articles.append(Article.model_validate(raw))
        except ValidationError as exc:
            logger.warning(
                "article_invalid",
                extra={
                    "source": source,
                    "url": raw.get("source_url", ""),
                    "errors": exc.error_count(),
                },
            )
    return articles
