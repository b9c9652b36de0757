"""JSON standings APIs: KeepUp and TheSportsDB."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from glorynews.errors import ParseError
from glorynews.models import StandingsEntry
from glorynews.sources.base import StandingsSource
from glorynews.sources.parsing import form_from_text
from glorynews.text import first_present, season_label, slugify, to_int


class KeepUpApiLadderSource(StandingsSource):
    source_id = "keepup-api"
    name = "KeepUp API"
    url = (
        "https://api.keepup.com.au/competitions/leagues/a-league-men"
        "/seasons/current/standings"
    )
    author = "KeepUp"

    async def fetch_raw(self, timeout: Optional[float] = None) -> List[StandingsEntry]:
        payload = await self.client.get_json(self.url, timeout=timeout)
        if not isinstance(payload, dict) or not isinstance(payload.get("standings"), list):
            raise ParseError("KeepUp standings payload has no 'standings' list")
        return [e for e in (self._to_entry(row) for row in payload["standings"]) if e]

    def _to_entry(self, row: Dict[str, Any]) -> Optional[StandingsEntry]:
        team = row.get("team") or {}
        name = first_present(team.get("name"), row.get("teamName"), row.get("name"))
        if not name:
            return None
        form = row.get("form") or []
        if isinstance(form, str):
            form = form_from_text(form)
        return StandingsEntry(
            id=str(first_present(team.get("slug"), slugify(name))),
            name=name,
            position=to_int(first_present(row.get("position"), row.get("rank"))) or 0,
            played=to_int(first_present(row.get("played"), row.get("matchesPlayed"))),
            won=to_int(first_present(row.get("won"), row.get("wins"))),
            drawn=to_int(first_present(row.get("drawn"), row.get("draws"))),
            lost=to_int(first_present(row.get("lost"), row.get("losses"))),
            goals_for=to_int(row.get("goalsFor")),
            goals_against=to_int(row.get("goalsAgainst")),
            goal_difference=to_int(row.get("goalDifference")),
            points=to_int(row.get("points")),
            form=list(form),
            logo=first_present(team.get("logo"), team.get("crest")) or "",
            is_local_team=self._is_local_team(name),
            previous_position=to_int(row.get("previousPosition")),
        )


class SportsDbLadderSource(StandingsSource):
    """TheSportsDB ``lookuptable`` endpoint (free API key ``3``)."""

    source_id = "thesportsdb"
    name = "TheSportsDB"
    url = "https://www.thesportsdb.com/api/v1/json/3/lookuptable.php"
    author = "TheSportsDB"
    league_id = "4356"

    def season(self) -> str:
        return season_label(datetime.now(timezone.utc))

    async def fetch_raw(self, timeout: Optional[float] = None) -> List[StandingsEntry]:
        payload = await self.client.get_json(
            self.url,
            params={"l": self.league_id, "s": self.season()},
            timeout=timeout,
        )
        rows = payload.get("table") if isinstance(payload, dict) else None
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise ParseError("TheSportsDB 'table' is not a list")
        return [e for e in (self._to_entry(row) for row in rows) if e]

    def _to_entry(self, row: Dict[str, Any]) -> Optional[StandingsEntry]:
        name = row.get("strTeam")
        if not name:
            return None
        return StandingsEntry(
            id=str(first_present(row.get("idTeam"), slugify(name))),
            name=name,
            position=to_int(row.get("intRank")) or 0,
            played=to_int(row.get("intPlayed")),
            won=to_int(row.get("intWin")),
            drawn=to_int(row.get("intDraw")),
            lost=to_int(row.get("intLoss")),
            goals_for=to_int(row.get("intGoalsFor")),
            goals_against=to_int(row.get("intGoalsAgainst")),
            goal_difference=to_int(row.get("intGoalDifference")),
            points=to_int(row.get("intPoints")),
            form=form_from_text(row.get("strForm") or ""),
            logo=row.get("strBadge") or row.get("strTeamBadge") or "",
            is_local_team=self._is_local_team(name),
        )
