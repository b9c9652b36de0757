"""Ladder table parsing shared by the scraped-HTML and community sources.

Columns are located by header text rather than position, so the same code
reads an HTML ``<table>`` and a markdown pipe table in any column order.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from glorynews.models import FORM_LENGTH, StandingsEntry
from glorynews.text import matches_alias, slugify, to_int

MIN_ROWS = 10

# Exact header tokens per field.
_EXACT = {
    "position": {"pos", "position", "#", "rank", "rk", "no", "no."},
    "name": {"team", "club", "name", "teams", "clubs"},
    "played": {"p", "pl", "mp", "gp", "played", "games"},
    "won": {"w", "won", "wins"},
    "drawn": {"d", "drawn", "draws", "draw", "t"},
    "lost": {"l", "lost", "losses", "loss"},
    "goals_for": {"gf", "f", "for"},
    "goals_against": {"ga", "a", "against"},
    "goal_difference": {"gd", "+/-", "diff", "dif"},
    "points": {"pts", "points", "pt"},
    "form": {"form", "last 5", "last five", "recent"},
}

# Substring hints, checked in this order when no exact token matches.
_CONTAINS = [
    ("form", ("form", "last 5", "last five", "recent")),
    ("goal_difference", ("difference", "diff")),
    ("goals_against", ("against",)),
    ("goals_for", ("goals for", "scored")),
    ("points", ("points", "pts")),
    ("played", ("played", "games", "matches")),
    ("position", ("position", "pos", "rank")),
    ("name", ("team", "club")),
    ("won", ("wins", "won")),
    ("drawn", ("draw",)),
    ("lost", ("loss", "lost")),
]

_REQUIRED_FIELD = "name"
_MIN_OTHER_FIELDS = 2

_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_MARKDOWN_NOISE = re.compile(r"[*_`~]|\^\S*|\(\w+\)$")
_SEPARATOR = re.compile(r"^\s*\|?\s*:?-{2,}:?\s*(\|\s*:?-{2,}:?\s*)*\|?\s*$")


def match_header(text: str) -> Optional[str]:
    """Map a header cell to a canonical field name (case-insensitive)."""
    cleaned = _MARKDOWN_NOISE.sub("", (text or "")).strip().lower()
    if not cleaned:
        return None
    for field_name, tokens in _EXACT.items():
        if cleaned in tokens:
            return field_name
    for field_name, hints in _CONTAINS:
        if any(hint in cleaned for hint in hints):
            return field_name
    return None


def map_columns(headers: Sequence[str]) -> Optional[Dict[str, int]]:
    """Return field -> column index, or None if this is not a ladder header."""
    columns: Dict[str, int] = {}
    for index, header in enumerate(headers):
        field_name = match_header(header)
        if field_name and field_name not in columns:
            columns[field_name] = index
    if _REQUIRED_FIELD not in columns or len(columns) - 1 < _MIN_OTHER_FIELDS:
        return None
    return columns


def clean_team_name(text: str) -> str:
    """Strip markdown decoration, bullets and stray punctuation from a team cell."""
    text = _MARKDOWN_LINK.sub(r"\1", text or "")
    text = re.sub(r"[*_`~]", "", text)
    text = re.sub(r"^\s*\d+[.)]\s+", "", text)
    return re.sub(r"\s+", " ", text).strip(" -|")


def form_from_text(text: str) -> List[str]:
    """Scan raw text for W/D/L result letters ("W D L", "WWDLL", "W-D-L")."""
    letters: List[str] = []
    for token in re.sub(r"[^A-Za-z]", " ", text or "").split():
        upper = token.upper()
        if set(upper) <= {"W", "D", "L"}:
            letters.extend(upper)
    return letters[:FORM_LENGTH]


def form_from_classes(element: Tag) -> List[str]:
    """Read results from CSS class hints such as ``form--win`` or ``result-l``."""
    results: List[str] = []
    for el in element.find_all(class_=True):
        classes = " ".join(el.get("class", [])).lower()
        if "draw" in classes or re.search(r"(^|[-_ ])d($|[-_ ])", classes):
            results.append("D")
        elif "loss" in classes or "lose" in classes or re.search(r"(^|[-_ ])l($|[-_ ])", classes):
            results.append("L")
        elif "win" in classes or re.search(r"(^|[-_ ])w($|[-_ ])", classes):
            results.append("W")
    return results[:FORM_LENGTH]


def row_to_entry(
    cells: Sequence[str],
    columns: Dict[str, int],
    aliases: Iterable[str],
    form: Optional[List[str]] = None,
    logo: str = "",
) -> Optional[StandingsEntry]:
    """Build an entry from one row of cell texts; None when the row has no team."""

    def cell(field_name: str) -> Optional[str]:
        index = columns.get(field_name)
        if index is None or index >= len(cells):
            return None
        return cells[index]

    name = clean_team_name(cell("name") or "")
    if not name or to_int(name) is not None and name.isdigit():
        return None
    if form is None:
        form = form_from_text(cell("form") or "")
    return StandingsEntry(
        id=slugify(name),
        name=name,
        position=to_int(cell("position")) or 0,
        played=to_int(cell("played")),
        won=to_int(cell("won")),
        drawn=to_int(cell("drawn")),
        lost=to_int(cell("lost")),
        goals_for=to_int(cell("goals_for")),
        goals_against=to_int(cell("goals_against")),
        goal_difference=to_int(cell("goal_difference")),
        points=to_int(cell("points")),
        form=form,
        logo=logo,
        is_local_team=matches_alias(name, aliases),
    )


def _complete(entries: List[StandingsEntry]) -> List[StandingsEntry]:
    return [e for e in entries if not e.missing_fields()]


# ---------------------------------------------------------------------------
# Markdown pipe tables
# ---------------------------------------------------------------------------


def split_pipe_row(line: str) -> List[str]:
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|"):
        stripped = stripped[:-1]
    return [c.strip() for c in stripped.split("|")]


def parse_pipe_tables(text: str, aliases: Iterable[str]) -> List[StandingsEntry]:
    """Find the first pipe-delimited ladder in free text with at least ten rows.

    Each header candidate is read until a blank (or pipe-less) line; if it
    yields too few complete rows the scan continues with the next candidate.
    """
    aliases = list(aliases)
    lines = (text or "").splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]
        columns = map_columns(split_pipe_row(line)) if "|" in line else None
        if columns is None:
            i += 1
            continue

        j = i + 1
        if j < len(lines) and _SEPARATOR.match(lines[j]):
            j += 1
        entries: List[StandingsEntry] = []
        while j < len(lines) and lines[j].strip() and "|" in lines[j]:
            entry = row_to_entry(split_pipe_row(lines[j]), columns, aliases)
            if entry is not None:
                entries.append(entry)
            j += 1

        complete = _complete(entries)
        if len(complete) >= MIN_ROWS:
            return complete
        i = max(j, i + 1)
    return []


# ---------------------------------------------------------------------------
# HTML tables
# ---------------------------------------------------------------------------


def _cell_texts(row: Tag) -> List[str]:
    return [c.get_text(" ", strip=True) for c in row.find_all(["td", "th"], recursive=False)]


def parse_html_tables(
    markup: str,
    aliases: Iterable[str],
    table_selector: str = "table",
) -> List[StandingsEntry]:
    """Read the first HTML table matching *table_selector* that looks like a ladder."""
    aliases = list(aliases)
    soup = BeautifulSoup(markup or "", "html.parser")
    for table in soup.select(table_selector):
        rows = table.find_all("tr")
        if not rows:
            continue
        header_row = table.select_one("thead tr") or rows[0]
        columns = map_columns(_cell_texts(header_row))
        if columns is None:
            continue

        entries: List[StandingsEntry] = []
        for row in rows:
            if row is header_row or not row.find("td"):
                continue
            cells = row.find_all(["td", "th"], recursive=False)
            texts = [c.get_text(" ", strip=True) for c in cells]
            form_index = columns.get("form")
            form_scope = cells[form_index] if form_index is not None and form_index < len(cells) else row
            form = form_from_classes(form_scope) or form_from_text(
                form_scope.get_text(" ", strip=True) if form_index is not None else ""
            )
            img = row.find("img")
            logo = (img.get("src") or img.get("data-src") or "") if img else ""
            entry = row_to_entry(texts, columns, aliases, form=form, logo=logo)
            if entry is not None:
                entries.append(entry)

        complete = _complete(entries)
        if len(complete) >= MIN_ROWS:
            return complete
    return []
