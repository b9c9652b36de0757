"""Tests for the source adapters. All external calls are mocked."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from glorynews.errors import NetworkError, ParseError

LADDER_ROWS = [
    ("Central Coast Mariners", 10, 7, 2, 1, 16, 8, 23),
    ("Melbourne City", 11, 6, 3, 2, 20, 10, 21),
    ("Adelaide United", 10, 6, 3, 1, 24, 16, 21),
    ("Melbourne Victory", 11, 5, 4, 2, 15, 10, 19),
    ("Macarthur FC", 12, 5, 3, 4, 24, 17, 18),
    ("Western United", 12, 5, 3, 4, 19, 16, 18),
    ("Western Sydney Wanderers", 11, 4, 3, 4, 26, 22, 15),
    ("Sydney FC", 10, 4, 2, 4, 22, 19, 14),
    ("Wellington Phoenix", 10, 4, 1, 5, 12, 14, 13),
    ("Newcastle Jets", 10, 3, 1, 6, 12, 15, 10),
    ("Perth Glory", 11, 1, 2, 8, 7, 30, 5),
    ("Brisbane Roar", 11, 0, 2, 9, 12, 26, 2),
]


def ladder_markdown():
    lines = ["| Pos | Team | P | W | D | L | GF | GA | GD | Pts |", "|:-:|:--|--:|--:|--:|--:|--:|--:|--:|--:|"]
    for i, (name, p, w, d, l, gf, ga, pts) in enumerate(LADDER_ROWS, start=1):
        lines.append(f"| {i} | {name} | {p} | {w} | {d} | {l} | {gf} | {ga} | {gf - ga} | {pts} |")
    return "\n".join(lines)


def ladder_html():
    rows = "".join(
        f"<tr><td>{i}</td><td>{name}</td><td>{p}</td><td>{w}</td><td>{d}</td><td>{l}</td>"
        f"<td>{gf}</td><td>{ga}</td><td>{gf - ga}</td><td>{pts}</td><td>W D L W W</td></tr>"
        for i, (name, p, w, d, l, gf, ga, pts) in enumerate(LADDER_ROWS, start=1)
    )
    return (
        "<table><tr><th>#</th><th>Team</th><th>P</th><th>W</th><th>D</th><th>L</th>"
        "<th>GF</th><th>GA</th><th>GD</th><th>PTS</th><th>Form</th></tr>" + rows + "</table>"
    )


# ---------------------------------------------------------------------------
# BaseSource error isolation
# ---------------------------------------------------------------------------


class TestBaseSourceIsolation:
    def _source(self, settings, mock_client, exc):
        from glorynews.sources.ladder_html import ALeaguesLadderSource

        mock_client.get_text.side_effect = exc
        return ALeaguesLadderSource(settings, mock_client)

    @pytest.mark.parametrize(
        "exc",
        [
            NetworkError("timeout", url="https://aleagues.com.au/ladder/"),
            ParseError("bad html"),
            RuntimeError("boom"),
        ],
    )
    def test_errors_become_empty_list(self, settings, mock_client, exc):
        source = self._source(settings, mock_client, exc)
        assert asyncio.run(source.fetch()) == []

    def test_cancellation_propagates(self, settings, mock_client):
        source = self._source(settings, mock_client, asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(source.fetch())

    def test_timeout_passed_through(self, settings, mock_client):
        from glorynews.sources.ladder_html import EspnLadderSource

        mock_client.get_text.return_value = ladder_html()
        asyncio.run(EspnLadderSource(settings, mock_client).fetch(timeout=10.0))
        assert mock_client.get_text.call_args.kwargs["timeout"] == 10.0


# ---------------------------------------------------------------------------
# Ladder sources
# ---------------------------------------------------------------------------


class TestHtmlLadderSources:
    @pytest.mark.parametrize(
        "cls_name", ["ALeaguesLadderSource", "KeepUpLadderSource", "EspnLadderSource"]
    )
    def test_parses_page(self, settings, mock_client, cls_name):
        from glorynews.sources import ladder_html as ladder_html_module

        mock_client.get_text.return_value = ladder_html()
        source = getattr(ladder_html_module, cls_name)(settings, mock_client)
        entries = asyncio.run(source.fetch())
        assert len(entries) == 12
        assert entries[10].is_local_team is True
        assert entries[0].form == ["W", "D", "L", "W", "W"]
        mock_client.get_text.assert_awaited_once()
        assert mock_client.get_text.call_args.args[0] == source.url

    def test_page_without_ladder(self, settings, mock_client):
        from glorynews.sources.ladder_html import KeepUpLadderSource

        mock_client.get_text.return_value = "<html><p>Maintenance</p></html>"
        assert asyncio.run(KeepUpLadderSource(settings, mock_client).fetch()) == []


class TestRedditLadderSource:
    def _listing(self, *texts):
        return {
            "data": {
                "children": [
                    {"data": {"id": f"p{i}", "selftext": t, "permalink": f"/r/Aleague/comments/p{i}/",
                              "author": f"fan{i}"}}
                    for i, t in enumerate(texts)
                ]
            }
        }

    def test_first_post_with_table_wins(self, settings, mock_client):
        from glorynews.sources.community import RedditLadderSource

        mock_client.get_json.return_value = self._listing("no table here", ladder_markdown())
        source = RedditLadderSource(settings, mock_client)
        entries = asyncio.run(source.fetch())
        assert len(entries) == 12
        info = source.source_info()
        assert info.url == "https://www.reddit.com/r/Aleague/comments/p1/"
        assert info.author == "u/fan1"

    def test_no_table_in_any_post(self, settings, mock_client):
        from glorynews.sources.community import RedditLadderSource

        mock_client.get_json.return_value = self._listing("hello", "world")
        source = RedditLadderSource(settings, mock_client)
        assert asyncio.run(source.fetch()) == []
        assert source.source_info().url == source.url

    def test_unexpected_shape_isolated(self, settings, mock_client):
        from glorynews.sources.community import RedditLadderSource

        mock_client.get_json.return_value = {"error": 429}
        with pytest.raises(ParseError):
            asyncio.run(RedditLadderSource(settings, mock_client).fetch_raw())
        assert asyncio.run(RedditLadderSource(settings, mock_client).fetch()) == []


class TestKeepUpApiLadderSource:
    def test_maps_standings(self, settings, mock_client):
        from glorynews.sources.ladder_api import KeepUpApiLadderSource

        mock_client.get_json.return_value = {
            "standings": [
                {
                    "position": i,
                    "team": {"name": name, "logo": f"https://cdn/{i}.png"},
                    "played": p, "won": w, "drawn": d, "lost": l,
                    "goalsFor": gf, "goalsAgainst": ga, "goalDifference": gf - ga,
                    "points": pts, "form": "WDLWW",
                }
                for i, (name, p, w, d, l, gf, ga, pts) in enumerate(LADDER_ROWS, start=1)
            ]
        }
        entries = asyncio.run(KeepUpApiLadderSource(settings, mock_client).fetch())
        assert len(entries) == 12
        perth = entries[10]
        assert perth.id == "perth-glory"
        assert (perth.goals_for, perth.goals_against, perth.goal_difference) == (7, 30, -23)
        assert perth.is_local_team is True
        assert entries[0].form == ["W", "D", "L", "W", "W"]
        assert entries[0].logo == "https://cdn/1.png"

    def test_fallback_field_names(self, settings, mock_client):
        from glorynews.sources.ladder_api import KeepUpApiLadderSource

        mock_client.get_json.return_value = {
            "standings": [{"teamName": "Sydney FC", "rank": "3", "wins": 4, "draws": 1, "losses": 2,
                           "matchesPlayed": 7, "points": 13}]
        }
        entry = asyncio.run(KeepUpApiLadderSource(settings, mock_client).fetch())[0]
        assert (entry.position, entry.played, entry.won, entry.drawn, entry.lost) == (3, 7, 4, 1, 2)

    def test_missing_standings_key(self, settings, mock_client):
        from glorynews.sources.ladder_api import KeepUpApiLadderSource

        mock_client.get_json.return_value = {"data": []}
        assert asyncio.run(KeepUpApiLadderSource(settings, mock_client).fetch()) == []


class TestSportsDbLadderSource:
    def test_maps_lookup_table(self, settings, mock_client):
        from glorynews.sources.ladder_api import SportsDbLadderSource

        mock_client.get_json.return_value = {
            "table": [
                {
                    "idTeam": str(1000 + i), "strTeam": name, "intRank": str(i),
                    "intPlayed": str(p), "intWin": str(w), "intDraw": str(d), "intLoss": str(l),
                    "intGoalsFor": str(gf), "intGoalsAgainst": str(ga),
                    "intGoalDifference": str(gf - ga), "intPoints": str(pts),
                    "strForm": "WWDLL", "strBadge": f"https://r2.thesportsdb.com/{i}.png",
                }
                for i, (name, p, w, d, l, gf, ga, pts) in enumerate(LADDER_ROWS, start=1)
            ]
        }
        source = SportsDbLadderSource(settings, mock_client)
        entries = asyncio.run(source.fetch())
        assert len(entries) == 12
        assert entries[10].name == "Perth Glory" and entries[10].is_local_team
        assert entries[10].goal_difference == -23
        assert entries[0].form == ["W", "W", "D", "L", "L"]
        params = mock_client.get_json.call_args.kwargs["params"]
        assert params["l"] == "4356"
        assert params["s"] == source.season()

    def test_null_table(self, settings, mock_client):
        from glorynews.sources.ladder_api import SportsDbLadderSource

        mock_client.get_json.return_value = {"table": None}
        assert asyncio.run(SportsDbLadderSource(settings, mock_client).fetch()) == []


class TestBackupTable:
    def test_twelve_sorted_entries(self):
        from glorynews.sources.backup import backup_table

        table = backup_table()
        assert len(table.entries) == 12
        assert [e.position for e in table.entries] == list(range(1, 13))
        points = [e.points for e in table.entries]
        assert points == sorted(points, reverse=True)
        assert table.entries[0].name == "Central Coast Mariners"
        assert table.entries[1].name == "Melbourne City"  # beats Adelaide on goal difference

    def test_tagged_as_fallback(self):
        from glorynews.sources.backup import backup_table

        table = backup_table(reason="Fallback")
        assert table.is_fallback is True
        assert table.source.name == "Backup Data (Fallback)"

    def test_invariants_hold(self):
        from glorynews.sources.backup import backup_table

        table = backup_table()
        assert sum(e.is_local_team for e in table.entries) == 1
        for e in table.entries:
            assert e.goal_difference == e.goals_for - e.goals_against
            assert len(e.form) == 5


# ---------------------------------------------------------------------------
# News sources
# ---------------------------------------------------------------------------


def wp_post(post_id, title="Glory sign striker", content=None, **extra):
    post = {
        "id": post_id,
        "date": "2024-11-10T18:30:00",
        "date_gmt": "2024-11-10T10:30:00",
        "link": f"https://www.perthglory.com.au/news/{post_id}",
        "title": {"rendered": title},
        "content": {"rendered": content or "<p>Perth Glory have signed a new striker.</p>"
                    "<img src='https://img/1.jpg'/>"},
        "_embedded": {
            "author": [{"name": "Club Media"}],
            "wp:featuredmedia": [
                {
                    "source_url": "https://img/featured.jpg",
                    "media_details": {"sizes": {"medium": {"source_url": "https://img/m.jpg"}}},
                }
            ],
            "wp:term": [[{"name": "Men's"}], [{"name": "Transfers"}]],
        },
    }
    post.update(extra)
    return post


class TestWordPressSources:
    def test_perth_glory_mapping(self, settings, mock_client):
        from glorynews.sources.wordpress import PerthGloryNewsSource

        mock_client.get_json.return_value = [wp_post(101, title="Glory &amp; Roar &#039;derby&#039;")]
        articles = asyncio.run(PerthGloryNewsSource(settings, mock_client).fetch())
        assert len(articles) == 1
        a = articles[0]
        assert a.id == "perthglory-101"
        assert a.title == "Glory & Roar 'derby'"
        assert a.author == "Club Media"
        assert a.publish_date.hour == 10
        assert a.images.featured == "https://img/featured.jpg"
        assert a.images.thumbnails.medium == "https://img/m.jpg"
        assert a.images.gallery == ["https://img/1.jpg"]
        assert a.categories == ["Men's"]
        assert a.tags == ["Transfers"]
        assert a.metadata.source == "official"
        assert a.metadata.priority == 1
        assert a.metadata.reading_time == 1

    def test_keepup_detects_team(self, settings, mock_client):
        from glorynews.sources.wordpress import KeepUpNewsSource

        post = wp_post(7, title="Mariners stun Victory", content="<p>The Mariners beat Victory. Mariners fans sang.</p>")
        post["_embedded"]["wp:term"] = []
        mock_client.get_json.return_value = [post]
        article = asyncio.run(KeepUpNewsSource(settings, mock_client).fetch())[0]
        assert article.id == "keepup-7"
        assert article.categories == ["A-League", "Central Coast Mariners"]
        assert article.metadata.source == "partner"
        assert article.metadata.priority == 2

    def test_invalid_posts_dropped(self, settings, mock_client):
        from glorynews.sources.wordpress import PerthGloryNewsSource

        mock_client.get_json.return_value = [wp_post(1), wp_post(2, title=""), {"no": "id"}]
        articles = asyncio.run(PerthGloryNewsSource(settings, mock_client).fetch())
        assert [a.id for a in articles] == ["perthglory-1"]

    def test_non_list_payload_is_parse_error(self, settings, mock_client):
        from glorynews.sources.wordpress import PerthGloryNewsSource

        mock_client.get_json.return_value = {"code": "rest_no_route"}
        with pytest.raises(ParseError):
            asyncio.run(PerthGloryNewsSource(settings, mock_client).fetch_raw())

    def test_detect_team_none(self):
        from glorynews.sources.wordpress import detect_team

        assert detect_team("Socceroos squad named", "Nothing about clubs") is None


SCRAPED_PAGE = """
<div class="news-item">
  <a href="/news/glory-win"><h3 class="news-title">Glory win in Sydney</h3></a>
  <p class="news-content">Perth Glory claimed three points away from home.</p>
  <span class="news-date">2024-11-09T09:00:00Z</span>
  <div class="news-image"><img data-src="/images/win.jpg"/></div>
</div>
<div class="news-item">
  <h3 class="news-title">Title only</h3>
</div>
"""


class TestScrapedNewsSource:
    def test_parses_cards(self, settings, mock_client):
        from glorynews.sources.scraped import FootballAustraliaNewsSource

        mock_client.get_text.return_value = SCRAPED_PAGE
        source = FootballAustraliaNewsSource(settings, mock_client)
        articles = asyncio.run(source.fetch())
        assert len(articles) == 1
        a = articles[0]
        assert a.id == "footballaustralia-glory-win-in-sydney"
        assert a.source_url == "https://www.footballaustralia.com.au/news/glory-win"
        assert a.images.featured == "https://www.footballaustralia.com.au/images/win.jpg"
        assert a.metadata.priority == 3
        assert a.author == "Perth Glory News"
        assert mock_client.get_text.call_args.args[0] == "https://www.footballaustralia.com.au/news"

    def test_repeat_scrape_gives_same_id(self, settings, mock_client):
        from glorynews.sources.scraped import FootballAustraliaNewsSource

        mock_client.get_text.return_value = SCRAPED_PAGE
        source = FootballAustraliaNewsSource(settings, mock_client)
        first = asyncio.run(source.fetch())
        second = asyncio.run(source.fetch())
        assert first[0].id == second[0].id

    def test_no_cards(self, settings, mock_client):
        from glorynews.sources.scraped import TheWestNewsSource

        mock_client.get_text.return_value = "<html></html>"
        assert asyncio.run(TheWestNewsSource(settings, mock_client).fetch()) == []


class TestFallbackArticles:
    def test_three_valid_articles(self):
        from glorynews.sources.fallback import fallback_articles

        articles = fallback_articles()
        assert [a.id for a in articles] == ["fallback-1", "fallback-2", "fallback-3"]
        assert articles[0].metadata.engagement.likes == 0


class TestRegistry:
    def test_ladder_sources_in_priority_order(self, settings, mock_client):
        from glorynews.sources import build_ladder_sources

        ids = [s.source_id for s in build_ladder_sources(settings, mock_client)]
        assert ids == ["aleagues", "keepup-ladder", "espn", "reddit", "keepup-api", "thesportsdb"]

    def test_disabled_sources_skipped(self, settings, mock_client):
        from glorynews.sources import build_news_sources

        settings.news_sources = ["thewest", "perthglory", "myspace"]
        ids = [s.source_id for s in build_news_sources(settings, mock_client)]
        assert ids == ["perthglory", "thewest"]
