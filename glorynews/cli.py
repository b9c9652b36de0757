"""Typer CLI for glorynews: operator-facing commands."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="glorynews",
    help="Perth Glory news and A-League ladder aggregator.",
    add_completion=False,
)
console = Console()

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_settings(
    cache_path: Optional[str] = None,
    log_level: Optional[str] = None,
) -> "Settings":  # type: ignore[name-defined]
    from glorynews.config import Settings, get_settings

    overrides: dict = {}
    if cache_path:
        overrides["cache_path"] = cache_path
    if log_level:
        overrides["log_level"] = log_level.upper()
    if not overrides:
        return get_settings()
    return Settings(**overrides)  # type: ignore[arg-type]


def _setup_logging(level: str = "INFO") -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    logging.basicConfig(level=numeric, format=fmt)


def _open_context(cfg: "Settings") -> "AppContext":  # type: ignore[name-defined]
    from glorynews.context import AppContext

    return AppContext(cfg)


def _run(cfg: "Settings", work: Callable[[Any], Awaitable[T]]) -> T:  # type: ignore[name-defined]
    """Open a context, run one coroutine against it and close it again."""

    async def _main() -> T:
        async with _open_context(cfg) as ctx:
            return await work(ctx)

    return asyncio.run(_main())


CachePathOption = typer.Option(None, "--cache-path", help="Override cache DB path.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level (default: GLORY_LOG_LEVEL).")

# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def ladder(
    refresh: bool = typer.Option(False, "--refresh", is_flag=True, help="Bypass the cache."),
    cache_path: Optional[str] = CachePathOption,
    log_level: Optional[str] = LogLevelOption,
) -> None:
    """Show the current A-League ladder."""
    cfg = _get_settings(cache_path=cache_path, log_level=log_level)
    _setup_logging(cfg.log_level)
    table = _run(cfg, lambda ctx: ctx.ladder.fetch_standings(force_refresh=refresh))
    _print_ladder(table)


@app.command()
def news(
    source: Optional[str] = typer.Option(None, "--source", help="Only this source id."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum articles."),
    cache_path: Optional[str] = CachePathOption,
    log_level: Optional[str] = LogLevelOption,
) -> None:
    """List the latest news articles."""
    cfg = _get_settings(cache_path=cache_path, log_level=log_level)
    _setup_logging(cfg.log_level)
    limit = limit or cfg.news_limit
    if source:
        from glorynews.sources.fallback import FALLBACK_MESSAGE, fallback_articles

        articles = _run(cfg, lambda ctx: ctx.news.fetch_articles(source))[:limit]
        fallback_ids = {a.id for a in fallback_articles()}
        served_fallback = bool(articles) and all(a.id in fallback_ids for a in articles)
        message = FALLBACK_MESSAGE if served_fallback else ""
    else:
        feed = _run(cfg, lambda ctx: ctx.news.latest(limit))
        articles, message = feed.articles, feed.message
    if message:
        console.print(f"[yellow]{message}[/]")
    _print_articles(articles)


@app.command()
def article(
    article_id: str = typer.Argument(..., help="Article id, e.g. perthglory-1234."),
    cache_path: Optional[str] = CachePathOption,
    log_level: Optional[str] = LogLevelOption,
) -> None:
    """Show one article by id."""
    cfg = _get_settings(cache_path=cache_path, log_level=log_level)
    _setup_logging(cfg.log_level)
    found = _run(cfg, lambda ctx: ctx.news.get_article_by_id(article_id))
    if found is None:
        console.print(f"[bold red]Article {article_id!r} not found.[/]")
        raise typer.Exit(1)

    console.print(f"[bold]{found.title}[/]")
    console.print(
        f"[dim]{found.author or 'Unknown'} · {found.publish_date:%Y-%m-%d %H:%M} UTC · "
        f"{found.metadata.reading_time} min read[/]"
    )
    console.print(found.source_url)
    if found.categories:
        console.print(f"Categories: {', '.join(found.categories)}")
    from glorynews.text import strip_html

    console.print(strip_html(found.content))


@app.command()
def refresh(
    cache_path: Optional[str] = CachePathOption,
    log_level: Optional[str] = LogLevelOption,
) -> None:
    """Refetch the ladder and every news source, replacing cached data."""
    cfg = _get_settings(cache_path=cache_path, log_level=log_level)
    _setup_logging(cfg.log_level)

    async def _refresh_everything(ctx: Any) -> tuple:
        table = await ctx.ladder.refresh_standings()
        summary = await ctx.news.refresh_all()
        return table, summary

    table, summary = _run(cfg, _refresh_everything)
    source_name = table.source.name if table.source else "Unknown"
    colour = "yellow" if table.is_fallback else "green"
    console.print(f"[bold]Ladder:[/] [{colour}]{len(table.entries)} teams from {source_name}[/]")
    console.print(f"[bold]News:[/] {summary.total} articles in {summary.duration_ms} ms")
    for source_id, status in summary.statuses.items():
        colour = "green" if status == "ok" else ("yellow" if status == "empty" else "red")
        console.print(f"  [{colour}]{source_id}: {status} ({summary.counts.get(source_id, 0)})[/]")


@app.command()
def sources(
    log_level: Optional[str] = LogLevelOption,
) -> None:
    """List the registered ladder and news sources in priority order."""
    cfg = _get_settings(log_level=log_level)
    _setup_logging(cfg.log_level)

    from glorynews.sources import LADDER_SOURCES, NEWS_SOURCES

    table = Table(title="Sources")
    table.add_column("Kind", style="bold")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Enabled")
    table.add_column("URL")
    for source_id, cls in LADDER_SOURCES.items():
        enabled = "yes" if source_id in cfg.ladder_sources else "no"
        table.add_row("ladder", source_id, cls.name, enabled, cls.url)
    for source_id, cls in NEWS_SOURCES.items():
        enabled = "yes" if source_id in cfg.news_sources else "no"
        table.add_row("news", source_id, cls.name, enabled, cls.url)
    console.print(table)


@app.command("cache-clear")
def cache_clear(
    cache_path: Optional[str] = CachePathOption,
    log_level: Optional[str] = LogLevelOption,
) -> None:
    """Delete every cached ladder and news entry."""
    cfg = _get_settings(cache_path=cache_path, log_level=log_level)
    _setup_logging(cfg.log_level)

    from glorynews.pipeline import LADDER_CACHE_KEY

    async def _clear(ctx: Any) -> int:
        await ctx.cache.invalidate(LADDER_CACHE_KEY)
        return await ctx.news.clear_cache()

    removed = _run(cfg, _clear)
    console.print(f"[green]Cache cleared ({removed} news entries removed).[/]")


@app.command()
def validate(
    cache_path: Optional[str] = CachePathOption,
    log_level: Optional[str] = LogLevelOption,
) -> None:
    """Check configuration, cache write access and reachability of each source."""
    cfg = _get_settings(cache_path=cache_path, log_level=log_level)
    _setup_logging(cfg.log_level)

    checks: list[tuple[str, str, str]] = []

    try:
        from glorynews.storage.database import SqliteCache

        with SqliteCache(cfg.cache_path) as db:
            db.set("validate:write-check", "{}", ttl_seconds=1)
            db.delete("validate:write-check")
            stats = db.get_stats()
        checks.append(("Cache", "✅", f"{stats['entries']} entries at {stats['path']}"))
    except Exception as exc:
        checks.append(("Cache", "❌", str(exc)))

    async def _check_sources(ctx: Any) -> list:
        results = []
        for source in ctx.ladder.sources:
            entries = await source.fetch()
            results.append((f"ladder:{source.source_id}", len(entries)))
        for source in ctx.news.sources.values():
            articles = await source.fetch()
            results.append((f"news:{source.source_id}", len(articles)))
        return results

    for name, count in _run(cfg, _check_sources):
        checks.append((name, "✅" if count else "⚠️", f"{count} items"))

    table = Table(title="Validation Results")
    table.add_column("Check", style="bold")
    table.add_column("Status")
    table.add_column("Detail")
    for name, status, detail in checks:
        table.add_row(name, status, detail)
    console.print(table)

    # Config loaded OK; empty sources are informational.
    raise typer.Exit(0)


@app.command()
def schedule(
    cache_path: Optional[str] = CachePathOption,
    log_level: Optional[str] = LogLevelOption,
) -> None:
    """Start the APScheduler daemon (ladder + news refresh cron jobs)."""
    cfg = _get_settings(cache_path=cache_path, log_level=log_level)
    _setup_logging(cfg.log_level)

    from glorynews.scheduling.scheduler import RefreshScheduler

    console.print(
        f"[bold]Starting scheduler[/]  ladder={cfg.ladder_refresh_cron!r}  "
        f"news={cfg.news_refresh_cron!r}"
    )
    scheduler = RefreshScheduler(cfg)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        console.print("[yellow]Scheduler stopped.[/]")


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _print_ladder(table: Any) -> None:
    source_name = table.source.name if table.source else "Unknown"
    title = f"{table.league_name} {table.season}".strip()
    out = Table(title=title, caption=f"Source: {source_name}")
    out.add_column("#", style="bold", width=3)
    out.add_column("Team")
    for heading in ("P", "W", "D", "L", "GF", "GA", "GD", "Pts"):
        out.add_column(heading, justify="right")
    out.add_column("Form")
    for e in table.entries:
        style = "bold magenta" if e.is_local_team else None
        out.add_row(
            str(e.position),
            e.name,
            *(
                "—" if v is None else str(v)
                for v in (
                    e.played, e.won, e.drawn, e.lost,
                    e.goals_for, e.goals_against, e.goal_difference, e.points,
                )
            ),
            "".join(e.form),
            style=style,
        )
    console.print(out)
    if table.is_fallback:
        console.print("[yellow]Live sources unavailable; showing backup data.[/]")


def _print_articles(articles: list) -> None:
    if not articles:
        console.print("[dim]No articles.[/]")
        return
    table = Table(title="Latest News")
    table.add_column("Published", width=16)
    table.add_column("Source", width=8)
    table.add_column("Id")
    table.add_column("Title")
    for a in articles:
        table.add_row(
            f"{a.publish_date:%Y-%m-%d %H:%M}",
            a.metadata.source,
            a.id,
            (a.title or "")[:70],
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point registered in pyproject.toml."""
    app()


if __name__ == "__main__":
    main()
