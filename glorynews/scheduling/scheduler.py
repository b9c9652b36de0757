"""APScheduler daemon that keeps the ladder and news caches warm."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from glorynews.config import Settings

logger = logging.getLogger(__name__)


def _cron_trigger(expression: str, label: str) -> CronTrigger:
    parts = expression.split()
    if len(parts) != 5:
        raise ValueError(f"Invalid {label}: {expression!r}")
    minute, hour, day, month, day_of_week = parts
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=day_of_week,
        timezone="UTC",
    )


class RefreshScheduler:
    """Wraps APScheduler BlockingScheduler with ladder and news refresh jobs.

    Each job opens its own :class:`~glorynews.context.AppContext` and runs one
    refresh on a fresh event loop; failures are logged and the schedule keeps
    going.
    """

    def __init__(
        self,
        config: Settings,
        scheduler: Optional[BlockingScheduler] = None,
        context_factory: Optional[Callable[[Settings], object]] = None,
    ) -> None:
        self.config = config
        self._scheduler = scheduler or BlockingScheduler(timezone="UTC")
        self._context_factory = context_factory

    def register(self) -> None:
        self._scheduler.add_job(
            func=self.run_ladder_refresh,
            trigger=_cron_trigger(self.config.ladder_refresh_cron, "ladder_refresh_cron"),
            id="ladder_refresh",
            name="Ladder refresh",
            replace_existing=True,
        )
        self._scheduler.add_job(
            func=self.run_news_refresh,
            trigger=_cron_trigger(self.config.news_refresh_cron, "news_refresh_cron"),
            id="news_refresh",
            name="News refresh",
            replace_existing=True,
        )
        logger.info("jobs_registered", extra={"jobs": ["ladder_refresh", "news_refresh"]})

    def start(self) -> None:
        """Register jobs and block running them."""
        self.register()
        logger.info(
            "scheduler_starting",
            extra={
                "ladder_cron": self.config.ladder_refresh_cron,
                "news_cron": self.config.news_refresh_cron,
            },
        )
        self._scheduler.start()

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def run_ladder_refresh(self) -> None:
        try:
            table = asyncio.run(self._ladder_refresh())
            logger.info(
                "scheduled_ladder_done",
                extra={"source": table.source.name if table.source else "", "fallback": table.is_fallback},
            )
        except Exception as exc:
            logger.error("scheduled_ladder_failed", extra={"error": str(exc)}, exc_info=True)

    def run_news_refresh(self) -> None:
        try:
            summary = asyncio.run(self._news_refresh())
            logger.info("scheduled_news_done", extra={"total": summary.total})
        except Exception as exc:
            logger.error("scheduled_news_failed", extra={"error": str(exc)}, exc_info=True)

    def _context(self):
        if self._context_factory is not None:
            return self._context_factory(self.config)
        from glorynews.context import AppContext

        return AppContext(self.config)

    async def _ladder_refresh(self):
        async with self._context() as ctx:
            return await ctx.ladder.refresh_standings()

    async def _news_refresh(self):
        async with self._context() as ctx:
            return await ctx.news.refresh_all()
