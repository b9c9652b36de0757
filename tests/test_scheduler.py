"""Tests for the APScheduler refresh daemon."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from glorynews.models import RefreshSummary
from glorynews.scheduling.scheduler import RefreshScheduler, _cron_trigger
from glorynews.sources.backup import backup_table


class FakeContext:
    def __init__(self, ladder_error=None, news_error=None):
        self.ladder = MagicMock()
        self.ladder.refresh_standings = AsyncMock(
            return_value=backup_table(), side_effect=ladder_error
        )
        self.news = MagicMock()
        self.news.refresh_all = AsyncMock(
            return_value=RefreshSummary(total=4), side_effect=news_error
        )
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        self.closed = True


class TestRegistration:
    def test_registers_both_jobs(self, settings):
        backend = MagicMock()
        RefreshScheduler(settings, scheduler=backend).register()
        ids = [c.kwargs["id"] for c in backend.add_job.call_args_list]
        assert ids == ["ladder_refresh", "news_refresh"]
        assert all(c.kwargs["replace_existing"] for c in backend.add_job.call_args_list)

    def test_start_registers_then_blocks(self, settings):
        backend = MagicMock()
        RefreshScheduler(settings, scheduler=backend).start()
        assert backend.add_job.call_count == 2
        backend.start.assert_called_once()

    def test_stop_only_when_running(self, settings):
        backend = MagicMock(running=False)
        RefreshScheduler(settings, scheduler=backend).stop()
        backend.shutdown.assert_not_called()
        backend.running = True
        RefreshScheduler(settings, scheduler=backend).stop()
        backend.shutdown.assert_called_once_with(wait=False)

    def test_invalid_cron_rejected(self, settings):
        settings.ladder_refresh_cron = "every 15 minutes"
        with pytest.raises(ValueError, match="ladder_refresh_cron"):
            RefreshScheduler(settings, scheduler=MagicMock()).register()

    def test_cron_fields(self):
        trigger = _cron_trigger("5,20,35,50 * * * *", "news_refresh_cron")
        fields = {f.name: str(f) for f in trigger.fields}
        assert fields["minute"] == "5,20,35,50"


class TestJobs:
    def test_ladder_job_refreshes(self, settings):
        fake = FakeContext()
        RefreshScheduler(settings, scheduler=MagicMock(), context_factory=lambda cfg: fake).run_ladder_refresh()
        fake.ladder.refresh_standings.assert_awaited_once()
        assert fake.closed

    def test_news_job_refreshes(self, settings):
        fake = FakeContext()
        RefreshScheduler(settings, scheduler=MagicMock(), context_factory=lambda cfg: fake).run_news_refresh()
        fake.news.refresh_all.assert_awaited_once()

    def test_failures_logged_not_raised(self, settings, caplog):
        fake = FakeContext(ladder_error=RuntimeError("db locked"), news_error=RuntimeError("db locked"))
        sched = RefreshScheduler(settings, scheduler=MagicMock(), context_factory=lambda cfg: fake)
        with caplog.at_level(logging.ERROR, logger="glorynews.scheduling.scheduler"):
            sched.run_ladder_refresh()
            sched.run_news_refresh()
        messages = [r.getMessage() for r in caplog.records]
        assert "scheduled_ladder_failed" in messages
        assert "scheduled_news_failed" in messages
        assert fake.closed
