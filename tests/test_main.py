"""Tests for the system orchestrator and its scheduled jobs."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import uvicorn
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from telegram.error import NetworkError

from courtside.main import CourtsideSystem, is_within_active_hours
from courtside.utils.config import LedgerConfig, Settings, TelegramConfig

from conftest import FakeClock


@pytest.fixture
def settings(tmp_path):
    return Settings(ledger=LedgerConfig(data_dir=str(tmp_path)))


@pytest.fixture
def system(settings, clock, tmp_path):
    return CourtsideSystem(settings=settings, config_dir=str(tmp_path), clock=clock)


class TestActiveHours:
    @pytest.mark.parametrize("hour", [12, 18, 23, 0, 3])
    def test_inside_wrapping_range(self, hour):
        assert is_within_active_hours(hour, 12, 3)

    @pytest.mark.parametrize("hour", [4, 8, 11])
    def test_outside_wrapping_range(self, hour):
        assert not is_within_active_hours(hour, 12, 3)

    def test_plain_range(self):
        assert is_within_active_hours(10, 9, 17)
        assert not is_within_active_hours(18, 9, 17)


class TestCourtsideSystem:
    """Tests for component wiring."""

    def test_wires_components(self, system):
        assert system.monitor.odds_service is system.odds_service
        assert system.monitor.broadcaster is system.connections
        assert system.odds_service.cache is system.cache
        assert system.odds_service.bookmaker == "fanduel"
        assert system.analyzer.min_edge == 10.0
        assert system.telegram is None

    def test_telegram_enabled_from_settings(self, tmp_path, clock):
        settings = Settings(
            telegram=TelegramConfig(bot_token="t", chat_id="c"),
            ledger=LedgerConfig(data_dir=str(tmp_path)),
        )
        system = CourtsideSystem(settings=settings, config_dir=str(tmp_path), clock=clock)

        assert system.monitor.notifier is system.telegram
        assert system.telegram.chat_id == "c"

    def test_is_active_hour_uses_local_time(self, settings, tmp_path):
        # 20:00 UTC is 15:00 in New York
        afternoon = FakeClock(datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc))
        assert CourtsideSystem(settings=settings, config_dir=str(tmp_path), clock=afternoon).is_active_hour()

        # 13:00 UTC is 08:00 in New York
        morning = FakeClock(datetime(2024, 3, 1, 13, 0, tzinfo=timezone.utc))
        assert not CourtsideSystem(settings=settings, config_dir=str(tmp_path), clock=morning).is_active_hour()

        # 08:30 UTC is 03:30 in New York, still inside the late window
        late = FakeClock(datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc))
        assert CourtsideSystem(settings=settings, config_dir=str(tmp_path), clock=late).is_active_hour()


class TestJobs:
    """Tests for the scheduled job bodies."""

    @pytest.mark.asyncio
    async def test_monitoring_tick_runs_in_active_hours(self, system):
        system.monitor.check_games = AsyncMock(return_value=[])

        await system.monitoring_tick()

        system.monitor.check_games.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_monitoring_tick_idle_outside_active_hours(self, settings, tmp_path):
        morning = FakeClock(datetime(2024, 3, 1, 13, 0, tzinfo=timezone.utc))
        system = CourtsideSystem(settings=settings, config_dir=str(tmp_path), clock=morning)
        system.monitor.check_games = AsyncMock(return_value=[])

        await system.monitoring_tick()

        system.monitor.check_games.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_daily_refresh(self, system):
        system.odds_service.initialize_todays_games = AsyncMock()

        await system.daily_refresh()

        system.odds_service.initialize_todays_games.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cache_cleanup(self, system):
        system.odds_service.cleanup_cache = MagicMock(return_value=2)

        await system.cache_cleanup()

        system.odds_service.cleanup_cache.assert_called_once()


class TestScheduler:
    def test_jobs_registered(self, system):
        scheduler = system.build_scheduler()

        jobs = {job.id: job for job in scheduler.get_jobs()}

        assert set(jobs) == {"daily_refresh", "monitoring_tick", "cache_cleanup"}
        assert isinstance(jobs["daily_refresh"].trigger, CronTrigger)
        assert isinstance(jobs["cache_cleanup"].trigger, CronTrigger)

        tick = jobs["monitoring_tick"]
        assert isinstance(tick.trigger, IntervalTrigger)
        assert tick.trigger.interval.total_seconds() == 30
        assert tick.max_instances == 1
        assert tick.coalesce is True

    def test_daily_refresh_at_eight(self, system):
        scheduler = system.build_scheduler()
        trigger = scheduler.get_job("daily_refresh").trigger

        fields = {f.name: str(f) for f in trigger.fields}
        assert fields["hour"] == "8"
        assert fields["minute"] == "0"

    @pytest.mark.asyncio
    async def test_shutdown_closes_client(self, system):
        system.api_client.close = AsyncMock()

        await system.shutdown()

        system.api_client.close.assert_awaited_once()


class TestRun:
    """Tests for startup when Telegram is unreachable."""

    @pytest.fixture
    def telegram_system(self, tmp_path, clock):
        settings = Settings(
            telegram=TelegramConfig(bot_token="t", chat_id="c", commands_enabled=True),
            ledger=LedgerConfig(data_dir=str(tmp_path)),
        )
        system = CourtsideSystem(settings=settings, config_dir=str(tmp_path), clock=clock)
        system.telegram._bot = MagicMock()
        system.telegram._bot.send_message = AsyncMock(side_effect=NetworkError("down"))
        system.odds_service.initialize_todays_games = AsyncMock()
        system.start_scheduler = MagicMock()
        return system

    @pytest.mark.asyncio
    async def test_startup_message_failure_does_not_stop_monitoring(self, telegram_system):
        with patch("courtside.main.build_command_application"), \
                patch("courtside.main.start_command_bot", AsyncMock()), \
                patch.object(uvicorn.Server, "serve", AsyncMock()) as serve:
            await telegram_system.run()

        telegram_system.telegram._bot.send_message.assert_awaited_once()
        telegram_system.odds_service.initialize_todays_games.assert_awaited_once()
        telegram_system.start_scheduler.assert_called_once()
        serve.assert_awaited_once()
        assert telegram_system.command_bot is not None

    @pytest.mark.asyncio
    async def test_command_bot_failure_does_not_stop_monitoring(self, telegram_system):
        with patch("courtside.main.build_command_application"), \
                patch("courtside.main.start_command_bot", AsyncMock(side_effect=NetworkError("down"))), \
                patch.object(uvicorn.Server, "serve", AsyncMock()) as serve:
            await telegram_system.run()

        telegram_system.odds_service.initialize_todays_games.assert_awaited_once()
        serve.assert_awaited_once()
        assert telegram_system.command_bot is None
