"""Tests for the monitoring pipeline."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import TelegramError

from courtside.api.models import BettingLine
from courtside.engine.analyzer import BetAnalyzer
from courtside.engine.window import is_target_window
from courtside.monitor.game_monitor import OPPORTUNITIES_EVENT, GameMonitor, dedup_key

from conftest import make_game


def fanduel_line(total):
    return BettingLine(bookmaker="FanDuel", total=total, over_price=-110, under_price=-110)


@pytest.fixture
def odds_service():
    service = MagicMock()
    service.get_active_games = AsyncMock(return_value=[])
    service.get_bookmaker_lines = AsyncMock(return_value=[fanduel_line(88)])
    service.is_target_window = MagicMock(side_effect=is_target_window)
    return service


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.send_opportunity_alert = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def broadcaster():
    broadcaster = MagicMock()
    broadcaster.broadcast = AsyncMock()
    return broadcaster


@pytest.fixture
def monitor(odds_service, notifier, broadcaster):
    return GameMonitor(odds_service, BetAnalyzer(), notifier=notifier, broadcaster=broadcaster)


def test_dedup_key():
    assert dedup_key(make_game("abc", period=3, time_remaining="7:00")) == "abc-3-7:00"


class TestCheckGames:
    """Tests for one monitoring tick."""

    @pytest.mark.asyncio
    async def test_alerts_on_in_window_opportunity(self, monitor, odds_service, notifier, broadcaster):
        game = make_game("g1", home_score=40, away_score=38, period=3, time_remaining="7:00")
        odds_service.get_active_games.return_value = [game]

        opportunities = await monitor.check_games()

        assert len(opportunities) == 1
        assert opportunities[0].game_id == "g1"
        assert opportunities[0].recommendations[0].action == "OVER"
        odds_service.get_bookmaker_lines.assert_awaited_once_with("g1", "basketball_nba")
        notifier.send_opportunity_alert.assert_awaited_once_with(opportunities[0])
        assert "g1-3-7:00" in monitor.processed_games

        broadcaster.broadcast.assert_awaited_once()
        event, payload = broadcaster.broadcast.call_args.args
        assert event == OPPORTUNITIES_EVENT
        assert payload[0]["game_id"] == "g1"

    @pytest.mark.asyncio
    async def test_out_of_window_games_are_not_analyzed(self, monitor, odds_service, notifier):
        odds_service.get_active_games.return_value = [
            make_game("q2", period=2, time_remaining="7:00"),
            make_game("early", period=3, time_remaining="9:00"),
        ]

        assert await monitor.check_games() == []
        odds_service.get_bookmaker_lines.assert_not_awaited()
        notifier.send_opportunity_alert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_state_alerts_once(self, monitor, odds_service, notifier):
        odds_service.get_active_games.return_value = [make_game("g1", time_remaining="7:00")]

        await monitor.check_games()
        await monitor.check_games()

        assert notifier.send_opportunity_alert.await_count == 1

    @pytest.mark.asyncio
    async def test_new_clock_value_alerts_again(self, monitor, odds_service, notifier):
        odds_service.get_active_games.return_value = [make_game("g1", time_remaining="7:00")]
        await monitor.check_games()

        odds_service.get_active_games.return_value = [make_game("g1", time_remaining="6:45")]
        await monitor.check_games()

        assert notifier.send_opportunity_alert.await_count == 2

    @pytest.mark.asyncio
    async def test_no_edge_is_not_marked_processed(self, monitor, odds_service, notifier):
        odds_service.get_active_games.return_value = [make_game("g1")]
        odds_service.get_bookmaker_lines.return_value = [fanduel_line(100)]

        assert await monitor.check_games() == []
        assert monitor.processed_games == {}
        notifier.send_opportunity_alert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_lines(self, monitor, odds_service, notifier):
        odds_service.get_active_games.return_value = [make_game("g1")]
        odds_service.get_bookmaker_lines.return_value = []

        assert await monitor.check_games() == []
        notifier.send_opportunity_alert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_snapshot_reset_each_tick(self, monitor, odds_service):
        odds_service.get_active_games.return_value = [make_game("g1")]
        await monitor.check_games()
        assert len(monitor.get_current_opportunities()) == 1

        odds_service.get_active_games.return_value = []
        await monitor.check_games()
        assert monitor.get_current_opportunities() == []

    @pytest.mark.asyncio
    async def test_telegram_failure_does_not_break_tick(self, monitor, odds_service, notifier, broadcaster):
        notifier.send_opportunity_alert.side_effect = TelegramError("flood")
        odds_service.get_active_games.return_value = [make_game("g1")]

        opportunities = await monitor.check_games()

        assert len(opportunities) == 1
        assert "g1-3-7:00" in monitor.processed_games
        broadcaster.broadcast.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gateway_failure_still_broadcasts(self, monitor, odds_service, broadcaster):
        odds_service.get_active_games.side_effect = RuntimeError("boom")

        assert await monitor.check_games() == []
        broadcaster.broadcast.assert_awaited_once_with(OPPORTUNITIES_EVENT, [])

    @pytest.mark.asyncio
    async def test_works_without_notifier_or_broadcaster(self, odds_service):
        monitor = GameMonitor(odds_service, BetAnalyzer())
        odds_service.get_active_games.return_value = [make_game("g1")]

        assert len(await monitor.check_games()) == 1

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self, monitor, odds_service):
        release = asyncio.Event()

        async def slow_active_games():
            await release.wait()
            return []

        odds_service.get_active_games.side_effect = slow_active_games

        first = asyncio.create_task(monitor.check_games())
        await asyncio.sleep(0)
        assert monitor.is_running

        await monitor.check_games()
        assert odds_service.get_active_games.await_count == 1

        release.set()
        await first
        assert not monitor.is_running


class TestDedupTrimming:
    def test_trims_to_most_recent(self, monitor):
        for i in range(101):
            monitor.processed_games[f"g{i}-3-7:00"] = None

        monitor.cleanup_processed_games()

        keys = list(monitor.processed_games)
        assert len(keys) == 50
        assert keys[0] == "g51-3-7:00"
        assert keys[-1] == "g100-3-7:00"

    def test_no_trim_at_limit(self, monitor):
        for i in range(100):
            monitor.processed_games[f"g{i}"] = None

        monitor.cleanup_processed_games()

        assert len(monitor.processed_games) == 100

    @pytest.mark.asyncio
    async def test_trim_runs_after_alert(self, odds_service):
        monitor = GameMonitor(odds_service, BetAnalyzer(), dedup_max=2, dedup_keep=1)
        for clock in ("7:30", "7:15", "7:00"):
            odds_service.get_active_games.return_value = [make_game("g1", time_remaining=clock)]
            await monitor.check_games()

        assert list(monitor.processed_games) == ["g1-3-7:00"]
