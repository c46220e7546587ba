"""Main entry point for the basketball totals monitor."""

import asyncio
import signal
from datetime import timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv
from telegram.error import TelegramError

from .api.odds_service import OddsService
from .api.oddsapi import OddsApiClient
from .cache.game_cache import Clock, GameCache, utc_now
from .dashboard import ConnectionManager, create_app
from .engine.analyzer import BetAnalyzer
from .monitor.game_monitor import GameMonitor
from .telegram.bot import create_notifier_from_settings
from .telegram.commands import build_command_application, start_command_bot, stop_command_bot
from .tracking.bet_tracker import BetTracker
from .utils import ConfigManager, Settings, setup_logging
from .utils.logging import get_logger

logger = get_logger(__name__)


def is_within_active_hours(hour: int, start: int, end: int) -> bool:
    """Check an hour against an inclusive range that may wrap midnight."""
    if start <= end:
        return start <= hour <= end
    return hour >= start or hour <= end


class CourtsideSystem:
    """Main orchestrator for the totals monitor."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        config_dir: Optional[str] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Wire all components from settings.

        Args:
            settings: Settings to use instead of loading them
            config_dir: Optional path to config directory
            clock: Returns the current instant
        """
        self.config_manager = ConfigManager(config_dir)
        self.settings = settings or self.config_manager.get_settings()
        self.clock = clock or utc_now
        s = self.settings

        self.timezone = ZoneInfo(s.scheduler.timezone)

        self.api_client = OddsApiClient(
            api_key=s.odds_api.api_key,
            base_url=s.odds_api.base_url,
            timeout=s.odds_api.timeout_seconds,
        )
        self.cache = GameCache(
            clock=self.clock,
            schedule_ttl=timedelta(hours=s.cache.schedule_ttl_hours),
            live_ttl=timedelta(seconds=s.cache.live_ttl_seconds),
            retention=timedelta(hours=s.cache.retention_hours),
        )
        self.odds_service = OddsService(
            self.api_client,
            cache=self.cache,
            clock=self.clock,
            bookmaker=s.odds_api.bookmaker,
            bookmaker_title=s.odds_api.bookmaker_title,
            market=s.odds_api.market,
            regions=s.odds_api.regions,
            odds_format=s.odds_api.odds_format,
            fallback_sports=s.odds_api.fallback_sports,
            timezone_name=s.scheduler.timezone,
            lookback=timedelta(hours=s.gateway.lookback_hours),
            lookahead=timedelta(hours=s.gateway.lookahead_hours),
            target_period=s.window.target_period,
            target_seconds=s.window.target_seconds,
            tolerance_seconds=s.window.tolerance_seconds,
        )
        self.analyzer = BetAnalyzer(**s.analyzer.model_dump())
        self.telegram = create_notifier_from_settings(s)
        self.connections = ConnectionManager()
        self.monitor = GameMonitor(
            self.odds_service,
            self.analyzer,
            notifier=self.telegram,
            broadcaster=self.connections,
            dedup_max=s.monitor.dedup_max,
            dedup_keep=s.monitor.dedup_keep,
        )
        self.bet_tracker = BetTracker(
            data_dir=s.ledger.data_dir,
            read_only=s.ledger.read_only,
            clock=self.clock,
        )

        self.command_bot = None
        self.scheduler: Optional[AsyncIOScheduler] = None

    def is_active_hour(self) -> bool:
        """Check if games are worth polling at the current local hour."""
        hour = self.clock().astimezone(self.timezone).hour
        return is_within_active_hours(
            hour,
            self.settings.scheduler.active_start_hour,
            self.settings.scheduler.active_end_hour,
        )

    async def daily_refresh(self) -> None:
        logger.info("Daily schedule refresh...")
        await self.odds_service.initialize_todays_games()

    async def monitoring_tick(self) -> None:
        """Run a monitoring check if inside the active hours."""
        if not self.is_active_hour():
            return
        await self.monitor.check_games()

    async def cache_cleanup(self) -> None:
        removed = self.odds_service.cleanup_cache()
        logger.info(f"Cache cleanup completed ({removed} removed)")

    def build_scheduler(self) -> AsyncIOScheduler:
        """Create the scheduler with the three background jobs."""
        s = self.settings.scheduler
        scheduler = AsyncIOScheduler(timezone=self.timezone)

        scheduler.add_job(
            self.daily_refresh,
            CronTrigger(hour=s.daily_refresh_hour, minute=0, timezone=self.timezone),
            id="daily_refresh",
            replace_existing=True,
        )
        scheduler.add_job(
            self.monitoring_tick,
            IntervalTrigger(seconds=s.check_interval_seconds),
            id="monitoring_tick",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.add_job(
            self.cache_cleanup,
            CronTrigger(minute=0, timezone=self.timezone),
            id="cache_cleanup",
            replace_existing=True,
        )
        return scheduler

    def start_scheduler(self) -> None:
        """Start the background scheduler."""
        self.scheduler = self.build_scheduler()
        self.scheduler.start()
        logger.info(
            f"Scheduler started: checks every {self.settings.scheduler.check_interval_seconds}s "
            f"between {self.settings.scheduler.active_start_hour}:00 and "
            f"{self.settings.scheduler.active_end_hour}:59 {self.settings.scheduler.timezone}"
        )

    async def start_telegram(self) -> None:
        """Send the startup ping and start the command bot.

        Telegram being unreachable only costs the ping and the commands;
        monitoring still starts.
        """
        try:
            await self.telegram.send_startup_message()
        except TelegramError as e:
            logger.warning(f"Startup message not delivered: {e}")

        if not self.settings.telegram.commands_enabled:
            return

        app = build_command_application(self.settings.telegram.bot_token)
        try:
            await start_command_bot(app)
        except TelegramError as e:
            logger.warning(f"Command bot not started: {e}")
            return
        self.command_bot = app

    async def shutdown(self) -> None:
        """Shutdown all components."""
        logger.info("Shutting down...")

        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None

        if self.command_bot:
            await stop_command_bot(self.command_bot)
            self.command_bot = None

        await self.api_client.close()

    async def run(self) -> None:
        """Run the complete system with web dashboard."""
        if not self.settings.odds_api.api_key:
            logger.warning("ODDS_API_KEY not configured; upstream calls will fail")

        app = create_app(
            odds_service=self.odds_service,
            monitor=self.monitor,
            bet_tracker=self.bet_tracker,
            connections=self.connections,
            cors_origins=self.settings.dashboard.cors_origins,
        )

        if self.telegram:
            logger.info("Telegram notifier initialized")
            await self.start_telegram()
        else:
            logger.warning("Telegram not configured")

        logger.info("Initializing basketball bet tracker...")
        await self.odds_service.initialize_todays_games()
        logger.info("Initialization complete")

        self.start_scheduler()

        config = uvicorn.Config(
            app,
            host=self.settings.dashboard.host,
            port=self.settings.dashboard.port,
            log_level="info",
        )
        server = uvicorn.Server(config)

        loop = asyncio.get_running_loop()

        def signal_handler():
            logger.info("Received shutdown signal")
            server.should_exit = True

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, signal_handler)
            except NotImplementedError:
                # Windows doesn't support add_signal_handler
                signal.signal(sig, lambda s, f: signal_handler())

        logger.info(f"Dashboard on http://{self.settings.dashboard.host}:{self.settings.dashboard.port}")
        await server.serve()


async def main():
    """Main entry point."""
    load_dotenv()
    setup_logging(level="INFO")

    logger.info("Basketball totals monitor starting...")

    system = CourtsideSystem()

    try:
        await system.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        await system.shutdown()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
