"""Gateway between the monitor and The Odds API.

All upstream traffic goes through OddsService. Before each billable call it
asks the GameCache whether the data it holds is stale, so quota is only spent
on games that need a refresh.
"""

import logging
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from ..cache.game_cache import Clock, GameCache, utc_now
from ..engine.window import is_target_window
from .models import BettingLine, Game, ScheduledGame
from .oddsapi import OddsApiClient, OddsApiError, UnsupportedEndpointError

logger = logging.getLogger(__name__)

BASKETBALL_GROUP = "Basketball"
DEFAULT_SPORT = "basketball_nba"

FALLBACK_SPORTS = [
    "basketball_nba",
    "basketball_ncaab",
    "basketball_wnba",
    "basketball_euroleague",
    "basketball_nbl",
]


def league_label(sport_key: str) -> str:
    """basketball_nba -> NBA"""
    return sport_key.replace("basketball_", "").upper()


def extract_totals_line(
    game: Game,
    bookmaker_key: str,
    bookmaker_title: str,
    market_key: str = "totals",
) -> Optional[BettingLine]:
    """Pull the Over/Under line one bookmaker posted for a game."""
    book = game.bookmaker(bookmaker_key)
    if book is None:
        return None

    market = book.market(market_key)
    if market is None:
        return None

    over = market.outcome("Over")
    under = market.outcome("Under")
    if over is None or under is None or over.point is None:
        return None

    return BettingLine(
        bookmaker=bookmaker_title,
        total=over.point,
        over_price=over.price,
        under_price=under.price,
    )


class OddsService:
    """Fetches schedules, live games and lines while conserving quota."""

    def __init__(
        self,
        client: OddsApiClient,
        cache: Optional[GameCache] = None,
        clock: Optional[Clock] = None,
        bookmaker: str = "fanduel",
        bookmaker_title: str = "FanDuel",
        market: str = "totals",
        regions: str = "us",
        odds_format: str = "american",
        fallback_sports: Optional[List[str]] = None,
        timezone_name: str = "America/New_York",
        lookback: timedelta = timedelta(hours=4),
        lookahead: timedelta = timedelta(hours=2),
        target_period: int = 3,
        target_seconds: int = 7 * 60,
        tolerance_seconds: int = 30,
    ):
        """
        Initialize the service.

        Args:
            client: The Odds API client
            cache: Game cache; one is created with the same clock if omitted
            clock: Returns the current instant
            bookmaker: Bookmaker key whose lines are required
            bookmaker_title: Display name for that bookmaker
            market: Market key to request
            regions: Bookmaker regions
            odds_format: Price format
            fallback_sports: Leagues to use when discovery fails
            timezone_name: Timezone that defines "today" for the schedule
            lookback: How long after tip-off a scheduled game stays a candidate
            lookahead: How long before tip-off a scheduled game becomes a candidate
            target_period: Period of the alert window
            target_seconds: Clock value at the centre of the alert window
            tolerance_seconds: Half-width of the alert window
        """
        self.client = client
        self.clock = clock or utc_now
        self.cache = cache or GameCache(clock=self.clock)
        self.bookmaker = bookmaker
        self.bookmaker_title = bookmaker_title
        self.market = market
        self.regions = regions
        self.odds_format = odds_format
        self.fallback_sports = list(fallback_sports or FALLBACK_SPORTS)
        self.timezone = ZoneInfo(timezone_name)
        self.lookback = lookback
        self.lookahead = lookahead
        self.target_period = target_period
        self.target_seconds = target_seconds
        self.tolerance_seconds = tolerance_seconds

        self._basketball_sports: List[str] = []

    async def get_all_basketball_sports(self) -> List[str]:
        """Discover basketball leagues, falling back to a static list.

        A successful discovery is kept for the life of the process. The
        fallback is not kept, so the next call retries discovery.
        """
        if self._basketball_sports:
            return self._basketball_sports

        try:
            sports = await self.client.get_sports(all_sports=True)
        except OddsApiError as e:
            logger.error(f"Error fetching sports, using fallback list: {e}")
            return list(self.fallback_sports)

        self._basketball_sports = [s.key for s in sports if s.group == BASKETBALL_GROUP]
        logger.info(f"Found {len(self._basketball_sports)} basketball leagues: {self._basketball_sports}")
        return self._basketball_sports

    def _today_bounds(self) -> tuple:
        """Start and end of the local calendar day."""
        local_now = self.clock().astimezone(self.timezone)
        start = datetime.combine(local_now.date(), time.min, tzinfo=self.timezone)
        end = datetime.combine(local_now.date(), time(23, 59, 59), tzinfo=self.timezone)
        return start, end

    def _to_scheduled(self, game: Game, sport: str) -> ScheduledGame:
        return ScheduledGame(
            game_id=game.id,
            start_time=game.commence_time,
            teams=game.display_name,
            sport_key=sport,
            league=league_label(sport),
        )

    async def _fetch_league_schedule(self, sport: str, start: datetime, end: datetime) -> List[ScheduledGame]:
        """Scheduled games with a posted line plus live games for one league."""
        odds_games = await self.client.get_odds(
            sport,
            regions=self.regions,
            markets=self.market,
            bookmakers=self.bookmaker,
            odds_format=self.odds_format,
            commence_time_from=start,
            commence_time_to=end,
        )

        live_games: List[Game] = []
        try:
            live_games = await self.client.get_scores(sport)
        except UnsupportedEndpointError:
            logger.info(f"{sport} doesn't support live scores - using odds only")

        scheduled = [
            self._to_scheduled(g, sport) for g in odds_games
            if g.has_bookmaker(self.bookmaker) and g.commence_time is not None
        ]
        live = [
            self._to_scheduled(g, sport) for g in live_games
            if not g.completed and g.has_scores and g.commence_time is not None
        ]

        unique: Dict[str, ScheduledGame] = {}
        for entry in scheduled + live:
            unique.setdefault(entry.game_id, entry)

        logger.info(
            f"Found {len(scheduled)} {self.bookmaker_title} scheduled + "
            f"{len(live)} live {sport} games"
        )
        return list(unique.values())

    async def initialize_todays_games(self) -> None:
        """Build today's schedule across all basketball leagues."""
        if not self.cache.should_refresh_schedule():
            logger.info("Using cached schedule")
            return

        sports = await self.get_all_basketball_sports()
        logger.info(f"Fetching today's games from {len(sports)} basketball leagues...")
        start, end = self._today_bounds()

        all_games: List[ScheduledGame] = []
        for sport in sports:
            try:
                all_games.extend(await self._fetch_league_schedule(sport, start, end))
            except UnsupportedEndpointError:
                logger.info(f"{sport} not supported or no games available - skipping")
            except OddsApiError as e:
                logger.error(f"Error fetching {sport} games: {e}")

        self.cache.set_todays_schedule(all_games)
        logger.info(f"Initialized {len(all_games)} total games for today")

    def _candidates(self) -> List[ScheduledGame]:
        """Scheduled games that started recently or start soon."""
        now = self.clock()
        return [
            scheduled for scheduled in self.cache.get_todays_schedule()
            if -self.lookback <= scheduled.start_time - now <= self.lookahead
        ]

    async def get_active_games(self) -> List[Game]:
        """Refresh live games that have a posted line.

        Games the cache considers fresh are skipped and not returned.
        """
        candidates = self._candidates()
        logger.info(f"Monitoring {len(candidates)} games from today's schedule")

        # One scores fetch per league per call; None marks an unsupported league
        league_scores: Dict[str, Optional[Dict[str, Game]]] = {}
        active: List[Game] = []

        for scheduled in candidates:
            if not self.cache.should_update_game(scheduled.game_id):
                continue

            sport = scheduled.sport_key
            try:
                if sport not in league_scores:
                    try:
                        games = await self.client.get_scores(sport)
                        league_scores[sport] = {g.id: g for g in games}
                    except UnsupportedEndpointError:
                        logger.info(f"{sport} doesn't support live scores - skipping")
                        league_scores[sport] = None

                scores = league_scores[sport]
                if scores is None:
                    continue

                game_data = scores.get(scheduled.game_id)
                if game_data is None or game_data.completed or not game_data.has_scores:
                    continue

                logger.info(
                    f"LIVE GAME: {game_data.display_name} - "
                    f"Q{game_data.scores.period} {game_data.scores.time_remaining}"
                )

                odds = await self.client.get_odds(
                    sport,
                    regions=self.regions,
                    markets=self.market,
                    bookmakers=self.bookmaker,
                    odds_format=self.odds_format,
                    event_ids=[scheduled.game_id],
                )
                game_odds = odds[0] if odds else None
                if game_odds is None or not game_odds.has_bookmaker(self.bookmaker):
                    logger.info(f"No {self.bookmaker_title} lines: {game_data.display_name}")
                    continue

                game = game_data.model_copy(update={"bookmakers": game_odds.bookmakers})
                self.cache.update_game(scheduled.game_id, game)
                active.append(game)

                if self.is_target_window(game):
                    logger.info(
                        f"3RD QUARTER TARGET: {game.display_name} at "
                        f"Q{game.scores.period} {game.scores.time_remaining}"
                    )
            except UnsupportedEndpointError:
                logger.info(f"{scheduled.league} doesn't support live monitoring - skipping {scheduled.teams}")
            except OddsApiError as e:
                logger.error(f"Error checking game {scheduled.game_id}: {e}")

        in_window = sum(1 for g in active if self.is_target_window(g))
        logger.info(f"Found {len(active)} live games | {in_window} in 3rd Q target window")
        return active

    def _sport_for(self, game_id: str) -> str:
        cached = self.cache.get_game(game_id)
        if cached and cached.game.sport_key:
            return cached.game.sport_key
        for scheduled in self.cache.get_todays_schedule():
            if scheduled.game_id == game_id:
                return scheduled.sport_key
        return DEFAULT_SPORT

    async def get_bookmaker_lines(self, game_id: str, sport_key: Optional[str] = None) -> List[BettingLine]:
        """Get the target bookmaker's total line for a single game.

        Returns an empty list when the line is missing or the call fails.
        """
        sport = sport_key or self._sport_for(game_id)
        try:
            games = await self.client.get_odds(
                sport,
                regions=self.regions,
                markets=self.market,
                bookmakers=self.bookmaker,
                odds_format=self.odds_format,
                event_ids=[game_id],
            )
        except OddsApiError as e:
            logger.error(f"Error fetching {self.bookmaker_title} lines for {game_id}: {e}")
            return []

        if not games:
            return []

        line = extract_totals_line(games[0], self.bookmaker, self.bookmaker_title, self.market)
        return [line] if line else []

    def is_target_window(self, game: Game) -> bool:
        return is_target_window(
            game,
            target_period=self.target_period,
            target_seconds=self.target_seconds,
            tolerance_seconds=self.tolerance_seconds,
        )

    def get_request_count(self) -> int:
        return self.client.request_count

    def get_cache_stats(self) -> dict:
        return self.cache.get_stats()

    def get_games_to_monitor(self) -> List[Game]:
        return [cached.game for cached in self.cache.get_games_to_monitor()]

    def cleanup_cache(self) -> int:
        return self.cache.cleanup_old_games()

    def get_upcoming_games(self) -> List[ScheduledGame]:
        return self.cache.get_todays_schedule()
