"""The Odds API client for basketball totals and live scores.

This client integrates with The Odds API (v4) to fetch:
- The list of available sports/leagues (quota-free)
- Odds with the totals market for one sportsbook
- Live scores per league

API Documentation: https://the-odds-api.com/liveapi/guides/v4/
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .models import Game, Sport

logger = logging.getLogger(__name__)

UNPROCESSABLE = 422


class OddsApiError(Exception):
    """Exception raised for The Odds API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnsupportedEndpointError(OddsApiError):
    """The league does not support the requested endpoint."""
    pass


def format_commence_time(moment: datetime) -> str:
    """Format an instant the way the commenceTime filters expect it."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class OddsApiClient:
    """Client for The Odds API.

    Provides access to:
    - /sports: Sport discovery (does not count against quota)
    - /sports/{sport}/odds: Odds for upcoming and live games
    - /sports/{sport}/scores: Live and recently completed scores

    Every successful billable call increments ``request_count``.
    """

    BASE_URL = "https://api.the-odds-api.com/v4"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        """
        Initialize The Odds API client.

        Args:
            api_key: The Odds API key
            base_url: Override for the API base URL
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self.request_count = 0
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        billable: bool = True,
    ) -> Any:
        """Make a GET request.

        Args:
            endpoint: API endpoint
            params: Query parameters (apiKey added automatically)
            billable: Whether the call counts against quota

        Returns:
            Decoded JSON response
        """
        client = await self._get_client()

        if params is None:
            params = {}
        params["apiKey"] = self.api_key

        try:
            response = await client.get(endpoint, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == UNPROCESSABLE:
                raise UnsupportedEndpointError(
                    f"Endpoint not supported: {endpoint}", status_code=status
                ) from e
            logger.error(f"HTTP error {status} on {endpoint}: {e.response.text[:500]}")
            raise OddsApiError(f"API error: {status}", status_code=status) from e
        except httpx.RequestError as e:
            logger.error(f"Request error on {endpoint}: {e}")
            raise OddsApiError(f"Request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON on {endpoint}: {response.text[:200]}")
            raise OddsApiError("Invalid JSON response", status_code=response.status_code) from e

        if billable:
            self.request_count += 1
            logger.info(f"API request #{self.request_count} - {endpoint}")

        return data

    @staticmethod
    def _parse_games(items: Any) -> List[Game]:
        """Parse a list of game objects, skipping malformed entries."""
        if not isinstance(items, list):
            return []

        games = []
        for item in items:
            try:
                games.append(Game.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed game {item.get('id') if isinstance(item, dict) else item!r}: {e}")
        return games

    async def get_sports(self, all_sports: bool = True) -> List[Sport]:
        """Get the list of sports.

        Args:
            all_sports: Include out-of-season sports

        Returns:
            List of Sport objects
        """
        params = {"all": "true"} if all_sports else {}
        data = await self._request("/sports", params=params, billable=False)

        sports = []
        for item in data if isinstance(data, list) else []:
            try:
                sports.append(Sport.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed sport entry: {e}")
        return sports

    async def get_odds(
        self,
        sport: str,
        regions: str = "us",
        markets: str = "totals",
        bookmakers: Optional[str] = None,
        odds_format: str = "american",
        commence_time_from: Optional[datetime] = None,
        commence_time_to: Optional[datetime] = None,
        event_ids: Optional[List[str]] = None,
    ) -> List[Game]:
        """Get odds for a sport.

        Args:
            sport: Sport key (e.g. basketball_nba)
            regions: Bookmaker regions
            markets: Comma separated market keys
            bookmakers: Comma separated bookmaker keys
            odds_format: american or decimal
            commence_time_from: Only games starting at or after this instant
            commence_time_to: Only games starting at or before this instant
            event_ids: Restrict to specific games

        Returns:
            List of Game objects with bookmakers attached
        """
        params: Dict[str, Any] = {
            "regions": regions,
            "markets": markets,
            "oddsFormat": odds_format,
        }
        if bookmakers:
            params["bookmakers"] = bookmakers
        if commence_time_from:
            params["commenceTimeFrom"] = format_commence_time(commence_time_from)
        if commence_time_to:
            params["commenceTimeTo"] = format_commence_time(commence_time_to)
        if event_ids:
            params["eventIds"] = ",".join(event_ids)

        data = await self._request(f"/sports/{sport}/odds", params=params)
        return self._parse_games(data)

    async def get_scores(self, sport: str) -> List[Game]:
        """Get live scores for a sport.

        Raises:
            UnsupportedEndpointError: The league has no scores feed
        """
        data = await self._request(f"/sports/{sport}/scores")
        return self._parse_games(data)


def create_oddsapi_client(api_key: str, **kwargs: Any) -> OddsApiClient:
    """Create The Odds API client.

    Args:
        api_key: The Odds API key

    Returns:
        Configured OddsApiClient instance
    """
    return OddsApiClient(api_key=api_key, **kwargs)
