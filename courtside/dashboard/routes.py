"""API routes for the dashboard."""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from ..api.odds_service import OddsService
from ..monitor.game_monitor import OPPORTUNITIES_EVENT, GameMonitor
from ..tracking.bet_tracker import BetCreate, BetTracker, BetUpdate
from .broadcast import ConnectionManager

logger = logging.getLogger(__name__)


class SettleRequest(BaseModel):
    """Final score used to grade a bet."""
    home_score: int
    away_score: int


def get_odds_service(request: Request) -> OddsService:
    """Get the odds service from app state."""
    return request.app.state.odds_service


def get_monitor(request: Request) -> GameMonitor:
    """Get the game monitor from app state."""
    return request.app.state.monitor


def get_bet_tracker(request: Request) -> BetTracker:
    """Get the bet ledger from app state."""
    return request.app.state.bet_tracker


def create_router() -> APIRouter:
    """Create the API router with all endpoints."""
    router = APIRouter()

    @router.get("/health")
    async def health_check() -> Dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @router.get("/opportunities")
    async def list_opportunities(
        monitor: GameMonitor = Depends(get_monitor),
    ) -> List[Dict[str, Any]]:
        """Get the opportunities found by the latest monitoring tick."""
        try:
            return monitor.get_opportunities_payload()
        except Exception as e:
            logger.error(f"Failed to fetch opportunities: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch opportunities")

    @router.get("/stats")
    async def get_stats(
        request: Request,
        odds_service: OddsService = Depends(get_odds_service),
    ) -> Dict[str, Any]:
        """Get API usage and cache statistics."""
        try:
            cache = odds_service.get_cache_stats()
            last_fetch = cache.get("last_schedule_fetch")
            return {
                "api_requests": odds_service.get_request_count(),
                "cache": {
                    **cache,
                    "last_schedule_fetch": last_fetch.isoformat() if last_fetch else None,
                },
                "games_due": len(odds_service.get_games_to_monitor()),
                "uptime": time.monotonic() - request.app.state.started_at,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        except Exception as e:
            logger.error(f"Failed to fetch stats: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch stats")

    @router.get("/upcoming")
    async def list_upcoming(
        odds_service: OddsService = Depends(get_odds_service),
    ) -> List[Dict[str, Any]]:
        """Get today's schedule."""
        try:
            return [g.model_dump(mode="json") for g in odds_service.get_upcoming_games()]
        except Exception as e:
            logger.error(f"Failed to fetch upcoming games: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch upcoming games")

    @router.post("/bets")
    async def place_bet(
        bet: BetCreate,
        tracker: BetTracker = Depends(get_bet_tracker),
    ) -> Dict[str, Any]:
        """Log a bet placed on the sportsbook."""
        try:
            return tracker.add_bet(bet).model_dump(mode="json")
        except Exception as e:
            logger.error(f"Failed to place bet: {e}")
            raise HTTPException(status_code=500, detail="Failed to place bet")

    @router.get("/bets")
    async def list_bets(
        game_id: Optional[str] = None,
        tracker: BetTracker = Depends(get_bet_tracker),
    ) -> List[Dict[str, Any]]:
        """Get logged bets, optionally for one game."""
        bets = tracker.get_bets_by_game_id(game_id) if game_id else tracker.get_bets()
        return [b.model_dump(mode="json") for b in bets]

    @router.get("/bets/stats")
    async def get_bet_stats(
        tracker: BetTracker = Depends(get_bet_tracker),
    ) -> Dict[str, Any]:
        """Get betting performance statistics."""
        try:
            return tracker.calculate_stats()
        except Exception as e:
            logger.error(f"Failed to fetch betting stats: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch betting stats")

    @router.put("/bets/{bet_id}")
    async def update_bet(
        bet_id: str,
        updates: BetUpdate,
        tracker: BetTracker = Depends(get_bet_tracker),
    ) -> Dict[str, Any]:
        """Update a logged bet."""
        bet = tracker.update_bet(bet_id, updates)
        if bet is None:
            raise HTTPException(status_code=404, detail="Bet not found")
        return bet.model_dump(mode="json")

    @router.post("/bets/{bet_id}/settle")
    async def settle_bet(
        bet_id: str,
        result: SettleRequest,
        tracker: BetTracker = Depends(get_bet_tracker),
    ) -> Dict[str, Any]:
        """Grade a bet against the final score."""
        bet = tracker.settle_bet(bet_id, result.home_score, result.away_score)
        if bet is None:
            raise HTTPException(status_code=404, detail="Bet not found")
        return bet.model_dump(mode="json")

    @router.post("/cache/cleanup")
    async def cleanup_cache(
        odds_service: OddsService = Depends(get_odds_service),
    ) -> Dict[str, Any]:
        """Purge stale cache entries now."""
        removed = odds_service.cleanup_cache()
        return {"removed": removed, "cache": odds_service.get_cache_stats()["total_games"]}

    @router.post("/schedule/refresh")
    async def refresh_schedule(
        odds_service: OddsService = Depends(get_odds_service),
    ) -> Dict[str, Any]:
        """Rebuild today's schedule if the cached one is stale."""
        try:
            await odds_service.initialize_todays_games()
        except Exception as e:
            logger.error(f"Failed to refresh schedule: {e}")
            raise HTTPException(status_code=500, detail="Failed to refresh schedule")
        return {"scheduled_games": len(odds_service.get_upcoming_games())}

    @router.post("/monitor/check")
    async def run_check(
        monitor: GameMonitor = Depends(get_monitor),
    ) -> List[Dict[str, Any]]:
        """Run one monitoring tick now."""
        await monitor.check_games()
        return monitor.get_opportunities_payload()

    return router


def create_websocket_router() -> APIRouter:
    """Create the router for the live opportunities feed."""
    router = APIRouter()

    @router.websocket("/ws")
    async def opportunities_feed(websocket: WebSocket):
        manager: ConnectionManager = websocket.app.state.connections
        monitor: GameMonitor = websocket.app.state.monitor

        await manager.connect(websocket)
        try:
            await manager.send(websocket, OPPORTUNITIES_EVENT, monitor.get_opportunities_payload())
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            manager.disconnect(websocket)

    return router
