"""FastAPI application for the web dashboard."""

import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from ..api.odds_service import OddsService
from ..monitor.game_monitor import GameMonitor
from ..tracking.bet_tracker import BetTracker
from .broadcast import ConnectionManager
from .routes import create_router, create_websocket_router

logger = logging.getLogger(__name__)


def create_app(
    odds_service: OddsService,
    monitor: GameMonitor,
    bet_tracker: BetTracker,
    connections: Optional[ConnectionManager] = None,
    cors_origins: Optional[List[str]] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        odds_service: Gateway used for stats, schedule and operator triggers
        monitor: Monitor holding the current opportunities
        bet_tracker: Bet ledger
        connections: WebSocket subscribers; the monitor should broadcast to the same instance
        cors_origins: Allowed CORS origins

    Returns:
        Configured FastAPI application
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        logger.info("Dashboard starting up")
        yield
        logger.info("Dashboard shutting down")

    app = FastAPI(
        title="Courtside Totals Monitor",
        description="Live 3rd quarter totals opportunities and a manual bet ledger",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.odds_service = odds_service
    app.state.monitor = monitor
    app.state.bet_tracker = bet_tracker
    app.state.connections = connections or ConnectionManager()
    app.state.started_at = time.monotonic()

    app.include_router(create_router(), prefix="/api")
    app.include_router(create_websocket_router())

    @app.get("/", response_class=HTMLResponse)
    async def root():
        return get_default_html()

    return app


def get_default_html() -> str:
    """Minimal live view of the opportunities feed."""
    return """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Courtside Totals Monitor</title>
    <script src="https://cdn.tailwindcss.com"></script>
</head>
<body class="bg-gray-100 min-h-screen">
    <nav class="bg-orange-600 text-white p-4 shadow-lg">
        <h1 class="text-xl font-bold">🏀 Courtside Totals Monitor</h1>
        <p id="status" class="text-sm">Connecting...</p>
    </nav>
    <main class="container mx-auto p-6">
        <h2 class="text-2xl font-bold text-gray-800 mb-4">Current Opportunities</h2>
        <div id="opportunities" class="grid gap-4"></div>
    </main>
    <script>
        const list = document.getElementById("opportunities");
        const status = document.getElementById("status");

        function render(opps) {
            if (!opps.length) {
                list.innerHTML = '<p class="text-gray-500">No games in the 3rd quarter window right now.</p>';
                return;
            }
            list.innerHTML = opps.map(o => `
                <div class="bg-white rounded-lg shadow p-4">
                    <div class="font-bold">${o.away_team} @ ${o.home_team}</div>
                    <div class="text-sm text-gray-600">Q${o.period} ${o.time_remaining} | ${o.current_score.away}-${o.current_score.home}</div>
                    <div>Projected: ${o.calculated_total.toFixed(1)} | Confidence: ${o.confidence.toFixed(0)}%</div>
                    ${o.recommendations.map(r => `<div class="font-mono">${r.action} ${r.line} (+${r.edge.toFixed(1)})</div>`).join("")}
                </div>`).join("");
        }

        function connect() {
            const proto = location.protocol === "https:" ? "wss" : "ws";
            const ws = new WebSocket(`${proto}://${location.host}/ws`);
            ws.onopen = () => status.textContent = "Live";
            ws.onmessage = (msg) => {
                const payload = JSON.parse(msg.data);
                if (payload.event === "opportunities-update") render(payload.data);
            };
            ws.onclose = () => { status.textContent = "Reconnecting..."; setTimeout(connect, 3000); };
        }
        connect();
    </script>
</body>
</html>
"""
