"""WebSocket push channel for dashboard subscribers."""

import logging
from typing import Any, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks connected dashboards and pushes events to all of them."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"Client connected ({len(self.active_connections)} total)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(f"Client disconnected ({len(self.active_connections)} total)")

    async def send(self, websocket: WebSocket, event: str, data: Any) -> None:
        await websocket.send_json({"event": event, "data": data})

    async def broadcast(self, event: str, data: Any) -> None:
        """Send an event to every subscriber, dropping dead connections."""
        for websocket in list(self.active_connections):
            try:
                await self.send(websocket, event, data)
            except Exception as e:
                logger.warning(f"Dropping dashboard connection: {e}")
                self.disconnect(websocket)
