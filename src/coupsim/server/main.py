"""CoupSim API - FastAPI Application

Lobby endpoints over REST and live play over one websocket per seat.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..core.config import ServerConfig
from ..core.room_manager import RoomManager
from .routers import lobby, websocket as ws_router
from .websocket.hub import WebSocketHub


logger = logging.getLogger(__name__)


def create_app(
    room_manager: Optional[RoomManager] = None,
    config: Optional[ServerConfig] = None,
) -> FastAPI:
    """Build the app around a room manager (a fresh one if None)."""
    config = config or ServerConfig.from_env()
    room_manager = room_manager or RoomManager()
    hub = WebSocketHub()
    room_manager.on_room_created(hub.watch_room)

    app = FastAPI(
        title="CoupSim API",
        description="Rooms, lobby and live play for the CoupSim card game server",
        version="0.1.0",
    )
    app.state.room_manager = room_manager
    app.state.hub = hub

    # CORS middleware for browser clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(lobby.router, prefix="/api/rooms", tags=["lobby"])
    app.include_router(ws_router.router, prefix="/ws", tags=["websocket"])

    @app.get("/health")
    async def health():
        return {"status": "ok", "rooms": len(room_manager.rooms)}

    logger.info("CoupSim API ready")
    return app
