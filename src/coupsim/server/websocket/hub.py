"""WebSocket hub routing room events to connected players.

Engines emit events synchronously. The hub only queues them on each
connection's outbox; a per-connection pump coroutine does the actual
sending, so the engine never waits on a socket and every player receives
events in emission order.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import WebSocket

from ...core.commands import GameEvent
from ...core.room_manager import Room


logger = logging.getLogger(__name__)


@dataclass
class GameConnection:
    """Represents a WebSocket connection for a player."""
    websocket: WebSocket
    player_id: str
    room_code: str
    connected_at: str = field(default_factory=lambda: datetime.now().isoformat())
    outbox: "asyncio.Queue[Optional[Dict[str, Any]]]" = field(default_factory=asyncio.Queue)

    async def pump(self) -> None:
        """Send queued messages until a None sentinel arrives."""
        while True:
            message = await self.outbox.get()
            if message is None:
                return
            await self.websocket.send_json(message)


class WebSocketHub:
    """Tracks player sockets per room and delivers engine events to them."""

    def __init__(self):
        # room_code -> {player_id -> GameConnection}
        self.connections: Dict[str, Dict[str, GameConnection]] = {}
        logger.info("WebSocketHub initialized")

    def watch_room(self, room: Room) -> None:
        """Forward every event of `room`'s engine to its sockets."""
        code = room.code
        room.engine.subscribe(lambda event: self.route_event(code, event))

    def connect(self, connection: GameConnection) -> None:
        room_conns = self.connections.setdefault(connection.room_code, {})
        old_conn = room_conns.get(connection.player_id)
        if old_conn is not None:
            logger.warning(f"Player {connection.player_id} reconnected; replacing old socket")
            old_conn.outbox.put_nowait(None)
        room_conns[connection.player_id] = connection
        logger.info(f"Player {connection.player_id} connected to room {connection.room_code}")

    def disconnect(self, connection: GameConnection) -> bool:
        """Forget `connection`. Returns False if a newer socket replaced it."""
        room_conns = self.connections.get(connection.room_code, {})
        connection.outbox.put_nowait(None)
        if room_conns.get(connection.player_id) is not connection:
            return False
        del room_conns[connection.player_id]
        if not room_conns:
            self.connections.pop(connection.room_code, None)
        logger.info(f"Player {connection.player_id} disconnected from room {connection.room_code}")
        return True

    def is_connected(self, room_code: str, player_id: str) -> bool:
        return player_id in self.connections.get(room_code, {})

    def broadcast_to_room(self, room_code: str, message: Dict[str, Any]) -> None:
        for conn in self.connections.get(room_code, {}).values():
            conn.outbox.put_nowait(message)

    def send_to_player(self, room_code: str, player_id: str, message: Dict[str, Any]) -> None:
        conn = self.connections.get(room_code, {}).get(player_id)
        if conn is not None:
            conn.outbox.put_nowait(message)

    def route_event(self, room_code: str, event: GameEvent) -> None:
        """Engine listener: queue `event` for its recipients."""
        message = event.to_dict()
        if event.is_broadcast:
            self.broadcast_to_room(room_code, message)
        else:
            self.send_to_player(room_code, event.recipient, message)
