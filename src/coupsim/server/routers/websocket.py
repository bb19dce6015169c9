"""WebSocket router for live game connections.

Each socket belongs to one seat, identified by the session token handed
out when the seat was created. Inbound JSON messages are validated and
turned into engine commands; outbound messages are GameEvent dicts.
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from ...core.commands import Command, CommandType
from ...core.enums import ActionKind, Character
from ...core.errors import LobbyError
from ..websocket.hub import GameConnection


logger = logging.getLogger(__name__)

router = APIRouter()


class ClientMessage(BaseModel):
    """One inbound message; `type` is a command type or "ping"."""
    type: str
    action: Optional[ActionKind] = None
    target: Optional[str] = None
    character: Optional[Character] = None
    indices: List[int] = []
    index: Optional[int] = None

    def to_command(self, player_id: str) -> Command:
        command_type = CommandType(self.type)
        if command_type is CommandType.SUBMIT_ACTION:
            return Command.declare(player_id, self.action, self.target)
        if command_type is CommandType.SUBMIT_CHALLENGE:
            return Command.challenge(player_id)
        if command_type is CommandType.SUBMIT_BLOCK:
            return Command.block(player_id, self.character)
        if command_type is CommandType.SUBMIT_PASS:
            return Command.pass_reaction(player_id)
        if command_type is CommandType.SUBMIT_CARD_SELECTION:
            return Command.card_selection(player_id, self.indices)
        return Command.influence_loss(player_id, self.index)


@router.websocket("/rooms/{code}")
async def room_websocket(websocket: WebSocket, code: str, token: str = Query(...)):
    """WebSocket endpoint for one seat in a room."""
    manager = websocket.app.state.room_manager
    hub = websocket.app.state.hub

    try:
        room = manager.get_room(code)
    except LobbyError:
        await websocket.close(code=4004, reason="Room not found")
        return
    player = room.player_for_token(token)
    if player is None:
        await websocket.close(code=4001, reason="Invalid session token")
        return

    await websocket.accept()
    connection = GameConnection(websocket=websocket, player_id=player.id, room_code=room.code)
    hub.connect(connection)
    pump = asyncio.create_task(connection.pump())
    manager.set_connected(room.code, player.id, True)
    room.engine.publish_state()

    try:
        while True:
            raw = await websocket.receive_json()
            try:
                message = ClientMessage.model_validate(raw)
                if message.type == "ping":
                    hub.send_to_player(room.code, player.id, {"type": "pong"})
                    continue
                command = message.to_command(player.id)
            except (ValidationError, ValueError) as e:
                logger.debug(f"Malformed message from {player.id}: {e}")
                hub.send_to_player(room.code, player.id, {"type": "error", "error": "malformed message"})
                continue
            room.engine.dispatch(command)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for player {player.id}")
    finally:
        replaced = not hub.disconnect(connection)
        if not replaced and room.code in manager.rooms and room.get_player(player.id) is not None:
            manager.set_connected(room.code, player.id, False)
        pump.cancel()
