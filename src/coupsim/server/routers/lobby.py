"""Lobby router for room management.

Provides endpoints for:
- Creating rooms
- Joining rooms
- Adding and removing bots
- Leaving rooms
- Starting games
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from ...core.config import GameConfig
from ...core.enums import Difficulty
from ...core.errors import LobbyError
from ...core.room_manager import RoomManager


logger = logging.getLogger(__name__)

router = APIRouter()


class RoomSettings(BaseModel):
    """Per-room rule options chosen by the host."""
    max_players: int = Field(10, ge=2, le=10)
    inquisitor_mode: bool = False
    two_player_mode: bool = False


class CreateRoomRequest(BaseModel):
    """Request to create a new room."""
    host_name: str
    settings: RoomSettings = RoomSettings()


class JoinRoomRequest(BaseModel):
    """Request to join a room."""
    name: str


class AddBotRequest(BaseModel):
    player_id: str
    difficulty: Difficulty = Difficulty.MEDIUM


class PlayerRequest(BaseModel):
    """Request identifying the seat making it."""
    player_id: str


class SeatResponse(BaseModel):
    """Seat handed to a joining human; the token opens the room websocket."""
    code: str
    player_id: str
    token: str
    room: dict


class RoomResponse(BaseModel):
    code: str
    host_id: Optional[str]
    phase: str
    players: List[dict]
    settings: dict
    winner: Optional[str] = None


def _manager(request: Request) -> RoomManager:
    return request.app.state.room_manager


def _http_error(e: LobbyError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.reason)


@router.post("", response_model=SeatResponse)
async def create_room(body: CreateRoomRequest, request: Request):
    """Create a room with the caller seated as host."""
    config = GameConfig(
        max_players=body.settings.max_players,
        inquisitor_mode=body.settings.inquisitor_mode,
        two_player_mode=body.settings.two_player_mode,
    )
    try:
        seat = _manager(request).create_room(body.host_name, config)
    except LobbyError as e:
        raise _http_error(e)
    return SeatResponse(code=seat.room.code, player_id=seat.player.id, token=seat.token, room=seat.room.to_dict())


@router.get("/{code}", response_model=RoomResponse)
async def get_room(code: str, request: Request):
    try:
        room = _manager(request).get_room(code)
    except LobbyError as e:
        raise _http_error(e)
    return RoomResponse(**room.to_dict())


@router.post("/{code}/join", response_model=SeatResponse)
async def join_room(code: str, body: JoinRoomRequest, request: Request):
    try:
        seat = _manager(request).join_room(code, body.name)
    except LobbyError as e:
        raise _http_error(e)
    return SeatResponse(code=seat.room.code, player_id=seat.player.id, token=seat.token, room=seat.room.to_dict())


@router.post("/{code}/bots", response_model=RoomResponse)
async def add_bot(code: str, body: AddBotRequest, request: Request):
    manager = _manager(request)
    try:
        manager.add_bot(code, body.difficulty, requester_id=body.player_id)
        room = manager.get_room(code)
    except LobbyError as e:
        raise _http_error(e)
    return RoomResponse(**room.to_dict())


@router.delete("/{code}/bots/{bot_id}", response_model=RoomResponse)
async def remove_bot(code: str, bot_id: str, player_id: str, request: Request):
    manager = _manager(request)
    try:
        manager.remove_bot(code, bot_id, requester_id=player_id)
        room = manager.get_room(code)
    except LobbyError as e:
        raise _http_error(e)
    return RoomResponse(**room.to_dict())


@router.post("/{code}/leave")
async def leave_room(code: str, body: PlayerRequest, request: Request):
    try:
        _manager(request).leave_room(code, body.player_id)
    except LobbyError as e:
        raise _http_error(e)
    return {"left": True}


@router.post("/{code}/start", response_model=RoomResponse)
async def start_game(code: str, body: PlayerRequest, request: Request):
    """Deal a new game. Only the host may start, with at least two seats."""
    try:
        room = _manager(request).start_game(code, body.player_id)
    except LobbyError as e:
        raise _http_error(e)
    logger.info(f"Game started in room {room.code}")
    return RoomResponse(**room.to_dict())
