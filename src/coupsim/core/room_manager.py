"""Room registry and lobby bookkeeping.

A RoomManager is created by whoever hosts the rooms (the FastAPI app, the
CLI, tests) and passed to the code that needs it. Each Room pairs one
GameEngine with the BotDriver playing its bot seats.
"""

import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from ..agents.bot_driver import BotDriver
from .config import GameConfig
from .engine import GameEngine
from .enums import Difficulty, GamePhase
from .errors import LobbyError, RuleViolation
from .game_state import Player
from .scheduler import AsyncioScheduler, Scheduler


logger = logging.getLogger(__name__)


ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6


def generate_room_code() -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def generate_player_id() -> str:
    return f"p_{secrets.token_hex(4)}"


@dataclass
class Room:
    """One room: its seats, engine and bot driver."""

    code: str
    engine: GameEngine
    driver: BotDriver
    host_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    # Session token -> player id, for human seats
    tokens: Dict[str, str] = field(default_factory=dict)
    # Seats that left mid-game; removed before the next game is dealt
    departed: Set[str] = field(default_factory=set)
    _bot_counter: int = field(default=0, init=False, repr=False)

    @property
    def config(self) -> GameConfig:
        return self.engine.config

    @property
    def players(self) -> List[Player]:
        return self.engine.state.players

    @property
    def phase(self) -> GamePhase:
        return self.engine.state.phase

    @property
    def humans(self) -> List[Player]:
        return [p for p in self.players if not p.is_bot and p.id not in self.departed]

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.engine.state.get_player(player_id)

    def player_for_token(self, token: str) -> Optional[Player]:
        player_id = self.tokens.get(token)
        return self.get_player(player_id) if player_id else None

    def to_dict(self) -> Dict:
        """Public room summary for the lobby."""
        return {
            "code": self.code,
            "host_id": self.host_id,
            "phase": self.phase.value,
            "players": self.engine.state.public_players(),
            "settings": {
                "max_players": self.config.max_players,
                "inquisitor_mode": self.config.inquisitor_mode,
                "two_player_mode": self.config.two_player_mode,
            },
            "winner": self.engine.state.winner_id,
        }


@dataclass
class JoinResult:
    """Seat handed to a human joining a room."""

    room: Room
    player: Player
    token: str


class RoomManager:
    """Creates, tracks and tears down rooms."""

    def __init__(self, scheduler_factory: Optional[Callable[[], Scheduler]] = None):
        """Initialize the manager.

        Args:
            scheduler_factory: Builds the scheduler for each new room
                (asyncio event loop by default)
        """
        self.scheduler_factory = scheduler_factory or AsyncioScheduler
        self.rooms: Dict[str, Room] = {}
        self._room_listeners: List[Callable[[Room], None]] = []

    def on_room_created(self, listener: Callable[[Room], None]) -> None:
        """Register a callback run for every new room (e.g. to wire its events)."""
        self._room_listeners.append(listener)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_room(self, code: str) -> Room:
        room = self.rooms.get(code.upper())
        if room is None:
            raise LobbyError("room not found", status_code=404)
        return room

    def list_rooms(self) -> List[Room]:
        return list(self.rooms.values())

    # ------------------------------------------------------------------
    # Lobby operations
    # ------------------------------------------------------------------

    def create_room(self, host_name: str, settings: Optional[GameConfig] = None) -> JoinResult:
        """Open a room with `host_name` seated as host."""
        host_name = self._clean_name(host_name)
        code = generate_room_code()
        while code in self.rooms:
            code = generate_room_code()

        engine = GameEngine(settings or GameConfig(), self.scheduler_factory(), room_code=code)
        room = Room(code=code, engine=engine, driver=BotDriver(engine).attach())
        self.rooms[code] = room
        for listener in self._room_listeners:
            listener(room)

        result = self._seat_human(room, host_name)
        room.host_id = result.player.id
        result.player.is_host = True
        logger.info(f"Room {code} created by {host_name}")
        return result

    def join_room(self, code: str, name: str) -> JoinResult:
        room = self.get_room(code)
        name = self._clean_name(name)
        self._check_can_seat(room, name)
        result = self._seat_human(room, name)
        logger.info(f"{name} joined room {room.code}")
        room.engine.publish_state()
        return result

    def add_bot(
        self,
        code: str,
        difficulty: Difficulty = Difficulty.MEDIUM,
        requester_id: Optional[str] = None,
    ) -> Player:
        """Seat a bot. When `requester_id` is given it must be the host."""
        room = self.get_room(code)
        if requester_id is not None:
            self._require_host(room, requester_id)
        room._bot_counter += 1
        name = f"Bot {room._bot_counter}"
        while any(p.name == name for p in room.players):
            room._bot_counter += 1
            name = f"Bot {room._bot_counter}"
        self._check_can_seat(room, name)

        player = Player(
            id=generate_player_id(),
            name=name,
            coins=room.config.starting_coins,
            is_bot=True,
            difficulty=difficulty,
        )
        room.players.append(player)
        room.driver.add_bot(player.id, difficulty)
        logger.info(f"{name} ({difficulty.value}) added to room {room.code}")
        room.engine.publish_state()
        return player

    def remove_bot(self, code: str, bot_id: str, requester_id: Optional[str] = None) -> None:
        room = self.get_room(code)
        if requester_id is not None:
            self._require_host(room, requester_id)
        if room.phase is GamePhase.GAME:
            raise LobbyError("game already in progress")
        player = room.get_player(bot_id)
        if player is None or not player.is_bot:
            raise LobbyError("bot not found", status_code=404)
        room.players.remove(player)
        room.driver.remove_bot(bot_id)
        logger.info(f"{player.name} removed from room {room.code}")
        room.engine.publish_state()

    def leave_room(self, code: str, player_id: str) -> None:
        """Remove a seat. Mid-game this forfeits the seat's remaining influence."""
        room = self.get_room(code)
        player = room.get_player(player_id)
        if player is None or player_id in room.departed:
            raise LobbyError("player not in room", status_code=404)

        for token, pid in list(room.tokens.items()):
            if pid == player_id:
                del room.tokens[token]

        if room.phase is GamePhase.GAME:
            room.departed.add(player_id)
            logger.info(f"{player.name} left room {room.code} mid-game and forfeits")
            room.engine.forfeit(player_id)
        else:
            room.players.remove(player)
            room.driver.remove_bot(player_id)
            room.engine.emit_player_left(player_id)
            logger.info(f"{player.name} left room {room.code}")

        if not room.humans:
            self.close_room(room.code)
            return

        if room.host_id == player_id:
            self._promote_host(room)
        room.engine.publish_state()

    def start_game(self, code: str, requester_id: str) -> Room:
        room = self.get_room(code)
        self._require_host(room, requester_id)
        if room.phase is GamePhase.GAME:
            raise LobbyError("game already in progress")

        if room.departed:
            room.engine.state.players = [p for p in room.players if p.id not in room.departed]
            room.departed.clear()
        try:
            room.engine.start_game()
        except RuleViolation as e:
            raise LobbyError(e.reason) from e
        return room

    def set_connected(self, code: str, player_id: str, connected: bool) -> None:
        room = self.get_room(code)
        player = room.get_player(player_id)
        if player is None:
            raise LobbyError("player not in room", status_code=404)
        if player.connected != connected:
            player.connected = connected
            logger.info(f"{player.name} {'reconnected to' if connected else 'disconnected from'} room {room.code}")
            room.engine.publish_state()

    def close_room(self, code: str) -> None:
        room = self.rooms.pop(code.upper(), None)
        if room is None:
            return
        room.driver.detach()
        room.engine.shutdown()
        logger.info(f"Room {room.code} closed")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise LobbyError("a player name is required")
        return name

    @staticmethod
    def _check_can_seat(room: Room, name: str) -> None:
        if room.phase is GamePhase.GAME:
            raise LobbyError("game already in progress")
        if len(room.players) >= room.config.max_players:
            raise LobbyError("room is full")
        if any(p.name == name for p in room.players):
            raise LobbyError("name already taken in this room")

    @staticmethod
    def _require_host(room: Room, player_id: str) -> None:
        if room.host_id != player_id:
            raise LobbyError("only the host can do that", status_code=403)

    @staticmethod
    def _seat_human(room: Room, name: str) -> JoinResult:
        player = Player(id=generate_player_id(), name=name, coins=room.config.starting_coins)
        room.players.append(player)
        token = secrets.token_urlsafe(16)
        room.tokens[token] = player.id
        return JoinResult(room=room, player=player, token=token)

    @staticmethod
    def _promote_host(room: Room) -> None:
        for player in room.players:
            player.is_host = False
        new_host = room.humans[0]
        new_host.is_host = True
        room.host_id = new_host.id
        logger.info(f"{new_host.name} is now host of room {room.code}")
