"""Rules engine: deck, state, arbitration, turn order and rooms."""

from .commands import Command, CommandResult, CommandType, EventType, GameEvent
from .config import GameConfig, ServerConfig
from .engine import GameEngine
from .enums import ActionKind, Character, Difficulty, GamePhase
from .errors import CoupError, LobbyError, ProtocolViolation, RuleViolation, StateInconsistency
from .scheduler import AsyncioScheduler, ManualScheduler

__all__ = [
    "Command",
    "CommandResult",
    "CommandType",
    "EventType",
    "GameEvent",
    "GameConfig",
    "ServerConfig",
    "GameEngine",
    "ActionKind",
    "Character",
    "Difficulty",
    "GamePhase",
    "CoupError",
    "LobbyError",
    "ProtocolViolation",
    "RuleViolation",
    "StateInconsistency",
    "AsyncioScheduler",
    "ManualScheduler",
]
