"""Inbound commands and outbound events exchanged with the engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .enums import ActionKind, Character


class CommandType(Enum):
    """Every command a seat may send to its room."""

    SUBMIT_ACTION = "submit_action"
    SUBMIT_CHALLENGE = "submit_challenge"
    SUBMIT_BLOCK = "submit_block"
    SUBMIT_PASS = "submit_pass"
    SUBMIT_CARD_SELECTION = "submit_card_selection"
    SUBMIT_INFLUENCE_LOSS = "submit_influence_loss"


@dataclass(frozen=True)
class Command:
    """A command from one seat. Only the fields its type uses are set."""

    type: CommandType
    player_id: str
    action: Optional[ActionKind] = None
    target_id: Optional[str] = None
    character: Optional[Character] = None
    indices: Tuple[int, ...] = ()
    index: Optional[int] = None

    @classmethod
    def declare(cls, player_id: str, action: ActionKind, target_id: Optional[str] = None) -> "Command":
        return cls(CommandType.SUBMIT_ACTION, player_id, action=action, target_id=target_id)

    @classmethod
    def challenge(cls, player_id: str) -> "Command":
        return cls(CommandType.SUBMIT_CHALLENGE, player_id)

    @classmethod
    def block(cls, player_id: str, character: Character) -> "Command":
        return cls(CommandType.SUBMIT_BLOCK, player_id, character=character)

    @classmethod
    def pass_reaction(cls, player_id: str) -> "Command":
        return cls(CommandType.SUBMIT_PASS, player_id)

    @classmethod
    def card_selection(cls, player_id: str, indices) -> "Command":
        return cls(CommandType.SUBMIT_CARD_SELECTION, player_id, indices=tuple(indices))

    @classmethod
    def influence_loss(cls, player_id: str, index: int) -> "Command":
        return cls(CommandType.SUBMIT_INFLUENCE_LOSS, player_id, index=index)


@dataclass
class CommandResult:
    """Outcome reported to the command's sender only."""

    accepted: bool
    reason: Optional[str] = None
    ignored: bool = False

    @classmethod
    def ok(cls) -> "CommandResult":
        return cls(True)


class EventType(Enum):
    """Events the engine emits, broadcast or to one seat."""

    GAME_STARTED = "game_started"
    TURN_STARTED = "turn_started"
    ACTION_ANNOUNCED = "action_announced"
    ACTION_RESOLVED = "action_resolved"
    REACTION_WINDOW_OPENED = "reaction_window_opened"
    REACTION_WINDOW_CLOSED = "reaction_window_closed"
    CHALLENGE_RESOLVED = "challenge_resolved"
    BLOCK_DECLARED = "block_declared"
    BLOCK_RESOLVED = "block_resolved"
    CARD_SELECTION_REQUESTED = "card_selection_requested"
    INFLUENCE_LOST = "influence_lost"
    STATE_SNAPSHOT = "state_snapshot"
    PRIVATE_HAND = "private_hand"
    GAME_ENDED = "game_ended"
    PLAYER_LEFT = "player_left"
    ERROR = "error"


@dataclass
class GameEvent:
    """One outbound event. recipient=None means every seat in the room."""

    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    recipient: Optional[str] = None

    @property
    def is_broadcast(self) -> bool:
        return self.recipient is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"type": self.type.value, **self.data}
