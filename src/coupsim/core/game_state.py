"""Core game state data structures."""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from .deck import Deck
from .enums import ActionKind, Character, Difficulty, GamePhase
from .scheduler import Deadline


@dataclass
class InfluenceSlot:
    """One face-down card; stays in the hand face-up once revealed."""

    character: Character
    revealed: bool = False


@dataclass
class Player:
    """Represents a seat at the table."""

    id: str  # e.g., "p_3f9a1c2e"
    name: str
    coins: int = 2
    influences: List[InfluenceSlot] = field(default_factory=list)
    revealed_count: int = 0
    connected: bool = True
    is_host: bool = False

    # Bot seats
    is_bot: bool = False
    difficulty: Optional[Difficulty] = None

    @property
    def active_influences(self) -> List[Character]:
        """Characters still face-down, in slot order."""
        return [slot.character for slot in self.influences if not slot.revealed]

    @property
    def revealed_characters(self) -> List[Character]:
        return [slot.character for slot in self.influences if slot.revealed]

    @property
    def is_eliminated(self) -> bool:
        return not self.active_influences

    def holds(self, character: Character) -> bool:
        return character in self.active_influences

    def to_public_dict(self) -> Dict:
        """Public information every seat may see."""
        return {
            "id": self.id,
            "name": self.name,
            "is_host": self.is_host,
            "is_bot": self.is_bot,
            "difficulty": self.difficulty.value if self.difficulty else None,
            "coins": self.coins,
            "influences": len(self.active_influences),
            "revealed_influences": self.revealed_count,
            "revealed_characters": [c.value for c in self.revealed_characters],
            "connected": self.connected,
        }


@dataclass
class PendingAction:
    """The declared, not-yet-resolved action. At most one per room."""

    action_id: int
    actor_id: str
    kind: ActionKind
    target_id: Optional[str] = None
    resolved: bool = False

    def to_dict(self) -> Dict:
        return {
            "action_id": self.action_id,
            "actor": self.actor_id,
            "action": self.kind.value,
            "target": self.target_id,
            "resolved": self.resolved,
        }


@dataclass
class PendingReactionSet:
    """Players still allowed to challenge or block the pending action."""

    window_id: int
    responders: Set[str]
    can_challenge: bool
    block_options: List[Character]
    eligible_blockers: Set[str] = field(default_factory=set)
    deadline: Optional[Deadline] = None
    bot_deadlines: List[Deadline] = field(default_factory=list)


@dataclass
class PendingBlock:
    """A declared block; only the original actor may challenge it."""

    block_id: int
    blocker_id: str
    character: Character
    action: PendingAction
    responders: Set[str] = field(default_factory=set)
    deadline: Optional[Deadline] = None
    bot_deadlines: List[Deadline] = field(default_factory=list)


@dataclass
class PendingExchange:
    """Exchange waiting for the actor to pick which candidates to keep."""

    player_id: str
    candidates: List[Character]
    drawn: List[Character]
    required: int
    deadline: Optional[Deadline] = None


@dataclass
class PendingInfluenceLoss:
    """A player owes one revealed influence; `then` continues the resolution."""

    player_id: str
    then: Callable[[], None]
    deadline: Optional[Deadline] = None


@dataclass
class PublicPlayer:
    """Opponent information as a bot is allowed to see it."""

    id: str
    name: str
    coins: int
    influence_count: int
    revealed: List[Character]

    @property
    def is_eliminated(self) -> bool:
        return self.influence_count == 0


@dataclass
class GameView:
    """Sanitized view of the table for one seat."""

    player_id: str
    coins: int
    hand: List[Character]
    players: List[PublicPlayer]
    discard_pile: List[Character]
    deck_size: int
    characters: List[Character]
    copies_per_character: int

    @property
    def me(self) -> PublicPlayer:
        for p in self.players:
            if p.id == self.player_id:
                return p
        raise KeyError(self.player_id)

    @property
    def opponents(self) -> List[PublicPlayer]:
        """Opponents with at least one face-down influence."""
        return [p for p in self.players if p.id != self.player_id and not p.is_eliminated]

    def get(self, player_id: Optional[str]) -> Optional[PublicPlayer]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None


@dataclass
class GameState:
    """Complete per-room game state."""

    phase: GamePhase = GamePhase.LOBBY
    players: List[Player] = field(default_factory=list)  # seat order
    deck: Deck = field(default_factory=Deck)
    discard_pile: List[Character] = field(default_factory=list)

    current_player_id: Optional[str] = None
    turn_count: int = 0
    action_count: int = 0
    started_at: Optional[float] = None
    winner_id: Optional[str] = None

    # Pending records; all cleared when the action finishes resolving
    pending_action: Optional[PendingAction] = None
    pending_reactions: Optional[PendingReactionSet] = None
    pending_block: Optional[PendingBlock] = None
    pending_exchange: Optional[PendingExchange] = None
    pending_influence_loss: Optional[PendingInfluenceLoss] = None

    @property
    def active_players(self) -> List[Player]:
        """Players with at least one face-down influence."""
        return [p for p in self.players if not p.is_eliminated]

    @property
    def current_player(self) -> Optional[Player]:
        return self.get_player(self.current_player_id)

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        """Get player by ID."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def get_player_by_name(self, name: str) -> Optional[Player]:
        """Get player by name."""
        for player in self.players:
            if player.name == name:
                return player
        return None

    def token_count(self) -> int:
        """Tokens currently accounted for across deck, discards, hands and exchange."""
        held = sum(len(p.active_influences) for p in self.players)
        in_flight = len(self.pending_exchange.drawn) if self.pending_exchange else 0
        return len(self.deck) + len(self.discard_pile) + held + in_flight

    def public_players(self) -> List[Dict]:
        return [p.to_public_dict() for p in self.players]

    def view_for(self, player_id: str) -> GameView:
        """Build the sanitized view a bot decides from."""
        player = self.get_player(player_id)
        if player is None:
            raise KeyError(player_id)
        return GameView(
            player_id=player.id,
            coins=player.coins,
            hand=list(player.active_influences),
            players=[
                PublicPlayer(
                    id=p.id,
                    name=p.name,
                    coins=p.coins,
                    influence_count=len(p.active_influences),
                    revealed=list(p.revealed_characters),
                )
                for p in self.players
            ],
            discard_pile=list(self.discard_pile),
            deck_size=len(self.deck),
            characters=list(self.deck.characters),
            copies_per_character=self.deck.copies,
        )
