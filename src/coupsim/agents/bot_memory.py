"""Bounded, decaying memory of what opponents have claimed."""

import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

from ..core.enums import ActionKind, Character


logger = logging.getLogger(__name__)


CLAIM_HISTORY = 10


@dataclass
class ObservedClaim:
    """A character an opponent claimed, by acting or blocking."""

    action: Optional[ActionKind]
    character: Character
    turn: int = 0


class BotMemory:
    """Per-opponent claim history plus the last seen discard pile.

    Each update cycle forgets one random remembered claim with probability
    1 - retention, so weaker bots lose track of the table over time.
    """

    def __init__(self, retention: float, rng: Optional[random.Random] = None):
        self.retention = retention
        self.rng = rng or random.Random()
        self.claims: Dict[str, Deque[ObservedClaim]] = {}
        self.discard_pile: List[Character] = []

    def record_claim(
        self, player_id: str, action: Optional[ActionKind], character: Character, turn: int = 0
    ) -> None:
        history = self.claims.setdefault(player_id, deque(maxlen=CLAIM_HISTORY))
        history.append(ObservedClaim(action, character, turn))

    def claims_of(self, player_id: str, character: Character) -> int:
        """How many remembered claims of `character` `player_id` has made."""
        return sum(1 for claim in self.claims.get(player_id, ()) if claim.character is character)

    def action_claims(self, player_id: str, action: ActionKind) -> int:
        return sum(1 for claim in self.claims.get(player_id, ()) if claim.action is action)

    def observe_discards(self, discard_pile: List[Character]) -> None:
        self.discard_pile = list(discard_pile)

    def decay(self) -> None:
        """Maybe forget one remembered claim."""
        if self.rng.random() <= self.retention:
            return
        populated = [pid for pid, history in self.claims.items() if history]
        if not populated:
            return
        history = self.claims[self.rng.choice(populated)]
        del history[self.rng.randrange(len(history))]

    def forget_player(self, player_id: str) -> None:
        self.claims.pop(player_id, None)

    def clear(self) -> None:
        self.claims.clear()
        self.discard_pile = []
