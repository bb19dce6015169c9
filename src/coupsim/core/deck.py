"""Face-down character deck for one room."""

import logging
import random
from typing import List, Optional, Sequence, TYPE_CHECKING

from .enums import Character

if TYPE_CHECKING:
    from .game_state import Player


logger = logging.getLogger(__name__)


STANDARD_CHARACTERS: List[Character] = [
    Character.DUKE,
    Character.ASSASSIN,
    Character.CAPTAIN,
    Character.AMBASSADOR,
    Character.CONTESSA,
]

INQUISITOR_CHARACTERS: List[Character] = [
    Character.DUKE,
    Character.ASSASSIN,
    Character.CAPTAIN,
    Character.INQUISITOR,
    Character.CONTESSA,
]


def cards_per_character(player_count: int) -> int:
    """Copies of each character for a table of this size."""
    if player_count <= 6:
        return 3
    if player_count <= 8:
        return 4
    return 5


def character_set(inquisitor_variant: bool) -> List[Character]:
    """Characters in play for the chosen variant."""
    return list(INQUISITOR_CHARACTERS if inquisitor_variant else STANDARD_CHARACTERS)


class Deck:
    """Mutable bag of character tokens.

    The top of the deck is the end of the list. All shuffles go through the
    injected random source so games can be replayed from a seed.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.cards: List[Character] = []
        self.characters: List[Character] = []
        self.copies = 0

    def __len__(self) -> int:
        return len(self.cards)

    @property
    def total_tokens(self) -> int:
        """Tokens created at initialize(); constant for the whole game."""
        return len(self.characters) * self.copies

    def initialize(
        self,
        player_count: int,
        characters: Optional[Sequence[Character]] = None,
        inquisitor_variant: bool = False,
    ) -> None:
        """Build and shuffle a fresh deck for player_count players."""
        self.characters = list(characters) if characters else character_set(inquisitor_variant)
        self.copies = cards_per_character(player_count)
        self.cards = [c for c in self.characters for _ in range(self.copies)]
        self.shuffle()
        logger.debug(
            f"Deck initialized: {len(self.characters)} characters x {self.copies} copies"
        )

    def shuffle(self) -> None:
        """Uniform Fisher-Yates shuffle in place."""
        cards = self.cards
        for i in range(len(cards) - 1, 0, -1):
            j = self.rng.randint(0, i)
            cards[i], cards[j] = cards[j], cards[i]

    def draw(self) -> Optional[Character]:
        """Take the top card, or None when the deck is exhausted."""
        if not self.cards:
            logger.warning("Draw from an empty deck ignored")
            return None
        return self.cards.pop()

    def return_card(self, card: Character) -> None:
        """Put a card back without shuffling (callers shuffle once after a batch)."""
        self.cards.append(card)

    def return_and_reshuffle(self, card: Character) -> None:
        """Put a card back and reshuffle so its position leaks nothing."""
        self.cards.append(card)
        self.shuffle()

    def deal_initial_hands(self, players: Sequence["Player"], cards_per_player: int) -> None:
        """Deal cards_per_player face-down influences to every player."""
        from .game_state import InfluenceSlot

        for player in players:
            player.influences = []
            for _ in range(cards_per_player):
                card = self.draw()
                if card is not None:
                    player.influences.append(InfluenceSlot(card))
