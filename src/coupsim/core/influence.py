"""Influence and exchange mutators.

Pure state transitions: no events, no timers. The engine decides when to
call them and what to announce afterwards.
"""

import logging
from typing import List, Sequence

from .enums import Character
from .errors import RuleViolation, StateInconsistency
from .game_state import GameState, PendingExchange, Player
from .rules import EXCHANGE_DRAW


logger = logging.getLogger(__name__)


def reveal_influence(state: GameState, player: Player, index: int) -> Character:
    """Turn the player's `index`-th face-down influence face-up.

    `index` counts only face-down influences, in slot order.
    """
    active_slots = [slot for slot in player.influences if not slot.revealed]
    if not 0 <= index < len(active_slots):
        raise RuleViolation(f"influence index {index} out of range")
    slot = active_slots[index]
    slot.revealed = True
    player.revealed_count += 1
    state.discard_pile.append(slot.character)
    return slot.character


def replace_proven_card(state: GameState, player: Player, character: Character) -> None:
    """Shuffle a proven character back into the deck and deal a replacement.

    Used when a challenge fails: the defender shows the card, it goes back,
    and the defender draws blind so nobody learns what they now hold.
    """
    for slot in player.influences:
        if not slot.revealed and slot.character is character:
            state.deck.return_and_reshuffle(character)
            replacement = state.deck.draw()
            if replacement is None:
                raise StateInconsistency("deck empty after returning a card")
            slot.character = replacement
            return
    raise StateInconsistency(f"{player.id} does not hold {character.value}")


def begin_exchange(state: GameState, player: Player) -> PendingExchange:
    """Draw cards for an exchange and build the candidate list."""
    drawn: List[Character] = []
    for _ in range(EXCHANGE_DRAW):
        card = state.deck.draw()
        if card is not None:
            drawn.append(card)
    held = player.active_influences
    return PendingExchange(
        player_id=player.id,
        candidates=held + drawn,
        drawn=drawn,
        required=len(held),
    )


def validate_selection(pending: PendingExchange, selected: Sequence[int]) -> List[int]:
    indices = list(selected)
    if len(indices) != pending.required:
        raise RuleViolation(f"select exactly {pending.required} card(s)")
    if len(set(indices)) != len(indices):
        raise RuleViolation("duplicate card selection")
    for index in indices:
        if not 0 <= index < len(pending.candidates):
            raise RuleViolation(f"card index {index} out of range")
    return indices


def apply_exchange(
    state: GameState, player: Player, pending: PendingExchange, selected: Sequence[int]
) -> None:
    """Keep the selected candidates; the rest go back and the deck is reshuffled."""
    indices = validate_selection(pending, selected)
    kept = [pending.candidates[i] for i in indices]
    returned = [c for i, c in enumerate(pending.candidates) if i not in indices]

    kept_iter = iter(kept)
    for slot in player.influences:
        if not slot.revealed:
            slot.character = next(kept_iter)

    for card in returned:
        state.deck.return_card(card)
    state.deck.shuffle()
    pending.drawn = []


def cancel_exchange(state: GameState, pending: PendingExchange) -> None:
    """Return only the drawn cards, leaving the hand as it was."""
    for card in pending.drawn:
        state.deck.return_card(card)
    state.deck.shuffle()
    pending.drawn = []


def reveal_all(state: GameState, player: Player) -> List[Character]:
    """Reveal every remaining influence (forfeit)."""
    revealed = []
    while player.active_influences:
        revealed.append(reveal_influence(state, player, 0))
    return revealed
