"""Turn order and win detection."""

from typing import Dict, List, Optional

from .errors import StateInconsistency
from .game_state import GameState, Player


def next_active_index(state: GameState, from_index: int) -> int:
    """Index of the next seat after `from_index` holding any influence.

    Walks at most one full lap; an all-eliminated table raises
    StateInconsistency instead of looping.
    """
    seats = len(state.players)
    if seats == 0:
        raise StateInconsistency("no players seated")
    for step in range(1, seats + 1):
        index = (from_index + step) % seats
        if not state.players[index].is_eliminated:
            return index
    raise StateInconsistency("no eligible player to take the next turn")


def advance_turn(state: GameState) -> Player:
    """Move the turn to the next active seat and count the turn."""
    current = -1
    for i, player in enumerate(state.players):
        if player.id == state.current_player_id:
            current = i
            break
    index = next_active_index(state, current)
    player = state.players[index]
    state.current_player_id = player.id
    state.turn_count += 1
    return player


def check_winner(state: GameState) -> Optional[Player]:
    """The sole survivor, or None while two or more players hold influence."""
    active = state.active_players
    if len(active) == 1:
        return active[0]
    return None


def build_ranking(state: GameState) -> List[Dict]:
    """Players by remaining influence, most first; ties keep seat order."""
    ranked = sorted(state.players, key=lambda p: len(p.active_influences), reverse=True)
    return [
        {
            "id": p.id,
            "name": p.name,
            "influences": len(p.active_influences),
            "coins": p.coins,
        }
        for p in ranked
    ]
