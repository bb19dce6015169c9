"""Rule tables and action validation."""

from typing import Dict, List, Optional, Sequence

from .enums import ActionKind, Character
from .errors import RuleViolation
from .game_state import GameState, Player


COUP_COST = 7
ASSASSINATE_COST = 3
MANDATORY_COUP_COINS = 10
STEAL_AMOUNT = 2
EXCHANGE_DRAW = 2

TARGETED_ACTIONS = (ActionKind.COUP, ActionKind.ASSASSINATE, ActionKind.STEAL)

ACTION_COSTS: Dict[ActionKind, int] = {
    ActionKind.COUP: COUP_COST,
    ActionKind.ASSASSINATE: ASSASSINATE_COST,
}

# Character an actor claims by declaring the action
REQUIRED_CHARACTER: Dict[ActionKind, Character] = {
    ActionKind.TAX: Character.DUKE,
    ActionKind.ASSASSINATE: Character.ASSASSIN,
    ActionKind.STEAL: Character.CAPTAIN,
    ActionKind.EXCHANGE: Character.AMBASSADOR,
}

BLOCK_OPTIONS: Dict[ActionKind, List[Character]] = {
    ActionKind.FOREIGN_AID: [Character.DUKE],
    ActionKind.ASSASSINATE: [Character.CONTESSA],
    ActionKind.STEAL: [Character.CAPTAIN, Character.AMBASSADOR, Character.INQUISITOR],
}


def required_character(
    kind: ActionKind, characters: Optional[Sequence[Character]] = None
) -> Optional[Character]:
    """Character claimed by `kind`, or None for unclaimed actions.

    Exchange is claimed by whichever exchange character is in play: the
    Ambassador normally, the Inquisitor in the inquisitor variant.
    """
    character = REQUIRED_CHARACTER.get(kind)
    if (
        character is Character.AMBASSADOR
        and characters is not None
        and Character.AMBASSADOR not in characters
        and Character.INQUISITOR in characters
    ):
        return Character.INQUISITOR
    return character


def is_challengeable(kind: ActionKind) -> bool:
    return kind in REQUIRED_CHARACTER


def block_options(
    kind: ActionKind, characters: Optional[Sequence[Character]] = None
) -> List[Character]:
    """Characters that block `kind`, limited to those in play."""
    options = BLOCK_OPTIONS.get(kind, [])
    if characters is None:
        return list(options)
    return [c for c in options if c in characters]


def is_contestable(kind: ActionKind) -> bool:
    return is_challengeable(kind) or bool(BLOCK_OPTIONS.get(kind))


def can_player_block(player: Player, kind: ActionKind, target_id: Optional[str]) -> bool:
    """Only the target may block steal/assassinate; anyone may block foreign aid."""
    if kind in (ActionKind.STEAL, ActionKind.ASSASSINATE):
        return target_id == player.id
    return kind is ActionKind.FOREIGN_AID


def legal_actions(player: Player) -> List[ActionKind]:
    """Actions the coin rules allow `player` to declare this turn."""
    if player.coins >= MANDATORY_COUP_COINS:
        return [ActionKind.COUP]
    actions = [ActionKind.INCOME, ActionKind.FOREIGN_AID, ActionKind.TAX,
               ActionKind.STEAL, ActionKind.EXCHANGE]
    if player.coins >= ASSASSINATE_COST:
        actions.append(ActionKind.ASSASSINATE)
    if player.coins >= COUP_COST:
        actions.append(ActionKind.COUP)
    return actions


def validate_action(
    state: GameState, actor_id: str, kind: ActionKind, target_id: Optional[str] = None
) -> None:
    """Raise RuleViolation unless `actor_id` may declare `kind` right now."""
    actor = state.get_player(actor_id)
    if actor is None:
        raise RuleViolation("unknown player")
    if state.current_player_id != actor_id:
        raise RuleViolation("not your turn")
    if state.pending_action is not None:
        raise RuleViolation("an action is already being resolved")
    if actor.is_eliminated:
        raise RuleViolation("eliminated players cannot act")

    cost = ACTION_COSTS.get(kind, 0)
    if actor.coins < cost:
        raise RuleViolation(f"{kind.value} requires {cost} coins")
    if actor.coins >= MANDATORY_COUP_COINS and kind is not ActionKind.COUP:
        raise RuleViolation(f"with {MANDATORY_COUP_COINS} or more coins you must coup")

    if kind in TARGETED_ACTIONS:
        if not target_id:
            raise RuleViolation(f"{kind.value} requires a target")
        if target_id == actor_id:
            raise RuleViolation("cannot target yourself")
        target = state.get_player(target_id)
        if target is None or target.is_eliminated:
            raise RuleViolation("target is not an active player")
