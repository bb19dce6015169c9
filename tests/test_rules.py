"""Tests for rule tables, action validation and turn order."""

import random

import pytest
from coupsim.core.deck import Deck, STANDARD_CHARACTERS, INQUISITOR_CHARACTERS
from coupsim.core.enums import ActionKind, Character, GamePhase
from coupsim.core.errors import RuleViolation, StateInconsistency
from coupsim.core.game_state import GameState, InfluenceSlot, Player
from coupsim.core.rules import (
    block_options,
    can_player_block,
    is_challengeable,
    is_contestable,
    legal_actions,
    required_character,
    validate_action,
)
from coupsim.core.turns import advance_turn, build_ranking, check_winner


def _player(pid, coins=2, cards=2):
    return Player(id=pid, name=pid.upper(), coins=coins,
                  influences=[InfluenceSlot(Character.CONTESSA) for _ in range(cards)])


@pytest.fixture
def state():
    state = GameState(deck=Deck(random.Random(0)), phase=GamePhase.GAME)
    state.players = [_player("a"), _player("b"), _player("c")]
    state.current_player_id = "a"
    return state


def test_required_character_and_inquisitor_substitution():
    assert required_character(ActionKind.TAX) is Character.DUKE
    assert required_character(ActionKind.INCOME) is None
    assert required_character(ActionKind.EXCHANGE, STANDARD_CHARACTERS) is Character.AMBASSADOR
    assert required_character(ActionKind.EXCHANGE, INQUISITOR_CHARACTERS) is Character.INQUISITOR


def test_block_options_filtered_to_characters_in_play():
    assert block_options(ActionKind.STEAL, STANDARD_CHARACTERS) == [Character.CAPTAIN, Character.AMBASSADOR]
    assert block_options(ActionKind.STEAL, INQUISITOR_CHARACTERS) == [Character.CAPTAIN, Character.INQUISITOR]
    assert block_options(ActionKind.TAX) == []


def test_contestability():
    assert not is_contestable(ActionKind.INCOME)
    assert not is_contestable(ActionKind.COUP)
    assert is_contestable(ActionKind.FOREIGN_AID)
    assert not is_challengeable(ActionKind.FOREIGN_AID)
    assert is_challengeable(ActionKind.STEAL)


def test_only_target_blocks_steal_and_assassinate():
    bob = _player("b")
    assert can_player_block(bob, ActionKind.STEAL, "b")
    assert not can_player_block(bob, ActionKind.STEAL, "c")
    assert not can_player_block(bob, ActionKind.ASSASSINATE, "c")
    assert can_player_block(bob, ActionKind.FOREIGN_AID, None)
    assert not can_player_block(bob, ActionKind.TAX, None)


def test_legal_actions_by_coins():
    assert ActionKind.COUP not in legal_actions(_player("a", coins=6))
    assert ActionKind.ASSASSINATE not in legal_actions(_player("a", coins=2))
    assert ActionKind.COUP in legal_actions(_player("a", coins=7))
    assert legal_actions(_player("a", coins=10)) == [ActionKind.COUP]


def test_validate_rejects_wrong_turn(state):
    with pytest.raises(RuleViolation, match="not your turn"):
        validate_action(state, "b", ActionKind.INCOME)


@pytest.mark.parametrize("coins", [0, 6])
def test_coup_requires_seven_coins(state, coins):
    state.players[0].coins = coins
    with pytest.raises(RuleViolation):
        validate_action(state, "a", ActionKind.COUP, "b")


def test_assassinate_requires_three_coins(state):
    state.players[0].coins = 2
    with pytest.raises(RuleViolation):
        validate_action(state, "a", ActionKind.ASSASSINATE, "b")


@pytest.mark.parametrize("kind", [ActionKind.INCOME, ActionKind.TAX, ActionKind.STEAL, ActionKind.ASSASSINATE])
def test_mandatory_coup(state, kind):
    state.players[0].coins = 10
    with pytest.raises(RuleViolation, match="must coup"):
        validate_action(state, "a", kind, "b")
    validate_action(state, "a", ActionKind.COUP, "b")


def test_target_rules(state):
    state.players[0].coins = 7
    with pytest.raises(RuleViolation, match="requires a target"):
        validate_action(state, "a", ActionKind.COUP)
    with pytest.raises(RuleViolation, match="yourself"):
        validate_action(state, "a", ActionKind.STEAL, "a")
    state.players[2].influences = []
    with pytest.raises(RuleViolation, match="not an active player"):
        validate_action(state, "a", ActionKind.STEAL, "c")
    with pytest.raises(RuleViolation):
        validate_action(state, "a", ActionKind.STEAL, "nobody")


def test_advance_turn_skips_eliminated(state):
    state.players[1].influences = [InfluenceSlot(Character.DUKE, revealed=True)]
    nxt = advance_turn(state)
    assert nxt.id == "c"
    assert state.turn_count == 1
    assert advance_turn(state).id == "a"


def test_advance_turn_with_no_eligible_player(state):
    for player in state.players:
        player.influences = []
    with pytest.raises(StateInconsistency):
        advance_turn(state)


def test_check_winner_and_ranking(state):
    assert check_winner(state) is None
    state.players[0].influences = []
    state.players[2].influences = []
    assert check_winner(state).id == "b"

    ranking = build_ranking(state)
    assert [r["id"] for r in ranking] == ["b", "a", "c"]
    assert ranking[0]["influences"] == 2
