"""Tests for bot scheduling, fallbacks and full bot games."""

import pytest
from coupsim.core.commands import Command, EventType
from coupsim.core.config import GameConfig
from coupsim.core.enums import ActionKind, Difficulty, GamePhase
from coupsim.simulation import build_bot_table, simulate_game

from conftest import set_turn


def _broken(*args, **kwargs):
    raise RuntimeError("bot bug")


def test_bot_turn_is_scheduled_not_immediate(make_engine, collector, scheduler):
    engine = make_engine(humans=1, bots=1)
    set_turn(engine, "p1")

    engine.dispatch(Command.declare("p1", ActionKind.INCOME))
    assert engine.state.current_player_id == "p2"
    assert engine.state.pending_action is None

    collector.clear()
    scheduler.advance(1.0)
    announced = collector.of(EventType.ACTION_ANNOUNCED)
    assert announced and announced[0].data["actor"] == "p2"


def test_all_bot_window_uses_bot_timeout(make_engine, scheduler):
    engine = make_engine(humans=1, bots=2)
    set_turn(engine, "p1")

    engine.dispatch(Command.declare("p1", ActionKind.TAX))

    window = engine.state.pending_reactions
    assert window.deadline.when == pytest.approx(scheduler.now() + 1.5)


def test_window_with_a_human_responder_keeps_nominal_timeout(make_engine, scheduler):
    engine = make_engine(humans=2, bots=1)
    set_turn(engine, "p1")

    engine.dispatch(Command.declare("p1", ActionKind.TAX))
    assert engine.state.pending_reactions.deadline.when == pytest.approx(scheduler.now() + 15.0)

    # Once the human has answered only the bot remains, so the deadline shrinks
    engine.dispatch(Command.pass_reaction("p2"))
    window = engine.state.pending_reactions
    if window is not None:
        assert window.deadline.when <= scheduler.now() + 1.5


def test_bot_loses_influence_synchronously(make_engine, collector):
    engine = make_engine(humans=1, bots=1)
    set_turn(engine, "p1")
    engine.state.get_player("p1").coins = 7
    collector.clear()

    engine.dispatch(Command.declare("p1", ActionKind.COUP, "p2"))

    assert len(engine.state.get_player("p2").active_influences) == 1
    assert collector.of(EventType.CARD_SELECTION_REQUESTED) == []
    assert engine.state.current_player_id == "p2"


def test_turn_fallback_on_decision_error(make_engine, collector, scheduler):
    engine = make_engine(humans=1, bots=1)
    set_turn(engine, "p1")
    engine.bot_driver.bots["p2"].decide_turn = _broken

    engine.dispatch(Command.declare("p1", ActionKind.INCOME))
    collector.clear()
    scheduler.advance(1.0)

    announced = collector.last(EventType.ACTION_ANNOUNCED)
    assert announced.data["actor"] == "p2"
    assert announced.data["action"] == "income"


def test_mandatory_coup_fallback(make_engine, collector, scheduler):
    engine = make_engine(humans=1, bots=1)
    set_turn(engine, "p1")
    engine.state.get_player("p2").coins = 10
    engine.bot_driver.bots["p2"].decide_turn = _broken

    engine.dispatch(Command.declare("p1", ActionKind.INCOME))
    scheduler.advance(1.0)

    assert collector.last(EventType.ACTION_ANNOUNCED).data["action"] == "coup"


def test_reaction_fallback_passes(make_engine, collector, scheduler):
    engine = make_engine(humans=1, bots=2)
    set_turn(engine, "p1")
    for bot in engine.bot_driver.bots.values():
        bot.decide_reaction = _broken
    collector.clear()

    engine.dispatch(Command.declare("p1", ActionKind.TAX))
    scheduler.advance(1.0)

    resolved = collector.of(EventType.ACTION_RESOLVED)
    assert resolved[0].data["actor"] == "p1"
    assert resolved[0].data["coins"] == 3


def test_card_choice_fallbacks(make_engine):
    engine = make_engine(humans=1, bots=1)
    bot = engine.bot_driver.bots["p2"]
    bot.select_influence_to_lose = _broken
    bot.select_cards_to_keep = _broken

    assert engine.bot_driver.choose_influence_loss("p2") in (0, 1)
    candidates = engine.state.get_player("p2").active_influences + engine.state.deck.cards[:2]
    chosen = engine.bot_driver.choose_cards_to_keep("p2", candidates, 2)
    assert len(set(chosen)) == 2
    assert all(0 <= i < 4 for i in chosen)


def test_bots_record_claims(make_engine):
    engine = make_engine(humans=1, bots=1)
    set_turn(engine, "p1")
    engine.dispatch(Command.declare("p1", ActionKind.TAX))

    memory = engine.bot_driver.bots["p2"].memory
    assert memory.action_claims("p1", ActionKind.TAX) == 1


@pytest.mark.parametrize("players,difficulty", [
    (2, Difficulty.EASY),
    (4, Difficulty.MEDIUM),
    (6, Difficulty.HARD),
    (10, Difficulty.TURBO),
])
def test_all_bot_game_finishes(players, difficulty):
    result = simulate_game(players, difficulty, seed=11)

    assert result.finished
    assert result.winner is not None
    assert result.ranking[0]["id"] == result.winner
    assert result.ranking[0]["influences"] > 0
    assert all(r["influences"] == 0 for r in result.ranking[1:])


def test_simulation_is_reproducible():
    first = simulate_game(4, Difficulty.MEDIUM, seed=21)
    second = simulate_game(4, Difficulty.MEDIUM, seed=21)
    assert first == second


def test_tokens_conserved_through_bot_game():
    engine = build_bot_table(5, Difficulty.HARD, GameConfig(seed=8))
    checks = []

    def check(event):
        if event.type is EventType.STATE_SNAPSHOT and engine.state.phase is GamePhase.GAME:
            checks.append(engine.state.token_count() == engine.state.deck.total_tokens)
            checks.append(sum(p.revealed_count for p in engine.state.players) == len(engine.state.discard_pile))

    engine.subscribe(check)
    engine.start_game()
    engine.scheduler.run_until_idle()

    assert checks and all(checks)
    assert engine.state.phase is GamePhase.LOBBY
