"""Tests for the bot decision heuristics."""

import random

import pytest
from coupsim.agents.bot_engine import BotDecisionEngine, ReactionPrompt
from coupsim.agents.bot_memory import BotMemory
from coupsim.agents.personality import (
    PERSONALITY_REGISTRY,
    BotPersonality,
    get_difficulty_profile,
    random_personality,
)
from coupsim.core.deck import STANDARD_CHARACTERS
from coupsim.core.enums import ActionKind, Character, Difficulty
from coupsim.core.game_state import GameView, PublicPlayer


BALANCED = BotPersonality("balanced", bluff_rate=0.4, challenge_rate=0.5, risk_tolerance=0.6)


def _view(hand, coins=2, opponents=None, discard=None):
    opponents = opponents if opponents is not None else [("o1", 2, 2), ("o2", 2, 2)]
    players = [PublicPlayer("me", "Me", coins, len(hand), [])]
    players += [PublicPlayer(pid, pid.upper(), c, n, []) for pid, c, n in opponents]
    return GameView(
        player_id="me",
        coins=coins,
        hand=list(hand),
        players=players,
        discard_pile=list(discard or []),
        deck_size=9,
        characters=list(STANDARD_CHARACTERS),
        copies_per_character=3,
    )


def _bot(difficulty=Difficulty.MEDIUM, personality=BALANCED, seed=0):
    return BotDecisionEngine("me", difficulty, personality, rng=random.Random(seed))


def test_difficulty_profiles():
    easy = get_difficulty_profile(Difficulty.EASY)
    hard = get_difficulty_profile(Difficulty.HARD)
    assert easy.challenge_accuracy < hard.challenge_accuracy
    assert easy.reaction_delay == (0.3, 1.0)
    assert get_difficulty_profile(Difficulty.TURBO).reaction_delay == (0.1, 0.5)


def test_unpredictable_personality_ranges():
    rng = random.Random(9)
    for _ in range(20):
        p = PERSONALITY_REGISTRY["unpredictable"].sample(rng)
        assert 0.0 <= p.bluff_rate <= 0.8
        assert 0.0 <= p.challenge_rate <= 0.8
        assert 0.0 <= p.risk_tolerance <= 0.9
    assert random_personality(rng).archetype in PERSONALITY_REGISTRY


def test_income_score():
    bot = _bot()
    # 0.3 base, +0.3 low on coins, +0.2 likely targeted; x complexity 0.6
    assert bot.score_action(ActionKind.INCOME, _view([Character.DUKE, Character.CONTESSA])) == pytest.approx(0.48)


def test_tax_with_duke_beats_bluffed_tax():
    bot = _bot()
    honest = bot.score_action(ActionKind.TAX, _view([Character.DUKE, Character.CONTESSA]))
    bluff = bot.score_action(ActionKind.TAX, _view([Character.CAPTAIN, Character.CONTESSA]))

    # (0.6 + 0.3 + 0.2) x risk 0.6 x complexity 0.6
    assert honest == pytest.approx(0.396)
    assert bluff < honest


def test_scores_are_clipped():
    bot = _bot(Difficulty.HARD, BotPersonality("x", 1.0, 1.0, 1.0))
    view = _view([Character.DUKE, Character.ASSASSIN], coins=3)
    for action in bot.available_actions(view):
        assert 0.0 <= bot.score_action(action, view) <= 1.0


def test_challenge_risk_grows_with_repetition():
    bot = _bot()
    view = _view([Character.CONTESSA])
    base = bot.estimate_challenge_risk(ActionKind.TAX, view)
    for _ in range(3):
        bot.record_claim("me", ActionKind.TAX, Character.DUKE)
    assert bot.estimate_challenge_risk(ActionKind.TAX, view) == pytest.approx(base + 0.3)
    for _ in range(10):
        bot.record_claim("me", ActionKind.TAX, Character.DUKE)
    assert bot.estimate_challenge_risk(ActionKind.TAX, view) == 0.9


def test_mandatory_coup_decision():
    bot = _bot()
    decision = bot.decide_turn(_view([Character.CONTESSA], coins=10))
    assert decision.action is ActionKind.COUP
    assert decision.target in ("o1", "o2")


def test_decisions_are_reproducible_from_seed():
    view = _view([Character.DUKE, Character.CAPTAIN], coins=4)
    first = [_bot(seed=3).decide_turn(view) for _ in range(5)]
    second = [_bot(seed=3).decide_turn(view) for _ in range(5)]
    assert first == second


def test_challenge_when_all_copies_revealed():
    bot = _bot(Difficulty.HARD)
    view = _view([Character.CONTESSA], discard=[Character.DUKE] * 3)
    bot.memory.observe_discards(view.discard_pile)

    challenge, confidence = bot.should_challenge(view, Character.DUKE, "o1")
    assert challenge
    assert confidence >= 0.7


def test_no_challenge_without_a_claim():
    assert _bot().should_challenge(_view([Character.DUKE]), None, "o1") == (False, 0.0)


def test_block_with_held_character():
    bot = _bot()
    prompt = ReactionPrompt(
        actor="o1", action=ActionKind.STEAL, target="me", can_block=True,
        block_options=[Character.CAPTAIN, Character.AMBASSADOR],
    )
    block, character, confidence = bot.should_block(_view([Character.AMBASSADOR, Character.DUKE]), prompt)
    assert block and character is Character.AMBASSADOR and confidence == 0.8


def test_no_block_when_not_the_target():
    bot = _bot()
    prompt = ReactionPrompt(
        actor="o1", action=ActionKind.STEAL, target="o2", can_block=True,
        block_options=[Character.CAPTAIN],
    )
    assert bot.should_block(_view([Character.CAPTAIN]), prompt) == (False, None, 0.0)


def test_reaction_to_block_only_considers_challenge():
    bot = _bot(Difficulty.HARD)
    view = _view([Character.CONTESSA], discard=[Character.DUKE] * 3)
    bot.memory.observe_discards(view.discard_pile)
    prompt = ReactionPrompt(
        actor="me", action=ActionKind.FOREIGN_AID, can_challenge=True,
        blocker="o1", block_character=Character.DUKE,
    )
    decision = bot.decide_reaction(view, prompt)
    assert decision.challenge and not decision.block


def test_card_values_drive_keep_and_lose():
    bot = _bot()
    view = _view([Character.CONTESSA, Character.DUKE], coins=3)
    candidates = [Character.CONTESSA, Character.DUKE, Character.AMBASSADOR, Character.ASSASSIN]

    assert bot.select_cards_to_keep(view, candidates, 2) == [1, 3]
    assert bot.select_influence_to_lose(view) == 0
    assert bot.select_influence_to_lose(_view([Character.DUKE])) == 0


def test_target_selection_prefers_threats():
    bot = _bot()
    view = _view([Character.CAPTAIN], opponents=[("poor", 0, 1), ("rich", 10, 2)])
    picks = [bot.select_target(view, ActionKind.COUP) for _ in range(50)]
    assert set(picks) <= {"poor", "rich"}
    assert picks.count("rich") > picks.count("poor")


def test_target_selection_single_and_none():
    bot = _bot()
    assert bot.select_target(_view([Character.DUKE], opponents=[("o1", 2, 1)]), ActionKind.STEAL) == "o1"
    assert bot.select_target(_view([Character.DUKE], opponents=[("o1", 2, 0)]), ActionKind.STEAL) is None


def test_reaction_delay_in_profile_range():
    bot = _bot(Difficulty.EASY)
    for _ in range(20):
        assert 0.3 <= bot.reaction_delay() <= 1.0


def test_memory_is_bounded_and_decays():
    memory = BotMemory(retention=0.0, rng=random.Random(1))
    for _ in range(15):
        memory.record_claim("o1", ActionKind.TAX, Character.DUKE)
    assert memory.claims_of("o1", Character.DUKE) == 10

    memory.decay()
    assert memory.claims_of("o1", Character.DUKE) == 9

    keeper = BotMemory(retention=1.0, rng=random.Random(1))
    keeper.record_claim("o1", ActionKind.TAX, Character.DUKE)
    keeper.decay()
    assert keeper.claims_of("o1", Character.DUKE) == 1


def test_reaction_sees_live_discard_pile():
    conservative = BotPersonality("conservative", bluff_rate=0.1, challenge_rate=0.2, risk_tolerance=0.3)
    view = _view([Character.CONTESSA, Character.CAPTAIN], discard=[Character.DUKE] * 3)
    prompt = ReactionPrompt(actor="o1", action=ActionKind.TAX, can_challenge=True)

    for seed in range(20):
        bot = _bot(Difficulty.HARD, conservative, seed=seed)
        assert bot.decide_reaction(view, prompt).challenge
