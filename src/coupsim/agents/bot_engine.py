"""Heuristic decision engine for bot seats.

Every decision is made from a GameView, the same public information a human
at the table has plus the bot's own hand. Scores live in numpy arrays; all
randomness goes through the injected random.Random so a seeded game replays
the same way.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..core.deck import cards_per_character
from ..core.enums import ActionKind, Character, Difficulty
from ..core.game_state import GameView, PublicPlayer
from ..core.rules import (
    ASSASSINATE_COST,
    COUP_COST,
    MANDATORY_COUP_COINS,
    TARGETED_ACTIONS,
    required_character,
)
from .bot_memory import BotMemory
from .personality import (
    BotPersonality,
    DifficultyProfile,
    get_difficulty_profile,
    random_personality,
)


logger = logging.getLogger(__name__)


# Actions whose score is scaled by the personality's risk tolerance
CHARACTER_ACTIONS = (ActionKind.TAX, ActionKind.ASSASSINATE, ActionKind.STEAL, ActionKind.EXCHANGE)

CARD_VALUES: Dict[Character, float] = {
    Character.DUKE: 0.8,
    Character.ASSASSIN: 0.7,
    Character.CAPTAIN: 0.6,
    Character.AMBASSADOR: 0.5,
    Character.INQUISITOR: 0.5,
    Character.CONTESSA: 0.4,
}


@dataclass
class BotDecision:
    """A bot's choice of action for its turn."""

    action: ActionKind
    target: Optional[str] = None
    confidence: float = 0.5


@dataclass
class ReactionPrompt:
    """What a bot is being asked to react to.

    For a block, `blocker` and `block_character` are set and the only
    possible reaction is to challenge the blocker's claim.
    """

    actor: str
    action: ActionKind
    target: Optional[str] = None
    can_challenge: bool = False
    can_block: bool = False
    block_options: List[Character] = field(default_factory=list)
    blocker: Optional[str] = None
    block_character: Optional[Character] = None


@dataclass
class ReactionDecision:
    challenge: bool = False
    block: bool = False
    block_character: Optional[Character] = None
    confidence: float = 0.5


class BotDecisionEngine:
    """Decides turns, reactions and card choices for one bot seat."""

    def __init__(
        self,
        player_id: str,
        difficulty: Difficulty = Difficulty.MEDIUM,
        personality: Optional[BotPersonality] = None,
        rng: Optional[random.Random] = None,
    ):
        self.player_id = player_id
        self.rng = rng or random.Random()
        self.difficulty = difficulty
        self.profile: DifficultyProfile = get_difficulty_profile(difficulty)
        self.personality = personality or random_personality(self.rng)
        self.memory = BotMemory(self.profile.memory_retention, self.rng)

    def describe(self) -> str:
        return f"{self.personality.archetype} ({self.difficulty.value})"

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------

    def record_claim(
        self, player_id: str, action: Optional[ActionKind], character: Character, turn: int = 0
    ) -> None:
        self.memory.record_claim(player_id, action, character, turn)

    def update_memory(self, view: GameView) -> None:
        self.memory.observe_discards(view.discard_pile)
        self.memory.decay()

    # ------------------------------------------------------------------
    # Turn decisions
    # ------------------------------------------------------------------

    def available_actions(self, view: GameView) -> List[ActionKind]:
        if view.coins >= MANDATORY_COUP_COINS:
            return [ActionKind.COUP]
        actions = [ActionKind.INCOME]
        if view.coins >= COUP_COST:
            actions.append(ActionKind.COUP)
        if view.coins >= ASSASSINATE_COST:
            actions.append(ActionKind.ASSASSINATE)
        actions.extend([ActionKind.FOREIGN_AID, ActionKind.TAX, ActionKind.STEAL, ActionKind.EXCHANGE])
        return actions

    def decide_turn(self, view: GameView) -> BotDecision:
        """Score every available action and draw one of the best three."""
        self.update_memory(view)
        actions = self.available_actions(view)
        scores = np.array([self.score_action(action, view) for action in actions])

        order = np.argsort(-scores, kind="stable")[:3]
        best = [actions[i] for i in order]
        best_scores = scores[order]

        choice = self._weighted_pick(best, best_scores ** 2)
        target = None
        if choice in TARGETED_ACTIONS:
            target = self.select_target(view, choice)
            if target is None:
                logger.debug(f"{self.player_id}: no target for {choice.value}, taking income")
                choice = ActionKind.INCOME
        confidence = float(scores[actions.index(choice)]) if choice in actions else 0.5
        return BotDecision(action=choice, target=target, confidence=confidence)

    def score_action(self, action: ActionKind, view: GameView) -> float:
        """Heuristic value of `action` in [0, 1]."""
        if action is ActionKind.INCOME:
            score = self._score_income(view)
        elif action is ActionKind.FOREIGN_AID:
            score = self._score_foreign_aid(view)
        elif action is ActionKind.COUP:
            score = self._score_coup(view)
        elif action is ActionKind.TAX:
            score = self._score_tax(view)
        elif action is ActionKind.ASSASSINATE:
            score = self._score_assassinate(view)
        elif action is ActionKind.STEAL:
            score = self._score_steal(view)
        elif action is ActionKind.EXCHANGE:
            score = self._score_exchange(view)
        else:
            score = 0.0

        if action in CHARACTER_ACTIONS:
            score *= self.personality.risk_tolerance
        score *= self.profile.strategy_complexity
        return float(np.clip(score, 0.0, 1.0))

    def _score_income(self, view: GameView) -> float:
        score = 0.3
        if view.coins < 3:
            score += 0.3
        if self._likely_targeted(view):
            score += 0.2
        return score

    def _score_foreign_aid(self, view: GameView) -> float:
        active = sum(1 for p in view.players if not p.is_eliminated)
        score = 0.5 * (1 - min(0.7, active * 0.15))
        if view.coins < 5:
            score += 0.2
        return score

    def _score_coup(self, view: GameView) -> float:
        if view.coins >= MANDATORY_COUP_COINS:
            return 1.0
        score = 0.4
        if view.coins >= COUP_COST and self._threats(view):
            score += 0.4
        return score

    def _bluff_discount(self, action: ActionKind, score: float, view: GameView) -> float:
        score *= 1 - self.estimate_challenge_risk(action, view)
        score *= self.personality.bluff_rate * self.profile.bluff_multiplier
        return score

    def _holds_for(self, action: ActionKind, view: GameView) -> bool:
        return required_character(action, view.characters) in view.hand

    def _score_tax(self, view: GameView) -> float:
        score = 0.6
        if self._holds_for(ActionKind.TAX, view):
            score += 0.3
        else:
            score = self._bluff_discount(ActionKind.TAX, score, view)
        if view.coins < 4:
            score += 0.2
        return score

    def _score_assassinate(self, view: GameView) -> float:
        if view.coins < ASSASSINATE_COST:
            return 0.0
        score = 0.7
        if self._holds_for(ActionKind.ASSASSINATE, view):
            score += 0.2
        else:
            score = self._bluff_discount(ActionKind.ASSASSINATE, score, view)
        if self._threats(view):
            score += 0.2
        return score

    def _score_steal(self, view: GameView) -> float:
        score = 0.5
        if self._holds_for(ActionKind.STEAL, view):
            score += 0.2
        else:
            score = self._bluff_discount(ActionKind.STEAL, score, view)
        if any(p.coins >= 2 for p in view.opponents):
            score += 0.3
        return score

    def _score_exchange(self, view: GameView) -> float:
        score = 0.4
        if self._holds_for(ActionKind.EXCHANGE, view):
            score += 0.3
        else:
            score = self._bluff_discount(ActionKind.EXCHANGE, score, view)
        if len(view.hand) == 1:
            score += 0.2
        return score

    def estimate_challenge_risk(self, action: ActionKind, view: GameView) -> float:
        """Chance a bluffed `action` gets called, from own repetition and table size."""
        risk = 0.3
        risk += self.memory.action_claims(self.player_id, action) * 0.1
        risk += len(view.opponents) * 0.05
        return min(0.9, risk)

    def _threats(self, view: GameView) -> List[PublicPlayer]:
        return [p for p in view.opponents if p.coins >= COUP_COST or p.influence_count > 1]

    def _likely_targeted(self, view: GameView) -> bool:
        return view.coins >= COUP_COST or len(view.hand) > 1

    def select_target(self, view: GameView, action: ActionKind) -> Optional[str]:
        """Pick an opponent: best three by score, sampled 4:2:1."""
        candidates = view.opponents
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0].id

        scores = np.array([self._score_target(p, action) for p in candidates])
        order = np.argsort(-scores, kind="stable")[:3]
        top = [candidates[i] for i in order]
        weights = np.array([2.0 ** (len(top) - i - 1) for i in range(len(top))])
        return self._weighted_pick(top, weights).id

    def _score_target(self, target: PublicPlayer, action: ActionKind) -> float:
        score = 0.5 + target.influence_count * 0.2
        if action is ActionKind.STEAL:
            score += min(target.coins / 10, 0.3)
        if target.coins >= COUP_COST:
            score += 0.2
        if target.coins >= MANDATORY_COUP_COINS:
            score += 0.3
        return score

    # ------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------

    def decide_reaction(self, view: GameView, prompt: ReactionPrompt) -> ReactionDecision:
        """Challenge first; consider blocking only when not challenging."""
        self.memory.observe_discards(view.discard_pile)
        decision = ReactionDecision()

        if prompt.block_character is not None:
            challenge, confidence = self.should_challenge(view, prompt.block_character, prompt.blocker)
            decision.challenge = challenge
            decision.confidence = confidence
            return decision

        if prompt.can_challenge:
            claimed = required_character(prompt.action, view.characters)
            challenge, confidence = self.should_challenge(view, claimed, prompt.actor)
            decision.challenge = challenge
            decision.confidence = confidence

        if not decision.challenge and prompt.can_block:
            block, character, confidence = self.should_block(view, prompt)
            decision.block = block
            decision.block_character = character
            if block:
                decision.confidence = confidence
        return decision

    def should_challenge(
        self, view: GameView, claimed: Optional[Character], claimant: Optional[str]
    ) -> tuple:
        """Return (challenge, confidence) for a claim of `claimed` by `claimant`."""
        if claimed is None:
            return False, 0.0

        probability = self.personality.challenge_rate * self.profile.challenge_accuracy
        if claimant and self.memory.claims_of(claimant, claimed) > 2:
            probability += 0.3

        revealed = sum(1 for c in self.memory.discard_pile if c is claimed)
        max_copies = view.copies_per_character or cards_per_character(len(view.players))
        if revealed >= max_copies:
            probability = 0.9

        if claimed in view.hand:
            probability += 0.2

        probability += (self.rng.random() - 0.5) * (1 - self.profile.strategy_complexity)
        return probability > 0.5, abs(probability - 0.5) * 2

    def should_block(self, view: GameView, prompt: ReactionPrompt) -> tuple:
        """Return (block, character, confidence)."""
        options = list(prompt.block_options)
        if not options or not self._affects_me(prompt):
            return False, None, 0.0

        for character in options:
            if character in view.hand:
                return True, character, 0.8

        bluff = self.personality.bluff_rate * self.profile.bluff_multiplier
        if self.rng.random() < bluff:
            return True, self.rng.choice(options), 0.4
        return False, None, 0.2

    def _affects_me(self, prompt: ReactionPrompt) -> bool:
        if prompt.action in (ActionKind.STEAL, ActionKind.ASSASSINATE):
            return prompt.target == self.player_id
        return prompt.action is ActionKind.FOREIGN_AID

    # ------------------------------------------------------------------
    # Card choices
    # ------------------------------------------------------------------

    def card_value(self, character: Character, coins: int) -> float:
        value = CARD_VALUES.get(character, 0.5)
        if character is Character.ASSASSIN and coins >= ASSASSINATE_COST:
            value += 0.1
        return value

    def select_cards_to_keep(self, view: GameView, candidates: Sequence[Character], keep: int) -> List[int]:
        """Indices of the `keep` most valuable candidates."""
        values = np.array([self.card_value(c, view.coins) for c in candidates])
        order = np.argsort(-values, kind="stable")[:keep]
        return [int(i) for i in order]

    def select_influence_to_lose(self, view: GameView) -> int:
        """Index (into the face-down hand) of the least valuable influence."""
        if len(view.hand) <= 1:
            return 0
        values = np.array([self.card_value(c, view.coins) for c in view.hand])
        return int(np.argmin(values))

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    def reaction_delay(self) -> float:
        low, high = self.profile.reaction_delay
        return self.rng.uniform(low, high)

    def _weighted_pick(self, items: list, weights):
        total = float(np.sum(weights))
        if total <= 0:
            return items[0]
        roll = self.rng.random() * total
        for item, weight in zip(items, weights):
            roll -= float(weight)
            if roll <= 0:
                return item
        return items[0]
