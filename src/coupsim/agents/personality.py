"""Bot personalities and difficulty profiles.

A personality sets how often a bot bluffs, challenges and takes risks; a
difficulty profile scales those tendencies and sets how sharp its memory
and reading of the table are.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
import random

from ..core.enums import Difficulty


@dataclass
class PersonalityDefinition:
    """Definition of a bot personality archetype."""

    id: str  # e.g., "conservative"
    name: str  # e.g., "The Conservative"
    description: str

    # Fixed tendencies, or (low, high) ranges sampled per bot
    bluff_rate: Tuple[float, float]
    challenge_rate: Tuple[float, float]
    risk_tolerance: Tuple[float, float]

    def sample(self, rng: Optional[random.Random] = None) -> "BotPersonality":
        """Sample concrete tendencies from the archetype ranges."""
        rng = rng or random
        return BotPersonality(
            archetype=self.id,
            bluff_rate=rng.uniform(*self.bluff_rate),
            challenge_rate=rng.uniform(*self.challenge_rate),
            risk_tolerance=rng.uniform(*self.risk_tolerance),
        )


@dataclass
class BotPersonality:
    """Concrete tendencies of one bot seat."""

    archetype: str
    bluff_rate: float
    challenge_rate: float
    risk_tolerance: float


@dataclass
class DifficultyProfile:
    """Skill parameters for a difficulty tier."""

    difficulty: Difficulty
    bluff_multiplier: float
    challenge_accuracy: float
    memory_retention: float
    strategy_complexity: float
    reaction_delay: Tuple[float, float]  # seconds


# ============================================================================
# PERSONALITY REGISTRY
# ============================================================================

PERSONALITY_REGISTRY: Dict[str, PersonalityDefinition] = {

    "conservative": PersonalityDefinition(
        id="conservative",
        name="The Conservative",
        description="Rarely bluffs or challenges; plays the cards it holds",
        bluff_rate=(0.2, 0.2),
        challenge_rate=(0.3, 0.3),
        risk_tolerance=(0.4, 0.4),
    ),

    "aggressive": PersonalityDefinition(
        id="aggressive",
        name="The Aggressor",
        description="Bluffs freely, challenges often and goes after threats",
        bluff_rate=(0.6, 0.6),
        challenge_rate=(0.7, 0.7),
        risk_tolerance=(0.8, 0.8),
    ),

    "balanced": PersonalityDefinition(
        id="balanced",
        name="The Balanced Player",
        description="Middle of the road on every tendency",
        bluff_rate=(0.4, 0.4),
        challenge_rate=(0.5, 0.5),
        risk_tolerance=(0.6, 0.6),
    ),

    # Re-rolled for every bot so two unpredictable bots never play alike
    "unpredictable": PersonalityDefinition(
        id="unpredictable",
        name="The Wildcard",
        description="Tendencies drawn at random when the seat is created",
        bluff_rate=(0.0, 0.8),
        challenge_rate=(0.0, 0.8),
        risk_tolerance=(0.0, 0.9),
    ),
}


DIFFICULTY_PROFILES: Dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: DifficultyProfile(
        difficulty=Difficulty.EASY,
        bluff_multiplier=0.5,
        challenge_accuracy=0.4,
        memory_retention=0.6,
        strategy_complexity=0.3,
        reaction_delay=(0.3, 1.0),
    ),
    Difficulty.MEDIUM: DifficultyProfile(
        difficulty=Difficulty.MEDIUM,
        bluff_multiplier=1.0,
        challenge_accuracy=0.65,
        memory_retention=0.8,
        strategy_complexity=0.6,
        reaction_delay=(0.2, 0.8),
    ),
    Difficulty.HARD: DifficultyProfile(
        difficulty=Difficulty.HARD,
        bluff_multiplier=1.3,
        challenge_accuracy=0.85,
        memory_retention=0.95,
        strategy_complexity=0.9,
        reaction_delay=(0.1, 0.6),
    ),
    Difficulty.TURBO: DifficultyProfile(
        difficulty=Difficulty.TURBO,
        bluff_multiplier=1.0,
        challenge_accuracy=0.7,
        memory_retention=0.8,
        strategy_complexity=0.8,
        reaction_delay=(0.1, 0.5),
    ),
}


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def get_personality(personality_id: str) -> Optional[PersonalityDefinition]:
    """Get personality definition by ID."""
    return PERSONALITY_REGISTRY.get(personality_id)


def list_personalities() -> List[str]:
    return list(PERSONALITY_REGISTRY.keys())


def random_personality(rng: Optional[random.Random] = None) -> BotPersonality:
    """Pick an archetype uniformly and sample it."""
    rng = rng or random
    definition = PERSONALITY_REGISTRY[rng.choice(list_personalities())]
    return definition.sample(rng)


def get_difficulty_profile(difficulty: Difficulty) -> DifficultyProfile:
    return DIFFICULTY_PROFILES[difficulty]
