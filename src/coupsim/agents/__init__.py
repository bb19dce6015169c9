"""Heuristic bots: personalities, memory, decisions and the driver."""

from .bot_driver import BotDriver
from .bot_engine import BotDecision, BotDecisionEngine, ReactionDecision, ReactionPrompt
from .personality import BotPersonality, DifficultyProfile

__all__ = [
    "BotDriver",
    "BotDecision",
    "BotDecisionEngine",
    "ReactionDecision",
    "ReactionPrompt",
    "BotPersonality",
    "DifficultyProfile",
]
