"""Enumerations for game phases, characters, actions and difficulty tiers."""

from enum import Enum


class GamePhase(Enum):
    """Room phase. A room returns to LOBBY once a winner is found."""

    LOBBY = "lobby"
    GAME = "game"


class Character(Enum):
    """Character cards a player may hold as influence."""

    DUKE = "duke"
    ASSASSIN = "assassin"
    CAPTAIN = "captain"
    AMBASSADOR = "ambassador"
    CONTESSA = "contessa"
    INQUISITOR = "inquisitor"


class ActionKind(Enum):
    """Actions a player may declare on their turn."""

    INCOME = "income"
    FOREIGN_AID = "foreign-aid"
    COUP = "coup"
    TAX = "tax"
    ASSASSINATE = "assassinate"
    STEAL = "steal"
    EXCHANGE = "exchange"


class Difficulty(Enum):
    """Bot difficulty tiers."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    TURBO = "turbo"
