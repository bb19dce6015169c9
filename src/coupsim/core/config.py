"""Game and server configuration dataclasses."""

import os
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class GameConfig:
    """Configuration for one room's rules and timing.

    Timeouts are wall-clock seconds on the asyncio scheduler and virtual
    seconds on the manual scheduler used by tests and simulations.
    """

    # ===========================================
    # PLAYER SETUP
    # ===========================================
    min_players: int = 2
    max_players: int = 10
    starting_coins: int = 2
    cards_per_player: int = 2

    # ===========================================
    # RULE VARIANTS
    # ===========================================
    # Inquisitor replaces the Ambassador in the character set
    inquisitor_mode: bool = False
    # Heads-up play: the starting player begins with one coin less
    two_player_mode: bool = False

    # ===========================================
    # REACTION WINDOWS
    # ===========================================
    reaction_timeout: float = 15.0
    # Used instead of reaction_timeout once every remaining responder is a bot
    bot_reaction_timeout: float = 1.5
    block_timeout: float = 15.0
    # Card choice after a lost challenge, coup, assassination or exchange
    selection_timeout: float = 30.0

    # ===========================================
    # RANDOMNESS
    # ===========================================
    # Seeds the deck shuffle, seat order and bot decisions for reproducible games
    seed: Optional[int] = None


@dataclass
class ServerConfig:
    """Settings for the HTTP/websocket collaborator surface."""

    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Build a config from COUPSIM_* environment variables."""
        config = cls()
        config.host = os.getenv("COUPSIM_HOST", config.host)
        config.port = int(os.getenv("COUPSIM_PORT", str(config.port)))
        origins = os.getenv("COUPSIM_CORS_ORIGINS")
        if origins:
            config.cors_origins = [o.strip() for o in origins.split(",") if o.strip()]
        return config
