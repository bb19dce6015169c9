"""All-bot games on a virtual clock.

Bot thinking time and reaction windows elapse instantly, so a full game
finishes in milliseconds and a seed reproduces it exactly.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .agents.bot_driver import BotDriver
from .core.commands import EventType, GameEvent
from .core.config import GameConfig
from .core.engine import GameEngine
from .core.enums import Difficulty
from .core.game_state import Player
from .core.scheduler import ManualScheduler


logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Outcome of one simulated game."""

    winner: Optional[str]
    winner_name: Optional[str]
    ranking: List[Dict] = field(default_factory=list)
    total_turns: int = 0
    total_actions: int = 0
    finished: bool = True
    events: int = 0


def build_bot_table(
    players: int,
    difficulty: Difficulty = Difficulty.MEDIUM,
    config: Optional[GameConfig] = None,
) -> GameEngine:
    """An engine on a manual scheduler with `players` bot seats, not yet started."""
    config = config or GameConfig()
    engine = GameEngine(config, ManualScheduler(), rng=random.Random(config.seed), room_code="SIM")
    driver = BotDriver(engine).attach()
    for i in range(players):
        player = Player(id=f"bot_{i + 1}", name=f"Bot {i + 1}", is_bot=True, difficulty=difficulty)
        engine.state.players.append(player)
        driver.add_bot(player.id, difficulty)
    return engine


def simulate_game(
    players: int = 4,
    difficulty: Difficulty = Difficulty.MEDIUM,
    seed: Optional[int] = None,
    config: Optional[GameConfig] = None,
    max_callbacks: int = 100000,
) -> SimulationResult:
    """Play one all-bot game to completion."""
    config = config or GameConfig(seed=seed)
    if seed is not None:
        config.seed = seed
    engine = build_bot_table(players, difficulty, config)

    ended: List[GameEvent] = []
    counter = {"events": 0}

    def listener(event: GameEvent) -> None:
        counter["events"] += 1
        if event.type is EventType.GAME_ENDED:
            ended.append(event)

    engine.subscribe(listener)
    engine.start_game()
    engine.scheduler.run_until_idle(max_callbacks)

    if not ended:
        logger.warning(f"Simulation stopped after {max_callbacks} callbacks without a winner")
        engine.shutdown()
        return SimulationResult(None, None, finished=False, events=counter["events"])

    data = ended[0].data
    return SimulationResult(
        winner=data["winner"],
        winner_name=data["winner_name"],
        ranking=data["ranking"],
        total_turns=data["total_turns"],
        total_actions=data["total_actions"],
        events=counter["events"],
    )
