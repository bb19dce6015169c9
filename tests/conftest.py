"""Pytest configuration and fixtures."""

from typing import List, Optional

import pytest
from coupsim.agents.bot_driver import BotDriver
from coupsim.core.commands import EventType, GameEvent
from coupsim.core.config import GameConfig
from coupsim.core.engine import GameEngine
from coupsim.core.enums import Character, Difficulty
from coupsim.core.game_state import InfluenceSlot, Player
from coupsim.core.scheduler import ManualScheduler


NAMES = ["Alice", "Bob", "Carol", "Dave", "Erin", "Frank", "Grace", "Heidi", "Ivan", "Judy"]


class EventCollector:
    """Records every event an engine emits."""

    def __init__(self):
        self.events: List[GameEvent] = []

    def __call__(self, event: GameEvent) -> None:
        self.events.append(event)

    def of(self, event_type: EventType) -> List[GameEvent]:
        return [e for e in self.events if e.type is event_type]

    def last(self, event_type: EventType) -> Optional[GameEvent]:
        matching = self.of(event_type)
        return matching[-1] if matching else None

    def to(self, player_id: str) -> List[GameEvent]:
        return [e for e in self.events if e.recipient == player_id]

    def clear(self) -> None:
        self.events = []


def _pull_into_deck(engine: GameEngine, character: Character, exclude: str) -> None:
    """Swap `character` out of another seat's hand and into the deck."""
    deck = engine.state.deck
    for other in engine.state.players:
        if other.id == exclude:
            continue
        for slot in other.influences:
            if not slot.revealed and slot.character is character:
                replacement = next(c for c in deck.cards if c is not character)
                deck.cards.remove(replacement)
                deck.cards.append(character)
                slot.character = replacement
                return
    raise AssertionError(f"no {character.value} available to deal")


def set_hand(engine: GameEngine, player_id: str, characters: List[Character]) -> None:
    """Give a player exactly `characters`, swapping cards with the deck."""
    state = engine.state
    player = state.get_player(player_id)
    for card in player.active_influences:
        state.deck.return_card(card)
    revealed = [slot for slot in player.influences if slot.revealed]
    fresh = []
    for character in characters:
        if character not in state.deck.cards:
            _pull_into_deck(engine, character, exclude=player_id)
        state.deck.cards.remove(character)
        fresh.append(InfluenceSlot(character))
    player.influences = fresh + revealed


def set_turn(engine: GameEngine, player_id: str) -> None:
    engine.state.current_player_id = player_id


@pytest.fixture
def game_config():
    """Seeded configuration with short, distinct timeouts."""
    return GameConfig(
        seed=1234,
        reaction_timeout=15.0,
        bot_reaction_timeout=1.5,
        block_timeout=10.0,
        selection_timeout=30.0,
    )


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def collector():
    return EventCollector()


@pytest.fixture
def make_engine(game_config, scheduler, collector):
    """Factory: engine with `humans` human seats then `bots` bot seats, optionally started."""

    def _make(
        humans: int = 3,
        bots: int = 0,
        start: bool = True,
        config: Optional[GameConfig] = None,
        difficulty: Difficulty = Difficulty.MEDIUM,
    ) -> GameEngine:
        engine = GameEngine(config or game_config, scheduler, room_code="TEST")
        engine.subscribe(collector)
        driver = BotDriver(engine).attach()
        for i in range(humans + bots):
            is_bot = i >= humans
            player = Player(
                id=f"p{i + 1}",
                name=NAMES[i],
                is_bot=is_bot,
                difficulty=difficulty if is_bot else None,
            )
            engine.state.players.append(player)
            if is_bot:
                driver.add_bot(player.id, difficulty)
        if start:
            engine.start_game()
        return engine

    return _make


@pytest.fixture
def engine(make_engine, collector):
    """Three human seats, game started, Alice to act, event log cleared."""
    engine = make_engine(humans=3)
    set_turn(engine, "p1")
    collector.clear()
    return engine
