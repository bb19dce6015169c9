"""Drives bot seats against a GameEngine.

The driver listens to the engine's events, schedules each bot turn and
reaction through the engine after the bot's thinking delay, and submits
the resulting commands like any other seat. Card choices the engine needs
immediately (influence loss, exchange) are answered synchronously.

Any failure inside the decision engine falls back to the safest legal
move so a broken bot never stalls the room.
"""

import logging
import random
from typing import Dict, List, Optional, Sequence

from ..core.commands import Command, EventType, GameEvent
from ..core.enums import ActionKind, Character, Difficulty, GamePhase
from ..core.rules import MANDATORY_COUP_COINS
from .bot_engine import BotDecision, BotDecisionEngine, ReactionDecision, ReactionPrompt
from .personality import BotPersonality


logger = logging.getLogger(__name__)


class BotDriver:
    """Plays every bot seat of one engine."""

    def __init__(self, engine, rng: Optional[random.Random] = None):
        """Initialize the driver.

        Args:
            engine: GameEngine whose bot seats this driver plays
            rng: Random source shared by the bots (defaults to the engine's)
        """
        self.engine = engine
        self.rng = rng or engine.rng
        self.bots: Dict[str, BotDecisionEngine] = {}
        self._attached = False

    def attach(self) -> "BotDriver":
        if not self._attached:
            self.engine.subscribe(self.on_event)
            self.engine.bot_driver = self
            self._attached = True
        return self

    def detach(self) -> None:
        if self._attached:
            self.engine.unsubscribe(self.on_event)
            if self.engine.bot_driver is self:
                self.engine.bot_driver = None
            self._attached = False

    def add_bot(
        self,
        player_id: str,
        difficulty: Difficulty = Difficulty.MEDIUM,
        personality: Optional[BotPersonality] = None,
    ) -> BotDecisionEngine:
        bot = BotDecisionEngine(player_id, difficulty, personality, rng=self.rng)
        self.bots[player_id] = bot
        logger.info(f"Bot {player_id} seated: {bot.describe()}")
        return bot

    def remove_bot(self, player_id: str) -> None:
        self.bots.pop(player_id, None)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def on_event(self, event: GameEvent) -> None:
        if event.type is EventType.GAME_STARTED:
            for bot in self.bots.values():
                bot.memory.clear()
        elif event.type is EventType.ACTION_ANNOUNCED:
            claimed = event.data.get("claimed_character")
            if claimed:
                self._record_claim(event.data["actor"], ActionKind(event.data["action"]), Character(claimed))
        elif event.type is EventType.BLOCK_DECLARED:
            self._record_claim(event.data["blocker"], None, Character(event.data["character"]))
        elif event.type is EventType.TURN_STARTED:
            player_id = event.data["player"]
            if player_id in self.bots:
                self._schedule(player_id, lambda: self.take_turn(player_id), "turn")
        elif event.type is EventType.REACTION_WINDOW_OPENED:
            player_id = event.recipient
            if player_id in self.bots:
                prompt = self._prompt_from(event.data)
                self._schedule(player_id, lambda: self.react(player_id, prompt), "reaction")
        elif event.type is EventType.PLAYER_LEFT:
            for bot in self.bots.values():
                bot.memory.forget_player(event.data["player_id"])

    def _record_claim(self, player_id: str, action: Optional[ActionKind], character: Character) -> None:
        turn = self.engine.state.turn_count
        for bot in self.bots.values():
            bot.record_claim(player_id, action, character, turn)

    def _schedule(self, player_id: str, callback, kind: str) -> None:
        delay = self.bots[player_id].reaction_delay()
        self.engine.schedule_bot_move(delay, callback, label=f"bot-{kind}-{player_id}")

    @staticmethod
    def _prompt_from(data: Dict) -> ReactionPrompt:
        action = data["action"]
        block = data.get("block")
        return ReactionPrompt(
            actor=action["actor"],
            action=ActionKind(action["action"]),
            target=action.get("target"),
            can_challenge=data.get("can_challenge", False),
            can_block=data.get("can_block", False),
            block_options=[Character(c) for c in data.get("block_options", [])],
            blocker=block["blocker"] if block else None,
            block_character=Character(block["character"]) if block else None,
        )

    # ------------------------------------------------------------------
    # Scheduled moves
    # ------------------------------------------------------------------

    def take_turn(self, player_id: str) -> None:
        state = self.engine.state
        if state.phase is not GamePhase.GAME or state.current_player_id != player_id:
            return
        if state.pending_action is not None:
            return

        try:
            decision = self.bots[player_id].decide_turn(state.view_for(player_id))
        except Exception as e:
            logger.error(f"Bot {player_id} failed to decide a turn: {e}", exc_info=True)
            decision = self._fallback_turn(player_id)

        logger.debug(f"Bot {player_id} chooses {decision.action.value} (confidence {decision.confidence:.2f})")
        result = self.engine.dispatch(Command.declare(player_id, decision.action, decision.target))
        if not result.accepted and not result.ignored:
            logger.warning(f"Bot {player_id} action rejected ({result.reason}); using fallback")
            fallback = self._fallback_turn(player_id)
            self.engine.dispatch(Command.declare(player_id, fallback.action, fallback.target))

    def _fallback_turn(self, player_id: str) -> BotDecision:
        """Income, or a coup on a random opponent when coup is mandatory."""
        state = self.engine.state
        player = state.get_player(player_id)
        if player.coins >= MANDATORY_COUP_COINS:
            targets = [p.id for p in state.active_players if p.id != player_id]
            return BotDecision(ActionKind.COUP, self.rng.choice(targets), 0.0)
        return BotDecision(ActionKind.INCOME, None, 0.0)

    def react(self, player_id: str, prompt: ReactionPrompt) -> None:
        if not self._awaiting_reaction(player_id):
            return
        try:
            decision = self.bots[player_id].decide_reaction(self.engine.state.view_for(player_id), prompt)
        except Exception as e:
            logger.error(f"Bot {player_id} failed to decide a reaction: {e}", exc_info=True)
            decision = ReactionDecision()

        if decision.challenge:
            command = Command.challenge(player_id)
        elif decision.block and decision.block_character is not None:
            command = Command.block(player_id, decision.block_character)
        else:
            command = Command.pass_reaction(player_id)

        result = self.engine.dispatch(command)
        if not result.accepted and not result.ignored:
            logger.warning(f"Bot {player_id} reaction rejected ({result.reason}); passing")
            self.engine.dispatch(Command.pass_reaction(player_id))

    def _awaiting_reaction(self, player_id: str) -> bool:
        state = self.engine.state
        if state.pending_block is not None:
            return player_id in state.pending_block.responders
        if state.pending_reactions is not None:
            return player_id in state.pending_reactions.responders
        return False

    # ------------------------------------------------------------------
    # Synchronous card choices
    # ------------------------------------------------------------------

    def choose_influence_loss(self, player_id: str) -> int:
        player = self.engine.state.get_player(player_id)
        count = len(player.active_influences)
        try:
            index = self.bots[player_id].select_influence_to_lose(self.engine.state.view_for(player_id))
            if not 0 <= index < count:
                raise ValueError(f"influence index {index} out of range")
            return index
        except Exception as e:
            logger.error(f"Bot {player_id} failed to choose an influence: {e}", exc_info=True)
            return self.rng.randrange(count)

    def choose_cards_to_keep(self, player_id: str, candidates: Sequence[Character], required: int) -> List[int]:
        try:
            indices = self.bots[player_id].select_cards_to_keep(
                self.engine.state.view_for(player_id), candidates, required
            )
            if len(set(indices)) != required or any(not 0 <= i < len(candidates) for i in indices):
                raise ValueError(f"invalid selection {indices}")
            return list(indices)
        except Exception as e:
            logger.error(f"Bot {player_id} failed to choose cards: {e}", exc_info=True)
            return self.rng.sample(range(len(candidates)), required)
