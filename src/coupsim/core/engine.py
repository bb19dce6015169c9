"""Per-room rules engine.

One GameEngine owns one room's GameState and is its only writer. Commands
arrive through dispatch(); waits (reaction windows, card choices, bot
thinking time) are Deadlines on the injected scheduler, never blocking
calls. Outbound events go to every subscribed listener.
"""

import itertools
import logging
import random
from typing import Callable, Dict, List, Optional, Set

from .arbitration import ReactionArbitration
from .commands import Command, CommandResult, CommandType, EventType, GameEvent
from .config import GameConfig
from .deck import Deck
from .enums import ActionKind, GamePhase
from .errors import ProtocolViolation, RuleViolation, StateInconsistency
from .game_state import (
    GameState,
    PendingAction,
    PendingInfluenceLoss,
    PendingReactionSet,
    Player,
)
from .influence import (
    apply_exchange,
    begin_exchange,
    cancel_exchange,
    reveal_all,
    reveal_influence,
)
from .rules import (
    ASSASSINATE_COST,
    COUP_COST,
    MANDATORY_COUP_COINS,
    STEAL_AMOUNT,
    block_options,
    can_player_block,
    is_challengeable,
    is_contestable,
    required_character,
    validate_action,
)
from .scheduler import AsyncioScheduler, Deadline, Scheduler
from .turns import advance_turn, build_ranking, check_winner


logger = logging.getLogger(__name__)


Listener = Callable[[GameEvent], None]


class GameEngine(ReactionArbitration):
    """Action resolution engine for a single room."""

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        room_code: str = "",
    ):
        """Initialize the engine.

        Args:
            config: Room rules and timeouts (defaults if None)
            scheduler: Deadline scheduler (asyncio event loop if None)
            rng: Random source for shuffles and seat order (seeded from config if None)
            room_code: Label used in logs and events
        """
        self.config = config or GameConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.scheduler = scheduler or AsyncioScheduler()
        self.room_code = room_code
        self.state = GameState(deck=Deck(self.rng))

        self._listeners: List[Listener] = []
        self._ids = itertools.count(1)
        self._turn_deadlines: List[Deadline] = []

        # Set by BotDriver.attach(); supplies synchronous card choices for bot seats
        self.bot_driver = None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event_type: EventType, data: Optional[Dict] = None, recipient: Optional[str] = None) -> None:
        event = GameEvent(event_type, data or {}, recipient)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Listener failed on {event_type.value}: {e}", exc_info=True)

    def _send_private_hand(self, player: Player) -> None:
        self.emit(EventType.PRIVATE_HAND, {
            "player_id": player.id,
            "influences": [
                {"character": slot.character.value, "revealed": slot.revealed}
                for slot in player.influences
            ],
            "coins": player.coins,
        }, recipient=player.id)

    def _send_snapshot(self) -> None:
        self.emit(EventType.STATE_SNAPSHOT, {
            "players": self.state.public_players(),
            "current_player": self.state.current_player_id,
            "deck_size": len(self.state.deck),
            "discard_pile": [c.value for c in self.state.discard_pile],
            "turn": self.state.turn_count,
        })

    def publish_state(self) -> None:
        self._send_snapshot()
        for player in self.state.players:
            self._send_private_hand(player)

    # ------------------------------------------------------------------
    # Scheduling helpers
    # ------------------------------------------------------------------

    def _next_id(self) -> int:
        return next(self._ids)

    def _guarded(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Wrap a deadline callback so a broken state ends the game instead of stalling."""

        def run() -> None:
            try:
                callback()
            except StateInconsistency as e:
                logger.error(f"[{self.room_code}] State inconsistency: {e.reason}")
                self._force_end(e.reason)

        return run

    def schedule_bot_move(self, delay: float, callback: Callable[[], None], label: str = "") -> Deadline:
        """Schedule a bot move, owned by whichever stage is currently open.

        Closing that stage (block window, reaction window or the turn)
        cancels the move.
        """
        deadline = self.scheduler.call_later(delay, self._guarded(callback), label=label)
        if self.state.pending_block is not None:
            self.state.pending_block.bot_deadlines.append(deadline)
        elif self.state.pending_reactions is not None:
            self.state.pending_reactions.bot_deadlines.append(deadline)
        else:
            self._turn_deadlines.append(deadline)
        return deadline

    def _window_timeout(self, responders: Set[str], nominal: float) -> float:
        """Nominal timeout, compressed when every remaining responder is a bot."""
        seats = [self.state.get_player(pid) for pid in responders]
        if seats and all(p is not None and p.is_bot for p in seats):
            return min(nominal, self.config.bot_reaction_timeout)
        return nominal

    def _arm_window_deadline(self, window: PendingReactionSet) -> None:
        """(Re)arm the window deadline, only ever moving it earlier."""
        delay = self._window_timeout(window.responders, self.config.reaction_timeout)
        when = self.scheduler.now() + delay
        if window.deadline is not None and window.deadline.active and window.deadline.when <= when:
            return
        if window.deadline is not None:
            window.deadline.cancel()
        window.deadline = self.scheduler.call_later(
            delay, self._guarded(lambda: self._on_window_timeout(window)),
            label=f"window-{window.window_id}",
        )

    def _cancel_all_deadlines(self) -> None:
        for deadline in self._turn_deadlines:
            deadline.cancel()
        self._turn_deadlines = []
        if self.state.pending_reactions is not None:
            self._close_reaction_window(self.state.pending_reactions)
        if self.state.pending_block is not None:
            self._close_block_window(self.state.pending_block)
        if self.state.pending_influence_loss is not None and self.state.pending_influence_loss.deadline:
            self.state.pending_influence_loss.deadline.cancel()
        if self.state.pending_exchange is not None and self.state.pending_exchange.deadline:
            self.state.pending_exchange.deadline.cancel()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def dispatch(self, command: Command) -> CommandResult:
        """Apply one command. The single entry point for every seat."""
        logger.info(f"[{self.room_code}] {command.player_id}: {command.type.value}")
        try:
            if command.type is CommandType.SUBMIT_ACTION:
                self.submit_action(command.player_id, command.action, command.target_id)
            elif command.type is CommandType.SUBMIT_CHALLENGE:
                self._require_game()
                self.submit_challenge(command.player_id)
            elif command.type is CommandType.SUBMIT_BLOCK:
                self._require_game()
                self.submit_block(command.player_id, command.character)
            elif command.type is CommandType.SUBMIT_PASS:
                self._require_game()
                self.submit_pass(command.player_id)
            elif command.type is CommandType.SUBMIT_CARD_SELECTION:
                self._require_game()
                self.submit_card_selection(command.player_id, command.indices)
            elif command.type is CommandType.SUBMIT_INFLUENCE_LOSS:
                self._require_game()
                self.submit_influence_loss(command.player_id, command.index)
            else:
                raise ValueError(f"Unknown command type: {command.type}")
        except RuleViolation as e:
            logger.info(f"[{self.room_code}] Rejected {command.type.value} from {command.player_id}: {e.reason}")
            self.emit(EventType.ERROR, {"error": e.reason, "command": command.type.value},
                      recipient=command.player_id)
            return CommandResult(False, e.reason)
        except ProtocolViolation as e:
            logger.debug(f"[{self.room_code}] Ignored {command.type.value} from {command.player_id}: {e.reason}")
            return CommandResult(False, e.reason, ignored=True)
        except StateInconsistency as e:
            logger.error(f"[{self.room_code}] State inconsistency: {e.reason}")
            self._force_end(e.reason)
            return CommandResult(False, e.reason)
        return CommandResult.ok()

    def _require_game(self) -> None:
        if self.state.phase is not GamePhase.GAME:
            raise ProtocolViolation("no game in progress")

    # ------------------------------------------------------------------
    # Game lifecycle
    # ------------------------------------------------------------------

    def start_game(self) -> None:
        """Deal a fresh game to the seated players."""
        state = self.state
        if state.phase is GamePhase.GAME:
            raise RuleViolation("game already in progress")
        if len(state.players) < self.config.min_players:
            raise RuleViolation(f"at least {self.config.min_players} players are required")
        if len(state.players) > self.config.max_players:
            raise RuleViolation(f"at most {self.config.max_players} players are allowed")

        self._cancel_all_deadlines()
        state.pending_action = None
        state.pending_reactions = None
        state.pending_block = None
        state.pending_exchange = None
        state.pending_influence_loss = None
        state.discard_pile = []
        state.turn_count = 0
        state.action_count = 0
        state.winner_id = None

        for player in state.players:
            player.coins = self.config.starting_coins
            player.influences = []
            player.revealed_count = 0

        state.deck.initialize(len(state.players), inquisitor_variant=self.config.inquisitor_mode)
        state.deck.deal_initial_hands(state.players, self.config.cards_per_player)

        first = self.rng.randrange(len(state.players))
        state.current_player_id = state.players[first].id
        if self.config.two_player_mode and len(state.players) == 2:
            state.players[first].coins = max(0, self.config.starting_coins - 1)

        state.phase = GamePhase.GAME
        state.started_at = self.scheduler.now()
        logger.info(
            f"[{self.room_code}] Game started with {len(state.players)} players; "
            f"{state.current_player.name} goes first"
        )

        self.emit(EventType.GAME_STARTED, {
            "players": state.public_players(),
            "current_player": state.current_player_id,
            "deck_size": len(state.deck),
            "characters": [c.value for c in state.deck.characters],
            "settings": {
                "inquisitor_mode": self.config.inquisitor_mode,
                "two_player_mode": self.config.two_player_mode,
            },
        })
        self.publish_state()
        self._begin_turn()

    def _begin_turn(self) -> None:
        player = self.state.current_player
        self.emit(EventType.TURN_STARTED, {
            "player": player.id,
            "turn": self.state.turn_count,
            "coins": player.coins,
            "must_coup": player.coins >= MANDATORY_COUP_COINS,
        })

    def _finish_action(self) -> None:
        """Clear the action's records, then end the game or pass the turn."""
        state = self.state
        if state.phase is not GamePhase.GAME:
            return
        self._cancel_all_deadlines()
        if state.pending_action is not None:
            state.pending_action.resolved = True
        state.pending_action = None
        state.pending_block = None
        state.pending_exchange = None
        state.pending_influence_loss = None

        self.publish_state()
        winner = check_winner(state)
        if winner is not None:
            self._end_game(winner)
            return
        advance_turn(state)
        self._begin_turn()

    def _end_game(self, winner: Optional[Player], reason: Optional[str] = None) -> None:
        state = self.state
        self._cancel_all_deadlines()
        if state.pending_exchange is not None:
            cancel_exchange(state, state.pending_exchange)
        state.pending_action = None
        state.pending_reactions = None
        state.pending_block = None
        state.pending_exchange = None
        state.pending_influence_loss = None
        state.winner_id = winner.id if winner else None
        state.phase = GamePhase.LOBBY

        duration = self.scheduler.now() - (state.started_at or self.scheduler.now())
        logger.info(
            f"[{self.room_code}] Game ended; winner: {winner.name if winner else 'none'}"
            + (f" ({reason})" if reason else "")
        )
        self.emit(EventType.GAME_ENDED, {
            "winner": winner.id if winner else None,
            "winner_name": winner.name if winner else None,
            "ranking": build_ranking(state),
            "total_turns": state.turn_count,
            "total_actions": state.action_count,
            "duration": duration,
            "reason": reason,
        })

    def shutdown(self) -> None:
        """Stop the room: cancel every deadline and drop any game in progress."""
        if self.state.phase is GamePhase.GAME:
            self._end_game(None, reason="room closed")
        self._cancel_all_deadlines()
        self._listeners = []

    def _force_end(self, reason: str) -> None:
        """Fallback when the engine cannot continue: end with the current leader."""
        if self.state.phase is not GamePhase.GAME:
            return
        active = self.state.active_players
        leader = max(active, key=lambda p: len(p.active_influences)) if active else None
        self._end_game(leader, reason=reason)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def submit_action(self, actor_id: str, kind: ActionKind, target_id: Optional[str] = None) -> None:
        """Declare an action; executes now or opens a reaction window."""
        if self.state.phase is not GamePhase.GAME:
            raise RuleViolation("no game in progress")
        if kind is None:
            raise RuleViolation("unknown action")
        validate_action(self.state, actor_id, kind, target_id)
        if kind not in (ActionKind.COUP, ActionKind.ASSASSINATE, ActionKind.STEAL):
            target_id = None

        for deadline in self._turn_deadlines:
            deadline.cancel()
        self._turn_deadlines = []

        action = PendingAction(
            action_id=self._next_id(),
            actor_id=actor_id,
            kind=kind,
            target_id=target_id,
        )
        self.state.pending_action = action
        claimed = required_character(kind, self.state.deck.characters)
        logger.info(
            f"[{self.room_code}] {actor_id} declares {kind.value}"
            + (f" on {target_id}" if target_id else "")
        )
        self.emit(EventType.ACTION_ANNOUNCED, {
            "actor": actor_id,
            "action": kind.value,
            "target": target_id,
            "claimed_character": claimed.value if claimed else None,
        })

        if is_contestable(kind):
            self._open_reaction_window(action)
        else:
            self._execute(action)

    def _open_reaction_window(self, action: PendingAction) -> None:
        characters = self.state.deck.characters
        can_challenge = is_challengeable(action.kind)
        options = block_options(action.kind, characters)

        eligible_blockers: Set[str] = set()
        responders: Set[str] = set()
        for player in self.state.active_players:
            if player.id == action.actor_id:
                continue
            can_block = bool(options) and can_player_block(player, action.kind, action.target_id)
            if can_block:
                eligible_blockers.add(player.id)
            if can_challenge or can_block:
                responders.add(player.id)

        if not responders:
            self._execute(action)
            return

        window = PendingReactionSet(
            window_id=self._next_id(),
            responders=responders,
            can_challenge=can_challenge,
            block_options=options,
            eligible_blockers=eligible_blockers,
        )
        self.state.pending_reactions = window
        timeout = self._window_timeout(responders, self.config.reaction_timeout)
        self._arm_window_deadline(window)

        for player_id in sorted(responders, key=self._seat_index):
            # The window may close while addressees are still being notified
            if self.state.pending_reactions is not window:
                break
            can_block = player_id in eligible_blockers
            self.emit(EventType.REACTION_WINDOW_OPENED, {
                "addressee": player_id,
                "action": action.to_dict(),
                "claimed_character": (
                    required_character(action.kind, characters).value if can_challenge else None
                ),
                "can_challenge": can_challenge,
                "can_block": can_block,
                "block_options": [c.value for c in options] if can_block else [],
                "timeout": timeout,
            }, recipient=player_id)

    def _seat_index(self, player_id: str) -> int:
        for i, player in enumerate(self.state.players):
            if player.id == player_id:
                return i
        return len(self.state.players)

    def _on_window_timeout(self, window: PendingReactionSet) -> None:
        logger.info(f"[{self.room_code}] Reaction window {window.window_id} timed out")
        self._close_reaction_window(window)
        self._execute(self.state.pending_action)

    def _execute(self, action: Optional[PendingAction]) -> None:
        """Apply an uncontested (or successfully defended) action once."""
        if action is None or action.resolved:
            return
        if self.state.phase is not GamePhase.GAME:
            return
        action.resolved = True
        self.state.action_count += 1

        actor = self.state.get_player(action.actor_id)
        target = self.state.get_player(action.target_id)
        kind = action.kind
        result = {"actor": action.actor_id, "action": kind.value, "target": action.target_id}

        if kind is ActionKind.INCOME:
            actor.coins += 1
            result["coins"] = 1
        elif kind is ActionKind.FOREIGN_AID:
            actor.coins += 2
            result["coins"] = 2
        elif kind is ActionKind.TAX:
            actor.coins += 3
            result["coins"] = 3
        elif kind is ActionKind.STEAL:
            stolen = min(STEAL_AMOUNT, target.coins)
            target.coins -= stolen
            actor.coins += stolen
            result["coins"] = stolen
        elif kind in (ActionKind.COUP, ActionKind.ASSASSINATE):
            actor.coins -= COUP_COST if kind is ActionKind.COUP else ASSASSINATE_COST
            self.emit(EventType.ACTION_RESOLVED, result)
            self.request_influence_loss(target.id, then=self._finish_action)
            return
        elif kind is ActionKind.EXCHANGE:
            self.emit(EventType.ACTION_RESOLVED, result)
            self._start_exchange(actor)
            return

        logger.info(f"[{self.room_code}] {action.actor_id} resolved {kind.value}")
        self.emit(EventType.ACTION_RESOLVED, result)
        self._finish_action()

    # ------------------------------------------------------------------
    # Influence loss
    # ------------------------------------------------------------------

    def request_influence_loss(self, player_id: str, then: Callable[[], None]) -> None:
        """Make `player_id` reveal one influence, then continue with `then`.

        Eliminated players owe nothing and `then` runs immediately. Bots
        choose synchronously; humans get a card selection request and a
        deadline after which a random influence is revealed for them.
        """
        player = self.state.get_player(player_id)
        if player is None or player.is_eliminated:
            then()
            return

        pending = PendingInfluenceLoss(player_id=player_id, then=then)
        self.state.pending_influence_loss = pending

        if player.is_bot and self.bot_driver is not None:
            index = self.bot_driver.choose_influence_loss(player_id)
            self._apply_influence_loss(pending, index)
            return

        self.emit(EventType.CARD_SELECTION_REQUESTED, {
            "player_id": player_id,
            "purpose": "influence_loss",
            "cards": [c.value for c in player.active_influences],
            "required": 1,
            "timeout": self.config.selection_timeout,
        }, recipient=player_id)
        pending.deadline = self.scheduler.call_later(
            self.config.selection_timeout,
            self._guarded(lambda: self._influence_loss_timeout(pending)),
            label=f"influence-{player_id}",
        )

    def submit_influence_loss(self, player_id: str, index: Optional[int]) -> None:
        pending = self.state.pending_influence_loss
        if pending is None or pending.player_id != player_id:
            raise ProtocolViolation("no influence loss pending for this player")
        if index is None:
            raise RuleViolation("an influence index is required")
        self._apply_influence_loss(pending, index)

    def _influence_loss_timeout(self, pending: PendingInfluenceLoss) -> None:
        player = self.state.get_player(pending.player_id)
        index = self.rng.randrange(len(player.active_influences))
        logger.info(f"[{self.room_code}] {pending.player_id} timed out; revealing influence {index}")
        self._apply_influence_loss(pending, index)

    def _apply_influence_loss(self, pending: PendingInfluenceLoss, index: int) -> None:
        player = self.state.get_player(pending.player_id)
        character = reveal_influence(self.state, player, index)
        if pending.deadline is not None:
            pending.deadline.cancel()
        if self.state.pending_influence_loss is pending:
            self.state.pending_influence_loss = None

        logger.info(f"[{self.room_code}] {player.id} loses {character.value}")
        self.emit(EventType.INFLUENCE_LOST, {
            "player_id": player.id,
            "character": character.value,
            "remaining": len(player.active_influences),
            "eliminated": player.is_eliminated,
        })
        self.publish_state()

        winner = check_winner(self.state)
        if winner is not None:
            self._end_game(winner)
            return
        pending.then()

    # ------------------------------------------------------------------
    # Exchange
    # ------------------------------------------------------------------

    def _start_exchange(self, player: Player) -> None:
        pending = begin_exchange(self.state, player)
        self.state.pending_exchange = pending

        if player.is_bot and self.bot_driver is not None:
            indices = self.bot_driver.choose_cards_to_keep(player.id, pending.candidates, pending.required)
            self._apply_exchange(player, pending, indices)
            return

        self.emit(EventType.CARD_SELECTION_REQUESTED, {
            "player_id": player.id,
            "purpose": "exchange",
            "cards": [c.value for c in pending.candidates],
            "required": pending.required,
            "timeout": self.config.selection_timeout,
        }, recipient=player.id)
        pending.deadline = self.scheduler.call_later(
            self.config.selection_timeout,
            self._guarded(lambda: self._apply_exchange(player, pending, range(pending.required))),
            label=f"exchange-{player.id}",
        )

    def submit_card_selection(self, player_id: str, indices) -> None:
        pending = self.state.pending_exchange
        if pending is None or pending.player_id != player_id:
            raise ProtocolViolation("no exchange pending for this player")
        self._apply_exchange(self.state.get_player(player_id), pending, indices)

    def _apply_exchange(self, player: Player, pending, indices) -> None:
        apply_exchange(self.state, player, pending, list(indices))
        if pending.deadline is not None:
            pending.deadline.cancel()
        self.state.pending_exchange = None
        logger.info(f"[{self.room_code}] {player.id} finished exchanging")
        self.emit(EventType.ACTION_RESOLVED, {
            "actor": player.id,
            "action": ActionKind.EXCHANGE.value,
            "target": None,
            "completed": True,
        })
        self._finish_action()

    # ------------------------------------------------------------------
    # Seats leaving mid-game
    # ------------------------------------------------------------------

    def forfeit(self, player_id: str) -> None:
        """Reveal everything `player_id` holds and release their pending duties."""
        state = self.state
        player = state.get_player(player_id)
        if player is None:
            return
        player.connected = False
        if state.phase is not GamePhase.GAME or player.is_eliminated:
            return

        try:
            for character in reveal_all(state, player):
                self.emit(EventType.INFLUENCE_LOST, {
                    "player_id": player_id,
                    "character": character.value,
                    "remaining": 0,
                    "eliminated": True,
                    "forfeit": True,
                })
            self.emit(EventType.PLAYER_LEFT, {"player_id": player_id, "forfeit": True})
            self.publish_state()

            winner = check_winner(state)
            if winner is not None:
                self._end_game(winner)
                return
            self._release_duties(player_id)
        except StateInconsistency as e:
            logger.error(f"[{self.room_code}] State inconsistency: {e.reason}")
            self._force_end(e.reason)

    def emit_player_left(self, player_id: str) -> None:
        """Announce a lobby departure (no game in progress, nothing to forfeit)."""
        self.emit(EventType.PLAYER_LEFT, {"player_id": player_id, "forfeit": False})

    def _release_duties(self, player_id: str) -> None:
        state = self.state
        action = state.pending_action

        if state.current_player_id == player_id:
            loss = state.pending_influence_loss
            if loss is not None and loss.player_id != player_id:
                # Someone still owes a card; the turn ends once they reveal it
                loss.then = self._finish_action
                return
            if state.pending_exchange is not None:
                cancel_exchange(state, state.pending_exchange)
            self._finish_action()
            return

        loss = state.pending_influence_loss
        if loss is not None and loss.player_id == player_id:
            if loss.deadline is not None:
                loss.deadline.cancel()
            state.pending_influence_loss = None
            loss.then()
            return

        block = state.pending_block
        if block is not None and block.blocker_id == player_id:
            self._resolve_block(block, stands=False)
            return

        window = state.pending_reactions
        if window is not None and player_id in window.responders and action is not None:
            self._drop_responder(window, player_id)
