"""Challenge and block arbitration.

Mixed into GameEngine. Every method here runs inside the engine's single
writer (a command dispatch or a fired deadline) and relies on the engine for
events, deadlines, influence loss and action execution.
"""

import logging
from typing import Callable, Optional

from .commands import EventType
from .enums import Character
from .errors import ProtocolViolation, RuleViolation
from .game_state import PendingAction, PendingBlock
from .influence import replace_proven_card
from .rules import required_character


logger = logging.getLogger(__name__)


class ReactionArbitration:
    """Challenge, block and pass handling for the pending action."""

    # ------------------------------------------------------------------
    # Inbound reactions
    # ------------------------------------------------------------------

    def submit_challenge(self, player_id: str) -> None:
        """Challenge the pending block, or else the pending action."""
        block = self.state.pending_block
        if block is not None:
            if player_id not in block.responders:
                raise ProtocolViolation("only the acting player may challenge a block")
            self._close_block_window(block)
            self._challenge_block(player_id, block)
            return

        window = self.state.pending_reactions
        action = self.state.pending_action
        if window is None or action is None or player_id not in window.responders:
            raise ProtocolViolation("no reaction pending for this player")
        if not window.can_challenge:
            raise RuleViolation(f"{action.kind.value} cannot be challenged")

        claimed = required_character(action.kind, self.state.deck.characters)
        self._close_reaction_window(window)
        logger.info(f"{player_id} challenges {action.actor_id}'s {action.kind.value}")
        self.resolve_challenge(
            challenger_id=player_id,
            defender_id=action.actor_id,
            claimed=claimed,
            on_truthful=lambda: self._execute(action),
            on_bluff=self._finish_action,
        )

    def submit_block(self, player_id: str, character: Character) -> None:
        """Declare a block; opens the actor's window to challenge it."""
        if character is None:
            raise RuleViolation("a block character is required")
        window = self.state.pending_reactions
        action = self.state.pending_action
        if window is None or action is None or player_id not in window.responders:
            raise ProtocolViolation("no reaction pending for this player")
        if player_id not in window.eligible_blockers:
            raise RuleViolation(f"you cannot block {action.kind.value}")
        if character not in window.block_options:
            raise RuleViolation(f"{character.value} does not block {action.kind.value}")

        self._close_reaction_window(window)
        block = PendingBlock(
            block_id=self._next_id(),
            blocker_id=player_id,
            character=character,
            action=action,
            responders={action.actor_id},
        )
        self.state.pending_block = block
        logger.info(f"{player_id} blocks {action.kind.value} claiming {character.value}")

        self.emit(EventType.BLOCK_DECLARED, {
            "blocker": player_id,
            "character": character.value,
            "action": action.to_dict(),
        })
        self.emit(EventType.REACTION_WINDOW_OPENED, {
            "addressee": action.actor_id,
            "action": action.to_dict(),
            "block": {"blocker": player_id, "character": character.value},
            "can_challenge": True,
            "can_block": False,
            "block_options": [],
            "timeout": self._window_timeout(block.responders, self.config.block_timeout),
        }, recipient=action.actor_id)

        delay = self._window_timeout(block.responders, self.config.block_timeout)
        block.deadline = self.scheduler.call_later(
            delay, self._guarded(lambda: self._resolve_block(block, stands=True)),
            label=f"block-{block.block_id}",
        )

    def submit_pass(self, player_id: str) -> None:
        """Decline to react. The last pass closes the window."""
        block = self.state.pending_block
        if block is not None:
            if player_id not in block.responders:
                raise ProtocolViolation("no reaction pending for this player")
            self._resolve_block(block, stands=True)
            return

        window = self.state.pending_reactions
        if window is None or player_id not in window.responders:
            raise ProtocolViolation("no reaction pending for this player")
        self._drop_responder(window, player_id)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_challenge(
        self,
        challenger_id: str,
        defender_id: str,
        claimed: Optional[Character],
        on_truthful: Callable[[], None],
        on_bluff: Callable[[], None],
    ) -> bool:
        """Settle a challenge of `defender_id`'s claim to hold `claimed`.

        Truthful claim: the challenger loses an influence, the defender's card
        is shuffled back and replaced, then on_truthful runs. Bluff: the
        defender loses an influence, then on_bluff runs. Returns True when
        the challenge succeeded.
        """
        defender = self.state.get_player(defender_id)
        truthful = defender is not None and claimed is not None and defender.holds(claimed)

        self.emit(EventType.CHALLENGE_RESOLVED, {
            "success": not truthful,
            "challenger": challenger_id,
            "defender": defender_id,
            "claimed_character": claimed.value if claimed else None,
            "revealed_character": claimed.value if truthful else None,
        })

        if truthful:
            logger.info(f"Challenge failed: {defender_id} holds {claimed.value}")
            replace_proven_card(self.state, defender, claimed)
            self._send_private_hand(defender)
            self.request_influence_loss(challenger_id, then=on_truthful)
        else:
            logger.info(f"Challenge succeeded: {defender_id} was bluffing")
            self.request_influence_loss(defender_id, then=on_bluff)
        return not truthful

    def _challenge_block(self, challenger_id: str, block: PendingBlock) -> None:
        """The actor challenges the blocker's claimed character."""
        logger.info(f"{challenger_id} challenges {block.blocker_id}'s block ({block.character.value})")
        self.resolve_challenge(
            challenger_id=challenger_id,
            defender_id=block.blocker_id,
            claimed=block.character,
            on_truthful=lambda: self._resolve_block(block, stands=True),
            on_bluff=lambda: self._resolve_block(block, stands=False),
        )

    def _resolve_block(self, block: PendingBlock, stands: bool) -> None:
        """A standing block cancels the action; a failed one lets it execute."""
        self._close_block_window(block)
        self.emit(EventType.BLOCK_RESOLVED, {
            "success": stands,
            "blocker": block.blocker_id,
            "character": block.character.value,
            "action": block.action.to_dict(),
        })
        if stands:
            logger.info(f"Block by {block.blocker_id} stands; {block.action.kind.value} cancelled")
            self._finish_action()
        else:
            self._execute(block.action)

    # ------------------------------------------------------------------
    # Windows
    # ------------------------------------------------------------------

    def _drop_responder(self, window, player_id: str) -> None:
        window.responders.discard(player_id)
        window.eligible_blockers.discard(player_id)
        if not window.responders:
            self._close_reaction_window(window)
            self._execute(self.state.pending_action)
        else:
            self._arm_window_deadline(window)

    def _close_reaction_window(self, window) -> None:
        """Cancel the window's deadlines and forget it; idempotent."""
        if window.deadline is not None:
            window.deadline.cancel()
        for deadline in window.bot_deadlines:
            deadline.cancel()
        if self.state.pending_reactions is window:
            self.state.pending_reactions = None
            self.emit(EventType.REACTION_WINDOW_CLOSED, {"window_id": window.window_id})

    def _close_block_window(self, block: PendingBlock) -> None:
        if block.deadline is not None:
            block.deadline.cancel()
        for deadline in block.bot_deadlines:
            deadline.cancel()
        block.responders.clear()
        if self.state.pending_block is block:
            self.state.pending_block = None
            self.emit(EventType.REACTION_WINDOW_CLOSED, {"block_id": block.block_id})
