"""Error taxonomy for the rules engine.

- RuleViolation: the command breaks a game rule; rejected with no state change.
- ProtocolViolation: the command answers a request that is not pending; ignored.
- StateInconsistency: the engine reached a state it cannot continue from;
  the room falls back to ending the game.
"""


class CoupError(Exception):
    """Base class for engine errors."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class RuleViolation(CoupError):
    """Wrong turn, insufficient coins, mandatory coup ignored, bad target..."""


class ProtocolViolation(CoupError):
    """Response with no matching pending record."""


class StateInconsistency(CoupError):
    """Deck underflow or no eligible next player."""


class LobbyError(CoupError):
    """Room bookkeeping failure (room full, unknown room, not host...)."""

    def __init__(self, reason: str, status_code: int = 400):
        super().__init__(reason)
        self.status_code = status_code
