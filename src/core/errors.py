"""
Errors raised by the scheduling and bracket engine.
"""


class TournamentError(ValueError):
    """Base class for rejected tournament actions."""


class InvalidInput(TournamentError):
    """Malformed configuration: zero boards, zero groups, unknown team, ..."""


class InsufficientData(TournamentError):
    """Knockout stage requested before the group stage can feed it."""


class InvalidScore(TournamentError):
    """Score that cannot be recorded, e.g. a tied knockout match."""
