"""Exceptions raised by the deduction toolkit.

Every error is recoverable: the session is left untouched when one is raised.
"""


class AnalysisError(Exception):
    """Base class for all toolkit errors."""


class ConfigError(AnalysisError):
    """Malformed or inconsistent board configuration."""


class DomainError(AnalysisError, ValueError):
    """A probability query asked for more cards than the deck holds."""


class GovernmentError(AnalysisError):
    """A government could not be recorded."""


class ArgumentShapeError(GovernmentError):
    """The power payload does not match the power active for that round."""

    def __init__(self, round_index, expected, received):
        self.round_index = round_index
        self.expected = expected
        self.received = received
        super().__init__(
            f"Round {round_index}: expected a {expected} result but got {received}."
        )


class FactError(AnalysisError):
    """A hard fact references something that does not exist or contradicts the log."""


class UnknownSeatError(GovernmentError, FactError):
    def __init__(self, seat):
        self.seat = seat
        super().__init__(f"Failed to recognize player {seat}.")


class RosterError(AnalysisError):
    """Seat/name bijection would be broken."""


class ContradictoryState(AnalysisError):
    """No role assignment is consistent with the recorded game."""

    def __init__(self, message="Detected a logical inconsistency, check your fact database to debug it."):
        super().__init__(message)
