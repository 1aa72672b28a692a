"""
errors.py - Exceptions raised by the chain core.

Every error here is a per-submission outcome: transports catch it, report
it to the submitter and keep serving.
"""


class ChainError(Exception):
    """Base exception for pulsechain core errors."""
    pass


class PayloadParseError(ChainError):
    """Raised when submitter input cannot be turned into a payload."""

    def __init__(self, raw, reason: str = "not a number"):
        self.raw = raw
        super().__init__(f"{raw!r} {reason}")


class ValidationFailed(ChainError):
    """Raised when a candidate block does not link to its predecessor."""
    pass


class ChainNotExtended(ChainError):
    """Raised when fork choice keeps the incumbent chain."""

    def __init__(self, candidate_length: int, current_length: int):
        self.candidate_length = candidate_length
        self.current_length = current_length
        super().__init__(
            f"candidate chain of length {candidate_length} does not extend "
            f"current chain of length {current_length}"
        )


class MalformedRecordError(ChainError):
    """Raised when a serialized block record is missing or mistyped."""
    pass
