"""
Exception taxonomy for the session engine.

Rejected operations raise before any new state is produced, so the caller's
snapshot is always left untouched. Events delivered in a phase that does not
define them are not errors at all: the phase machine ignores them.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Machine-readable reason attached to a ValidationError."""

    INSUFFICIENT_TOKENS = "insufficient_tokens"
    INVALID_AMOUNT = "invalid_amount"
    DUPLICATE_BET = "duplicate_bet"
    WRONG_PHASE = "wrong_phase"
    CARD_EXHAUSTED = "card_exhausted"
    INVALID_TARGET = "invalid_target"
    DUPLICATE_EFFECT = "duplicate_effect"
    NO_ELIGIBLE_CARD = "no_eligible_card"
    HAND_FULL = "hand_full"
    INVALID_CODE = "invalid_code"
    INVALID_SETUP = "invalid_setup"
    PASSIVE_CARD = "passive_card"
    WRONG_MODE = "wrong_mode"
    GAME_OVER = "game_over"


class GameError(Exception):
    """Base exception for engine errors."""


class ValidationError(GameError, ValueError):
    """An action was rejected; carries a human-readable reason."""

    def __init__(self, code: ErrorCode, reason: str) -> None:
        super().__init__(reason)
        self.code = code
        self.reason = reason

    def __repr__(self) -> str:
        return f"ValidationError({self.code.name}, {self.reason!r})"


class NotFoundError(GameError, LookupError):
    """Unknown player or card id; the caller should re-sync its roster."""


class ContentExhausted(GameError):
    """The card provider has no more rounds to offer."""


class InvariantViolation(AssertionError):
    """Internal state broke an invariant: a validation gap upstream."""
