"""
Game rules and validation logic.

This module implements the session-level rules:
- Roster validation
- Win condition and tie-break
- Turn advancement
- Special round mode resolution (battle, speed, viral)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Mapping, Sequence

from hitback.errors import ErrorCode, ValidationError
from hitback.types import (
    PlayerId,
    EndReason,
    MIN_PLAYERS,
    MAX_PLAYERS,
    MIN_NAME_LENGTH,
    BATTLE_BONUS,
    SPEED_POINTS_PER_ANSWER,
    VIRAL_MULTIPLIER,
    VIRAL_BONUS,
)
from hitback.models import Session, GameOutcome
from hitback.events import GameEvent, TurnAdvancedEvent

log = logging.getLogger(__name__)


# =============================================================================
# Action Validation
# =============================================================================


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Result of validating an action."""

    valid: bool
    """Whether the action is valid."""

    reason: str = ""
    """Explanation (for invalid actions)."""

    code: ErrorCode | None = None
    """Machine-readable reason (for invalid actions)."""

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def fail(cls, code: ErrorCode, reason: str) -> ValidationResult:
        return cls(valid=False, reason=reason, code=code)

    def raise_if_invalid(self) -> None:
        """Turn a failed validation into a ValidationError."""
        if not self.valid:
            assert self.code is not None
            raise ValidationError(self.code, self.reason)


def validate_roster(names: Sequence[str]) -> ValidationResult:
    """
    Validate the player names for a new session.

    Checks:
    - 2 to 8 players
    - Trimmed names have at least 2 characters
    - Names are unique (case-insensitive)
    """
    if not MIN_PLAYERS <= len(names) <= MAX_PLAYERS:
        return ValidationResult.fail(
            ErrorCode.INVALID_SETUP,
            f"A session needs {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(names)}",
        )

    seen: set[str] = set()
    for name in names:
        trimmed = name.strip()
        if len(trimmed) < MIN_NAME_LENGTH:
            return ValidationResult.fail(
                ErrorCode.INVALID_SETUP,
                f"Name {name!r} must have at least {MIN_NAME_LENGTH} characters",
            )
        key = trimmed.casefold()
        if key in seen:
            return ValidationResult.fail(ErrorCode.INVALID_SETUP, f"Duplicate player name: {trimmed}")
        seen.add(key)

    return ValidationResult.ok()


# =============================================================================
# Turn Order
# =============================================================================


def advance_turn(session: Session) -> tuple[Session, list[GameEvent]]:
    """
    Move the turn pointer round-robin to the next player.

    The peek flag is per turn, so it is cleared for everyone.
    """
    next_index = (session.current_turn + 1) % len(session.players)
    players = tuple(replace(p, peek_used=False) if p.peek_used else p for p in session.players)
    session = session.with_players(players).with_turn(next_index)
    log.debug("turn advanced to %s", session.current_player.player_id)
    return session, [TurnAdvancedEvent(player_id=session.current_player.player_id)]


# =============================================================================
# Win Condition
# =============================================================================


def has_reached_target(session: Session) -> bool:
    """Check whether any player's score reached the target."""
    return any(p.score >= session.target_score for p in session.players)


def compute_outcome(session: Session, reason: EndReason) -> GameOutcome:
    """
    Compute the final result of a session.

    Ranking:
    - Highest score wins
    - If tied on score: most tokens remaining wins
    - If still tied: draw, with every tied player listed
    """
    final_scores = tuple((p.player_id, int(p.score)) for p in session.players)

    top_score = max(p.score for p in session.players)
    leaders = [p for p in session.players if p.score == top_score]
    if len(leaders) > 1:
        top_tokens = max(p.tokens for p in leaders)
        leaders = [p for p in leaders if p.tokens == top_tokens]

    if len(leaders) == 1:
        return GameOutcome(
            reason=reason,
            winner_id=leaders[0].player_id,
            final_scores=final_scores,
        )

    return GameOutcome(
        reason=reason,
        winner_id=None,
        tied_player_ids=tuple(p.player_id for p in leaders),
        final_scores=final_scores,
    )


# =============================================================================
# Special Round Modes
# =============================================================================


def resolve_battle(
    base_points: int,
    results: Mapping[PlayerId, bool],
) -> dict[PlayerId, int]:
    """
    Battle: two players race on the same card.

    - Both correct: each gets the base points
    - One correct: that player gets base + 1
    - None correct: nobody scores

    Returns:
        Mode base points per scoring player
    """
    if len(results) != 2:
        raise ValidationError(
            ErrorCode.INVALID_SETUP, f"A battle needs exactly 2 players, got {len(results)}"
        )

    correct = [pid for pid, ok in results.items() if ok]
    if len(correct) == 2:
        return {pid: base_points for pid in correct}
    if len(correct) == 1:
        return {correct[0]: base_points + BATTLE_BONUS}
    return {}


def resolve_speed(correct_counts: Mapping[PlayerId, int]) -> dict[PlayerId, int]:
    """
    Speed: rapid-fire answers scored by correct-answer count.

    The top count (ties included) earns 2 points per answer; every other
    player with at least one correct answer earns 1 point per answer.
    """
    for pid, count in correct_counts.items():
        if count < 0:
            raise ValidationError(ErrorCode.INVALID_AMOUNT, f"{pid}: negative answer count {count}")

    scored = {pid: count for pid, count in correct_counts.items() if count > 0}
    if not scored:
        return {}

    best = max(scored.values())
    return {
        pid: count * SPEED_POINTS_PER_ANSWER if count == best else count
        for pid, count in scored.items()
    }


def resolve_viral(base_points: int, player_id: PlayerId, success: bool) -> dict[PlayerId, int]:
    """Viral: a completed challenge card is worth base x 3 + 2; failure costs nothing."""
    if not success:
        return {}
    return {player_id: base_points * VIRAL_MULTIPLIER + VIRAL_BONUS}
