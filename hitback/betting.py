"""
Betting subsystem.

Players wager 1-3 tokens on their own answer before the audio starts.
A bet is held against the balance, not deducted: winning costs nothing,
losing forfeits the amount into the pot.
"""

from __future__ import annotations

import logging
from typing import Collection

from hitback.errors import ErrorCode, NotFoundError
from hitback.types import PlayerId, GamePhase, MIN_BET, MAX_BET
from hitback.models import Session
from hitback.events import (
    GameEvent,
    BetPlacedEvent,
    BetForfeitedEvent,
    BetsClearedEvent,
)
from hitback.rules import ValidationResult

log = logging.getLogger(__name__)


# =============================================================================
# Multiplier Table
# =============================================================================


def get_multiplier(amount: int) -> int:
    """
    Map a bet size to its multiplier.

    0 -> x1, 1 -> x2, 2 -> x3, 3 or more -> x4.
    """
    if amount <= 0:
        return 1
    if amount >= MAX_BET:
        return 4
    return amount + 1


# =============================================================================
# Bet Validation
# =============================================================================


def validate_bet(session: Session, player_id: PlayerId, amount: int) -> ValidationResult:
    """
    Validate whether a bet is legal given the current session.

    Checks, in order:
    - Session is still running
    - Betting phase is open
    - Amount is a whole number
    - Player has enough tokens
    - Amount is within 1-3
    - Player has no bet yet this round
    """
    if session.game_ended:
        return ValidationResult.fail(ErrorCode.GAME_OVER, "The game is over")

    if session.phase != GamePhase.BETTING:
        return ValidationResult.fail(
            ErrorCode.WRONG_PHASE, f"Bets are only accepted while betting, not in {session.phase.value}"
        )

    player = session.find_player(player_id)
    if player is None:
        raise NotFoundError(f"Unknown player: {player_id}")

    if isinstance(amount, bool) or not isinstance(amount, int):
        return ValidationResult.fail(
            ErrorCode.INVALID_AMOUNT, f"Bet must be a whole number of tokens, got {amount!r}"
        )

    if amount > player.tokens:
        return ValidationResult.fail(
            ErrorCode.INSUFFICIENT_TOKENS,
            f"Not enough tokens: need {amount}, have {player.tokens}",
        )

    if not MIN_BET <= amount <= MAX_BET:
        return ValidationResult.fail(
            ErrorCode.INVALID_AMOUNT, f"Bet must be {MIN_BET}-{MAX_BET} tokens, got {amount}"
        )

    if player.has_bet:
        return ValidationResult.fail(
            ErrorCode.DUPLICATE_BET, f"{player.name} already bet {player.current_bet} this round"
        )

    return ValidationResult.ok()


# =============================================================================
# Bet Operations
# =============================================================================


def place_bet(session: Session, player_id: PlayerId, amount: int) -> tuple[Session, list[GameEvent]]:
    """
    Hold a bet for a player.

    Raises:
        ValidationError: The bet was rejected (session untouched)
        NotFoundError: Unknown player
    """
    result = validate_bet(session, player_id, amount)
    if not result.valid:
        log.warning("bet rejected player=%s amount=%r reason=%s", player_id, amount, result.reason)
        result.raise_if_invalid()

    player = session.find_player(player_id)
    assert player is not None
    session = session.with_player(player.with_bet(amount))

    log.info("bet placed player=%s amount=%d", player_id, amount)
    return session, [
        BetPlacedEvent(player_id=player_id, amount=amount, multiplier=get_multiplier(amount))
    ]


def clear_bets(session: Session) -> Session:
    """Reset every player's current bet. Idempotent."""
    if not any(p.has_bet for p in session.players):
        return session
    return session.with_players(p.with_bet(0) for p in session.players)


def eligible_bettors(session: Session) -> tuple[PlayerId, ...]:
    """Players who can still afford the smallest bet."""
    return tuple(p.player_id for p in session.players if p.tokens >= MIN_BET)


def all_bets_placed(session: Session) -> bool:
    """Check whether every player who can bet has done so."""
    eligible = eligible_bettors(session)
    if not eligible:
        return False
    return all(session.find_player(pid).has_bet for pid in eligible)  # type: ignore[union-attr]


def settle_bets(
    session: Session,
    scoring_ids: Collection[PlayerId],
) -> tuple[Session, list[GameEvent], tuple[tuple[PlayerId, int], ...]]:
    """
    Settle held bets at a reveal.

    A bettor among ``scoring_ids`` keeps the tokens. Every other bettor
    forfeits the amount, which is added to the pot. All bets are cleared.

    Returns:
        Tuple of (new_session, events, forfeits)
    """
    events: list[GameEvent] = []
    forfeits: list[tuple[PlayerId, int]] = []
    pot = session.pot
    had_bets = any(p.has_bet for p in session.players)

    for player in session.players:
        if not player.has_bet:
            continue

        if player.player_id in scoring_ids:
            session = session.with_player(player.with_bet(0))
            continue

        amount = player.current_bet
        updated = player.forfeit_bet()
        session = session.with_player(updated)
        pot = pot.with_added(amount)
        forfeits.append((player.player_id, amount))
        events.append(
            BetForfeitedEvent(
                player_id=player.player_id,
                amount=amount,
                remaining_tokens=updated.tokens,
            )
        )
        log.info("bet forfeited player=%s amount=%d", player.player_id, amount)

    if had_bets:
        events.append(BetsClearedEvent())

    return session.with_pot(pot), events, tuple(forfeits)
