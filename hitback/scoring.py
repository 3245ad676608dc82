"""
Scoring calculator.

Final points are ``(base + token_bonus) * boost + precision + challenge``.
The token bonus is the raw bet amount and is added before the boost
multiplier; the flat power-card bonuses are added after it. Changing the
order changes results: base 2, bet 3, boost -> 10, not 7.
"""

from __future__ import annotations

from hitback.models import Player, PointsAward
from hitback.types import (
    Points,
    BOOST_MULTIPLIER,
    MAX_PRECISION_BONUS,
    CHALLENGE_BONUS,
)


def calculate_final_points(
    base_points: int,
    token_bonus: int = 0,
    boost_active: bool = False,
    precision_bonus: int = 0,
    challenge_bonus: int = 0,
) -> Points:
    """
    Compose base points with bet, boost and power-card bonuses.

    Args:
        base_points: Points of the question (or the mode-specific base)
        token_bonus: Raw bet amount, 0-3
        boost_active: Whether BOOST doubles this award
        precision_bonus: PRECISION points, 0-3
        challenge_bonus: 0 or the flat CHALLENGE bonus

    Returns:
        The final, non-negative point value
    """
    if base_points < 0 or token_bonus < 0:
        raise ValueError("base points and token bonus must be non-negative")
    if not 0 <= precision_bonus <= MAX_PRECISION_BONUS:
        raise ValueError(f"precision bonus must be 0-{MAX_PRECISION_BONUS}, got {precision_bonus}")
    if challenge_bonus not in (0, CHALLENGE_BONUS):
        raise ValueError(f"challenge bonus must be 0 or {CHALLENGE_BONUS}, got {challenge_bonus}")

    multiplier = BOOST_MULTIPLIER if boost_active else 1
    main_points = (base_points + token_bonus) * multiplier
    return Points(main_points + precision_bonus + challenge_bonus)


def score_player(player: Player, base_points: int, *, scored: bool) -> PointsAward:
    """
    Build the award for one player at a reveal.

    A scoring player gets the full formula with their bet and boost. A player
    who did not score only collects banked PRECISION/CHALLENGE bonuses.
    """
    token_bonus = player.current_bet if scored else 0
    boost = player.boost_active and scored
    base = base_points if scored else 0
    total = calculate_final_points(
        base_points=base,
        token_bonus=token_bonus,
        boost_active=boost,
        precision_bonus=player.pending_precision_bonus,
        challenge_bonus=player.pending_challenge_bonus,
    )
    return PointsAward(
        player_id=player.player_id,
        base_points=base,
        token_bonus=token_bonus,
        boost_applied=boost,
        precision_bonus=player.pending_precision_bonus,
        challenge_bonus=player.pending_challenge_bonus,
        total=total,
    )


def potential_points(base_points: int, bet: int, boost_active: bool = False) -> Points:
    """What a win would be worth, for betting UIs."""
    return calculate_final_points(base_points, token_bonus=bet, boost_active=boost_active)
