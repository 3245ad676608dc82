"""Engine configuration with environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from dotenv import load_dotenv

from hitback.types import (
    Difficulty,
    AWARD_CHANCES,
    DEFAULT_TARGET_SCORE,
    DEFAULT_TIME_BUDGET_S,
    MAX_TOKENS,
    MAX_CARDS_IN_HAND,
    SHIELD_ROUNDS,
)

log = logging.getLogger(__name__)

T = TypeVar("T", float, int, bool)

ENV_PREFIX = "HITBACK_"


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _get_env(
    name: str,
    default: T,
    caster: Callable[[str], T],
    valid: Callable[[T], bool] | None = None,
) -> T:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    try:
        result = caster(value)
    except (TypeError, ValueError):
        log.warning("Invalid value for %s%s: %r (using default %r)", ENV_PREFIX, name, value, default)
        return default
    if valid is not None and not valid(result):
        log.warning("Out of range value for %s%s: %r (using default %r)", ENV_PREFIX, name, value, default)
        return default
    return result


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Tunable rules of a session."""

    target_score: int = DEFAULT_TARGET_SCORE
    """Score that ends the game (15-22 is typical)."""

    time_budget_s: float | None = DEFAULT_TIME_BUDGET_S
    """Session length before the timer collaborator signals expiry (None = untimed)."""

    starting_tokens: int = MAX_TOKENS
    max_tokens: int = MAX_TOKENS
    max_cards_in_hand: int = MAX_CARDS_IN_HAND
    shield_rounds: int = SHIELD_ROUNDS

    betting_time_limit_s: float = 30.0
    """How long the timer collaborator should keep betting open."""

    auto_close_betting: bool = True
    """Close betting as soon as every player who can bet has bet."""

    award_chances: dict[Difficulty, float] = field(default_factory=lambda: dict(AWARD_CHANCES))
    """Chance that a round winner receives a random power card."""

    def __post_init__(self) -> None:
        if self.target_score <= 0:
            raise ValueError(f"target_score must be positive, got {self.target_score}")
        if not 0 <= self.starting_tokens <= self.max_tokens:
            raise ValueError(
                f"starting_tokens must be 0-{self.max_tokens}, got {self.starting_tokens}"
            )
        if self.shield_rounds < 1:
            raise ValueError(f"shield_rounds must be at least 1, got {self.shield_rounds}")
        for difficulty, chance in self.award_chances.items():
            if not 0.0 <= chance <= 1.0:
                raise ValueError(f"award chance for {difficulty.value} must be 0-1, got {chance}")

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> EngineConfig:
        """
        Build a config from ``HITBACK_*`` environment variables.

        A ``.env`` file is loaded first (without overriding variables that are
        already set). Malformed or out-of-range values are logged and fall
        back to defaults.
        """
        load_dotenv(dotenv_path)
        defaults = cls()

        def positive(value: float) -> bool:
            return value > 0

        def chance(value: float) -> bool:
            return 0.0 <= value <= 1.0

        time_budget = _get_env(
            "TIME_BUDGET_S", defaults.time_budget_s or 0.0, float, lambda v: v >= 0
        )
        chances = {
            difficulty: _get_env(
                f"AWARD_CHANCE_{difficulty.name}", defaults.award_chances[difficulty], float, chance
            )
            for difficulty in Difficulty
        }
        max_tokens = _get_env("MAX_TOKENS", defaults.max_tokens, int, positive)
        starting_tokens = _get_env(
            "STARTING_TOKENS",
            min(defaults.starting_tokens, max_tokens),
            int,
            lambda v: 0 <= v <= max_tokens,
        )

        return cls(
            target_score=_get_env("TARGET_SCORE", defaults.target_score, int, positive),
            time_budget_s=time_budget if time_budget > 0 else None,
            starting_tokens=starting_tokens,
            max_tokens=max_tokens,
            max_cards_in_hand=_get_env("MAX_CARDS_IN_HAND", defaults.max_cards_in_hand, int, positive),
            shield_rounds=_get_env("SHIELD_ROUNDS", defaults.shield_rounds, int, positive),
            betting_time_limit_s=_get_env(
                "BETTING_TIME_LIMIT_S", defaults.betting_time_limit_s, float, positive
            ),
            auto_close_betting=_get_env("AUTO_CLOSE_BETTING", defaults.auto_close_betting, _parse_bool),
            award_chances=chances,
        )
