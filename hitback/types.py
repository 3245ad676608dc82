"""
Core type definitions for the session engine.

This module defines:
- NewType IDs for strong typing of identifiers
- Enums for phases, power cards and round variants
- Game constants shared by every subsystem
"""

from enum import Enum, auto
from typing import NewType, Literal

# =============================================================================
# Strong ID Types (NewType for compile-time safety)
# =============================================================================

PlayerId = NewType("PlayerId", str)
"""Unique identifier for a player in a session (e.g., 'player_1')."""

CardInstanceId = NewType("CardInstanceId", str)
"""Unique identifier for a power card instance (e.g., 'HITBACK_PWR_BOOST_001')."""

RoundNumber = NewType("RoundNumber", int)
"""Round sequence number, starting at 1."""

# =============================================================================
# Value Types
# =============================================================================

Points = NewType("Points", int)
"""Score points (non-negative)."""

Tokens = NewType("Tokens", int)
"""Token count (non-negative)."""


# =============================================================================
# Enums
# =============================================================================


class GamePhase(Enum):
    """Phases of a single round."""

    IDLE = "idle"
    """Between rounds; a new round may be requested."""

    LOADING = "loading"
    """Transient: waiting for round data from the card provider."""

    BETTING = "betting"
    """Players may place token bets (rounds >= 2 only)."""

    AUDIO = "audio"
    """The audio preview is playing."""

    QUESTION = "question"
    """The question is shown; waiting for the answer reveal."""

    ANSWER = "answer"
    """The answer was revealed and points were awarded."""


class PowerCardType(Enum):
    """The fixed set of power cards."""

    BOOST = "BOOST"
    """Doubles the holder's next scored points."""

    STEAL = "STEAL"
    """Takes a power card from another player."""

    SHIELD = "SHIELD"
    """Blocks steal attempts for a number of rounds."""

    COUNTER = "COUNTER"
    """Passive: reverses a steal directed at the holder."""

    PRECISION = "PRECISION"
    """Three rapid questions, up to +3 points."""

    CHALLENGE = "CHALLENGE"
    """A performance challenge worth a flat +3 points."""

    RESURRECT = "RESURRECT"
    """Recovers an already used power card."""


class PowerCardCategory(Enum):
    """Catalog grouping of power cards."""

    OFFENSIVE = "offensive"
    DEFENSIVE = "defensive"
    SPECIAL = "special"
    UTILITY = "utility"


class EffectKind(Enum):
    """How long a power card's effect lasts."""

    INSTANT = "instant"
    """Resolved immediately, then the card is used."""

    PERSISTENT = "persistent"
    """Stays active until a triggering event consumes it."""


class CardState(Enum):
    """Lifecycle of a power card instance."""

    HELD = auto()
    """In the owner's hand, ready to use."""

    ACTIVE = auto()
    """Held but its persistent effect is running."""

    USED = auto()
    """Spent; only RESURRECT can bring it back."""


class Difficulty(Enum):
    """Difficulty tier of a question card."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class QuestionType(Enum):
    """What a music card asks about."""

    SONG = "song"
    ARTIST = "artist"
    DECADE = "decade"
    YEAR = "year"
    LYRICS = "lyrics"
    CHALLENGE = "challenge"


class GameMode(Enum):
    """Round variants layered on the same phase machine."""

    NORMAL = "normal"
    """One winner (or none) per round."""

    BATTLE = "battle"
    """Two players race on the same card."""

    SPEED = "speed"
    """Rapid-fire answers, scored by correct-answer count."""

    VIRAL = "viral"
    """Challenge cards only, triple points on success."""


class ChallengeType(Enum):
    """Performance challenges presented by the CHALLENGE power card."""

    LYRICS = "lyrics"
    """Complete the next verse."""

    SING = "sing"
    """Sing the chorus."""

    IMITATE = "imitate"
    """Imitate the artist."""


class EndReason(Enum):
    """Why a session ended."""

    SCORE = "score"
    """A player reached the target score."""

    TIME = "time"
    """The session time budget expired."""

    CONTENT_EXHAUSTED = "content_exhausted"
    """The card provider ran out of rounds."""


# =============================================================================
# Constants
# =============================================================================

MIN_PLAYERS: Literal[2] = 2
"""Minimum roster size."""

MAX_PLAYERS: Literal[8] = 8
"""Maximum roster size."""

MIN_NAME_LENGTH: Literal[2] = 2
"""Minimum length of a trimmed display name."""

MAX_TOKENS: Literal[5] = 5
"""Token balance cap (and default starting balance)."""

MIN_BET: Literal[1] = 1
"""Smallest allowed bet."""

MAX_BET: Literal[3] = 3
"""Largest allowed bet."""

MAX_CARDS_IN_HAND: Literal[5] = 5
"""Maximum number of non-used power cards a player may own."""

BOOST_MULTIPLIER: Literal[2] = 2
"""Points multiplier while BOOST is active."""

PRECISION_QUESTIONS: Literal[3] = 3
"""Number of rapid questions opened by PRECISION."""

MAX_PRECISION_BONUS: Literal[3] = 3
"""Cap on the PRECISION bonus."""

CHALLENGE_BONUS: Literal[3] = 3
"""Flat bonus for a completed CHALLENGE."""

SHIELD_ROUNDS: Literal[2] = 2
"""Round resolutions a SHIELD stays active."""

BATTLE_BONUS: Literal[1] = 1
"""Extra base points for the sole battle winner."""

SPEED_POINTS_PER_ANSWER: Literal[2] = 2
"""Base points per correct answer for the speed-round leader(s)."""

VIRAL_MULTIPLIER: Literal[3] = 3
"""Base multiplier for a successful viral moment."""

VIRAL_BONUS: Literal[2] = 2
"""Flat extra base for a successful viral moment."""

DEFAULT_TARGET_SCORE: Literal[15] = 15
"""Default score threshold that ends the game."""

DEFAULT_TIME_BUDGET_S: Literal[1200] = 1200
"""Default session time budget (20 minutes)."""

QUESTION_BASE_POINTS: dict[QuestionType, int] = {
    QuestionType.SONG: 1,
    QuestionType.ARTIST: 2,
    QuestionType.DECADE: 2,
    QuestionType.YEAR: 3,
    QuestionType.LYRICS: 3,
    QuestionType.CHALLENGE: 5,
}
"""Base points per question type used by the bundled deck."""

AWARD_CHANCES: dict[Difficulty, float] = {
    Difficulty.EASY: 0.10,
    Difficulty.MEDIUM: 0.25,
    Difficulty.HARD: 0.45,
    Difficulty.EXPERT: 0.70,
}
"""Probability that a round winner receives a random power card."""
