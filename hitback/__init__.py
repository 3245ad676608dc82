"""
HITBACK - Game Session Engine

The rules engine of a music party trivia game, with immutable session
snapshots and typed event logging. This package contains pure game logic;
content, audio and timers are supplied by collaborators.
"""

from hitback.types import (
    PlayerId,
    CardInstanceId,
    RoundNumber,
    Points,
    Tokens,
    GamePhase,
    PowerCardType,
    PowerCardCategory,
    EffectKind,
    CardState,
    Difficulty,
    QuestionType,
    GameMode,
    ChallengeType,
    EndReason,
)
from hitback.errors import (
    ErrorCode,
    GameError,
    ValidationError,
    NotFoundError,
    ContentExhausted,
    InvariantViolation,
)
from hitback.models import (
    PowerCardDef,
    PowerCardInstance,
    Player,
    Track,
    QuestionCard,
    Round,
    RoundResult,
    GameOutcome,
    GamePot,
    Session,
)
from hitback.scoring import calculate_final_points
from hitback.betting import get_multiplier
from hitback.config import EngineConfig
from hitback.providers import CardProvider, AudioDurationSource, DeckProvider, FixedAudioDuration
from hitback.controller import GameController

__all__ = [
    # Types
    "PlayerId",
    "CardInstanceId",
    "RoundNumber",
    "Points",
    "Tokens",
    "GamePhase",
    "PowerCardType",
    "PowerCardCategory",
    "EffectKind",
    "CardState",
    "Difficulty",
    "QuestionType",
    "GameMode",
    "ChallengeType",
    "EndReason",
    # Errors
    "ErrorCode",
    "GameError",
    "ValidationError",
    "NotFoundError",
    "ContentExhausted",
    "InvariantViolation",
    # Models
    "PowerCardDef",
    "PowerCardInstance",
    "Player",
    "Track",
    "QuestionCard",
    "Round",
    "RoundResult",
    "GameOutcome",
    "GamePot",
    "Session",
    # Rules
    "calculate_final_points",
    "get_multiplier",
    # Collaborators
    "EngineConfig",
    "CardProvider",
    "AudioDurationSource",
    "DeckProvider",
    "FixedAudioDuration",
    # Controller
    "GameController",
]
