"""
Event types for the session engine.

Events form a typed log of everything that happens during a session.
They are designed to be consumed by UI layers (scoreboards, toasts,
audio cues) and by a session server broadcasting to clients.
"""

from dataclasses import dataclass

from hitback.types import (
    PlayerId,
    CardInstanceId,
    RoundNumber,
    GamePhase,
    GameMode,
    PowerCardType,
    ChallengeType,
    EndReason,
)
from hitback.models import RoundResult, GameOutcome


# =============================================================================
# Session Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class GameStartedEvent:
    """A session was created and is ready for round 1."""

    session_id: str
    player_ids: tuple[PlayerId, ...]

    @property
    def event_type(self) -> str:
        return "game_started"


@dataclass(frozen=True, slots=True)
class GameEndedEvent:
    """The session has ended."""

    outcome: GameOutcome

    @property
    def event_type(self) -> str:
        return "game_ended"

    @property
    def reason(self) -> EndReason:
        return self.outcome.reason


@dataclass(frozen=True, slots=True)
class TurnAdvancedEvent:
    """The turn pointer moved to the next player."""

    player_id: PlayerId

    @property
    def event_type(self) -> str:
        return "turn_advanced"


# =============================================================================
# Phase Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class PhaseChangedEvent:
    """The round moved to another phase."""

    from_phase: GamePhase
    to_phase: GamePhase

    @property
    def event_type(self) -> str:
        return "phase_changed"


@dataclass(frozen=True, slots=True)
class RoundStartedEvent:
    """Round data arrived from the card provider."""

    round_number: RoundNumber
    card_code: str
    mode: GameMode
    audio_duration_s: float | None
    """How long the audio phase should last, for the timer collaborator."""

    @property
    def event_type(self) -> str:
        return "round_started"


@dataclass(frozen=True, slots=True)
class AnswerPeekedEvent:
    """A player looked at the answer before the reveal."""

    player_id: PlayerId
    answer: str

    @property
    def event_type(self) -> str:
        return "answer_peeked"


@dataclass(frozen=True, slots=True)
class AnswerRevealedEvent:
    """The answer was revealed and the round was scored."""

    result: RoundResult

    @property
    def event_type(self) -> str:
        return "answer_revealed"


# =============================================================================
# Betting Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class BetPlacedEvent:
    """A player placed a token bet."""

    player_id: PlayerId
    amount: int
    multiplier: int

    @property
    def event_type(self) -> str:
        return "bet_placed"


@dataclass(frozen=True, slots=True)
class BetForfeitedEvent:
    """A losing bet was taken from the player's balance and added to the pot."""

    player_id: PlayerId
    amount: int
    remaining_tokens: int

    @property
    def event_type(self) -> str:
        return "bet_forfeited"


@dataclass(frozen=True, slots=True)
class BetsClearedEvent:
    """Every player's current bet was reset."""

    @property
    def event_type(self) -> str:
        return "bets_cleared"


# =============================================================================
# Points Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class PointsAwardedEvent:
    """A player's score changed."""

    player_id: PlayerId
    points: int
    new_score: int

    @property
    def event_type(self) -> str:
        return "points_awarded"


# =============================================================================
# Power Card Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class PowerCardAwardedEvent:
    """A player received a power card (random draw or scan)."""

    player_id: PlayerId
    card_id: CardInstanceId
    card_type: PowerCardType
    scanned: bool

    @property
    def event_type(self) -> str:
        return "power_card_awarded"


@dataclass(frozen=True, slots=True)
class PowerCardUsedEvent:
    """A player used a power card."""

    player_id: PlayerId
    card_id: CardInstanceId
    card_type: PowerCardType
    target_player_id: PlayerId | None = None

    @property
    def event_type(self) -> str:
        return "power_card_used"


@dataclass(frozen=True, slots=True)
class EffectActivatedEvent:
    """A persistent effect (boost, shield) started."""

    player_id: PlayerId
    card_type: PowerCardType

    @property
    def event_type(self) -> str:
        return "effect_activated"


@dataclass(frozen=True, slots=True)
class EffectExpiredEvent:
    """A persistent effect was consumed or ran out."""

    player_id: PlayerId
    card_type: PowerCardType

    @property
    def event_type(self) -> str:
        return "effect_expired"


@dataclass(frozen=True, slots=True)
class CardStolenEvent:
    """A power card changed owner through STEAL."""

    thief_id: PlayerId
    victim_id: PlayerId
    card_id: CardInstanceId

    @property
    def event_type(self) -> str:
        return "card_stolen"


@dataclass(frozen=True, slots=True)
class CounterTriggeredEvent:
    """A held COUNTER reversed a steal."""

    holder_id: PlayerId
    attacker_id: PlayerId
    counter_card_id: CardInstanceId

    @property
    def event_type(self) -> str:
        return "counter_triggered"


@dataclass(frozen=True, slots=True)
class CardResurrectedEvent:
    """A used card went back to its owner's hand."""

    player_id: PlayerId
    card_id: CardInstanceId
    card_type: PowerCardType

    @property
    def event_type(self) -> str:
        return "card_resurrected"


@dataclass(frozen=True, slots=True)
class PrecisionStartedEvent:
    """PRECISION opened its rapid questions."""

    player_id: PlayerId
    questions: int

    @property
    def event_type(self) -> str:
        return "precision_started"


@dataclass(frozen=True, slots=True)
class PrecisionResolvedEvent:
    """The operator reported the PRECISION answers."""

    player_id: PlayerId
    correct_answers: int
    bonus: int

    @property
    def event_type(self) -> str:
        return "precision_resolved"


@dataclass(frozen=True, slots=True)
class ChallengeStartedEvent:
    """CHALLENGE presented a performance."""

    player_id: PlayerId
    challenge_type: ChallengeType

    @property
    def event_type(self) -> str:
        return "challenge_started"


@dataclass(frozen=True, slots=True)
class ChallengeResolvedEvent:
    """The operator reported the CHALLENGE result."""

    player_id: PlayerId
    completed: bool
    bonus: int

    @property
    def event_type(self) -> str:
        return "challenge_resolved"


# =============================================================================
# Event Union Type
# =============================================================================

GameEvent = (
    GameStartedEvent
    | GameEndedEvent
    | TurnAdvancedEvent
    | PhaseChangedEvent
    | RoundStartedEvent
    | AnswerPeekedEvent
    | AnswerRevealedEvent
    | BetPlacedEvent
    | BetForfeitedEvent
    | BetsClearedEvent
    | PointsAwardedEvent
    | PowerCardAwardedEvent
    | PowerCardUsedEvent
    | EffectActivatedEvent
    | EffectExpiredEvent
    | CardStolenEvent
    | CounterTriggeredEvent
    | CardResurrectedEvent
    | PrecisionStartedEvent
    | PrecisionResolvedEvent
    | ChallengeStartedEvent
    | ChallengeResolvedEvent
)
