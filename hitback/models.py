"""
Data models for the session engine.

All models use frozen dataclasses for immutability.
State transitions create new objects rather than mutating existing ones,
so a rejected operation can never leave a half-applied session behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence

from hitback.errors import InvariantViolation
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
    MAX_BET,
    MAX_TOKENS,
    DEFAULT_TARGET_SCORE,
    DEFAULT_TIME_BUDGET_S,
)


# =============================================================================
# Power Card Definitions
# =============================================================================


@dataclass(frozen=True, slots=True)
class PowerCardDef:
    """
    Immutable catalog entry for a power card type.

    Multiple instances can exist in a session, each referencing its type.
    """

    card_type: PowerCardType
    """The type this entry describes."""

    name: str
    """Display name."""

    icon: str
    """Display icon."""

    description: str
    """What the card does, for the acting player."""

    quantity: int
    """Copies of this card in one session's deck."""

    effect_kind: EffectKind
    """Instant or persistent."""

    category: PowerCardCategory
    """Catalog grouping."""


@dataclass(frozen=True, slots=True)
class ChallengeDef:
    """A performance challenge presented by the CHALLENGE card."""

    challenge_type: ChallengeType
    name: str
    icon: str
    description: str


# =============================================================================
# Power Card Instances
# =============================================================================


@dataclass(frozen=True, slots=True)
class PowerCardInstance:
    """
    A specific power card owned by a player.

    The instance id is either a scanned power-card code or one generated by
    the deck when the card is awarded at random.
    """

    instance_id: CardInstanceId
    """Unique ID for this card instance."""

    card_type: PowerCardType
    """Which power card this is."""

    owner: PlayerId
    """The player who currently owns the card."""

    state: CardState = CardState.HELD
    """Lifecycle state."""

    obtained_at: float | None = None
    """Timestamp when the card was awarded or scanned."""

    used_at: float | None = None
    """Timestamp when the card was used (None while not used)."""

    @property
    def is_held(self) -> bool:
        return self.state == CardState.HELD

    @property
    def is_active(self) -> bool:
        return self.state == CardState.ACTIVE

    @property
    def is_used(self) -> bool:
        return self.state == CardState.USED

    def activated(self) -> PowerCardInstance:
        """Return a copy whose persistent effect is running."""
        return replace(self, state=CardState.ACTIVE)

    def used(self, at: float) -> PowerCardInstance:
        """Return a spent copy."""
        return replace(self, state=CardState.USED, used_at=at)

    def restored(self) -> PowerCardInstance:
        """Return a copy brought back to the hand."""
        return replace(self, state=CardState.HELD, used_at=None)

    def with_owner(self, owner: PlayerId) -> PowerCardInstance:
        """Return a copy owned by another player."""
        return replace(self, owner=owner)


# =============================================================================
# Player State
# =============================================================================


@dataclass(frozen=True, slots=True)
class Player:
    """
    Immutable state of a single player.
    """

    player_id: PlayerId
    """The player's identifier."""

    name: str
    """Display name."""

    turn_position: int
    """Position in the round-robin turn order."""

    score: Points = Points(0)
    """Current score."""

    tokens: Tokens = Tokens(MAX_TOKENS)
    """Spendable token balance."""

    current_bet: int = 0
    """Bet held this round (0 = no bet)."""

    is_immune: bool = False
    """SHIELD is active."""

    shield_rounds_left: int = 0
    """Round resolutions left before the SHIELD expires."""

    boost_active: bool = False
    """BOOST will double the next scored points."""

    peek_used: bool = False
    """The player peeked at the answer this turn."""

    power_cards: tuple[PowerCardInstance, ...] = ()
    """Owned power cards in acquisition order, used ones included."""

    pending_precision_bonus: int = 0
    """PRECISION points to pay out at the next reveal."""

    pending_challenge_bonus: int = 0
    """CHALLENGE points to pay out at the next reveal."""

    correct_answers: int = 0
    """Rounds this player scored in."""

    tokens_lost: int = 0
    """Tokens forfeited through lost bets."""

    consecutive_wins: int = 0
    """Current scoring streak."""

    max_tokens: int = MAX_TOKENS
    """Token balance cap."""

    def __post_init__(self) -> None:
        if self.score < 0:
            raise InvariantViolation(f"{self.player_id}: negative score {self.score}")
        if self.tokens < 0:
            raise InvariantViolation(f"{self.player_id}: negative tokens {self.tokens}")
        if self.tokens > self.max_tokens:
            raise InvariantViolation(
                f"{self.player_id}: tokens {self.tokens} above cap {self.max_tokens}"
            )
        if not 0 <= self.current_bet <= MAX_BET:
            raise InvariantViolation(f"{self.player_id}: bet {self.current_bet} out of range")
        if self.current_bet > self.tokens:
            raise InvariantViolation(
                f"{self.player_id}: bet {self.current_bet} exceeds tokens {self.tokens}"
            )

    @property
    def has_bet(self) -> bool:
        return self.current_bet > 0

    @property
    def has_pending_bonus(self) -> bool:
        return self.pending_precision_bonus > 0 or self.pending_challenge_bonus > 0

    def held_cards(self) -> tuple[PowerCardInstance, ...]:
        """Cards ready to use."""
        return tuple(c for c in self.power_cards if c.is_held)

    def used_cards(self) -> tuple[PowerCardInstance, ...]:
        """Spent cards."""
        return tuple(c for c in self.power_cards if c.is_used)

    def owned_card_count(self) -> int:
        """Cards counting against the hand limit (held or active)."""
        return sum(1 for c in self.power_cards if not c.is_used)

    def find_card(self, instance_id: CardInstanceId) -> PowerCardInstance | None:
        for card in self.power_cards:
            if card.instance_id == instance_id:
                return card
        return None

    def first_card(self, card_type: PowerCardType, state: CardState) -> PowerCardInstance | None:
        """The earliest acquired card of a type in a given state."""
        for card in self.power_cards:
            if card.card_type == card_type and card.state == state:
                return card
        return None

    def with_card(self, updated: PowerCardInstance) -> Player:
        """Return a new state with one card replaced (matched by instance id)."""
        return replace(
            self,
            power_cards=tuple(
                updated if c.instance_id == updated.instance_id else c for c in self.power_cards
            ),
        )

    def add_card(self, card: PowerCardInstance) -> Player:
        """Return a new state with a card appended to the collection."""
        return replace(self, power_cards=self.power_cards + (card.with_owner(self.player_id),))

    def remove_card(self, instance_id: CardInstanceId) -> tuple[Player, PowerCardInstance | None]:
        """Remove a card from the collection."""
        removed = self.find_card(instance_id)
        if removed is None:
            return self, None
        remaining = tuple(c for c in self.power_cards if c.instance_id != instance_id)
        return replace(self, power_cards=remaining), removed

    def with_bet(self, amount: int) -> Player:
        return replace(self, current_bet=amount)

    def forfeit_bet(self) -> Player:
        """Return a new state with the held bet taken from the balance."""
        return replace(
            self,
            tokens=Tokens(self.tokens - self.current_bet),
            current_bet=0,
            tokens_lost=self.tokens_lost + self.current_bet,
        )

    def with_score_added(self, points: int) -> Player:
        return replace(self, score=Points(self.score + points))

    def with_tokens(self, tokens: int) -> Player:
        return replace(self, tokens=Tokens(tokens))

    def with_effects(self, **flags: bool | int) -> Player:
        """Return a new state with effect flags / counters changed."""
        return replace(self, **flags)


# =============================================================================
# Round Content
# =============================================================================


@dataclass(frozen=True, slots=True)
class Track:
    """The song a music card is about."""

    track_id: str
    title: str
    artist: str
    year: int | None = None
    genre: str | None = None
    audio_url: str | None = None

    @property
    def decade(self) -> str | None:
        if self.year is None:
            return None
        return f"{self.year // 10 * 10}s"


@dataclass(frozen=True, slots=True)
class QuestionCard:
    """
    The active card for a round: prompt, canonical answer and base value.
    """

    code: str
    """Card code (e.g., 'HITBACK_001_SONG_EASY')."""

    question_type: QuestionType
    """What the card asks about."""

    prompt: str
    """The question read to the players."""

    answer: str
    """Canonical answer shown at reveal."""

    base_points: Points
    """Points before bets and power cards."""

    difficulty: Difficulty
    """Difficulty tier; drives the power card award chance."""

    track: Track
    """Track metadata the card reflects."""

    hints: tuple[str, ...] = ()
    """Optional hints for the game master."""


@dataclass(frozen=True, slots=True)
class Round:
    """One card/question cycle."""

    number: RoundNumber
    """Sequence number, starting at 1."""

    card: QuestionCard
    """The card being played."""

    mode: GameMode = GameMode.NORMAL
    """Resolution variant for this round."""

    audio_duration_s: float | None = None
    """How long the audio preview lasts (informational)."""


# =============================================================================
# Round Results
# =============================================================================


@dataclass(frozen=True, slots=True)
class PointsAward:
    """Points given to one player at a reveal, with the inputs that produced them."""

    player_id: PlayerId
    base_points: int
    token_bonus: int
    boost_applied: bool
    precision_bonus: int
    challenge_bonus: int
    total: Points


@dataclass(frozen=True, slots=True)
class RoundResult:
    """Outcome of an answer reveal."""

    round_number: RoundNumber
    mode: GameMode
    winner_ids: tuple[PlayerId, ...]
    """Players whose answer scored this round (empty = no winner)."""

    awards: tuple[PointsAward, ...]
    tokens_forfeited: tuple[tuple[PlayerId, int], ...]
    correct_answer: str
    track: Track
    game_over: bool = False

    def points_for(self, player_id: PlayerId) -> int:
        return sum(a.total for a in self.awards if a.player_id == player_id)


@dataclass(frozen=True, slots=True)
class GameOutcome:
    """How the session ended."""

    reason: EndReason
    winner_id: PlayerId | None
    """None when the top score ended in a draw."""

    tied_player_ids: tuple[PlayerId, ...] = ()
    """Players sharing the top position when the result is a draw."""

    final_scores: tuple[tuple[PlayerId, int], ...] = ()


# =============================================================================
# Session-level Aggregates
# =============================================================================


@dataclass(frozen=True, slots=True)
class GamePot:
    """Aggregate of forfeited tokens, kept for display."""

    tokens: int = 0

    def __post_init__(self) -> None:
        if self.tokens < 0:
            raise InvariantViolation(f"negative pot {self.tokens}")

    def with_added(self, amount: int) -> GamePot:
        return GamePot(tokens=self.tokens + amount)


@dataclass(frozen=True, slots=True)
class PowerCardDeck:
    """
    Remaining power card supply for a session.

    Scarcity is deck-level: a type with no supply left cannot be drawn or
    scanned, regardless of who would receive it.
    """

    remaining: tuple[tuple[PowerCardType, int], ...]
    """Copies left per type."""

    issued: frozenset[str] = field(default_factory=lambda: frozenset[str]())
    """Instance ids already handed out."""

    def count(self, card_type: PowerCardType) -> int:
        for t, n in self.remaining:
            if t == card_type:
                return n
        return 0

    def available_types(self) -> tuple[PowerCardType, ...]:
        """Types that can still be drawn, in catalog order."""
        return tuple(t for t, n in self.remaining if n > 0)

    def total_remaining(self) -> int:
        return sum(n for _, n in self.remaining)

    def next_instance_id(self, card_type: PowerCardType) -> CardInstanceId:
        """First free generated id for a type."""
        serial = 1
        while True:
            candidate = f"HITBACK_PWR_{card_type.value}_{serial:03d}"
            if candidate not in self.issued:
                return CardInstanceId(candidate)
            serial += 1

    def take(self, card_type: PowerCardType, instance_id: CardInstanceId) -> PowerCardDeck:
        """Return a deck with one copy of a type handed out."""
        if self.count(card_type) <= 0:
            raise InvariantViolation(f"no {card_type.value} left in deck")
        return PowerCardDeck(
            remaining=tuple((t, n - 1 if t == card_type else n) for t, n in self.remaining),
            issued=self.issued | {instance_id},
        )


@dataclass(frozen=True, slots=True)
class PrecisionChallenge:
    """An open PRECISION sub-round."""

    player_id: PlayerId
    card_id: CardInstanceId
    questions: int


@dataclass(frozen=True, slots=True)
class ActiveChallenge:
    """An open CHALLENGE performance."""

    player_id: PlayerId
    card_id: CardInstanceId
    challenge_type: ChallengeType


# =============================================================================
# Session
# =============================================================================


@dataclass(frozen=True, slots=True)
class Session:
    """
    Complete, immutable state of one game.

    The session exclusively owns its players and rounds; players exclusively
    own their power cards. Cross-player effects are explicit transfers.
    """

    session_id: str
    players: tuple[Player, ...]
    deck: PowerCardDeck
    mode: GameMode = GameMode.NORMAL
    target_score: int = DEFAULT_TARGET_SCORE
    time_budget_s: float | None = DEFAULT_TIME_BUDGET_S
    active: bool = True
    phase: GamePhase = GamePhase.IDLE
    is_loading: bool = False
    rounds_played: int = 0
    """Number of rounds started so far."""

    current_round: Round | None = None
    current_turn: int = 0
    """Index into ``players`` of whose turn it is."""

    pot: GamePot = field(default_factory=GamePot)
    precision: PrecisionChallenge | None = None
    challenge: ActiveChallenge | None = None
    last_result: RoundResult | None = None
    outcome: GameOutcome | None = None

    @property
    def game_ended(self) -> bool:
        return self.outcome is not None

    @property
    def current_player(self) -> Player:
        return self.players[self.current_turn]

    @property
    def can_start_next_round(self) -> bool:
        """A new round may be requested from idle or after the reveal."""
        if not self.active or self.is_loading:
            return False
        return self.phase in (GamePhase.IDLE, GamePhase.ANSWER)

    def find_player(self, player_id: PlayerId) -> Player | None:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    def with_player(self, player: Player) -> Session:
        """Return a new session with one player replaced (matched by id)."""
        return replace(
            self,
            players=tuple(player if p.player_id == player.player_id else p for p in self.players),
        )

    def with_players(self, players: Sequence[Player]) -> Session:
        return replace(self, players=tuple(players))

    def with_phase(self, phase: GamePhase, *, is_loading: bool = False) -> Session:
        return replace(self, phase=phase, is_loading=is_loading)

    def with_round(self, round_: Round | None) -> Session:
        return replace(self, current_round=round_)

    def with_deck(self, deck: PowerCardDeck) -> Session:
        return replace(self, deck=deck)

    def with_pot(self, pot: GamePot) -> Session:
        return replace(self, pot=pot)

    def with_turn(self, index: int) -> Session:
        return replace(self, current_turn=index)

    def with_precision(self, precision: PrecisionChallenge | None) -> Session:
        return replace(self, precision=precision)

    def with_challenge(self, challenge: ActiveChallenge | None) -> Session:
        return replace(self, challenge=challenge)

    def with_result(self, result: RoundResult | None) -> Session:
        return replace(self, last_result=result)

    def with_outcome(self, outcome: GameOutcome) -> Session:
        return replace(self, outcome=outcome, active=False)

    def with_rounds_played(self, count: int) -> Session:
        return replace(self, rounds_played=count)
