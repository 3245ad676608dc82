"""
Power card effects.

Each power card type has its own effect class. An effect knows how to check
its eligibility against a Session and how to apply itself, returning a new
session plus any events generated. Persistent effects (BOOST, SHIELD) are
consumed later by the reveal pipeline through ``consume_boost`` and
``tick_shields``.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from hitback.errors import ErrorCode, NotFoundError
from hitback.types import (
    PlayerId,
    CardInstanceId,
    PowerCardType,
    CardState,
    ChallengeType,
    PRECISION_QUESTIONS,
    SHIELD_ROUNDS,
)
from hitback.models import (
    Session,
    Player,
    PowerCardInstance,
    PrecisionChallenge,
    ActiveChallenge,
)
from hitback.events import (
    GameEvent,
    PowerCardUsedEvent,
    EffectActivatedEvent,
    EffectExpiredEvent,
    CardStolenEvent,
    CounterTriggeredEvent,
    CardResurrectedEvent,
    PrecisionStartedEvent,
    ChallengeStartedEvent,
)
from hitback.rules import ValidationResult

log = logging.getLogger(__name__)


# =============================================================================
# Card Use Request
# =============================================================================


@dataclass(frozen=True, slots=True)
class CardUse:
    """A player's request to use one of their power cards."""

    player_id: PlayerId
    """The acting player."""

    card_id: CardInstanceId
    """The card being used."""

    target_player_id: PlayerId | None = None
    """Victim of a STEAL."""

    target_card_id: CardInstanceId | None = None
    """Card to steal or to resurrect (picked automatically if None)."""


def _get_player(session: Session, player_id: PlayerId) -> Player:
    player = session.find_player(player_id)
    if player is None:
        raise NotFoundError(f"Unknown player: {player_id}")
    return player


def _get_card(player: Player, card_id: CardInstanceId) -> PowerCardInstance:
    card = player.find_card(card_id)
    if card is None:
        raise NotFoundError(f"{player.player_id} does not own card {card_id}")
    return card


def _used_event(use: CardUse, card_type: PowerCardType) -> PowerCardUsedEvent:
    return PowerCardUsedEvent(
        player_id=use.player_id,
        card_id=use.card_id,
        card_type=card_type,
        target_player_id=use.target_player_id,
    )


def _open_challenge_check(session: Session) -> ValidationResult:
    if session.precision is not None or session.challenge is not None:
        return ValidationResult.fail(
            ErrorCode.DUPLICATE_EFFECT, "Another precision or performance challenge is still open"
        )
    return ValidationResult.ok()


# =============================================================================
# Persistent Effects
# =============================================================================


@dataclass(frozen=True, slots=True)
class BoostEffect:
    """
    BOOST: double the holder's next scored points.

    Does not stack; the card stays active until a reveal consumes it.
    """

    def check(self, session: Session, use: CardUse) -> ValidationResult:
        player = _get_player(session, use.player_id)
        if player.boost_active:
            return ValidationResult.fail(ErrorCode.DUPLICATE_EFFECT, f"{player.name} already has an active boost")
        return ValidationResult.ok()

    def apply(
        self,
        session: Session,
        use: CardUse,
        rng: random.Random,
        now: float,
    ) -> tuple[Session, list[GameEvent]]:
        player = _get_player(session, use.player_id)
        card = _get_card(player, use.card_id)
        player = player.with_card(card.activated()).with_effects(boost_active=True)
        return session.with_player(player), [
            _used_event(use, PowerCardType.BOOST),
            EffectActivatedEvent(player_id=use.player_id, card_type=PowerCardType.BOOST),
        ]


@dataclass(frozen=True, slots=True)
class ShieldEffect:
    """SHIELD: block steal attempts for a number of round resolutions."""

    rounds: int = SHIELD_ROUNDS
    """Round resolutions before the shield expires."""

    def check(self, session: Session, use: CardUse) -> ValidationResult:
        player = _get_player(session, use.player_id)
        if player.is_immune:
            return ValidationResult.fail(ErrorCode.DUPLICATE_EFFECT, f"{player.name} already has an active shield")
        return ValidationResult.ok()

    def apply(
        self,
        session: Session,
        use: CardUse,
        rng: random.Random,
        now: float,
    ) -> tuple[Session, list[GameEvent]]:
        player = _get_player(session, use.player_id)
        card = _get_card(player, use.card_id)
        player = player.with_card(card.activated()).with_effects(
            is_immune=True,
            shield_rounds_left=self.rounds,
        )
        return session.with_player(player), [
            _used_event(use, PowerCardType.SHIELD),
            EffectActivatedEvent(player_id=use.player_id, card_type=PowerCardType.SHIELD),
        ]


@dataclass(frozen=True, slots=True)
class CounterEffect:
    """
    COUNTER: passive.

    It cannot be used directly; StealEffect triggers it when its holder is
    targeted.
    """

    def check(self, session: Session, use: CardUse) -> ValidationResult:
        return ValidationResult.fail(
            ErrorCode.PASSIVE_CARD, "COUNTER triggers automatically when someone steals from you"
        )

    def apply(
        self,
        session: Session,
        use: CardUse,
        rng: random.Random,
        now: float,
    ) -> tuple[Session, list[GameEvent]]:
        self.check(session, use).raise_if_invalid()
        return session, []


# =============================================================================
# Instant Effects
# =============================================================================


@dataclass(frozen=True, slots=True)
class StealEffect:
    """
    STEAL: take a held power card from another player.

    If the target holds a COUNTER, the steal is reversed: the target keeps
    everything and both the STEAL and the COUNTER are spent.
    """

    def check(self, session: Session, use: CardUse) -> ValidationResult:
        if use.target_player_id is None:
            return ValidationResult.fail(ErrorCode.INVALID_TARGET, "STEAL needs a target player")
        if use.target_player_id == use.player_id:
            return ValidationResult.fail(ErrorCode.INVALID_TARGET, "You cannot steal from yourself")

        target = _get_player(session, use.target_player_id)
        if target.is_immune:
            return ValidationResult.fail(ErrorCode.INVALID_TARGET, f"{target.name} is protected by a shield")

        stealable = target.held_cards()
        if not stealable:
            return ValidationResult.fail(ErrorCode.NO_ELIGIBLE_CARD, f"{target.name} has no card to steal")

        if use.target_card_id is not None and all(c.instance_id != use.target_card_id for c in stealable):
            return ValidationResult.fail(
                ErrorCode.NO_ELIGIBLE_CARD, f"{target.name} holds no stealable card {use.target_card_id}"
            )

        return ValidationResult.ok()

    def apply(
        self,
        session: Session,
        use: CardUse,
        rng: random.Random,
        now: float,
    ) -> tuple[Session, list[GameEvent]]:
        assert use.target_player_id is not None
        attacker = _get_player(session, use.player_id)
        target = _get_player(session, use.target_player_id)
        steal_card = _get_card(attacker, use.card_id)
        attacker = attacker.with_card(steal_card.used(now))

        events: list[GameEvent] = [_used_event(use, PowerCardType.STEAL)]

        counter = target.first_card(PowerCardType.COUNTER, CardState.HELD)
        if counter is not None:
            target = target.with_card(counter.used(now))
            events.append(
                CounterTriggeredEvent(
                    holder_id=target.player_id,
                    attacker_id=attacker.player_id,
                    counter_card_id=counter.instance_id,
                )
            )
            log.info("steal countered attacker=%s holder=%s", attacker.player_id, target.player_id)
            return session.with_player(attacker).with_player(target), events

        if use.target_card_id is not None:
            stolen_id = use.target_card_id
        else:
            stolen_id = rng.choice(target.held_cards()).instance_id

        target, stolen = target.remove_card(stolen_id)
        assert stolen is not None
        attacker = attacker.add_card(stolen)

        events.append(
            CardStolenEvent(
                thief_id=attacker.player_id,
                victim_id=target.player_id,
                card_id=stolen.instance_id,
            )
        )
        log.info("card stolen thief=%s victim=%s card=%s", attacker.player_id, target.player_id, stolen_id)
        return session.with_player(attacker).with_player(target), events


@dataclass(frozen=True, slots=True)
class PrecisionEffect:
    """PRECISION: open rapid questions worth up to 1 point each."""

    questions: int = PRECISION_QUESTIONS

    def check(self, session: Session, use: CardUse) -> ValidationResult:
        result = _open_challenge_check(session)
        if not result.valid:
            return result
        player = _get_player(session, use.player_id)
        if player.pending_precision_bonus > 0:
            return ValidationResult.fail(
                ErrorCode.DUPLICATE_EFFECT, f"{player.name} has a precision bonus waiting for the reveal"
            )
        return ValidationResult.ok()

    def apply(
        self,
        session: Session,
        use: CardUse,
        rng: random.Random,
        now: float,
    ) -> tuple[Session, list[GameEvent]]:
        player = _get_player(session, use.player_id)
        card = _get_card(player, use.card_id)
        session = session.with_player(player.with_card(card.used(now)))
        session = session.with_precision(
            PrecisionChallenge(player_id=use.player_id, card_id=use.card_id, questions=self.questions)
        )
        return session, [
            _used_event(use, PowerCardType.PRECISION),
            PrecisionStartedEvent(player_id=use.player_id, questions=self.questions),
        ]


@dataclass(frozen=True, slots=True)
class ChallengeEffect:
    """CHALLENGE: present a random performance challenge."""

    def check(self, session: Session, use: CardUse) -> ValidationResult:
        result = _open_challenge_check(session)
        if not result.valid:
            return result
        player = _get_player(session, use.player_id)
        if player.pending_challenge_bonus > 0:
            return ValidationResult.fail(
                ErrorCode.DUPLICATE_EFFECT, f"{player.name} has a challenge bonus waiting for the reveal"
            )
        return ValidationResult.ok()

    def apply(
        self,
        session: Session,
        use: CardUse,
        rng: random.Random,
        now: float,
    ) -> tuple[Session, list[GameEvent]]:
        player = _get_player(session, use.player_id)
        card = _get_card(player, use.card_id)
        challenge_type = rng.choice(list(ChallengeType))
        session = session.with_player(player.with_card(card.used(now)))
        session = session.with_challenge(
            ActiveChallenge(player_id=use.player_id, card_id=use.card_id, challenge_type=challenge_type)
        )
        return session, [
            _used_event(use, PowerCardType.CHALLENGE),
            ChallengeStartedEvent(player_id=use.player_id, challenge_type=challenge_type),
        ]


@dataclass(frozen=True, slots=True)
class ResurrectEffect:
    """RESURRECT: bring a used card of another type back to the hand."""

    def _candidates(self, player: Player) -> tuple[PowerCardInstance, ...]:
        return tuple(c for c in player.used_cards() if c.card_type != PowerCardType.RESURRECT)

    def check(self, session: Session, use: CardUse) -> ValidationResult:
        player = _get_player(session, use.player_id)
        candidates = self._candidates(player)
        if not candidates:
            return ValidationResult.fail(ErrorCode.NO_ELIGIBLE_CARD, f"{player.name} has no used card to recover")
        if use.target_card_id is not None and all(c.instance_id != use.target_card_id for c in candidates):
            return ValidationResult.fail(
                ErrorCode.NO_ELIGIBLE_CARD, f"{use.target_card_id} is not a used card of {player.name}"
            )
        return ValidationResult.ok()

    def apply(
        self,
        session: Session,
        use: CardUse,
        rng: random.Random,
        now: float,
    ) -> tuple[Session, list[GameEvent]]:
        player = _get_player(session, use.player_id)
        card = _get_card(player, use.card_id)

        if use.target_card_id is not None:
            revived = _get_card(player, use.target_card_id)
        else:
            # Most recently used card; later acquisitions win ties
            candidates = self._candidates(player)
            revived = max(reversed(candidates), key=lambda c: c.used_at or 0.0)

        player = player.with_card(card.used(now)).with_card(revived.restored())
        return session.with_player(player), [
            _used_event(use, PowerCardType.RESURRECT),
            CardResurrectedEvent(
                player_id=use.player_id,
                card_id=revived.instance_id,
                card_type=revived.card_type,
            ),
        ]


# =============================================================================
# Effect Dispatch
# =============================================================================

PowerCardEffect = (
    BoostEffect
    | StealEffect
    | ShieldEffect
    | CounterEffect
    | PrecisionEffect
    | ChallengeEffect
    | ResurrectEffect
)


def effect_for(card_type: PowerCardType, shield_rounds: int = SHIELD_ROUNDS) -> PowerCardEffect:
    """Get the effect implementation for a power card type."""
    match card_type:
        case PowerCardType.BOOST:
            return BoostEffect()
        case PowerCardType.STEAL:
            return StealEffect()
        case PowerCardType.SHIELD:
            return ShieldEffect(rounds=shield_rounds)
        case PowerCardType.COUNTER:
            return CounterEffect()
        case PowerCardType.PRECISION:
            return PrecisionEffect()
        case PowerCardType.CHALLENGE:
            return ChallengeEffect()
        case PowerCardType.RESURRECT:
            return ResurrectEffect()


def validate_card_use(session: Session, use: CardUse, effect: PowerCardEffect) -> ValidationResult:
    """
    Validate whether a power card use is legal.

    Checks:
    - Session is still running
    - Player owns the card (NotFoundError otherwise)
    - Card is held, not used or already running
    - Type-specific preconditions
    """
    if session.game_ended:
        return ValidationResult.fail(ErrorCode.GAME_OVER, "The game is over")

    player = _get_player(session, use.player_id)
    card = _get_card(player, use.card_id)

    if card.is_used:
        return ValidationResult.fail(ErrorCode.CARD_EXHAUSTED, f"{card.instance_id} was already used")
    if card.is_active:
        return ValidationResult.fail(ErrorCode.DUPLICATE_EFFECT, f"{card.instance_id} is already in effect")

    return effect.check(session, use)


def use_card(
    session: Session,
    use: CardUse,
    rng: random.Random,
    now: float,
    shield_rounds: int = SHIELD_ROUNDS,
) -> tuple[Session, list[GameEvent]]:
    """
    Validate and apply a power card use.

    Raises:
        ValidationError: A precondition failed (session untouched)
        NotFoundError: Unknown player or card
    """
    player = _get_player(session, use.player_id)
    card = _get_card(player, use.card_id)
    effect = effect_for(card.card_type, shield_rounds=shield_rounds)

    result = validate_card_use(session, use, effect)
    if not result.valid:
        log.warning("power card rejected player=%s card=%s reason=%s", use.player_id, use.card_id, result.reason)
        result.raise_if_invalid()

    log.info("power card used player=%s type=%s", use.player_id, card.card_type.value)
    return effect.apply(session, use, rng, now)


# =============================================================================
# Persistent Effect Bookkeeping
# =============================================================================


def consume_boost(session: Session, player_id: PlayerId, now: float) -> tuple[Session, list[GameEvent]]:
    """Spend a player's active boost after it doubled their points."""
    player = _get_player(session, player_id)
    if not player.boost_active:
        return session, []

    card = player.first_card(PowerCardType.BOOST, CardState.ACTIVE)
    if card is not None:
        player = player.with_card(card.used(now))
    player = player.with_effects(boost_active=False)
    return session.with_player(player), [
        EffectExpiredEvent(player_id=player_id, card_type=PowerCardType.BOOST)
    ]


def tick_shields(session: Session, now: float) -> tuple[Session, list[GameEvent]]:
    """Count down active shields by one round resolution, expiring finished ones."""
    events: list[GameEvent] = []

    for player in session.players:
        if not player.is_immune:
            continue

        rounds_left = player.shield_rounds_left - 1
        if rounds_left > 0:
            session = session.with_player(player.with_effects(shield_rounds_left=rounds_left))
            continue

        card = player.first_card(PowerCardType.SHIELD, CardState.ACTIVE)
        if card is not None:
            player = player.with_card(card.used(now))
        session = session.with_player(player.with_effects(is_immune=False, shield_rounds_left=0))
        events.append(EffectExpiredEvent(player_id=player.player_id, card_type=PowerCardType.SHIELD))
        log.debug("shield expired player=%s", player.player_id)

    return session, events
