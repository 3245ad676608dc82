"""
Game Controller - orchestrates sessions and exposes APIs.

The controller manages the game lifecycle without any I/O of its own.
It provides a clean interface for:
- Creating sessions
- Driving a round through its phases
- Betting, power cards and special round modes
- Ending the game (score, time, content)

All operations take a Session snapshot and return a new snapshot plus an
event log. A rejected operation raises before a new snapshot exists, so
the caller's snapshot is never half-updated. Phase signals delivered at the
wrong time are ignored and return the same snapshot with no events.
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from typing import Callable, Mapping, Sequence

from hitback.errors import ContentExhausted, ErrorCode, NotFoundError, ValidationError
from hitback.types import (
    PlayerId,
    CardInstanceId,
    RoundNumber,
    Points,
    Tokens,
    GamePhase,
    GameMode,
    PowerCardType,
    Difficulty,
    QuestionType,
    EndReason,
    MAX_PRECISION_BONUS,
    CHALLENGE_BONUS,
)
from hitback.models import (
    Session,
    Player,
    PowerCardInstance,
    Round,
    RoundResult,
    PointsAward,
    QuestionCard,
    Track,
)
from hitback.events import (
    GameEvent,
    GameStartedEvent,
    GameEndedEvent,
    PhaseChangedEvent,
    RoundStartedEvent,
    AnswerPeekedEvent,
    AnswerRevealedEvent,
    PointsAwardedEvent,
    PowerCardAwardedEvent,
    PrecisionResolvedEvent,
    ChallengeResolvedEvent,
)
from hitback.config import EngineConfig
from hitback.phases import PhaseEvent, next_phase
from hitback.providers import AudioDurationSource, CardProvider, FixedAudioDuration
from hitback.scoring import score_player
from hitback.betting import place_bet, clear_bets, all_bets_placed, settle_bets
from hitback.effects import CardUse, use_card, consume_boost, tick_shields
from hitback.powercards import create_deck, parse_power_card_code, normalize_code, roll_award
from hitback.rules import (
    validate_roster,
    advance_turn,
    has_reached_target,
    compute_outcome,
    resolve_battle,
    resolve_speed,
    resolve_viral,
)

log = logging.getLogger(__name__)

Result = tuple[Session, list[GameEvent]]


def _close_sub_rounds(session: Session) -> Session:
    """Drop precision and performance challenges nobody reported on."""
    if session.precision is not None:
        log.info("closing unresolved precision challenge player=%s", session.precision.player_id)
        session = session.with_precision(None)
    if session.challenge is not None:
        log.info("closing unresolved challenge player=%s", session.challenge.player_id)
        session = session.with_challenge(None)
    return session


class GameController:
    """
    Orchestrates sessions and provides APIs for game interaction.

    The controller is stateless apart from its collaborators - all game
    state is passed in and returned. This makes it easy to:
    - Test with specific sessions
    - Host many sessions from one controller
    - Replay a session from its event log with a seeded RNG

    Usage:
        controller = GameController(DeckProvider.from_json())
        session, events = controller.create_session(["Ana", "Luis"])
        session, events = controller.request_next_round(session)
        session, events = controller.signal_audio_finished(session)
        session, events = controller.reveal_answer(session, PlayerId("player_1"))
    """

    def __init__(
        self,
        provider: CardProvider,
        audio_source: AudioDurationSource | None = None,
        rng: random.Random | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.provider = provider
        self.audio_source = audio_source or FixedAudioDuration()
        self.rng = rng or random.Random()
        self.config = config or EngineConfig()
        self.clock = clock

    # =========================================================================
    # Session Lifecycle
    # =========================================================================

    def create_session(
        self,
        player_names: Sequence[str],
        mode: GameMode = GameMode.NORMAL,
        session_id: str | None = None,
    ) -> Result:
        """
        Create a new session in the idle phase.

        Args:
            player_names: 2-8 display names, in turn order
            mode: Default round mode for the session
            session_id: Identifier to use (random if None)

        Returns:
            Tuple of (initial_session, events)
        """
        validate_roster(player_names).raise_if_invalid()

        players = tuple(
            Player(
                player_id=PlayerId(f"player_{index + 1}"),
                name=name.strip(),
                turn_position=index,
                tokens=Tokens(self.config.starting_tokens),
                max_tokens=self.config.max_tokens,
            )
            for index, name in enumerate(player_names)
        )

        session = Session(
            session_id=session_id or uuid.uuid4().hex,
            players=players,
            deck=create_deck(),
            mode=mode,
            target_score=self.config.target_score,
            time_budget_s=self.config.time_budget_s,
        )

        log.info("session created id=%s players=%d mode=%s", session.session_id, len(players), mode.value)
        return session, [
            GameStartedEvent(
                session_id=session.session_id,
                player_ids=tuple(p.player_id for p in players),
            )
        ]

    def signal_time_expired(self, session: Session) -> Result:
        """
        The timer collaborator reports that the time budget ran out.

        The highest score wins; see ``compute_outcome`` for ties.
        """
        if session.game_ended:
            return session, []
        return self._end_game(session, EndReason.TIME)

    def _end_game(self, session: Session, reason: EndReason) -> Result:
        outcome = compute_outcome(session, reason)
        log.info(
            "game ended id=%s reason=%s winner=%s",
            session.session_id,
            reason.value,
            outcome.winner_id or "draw",
        )
        return session.with_outcome(outcome), [GameEndedEvent(outcome=outcome)]

    # =========================================================================
    # Round Phases
    # =========================================================================

    def _transition(self, session: Session, event: PhaseEvent) -> Result:
        """Apply a table transition, or ignore the event."""
        if session.game_ended:
            log.debug("ignoring %s: game over", event.name)
            return session, []

        to_phase = next_phase(session.phase, event)
        if to_phase is None:
            log.debug("ignoring %s in phase %s", event.name, session.phase.value)
            return session, []

        log.debug("phase %s -> %s", session.phase.value, to_phase.value)
        return session.with_phase(to_phase), [
            PhaseChangedEvent(from_phase=session.phase, to_phase=to_phase)
        ]

    def request_next_round(self, session: Session, mode: GameMode | None = None) -> Result:
        """
        Load the next round from the card provider.

        Round 1 goes straight to the audio; later rounds open betting first.
        If the provider is out of content the session ends gracefully.

        Args:
            session: Current session (idle or answer phase)
            mode: Round mode override (defaults to the session mode)

        Returns:
            Tuple of (new_session, events)
        """
        if not session.can_start_next_round:
            log.debug("next round not allowed in phase %s", session.phase.value)
            return session, []

        events: list[GameEvent] = []
        if session.phase == GamePhase.ANSWER:
            session, prepare_events = self.prepare_next_round(session)
            events.extend(prepare_events)

        session, loading_events = self._transition(session, PhaseEvent.REQUEST_NEXT_ROUND)
        events.extend(loading_events)
        session = session.with_phase(GamePhase.LOADING, is_loading=True)

        round_mode = mode or session.mode
        try:
            card = self.provider.next_card(session, round_mode)
        except ContentExhausted as exc:
            log.info("content exhausted: %s", exc)
            session = session.with_phase(GamePhase.IDLE)
            events.append(PhaseChangedEvent(from_phase=GamePhase.LOADING, to_phase=GamePhase.IDLE))
            session, end_events = self._end_game(session, EndReason.CONTENT_EXHAUSTED)
            return session, events + end_events

        number = RoundNumber(session.rounds_played + 1)
        current = Round(
            number=number,
            card=card,
            mode=round_mode,
            audio_duration_s=self.audio_source.duration_for(card),
        )
        to_phase = next_phase(GamePhase.LOADING, PhaseEvent.ROUND_LOADED, number)
        assert to_phase is not None

        session = clear_bets(session).with_round(current).with_rounds_played(number)
        session = session.with_phase(to_phase)

        events.append(
            RoundStartedEvent(
                round_number=number,
                card_code=card.code,
                mode=round_mode,
                audio_duration_s=current.audio_duration_s,
            )
        )
        events.append(PhaseChangedEvent(from_phase=GamePhase.LOADING, to_phase=to_phase))
        log.info("round %d started card=%s mode=%s", number, card.code, round_mode.value)
        return session, events

    def end_betting(self, session: Session) -> Result:
        """Close betting (explicit, timer or all bets placed)."""
        return self._transition(session, PhaseEvent.END_BETTING)

    def signal_audio_finished(self, session: Session) -> Result:
        """The preview finished or was stopped; show the question."""
        return self._transition(session, PhaseEvent.AUDIO_FINISHED)

    def prepare_next_round(self, session: Session) -> Result:
        """Clear the finished round and return to idle."""
        session, events = self._transition(session, PhaseEvent.PREPARE_NEXT_ROUND)
        if events:
            session = _close_sub_rounds(clear_bets(session).with_round(None))
        return session, events

    def reset(self, session: Session) -> Result:
        """
        Abandon the round in flight and return to idle.

        Held bets are released without forfeit; nothing was scored yet.
        Open precision and performance challenges are closed unpaid. A round
        abandoned before its reveal does not count as played.
        """
        if session.game_ended or (session.phase == GamePhase.IDLE and session.current_round is None):
            return session, []

        from_phase = session.phase
        current = session.current_round
        if current is not None and from_phase != GamePhase.ANSWER:
            session = session.with_rounds_played(current.number - 1)
        session = _close_sub_rounds(clear_bets(session).with_round(None).with_phase(GamePhase.IDLE))
        log.info("round reset from phase %s", from_phase.value)
        if from_phase == GamePhase.IDLE:
            return session, []
        return session, [PhaseChangedEvent(from_phase=from_phase, to_phase=GamePhase.IDLE)]

    # =========================================================================
    # Betting
    # =========================================================================

    def place_bet(self, session: Session, player_id: PlayerId, amount: int) -> Result:
        """
        Hold a 1-3 token bet for a player during the betting phase.

        Closes betting automatically once every player who can bet has bet
        (when ``auto_close_betting`` is on).

        Raises:
            ValidationError: INSUFFICIENT_TOKENS, INVALID_AMOUNT, DUPLICATE_BET,
                WRONG_PHASE or GAME_OVER
            NotFoundError: Unknown player
        """
        session, events = place_bet(session, player_id, amount)

        if self.config.auto_close_betting and all_bets_placed(session):
            log.debug("all bets placed, closing betting")
            session, close_events = self.end_betting(session)
            events.extend(close_events)

        return session, events

    # =========================================================================
    # Answer Reveal
    # =========================================================================

    def reveal_answer(self, session: Session, winner_id: PlayerId | None) -> Result:
        """
        Reveal the answer with a single winner, or None for no winner.

        A second reveal while the answer is showing is ignored; the result
        stays available as ``session.last_result``.

        Raises:
            NotFoundError: Unknown winner id
        """
        if not self._can_reveal(session):
            return session, []

        if winner_id is not None and session.find_player(winner_id) is None:
            raise NotFoundError(f"Unknown player: {winner_id}")

        current = session.current_round
        assert current is not None
        round_points = {} if winner_id is None else {winner_id: int(current.card.base_points)}
        return self._resolve_round(session, round_points)

    def reveal_battle(self, session: Session, results: Mapping[PlayerId, bool]) -> Result:
        """
        Resolve a battle round between two players.

        Args:
            results: Whether each of the two battling players answered correctly
        """
        if not self._can_reveal(session):
            return session, []
        current = self._require_mode(session, GameMode.BATTLE)
        self._require_players(session, results)
        return self._resolve_round(session, resolve_battle(int(current.card.base_points), results))

    def reveal_speed(self, session: Session, correct_counts: Mapping[PlayerId, int]) -> Result:
        """
        Resolve a speed round from each player's correct-answer count.
        """
        if not self._can_reveal(session):
            return session, []
        self._require_mode(session, GameMode.SPEED)
        self._require_players(session, correct_counts)
        return self._resolve_round(session, resolve_speed(correct_counts))

    def reveal_viral(self, session: Session, player_id: PlayerId, success: bool) -> Result:
        """
        Resolve a viral moment: a challenge card performed by one player.
        """
        if not self._can_reveal(session):
            return session, []
        current = self._require_mode(session, GameMode.VIRAL)
        self._require_players(session, (player_id,))
        if current.card.question_type != QuestionType.CHALLENGE:
            raise ValidationError(
                ErrorCode.WRONG_MODE, f"Viral rounds need a challenge card, got {current.card.code}"
            )
        return self._resolve_round(
            session, resolve_viral(int(current.card.base_points), player_id, success)
        )

    def _can_reveal(self, session: Session) -> bool:
        if session.game_ended:
            return False
        if session.phase == GamePhase.ANSWER:
            log.debug("answer already revealed for round %d", session.rounds_played)
            return False
        if next_phase(session.phase, PhaseEvent.REVEAL_ANSWER) is None:
            log.debug("ignoring reveal in phase %s", session.phase.value)
            return False
        return True

    def _require_mode(self, session: Session, mode: GameMode) -> Round:
        current = session.current_round
        assert current is not None
        if current.mode != mode:
            raise ValidationError(
                ErrorCode.WRONG_MODE, f"Round {current.number} is a {current.mode.value} round, not {mode.value}"
            )
        return current

    def _require_players(self, session: Session, player_ids: Sequence[PlayerId] | Mapping[PlayerId, object]) -> None:
        for player_id in player_ids:
            if session.find_player(player_id) is None:
                raise NotFoundError(f"Unknown player: {player_id}")

    def _resolve_round(self, session: Session, round_points: Mapping[PlayerId, int]) -> Result:
        """
        Score a round and move to the answer phase.

        Pipeline:
        1. Award points (scoring formula with bets, boosts, pending bonuses)
        2. Consume boosts that doubled points
        3. Settle bets (losers forfeit to the pot)
        4. Count down shields
        5. Roll power card awards for the winners
        6. Check the win condition
        7. Advance the turn
        """
        current = session.current_round
        assert current is not None
        events: list[GameEvent] = []
        now = self.clock()
        winner_ids = tuple(p.player_id for p in session.players if p.player_id in round_points)

        # 1. Points
        awards: list[PointsAward] = []
        for player in session.players:
            if player.player_id in round_points:
                awards.append(score_player(player, round_points[player.player_id], scored=True))
            elif player.has_pending_bonus:
                awards.append(score_player(player, 0, scored=False))

        for award in awards:
            player = session.find_player(award.player_id)
            assert player is not None
            player = player.with_score_added(award.total).with_effects(
                pending_precision_bonus=0,
                pending_challenge_bonus=0,
            )
            session = session.with_player(player)
            if award.total > 0:
                events.append(
                    PointsAwardedEvent(player_id=player.player_id, points=award.total, new_score=player.score)
                )

            # 2. Boost
            if award.boost_applied:
                session, boost_events = consume_boost(session, award.player_id, now)
                events.extend(boost_events)

        session = session.with_players(
            p.with_effects(correct_answers=p.correct_answers + 1, consecutive_wins=p.consecutive_wins + 1)
            if p.player_id in winner_ids
            else p.with_effects(consecutive_wins=0)
            for p in session.players
        )

        # 3. Bets
        session, bet_events, forfeits = settle_bets(session, winner_ids)
        events.extend(bet_events)

        # 4. Shields
        session, shield_events = tick_shields(session, now)
        events.extend(shield_events)

        # 5. Power card awards
        for winner_id in winner_ids:
            session, _, award_events = self.award_random_power_card(session, winner_id, current.card.difficulty)
            events.extend(award_events)

        # 6. Win condition
        game_over = has_reached_target(session)

        result = RoundResult(
            round_number=current.number,
            mode=current.mode,
            winner_ids=winner_ids,
            awards=tuple(awards),
            tokens_forfeited=forfeits,
            correct_answer=current.card.answer,
            track=current.card.track,
            game_over=game_over,
        )
        session = session.with_result(result).with_phase(GamePhase.ANSWER)
        events.append(AnswerRevealedEvent(result=result))
        events.append(PhaseChangedEvent(from_phase=GamePhase.QUESTION, to_phase=GamePhase.ANSWER))
        log.info(
            "round %d revealed winners=%s forfeits=%d",
            current.number,
            ",".join(winner_ids) or "none",
            len(forfeits),
        )

        if game_over:
            session, end_events = self._end_game(session, EndReason.SCORE)
            events.extend(end_events)
            return session, events

        # 7. Turn
        session, turn_events = advance_turn(session)
        events.extend(turn_events)
        return session, events

    def peek_answer(self, session: Session, player_id: PlayerId) -> Result:
        """
        Let a player see the answer before the reveal, once per turn.

        Raises:
            ValidationError: Not in the question phase, or already peeked
            NotFoundError: Unknown player
        """
        player = session.find_player(player_id)
        if player is None:
            raise NotFoundError(f"Unknown player: {player_id}")
        if session.game_ended:
            raise ValidationError(ErrorCode.GAME_OVER, "The game is over")
        if session.phase != GamePhase.QUESTION or session.current_round is None:
            raise ValidationError(ErrorCode.WRONG_PHASE, "Peeking is only possible while the question is shown")
        if player.peek_used:
            raise ValidationError(ErrorCode.DUPLICATE_EFFECT, f"{player.name} already peeked this turn")

        session = session.with_player(player.with_effects(peek_used=True))
        return session, [AnswerPeekedEvent(player_id=player_id, answer=session.current_round.card.answer)]

    # =========================================================================
    # Power Cards
    # =========================================================================

    def use_power_card(
        self,
        session: Session,
        player_id: PlayerId,
        card_id: CardInstanceId,
        target_player_id: PlayerId | None = None,
        target_card_id: CardInstanceId | None = None,
    ) -> Result:
        """
        Use a held power card.

        Args:
            player_id: The acting player
            card_id: The card to use
            target_player_id: Victim of a STEAL
            target_card_id: Card to steal or resurrect (chosen automatically if None)

        Raises:
            ValidationError: A precondition failed; the reason names it
            NotFoundError: Unknown player or card
        """
        use = CardUse(
            player_id=player_id,
            card_id=card_id,
            target_player_id=target_player_id,
            target_card_id=target_card_id,
        )
        return use_card(session, use, self.rng, self.clock(), shield_rounds=self.config.shield_rounds)

    def scan_power_card(self, session: Session, player_id: PlayerId, code: str) -> Result:
        """
        Give a player the power card behind a scanned code.

        Raises:
            ValidationError: INVALID_CODE, CARD_EXHAUSTED, HAND_FULL or GAME_OVER
            NotFoundError: Unknown player
        """
        if session.game_ended:
            raise ValidationError(ErrorCode.GAME_OVER, "The game is over")

        player = session.find_player(player_id)
        if player is None:
            raise NotFoundError(f"Unknown player: {player_id}")

        card_type = parse_power_card_code(code)
        if card_type is None:
            raise ValidationError(ErrorCode.INVALID_CODE, f"Not a power card code: {code!r}")

        instance_id = normalize_code(code)
        if instance_id in session.deck.issued:
            raise ValidationError(ErrorCode.CARD_EXHAUSTED, f"{instance_id} was already claimed")
        if session.deck.count(card_type) <= 0:
            raise ValidationError(ErrorCode.CARD_EXHAUSTED, f"No {card_type.value} cards left in this game")
        if player.owned_card_count() >= self.config.max_cards_in_hand:
            raise ValidationError(
                ErrorCode.HAND_FULL, f"{player.name} already holds {self.config.max_cards_in_hand} power cards"
            )

        session, _, events = self._grant_card(session, player, card_type, instance_id, scanned=True)
        return session, events

    def award_random_power_card(
        self,
        session: Session,
        player_id: PlayerId,
        difficulty: Difficulty,
    ) -> tuple[Session, PowerCardInstance | None, list[GameEvent]]:
        """
        Roll the difficulty-weighted chance of a random power card.

        Returns:
            Tuple of (new_session, awarded card or None, events)

        Raises:
            NotFoundError: Unknown player
        """
        player = session.find_player(player_id)
        if player is None:
            raise NotFoundError(f"Unknown player: {player_id}")

        if session.game_ended:
            return session, None, []

        if player.owned_card_count() >= self.config.max_cards_in_hand:
            log.debug("no award for %s: hand full", player_id)
            return session, None, []

        card_type = roll_award(self.rng, difficulty, session.deck, self.config.award_chances)
        if card_type is None:
            return session, None, []

        instance_id = session.deck.next_instance_id(card_type)
        return self._grant_card(session, player, card_type, instance_id, scanned=False)

    def _grant_card(
        self,
        session: Session,
        player: Player,
        card_type: PowerCardType,
        instance_id: CardInstanceId,
        scanned: bool,
    ) -> tuple[Session, PowerCardInstance, list[GameEvent]]:
        card = PowerCardInstance(
            instance_id=instance_id,
            card_type=card_type,
            owner=player.player_id,
            obtained_at=self.clock(),
        )
        session = session.with_deck(session.deck.take(card_type, instance_id))
        session = session.with_player(player.add_card(card))
        log.info("power card awarded player=%s card=%s scanned=%s", player.player_id, instance_id, scanned)
        return session, card, [
            PowerCardAwardedEvent(
                player_id=player.player_id,
                card_id=instance_id,
                card_type=card_type,
                scanned=scanned,
            )
        ]

    def resolve_precision(self, session: Session, correct_answers: int) -> Result:
        """
        The operator reports how many precision questions were answered.

        Banks up to 3 points, paid out at the next reveal.

        Raises:
            ValidationError: Negative count
        """
        precision = session.precision
        if precision is None:
            log.warning("precision result received with no precision challenge open")
            return session, []
        if correct_answers < 0:
            raise ValidationError(ErrorCode.INVALID_AMOUNT, f"Negative answer count: {correct_answers}")

        bonus = min(correct_answers, precision.questions, MAX_PRECISION_BONUS)
        player = session.find_player(precision.player_id)
        assert player is not None
        session = session.with_player(player.with_effects(pending_precision_bonus=bonus))
        session = session.with_precision(None)
        return session, [
            PrecisionResolvedEvent(player_id=player.player_id, correct_answers=correct_answers, bonus=bonus)
        ]

    def resolve_challenge(self, session: Session, completed: bool) -> Result:
        """
        The operator reports whether the performance challenge was completed.

        Success banks the flat challenge bonus, paid out at the next reveal.
        """
        challenge = session.challenge
        if challenge is None:
            log.warning("challenge result received with no challenge open")
            return session, []

        bonus = CHALLENGE_BONUS if completed else 0
        player = session.find_player(challenge.player_id)
        assert player is not None
        session = session.with_player(player.with_effects(pending_challenge_bonus=bonus))
        session = session.with_challenge(None)
        return session, [
            ChallengeResolvedEvent(player_id=player.player_id, completed=completed, bonus=bonus)
        ]


# =============================================================================
# Utility Functions
# =============================================================================


def create_test_card(
    base_points: int = 2,
    question_type: QuestionType = QuestionType.ARTIST,
    difficulty: Difficulty = Difficulty.MEDIUM,
    code: str = "HITBACK_001_ARTIST_MEDIUM",
) -> QuestionCard:
    """Create a QuestionCard for testing purposes."""
    return QuestionCard(
        code=code,
        question_type=question_type,
        prompt="Who sings this song?",
        answer="Queen",
        base_points=Points(base_points),
        difficulty=difficulty,
        track=Track(track_id="001", title="Bohemian Rhapsody", artist="Queen", year=1975),
    )


def create_test_session(
    num_players: int = 3,
    phase: GamePhase = GamePhase.IDLE,
    round_number: int = 0,
    card: QuestionCard | None = None,
    mode: GameMode = GameMode.NORMAL,
    tokens: int = 5,
    target_score: int = 15,
) -> Session:
    """
    Create a Session for testing purposes.

    Players are ``player_1`` .. ``player_n``. When ``round_number`` is set,
    a round with ``card`` (or a default card) is in play.
    """
    players = tuple(
        Player(
            player_id=PlayerId(f"player_{index + 1}"),
            name=f"Player {index + 1}",
            turn_position=index,
            tokens=Tokens(tokens),
        )
        for index in range(num_players)
    )

    current: Round | None = None
    if round_number > 0:
        current = Round(number=RoundNumber(round_number), card=card or create_test_card(), mode=mode)

    return Session(
        session_id="test",
        players=players,
        deck=create_deck(),
        mode=mode,
        target_score=target_score,
        phase=phase,
        rounds_played=round_number,
        current_round=current,
    )
