"""
Tests for the game controller.

Tests cover:
- Session creation
- Round flow through the phases (round 1 without betting)
- Reveal scoring with bets, boosts and pending bonuses
- Game end by score, time and content exhaustion
- Battle, speed and viral rounds
- Power card scanning, awards and sub-mechanics
- Peeking
"""

import random
from dataclasses import replace

import pytest

from hitback.errors import ErrorCode, NotFoundError, ValidationError
from hitback.types import (
    PlayerId,
    CardInstanceId,
    Points,
    Tokens,
    GamePhase,
    GameMode,
    PowerCardType,
    CardState,
    Difficulty,
    QuestionType,
    EndReason,
)
from hitback.models import Session, Player, PowerCardInstance, PowerCardDeck
from hitback.config import EngineConfig
from hitback.providers import DeckProvider
from hitback.controller import GameController, create_test_card, create_test_session


P1 = PlayerId("player_1")
P2 = PlayerId("player_2")
P3 = PlayerId("player_3")

NO_AWARDS = EngineConfig(award_chances={d: 0.0 for d in Difficulty})
ALWAYS_AWARD = EngineConfig(award_chances={d: 1.0 for d in Difficulty})


def make_controller(
    num_cards: int = 10,
    config: EngineConfig = NO_AWARDS,
    seed: int = 7,
) -> GameController:
    """Helper to create a controller over a deck of identical 2-point cards."""
    cards = [create_test_card(code=f"HITBACK_{i:03d}_ARTIST_MEDIUM") for i in range(1, num_cards + 1)]
    return GameController(DeckProvider(cards), rng=random.Random(seed), config=config, clock=lambda: 1000.0)


def player(session: Session, player_id: PlayerId) -> Player:
    found = session.find_player(player_id)
    assert found is not None
    return found


def update(session: Session, player_id: PlayerId, **changes: object) -> Session:
    """Helper to change fields of one player."""
    return session.with_player(replace(player(session, player_id), **changes))


def give(session: Session, player_id: PlayerId, card_type: PowerCardType, serial: int = 1) -> tuple[Session, CardInstanceId]:
    """Helper to put a held power card in a player's hand."""
    card = PowerCardInstance(
        instance_id=CardInstanceId(f"HITBACK_PWR_{card_type.value}_{serial:03d}"),
        card_type=card_type,
        owner=player_id,
    )
    return session.with_player(player(session, player_id).add_card(card)), card.instance_id


def question_session(**kwargs: object) -> Session:
    """Helper for a session waiting for the reveal of round 2."""
    return create_test_session(phase=GamePhase.QUESTION, round_number=2, **kwargs)


def event_types(events: list) -> list[str]:
    return [e.event_type for e in events]


# =============================================================================
# Session Creation Tests
# =============================================================================


class TestCreateSession:
    """Tests for starting a session."""

    def test_initial_state(self) -> None:
        session, events = make_controller().create_session([" Ana ", "Luis"], session_id="abc")

        assert session.session_id == "abc"
        assert session.phase == GamePhase.IDLE
        assert [p.name for p in session.players] == ["Ana", "Luis"]
        assert all(p.tokens == 5 and p.score == 0 for p in session.players)
        assert session.current_player.player_id == P1
        assert event_types(events) == ["game_started"]

    def test_invalid_roster(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            make_controller().create_session(["Ana"])
        assert exc_info.value.code == ErrorCode.INVALID_SETUP

    def test_config_is_applied(self) -> None:
        config = EngineConfig(target_score=20, starting_tokens=3, time_budget_s=None)
        session, _ = GameController(DeckProvider([]), config=config).create_session(["Ana", "Luis"])

        assert session.target_score == 20
        assert session.time_budget_s is None
        assert all(p.tokens == 3 for p in session.players)


# =============================================================================
# Round Flow Tests
# =============================================================================


class TestRoundFlow:
    """Tests for the phase sequence driven by the controller."""

    def test_first_round_skips_betting(self) -> None:
        controller = make_controller()
        session, _ = controller.create_session(["Ana", "Luis"])

        session, events = controller.request_next_round(session)

        assert session.phase == GamePhase.AUDIO
        assert session.rounds_played == 1
        assert session.current_round is not None
        assert session.current_round.audio_duration_s == 5.0
        assert not session.is_loading
        assert event_types(events) == ["phase_changed", "round_started", "phase_changed"]

    def test_second_round_opens_betting(self) -> None:
        controller = make_controller()
        session, _ = controller.create_session(["Ana", "Luis"])
        session, _ = controller.request_next_round(session)
        session, _ = controller.signal_audio_finished(session)
        session, _ = controller.reveal_answer(session, None)

        session, events = controller.request_next_round(session)

        assert session.phase == GamePhase.BETTING
        assert session.current_round is not None
        assert session.current_round.number == 2
        assert events[0].from_phase == GamePhase.ANSWER
        assert events[0].to_phase == GamePhase.IDLE

    def test_end_betting_twice_is_noop(self) -> None:
        controller = make_controller()
        session = create_test_session(phase=GamePhase.BETTING, round_number=2)

        session, events = controller.end_betting(session)
        assert session.phase == GamePhase.AUDIO
        assert len(events) == 1

        again, events = controller.end_betting(session)
        assert again is session
        assert events == []

    def test_audio_finished_ignored_while_betting(self) -> None:
        session = create_test_session(phase=GamePhase.BETTING, round_number=2)
        result, events = make_controller().signal_audio_finished(session)
        assert result is session
        assert events == []

    def test_next_round_ignored_mid_round(self) -> None:
        session = create_test_session(phase=GamePhase.AUDIO, round_number=1)
        result, events = make_controller().request_next_round(session)
        assert result is session
        assert events == []

    def test_prepare_next_round(self) -> None:
        session = create_test_session(phase=GamePhase.ANSWER, round_number=1)
        session, events = make_controller().prepare_next_round(session)

        assert session.phase == GamePhase.IDLE
        assert session.current_round is None
        assert event_types(events) == ["phase_changed"]

    def test_reset_releases_bets(self) -> None:
        controller = make_controller()
        session = create_test_session(phase=GamePhase.BETTING, round_number=2)
        session, _ = controller.place_bet(session, P1, 2)

        session, events = controller.reset(session)

        assert session.phase == GamePhase.IDLE
        assert player(session, P1).current_bet == 0
        assert player(session, P1).tokens == 5
        assert event_types(events) == ["phase_changed"]

    def test_abandoned_round_is_not_counted(self) -> None:
        controller = make_controller()
        session, _ = controller.create_session(["Ana", "Luis"])
        session, _ = controller.request_next_round(session)

        session, _ = controller.reset(session)
        assert session.rounds_played == 0

        session, _ = controller.request_next_round(session)
        assert session.current_round.number == 1
        assert session.phase == GamePhase.AUDIO

    def test_reset_after_reveal_keeps_count(self) -> None:
        session = create_test_session(phase=GamePhase.ANSWER, round_number=2)
        session, _ = make_controller().reset(session)
        assert session.rounds_played == 2

    def test_reset_closes_open_challenges(self) -> None:
        controller = make_controller()
        session, precision_id = give(question_session(), P1, PowerCardType.PRECISION)
        session, challenge_id = give(session, P2, PowerCardType.CHALLENGE)
        session, _ = controller.use_power_card(session, P1, precision_id)

        session, _ = controller.reset(session)

        assert session.precision is None
        assert session.rounds_played == 1
        session, _ = controller.request_next_round(session)
        session, _ = controller.use_power_card(session, P2, challenge_id)
        assert session.challenge is not None
        assert session.challenge.player_id == P2

    def test_prepare_next_round_closes_open_challenges(self) -> None:
        controller = make_controller()
        session, card_id = give(question_session(), P1, PowerCardType.CHALLENGE)
        session, _ = controller.use_power_card(session, P1, card_id)
        session = replace(session, phase=GamePhase.ANSWER)

        session, _ = controller.prepare_next_round(session)

        assert session.challenge is None
        assert player(session, P1).pending_challenge_bonus == 0

    def test_reset_when_idle_is_noop(self) -> None:
        session = create_test_session()
        result, events = make_controller().reset(session)
        assert result is session
        assert events == []


# =============================================================================
# Betting Tests
# =============================================================================


class TestControllerBetting:
    """Tests for betting through the controller."""

    def test_betting_closes_when_everyone_bet(self) -> None:
        controller = make_controller()
        session = create_test_session(num_players=2, phase=GamePhase.BETTING, round_number=2)

        session, _ = controller.place_bet(session, P1, 1)
        assert session.phase == GamePhase.BETTING

        session, events = controller.place_bet(session, P2, 3)
        assert session.phase == GamePhase.AUDIO
        assert event_types(events) == ["bet_placed", "phase_changed"]

    def test_auto_close_can_be_disabled(self) -> None:
        config = EngineConfig(auto_close_betting=False, award_chances={d: 0.0 for d in Difficulty})
        controller = make_controller(config=config)
        session = create_test_session(num_players=2, phase=GamePhase.BETTING, round_number=2)

        session, _ = controller.place_bet(session, P1, 1)
        session, _ = controller.place_bet(session, P2, 1)

        assert session.phase == GamePhase.BETTING

    def test_insufficient_tokens_leaves_bet_unchanged(self) -> None:
        session = create_test_session(phase=GamePhase.BETTING, round_number=2, tokens=2)

        with pytest.raises(ValidationError) as exc_info:
            make_controller().place_bet(session, P1, 3)

        assert exc_info.value.code == ErrorCode.INSUFFICIENT_TOKENS
        assert player(session, P1).current_bet == 0

    def test_bet_outside_betting(self) -> None:
        session = create_test_session(phase=GamePhase.AUDIO, round_number=1)
        with pytest.raises(ValidationError) as exc_info:
            make_controller().place_bet(session, P1, 1)
        assert exc_info.value.code == ErrorCode.WRONG_PHASE


# =============================================================================
# Reveal Tests
# =============================================================================


class TestRevealAnswer:
    """Tests for scoring at the reveal."""

    def test_winner_scores_base_points(self) -> None:
        session, events = make_controller().reveal_answer(question_session(), P1)

        assert player(session, P1).score == 2
        assert session.phase == GamePhase.ANSWER
        assert session.last_result is not None
        assert session.last_result.winner_ids == (P1,)
        assert session.last_result.correct_answer == "Queen"
        assert session.current_player.player_id == P2
        assert "answer_revealed" in event_types(events)
        assert event_types(events)[-1] == "turn_advanced"

    def test_bet_and_boost(self) -> None:
        """Base 2, bet 3, boost -> 10 points; tokens kept; boost spent."""
        session = update(question_session(), P1, current_bet=3)
        session, boost_id = give(session, P1, PowerCardType.BOOST)
        session = session.with_player(
            player(session, P1)
            .with_card(replace(player(session, P1).power_cards[0], state=CardState.ACTIVE))
            .with_effects(boost_active=True)
        )

        session, _ = make_controller().reveal_answer(session, P1)

        p1 = player(session, P1)
        assert p1.score == 10
        assert p1.tokens == 5
        assert p1.current_bet == 0
        assert not p1.boost_active
        assert p1.find_card(boost_id).is_used

    def test_boost_survives_a_lost_round(self) -> None:
        session = update(question_session(), P1, boost_active=True)

        session, _ = make_controller().reveal_answer(session, P2)

        assert player(session, P1).boost_active

    def test_losing_bets_are_forfeited(self) -> None:
        session = update(question_session(), P2, current_bet=2)

        session, events = make_controller().reveal_answer(session, P1)

        p2 = player(session, P2)
        assert p2.tokens == 3
        assert p2.tokens_lost == 2
        assert session.pot.tokens == 2
        assert session.last_result.tokens_forfeited == ((P2, 2),)
        assert "bet_forfeited" in event_types(events)

    def test_no_winner(self) -> None:
        session = update(question_session(), P1, current_bet=1)

        session, _ = make_controller().reveal_answer(session, None)

        assert all(p.score == 0 for p in session.players)
        assert player(session, P1).tokens == 4
        assert session.last_result.winner_ids == ()

    def test_second_reveal_is_ignored(self) -> None:
        controller = make_controller()
        session, _ = controller.reveal_answer(question_session(), P1)

        again, events = controller.reveal_answer(session, P2)

        assert again is session
        assert events == []
        assert player(again, P1).score == 2

    def test_reveal_outside_question_is_ignored(self) -> None:
        session = create_test_session(phase=GamePhase.AUDIO, round_number=1)
        result, events = make_controller().reveal_answer(session, P1)
        assert result is session
        assert events == []

    def test_unknown_winner(self) -> None:
        with pytest.raises(NotFoundError):
            make_controller().reveal_answer(question_session(), PlayerId("ghost"))

    def test_stats_are_tracked(self) -> None:
        controller = make_controller()
        session, _ = controller.reveal_answer(question_session(), P1)

        assert player(session, P1).correct_answers == 1
        assert player(session, P1).consecutive_wins == 1
        assert player(session, P2).consecutive_wins == 0


# =============================================================================
# Game End Tests
# =============================================================================


class TestGameEnd:
    """Tests for the three end conditions."""

    def test_reaching_target_ends_in_same_operation(self) -> None:
        controller = make_controller()
        session = update(question_session(), P1, score=Points(13))

        session, events = controller.reveal_answer(session, P1)

        assert session.game_ended
        assert not session.active
        assert session.outcome.winner_id == P1
        assert session.outcome.reason == EndReason.SCORE
        assert session.last_result.game_over
        assert event_types(events)[-1] == "game_ended"

        after, events = controller.request_next_round(session)
        assert after is session
        assert events == []

    def test_time_expiry_highest_score(self) -> None:
        session = update(create_test_session(), P3, score=Points(4))
        session, events = make_controller().signal_time_expired(session)

        assert session.outcome.winner_id == P3
        assert session.outcome.reason == EndReason.TIME
        assert event_types(events) == ["game_ended"]

    def test_time_expiry_tie_broken_by_tokens(self) -> None:
        session = create_test_session()
        session = update(session, P1, score=Points(5), tokens=Tokens(2))
        session = update(session, P2, score=Points(5), tokens=Tokens(4))

        session, _ = make_controller().signal_time_expired(session)

        assert session.outcome.winner_id == P2

    def test_time_expiry_draw(self) -> None:
        session = create_test_session()
        session = update(session, P1, score=Points(5))
        session = update(session, P2, score=Points(5))

        session, _ = make_controller().signal_time_expired(session)

        assert session.outcome.winner_id is None
        assert session.outcome.tied_player_ids == (P1, P2)

    def test_time_expiry_after_end_is_ignored(self) -> None:
        controller = make_controller()
        session, _ = controller.signal_time_expired(create_test_session())
        again, events = controller.signal_time_expired(session)
        assert again is session
        assert events == []

    def test_content_exhausted(self) -> None:
        controller = make_controller(num_cards=1)
        session, _ = controller.create_session(["Ana", "Luis"])
        session, _ = controller.request_next_round(session)
        session, _ = controller.signal_audio_finished(session)
        session, _ = controller.reveal_answer(session, P2)

        session, events = controller.request_next_round(session)

        assert session.game_ended
        assert session.outcome.reason == EndReason.CONTENT_EXHAUSTED
        assert session.outcome.winner_id == P2
        assert session.phase == GamePhase.IDLE
        assert not session.is_loading
        assert event_types(events)[-1] == "game_ended"


# =============================================================================
# Special Mode Tests
# =============================================================================


class TestSpecialModes:
    """Tests for battle, speed and viral rounds."""

    def test_battle_single_winner(self) -> None:
        session = question_session(mode=GameMode.BATTLE)
        session, _ = make_controller().reveal_battle(session, {P1: True, P2: False})

        assert player(session, P1).score == 3
        assert player(session, P2).score == 0

    def test_battle_bet_applies(self) -> None:
        session = update(question_session(mode=GameMode.BATTLE), P1, current_bet=1)
        session, _ = make_controller().reveal_battle(session, {P1: True, P2: True})

        assert player(session, P1).score == 3
        assert player(session, P2).score == 2

    def test_speed(self) -> None:
        session = question_session(mode=GameMode.SPEED)
        session, _ = make_controller().reveal_speed(session, {P1: 3, P2: 1, P3: 0})

        assert [p.score for p in session.players] == [6, 1, 0]
        assert session.last_result.winner_ids == (P1, P2)

    def test_viral(self) -> None:
        card = create_test_card(base_points=5, question_type=QuestionType.CHALLENGE, code="HITBACK_002_CHALLENGE_HARD")
        session = question_session(mode=GameMode.VIRAL, card=card)

        session, _ = make_controller().reveal_viral(session, P2, True)

        assert player(session, P2).score == 17

    def test_viral_needs_challenge_card(self) -> None:
        session = question_session(mode=GameMode.VIRAL)
        with pytest.raises(ValidationError) as exc_info:
            make_controller().reveal_viral(session, P1, True)
        assert exc_info.value.code == ErrorCode.WRONG_MODE

    def test_mode_mismatch(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            make_controller().reveal_battle(question_session(), {P1: True, P2: False})
        assert exc_info.value.code == ErrorCode.WRONG_MODE

    def test_viral_round_deals_challenge_cards(self) -> None:
        cards = [
            create_test_card(code="HITBACK_001_ARTIST_MEDIUM"),
            create_test_card(base_points=5, question_type=QuestionType.CHALLENGE, code="HITBACK_001_CHALLENGE_HARD"),
        ]
        controller = GameController(DeckProvider(cards), config=NO_AWARDS)
        session, _ = controller.create_session(["Ana", "Luis"])

        session, _ = controller.request_next_round(session, GameMode.VIRAL)

        assert session.current_round.mode == GameMode.VIRAL
        assert session.current_round.card.question_type == QuestionType.CHALLENGE


# =============================================================================
# Power Card Tests
# =============================================================================


class TestScanPowerCard:
    """Tests for scanning physical power cards."""

    def test_scan_adds_card(self) -> None:
        session, events = make_controller().scan_power_card(create_test_session(), P1, "hitback_pwr_boost_002")

        card = player(session, P1).find_card(CardInstanceId("HITBACK_PWR_BOOST_002"))
        assert card is not None
        assert card.is_held
        assert session.deck.count(PowerCardType.BOOST) == 3
        assert events[0].scanned

    def test_same_code_twice(self) -> None:
        controller = make_controller()
        session, _ = controller.scan_power_card(create_test_session(), P1, "HITBACK_PWR_BOOST_001")

        with pytest.raises(ValidationError) as exc_info:
            controller.scan_power_card(session, P2, "HITBACK_PWR_BOOST_001")

        assert exc_info.value.code == ErrorCode.CARD_EXHAUSTED

    def test_type_supply_runs_out(self) -> None:
        controller = make_controller()
        session, _ = controller.scan_power_card(create_test_session(), P1, "HITBACK_PWR_COUNTER_001")
        session, _ = controller.scan_power_card(session, P2, "HITBACK_PWR_COUNTER_002")

        with pytest.raises(ValidationError) as exc_info:
            controller.scan_power_card(session, P3, "HITBACK_PWR_COUNTER_003")

        assert exc_info.value.code == ErrorCode.CARD_EXHAUSTED

    def test_invalid_code(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            make_controller().scan_power_card(create_test_session(), P1, "HITBACK_001_SONG_EASY")
        assert exc_info.value.code == ErrorCode.INVALID_CODE

    def test_hand_full(self) -> None:
        session = create_test_session()
        for serial, card_type in enumerate(
            [PowerCardType.BOOST, PowerCardType.STEAL, PowerCardType.SHIELD, PowerCardType.PRECISION, PowerCardType.CHALLENGE],
            start=1,
        ):
            session, _ = give(session, P1, card_type, serial)

        with pytest.raises(ValidationError) as exc_info:
            make_controller().scan_power_card(session, P1, "HITBACK_PWR_RESURRECT_001")

        assert exc_info.value.code == ErrorCode.HAND_FULL


class TestRandomAwards:
    """Tests for power cards awarded to round winners."""

    def test_winner_receives_card(self) -> None:
        controller = make_controller(config=ALWAYS_AWARD)
        session, events = controller.reveal_answer(question_session(), P1)

        cards = player(session, P1).power_cards
        assert len(cards) == 1
        assert cards[0].instance_id.startswith("HITBACK_PWR_")
        assert session.deck.total_remaining() == create_test_session().deck.total_remaining() - 1
        assert "power_card_awarded" in event_types(events)
        assert player(session, P2).power_cards == ()

    def test_no_award_when_chance_is_zero(self) -> None:
        session, card, events = make_controller().award_random_power_card(create_test_session(), P1, Difficulty.EXPERT)
        assert card is None
        assert events == []

    def test_no_award_with_empty_deck(self) -> None:
        session = create_test_session().with_deck(PowerCardDeck(remaining=tuple((t, 0) for t in PowerCardType)))
        _, card, _ = make_controller(config=ALWAYS_AWARD).award_random_power_card(session, P1, Difficulty.EASY)
        assert card is None

    def test_no_award_with_full_hand(self) -> None:
        session = create_test_session()
        for serial in range(1, 6):
            session, _ = give(session, P1, PowerCardType.BOOST, serial)

        _, card, _ = make_controller(config=ALWAYS_AWARD).award_random_power_card(session, P1, Difficulty.EASY)

        assert card is None


class TestUsePowerCard:
    """Tests for card use and the sub-mechanic payouts."""

    def test_shield_blocks_steal_and_expires(self) -> None:
        controller = make_controller()
        session = question_session()
        session, shield_id = give(session, P2, PowerCardType.SHIELD)
        session, steal_id = give(session, P1, PowerCardType.STEAL)
        session, _ = give(session, P2, PowerCardType.BOOST)
        session, _ = controller.use_power_card(session, P2, shield_id)

        with pytest.raises(ValidationError):
            controller.use_power_card(session, P1, steal_id, target_player_id=P2)

        session, _ = controller.reveal_answer(session, None)
        assert player(session, P2).shield_rounds_left == 1
        session = replace(session, phase=GamePhase.QUESTION)
        session, events = controller.reveal_answer(session, None)

        assert not player(session, P2).is_immune
        assert player(session, P2).find_card(shield_id).is_used
        assert "effect_expired" in event_types(events)

    def test_precision_bonus_paid_at_reveal(self) -> None:
        controller = make_controller()
        session, card_id = give(question_session(), P2, PowerCardType.PRECISION)
        session, _ = controller.use_power_card(session, P2, card_id)

        session, events = controller.resolve_precision(session, 5)
        assert player(session, P2).pending_precision_bonus == 3
        assert session.precision is None
        assert events[0].bonus == 3

        session, _ = controller.reveal_answer(session, P1)

        assert player(session, P2).score == 3
        assert player(session, P2).pending_precision_bonus == 0
        assert session.last_result.points_for(P2) == 3

    def test_challenge_bonus_added_to_win(self) -> None:
        controller = make_controller()
        session, card_id = give(question_session(), P1, PowerCardType.CHALLENGE)
        session, _ = controller.use_power_card(session, P1, card_id)
        session, _ = controller.resolve_challenge(session, True)

        session, _ = controller.reveal_answer(session, P1)

        assert player(session, P1).score == 2 + 3

    def test_failed_challenge_pays_nothing(self) -> None:
        controller = make_controller()
        session, card_id = give(question_session(), P1, PowerCardType.CHALLENGE)
        session, _ = controller.use_power_card(session, P1, card_id)
        session, events = controller.resolve_challenge(session, False)

        assert events[0].bonus == 0
        assert player(session, P1).pending_challenge_bonus == 0

    def test_result_without_open_challenge_is_ignored(self) -> None:
        session = question_session()
        result, events = make_controller().resolve_precision(session, 2)
        assert result is session
        assert events == []

    def test_negative_precision_count(self) -> None:
        controller = make_controller()
        session, card_id = give(question_session(), P1, PowerCardType.PRECISION)
        session, _ = controller.use_power_card(session, P1, card_id)

        with pytest.raises(ValidationError) as exc_info:
            controller.resolve_precision(session, -1)

        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT


# =============================================================================
# Peek Tests
# =============================================================================


class TestPeekAnswer:
    """Tests for the once-per-turn peek."""

    def test_peek_shows_answer(self) -> None:
        session, events = make_controller().peek_answer(question_session(), P1)

        assert player(session, P1).peek_used
        assert events[0].answer == "Queen"

    def test_peek_once_per_turn(self) -> None:
        controller = make_controller()
        session, _ = controller.peek_answer(question_session(), P1)

        with pytest.raises(ValidationError) as exc_info:
            controller.peek_answer(session, P1)

        assert exc_info.value.code == ErrorCode.DUPLICATE_EFFECT

    def test_peek_resets_next_turn(self) -> None:
        controller = make_controller()
        session, _ = controller.peek_answer(question_session(), P1)
        session, _ = controller.reveal_answer(session, None)

        assert not player(session, P1).peek_used

    def test_peek_outside_question(self) -> None:
        session = create_test_session(phase=GamePhase.AUDIO, round_number=1)
        with pytest.raises(ValidationError) as exc_info:
            make_controller().peek_answer(session, P1)
        assert exc_info.value.code == ErrorCode.WRONG_PHASE
