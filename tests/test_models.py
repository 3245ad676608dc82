"""
Tests for the immutable data models.

Tests cover:
- Player invariants
- Card collection helpers
- Session helpers
"""

from dataclasses import replace

import pytest

from hitback.errors import InvariantViolation
from hitback.types import PlayerId, CardInstanceId, Points, Tokens, PowerCardType, CardState, GamePhase, EndReason
from hitback.models import Player, PowerCardInstance, GamePot, GameOutcome, Track
from hitback.controller import create_test_session


def make_player(**overrides: object) -> Player:
    """Helper to create a Player for tests."""
    return replace(Player(player_id=PlayerId("player_1"), name="Ana", turn_position=0), **overrides)


def make_card(card_type: PowerCardType, serial: int = 1, **overrides: object) -> PowerCardInstance:
    card = PowerCardInstance(
        instance_id=CardInstanceId(f"HITBACK_PWR_{card_type.value}_{serial:03d}"),
        card_type=card_type,
        owner=PlayerId("player_1"),
    )
    return replace(card, **overrides)


class TestPlayerInvariants:
    """Broken states cannot be constructed."""

    def test_negative_score(self) -> None:
        with pytest.raises(InvariantViolation):
            make_player(score=Points(-1))

    def test_tokens_above_cap(self) -> None:
        with pytest.raises(InvariantViolation):
            make_player(tokens=Tokens(6))

    def test_bet_above_tokens(self) -> None:
        with pytest.raises(InvariantViolation):
            make_player(tokens=Tokens(1), current_bet=2)

    def test_bet_above_max(self) -> None:
        with pytest.raises(InvariantViolation):
            make_player(current_bet=4)

    def test_negative_pot(self) -> None:
        with pytest.raises(InvariantViolation):
            GamePot(tokens=-1)


class TestPlayerCards:
    """Tests for the power card collection helpers."""

    def test_hand_limit_counts_held_and_active(self) -> None:
        player = make_player(
            power_cards=(
                make_card(PowerCardType.BOOST, state=CardState.ACTIVE),
                make_card(PowerCardType.STEAL),
                make_card(PowerCardType.SHIELD, state=CardState.USED, used_at=1.0),
            )
        )

        assert player.owned_card_count() == 2
        assert len(player.held_cards()) == 1
        assert len(player.used_cards()) == 1

    def test_add_card_takes_ownership(self) -> None:
        card = replace(make_card(PowerCardType.BOOST), owner=PlayerId("player_2"))
        player = make_player().add_card(card)
        assert player.power_cards[0].owner == "player_1"

    def test_remove_card(self) -> None:
        card = make_card(PowerCardType.BOOST)
        player, removed = make_player(power_cards=(card,)).remove_card(card.instance_id)

        assert removed == card
        assert player.power_cards == ()

    def test_remove_missing_card(self) -> None:
        player = make_player()
        same, removed = player.remove_card(CardInstanceId("HITBACK_PWR_BOOST_001"))
        assert same is player
        assert removed is None

    def test_first_card(self) -> None:
        first = make_card(PowerCardType.COUNTER, 1)
        second = make_card(PowerCardType.COUNTER, 2)
        player = make_player(power_cards=(first, second))
        assert player.first_card(PowerCardType.COUNTER, CardState.HELD) == first

    def test_forfeit_bet(self) -> None:
        player = make_player(current_bet=2).forfeit_bet()

        assert player.tokens == 3
        assert player.current_bet == 0
        assert player.tokens_lost == 2


class TestSessionHelpers:
    """Tests for session-level helpers."""

    def test_can_start_next_round(self) -> None:
        assert create_test_session(phase=GamePhase.IDLE).can_start_next_round
        assert create_test_session(phase=GamePhase.ANSWER, round_number=1).can_start_next_round
        assert not create_test_session(phase=GamePhase.AUDIO, round_number=1).can_start_next_round

    def test_outcome_deactivates(self) -> None:
        session = create_test_session().with_outcome(GameOutcome(reason=EndReason.TIME, winner_id=None))

        assert session.game_ended
        assert not session.active
        assert not session.can_start_next_round

    def test_track_decade(self) -> None:
        assert Track(track_id="001", title="x", artist="y", year=1987).decade == "1980s"
        assert Track(track_id="001", title="x", artist="y").decade is None
