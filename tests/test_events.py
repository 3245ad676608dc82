"""
Tests for the event log types.

Tests cover:
- Every event is an immutable, slotted dataclass
- Event type names
"""

import dataclasses
from typing import get_args

import pytest

from hitback.types import PlayerId, GamePhase
from hitback.events import GameEvent, AnswerPeekedEvent, AnswerRevealedEvent
from hitback.controller import GameController, create_test_session
from hitback.providers import DeckProvider


EVENT_TYPES = get_args(GameEvent)


class TestEventTypes:
    """Tests for the shape of the event classes."""

    @pytest.mark.parametrize("event_cls", EVENT_TYPES, ids=lambda cls: cls.__name__)
    def test_frozen_slotted_dataclass(self, event_cls: type) -> None:
        assert dataclasses.is_dataclass(event_cls)
        assert event_cls.__dataclass_params__.frozen  # type: ignore[attr-defined]
        assert "__slots__" in event_cls.__dict__

    def test_event_type_names_are_unique(self) -> None:
        names = [cls.event_type.fget(None) for cls in EVENT_TYPES]  # type: ignore[attr-defined]
        assert len(names) == len(set(names))

    def test_answer_events_cannot_be_changed(self) -> None:
        peeked = AnswerPeekedEvent(player_id=PlayerId("player_1"), answer="Queen")

        with pytest.raises(dataclasses.FrozenInstanceError):
            peeked.answer = "ABBA"  # type: ignore[misc]

        assert peeked.event_type == "answer_peeked"

    def test_reveal_emits_answer_revealed(self) -> None:
        session = create_test_session(phase=GamePhase.QUESTION, round_number=2)
        _, events = GameController(DeckProvider([])).reveal_answer(session, PlayerId("player_1"))

        revealed = [e for e in events if isinstance(e, AnswerRevealedEvent)]
        assert len(revealed) == 1
        assert revealed[0].event_type == "answer_revealed"
        assert revealed[0].result.winner_ids == (PlayerId("player_1"),)
