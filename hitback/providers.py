"""
Collaborators the engine consumes.

The engine never fetches content or measures time itself. A card provider
hands over the next round's card, and an audio-duration source says how long
the audio phase should last. ``DeckProvider`` is an in-memory provider backed
by a JSON deck, used by tests, the simulator and offline hosts.
"""

from __future__ import annotations

import json
import logging
import random
import re
from pathlib import Path
from typing import Any, Protocol, Sequence

from hitback.errors import ContentExhausted, ErrorCode, NotFoundError, ValidationError
from hitback.types import (
    Points,
    Difficulty,
    QuestionType,
    GameMode,
    QUESTION_BASE_POINTS,
)
from hitback.models import Session, Track, QuestionCard

log = logging.getLogger(__name__)

SAMPLE_DECK_JSON_PATH = Path(__file__).parent / "data" / "sample_deck.json"

DEFAULT_AUDIO_DURATION_S = 5.0


# =============================================================================
# Collaborator Protocols
# =============================================================================


class CardProvider(Protocol):
    """Source of round content."""

    def next_card(self, session: Session, mode: GameMode) -> QuestionCard:
        """
        Return the card for the next round.

        Raises:
            ContentExhausted: No more cards are available
        """
        ...


class AudioDurationSource(Protocol):
    """Tells the engine how long the audio phase of a card should last."""

    def duration_for(self, card: QuestionCard) -> float | None:
        ...


# =============================================================================
# Music Card Codes
# =============================================================================

CARD_CODE_RE = re.compile(r"^HITBACK_(\d{3})_([A-Z]+)_([A-Z]+)$")


def card_code(track_id: str, question_type: QuestionType, difficulty: Difficulty) -> str:
    """Build a music card code such as ``HITBACK_001_SONG_EASY``."""
    return f"HITBACK_{track_id.zfill(3)}_{question_type.name}_{difficulty.name}"


def parse_card_code(code: str) -> tuple[str, QuestionType, Difficulty] | None:
    """
    Parse a music card code.

    Returns:
        Tuple of (track_id, question_type, difficulty), or None if malformed
    """
    match = CARD_CODE_RE.match(code.strip().upper())
    if match is None:
        return None
    track_id, type_name, difficulty_name = match.groups()
    try:
        return track_id, QuestionType[type_name], Difficulty[difficulty_name]
    except KeyError:
        return None


# =============================================================================
# JSON Loading and Parsing
# =============================================================================


def _parse_track(track_data: dict[str, Any]) -> Track:
    audio = track_data.get("audio") or {}
    return Track(
        track_id=str(track_data["id"]).zfill(3),
        title=track_data["title"],
        artist=track_data["artist"],
        year=track_data.get("year"),
        genre=track_data.get("genre"),
        audio_url=audio.get("url"),
    )


def _parse_questions(track_data: dict[str, Any], track: Track) -> list[QuestionCard]:
    cards: list[QuestionCard] = []
    for type_name, question in track_data.get("questions", {}).items():
        question_type = QuestionType(type_name)
        difficulty = Difficulty(question.get("difficulty", "easy"))
        cards.append(
            QuestionCard(
                code=card_code(track.track_id, question_type, difficulty),
                question_type=question_type,
                prompt=question["question"],
                answer=question["answer"],
                base_points=Points(question.get("points", QUESTION_BASE_POINTS[question_type])),
                difficulty=difficulty,
                track=track,
                hints=tuple(question.get("hints", ())),
            )
        )
    return cards


def load_deck(path: Path = SAMPLE_DECK_JSON_PATH) -> tuple[list[QuestionCard], dict[str, float]]:
    """
    Load question cards from a JSON deck.

    Returns:
        Tuple of (cards, audio durations by track id)
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    cards: list[QuestionCard] = []
    durations: dict[str, float] = {}
    for track_data in data["tracks"]:
        track = _parse_track(track_data)
        cards.extend(_parse_questions(track_data, track))
        duration = (track_data.get("audio") or {}).get("duration")
        if duration is not None:
            durations[track.track_id] = float(duration)

    return cards, durations


# =============================================================================
# Providers
# =============================================================================


class DeckProvider:
    """
    In-memory card provider.

    Cards are dealt in order (shuffled first when an RNG is given). Viral
    rounds only take challenge cards. Each card is dealt once.
    """

    def __init__(self, cards: Sequence[QuestionCard], rng: random.Random | None = None) -> None:
        self._cards = list(cards)
        if rng is not None:
            rng.shuffle(self._cards)

    @classmethod
    def from_json(cls, path: Path = SAMPLE_DECK_JSON_PATH, rng: random.Random | None = None) -> DeckProvider:
        cards, _ = load_deck(path)
        return cls(cards, rng=rng)

    @property
    def remaining(self) -> int:
        return len(self._cards)

    def next_card(self, session: Session, mode: GameMode) -> QuestionCard:
        for index, card in enumerate(self._cards):
            if mode == GameMode.VIRAL and card.question_type != QuestionType.CHALLENGE:
                continue
            log.debug("dealing %s (%d left)", card.code, len(self._cards) - 1)
            return self._cards.pop(index)
        raise ContentExhausted(f"No {mode.value} cards left in the deck")

    def scan(self, code: str) -> QuestionCard:
        """
        Put a scanned music card at the front of the deck.

        Raises:
            ValidationError: The code is not a music card code
            NotFoundError: The card is not (or no longer) in the deck
        """
        if parse_card_code(code) is None:
            raise ValidationError(ErrorCode.INVALID_CODE, f"Not a music card code: {code!r}")

        normalized = code.strip().upper()
        for index, card in enumerate(self._cards):
            if card.code == normalized:
                self._cards.insert(0, self._cards.pop(index))
                return card
        raise NotFoundError(f"Card {normalized} is not in the deck")


class FixedAudioDuration:
    """Every preview lasts the same time."""

    def __init__(self, seconds: float = DEFAULT_AUDIO_DURATION_S) -> None:
        self.seconds = seconds

    def duration_for(self, card: QuestionCard) -> float | None:
        return self.seconds


class TrackAudioDuration:
    """Per-track preview durations, with a fallback."""

    def __init__(self, durations: dict[str, float], default: float | None = DEFAULT_AUDIO_DURATION_S) -> None:
        self.durations = dict(durations)
        self.default = default

    @classmethod
    def from_json(cls, path: Path = SAMPLE_DECK_JSON_PATH) -> TrackAudioDuration:
        _, durations = load_deck(path)
        return cls(durations)

    def duration_for(self, card: QuestionCard) -> float | None:
        return self.durations.get(card.track.track_id, self.default)
