"""
Round phase state machine.

A pure transition table: ``next_phase`` answers where an event leads from a
given phase, or None when the phase does not define the event. The
controller treats None as a silent no-op, so duplicate UI signals (a second
"end betting", a late "audio finished") are harmless.

    idle ----request----> loading --loaded(round 1)--> audio
    answer --request----> loading --loaded(round>=2)-> betting
    betting --end betting--> audio --audio finished--> question
    question --reveal--> answer --prepare next round--> idle
"""

from __future__ import annotations

from enum import Enum, auto

from hitback.types import GamePhase, RoundNumber


class PhaseEvent(Enum):
    """External signals that drive a round forward."""

    REQUEST_NEXT_ROUND = auto()
    """The host asks for a new round."""

    ROUND_LOADED = auto()
    """Round data arrived from the card provider."""

    END_BETTING = auto()
    """Explicit close, timer expiry or every bet placed."""

    AUDIO_FINISHED = auto()
    """The preview finished or was stopped."""

    REVEAL_ANSWER = auto()
    """The game master revealed the answer."""

    PREPARE_NEXT_ROUND = auto()
    """Clear the finished round."""


TRANSITIONS: dict[tuple[GamePhase, PhaseEvent], GamePhase] = {
    (GamePhase.IDLE, PhaseEvent.REQUEST_NEXT_ROUND): GamePhase.LOADING,
    (GamePhase.ANSWER, PhaseEvent.REQUEST_NEXT_ROUND): GamePhase.LOADING,
    (GamePhase.BETTING, PhaseEvent.END_BETTING): GamePhase.AUDIO,
    (GamePhase.AUDIO, PhaseEvent.AUDIO_FINISHED): GamePhase.QUESTION,
    (GamePhase.QUESTION, PhaseEvent.REVEAL_ANSWER): GamePhase.ANSWER,
    (GamePhase.ANSWER, PhaseEvent.PREPARE_NEXT_ROUND): GamePhase.IDLE,
}


def phase_after_loading(round_number: RoundNumber) -> GamePhase:
    """Round 1 has nothing to bet against and goes straight to the audio."""
    return GamePhase.BETTING if round_number >= 2 else GamePhase.AUDIO


def next_phase(
    phase: GamePhase,
    event: PhaseEvent,
    round_number: RoundNumber | None = None,
) -> GamePhase | None:
    """
    Look up the phase an event leads to.

    Args:
        phase: Current phase
        event: Incoming signal
        round_number: Number of the loaded round (needed for ROUND_LOADED)

    Returns:
        The next phase, or None if the event is not defined in this phase
    """
    if event == PhaseEvent.ROUND_LOADED:
        if phase != GamePhase.LOADING or round_number is None:
            return None
        return phase_after_loading(round_number)
    return TRANSITIONS.get((phase, event))


def accepts(phase: GamePhase, event: PhaseEvent) -> bool:
    """Check whether a phase defines an event."""
    if event == PhaseEvent.ROUND_LOADED:
        return phase == GamePhase.LOADING
    return (phase, event) in TRANSITIONS
