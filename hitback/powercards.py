"""
Power card catalog for HITBACK.

This module loads power card definitions from powercards.json, providing a
single source of truth for names, icons, deck quantities and effect kinds.
It also parses scanned power card codes and draws random awards.
"""

from __future__ import annotations

import json
import logging
import random
import re
from pathlib import Path
from typing import Any, Mapping

from hitback.types import (
    CardInstanceId,
    PowerCardType,
    PowerCardCategory,
    EffectKind,
    ChallengeType,
    Difficulty,
    AWARD_CHANCES,
)
from hitback.models import PowerCardDef, ChallengeDef, PowerCardDeck

log = logging.getLogger(__name__)


# =============================================================================
# JSON Loading and Parsing
# =============================================================================

# Path to the bundled catalog (relative to this module)
POWER_CARDS_JSON_PATH = Path(__file__).parent / "data" / "powercards.json"


def _parse_power_card_def(card_data: dict[str, Any]) -> PowerCardDef:
    """Parse a card dictionary into a PowerCardDef object."""
    return PowerCardDef(
        card_type=PowerCardType[card_data["type"]],
        name=card_data["name"],
        icon=card_data.get("icon", ""),
        description=card_data.get("description", ""),
        quantity=int(card_data["quantity"]),
        effect_kind=EffectKind(card_data["effect_kind"]),
        category=PowerCardCategory(card_data["category"]),
    )


def _parse_challenge_def(challenge_data: dict[str, Any]) -> ChallengeDef:
    """Parse a challenge dictionary into a ChallengeDef object."""
    return ChallengeDef(
        challenge_type=ChallengeType(challenge_data["type"]),
        name=challenge_data["name"],
        icon=challenge_data.get("icon", ""),
        description=challenge_data.get("description", ""),
    )


def _load_catalog_from_json(
    path: Path = POWER_CARDS_JSON_PATH,
) -> tuple[tuple[PowerCardDef, ...], tuple[ChallengeDef, ...]]:
    """
    Load the power card and challenge definitions from a JSON file.

    Returns:
        Tuple of (power_card_defs, challenge_defs)
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    cards = tuple(_parse_power_card_def(card_data) for card_data in data["power_cards"])
    challenges = tuple(_parse_challenge_def(c) for c in data.get("challenges", []))

    missing = set(PowerCardType) - {c.card_type for c in cards}
    if missing:
        raise ValueError(f"Catalog {path} is missing: {sorted(t.value for t in missing)}")

    return cards, challenges


# =============================================================================
# Catalog Data (loaded from JSON)
# =============================================================================

# Load the catalog once at module import time
ALL_POWER_CARDS, ALL_CHALLENGES = _load_catalog_from_json()

# Registry for quick lookup by type
POWER_CARD_REGISTRY: dict[PowerCardType, PowerCardDef] = {c.card_type: c for c in ALL_POWER_CARDS}

CHALLENGE_REGISTRY: dict[ChallengeType, ChallengeDef] = {c.challenge_type: c for c in ALL_CHALLENGES}


def get_power_card_def(card_type: PowerCardType) -> PowerCardDef:
    """Get the catalog entry for a power card type."""
    return POWER_CARD_REGISTRY[card_type]


def get_challenge_def(challenge_type: ChallengeType) -> ChallengeDef:
    """Get the catalog entry for a performance challenge."""
    return CHALLENGE_REGISTRY[challenge_type]


def create_deck(cards: tuple[PowerCardDef, ...] = ALL_POWER_CARDS) -> PowerCardDeck:
    """Build a fresh per-session supply from catalog quantities."""
    return PowerCardDeck(remaining=tuple((c.card_type, c.quantity) for c in cards))


def reload_catalog(path: Path = POWER_CARDS_JSON_PATH) -> None:
    """
    Reload the catalog from a JSON file.

    Useful for balance changes without restarting a long-running host.
    """
    global ALL_POWER_CARDS, ALL_CHALLENGES, POWER_CARD_REGISTRY, CHALLENGE_REGISTRY

    ALL_POWER_CARDS, ALL_CHALLENGES = _load_catalog_from_json(path)
    POWER_CARD_REGISTRY = {c.card_type: c for c in ALL_POWER_CARDS}
    CHALLENGE_REGISTRY = {c.challenge_type: c for c in ALL_CHALLENGES}
    log.info("power card catalog reloaded from %s", path)


# =============================================================================
# Power Card Codes
# =============================================================================

POWER_CARD_CODE_RE = re.compile(r"^HITBACK_PWR_([A-Z]+)_(\d{3})$")


def parse_power_card_code(code: str) -> PowerCardType | None:
    """
    Parse a scanned power card code such as ``HITBACK_PWR_BOOST_001``.

    Returns:
        The card type, or None if the code is not a power card code
    """
    match = POWER_CARD_CODE_RE.match(code.strip().upper())
    if match is None:
        return None
    try:
        return PowerCardType[match.group(1)]
    except KeyError:
        return None


def is_power_card_code(code: str) -> bool:
    return parse_power_card_code(code) is not None


def normalize_code(code: str) -> CardInstanceId:
    return CardInstanceId(code.strip().upper())


# =============================================================================
# Random Awards
# =============================================================================


def draw_card_type(rng: random.Random, deck: PowerCardDeck) -> PowerCardType | None:
    """Draw uniformly over the types that still have supply."""
    available = deck.available_types()
    if not available:
        return None
    return rng.choice(available)


def roll_award(
    rng: random.Random,
    difficulty: Difficulty,
    deck: PowerCardDeck,
    chances: Mapping[Difficulty, float] = AWARD_CHANCES,
) -> PowerCardType | None:
    """
    Roll the difficulty-weighted chance of a power card award.

    The chance roll is independent of supply; a successful roll with an
    empty deck yields nothing.
    """
    chance = chances.get(difficulty, 0.0)
    roll = rng.random()
    if roll >= chance:
        log.debug("no award roll=%.3f chance=%.2f", roll, chance)
        return None
    return draw_card_type(rng, deck)
