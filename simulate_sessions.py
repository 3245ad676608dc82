#!/usr/bin/env python3
"""
Session Simulation Script for Balancing

Runs random HITBACK sessions and collects statistics on game length, end
reasons, betting and power card usage to help with balancing.
Supports parallel execution for faster simulations.
"""

from __future__ import annotations

import logging
import random
import multiprocessing as mp
from collections import Counter
from dataclasses import dataclass, field

from hitback.controller import GameController
from hitback.config import EngineConfig
from hitback.errors import ValidationError
from hitback.events import (
    GameEvent,
    BetForfeitedEvent,
    BetPlacedEvent,
    CardStolenEvent,
    CounterTriggeredEvent,
    PowerCardAwardedEvent,
    PowerCardUsedEvent,
)
from hitback.log import configure_logging
from hitback.models import Session
from hitback.providers import DeckProvider
from hitback.types import (
    PlayerId,
    GamePhase,
    GameMode,
    PowerCardType,
    EndReason,
    MAX_BET,
)

log = logging.getLogger(__name__)

SIMULATED_ROUND_S = 60.0
"""Wall time one round takes at the table."""


# =============================================================================
# Statistics Data Structures
# =============================================================================


@dataclass
class PowerCardStats:
    """Statistics for a single power card type."""

    card_type: PowerCardType
    times_awarded: int = 0
    times_used: int = 0
    times_stolen: int = 0
    times_countered: int = 0

    @property
    def use_rate(self) -> float:
        """Rate at which an awarded card gets used."""
        return self.times_used / self.times_awarded if self.times_awarded > 0 else 0.0


@dataclass
class SessionStats:
    """Aggregate session statistics."""

    total_games: int = 0
    total_rounds: int = 0
    draws: int = 0
    end_reasons: Counter[str] = field(default_factory=Counter)
    winner_seats: Counter[int] = field(default_factory=Counter)
    """Wins by turn position (0 = first player)."""

    bets_placed: int = 0
    bets_forfeited: int = 0
    tokens_forfeited: int = 0
    card_stats: dict[PowerCardType, PowerCardStats] = field(
        default_factory=lambda: {t: PowerCardStats(card_type=t) for t in PowerCardType}
    )


# =============================================================================
# Random Actors
# =============================================================================


def _collect(events: list[GameEvent], step: tuple[Session, list[GameEvent]]) -> Session:
    session, new_events = step
    events.extend(new_events)
    return session


def random_power_card_play(
    controller: GameController,
    session: Session,
    rng: random.Random,
    events: list[GameEvent],
) -> Session:
    """Each player may try one held power card; rejected uses are ignored."""
    for player in session.players:
        held = player.held_cards()
        if not held or rng.random() > 0.3:
            continue
        card = rng.choice(held)
        others = [p.player_id for p in session.players if p.player_id != player.player_id]
        target = rng.choice(others) if card.card_type == PowerCardType.STEAL else None
        try:
            session = _collect(
                events,
                controller.use_power_card(session, player.player_id, card.instance_id, target),
            )
        except ValidationError as exc:
            log.debug("simulated use rejected: %s", exc.reason)
            continue

        if session.precision is not None:
            session = _collect(events, controller.resolve_precision(session, rng.randint(0, 3)))
        if session.challenge is not None:
            session = _collect(events, controller.resolve_challenge(session, rng.random() < 0.5))
    return session


def random_reveal(
    controller: GameController,
    session: Session,
    rng: random.Random,
) -> tuple[Session, list[GameEvent]]:
    """Resolve the question with a random outcome for the round's mode."""
    current = session.current_round
    assert current is not None
    ids = [p.player_id for p in session.players]

    match current.mode:
        case GameMode.BATTLE:
            pair = rng.sample(ids, 2)
            return controller.reveal_battle(session, {pid: rng.random() < 0.5 for pid in pair})
        case GameMode.SPEED:
            return controller.reveal_speed(session, {pid: rng.randint(0, 4) for pid in ids})
        case GameMode.VIRAL:
            return controller.reveal_viral(session, session.current_player.player_id, rng.random() < 0.5)
        case _:
            winner: PlayerId | None = rng.choice(ids) if rng.random() < 0.8 else None
            return controller.reveal_answer(session, winner)


def run_single_game(
    seed: int,
    num_players: int,
    mode: GameMode,
    config: EngineConfig,
) -> tuple[Session, list[GameEvent]]:
    """
    Play one session to its end with random actors.

    Returns:
        Tuple of (final_session, all_events)
    """
    rng = random.Random(seed)
    controller = GameController(
        DeckProvider.from_json(rng=random.Random(seed)),
        rng=rng,
        config=config,
    )
    session, events = controller.create_session([f"Player {i + 1}" for i in range(num_players)], mode=mode)
    elapsed = 0.0

    while not session.game_ended:
        session = _collect(events, controller.request_next_round(session))
        if session.game_ended:
            break

        if session.phase == GamePhase.BETTING:
            for player in session.players:
                if player.tokens > 0 and rng.random() < 0.5 and session.phase == GamePhase.BETTING:
                    amount = rng.randint(1, min(MAX_BET, player.tokens))
                    session = _collect(events, controller.place_bet(session, player.player_id, amount))
            session = _collect(events, controller.end_betting(session))

        session = _collect(events, controller.signal_audio_finished(session))
        session = random_power_card_play(controller, session, rng, events)
        session = _collect(events, random_reveal(controller, session, rng))

        elapsed += SIMULATED_ROUND_S
        if config.time_budget_s is not None and elapsed >= config.time_budget_s and not session.game_ended:
            session = _collect(events, controller.signal_time_expired(session))

    return session, events


def update_stats_from_game(stats: SessionStats, session: Session, events: list[GameEvent]) -> None:
    """Fold one finished session into the aggregate."""
    outcome = session.outcome
    assert outcome is not None

    stats.total_games += 1
    stats.total_rounds += session.rounds_played
    stats.end_reasons[outcome.reason.value] += 1
    if outcome.winner_id is None:
        stats.draws += 1
    else:
        winner = session.find_player(outcome.winner_id)
        assert winner is not None
        stats.winner_seats[winner.turn_position] += 1

    for event in events:
        match event:
            case BetPlacedEvent():
                stats.bets_placed += 1
            case BetForfeitedEvent(amount=amount):
                stats.bets_forfeited += 1
                stats.tokens_forfeited += amount
            case PowerCardAwardedEvent(card_type=card_type):
                stats.card_stats[card_type].times_awarded += 1
            case PowerCardUsedEvent(card_type=card_type):
                stats.card_stats[card_type].times_used += 1
            case CardStolenEvent():
                stats.card_stats[PowerCardType.STEAL].times_stolen += 1
            case CounterTriggeredEvent():
                stats.card_stats[PowerCardType.COUNTER].times_countered += 1


def merge_stats(stats_list: list[SessionStats]) -> SessionStats:
    """Merge statistics from multiple batches."""
    merged = SessionStats()
    for stats in stats_list:
        merged.total_games += stats.total_games
        merged.total_rounds += stats.total_rounds
        merged.draws += stats.draws
        merged.end_reasons.update(stats.end_reasons)
        merged.winner_seats.update(stats.winner_seats)
        merged.bets_placed += stats.bets_placed
        merged.bets_forfeited += stats.bets_forfeited
        merged.tokens_forfeited += stats.tokens_forfeited
        for card_type, card in stats.card_stats.items():
            target = merged.card_stats[card_type]
            target.times_awarded += card.times_awarded
            target.times_used += card.times_used
            target.times_stolen += card.times_stolen
            target.times_countered += card.times_countered
    return merged


def run_games_batch(args: tuple[int, int, int, int | None, GameMode]) -> SessionStats:
    """
    Run a batch of games (for parallel execution).

    Each worker reads its rules from the environment.

    Args:
        args: Tuple of (batch_id, num_games, num_players, base_seed, mode)
    """
    batch_id, num_games, num_players, base_seed, mode = args
    config = EngineConfig.from_env()
    seeder = random.Random(None if base_seed is None else base_seed + batch_id)

    stats = SessionStats()
    for _ in range(num_games):
        session, events = run_single_game(seeder.getrandbits(32), num_players, mode, config)
        update_stats_from_game(stats, session, events)
    return stats


def run_simulation(
    num_games: int = 1000,
    num_players: int = 4,
    mode: GameMode = GameMode.NORMAL,
    seed: int | None = None,
    verbose: bool = True,
    num_workers: int = 1,
) -> SessionStats:
    """
    Run the full simulation.

    Args:
        num_games: Number of sessions to simulate
        num_players: Roster size (2-8)
        mode: Session mode
        seed: Random seed for reproducibility
        verbose: Print progress updates
        num_workers: Number of parallel workers (1 = sequential)
    """
    if verbose:
        print(f"Running {num_games} simulated sessions...")
        print(f"Players: {num_players}, mode: {mode.value}, workers: {num_workers}")
        print()

    workers = max(1, num_workers)
    per_worker, remainder = divmod(num_games, workers)
    batch_args = [
        (i, per_worker + (1 if i < remainder else 0), num_players, seed, mode)
        for i in range(workers)
    ]

    if workers == 1:
        stats = run_games_batch(batch_args[0])
    else:
        with mp.Pool(processes=workers) as pool:
            results = pool.map(run_games_batch, batch_args)
        stats = merge_stats(results)

    if verbose:
        print("Simulation complete!")
        print()

    return stats


def print_statistics(stats: SessionStats) -> None:
    """Print formatted statistics."""
    games = max(stats.total_games, 1)

    print("=" * 72)
    print("SESSION STATISTICS")
    print("=" * 72)
    print()
    print(f"Total games: {stats.total_games}")
    print(f"Average rounds per game: {stats.total_rounds / games:.2f}")
    print(f"Draws: {stats.draws} ({100 * stats.draws / games:.1f}%)")
    for reason in EndReason:
        count = stats.end_reasons[reason.value]
        print(f"Ended by {reason.value}: {count} ({100 * count / games:.1f}%)")
    print()

    print("Wins by seat:")
    for seat in sorted(stats.winner_seats):
        count = stats.winner_seats[seat]
        print(f"  Seat {seat + 1}: {count} ({100 * count / games:.1f}%)")
    print()

    forfeit_rate = stats.bets_forfeited / stats.bets_placed if stats.bets_placed else 0.0
    print(f"Bets placed: {stats.bets_placed}, forfeited: {stats.bets_forfeited} ({100 * forfeit_rate:.1f}%)")
    print(f"Tokens forfeited to the pot: {stats.tokens_forfeited}")
    print()

    print("=" * 72)
    print("POWER CARD STATISTICS")
    print("=" * 72)
    print()
    print(f"{'Card':<12} {'Awarded':>8} {'Used':>6} {'Use%':>6} {'Stolen':>7} {'Countered':>10}")
    print("-" * 72)
    for card in stats.card_stats.values():
        print(
            f"{card.card_type.value:<12} "
            f"{card.times_awarded:>8} "
            f"{card.times_used:>6} "
            f"{100 * card.use_rate:>5.1f}% "
            f"{card.times_stolen:>7} "
            f"{card.times_countered:>10}"
        )


def export_csv(stats: SessionStats, filename: str = "power_card_stats.csv") -> None:
    """Export power card statistics to a CSV file."""
    import csv

    with open(filename, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["card_type", "times_awarded", "times_used", "use_rate", "times_stolen", "times_countered"])
        for card in stats.card_stats.values():
            writer.writerow([
                card.card_type.value,
                card.times_awarded,
                card.times_used,
                f"{card.use_rate:.4f}",
                card.times_stolen,
                card.times_countered,
            ])

    print(f"Statistics exported to {filename}")


# =============================================================================
# CLI Entry Point
# =============================================================================


def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Run HITBACK session simulations for balancing")
    parser.add_argument(
        "-n", "--num-games",
        type=int,
        default=1000,
        help="Number of sessions to simulate (default: 1000)"
    )
    parser.add_argument(
        "-p", "--players",
        type=int,
        default=4,
        help="Players per session, 2-8 (default: 4)"
    )
    parser.add_argument(
        "-m", "--mode",
        choices=[m.value for m in GameMode],
        default=GameMode.NORMAL.value,
        help="Session mode (default: normal)"
    )
    parser.add_argument(
        "-s", "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility"
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=1,
        help="Number of parallel workers (default: 1)"
    )
    parser.add_argument(
        "--csv",
        type=str,
        default=None,
        help="Export power card results to CSV file"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress progress output"
    )

    args = parser.parse_args()
    configure_logging(default_level=logging.WARNING)

    stats = run_simulation(
        num_games=args.num_games,
        num_players=args.players,
        mode=GameMode(args.mode),
        seed=args.seed,
        verbose=not args.quiet,
        num_workers=args.workers,
    )

    print_statistics(stats)

    if args.csv:
        export_csv(stats, args.csv)


if __name__ == "__main__":
    main()
