"""
AI-only games for balancing and smoke testing.

Each game runs on a ``ManualScheduler`` so no wall-clock time passes; the
runner plays the role of the renderer and calls ``proceed_after_round``
after every round.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from .agents import Difficulty
from .events import Event, InstantWon, PlayerAction, RoundEnded
from .game import AI_NAMES, EngineConfig, GameEngine
from .scheduling import ManualScheduler
from .state import Phase

MAX_ROUNDS = 500


@dataclass
class GameRecord:
    """Outcome of one AI-only game."""

    winner: Optional[str]
    rounds: int
    instant_wins: int = 0
    knocks: int = 0


@dataclass
class SimulationReport:
    seats: List[str]
    difficulty: Difficulty
    records: List[GameRecord] = field(default_factory=list)

    @property
    def games(self) -> int:
        return len(self.records)

    @property
    def win_counts(self) -> np.ndarray:
        """Wins per seat, in seat order."""
        idx = [self.seats.index(r.winner) for r in self.records if r.winner is not None]
        return np.bincount(np.asarray(idx, dtype=np.int64), minlength=len(self.seats))

    @property
    def rounds(self) -> np.ndarray:
        return np.asarray([r.rounds for r in self.records], dtype=np.int64)

    @property
    def mean_rounds(self) -> float:
        return float(self.rounds.mean()) if self.records else 0.0

    @property
    def instant_win_rate(self) -> float:
        """Share of all rounds that ended on an instant win."""
        total_rounds = int(self.rounds.sum())
        if total_rounds == 0:
            return 0.0
        return sum(r.instant_wins for r in self.records) / total_rounds

    def win_rates(self) -> np.ndarray:
        if not self.records:
            return np.zeros(len(self.seats))
        return self.win_counts / float(self.games)

    def summary(self) -> str:
        lines = [
            f"{self.games} games, difficulty={self.difficulty.value}, "
            f"rounds/game mean={self.mean_rounds:.1f} "
            f"min={int(self.rounds.min()) if self.records else 0} "
            f"max={int(self.rounds.max()) if self.records else 0}",
            f"instant wins: {self.instant_win_rate:.1%} of rounds",
        ]
        for name, wins, rate in zip(self.seats, self.win_counts, self.win_rates()):
            lines.append(f"  {name:<10} wins={int(wins):>5} ({rate:.1%})")
        return "\n".join(lines)


def play_ai_game(
    config: EngineConfig,
    rng: Optional[random.Random] = None,
    max_tasks: int = 100_000,
) -> GameRecord:
    """Play one game to the end with AI seats only."""
    if config.human_name is not None:
        raise ValueError("play_ai_game needs an AI-only table (human_name=None)")

    scheduler = ManualScheduler()
    engine = GameEngine(config, rng=rng, scheduler=scheduler)
    record = GameRecord(winner=None, rounds=0)

    def tally(event: Event) -> None:
        if isinstance(event, InstantWon):
            record.instant_wins += 1
        elif isinstance(event, PlayerAction) and event.knock:
            record.knocks += 1

    engine.subscribe(tally)
    engine.start_game()
    while engine.phase != Phase.GAME_OVER:
        scheduler.run_until_idle(max_tasks=max_tasks)
        if engine.phase != Phase.ROUND_END:
            raise RuntimeError(f"Game stalled in phase {engine.phase.value}")
        if engine.state.round_number >= MAX_ROUNDS:
            raise RuntimeError(f"Game did not finish within {MAX_ROUNDS} rounds")
        engine.proceed_after_round()

    record.rounds = engine.state.round_number
    winners = engine.active_players
    record.winner = winners[0].name if winners else None
    return record


def run_simulation(
    games: int,
    opponent_count: int = 3,
    difficulty: Difficulty | str = Difficulty.MEDIUM,
    seed: int = 0,
    ai_names: Sequence[str] = AI_NAMES,
) -> SimulationReport:
    """
    Play ``games`` AI-only games between ``opponent_count`` seats.

    Each game gets its own ``random.Random`` derived from ``seed`` so results
    are reproducible.
    """
    difficulty = Difficulty(difficulty)
    rng = random.Random(seed)
    config = EngineConfig(
        opponent_count=opponent_count,
        difficulty=difficulty,
        human_name=None,
        ai_names=ai_names,
    )
    report = SimulationReport(seats=list(ai_names[:opponent_count]), difficulty=difficulty)
    for _ in range(games):
        game_rng = random.Random(rng.getrandbits(32))
        report.records.append(play_ai_game(config, rng=game_rng))
    return report


__all__ = ["GameRecord", "SimulationReport", "play_ai_game", "run_simulation"]
