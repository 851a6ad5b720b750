"""
Command-line interface: play a game in the terminal or run AI-only simulations.

Usage examples (after ``pip install -e .``):

    python -m scat.cli play --opponents 2 --difficulty hard
    python -m scat.cli simulate --games 200 --opponents 3 --seed 7
"""
from __future__ import annotations

import argparse
import logging
from typing import Callable, Optional

from .agents import Difficulty
from .events import GameListener, HandResult
from .game import AI_NAMES, EngineConfig, GameEngine
from .player import Player
from .scheduling import SleepingScheduler
from .simulate import run_simulation
from .state import Phase

InputFn = Callable[[str], str]


def _format_hand(cards) -> str:
    return " ".join(str(c) for c in cards) or "-"


def _format_results(results: tuple[HandResult, ...]) -> str:
    return "\n".join(
        f"  {r.player.name:<10} {_format_hand(r.hand):<16} score={r.score}" for r in results
    )


class TerminalView(GameListener):
    """Prints engine events as plain text."""

    def __init__(self, engine: GameEngine, out: Callable[[str], None] = print) -> None:
        self.engine = engine
        self.out = out

    def on_round_start(self) -> None:
        lives = ", ".join(f"{p.name}: {'♥' * p.lives or 'out'}" for p in self.engine.players)
        self.out(f"\n=== Round {self.engine.state.round_number} === ({lives})")

    def on_message(self, text: str, kind: str) -> None:
        self.out(f"! {text}" if kind else text)

    def on_player_action(self, name: str, text: str, knock: bool) -> None:
        self.out(f"{name}: {text}")

    def on_round_end(self, results, losers, lowest_score) -> None:
        self.out("Round over:\n" + _format_results(results))
        self.out(f"Lowest score {lowest_score}; losing a life: {', '.join(p.name for p in losers)}")

    def on_instant_win(self, winner: Player, results) -> None:
        self.out(f"31! {winner.name} wins the round instantly.\n" + _format_results(results))

    def on_game_over(self, winner: Optional[Player]) -> None:
        self.out(f"Game over. Winner: {winner.name if winner else 'nobody'}")


def _human_turn(engine: GameEngine, input_fn: InputFn, out: Callable[[str], None]) -> None:
    player = engine.current_player
    if engine.phase == Phase.PLAYER_TURN:
        score = player.hand_score().score
        out(f"Your hand: {_format_hand(player.hand)} (score {score}); discard pile: {engine.discard_top or '-'}")
        choice = input_fn("[s]tock, [d]iscard pile, [k]nock > ").strip().lower()
        if choice.startswith("s"):
            card = engine.draw_from_stock()
            if card is not None:
                out(f"You drew {card}")
        elif choice.startswith("d"):
            engine.draw_from_discard()
        elif choice.startswith("k"):
            engine.knock()
        return

    numbered = "  ".join(f"{i + 1}:{c}" for i, c in enumerate(player.hand))
    out(f"Your hand: {numbered}")
    choice = input_fn(f"Discard which card (1-{len(player.hand)})? > ").strip()
    if choice.isdigit() and 1 <= int(choice) <= len(player.hand):
        engine.discard(int(choice) - 1)


def _add_play_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("play", help="Play a game against AI opponents in the terminal.")
    parser.add_argument(
        "--opponents",
        type=int,
        default=3,
        choices=range(1, len(AI_NAMES) + 1),
        help="Number of AI opponents.",
    )
    parser.add_argument(
        "--difficulty",
        choices=[d.value for d in Difficulty],
        default=Difficulty.MEDIUM.value,
        help="AI difficulty preset.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the deals.")
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Pause speed-up factor; 0 disables pauses.",
    )
    parser.set_defaults(func=_cmd_play)


def _cmd_play(
    args: argparse.Namespace,
    input_fn: InputFn = input,
    out: Callable[[str], None] = print,
) -> None:
    config = EngineConfig(opponent_count=args.opponents, difficulty=args.difficulty, seed=args.seed)
    scheduler = SleepingScheduler(speed=args.speed)
    engine = GameEngine(config, scheduler=scheduler)
    engine.subscribe(TerminalView(engine, out=out))
    engine.start_game()

    while engine.phase != Phase.GAME_OVER:
        if engine.phase == Phase.ROUND_END:
            input_fn("Press Enter for the next round... ")
            engine.proceed_after_round()
        elif engine.current_player.is_human and not engine.busy:
            _human_turn(engine, input_fn, out)
        elif not scheduler.run_next():
            raise RuntimeError(f"Nothing left to run in phase {engine.phase.value}")


def _add_simulate_parser(subparsers: argparse._SubParsersAction) -> None:
    parser = subparsers.add_parser("simulate", help="Run AI-only games and report win rates.")
    parser.add_argument("--games", type=int, default=100, help="Number of games to play.")
    parser.add_argument(
        "--opponents",
        type=int,
        default=3,
        choices=range(1, len(AI_NAMES) + 1),
        help="Number of AI seats at the table.",
    )
    parser.add_argument(
        "--difficulty",
        choices=[d.value for d in Difficulty],
        default=Difficulty.MEDIUM.value,
        help="AI difficulty preset for every seat.",
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed for reproducibility.")
    parser.set_defaults(func=_cmd_simulate)


def _cmd_simulate(args: argparse.Namespace, out: Callable[[str], None] = print) -> None:
    report = run_simulation(
        games=args.games,
        opponent_count=args.opponents,
        difficulty=args.difficulty,
        seed=args.seed,
    )
    out(report.summary())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scat", description="31 (Scat) card game.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for engine diagnostics.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_play_parser(subparsers)
    _add_simulate_parser(subparsers)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
