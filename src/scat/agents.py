"""
Heuristic opponents and the generic decision-policy interface.

A turn for an AI seat is two decisions:
- ``decide``: knock, take the discard-pile top card, or draw from the stock.
- ``choose_discard``: which of the four cards to throw away after a draw.

The module-level functions are stateless and parameterised by ``Difficulty``;
``HeuristicAgent`` bundles them with a random source so the engine can treat
it as a ``Policy``.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

from .deck import Card, DrawSource, Suit
from .scoring import evaluate_hand, is_instant_win, suit_totals

if TYPE_CHECKING:  # pragma: no cover - import cycle guard for type checking only
    from .player import Player


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


KNOCK_THRESHOLDS = {
    Difficulty.EASY: 29,
    Difficulty.MEDIUM: 27,
    Difficulty.HARD: 25,
}

# Minimum score gain for taking the discard-pile card instead of drawing blind.
SWAP_THRESHOLDS = {
    Difficulty.EASY: 5,
    Difficulty.MEDIUM: 3,
    Difficulty.HARD: 1,
}

DESPERATE_KNOCK_DISCOUNT = 3
DESPERATE_KNOCK_FLOOR = 22
MIN_TURNS_BEFORE_KNOCK = 2
EASY_BLUNDER_RATE = 0.2


class Action(str, Enum):
    KNOCK = "knock"
    DRAW = "draw"


@dataclass(frozen=True)
class Decision:
    """
    What an AI seat does at the start of its turn.

    ``discard_index`` is the hand position the drawn card is meant to replace;
    None means "decide after seeing the card".
    """

    action: Action
    source: Optional[DrawSource] = None
    discard_index: Optional[int] = None

    @classmethod
    def knock(cls) -> "Decision":
        return cls(Action.KNOCK)

    @classmethod
    def take_discard(cls, index: int) -> "Decision":
        return cls(Action.DRAW, DrawSource.DISCARD, index)

    @classmethod
    def draw_stock(cls) -> "Decision":
        return cls(Action.DRAW, DrawSource.STOCK, None)


@dataclass(frozen=True)
class TurnContext:
    """Table facts an AI seat may look at when deciding."""

    difficulty: Difficulty
    knocker: Optional["Player"]
    turns_played: int


class Policy(Protocol):
    """Decision source for a non-human seat."""

    def decide(self, player: "Player", discard_top: Optional[Card], context: TurnContext) -> Decision:
        """Choose the opening action of ``player``'s turn."""

    def choose_discard(self, player: "Player") -> int:
        """Index of the card to discard from ``player``'s 4-card hand."""


def knock_threshold(difficulty: Difficulty, lives: int) -> int:
    """Score needed to knock; lowered when the seat is on its last life."""
    base = KNOCK_THRESHOLDS[Difficulty(difficulty)]
    if lives == 1:
        return max(base - DESPERATE_KNOCK_DISCOUNT, DESPERATE_KNOCK_FLOOR)
    return base


def best_swap(hand: Sequence[Card], card: Card) -> tuple[int, int]:
    """
    Try ``card`` in place of each hand position.

    Returns (improvement, index) for the best position; the first position
    wins ties. An empty hand gives (0, 0).
    """
    if not hand:
        return 0, 0
    current = evaluate_hand(hand).score
    best_improvement: Optional[int] = None
    best_index = 0
    for i in range(len(hand)):
        trial = list(hand)
        trial[i] = card
        improvement = evaluate_hand(trial).score - current
        if best_improvement is None or improvement > best_improvement:
            best_improvement = improvement
            best_index = i
    return best_improvement or 0, best_index


def _instant_win_swap(hand: Sequence[Card], card: Card) -> Optional[int]:
    for i in range(len(hand)):
        trial = list(hand)
        trial[i] = card
        if is_instant_win(trial):
            return i
    return None


def decide_action(player: "Player", discard_top: Optional[Card], context: TurnContext) -> Decision:
    difficulty = Difficulty(context.difficulty)
    score = player.hand_score().score

    if (
        context.knocker is None
        and context.turns_played >= MIN_TURNS_BEFORE_KNOCK
        and score >= knock_threshold(difficulty, player.lives)
    ):
        return Decision.knock()

    if discard_top is not None:
        winning_index = _instant_win_swap(player.hand, discard_top)
        if winning_index is not None:
            return Decision.take_discard(winning_index)

        improvement, index = best_swap(player.hand, discard_top)
        if improvement >= SWAP_THRESHOLDS[difficulty]:
            return Decision.take_discard(index)

    return Decision.draw_stock()


def _target_suit(hand: Sequence[Card]) -> Suit:
    """Highest-total suit; on a tie, the suit met first in hand order."""
    target = hand[0].suit
    best = -1
    for suit, total in suit_totals(hand).items():
        if total > best:
            target, best = suit, total
    return target


def choose_discard(hand: Sequence[Card], difficulty: Difficulty, rng: random.Random) -> int:
    """Pick the index to discard from a (normally 4-card) hand."""
    if not hand:
        raise ValueError("Cannot choose a discard from an empty hand")
    difficulty = Difficulty(difficulty)

    if difficulty is Difficulty.EASY and rng.random() < EASY_BLUNDER_RATE:
        return rng.randrange(len(hand))

    if difficulty is Difficulty.HARD:
        # Exhaustive: keep the removal that leaves the best 3-card hand.
        best_index = 0
        best_score = -1
        for i in range(len(hand)):
            remaining = [c for j, c in enumerate(hand) if j != i]
            score = evaluate_hand(remaining).score
            if score > best_score:
                best_score = score
                best_index = i
        return best_index

    target = _target_suit(hand)
    off_suit = [i for i, c in enumerate(hand) if c.suit != target]
    candidates = off_suit or list(range(len(hand)))
    return min(candidates, key=lambda i: hand[i].value)


@dataclass
class HeuristicAgent:
    """
    Threshold-based opponent for one of the three difficulty presets.

    Usage:
        agent = HeuristicAgent(Difficulty.HARD, seed=42)
        decision = agent.decide(player, discard_top, context)
    """

    difficulty: Difficulty = Difficulty.MEDIUM
    seed: int | None = None
    rng: random.Random | None = None

    def __post_init__(self) -> None:
        self.difficulty = Difficulty(self.difficulty)
        if self.rng is None:
            self.rng = random.Random(self.seed)

    def decide(self, player: "Player", discard_top: Optional[Card], context: TurnContext) -> Decision:
        return decide_action(player, discard_top, replace(context, difficulty=self.difficulty))

    def choose_discard(self, player: "Player") -> int:
        assert self.rng is not None
        return choose_discard(player.hand, self.difficulty, self.rng)


__all__ = [
    "Action",
    "Decision",
    "Difficulty",
    "HeuristicAgent",
    "Policy",
    "TurnContext",
    "best_swap",
    "choose_discard",
    "decide_action",
    "knock_threshold",
]
