"""
Standard 52-card deck: 4 suits × 13 ranks.
Card values for scoring: Ace 11, 2..10 face value, J/Q/K 10.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, Optional


class Suit(IntEnum):
    """Hearts, Diamonds, Clubs, Spades. Order used for tie-break (smallest = Hearts)."""
    HEARTS = 0
    DIAMONDS = 1
    CLUBS = 2
    SPADES = 3

    @property
    def symbol(self) -> str:
        return "♥♦♣♠"[self]

    @property
    def label(self) -> str:
        return self.name.lower()


RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")

CARD_VALUES = {
    "A": 11, "2": 2, "3": 3, "4": 4, "5": 5, "6": 6,
    "7": 7, "8": 8, "9": 9, "10": 10, "J": 10, "Q": 10, "K": 10,
}

RANK_ACE = "A"
RANK_TEN = "10"
FACE_RANKS = frozenset({"J", "Q", "K"})


class DrawSource(str, Enum):
    """Pile a card is drawn from."""
    STOCK = "stock"
    DISCARD = "discard"


@dataclass(frozen=True)
class Card:
    """A single playing card. Identity is (suit, rank)."""

    suit: Suit
    rank: str

    def __post_init__(self) -> None:
        if self.rank not in CARD_VALUES:
            raise ValueError(f"Unknown rank: {self.rank!r}")
        object.__setattr__(self, "suit", Suit(self.suit))

    @property
    def value(self) -> int:
        return CARD_VALUES[self.rank]

    def is_ace(self) -> bool:
        return self.rank == RANK_ACE

    def is_ten(self) -> bool:
        """True for the "10" rank only (not every ten-point card)."""
        return self.rank == RANK_TEN

    def is_face(self) -> bool:
        return self.rank in FACE_RANKS

    def __str__(self) -> str:
        return f"{self.rank}{self.suit.symbol}"

    def __repr__(self) -> str:
        return str(self)


def make_deck_52() -> list[Card]:
    """Build the full 52-card deck, suit by suit, Ace to King."""
    return [Card(suit, rank) for suit in Suit for rank in RANKS]


class Deck:
    """
    Draw pile for one round. The top of the stock is the last element.

    Shuffling uses the injected ``random.Random`` so a seeded engine replays
    the same deals.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.cards: list[Card] = []
        self.reset()

    def reset(self) -> None:
        self.cards = make_deck_52()

    def shuffle(self) -> None:
        # random.shuffle is Fisher-Yates, high index to low.
        self.rng.shuffle(self.cards)

    def draw(self) -> Optional[Card]:
        """Remove and return the top card, or None when the stock is empty."""
        if not self.cards:
            return None
        return self.cards.pop()

    def add_cards(self, cards: Iterable[Card]) -> None:
        self.cards.extend(cards)

    @property
    def remaining(self) -> int:
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)
