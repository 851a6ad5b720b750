"""
Hand scoring: best single-suit total and the instant-win ("31") check.
Cards of different suits never add up; only the best suit counts.
"""
from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Optional, Sequence

from .deck import Card, Suit

TRIO_SIZE = 3


@dataclass(frozen=True)
class HandScore:
    """Best suit total of a hand and the suit it comes from (None if empty)."""

    score: int
    suit: Optional[Suit]


def suit_totals(cards: Sequence[Card]) -> dict[Suit, int]:
    """Sum of card values per suit present in ``cards``."""
    totals: dict[Suit, int] = {}
    for card in cards:
        totals[card.suit] = totals.get(card.suit, 0) + card.value
    return totals


def best_suit(cards: Sequence[Card]) -> Optional[Suit]:
    """Suit with the highest total. Ties go to the lowest Suit (Hearts first)."""
    totals = suit_totals(cards)
    if not totals:
        return None
    return min(totals, key=lambda s: (-totals[s], s))


def evaluate_hand(cards: Sequence[Card]) -> HandScore:
    suit = best_suit(cards)
    if suit is None:
        return HandScore(score=0, suit=None)
    return HandScore(score=suit_totals(cards)[suit], suit=suit)


def is_all_same_suit(cards: Sequence[Card]) -> bool:
    if not cards:
        return False
    suit = cards[0].suit
    return all(c.suit == suit for c in cards)


def _is_instant_win_trio(trio: Sequence[Card]) -> bool:
    """Same suit with an Ace, the 10 and a face card."""
    if not is_all_same_suit(trio):
        return False
    has_ace = any(c.is_ace() for c in trio)
    has_ten = any(c.is_ten() for c in trio)
    has_face = any(c.is_face() for c in trio)
    return has_ace and has_ten and has_face


def is_instant_win(cards: Sequence[Card]) -> bool:
    """
    True if some 3-card subset of a 3- or 4-card hand is an instant win.

    Hands of any other size never qualify.
    """
    if len(cards) not in (TRIO_SIZE, TRIO_SIZE + 1):
        return False
    return any(_is_instant_win_trio(trio) for trio in combinations(cards, TRIO_SIZE))
