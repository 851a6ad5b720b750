"""
Round/turn state for one table: players, stock, discard pile, phase and
the turn counters the engine advances.
"""
from __future__ import annotations

import random
from enum import Enum
from typing import Optional, Sequence

from .agents import Difficulty
from .deck import Card, Deck
from .player import Player


class Phase(str, Enum):
    SETUP = "setup"
    PLAYER_TURN = "player_turn"
    DISCARDING = "discarding"
    ROUND_END = "round_end"
    GAME_OVER = "game_over"


class TableState:
    """Mutable state for one game. Only ``GameEngine`` mutates it."""

    def __init__(
        self,
        players: Sequence[Player],
        difficulty: Difficulty,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.players: list[Player] = list(players)
        self.difficulty = Difficulty(difficulty)
        self.deck = Deck(rng)
        self.discard_pile: list[Card] = []
        self.phase = Phase.SETUP
        self.current_player_index: int = 0
        self.knocker: Optional[Player] = None
        self.turns_after_knock: int = 0
        self.turns_played: int = 0
        self.round_number: int = 0

    @property
    def active_players(self) -> list[Player]:
        return [p for p in self.players if not p.is_eliminated]

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def discard_top(self) -> Optional[Card]:
        return self.discard_pile[-1] if self.discard_pile else None

    def next_active_index(self, from_index: int) -> int:
        """Next non-eliminated seat after ``from_index``, wrapping around."""
        idx = from_index
        for _ in range(len(self.players)):
            idx = (idx + 1) % len(self.players)
            if not self.players[idx].is_eliminated:
                return idx
        return from_index

    def recycle_discard_pile(self) -> int:
        """
        Refill an empty stock from the discard pile, keeping its top card.

        Returns the number of cards moved (0 when nothing was done).
        """
        if self.deck.remaining > 0 or len(self.discard_pile) <= 1:
            return 0
        top = self.discard_pile.pop()
        moved = len(self.discard_pile)
        self.deck.add_cards(self.discard_pile)
        self.discard_pile = [top]
        self.deck.shuffle()
        return moved

    def all_cards(self) -> list[Card]:
        """Every card on the table: stock, discard pile and hands."""
        cards = list(self.deck.cards) + list(self.discard_pile)
        for p in self.players:
            cards.extend(p.hand)
        return cards
