"""Per-seat player state: hand, lives, knock flag."""
from __future__ import annotations

from dataclasses import dataclass, field

from .deck import Card
from .scoring import HandScore, evaluate_hand, is_instant_win

STARTING_LIVES = 3


@dataclass(eq=False)
class Player:
    """
    One participant. Created once per game and never removed; a player with
    no lives left is eliminated but keeps its seat.
    """

    name: str
    is_human: bool = False
    hand: list[Card] = field(default_factory=list)
    lives: int = STARTING_LIVES
    knocked: bool = False

    @property
    def is_eliminated(self) -> bool:
        return self.lives <= 0

    def add_card(self, card: Card) -> None:
        self.hand.append(card)

    def remove_card(self, index: int) -> Card:
        if not 0 <= index < len(self.hand):
            raise IndexError(
                f"{self.name}: card index {index} out of range for a {len(self.hand)}-card hand"
            )
        return self.hand.pop(index)

    def hand_score(self) -> HandScore:
        return evaluate_hand(self.hand)

    def has_instant_win(self) -> bool:
        return is_instant_win(self.hand)

    def lose_life(self) -> None:
        self.lives = max(0, self.lives - 1)

    def reset_for_round(self) -> None:
        self.hand = []
        self.knocked = False

    def __str__(self) -> str:
        return self.name
