"""
Events emitted by the engine, in the order the state changes happen.

A renderer either consumes the raw event stream (any callable taking an
event) or subclasses ``GameListener`` and overrides the ``on_*`` hooks it
cares about.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union

from .deck import Card, Suit
from .player import Player
from .state import Phase


@dataclass(frozen=True)
class StateChanged:
    phase: Phase


@dataclass(frozen=True)
class RoundStarted:
    round_number: int


@dataclass(frozen=True)
class Message:
    text: str
    kind: str = ""


@dataclass(frozen=True)
class PlayerAction:
    """Per-turn narration; ``knock`` marks a knock that should stay on screen."""

    player_name: str
    text: str
    knock: bool = False


@dataclass(frozen=True)
class HandResult:
    """A player's hand at the end of a round and what it scored."""

    player: Player
    hand: tuple[Card, ...]
    score: int
    suit: Optional[Suit]


@dataclass(frozen=True)
class RoundEnded:
    results: tuple[HandResult, ...]
    losers: tuple[Player, ...]
    lowest_score: int


@dataclass(frozen=True)
class InstantWon:
    winner: Player
    results: tuple[HandResult, ...]


@dataclass(frozen=True)
class GameEnded:
    winner: Optional[Player]


Event = Union[StateChanged, RoundStarted, Message, PlayerAction, RoundEnded, InstantWon, GameEnded]
Subscriber = Callable[[Event], None]


class GameListener:
    """Callback-style view of the event stream. Every hook defaults to a no-op."""

    def __call__(self, event: Event) -> None:
        if isinstance(event, StateChanged):
            self.on_state_change()
        elif isinstance(event, RoundStarted):
            self.on_round_start()
        elif isinstance(event, Message):
            self.on_message(event.text, event.kind)
        elif isinstance(event, PlayerAction):
            self.on_player_action(event.player_name, event.text, event.knock)
        elif isinstance(event, RoundEnded):
            self.on_round_end(event.results, event.losers, event.lowest_score)
        elif isinstance(event, InstantWon):
            self.on_instant_win(event.winner, event.results)
        elif isinstance(event, GameEnded):
            self.on_game_over(event.winner)

    def on_state_change(self) -> None:
        pass

    def on_round_start(self) -> None:
        pass

    def on_message(self, text: str, kind: str) -> None:
        pass

    def on_player_action(self, name: str, text: str, knock: bool) -> None:
        pass

    def on_round_end(
        self,
        results: tuple[HandResult, ...],
        losers: tuple[Player, ...],
        lowest_score: int,
    ) -> None:
        pass

    def on_instant_win(self, winner: Player, results: tuple[HandResult, ...]) -> None:
        pass

    def on_game_over(self, winner: Optional[Player]) -> None:
        pass
