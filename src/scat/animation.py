"""
Animation seam between the engine and a renderer.

During an AI turn the engine hands each card movement to an ``Animator``
and continues only when the renderer calls ``done``. Without a renderer the
``NullAnimator`` calls ``done`` straight away.
"""
from __future__ import annotations

from typing import Callable, Optional, Protocol

from .deck import Card, DrawSource
from .player import Player

Done = Callable[[], None]
AnimateCard = Callable[[str, Player, Card, Optional[DrawSource], Done], None]


class Animator(Protocol):
    def animate_draw(self, player: Player, card: Card, source: DrawSource, done: Done) -> None:
        """Show ``card`` moving from ``source`` into ``player``'s hand, then call ``done`` once."""

    def animate_discard(self, player: Player, card: Card, done: Done) -> None:
        """Show ``card`` moving onto the discard pile, then call ``done`` once."""


class NullAnimator:
    def animate_draw(self, player: Player, card: Card, source: DrawSource, done: Done) -> None:
        done()

    def animate_discard(self, player: Player, card: Card, done: Done) -> None:
        done()


class CallbackAnimator:
    """
    Adapts a single ``on_animate_card(kind, player, card, source, done)``
    callable, where ``kind`` is "draw" or "discard" and ``source`` is None
    for discards.
    """

    def __init__(self, on_animate_card: AnimateCard) -> None:
        self.on_animate_card = on_animate_card

    def animate_draw(self, player: Player, card: Card, source: DrawSource, done: Done) -> None:
        self.on_animate_card("draw", player, card, source, done)

    def animate_discard(self, player: Player, card: Card, done: Done) -> None:
        self.on_animate_card("discard", player, card, None, done)
