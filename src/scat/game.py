"""
Round and turn orchestration: deal → draw/discard turns → knock → final
turns → round end (lowest score loses a life) → next round or game over.

An instant win ("31") short-circuits the round at the deal or right after
any draw. AI turns and pauses run through a ``Scheduler``; every state change
is announced as an event after the mutation it describes.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .agents import Action, Decision, Difficulty, HeuristicAgent, Policy, TurnContext
from .animation import Animator, NullAnimator
from .deck import Card, DrawSource
from .events import (
    Event,
    GameEnded,
    HandResult,
    InstantWon,
    Message,
    PlayerAction,
    RoundEnded,
    RoundStarted,
    StateChanged,
    Subscriber,
)
from .player import Player
from .scheduling import ManualScheduler, Scheduler
from .scoring import is_all_same_suit, is_instant_win
from .state import Phase, TableState

logger = logging.getLogger(__name__)

HAND_SIZE = 3
AI_NAMES = ("Alice", "Bob", "Charlie")
KNOCK_REJECTED_MESSAGE = "You can only knock if all 3 cards are the same suit!"


@dataclass
class EngineConfig:
    """Table setup and pause lengths (seconds) for one game."""

    opponent_count: int = 3
    difficulty: Difficulty = Difficulty.MEDIUM
    human_name: str | None = "You"
    ai_names: Sequence[str] = AI_NAMES
    seed: int | None = None
    knock_pause: float = 1.5
    turn_pause: float = 1.0
    ai_think_delay: float = 0.4
    ai_think_jitter: float = 0.3
    discard_pause: float = 0.4

    def __post_init__(self) -> None:
        try:
            self.difficulty = Difficulty(self.difficulty)
        except ValueError:
            raise ValueError(f"Unknown difficulty: {self.difficulty!r}") from None
        if not 0 <= self.opponent_count <= len(self.ai_names):
            raise ValueError(
                f"opponent_count must be between 0 and {len(self.ai_names)}, got {self.opponent_count}"
            )
        if self.human_name is None and self.opponent_count == 0:
            raise ValueError("A table needs at least one player")

    def make_players(self) -> list[Player]:
        players = []
        if self.human_name is not None:
            players.append(Player(self.human_name, is_human=True))
        players.extend(Player(name) for name in self.ai_names[: self.opponent_count])
        return players


def _once(callback: Callable[[], None], what: str) -> Callable[[], None]:
    """Wrap a completion callback so only its first call has any effect."""
    called = False

    def wrapper() -> None:
        nonlocal called
        if called:
            logger.warning("Ignoring repeated %s completion", what)
            return
        called = True
        callback()

    return wrapper


class GameEngine:
    """
    Owns the table state and exposes the action API for the human seat:
    ``draw_from_stock``, ``draw_from_discard``, ``discard``, ``knock`` and
    ``proceed_after_round``. AI seats are driven internally.

    Actions taken in the wrong phase, or while an AI turn or knock pause is
    in flight, are ignored and return None/False.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        rng: Optional[random.Random] = None,
        scheduler: Optional[Scheduler] = None,
        animator: Optional[Animator] = None,
        policy: Optional[Policy] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.scheduler: Scheduler = scheduler or ManualScheduler()
        self.animator: Animator = animator or NullAnimator()
        self.policy: Policy = policy or HeuristicAgent(self.config.difficulty, rng=self.rng)
        self.state = TableState(self.config.make_players(), self.config.difficulty, rng=self.rng)
        self.events: list[Event] = []
        self._subscribers: list[Subscriber] = []
        self._busy = False

    # ---- Observation ----

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def players(self) -> list[Player]:
        return self.state.players

    @property
    def active_players(self) -> list[Player]:
        return self.state.active_players

    @property
    def current_player(self) -> Player:
        return self.state.current_player

    @property
    def discard_top(self) -> Optional[Card]:
        return self.state.discard_top

    @property
    def knocker(self) -> Optional[Player]:
        return self.state.knocker

    @property
    def busy(self) -> bool:
        return self._busy

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def turn_context(self) -> TurnContext:
        s = self.state
        return TurnContext(
            difficulty=s.difficulty,
            knocker=s.knocker,
            turns_played=s.turns_played,
        )

    # ---- Round lifecycle ----

    def start_game(self) -> None:
        self.start_round()

    def start_round(self) -> None:
        s = self.state
        s.round_number += 1
        s.knocker = None
        s.turns_after_knock = 0
        s.turns_played = 0
        s.discard_pile = []
        self._busy = False

        for player in s.players:
            player.reset_for_round()

        s.deck.reset()
        s.deck.shuffle()

        active = s.active_players
        for _ in range(HAND_SIZE):
            for player in active:
                player.add_card(s.deck.draw())
        s.discard_pile.append(s.deck.draw())

        s.current_player_index = s.next_active_index(-1)
        logger.info("Round %d: %d players dealt in", s.round_number, len(active))
        self._emit(RoundStarted(s.round_number))

        for player in active:
            if player.has_instant_win():
                self._handle_instant_win(player)
                return

        s.phase = Phase.PLAYER_TURN
        self._emit(StateChanged(s.phase))
        self._emit(Message(f"Round {s.round_number} begins!"))

        if not s.current_player.is_human:
            self._schedule_ai_turn(0.0)

    def proceed_after_round(self) -> None:
        s = self.state
        if s.phase != Phase.ROUND_END:
            logger.debug("proceed_after_round ignored in phase %s", s.phase.value)
            return
        remaining = s.active_players
        if len(remaining) <= 1:
            s.phase = Phase.GAME_OVER
            winner = remaining[0] if remaining else None
            logger.info("Game over after %d rounds, winner: %s", s.round_number, winner)
            self._emit(StateChanged(s.phase))
            self._emit(GameEnded(winner))
            return
        self.start_round()

    # ---- Human actions ----

    def draw_from_stock(self) -> Optional[Card]:
        if not self._human_may_act(Phase.PLAYER_TURN, "draw"):
            return None
        card = self._take_from_stock()
        if card is None:
            logger.debug("Stock and discard pile exhausted; nothing to draw")
            return None
        self._complete_draw(self.state.current_player, card)
        return card

    def draw_from_discard(self) -> Optional[Card]:
        if not self._human_may_act(Phase.PLAYER_TURN, "draw") or not self.state.discard_pile:
            return None
        card = self.state.discard_pile.pop()
        self._complete_draw(self.state.current_player, card)
        return card

    def discard(self, index: int) -> Optional[Card]:
        """
        Discard the card at ``index`` of the current player's hand.

        Raises IndexError for an index outside the hand.
        """
        if not self._human_may_act(Phase.DISCARDING, "discard"):
            return None
        s = self.state
        card = s.current_player.remove_card(index)
        s.discard_pile.append(card)
        s.turns_played += 1
        self._advance_turn()
        return card

    def knock(self) -> bool:
        if not self._human_may_act(Phase.PLAYER_TURN, "knock"):
            return False
        return self._knock()

    # ---- Turn flow ----

    def _human_may_act(self, phase: Phase, action: str) -> bool:
        s = self.state
        if s.phase != phase or self._busy or not s.current_player.is_human:
            logger.debug(
                "%s ignored: phase %s, busy=%s, current %s",
                action,
                s.phase.value,
                self._busy,
                s.current_player.name,
            )
            return False
        return True

    def _knock(self) -> bool:
        s = self.state
        player = s.current_player
        if s.knocker is not None:
            logger.debug("%s cannot knock: %s already knocked", player.name, s.knocker.name)
            return False
        if not is_all_same_suit(player.hand):
            if player.is_human:
                self._emit(Message(KNOCK_REJECTED_MESSAGE, "warning"))
            return False

        s.knocker = player
        player.knocked = True
        s.turns_after_knock = 0
        s.turns_played += 1
        logger.info("%s knocks with %d", player.name, player.hand_score().score)

        self._emit(Message(f"{player.name} knocks!", "knock"))
        if not player.is_human:
            self._emit(PlayerAction(player.name, "KNOCKS!", knock=True))
        self._emit(StateChanged(s.phase))

        self._busy = True
        self.scheduler.call_later(self.config.knock_pause, self._finish_knock_pause)
        return True

    def _take_from_stock(self) -> Optional[Card]:
        moved = self.state.recycle_discard_pile()
        if moved:
            logger.debug("Stock empty: reshuffled %d discarded cards", moved)
        return self.state.deck.draw()

    def _complete_draw(self, player: Player, card: Card) -> bool:
        """Put ``card`` in hand. Returns True if the round ended on an instant win."""
        player.add_card(card)
        if player.has_instant_win():
            self._auto_discard_for_instant_win(player)
            self._handle_instant_win(player)
            return True
        self.state.phase = Phase.DISCARDING
        self._emit(StateChanged(self.state.phase))
        return False

    def _finish_knock_pause(self) -> None:
        self._busy = False
        self._advance_turn()

    def _advance_turn(self) -> None:
        s = self.state
        s.current_player_index = s.next_active_index(s.current_player_index)
        if s.knocker is not None and s.current_player is s.knocker:
            s.current_player_index = s.next_active_index(s.current_player_index)

        if s.knocker is not None:
            s.turns_after_knock += 1
            if s.turns_after_knock > len(s.active_players) - 1:
                self._end_round()
                return

        s.phase = Phase.PLAYER_TURN
        self._emit(StateChanged(s.phase))

        if not s.current_player.is_human:
            self._schedule_ai_turn(self.config.turn_pause)

    def _schedule_ai_turn(self, pause: float) -> None:
        cfg = self.config
        delay = pause + cfg.ai_think_delay + self.rng.random() * cfg.ai_think_jitter
        self.scheduler.call_later(delay, self._execute_ai_turn)

    def _execute_ai_turn(self) -> None:
        s = self.state
        player = s.current_player
        if player.is_human or player.is_eliminated or s.phase != Phase.PLAYER_TURN:
            return

        decision = self.policy.decide(player, s.discard_top, self.turn_context())
        if decision.action is Action.KNOCK:
            if self._knock():
                return
            logger.warning("%s: knock rejected, drawing from stock instead", player.name)
            decision = Decision.draw_stock()

        self._busy = True
        source = decision.source
        card: Optional[Card] = None
        if source is DrawSource.DISCARD and s.discard_pile:
            card = s.discard_pile.pop()
        else:
            source = DrawSource.STOCK
            card = self._take_from_stock()
            if card is None and s.discard_pile:
                source = DrawSource.DISCARD
                card = s.discard_pile.pop()

        if card is None:
            logger.warning("%s: no card left to draw, passing", player.name)
            self._busy = False
            self._advance_turn()
            return

        player.add_card(card)
        if player.has_instant_win():
            self._busy = False
            self._auto_discard_for_instant_win(player)
            self._handle_instant_win(player)
            return

        s.phase = Phase.DISCARDING
        if source is not decision.source:
            decision = Decision.draw_stock()
        after_draw = _once(lambda: self._after_ai_draw(player, decision, source), "draw animation")
        self.animator.animate_draw(player, card, source, after_draw)

    def _after_ai_draw(self, player: Player, decision: Decision, source: DrawSource) -> None:
        self._emit(StateChanged(self.state.phase))
        if decision.discard_index is not None:
            index = decision.discard_index
        else:
            index = self.policy.choose_discard(player)
        if not 0 <= index < len(player.hand):
            raise IndexError(f"{player.name}: policy chose discard index {index} for a {len(player.hand)}-card hand")
        self.scheduler.call_later(self.config.discard_pause, lambda: self._ai_discard(player, index, source))

    def _ai_discard(self, player: Player, index: int, source: DrawSource) -> None:
        s = self.state
        card = player.remove_card(index)
        s.discard_pile.append(card)
        s.turns_played += 1
        after_discard = _once(lambda: self._after_ai_discard(player, card, source), "discard animation")
        self.animator.animate_discard(player, card, after_discard)

    def _after_ai_discard(self, player: Player, card: Card, source: DrawSource) -> None:
        self._busy = False
        drew = "Drew from discard" if source is DrawSource.DISCARD else "Drew from stock"
        self._emit(PlayerAction(player.name, f"{drew} · Discarded {card}"))
        self._emit(StateChanged(self.state.phase))
        self._advance_turn()

    # ---- Round resolution ----

    def _hand_results(self) -> tuple[HandResult, ...]:
        results = []
        for p in self.state.active_players:
            hs = p.hand_score()
            results.append(HandResult(player=p, hand=tuple(p.hand), score=hs.score, suit=hs.suit))
        return tuple(results)

    def _end_round(self) -> None:
        s = self.state
        s.phase = Phase.ROUND_END
        results = self._hand_results()
        lowest = min(r.score for r in results)
        losers = tuple(r.player for r in results if r.score == lowest)
        for loser in losers:
            loser.lose_life()
        logger.info(
            "Round %d ends: lowest score %d, losing a life: %s",
            s.round_number,
            lowest,
            ", ".join(p.name for p in losers),
        )
        self._emit(StateChanged(s.phase))
        self._emit(RoundEnded(results=results, losers=losers, lowest_score=lowest))

    def _handle_instant_win(self, winner: Player) -> None:
        s = self.state
        s.phase = Phase.ROUND_END
        results = self._hand_results()
        for player in s.active_players:
            if player is not winner:
                player.lose_life()
        logger.info("Round %d: instant win for %s with %s", s.round_number, winner.name, winner.hand)
        self._emit(StateChanged(s.phase))
        self._emit(InstantWon(winner=winner, results=results))

    def _auto_discard_for_instant_win(self, player: Player) -> None:
        """From a 4-card hand, discard the one card whose removal keeps a winning trio."""
        if len(player.hand) <= HAND_SIZE:
            return
        for i in range(len(player.hand)):
            remaining = player.hand[:i] + player.hand[i + 1:]
            if is_instant_win(remaining):
                self.state.discard_pile.append(player.remove_card(i))
                return

    def _emit(self, event: Event) -> None:
        self.events.append(event)
        for subscriber in list(self._subscribers):
            subscriber(event)


__all__ = ["AI_NAMES", "EngineConfig", "GameEngine", "HAND_SIZE"]
