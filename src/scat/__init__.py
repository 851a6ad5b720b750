"""31 (Scat) card game engine: 3-card hands, knocking, lives and elimination."""

__version__ = "0.1.0"

from .deck import Card, Deck, DrawSource, Suit, make_deck_52
from .scoring import HandScore, evaluate_hand, is_all_same_suit, is_instant_win
from .player import Player, STARTING_LIVES
from .agents import (
    Action,
    Decision,
    Difficulty,
    HeuristicAgent,
    Policy,
    TurnContext,
    choose_discard,
    decide_action,
)
from .state import Phase, TableState
from .events import (
    GameEnded,
    GameListener,
    HandResult,
    InstantWon,
    Message,
    PlayerAction,
    RoundEnded,
    RoundStarted,
    StateChanged,
)
from .animation import Animator, CallbackAnimator, NullAnimator
from .scheduling import AsyncioScheduler, ManualScheduler, Scheduler, SleepingScheduler
from .game import EngineConfig, GameEngine
