"""
Engine tests on a stacked deck.

With no cards stacked, the deal (You, Alice, Bob) is:
    You K♠ 10♠ 7♠ | Alice Q♠ 9♠ 6♠ | Bob J♠ 8♠ 5♠ | discard 4♠ | stock 3♠ 2♠ A♠ K♣ ...
"""
import pytest

from scat.agents import Decision
from scat.animation import CallbackAnimator
from scat.deck import DrawSource
from scat.events import (
    GameEnded,
    GameListener,
    InstantWon,
    Message,
    PlayerAction,
    RoundEnded,
    RoundStarted,
    StateChanged,
)
from scat.game import KNOCK_REJECTED_MESSAGE, EngineConfig, GameEngine
from scat.scheduling import ManualScheduler
from scat.state import Phase

from table_helpers import StackedRandom, assert_cards_conserved, card, cards, put_on_stock_top, rig_hand


def make_engine(opponents=2, top=(), **kwargs):
    scheduler = ManualScheduler()
    config = EngineConfig(opponent_count=opponents, difficulty=kwargs.pop("difficulty", "medium"))
    engine = GameEngine(config, rng=StackedRandom(top), scheduler=scheduler, **kwargs)
    return engine, scheduler


def events_of(engine, kind):
    return [e for e in engine.events if isinstance(e, kind)]


def seat(engine, name):
    return next(p for p in engine.players if p.name == name)


class StockOnlyPolicy:
    """Always draws blind and throws the drawn card back."""

    def decide(self, player, discard_top, context):
        return Decision.draw_stock()

    def choose_discard(self, player):
        return len(player.hand) - 1


class AlwaysKnockPolicy(StockOnlyPolicy):
    def decide(self, player, discard_top, context):
        return Decision.knock()


class HoldingAnimator:
    """Keeps completion callbacks until the test releases them."""

    def __init__(self):
        self.calls = []

    def animate_draw(self, player, card, source, done):
        self.calls.append(("draw", player.name, card, source, done))

    def animate_discard(self, player, card, done):
        self.calls.append(("discard", player.name, card, None, done))


def test_start_round_deals_three_cards_each():
    engine, scheduler = make_engine()
    engine.start_game()

    assert engine.phase == Phase.PLAYER_TURN
    assert engine.current_player.name == "You"
    assert [p.hand for p in engine.players] == [
        cards("K♠ 10♠ 7♠"),
        cards("Q♠ 9♠ 6♠"),
        cards("J♠ 8♠ 5♠"),
    ]
    assert engine.state.discard_pile == [card("4♠")]
    assert engine.state.deck.remaining == 42
    assert engine.state.round_number == 1
    assert scheduler.pending == 0
    assert engine.events == [
        RoundStarted(1),
        StateChanged(Phase.PLAYER_TURN),
        Message("Round 1 begins!"),
    ]
    assert_cards_conserved(engine)


def test_actions_ignored_before_the_game_starts():
    engine, _ = make_engine()
    assert engine.draw_from_stock() is None
    assert engine.draw_from_discard() is None
    assert engine.discard(0) is None
    assert engine.knock() is False
    engine.proceed_after_round()
    assert engine.phase == Phase.SETUP
    assert engine.events == []


def test_human_turn_then_ai_turns():
    engine, scheduler = make_engine()
    engine.start_game()

    assert engine.draw_from_stock() == card("3♠")
    assert engine.phase == Phase.DISCARDING
    assert len(engine.current_player.hand) == 4
    assert engine.discard(3) == card("3♠")
    assert engine.state.turns_played == 1
    assert engine.current_player.name == "Alice"
    assert engine.phase == Phase.PLAYER_TURN
    assert scheduler.pending == 1

    scheduler.run_until_idle()

    assert engine.current_player.name == "You"
    assert engine.phase == Phase.PLAYER_TURN
    assert engine.state.turns_played == 3
    assert seat(engine, "Alice").hand == cards("Q♠ 9♠ 6♠")
    assert seat(engine, "Bob").hand == cards("J♠ 8♠ A♠")
    assert engine.discard_top == card("5♠")
    assert [(a.player_name, a.text) for a in events_of(engine, PlayerAction)] == [
        ("Alice", "Drew from stock · Discarded 2♠"),
        ("Bob", "Drew from stock · Discarded 5♠"),
    ]
    assert_cards_conserved(engine)


def test_draw_from_discard_and_discard_index_contract():
    engine, _ = make_engine()
    engine.start_game()

    assert engine.draw_from_discard() == card("4♠")
    assert engine.state.discard_pile == []
    assert engine.phase == Phase.DISCARDING
    assert engine.draw_from_stock() is None

    with pytest.raises(IndexError):
        engine.discard(7)
    assert len(engine.current_player.hand) == 4

    assert engine.discard(0) == card("K♠")
    assert engine.discard_top == card("K♠")
    assert_cards_conserved(engine)


def test_knock_gives_each_other_player_one_final_turn():
    engine, scheduler = make_engine()
    engine.start_game()
    you = engine.current_player

    assert engine.knock() is True
    assert engine.knocker is you
    assert you.knocked
    assert engine.busy
    # Nothing else happens during the knock pause.
    assert engine.draw_from_stock() is None
    assert engine.knock() is False

    scheduler.run_until_idle()

    assert engine.phase == Phase.ROUND_END
    assert [a.player_name for a in events_of(engine, PlayerAction)] == ["Alice", "Bob"]
    ended = events_of(engine, RoundEnded)[-1]
    assert {r.player.name: r.score for r in ended.results} == {"You": 27, "Alice": 25, "Bob": 23}
    assert ended.lowest_score == 23
    assert [p.name for p in ended.losers] == ["Bob"]
    assert [p.lives for p in engine.players] == [3, 3, 2]
    assert_cards_conserved(engine)


def test_knock_rejected_with_mixed_suits():
    engine, scheduler = make_engine()
    engine.start_game()
    you = engine.current_player
    rig_hand(engine, you, cards("2♥ 5♦ 9♣"))

    assert engine.knock() is False
    assert engine.knocker is None
    assert engine.events[-1] == Message(KNOCK_REJECTED_MESSAGE, "warning")
    assert engine.phase == Phase.PLAYER_TURN
    assert scheduler.pending == 0

    rig_hand(engine, you, cards("2♥ 5♥ 9♥"))
    assert engine.knock() is True
    assert engine.knocker is you
    assert_cards_conserved(engine)


def test_cannot_knock_after_someone_else():
    engine, _ = make_engine()
    engine.start_game()
    engine.state.knocker = seat(engine, "Alice")

    assert engine.knock() is False
    assert not engine.current_player.knocked
    assert not events_of(engine, Message)[-1].kind


def test_round_end_tied_lowest_scores_all_lose_a_life():
    engine, scheduler = make_engine(policy=StockOnlyPolicy())
    engine.start_game()
    rig_hand(engine, seat(engine, "You"), cards("K♠ 10♠ 5♠"))
    rig_hand(engine, seat(engine, "Alice"), cards("10♥ Q♥ 2♣"))
    rig_hand(engine, seat(engine, "Bob"), cards("J♦ K♦ 3♣"))

    assert engine.knock() is True
    scheduler.run_until_idle()

    ended = events_of(engine, RoundEnded)[-1]
    assert {r.player.name: r.score for r in ended.results} == {"You": 25, "Alice": 20, "Bob": 20}
    assert ended.lowest_score == 20
    assert {p.name for p in ended.losers} == {"Alice", "Bob"}
    assert [p.lives for p in engine.players] == [3, 2, 2]


def test_instant_win_after_human_draw():
    engine, scheduler = make_engine()
    engine.start_game()
    you = engine.current_player
    rig_hand(engine, you, cards("A♥ 10♥ 5♣"))
    put_on_stock_top(engine, card("K♥"))

    assert engine.draw_from_stock() == card("K♥")

    assert engine.phase == Phase.ROUND_END
    assert you.hand == cards("A♥ 10♥ K♥")
    assert engine.discard_top == card("5♣")
    won = events_of(engine, InstantWon)[-1]
    assert won.winner is you
    assert len(won.results) == 3
    assert [p.lives for p in engine.players] == [3, 2, 2]
    assert not events_of(engine, RoundEnded)
    assert scheduler.pending == 0
    assert_cards_conserved(engine)


def test_instant_win_after_ai_draw():
    engine, scheduler = make_engine()
    engine.start_game()
    alice = seat(engine, "Alice")
    rig_hand(engine, alice, cards("A♣ 10♣ 2♦"))
    engine.draw_from_stock()
    engine.discard(3)
    put_on_stock_top(engine, card("K♣"))

    scheduler.run_until_idle()

    assert engine.phase == Phase.ROUND_END
    assert events_of(engine, InstantWon)[-1].winner is alice
    assert alice.hand == cards("A♣ 10♣ K♣")
    assert engine.discard_top == card("2♦")
    assert not engine.busy
    assert [p.lives for p in engine.players] == [2, 3, 2]
    assert_cards_conserved(engine)


def test_instant_win_on_the_deal_until_game_over():
    top = cards("Q♣ A♦ 2♣ 3♣ 10♦ 4♣ 5♣ K♦ 6♣")
    engine, scheduler = make_engine(top=top)
    engine.start_game()

    assert engine.phase == Phase.ROUND_END
    assert engine.events[0] == RoundStarted(1)
    assert events_of(engine, InstantWon)[-1].winner.name == "Alice"
    assert [p.lives for p in engine.players] == [2, 3, 2]
    assert scheduler.pending == 0

    engine.proceed_after_round()
    engine.proceed_after_round()
    assert engine.state.round_number == 3
    assert [p.lives for p in engine.players] == [0, 3, 0]

    engine.proceed_after_round()
    assert engine.phase == Phase.GAME_OVER
    assert engine.events[-1] == GameEnded(seat(engine, "Alice"))
    # Game over is final.
    engine.proceed_after_round()
    assert engine.phase == Phase.GAME_OVER


def test_reshuffle_discard_pile_into_empty_stock():
    engine, _ = make_engine()
    engine.start_game()
    s = engine.state
    s.discard_pile = list(s.deck.cards) + s.discard_pile
    s.deck.cards = []

    assert engine.draw_from_stock() == card("3♠")
    assert s.discard_pile == [card("4♠")]
    assert s.deck.remaining == 41
    assert_cards_conserved(engine)


def test_no_card_when_stock_empty_and_discard_pile_too_small():
    engine, _ = make_engine()
    engine.start_game()
    engine.state.deck.cards = []

    assert engine.draw_from_stock() is None
    assert engine.phase == Phase.PLAYER_TURN
    assert len(engine.current_player.hand) == 3
    assert engine.state.discard_pile == [card("4♠")]


def test_ai_draws_from_recycled_stock():
    engine, scheduler = make_engine()
    engine.start_game()
    engine.draw_from_stock()
    engine.discard(3)
    s = engine.state
    s.discard_pile = list(s.deck.cards) + s.discard_pile
    s.deck.cards = []
    assert_cards_conserved(engine)

    scheduler.run_until_idle()

    assert [e.text for e in events_of(engine, PlayerAction)] == [
        "Drew from stock · Discarded 4♠",
        "Drew from stock · Discarded 2♠",
    ]
    assert s.discard_pile == cards("3♠ 4♠ 2♠")
    assert engine.current_player.name == "You"
    assert engine.phase == Phase.PLAYER_TURN
    assert_cards_conserved(engine)


def test_ai_falls_back_to_last_discard_then_passes():
    engine, scheduler = make_engine()
    engine.start_game()
    engine.draw_from_stock()
    engine.discard(3)
    s = engine.state
    s.deck.cards = []
    s.discard_pile = [card("3♠")]
    on_table = set(s.all_cards())

    # Alice: nothing to recycle, so she takes the only discard-pile card.
    scheduler.run_next()
    scheduler.run_next()
    assert events_of(engine, PlayerAction)[-1].text == "Drew from discard · Discarded 3♠"
    assert seat(engine, "Alice").hand == cards("Q♠ 9♠ 6♠")
    assert s.discard_pile == [card("3♠")]
    assert engine.current_player.name == "Bob"
    assert len(s.all_cards()) == len(on_table)
    assert set(s.all_cards()) == on_table

    # Bob: nothing anywhere, so the turn passes without a draw.
    s.discard_pile = []
    scheduler.run_until_idle()
    assert len(events_of(engine, PlayerAction)) == 1
    assert seat(engine, "Bob").hand == cards("J♠ 8♠ 5♠")
    assert s.turns_played == 2
    assert engine.current_player.name == "You"
    assert engine.phase == Phase.PLAYER_TURN


def test_eliminated_players_are_skipped():
    engine, scheduler = make_engine()
    seat(engine, "Alice").lives = 0
    engine.start_game()

    assert seat(engine, "Alice").hand == []
    assert [p.name for p in engine.active_players] == ["You", "Bob"]
    engine.draw_from_stock()
    engine.discard(0)
    assert engine.current_player.name == "Bob"


def test_busy_flag_blocks_actions_while_ai_animates():
    animator = HoldingAnimator()
    engine, scheduler = make_engine(animator=animator)
    engine.start_game()
    engine.draw_from_stock()
    engine.discard(3)
    alice = engine.current_player

    scheduler.run_until_idle()
    kind, name, drawn, source, done = animator.calls[-1]
    assert (kind, name, drawn, source) == ("draw", "Alice", card("2♠"), DrawSource.STOCK)
    assert engine.busy
    assert engine.phase == Phase.DISCARDING
    assert engine.draw_from_stock() is None
    assert engine.knock() is False
    assert engine.discard(0) is None
    assert len(alice.hand) == 4

    done()
    scheduler.run_until_idle()
    kind, name, discarded, _, done = animator.calls[-1]
    assert (kind, name, discarded) == ("discard", "Alice", card("2♠"))
    assert engine.busy
    assert len(alice.hand) == 3

    done()
    assert not engine.busy
    assert engine.current_player.name == "Bob"
    # A second completion call must not advance the turn again.
    done()
    assert engine.current_player.name == "Bob"
    assert_cards_conserved(engine)


def test_callback_animator_sees_every_ai_card_move():
    moves = []

    def on_animate_card(kind, player, card, source, done):
        moves.append((kind, player.name, source))
        done()

    engine, scheduler = make_engine(animator=CallbackAnimator(on_animate_card))
    engine.start_game()
    engine.draw_from_stock()
    engine.discard(3)
    scheduler.run_until_idle()

    assert moves == [
        ("draw", "Alice", DrawSource.STOCK),
        ("discard", "Alice", None),
        ("draw", "Bob", DrawSource.STOCK),
        ("discard", "Bob", None),
    ]


def test_notifications_follow_the_state_they_describe():
    engine, scheduler = make_engine()
    seen = []

    def check(event):
        if isinstance(event, StateChanged):
            assert event.phase == engine.phase
            seen.append(event.phase)

    engine.subscribe(check)
    engine.start_game()
    engine.draw_from_stock()
    engine.discard(3)
    scheduler.run_until_idle()
    assert Phase.DISCARDING in seen
    assert seen[-1] == Phase.PLAYER_TURN


def test_game_listener_dispatch():
    class Recorder(GameListener):
        def __init__(self):
            self.calls = []

        def on_round_start(self):
            self.calls.append("round_start")

        def on_message(self, text, kind):
            self.calls.append(("message", text, kind))

        def on_round_end(self, results, losers, lowest_score):
            self.calls.append(("round_end", lowest_score))

    engine, scheduler = make_engine()
    recorder = Recorder()
    engine.subscribe(recorder)
    engine.start_game()
    engine.knock()
    scheduler.run_until_idle()

    assert recorder.calls[0] == "round_start"
    assert ("message", "Round 1 begins!", "") in recorder.calls
    assert ("message", "You knocks!", "knock") in recorder.calls
    assert recorder.calls[-1] == ("round_end", 23)


def test_ai_knock_rejected_falls_back_to_stock_draw():
    engine, scheduler = make_engine(policy=AlwaysKnockPolicy())
    engine.start_game()
    rig_hand(engine, seat(engine, "Alice"), cards("2♥ 5♦ 9♣"))
    engine.draw_from_stock()
    engine.discard(3)

    scheduler.run_until_idle()

    # Alice could not knock and drew instead; Bob's spades knock is accepted.
    assert [(a.player_name, a.knock) for a in events_of(engine, PlayerAction)] == [
        ("Alice", False),
        ("Bob", True),
    ]
    assert engine.knocker is seat(engine, "Bob")
    assert engine.current_player.name == "You"
    assert engine.phase == Phase.PLAYER_TURN


def test_policy_discard_index_out_of_range_is_an_error():
    class BadDiscardPolicy(StockOnlyPolicy):
        def choose_discard(self, player):
            return 9

    engine, scheduler = make_engine(policy=BadDiscardPolicy())
    engine.start_game()
    engine.draw_from_stock()
    engine.discard(3)
    with pytest.raises(IndexError):
        scheduler.run_until_idle()


def test_ai_first_player_is_scheduled_at_round_start():
    engine, scheduler = make_engine()
    seat(engine, "You").lives = 0
    engine.start_game()
    assert engine.current_player.name == "Alice"
    assert scheduler.pending == 1


def test_ai_only_game_keeps_invariants_until_game_over():
    scheduler = ManualScheduler()
    engine = GameEngine(
        EngineConfig(opponent_count=3, human_name=None, seed=5),
        scheduler=scheduler,
    )
    engine.start_game()

    for _ in range(500_000):
        assert_cards_conserved(engine)
        active = engine.active_players
        if engine.phase == Phase.PLAYER_TURN:
            assert all(len(p.hand) == 3 for p in active)
        elif engine.phase == Phase.DISCARDING:
            assert len(engine.current_player.hand) == 4
            assert all(len(p.hand) == 3 for p in active if p is not engine.current_player)
        if engine.phase in (Phase.PLAYER_TURN, Phase.DISCARDING):
            assert all(not p.hand for p in engine.players if p.is_eliminated)
        if engine.phase == Phase.GAME_OVER:
            break
        if not scheduler.run_next():
            assert engine.phase == Phase.ROUND_END
            engine.proceed_after_round()
    else:
        pytest.fail("AI-only game did not finish")

    assert isinstance(engine.events[-1], GameEnded)
    assert len(engine.active_players) <= 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"difficulty": "impossible"},
        {"opponent_count": 4},
        {"opponent_count": -1},
        {"opponent_count": 0, "human_name": None},
    ],
)
def test_engine_config_validation(kwargs):
    with pytest.raises(ValueError):
        EngineConfig(**kwargs)


def test_engine_config_players():
    config = EngineConfig(opponent_count=2, difficulty="hard")
    players = config.make_players()
    assert [(p.name, p.is_human) for p in players] == [("You", True), ("Alice", False), ("Bob", False)]
    assert config.difficulty.value == "hard"
