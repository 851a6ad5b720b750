"""CLI-level smoke tests for the simulate and play commands."""
from scat.cli import _cmd_play, _cmd_simulate, main


class _Args:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


def test_cli_simulate_prints_summary():
    lines = []
    _cmd_simulate(_Args(games=2, opponents=2, difficulty="hard", seed=3), out=lines.append)
    assert len(lines) == 1
    assert lines[0].startswith("2 games, difficulty=hard")
    assert "Alice" in lines[0]


def test_cli_main_simulate(capsys):
    main(["simulate", "--games", "1", "--opponents", "2", "--seed", "1"])
    out = capsys.readouterr().out
    assert "1 games" in out


def test_cli_play_scripted_game():
    prompts = []

    def scripted_input(prompt):
        prompts.append(prompt)
        assert len(prompts) < 20_000, "game did not finish"
        if prompt.startswith("[s]tock"):
            return "s"
        if prompt.startswith("Discard which"):
            return "4"
        return ""

    lines = []
    _cmd_play(_Args(opponents=2, difficulty="medium", seed=9, speed=0), input_fn=scripted_input, out=lines.append)

    assert any("=== Round 1 ===" in line for line in lines)
    assert lines[-1].startswith("Game over.")
