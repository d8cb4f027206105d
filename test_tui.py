"""Tests for the TUI render helpers."""

from game_engine import GameEngine
from tui import die_art, format_category_row, render_dice_box


def _row(engine, key):
    return engine.get_state().category(key)


class TestDieArt:

    def test_five_lines_same_width(self):
        art = die_art(5)
        assert len(art) == 5
        assert len({len(line) for line in art}) == 1

    def test_held_uses_double_border(self):
        assert die_art(3, held=True)[0].startswith("╔")
        assert die_art(3)[0].startswith("┌")

    def test_pip_count(self):
        for value in range(1, 7):
            assert "".join(die_art(value)).count("●") == value

    def test_blank_die(self):
        assert "?" in "".join(die_art(None))


class TestRenderDiceBox:

    def test_labels_and_hold_markers(self):
        text = render_dice_box([1, 2, 3, 4, 5], [False, True, False, False, False])
        lines = text.split("\n")
        assert len(lines) == 6
        assert "[1]" in lines[-1] and "[5]" in lines[-1]
        assert "[2] HELD" in lines[-1]

    def test_before_first_roll(self):
        text = render_dice_box([None] * 5, [False] * 5)
        assert text.count("?") == 5


class TestFormatCategoryRow:

    def test_open_row_shows_preview(self):
        engine = GameEngine()
        line = format_category_row(_row(engine, "fives"), 15)
        assert "Fives" in line and "( 15)" in line
        assert line.startswith("[green]")

    def test_zero_preview_is_dim(self):
        engine = GameEngine()
        assert format_category_row(_row(engine, "yahtzee"), 0).startswith("[dim]")

    def test_selected_marker(self):
        engine = GameEngine()
        assert ">>" in format_category_row(_row(engine, "chance"), 20, selected=True)

    def test_scored_row(self):
        engine = GameEngine()
        engine.record_roll([6, 6, 6, 2, 2])
        engine.score_category("sixes")
        line = format_category_row(_row(engine, "sixes"), None, flash=True)
        assert "18" in line
        assert line.startswith("[bold yellow]")
