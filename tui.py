#!/usr/bin/env python3
"""
Big Monte TUI — terminal frontend using Textual.

Keyboard-driven interface with box-art dice, a scorecard with live
previews, pass-and-play turns, toasts, and help and leaderboard overlays.
"""
import logging

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Center, Horizontal, Vertical
from textual.logging import TextualHandler
from textual.screen import ModalScreen
from textual.widgets import Button, Footer, Header, Static

from frontend_adapter import CATEGORY_ORDER, CATEGORY_TOOLTIPS, FrontendAdapter
from game_coordinator import GameCoordinator, default_autosave_path, parse_args

logger = logging.getLogger(__name__)


# ── Box-art die faces ────────────────────────────────────────────────────────

_PIPS = {
    1: ("       ", "   ●   ", "       "),
    2: (" ●     ", "       ", "     ● "),
    3: (" ●     ", "   ●   ", "     ● "),
    4: (" ●   ● ", "       ", " ●   ● "),
    5: (" ●   ● ", "   ●   ", " ●   ● "),
    6: (" ●   ● ", " ●   ● ", " ●   ● "),
    None: ("       ", "   ?   ", "       "),
}


def die_art(value, held=False):
    """Five lines of box art for one die; held dice get a double border."""
    h, v, corners = ("═", "║", "╔╗╚╝") if held else ("─", "│", "┌┐└┘")
    rows = _PIPS.get(value, _PIPS[None])
    return (
        [f"{corners[0]}{h * 7}{corners[1]}"]
        + [f"{v}{row}{v}" for row in rows]
        + [f"{corners[2]}{h * 7}{corners[3]}"]
    )


def render_dice_box(dice, holds):
    """Render the dice as box art, side by side, with key labels below."""
    arts = [die_art(value, held) for value, held in zip(dice, holds)]
    lines = ["  ".join(art[row] for art in arts) for row in range(5)]
    labels = []
    for i, held in enumerate(holds):
        labels.append(f"  [{i + 1}]{' HELD' if held else ''}".ljust(11))
    lines.append("".join(labels))
    return "\n".join(lines)


def format_category_row(row, preview, selected=False, flash=False):
    """One scorecard line for a ScoreCategoryState and its preview (or None)."""
    marker = ">>" if selected else "  "
    if row.scored or not row.interactive:
        score = "" if row.score is None else row.score
        text = f"{marker}{row.label:<18} {score:>3}"
        return f"[bold yellow]{text}[/bold yellow]" if flash else text
    if preview is None:
        return f"[dim]{marker}{row.label:<18}  — [/dim]"
    text = f"{marker}{row.label:<18} ({preview:>3})"
    if selected:
        return f"[bold]{text}[/bold]"
    return f"[green]{text}[/green]" if preview > 0 else f"[dim]{text}[/dim]"


# ── Widgets ──────────────────────────────────────────────────────────────────

class DiceDisplay(Static):
    """Renders the dice using box art."""

    def render(self):
        state = self.app.coordinator.state
        return render_dice_box(state.dice, state.holds)


class StatusDisplay(Static):
    """Shows roll status and recent toasts."""

    def render(self):
        adapter = self.app.adapter
        coord = adapter.coordinator
        lines = []
        if coord.game_over:
            lines.append("[bold]GAME OVER![/bold]")
        elif not coord.has_rolled:
            lines.append("[bold]Roll the dice![/bold]")
        else:
            lines.append(f"Rolls left: {coord.engine.rolls_remaining}")

        adapter.expire_toasts()
        for toast in adapter.toasts:
            lines.append(f"[italic]{toast.text}[/italic]")
        return "\n".join(lines)


class ScorecardDisplay(Static):
    """Renders the active player's scorecard as a text table."""

    def render(self):
        adapter = self.app.adapter
        coord = adapter.coordinator
        state = coord.state
        previews = coord.previews()
        selected = adapter.selected_category

        lines = []
        if coord.num_players > 1:
            lines.append(f"[bold]{coord.session.active_player.name}'s Scorecard[/bold]")

        for section, title in (("upper", "UPPER SECTION"), ("lower", "LOWER SECTION")):
            lines.append(f"[bold]── {title} ──[/bold]")
            for row in state.categories:
                if row.section != section:
                    continue
                lines.append(format_category_row(
                    row, previews.get(row.key.value),
                    selected=row.key == selected,
                    flash=row.key == adapter.score_flash_category,
                ))
            if section == "upper":
                lines.append(f"  Total: {state.totals.upper}  Bonus: {state.totals.bonus}")

        lines.append(f"[bold]  GRAND TOTAL: {state.totals.grand}[/bold]")

        if selected is not None and previews:
            lines.append(f"\n[dim]{CATEGORY_TOOLTIPS[selected]}[/dim]")
        return "\n".join(lines)


class GameOverDisplay(Static):
    """Shows the final standings."""

    def render(self):
        coord = self.app.coordinator
        if not coord.game_over:
            return ""

        lines = ["", "[bold]═══ GAME OVER ═══[/bold]", ""]
        players = coord.session.players
        leader = coord.session.leader_index
        if len(players) > 1:
            lines.append(f"[bold]{players[leader].name} wins![/bold]")
            lines.append("")
            for i, player in enumerate(players):
                marker = " *" if i == leader else ""
                lines.append(f"  {player.name}: {player.engine.get_state().totals.grand}{marker}")
        else:
            lines.append(f"Final Score: [bold]{coord.state.totals.grand}[/bold]")
        lines.append("")
        lines.append("[dim]Press N for new game, L for leaderboard[/dim]")
        return "\n".join(lines)


# ── Modal Screens ────────────────────────────────────────────────────────────

class HelpScreen(ModalScreen):
    """Help overlay showing key bindings and scoring rules."""

    BINDINGS = [
        Binding("escape", "dismiss", "Close"),
        Binding("question_mark", "dismiss", "Close"),
    ]

    def compose(self) -> ComposeResult:
        controls = [
            ("Space", "Roll dice"),
            ("1-6", "Toggle die hold"),
            ("Tab / ↓", "Next category"),
            ("Shift+Tab / ↑", "Previous category"),
            ("Enter", "Score selected category"),
            ("S", "Skip to next round"),
            ("L", "Leaderboard"),
            ("D", "Dark mode"),
            ("N", "New game"),
            ("Esc", "Close overlay / Quit"),
        ]
        text = "[bold]CONTROLS[/bold]\n\n"
        for key, desc in controls:
            text += f"  {key:<20} {desc}\n"
        text += "\n[bold]SCORING[/bold]\n\n"
        for cat in CATEGORY_ORDER:
            text += f"  {cat.value:<16} {CATEGORY_TOOLTIPS[cat]}\n"
        text += "\n[dim]Press Esc or ? to close[/dim]"
        yield Center(Static(text, id="help-panel"))


class LeaderboardScreen(ModalScreen):
    """Best finished games."""

    BINDINGS = [
        Binding("escape", "dismiss", "Close"),
        Binding("l", "dismiss", "Close"),
    ]

    def compose(self) -> ComposeResult:
        entries = self.app.adapter.get_leaderboard()
        text = "[bold]LEADERBOARD[/bold]\n"
        text += "─" * 50 + "\n"
        text += f"{'#':<4} {'Score':<8} {'Winner':<26} {'Players':<8}\n"
        text += "─" * 50 + "\n"
        if not entries:
            text += "\n  No finished games yet.\n"
        for i, entry in enumerate(entries):
            text += (f"{i + 1:<4} {entry['leader_score']:<8} "
                     f"{entry['leader_name'][:24]:<26} {entry['players_count']:<8}\n")
        text += "\n[dim]L or Esc to close[/dim]"
        yield Center(Static(text, id="leaderboard-panel"))


class ConfirmZeroScreen(ModalScreen[bool]):
    """Confirm scoring 0 dialog."""

    BINDINGS = [
        Binding("y", "confirm", "Yes"),
        Binding("enter", "confirm", "Yes"),
        Binding("n", "cancel", "No"),
        Binding("escape", "cancel", "No"),
    ]

    def __init__(self, label: str):
        super().__init__()
        self.label = label

    def compose(self) -> ComposeResult:
        text = f"[bold]Score 0 in {self.label}?[/bold]\n\n"
        text += "Y / Enter to confirm,  N / Esc to cancel"
        yield Center(Static(text, id="confirm-panel"))

    def action_confirm(self):
        self.dismiss(True)

    def action_cancel(self):
        self.dismiss(False)


# ── Main App ─────────────────────────────────────────────────────────────────

class BigMonteApp(App):
    """Big Monte terminal UI application."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #game-area {
        layout: horizontal;
        height: 1fr;
    }

    #dice-panel {
        width: 64;
        padding: 1 2;
    }

    #scorecard-panel {
        width: 1fr;
        padding: 1 2;
    }

    #round-display, #dice-display, #status-display, #game-over-display {
        height: auto;
    }

    #round-display {
        padding: 0 2;
    }

    #status-display, #roll-btn {
        margin-top: 1;
    }

    #roll-btn {
        width: 20;
    }

    #help-panel, #leaderboard-panel, #confirm-panel {
        padding: 2 4;
        border: thick $accent;
        background: $surface;
        width: 80;
        height: auto;
        max-height: 80vh;
    }
    """

    BINDINGS = [
        Binding("space", "roll", "Roll", show=True),
        *[Binding(str(i), f"hold({i - 1})", f"Hold {i}", show=False) for i in range(1, 7)],
        Binding("tab", "next_cat", "Next category", show=True),
        Binding("shift+tab", "prev_cat", "Prev category"),
        Binding("down", "next_cat", "Next", show=False),
        Binding("up", "prev_cat", "Prev", show=False),
        Binding("enter", "score", "Score", show=True),
        Binding("s", "skip_round", "Skip round"),
        Binding("question_mark", "help", "Help"),
        Binding("l", "leaderboard", "Leaderboard"),
        Binding("d", "dark", "Dark mode"),
        Binding("n", "new_game", "New game"),
        Binding("escape", "quit_or_close", "Quit"),
    ]

    def __init__(self, coordinator=None, settings_path=None, leaderboard_path=None):
        super().__init__()
        self.coordinator = coordinator or GameCoordinator()
        self.adapter = FrontendAdapter(self.coordinator, settings_path=settings_path,
                                       leaderboard_path=leaderboard_path)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="round-display")
        with Horizontal(id="game-area"):
            with Vertical(id="dice-panel"):
                yield DiceDisplay(id="dice-display")
                yield Button("ROLL", id="roll-btn", variant="primary")
                yield StatusDisplay(id="status-display")
                yield GameOverDisplay(id="game-over-display")
            with Vertical(id="scorecard-panel"):
                yield ScorecardDisplay(id="scorecard-display")
        yield Footer()

    def on_mount(self):
        self.title = "Big Monte"
        self._apply_theme()
        self._refresh_display()
        # Toasts expire on a timer
        self.set_interval(0.5, self._refresh_display)

    def _apply_theme(self):
        self.theme = "textual-dark" if self.adapter.settings["dark_mode"] else "textual-light"

    def _refresh_display(self):
        """Refresh all display widgets."""
        self.query_one("#dice-display", DiceDisplay).refresh()
        self.query_one("#status-display", StatusDisplay).refresh()
        self.query_one("#scorecard-display", ScorecardDisplay).refresh()
        self.query_one("#game-over-display", GameOverDisplay).refresh()
        self.query_one("#round-display", Static).update(self._round_text())
        self.query_one("#roll-btn", Button).disabled = not self.coordinator.can_roll_now

    def _round_text(self):
        """Build round/player bar text."""
        coord = self.coordinator
        state = coord.state
        text = f"Round {state.current_round}/{state.max_rounds}"
        if coord.num_players > 1:
            parts = []
            for i, player in enumerate(coord.session.players):
                marker = "▸" if i == coord.current_player_index and not coord.game_over else " "
                parts.append(f"{marker}{player.name}:{player.engine.get_state().totals.grand}")
            text += " | " + "  ".join(parts)
        return text

    # ── Actions ──────────────────────────────────────────────────────────

    def action_roll(self):
        self.adapter.do_roll()
        self._refresh_display()

    @on(Button.Pressed, "#roll-btn")
    def on_roll_button(self):
        self.action_roll()

    def action_hold(self, index: int):
        if index < self.coordinator.config.dice_count:
            self.adapter.do_hold(index)
            self._refresh_display()

    def action_next_cat(self):
        self.adapter.navigate_category(+1)
        self._refresh_display()

    def action_prev_cat(self):
        self.adapter.navigate_category(-1)
        self._refresh_display()

    def action_score(self):
        adapter = self.adapter
        category = adapter.selected_category
        if category is None:
            return
        adapter.try_score_category(category)
        if adapter.confirm_zero_category is not None:
            def on_confirm(result: bool):
                if result:
                    adapter.confirm_zero_yes()
                else:
                    adapter.confirm_zero_no()
                self._refresh_display()
            label = self.coordinator.state.category(category).label
            self.push_screen(ConfirmZeroScreen(label), on_confirm)
        self._refresh_display()

    def action_skip_round(self):
        self.adapter.do_new_round()
        self._refresh_display()

    def action_help(self):
        self.push_screen(HelpScreen())

    def action_leaderboard(self):
        self.push_screen(LeaderboardScreen())

    def action_dark(self):
        self.adapter.toggle_dark_mode()
        self._apply_theme()

    def action_new_game(self):
        self.adapter.do_reset()
        self._refresh_display()

    def action_quit_or_close(self):
        # If any screen is stacked, pop it
        if len(self.screen_stack) > 1:
            self.pop_screen()
        else:
            self.exit()


def main(argv=None):
    """Entry point for the TUI."""
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level, handlers=[TextualHandler()])

    autosave_path = default_autosave_path()
    coordinator = None
    if not args.new:
        coordinator = GameCoordinator.load_state(autosave_path, autosave_path=autosave_path)
    if coordinator is None:
        coordinator = GameCoordinator(names=args.players, mode=args.mode, autosave_path=autosave_path)

    BigMonteApp(coordinator=coordinator).run()


if __name__ == "__main__":
    main()
