"""FrontendAdapter — shared UI state management for all Big Monte frontends.

Owns overlay state, toasts, zero-score confirmation, keyboard category
navigation, the score flash, settings persistence and leaderboard
recording. Pure Python, no frontend dependency.

Each frontend (TUI, web) creates a FrontendAdapter wrapping a
GameCoordinator and delegates UI-state logic here, keeping only rendering
and input translation frontend-specific.
"""

import logging
import time
from dataclasses import dataclass

from game_engine import CATEGORY_TABLE, Category, to_category
from score_history import get_sorted_entries, record_completed_session, rename_leader
from settings import DICE_COLOR_HEX, load_settings, sanitize_settings, save_settings

logger = logging.getLogger(__name__)


# ── Shared constants ─────────────────────────────────────────────────────────

CATEGORY_ORDER = [d.key for d in CATEGORY_TABLE if d.interactive]

CATEGORY_TOOLTIPS = {
    Category.ONES: "Sum of all dice showing 1",
    Category.TWOS: "Sum of all dice showing 2",
    Category.THREES: "Sum of all dice showing 3",
    Category.FOURS: "Sum of all dice showing 4",
    Category.FIVES: "Sum of all dice showing 5",
    Category.SIXES: "Sum of all dice showing 6",
    Category.UPPER_BONUS: "Awarded automatically when the upper section reaches the threshold",
    Category.THREE_OF_KIND: "At least 3 of the same, score = sum of all dice",
    Category.FOUR_OF_KIND: "At least 4 of the same, score = sum of all dice",
    Category.FULL_HOUSE: "3 of one + 2 of another (or all the same) = 25",
    Category.SMALL_STRAIGHT: "4 consecutive values = 30",
    Category.LARGE_STRAIGHT: "5 consecutive values = 40",
    Category.YAHTZEE: "All dice the same = 50",
    Category.CHANCE: "Sum of all dice, no pattern needed",
}

MAX_TOASTS = 3
TOAST_DURATION = 1.8  # seconds
LEADERBOARD_SIZE = 10


@dataclass(frozen=True)
class Toast:
    id: int
    text: str
    created_at: float


# ── Frontend Adapter ──────────────────────────────────────────────────────────

class FrontendAdapter:
    """Shared UI state management for all Big Monte frontends.

    Wraps a GameCoordinator and manages overlays, toasts, the zero-confirm
    flow, keyboard navigation, score flash, settings and leaderboard saving.
    """

    def __init__(self, coordinator, settings_path=None, leaderboard_path=None, clock=time.monotonic):
        self.coordinator = coordinator
        self.settings_path = settings_path
        self.leaderboard_path = leaderboard_path
        self._clock = clock

        # Overlay state
        self.showing_help = False
        self.showing_leaderboard = False

        # Toasts, newest last
        self.toasts: list[Toast] = []
        self._next_toast_id = 1

        # Zero-score confirmation
        self.confirm_zero_category = None

        # Keyboard category navigation
        self.kb_selected_index = None

        # Score flash: category and points of the most recent score
        self.score_flash_category = None
        self.score_flash_points = None

        # Settings
        self.settings = load_settings(self.settings_path)

        # One-shot result of recording the finished session
        self.leaderboard_result = None

    # ── Toasts ────────────────────────────────────────────────────────────

    def push_toast(self, text):
        """Show a short message. Only the newest MAX_TOASTS stay visible."""
        toast = Toast(id=self._next_toast_id, text=text, created_at=self._clock())
        self._next_toast_id += 1
        self.toasts = (self.toasts + [toast])[-MAX_TOASTS:]
        return toast

    def dismiss_toast(self, toast_id):
        self.toasts = [t for t in self.toasts if t.id != toast_id]

    def expire_toasts(self):
        """Drop toasts older than TOAST_DURATION."""
        now = self._clock()
        self.toasts = [t for t in self.toasts if now - t.created_at < TOAST_DURATION]

    def _report_error(self):
        if self.coordinator.last_error:
            self.push_toast(self.coordinator.last_error)

    # ── Overlay management ────────────────────────────────────────────────

    def toggle_help(self):
        """Toggle help overlay. Closes the leaderboard when opening."""
        self.showing_help = not self.showing_help
        if self.showing_help:
            self.showing_leaderboard = False
            self.kb_selected_index = None

    def toggle_leaderboard(self):
        """Toggle leaderboard overlay (not while help is open)."""
        if self.showing_help:
            return
        self.showing_leaderboard = not self.showing_leaderboard
        if self.showing_leaderboard:
            self.kb_selected_index = None

    def close_top_overlay(self):
        """Close the topmost overlay. Returns True if an overlay was closed."""
        if self.showing_help:
            self.showing_help = False
            return True
        if self.showing_leaderboard:
            self.showing_leaderboard = False
            return True
        if self.confirm_zero_category is not None:
            self.confirm_zero_category = None
            return True
        return False

    @property
    def has_active_overlay(self):
        return self.showing_help or self.showing_leaderboard

    @property
    def is_input_blocked(self):
        """Whether game input should be blocked (overlay or confirm dialog)."""
        return self.has_active_overlay or self.confirm_zero_category is not None

    # ── Game actions ──────────────────────────────────────────────────────

    def do_roll(self):
        """Roll dice. Returns True if the roll was recorded."""
        if self.is_input_blocked:
            return False
        self._clear_flash()
        ok = self.coordinator.roll_dice()
        if not ok:
            self._report_error()
        return ok

    def do_hold(self, die_index):
        """Toggle hold on a die."""
        if self.is_input_blocked:
            return False
        ok = self.coordinator.toggle_hold(die_index)
        if not ok:
            self._report_error()
        return ok

    def try_score_category(self, key):
        """Attempt to score a category. Asks for confirmation if it would score 0.

        Returns True if scoring happened immediately, False otherwise.
        """
        if self.is_input_blocked:
            return False
        category = to_category(key)
        if category is None:
            self.push_toast(f"Unknown category {key}")
            return False
        if not self.coordinator.engine.can_score(category):
            # Let the coordinator produce the precise reason
            return self._commit_score(category)
        if self.coordinator.preview_category(category) == 0:
            self.confirm_zero_category = category
            return False
        return self._commit_score(category)

    def confirm_zero_yes(self):
        """Confirm scoring 0 in the pending category. Returns True if scored."""
        category = self.confirm_zero_category
        if category is None:
            return False
        self.confirm_zero_category = None
        return self._commit_score(category)

    def confirm_zero_no(self):
        """Cancel the zero-score confirmation."""
        self.confirm_zero_category = None

    def _commit_score(self, category):
        coord = self.coordinator
        scorer = coord.session.active_player.name
        points = coord.select_category(category)
        if points is None:
            self._report_error()
            return False
        self.score_flash_category = category
        self.score_flash_points = points
        coord.last_scored_category = None
        self.kb_selected_index = None

        label = _label(category)
        if coord.num_players > 1:
            self.push_toast(f"{scorer}: {points} in {label}")
        else:
            self.push_toast(f"{points} points in {label}")

        if coord.game_over:
            self._record_result()
        elif coord.num_players > 1:
            self.push_toast(f"{coord.session.active_player.name}'s turn")
        return True

    def do_new_round(self):
        """Skip to the next round without scoring."""
        if self.is_input_blocked:
            return False
        self._clear_flash()
        return self.coordinator.start_new_round()

    def do_reset(self):
        """Start over. Records the finished session first if there is one."""
        self._record_result()
        self.coordinator.reset_game()
        self.leaderboard_result = None
        self.confirm_zero_category = None
        self.kb_selected_index = None
        self._clear_flash()

    def _clear_flash(self):
        self.score_flash_category = None
        self.score_flash_points = None

    # ── Keyboard category navigation ──────────────────────────────────────

    def navigate_category(self, direction):
        """Move keyboard selection to next/previous open category.

        Args:
            direction: +1 for forward, -1 for backward
        """
        state = self.coordinator.state
        unfilled = [i for i, cat in enumerate(CATEGORY_ORDER)
                    if not state.category(cat).scored]
        if not unfilled:
            self.kb_selected_index = None
            return

        if self.kb_selected_index is None:
            self.kb_selected_index = unfilled[0] if direction > 0 else unfilled[-1]
        elif direction > 0:
            candidates = [i for i in unfilled if i > self.kb_selected_index]
            self.kb_selected_index = candidates[0] if candidates else unfilled[0]
        else:
            candidates = [i for i in unfilled if i < self.kb_selected_index]
            self.kb_selected_index = candidates[-1] if candidates else unfilled[-1]

    @property
    def selected_category(self):
        if self.kb_selected_index is None:
            return None
        return CATEGORY_ORDER[self.kb_selected_index]

    # ── Settings ──────────────────────────────────────────────────────────

    def update_settings(self, **changes):
        """Apply and persist setting changes. Invalid values are repaired on save."""
        self.settings = sanitize_settings(dict(self.settings, **changes))
        save_settings(self.settings, self.settings_path)

    def toggle_dark_mode(self):
        self.update_settings(dark_mode=not self.settings["dark_mode"])

    def toggle_sound(self):
        self.update_settings(sound_enabled=not self.settings["sound_enabled"])

    # ── Leaderboard ───────────────────────────────────────────────────────

    def _record_result(self):
        """Record the finished session once per game."""
        if self.leaderboard_result is not None or not self.coordinator.game_over:
            return
        coord = self.coordinator
        self.leaderboard_result = record_completed_session(
            coord.session_id, coord.session.snapshot(), path=self.leaderboard_path,
        )
        if self.leaderboard_result.ok and self.leaderboard_result.is_new:
            entry = self.leaderboard_result.entry
            self.push_toast(f"Game over! {entry['leader_name']} wins with {entry['leader_score']}")
        elif not self.leaderboard_result.ok:
            logger.warning("Leaderboard rejected session: %s", self.leaderboard_result.reason)

    def rename_leader(self, new_name):
        """Rename the winner of the session just recorded."""
        if self.leaderboard_result is None or not self.leaderboard_result.ok:
            return False
        return rename_leader(self.coordinator.session_id, new_name, path=self.leaderboard_path)

    def get_leaderboard(self, limit=LEADERBOARD_SIZE):
        return get_sorted_entries(limit=limit, path=self.leaderboard_path)

    # ── Full state snapshot (for web frontend) ────────────────────────────

    def get_game_snapshot(self):
        """Return a complete JSON-serializable dict of game + UI state.

        Used by the web frontend to push full state over WebSocket.
        """
        self.expire_toasts()
        coord = self.coordinator
        state = coord.state
        previews = coord.previews()

        categories = []
        for row in state.categories:
            categories.append({
                "key": row.key.value,
                "label": row.label,
                "section": row.section,
                "interactive": row.interactive,
                "scored": row.scored,
                "score": row.score,
                "preview": previews.get(row.key.value),
                "tooltip": CATEGORY_TOOLTIPS[row.key],
            })

        players = []
        for player in coord.session.players:
            player_state = player.engine.get_state()
            players.append({
                "id": player.id,
                "name": player.name,
                "dice_color": player.dice_color,
                "grand_total": player_state.totals.grand,
                "current_round": player_state.current_round,
                "completed": player_state.completed,
            })

        leaderboard = []
        if self.showing_leaderboard or coord.game_over:
            leaderboard = [
                {"id": e["id"], "leader_name": e["leader_name"], "leader_score": e["leader_score"],
                 "players_count": e["players_count"], "finished_at": e["finished_at"]}
                for e in self.get_leaderboard()
            ]

        flash = None
        if self.score_flash_category is not None:
            flash = {"category": self.score_flash_category.value, "points": self.score_flash_points}

        return {
            "dice": [{"value": v, "held": h} for v, h in zip(state.dice, state.holds)],
            "rolls_this_round": state.rolls_this_round,
            "rolls_remaining": coord.engine.rolls_remaining,
            "max_rolls": state.max_rolls,
            "current_round": state.current_round,
            "max_rounds": state.max_rounds,
            "can_roll": coord.can_roll_now,
            "game_over": coord.game_over,
            "categories": categories,
            "potential_scores": previews,
            "totals": {
                "upper": state.totals.upper,
                "lower": state.totals.lower,
                "bonus": state.totals.bonus,
                "grand": state.totals.grand,
            },
            "mode": coord.session.mode,
            "players": players,
            "current_player_index": coord.current_player_index,
            "leader_index": coord.session.leader_index,
            "log": coord.game_log.recent(8),
            "toasts": [{"id": t.id, "text": t.text} for t in self.toasts],
            "last_error": coord.last_error,
            "showing_help": self.showing_help,
            "showing_leaderboard": self.showing_leaderboard,
            "leaderboard": leaderboard,
            "confirm_zero_category": (self.confirm_zero_category.value
                                      if self.confirm_zero_category else None),
            "kb_selected_index": self.kb_selected_index,
            "score_flash": flash,
            "dark_mode": self.settings["dark_mode"],
            "sound_enabled": self.settings["sound_enabled"],
            "dice_color": DICE_COLOR_HEX[self.settings["dice_color"]],
            "held_color": DICE_COLOR_HEX[self.settings["held_color"]],
        }


def _label(category):
    for d in CATEGORY_TABLE:
        if d.key == category:
            return d.label
    return category.value
