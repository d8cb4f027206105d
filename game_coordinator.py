"""
GameCoordinator — all UI-independent game coordination logic.

Owns the session, the simulated dice and the game log, and turns player
input into engine calls. Frontends (tui.py, web.py) delegate to this and
only handle rendering and events.
"""
from __future__ import annotations

import argparse
import logging
import uuid
from pathlib import Path

from dice_service import DiceService
from game_engine import (
    Category,
    EngineError,
    GameConfig,
    GameEngine,
    GameState,
    to_category,
)
from game_log import GameLog
from game_session import MAX_PLAYERS, MODES, GameSession
from json_store import read_json, remove_file, write_json_atomic

logger = logging.getLogger(__name__)

AUTOSAVE_VERSION = 1


def default_autosave_path() -> Path:
    """Return the default path for the autosave file."""
    return Path.home() / ".big_monte_autosave.json"


class GameCoordinator:
    """Coordinates the session, dice and log without any UI dependency.

    The UI reads coordinator properties to decide what to render, and calls
    coordinator action methods in response to user input. Failed actions
    never raise: the engine's message is kept in ``last_error`` and the
    action returns a falsy value.
    """

    def __init__(self, names=None, mode: str | None = None, config=None, rng=None,
                 session: GameSession | None = None, autosave_path: str | Path | None = None) -> None:
        """Initialize the coordinator.

        Args:
            names: Player names for a new session (None means one player).
            mode: "solo" or "pass-and-play"; inferred from names when None.
            config: GameConfig or mapping of engine options.
            rng: Optional random.Random for reproducible dice.
            session: Resume this session instead of creating one.
            autosave_path: Where to autosave after each action. None disables autosave.
        """
        if not isinstance(config, GameConfig):
            config = GameConfig.from_mapping(config)
        self.config = config
        self.session = session or GameSession.create(names, mode=mode, config=config, rng=rng)
        self.dice = DiceService(config.dice_count, config.max_rolls, rng=rng)
        self.game_log = GameLog()
        self.session_id = uuid.uuid4().hex
        self.autosave_path = Path(autosave_path) if autosave_path is not None else None

        self.last_error: str | None = None
        # Score animation signal: set when a category is scored, consumed by the UI
        self.last_scored_category: Category | None = None
        self.last_scored_points: int | None = None

        self._sync_dice()

    # ── Properties ────────────────────────────────────────────────────────

    @property
    def engine(self) -> GameEngine:
        """Engine of the player whose turn it is."""
        return self.session.active_engine

    @property
    def state(self) -> GameState:
        return self.engine.get_state()

    @property
    def current_player_index(self) -> int:
        return self.session.active_player_index

    @property
    def num_players(self) -> int:
        return len(self.session.players)

    @property
    def game_over(self) -> bool:
        """Whether every player has finished."""
        return self.session.is_completed

    @property
    def can_roll_now(self) -> bool:
        return self.engine.can_roll

    @property
    def has_rolled(self) -> bool:
        return self.state.rolls_this_round > 0

    # ── Action methods (called by the UI on input) ────────────────────────

    def roll_dice(self) -> bool:
        """Throw the dice and record the result in the active engine.

        The first roll of a round throws every die; later rolls keep held dice.
        """
        self.last_error = None
        engine = self.engine
        before = engine.get_state()
        try:
            if before.rolls_this_round == 0:
                snapshot = self.dice.roll_all()
            else:
                snapshot = self.dice.reroll_unheld()
            after = engine.record_roll(snapshot.values)
        except (EngineError, RuntimeError) as exc:
            self._fail(f"Roll failed: {exc}")
            self._sync_dice()
            return False
        self._sync_dice()
        self.game_log.log_roll(after.current_round, self.current_player_index,
                               after.rolls_this_round, after.dice)
        self._autosave_if_active()
        return True

    def toggle_hold(self, die_index: int) -> bool:
        """Lock or unlock one die for the next roll."""
        self.last_error = None
        try:
            after = self.engine.toggle_hold(die_index)
        except EngineError as exc:
            self._fail(str(exc))
            return False
        self._sync_dice()
        self.game_log.log_hold_change(after.current_round, self.current_player_index,
                                      after.holds, after.dice)
        self._autosave_if_active()
        return True

    def select_category(self, key) -> int | None:
        """Score the current hand in a category.

        Returns:
            The points scored, or None if the engine refused.
        """
        self.last_error = None
        engine = self.engine
        before = engine.get_state()
        player_index = self.current_player_index
        try:
            score = engine.score_category(key)
        except EngineError as exc:
            self._fail(str(exc))
            return None
        category = to_category(key)
        self.last_scored_category = category
        self.last_scored_points = score
        self.game_log.log_score(before.current_round, player_index, category, score, before.dice)
        logger.info("Player %d scored %d in %s", player_index, score, category.value)
        if self.session.mode == "pass-and-play":
            self.session.advance_player()
        self._sync_dice()
        self._autosave_if_active()
        return score

    def start_new_round(self) -> bool:
        """Move on without scoring (no-op once the active game is complete)."""
        self.last_error = None
        self.engine.start_new_round()
        self._sync_dice()
        self._autosave_if_active()
        return True

    def preview_category(self, key) -> int | None:
        """Points the current hand would score, or None when no hand is rolled."""
        try:
            return self.engine.preview_category(key)
        except EngineError:
            return None

    def previews(self) -> dict[str, int]:
        """Preview every open, user-scoreable category for the current hand."""
        state = self.state
        if state.completed or state.rolls_this_round == 0:
            return {}
        result = {}
        for row in state.categories:
            if row.interactive and not row.scored:
                points = self.preview_category(row.key)
                if points is not None:
                    result[row.key.value] = points
        return result

    def reset_game(self) -> None:
        """Start a new game with the same players."""
        if self.autosave_path is not None:
            self.clear_autosave(self.autosave_path)
        self.session.reset()
        self.game_log.clear()
        self.session_id = uuid.uuid4().hex
        self.last_error = None
        self.last_scored_category = None
        self.last_scored_points = None
        self._sync_dice()

    def clear_error(self) -> None:
        self.last_error = None

    # ── Internals ─────────────────────────────────────────────────────────

    def _fail(self, message: str) -> None:
        self.last_error = message
        logger.warning("Action rejected: %s", message)

    def _sync_dice(self) -> None:
        """Make the simulated dice show what the active engine holds."""
        state = self.state
        self.dice.restore(state.dice, state.holds, state.rolls_this_round)

    def _autosave_if_active(self) -> None:
        """Save after each action, or clear the autosave once the session is over."""
        if self.autosave_path is None:
            return
        if self.game_over:
            self.clear_autosave(self.autosave_path)
        else:
            self.save_state(self.autosave_path)

    # ── Persistence ───────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "version": AUTOSAVE_VERSION,
            "session_id": self.session_id,
            "config": {
                "dice_count": self.config.dice_count,
                "max_rolls": self.config.max_rolls,
                "upper_bonus_threshold": self.config.upper_bonus_threshold,
                "upper_bonus_value": self.config.upper_bonus_value,
                "max_rounds": self.config.max_rounds,
            },
            "session": self.session.snapshot(),
        }

    def save_state(self, path: str | Path | None = None) -> bool:
        """Serialize the session to JSON for autosave.

        Skipped once the session is over. Writes are atomic and
        best-effort: an OS error is logged and reported as False.
        """
        if self.game_over:
            return False
        if path is None:
            path = self.autosave_path or default_autosave_path()
        return write_json_atomic(path, self.to_dict())

    @classmethod
    def load_state(cls, path: str | Path | None = None, rng=None,
                   autosave_path: str | Path | None = None) -> GameCoordinator | None:
        """Load an autosave and return a configured GameCoordinator, or None.

        Returns None if the file is missing, corrupt, from another version,
        or holds a finished or unusable session.
        """
        if path is None:
            path = default_autosave_path()
        data = read_json(path)
        if not isinstance(data, dict) or data.get("version") != AUTOSAVE_VERSION:
            return None
        try:
            config = GameConfig.from_mapping(data.get("config"))
        except (AttributeError, TypeError, ValueError):
            logger.warning("Autosave %s has an invalid config", path)
            return None
        session = GameSession.from_dict(data.get("session"), config=config)
        if session is None or session.is_completed:
            return None
        coord = cls(config=config, rng=rng, session=session, autosave_path=autosave_path)
        if isinstance(data.get("session_id"), str) and data["session_id"]:
            coord.session_id = data["session_id"]
        logger.info("Resumed autosave from %s", path)
        return coord

    @staticmethod
    def clear_autosave(path: str | Path | None = None) -> None:
        """Delete the autosave file."""
        if path is None:
            path = default_autosave_path()
        remove_file(path)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Optional list of args (for testing). None uses sys.argv.

    Returns:
        Parsed argparse.Namespace.
    """
    parser = argparse.ArgumentParser(description="Big Monte dice poker")
    parser.add_argument("--players", nargs="+", metavar="NAME",
                        help=f"Player names for pass-and-play (up to {MAX_PLAYERS})")
    parser.add_argument("--mode", choices=MODES, default=None,
                        help="Game mode (default: inferred from the number of players)")
    parser.add_argument("--new", action="store_true",
                        help="Ignore any autosave and start a fresh game")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: WARNING)")
    args = parser.parse_args(argv)
    if args.players and len(args.players) > MAX_PLAYERS:
        parser.error(f"at most {MAX_PLAYERS} players are supported")
    return args
