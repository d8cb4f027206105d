"""
Big Monte Game Engine - Pure game logic without GUI dependencies

This module contains the rules engine for the dice poker game: category
scoring, roll budgeting, holds, the upper-section bonus, round progression
and game completion. It has no UI, storage or randomness of its own; dice
values arrive from the caller and state leaves as immutable snapshots.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
import logging
import math

logger = logging.getLogger(__name__)


class Category(Enum):
    """Score category keys"""
    ONES = "ones"
    TWOS = "twos"
    THREES = "threes"
    FOURS = "fours"
    FIVES = "fives"
    SIXES = "sixes"
    UPPER_BONUS = "upper-bonus"
    THREE_OF_KIND = "three-kind"
    FOUR_OF_KIND = "four-kind"
    FULL_HOUSE = "full-house"
    SMALL_STRAIGHT = "small-straight"
    LARGE_STRAIGHT = "large-straight"
    YAHTZEE = "yahtzee"
    CHANCE = "chance"


UPPER_CATEGORIES = (
    Category.ONES, Category.TWOS, Category.THREES,
    Category.FOURS, Category.FIVES, Category.SIXES,
)

LOWER_CATEGORIES = (
    Category.THREE_OF_KIND, Category.FOUR_OF_KIND, Category.FULL_HOUSE,
    Category.SMALL_STRAIGHT, Category.LARGE_STRAIGHT, Category.YAHTZEE,
    Category.CHANCE,
)

_FACE_BY_UPPER = {cat: face for face, cat in enumerate(UPPER_CATEGORIES, start=1)}


@dataclass(frozen=True)
class CategoryDef:
    """Static description of one scorecard row"""
    key: Category
    label: str
    section: str  # "upper", "lower" or "bonus"
    interactive: bool = True


CATEGORY_TABLE = (
    CategoryDef(Category.ONES, "Ones", "upper"),
    CategoryDef(Category.TWOS, "Twos", "upper"),
    CategoryDef(Category.THREES, "Threes", "upper"),
    CategoryDef(Category.FOURS, "Fours", "upper"),
    CategoryDef(Category.FIVES, "Fives", "upper"),
    CategoryDef(Category.SIXES, "Sixes", "upper"),
    CategoryDef(Category.UPPER_BONUS, "Upper Bonus", "bonus", interactive=False),
    CategoryDef(Category.THREE_OF_KIND, "Three of a Kind", "lower"),
    CategoryDef(Category.FOUR_OF_KIND, "Four of a Kind", "lower"),
    CategoryDef(Category.FULL_HOUSE, "Full House", "lower"),
    CategoryDef(Category.SMALL_STRAIGHT, "Small Straight", "lower"),
    CategoryDef(Category.LARGE_STRAIGHT, "Large Straight", "lower"),
    CategoryDef(Category.YAHTZEE, "Yahtzee", "lower"),
    CategoryDef(Category.CHANCE, "Chance", "lower"),
)


def to_category(key):
    """
    Resolve a Category member or its string key.

    Args:
        key: Category enum value or key string such as "full-house"

    Returns:
        The matching Category, or None if the key is unknown
    """
    if isinstance(key, Category):
        return key
    try:
        return Category(key)
    except ValueError:
        return None


# ══════════════════════════════════════════════════════════════════════════════
# Errors
# ══════════════════════════════════════════════════════════════════════════════

class EngineError(Exception):
    """A rejected engine operation. State is left untouched."""


class InvalidStateError(EngineError):
    """Operation not allowed in the current game phase."""


class RollLimitExceededError(EngineError):
    """No rolls left this round."""


class ArityMismatchError(EngineError):
    """Roll input length differs from the configured die count."""


class MissingValueError(EngineError):
    """An unheld die has no usable value."""


class IndexOutOfBoundsError(EngineError, IndexError):
    """Die index outside the hand."""


class PrematureHoldError(EngineError):
    """Hold toggled before the first roll of the round."""


class UnknownCategoryError(EngineError):
    """No category with that key."""


class NotInteractiveError(EngineError):
    """Category is computed by the engine and cannot be scored directly."""


class AlreadyScoredError(EngineError):
    """Category already holds a score."""


class IncompleteRollError(EngineError):
    """No full hand of dice to score."""


# ══════════════════════════════════════════════════════════════════════════════
# Category scoring
# ══════════════════════════════════════════════════════════════════════════════

def count_values(dice):
    """Count occurrences of each face value in a hand of ints."""
    return Counter(dice)


def _faces(dice):
    """Keep only entries that are die faces, as ints."""
    return [int(v) for v in dice if _is_number(v) and v in range(1, 7)]


def has_n_of_kind(dice, n):
    """True if at least n dice show the same face."""
    counts = count_values(dice)
    return bool(counts) and max(counts.values()) >= n


def has_full_house(dice):
    """
    Check for three of one face plus two of another.

    Five of a kind also counts as a full house.
    """
    counts = count_values(dice).values()
    return (3 in counts and 2 in counts) or 5 in counts


def has_straight(dice, length):
    """
    Check whether the distinct faces contain a run of consecutive values.

    Args:
        dice: Hand of die values
        length: Run length required (4 for small, 5 for large)

    Returns:
        True if some run of at least `length` consecutive faces exists
    """
    unique = sorted(set(dice))
    streak = 1
    for prev, cur in zip(unique, unique[1:]):
        if cur == prev + 1:
            streak += 1
            if streak >= length:
                return True
        else:
            streak = 1
    return False


def has_yahtzee(dice):
    """True if some face appears exactly five times."""
    return 5 in count_values(dice).values()


def compute_score(category, dice):
    """
    Calculate the score for a category and a hand of five dice.

    Pure and total: any hand that does not qualify scores 0, and so does
    the upper bonus and any unknown key. Entries that are not die faces
    count for nothing.

    Args:
        category: Category member or key string
        dice: Sequence of five ints in 1..6

    Returns:
        Integer score, never negative
    """
    category = to_category(category)
    dice = _faces(dice)
    total = sum(dice)
    counts = count_values(dice)

    # Upper section - sum of matching dice
    if category in _FACE_BY_UPPER:
        face = _FACE_BY_UPPER[category]
        return counts[face] * face

    elif category == Category.THREE_OF_KIND:
        return total if has_n_of_kind(dice, 3) else 0

    elif category == Category.FOUR_OF_KIND:
        return total if has_n_of_kind(dice, 4) else 0

    elif category == Category.FULL_HOUSE:
        return 25 if has_full_house(dice) else 0

    elif category == Category.SMALL_STRAIGHT:
        return 30 if has_straight(dice, 4) else 0

    elif category == Category.LARGE_STRAIGHT:
        return 40 if has_straight(dice, 5) else 0

    elif category == Category.YAHTZEE:
        return 50 if has_yahtzee(dice) else 0

    elif category == Category.CHANCE:
        return total

    # Upper bonus is computed by the engine, never from a hand
    return 0


# ══════════════════════════════════════════════════════════════════════════════
# Value normalization
# ══════════════════════════════════════════════════════════════════════════════

def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def normalize_die_value(value):
    """
    Coerce a raw roll value to a die face.

    Non-numeric and non-finite values become None; anything else is
    rounded half up and kept only if it lands in 1..6.
    """
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    rounded = math.floor(num + 0.5)
    if rounded < 1 or rounded > 6:
        return None
    return rounded


def _clamp(value, lo, hi, fallback):
    """Truncate and clamp a persisted number, or return fallback."""
    if not _is_number(value) or math.isnan(value):
        return fallback
    if math.isinf(value):
        return hi if value > 0 else lo
    return min(hi, max(lo, math.trunc(value)))


def _get(source, name, default=None):
    """Read a field from a mapping or an object, tolerating either."""
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def _is_sequence(value):
    return isinstance(value, (list, tuple))


# ══════════════════════════════════════════════════════════════════════════════
# Configuration and snapshots
# ══════════════════════════════════════════════════════════════════════════════

_CONFIG_ALIASES = {
    "diceCount": "dice_count",
    "maxRolls": "max_rolls",
    "upperBonusThreshold": "upper_bonus_threshold",
    "upperBonusValue": "upper_bonus_value",
    "maxRounds": "max_rounds",
}


@dataclass(frozen=True)
class GameConfig:
    """Rules for one game. One round per interactive category by default."""
    dice_count: int = 5
    max_rolls: int = 3
    upper_bonus_threshold: int = 63
    upper_bonus_value: int = 35
    max_rounds: int = len(UPPER_CATEGORIES) + len(LOWER_CATEGORIES)

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in ("dice_count", "max_rolls", "max_rounds"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}.")
        for name in ("upper_bonus_threshold", "upper_bonus_value"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}.")

    @classmethod
    def from_mapping(cls, options: Mapping | None) -> GameConfig:
        """Build a config from a dict of options; unknown keys are ignored."""
        if not options:
            return cls()
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {}
        for key, value in options.items():
            name = _CONFIG_ALIASES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class ScoreCategoryState:
    """One scorecard row as seen by callers - immutable"""
    key: Category
    label: str
    section: str
    interactive: bool
    scored: bool = False
    score: int | float | None = None
    scored_dice: tuple[int, ...] | None = None
    round_scored: int | None = None


@dataclass(frozen=True)
class GameTotals:
    upper: int | float = 0
    lower: int | float = 0
    bonus: int | float = 0
    grand: int | float = 0


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of a game at a point in time"""
    dice: tuple[int | None, ...]
    holds: tuple[bool, ...]
    rolls_this_round: int
    current_round: int
    max_rounds: int
    max_rolls: int
    categories: tuple[ScoreCategoryState, ...]
    totals: GameTotals = field(default_factory=GameTotals)
    completed: bool = False

    def category(self, key) -> ScoreCategoryState | None:
        """Look up a category row by Category or key string."""
        cat = to_category(key)
        for row in self.categories:
            if row.key == cat:
                return row
        return None

    def to_dict(self) -> dict:
        """JSON-safe representation, accepted back by GameEngine.hydrate_state()."""
        data = asdict(self)
        data["dice"] = list(self.dice)
        data["holds"] = list(self.holds)
        data["categories"] = [
            {
                **row,
                "key": row["key"].value,
                "scored_dice": list(row["scored_dice"]) if row["scored_dice"] is not None else None,
            }
            for row in data["categories"]
        ]
        return data


def _build_category_rows():
    """Return a fresh, unscored scorecard as a list of mutable row dicts."""
    return [
        {
            "key": d.key,
            "label": d.label,
            "section": d.section,
            "interactive": d.interactive,
            "scored": False,
            "score": None,
            "scored_dice": None,
            "round_scored": None,
        }
        for d in CATEGORY_TABLE
    ]


# ══════════════════════════════════════════════════════════════════════════════
# Game engine
# ══════════════════════════════════════════════════════════════════════════════

class GameEngine:
    """
    State machine for one game.

    Internal state is a plain dict of lists; callers only ever see frozen
    GameState snapshots. Every operation validates all of its preconditions
    before touching state, so a raised EngineError leaves the engine exactly
    as it was.
    """

    def __init__(self, config: GameConfig | Mapping | None = None) -> None:
        if isinstance(config, GameConfig):
            self._config = config
        else:
            self._config = GameConfig.from_mapping(config)
        self._state = self._create_initial_state()

    # ── Read access ───────────────────────────────────────────────────────

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def rolls_remaining(self) -> int:
        return max(0, self._config.max_rolls - self._state["rolls_this_round"])

    @property
    def can_roll(self) -> bool:
        """Whether record_roll() would currently be accepted (given valid values)."""
        return not self._state["completed"] and self.rolls_remaining > 0

    def can_score(self, key) -> bool:
        """Whether score_category(key) would currently succeed."""
        row = self._find_category(to_category(key))
        if row is None or not row["interactive"] or row["scored"]:
            return False
        if self._state["completed"]:
            return False
        return self._full_dice() is not None

    def get_state(self) -> GameState:
        """Return a detached snapshot of the current state."""
        s = self._state
        return GameState(
            dice=tuple(s["dice"]),
            holds=tuple(s["holds"]),
            rolls_this_round=s["rolls_this_round"],
            current_round=s["current_round"],
            max_rounds=self._config.max_rounds,
            max_rolls=self._config.max_rolls,
            categories=tuple(
                ScoreCategoryState(
                    key=row["key"],
                    label=row["label"],
                    section=row["section"],
                    interactive=row["interactive"],
                    scored=row["scored"],
                    score=row["score"],
                    scored_dice=tuple(row["scored_dice"]) if row["scored_dice"] is not None else None,
                    round_scored=row["round_scored"],
                )
                for row in s["categories"]
            ),
            totals=GameTotals(**s["totals"]),
            completed=s["completed"],
        )

    # ── Actions ───────────────────────────────────────────────────────────

    def reset_game(self) -> GameState:
        """Discard all progress and start over."""
        self._state = self._create_initial_state()
        return self.get_state()

    def record_roll(self, values) -> GameState:
        """
        Apply a roll produced by the dice subsystem.

        Held dice keep their value; every unheld die takes the normalized
        value at its index.

        Args:
            values: One raw value per die (length must equal dice_count)

        Returns:
            Updated snapshot

        Raises:
            InvalidStateError: game already complete
            RollLimitExceededError: no rolls left this round
            ArityMismatchError: wrong number of values
            MissingValueError: an unheld die got no valid value
        """
        s = self._state
        if s["completed"]:
            raise InvalidStateError("Game is already complete")
        if s["rolls_this_round"] >= self._config.max_rolls:
            raise RollLimitExceededError("No rolls left this round")
        values = list(values)
        if len(values) != self._config.dice_count:
            raise ArityMismatchError(f"Expected {self._config.dice_count} dice values, got {len(values)}")

        next_dice = []
        for idx, prev in enumerate(s["dice"]):
            if s["holds"][idx]:
                next_dice.append(prev)
                continue
            value = normalize_die_value(values[idx])
            if value is None:
                raise MissingValueError(f"Die {idx + 1} is missing a value")
            next_dice.append(value)

        s["dice"] = next_dice
        s["rolls_this_round"] += 1
        return self.get_state()

    def toggle_hold(self, index: int) -> GameState:
        """
        Flip the hold flag on one die.

        Raises:
            IndexOutOfBoundsError: index not in [0, dice_count)
            PrematureHoldError: no roll yet this round
            InvalidStateError: game already complete
        """
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < self._config.dice_count:
            raise IndexOutOfBoundsError(f"Die index {index} is out of bounds")
        if self._state["rolls_this_round"] == 0:
            raise PrematureHoldError("Cannot hold dice before the first roll")
        if self._state["completed"]:
            raise InvalidStateError("Game is already complete")
        self._state["holds"][index] = not self._state["holds"][index]
        return self.get_state()

    def preview_category(self, key, dice_override=None) -> int:
        """
        Score a category without committing it.

        Args:
            key: Category or key string
            dice_override: Optional hand to score instead of the current dice

        Raises:
            UnknownCategoryError: no such category
            IncompleteRollError: no override and no full hand rolled yet
        """
        category = to_category(key)
        if category is None:
            raise UnknownCategoryError(f"Unknown category {key}")
        if dice_override is not None:
            return compute_score(category, dice_override)
        return compute_score(category, self._require_full_dice())

    def score_category(self, key) -> int:
        """
        Commit the current hand to a category and advance the round.

        Returns:
            The points just scored

        Raises:
            UnknownCategoryError, NotInteractiveError, AlreadyScoredError,
            InvalidStateError, IncompleteRollError
        """
        category = to_category(key)
        row = self._find_category(category)
        if row is None:
            raise UnknownCategoryError(f"Unknown category {key}")
        if not row["interactive"]:
            raise NotInteractiveError(f"Category {category.value} is not user-scoreable")
        if row["scored"]:
            raise AlreadyScoredError(f"Category {category.value} already scored")
        if self._state["completed"]:
            raise InvalidStateError("Game is already complete")
        dice = self._require_full_dice()

        score = compute_score(category, dice)
        row["score"] = score
        row["scored"] = True
        row["scored_dice"] = list(dice)
        row["round_scored"] = self._state["current_round"]

        self._update_upper_bonus()
        self._recompute_totals()
        self._advance_round()
        return score

    def start_new_round(self) -> GameState:
        """Begin the next round without scoring. No-op once the game is complete."""
        if self._state["completed"]:
            return self.get_state()
        self._state["current_round"] = min(self._state["current_round"] + 1, self._config.max_rounds)
        self._reset_hand()
        return self.get_state()

    def hydrate_state(self, snapshot) -> GameState:
        """
        Restore state from a persisted snapshot.

        Accepts a GameState or the dict from GameState.to_dict(), possibly
        partial, stale or corrupt. Raw fields are sanitized onto a fresh
        template; the bonus, totals and completion flag are always
        recomputed rather than trusted.
        """
        if not snapshot:
            return self.get_state()

        cfg = self._config
        template = self._create_initial_state()

        raw_dice = _get(snapshot, "dice")
        raw_holds = _get(snapshot, "holds")
        dice = [None] * cfg.dice_count
        holds = [False] * cfg.dice_count
        if _is_sequence(raw_dice):
            for idx, value in enumerate(raw_dice[:cfg.dice_count]):
                dice[idx] = normalize_die_value(value)
        if _is_sequence(raw_holds):
            for idx, value in enumerate(raw_holds[:cfg.dice_count]):
                holds[idx] = bool(value)

        saved_rows = {}
        raw_categories = _get(snapshot, "categories")
        if _is_sequence(raw_categories):
            for saved in raw_categories:
                cat = to_category(_get(saved, "key"))
                if cat is not None:
                    saved_rows[cat] = saved

        for row in template["categories"]:
            saved = saved_rows.get(row["key"])
            if saved is None:
                continue
            score = _get(saved, "score")
            scored = _get(saved, "scored") is True
            row["score"] = score if _is_number(score) and math.isfinite(score) else None
            row["scored"] = scored
            row["scored_dice"] = self._normalize_scored_dice(_get(saved, "scored_dice")) if scored else None
            row["round_scored"] = (
                _clamp(_get(saved, "round_scored"), 1, cfg.max_rounds, None) if scored else None
            )

        template["dice"] = dice
        template["holds"] = holds
        template["rolls_this_round"] = _clamp(_get(snapshot, "rolls_this_round"), 0, cfg.max_rolls, 0)
        template["current_round"] = _clamp(_get(snapshot, "current_round"), 1, cfg.max_rounds, 1)
        self._state = template

        self._update_upper_bonus()
        self._recompute_totals()
        self._log_self_heal(snapshot)
        return self.get_state()

    # ── Internals ─────────────────────────────────────────────────────────

    def _create_initial_state(self) -> dict:
        return {
            "dice": [None] * self._config.dice_count,
            "holds": [False] * self._config.dice_count,
            "rolls_this_round": 0,
            "current_round": 1,
            "categories": _build_category_rows(),
            "totals": {"upper": 0, "lower": 0, "bonus": 0, "grand": 0},
            "completed": False,
        }

    def _find_category(self, category):
        if category is None:
            return None
        for row in self._state["categories"]:
            if row["key"] == category:
                return row
        return None

    def _full_dice(self):
        if self._state["rolls_this_round"] == 0:
            return None
        if any(v is None for v in self._state["dice"]):
            return None
        return list(self._state["dice"])

    def _require_full_dice(self):
        if self._state["rolls_this_round"] == 0:
            raise IncompleteRollError("Roll the dice before scoring")
        for idx, value in enumerate(self._state["dice"]):
            if value is None:
                raise IncompleteRollError(f"Die {idx + 1} has no value yet")
        return list(self._state["dice"])

    def _normalize_scored_dice(self, values):
        if not _is_sequence(values):
            return None
        normalized = [normalize_die_value(v) for v in values[:self._config.dice_count]]
        normalized = [v for v in normalized if v is not None]
        return normalized or None

    def _upper_rows(self):
        return [row for row in self._state["categories"] if row["section"] == "upper"]

    def _update_upper_bonus(self) -> None:
        bonus = self._find_category(Category.UPPER_BONUS)
        if bonus is None:
            return
        upper = self._upper_rows()
        bonus["scored_dice"] = None
        bonus["round_scored"] = None
        if not all(row["scored"] for row in upper):
            bonus["score"] = None
            bonus["scored"] = False
            return
        upper_total = sum(row["score"] or 0 for row in upper)
        cfg = self._config
        bonus["score"] = cfg.upper_bonus_value if upper_total >= cfg.upper_bonus_threshold else 0
        bonus["scored"] = True

    def _recompute_totals(self) -> None:
        rows = self._state["categories"]
        upper = sum(row["score"] or 0 for row in rows if row["section"] == "upper")
        lower = sum(row["score"] or 0 for row in rows if row["section"] == "lower")
        bonus_row = self._find_category(Category.UPPER_BONUS)
        bonus = (bonus_row["score"] or 0) if bonus_row is not None else 0
        self._state["totals"] = {"upper": upper, "lower": lower, "bonus": bonus, "grand": upper + lower + bonus}
        self._state["completed"] = all(row["scored"] for row in rows if row["interactive"])

    def _reset_hand(self) -> None:
        self._state["rolls_this_round"] = 0
        self._state["dice"] = [None] * self._config.dice_count
        self._state["holds"] = [False] * self._config.dice_count

    def _advance_round(self) -> None:
        # The final round number is kept once the game completes
        if not self._state["completed"]:
            self._state["current_round"] = min(self._state["current_round"] + 1, self._config.max_rounds)
        self._reset_hand()

    def _log_self_heal(self, snapshot) -> None:
        saved_totals = _get(snapshot, "totals")
        healed = self._state["totals"]
        if saved_totals is not None and any(_get(saved_totals, k) != v for k, v in healed.items()):
            logger.debug("Hydrated totals %r replaced with recomputed %r", saved_totals, healed)
        saved_completed = _get(snapshot, "completed")
        if saved_completed is not None and saved_completed != self._state["completed"]:
            logger.debug("Hydrated completed=%r replaced with %r", saved_completed, self._state["completed"])
