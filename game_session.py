"""Game sessions for Big Monte, one engine per player.

Solo play is a one-player session; pass-and-play shares one device among
up to four players who take turns. The session only bookkeeps whose turn
it is and who is leading; all rules live in game_engine.
"""
from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass

from game_engine import GameConfig, GameEngine, GameState

logger = logging.getLogger(__name__)

MODES = ("solo", "pass-and-play")
MAX_PLAYERS = 4
DICE_COLORS = ("blue", "red", "purple", "slate")

CASINO_NAMES = (
    "Lady Luck", "Lucky Seven", "High Roller", "Ace High", "Big Slick",
    "Pocket Rockets", "Queen of Hearts", "King of Spades", "Dealer's Choice",
    "The Croupier", "The Pit Boss", "The Card Shark", "The House Edge",
    "Double Down Danny", "Split Pair Sally", "Roulette Royal", "The Spin Doctor",
    "Midnight Gambler", "Riverboat Ranger", "Ante Up Annie", "All-In Artist",
    "Slow Roll Sam", "Chip Whisperer", "Vault Keeper", "Golden Goose",
    "Silver Dollar", "Triple Seven", "Snake Eyes", "Boxcars", "Hard Eight",
    "Dice Duke", "Dice Duchess", "Full House Freddie", "Straight Shooter",
    "Hot Streak", "Long Shot", "Bonus Round", "Shuffle Master", "The Lucky Break",
)


def pick_casino_name(exclude=(), rng: random.Random | None = None) -> str:
    """Pick a random casino name not in `exclude`, or a numbered fallback."""
    rng = rng or random
    available = [name for name in CASINO_NAMES if name not in exclude]
    if not available:
        return f"Player {len(exclude) + 1}"
    return rng.choice(available)


def build_default_player_names(player_count: int, rng: random.Random | None = None) -> list[str]:
    """Return unique casino names for 1-4 players (count is clamped)."""
    count = max(1, min(MAX_PLAYERS, int(player_count)))
    names: list[str] = []
    for _ in range(count):
        names.append(pick_casino_name(exclude=set(names), rng=rng))
    return names


# ── Snapshot helpers ──────────────────────────────────────────────────────────
# These work on the dicts produced by GameSession.snapshot() (or loaded from
# the leaderboard), where each player's "state" is a GameState.to_dict().

_EMPTY_TOTALS = {"upper": 0, "lower": 0, "bonus": 0, "grand": 0}


def _state_field(state, name, default=None):
    if isinstance(state, GameState):
        return getattr(state, name)
    if isinstance(state, dict):
        return state.get(name, default)
    return default


def get_player_totals(state) -> dict:
    """Totals of one player's state, zeros when missing."""
    totals = _state_field(state, "totals")
    if totals is None:
        return dict(_EMPTY_TOTALS)
    if isinstance(totals, dict):
        return {key: totals.get(key, 0) or 0 for key in _EMPTY_TOTALS}
    return {key: getattr(totals, key) for key in _EMPTY_TOTALS}


def get_player_grand_total(state) -> int:
    return get_player_totals(state)["grand"]


def is_session_completed(session: dict) -> bool:
    """True when every player's game is complete."""
    players = session.get("players") or []
    return bool(players) and all(_state_field(p.get("state"), "completed") is True for p in players)


def get_leader_index(session: dict) -> int | None:
    """Index of the player with the highest grand total; earliest wins ties."""
    players = session.get("players") or []
    if not players:
        return None
    best_idx = 0
    best_score = get_player_grand_total(players[0].get("state"))
    for idx, player in enumerate(players[1:], start=1):
        score = get_player_grand_total(player.get("state"))
        if score > best_score:
            best_idx, best_score = idx, score
    return best_idx


# ── Session ───────────────────────────────────────────────────────────────────

@dataclass
class SessionPlayer:
    """A player seat with its own engine."""
    id: str
    name: str
    engine: GameEngine
    dice_color: str = "blue"
    held_color: str = "blue"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "dice_color": self.dice_color,
            "held_color": self.held_color,
            "state": self.engine.get_state().to_dict(),
        }


class GameSession:
    """Players, their engines, and whose turn it is."""

    def __init__(self, mode: str, players: list[SessionPlayer], active_player_index: int = 0) -> None:
        if mode not in MODES:
            raise ValueError(f"Mode must be one of {MODES}, got {mode!r}.")
        if not 1 <= len(players) <= MAX_PLAYERS:
            raise ValueError(f"Number of players must be between 1 and {MAX_PLAYERS}.")
        if mode == "solo" and len(players) != 1:
            raise ValueError("Solo mode requires exactly one player.")
        self.mode = mode
        self.players = players
        self.active_player_index = max(0, min(len(players) - 1, active_player_index))

    @classmethod
    def create(cls, names=None, mode: str | None = None, config: GameConfig | None = None,
               rng: random.Random | None = None) -> GameSession:
        """Start a fresh session.

        Args:
            names: Player names; blank entries get casino names. None means one player.
            mode: "solo" or "pass-and-play"; inferred from the player count when None.
            config: Engine rules shared by every player.
        """
        names = list(names) if names else [""]
        defaults = build_default_player_names(len(names), rng=rng)
        players = []
        for idx, name in enumerate(names):
            name = (name or "").strip()[:24] or defaults[idx]
            players.append(SessionPlayer(
                id=uuid.uuid4().hex[:8],
                name=name,
                engine=GameEngine(config),
                dice_color=DICE_COLORS[idx % len(DICE_COLORS)],
                held_color=DICE_COLORS[idx % len(DICE_COLORS)],
            ))
        if mode is None:
            mode = "solo" if len(players) == 1 else "pass-and-play"
        return cls(mode, players)

    # ── Properties ────────────────────────────────────────────────────────

    @property
    def active_player(self) -> SessionPlayer:
        return self.players[self.active_player_index]

    @property
    def active_engine(self) -> GameEngine:
        return self.active_player.engine

    @property
    def is_completed(self) -> bool:
        return all(p.engine.get_state().completed for p in self.players)

    @property
    def leader_index(self) -> int | None:
        return get_leader_index(self.snapshot())

    # ── Turns ─────────────────────────────────────────────────────────────

    def advance_player(self) -> SessionPlayer:
        """Pass the dice to the next player whose game is not finished."""
        count = len(self.players)
        for step in range(1, count + 1):
            idx = (self.active_player_index + step) % count
            if not self.players[idx].engine.get_state().completed:
                self.active_player_index = idx
                break
        return self.active_player

    def reset(self) -> None:
        """Restart every player's game and give the dice to the first player."""
        for player in self.players:
            player.engine.reset_game()
        self.active_player_index = 0

    # ── Serialization ─────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        """JSON-safe dict of the whole session."""
        return {
            "mode": self.mode,
            "active_player_index": self.active_player_index,
            "players": [p.to_dict() for p in self.players],
        }

    @classmethod
    def from_dict(cls, data, config: GameConfig | None = None) -> GameSession | None:
        """Rebuild a session from snapshot(); None if nothing usable remains."""
        if not isinstance(data, dict):
            return None
        players = []
        for raw in data.get("players") or []:
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
                logger.warning("Dropping malformed session player: %r", raw)
                continue
            engine = GameEngine(config)
            engine.hydrate_state(raw.get("state"))
            players.append(SessionPlayer(
                id=str(raw.get("id") or uuid.uuid4().hex[:8]),
                name=raw["name"],
                engine=engine,
                dice_color=raw.get("dice_color") if raw.get("dice_color") in DICE_COLORS else "blue",
                held_color=raw.get("held_color") if raw.get("held_color") in DICE_COLORS else "blue",
            ))
        if not players or len(players) > MAX_PLAYERS:
            return None
        mode = data.get("mode")
        if mode not in MODES or (mode == "solo" and len(players) != 1):
            mode = "solo" if len(players) == 1 else "pass-and-play"
        index = data.get("active_player_index")
        if not isinstance(index, int) or isinstance(index, bool):
            index = 0
        return cls(mode, players, index)
