"""Game log for Big Monte, recording every action of a session.

Pure Python, no UI dependency. Captures rolls, holds and scoring
decisions per round and per player so a finished game can be reviewed.
"""
from __future__ import annotations

from dataclasses import dataclass

from game_engine import Category, to_category


@dataclass
class LogEntry:
    """A single logged game event."""
    turn: int                                   # round number, 1-based
    player_index: int                           # 0 for solo games
    event_type: str                             # "roll", "hold", "score"
    dice_values: tuple[int | None, ...]
    held_indices: tuple[int, ...] | None = None
    category: Category | None = None
    score: int | None = None
    roll_number: int = 0                        # 1..max_rolls for rolls

    def to_dict(self) -> dict:
        return {
            "turn": self.turn,
            "player_index": self.player_index,
            "event_type": self.event_type,
            "dice_values": list(self.dice_values),
            "held_indices": list(self.held_indices) if self.held_indices is not None else None,
            "category": self.category.value if self.category is not None else None,
            "score": self.score,
            "roll_number": self.roll_number,
        }


class GameLog:
    """Accumulates LogEntry records during a session."""

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    def log_roll(self, turn: int, player_index: int, roll_number: int, dice_values) -> None:
        """Record a dice roll."""
        self.entries.append(LogEntry(
            turn=turn,
            player_index=player_index,
            event_type="roll",
            dice_values=tuple(dice_values),
            roll_number=roll_number,
        ))

    def log_hold_change(self, turn: int, player_index: int, holds, dice_values) -> None:
        """Record the hold flags after a change, stored as the held indices."""
        self.entries.append(LogEntry(
            turn=turn,
            player_index=player_index,
            event_type="hold",
            dice_values=tuple(dice_values),
            held_indices=tuple(idx for idx, held in enumerate(holds) if held),
        ))

    def log_score(self, turn: int, player_index: int, category, score: int, dice_values) -> None:
        """Record a scoring decision. `category` may be a Category or its key."""
        self.entries.append(LogEntry(
            turn=turn,
            player_index=player_index,
            event_type="score",
            dice_values=tuple(dice_values),
            category=to_category(category),
            score=score,
        ))

    def get_turn_entries(self, turn: int, player_index: int = 0) -> list[LogEntry]:
        """Return all entries for a specific round and player."""
        return [e for e in self.entries
                if e.turn == turn and e.player_index == player_index]

    def get_score_entries(self, player_index: int = 0) -> list[LogEntry]:
        """Return only scoring entries for a player."""
        return [e for e in self.entries
                if e.event_type == "score" and e.player_index == player_index]

    def recent(self, count: int = 10) -> list[dict]:
        """Last `count` entries as JSON-safe dicts, oldest first."""
        if count <= 0:
            return []
        return [e.to_dict() for e in self.entries[-count:]]

    def clear(self) -> None:
        """Remove all entries."""
        self.entries = []
