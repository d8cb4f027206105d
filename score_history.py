"""Leaderboard persistence for Big Monte.

Stores finished sessions in ~/.big_monte_leaderboard.json as a versioned
payload, capped at 50 entries and ordered by the leader's score. No UI
dependency.
"""
from __future__ import annotations

import copy
import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path

from game_session import get_leader_index, get_player_grand_total, is_session_completed
from json_store import read_json, remove_file, write_json_atomic

logger = logging.getLogger(__name__)

MAX_ENTRIES = 50
STORAGE_VERSION = 1


@dataclass(frozen=True)
class RecordResult:
    """Outcome of record_completed_session()."""
    ok: bool
    entry: dict | None = None
    is_new: bool = False
    reason: str | None = None


def _default_path():
    """Return the default path for the leaderboard file."""
    return Path.home() / ".big_monte_leaderboard.json"


def _is_finite_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _normalize_entry(raw):
    """Return the entry if it has every required field with a sane value, else None."""
    if not isinstance(raw, dict):
        return None
    entry_id = raw.get("id")
    if not isinstance(entry_id, str) or not entry_id.strip():
        return None
    if not _is_finite_number(raw.get("finished_at")):
        return None
    if not _is_finite_number(raw.get("players_count")) or raw["players_count"] < 1:
        return None
    leader_id = raw.get("leader_player_id")
    if not isinstance(leader_id, str) or not leader_id.strip():
        return None
    if not isinstance(raw.get("leader_name"), str):
        return None
    if not _is_finite_number(raw.get("leader_score")) or raw["leader_score"] < 0:
        return None
    session = raw.get("session")
    if not isinstance(session, dict):
        return None
    if session.get("mode") not in ("solo", "pass-and-play"):
        return None
    if not isinstance(session.get("players"), list) or not session["players"]:
        return None
    if not _is_finite_number(session.get("active_player_index")):
        return None
    return {
        "id": entry_id,
        "finished_at": raw["finished_at"],
        "players_count": raw["players_count"],
        "leader_player_id": leader_id,
        "leader_name": raw["leader_name"],
        "leader_score": raw["leader_score"],
        "session": session,
    }


def _sort_entries(entries):
    return sorted(entries, key=lambda e: (e["leader_score"], e["finished_at"]), reverse=True)


def _load_entries(path=None):
    """Load entries from the JSON file. Returns empty list on missing/corrupt/old version."""
    if path is None:
        path = _default_path()
    data = read_json(path)
    if not isinstance(data, dict) or data.get("version") != STORAGE_VERSION:
        return []
    if not isinstance(data.get("entries"), list):
        return []
    entries = []
    seen = set()
    for candidate in data["entries"]:
        entry = _normalize_entry(candidate)
        if entry is None or entry["id"] in seen:
            continue
        entries.append(entry)
        seen.add(entry["id"])
    return entries


def _save_entries(entries, path=None):
    """Write entries to the JSON file; an empty board removes the file."""
    if path is None:
        path = _default_path()
    if not entries:
        remove_file(path)
        return
    write_json_atomic(path, {
        "version": STORAGE_VERSION,
        "saved_at": time.time(),
        "entries": entries,
    })


def record_completed_session(entry_id, session, finished_at=None, path=None) -> RecordResult:
    """Record a finished session.

    Args:
        entry_id: Stable id for the session (recording the same id twice is a no-op).
        session: Dict from GameSession.snapshot().
        finished_at: Epoch seconds; defaults to now.

    Returns:
        RecordResult. Failure reasons: "invalid-id", "incomplete-session", "no-leader".
    """
    entry_id = entry_id.strip() if isinstance(entry_id, str) else ""
    if not entry_id:
        return RecordResult(ok=False, reason="invalid-id")

    entries = _load_entries(path)
    for existing in entries:
        if existing["id"] == entry_id:
            return RecordResult(ok=True, entry=existing, is_new=False)

    if not is_session_completed(session):
        return RecordResult(ok=False, reason="incomplete-session")

    cloned = copy.deepcopy(session)
    leader_idx = get_leader_index(cloned)
    if leader_idx is None:
        return RecordResult(ok=False, reason="no-leader")
    leader = cloned["players"][leader_idx]

    entry = {
        "id": entry_id,
        "finished_at": finished_at if _is_finite_number(finished_at) else time.time(),
        "players_count": len(cloned["players"]),
        "leader_player_id": leader["id"],
        "leader_name": leader["name"],
        "leader_score": get_player_grand_total(leader["state"]),
        "session": cloned,
    }
    entries = _sort_entries([entry] + entries)[:MAX_ENTRIES]
    _save_entries(entries, path)
    logger.info("Leaderboard entry %s: %s with %s", entry_id, entry["leader_name"], entry["leader_score"])
    return RecordResult(ok=True, entry=entry, is_new=True)


def rename_leader(entry_id, new_name, path=None) -> bool:
    """Rename the leader of an entry, in the entry and inside its session."""
    trimmed = new_name.strip() if isinstance(new_name, str) else ""
    if not trimmed:
        return False
    entries = _load_entries(path)
    for entry in entries:
        if entry["id"] != entry_id:
            continue
        for player in entry["session"]["players"]:
            if isinstance(player, dict) and player.get("id") == entry["leader_player_id"]:
                player["name"] = trimmed
        entry["leader_name"] = trimmed
        _save_entries(entries, path)
        return True
    return False


def get_entry(entry_id, path=None):
    """Return the entry with this id, or None."""
    for entry in _load_entries(path):
        if entry["id"] == entry_id:
            return entry
    return None


def get_sorted_entries(limit=None, path=None):
    """Entries ordered by leader score, then most recent first."""
    entries = _sort_entries(_load_entries(path))
    return entries if limit is None else entries[:limit]


def get_top_entry(path=None):
    """Highest entry, or None on an empty board."""
    entries = get_sorted_entries(limit=1, path=path)
    return entries[0] if entries else None


def clear_leaderboard(path=None) -> None:
    """Remove every entry."""
    _save_entries([], path)
