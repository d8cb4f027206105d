"""
Game Session Test Suite

Sections:
    1. Creation — names, modes, validation
    2. Turns — advancing, skipping finished players
    3. Leader & completion helpers
    4. Serialization — snapshot / from_dict
"""
import random

import pytest

from game_engine import LOWER_CATEGORIES, UPPER_CATEGORIES, GameEngine
from game_session import (
    CASINO_NAMES, GameSession, SessionPlayer,
    build_default_player_names, get_leader_index, get_player_grand_total,
    get_player_totals, is_session_completed, pick_casino_name,
)


def _finish(engine, face=6):
    """Score every open category with five of `face`."""
    for cat in UPPER_CATEGORIES + LOWER_CATEGORIES:
        if engine.get_state().category(cat).scored:
            continue
        engine.record_roll([face] * 5)
        engine.score_category(cat)


def _state(grand, completed=True):
    return {"totals": {"upper": 0, "lower": grand, "bonus": 0, "grand": grand}, "completed": completed}


# ── 1. Creation ──────────────────────────────────────────────────────────────


class TestCreation:

    def test_default_is_solo_with_casino_name(self):
        session = GameSession.create(rng=random.Random(3))
        assert session.mode == "solo"
        assert len(session.players) == 1
        assert session.players[0].name in CASINO_NAMES

    def test_named_players_infer_pass_and_play(self):
        session = GameSession.create(["Alice", "Bob"])
        assert session.mode == "pass-and-play"
        assert [p.name for p in session.players] == ["Alice", "Bob"]

    def test_blank_names_filled(self):
        session = GameSession.create(["Alice", "  "], rng=random.Random(1))
        assert session.players[1].name in CASINO_NAMES

    def test_each_player_has_own_engine(self):
        session = GameSession.create(["A", "B"])
        assert session.players[0].engine is not session.players[1].engine

    def test_player_ids_unique(self):
        session = GameSession.create(["A", "B", "C", "D"])
        assert len({p.id for p in session.players}) == 4

    def test_too_many_players_rejected(self):
        with pytest.raises(ValueError):
            GameSession.create(["A", "B", "C", "D", "E"])

    def test_solo_needs_one_player(self):
        with pytest.raises(ValueError):
            GameSession.create(["A", "B"], mode="solo")

    def test_bad_mode_rejected(self):
        with pytest.raises(ValueError):
            GameSession.create(["A"], mode="online")

    def test_default_names_unique_and_clamped(self):
        names = build_default_player_names(9, rng=random.Random(0))
        assert len(names) == 4
        assert len(set(names)) == 4
        assert len(build_default_player_names(0)) == 1

    def test_pick_fallback_when_pool_exhausted(self):
        assert pick_casino_name(exclude=set(CASINO_NAMES)) == f"Player {len(CASINO_NAMES) + 1}"


# ── 2. Turns ─────────────────────────────────────────────────────────────────


class TestTurns:

    def test_advance_wraps(self):
        session = GameSession.create(["A", "B", "C"])
        assert session.advance_player().name == "B"
        assert session.advance_player().name == "C"
        assert session.advance_player().name == "A"

    def test_advance_skips_finished(self):
        session = GameSession.create(["A", "B", "C"])
        _finish(session.players[1].engine)
        assert session.advance_player().name == "C"

    def test_advance_stays_when_all_finished(self):
        session = GameSession.create(["A", "B"])
        for p in session.players:
            _finish(p.engine)
        session.advance_player()
        assert session.active_player_index == 0
        assert session.is_completed is True

    def test_active_engine_follows_index(self):
        session = GameSession.create(["A", "B"])
        session.advance_player()
        assert session.active_engine is session.players[1].engine

    def test_reset(self):
        session = GameSession.create(["A", "B"])
        _finish(session.players[0].engine)
        session.advance_player()
        session.reset()
        assert session.active_player_index == 0
        assert session.is_completed is False
        assert session.players[0].engine.get_state().totals.grand == 0


# ── 3. Leader & completion helpers ───────────────────────────────────────────


class TestHelpers:

    def test_leader_highest_grand(self):
        session = {"players": [{"state": _state(100)}, {"state": _state(250)}, {"state": _state(120)}]}
        assert get_leader_index(session) == 1

    def test_leader_tie_goes_to_first(self):
        session = {"players": [{"state": _state(100)}, {"state": _state(100)}]}
        assert get_leader_index(session) == 0

    def test_leader_none_without_players(self):
        assert get_leader_index({"players": []}) is None

    def test_is_session_completed(self):
        assert is_session_completed({"players": [{"state": _state(1)}, {"state": _state(2)}]}) is True
        assert is_session_completed({"players": [{"state": _state(1)}, {"state": _state(2, False)}]}) is False
        assert is_session_completed({"players": []}) is False

    def test_totals_default_to_zero(self):
        assert get_player_totals(None) == {"upper": 0, "lower": 0, "bonus": 0, "grand": 0}
        assert get_player_grand_total({}) == 0

    def test_totals_from_game_state(self):
        engine = GameEngine()
        engine.record_roll([6, 6, 6, 6, 6])
        engine.score_category("chance")
        assert get_player_grand_total(engine.get_state()) == 30

    def test_session_leader_index_property(self):
        session = GameSession.create(["A", "B"])
        session.players[1].engine.record_roll([6, 6, 6, 6, 6])
        session.players[1].engine.score_category("yahtzee")
        assert session.leader_index == 1


# ── 4. Serialization ─────────────────────────────────────────────────────────


class TestSerialization:

    def test_round_trip(self):
        session = GameSession.create(["Alice", "Bob"])
        session.active_engine.record_roll([2, 2, 3, 3, 3])
        session.active_engine.score_category("full-house")
        session.advance_player()
        session.active_engine.record_roll([1, 2, 3, 4, 5])

        restored = GameSession.from_dict(session.snapshot())
        assert restored.snapshot() == session.snapshot()
        assert restored.active_player.name == "Bob"

    def test_malformed_players_dropped(self):
        data = GameSession.create(["Alice"]).snapshot()
        data["players"].append("garbage")
        data["players"].append({"name": 42})
        restored = GameSession.from_dict(data)
        assert len(restored.players) == 1

    def test_nothing_usable_returns_none(self):
        assert GameSession.from_dict({"players": []}) is None
        assert GameSession.from_dict("nope") is None

    def test_mode_repaired(self):
        data = GameSession.create(["A", "B"]).snapshot()
        data["mode"] = "solo"
        assert GameSession.from_dict(data).mode == "pass-and-play"

    def test_bad_colors_and_index_repaired(self):
        data = GameSession.create(["A", "B"]).snapshot()
        data["players"][0]["dice_color"] = "#ff00ff"
        data["active_player_index"] = 17
        restored = GameSession.from_dict(data)
        assert restored.players[0].dice_color == "blue"
        assert restored.active_player_index == 1

    def test_player_to_dict_shape(self):
        player = SessionPlayer(id="p1", name="Alice", engine=GameEngine())
        data = player.to_dict()
        assert set(data) == {"id", "name", "dice_color", "held_color", "state"}
        assert data["state"]["current_round"] == 1
