"""
Game Log Test Suite

Tests for the game log recording system.

Sections:
    1. Individual logging — roll, hold, score field verification
    2. Filtering — get_turn_entries, get_score_entries
    3. Serialization — to_dict, recent
    4. Multiplayer — entries with different player_index
"""

from game_engine import Category
from game_log import GameLog

# ── 1. Individual logging ────────────────────────────────────────────────────


def test_log_roll():
    """log_roll creates an entry with correct fields."""
    log = GameLog()
    log.log_roll(turn=1, player_index=0, roll_number=1, dice_values=[1, 2, 3, 4, 5])
    e = log.entries[0]
    assert e.event_type == "roll"
    assert e.dice_values == (1, 2, 3, 4, 5)
    assert e.roll_number == 1
    assert e.category is None
    assert e.score is None


def test_log_score_accepts_key_string():
    log = GameLog()
    log.log_score(turn=3, player_index=0, category="full-house",
                  score=25, dice_values=[2, 2, 3, 3, 3])
    e = log.entries[0]
    assert e.event_type == "score"
    assert e.category == Category.FULL_HOUSE
    assert e.score == 25


def test_log_hold_change_stores_indices():
    """Hold flags are converted to the indices of held dice."""
    log = GameLog()
    log.log_hold_change(turn=2, player_index=0, holds=[True, False, True, False, True],
                        dice_values=[5, 1, 5, 2, 5])
    e = log.entries[0]
    assert e.event_type == "hold"
    assert e.held_indices == (0, 2, 4)


# ── 2. Filtering ─────────────────────────────────────────────────────────────


def test_get_turn_entries():
    log = GameLog()
    log.log_roll(turn=1, player_index=0, roll_number=1, dice_values=[1, 1, 1, 1, 1])
    log.log_score(turn=1, player_index=0, category=Category.ONES,
                  score=5, dice_values=[1, 1, 1, 1, 1])
    log.log_roll(turn=2, player_index=0, roll_number=1, dice_values=[2, 2, 2, 2, 2])

    turn1 = log.get_turn_entries(1)
    assert len(turn1) == 2
    assert all(e.turn == 1 for e in turn1)


def test_get_score_entries_in_order():
    log = GameLog()
    log.log_score(turn=1, player_index=0, category=Category.CHANCE,
                  score=15, dice_values=[1, 2, 3, 4, 5])
    log.log_roll(turn=2, player_index=0, roll_number=1, dice_values=[6, 6, 6, 6, 6])
    log.log_score(turn=2, player_index=0, category=Category.YAHTZEE,
                  score=50, dice_values=[6, 6, 6, 6, 6])

    scores = log.get_score_entries(player_index=0)
    assert [e.category for e in scores] == [Category.CHANCE, Category.YAHTZEE]


def test_clear():
    log = GameLog()
    log.log_roll(turn=1, player_index=0, roll_number=1, dice_values=[1, 2, 3, 4, 5])
    log.clear()
    assert log.entries == []


# ── 3. Serialization ─────────────────────────────────────────────────────────


def test_to_dict_is_json_safe():
    log = GameLog()
    log.log_score(turn=4, player_index=1, category=Category.SMALL_STRAIGHT,
                  score=30, dice_values=[1, 2, 3, 4, 6])
    assert log.entries[0].to_dict() == {
        "turn": 4,
        "player_index": 1,
        "event_type": "score",
        "dice_values": [1, 2, 3, 4, 6],
        "held_indices": None,
        "category": "small-straight",
        "score": 30,
        "roll_number": 0,
    }


def test_recent_returns_tail():
    log = GameLog()
    for t in range(1, 6):
        log.log_roll(turn=t, player_index=0, roll_number=1, dice_values=[t] * 5)
    assert [e["turn"] for e in log.recent(2)] == [4, 5]
    assert log.recent(0) == []


# ── 4. Multiplayer ────────────────────────────────────────────────────────────


def test_multiplayer_entries():
    """Entries with different player_index are filtered separately."""
    log = GameLog()
    log.log_score(turn=1, player_index=0, category=Category.ONES,
                  score=1, dice_values=[1, 2, 3, 4, 5])
    log.log_score(turn=1, player_index=1, category=Category.SIXES,
                  score=30, dice_values=[6, 6, 6, 6, 6])

    assert [e.score for e in log.get_score_entries(player_index=0)] == [1]
    assert [e.score for e in log.get_score_entries(player_index=1)] == [30]
    assert len(log.get_turn_entries(1, player_index=1)) == 1
