"""
Dice Service Test Suite

Sections:
    1. Rolling — values, budget, held dice
    2. Holding — preconditions
    3. Listeners — immediate call, notifications, unsubscribe
    4. Rounds — reset and restore
"""
import random

import pytest

from dice_service import DiceService, DiceSnapshot


def _service(seed=1, **kwargs):
    return DiceService(rng=random.Random(seed), **kwargs)


# ── 1. Rolling ───────────────────────────────────────────────────────────────


class TestRolling:

    def test_initial_snapshot_is_blank(self):
        snap = _service().get_snapshot()
        assert snap == DiceSnapshot(values=(None,) * 5, held=(False,) * 5, rolls_this_round=0)

    def test_roll_all_fills_every_die(self):
        snap = _service().roll_all()
        assert all(1 <= v <= 6 for v in snap.values)
        assert snap.rolls_this_round == 1

    def test_all_faces_appear(self):
        seen = set()
        for seed in range(50):
            seen.update(_service(seed).roll_all().values)
        assert seen == {1, 2, 3, 4, 5, 6}

    def test_reroll_unheld_keeps_held_values(self):
        service = _service()
        first = service.roll_all()
        service.toggle_hold(0)
        service.toggle_hold(3)
        for _ in range(2):
            snap = service.reroll_unheld()
            assert snap.values[0] == first.values[0]
            assert snap.values[3] == first.values[3]

    def test_roll_budget(self):
        service = _service(max_rolls=2)
        service.roll_all()
        service.reroll_unheld()
        assert service.rolls_remaining == 0
        with pytest.raises(RuntimeError):
            service.reroll_unheld()

    def test_same_seed_same_dice(self):
        assert _service(7).roll_all() == _service(7).roll_all()


# ── 2. Holding ───────────────────────────────────────────────────────────────


class TestHolding:

    def test_hold_ignored_before_roll(self):
        service = _service()
        assert service.toggle_hold(0) is False
        assert service.get_snapshot().held == (False,) * 5

    def test_hold_out_of_range_ignored(self):
        service = _service()
        service.roll_all()
        assert service.toggle_hold(5) is False
        assert service.toggle_hold(-1) is False

    def test_hold_toggles(self):
        service = _service()
        service.roll_all()
        assert service.toggle_hold(2) is True
        assert service.get_snapshot().held[2] is True
        service.toggle_hold(2)
        assert service.get_snapshot().held[2] is False


# ── 3. Listeners ─────────────────────────────────────────────────────────────


class TestListeners:

    def test_listener_called_immediately(self):
        seen = []
        _service().on_change(seen.append)
        assert len(seen) == 1
        assert seen[0].rolls_this_round == 0

    def test_listener_sees_rolls_and_holds(self):
        seen = []
        service = _service()
        service.on_change(seen.append)
        service.roll_all()
        service.toggle_hold(1)
        assert [s.rolls_this_round for s in seen] == [0, 1, 1]
        assert seen[-1].held[1] is True

    def test_unsubscribe(self):
        seen = []
        service = _service()
        unsubscribe = service.on_change(seen.append)
        unsubscribe()
        unsubscribe()
        service.roll_all()
        assert len(seen) == 1


# ── 4. Rounds ────────────────────────────────────────────────────────────────


class TestRounds:

    def test_start_new_round_resets(self):
        service = _service()
        service.roll_all()
        service.toggle_hold(0)
        service.start_new_round()
        snap = service.get_snapshot()
        assert snap.values == (None,) * 5
        assert snap.held == (False,) * 5
        assert snap.rolls_this_round == 0

    def test_restore(self):
        service = _service()
        service.restore([1, 2, 3, 4, 5], [True, False, False, False, False], 2)
        snap = service.get_snapshot()
        assert snap.values == (1, 2, 3, 4, 5)
        assert snap.held[0] is True
        assert service.rolls_remaining == 1
