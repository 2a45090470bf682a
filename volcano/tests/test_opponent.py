"""
Tests for opponent policies.

Tests:
- Each branch of the simulated opponent
- Seeded games replay identically
- Scripted opponent ordering
"""

import random

import pytest

from ..bots import OpponentOutcome, ScriptedOpponent, SimulatedOpponent
from ..engine_core.effects import RequestOpponentTurn


class FixedRandom(random.Random):
    """Returns a fixed roll and fixed uniform factor."""

    def __init__(self, roll: float, factor: float = 1.0):
        super().__init__(0)
        self.roll = roll
        self.factor = factor

    def random(self) -> float:
        return self.roll

    def uniform(self, a: float, b: float) -> float:
        return self.factor


def make_request(success=True, hold=10.0, cycle=10.0) -> RequestOpponentTurn:
    return RequestOpponentTurn(
        player_id="snoop",
        cycle_duration=cycle,
        reference_success=success,
        reference_hold=hold,
    )


class TestSimulatedOpponent:

    def test_worse_branch_fails_early(self):
        opponent = SimulatedOpponent(rng=FixedRandom(0.1, factor=0.4))
        outcome = opponent.play_turn(make_request())
        assert not outcome.success
        assert outcome.hold_seconds == pytest.approx(4.0)

    def test_similar_branch_matches_success(self):
        opponent = SimulatedOpponent(rng=FixedRandom(0.5))
        outcome = opponent.play_turn(make_request(success=True))
        assert outcome.success
        assert outcome.hold_seconds == 10.0

    def test_similar_branch_fails_near_reference(self):
        opponent = SimulatedOpponent(rng=FixedRandom(0.5, factor=0.8))
        outcome = opponent.play_turn(make_request(success=False, hold=5.0))
        assert not outcome.success
        assert outcome.hold_seconds == pytest.approx(4.0)

    def test_similar_branch_can_edge_past(self):
        opponent = SimulatedOpponent(rng=FixedRandom(0.5, factor=1.1))
        outcome = opponent.play_turn(make_request(success=False, hold=9.5))
        assert outcome.success
        assert outcome.hold_seconds == 10.0

    def test_better_branch_completes(self):
        opponent = SimulatedOpponent(rng=FixedRandom(0.9))
        outcome = opponent.play_turn(make_request(success=False, hold=1.0))
        assert outcome.success

    def test_hold_never_exceeds_cycle(self):
        opponent = SimulatedOpponent(seed=3)
        for _ in range(200):
            outcome = opponent.play_turn(make_request(success=False, hold=9.9))
            assert 0 < outcome.hold_seconds <= 10.0

    def test_same_seed_same_outcomes(self):
        a = SimulatedOpponent(seed=42)
        b = SimulatedOpponent(seed=42)
        request = make_request(success=False, hold=6.0)
        assert [a.play_turn(request) for _ in range(20)] == [
            b.play_turn(request) for _ in range(20)
        ]


class TestScriptedOpponent:

    def test_replays_then_repeats_last(self):
        opponent = ScriptedOpponent([
            OpponentOutcome(False, 2.0),
            OpponentOutcome(True, 5.0),
        ])
        outcomes = [opponent.play_turn(make_request()) for _ in range(3)]
        assert [o.success for o in outcomes] == [False, True, True]

    def test_requires_outcomes(self):
        with pytest.raises(ValueError):
            ScriptedOpponent([])

    def test_name(self):
        assert SimulatedOpponent(seed=1).get_name() == "SimulatedOpponent"
