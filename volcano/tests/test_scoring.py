"""
Tests for the scoring engine.

Tests:
- Points for success, early release, never pressed
- Cycle duration growth (normal vs hardcore) and skip penalty
- Preparation time growth
- Leaderboard normalization
"""

import pytest

from ..engine_core.state import GameSettings
from ..engine_core import scoring


class TestScoreTurn:
    """Tests for score_turn."""

    def test_success_scores_hold_plus_bonus(self):
        result = scoring.score_turn(True, 5.0, 10.0)
        assert result.points == 22
        assert result.success
        assert not result.skipped

    def test_long_cycle_bonus(self):
        """Cycles longer than 15 s earn the extra 10."""
        assert scoring.score_turn(True, 16.0, 16.0).points == 65

    def test_long_cycle_bonus_needs_strictly_longer(self):
        assert scoring.score_turn(True, 15.0, 15.0).points == 52

    def test_early_release_scores_hold_only(self):
        result = scoring.score_turn(False, 4.0, 10.0)
        assert result.points == 12
        assert not result.skipped

    def test_fractional_hold_floors(self):
        assert scoring.score_turn(False, 2.9, 10.0).points == 8

    def test_never_pressed_is_skipped(self):
        result = scoring.score_turn(False, 0.0, 10.0)
        assert result.points == 0
        assert result.skipped


class TestElimination:

    def test_hardcore_eliminates_on_first_failure(self):
        assert scoring.should_eliminate(True, 1)

    def test_normal_eliminates_on_third_failure(self):
        assert not scoring.should_eliminate(False, 2)
        assert scoring.should_eliminate(False, 3)


class TestCycleDuration:
    """Tests for cycle_duration and preparation_time."""

    def test_normal_mode_grows_per_round(self):
        settings = GameSettings()
        assert scoring.cycle_duration(settings, current_cycle=1, current_round=1) == 5.0
        assert scoring.cycle_duration(settings, current_cycle=4, current_round=1) == 5.0
        assert scoring.cycle_duration(settings, current_cycle=5, current_round=2) == 7.0

    def test_hardcore_grows_every_cycle(self):
        settings = GameSettings(hardcore_mode=True)
        durations = [
            scoring.cycle_duration(settings, current_cycle=c, current_round=1)
            for c in range(1, 6)
        ]
        assert durations == [5.0, 7.0, 9.0, 11.0, 13.0]

    def test_skip_penalty(self):
        settings = GameSettings(initial_cycle_duration=8.0)
        assert scoring.cycle_duration(settings, 1, 1, skipped_last_turn=True) == 6.0

    @pytest.mark.parametrize("initial", [3.0, 4.0, 5.0])
    def test_skip_penalty_never_below_minimum(self, initial):
        settings = GameSettings(initial_cycle_duration=initial, cycle_increment=0.5)
        assert scoring.cycle_duration(settings, 1, 1, skipped_last_turn=True) >= 3.0

    def test_preparation_time_grows_by_quarter_increment(self):
        settings = GameSettings(preparation_time=5.0, cycle_increment=2.0)
        assert scoring.preparation_time(settings, 1) == 5.0
        assert scoring.preparation_time(settings, 3) == 6.0


class TestNormalizedScore:

    def test_divides_by_rounds(self):
        assert scoring.normalized_score(65, 3) == 21

    def test_negative_truncates_toward_zero(self):
        assert scoring.normalized_score(-7, 3) == -2

    def test_zero_rounds_treated_as_one(self):
        assert scoring.normalized_score(10, 0) == 10
