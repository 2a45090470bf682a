"""
Scoring Engine - Pure functions for points and cycle timing.

Nothing here touches session state; the reducer feeds in the numbers
and applies the results.
"""

from __future__ import annotations
from dataclasses import dataclass
import math

from .state import GameSettings


POINTS_PER_SECOND = 3
COMPLETION_BONUS = 7
LONG_CYCLE_BONUS = 10
LONG_CYCLE_THRESHOLD = 15.0  # seconds, compared against the configured cycle length

ELIMINATION_PENALTY = 15
EMERGENCY_STOP_PENALTY = 10
MAX_CONSECUTIVE_FAILURES = 3

SKIP_PENALTY_SECONDS = 2.0
MIN_CYCLE_DURATION = 3.0


@dataclass(frozen=True)
class TurnScore:
    """Outcome of scoring one cycle."""
    points: int
    skipped: bool  # never pressed
    success: bool


def score_turn(success: bool, hold_seconds: float, cycle_duration: float) -> TurnScore:
    """
    Score one cycle.

    Success: 3 points per second held, +7 for completing, +10 more when the
    cycle itself was longer than 15 seconds. Early release: 3 points per
    second held, no bonuses. Never pressed: nothing, and the turn counts as
    skipped.
    """
    hold_seconds = max(0.0, hold_seconds)

    if success:
        points = math.floor(hold_seconds * POINTS_PER_SECOND) + COMPLETION_BONUS
        if cycle_duration > LONG_CYCLE_THRESHOLD:
            points += LONG_CYCLE_BONUS
        return TurnScore(points=points, skipped=False, success=True)

    if hold_seconds > 0:
        return TurnScore(
            points=math.floor(hold_seconds * POINTS_PER_SECOND),
            skipped=False,
            success=False,
        )

    return TurnScore(points=0, skipped=True, success=False)


def should_eliminate(hardcore_mode: bool, consecutive_failures: int) -> bool:
    """Failure eliminates in hardcore mode, or on the third failure in a row."""
    return hardcore_mode or consecutive_failures >= MAX_CONSECUTIVE_FAILURES


def cycle_duration(
    settings: GameSettings,
    current_cycle: int,
    current_round: int,
    skipped_last_turn: bool = False,
) -> float:
    """
    Length of the hold phase for the player about to play.

    Hardcore mode grows every cycle, normal mode once per round. A player who
    skipped their previous turn gets 2 seconds less, never below 3.
    """
    n = current_cycle if settings.hardcore_mode else current_round
    duration = settings.initial_cycle_duration + settings.cycle_increment * (n - 1)
    if skipped_last_turn:
        duration = max(MIN_CYCLE_DURATION, duration - SKIP_PENALTY_SECONDS)
    return duration


def preparation_time(settings: GameSettings, current_round: int) -> float:
    """Prep time grows by a quarter of the cycle increment per round."""
    return settings.preparation_time + (settings.cycle_increment / 4.0) * (current_round - 1)


def normalized_score(points: int, total_rounds: int) -> int:
    """
    Per-round score submitted to the leaderboard.

    Truncates toward zero so negative totals round the same way as positive
    ones.
    """
    rounds = max(1, total_rounds)
    quotient = abs(points) // rounds
    return quotient if points >= 0 else -quotient
