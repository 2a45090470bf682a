"""
Opponent Policy - Interface for the simulated opponent.

The opponent never touches the appliance. When its turn comes up the
session asks the policy for an outcome (success + seconds held) and feeds
it through the same completion path a human turn takes, so scoring,
elimination and rotation are shared.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
import random

from ..engine_core.effects import RequestOpponentTurn


@dataclass(frozen=True)
class OpponentOutcome:
    """
    A simulated turn.

    Contains:
    - Whether the cycle was completed
    - Seconds "held"
    - Explanation (for UI/debugging)
    """
    success: bool
    hold_seconds: float
    explanation: str = ""


class OpponentPolicy(ABC):
    """
    Abstract base class for opponent policies.

    A policy turns the previous player's performance into an outcome for
    the opponent's own cycle.
    """

    @abstractmethod
    def play_turn(self, request: RequestOpponentTurn) -> OpponentOutcome:
        """
        Produce an outcome for the opponent's cycle.

        Args:
            request: Cycle length plus the previous turn's result

        Returns:
            OpponentOutcome to apply as a completed turn
        """
        pass

    def get_name(self) -> str:
        """Get the policy's name/identifier."""
        return self.__class__.__name__


class SimulatedOpponent(OpponentPolicy):
    """
    Competitive but beatable opponent.

    Pitches itself against the previous turn:
    - 35%: does worse, coughs after 25-55% of the cycle
    - 35%: does about the same - completes if the previous player did,
      otherwise fails near the previous hold time
    - 30%: does better, completes the cycle

    Randomness comes from an injectable random.Random so games replay
    exactly under a fixed seed.
    """

    WORSE_CHANCE = 0.35
    SIMILAR_CHANCE = 0.35

    def __init__(self, seed: int | None = None, rng: random.Random | None = None):
        self.rng = rng or random.Random(seed)

    def play_turn(self, request: RequestOpponentTurn) -> OpponentOutcome:
        cycle = request.cycle_duration
        roll = self.rng.random()

        if roll < self.WORSE_CHANCE:
            hold = cycle * self.rng.uniform(0.25, 0.55)
            return OpponentOutcome(False, hold, f"coughed at {hold:.1f}s")

        if roll < self.WORSE_CHANCE + self.SIMILAR_CHANCE:
            if request.reference_success:
                return OpponentOutcome(True, cycle, "matched the last player")
            hold = min(cycle, request.reference_hold * self.rng.uniform(0.7, 1.1))
            if hold >= cycle:
                return OpponentOutcome(True, cycle, "edged past the last player")
            return OpponentOutcome(False, hold, f"also failed at {hold:.1f}s")

        return OpponentOutcome(True, cycle, "nailed it")


class ScriptedOpponent(OpponentPolicy):
    """
    Replays fixed outcomes in order, then repeats the last one.

    Used for:
    - Testing
    - Deterministic demos
    """

    def __init__(self, outcomes: list[OpponentOutcome]):
        if not outcomes:
            raise ValueError("ScriptedOpponent needs at least one outcome")
        self._outcomes = list(outcomes)
        self._index = 0

    def play_turn(self, request: RequestOpponentTurn) -> OpponentOutcome:
        outcome = self._outcomes[min(self._index, len(self._outcomes) - 1)]
        self._index += 1
        return outcome
