"""
Bots module - The simulated opponent.

Provides:
- OpponentPolicy: Interface for opponent turns
- SimulatedOpponent: Probability model pitched against the last player
- ScriptedOpponent: Fixed outcomes for tests and demos
"""

from .policy import OpponentPolicy, OpponentOutcome, SimulatedOpponent, ScriptedOpponent

__all__ = [
    "OpponentPolicy",
    "OpponentOutcome",
    "SimulatedOpponent",
    "ScriptedOpponent",
]
