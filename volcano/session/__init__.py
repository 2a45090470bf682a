"""
Session Module - Runs one game against one appliance.

A session is in-memory only:
- SessionController owns the state and is the only writer
- TimerScheduler holds display delays, the priming pulse and polls
- GameLoop ticks the controller in the background

Nothing about a session is persisted except leaderboard scores, and those
go through the Leaderboard collaborator.
"""

from .scheduler import TimerScheduler, Timer
from .controller import SessionController
from .game_loop import GameLoop, LoopState, DEFAULT_TICK_INTERVAL

__all__ = [
    "TimerScheduler",
    "Timer",
    "SessionController",
    "GameLoop",
    "LoopState",
    "DEFAULT_TICK_INTERVAL",
]
