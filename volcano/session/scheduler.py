"""
Timer Scheduler - One-shot timers on the session's logical clock.

Timers are keyed: scheduling a key that is already pending replaces it, so
there is at most one display delay, one priming pulse and one poll in
flight. Time only moves when the controller ticks, which keeps tests
deterministic.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any
import itertools
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Timer:
    key: str
    due: float
    action: Any  # engine_core.action.Action
    seq: int  # tie-breaker: earlier schedule fires first


class TimerScheduler:
    """Keyed one-shot timers, fired in due order."""

    def __init__(self):
        self._timers: dict[str, Timer] = {}
        self._seq = itertools.count()

    def schedule(self, key: str, due: float, action: Any) -> None:
        if key in self._timers:
            logger.debug("[timer-replace] %s", key)
        self._timers[key] = Timer(key=key, due=due, action=action, seq=next(self._seq))
        logger.debug("[timer-set] %s due=%.2f", key, due)

    def cancel(self, key: str) -> bool:
        return self._timers.pop(key, None) is not None

    def cancel_all(self) -> None:
        if self._timers:
            logger.debug("[timer-cancel] %s", ", ".join(sorted(self._timers)))
        self._timers.clear()

    def pop_due(self, now: float) -> Timer | None:
        """Remove and return the earliest timer due at `now`, if any."""
        due = [t for t in self._timers.values() if t.due <= now + 1e-9]
        if not due:
            return None
        timer = min(due, key=lambda t: (t.due, t.seq))
        del self._timers[timer.key]
        logger.debug("[timer-fire] %s", timer.key)
        return timer

    def pending(self) -> dict[str, float]:
        """Pending keys and their due times."""
        return {key: t.due for key, t in self._timers.items()}

    def __contains__(self, key: str) -> bool:
        return key in self._timers

    def __len__(self) -> int:
        return len(self._timers)
