"""
Leaderboard - Best score per player name across games.

The session only knows the Leaderboard protocol; where scores end up is
the host's business. InMemoryLeaderboard is the default and what the API
serves.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol
import logging
import threading
import uuid

logger = logging.getLogger(__name__)


MAX_ENTRIES = 50


@dataclass(frozen=True)
class HighScore:
    player_name: str
    score: int
    rounds: int
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Leaderboard(Protocol):
    def add_score(self, name: str, score: int, rounds: int) -> None: ...

    def entries(self) -> list[HighScore]: ...


class InMemoryLeaderboard:
    """
    Keeps each player's best score, highest first, at most 50 players.

    A new score replaces the stored one only if it is strictly higher.
    """

    def __init__(self, max_entries: int = MAX_ENTRIES):
        self.max_entries = max_entries
        self._scores: list[HighScore] = []
        self._lock = threading.Lock()

    def add_score(self, name: str, score: int, rounds: int) -> None:
        with self._lock:
            existing = next((s for s in self._scores if s.player_name == name), None)
            if existing is not None:
                if score <= existing.score:
                    return
                self._scores.remove(existing)
            self._scores.append(HighScore(player_name=name, score=score, rounds=rounds))
            self._scores.sort(key=lambda s: s.score, reverse=True)
            del self._scores[self.max_entries:]
        logger.info("Leaderboard: %s scored %d over %d rounds", name, score, rounds)

    def entries(self) -> list[HighScore]:
        with self._lock:
            return list(self._scores)

    def clear(self) -> None:
        with self._lock:
            self._scores.clear()
