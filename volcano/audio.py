"""
Audio Cues - What the session wants the host to play.

The session emits cue names; picking and playing a sound file is up to
the host.
"""

from __future__ import annotations
from typing import Protocol
import logging

logger = logging.getLogger(__name__)


class AudioCues(Protocol):
    def play(self, cue: str) -> None: ...


class NullAudioCues:
    """Plays nothing."""

    def play(self, cue: str) -> None:
        logger.debug("Audio cue: %s", cue)


class RecordingAudioCues:
    """Remembers every cue, in order."""

    def __init__(self):
        self.played: list[str] = []

    def play(self, cue: str) -> None:
        self.played.append(cue)
