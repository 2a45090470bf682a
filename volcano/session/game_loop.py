"""
Game Loop - The periodic tick driver.

The loop:
1. Wait one interval (or until stopped)
2. Run any per-tick hooks (e.g. a simulated appliance's thermal model)
3. Tick the session controller, which fires due timers
4. Repeat

Tests do not start the thread; they call controller.tick() directly.
"""

from __future__ import annotations
from enum import Enum
from typing import Callable, TYPE_CHECKING
import logging
import threading

if TYPE_CHECKING:
    from .controller import SessionController

logger = logging.getLogger(__name__)


DEFAULT_TICK_INTERVAL = 0.1  # seconds


class LoopState(Enum):
    """State of the game loop."""
    STOPPED = "stopped"
    RUNNING = "running"


class GameLoop:
    """
    Drives SessionController.tick() from a daemon thread.

    Usage:
        loop = GameLoop(controller)
        loop.start()
        ...
        loop.stop()
    """

    def __init__(
        self,
        controller: SessionController,
        interval: float = DEFAULT_TICK_INTERVAL,
        on_tick: Callable[[float], None] | None = None,
    ):
        if interval <= 0:
            raise ValueError("Tick interval must be positive")
        self.controller = controller
        self.interval = interval
        self.on_tick = on_tick
        self.state = LoopState.STOPPED
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self.state == LoopState.RUNNING

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="volcano-game-loop", daemon=True)
        self.state = LoopState.RUNNING
        self._thread.start()
        logger.info("Game loop started (%.0f ms)", self.interval * 1000)

    def stop(self, timeout: float | None = 2.0) -> None:
        if not self.running:
            return
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self._thread = None
        self.state = LoopState.STOPPED
        logger.info("Game loop stopped")

    def step(self) -> None:
        """Run one tick on the calling thread."""
        if self.on_tick:
            self.on_tick(self.interval)
        self.controller.tick(self.interval)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.step()
            except Exception:
                logger.exception("Tick failed")
