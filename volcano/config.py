"""
Central configuration.

Everything tunable at deploy time comes from the environment:

    VOLCANO_ENV            development | production (default development)
    VOLCANO_LOG_LEVEL      DEBUG, INFO, ... (default INFO)
    VOLCANO_TICK_INTERVAL  game loop tick in seconds (default 0.1)
    VOLCANO_SEED           seed for the simulated opponent (default random)
    ALLOWED_ORIGINS        comma-separated CORS origins (default *)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import os


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class AppConfig:
    env: str = "development"
    log_level: str = "INFO"
    tick_interval: float = 0.1
    seed: int | None = None
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> AppConfig:
        seed = os.getenv("VOLCANO_SEED")
        tick_interval = float(os.getenv("VOLCANO_TICK_INTERVAL", "0.1"))
        if tick_interval <= 0:
            raise ValueError("VOLCANO_TICK_INTERVAL must be positive")
        return cls(
            env=os.getenv("VOLCANO_ENV", "development"),
            log_level=os.getenv("VOLCANO_LOG_LEVEL", "INFO").upper(),
            tick_interval=tick_interval,
            seed=int(seed) if seed else None,
            allowed_origins=[
                o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()
            ],
        )


def configure_logging(level: str | None = None) -> None:
    """Root logging setup for the CLI and the server."""
    level = (level or os.getenv("VOLCANO_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
