"""
Volcano CLI - Command-line interface for the session controller.

Usage:
    volcano simulate [--players N] [--rounds R] [--seed S]   Headless game
    volcano serve [--host H] [--port P]                      Run the HTTP API
"""

import argparse
import logging
import random
import sys

from .config import AppConfig, configure_logging

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Volcano - Party game session controller",
        prog="volcano",
    )
    parser.add_argument("--log-level", help="Override VOLCANO_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Simulate command
    simulate_parser = subparsers.add_parser(
        "simulate", help="Play a game against the simulated appliance"
    )
    simulate_parser.add_argument("--players", type=int, default=2, help="Number of human players")
    simulate_parser.add_argument("--rounds", type=int, default=3, help="Rounds to play")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    simulate_parser.add_argument("--hardcore", action="store_true", help="Any failure eliminates")
    simulate_parser.add_argument(
        "--max-seconds", type=float, default=900.0, help="Give up after this much game time"
    )

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "simulate":
        return cmd_simulate(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


class ScriptedHolder:
    """
    Stands in for the people holding the button.

    Each human turn: sometimes never press, sometimes release early,
    otherwise hold to the end.
    """

    SKIP_CHANCE = 0.1
    EARLY_RELEASE_CHANCE = 0.3

    def __init__(self, rng: random.Random):
        self.rng = rng
        self._turn = None
        self._release_after = None

    def on_tick(self, controller) -> None:
        from .engine_core.state import GamePhase

        state = controller.state
        player = state.current_player
        if player is None or not player.is_human:
            return

        if state.phase == GamePhase.PREPARATION:
            turn = (state.current_cycle, player.player_id)
            if turn == self._turn:
                return
            self._turn = turn
            if self.rng.random() < self.SKIP_CHANCE:
                self._release_after = None
                return
            if self.rng.random() < self.EARLY_RELEASE_CHANCE:
                self._release_after = state.cycle_duration * self.rng.uniform(0.2, 0.9)
            else:
                self._release_after = None
            controller.set_hold(True)

        elif state.phase == GamePhase.ACTIVE and self._release_after is not None:
            held = state.clock - (state.hold_started_at or state.clock)
            if held >= self._release_after:
                self._release_after = None
                controller.set_hold(False)


def cmd_simulate(args):
    """Run a whole game headless and print the result."""
    from .bots import SimulatedOpponent
    from .device import DeviceCoordinator, SimulatedAppliance
    from .engine_core.state import GamePhase
    from .leaderboard import InMemoryLeaderboard
    from .session import SessionController

    config = AppConfig.from_env()
    seed = args.seed if args.seed is not None else config.seed
    rng = random.Random(seed)
    dt = config.tick_interval

    appliance = SimulatedAppliance()
    controller = None
    # Rate limits run on game time so the simulation can go faster than real time
    coordinator = DeviceCoordinator(appliance, clock=lambda: controller.state.clock)
    controller = SessionController(
        coordinator,
        leaderboard=InMemoryLeaderboard(),
        opponent=SimulatedOpponent(rng=random.Random(rng.random())),
    )

    result = controller.update_settings(total_rounds=args.rounds, hardcore_mode=args.hardcore)
    if not result.success:
        print(f"Error: {result.error}")
        sys.exit(1)
    for i in range(max(1, args.players)):
        controller.add_player(f"Player {i + 1}")
    result = controller.start_game()
    if not result.success:
        print(f"Error: {result.error}")
        sys.exit(1)

    holder = ScriptedHolder(rng)
    while controller.phase != GamePhase.FINISHED:
        if controller.state.clock >= args.max_seconds:
            print(f"Stopped after {args.max_seconds:.0f}s of game time (phase {controller.phase.value})")
            break
        appliance.advance(dt)
        controller.tick(dt)
        holder.on_tick(controller)

    print(f"\nGame over after {controller.state.clock:.1f}s of game time")
    print("\nRankings:")
    for i, player in enumerate(controller.rankings(), 1):
        flags = []
        if player.is_synthetic:
            flags.append("opponent")
        if player.is_eliminated:
            flags.append("eliminated")
        suffix = f" ({', '.join(flags)})" if flags else ""
        print(f"  {i}. {player.name}: {player.points} pts{suffix}")

    print("\nLeaderboard:")
    for entry in controller.leaderboard.entries():
        print(f"  {entry.player_name}: {entry.score} pts/round over {entry.rounds} rounds")
    return 0


def cmd_serve(args):
    """Run the HTTP API with a background game loop."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)

    from .api import create_app

    config = AppConfig.from_env()
    app = create_app(config=config, run_loop=True)
    logger.info("Serving on %s:%d (%s)", args.host, args.port, config.env)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    main()
