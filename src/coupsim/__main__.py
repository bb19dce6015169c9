"""Main entry point for CoupSim.

    python -m coupsim simulate --players 4 --difficulty hard --seed 7
    python -m coupsim serve
"""

import argparse
import logging
import sys
from collections import Counter

from dotenv import load_dotenv

from .core.config import ServerConfig
from .core.enums import Difficulty
from .simulation import simulate_game
from .utils.logger import DEFAULT_LOG_DIR, setup_logger


def run_simulate(args: argparse.Namespace) -> int:
    logger = logging.getLogger("coupsim.simulate")
    wins = Counter()

    for game in range(args.games):
        seed = args.seed + game if args.seed is not None else None
        result = simulate_game(args.players, Difficulty(args.difficulty), seed=seed)
        if not result.finished:
            logger.error(f"Game {game + 1} did not finish")
            continue
        wins[result.winner_name] += 1
        logger.info(
            f"Game {game + 1}: {result.winner_name} wins after "
            f"{result.total_turns} turns ({result.total_actions} actions)"
        )

    if args.games > 1:
        logger.info("\n" + "=" * 40)
        for name, count in wins.most_common():
            logger.info(f"{name}: {count} win(s)")
    return 0


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .server.main import create_app

    config = ServerConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    uvicorn.run(create_app(config=config), host=config.host, port=config.port, log_config=None)
    return 0


def main(argv=None) -> int:
    """Main entry point for CoupSim."""
    load_dotenv()

    parser = argparse.ArgumentParser(prog="coupsim", description="Coup card game server and bot simulator")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--log-dir", nargs="?", const=DEFAULT_LOG_DIR, default=None,
        help=f"Also write a full log file (default directory: {DEFAULT_LOG_DIR})",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sim = sub.add_parser("simulate", help="Play all-bot games instantly")
    sim.add_argument("--players", type=int, default=4)
    sim.add_argument("--difficulty", choices=[d.value for d in Difficulty], default=Difficulty.MEDIUM.value)
    sim.add_argument("--seed", type=int, default=None)
    sim.add_argument("--games", type=int, default=1)
    sim.set_defaults(func=run_simulate)

    serve = sub.add_parser("serve", help="Run the HTTP/websocket server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=run_serve)

    args = parser.parse_args(argv)
    setup_logger(verbose=args.verbose, log_dir=args.log_dir, session=args.command)

    if not 2 <= args.__dict__.get("players", 2) <= 10:
        parser.error("--players must be between 2 and 10")

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
