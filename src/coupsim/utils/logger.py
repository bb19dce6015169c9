"""Logging configuration for CoupSim."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence


DEFAULT_LOG_DIR = "data/games"

# Console output is limited to these logger namespaces
CONSOLE_NAMESPACES = ("coupsim", "uvicorn.error")


def setup_logger(
    verbose: bool = False,
    log_dir: Optional[str] = None,
    session: str = "coupsim",
    console_namespaces: Sequence[str] = CONSOLE_NAMESPACES,
) -> logging.Logger:
    """
    Configure the root logger for a CLI session.

    Args:
        verbose: Show DEBUG records on the console (ignored commands,
            bot reasoning) instead of INFO and above
        log_dir: If set, also write every record to
            <log_dir>/<session>_<timestamp>.log
        session: Prefix for the log file name, e.g. "simulate" or "serve"
        console_namespaces: Logger name prefixes echoed to the console

    Returns:
        Configured root logger
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter("%(message)s"))
    prefixes = tuple(console_namespaces)
    console.addFilter(lambda record: record.name.startswith(prefixes))
    root.addHandler(console)

    if log_dir:
        try:
            directory = Path(log_dir)
            directory.mkdir(parents=True, exist_ok=True)
            log_file = directory / f"{session}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S"
            ))
            root.addHandler(file_handler)
            root.info(f"Logging to file: {log_file}")
        except OSError as e:
            root.error(f"Failed to create file handler: {e}")

    return root
