# src/taskdeck/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- runs the command given on the command line once (`taskdeck /tasks`), or
- starts the interactive console.
"""

from __future__ import annotations

import logging
import signal
import sys

from ..cli.bootstrap import create_initial_state, shutdown
from ..config import get_settings
from ..core.errors import InvalidKeyError
from ..logging_setup import setup_logging
from .console import run_command, run_console_loop

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    settings = get_settings()

    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s...", settings.app_name)
    logger.debug("Logging to %s", log_file)

    # IMPORTANT: reuse same settings object
    try:
        state = create_initial_state(settings=settings)
    except InvalidKeyError as e:
        logger.error("Bad workspace key in configuration: %s", e)
        return 2

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        raise KeyboardInterrupt

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError, AttributeError):
        # Not in the main thread, or the platform has no SIGTERM.
        pass

    try:
        if argv:
            print(run_command(state, " ".join(argv)))
        else:
            run_console_loop(state)
    except KeyboardInterrupt:
        pass
    finally:
        shutdown(state)
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
