# src/taskdeck/cli/console.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..core.state import AppState
from .commands import registry as command_registry

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("/exit", "/quit")


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def run_command(state: AppState, line: str) -> str:
    """Run one console line and return what should be printed."""
    line = line.strip()
    if not line.startswith("/"):
        # Bare text is shorthand for /add.
        line = f"/add {line}"
    try:
        reply = command_registry.handle(state, line, emit=_print_ts)
    except Exception:
        logger.exception("Command handler crashed.")
        return "Internal error while handling a command."
    return reply if reply is not None else ""


def run_console_loop(state: AppState) -> None:
    logger.info("Console started (storage=%s).", state.settings.storage_backend)
    _print_ts("[CONSOLE] Type a task title to add it. Use /help for commands, /exit to quit.\n")

    while True:
        try:
            prompt = "task> " if state.currently_editing is None else "edit> "
            user_input = input(prompt).strip()
            _rewrite_prev_line(f"[{_ts_local()}] {prompt}{user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in EXIT_COMMANDS:
            logger.info("Console exit command received.")
            break

        _print_ts(run_command(state, user_input))

    logger.info("Console finished.")
