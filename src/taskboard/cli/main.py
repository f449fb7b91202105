# src/taskboard/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (hydrating the task store from disk),
then runs the console REPL until /exit or EOF.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    # Every mutation is already persisted; this only records the final counts.
    try:
        store = state.store
        logger.info("Final state: tasks=%d tags=%d", len(store.tasks), len(store.tags))
    except Exception:
        logger.debug("Shutdown summary failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    console_level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled (TASKBOARD_CONSOLE_ENABLED=false); nothing to run.")
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
