"""Logging for mipsat: the package root logger plus the per-call SolverLogger."""
from __future__ import annotations

import logging
import sys
import threading
from typing import Callable, Iterable, Optional

from mipsat.settings import settings

log = logging.getLogger(__name__)

_ROOT_LOGGER_CONFIGURED = False


def setup_logging(
    level: int | str | None = None,
    format_string: Optional[str] = None,
    handler: Optional[logging.Handler] = None,
) -> None:
    """Attach a single handler to the 'mipsat' logger. Later calls are no-ops. Level defaults to settings.log_level."""
    global _ROOT_LOGGER_CONFIGURED

    if _ROOT_LOGGER_CONFIGURED:
        return

    root_logger = logging.getLogger("mipsat")
    root_logger.setLevel(level if level is not None else settings.log_level.upper())
    root_logger.handlers.clear()

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)

    handler.setFormatter(logging.Formatter(format_string))
    root_logger.addHandler(handler)

    # Let logs propagate so pytest's caplog still sees them
    root_logger.propagate = True

    _ROOT_LOGGER_CONFIGURED = True


class SolverLogger:
    """
    Search-progress sink for one solve call.

    Lines go to the module logger, optionally to stdout, and to every
    registered callback. The engine may write here from its own threads while
    the pipeline writes from the calling thread, so writes are serialized.
    """

    def __init__(
        self,
        enabled: bool = False,
        log_to_stdout: bool = False,
        callbacks: Iterable[Callable[[str], None]] = (),
    ):
        self.enabled = enabled
        self.log_to_stdout = log_to_stdout
        self._callbacks = list(callbacks)
        self._lock = threading.Lock()

    def add_callback(self, callback: Callable[[str], None]) -> None:
        self._callbacks.append(callback)

    def log(self, message: str, *args) -> None:
        if not self.enabled:
            return
        text = message % args if args else message
        with self._lock:
            log.info(text)
            if self.log_to_stdout:
                sys.stdout.write(text + "\n")
                sys.stdout.flush()
            for callback in self._callbacks:
                callback(text)


def format_response_stats(
    status: str,
    objective: float | None = None,
    best_bound: float | None = None,
    wall_time: float = 0.0,
    user_time: float = 0.0,
) -> str:
    """Status block in the CP-SAT summary layout, so scripts can parse every exit path alike."""
    def fmt(value):
        return "NA" if value is None else f"{value:.17g}"

    lines = [
        "CpSolverResponse summary:",
        f"status: {status}",
        f"objective: {fmt(objective)}",
        f"best_bound: {fmt(best_bound)}",
        f"walltime: {wall_time:g}",
        f"usertime: {user_time:g}",
    ]
    return "\n".join(lines)
