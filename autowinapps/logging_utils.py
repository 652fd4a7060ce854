from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

DEFAULT_LOG_PATH = str(Path.home() / ".cache/winapps-install.log")

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

console = Console(highlight=False)

_LEVEL_STYLES = {
    "DEBUG": ("VERBOSE", "blue"),
    "INFO": ("INFO", "blue"),
    "SUCCESS": ("SUCCESS", "green"),
    "WARNING": ("WARNING", "yellow"),
    "ERROR": ("ERROR", "red"),
    "CRITICAL": ("ERROR", "bold red"),
}


class StatusConsoleHandler(logging.Handler):
    """Render records as colour-coded ``[LEVEL] message`` lines."""

    def __init__(self, target: Optional[Console] = None, level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.console = target or console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            label, style = _LEVEL_STYLES.get(record.levelname, (record.levelname, "white"))
            self.console.print(f"[{style}][{label}][/{style}] {escape(record.getMessage())}")
        except Exception:
            self.handleError(record)


def log_success(logger: logging.Logger, msg: str, *args: object) -> None:
    logger.log(SUCCESS, msg, *args)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    verbose: bool = False,
    also_console: bool = True,
) -> str:
    """Configure logging.

    Every status message goes to the append-only log file and, colour-coded,
    to the terminal.

    Notes:
    - If the log directory is not writable we fall back to a file in the
      current working directory and report that path instead.
    - verbose only affects the console; the file always gets DEBUG.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_autowinapps_configured", False):
        return getattr(logger, "_autowinapps_log_path", log_path)

    chosen_path = log_path
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: logging.Handler
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        # Fall back to a writable location.
        chosen_path = str(Path.cwd() / "winapps-install.log")
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    file_handler.setLevel(logging.DEBUG)
    handlers.append(file_handler)

    if also_console:
        handlers.append(StatusConsoleHandler(level=logging.DEBUG if verbose else logging.INFO))

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_autowinapps_configured", True)
    setattr(logger, "_autowinapps_log_path", chosen_path)

    logging.getLogger(__name__).debug(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path


def reset_logging() -> None:
    """Drop handlers installed by configure_logging()."""

    logger = logging.getLogger()
    for h in list(logger.handlers):
        if isinstance(h, (logging.FileHandler, StatusConsoleHandler)):
            logger.removeHandler(h)
            h.close()
    setattr(logger, "_autowinapps_configured", False)
