"""Logging configuration for dotdeploy.

Console output goes through rich so it shares the console used for tables and
progress lines; an optional log file receives every record at DEBUG level in a
plain, greppable format.

Example:
    ```python
    from dotdeploy.core.logging import setup_logging

    setup_logging(debug=True, log_file="~/.cache/dotdeploy/deploy.log")
    ```
"""

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from rich.console import Console
from rich.logging import RichHandler

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    log_format: str = LOG_FORMAT,
    log_console: Optional[Console] = None,
) -> None:
    """Set up logging configuration.

    Args:
        debug: Whether to enable debug logging on the console.
        log_file: Optional path to a log file; ``~`` is expanded and parent
            directories are created.
        log_format: Format string for the log file.
        log_console: Console the rich handler writes to, the shared module
            console by default.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=log_console or console,
        show_path=debug,
        enable_link_path=debug,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=debug,
    )
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)  # Always log debug to file
        file_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized (debug=%s)", debug)
    if log_file:
        logger.debug("Log file: %s", log_file)

    def handle_exception(
        exc_type: Type[BaseException],
        exc_value: BaseException,
        exc_traceback: Optional[TracebackType],
    ) -> None:
        """Log uncaught exceptions instead of printing a bare traceback."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    sys.excepthook = handle_exception
