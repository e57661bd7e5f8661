import logging
import sys
from contextlib import nullcontext
from pathlib import Path
from typing import ContextManager, Optional

from capkeeper.log.handler import MainLogFileHandler

_main_log_handler: Optional[MainLogFileHandler] = None


class MainFormatter(logging.Formatter):
    """A custom formatter to handle regular logs and raw subprocess logs."""

    def format(self, record):
        # Output forwarded from the capture tool is printed as-is.
        if record.name.startswith('proc.'):
            return record.getMessage()

        # Temporarily change the format string for the superclass call.
        original_format = self._style._fmt
        self._style._fmt = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'
        formatted_message = super().format(record)
        self._style._fmt = original_format
        return formatted_message


def setup_logging(main_log_path: Optional[Path] = None, verbose: bool = False) -> Optional[MainLogFileHandler]:
    """
    Configures the root logger for the supervisor.
    This sets up handlers for the console and the main log file,
    clearing any previously configured handlers to prevent duplication.

    :param main_log_path: The main log file. Console-only logging when None.
    :param verbose: If True, DEBUG records reach both handlers.
    :return: The main log file handler, if one was installed.
    """
    global _main_log_handler
    level = logging.DEBUG if verbose else logging.INFO

    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if handler is _main_log_handler:
            handler.close()
    _main_log_handler = None

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- Main Log File Handler ---
    if main_log_path is not None:
        try:
            _main_log_handler = MainLogFileHandler(main_log_path)
            _main_log_handler.setLevel(level)
            root_logger.addHandler(_main_log_handler)
        except OSError as e:
            root_logger.error(f"Failed to open main log file '{main_log_path}': {e}. Logging to console only.")

    return _main_log_handler


def get_main_log_handler() -> Optional[MainLogFileHandler]:
    """Returns the handler installed by the last setup_logging call."""
    return _main_log_handler


def main_log_locked() -> ContextManager[None]:
    """Blocks writes to the main log file for the duration of the with-block."""
    if _main_log_handler is None:
        return nullcontext()
    return _main_log_handler.locked()

