import os
import signal
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from .supervisor import CaptureSupervisor

log = logging.getLogger(__name__)

BANNER = "-" * 40
HANDLED_SIGNALS = (signal.SIGQUIT, signal.SIGINT, signal.SIGTERM)


def log_startup_banner() -> None:
    log.info(BANNER)
    log.info("Starting up.")
    log.info(f"PID: {os.getpid()}")


def log_closing_banner() -> None:
    log.info(BANNER)


def prepare_directories(log_dir: Path) -> None:
    """
    Creates the capture output directory.

    :param log_dir: Directory holding capture files and, usually, the main log.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)


def install_signal_handlers(manager: "CaptureSupervisor") -> Dict[int, Any]:
    """
    Routes termination signals to the supervisor's quit flag.

    The handler only records the signal and sets the flag; the loop logs it.

    :param manager: The CaptureSupervisor instance.
    :return: The previous handlers, for restore_signal_handlers.
    """
    def _handler(signum, frame):
        manager.request_quit(signum)

    previous = {}
    for signum in HANDLED_SIGNALS:
        previous[signum] = signal.signal(signum, _handler)
    return previous


def restore_signal_handlers(previous: Dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
