import psutil
import logging
import subprocess
from capkeeper.local.supervisor.process_utils import get_process_from_pid, is_process_alive

log = logging.getLogger(__name__)


def _terminate_process(popen: subprocess.Popen) -> None:
    """Sends SIGTERM to the capture process."""
    try:
        log.debug(f"Sending SIGTERM to PID {popen.pid}")
        get_process_from_pid(popen.pid).terminate()
    except psutil.NoSuchProcess:
        log.warning(f"Process {popen.pid} no longer exists, skipping termination.")


def _forceful_kill(popen: subprocess.Popen) -> None:
    """Forcefully kills a process that didn't terminate gracefully."""
    log.warning(f"Capture process (PID {popen.pid}) did not terminate gracefully. Killing it.")
    try:
        get_process_from_pid(popen.pid).kill()
    except psutil.NoSuchProcess:
        log.warning(f"Process {popen.pid} no longer exists, skipping forceful kill.")
        return
    try:
        popen.wait(timeout=1)
    except subprocess.TimeoutExpired:
        log.error(f"Process {popen.pid} survived SIGKILL.")


def graceful_shutdown_sequence(popen: subprocess.Popen, grace_period: float) -> bool:
    """
    Runs the terminate, wait, kill sequence for the capture process.

    :param popen: The launched capture process.
    :param grace_period: Seconds to wait after SIGTERM before sending SIGKILL.
    :return: True if the process is gone afterwards.
    """
    _terminate_process(popen)

    try:
        popen.wait(timeout=grace_period)
    except subprocess.TimeoutExpired:
        pass

    if is_process_alive(popen):
        _forceful_kill(popen)
    return not is_process_alive(popen)
