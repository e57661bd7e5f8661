import psutil
import logging
import threading
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional

if TYPE_CHECKING:
    from capkeeper.local.config import MergedSettings

log = logging.getLogger(__name__)


#* --- Process Status & Monitoring ---
def pid_exists(pid: int) -> bool:
    """A wrapper for psutil.pid_exists for easy testing/mocking if needed."""
    return psutil.pid_exists(pid)

def get_process_from_pid(pid: int) -> psutil.Process:
    """A wrapper for psutil.Process for easy testing/mocking if needed."""
    return psutil.Process(pid)

def get_proc_status_string(pid: int) -> str:
    """Gets a string representation of a process status."""
    try:
        if get_process_from_pid(pid).status() == psutil.STATUS_ZOMBIE:
            return "zombie"
        return "running"
    except psutil.NoSuchProcess:
        return "stopped"
    except psutil.Error:
        return "unknown"

def is_process_alive(popen: Optional[subprocess.Popen]) -> bool:
    """
    Liveness probe for a launched child.

    poll() reaps the child once it has exited, so a dead capture process never
    lingers as a zombie whose PID would still look alive.
    """
    if popen is None or popen.pid <= 0:
        return False
    if popen.poll() is not None:
        return False
    if not pid_exists(popen.pid):
        return False
    return get_proc_status_string(popen.pid) == "running"

#* --- Process Creation ---
def get_capture_args(config: "MergedSettings", output_path: Path) -> List[str]:
    """Returns the command-line arguments for the capture tool writing to output_path."""
    return [
        str(config.CAPTURE_EXECUTABLE),
        *[str(arg) for arg in config.CAPTURE_ARGS],
        str(config.CAPTURE_OUTPUT_FLAG),
        str(output_path),
    ]

def _read_pipe(pipe, process_name: str, level: int, line_handler: Optional[Callable] = None):
    """Target function for reader threads. Reads and logs lines from a subprocess pipe."""
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for line_bytes in iter(pipe.readline, b""):
            line = line_bytes.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            if line_handler:
                line_handler(line)
            else:
                proc_logger.log(level, line)
    except (OSError, ValueError) as e:
        proc_logger.debug(f"Pipe reader for {process_name} stream exited: {e}")
    finally:
        pipe.close()

def log_process_output(process: subprocess.Popen, name: str, line_handler: Optional[Callable] = None):
    """Starts background threads to consume and log a process's stdout/stderr."""
    if process.stdout:
        threading.Thread(target=_read_pipe, args=(process.stdout, name, logging.INFO, line_handler), daemon=True, name=f"{name}-stdout").start()
    if process.stderr:
        # The capture tool reports its normal status ("listening on ...") on stderr.
        threading.Thread(target=_read_pipe, args=(process.stderr, name, logging.INFO), daemon=True, name=f"{name}-stderr").start()

def launch_capture(config: "MergedSettings", output_path: Path) -> subprocess.Popen:
    """
    Launches the capture tool in its own session, writing to output_path.

    :raises OSError: If the executable cannot be started.
    """
    args = get_capture_args(config, output_path)
    log.debug(f"Launching capture: {args}")
    p = subprocess.Popen(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        start_new_session=True,
    )
    log_process_output(p, "capture")
    return p
