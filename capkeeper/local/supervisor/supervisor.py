import signal
import logging
import threading
from enum import Enum
from typing import Optional
from capkeeper.local.config import MergedSettings, effective_settings
from capkeeper.log.setup import main_log_locked
from capkeeper.local.supervisor import config_utils, housekeeping, process_utils, sessions, shutdown, startup
from capkeeper.local.supervisor.sessions import Session

log = logging.getLogger(__name__)


class SupervisorState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    RESTARTING = "restarting"
    STOPPING = "stopping"
    STOPPED = "stopped"


class CaptureSupervisor:
    """
    Keeps one capture process running and the capture directory tidy.

    A new capture session is started every calendar day, capture files past the
    retention age are deleted at each day boundary, and the main log file is
    cut down whenever it grows past its size limit. All state lives on the
    instance; signal handlers only set `quit_requested`.
    """

    def __init__(self, config: Optional[MergedSettings] = None) -> None:
        """Initializes the supervisor state."""
        self.config = config if config is not None else effective_settings
        self.current_date: str = ""
        self.session: Optional[Session] = None
        self.quit_requested = threading.Event()
        self.caught_signal: Optional[str] = None
        self.tick = 0
        self.state = SupervisorState.STARTING
        self._signal_logged = False

    @property
    def pid(self) -> int:
        """PID of the tracked capture process, 0 when none is tracked."""
        return self.session.pid if self.session else 0

    def request_quit(self, signum: Optional[int] = None) -> None:
        """Sets the quit flag. Safe to call from a signal handler."""
        if signum is not None:
            try:
                self.caught_signal = signal.Signals(signum).name
            except ValueError:
                self.caught_signal = str(signum)
        self.quit_requested.set()

    def _quit_observed(self) -> bool:
        if not self.quit_requested.is_set():
            return False
        if self.caught_signal and not self._signal_logged:
            log.info(f"Caught signal {self.caught_signal}.")
            self._signal_logged = True
        return True

    def check_alive(self) -> bool:
        """True if the tracked capture process still exists and is not a zombie."""
        return self.session is not None and process_utils.is_process_alive(self.session.popen)

    def start_capture(self) -> bool:
        """
        Launches the capture tool for a new session of today's date.

        :return: True if the process was started and is running, False otherwise.
        """
        log.info("Starting capture.")
        cfg = self.config
        self.current_date = sessions.current_date()

        in_use = []
        if self.session and self.session.date == self.current_date and self.check_alive():
            in_use.append(self.session.sequence)
        sequence = sessions.next_sequence_number(
            cfg.LOG_DIR, cfg.CAPTURE_FILE_PREFIX, self.current_date, cfg.CAPTURE_FILE_SUFFIX, in_use
        )
        output_path = sessions.output_path_for(
            cfg.LOG_DIR, cfg.CAPTURE_FILE_PREFIX, self.current_date, cfg.CAPTURE_FILE_SUFFIX, sequence
        )

        try:
            popen = process_utils.launch_capture(cfg, output_path)
        except OSError as e:
            log.error(f"Failed to launch '{cfg.CAPTURE_EXECUTABLE}': {e}")
            self.session = None
            return False

        self.session = Session(self.current_date, sequence, output_path, popen.pid, popen)
        log.info(f"PID of capture: {popen.pid}")

        if not self.check_alive():
            log.error(f"Capture process exited right after launch (exit code {popen.poll()}).")
            self.session = None
            return False
        return True

    def start_capture_loop(self) -> bool:
        """
        Retries start_capture with a fixed delay until it succeeds or quit is requested.

        :return: True once a session is running, False if cancelled.
        """
        delay = self.config.START_RETRY_DELAY
        while not self.start_capture():
            log.error(f"Error: Failed to start capture. Waiting for {delay} seconds before next attempt.")
            self.quit_requested.wait(delay)

            if self._quit_observed():
                log.info("Ending capture supervisor.")
                return False
        return True

    def stop_capture(self) -> None:
        """Terminates the tracked capture process, killing it if it ignores SIGTERM."""
        session = self.session
        if session is None or not self.check_alive():
            log.debug("No live capture process to stop.")
            self.session = None
            return

        log.info("Stopping capture.")
        try:
            shutdown.graceful_shutdown_sequence(session.popen, self.config.STOP_GRACE_PERIOD)
        finally:
            self.session = None

    def restart_capture(self) -> bool:
        """Stops the current capture, if any, and starts a new session."""
        log.info("Restarting capture.")
        self.state = SupervisorState.RESTARTING
        self.stop_capture()
        started = self.start_capture_loop()
        if started:
            self.state = SupervisorState.RUNNING
        return started

    def _clean_old_captures(self) -> None:
        cfg = self.config
        pattern = sessions.capture_file_pattern(cfg.CAPTURE_FILE_PREFIX, cfg.CAPTURE_FILE_SUFFIX)
        try:
            housekeeping.delete_old_capture_files(cfg.LOG_DIR, pattern, cfg.DAYS_OLD, cfg.CAPTURE_AGE_ATTRIBUTE)
        except OSError as e:
            log.error(f"Cleanup of old capture files failed: {e}")

    def _check_capture(self) -> bool:
        """Handles the day boundary and a capture process that died. False if quit cut a restart short."""
        if sessions.current_date() != self.current_date:
            log.info("A new day has come.")
            self._clean_old_captures()
            return self.restart_capture()

        if not self.check_alive():
            log.warning(f"Capture process (PID {self.pid}) is no longer running.")
            return self.restart_capture()
        return True

    def _check_main_log(self) -> None:
        cfg = self.config
        with main_log_locked():
            housekeeping.reduce_log_file(
                cfg.main_log_path,
                cfg.MAIN_LOG_FILE_MAX_SIZE,
                cfg.MAIN_LOG_FILE_ALLOWANCE,
                cfg.DD_BLOCK_SIZE,
                cfg.TEMP_DIR,
            )

    def main_loop(self) -> None:
        """Ticks until quit is requested, running the periodic capture and log checks."""
        cfg = self.config
        self.state = SupervisorState.RUNNING
        self.tick = 1

        while True:
            self.quit_requested.wait(cfg.TICK_INTERVAL)
            if self._quit_observed():
                break

            if self.tick % cfg.CAPTURE_CHECK_INTERVALS == 0 and not self._check_capture():
                break

            if self.tick % cfg.MAIN_LOG_CHECK_INTERVALS == 0:
                self._check_main_log()

            self.tick = (self.tick + 1) % cfg.TICK_WRAP

        self.state = SupervisorState.STOPPING

    def shutdown(self) -> None:
        """Stops the capture process if it is alive and writes the closing banner."""
        self.state = SupervisorState.STOPPING
        log.info("Shutting down.")
        self.stop_capture()
        startup.log_closing_banner()
        self.state = SupervisorState.STOPPED

    def run(self) -> int:
        """
        Runs the supervisor until a termination signal arrives.

        :return: Process exit code, 1 for invalid configuration, otherwise 0.
        """
        startup.log_startup_banner()

        if not config_utils.check_configuration(self.config):
            return 1
        config_utils.check_capture_executable(self.config)

        try:
            startup.prepare_directories(self.config.LOG_DIR)
        except OSError as e:
            log.critical(f"Could not create capture directory '{self.config.LOG_DIR}': {e}")
            return 1

        previous_handlers = startup.install_signal_handlers(self)
        try:
            if self.start_capture_loop():
                self.main_loop()
        finally:
            self.shutdown()
            startup.restore_signal_handlers(previous_handlers)
        return 0
