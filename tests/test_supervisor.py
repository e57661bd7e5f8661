"""Tests for the supervisor loop, signal handling and the full run lifecycle."""

import os
import signal
import threading
import time

import pytest

from capkeeper.local.supervisor import CaptureSupervisor, SupervisorState
from capkeeper.local.supervisor import housekeeping, process_utils, sessions, startup
from capkeeper.log.setup import get_main_log_handler, setup_logging
from capkeeper.main import main


def quit_later(supervisor, delay, signum=signal.SIGTERM):
    timer = threading.Timer(delay, supervisor.request_quit, args=(signum,))
    timer.start()
    return timer


def signal_later(delay, signum=signal.SIGTERM):
    timer = threading.Timer(delay, os.kill, args=(os.getpid(), signum))
    timer.start()
    return timer


class TestStartCaptureLoop:
    def test_retries_until_started(self, supervisor, monkeypatch):
        outcomes = iter([False, False, True])
        calls = []

        def fake_start():
            calls.append(1)
            return next(outcomes)

        monkeypatch.setattr(supervisor, "start_capture", fake_start)
        assert supervisor.start_capture_loop() is True
        assert len(calls) == 3

    def test_quit_during_backoff(self, supervisor, settings, tmp_path):
        settings.CAPTURE_EXECUTABLE = str(tmp_path / "missing")
        settings.START_RETRY_DELAY = 10
        quit_later(supervisor, 0.1)

        started = time.monotonic()
        assert supervisor.start_capture_loop() is False
        assert time.monotonic() - started < 5
        assert supervisor.session is None
        assert supervisor.caught_signal == "SIGTERM"


class TestMainLoop:
    def test_quit_already_requested(self, supervisor):
        supervisor.request_quit()
        supervisor.main_loop()
        assert supervisor.state is SupervisorState.STOPPING

    def test_new_day_cleans_and_restarts(self, supervisor, settings, monkeypatch):
        settings.CAPTURE_CHECK_INTERVALS = 2
        supervisor.current_date = "2026-10-18"
        monkeypatch.setattr(sessions, "current_date", lambda: "2026-10-19")

        cleaned = []
        monkeypatch.setattr(housekeeping, "delete_old_capture_files",
                            lambda *args, **kwargs: cleaned.append(args) or [])

        def fake_restart():
            supervisor.current_date = "2026-10-19"
            supervisor.request_quit()
            return True

        monkeypatch.setattr(supervisor, "restart_capture", fake_restart)
        supervisor.main_loop()

        assert len(cleaned) == 1
        directory, pattern, days_old = cleaned[0][:3]
        assert directory == settings.LOG_DIR
        assert pattern == sessions.capture_file_pattern("capture-", "")
        assert days_old == 14

    def test_same_day_and_alive_keeps_running(self, supervisor, settings, monkeypatch):
        settings.CAPTURE_CHECK_INTERVALS = 1
        supervisor.current_date = sessions.current_date()
        monkeypatch.setattr(supervisor, "check_alive", lambda: True)
        monkeypatch.setattr(supervisor, "restart_capture", lambda: pytest.fail("unexpected restart"))

        quit_later(supervisor, 0.2)
        supervisor.main_loop()
        assert supervisor.state is SupervisorState.STOPPING

    def test_dead_capture_is_restarted(self, supervisor, settings, monkeypatch):
        settings.CAPTURE_CHECK_INTERVALS = 1
        supervisor.current_date = sessions.current_date()
        monkeypatch.setattr(supervisor, "check_alive", lambda: False)
        restarts = []

        def fake_restart():
            restarts.append(1)
            supervisor.request_quit()
            return True

        monkeypatch.setattr(supervisor, "restart_capture", fake_restart)
        supervisor.main_loop()
        assert restarts == [1]

    def test_cancelled_restart_ends_loop(self, supervisor, settings, monkeypatch):
        settings.CAPTURE_CHECK_INTERVALS = 1
        monkeypatch.setattr(sessions, "current_date", lambda: "2026-10-19")
        monkeypatch.setattr(housekeeping, "delete_old_capture_files", lambda *a, **k: [])
        monkeypatch.setattr(supervisor, "restart_capture", lambda: False)
        supervisor.main_loop()
        assert supervisor.state is SupervisorState.STOPPING

    def test_oversized_main_log_is_reduced(self, supervisor, settings):
        settings.CAPTURE_CHECK_INTERVALS = 100000
        settings.MAIN_LOG_CHECK_INTERVALS = 1
        settings.MAIN_LOG_FILE_MAX_SIZE = 1024
        settings.MAIN_LOG_FILE_ALLOWANCE = 256
        settings.DD_BLOCK_SIZE = 512
        main_log = settings.main_log_path
        data = bytes(range(256)) * 32
        main_log.write_bytes(data)
        setup_logging(main_log)

        quit_later(supervisor, 0.3)
        supervisor.main_loop()
        get_main_log_handler().flush()

        # (8192 - (1024 - 256)) // 512 = 14 blocks dropped, the last 1024 bytes kept.
        kept = main_log.read_bytes()
        assert kept[:1024] == data[-1024:]
        appended = kept[1024:].decode().splitlines()
        assert any("Reducing log data" in line for line in appended)
        assert appended[-1].endswith("Done.")

    def test_tick_counter_wraps(self, supervisor, settings, monkeypatch):
        settings.TICK_WRAP = 3
        settings.CAPTURE_CHECK_INTERVALS = 100000
        settings.MAIN_LOG_CHECK_INTERVALS = 100000
        # A wrapped counter of 0 triggers both periodic checks.
        supervisor.current_date = sessions.current_date()
        monkeypatch.setattr(supervisor, "check_alive", lambda: True)
        quit_later(supervisor, 0.2)
        supervisor.main_loop()
        assert 0 <= supervisor.tick < 3


class TestSignals:
    def test_signal_sets_quit_flag(self, supervisor, wait_until):
        previous = startup.install_signal_handlers(supervisor)
        try:
            os.kill(os.getpid(), signal.SIGTERM)
            assert wait_until(supervisor.quit_requested.is_set)
            assert supervisor.caught_signal == "SIGTERM"
        finally:
            startup.restore_signal_handlers(previous)
        assert signal.getsignal(signal.SIGTERM) == previous[signal.SIGTERM]

    def test_request_quit_without_signal(self):
        sup = CaptureSupervisor()
        sup.request_quit()
        assert sup.quit_requested.is_set()
        assert sup.caught_signal is None


class TestRun:
    def test_invalid_configuration_exits_nonzero(self, settings, monkeypatch):
        settings.MAIN_LOG_FILE_MAX_SIZE = settings.DD_BLOCK_SIZE
        launched = []
        monkeypatch.setattr(process_utils, "launch_capture", lambda *a, **k: launched.append(a))

        assert main(settings) == 1
        assert launched == []
        assert "MAIN_LOG_FILE_MAX_SIZE is not valid" in settings.main_log_path.read_text()

    def test_runs_until_signalled(self, settings, wait_until):
        sup = CaptureSupervisor(settings)
        setup_logging(settings.main_log_path)
        popens = []
        original_start = sup.start_capture

        def tracking_start():
            ok = original_start()
            if ok:
                popens.append(sup.session.popen)
            return ok

        sup.start_capture = tracking_start
        signal_later(0.5)
        assert sup.run() == 0

        assert sup.state is SupervisorState.STOPPED
        assert sup.session is None
        assert len(popens) == 1 and popens[0].poll() is not None

        text = settings.main_log_path.read_text()
        for expected in ("Starting up.", "Starting capture.", "Caught signal SIGTERM.",
                         "Shutting down.", "Stopping capture."):
            assert expected in text
        assert text.rstrip().endswith("-" * 40)

    def test_signal_during_first_start(self, settings):
        settings.CAPTURE_EXECUTABLE = str(settings.LOG_DIR / "missing-tool")
        settings.START_RETRY_DELAY = 10
        sup = CaptureSupervisor(settings)
        setup_logging(settings.main_log_path)

        signal_later(0.3, signal.SIGINT)
        assert sup.run() == 0
        assert sup.session is None

        text = settings.main_log_path.read_text()
        assert "Caught signal SIGINT." in text
        assert "Ending capture supervisor." in text
