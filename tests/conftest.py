"""Shared test fixtures."""

import logging
import sys
import time

import pytest

from capkeeper.local.config import MergedSettings
from capkeeper.log.handler import MainLogFileHandler
from capkeeper.log import setup as log_setup
from capkeeper.log.setup import MainFormatter
from capkeeper.local.supervisor import CaptureSupervisor

# Stand-in capture tool: writes its output file (last argument) and sleeps.
FAKE_CAPTURE = (
    "import pathlib, signal, sys, time\n"
    "if '--ignore-term' in sys.argv:\n"
    "    signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
    "pathlib.Path(sys.argv[-1]).write_text('')\n"
    "time.sleep(60)\n"
)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, MainLogFileHandler) or isinstance(handler.formatter, MainFormatter):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(logging.WARNING)
    log_setup._main_log_handler = None


@pytest.fixture
def settings(tmp_path):
    capture_dir = tmp_path / "captures"
    temp_dir = tmp_path / "tmp"
    capture_dir.mkdir()
    temp_dir.mkdir()
    return MergedSettings(
        overrides_path=tmp_path / "overrides.json",
        LOG_DIR=capture_dir,
        TEMP_DIR=temp_dir,
        MAIN_LOG_FILE="main.log",
        CAPTURE_EXECUTABLE=sys.executable,
        CAPTURE_ARGS=["-c", FAKE_CAPTURE],
        CAPTURE_OUTPUT_FLAG="-w",
        START_RETRY_DELAY=0.05,
        STOP_GRACE_PERIOD=0.5,
        TICK_INTERVAL=0.01,
        VERBOSE_LOGGING=False,
    )


@pytest.fixture
def supervisor(settings):
    sup = CaptureSupervisor(settings)
    yield sup
    sup.stop_capture()


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


@pytest.fixture
def wait_until():
    return wait_for
