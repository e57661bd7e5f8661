"""
This module contains the default configuration settings for capkeeper.
It defines paths, capture tool invocation, housekeeping thresholds and loop timing.
Every value can be overridden through the environment (or a .env file), and the
ones listed in MODIFIABLE_SETTINGS through the JSON overrides file as well.
"""

import os
import shlex
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)


def _int_env(name: str, default: int):
    """Reads an integer from the environment, keeping malformed values for validation to report."""
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    return int(raw) if raw.isdigit() else raw


def _bool_env(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 't', 'yes', 'y')


#* --- Core Paths ---
LOG_DIR = pathlib.Path(os.getenv("CAPKEEPER_LOG_DIR", "/var/log/tcpdump"))
TEMP_DIR = pathlib.Path(os.getenv("CAPKEEPER_TEMP_DIR", "/var/tmp"))
OVERRIDES_JSON_PATH = pathlib.Path(os.getenv("CAPKEEPER_OVERRIDES", "/etc/capkeeper/overrides.json"))

#* --- Main Log File ---
# LOG_DIR is prepended when this is a bare file name.
MAIN_LOG_FILE = os.getenv("CAPKEEPER_MAIN_LOG_FILE", "main.log")
MAIN_LOG_FILE_MAX_SIZE = _int_env("CAPKEEPER_MAIN_LOG_FILE_MAX_SIZE", 20 * 1024 * 1024)  # bytes, reduced above this
MAIN_LOG_FILE_ALLOWANCE = _int_env("CAPKEEPER_MAIN_LOG_FILE_ALLOWANCE", 1 * 1024 * 1024)  # bytes of headroom after reduction
MAIN_LOG_CHECK_INTERVALS = _int_env("CAPKEEPER_MAIN_LOG_CHECK_INTERVALS", 300)  # ticks, recommended >= 300
RECOMMENDED_MIN_LOG_CHECK_INTERVALS = 300
DD_BLOCK_SIZE = _int_env("CAPKEEPER_BLOCK_SIZE", 512)  # bytes

#* --- Capture Tool ---
CAPTURE_EXECUTABLE = os.getenv("CAPKEEPER_CAPTURE_EXECUTABLE", "/usr/sbin/tcpdump")
CAPTURE_ARGS = shlex.split(os.getenv("CAPKEEPER_CAPTURE_ARGS", "-C 1"))
CAPTURE_OUTPUT_FLAG = os.getenv("CAPKEEPER_CAPTURE_OUTPUT_FLAG", "-w")
CAPTURE_FILE_PREFIX = os.getenv("CAPKEEPER_CAPTURE_FILE_PREFIX", "capture-")
CAPTURE_FILE_SUFFIX = os.getenv("CAPKEEPER_CAPTURE_FILE_SUFFIX", "")
CAPTURE_CHECK_INTERVALS = _int_env("CAPKEEPER_CAPTURE_CHECK_INTERVALS", 60)  # ticks

#* --- Retention ---
DAYS_OLD = _int_env("CAPKEEPER_DAYS_OLD", 14)
CAPTURE_AGE_ATTRIBUTE = os.getenv("CAPKEEPER_CAPTURE_AGE_ATTRIBUTE", "ctime").lower()  # 'ctime' or 'mtime'

#* --- Supervisor Loop Settings ---
TICK_INTERVAL = 1        # seconds
TICK_WRAP = 10000
START_RETRY_DELAY = 20   # seconds between failed launch attempts
STOP_GRACE_PERIOD = 1    # seconds before force-killing

#* --- Application variables ---
VERBOSE_LOGGING = _bool_env("CAPKEEPER_VERBOSE", "False")
PROCESS_TITLE = "capkeeper - Supervisor"

#* --- MODIFIABLE SETTINGS (Changeable through the overrides file) ---
MODIFIABLE_SETTINGS = {
    # Paths
    "LOG_DIR", "TEMP_DIR", "MAIN_LOG_FILE",
    # Capture tool
    "CAPTURE_EXECUTABLE", "CAPTURE_ARGS", "CAPTURE_OUTPUT_FLAG",
    "CAPTURE_FILE_PREFIX", "CAPTURE_FILE_SUFFIX", "CAPTURE_CHECK_INTERVALS",
    # Housekeeping
    "DAYS_OLD", "CAPTURE_AGE_ATTRIBUTE",
    "MAIN_LOG_FILE_MAX_SIZE", "MAIN_LOG_FILE_ALLOWANCE", "MAIN_LOG_CHECK_INTERVALS",
    # Logging
    "VERBOSE_LOGGING",
}
