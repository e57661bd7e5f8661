"""
Logging module for capkeeper.
This module provides the console + main log file setup used by the supervisor.
"""

from .setup import setup_logging, get_main_log_handler, main_log_locked
from .handler import MainLogFileHandler

__all__ = ["setup_logging", "get_main_log_handler", "main_log_locked", "MainLogFileHandler"]
