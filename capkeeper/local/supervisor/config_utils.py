import shutil
import logging
from typing import TYPE_CHECKING, Any
from capkeeper.local.supervisor.housekeeping import AGE_ATTRIBUTES

if TYPE_CHECKING:
    from capkeeper.local.config import MergedSettings

log = logging.getLogger(__name__)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _invalid(name: str, value: Any) -> bool:
    log.error(f"{name} is not valid: {value}")
    return False


def check_configuration(config: "MergedSettings") -> bool:
    """
    Validates the numeric thresholds the supervisor loop depends on.

    :param config: The settings to validate.
    :return: True if every value is usable, otherwise False.
    """
    all_ok = True

    for name in ("DD_BLOCK_SIZE", "CAPTURE_CHECK_INTERVALS", "MAIN_LOG_CHECK_INTERVALS", "TICK_WRAP"):
        value = getattr(config, name)
        if not (_is_int(value) and value > 0):
            all_ok = _invalid(name, value)

    if not (_is_int(config.DAYS_OLD) and config.DAYS_OLD >= 0):
        all_ok = _invalid("DAYS_OLD", config.DAYS_OLD)

    block_size = config.DD_BLOCK_SIZE if _is_int(config.DD_BLOCK_SIZE) else 0
    max_size = config.MAIN_LOG_FILE_MAX_SIZE
    if not (_is_int(max_size) and max_size > 0 and max_size > block_size):
        all_ok = _invalid("MAIN_LOG_FILE_MAX_SIZE", max_size)
        max_size = None

    allowance = config.MAIN_LOG_FILE_ALLOWANCE
    if not (_is_int(allowance) and allowance > 0 and (max_size is None or allowance < max_size)):
        all_ok = _invalid("MAIN_LOG_FILE_ALLOWANCE", allowance)

    if config.CAPTURE_AGE_ATTRIBUTE not in AGE_ATTRIBUTES:
        all_ok = _invalid("CAPTURE_AGE_ATTRIBUTE", config.CAPTURE_AGE_ATTRIBUTE)

    capture_args = config.CAPTURE_ARGS
    if not (isinstance(capture_args, list) and all(isinstance(arg, str) for arg in capture_args)):
        all_ok = _invalid("CAPTURE_ARGS", capture_args)

    interval = config.MAIN_LOG_CHECK_INTERVALS
    if _is_int(interval) and 0 < interval < config.RECOMMENDED_MIN_LOG_CHECK_INTERVALS:
        log.warning(
            f"MAIN_LOG_CHECK_INTERVALS is {interval}; at least "
            f"{config.RECOMMENDED_MIN_LOG_CHECK_INTERVALS} is recommended."
        )

    return all_ok


def check_capture_executable(config: "MergedSettings") -> bool:
    """Reports whether the capture executable can be found. Launch failures are still retried."""
    executable = str(config.CAPTURE_EXECUTABLE)
    if shutil.which(executable) is None:
        log.warning(f"Config check: capture executable not found at '{executable}'.")
        return False
    log.info(f"Config check OK: found capture executable at '{executable}'.")
    return True
