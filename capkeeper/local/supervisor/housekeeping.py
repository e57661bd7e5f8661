"""
Housekeeping routines run from the supervisor loop: pruning capture files past
their retention age and cutting the head off an oversized main log file.
"""
import os
import stat
import shutil
import logging
import tempfile
import datetime
from pathlib import Path
from typing import List, Optional

log = logging.getLogger(__name__)

AGE_ATTRIBUTES = {"ctime": "st_ctime", "mtime": "st_mtime"}


def retention_cutoff(days_old: int, now: Optional[datetime.datetime] = None) -> float:
    """
    Timestamp before which a file counts as older than `days_old` days.

    Ages are measured from the start of the current day, so a file becomes
    eligible once `days_old` full days have passed since the midnight before
    its change time.
    """
    now = now or datetime.datetime.now()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return (day_start - datetime.timedelta(days=days_old)).timestamp()


def find_old_capture_files(directory: Path, pattern: str, days_old: int, age_attribute: str = "ctime",
                           now: Optional[datetime.datetime] = None) -> List[Path]:
    """Lists regular files below `directory` matching `pattern` that are older than the cutoff."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    stat_field = AGE_ATTRIBUTES[age_attribute]
    cutoff = retention_cutoff(days_old, now)

    old_files = []
    for path in sorted(directory.rglob(pattern)):
        try:
            st = path.stat()
        except FileNotFoundError:
            continue
        except OSError as e:
            log.error(f"Could not stat {path}: {e}")
            continue
        if stat.S_ISREG(st.st_mode) and getattr(st, stat_field) < cutoff:
            old_files.append(path)
    return old_files


def delete_old_capture_files(directory: Path, pattern: str, days_old: int, age_attribute: str = "ctime",
                             now: Optional[datetime.datetime] = None) -> List[Path]:
    """
    Deletes capture files older than `days_old` days.

    :param directory: Directory searched recursively.
    :param pattern: Glob the file name must match.
    :param days_old: Retention age in days.
    :param age_attribute: 'ctime' (change time) or 'mtime' (modification time).
    :param now: Reference time, defaults to the current time.
    :return: The files that were deleted.
    """
    old_files = find_old_capture_files(directory, pattern, days_old, age_attribute, now)
    if not old_files:
        return []

    log.info(f"Deleting {days_old}-days old files.")
    deleted = []
    for path in old_files:
        log.info(f"Deleting {path}.")
        try:
            path.unlink()
            deleted.append(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            log.error(f"Failed to delete {path}: {e}")
    log.info("Done.")
    return deleted


def compute_skip_blocks(size: int, max_size: int, allowance: int, block_size: int) -> int:
    """Number of whole blocks to drop from the head so about max_size - allowance bytes remain."""
    return (size - (max_size - allowance)) // block_size


def reduce_log_file(path: Path, max_size: int, allowance: int, block_size: int, temp_dir: Path) -> Optional[bool]:
    """
    Drops the oldest data of a log file once it grows past max_size.

    The retained tail is written to a temporary file in temp_dir first; the log
    file's content is only replaced after that copy is complete.

    :return: None if no whole block needs dropping, True on success, False on failure.
    """
    path = Path(path)
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return None
    except OSError as e:
        log.error(f"Could not stat {path}: {e}")
        return False

    offset = compute_skip_blocks(size, max_size, allowance, block_size) * block_size
    if size <= max_size or offset <= 0:
        return None

    log.info(f"Reducing log data in {path}.")
    temp_path = None
    try:
        fd, temp_name = tempfile.mkstemp(prefix="capkeeper-", suffix=".tmp", dir=str(temp_dir))
        temp_path = Path(temp_name)
        with os.fdopen(fd, "wb") as temp_file, path.open("rb") as source:
            source.seek(offset)
            shutil.copyfileobj(source, temp_file)

        with temp_path.open("rb") as temp_file, path.open("r+b") as target:
            shutil.copyfileobj(temp_file, target)
            target.truncate()
    except OSError as e:
        log.error(f"Failed. Something went wrong: {e}")
        return False
    finally:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)

    log.info("Done.")
    return True
