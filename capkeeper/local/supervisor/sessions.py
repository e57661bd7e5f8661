import re
import datetime
import subprocess
from pathlib import Path
from dataclasses import dataclass, field
from typing import Iterable, Optional

DATE_GLOB = "[0-9][0-9][0-9][0-9]-[0-9][0-9]-[0-9][0-9]"


@dataclass
class Session:
    """One run of the capture tool, identified by its date and sequence number."""
    date: str
    sequence: int
    output_path: Path
    pid: int
    popen: Optional[subprocess.Popen] = field(default=None, repr=False, compare=False)


def current_date() -> str:
    """Today's local date as YYYY-MM-DD."""
    return datetime.date.today().isoformat()


def session_basename(prefix: str, date: str, suffix: str) -> str:
    return f"{prefix}{date}{suffix}"


def output_path_for(directory: Path, prefix: str, date: str, suffix: str, sequence: int) -> Path:
    """Path the capture tool writes to: <dir>/<prefix><date><suffix>.<sequence>.log"""
    return Path(directory) / f"{session_basename(prefix, date, suffix)}.{sequence}.log"


def capture_file_pattern(prefix: str, suffix: str) -> str:
    """Glob matching capture files of any date, including the tool's own rotations (.log1, .log2...)."""
    return f"{prefix}{DATE_GLOB}{suffix}.log*"


def _sequence_regex(basename: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(basename)}\.(\d+)\.log\d*$")


def existing_sequence_numbers(directory: Path, prefix: str, date: str, suffix: str) -> Iterable[int]:
    """
    Yields the sequence numbers already used on disk for the given date.

    :param directory: The capture output directory.
    :param prefix: Capture file name prefix.
    :param date: The session date (YYYY-MM-DD).
    :param suffix: Capture file name suffix.
    """
    directory = Path(directory)
    if not directory.is_dir():
        return
    matcher = _sequence_regex(session_basename(prefix, date, suffix))
    for entry in directory.iterdir():
        match = matcher.match(entry.name)
        if match:
            yield int(match.group(1))


def next_sequence_number(directory: Path, prefix: str, date: str, suffix: str, in_use: Iterable[int] = ()) -> int:
    """
    One past the highest sequence number used for the date, or 0 if there is none.

    :param in_use: Sequence numbers held by live sessions whose files may not exist yet.
    """
    used = list(existing_sequence_numbers(directory, prefix, date, suffix))
    used.extend(in_use)
    return max(used, default=-1) + 1
