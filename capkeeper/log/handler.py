import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class MainLogFormatter(logging.Formatter):
    """Formats main log lines as '[YYYY-MM-DD HH:MM:SS] message'."""

    def __init__(self) -> None:
        super().__init__(fmt="[%(asctime)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")


class MainLogFileHandler(logging.FileHandler):
    """
    Append-only handler for the supervisor's main log file.

    The file is opened in append mode, so writes always land at the current end
    of the file even after it has been rewritten in place by the log reducer.
    While `locked()` is held no record can be written, which makes the
    reduction sequence a critical section with respect to every logging thread.
    """

    def __init__(self, path: Path) -> None:
        """
        Initializes the handler, creating the parent directory if needed.

        :param path: The path to the main log file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(str(path), mode="a", encoding="utf-8")
        self.path = path
        self.setFormatter(MainLogFormatter())

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Holds the handler lock. Logging from the same thread stays possible (RLock)."""
        self.acquire()
        try:
            self.flush()
            yield
        finally:
            self.release()
