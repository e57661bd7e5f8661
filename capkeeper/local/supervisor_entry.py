"""
This is a minimal entry point script for the supervisor process.

Its sole responsibility is to name the process and hand over to main(),
exiting with the code it returns.
"""
import sys
import setproctitle
from capkeeper.local.config import effective_settings
from capkeeper.main import main


def entry() -> None:
    setproctitle.setproctitle(effective_settings.PROCESS_TITLE)
    sys.exit(main())


if __name__ == "__main__":
    entry()
