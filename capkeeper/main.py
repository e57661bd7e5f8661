import sys
import logging
from typing import Optional

from capkeeper.log.setup import setup_logging
from capkeeper.local.config import MergedSettings, effective_settings
from capkeeper.local.supervisor import CaptureSupervisor

log = logging.getLogger(__name__)


def main(config: Optional[MergedSettings] = None) -> int:
    """
    The main entry point for the capture supervisor.

    :param config: Settings to run with. Defaults to the merged global settings.
    :return: The process exit code.
    """
    config = config if config is not None else effective_settings
    setup_logging(config.main_log_path, verbose=config.VERBOSE_LOGGING)
    return CaptureSupervisor(config).run()


if __name__ == "__main__":
    sys.exit(main())
