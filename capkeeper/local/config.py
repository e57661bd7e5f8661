import json
import shlex
import logging
from pathlib import Path
from typing import Any, Optional

import capkeeper.settings as default_settings

log = logging.getLogger(__name__)


class MergedSettings:
    """
    Merges default settings with JSON and programmatic overrides.

    This class provides a unified, attribute-based access point for all
    supervisor configuration. It follows a clear precedence:
    1. Base values from `settings.py` (which already honours `.env` and the environment).
    2. Overrides from `overrides.json` for settings in `MODIFIABLE_SETTINGS`.
    3. Keyword overrides passed to the constructor (used by embedders and tests).
    """

    def __init__(self, overrides_path: Optional[Path] = None, **values: Any) -> None:
        """
        Initializes the settings object by loading defaults and overrides.

        :param overrides_path: JSON overrides file. Defaults to OVERRIDES_JSON_PATH.
        :param values: Explicit setting values applied last.
        """
        self._load_defaults()
        if overrides_path is not None:
            self.OVERRIDES_JSON_PATH = Path(overrides_path)
        self._load_overrides()

        for key, value in values.items():
            if not key.isupper():
                raise AttributeError(f"Unknown setting '{key}'.")
            self._set_coerced(key, value)

    def _load_defaults(self) -> None:
        """Loads all uppercase attributes from the settings.py module as defaults."""
        for key in dir(default_settings):
            if key.isupper():
                value = getattr(default_settings, key)
                # Mutable defaults are copied per instance.
                if isinstance(value, (list, set, dict)):
                    value = type(value)(value)
                setattr(self, key, value)

    def _set_coerced(self, key: str, value: Any) -> None:
        """
        Coerce string values to the type of the default.

        Path defaults get a Path, list defaults get the string split like a shell
        command line (the same form the CAPKEEPER_* environment variables use).
        """
        original_value = getattr(self, key, None)
        if isinstance(original_value, Path) and isinstance(value, str):
            value = Path(value)
        elif isinstance(original_value, list) and isinstance(value, str):
            value = shlex.split(value)
        setattr(self, key, value)

    def _load_overrides(self) -> None:
        """
        Loads and applies settings from the overrides file.

        It will only apply overrides for keys that are explicitly listed in
        the `MODIFIABLE_SETTINGS` set in `settings.py`.
        """
        if not self.OVERRIDES_JSON_PATH.exists():
            return

        try:
            with self.OVERRIDES_JSON_PATH.open('r') as f:
                overrides = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            log.error(f"Failed to load or parse overrides file '{self.OVERRIDES_JSON_PATH}': {e}")
            return

        if not isinstance(overrides, dict):
            log.error(f"Overrides file '{self.OVERRIDES_JSON_PATH}' must contain a JSON object. Ignoring.")
            return

        log.info(f"Loading runtime configuration overrides from {self.OVERRIDES_JSON_PATH}")
        for key, value in overrides.items():
            if not hasattr(self, key):
                log.warning(f"Override setting '{key}' not found in default settings. Ignoring.")
                continue
            if key not in self.MODIFIABLE_SETTINGS:
                log.warning(f"Attempted to override non-modifiable setting '{key}'. Ignoring.")
                continue
            self._set_coerced(key, value)
            log.debug(f"Overridden setting: {key} = {value}")

    @property
    def main_log_path(self) -> Path:
        """The main log file, placed under LOG_DIR when given as a bare file name."""
        main_log = Path(self.MAIN_LOG_FILE)
        if "/" not in str(self.MAIN_LOG_FILE):
            return Path(self.LOG_DIR) / main_log
        return main_log


# Create a singleton instance to be imported by other modules
effective_settings = MergedSettings()
