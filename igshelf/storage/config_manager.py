"""
Loads settings from an optional INI file and IGSHELF_* environment
variables, applies command-line overrides and validates the result.
"""

import configparser
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from igshelf.exceptions import ConfigurationError
from igshelf.models.config import ShelfConfig

log = logging.getLogger(__name__)

ENV_PREFIX = "IGSHELF_"


class ConfigManager:
    """
    Builds a ShelfConfig. Later sources win: INI file, then environment
    variables, then command-line options.
    """

    def __init__(
        self,
        config_file_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config_file_path = config_file_path
        self.environ = os.environ if environ is None else environ
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> ShelfConfig:
        """
        Loads configuration, applies CLI overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated ShelfConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        settings: dict[str, Any] = {}
        if self.config_file_path is not None:
            settings.update(self._read_config_file())
        settings.update(self._read_environment())
        if cli_options:
            settings.update({k: v for k, v in cli_options.items() if v is not None})

        try:
            return ShelfConfig(**settings)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def _read_config_file(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'."
            )
        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        known_keys = ShelfConfig.get_ini_keys()
        section = self._parser["DEFAULT"]
        for key in section:
            if key not in known_keys:
                log.warning(f"[yellow]Ignoring unknown config key '{key}'.[/yellow]")
        return {key: section[key] for key in section if key in known_keys}

    def _read_environment(self) -> dict[str, Any]:
        """Picks up variables such as IGSHELF_TOKEN or IGSHELF_MAX_WORKERS."""
        known_keys = ShelfConfig.get_ini_keys()
        settings = {}
        for name, value in self.environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            key = name[len(ENV_PREFIX) :].lower()
            if key in known_keys:
                settings[key] = value
        return settings
