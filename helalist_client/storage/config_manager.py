"""
Manages loading, validation, and migration of the INI configuration file.

Values are layered: file, then ``HELALIST_*`` environment variables, then
command-line options.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import ValidationError

from helalist_client.exceptions import ConfigurationError
from helalist_client.models.config import ClientConfig

log = logging.getLogger(__name__)

ENV_PREFIX = "HELALIST_"
SECTION = configparser.DEFAULTSECT


def _typed_value(section: configparser.SectionProxy, key: str) -> Any:
    """Reads ``key`` with the getter matching the model field's type."""
    annotation = ClientConfig.model_fields[key].annotation
    if annotation is float:
        return section.getfloat(key)
    if annotation is int:
        return section.getint(key)
    if annotation is bool:
        return section.getboolean(key)
    return section.get(key)


class ConfigManager:
    """Reads and writes ``config.ini`` for the client."""

    def __init__(self, config_file_path: Path, environ: Mapping[str, str] | None = None):
        self.config_file_path = Path(config_file_path)
        self._environ = os.environ if environ is None else environ
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> ClientConfig:
        """
        Builds the effective configuration.

        Args:
            cli_options: Overrides given on the command line. ``None`` values
                are ignored.

        Raises:
            ConfigurationError: If the file is missing or unreadable, or the
                merged values do not validate.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'helalist init <URL>' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info("[yellow]Added missing settings to the configuration file.[/yellow]")

        try:
            values = self._get_config_as_dict()
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

        values.update(self._env_overrides())
        values.update({k: v for k, v in (cli_options or {}).items() if v is not None})

        try:
            return ClientConfig(**values, config_path=str(self.config_file_path.parent))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """Writes a fresh file; keys missing from ``settings`` get defaults."""
        defaults = ClientConfig.model_construct()
        parser = configparser.ConfigParser(interpolation=None)
        parser[SECTION] = {
            key: str(settings.get(key, getattr(defaults, key)))
            for key in sorted(ClientConfig.get_ini_keys())
        }
        self._write(parser)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Returns the keys present in the file, converted to their field types."""
        section = self._parser[SECTION]
        return {
            key: _typed_value(section, key)
            for key in ClientConfig.get_ini_keys()
            if key in section
        }

    def _env_overrides(self) -> dict[str, str]:
        overrides = {}
        for key in ClientConfig.get_ini_keys():
            value = self._environ.get(f"{ENV_PREFIX}{key.upper()}")
            if value:
                overrides[key] = value
        if overrides:
            log.debug(f"Environment overrides: {', '.join(sorted(overrides))}")
        return overrides

    def _migrate_if_needed(self) -> bool:
        """Adds keys introduced after the file was written. Returns True if any were."""
        defaults = ClientConfig.model_construct()
        section = self._parser[SECTION]
        missing = sorted(ClientConfig.get_ini_keys() - set(section))
        if not missing:
            return False

        for key in missing:
            section[key] = str(getattr(defaults, key))
            log.debug(f"Migrating config: added '{key}' = '{section[key]}'.")

        try:
            self._write(self._parser)
        except ConfigurationError as e:
            log.error(f"Could not save migrated configuration file: {e}")
            return False
        return True

    def _write(self, parser: configparser.ConfigParser) -> None:
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                parser.write(f)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e
