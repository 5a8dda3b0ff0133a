"""
Manages loading, validation, and migration of the INI configuration file.
"""

import configparser
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from spotify_picker.exceptions import ConfigurationError
from spotify_picker.models.config import PickerConfig

log = logging.getLogger(__name__)

# Environment variables that take precedence over the INI file
ENV_OVERRIDES = {
    "SPOTIFY_CLIENT_ID": "client_id",
    "SPOTIFY_CLIENT_SECRET": "client_secret",
}


class ConfigManager:
    """Handles all operations related to the application's INI config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> PickerConfig:
        """
        Loads configuration from the INI file, applies environment and CLI
        overrides, and validates it.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated PickerConfig object.

        Raises:
            ConfigurationError: If the config file is missing, invalid, or validation
            fails.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found at '{self.config_file_path}'. "
                "Please run 'spotify-picker init' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info(
                "[yellow]Configuration file was updated with new default values."
                "[/yellow]"
            )

        config_from_file = self._get_config_as_dict()

        for env_name, key in ENV_OVERRIDES.items():
            if value := os.getenv(env_name):
                config_from_file[key] = value

        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return PickerConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Creates and saves a new configuration file.

        Args:
            settings: A dictionary of settings to save.
        """
        config = configparser.ConfigParser(interpolation=None)
        config["DEFAULT"] = {}

        defaults = PickerConfig.model_construct()
        for key in sorted(PickerConfig.get_ini_keys()):
            # Use provided settings first, then fall back to model defaults
            value = settings.get(key, self._default_for(defaults, key))
            if value is not None:
                config["DEFAULT"][key] = str(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the 'DEFAULT' section of the INI file into a dictionary."""
        section = self._parser["DEFAULT"]
        values: dict[str, Any] = {
            "client_id": section.get("client_id", ""),
            "client_secret": section.get("client_secret", ""),
        }
        for key in ("api_base_url", "auth_base_url", "token_namespace", "ffmpeg_path"):
            if section.get(key):
                values[key] = section.get(key)
        if section.get("scratch_dir"):
            values["scratch_dir"] = Path(section.get("scratch_dir")).expanduser()
        if section.get("request_timeout"):
            try:
                values["request_timeout"] = section.getfloat("request_timeout")
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid request_timeout in configuration file: {e}"
                ) from e
        return values

    @staticmethod
    def _default_for(defaults: PickerConfig, key: str) -> Any:
        # model_construct skips required fields, so they may be missing
        return getattr(defaults, key, None)

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = PickerConfig.model_construct()
        needs_saving = False

        config_section = self._parser["DEFAULT"]

        for key in sorted(PickerConfig.get_ini_keys()):
            if key in config_section:
                continue
            default_value = self._default_for(defaults, key)
            if default_value is None:
                continue

            config_section[key] = str(default_value)
            needs_saving = True
            log.debug(
                f"Migrating config: added missing key '{key}' with "
                f"value '{config_section[key]}'."
            )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
