"""
Settings loading and logging setup.

Settings are layered: DEFAULT_SETTINGS, then an optional JSON settings
file, then environment variables from ENV_VAR_MAPPING.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from pydantic import ValidationError

from datastores.models.config import DataStoreSettings
from .defaults import ENV_VAR_MAPPING, LOG_FORMAT, SETTINGS_FIELD_MAPPING, get_default_settings

logger = logging.getLogger(__name__)


class ConfigurationLoader:
    """Load and save DataStoreSettings"""

    def __init__(self, settings_file: Optional[Union[str, Path]] = None):
        self.settings_file = Path(settings_file) if settings_file else None

    def load_settings(self, settings_file: Optional[Union[str, Path]] = None) -> DataStoreSettings:
        """Load settings from defaults, settings file and environment"""
        settings_file = Path(settings_file) if settings_file else self.settings_file

        data = get_default_settings()
        if settings_file is not None and settings_file.exists():
            file_data = self._read_settings_file(settings_file)
            self._merge(data, file_data)

        data = self._apply_env_overrides(data)

        try:
            return DataStoreSettings(**self._flatten(data))
        except ValidationError as e:
            logger.error(f"Invalid settings, falling back to defaults: {e}")
            return DataStoreSettings(**self._flatten(get_default_settings()))

    def _read_settings_file(self, settings_file: Path) -> Dict[str, Any]:
        try:
            with open(settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load settings from {settings_file}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Settings file {settings_file} must contain a JSON object")
            return {}
        return data

    def _merge(self, data: Dict[str, Any], overrides: Dict[str, Any]) -> None:
        """Merge settings file sections into data, ignoring unknown keys"""
        for section, values in overrides.items():
            if section not in data or not isinstance(values, dict):
                logger.warning(f"Ignoring unknown settings section '{section}'")
                continue
            for key, value in values.items():
                if f"{section}.{key}" in SETTINGS_FIELD_MAPPING:
                    data[section][key] = value
                else:
                    logger.warning(f"Ignoring unknown setting '{section}.{key}'")

    def _apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to settings"""
        for env_var, settings_path in ENV_VAR_MAPPING.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                self._set_nested_value(data, settings_path, env_value)

        return data

    def _set_nested_value(self, data: Dict[str, Any], path: str, value: str) -> None:
        """Set nested dictionary value using dot notation path"""
        keys = path.split('.')
        current = data

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = self._convert_env_value(value)

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable string to appropriate type"""
        if value.lower() in ('true', 'yes', 'on'):
            return True
        elif value.lower() in ('false', 'no', 'off'):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        return value

    def _flatten(self, data: Dict[str, Any]) -> Dict[str, Any]:
        flat = {}
        for settings_path, field_name in SETTINGS_FIELD_MAPPING.items():
            section, key = settings_path.split('.')
            if key in data.get(section, {}):
                flat[field_name] = data[section][key]
        return flat

    def save_settings(
        self,
        settings: DataStoreSettings,
        settings_file: Optional[Union[str, Path]] = None
    ) -> bool:
        """Save settings as a sectioned JSON file"""
        settings_file = Path(settings_file) if settings_file else self.settings_file
        if settings_file is None:
            raise ValueError("No settings file given")

        values = settings.model_dump(mode='json')
        data: Dict[str, Dict[str, Any]] = {}
        for settings_path, field_name in SETTINGS_FIELD_MAPPING.items():
            section, key = settings_path.split('.')
            data.setdefault(section, {})[key] = values[field_name]

        try:
            settings_file.parent.mkdir(parents=True, exist_ok=True)
            with open(settings_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Failed to save settings to {settings_file}: {e}")
            return False

        logger.info(f"Saved settings to {settings_file}")
        return True


def configure_logging(settings: DataStoreSettings, log_file: Optional[Union[str, Path]] = None) -> None:
    """Configure root logging from settings; file output needs log_to_file and a path"""
    handlers = [logging.StreamHandler()]

    if settings.log_to_file and log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )
