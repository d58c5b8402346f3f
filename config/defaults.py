"""
Default configuration values for datastores.

Centralized defaults that can be overridden by environment variables or a
settings file.
"""

from typing import Any, Dict

# Global default settings
DEFAULT_SETTINGS = {
    # Application
    "application": {
        "name": "datastores",
        "root_path": None  # Defaults to ~/.<name>
    },

    # Store defaults used by the builders
    "stores": {
        "auto_load": True,
        "auto_save": True,
        "json_indent": 2,
        "sqlite_file_name": "datastores.db"
    },

    # Logging
    "logging": {
        "level": "INFO",
        "to_file": False
    }
}

# Settings file section paths to DataStoreSettings fields
SETTINGS_FIELD_MAPPING = {
    'application.name': 'application_name',
    'application.root_path': 'root_path',
    'stores.auto_load': 'auto_load',
    'stores.auto_save': 'auto_save',
    'stores.json_indent': 'json_indent',
    'stores.sqlite_file_name': 'sqlite_file_name',
    'logging.level': 'log_level',
    'logging.to_file': 'log_to_file'
}

# Environment variable mappings
ENV_VAR_MAPPING = {
    'DATASTORES_APPLICATION_NAME': 'application.name',
    'DATASTORES_ROOT_PATH': 'application.root_path',
    'DATASTORES_AUTO_LOAD': 'stores.auto_load',
    'DATASTORES_AUTO_SAVE': 'stores.auto_save',
    'DATASTORES_JSON_INDENT': 'stores.json_indent',
    'DATASTORES_SQLITE_FILE_NAME': 'stores.sqlite_file_name',
    'DATASTORES_LOG_LEVEL': 'logging.level',
    'DATASTORES_LOG_TO_FILE': 'logging.to_file'
}

# Log line layout shared by console and file handlers
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_default_settings() -> Dict[str, Any]:
    """Deep copy of DEFAULT_SETTINGS safe to modify"""
    return {section: dict(values) for section, values in DEFAULT_SETTINGS.items()}
