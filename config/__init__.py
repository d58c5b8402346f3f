"""
Configuration management for datastores

Handles loading and saving settings and logging setup.
"""

from .loader import ConfigurationLoader, configure_logging
from .defaults import DEFAULT_SETTINGS, ENV_VAR_MAPPING

__all__ = ["ConfigurationLoader", "configure_logging", "DEFAULT_SETTINGS", "ENV_VAR_MAPPING"]
