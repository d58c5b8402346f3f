"""
Configuration models for datastores.

Global settings come from the environment (DATASTORES_ prefix) or a
settings file; SyncOptions configures store synchronization.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncOptions(BaseModel):
    """Options for bidirectional store synchronization"""
    model_config = ConfigDict(validate_assignment=True)

    sync_source_to_target: bool = True
    sync_target_to_source: bool = True
    initial_sync: bool = True


class DataStoreSettings(BaseSettings):
    """Global settings with environment variable support"""
    model_config = SettingsConfigDict(
        env_prefix="DATASTORES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    application_name: str = "datastores"
    root_path: Optional[Path] = None

    # Store defaults
    auto_load: bool = True
    auto_save: bool = True
    json_indent: int = Field(default=2, ge=0, le=8)
    sqlite_file_name: str = "datastores.db"

    # Logging
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_to_file: bool = False

    @field_validator('application_name')
    @classmethod
    def validate_application_name(cls, v: str) -> str:
        """Application name becomes a directory name"""
        v = v.strip()
        if not v:
            raise ValueError('Application name cannot be empty')
        return v

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v
