"""
Configuration management using Pydantic Settings.
Table names and ordering behaviour are read from SAVEABLE_* environment variables.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from enum import Enum


class LogLevel(str, Enum):
    """Supported log levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SaveableSettings(BaseSettings):
    """Settings consumed by the association store and query builders"""

    # Storage Configuration
    saves_table: str = Field(default="saves", description="Table holding save records")
    collections_table: str = Field(default="collections", description="Table holding collections")
    database_url: str = Field(default="sqlite:///./saveable.db")

    # Ordering Configuration
    auto_ordering: bool = Field(
        default=True,
        description="Assign 1 + max(order_column) per (saver, collection) scope on save",
    )

    # Upper bound on distinct entity types merged in memory by mixed-type reads
    max_mixed_types: int = Field(default=25, ge=1, le=500)

    # Logging Configuration
    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: str = Field(default="json", description="json or text")

    @field_validator("saves_table", "collections_table")
    @classmethod
    def validate_table_name(cls, v):
        """Table names end up in DDL, keep them to plain identifiers"""
        v = v.strip()
        if not v or not v.replace("_", "").isalnum():
            raise ValueError(f"invalid table name: {v!r}")
        return v

    @field_validator("log_format", mode="before")
    @classmethod
    def validate_log_format(cls, v):
        if isinstance(v, str):
            v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    model_config = {
        "env_prefix": "SAVEABLE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Global settings instance
settings = SaveableSettings()


def get_settings() -> SaveableSettings:
    """Get application settings instance"""
    return settings


def reload_settings() -> SaveableSettings:
    """Reload settings from environment and files"""
    global settings
    settings = SaveableSettings()
    return settings
