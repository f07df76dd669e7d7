"""Configuration management for bvalid using Pydantic models."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONFIG_FILE_NAME = ".bvalid.json"


class ReportFormat(str, Enum):
    """Report format types."""
    TEXT = "text"
    TABLE = "table"
    JSON = "json"
    MARKDOWN = "markdown"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class ReportConfig(BaseModel):
    """Report configuration section."""
    format: ReportFormat = ReportFormat.TEXT
    failures_only: bool = Field(alias="failuresOnly", default=False)
    show_descriptions: bool = Field(alias="showDescriptions", default=True)

    model_config = ConfigDict(use_enum_values=True, validate_default=True, populate_by_name=True)


class ValidationConfig(BaseModel):
    """Validation configuration section."""
    fail_on_invalid: bool = Field(alias="failOnInvalid", default=True)

    model_config = ConfigDict(populate_by_name=True)


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN

    model_config = ConfigDict(use_enum_values=True, validate_default=True)


class BValidConfig(BaseModel):
    """Complete bvalid configuration model."""
    report: ReportConfig = Field(default_factory=ReportConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")


def load_config(config_path: str | Path | None = None) -> BValidConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .bvalid.json

    Returns:
        BValidConfig: Loaded and validated configuration

    Raises:
        ValueError: If configuration is invalid
    """
    if config_path is None:
        config_path = find_config_file()
    else:
        config_path = Path(config_path)

    if config_path is None or not config_path.is_file():
        return create_default_config()

    try:
        config_data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {config_path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Cannot read config file {config_path}: {e}") from e

    try:
        return BValidConfig.model_validate(config_data)
    except ValidationError as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .bvalid.json configuration file by searching up directory tree.

    Args:
        start_dir: Directory to start search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    current = Path(start_dir or Path.cwd()).resolve()

    for directory in (current, *current.parents):
        config_file = directory / CONFIG_FILE_NAME
        if config_file.is_file():
            return config_file

    return None


def create_default_config() -> BValidConfig:
    """Create default configuration."""
    return BValidConfig()
