"""
Configuration management for udevscope.

Handles loading, validation, and access to tool configuration. Filter
definitions are not part of the configuration; they are built by the
caller for each scan or monitoring session.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/udevscope/udevscope.yaml")

LOG_LEVEL_ENV = "UDEVSCOPE_LOG_LEVEL"


@dataclass
class LoggingConfig:
    """Logging settings."""

    log_level: str = "info"
    log_file: str | None = None

    def __post_init__(self) -> None:
        # Environment overrides the file
        env_level = os.environ.get(LOG_LEVEL_ENV)
        if env_level:
            self.log_level = env_level.lower()


@dataclass
class MonitorConfig:
    """Event monitor settings."""

    channel: str = "udev"


@dataclass
class OutputConfig:
    """Console output settings."""

    format: str = "text"
    show_properties: bool = False


@dataclass
class ScopeConfig:
    """Main configuration container."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScopeConfig:
        """Create configuration from dictionary."""
        return cls(
            logging=LoggingConfig(**data.get("logging", {})),
            monitor=MonitorConfig(**data.get("monitor", {})),
            output=OutputConfig(**data.get("output", {})),
        )


def load_config(path: str | Path | None = None) -> ScopeConfig:
    """
    Load configuration from YAML file.

    Args:
        path: Path to configuration file. If None, uses default paths.

    Returns:
        ScopeConfig instance with loaded settings.

    Raises:
        FileNotFoundError: If an explicit config file does not exist.
        yaml.YAMLError: If config file is invalid YAML.
    """
    if path is None:
        candidates = [
            DEFAULT_CONFIG_PATH,
            Path("config/udevscope.yaml"),
            Path("udevscope.yaml"),
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path is None:
        return ScopeConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return ScopeConfig.from_dict(data)


def validate_config(config: ScopeConfig) -> list[str]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate.

    Returns:
        List of error messages. Empty list if valid.
    """
    errors: list[str] = []

    valid_log_levels = {"debug", "info", "warning", "error"}
    if config.logging.log_level not in valid_log_levels:
        errors.append(f"Invalid log_level: {config.logging.log_level}")

    valid_channels = {"udev", "kernel"}
    if config.monitor.channel not in valid_channels:
        errors.append(f"Invalid monitor channel: {config.monitor.channel}")

    valid_formats = {"text", "json"}
    if config.output.format not in valid_formats:
        errors.append(f"Invalid output format: {config.output.format}")

    return errors
