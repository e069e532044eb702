"""
Configuration management for agentjob.

Loads and validates config.yaml from the agentjob home directory.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


# Shared schedules exist from this server major version onward
DEFAULT_SHARED_SCHEDULE_MIN_VERSION = 9

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Configuration validation error."""
    pass


@dataclass
class AgentJobConfig:
    """Complete agentjob configuration."""

    shared_schedule_min_version: int = DEFAULT_SHARED_SCHEDULE_MIN_VERSION
    definitions_dir: Optional[str] = None
    log_level: str = "INFO"
    targets_local_server: bool = True

    def validate(self) -> None:
        """Validate configuration values."""
        if not isinstance(self.shared_schedule_min_version, int) or self.shared_schedule_min_version < 1:
            raise ConfigError(
                f"shared_schedule_min_version must be a positive integer, got: {self.shared_schedule_min_version!r}"
            )
        if str(self.log_level).upper() not in VALID_LOG_LEVELS:
            raise ConfigError(
                f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}, got: {self.log_level!r}"
            )
        self.log_level = str(self.log_level).upper()

    def get_definitions_dir(self) -> Path:
        """Get the job definitions directory (defaults to <home>/jobs)."""
        if self.definitions_dir:
            return Path(self.definitions_dir).expanduser()
        return get_agentjob_home() / "jobs"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentJobConfig":
        """Build a config from a parsed YAML mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {unknown}")
        config = cls(**data)
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def get_agentjob_home() -> Path:
    """Get the agentjob home directory ($AGENTJOB_HOME or ~/.config/agentjob)."""
    home = os.environ.get("AGENTJOB_HOME")
    if home:
        return Path(home).expanduser()
    return Path("~/.config/agentjob").expanduser()


def load_config(config_path: Optional[Path] = None) -> AgentJobConfig:
    """
    Load agentjob configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to <home>/config.yaml

    Returns:
        AgentJobConfig instance (defaults when the file does not exist)

    Raises:
        ConfigError: If config is invalid
    """
    if config_path is None:
        config_path = get_agentjob_home() / "config.yaml"

    data: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {config_path}")

    env_level = os.environ.get("AGENTJOB_LOG_LEVEL")
    if env_level:
        data["log_level"] = env_level

    return AgentJobConfig.from_dict(data)
