"""Configuration management for liftoff."""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError


APP_NAME = "liftoff"


def _xdg_dir(variable: str, fallback: str) -> Path:
    value = os.environ.get(variable)
    if value:
        return Path(value)
    return Path.home() / fallback


def default_history_path() -> Path:
    return _xdg_dir("XDG_CACHE_HOME", ".cache") / APP_NAME / "default.csv"


def default_log_dir() -> Path:
    return _xdg_dir("XDG_STATE_HOME", ".local/state") / APP_NAME / "logs"


def search_path_from_env(value: Optional[str] = None) -> Optional[List[Path]]:
    """Split a PATH-style string into directories, keeping order.

    Returns None when the variable is unset.
    """
    if value is None:
        value = os.environ.get("PATH")
    if value is None:
        return None
    return [Path(p) for p in value.split(os.pathsep) if p]


class SourcesConfig(BaseModel):
    from_path: bool = True
    files: List[Path] = Field(default_factory=list)
    from_stdin: bool = False
    search_path: Optional[List[Path]] = None

    @field_validator('files')
    @classmethod
    def expand_files(cls, v: List[Path]) -> List[Path]:
        return [Path(p).expanduser() for p in v]


class HistoryConfig(BaseModel):
    enabled: bool = True
    path: Optional[Path] = None
    decrease_interval: int = 48

    @field_validator('decrease_interval')
    @classmethod
    def validate_interval(cls, v: int) -> int:
        if v < 0:
            raise ValueError("decrease_interval must be >= 0 hours")
        return v

    def resolved_path(self) -> Path:
        if self.path is None:
            return default_history_path()
        return Path(self.path).expanduser()


class SearchConfig(BaseModel):
    smart_case: bool = False


class PerformanceConfig(BaseModel):
    max_scan_workers: int = 4

    @field_validator('max_scan_workers')
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_scan_workers must be at least 1")
        return v


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    file: bool = False


class Config(BaseModel):
    """Main configuration for the launcher."""

    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @staticmethod
    def default_locations() -> List[Path]:
        return [
            Path(f"{APP_NAME}.yaml"),
            _xdg_dir("XDG_CONFIG_HOME", ".config") / APP_NAME / "config.yaml",
        ]

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """
        Load configuration from YAML.

        An explicit path must exist. Without one the default locations
        are searched and built-in defaults are used if none exists.
        """
        if config_path is None:
            for candidate in cls.default_locations():
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                logger.debug("No config file found, using defaults")
                return cls()
        elif not Path(config_path).exists():
            raise ConfigError(f"Config file not found: {config_path}")

        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {config_path}: {e}") from e
        except (TypeError, ValidationError) as e:
            raise ConfigError(f"Invalid config {config_path}: {e}") from e

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)
