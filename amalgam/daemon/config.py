"""Configuration management for Amalgam."""

from pathlib import Path
from typing import Optional, Literal

import yaml
from loguru import logger
from pydantic import BaseModel, Field, field_validator


class SearchConfig(BaseModel):
    debounce_ms: int = 300
    max_depth: int = 7
    max_results: int = 50

    @field_validator('debounce_ms', 'max_depth', 'max_results')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("search settings must not be negative")
        return v


class HistoryConfig(BaseModel):
    capacity: int = 50
    poll_interval: float = 1.0

    @field_validator('capacity')
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError("capacity must be at least 1")
        return v


class AppSettings(BaseModel):
    """User preferences edited from the settings screen."""
    theme: Literal["light", "dark", "system"] = "system"
    close_to_tray: bool = True


class Config(BaseModel):
    """Main configuration for the Amalgam daemon."""

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local" / "share" / "amalgam")
    log_level: str = "INFO"
    search: SearchConfig = Field(default_factory=SearchConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)

    @field_validator('data_dir')
    @classmethod
    def validate_data_dir(cls, v: Path) -> Path:
        if isinstance(v, str):
            v = Path(v)
        return v.expanduser()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return v

    @property
    def history_path(self) -> Path:
        return self.data_dir / "history.json"

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """
        Load configuration from YAML file.

        An explicit path must exist. Without one, the default locations are
        tried and built-in defaults are used if none is present.
        """
        if config_path is None:
            candidates = [
                Path("amalgam.yaml"),
                Path.home() / ".config" / "amalgam" / "config.yaml",
            ]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break
            else:
                logger.debug("No config file found, using defaults")
                return cls()
        elif not Path(config_path).exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        logger.info(f"Loading config from: {config_path}")
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.safe_dump(self.model_dump(mode='json'), f, default_flow_style=False)
