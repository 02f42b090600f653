"""Application configuration using pydantic-settings."""
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BrowserConfig(BaseModel):
    """Browser launch configuration, consumed by start()."""

    headless: bool = True
    window_width: int = Field(default=1280, gt=0)
    window_height: int = Field(default=800, gt=0)
    slow_motion_ms: int = Field(default=0, ge=0)
    devtools: bool = False
    browser_path: Optional[str] = None
    navigation_timeout_ms: int = Field(default=10000, gt=0)
    script_timeout_ms: int = Field(default=30000, gt=0)
    max_navigation_retries: int = Field(default=3, ge=1)


class TimeoutConfig(BaseModel):
    """Per-tool deadlines in seconds."""

    default: float = Field(default=30.0, gt=0)
    create: float = Field(default=30.0, gt=0)
    navigate: float = Field(default=15.0, gt=0)
    execute: float = Field(default=30.0, gt=0)
    screenshot: float = Field(default=30.0, gt=0)
    visibility: float = Field(default=60.0, gt=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: Optional[Path] = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 3


class Settings(BaseSettings):
    """Application settings loaded from YAML or environment."""

    model_config = SettingsConfigDict(
        env_prefix="PAGEPILOT_",
        env_nested_delimiter="__",
    )

    browser: BrowserConfig = BrowserConfig()
    timeouts: TimeoutConfig = TimeoutConfig()
    logging: LoggingConfig = LoggingConfig()

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            Settings instance with loaded configuration.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
