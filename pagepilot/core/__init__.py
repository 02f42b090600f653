"""Core utilities: configuration and logging."""
from .config import BrowserConfig, LoggingConfig, Settings, TimeoutConfig
from .logging import setup_logging

__all__ = ["Settings", "BrowserConfig", "TimeoutConfig", "LoggingConfig", "setup_logging"]
