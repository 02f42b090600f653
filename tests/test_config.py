"""Tests for settings loading and logging setup."""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
from pydantic import ValidationError

from pagepilot.core import BrowserConfig, Settings, TimeoutConfig, setup_logging


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.browser.headless is True
        assert settings.browser.window_width == 1280
        assert settings.timeouts.navigate == 15.0
        assert settings.logging.level == "INFO"
        assert settings.logging.file is None

    def test_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(
            "browser:\n"
            "  headless: false\n"
            "  window_width: 1920\n"
            "timeouts:\n"
            "  execute: 5\n"
            "logging:\n"
            "  level: DEBUG\n"
        )

        settings = Settings.from_yaml(path)

        assert settings.browser.headless is False
        assert settings.browser.window_width == 1920
        assert settings.browser.window_height == 800
        assert settings.timeouts.execute == 5.0
        assert settings.logging.level == "DEBUG"

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("")
        assert Settings.from_yaml(path).browser == BrowserConfig()

    def test_shipped_config_loads(self) -> None:
        path = Path(__file__).parent.parent / "config" / "settings.yaml"
        settings = Settings.from_yaml(path)
        assert settings.timeouts == TimeoutConfig(default=30, create=30, navigate=15, execute=30, screenshot=30, visibility=60)

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PAGEPILOT_BROWSER__HEADLESS", "false")
        monkeypatch.setenv("PAGEPILOT_TIMEOUTS__EXECUTE", "12.5")

        settings = Settings()

        assert settings.browser.headless is False
        assert settings.timeouts.execute == 12.5

    def test_invalid_values_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BrowserConfig(window_width=0)
        with pytest.raises(ValidationError):
            TimeoutConfig(execute=-1)


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self) -> None:
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_level(self) -> None:
        setup_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_rotating_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "pagepilot.log"

        setup_logging("INFO", log_file=log_file, max_bytes=1024, backup_count=2)
        logging.getLogger("pagepilot.test").info("hello file")

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 1024
        file_handlers[0].flush()
        assert "hello file" in log_file.read_text()
