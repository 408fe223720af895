"""Tests for logging configuration."""

from __future__ import annotations

import logging

import pytest
import structlog

from gallery.core.config import Settings
from gallery.core.logging import setup_logging
from gallery.main import create_app


@pytest.fixture(autouse=True)
def restore_logging():
    """Put the root and library logger levels back after each test."""
    names = ["", "uvicorn", "uvicorn.error", "uvicorn.access", "httpx", "httpcore", "googleapiclient.discovery_cache"]
    levels = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_level_follows_settings(self, tmp_path):
        setup_logging(Settings(log_level="WARNING", frontend_dir=tmp_path / "dist"))

        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("uvicorn").level == logging.WARNING

    def test_upstream_clients_quiet_outside_debug(self, tmp_path):
        setup_logging(Settings(log_level="INFO", debug=False, frontend_dir=tmp_path / "dist"))

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("googleapiclient.discovery_cache").level == logging.ERROR

    def test_debug_lets_upstream_clients_through(self, tmp_path):
        setup_logging(Settings(log_level="DEBUG", debug=True, frontend_dir=tmp_path / "dist"))

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_renderer_follows_debug_flag(self, tmp_path):
        setup_logging(Settings(debug=False, frontend_dir=tmp_path / "dist"))
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

        setup_logging(Settings(debug=True, frontend_dir=tmp_path / "dist"))
        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)


class TestCreateApp:
    def test_app_settings_drive_logging(self, settings):
        create_app(settings.model_copy(update={"log_level": "ERROR"}))

        assert logging.getLogger().level == logging.ERROR
        assert logging.getLogger("uvicorn.error").level == logging.ERROR
