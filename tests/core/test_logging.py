"""Tests for weaver.core.logging module."""

import json

import structlog

from weaver.core.context import add_call_processor
from weaver.core.logging import configure_logging, get_logger, is_configured, reset_logging


class TestConfigureLogging:
    """Processor chain configuration."""

    def test_configures_once(self):
        assert not is_configured()
        configure_logging(level="DEBUG")
        assert is_configured()
        configure_logging(level="INFO", json_format=True)
        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)

    def test_force_reconfigures_with_json(self):
        configure_logging()
        configure_logging(json_format=True, force=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert add_call_processor in processors

    def test_console_renderer_by_default(self):
        configure_logging(force=True)
        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)

    def test_level_from_settings(self, monkeypatch):
        import logging

        monkeypatch.setenv("WEAVER_LOG_LEVEL", "WARNING")
        configure_logging(force=True)
        assert logging.getLogger("weaver").level == logging.WARNING

    def test_json_output(self, capsys):
        configure_logging(level="INFO", json_format=True, force=True)
        get_logger("weaver.test").info("weave.type_created", base_type="Account")
        line = capsys.readouterr().err.strip().splitlines()[-1]
        data = json.loads(line)
        assert data["event"] == "weave.type_created"
        assert data["base_type"] == "Account"
        assert data["level"] == "info"

    def test_reset(self):
        configure_logging()
        reset_logging()
        assert not is_configured()
