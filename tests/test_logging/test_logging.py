"""
Tests for the logging system.

Covers:
- HUMAN level registration
- HumanFormatter event formatting
- HumanLogHandler filtering and rendering
- configure_logging pipelines (quiet, file)
"""

import io
import json
import logging
from pathlib import Path

import pytest
import structlog

from skillpack.config.schema import LoggingConfig
from skillpack.logging import HUMAN, HumanLog, HumanLogHandler, configure_logging
from skillpack.logging.human import HumanFormatter
from skillpack.logging.levels import register_human_level


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    for handler in list(logging.root.handlers):
        handler.close()
    logging.root.handlers.clear()
    structlog.reset_defaults()


class TestLevel:
    def test_human_level(self):
        assert HUMAN == 25
        assert logging.getLevelName(HUMAN) == "HUMAN"
        assert hasattr(logging.Logger, "human")

    def test_structlog_knows_the_level(self):
        assert structlog.stdlib.LEVEL_TO_NAME[HUMAN] == "human"

    def test_registration_is_repeatable(self):
        method = logging.Logger.human
        register_human_level()
        assert logging.Logger.human is method
        assert logging.getLevelName("HUMAN") == HUMAN

    def test_stdlib_logger_human_respects_level(self):
        stream = io.StringIO()
        log = logging.getLogger("skillpack.test.human")
        handler = logging.StreamHandler(stream)
        log.addHandler(handler)
        try:
            log.setLevel(logging.WARNING)
            log.human("hidden")
            log.setLevel(HUMAN)
            log.human("shown")
        finally:
            log.removeHandler(handler)
        assert stream.getvalue() == "shown\n"


class TestHumanFormatter:
    def test_package_start(self):
        text = HumanFormatter().format_event("package.start", name="alpha")
        assert text == "=== Packaging: alpha ==="

    def test_package_failed(self):
        text = HumanFormatter().format_event("package.failed", name="b", error="boom")
        assert "FAILED b: boom" in text

    def test_unknown_event(self):
        assert HumanFormatter().format_event("something.else") is None


class TestHumanLogHandler:
    def test_renders_event_dict(self):
        stream = io.StringIO()
        handler = HumanLogHandler(stream=stream)
        record = logging.LogRecord("t", HUMAN, __file__, 1, {"event": "package.start", "name": "x"}, None, None)
        handler.emit(record)
        assert stream.getvalue() == "=== Packaging: x ===\n"

    def test_ignores_other_levels(self):
        stream = io.StringIO()
        handler = HumanLogHandler(stream=stream)
        record = logging.LogRecord("t", logging.INFO, __file__, 1, {"event": "package.start"}, None, None)
        handler.emit(record)
        assert stream.getvalue() == ""


class TestConfigureLogging:
    def test_quiet_has_no_stream_handlers(self):
        configure_logging(LoggingConfig(), quiet=True)
        assert logging.root.handlers == []

    def test_default_pipelines(self):
        configure_logging(LoggingConfig())
        kinds = {type(h) for h in logging.root.handlers}
        assert HumanLogHandler in kinds
        assert logging.StreamHandler in kinds

    def test_human_events_reach_handler(self, monkeypatch):
        stream = io.StringIO()
        monkeypatch.setattr("sys.stderr", stream)
        configure_logging(LoggingConfig())
        HumanLog(structlog.get_logger("test")).package_start("alpha")
        assert "=== Packaging: alpha ===" in stream.getvalue()

    def test_json_file(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "out.jsonl"
        configure_logging(LoggingConfig(file=log_file), quiet=True)
        structlog.get_logger("test").info("skill_installed", name="alpha")
        for handler in logging.root.handlers:
            handler.flush()
        line = log_file.read_text().strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "skill_installed"
        assert payload["name"] == "alpha"
