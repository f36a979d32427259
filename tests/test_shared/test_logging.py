"""Tests for structured JSON logging."""
from __future__ import annotations

import json
import logging
import sys

from src.shared.logging import PACKAGE_LOGGER, JSONFormatter, setup_logging, trace_id_var


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("src.migration_orchestrator.agents", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_fields(self):
        token = trace_id_var.set("trace-1")
        try:
            entry = json.loads(JSONFormatter("code-archaeologist").format(_record()))
        finally:
            trace_id_var.reset(token)
        assert entry["service_name"] == "code-archaeologist"
        assert entry["trace_id"] == "trace-1"
        assert entry["logger"] == "src.migration_orchestrator.agents"
        assert entry["level"] == "INFO"
        assert entry["message"] == "hello"
        assert "project_id" not in entry

    def test_project_id(self):
        entry = json.loads(JSONFormatter().format(_record(project_id="p-1")))
        assert entry["project_id"] == "p-1"

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))
        assert entry["exception"] == "boom"
        assert "RuntimeError" in entry["traceback"]


class TestSetupLogging:
    def test_configures_service_and_package_loggers(self):
        logger = setup_logging("code-archaeologist", "debug")
        package = logging.getLogger(PACKAGE_LOGGER)
        try:
            assert logger.name == "code-archaeologist"
            assert logger.level == logging.DEBUG
            assert package.level == logging.DEBUG
            assert isinstance(package.handlers[0].formatter, JSONFormatter)
        finally:
            for name in ("code-archaeologist", PACKAGE_LOGGER):
                logging.getLogger(name).handlers.clear()
                logging.getLogger(name).setLevel(logging.NOTSET)

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logging("svc-x", "chatty")
        try:
            assert logger.level == logging.INFO
        finally:
            for name in ("svc-x", PACKAGE_LOGGER):
                logging.getLogger(name).handlers.clear()
                logging.getLogger(name).setLevel(logging.NOTSET)
