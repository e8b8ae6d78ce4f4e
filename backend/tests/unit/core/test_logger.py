"""Unit tests for the logging utility."""

from __future__ import annotations

import json
import logging

import pytest
from flask import g
from gatekeeper.core.logger import JSONFormatter, configure_logging, ensure_request_id


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_sets_level(restore_root_logger) -> None:
    """``configure_logging`` should set the root logger level."""

    # Act
    configure_logging("DEBUG")

    # Assert
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("apscheduler").level == logging.WARNING


def test_json_formatter_includes_extras() -> None:
    record = logging.LogRecord("gatekeeper", logging.INFO, __file__, 1, "hello %s", ("x",), None)
    record.request_id = "rid-1"
    record.event = "login"
    record.user_id = 7

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "hello x"
    assert payload["level"] == "INFO"
    assert payload["request_id"] == "rid-1"
    assert payload["event"] == "login"
    assert payload["user_id"] == 7


def test_request_id_prefers_correlation_header(app) -> None:
    with app.test_request_context("/", headers={"X-Correlation-ID": "corr-9"}):
        g.pop("request_id", None)
        assert ensure_request_id() == "corr-9"
        assert ensure_request_id() == "corr-9"
