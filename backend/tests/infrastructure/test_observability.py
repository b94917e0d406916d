"""Structured Logging — formatter output and handler installation."""

import json
import logging

import pytest

from eventkeeper.infrastructure.observability import (
    JSONFormatter, KeyValueFormatter, setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "eventkeeper.services.team_membership", logging.WARNING,
        __file__, 1, "Team %s full", (4,), None,
    )
    record.__dict__.update(extra)
    return record


@pytest.fixture
def root_handlers():
    root = logging.getLogger()
    engine_logger = logging.getLogger("sqlalchemy.engine")
    before = list(root.handlers), root.level, engine_logger.level
    yield root
    root.handlers[:] = before[0]
    root.setLevel(before[1])
    engine_logger.setLevel(before[2])


def test_json_formatter_surfaces_identity_fields():
    payload = json.loads(JSONFormatter().format(_record(team_id=4, user_id=9)))
    assert payload["message"] == "Team 4 full"
    assert payload["level"] == "WARNING"
    assert payload["team_id"] == 4
    assert payload["user_id"] == 9
    assert "event_id" not in payload


def test_key_value_formatter_appends_extras():
    line = KeyValueFormatter().format(_record(team_id=4, error_code="CAPACITY_EXCEEDED"))
    assert line.endswith("Team 4 full [team_id=4 error_code=CAPACITY_EXCEEDED]")


def test_key_value_formatter_plain_without_extras():
    assert KeyValueFormatter().format(_record()).endswith("Team 4 full")


def test_setup_logging_does_not_stack_handlers(root_handlers):
    setup_logging("INFO", "json")
    handler = setup_logging("DEBUG", "text")

    ours = [h for h in root_handlers.handlers if h.get_name() == handler.get_name()]
    assert ours == [handler]
    assert isinstance(handler.formatter, KeyValueFormatter)
    assert root_handlers.level == logging.DEBUG
