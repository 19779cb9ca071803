"""Tests for batch-job logging.

Test Strategy:
1. Test JSON lines carry the run id and lift record context to top-level keys
2. Test the console format tags lines with the run id
3. Test clearing the run id restores the previous value
"""
import io
import json
import logging

import pytest

from sportsync.core.logging import (
    ColoredFormatter,
    JSONFormatter,
    clear_run_id,
    configure_logging,
    get_run_id,
    set_run_id,
)


@pytest.fixture
def stream():
    buffer = io.StringIO()
    yield buffer
    logging.getLogger().handlers.clear()


def make_record(message, **extra):
    record = logging.LogRecord("sportsync.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:
    """Test suite for formatters and the run id."""

    def test_json_lifts_record_context(self):
        """Should put entity_type/provider/provider_id at the top level."""
        token = set_run_id("run-1")
        try:
            line = JSONFormatter().format(make_record(
                "Unmapped team", entity_type="team", provider="api_football", provider_id="2762", attempt=2,
            ))
        finally:
            clear_run_id(token)

        entry = json.loads(line)
        assert entry["run_id"] == "run-1"
        assert (entry["entity_type"], entry["provider"], entry["provider_id"]) == ("team", "api_football", "2762")
        assert entry["extra"] == {"attempt": 2}
        assert entry["message"] == "Unmapped team"

    def test_console_tags_run_id(self):
        """Should append a short run id to console lines."""
        token = set_run_id("0123456789abcdef")
        try:
            line = ColoredFormatter().format(make_record("Starting team sync"))
        finally:
            clear_run_id(token)

        assert line.endswith("Starting team sync [run 01234567]")

    def test_configure_logging_json(self, stream):
        """Should route records through one JSON handler."""
        configure_logging("DEBUG", json_output=True, handler=logging.StreamHandler(stream))

        logging.getLogger("sportsync.test").info("hello")

        assert json.loads(stream.getvalue())["message"] == "hello"
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_clear_run_id(self):
        """Should restore the previous run id."""
        outer = set_run_id("outer")
        inner = set_run_id()
        assert get_run_id() not in ("", "outer")

        clear_run_id(inner)
        assert get_run_id() == "outer"
        clear_run_id(outer)
        assert get_run_id() == ""
