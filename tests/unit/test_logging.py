"""Tests for wilson.logging module."""
from collections.abc import Generator
from io import StringIO
from unittest import mock

import pytest
from loguru import logger

from wilson.logging import configure_logging


@pytest.fixture
def stderr() -> Generator[StringIO, None, None]:
    with mock.patch("sys.stderr", new_callable=StringIO) as mock_stderr:
        yield mock_stderr
    logger.remove()


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_structured_fields_rendered(self, stderr: StringIO) -> None:
        """Keyword fields should appear as key=value pairs after the message."""
        configure_logging("INFO", colorize=False)
        logger.info("Executing tool batch", total=3, parallel=2)
        output = stderr.getvalue()
        assert "Executing tool batch" in output
        assert "total=3 parallel=2" in output
        assert "INFO" in output

    def test_none_fields_skipped(self, stderr: StringIO) -> None:
        configure_logging("INFO", colorize=False)
        logger.info("Tool call", tool="Read", tool_id=None)
        output = stderr.getvalue()
        assert "tool='Read'" in output
        assert "tool_id" not in output

    def test_field_values_not_interpreted(self, stderr: StringIO) -> None:
        """Braces and angle brackets in values should be printed literally."""
        configure_logging("INFO", colorize=False)
        logger.info("Dropping record", payload="{x}<red>")
        assert "payload='{x}<red>'" in stderr.getvalue()

    def test_level_filters(self, stderr: StringIO) -> None:
        configure_logging("warning", colorize=False)
        logger.info("hidden")
        logger.warning("shown")
        output = stderr.getvalue()
        assert "hidden" not in output
        assert "shown" in output
