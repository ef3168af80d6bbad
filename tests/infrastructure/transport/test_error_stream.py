"""Tests for error stream helpers."""

import asyncio
import logging

from reconnector.infrastructure.transport.error_stream import clear_errors, report_error


class TestReportError:
    """Test non-blocking error reporting."""

    def test_report_into_empty_queue(self):
        """Test an error is queued."""
        errors = asyncio.Queue(maxsize=2)
        err = RuntimeError("one")

        report_error(errors, err)

        assert errors.get_nowait() is err

    def test_full_queue_drops_oldest(self, caplog):
        """Test the newest error survives when the queue is full."""
        errors = asyncio.Queue(maxsize=2)
        first, second, third = RuntimeError("1"), RuntimeError("2"), RuntimeError("3")

        with caplog.at_level(logging.WARNING):
            report_error(errors, first)
            report_error(errors, second)
            report_error(errors, third)

        assert errors.get_nowait() is second
        assert errors.get_nowait() is third
        assert "dropping oldest error" in caplog.text


class TestClearErrors:
    """Test draining stale errors."""

    def test_clear_returns_count(self):
        """Test clear_errors empties the queue and counts."""
        errors = asyncio.Queue()
        for i in range(3):
            errors.put_nowait(RuntimeError(str(i)))

        assert clear_errors(errors) == 3
        assert errors.empty()

    def test_clear_empty_queue(self):
        """Test clearing an empty queue is a no-op."""
        assert clear_errors(asyncio.Queue()) == 0
