"""Tests for the simulation event log."""

import pytest

from py_sched.logging import LogEntry, Logger, LogLevel

TICK = 7


class TestLogLevel:
    """Verify level ordering and parsing."""

    def test_levels_are_ordered(self) -> None:
        """DEBUG < INFO < WARNING < ERROR."""
        assert LogLevel.DEBUG < LogLevel.INFO < LogLevel.WARNING < LogLevel.ERROR

    @pytest.mark.parametrize("name", ["debug", "DEBUG", "Debug"])
    def test_parse_is_case_insensitive(self, name: str) -> None:
        """Level names parse regardless of case."""
        assert LogLevel.parse(name) is LogLevel.DEBUG

    def test_parse_unknown_level(self) -> None:
        """An unknown name is rejected."""
        with pytest.raises(ValueError, match="Unknown log level"):
            LogLevel.parse("loud")


class TestLogEntry:
    """Verify entry formatting."""

    def test_str(self) -> None:
        """Entries render as ``[LEVEL] tick source: message``."""
        entry = LogEntry(level=LogLevel.ERROR, message="stalled", source="sim", tick=TICK)
        assert str(entry) == "[ERROR]    7 sim: stalled"


class TestLogger:
    """Verify recording and filtering."""

    def test_log_appends(self) -> None:
        """Each call adds one entry in order."""
        logger = Logger()
        logger.log(LogLevel.INFO, "first", source="sim")
        logger.log(LogLevel.DEBUG, "second", source="protocol", tick=TICK)
        assert len(logger) == 2
        assert [e.message for e in logger.entries] == ["first", "second"]
        assert logger.entries[1].tick == TICK

    def test_filter_by_level(self) -> None:
        """min_level keeps entries at or above it."""
        logger = Logger()
        logger.log(LogLevel.DEBUG, "noise", source="protocol")
        logger.log(LogLevel.WARNING, "limit", source="sim")
        assert [e.message for e in logger.filter(min_level=LogLevel.INFO)] == ["limit"]

    def test_filter_by_source(self) -> None:
        """source keeps only matching entries."""
        logger = Logger()
        logger.log(LogLevel.DEBUG, "grant", source="protocol")
        logger.log(LogLevel.DEBUG, "dispatch", source="sim")
        assert [e.message for e in logger.filter(source="sim")] == ["dispatch"]

    def test_filter_by_tick(self) -> None:
        """tick keeps only the events of that tick."""
        logger = Logger()
        logger.log(LogLevel.INFO, "earlier", source="simulation", tick=TICK - 1)
        logger.log(LogLevel.INFO, "now", source="simulation", tick=TICK)
        assert [e.message for e in logger.filter(tick=TICK)] == ["now"]

    def test_filter_returns_copy(self) -> None:
        """Mutating a filter result does not touch the log."""
        logger = Logger()
        logger.log(LogLevel.INFO, "kept", source="sim")
        logger.filter().clear()
        assert len(logger) == 1

    def test_clear(self) -> None:
        """clear empties the log."""
        logger = Logger()
        logger.log(LogLevel.INFO, "gone", source="sim")
        logger.clear()
        assert len(logger) == 0
