"""Simulation event log.

Every grant, wait, wake-up, boost and process exit is recorded as a
``LogEntry`` stamped with the tick it happened on.  The log stays in
memory for the whole run; the CLI prints it with ``--verbose`` and tests
query it directly.

Levels are an IntEnum so a minimum-level filter is a plain ``>=``.
Entries are frozen: nothing rewrites history once a tick has passed.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """How serious an event is, from routine tracing up to a stalled run."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3

    @classmethod
    def parse(cls, name: str) -> "LogLevel":
        """Return the level called *name* (case-insensitive).

        Raises:
            ValueError: If *name* is not a known level.

        """
        try:
            return cls[str(name).upper()]
        except KeyError:
            msg = f"Unknown log level: {name!r}"
            raise ValueError(msg) from None


@dataclass(frozen=True)
class LogEntry:
    """One event of the run.

    Attributes:
        level: Severity.
        message: What happened, e.g. ``"2 waits for resource 0 held by 1"``.
        source: Emitting layer: ``"protocol"``, ``"scheduler"`` or ``"simulation"``.
        tick: Simulation tick of the event.

    """

    level: LogLevel
    message: str
    source: str
    tick: int = 0

    def __str__(self) -> str:
        """Format as ``[LEVEL] tick source: message``."""
        return f"[{self.level.name}] {self.tick:>4} {self.source}: {self.message}"


class Logger:
    """In-memory event log of one simulation."""

    def __init__(self) -> None:
        """Start with no events."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of every event, oldest first."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        tick: int = 0,
    ) -> None:
        """Record one event.

        Args:
            level: Severity of the event.
            message: Description of the event.
            source: Layer that emitted it.
            tick: Tick the event belongs to.

        """
        self._entries.append(LogEntry(level=level, message=message, source=source, tick=tick))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        tick: int | None = None,
    ) -> list[LogEntry]:
        """Return the events that pass every given criterion.

        Args:
            min_level: Keep events at or above this level.
            source: Keep events from this layer only.
            tick: Keep events from this tick only.

        Returns:
            A new list, oldest first.

        """
        return [
            entry
            for entry in self._entries
            if (min_level is None or entry.level >= min_level)
            and (source is None or entry.source == source)
            and (tick is None or entry.tick == tick)
        ]

    def clear(self) -> None:
        """Forget every recorded event."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of recorded events."""
        return len(self._entries)
