"""Scheduling context — the state every policy and protocol works on.

Instead of global "current process" and "ready queue" variables, the
driver owns a ``SchedulingContext`` and passes it into every policy and
protocol call.  A test can build one by hand, drop a few processes into
it, and exercise a single policy in isolation.

The tick counter is read-only to the core; only the driver advances it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.logging import Logger, LogLevel
from py_sched.process.queue import ProcessQueue
from py_sched.sync.resources import ResourceTable

if TYPE_CHECKING:
    from py_sched.process.pcb import Process


class SchedulingContext:
    """Shared state handed to policies and acquisition protocols."""

    def __init__(
        self,
        *,
        resources: ResourceTable | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Create a context with an empty ready queue.

        Args:
            resources: The resource table (a default-sized one if omitted).
            logger: Event log shared with the driver.

        """
        self.current: Process | None = None
        self._ready_queue = ProcessQueue(name="ready queue")
        self._resources = resources if resources is not None else ResourceTable()
        self._logger = logger if logger is not None else Logger()
        self._tick = 0

    @property
    def ready_queue(self) -> ProcessQueue:
        """Return the ready queue."""
        return self._ready_queue

    @property
    def resources(self) -> ResourceTable:
        """Return the resource table."""
        return self._resources

    @property
    def logger(self) -> Logger:
        """Return the event log."""
        return self._logger

    @property
    def tick(self) -> int:
        """Return the current tick."""
        return self._tick

    def advance(self) -> int:
        """Advance the clock by one tick and return the new value (driver only)."""
        self._tick += 1
        return self._tick

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Record an event stamped with the current tick."""
        self._logger.log(level, message, source=source, tick=self._tick)

    def debug(self, message: str, *, source: str) -> None:
        """Record a DEBUG event."""
        self.log(LogLevel.DEBUG, message, source=source)
