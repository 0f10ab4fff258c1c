"""Process queues — the ready queue and every resource's wait queue.

A process is linked into at most one queue at any instant.  Rather than
trusting callers to keep that straight, every ``ProcessQueue`` stamps
the process it holds (``process.queue``) and refuses to take a process
that is already stamped by another queue.  Removing a process clears
the stamp again.

Selection helpers scan left to right and only replace the best
candidate on a strictly better key, so ties always go to whichever
process was queued first.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from py_sched.errors import ProtocolViolation

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from py_sched.process.pcb import Process


class ProcessQueue:
    """An ordered, membership-checked queue of processes."""

    def __init__(self, *, name: str) -> None:
        """Create an empty queue labelled *name* (used in diagnostics)."""
        self._name = name
        self._items: deque[Process] = deque()

    @property
    def name(self) -> str:
        """Return the queue label."""
        return self._name

    def append(self, process: Process) -> None:
        """Link *process* at the tail.

        Raises:
            ProtocolViolation: If the process already belongs to a queue.

        """
        if process.queue is not None:
            msg = (
                f"Process {process.pid} cannot join {self._name}: "
                f"already linked into {process.queue.name}"
            )
            raise ProtocolViolation(msg)
        process.queue = self
        self._items.append(process)

    def popleft(self) -> Process | None:
        """Unlink and return the head, or None if the queue is empty."""
        if not self._items:
            return None
        process = self._items.popleft()
        process.queue = None
        return process

    def peek(self) -> Process | None:
        """Return the head without removing it."""
        return self._items[0] if self._items else None

    def remove(self, process: Process) -> None:
        """Unlink *process* from wherever it sits in the queue.

        Raises:
            ProtocolViolation: If the process is not in this queue.

        """
        if process.queue is not self:
            msg = f"Process {process.pid} is not linked into {self._name}"
            raise ProtocolViolation(msg)
        self._items.remove(process)
        process.queue = None

    def peek_min(self, key: Callable[[Process], int]) -> Process | None:
        """Return the first process with the smallest *key*, without removing it."""
        best: Process | None = None
        for process in self._items:
            if best is None or key(process) < key(best):
                best = process
        return best

    def take_min(self, key: Callable[[Process], int]) -> Process | None:
        """Unlink and return the first process with the smallest *key*."""
        best = self.peek_min(key)
        if best is not None:
            self.remove(best)
        return best

    @property
    def pids(self) -> list[int]:
        """Return the PIDs in queue order."""
        return [p.pid for p in self._items]

    def __iter__(self) -> Iterator[Process]:
        """Iterate over a snapshot of the queue, head first."""
        return iter(list(self._items))

    def __len__(self) -> int:
        """Return the number of queued processes."""
        return len(self._items)

    def __contains__(self, process: object) -> bool:
        """Return True if *process* is linked into this queue."""
        return any(p is process for p in self._items)

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"ProcessQueue({self._name!r}, pids={self.pids})"
