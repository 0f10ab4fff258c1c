"""Resource registry — the fixed table of mutually-exclusive resources.

Every resource is a non-reentrant lock with exactly one owner slot and a
FIFO wait queue of blocked processes.  The table is allocated once for
the whole run; only ``owner`` and the wait queue ever change, and only
through an acquisition protocol (see ``py_sched.sync.protocols``).

Each resource may also carry a static *ceiling priority*: the most
urgent priority of any process that will ever lock it.  The priority
ceiling protocol raises a holder to that level while it owns the
resource.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.errors import ProtocolViolation
from py_sched.process.queue import ProcessQueue

if TYPE_CHECKING:
    from collections.abc import Iterator

    from py_sched.process.pcb import Process

DEFAULT_NUM_RESOURCES = 32


class Resource:
    """One lockable resource: an owner slot plus a FIFO wait queue."""

    def __init__(self, resource_id: int, *, ceiling_priority: int | None = None) -> None:
        """Create an unowned resource.

        Args:
            resource_id: Index of the resource in its table.
            ceiling_priority: Static ceiling for the ceiling protocol.

        """
        self._resource_id = resource_id
        self._ceiling_priority = ceiling_priority
        self.owner: Process | None = None
        self._wait_queue = ProcessQueue(name=f"resource {resource_id} wait queue")

    @property
    def resource_id(self) -> int:
        """Return the resource id."""
        return self._resource_id

    @property
    def ceiling_priority(self) -> int | None:
        """Return the static ceiling priority, or None if none is set."""
        return self._ceiling_priority

    @ceiling_priority.setter
    def ceiling_priority(self, value: int | None) -> None:
        """Set the ceiling (done once by the driver before the run)."""
        self._ceiling_priority = value

    @property
    def wait_queue(self) -> ProcessQueue:
        """Return the queue of processes blocked on this resource."""
        return self._wait_queue

    @property
    def is_owned(self) -> bool:
        """Return whether some process currently holds the resource."""
        return self.owner is not None

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        holder = f"owned by {self.owner.pid}" if self.owner is not None else "free"
        return f"Resource({self._resource_id}, {holder}, waiters={self._wait_queue.pids})"


class ResourceTable:
    """Fixed-size table of resources, indexed ``0..N``."""

    def __init__(self, size: int = DEFAULT_NUM_RESOURCES) -> None:
        """Allocate *size* free resources.

        Raises:
            ValueError: If *size* is not positive.

        """
        if size <= 0:
            msg = f"Resource table size must be positive, got {size}"
            raise ValueError(msg)
        self._resources = tuple(Resource(i) for i in range(size))

    def __getitem__(self, resource_id: int) -> Resource:
        """Return the resource with id *resource_id*.

        Raises:
            ProtocolViolation: If the id lies outside the table.

        """
        if not 0 <= resource_id < len(self._resources):
            msg = f"No such resource: {resource_id} (table has {len(self._resources)})"
            raise ProtocolViolation(msg)
        return self._resources[resource_id]

    def __len__(self) -> int:
        """Return the number of resources."""
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        """Iterate over all resources in id order."""
        return iter(self._resources)

    def set_ceiling(self, resource_id: int, priority: int | None) -> None:
        """Assign the static ceiling priority of one resource."""
        self[resource_id].ceiling_priority = priority

    def held_by(self, process: Process) -> list[Resource]:
        """Return every resource *process* currently owns."""
        return [r for r in self._resources if r.owner is process]

    def blocked_on(self, process: Process) -> Resource | None:
        """Return the resource whose wait queue holds *process*, if any."""
        for resource in self._resources:
            if process.queue is resource.wait_queue:
                return resource
        return None

    def in_use(self) -> list[Resource]:
        """Return resources that are owned or have waiters."""
        return [r for r in self._resources if r.owner is not None or len(r.wait_queue)]
