"""Acquisition protocols — who gets a resource, and what it does to priorities.

A protocol decides what happens when the running process asks for, or
gives back, a resource.  Three ship out of the box:

- **FifoProtocol**: the default.  A free resource is granted at once; a
  busy one puts the caller to sleep at the tail of the wait queue.  On
  release the *earliest* waiter is woken, priority plays no part.
- **CeilingProtocol** (priority ceiling): on a successful acquire the
  holder is raised to the resource's static ceiling priority, so no
  process that might also need the resource can preempt it.  Inversion
  is bounded to a single critical section.
- **InheritanceProtocol** (priority inheritance): when a process blocks,
  it donates its priority to the owner if that is more urgent, and the
  donation travels along any chain of owners that are themselves
  blocked.  On release the owner falls back to the most urgent of its
  base priority and the waiters of resources it still holds.

None of these ever blocks the caller.  ``acquire`` returns a decision
(True = granted, False = now WAITING) and the driver acts on it.  A
woken waiter is only made READY; it re-issues its request the next time
it runs.

Design: the elevations are recorded as per-resource *boosts* on the
process (see ``Process.boost``) instead of overwriting its priority, so
giving a resource back removes exactly the elevation it granted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from py_sched.errors import ProtocolViolation

if TYPE_CHECKING:
    from py_sched.context import SchedulingContext
    from py_sched.process.pcb import Process

_SOURCE = "protocol"


class AcquisitionProtocol(Protocol):
    """Interface every acquire/release protocol must satisfy."""

    def initialize(self, ctx: SchedulingContext) -> None:
        """Reset protocol-private state before a run."""
        ...  # pragma: no cover

    def finalize(self, ctx: SchedulingContext) -> None:
        """Release protocol-private state after a run."""
        ...  # pragma: no cover

    def acquire(self, ctx: SchedulingContext, resource_id: int) -> bool:
        """Try to give *resource_id* to the current process."""
        ...  # pragma: no cover

    def release(self, ctx: SchedulingContext, resource_id: int) -> None:
        """Give *resource_id* back on behalf of the current process."""
        ...  # pragma: no cover


def _caller(ctx: SchedulingContext, action: str, resource_id: int) -> Process:
    """Return the process on whose behalf *action* runs.

    Raises:
        ProtocolViolation: If no process is running.

    """
    if ctx.current is None:
        msg = f"Cannot {action} resource {resource_id}: no process is running"
        raise ProtocolViolation(msg)
    return ctx.current


class FifoProtocol:
    """Default protocol: first requester wins, waiters woken in arrival order."""

    def initialize(self, ctx: SchedulingContext) -> None:
        """Nothing to set up."""

    def finalize(self, ctx: SchedulingContext) -> None:
        """Nothing to tear down."""

    def acquire(self, ctx: SchedulingContext, resource_id: int) -> bool:
        """Grant the resource if free, otherwise queue the caller.

        Returns:
            True if the caller now owns the resource, False if it was
            moved to WAITING and must be scheduled out.

        Raises:
            ProtocolViolation: If nothing is running, the id is out of
                range, or the caller already owns the resource.

        """
        process = _caller(ctx, "acquire", resource_id)
        resource = ctx.resources[resource_id]

        if resource.owner is process:
            msg = f"Process {process.pid} already owns resource {resource_id}"
            raise ProtocolViolation(msg)

        if resource.owner is None:
            resource.owner = process
            ctx.debug(f"{process.pid} acquired resource {resource_id}", source=_SOURCE)
            return True

        process.wait()
        resource.wait_queue.append(process)
        ctx.debug(
            f"{process.pid} waits for resource {resource_id} held by {resource.owner.pid}",
            source=_SOURCE,
        )
        return False

    def release(self, ctx: SchedulingContext, resource_id: int) -> None:
        """Un-own the resource and wake the earliest waiter.

        Raises:
            ProtocolViolation: If the caller is not the owner.

        """
        self._release(ctx, resource_id)

    def _release(self, ctx: SchedulingContext, resource_id: int) -> Process | None:
        """Release on behalf of the current process and return the woken waiter."""
        process = _caller(ctx, "release", resource_id)
        resource = ctx.resources[resource_id]

        if resource.owner is None:
            msg = f"Process {process.pid} released resource {resource_id}, which is not owned"
            raise ProtocolViolation(msg)
        if resource.owner is not process:
            msg = (
                f"Process {process.pid} released resource {resource_id}, "
                f"owned by {resource.owner.pid}"
            )
            raise ProtocolViolation(msg)

        resource.owner = None
        ctx.debug(f"{process.pid} released resource {resource_id}", source=_SOURCE)

        waiter = resource.wait_queue.popleft()
        if waiter is None:
            return None
        waiter.wake()
        ctx.ready_queue.append(waiter)
        ctx.debug(f"{waiter.pid} woken from resource {resource_id}", source=_SOURCE)
        return waiter


class CeilingProtocol(FifoProtocol):
    """Priority ceiling: holders run at the resource's ceiling priority."""

    def acquire(self, ctx: SchedulingContext, resource_id: int) -> bool:
        """Acquire as FIFO does, then raise the new owner to the ceiling."""
        process = _caller(ctx, "acquire", resource_id)
        if not super().acquire(ctx, resource_id):
            return False

        ceiling = ctx.resources[resource_id].ceiling_priority
        if ceiling is not None and ceiling < process.base_priority:
            process.boost(resource_id, ceiling)
            ctx.debug(
                f"{process.pid} raised to ceiling {ceiling} by resource {resource_id}",
                source=_SOURCE,
            )
        return True

    def release(self, ctx: SchedulingContext, resource_id: int) -> None:
        """Release as FIFO does, then drop the ceiling elevation."""
        process = _caller(ctx, "release", resource_id)
        super().release(ctx, resource_id)
        process.unboost(resource_id)
        ctx.debug(f"{process.pid} back to priority {process.priority}", source=_SOURCE)


class InheritanceProtocol(FifoProtocol):
    """Priority inheritance: blocked processes donate priority to owners.

    Tracks which resource each blocked process is waiting on so that a
    donation can follow a chain of blocked owners (transitive
    inheritance).  The walk stops at a free resource, at an owner that is
    already at least as urgent, or when it loops back on itself.
    """

    def __init__(self) -> None:
        """Create the protocol with no blocked processes."""
        self._blocked_on: dict[int, int] = {}  # PID → resource id

    def initialize(self, ctx: SchedulingContext) -> None:
        """Forget any tracking left over from a previous run."""
        self._blocked_on.clear()

    def finalize(self, ctx: SchedulingContext) -> None:
        """Drop all tracking state."""
        self._blocked_on.clear()

    def blocked_on(self, pid: int) -> int | None:
        """Return the resource *pid* is blocked on, or None."""
        return self._blocked_on.get(pid)

    def acquire(self, ctx: SchedulingContext, resource_id: int) -> bool:
        """Acquire as FIFO does; on failure donate priority to the owner.

        A new owner of a resource that still has waiters (a woken waiter
        re-acquiring it) inherits from them straight away.
        """
        process = _caller(ctx, "acquire", resource_id)
        if super().acquire(ctx, resource_id):
            top = ctx.resources[resource_id].wait_queue.peek_min(key=lambda p: p.priority)
            if top is not None and top.priority < process.base_priority:
                process.boost(resource_id, top.priority)
            return True
        self._blocked_on[process.pid] = resource_id
        self._donate(ctx, process, resource_id)
        return False

    def release(self, ctx: SchedulingContext, resource_id: int) -> None:
        """Release as FIFO does, then recompute the releaser's priority."""
        process = _caller(ctx, "release", resource_id)
        waiter = self._release(ctx, resource_id)
        if waiter is not None:
            self._blocked_on.pop(waiter.pid, None)
        self._recompute(ctx, process)

    def _donate(self, ctx: SchedulingContext, waiter: Process, resource_id: int) -> None:
        """Push *waiter*'s priority along the chain of owners."""
        priority = waiter.priority
        visited: set[int] = {waiter.pid}
        current_resource: int | None = resource_id

        while current_resource is not None:
            holder = ctx.resources[current_resource].owner
            if holder is None or holder.pid in visited:
                break
            if priority >= holder.priority:
                break
            holder.boost(current_resource, priority)
            ctx.debug(
                f"{holder.pid} inherits priority {priority} through resource {current_resource}",
                source=_SOURCE,
            )
            visited.add(holder.pid)
            current_resource = self._blocked_on.get(holder.pid)

    @staticmethod
    def _recompute(ctx: SchedulingContext, process: Process) -> None:
        """Rebuild *process*'s boosts from the waiters it still blocks."""
        process.clear_boosts()
        for resource in ctx.resources.held_by(process):
            top = resource.wait_queue.peek_min(key=lambda p: p.priority)
            if top is not None and top.priority < process.base_priority:
                process.boost(resource.resource_id, top.priority)
        ctx.debug(f"{process.pid} recomputed to priority {process.priority}", source=_SOURCE)
