"""CPU scheduling policies — decide which process runs on each tick.

Every policy answers one question per tick: given the process that ran
last tick (``ctx.current``) and the ready queue, who runs now?  Seven
policies ship out of the box:

- **FCFSPolicy** (First Come, First Served): the running process keeps
  the CPU until it finishes or blocks, then the ready-queue head runs.
- **SJFPolicy** (Shortest Job First): non-preemptive; when the CPU is
  free, pick the ready process with the smallest total lifespan.
- **SRTFPolicy** (Shortest Remaining Time First): the preemptive cousin
  of SJF; every tick the process with the least work left runs.
- **RoundRobinPolicy**: each process gets a fixed slice (one tick by
  default), then goes to the back of the queue.
- **PriorityPolicy**: the most urgent priority (numerically lowest) runs,
  re-decided every tick.
- **PriorityCeilingPolicy**: PriorityPolicy plus the priority ceiling
  acquisition protocol.
- **PriorityInheritancePolicy**: PriorityPolicy plus the priority
  inheritance acquisition protocol.

Continuation: a policy may keep the previous process only while it is
still RUNNING and has lifespan left.  A process that blocked on a
resource (WAITING) or exited is never continued.

Ties always go to the process seen first: the running process, then the
ready queue from head to tail.

Design: Strategy pattern
    The driver is the *context*; the policy is the *strategy*.  Each
    policy also carries an acquisition protocol and forwards
    ``acquire``/``release`` to it, so a policy is the complete bundle of
    operations the driver needs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from py_sched.process.pcb import ProcessState
from py_sched.sync.protocols import CeilingProtocol, FifoProtocol, InheritanceProtocol

if TYPE_CHECKING:
    from collections.abc import Callable

    from py_sched.context import SchedulingContext
    from py_sched.process.pcb import Process
    from py_sched.sync.protocols import AcquisitionProtocol

_SOURCE = "scheduler"


class SchedulingPolicy(Protocol):
    """Interface every scheduling policy must satisfy."""

    @property
    def name(self) -> str:
        """Return a human-readable policy name."""
        ...  # pragma: no cover

    def initialize(self, ctx: SchedulingContext) -> bool:
        """Set up policy-private state; return True on success."""
        ...  # pragma: no cover

    def finalize(self, ctx: SchedulingContext) -> None:
        """Release policy-private state."""
        ...  # pragma: no cover

    def schedule(self, ctx: SchedulingContext) -> Process | None:
        """Return the process to run this tick, or None for an idle tick."""
        ...  # pragma: no cover

    def acquire(self, ctx: SchedulingContext, resource_id: int) -> bool:
        """Handle a resource request from the running process."""
        ...  # pragma: no cover

    def release(self, ctx: SchedulingContext, resource_id: int) -> None:
        """Handle a resource release from the running process."""
        ...  # pragma: no cover

    def forked(self, ctx: SchedulingContext, process: Process) -> None:
        """Observe a newly arrived process."""
        ...  # pragma: no cover

    def exiting(self, ctx: SchedulingContext, process: Process) -> None:
        """Observe a process that is about to leave the system."""
        ...  # pragma: no cover


def can_continue(process: Process | None) -> bool:
    """Return True if *process* may simply keep the CPU."""
    return (
        process is not None
        and process.state is ProcessState.RUNNING
        and not process.finished
    )


def _preempt(ctx: SchedulingContext, process: Process) -> None:
    """Send the running *process* back to the tail of the ready queue."""
    process.preempt()
    ctx.ready_queue.append(process)
    ctx.debug(f"{process.pid} preempted", source=_SOURCE)


def _pick_preemptive(ctx: SchedulingContext, key: Callable[[Process], int]) -> Process | None:
    """Pick the smallest *key* among the running process and the ready queue.

    The running process wins ties, so equal candidates never cause a
    needless switch.
    """
    current = ctx.current
    best = ctx.ready_queue.peek_min(key)
    if current is not None and can_continue(current):
        if best is None or key(current) <= key(best):
            return current
        _preempt(ctx, current)
    return ctx.ready_queue.take_min(key)


class BasePolicy:
    """Shared plumbing: protocol forwarding and no-op hooks.

    Subclasses only implement ``schedule`` (and optionally override
    ``initialize``/``finalize`` for private state, calling ``super()``).
    """

    title = "Base"

    def __init__(self, *, protocol: AcquisitionProtocol | None = None) -> None:
        """Create a policy using *protocol* for acquire/release.

        Args:
            protocol: Acquisition protocol; FIFO when omitted.

        """
        self._protocol: AcquisitionProtocol = (
            protocol if protocol is not None else self._default_protocol()
        )

    @staticmethod
    def _default_protocol() -> AcquisitionProtocol:
        """Return the protocol used when none is given."""
        return FifoProtocol()

    @property
    def name(self) -> str:
        """Return the human-readable policy name."""
        return self.title

    @property
    def protocol(self) -> AcquisitionProtocol:
        """Return the acquisition protocol in use."""
        return self._protocol

    def initialize(self, ctx: SchedulingContext) -> bool:
        """Reset the protocol's private state."""
        self._protocol.initialize(ctx)
        return True

    def finalize(self, ctx: SchedulingContext) -> None:
        """Release the protocol's private state."""
        self._protocol.finalize(ctx)

    def schedule(self, ctx: SchedulingContext) -> Process | None:
        """Pick the next process (implemented by each policy)."""
        raise NotImplementedError

    def acquire(self, ctx: SchedulingContext, resource_id: int) -> bool:
        """Forward to the acquisition protocol."""
        return self._protocol.acquire(ctx, resource_id)

    def release(self, ctx: SchedulingContext, resource_id: int) -> None:
        """Forward to the acquisition protocol."""
        self._protocol.release(ctx, resource_id)

    def forked(self, ctx: SchedulingContext, process: Process) -> None:
        """Ignore arrivals by default."""

    def exiting(self, ctx: SchedulingContext, process: Process) -> None:
        """Ignore exits by default."""

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        return f"{type(self).__name__}(protocol={type(self._protocol).__name__})"


class FCFSPolicy(BasePolicy):
    """First Come, First Served — run to completion in arrival order.

    A long process makes everyone behind it wait (the convoy effect).
    """

    title = "FCFS"

    def schedule(self, ctx: SchedulingContext) -> Process | None:
        """Keep the running process, else pop the ready-queue head."""
        if can_continue(ctx.current):
            return ctx.current
        return ctx.ready_queue.popleft()


class SJFPolicy(BasePolicy):
    """Shortest Job First — non-preemptive, by total declared lifespan."""

    title = "Shortest-Job First"

    def schedule(self, ctx: SchedulingContext) -> Process | None:
        """Keep the running process, else take the shortest ready job."""
        if can_continue(ctx.current):
            return ctx.current
        return ctx.ready_queue.take_min(key=lambda p: p.lifespan)


class SRTFPolicy(BasePolicy):
    """Shortest Remaining Time First — re-decided every tick."""

    title = "Shortest Remaining Time First"

    def schedule(self, ctx: SchedulingContext) -> Process | None:
        """Run whichever process has the least work left."""
        return _pick_preemptive(ctx, key=lambda p: p.remaining_time)


class RoundRobinPolicy(BasePolicy):
    """Round Robin — fixed time slices in FIFO rotation.

    When the running process has used its slice it goes to the tail of
    the ready queue and the new head runs.  With a single runnable
    process the rotation simply hands the CPU back to it.
    """

    title = "Round-Robin"

    def __init__(self, *, quantum: int = 1, protocol: AcquisitionProtocol | None = None) -> None:
        """Create a Round Robin policy.

        Args:
            quantum: Ticks per slice (must be positive).
            protocol: Acquisition protocol; FIFO when omitted.

        Raises:
            ValueError: If the quantum is not positive.

        """
        if quantum <= 0:
            msg = f"quantum must be positive, got {quantum}"
            raise ValueError(msg)
        super().__init__(protocol=protocol)
        self._quantum = quantum
        self._used = 0

    @property
    def quantum(self) -> int:
        """Return the slice length in ticks."""
        return self._quantum

    def initialize(self, ctx: SchedulingContext) -> bool:
        """Start with no slice in progress."""
        self._used = 0
        return super().initialize(ctx)

    def schedule(self, ctx: SchedulingContext) -> Process | None:
        """Continue within the slice, otherwise rotate."""
        current = ctx.current
        if current is not None and can_continue(current):
            if self._used < self._quantum:
                self._used += 1
                return current
            _preempt(ctx, current)

        nxt = ctx.ready_queue.popleft()
        self._used = 1 if nxt is not None else 0
        return nxt


class PriorityPolicy(BasePolicy):
    """Priority scheduling — the most urgent (lowest) priority runs.

    Preemptive: a newly ready process with a more urgent priority takes
    the CPU on the next tick.  Uses the *effective* priority, so boosts
    from the ceiling or inheritance protocols are honoured.

    Starvation risk: a steady stream of urgent work can keep a low
    priority process waiting forever.
    """

    title = "Priority"

    def schedule(self, ctx: SchedulingContext) -> Process | None:
        """Run the most urgent process."""
        return _pick_preemptive(ctx, key=lambda p: p.priority)


class PriorityCeilingPolicy(PriorityPolicy):
    """Priority scheduling with the priority ceiling protocol."""

    title = "Priority + Priority Ceiling Protocol"

    @staticmethod
    def _default_protocol() -> AcquisitionProtocol:
        """Use the ceiling protocol."""
        return CeilingProtocol()


class PriorityInheritancePolicy(PriorityPolicy):
    """Priority scheduling with the priority inheritance protocol."""

    title = "Priority + Priority Inheritance Protocol"

    @staticmethod
    def _default_protocol() -> AcquisitionProtocol:
        """Use the inheritance protocol."""
        return InheritanceProtocol()
