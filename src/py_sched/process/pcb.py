"""Process and Process Control Block (PCB).

A simulated process is a unit of work with a declared lifespan: it
arrives at some tick, needs ``lifespan`` ticks of CPU, and may ask for
shared resources at fixed points of its progress.

Processes follow a strict state machine: each transition method
(dispatch, preempt, wait, block, wake, exit) checks that the process is
in the correct source state before moving it.

State machine::

    READY ⇄ RUNNING → EXITED
              ↓  ↑
        WAITING / BLOCKED

Priorities are numerically *lower = more urgent*.  The base priority is
fixed at creation; the effective ``priority`` the schedulers look at is
derived from it plus any temporary boosts granted by a resource protocol
(priority ceiling or inheritance).  Boosts are keyed by resource id so
that giving a resource back drops exactly the elevation it caused.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from itertools import count
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from py_sched.process.queue import ProcessQueue

DEFAULT_PRIORITY = 10


class ProcessState(StrEnum):
    """Lifecycle states of a simulated process.

    - READY: linked into the ready queue, eligible to run.
    - RUNNING: selected for the current tick; in no queue.
    - WAITING: linked into a resource's wait queue.
    - BLOCKED: suspended by the driver outside any resource queue.
    - EXITED: lifespan consumed, resources released.
    """

    READY = "ready"
    RUNNING = "running"
    WAITING = "waiting"
    BLOCKED = "blocked"
    EXITED = "exited"


@dataclass(frozen=True)
class ResourceRequest:
    """A declared resource demand.

    When the owning process reaches ``age == at`` it asks for resource
    ``resource_id`` and then holds it for ``duration`` executed ticks.
    """

    resource_id: int
    at: int
    duration: int


# Used when the caller does not supply an explicit pid.
_pid_counter = count(start=1)


class Process:
    """A simulated process (the Process Control Block)."""

    def __init__(
        self,
        *,
        lifespan: int,
        pid: int | None = None,
        name: str | None = None,
        arrival_tick: int = 0,
        priority: int = DEFAULT_PRIORITY,
        requests: tuple[ResourceRequest, ...] = (),
    ) -> None:
        """Create a process in the READY state.

        Args:
            lifespan: Total ticks of work this process needs (> 0).
            pid: Process identifier; allocated automatically if omitted.
            name: Human-readable label (defaults to ``p<pid>``).
            arrival_tick: Tick at which the process enters the system.
            priority: Base scheduling priority (lower = more urgent).
            requests: Resource demands, in any order.

        Raises:
            ValueError: If the lifespan is not positive.

        """
        if lifespan <= 0:
            msg = f"lifespan must be positive, got {lifespan}"
            raise ValueError(msg)
        self._pid: int = next(_pid_counter) if pid is None else pid
        self._name: str = name if name is not None else f"p{self._pid}"
        self._state: ProcessState = ProcessState.READY
        self._arrival_tick: int = arrival_tick
        self._lifespan: int = lifespan
        self._age: int = 0
        self._base_priority: int = priority
        self._boosts: dict[int, int] = {}  # resource id → boosted priority
        self._requests: tuple[ResourceRequest, ...] = tuple(
            sorted(requests, key=lambda r: (r.at, r.resource_id))
        )
        self.queue: ProcessQueue | None = None
        self.exit_tick: int | None = None

    @property
    def pid(self) -> int:
        """Return the process identifier."""
        return self._pid

    @property
    def name(self) -> str:
        """Return the process name."""
        return self._name

    @property
    def state(self) -> ProcessState:
        """Return the current process state."""
        return self._state

    @property
    def arrival_tick(self) -> int:
        """Return the tick this process arrives at."""
        return self._arrival_tick

    @property
    def lifespan(self) -> int:
        """Return the total number of ticks of work."""
        return self._lifespan

    @property
    def age(self) -> int:
        """Return the number of ticks consumed so far."""
        return self._age

    @property
    def remaining_time(self) -> int:
        """Return the ticks of work still outstanding."""
        return self._lifespan - self._age

    @property
    def finished(self) -> bool:
        """Return True once the whole lifespan has been consumed."""
        return self._age >= self._lifespan

    @property
    def requests(self) -> tuple[ResourceRequest, ...]:
        """Return the declared resource requests, ordered by ``at``."""
        return self._requests

    @property
    def base_priority(self) -> int:
        """Return the base scheduling priority (immutable)."""
        return self._base_priority

    @property
    def priority(self) -> int:
        """Return the effective priority: base, or the most urgent active boost."""
        if not self._boosts:
            return self._base_priority
        return min(self._base_priority, *self._boosts.values())

    @property
    def boosts(self) -> dict[int, int]:
        """Return a copy of the active boosts (resource id → priority)."""
        return dict(self._boosts)

    def boost(self, resource_id: int, priority: int) -> None:
        """Record a boost tied to *resource_id*.

        An existing boost for the same resource is only ever made more
        urgent, never weakened.
        """
        current = self._boosts.get(resource_id)
        if current is None or priority < current:
            self._boosts[resource_id] = priority

    def unboost(self, resource_id: int) -> None:
        """Drop the boost tied to *resource_id*, if any."""
        self._boosts.pop(resource_id, None)

    def clear_boosts(self) -> None:
        """Drop every boost, falling back to the base priority."""
        self._boosts.clear()

    def run_tick(self) -> None:
        """Consume one tick of work.

        Raises:
            RuntimeError: If the process is not running or already finished.

        """
        if self._state is not ProcessState.RUNNING:
            msg = f"Cannot run: process {self._pid} is {self._state}, expected running"
            raise RuntimeError(msg)
        if self.finished:
            msg = f"Cannot run: process {self._pid} has no lifespan left"
            raise RuntimeError(msg)
        self._age += 1

    def _transition(
        self,
        action: str,
        expected: tuple[ProcessState, ...],
        target: ProcessState,
    ) -> None:
        """Enforce a state transition.

        Raises:
            RuntimeError: If the process is not in one of the expected states.

        """
        if self._state not in expected:
            wanted = " or ".join(expected)
            msg = f"Cannot {action}: process {self._pid} is {self._state}, expected {wanted}"
            raise RuntimeError(msg)
        self._state = target

    def dispatch(self) -> None:
        """Transition READY → RUNNING."""
        self._transition("dispatch", (ProcessState.READY,), ProcessState.RUNNING)

    def preempt(self) -> None:
        """Transition RUNNING → READY."""
        self._transition("preempt", (ProcessState.RUNNING,), ProcessState.READY)

    def wait(self) -> None:
        """Transition RUNNING → WAITING. Block on a resource."""
        self._transition("wait", (ProcessState.RUNNING,), ProcessState.WAITING)

    def block(self) -> None:
        """Transition RUNNING → BLOCKED. Suspended outside any resource."""
        self._transition("block", (ProcessState.RUNNING,), ProcessState.BLOCKED)

    def wake(self) -> None:
        """Transition WAITING/BLOCKED → READY."""
        self._transition(
            "wake", (ProcessState.WAITING, ProcessState.BLOCKED), ProcessState.READY
        )

    def exit(self) -> None:
        """Transition RUNNING → EXITED."""
        self._transition("exit", (ProcessState.RUNNING,), ProcessState.EXITED)

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return (
            f"Process(pid={self._pid}, name={self._name!r}, state={self._state}, "
            f"age={self._age}/{self._lifespan}, prio={self.priority})"
        )
