"""Simulation driver — the process table and the tick loop.

The driver is the only code that moves the clock.  On every tick it:

1. admits the processes whose arrival tick has come (READY, appended
   to the ready queue, reported to the policy's ``forked`` hook);
2. asks the policy's ``schedule()`` who runs; None means an idle tick;
3. dispatches the chosen process if it was not already running;
4. issues every resource request due at the process's current age; if
   ``acquire`` says no, the process is already WAITING and the tick is
   spent blocked without aging it;
5. runs the process for one tick, counts down held resources and
   ``release``s the ones whose hold has expired;
6. retires the process once its lifespan is used up (releasing anything
   it still holds);
7. advances the clock.

A run ends when every process has exited, when the optional tick limit
is reached, or when nothing can ever run again although processes are
still waiting (a deadlock or a starved wait queue).  The last case is
reported as *stalled*; there are no timeouts to break it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from py_sched.context import SchedulingContext
from py_sched.errors import ProtocolViolation
from py_sched.logging import Logger, LogLevel
from py_sched.process.pcb import ProcessState
from py_sched.process.scheduler import can_continue
from py_sched.sync.resources import DEFAULT_NUM_RESOURCES, ResourceTable
from py_sched.workload import WorkloadError

if TYPE_CHECKING:
    from py_sched.process.pcb import Process
    from py_sched.process.scheduler import SchedulingPolicy
    from py_sched.workload import ProcessSpec, Workload

_SOURCE = "simulation"


class TickEvent(StrEnum):
    """What happened on a tick."""

    RUN = "run"
    IDLE = "idle"
    BLOCKED = "blocked"
    EXIT = "exit"


@dataclass(frozen=True)
class TickRecord:
    """One line of the timeline."""

    tick: int
    pid: int | None
    event: TickEvent

    def __str__(self) -> str:
        """Format like the classic trace: ``  3: 1``."""
        if self.pid is None:
            return f"{self.tick:>4}: idle"
        suffix = "" if self.event is TickEvent.RUN else f" {self.event}"
        return f"{self.tick:>4}: {self.pid}{suffix}"


@dataclass(frozen=True)
class ProcessStats:
    """Per-process outcome of a run."""

    pid: int
    name: str
    arrival_tick: int
    lifespan: int
    age: int
    exit_tick: int | None

    @property
    def turnaround(self) -> int | None:
        """Return ticks from arrival to exit, or None if it never exited."""
        if self.exit_tick is None:
            return None
        return self.exit_tick - self.arrival_tick

    @property
    def waiting(self) -> int | None:
        """Return ticks spent not running between arrival and exit."""
        turnaround = self.turnaround
        return None if turnaround is None else turnaround - self.lifespan


@dataclass(frozen=True)
class SimulationReport:
    """Everything a finished run produced."""

    policy: str
    timeline: tuple[TickRecord, ...]
    processes: tuple[ProcessStats, ...]
    context_switches: int
    stalled: bool = False
    truncated: bool = False

    @property
    def total_ticks(self) -> int:
        """Return the number of simulated ticks."""
        return len(self.timeline)

    @property
    def idle_ticks(self) -> int:
        """Return the number of ticks nothing ran."""
        return sum(1 for r in self.timeline if r.event is TickEvent.IDLE)

    @property
    def average_turnaround(self) -> float | None:
        """Return mean turnaround over exited processes."""
        values = [p.turnaround for p in self.processes if p.turnaround is not None]
        return sum(values) / len(values) if values else None

    @property
    def average_waiting(self) -> float | None:
        """Return mean waiting time over exited processes."""
        values = [p.waiting for p in self.processes if p.waiting is not None]
        return sum(values) / len(values) if values else None

    def gantt(self) -> str:
        """Return a one-line chart: a PID per tick, ``-`` idle, ``!`` blocked."""
        cells: list[str] = []
        for record in self.timeline:
            if record.pid is None:
                cells.append("-")
            elif record.event is TickEvent.BLOCKED:
                cells.append(f"{record.pid}!")
            else:
                cells.append(str(record.pid))
        return " ".join(cells)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation."""
        return {
            "policy": self.policy,
            "total_ticks": self.total_ticks,
            "idle_ticks": self.idle_ticks,
            "context_switches": self.context_switches,
            "stalled": self.stalled,
            "truncated": self.truncated,
            "average_turnaround": self.average_turnaround,
            "average_waiting": self.average_waiting,
            "gantt": self.gantt(),
            "timeline": [
                {"tick": r.tick, "pid": r.pid, "event": str(r.event)} for r in self.timeline
            ],
            "processes": [
                {
                    "pid": p.pid,
                    "name": p.name,
                    "arrival_tick": p.arrival_tick,
                    "lifespan": p.lifespan,
                    "age": p.age,
                    "exit_tick": p.exit_tick,
                    "turnaround": p.turnaround,
                    "waiting": p.waiting,
                }
                for p in self.processes
            ],
        }


class Simulation:
    """Drive one policy over one workload, a tick at a time."""

    def __init__(
        self,
        workload: Workload,
        policy: SchedulingPolicy,
        *,
        num_resources: int = DEFAULT_NUM_RESOURCES,
        max_ticks: int | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Prepare a simulation.

        Args:
            workload: The processes to run.
            policy: The scheduling policy (with its acquisition protocol).
            num_resources: Size of the resource table.
            max_ticks: Stop after this many ticks (None = no limit).
            logger: Event log (a fresh one if omitted).

        Raises:
            WorkloadError: If the workload names a resource outside the table.

        """
        resources = ResourceTable(num_resources)
        for rid in sorted(workload.resource_ids()):
            if rid >= num_resources:
                msg = f"resource {rid} is outside the table of {num_resources} resources"
                raise WorkloadError(msg)
        for rid, ceiling in workload.ceilings().items():
            resources.set_ceiling(rid, ceiling)

        self._logger = logger if logger is not None else Logger()
        self._ctx = SchedulingContext(resources=resources, logger=self._logger)
        self._policy = policy
        self._max_ticks = max_ticks
        # Stable sort keeps file order among processes arriving together.
        self._pending: list[ProcessSpec] = sorted(
            workload.processes, key=lambda s: s.arrival_tick
        )
        self._processes: dict[int, Process] = {}
        self._holding: dict[int, dict[int, int]] = {}  # PID → {resource id: ticks left}
        self._next_request: dict[int, int] = {}  # PID → index into its requests
        self._timeline: list[TickRecord] = []
        self._context_switches = 0
        self._started = False
        self._stalled = False
        self._truncated = False

    # -- Read-only views ------------------------------------------------------

    @property
    def context(self) -> SchedulingContext:
        """Return the scheduling context shared with the policy."""
        return self._ctx

    @property
    def policy(self) -> SchedulingPolicy:
        """Return the active policy."""
        return self._policy

    @property
    def logger(self) -> Logger:
        """Return the event log."""
        return self._logger

    @property
    def tick_count(self) -> int:
        """Return the number of ticks simulated so far."""
        return self._ctx.tick

    @property
    def processes(self) -> dict[int, Process]:
        """Return the process table (arrived processes only)."""
        return dict(self._processes)

    @property
    def timeline(self) -> list[TickRecord]:
        """Return the per-tick records so far."""
        return list(self._timeline)

    @property
    def done(self) -> bool:
        """Return True when every process has arrived and exited."""
        return not self._pending and all(
            p.state is ProcessState.EXITED for p in self._processes.values()
        )

    @property
    def stalled(self) -> bool:
        """Return True if nothing can run although processes are still waiting."""
        ctx = self._ctx
        if self._pending or len(ctx.ready_queue) or can_continue(ctx.current):
            return False
        return any(
            p.state in (ProcessState.WAITING, ProcessState.BLOCKED)
            for p in self._processes.values()
        )

    # -- Running ---------------------------------------------------------------

    def run(self) -> SimulationReport:
        """Run to completion and return the report.

        Raises:
            ProtocolViolation: If the policy or protocol breaks an invariant.

        """
        if not self._started:
            self._start()
        try:
            while not self.done:
                if self._max_ticks is not None and self._ctx.tick >= self._max_ticks:
                    self._truncated = True
                    self._ctx.log(
                        LogLevel.WARNING,
                        f"stopped at tick limit {self._max_ticks}",
                        source=_SOURCE,
                    )
                    break
                if self.stalled:
                    self._stalled = True
                    waiting = sorted(
                        p.pid
                        for p in self._processes.values()
                        if p.state in (ProcessState.WAITING, ProcessState.BLOCKED)
                    )
                    self._ctx.log(
                        LogLevel.ERROR,
                        f"stalled: processes {waiting} can never be woken",
                        source=_SOURCE,
                    )
                    break
                self._step()
        finally:
            self._policy.finalize(self._ctx)
        return self.report()

    def step(self) -> TickRecord:
        """Simulate exactly one tick (starting the policy on first use)."""
        if not self._started:
            self._start()
        return self._step()

    def report(self) -> SimulationReport:
        """Return a report of the ticks simulated so far."""
        stats = tuple(
            ProcessStats(
                pid=p.pid,
                name=p.name,
                arrival_tick=p.arrival_tick,
                lifespan=p.lifespan,
                age=p.age,
                exit_tick=p.exit_tick,
            )
            for p in self._processes.values()
        )
        return SimulationReport(
            policy=self._policy.name,
            timeline=tuple(self._timeline),
            processes=stats,
            context_switches=self._context_switches,
            stalled=self._stalled,
            truncated=self._truncated,
        )

    def _start(self) -> None:
        """Initialise the policy once."""
        if self._started:
            msg = "Simulation has already been started"
            raise RuntimeError(msg)
        self._started = True
        if not self._policy.initialize(self._ctx):
            msg = f"Policy {self._policy.name!r} failed to initialise"
            raise RuntimeError(msg)
        self._ctx.log(LogLevel.INFO, f"policy {self._policy.name}", source=_SOURCE)

    def _step(self) -> TickRecord:
        """Run one tick; see the module docstring for the order of events."""
        ctx = self._ctx
        tick = ctx.tick
        self._admit_arrivals(tick)

        previous = ctx.current
        chosen = self._policy.schedule(ctx)

        if chosen is None:
            ctx.current = None
            record = TickRecord(tick=tick, pid=None, event=TickEvent.IDLE)
        else:
            self._dispatch(chosen, previous)
            record = TickRecord(tick=tick, pid=chosen.pid, event=self._run(chosen))

        self._timeline.append(record)
        ctx.advance()
        return record

    def _admit_arrivals(self, tick: int) -> None:
        """Create every process whose arrival tick is *tick*."""
        while self._pending and self._pending[0].arrival_tick <= tick:
            process = self._pending.pop(0).build()
            self._processes[process.pid] = process
            self._holding[process.pid] = {}
            self._next_request[process.pid] = 0
            self._ctx.ready_queue.append(process)
            self._policy.forked(self._ctx, process)
            self._ctx.log(
                LogLevel.INFO,
                f"{process.pid} arrived (lifespan {process.lifespan}, prio {process.priority})",
                source=_SOURCE,
            )

    def _dispatch(self, chosen: Process, previous: Process | None) -> None:
        """Give *chosen* the CPU, checking the policy handed back something sane."""
        if chosen.queue is not None:
            msg = f"Policy selected process {chosen.pid} while it is in {chosen.queue.name}"
            raise ProtocolViolation(msg)
        if chosen.state is ProcessState.READY:
            chosen.dispatch()
        elif chosen.state is not ProcessState.RUNNING:
            msg = f"Policy selected process {chosen.pid} in state {chosen.state}"
            raise ProtocolViolation(msg)
        if chosen is not previous:
            self._context_switches += 1
            self._ctx.debug(f"switch to {chosen.pid}", source=_SOURCE)
        self._ctx.current = chosen

    def _run(self, process: Process) -> TickEvent:
        """Execute one tick of *process*."""
        if not self._issue_requests(process):
            return TickEvent.BLOCKED

        process.run_tick()
        self._expire_holdings(process)

        if process.finished:
            self._exit(process)
            return TickEvent.EXIT
        return TickEvent.RUN

    def _issue_requests(self, process: Process) -> bool:
        """Acquire every resource due at the current age; False if blocked."""
        requests = process.requests
        index = self._next_request[process.pid]
        while index < len(requests) and requests[index].at == process.age:
            request = requests[index]
            if not self._policy.acquire(self._ctx, request.resource_id):
                return False
            self._holding[process.pid][request.resource_id] = request.duration
            index += 1
            self._next_request[process.pid] = index
        return True

    def _expire_holdings(self, process: Process) -> None:
        """Count down held resources and release those whose time is up."""
        held = self._holding[process.pid]
        for rid in list(held):
            held[rid] -= 1
            if held[rid] == 0:
                del held[rid]
                self._policy.release(self._ctx, rid)

    def _exit(self, process: Process) -> None:
        """Retire a finished process, releasing whatever it still holds."""
        held = self._holding[process.pid]
        for rid in list(held):
            del held[rid]
            self._policy.release(self._ctx, rid)
        process.exit()
        process.exit_tick = self._ctx.tick + 1
        self._policy.exiting(self._ctx, process)
        self._ctx.log(LogLevel.INFO, f"{process.pid} exited", source=_SOURCE)

    # -- Status dump -------------------------------------------------------------

    def dump_status(self) -> str:
        """Return a human-readable snapshot of the scheduler state."""
        ctx = self._ctx
        lines = [f"***** tick {ctx.tick} | {self._policy.name} *****"]

        current = ctx.current
        if current is None:
            lines.append("current: -")
        else:
            lines.append(
                f"current: {current.pid} ({current.state}) age {current.age}/{current.lifespan} "
                f"prio {current.priority} (base {current.base_priority})"
            )

        ready = " ".join(str(pid) for pid in ctx.ready_queue.pids) or "-"
        lines.append(f"ready: {ready}")

        for resource in ctx.resources.in_use():
            owner = resource.owner.pid if resource.owner is not None else "-"
            waiters = " ".join(str(pid) for pid in resource.wait_queue.pids) or "-"
            ceiling = resource.ceiling_priority if resource.ceiling_priority is not None else "-"
            lines.append(
                f"resource {resource.resource_id}: owner {owner} ceiling {ceiling} "
                f"waiting {waiters}"
            )

        lines.append(f"{'PID':>5}  {'NAME':<12} {'STATE':<8} {'ARRIVE':>6} {'AGE':>7} {'PRIO':>5}")
        for process in self._processes.values():
            age = f"{process.age}/{process.lifespan}"
            lines.append(
                f"{process.pid:>5}  {process.name:<12} {process.state:<8} "
                f"{process.arrival_tick:>6} {age:>7} {process.priority:>5}"
            )
        return "\n".join(lines)
