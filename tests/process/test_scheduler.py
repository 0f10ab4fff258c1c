"""Tests for the scheduling policies.

Each policy is exercised in isolation against a hand-built
SchedulingContext: a few processes in the ready queue, optionally one
marked as the running process from the previous tick.

- FCFS: the running process continues; otherwise the ready head runs.
- SJF: non-preemptive shortest total lifespan.
- SRTF: preemptive shortest remaining time, every tick.
- Round Robin: current process to the tail, the new head runs.
- Priority (and its ceiling / inheritance variants): lowest number wins.
"""

import pytest

from py_sched.context import SchedulingContext
from py_sched.process.pcb import Process, ProcessState
from py_sched.process.scheduler import (
    BasePolicy,
    FCFSPolicy,
    PriorityCeilingPolicy,
    PriorityInheritancePolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SJFPolicy,
    SRTFPolicy,
    can_continue,
)
from py_sched.sync.protocols import CeilingProtocol, FifoProtocol, InheritanceProtocol

PID_A = 1
PID_B = 2
PID_C = 3
SHORT = 2
MEDIUM = 5
LONG = 8
PRIORITY_HIGH = 1
PRIORITY_MEDIUM = 5
PRIORITY_LOW = 9


def _proc(pid: int, *, lifespan: int = MEDIUM, priority: int = PRIORITY_MEDIUM) -> Process:
    """Create a READY process."""
    return Process(pid=pid, lifespan=lifespan, priority=priority)


def _ctx(*ready: Process) -> SchedulingContext:
    """Create a context whose ready queue holds *ready* in order."""
    ctx = SchedulingContext()
    for process in ready:
        ctx.ready_queue.append(process)
    return ctx


def _run_as_current(ctx: SchedulingContext, process: Process) -> None:
    """Make *process* the running process, as the driver would."""
    if process.state is ProcessState.READY:
        process.dispatch()
    ctx.current = process


class TestCanContinue:
    """Verify the continuation rule shared by all policies."""

    def test_none_cannot_continue(self) -> None:
        """No previous process means nothing to continue."""
        assert not can_continue(None)

    def test_running_with_work_left(self) -> None:
        """A running process with lifespan left may continue."""
        process = _proc(PID_A)
        process.dispatch()
        assert can_continue(process)

    def test_waiting_cannot_continue(self) -> None:
        """A process that blocked is never continued."""
        process = _proc(PID_A)
        process.dispatch()
        process.wait()
        assert not can_continue(process)

    def test_finished_cannot_continue(self) -> None:
        """A process with no lifespan left is never continued."""
        process = _proc(PID_A, lifespan=1)
        process.dispatch()
        process.run_tick()
        assert not can_continue(process)


class TestIdleTick:
    """Every policy returns None when nothing can run."""

    @pytest.mark.parametrize(
        "policy",
        [
            FCFSPolicy(),
            SJFPolicy(),
            SRTFPolicy(),
            RoundRobinPolicy(),
            PriorityPolicy(),
            PriorityCeilingPolicy(),
            PriorityInheritancePolicy(),
        ],
    )
    def test_empty_ready_queue_is_idle(self, policy: BasePolicy) -> None:
        """Empty ready queue and no current process → idle."""
        ctx = _ctx()
        assert policy.initialize(ctx)
        assert policy.schedule(ctx) is None


class TestFCFS:
    """Verify First Come, First Served."""

    def test_picks_head(self) -> None:
        """With nothing running, the earliest arrival runs."""
        a, b = _proc(PID_A), _proc(PID_B)
        ctx = _ctx(a, b)
        assert FCFSPolicy().schedule(ctx) is a
        assert ctx.ready_queue.pids == [PID_B]

    def test_current_keeps_running(self) -> None:
        """The running process is not requeued."""
        a, b = _proc(PID_A), _proc(PID_B)
        ctx = _ctx(b)
        _run_as_current(ctx, a)
        assert FCFSPolicy().schedule(ctx) is a
        assert ctx.ready_queue.pids == [PID_B]

    def test_waiting_current_is_replaced(self) -> None:
        """A blocked current process gives way to the ready head."""
        a, b = _proc(PID_A), _proc(PID_B)
        ctx = _ctx(b)
        _run_as_current(ctx, a)
        a.wait()
        assert FCFSPolicy().schedule(ctx) is b


class TestSJF:
    """Verify Shortest Job First."""

    def test_picks_shortest_lifespan(self) -> None:
        """The ready process with the smallest lifespan runs."""
        a = _proc(PID_A, lifespan=MEDIUM)
        b = _proc(PID_B, lifespan=SHORT)
        c = _proc(PID_C, lifespan=LONG)
        ctx = _ctx(a, b, c)
        assert SJFPolicy().schedule(ctx) is b

    def test_tie_goes_to_first_seen(self) -> None:
        """Equal lifespans resolve in queue order."""
        a, b = _proc(PID_A, lifespan=SHORT), _proc(PID_B, lifespan=SHORT)
        ctx = _ctx(a, b)
        assert SJFPolicy().schedule(ctx) is a

    def test_not_preemptive(self) -> None:
        """A shorter arrival waits for the running job to finish."""
        long_job = _proc(PID_A, lifespan=LONG)
        short_job = _proc(PID_B, lifespan=SHORT)
        ctx = _ctx(short_job)
        _run_as_current(ctx, long_job)
        assert SJFPolicy().schedule(ctx) is long_job


class TestSRTF:
    """Verify Shortest Remaining Time First."""

    def test_picks_least_remaining(self) -> None:
        """Of remaining times {5, 2, 8} the 2 is selected."""
        a = _proc(PID_A, lifespan=MEDIUM)
        b = _proc(PID_B, lifespan=SHORT)
        c = _proc(PID_C, lifespan=LONG)
        ctx = _ctx(a, b, c)
        chosen = SRTFPolicy().schedule(ctx)
        assert chosen is b
        assert chosen.remaining_time == SHORT

    def test_preempts_longer_current(self) -> None:
        """A ready process with less work left takes the CPU."""
        current = _proc(PID_A, lifespan=LONG)
        shorter = _proc(PID_B, lifespan=SHORT)
        ctx = _ctx(shorter)
        _run_as_current(ctx, current)
        assert SRTFPolicy().schedule(ctx) is shorter
        assert current.state is ProcessState.READY
        assert ctx.ready_queue.pids == [PID_A]

    def test_uses_remaining_not_total(self) -> None:
        """A long job that is nearly done beats a fresh medium job."""
        current = _proc(PID_A, lifespan=LONG)
        ctx = _ctx(_proc(PID_B, lifespan=MEDIUM))
        _run_as_current(ctx, current)
        for _ in range(LONG - 1):
            current.run_tick()
        assert SRTFPolicy().schedule(ctx) is current

    def test_tie_keeps_current(self) -> None:
        """Equal remaining time never causes a switch."""
        current = _proc(PID_A, lifespan=SHORT)
        other = _proc(PID_B, lifespan=SHORT)
        ctx = _ctx(other)
        _run_as_current(ctx, current)
        assert SRTFPolicy().schedule(ctx) is current


class TestRoundRobin:
    """Verify Round Robin rotation."""

    def test_rotation(self) -> None:
        """Ready [A, B, C] with A selected → next call returns B, queue [C, A]."""
        a, b, c = _proc(PID_A), _proc(PID_B), _proc(PID_C)
        ctx = _ctx(a, b, c)
        policy = RoundRobinPolicy()
        policy.initialize(ctx)

        assert policy.schedule(ctx) is a
        _run_as_current(ctx, a)

        assert policy.schedule(ctx) is b
        assert ctx.ready_queue.pids == [PID_C, PID_A]
        assert a.state is ProcessState.READY

    def test_longer_quantum_keeps_process(self) -> None:
        """With quantum 2 a process runs two ticks before rotating."""
        a, b = _proc(PID_A), _proc(PID_B)
        ctx = _ctx(a, b)
        policy = RoundRobinPolicy(quantum=2)
        policy.initialize(ctx)

        assert policy.schedule(ctx) is a
        _run_as_current(ctx, a)
        assert policy.schedule(ctx) is a
        assert policy.schedule(ctx) is b

    def test_single_process_rotates_back_to_itself(self) -> None:
        """Alone in the system, the process keeps getting slices."""
        a = _proc(PID_A)
        ctx = _ctx(a)
        policy = RoundRobinPolicy()
        policy.initialize(ctx)
        assert policy.schedule(ctx) is a
        _run_as_current(ctx, a)
        assert policy.schedule(ctx) is a
        assert len(ctx.ready_queue) == 0

    def test_blocked_process_not_requeued(self) -> None:
        """A WAITING process stays out of the ready queue."""
        a, b = _proc(PID_A), _proc(PID_B)
        ctx = _ctx(a, b)
        policy = RoundRobinPolicy()
        policy.initialize(ctx)
        policy.schedule(ctx)
        _run_as_current(ctx, a)
        a.wait()
        assert policy.schedule(ctx) is b
        assert len(ctx.ready_queue) == 0

    def test_invalid_quantum(self) -> None:
        """The slice must be at least one tick."""
        with pytest.raises(ValueError, match="quantum"):
            RoundRobinPolicy(quantum=0)


class TestPriority:
    """Verify priority scheduling (lower number = more urgent)."""

    def test_picks_most_urgent(self) -> None:
        """The numerically smallest priority runs."""
        low = _proc(PID_A, priority=PRIORITY_LOW)
        high = _proc(PID_B, priority=PRIORITY_HIGH)
        ctx = _ctx(low, high)
        assert PriorityPolicy().schedule(ctx) is high

    def test_preempts_less_urgent_current(self) -> None:
        """An urgent arrival preempts the running process."""
        low = _proc(PID_A, priority=PRIORITY_LOW)
        high = _proc(PID_B, priority=PRIORITY_HIGH)
        ctx = _ctx(high)
        _run_as_current(ctx, low)
        assert PriorityPolicy().schedule(ctx) is high
        assert ctx.ready_queue.pids == [PID_A]

    def test_equal_priority_keeps_current(self) -> None:
        """Ties never preempt."""
        current = _proc(PID_A)
        other = _proc(PID_B)
        ctx = _ctx(other)
        _run_as_current(ctx, current)
        assert PriorityPolicy().schedule(ctx) is current

    def test_uses_effective_priority(self) -> None:
        """A boosted process is scheduled at its boosted priority."""
        boosted = _proc(PID_A, priority=PRIORITY_LOW)
        boosted.boost(0, PRIORITY_HIGH)
        medium = _proc(PID_B, priority=PRIORITY_MEDIUM)
        ctx = _ctx(medium, boosted)
        assert PriorityPolicy().schedule(ctx) is boosted


class TestPolicyBundles:
    """Verify each policy carries the right acquisition protocol."""

    def test_default_protocol_is_fifo(self) -> None:
        """Plain policies use the FIFO protocol."""
        assert isinstance(PriorityPolicy().protocol, FifoProtocol)
        assert isinstance(FCFSPolicy().protocol, FifoProtocol)

    def test_ceiling_policy_protocol(self) -> None:
        """The PCP policy uses the ceiling protocol."""
        assert isinstance(PriorityCeilingPolicy().protocol, CeilingProtocol)

    def test_inheritance_policy_protocol(self) -> None:
        """The PIP policy uses the inheritance protocol."""
        assert isinstance(PriorityInheritancePolicy().protocol, InheritanceProtocol)

    def test_protocol_can_be_swapped(self) -> None:
        """Any policy accepts an explicit protocol."""
        policy = SRTFPolicy(protocol=CeilingProtocol())
        assert isinstance(policy.protocol, CeilingProtocol)

    def test_names(self) -> None:
        """Each policy exposes a human-readable name."""
        assert FCFSPolicy().name == "FCFS"
        assert PriorityCeilingPolicy().name == "Priority + Priority Ceiling Protocol"

    def test_acquire_forwards_to_protocol(self) -> None:
        """acquire/release go through the bundled protocol."""
        process = _proc(PID_A)
        ctx = _ctx()
        _run_as_current(ctx, process)
        policy = FCFSPolicy()
        assert policy.acquire(ctx, 0)
        assert ctx.resources[0].owner is process
        policy.release(ctx, 0)
        assert ctx.resources[0].owner is None
