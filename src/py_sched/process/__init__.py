"""Process subsystem — PCB, queues, and scheduling policies.

Re-exports public symbols so callers can write::

    from py_sched.process import Process, PriorityPolicy, ProcessQueue
"""

from py_sched.process.pcb import DEFAULT_PRIORITY, Process, ProcessState, ResourceRequest
from py_sched.process.queue import ProcessQueue
from py_sched.process.scheduler import (
    BasePolicy,
    FCFSPolicy,
    PriorityCeilingPolicy,
    PriorityInheritancePolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SchedulingPolicy,
    SJFPolicy,
    SRTFPolicy,
    can_continue,
)

__all__ = [
    "DEFAULT_PRIORITY",
    "BasePolicy",
    "FCFSPolicy",
    "PriorityCeilingPolicy",
    "PriorityInheritancePolicy",
    "PriorityPolicy",
    "Process",
    "ProcessQueue",
    "ProcessState",
    "ResourceRequest",
    "RoundRobinPolicy",
    "SJFPolicy",
    "SRTFPolicy",
    "SchedulingPolicy",
    "can_continue",
]
