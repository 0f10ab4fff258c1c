"""Policy registry — look up a scheduling policy by name.

The driver picks one policy for the whole run from a configuration
option.  Each registered entry is an immutable ``PolicyDescriptor``: a
short key used on the command line, a human-readable title, and a
factory building a fresh policy instance (so two simulations never share
policy-private state).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from py_sched.process.scheduler import (
    FCFSPolicy,
    PriorityCeilingPolicy,
    PriorityInheritancePolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SJFPolicy,
    SRTFPolicy,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from py_sched.process.scheduler import SchedulingPolicy


class PolicyNotFoundError(KeyError):
    """Raise when no policy is registered under the requested name."""

    def __str__(self) -> str:
        """Return the message without KeyError's quoting."""
        return str(self.args[0]) if self.args else ""


@dataclass(frozen=True)
class PolicyDescriptor:
    """A registered scheduling policy.

    Attributes:
        key: Short name used to select the policy (e.g. ``"srtf"``).
        title: Human-readable name.
        factory: Callable returning a new policy instance.
        options: Keyword options the factory accepts.

    """

    key: str
    title: str
    factory: Callable[..., SchedulingPolicy]
    options: frozenset[str] = frozenset()

    def create(self, **options: Any) -> SchedulingPolicy:
        """Build a policy, passing only the options it understands."""
        accepted = {k: v for k, v in options.items() if k in self.options and v is not None}
        return self.factory(**accepted)


_REGISTRY: dict[str, PolicyDescriptor] = {
    d.key: d
    for d in (
        PolicyDescriptor("fcfs", FCFSPolicy.title, FCFSPolicy),
        PolicyDescriptor("sjf", SJFPolicy.title, SJFPolicy),
        PolicyDescriptor("srtf", SRTFPolicy.title, SRTFPolicy),
        PolicyDescriptor(
            "rr", RoundRobinPolicy.title, RoundRobinPolicy, options=frozenset({"quantum"})
        ),
        PolicyDescriptor("prio", PriorityPolicy.title, PriorityPolicy),
        PolicyDescriptor("pcp", PriorityCeilingPolicy.title, PriorityCeilingPolicy),
        PolicyDescriptor("pip", PriorityInheritancePolicy.title, PriorityInheritancePolicy),
    )
}

_ALIASES: dict[str, str] = {
    "fifo": "fcfs",
    "round-robin": "rr",
    "priority": "prio",
}


def available_policies() -> list[PolicyDescriptor]:
    """Return every registered policy, in registration order."""
    return list(_REGISTRY.values())


def get_descriptor(name: str) -> PolicyDescriptor:
    """Return the descriptor registered under *name* (or an alias).

    Raises:
        PolicyNotFoundError: If nothing is registered under that name.

    """
    key = name.strip().lower()
    key = _ALIASES.get(key, key)
    try:
        return _REGISTRY[key]
    except KeyError:
        known = ", ".join(_REGISTRY)
        msg = f"Unknown scheduling policy {name!r} (choose from: {known})"
        raise PolicyNotFoundError(msg) from None


def create_policy(name: str, **options: Any) -> SchedulingPolicy:
    """Build a fresh instance of the policy registered under *name*."""
    return get_descriptor(name).create(**options)
