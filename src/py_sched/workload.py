"""Workload files — describe the processes a simulation will run.

A workload is plain text, one statement per line, ``#`` starts a
comment::

    # resource 2 may be given an explicit ceiling priority
    resource 2 ceiling 1

    process 0 {
        name   logger      # optional label
        start  0           # arrival tick (default 0)
        lifespan 10        # ticks of work, required
        prio   5           # base priority, lower = more urgent
        acquire 2 3 4      # resource 2 at age 3, held for 4 ticks
    }

Parsing never touches the scheduler: it produces an immutable
``Workload`` of ``ProcessSpec`` records that the ``Simulation`` turns
into live processes as they arrive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from py_sched.process.pcb import DEFAULT_PRIORITY, Process, ResourceRequest


class WorkloadError(ValueError):
    """Raise when a workload cannot be read or is invalid."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        """Create an error, optionally tied to a 1-based line number."""
        self.line = line
        super().__init__(f"line {line}: {message}" if line is not None else message)


@dataclass(frozen=True)
class ProcessSpec:
    """Declared attributes of one process, before it arrives."""

    pid: int
    lifespan: int
    arrival_tick: int = 0
    priority: int = DEFAULT_PRIORITY
    name: str | None = None
    requests: tuple[ResourceRequest, ...] = ()

    def build(self) -> Process:
        """Create the live process (called at its arrival tick)."""
        return Process(
            pid=self.pid,
            name=self.name,
            lifespan=self.lifespan,
            arrival_tick=self.arrival_tick,
            priority=self.priority,
            requests=self.requests,
        )


@dataclass(frozen=True)
class Workload:
    """A parsed workload: process specs plus explicit resource ceilings."""

    processes: tuple[ProcessSpec, ...]
    explicit_ceilings: dict[int, int] = field(default_factory=dict)

    def resource_ids(self) -> set[int]:
        """Return every resource id mentioned anywhere in the workload."""
        ids = {r.resource_id for spec in self.processes for r in spec.requests}
        return ids | set(self.explicit_ceilings)

    def ceilings(self) -> dict[int, int]:
        """Return the ceiling priority of every requested resource.

        A resource's ceiling is the most urgent base priority among the
        processes that declare a request for it, unless the workload
        sets one explicitly.
        """
        result: dict[int, int] = {}
        for spec in self.processes:
            for request in spec.requests:
                rid = request.resource_id
                result[rid] = min(result.get(rid, spec.priority), spec.priority)
        result.update(self.explicit_ceilings)
        return result


def _parse_int(token: str, *, what: str, line: int, minimum: int = 0) -> int:
    """Parse a non-negative (or >= *minimum*) integer token."""
    try:
        value = int(token)
    except ValueError:
        msg = f"{what} must be an integer, got {token!r}"
        raise WorkloadError(msg, line=line) from None
    if value < minimum:
        msg = f"{what} must be >= {minimum}, got {value}"
        raise WorkloadError(msg, line=line)
    return value


def _expect_args(args: list[str], count: int, *, keyword: str, line: int) -> None:
    """Check that *keyword* received exactly *count* arguments."""
    if len(args) != count:
        msg = f"'{keyword}' takes {count} argument(s), got {len(args)}"
        raise WorkloadError(msg, line=line)


class _ProcessBuilder:
    """Collect the fields of one ``process { ... }`` block."""

    def __init__(self, pid: int, line: int) -> None:
        self.pid = pid
        self.line = line
        self.fields: dict[str, int | str] = {}
        self.requests: list[ResourceRequest] = []

    def set_field(self, key: str, value: int | str, *, line: int) -> None:
        if key in self.fields:
            msg = f"'{key}' given twice for process {self.pid}"
            raise WorkloadError(msg, line=line)
        self.fields[key] = value

    def finish(self) -> ProcessSpec:
        if "lifespan" not in self.fields:
            msg = f"process {self.pid} has no lifespan"
            raise WorkloadError(msg, line=self.line)
        lifespan = int(self.fields["lifespan"])
        requests = tuple(sorted(self.requests, key=lambda r: (r.at, r.resource_id)))
        _check_requests(self.pid, lifespan, requests, line=self.line)
        name = self.fields.get("name")
        return ProcessSpec(
            pid=self.pid,
            lifespan=lifespan,
            arrival_tick=int(self.fields.get("start", 0)),
            priority=int(self.fields.get("prio", DEFAULT_PRIORITY)),
            name=str(name) if name is not None else None,
            requests=requests,
        )


def _check_requests(
    pid: int,
    lifespan: int,
    requests: tuple[ResourceRequest, ...],
    *,
    line: int,
) -> None:
    """Reject requests that overrun the lifespan or re-enter a held resource."""
    last_end: dict[int, int] = {}
    for request in requests:
        if request.at + request.duration > lifespan:
            msg = (
                f"process {pid} holds resource {request.resource_id} past its "
                f"lifespan ({request.at} + {request.duration} > {lifespan})"
            )
            raise WorkloadError(msg, line=line)
        end = last_end.get(request.resource_id)
        if end is not None and request.at < end:
            msg = f"process {pid} requests resource {request.resource_id} while holding it"
            raise WorkloadError(msg, line=line)
        last_end[request.resource_id] = request.at + request.duration


def parse_workload(text: str) -> Workload:
    """Parse workload *text* into a ``Workload``.

    Raises:
        WorkloadError: On any syntax or validation problem.

    """
    specs: list[ProcessSpec] = []
    seen: set[int] = set()
    ceilings: dict[int, int] = {}
    block: _ProcessBuilder | None = None

    for number, raw in enumerate(text.splitlines(), start=1):
        tokens = raw.split("#", 1)[0].split()
        if not tokens:
            continue
        keyword, args = tokens[0].lower(), tokens[1:]

        if block is None:
            match keyword:
                case "process":
                    if len(args) != 2 or args[1] != "{":  # noqa: PLR2004
                        msg = "expected 'process <pid> {'"
                        raise WorkloadError(msg, line=number)
                    pid = _parse_int(args[0], what="pid", line=number)
                    if pid in seen:
                        msg = f"duplicate process {pid}"
                        raise WorkloadError(msg, line=number)
                    seen.add(pid)
                    block = _ProcessBuilder(pid, number)
                case "resource":
                    if len(args) != 3 or args[1].lower() != "ceiling":  # noqa: PLR2004
                        msg = "expected 'resource <id> ceiling <priority>'"
                        raise WorkloadError(msg, line=number)
                    rid = _parse_int(args[0], what="resource id", line=number)
                    ceilings[rid] = _parse_int(args[2], what="ceiling", line=number)
                case _:
                    msg = f"unexpected {tokens[0]!r} outside a process block"
                    raise WorkloadError(msg, line=number)
            continue

        match keyword:
            case "}":
                _expect_args(args, 0, keyword="}", line=number)
                specs.append(block.finish())
                block = None
            case "name":
                _expect_args(args, 1, keyword=keyword, line=number)
                block.set_field("name", args[0], line=number)
            case "start":
                _expect_args(args, 1, keyword=keyword, line=number)
                block.set_field(
                    "start", _parse_int(args[0], what="start", line=number), line=number
                )
            case "lifespan":
                _expect_args(args, 1, keyword=keyword, line=number)
                value = _parse_int(args[0], what="lifespan", line=number, minimum=1)
                block.set_field("lifespan", value, line=number)
            case "prio" | "priority":
                _expect_args(args, 1, keyword=keyword, line=number)
                block.set_field(
                    "prio", _parse_int(args[0], what="priority", line=number), line=number
                )
            case "acquire":
                _expect_args(args, 3, keyword=keyword, line=number)
                block.requests.append(
                    ResourceRequest(
                        resource_id=_parse_int(args[0], what="resource id", line=number),
                        at=_parse_int(args[1], what="acquire time", line=number),
                        duration=_parse_int(args[2], what="duration", line=number, minimum=1),
                    )
                )
            case "process":
                msg = f"process block {block.pid} is not closed"
                raise WorkloadError(msg, line=number)
            case _:
                msg = f"unknown keyword {tokens[0]!r}"
                raise WorkloadError(msg, line=number)

    if block is not None:
        msg = f"process block {block.pid} is not closed"
        raise WorkloadError(msg, line=block.line)

    return Workload(processes=tuple(specs), explicit_ceilings=ceilings)


def load_workload(path: Path | str) -> Workload:
    """Read and parse the workload file at *path*.

    Raises:
        WorkloadError: If the file cannot be read or is invalid.

    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read workload {path}: {e}"
        raise WorkloadError(msg) from e
    return parse_workload(text)
