"""Command-line driver.

Runs one workload under one scheduling policy and prints the trace::

    $ py-sched -s srtf workloads/basic.txt
       0: 0
       1: 1
       ...

Exit status: 0 on success, 1 for bad input (unreadable workload or
config, unknown policy), 2 when the core reports a protocol violation.

``main`` takes an explicit ``argv`` and returns the exit status, so the
whole CLI is testable without spawning a process.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from py_sched import __version__
from py_sched.config import ConfigError, SimulatorConfig, load_config
from py_sched.errors import ProtocolViolation
from py_sched.registry import PolicyNotFoundError, available_policies, create_policy
from py_sched.simulation import Simulation, SimulationReport
from py_sched.workload import WorkloadError, load_workload

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_PROTOCOL_VIOLATION = 2


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``py-sched``."""
    parser = argparse.ArgumentParser(
        prog="py-sched",
        description="Discrete-time process scheduling simulator",
    )
    parser.add_argument("workload", nargs="?", type=Path, help="workload file to simulate")
    parser.add_argument("-c", "--config", type=Path, help="JSON configuration file")
    parser.add_argument("-s", "--scheduler", dest="policy", help="scheduling policy name")
    parser.add_argument("--quantum", type=int, help="round-robin slice length in ticks")
    parser.add_argument("--max-ticks", type=int, help="stop after this many ticks")
    parser.add_argument(
        "-q", "--quiet", action="store_true", default=None, help="do not print the tick trace"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="print the event log after the run"
    )
    parser.add_argument("--log-level", help="minimum level printed by --verbose")
    parser.add_argument("--status", action="store_true", help="print a status dump at the end")
    parser.add_argument("--list", action="store_true", help="list policies and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def format_policies() -> str:
    """Return the registered policies, one ``key  title`` per line."""
    return "\n".join(f"  {d.key:<6} {d.title}" for d in available_policies())


def format_summary(report: SimulationReport) -> str:
    """Return the end-of-run summary block."""
    lines = [
        f"policy: {report.policy}",
        f"gantt: {report.gantt()}",
        f"ticks: {report.total_ticks} (idle {report.idle_ticks}), "
        f"context switches: {report.context_switches}",
    ]
    if report.average_turnaround is not None:
        lines.append(
            f"avg turnaround: {report.average_turnaround:.2f}, "
            f"avg waiting: {report.average_waiting:.2f}"
        )
    if report.stalled:
        lines.append("STALLED: waiting processes can never be woken")
    if report.truncated:
        lines.append("stopped at the tick limit")
    return "\n".join(lines)


def _resolve_config(args: argparse.Namespace) -> SimulatorConfig:
    """Combine the optional config file with command-line overrides."""
    config = load_config(args.config) if args.config is not None else SimulatorConfig()
    return config.merge(
        policy=args.policy,
        quantum=args.quantum,
        max_ticks=args.max_ticks,
        quiet=args.quiet,
        log_level=args.log_level,
    )


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        print(format_policies())  # noqa: T201
        return EXIT_OK
    if args.workload is None:
        parser.error("a workload file is required")

    try:
        config = _resolve_config(args)
        workload = load_workload(args.workload)
        policy = create_policy(config.policy, quantum=config.quantum)
        simulation = Simulation(
            workload,
            policy,
            num_resources=config.num_resources,
            max_ticks=config.max_ticks,
        )
    except (ConfigError, WorkloadError, PolicyNotFoundError) as e:
        print(f"py-sched: {e}", file=sys.stderr)  # noqa: T201
        return EXIT_INPUT_ERROR

    try:
        report = simulation.run()
    except ProtocolViolation as e:
        print(f"py-sched: protocol violation: {e}", file=sys.stderr)  # noqa: T201
        print(simulation.dump_status(), file=sys.stderr)  # noqa: T201
        return EXIT_PROTOCOL_VIOLATION

    if not config.quiet:
        for record in report.timeline:
            print(record)  # noqa: T201
    print(format_summary(report))  # noqa: T201
    if args.status:
        print(simulation.dump_status())  # noqa: T201
    if args.verbose:
        for entry in simulation.logger.filter(min_level=config.level):
            print(entry)  # noqa: T201
    return EXIT_OK


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())
