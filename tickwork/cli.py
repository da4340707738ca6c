"""Command line entry point for tickwork."""
from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from .cadences import PeriodicCadence, build_cadence, utcnow
from .config import TickworkConfig
from .config_loader import load_config
from .services import Scheduler, ScheduledTask, load_task


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="tickwork recurring job runner")
    sub = parser.add_subparsers(dest="command", required=True)

    preview = sub.add_parser(
        "preview",
        help="Print the upcoming occurrences of the configured jobs",
    )
    _add_common_arguments(preview)
    preview.add_argument(
        "--job",
        default=None,
        help="Only preview the job with this name",
    )
    preview.add_argument(
        "--count",
        type=int,
        default=5,
        help="How many occurrences to list per job (default: 5)",
    )

    run = sub.add_parser(
        "run",
        help="Run the configured jobs in the foreground",
    )
    _add_common_arguments(run)
    run.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: until all jobs finish)",
    )

    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level, overrides the configuration file",
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return 2
    _configure_logging(args.log_level or config.log_level)

    if args.command == "preview":
        return _command_preview(args, config)
    if args.command == "run":
        return _command_run(args, config)

    parser.error("unknown command")
    return 1


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _command_preview(args: argparse.Namespace, config: TickworkConfig) -> int:
    now = utcnow()
    jobs = [job for job in config.jobs if args.job is None or job.name == args.job]
    if args.job is not None and not jobs:
        print(f"unknown job: {args.job}", file=sys.stderr)
        return 2

    output = {"generated_at": now.isoformat(), "jobs": []}
    for job in jobs:
        try:
            cadence = build_cadence(job.cadence, now=now)
        except ValueError as exc:
            print(f"job {job.name!r}: {exc}", file=sys.stderr)
            return 2
        entry = {
            "name": job.name,
            "task": job.task,
            "kind": job.cadence.kind,
            "max_runs": job.max_runs,
            "occurrences": [
                instant.isoformat()
                for instant in cadence.preview(now, max(0, args.count))
            ],
        }
        if isinstance(cadence, PeriodicCadence):
            entry["period_seconds"] = cadence.period.total_seconds()
        output["jobs"].append(entry)

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def _command_run(args: argparse.Namespace, config: TickworkConfig) -> int:
    scheduler = Scheduler(config.scheduler)
    try:
        for job in config.jobs:
            scheduler.add_task(
                ScheduledTask(
                    name=job.name,
                    cadence=build_cadence(job.cadence),
                    task=load_task(job.task),
                    max_runs=job.max_runs,
                )
            )
    except ValueError as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return 2

    stop_event = threading.Event()
    timer: Optional[threading.Timer] = None
    if args.duration is not None:
        timer = threading.Timer(max(0.0, args.duration), stop_event.set)
        timer.daemon = True
        timer.start()

    try:
        scheduler.run_forever(stop_event)
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        print("Interrupted, stopping jobs...", file=sys.stderr)
        scheduler.stop()
    finally:
        if timer is not None:
            timer.cancel()

    summary = {
        "jobs": [
            {
                "name": name,
                "runs_completed": dispatcher.runs_completed,
                "max_runs": dispatcher.max_runs,
                "state": dispatcher.state.value,
            }
            for name, dispatcher in scheduler.dispatchers().items()
        ]
    }
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
