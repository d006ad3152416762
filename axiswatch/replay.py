#!/usr/bin/env python3
"""Replay a CSV of joint angles through the safety monitors.

The CSV needs a header row.  Six columns hold joint angles in degrees (any
names; every column except ``dt`` and ``timestamp`` is taken in order).  An
optional ``dt`` column gives seconds since the previous row, otherwise
``--dt`` is used for every row.

    axiswatch-replay run.csv
    axiswatch-replay run.csv --json --config monitor.json
"""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import Iterator, Optional

from axiswatch.config.monitor_config import ConfigError, load_monitor_settings
from axiswatch.interface.robot_state import NUM_JOINTS, JointConfiguration, RobotState
from axiswatch.messages.safety import SafetyEventMessage
from axiswatch.safety.events import SafetyEvent, SafetyEventType
from axiswatch.safety.manager import SafetyManager
from axiswatch.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

_NON_ANGLE_COLUMNS = {"dt", "timestamp"}


class ReplayError(ValueError):
    """Raised when the input file cannot be replayed."""
    pass


def read_states(path: Path, default_dt: float) -> Iterator[RobotState]:
    with path.open(newline="") as fh:
        reader = csv.DictReader(fh)
        if not reader.fieldnames:
            raise ReplayError(f"{path}: missing header row")
        angle_cols = [c for c in reader.fieldnames if c.strip().lower() not in _NON_ANGLE_COLUMNS]
        if len(angle_cols) != NUM_JOINTS:
            raise ReplayError(
                f"{path}: expected {NUM_JOINTS} angle columns, found {len(angle_cols)}: {angle_cols}"
            )
        dt_col = next((c for c in reader.fieldnames if c.strip().lower() == "dt"), None)

        for line_no, row in enumerate(reader, start=2):
            try:
                angles = [float(row[c]) for c in angle_cols]
                dt = float(row[dt_col]) if dt_col and row.get(dt_col) not in (None, "") else default_dt
                joints = JointConfiguration.from_sequence(angles)
            except (TypeError, ValueError) as e:
                raise ReplayError(f"{path}:{line_no}: {e}") from e
            yield RobotState(joints=joints, dt=dt)


def replay(
    path: Path,
    manager: SafetyManager,
    default_dt: float = 0.05,
) -> list[tuple[int, SafetyEvent]]:
    """Feed every row through ``manager``; returns (tick, event) pairs in order."""
    sub = manager.sink.subscribe(name="replay")
    collected: list[tuple[int, SafetyEvent]] = []
    try:
        for tick, state in enumerate(read_states(path, default_dt)):
            manager.ingest(state)
            collected.extend((tick, e) for e in sub.drain())
    finally:
        sub.close()
    if sub.dropped:
        logger.warning("Replay subscriber dropped %d events", sub.dropped)
    return collected


def _print_table(headers: list[str], rows: list[list[str]], max_col: int = 70) -> None:
    if not rows:
        print("(no events)")
        return
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], min(len(str(cell)), max_col))
    fmt = "  ".join(f"{{:<{w}}}" for w in widths)
    print(fmt.format(*headers))
    print(fmt.format(*["─" * w for w in widths]))
    for row in rows:
        print(fmt.format(*[str(c)[:max_col] for c in row]))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay joint angles through the safety monitors")
    parser.add_argument("csv", type=Path, help="CSV file with 6 joint-angle columns and optional dt")
    parser.add_argument("--config", "-c", type=Path, default=None, help="Monitor config JSON")
    parser.add_argument("--dt", type=float, default=0.05, help="Seconds per row when there is no dt column")
    parser.add_argument("--stride", type=int, default=None, help="Override dynamics update stride")
    parser.add_argument("--json", action="store_true", help="Print events as JSON lines")
    parser.add_argument(
        "--fail-on",
        choices=[t.value for t in SafetyEventType if t is not SafetyEventType.RESOLVED],
        default=None,
        help="Exit with status 2 if any event at or above this severity fired",
    )
    parser.add_argument("--debug", action="store_true", help="Log everything at DEBUG")
    parser.add_argument(
        "--verbose",
        "-v",
        action="append",
        default=[],
        metavar="LOGGER",
        help="Log this logger at DEBUG, e.g. axiswatch.dynamics.smoothing (repeatable)",
    )
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.WARNING, log_file=args.log_file, debug=args.debug, verbose=args.verbose)

    overrides = {"dynamics": {"update_stride": args.stride}} if args.stride is not None else None
    try:
        settings = load_monitor_settings(args.config, overrides=overrides)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    manager = SafetyManager.from_settings(settings)
    try:
        events = replay(args.csv, manager, default_dt=args.dt)
    except (OSError, ReplayError) as e:
        print(f"Cannot replay {args.csv}: {e}", file=sys.stderr)
        return 1
    finally:
        manager.shutdown()

    if args.json:
        for tick, event in events:
            msg = SafetyEventMessage.from_event(event)
            print(f'{{"tick": {tick}, "event": {msg.model_dump_json()}}}')
    else:
        _print_table(
            ["Tick", "Severity", "Monitor", "Description"],
            [[str(tick), e.event_type.value, e.monitor_name, e.description] for tick, e in events],
        )

    if args.fail_on is not None:
        threshold = SafetyEventType.parse(args.fail_on).rank
        if any(not e.is_resolved and e.event_type.rank >= threshold for _, e in events):
            return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
