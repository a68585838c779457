"""
CLI interface for the scheduling core.

Reads a JSON task snapshot and prints CPM timings, a health report or an
integrity scan as JSON.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .analysis import ScheduleAnalyzer
from .errors import ScheduleCoreError
from .logging_setup import setup_logging
from .models import as_tasks, coerce_date
from .validation.integrity_check import run_integrity_check

logger = logging.getLogger(__name__)


def load_snapshot(path: Path) -> dict:
    """
    Load a task snapshot.

    The file holds either a bare list of task records or an object with a
    "tasks" list and optional "project_id", "project_ids" and
    "target_completion".
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"tasks": data}
    if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
        raise ValueError(f"{path}: expected a list of tasks")
    return data


def _emit(payload) -> None:
    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


def cmd_cpm(args, snapshot: dict) -> int:
    analyzer = ScheduleAnalyzer(max_tasks=args.max_tasks)
    result = analyzer.critical_path(snapshot["tasks"])
    _emit(result.to_dict())
    return 0 if result.is_valid else 2


def cmd_health(args, snapshot: dict) -> int:
    analyzer = ScheduleAnalyzer(max_tasks=args.max_tasks)
    target = args.target_completion or snapshot.get("target_completion")
    report = analyzer.analyze(
        snapshot["tasks"],
        project_id=snapshot.get("project_id"),
        target_completion=target,
        today=coerce_date(args.today) if args.today else None,
        lookahead_days=args.lookahead_days,
    )
    _emit(report if args.full else report["health"])
    return 0


def cmd_integrity(args, snapshot: dict) -> int:
    tasks = as_tasks(snapshot["tasks"])
    if args.projects:
        projects = [p.strip() for p in args.projects.split(",") if p.strip()]
    else:
        projects = snapshot.get("project_ids") or sorted({t.project_id for t in tasks if t.project_id})
    report = run_integrity_check(tasks, projects)
    _emit(report)
    return 0 if report["total_issues"] == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="steel-schedule",
        description="Dependency scheduling, critical path and schedule health for project tasks.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--max-tasks", type=int, default=None,
                        help="Refuse snapshots larger than this")

    sub = parser.add_subparsers(dest="command", required=True)

    p_cpm = sub.add_parser("cpm", help="Critical path timings")
    p_cpm.add_argument("snapshot", type=Path)
    p_cpm.set_defaults(func=cmd_cpm)

    p_health = sub.add_parser("health", help="Schedule health report")
    p_health.add_argument("snapshot", type=Path)
    p_health.add_argument("--target-completion", default=None)
    p_health.add_argument("--today", default=None, help="Override today's date (YYYY-MM-DD)")
    p_health.add_argument("--lookahead-days", type=int, default=None)
    p_health.add_argument("--full", action="store_true",
                          help="Include graph and CPM output alongside the report")
    p_health.set_defaults(func=cmd_health)

    p_int = sub.add_parser("integrity", help="Orphan / cycle / date-order scan")
    p_int.add_argument("snapshot", type=Path)
    p_int.add_argument("--projects", default=None,
                       help="Comma-separated known project ids")
    p_int.set_defaults(func=cmd_integrity)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    try:
        snapshot = load_snapshot(args.snapshot)
        return args.func(args, snapshot)
    except (OSError, ValueError, ScheduleCoreError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
