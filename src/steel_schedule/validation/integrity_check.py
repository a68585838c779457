from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List

from steel_schedule.cpm.dependency_graph import build_dependency_graph
from steel_schedule.models import as_tasks

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Helper: make a consistent finding dictionary
# ------------------------------------------------------------------
def make_finding(task_id, name, severity, issue_type, description, suggestion, **extra):
    finding = {
        "task_id": task_id,
        "name": name,
        "severity": severity,
        "issue_type": issue_type,
        "description": description,
        "suggested_fix": suggestion,
    }
    finding.update(extra)
    return finding


# ------------------------------------------------------------------
# Individual checks
# ------------------------------------------------------------------
def find_orphaned_records(tasks, project_index) -> List[Dict[str, Any]]:
    known = {str(p) for p in project_index}
    issues = []
    for t in tasks:
        if t.project_id is None or t.project_id not in known:
            issues.append(make_finding(
                t.id, t.name,
                "error", "OrphanedTask",
                f"Task references unknown project {t.project_id!r}.",
                "Reassign the task to an existing project or delete it.",
                project_id=t.project_id,
            ))
    return issues


def find_circular_dependencies(tasks) -> List[Dict[str, Any]]:
    """Cycles per project; cross-project predecessors are not followed."""
    by_project = defaultdict(list)
    for t in tasks:
        by_project[t.project_id].append(t)

    issues = []
    for project_id, project_tasks in by_project.items():
        names = {t.id: t.name or t.id for t in project_tasks}
        graph = build_dependency_graph(project_tasks)
        for cycle in graph.cycles:
            path = " → ".join(names.get(tid, tid) for tid in cycle)
            issues.append(make_finding(
                cycle[0], names.get(cycle[0], cycle[0]),
                "critical", "CircularDependency",
                f"Circular dependency detected: {path}",
                "Remove one of the predecessor links in the loop.",
                project_id=project_id,
                task_ids=list(cycle),
            ))
    return issues


def _link_type(task, predecessor_id) -> str:
    for config in task.predecessor_configs:
        if config.get("predecessor_id") == predecessor_id:
            return str(config.get("type") or "FS").upper()
    return "FS"


def find_dependency_violations(tasks) -> List[Dict[str, Any]]:
    """
    Per-link checks on predecessor references.

    MissingPredecessor        id not present in the scanned tasks
    CrossProjectPredecessor   predecessor belongs to another project
    PredecessorFinishesLate   finish-to-start link whose predecessor ends
                              after the successor starts
    """
    by_id = {}
    for t in tasks:
        by_id.setdefault(t.id, t)

    issues = []
    for t in tasks:
        for pid in t.predecessor_ids:
            pred = by_id.get(pid)
            if pred is None:
                issues.append(make_finding(
                    t.id, t.name,
                    "warning", "MissingPredecessor",
                    f"Predecessor task {pid} not found.",
                    "Remove the stale predecessor link.",
                    project_id=t.project_id,
                    predecessor_id=pid,
                ))
                continue

            pred_name = pred.name or pred.id
            if pred.project_id != t.project_id:
                issues.append(make_finding(
                    t.id, t.name,
                    "error", "CrossProjectPredecessor",
                    f"Predecessor {pred_name} is from a different project ({pred.project_id!r}).",
                    "Link only tasks of the same project.",
                    project_id=t.project_id,
                    predecessor_id=pid,
                ))

            if (_link_type(t, pid) == "FS" and pred.end_date and t.start_date
                    and pred.end_date > t.start_date):
                issues.append(make_finding(
                    t.id, t.name,
                    "warning", "PredecessorFinishesLate",
                    f'Predecessor "{pred_name}" finishes ({pred.end_date}) '
                    f"after this task starts ({t.start_date}).",
                    "Move the task start after the predecessor finish or change the link type.",
                    project_id=t.project_id,
                    predecessor_id=pid,
                ))
    return issues


def find_date_violations(tasks) -> List[Dict[str, Any]]:
    issues = []
    for t in tasks:
        if t.start_date and t.end_date and t.start_date > t.end_date:
            issues.append(make_finding(
                t.id, t.name,
                "critical", "InvalidDateOrder",
                f"Start date ({t.start_date}) is after end date ({t.end_date}).",
                "Fix start/end ordering on the task.",
                project_id=t.project_id,
            ))
        if t.baseline_start and t.baseline_end and t.baseline_start > t.baseline_end:
            issues.append(make_finding(
                t.id, t.name,
                "error", "InvalidBaselineOrder",
                "Baseline end is before baseline start.",
                "Rebaseline or correct baseline dates.",
                project_id=t.project_id,
            ))
    return issues


# ------------------------------------------------------------------
# MAIN INTEGRITY SCAN
# ------------------------------------------------------------------
def run_integrity_check(project_tasks: Iterable, project_index: Iterable) -> Dict[str, Any]:
    """
    Read-only sweep over tasks of any number of projects.

    Returns:
      orphaned_records       tasks whose project id is not in project_index
      circular_dependencies  one finding per cycle, per project
      date_violations        start after end (and baseline start after end)
      dependency_violations  missing, cross-project or late-finishing predecessors
      total_issues
    """
    tasks = as_tasks(project_tasks)

    orphaned = find_orphaned_records(tasks, project_index)
    circular = find_circular_dependencies(tasks)
    dates = find_date_violations(tasks)
    links = find_dependency_violations(tasks)
    total = len(orphaned) + len(circular) + len(dates) + len(links)

    if total:
        logger.warning(
            "Integrity check: %d orphaned, %d circular, %d date, %d dependency violation(s)",
            len(orphaned), len(circular), len(dates), len(links),
        )
    else:
        logger.info("Integrity check: %d tasks, no issues", len(tasks))

    return {
        "orphaned_records": orphaned,
        "circular_dependencies": circular,
        "date_violations": dates,
        "dependency_violations": links,
        "total_issues": total,
    }
