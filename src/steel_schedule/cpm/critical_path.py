from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List

import pandas as pd

from steel_schedule.cpm.dependency_graph import DependencyGraph
from steel_schedule.models import Task, as_tasks

logger = logging.getLogger(__name__)

INVALID_GRAPH_MESSAGE = "graph invalid - cycles present"


@dataclass(frozen=True)
class ScheduleTiming:
    earliest_start: int
    earliest_finish: int
    latest_start: int
    latest_finish: int
    total_float: int
    is_critical: bool

    def to_dict(self) -> dict:
        return {
            "earliest_start": self.earliest_start,
            "earliest_finish": self.earliest_finish,
            "latest_start": self.latest_start,
            "latest_finish": self.latest_finish,
            "total_float": self.total_float,
            "is_critical": self.is_critical,
        }


@dataclass
class CriticalPathResult:
    """
    Output of one CPM run.

    critical_task_ids is a set: several disjoint zero-float chains may exist
    and none of them is "the" critical path.
    """

    is_valid: bool = True
    timings: Dict[str, ScheduleTiming] = field(default_factory=dict)
    project_horizon: int = 0
    critical_task_ids: FrozenSet[str] = frozenset()
    topological_order: List[str] = field(default_factory=list)
    unscheduled_task_ids: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    error: str = ""

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "error": self.error or None,
            "project_horizon": self.project_horizon,
            "critical_task_ids": sorted(self.critical_task_ids),
            "timings": {tid: t.to_dict() for tid, t in self.timings.items()},
            "unscheduled_task_ids": list(self.unscheduled_task_ids),
            "cycles": [list(c) for c in self.cycles],
        }

    def to_frame(self) -> pd.DataFrame:
        """Timings as a DataFrame (one row per scheduled task, in topological order)."""
        cols = ["TaskID", "ES", "EF", "LS", "LF", "Float", "Critical"]
        rows = [
            [tid, t.earliest_start, t.earliest_finish, t.latest_start,
             t.latest_finish, t.total_float, t.is_critical]
            for tid, t in ((n, self.timings[n]) for n in self.topological_order)
        ]
        return pd.DataFrame(rows, columns=cols)


# ---------------------------------------------------------
# TOPOLOGICAL ORDER
# ---------------------------------------------------------

def topological_order(nodes: List[str], predecessors: Dict[str, List[str]],
                      successors: Dict[str, List[str]]) -> List[str]:
    """
    Kahn's algorithm over the given node subset.

    Edges to nodes outside ``nodes`` are ignored. Returns fewer nodes than
    given when a cycle is present.
    """
    members = set(nodes)
    indeg = {n: sum(1 for p in predecessors.get(n, []) if p in members) for n in nodes}

    q = deque([n for n in nodes if indeg[n] == 0])
    topo = []
    while q:
        n = q.popleft()
        topo.append(n)
        for succ in successors.get(n, []):
            if succ not in members:
                continue
            indeg[succ] -= 1
            if indeg[succ] == 0:
                q.append(succ)
    return topo


# ---------------------------------------------------------
# CPM ALGORITHM
# ---------------------------------------------------------

def compute_critical_path(graph: DependencyGraph) -> CriticalPathResult:
    """
    Forward/backward pass over an acyclic dependency graph.

    Refuses to run when the graph carries cycles. Tasks without a duration
    are left out of the pass and listed as unscheduled; their edges are
    ignored.

    Returns a CriticalPathResult with ES/EF/LS/LF/float per task, the project
    horizon (max EF over sink tasks) and the set of zero-float tasks.
    """
    if not graph.is_valid:
        logger.warning("CPM skipped: %d cycle(s) in dependency graph", len(graph.cycles))
        return CriticalPathResult(
            is_valid=False,
            cycles=[list(c) for c in graph.cycles],
            unscheduled_task_ids=graph.unscheduled,
            error=INVALID_GRAPH_MESSAGE,
        )

    unscheduled = graph.unscheduled
    nodes = [n for n in graph.nodes if graph.durations.get(n) is not None]
    members = set(nodes)
    durations = {n: int(graph.durations[n]) for n in nodes}

    preds = {n: [p for p in graph.predecessors.get(n, []) if p in members] for n in nodes}
    succs = {n: [s for s in graph.successors.get(n, []) if s in members] for n in nodes}

    topo = topological_order(nodes, preds, succs)
    if len(topo) != len(nodes):
        # build_dependency_graph already found every cycle; this is a guard
        # for graphs assembled by hand.
        raise ValueError("Graph is not acyclic; cannot compute CPM.")

    # Forward pass
    es: Dict[str, int] = {}
    ef: Dict[str, int] = {}
    for n in topo:
        es[n] = max((ef[p] for p in preds[n]), default=0)
        ef[n] = es[n] + durations[n]

    horizon = max((ef[n] for n in nodes if not succs[n]), default=0)

    # Backward pass
    ls: Dict[str, int] = {}
    lf: Dict[str, int] = {}
    for n in reversed(topo):
        lf[n] = min((ls[s] for s in succs[n]), default=horizon)
        ls[n] = lf[n] - durations[n]

    timings = {}
    critical = set()
    for n in topo:
        total_float = ls[n] - es[n]
        is_critical = total_float == 0
        if is_critical:
            critical.add(n)
        timings[n] = ScheduleTiming(es[n], ef[n], ls[n], lf[n], total_float, is_critical)

    if unscheduled:
        logger.info("CPM excluded %d unscheduled task(s)", len(unscheduled))
    logger.debug(
        "CPM: %d tasks, horizon=%d, %d critical", len(topo), horizon, len(critical)
    )

    return CriticalPathResult(
        is_valid=True,
        timings=timings,
        project_horizon=horizon,
        critical_task_ids=frozenset(critical),
        topological_order=topo,
        unscheduled_task_ids=unscheduled,
    )


def apply_critical_flags(tasks: Iterable, result: CriticalPathResult) -> List[Task]:
    """Return copies of the tasks with is_critical recomputed from a CPM result."""
    if not result.is_valid:
        return as_tasks(tasks)
    return [
        replace(t, is_critical=t.id in result.critical_task_ids)
        for t in as_tasks(tasks)
    ]
