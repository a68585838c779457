from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from steel_schedule.models import Task, as_tasks

logger = logging.getLogger(__name__)

WHITE, GRAY, BLACK = 0, 1, 2


@dataclass(frozen=True)
class UnresolvedReference:
    task_id: str
    missing_id: str

    def to_dict(self) -> dict:
        return {"task_id": self.task_id, "missing_id": self.missing_id}


@dataclass
class DependencyGraph:
    """
    Predecessor/successor adjacency for one project's tasks.

    nodes:        task ids in input order
    predecessors: {task_id: [pred_id, ...]}   (resolved ids only)
    successors:   {task_id: [succ_id, ...]}
    durations:    {task_id: days or None}     (None = unscheduled)
    """

    nodes: List[str] = field(default_factory=list)
    predecessors: Dict[str, List[str]] = field(default_factory=dict)
    successors: Dict[str, List[str]] = field(default_factory=dict)
    durations: Dict[str, Optional[int]] = field(default_factory=dict)
    unresolved_references: List[UnresolvedReference] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """CPM may only run over a graph with no cycles."""
        return not self.cycles

    @property
    def unscheduled(self) -> List[str]:
        return [n for n in self.nodes if self.durations.get(n) is None]

    def to_dict(self) -> dict:
        return {
            "predecessors": {k: list(v) for k, v in self.predecessors.items()},
            "successors": {k: list(v) for k, v in self.successors.items()},
            "unresolved_references": [r.to_dict() for r in self.unresolved_references],
            "cycles": [list(c) for c in self.cycles],
        }


# ---------------------------------------------------------
# CYCLE DETECTION
# ---------------------------------------------------------

def detect_cycles(successors: Dict[str, List[str]], nodes: Optional[Iterable[str]] = None) -> List[List[str]]:
    """
    Find every cycle reachable through successor edges.

    Iterative three-colour DFS over an integer-indexed copy of the graph, so
    deep chains never hit the interpreter's recursion limit. Each edge that
    lands on a node still on the current path (gray) yields one cycle, listed
    from the repeated node back to itself: ["A", "B", "C", "A"].
    """
    ids = list(nodes) if nodes is not None else list(successors.keys())
    index = {tid: i for i, tid in enumerate(ids)}
    adj = [[index[s] for s in successors.get(tid, []) if s in index] for tid in ids]

    color = [WHITE] * len(ids)
    path_pos = [-1] * len(ids)
    cycles: List[List[str]] = []

    for root in range(len(ids)):
        if color[root] != WHITE:
            continue

        path = [root]
        stack = [(root, 0)]
        color[root] = GRAY
        path_pos[root] = 0

        while stack:
            node, child = stack[-1]
            if child < len(adj[node]):
                stack[-1] = (node, child + 1)
                nxt = adj[node][child]
                if color[nxt] == WHITE:
                    color[nxt] = GRAY
                    path_pos[nxt] = len(path)
                    path.append(nxt)
                    stack.append((nxt, 0))
                elif color[nxt] == GRAY:
                    loop = path[path_pos[nxt]:] + [nxt]
                    cycles.append([ids[i] for i in loop])
            else:
                color[node] = BLACK
                path_pos[node] = -1
                path.pop()
                stack.pop()

    return cycles


# ---------------------------------------------------------
# GRAPH CONSTRUCTION
# ---------------------------------------------------------

def build_dependency_graph(tasks: Iterable) -> DependencyGraph:
    """
    Build a validated dependency graph from one project's task list.

    Predecessor ids that are not part of the task set are dropped and
    recorded as unresolved references. Cycles are detected and reported;
    the graph is still returned so callers can show them.
    """
    tasks = as_tasks(tasks)
    graph = DependencyGraph()

    for t in tasks:
        if t.id in graph.predecessors:
            logger.warning("Duplicate task id %s; keeping first occurrence", t.id)
            continue
        graph.nodes.append(t.id)
        graph.predecessors[t.id] = []
        graph.successors[t.id] = []

    known = set(graph.nodes)
    seen = set()

    for t in tasks:
        if t.id in seen:
            continue
        seen.add(t.id)

        duration = t.scheduled_duration()
        graph.durations[t.id] = duration if duration is not None and duration >= 0 else None

        for pred in t.predecessor_ids:
            if pred not in known:
                graph.unresolved_references.append(UnresolvedReference(t.id, pred))
                continue
            graph.predecessors[t.id].append(pred)
            graph.successors[pred].append(t.id)

    if graph.unresolved_references:
        logger.warning(
            "Dropped %d unresolved predecessor reference(s)",
            len(graph.unresolved_references),
        )

    graph.cycles = detect_cycles(graph.successors, graph.nodes)
    if graph.cycles:
        logger.warning("Dependency graph has %d cycle(s)", len(graph.cycles))

    return graph
