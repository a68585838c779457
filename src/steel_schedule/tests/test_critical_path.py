import pytest

from steel_schedule.cpm.critical_path import (
    INVALID_GRAPH_MESSAGE,
    apply_critical_flags,
    compute_critical_path,
    topological_order,
)
from steel_schedule.cpm.dependency_graph import DependencyGraph, build_dependency_graph

from .conftest import make_task


def run_cpm_on_data(tasks):
    """Helper to run graph build + CPM on a task list"""
    return compute_critical_path(build_dependency_graph(tasks))


# ----------------------------------------------------------------
# 1. CORE CPM LOGIC TESTS
# ----------------------------------------------------------------

def test_three_task_scenario(three_task_project):
    """
    T1 (Dur 5) -> T2 (Dur 3)
    T1 (Dur 5) -> T3 (Dur 1)
    Expected:
      T1: ES=0, EF=5
      T2: ES=5, EF=8
      T3: ES=5, EF=6, float 2
    """
    res = run_cpm_on_data(three_task_project)
    t = res.timings

    assert (t["T1"].earliest_start, t["T1"].earliest_finish) == (0, 5)
    assert (t["T2"].earliest_start, t["T2"].earliest_finish) == (5, 8)
    assert (t["T3"].earliest_start, t["T3"].earliest_finish) == (5, 6)
    assert res.project_horizon == 8
    assert res.critical_task_ids == {"T1", "T2"}
    assert t["T3"].total_float == 2
    assert (t["T3"].latest_start, t["T3"].latest_finish) == (7, 8)


def test_simple_chain_all_critical():
    res = run_cpm_on_data([
        make_task("A", duration=5),
        make_task("B", ["A"], duration=3),
    ])

    assert res.timings["B"].earliest_start == 5
    assert res.critical_task_ids == {"A", "B"}


def test_multiple_paths_convergence():
    """
    A (5) -> C (2)
    B (10) -> C (2)
    C should start at max(5, 10) = 10
    """
    res = run_cpm_on_data([
        make_task("A", duration=5),
        make_task("B", duration=10),
        make_task("C", ["A", "B"], duration=2),
    ])

    assert res.timings["C"].earliest_start == 10
    assert res.timings["A"].total_float == 5  # A can finish as late as 10
    assert res.timings["B"].total_float == 0  # B is critical
    assert res.project_horizon == 12


def test_disjoint_critical_chains_are_a_set():
    res = run_cpm_on_data([
        make_task("A1", duration=4),
        make_task("A2", ["A1"], duration=4),
        make_task("B1", duration=8),
        make_task("C1", duration=2),
    ])

    assert res.critical_task_ids == {"A1", "A2", "B1"}
    assert res.timings["C1"].total_float == 6


def test_horizon_equals_latest_critical_finish():
    res = run_cpm_on_data([
        make_task("A", duration=3),
        make_task("B", ["A"], duration=4),
        make_task("C", ["A"], duration=9),
        make_task("D", ["B", "C"], duration=1),
        make_task("E", duration=2),
    ])

    critical_finish = max(res.timings[t].earliest_finish for t in res.critical_task_ids)
    assert res.project_horizon == critical_finish == 13


def test_late_start_never_before_early_start():
    tasks = [make_task("0", duration=2)]
    for i in range(1, 60):
        preds = [str(i - 1)] + ([str(i - 3)] if i >= 3 else [])
        tasks.append(make_task(str(i), preds, duration=(i * 7) % 5))
    res = run_cpm_on_data(tasks)

    for timing in res.timings.values():
        assert timing.latest_start >= timing.earliest_start
        assert timing.total_float == timing.latest_finish - timing.earliest_finish


def test_forward_pass_is_idempotent(three_task_project):
    first = run_cpm_on_data(three_task_project)
    second = run_cpm_on_data(three_task_project)

    assert first.timings == second.timings
    assert first.project_horizon == second.project_horizon


def test_zero_duration_milestone():
    res = run_cpm_on_data([
        make_task("A", duration=3),
        make_task("M", ["A"], duration=0, is_milestone=True),
    ])

    assert res.timings["M"].earliest_start == res.timings["M"].earliest_finish == 3
    assert "M" in res.critical_task_ids


def test_dates_drive_duration(today):
    res = run_cpm_on_data([
        make_task("A", start_date=today, end_date=today.replace(day=18)),
    ])
    assert res.timings["A"].earliest_finish == 3


def test_large_chain_without_recursion():
    n = 10000
    tasks = [make_task("0", duration=1)] + [
        make_task(str(i), [str(i - 1)], duration=1) for i in range(1, n)
    ]
    res = run_cpm_on_data(tasks)

    assert res.project_horizon == n
    assert len(res.critical_task_ids) == n


# ----------------------------------------------------------------
# 2. DIAGNOSTICS & DEGENERATE INPUT
# ----------------------------------------------------------------

def test_circular_dependency_refuses_to_run():
    """
    A -> B -> A loop yields an invalid result, not an exception
    """
    res = run_cpm_on_data([
        make_task("A", ["B"], duration=5),
        make_task("B", ["A"], duration=5),
    ])

    assert res.is_valid is False
    assert res.error == INVALID_GRAPH_MESSAGE
    assert res.timings == {}
    assert len(res.cycles) == 1


def test_unscheduled_tasks_are_excluded():
    res = run_cpm_on_data([
        make_task("A", duration=2),
        make_task("U"),
        make_task("B", ["U", "A"], duration=1),
    ])

    assert res.unscheduled_task_ids == ["U"]
    assert "U" not in res.timings
    assert res.timings["B"].earliest_start == 2


def test_all_unscheduled_is_neutral():
    res = run_cpm_on_data([make_task("A"), make_task("B", ["A"])])

    assert res.is_valid
    assert res.timings == {}
    assert res.project_horizon == 0
    assert res.critical_task_ids == frozenset()


def test_single_task():
    res = run_cpm_on_data([make_task("solo", duration=4)])
    assert res.project_horizon == 4
    assert res.critical_task_ids == {"solo"}


def test_empty_input():
    res = run_cpm_on_data([])
    assert res.is_valid
    assert res.project_horizon == 0
    assert res.to_frame().empty


def test_hand_built_cyclic_graph_is_guarded():
    graph = DependencyGraph(
        nodes=["A", "B"],
        predecessors={"A": ["B"], "B": ["A"]},
        successors={"A": ["B"], "B": ["A"]},
        durations={"A": 1, "B": 1},
    )
    with pytest.raises(ValueError, match="Graph is not acyclic"):
        compute_critical_path(graph)


def test_topological_order_respects_edges(three_task_project):
    graph = build_dependency_graph(three_task_project)
    topo = topological_order(graph.nodes, graph.predecessors, graph.successors)
    assert topo[0] == "T1"
    assert set(topo) == {"T1", "T2", "T3"}


# ----------------------------------------------------------------
# 3. OUTPUT SHAPES
# ----------------------------------------------------------------

def test_to_frame_columns(three_task_project):
    df = run_cpm_on_data(three_task_project).to_frame()

    assert list(df.columns) == ["TaskID", "ES", "EF", "LS", "LF", "Float", "Critical"]
    assert df.loc[df["TaskID"] == "T3", "Float"].iloc[0] == 2
    assert df["Critical"].sum() == 2


def test_apply_critical_flags(three_task_project):
    res = run_cpm_on_data(three_task_project)
    flagged = {t.id: t.is_critical for t in apply_critical_flags(three_task_project, res)}
    assert flagged == {"T1": True, "T2": True, "T3": False}
