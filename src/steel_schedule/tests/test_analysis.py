import pytest

from steel_schedule.analysis import ScheduleAnalyzer
from steel_schedule.cpm.cache import CriticalPathCache, task_watermark
from steel_schedule.errors import ScheduleTooLargeError
from steel_schedule.repository import InMemoryTaskRepository

from .conftest import make_task


def stamped(tasks, stamp="2026-03-01T08:00:00"):
    return [t.with_changes(updated_at=stamp) for t in tasks]


def test_analyze_end_to_end(three_task_project, today):
    out = ScheduleAnalyzer().analyze(three_task_project, project_id="P1", today=today)

    assert out["cpm"]["project_horizon"] == 8
    assert out["cpm"]["critical_task_ids"] == ["T1", "T2"]
    assert out["graph"]["successors"]["T1"] == ["T2", "T3"]
    assert out["health"]["critical_tasks"] == 2
    assert out["health"]["health_status"] == "on_track"


def test_zero_tasks_end_to_end(today):
    out = ScheduleAnalyzer().analyze([], today=today)
    health = out["health"]

    assert health["health_score"] == 100
    assert health["health_status"] == "on_track"
    assert health["total_tasks"] == 0
    assert health["alerts"] == []


def test_size_guard():
    analyzer = ScheduleAnalyzer(max_tasks=2)
    with pytest.raises(ScheduleTooLargeError):
        analyzer.critical_path([make_task(str(i), duration=1) for i in range(3)])


def test_cpm_cache_hit_and_invalidation(three_task_project):
    analyzer = ScheduleAnalyzer(cache=CriticalPathCache(max_entries=4))
    tasks = stamped(three_task_project)

    first = analyzer.critical_path(tasks, project_id="P1")
    second = analyzer.critical_path(tasks, project_id="P1")
    assert second is first

    changed = tasks[:2] + [tasks[2].with_changes(duration_days=9, updated_at="2026-03-02T09:00:00")]
    third = analyzer.critical_path(changed, project_id="P1")
    assert third is not first
    assert third.project_horizon == 14


def test_same_stamp_with_edited_links_misses_cache(three_task_project):
    analyzer = ScheduleAnalyzer(cache=CriticalPathCache(max_entries=4))
    tasks = stamped(three_task_project)
    first = analyzer.critical_path(tasks, project_id="P1")

    # T2 no longer waits on T1; updated_at is left untouched
    relinked = [tasks[0], tasks[1].with_changes(predecessor_ids=()), tasks[2]]
    second = analyzer.critical_path(relinked, project_id="P1")

    assert second is not first
    assert second.project_horizon == 6


def test_cyclic_graphs_are_never_cached(three_task_project):
    cache = CriticalPathCache()
    analyzer = ScheduleAnalyzer(cache=cache)
    tasks = stamped(three_task_project)
    cyclic = [tasks[0].with_changes(predecessor_ids=("T2",)), tasks[1], tasks[2]]

    result = analyzer.critical_path(cyclic, project_id="P1")

    assert not result.is_valid
    assert len(cache) == 0


def test_cache_evicts_oldest(three_task_project):
    cache = CriticalPathCache(max_entries=1)
    analyzer = ScheduleAnalyzer(cache=cache)
    analyzer.critical_path(stamped(three_task_project), project_id="P1")
    analyzer.critical_path(stamped(three_task_project), project_id="P2")

    assert len(cache) == 1
    assert cache.get("P1", task_watermark(stamped(three_task_project))) is None


def test_analyze_project_reads_repository(today):
    repo = InMemoryTaskRepository(
        [make_task("a", duration=2, project_id="P1"), make_task("b", duration=2, project_id="P2")],
        project_ids=["P1", "P2"],
    )
    out = ScheduleAnalyzer(repository=repo).analyze_project("P1", today=today)
    assert out["health"]["total_tasks"] == 1


def test_analyze_project_sees_new_cycle_after_relink(today):
    """A -> B is analysed, then A is relinked to wait on B through the store."""
    repo = InMemoryTaskRepository(
        [make_task("A", duration=2, project_id="P1"),
         make_task("B", ["A"], duration=3, project_id="P1")],
        project_ids=["P1"],
    )
    analyzer = ScheduleAnalyzer(repository=repo, cache=CriticalPathCache(max_entries=4))

    before = analyzer.analyze_project("P1", today=today)
    assert before["cpm"]["is_valid"] is True
    assert before["cpm"]["project_horizon"] == 5

    repo.update_task("A", {"predecessor_ids": ["B"]})
    after = analyzer.analyze_project("P1", today=today)

    assert after["graph"]["cycles"]
    assert after["cpm"]["is_valid"] is False
    assert after["cpm"]["error"] == "graph invalid - cycles present"
    assert after["health"]["cpm_valid"] is False


def test_analyze_project_horizon_follows_removed_links(today):
    """A(5) -> B(3) -> C(2) and D(4) -> C; dropping both links into C shortens the plan."""
    repo = InMemoryTaskRepository(
        [make_task("A", duration=5, project_id="P1"),
         make_task("B", ["A"], duration=3, project_id="P1"),
         make_task("D", duration=4, project_id="P1"),
         make_task("C", ["B", "D"], duration=2, project_id="P1")],
        project_ids=["P1"],
    )
    analyzer = ScheduleAnalyzer(repository=repo, cache=CriticalPathCache(max_entries=4))
    assert analyzer.analyze_project("P1", today=today)["cpm"]["project_horizon"] == 10

    repo.update_task("C", {"predecessor_ids": []})
    assert analyzer.analyze_project("P1", today=today)["cpm"]["project_horizon"] == 8
