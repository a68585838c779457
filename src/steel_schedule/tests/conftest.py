from __future__ import annotations

from datetime import date

import pytest

from steel_schedule.models import Task
from steel_schedule.repository import InMemoryTaskRepository

TODAY = date(2026, 3, 16)  # a Monday


def make_task(tid, preds=(), duration=None, **kw):
    return Task(id=tid, predecessor_ids=tuple(preds), duration_days=duration, **kw)


@pytest.fixture()
def today():
    return TODAY


@pytest.fixture()
def three_task_project():
    """T1 (5d) -> T2 (3d), T1 -> T3 (1d)."""
    return [
        make_task("T1", duration=5, project_id="P1"),
        make_task("T2", ["T1"], duration=3, project_id="P1"),
        make_task("T3", ["T1"], duration=1, project_id="P1"),
    ]


@pytest.fixture()
def repo():
    tasks = [
        make_task("X", project_id="P1", name="Detailing"),
        make_task("Z", project_id="P1", name="Shop drawings"),
        make_task(
            "Y", ["X", "Z"], project_id="P1", name="Fabrication",
            predecessor_configs=(
                {"predecessor_id": "X", "type": "FS", "lag_days": 0},
                {"predecessor_id": "Z", "type": "SS", "lag_days": 2},
            ),
            status="in_progress", progress_percent=40.0,
        ),
        make_task("X1", project_id="P1", parent_task_id="X"),
        make_task("X1a", project_id="P1", parent_task_id="X1"),
        make_task("W", ["X1a"], project_id="P1"),
    ]
    return InMemoryTaskRepository(tasks, project_ids=["P1"])
