from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, Optional

from steel_schedule.config.settings import settings
from steel_schedule.cpm.cache import CriticalPathCache, task_watermark
from steel_schedule.cpm.critical_path import CriticalPathResult, compute_critical_path
from steel_schedule.cpm.dependency_graph import DependencyGraph, build_dependency_graph
from steel_schedule.cpm.health_engine import compute_schedule_health
from steel_schedule.errors import ScheduleTooLargeError
from steel_schedule.models import as_tasks
from steel_schedule.repository import TaskRepository

logger = logging.getLogger(__name__)


class ScheduleAnalyzer:
    """
    Graph build -> CPM -> health report for one project snapshot.

    Holds no per-project state besides the optional CPM cache, so one
    instance can serve concurrent requests.
    """

    def __init__(
        self,
        repository: Optional[TaskRepository] = None,
        max_tasks: Optional[int] = None,
        cache: Optional[CriticalPathCache] = None,
    ):
        self.repository = repository
        self.max_tasks = max_tasks if max_tasks is not None else settings.MAX_TASKS_PER_ANALYSIS
        self.cache = cache if cache is not None else CriticalPathCache(settings.CPM_CACHE_SIZE)

    def _guard(self, tasks) -> None:
        if len(tasks) > self.max_tasks:
            raise ScheduleTooLargeError(len(tasks), self.max_tasks)

    def _cpm(self, tasks, graph: DependencyGraph, project_id: Optional[str]) -> CriticalPathResult:
        # Cyclic graphs always go straight to the calculator
        use_cache = project_id is not None and not graph.cycles
        watermark = task_watermark(tasks) if use_cache else None

        if use_cache:
            cached = self.cache.get(project_id, watermark)
            if cached is not None:
                return cached

        result = compute_critical_path(graph)
        if use_cache:
            self.cache.put(project_id, watermark, result)
        return result

    def critical_path(self, tasks: Iterable, project_id: Optional[str] = None) -> CriticalPathResult:
        tasks = as_tasks(tasks)
        self._guard(tasks)
        return self._cpm(tasks, build_dependency_graph(tasks), project_id)

    def analyze(
        self,
        tasks: Iterable,
        project_id: Optional[str] = None,
        target_completion: Any = None,
        today: Optional[date] = None,
        lookahead_days: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Full schedule analysis of one project.

        Returns {"graph": ..., "cpm": ..., "health": ...}; graph and cpm are
        plain dicts ready for JSON.
        """
        tasks = as_tasks(tasks)
        self._guard(tasks)

        graph: DependencyGraph = build_dependency_graph(tasks)
        cpm = self._cpm(tasks, graph, project_id)

        health = compute_schedule_health(
            tasks, cpm,
            target_completion=target_completion,
            today=today,
            lookahead_days=lookahead_days,
        )
        return {
            "project_id": project_id,
            "graph": graph.to_dict(),
            "cpm": cpm.to_dict(),
            "health": health,
        }

    def analyze_project(self, project_id: str, target_completion: Any = None,
                        today: Optional[date] = None) -> Dict[str, Any]:
        """Fetch one snapshot from the store and analyse it."""
        if self.repository is None:
            raise ValueError("ScheduleAnalyzer has no repository to read from")
        tasks = self.repository.list_tasks(project_id)
        logger.info("Analysing project %s (%d tasks)", project_id, len(tasks))
        return self.analyze(tasks, project_id=project_id,
                            target_completion=target_completion, today=today)
