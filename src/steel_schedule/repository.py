from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set

from steel_schedule.errors import TaskNotFoundError
from steel_schedule.models import Task


class TaskRepository(ABC):
    """
    The external task/project store, as seen by the scheduling core.

    Implementations raise RepositoryUnavailableError when the store cannot be
    reached and RepositoryError (or TaskNotFoundError) when a single
    operation is rejected. The core never retries.
    """

    @abstractmethod
    def list_tasks(self, project_id: Optional[str] = None) -> List[Task]:
        ...

    @abstractmethod
    def get_task(self, task_id: str) -> Task:
        ...

    @abstractmethod
    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Task:
        """Persist only the given fields of one task."""

    @abstractmethod
    def delete_task(self, task_id: str) -> None:
        ...

    @abstractmethod
    def list_project_ids(self) -> Set[str]:
        ...


class InMemoryTaskRepository(TaskRepository):
    """Dictionary-backed store for tests and for callers embedding the core."""

    def __init__(self, tasks: Iterable = (), project_ids: Iterable[str] = ()):
        self._tasks: Dict[str, Task] = {}
        for t in tasks:
            task = t if isinstance(t, Task) else Task.from_dict(t)
            self._tasks[task.id] = task
        self._projects: Set[str] = {str(p) for p in project_ids}

    def list_tasks(self, project_id: Optional[str] = None) -> List[Task]:
        return [
            t for t in self._tasks.values()
            if project_id is None or t.project_id == project_id
        ]

    def get_task(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise TaskNotFoundError(task_id) from None

    def update_task(self, task_id: str, fields: Dict[str, Any]) -> Task:
        current = self.get_task(task_id)
        changes = copy.deepcopy(fields)
        if "predecessor_ids" in changes:
            changes["predecessor_ids"] = tuple(changes["predecessor_ids"])
        if "predecessor_configs" in changes:
            changes["predecessor_configs"] = tuple(changes["predecessor_configs"] or ())
        updated = current.with_changes(**changes)
        self._tasks[task_id] = updated
        return updated

    def delete_task(self, task_id: str) -> None:
        if task_id not in self._tasks:
            raise TaskNotFoundError(task_id)
        del self._tasks[task_id]

    def add_project(self, project_id: str) -> None:
        self._projects.add(str(project_id))

    def list_project_ids(self) -> Set[str]:
        return set(self._projects)
