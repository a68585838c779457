from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from steel_schedule.errors import RepositoryError, RepositoryUnavailableError
from steel_schedule.repository import TaskRepository
from steel_schedule.validation.integrity_check import run_integrity_check

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    tasks_updated: int = 0
    subtasks_deleted: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "tasks_updated": self.tasks_updated,
            "subtasks_deleted": self.subtasks_deleted,
            "errors": list(self.errors),
        }


class CascadeIntegrityMaintainer:
    """
    Keeps predecessor references consistent when tasks go away.

    Writes are independent per-task calls against the store. A failing
    update or delete is recorded and the batch carries on; already-applied
    writes are never rolled back.
    """

    def __init__(self, repository: TaskRepository):
        self.repository = repository

    # -------------------------
    # Cascade delete
    # -------------------------
    def delete_task(self, task_id: str) -> CascadeResult:
        """
        Delete a task with all of its subtasks.

        Every remaining task that listed a deleted task as predecessor gets
        that id (and its predecessor_configs entry) removed. Subtasks are
        deleted children-first, the task itself last.
        """
        result = CascadeResult()
        snapshot = {t.id: t for t in self.repository.list_tasks()}

        doomed = self._collect_subtree(task_id, snapshot)
        doomed_set = set(doomed)

        for task in snapshot.values():
            if task.id in doomed_set:
                continue
            if not doomed_set.intersection(task.predecessor_ids):
                continue

            fields = {
                "predecessor_ids": [p for p in task.predecessor_ids if p not in doomed_set],
                "predecessor_configs": [
                    dict(c) for c in task.predecessor_configs
                    if c.get("predecessor_id") not in doomed_set
                ],
            }
            try:
                self.repository.update_task(task.id, fields)
                result.tasks_updated += 1
            except RepositoryError as exc:
                self._record(result, "update", task.id, exc)

        # doomed is breadth-first from the root; reversed gives children first
        for tid in reversed(doomed):
            try:
                self.repository.delete_task(tid)
                if tid != task_id:
                    result.subtasks_deleted += 1
            except RepositoryError as exc:
                self._record(result, "delete", tid, exc)

        logger.info(
            "Cascade delete of %s: %d updated, %d subtasks deleted, %d error(s)",
            task_id, result.tasks_updated, result.subtasks_deleted, len(result.errors),
        )
        return result

    @staticmethod
    def _collect_subtree(task_id: str, snapshot) -> List[str]:
        children = {}
        for t in snapshot.values():
            if t.parent_task_id is not None:
                children.setdefault(t.parent_task_id, []).append(t.id)

        order = [task_id]
        seen = {task_id}
        i = 0
        while i < len(order):
            for child in children.get(order[i], []):
                if child not in seen:
                    seen.add(child)
                    order.append(child)
            i += 1
        return order

    @staticmethod
    def _record(result: CascadeResult, operation: str, task_id: str, exc: Exception) -> None:
        if isinstance(exc, RepositoryUnavailableError):
            logger.error("Store unavailable during %s of task %s: %s", operation, task_id, exc)
        else:
            logger.error("Failed to %s task %s: %s", operation, task_id, exc)
        result.errors.append({"operation": operation, "task_id": task_id, "error": str(exc)})

    # -------------------------
    # Integrity scan
    # -------------------------
    def run_integrity_check(
        self,
        project_tasks: Optional[Iterable] = None,
        project_index: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """Read-only scan; pulls tasks and project ids from the store when not given."""
        if project_tasks is None:
            project_tasks = self.repository.list_tasks()
        if project_index is None:
            project_index = self.repository.list_project_ids()
        return run_integrity_check(project_tasks, project_index)
