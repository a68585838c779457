from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Hashable, Iterable, Optional, Tuple

from steel_schedule.cpm.critical_path import CriticalPathResult

logger = logging.getLogger(__name__)


def task_watermark(tasks: Iterable) -> Tuple[int, Optional[str], tuple]:
    """
    (task count, newest updated_at, CPM inputs) for a snapshot of Task records.

    The last element holds every task's id, predecessors and scheduled
    duration, so a link or duration edit that leaves updated_at alone still
    changes the key.
    """
    count = 0
    newest = None
    inputs = []
    for t in tasks:
        count += 1
        if t.updated_at and (newest is None or t.updated_at > newest):
            newest = t.updated_at
        inputs.append((t.id, t.predecessor_ids, t.scheduled_duration()))
    return count, newest, tuple(inputs)


class CriticalPathCache:
    """
    Small LRU of CPM results keyed by (project_id, watermark).

    Purely an optimisation: a miss just means the caller recomputes.
    Results for invalid graphs are never stored.
    """

    def __init__(self, max_entries: int = 128):
        self.max_entries = max_entries
        self._entries: "OrderedDict[Hashable, CriticalPathResult]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, project_id, watermark) -> Optional[CriticalPathResult]:
        key = (project_id, watermark)
        result = self._entries.get(key)
        if result is not None:
            self._entries.move_to_end(key)
            logger.debug("CPM cache hit for project %s", project_id)
        return result

    def put(self, project_id, watermark, result: CriticalPathResult) -> None:
        if not result.is_valid or self.max_entries <= 0:
            return
        key = (project_id, watermark)
        self._entries[key] = result
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
