"""Task status transitions.

not_started -> in_progress -> completed (terminal)
in_progress <-> blocked / on_hold
not_started -> blocked / on_hold
"""
from __future__ import annotations

from typing import Dict, FrozenSet, Union

from steel_schedule.errors import InvalidStatusTransitionError
from steel_schedule.models import TaskStatus

S = TaskStatus

ALLOWED_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    S.NOT_STARTED: frozenset({S.IN_PROGRESS, S.BLOCKED, S.ON_HOLD}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, S.BLOCKED, S.ON_HOLD}),
    S.BLOCKED: frozenset({S.IN_PROGRESS}),
    S.ON_HOLD: frozenset({S.IN_PROGRESS}),
    S.COMPLETED: frozenset(),
}


def allowed_transitions(from_status: Union[TaskStatus, str]) -> FrozenSet[TaskStatus]:
    return ALLOWED_TRANSITIONS[TaskStatus(from_status)]


def is_allowed_transition(from_status: Union[TaskStatus, str], to_status: Union[TaskStatus, str]) -> bool:
    """True if old->new is a legal move. Keeping the same status is always allowed."""
    old, new = TaskStatus(from_status), TaskStatus(to_status)
    return old == new or new in ALLOWED_TRANSITIONS[old]


def ensure_transition(from_status: Union[TaskStatus, str], to_status: Union[TaskStatus, str]) -> TaskStatus:
    if not is_allowed_transition(from_status, to_status):
        raise InvalidStatusTransitionError(TaskStatus(from_status).value, TaskStatus(to_status).value)
    return TaskStatus(to_status)
