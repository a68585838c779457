"""
Task record consumed by the scheduling core.

Tasks arrive from the external store as loose dictionaries. ``Task.from_dict``
turns one into an explicit, immutable record; fields the core does not know
about are dropped on purpose (and listed at DEBUG level) instead of being
carried along.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


class TaskPhase(str, Enum):
    DETAILING = "detailing"
    FABRICATION = "fabrication"
    DELIVERY = "delivery"
    ERECTION = "erection"
    CLOSEOUT = "closeout"
    OTHER = "other"


class TaskStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"


PHASES: Tuple[str, ...] = tuple(p.value for p in TaskPhase)


# ---------------------------------------------------------
# FIELD COERCION
# ---------------------------------------------------------

def coerce_date(value: Any) -> Optional[date]:
    """
    Normalise a store value into a ``datetime.date``.

    Accepts dates, datetimes, pandas timestamps and ISO strings. Blank or
    unparseable values come back as None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and not value.strip():
        return None

    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def _coerce_phase(value: Any) -> TaskPhase:
    try:
        return TaskPhase(str(value).strip().lower())
    except ValueError:
        return TaskPhase.OTHER


def _coerce_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(str(value).strip().lower())
    except ValueError:
        return TaskStatus.NOT_STARTED


def _coerce_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


_TRUE_STRINGS = {"true", "t", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "f", "no", "n", "0", ""}


def _coerce_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text not in _FALSE_STRINGS:
            logger.debug("Unrecognised boolean %r, treating as False", value)
        return False
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return False
    return bool(value)


def _coerce_duration(value: Any) -> Optional[int]:
    """Whole-day duration, or None when blank, unparseable or fractional."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = pd.to_numeric(value, errors="coerce")
    if pd.isna(number):
        return None
    if not float(number).is_integer():
        logger.debug("Fractional duration %r, task left unscheduled", value)
        return None
    return int(number)


def _unique_ids(values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    seen = []
    for v in values or ():
        tid = _coerce_id(v)
        if tid is not None and tid not in seen:
            seen.append(tid)
    return tuple(seen)


# ---------------------------------------------------------
# TASK RECORD
# ---------------------------------------------------------

@dataclass(frozen=True)
class Task:
    """A single schedule task belonging to one project."""

    id: str
    project_id: Optional[str] = None
    name: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_days: Optional[int] = None
    predecessor_ids: Tuple[str, ...] = ()
    predecessor_configs: Tuple[Dict[str, Any], ...] = ()
    phase: TaskPhase = TaskPhase.OTHER
    status: TaskStatus = TaskStatus.NOT_STARTED
    progress_percent: float = 0.0
    is_milestone: bool = False
    is_critical: bool = False
    baseline_start: Optional[date] = None
    baseline_end: Optional[date] = None
    parent_task_id: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        # Direct construction may pass plain strings and lists
        if not isinstance(self.phase, TaskPhase):
            object.__setattr__(self, "phase", _coerce_phase(self.phase))
        if not isinstance(self.status, TaskStatus):
            object.__setattr__(self, "status", _coerce_status(self.status))
        if not isinstance(self.predecessor_ids, tuple):
            object.__setattr__(self, "predecessor_ids", tuple(self.predecessor_ids))
        if not isinstance(self.predecessor_configs, tuple):
            object.__setattr__(self, "predecessor_configs", tuple(self.predecessor_configs))

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def scheduled_duration(self) -> Optional[int]:
        """
        Whole-day duration used by CPM.

        Explicit dates win: ``end - start + 1`` (both endpoints count).
        Otherwise ``duration_days``. None means the task cannot be scheduled.
        """
        if self.start_date is not None and self.end_date is not None:
            return (self.end_date - self.start_date).days + 1
        if self.duration_days is not None:
            return int(self.duration_days)
        return None

    def with_changes(self, **changes) -> "Task":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Task":
        known = {f.name for f in fields(cls)}
        ignored = sorted(k for k in record if k not in known)
        if ignored:
            logger.debug("Task %s: ignoring fields %s", record.get("id"), ignored)

        if record.get("id") in (None, ""):
            raise ValueError("Task record is missing 'id'")

        progress = record.get("progress_percent")
        if progress in ("", None):
            progress = 0.0
        progress = pd.to_numeric(progress, errors="coerce")
        progress = 0.0 if pd.isna(progress) else float(min(max(progress, 0.0), 100.0))

        updated_at = record.get("updated_at")
        if isinstance(updated_at, datetime):
            updated_at = updated_at.isoformat()

        return cls(
            id=str(record["id"]),
            project_id=_coerce_id(record.get("project_id")),
            name=str(record.get("name") or ""),
            start_date=coerce_date(record.get("start_date")),
            end_date=coerce_date(record.get("end_date")),
            duration_days=_coerce_duration(record.get("duration_days")),
            predecessor_ids=_unique_ids(record.get("predecessor_ids")),
            predecessor_configs=tuple(dict(c) for c in record.get("predecessor_configs") or ()),
            phase=_coerce_phase(record.get("phase")),
            status=_coerce_status(record.get("status")),
            progress_percent=progress,
            is_milestone=_coerce_bool(record.get("is_milestone")),
            is_critical=_coerce_bool(record.get("is_critical")),
            baseline_start=coerce_date(record.get("baseline_start")),
            baseline_end=coerce_date(record.get("baseline_end")),
            parent_task_id=_coerce_id(record.get("parent_task_id")),
            updated_at=updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, date):
                value = value.isoformat()
            elif f.name == "predecessor_ids":
                value = list(value)
            elif f.name == "predecessor_configs":
                value = [dict(c) for c in value]
            out[f.name] = value
        return out


def as_tasks(items: Iterable[Any]) -> list:
    """Accept Task records or raw store dictionaries."""
    return [t if isinstance(t, Task) else Task.from_dict(t) for t in items]
