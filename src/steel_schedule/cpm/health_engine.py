# steel_schedule/cpm/health_engine.py

from __future__ import annotations

import logging
import math
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from steel_schedule.calendars.business_days import schedule_slip_business_days
from steel_schedule.config.settings import settings
from steel_schedule.cpm.critical_path import CriticalPathResult
from steel_schedule.models import PHASES, TaskStatus, as_tasks, coerce_date

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    DELAYED = "delayed"


TASK_FRAME_COLUMNS = [
    "id", "name", "phase", "status", "start_date", "end_date",
    "baseline_end", "progress_percent", "is_milestone", "is_critical",
]

DATE_COLUMNS = ["start_date", "end_date", "baseline_end"]

FLOAT_BINS = [-1e9, -0.01, 0.01, 1, 5, 10, 999999999]
FLOAT_LABELS = [
    "Negative float",
    "Critical (0)",
    "≤ 1 day",
    "1–5 days",
    "5–10 days",
    "> 10 days",
]


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n > 1 else ''}"


# ---------------------------------------------------------
# TASK FRAME
# ---------------------------------------------------------

def tasks_to_frame(tasks: Iterable) -> pd.DataFrame:
    """
    Flatten Task records into the DataFrame the health metrics run on.

    Guarantees:
      - every column in TASK_FRAME_COLUMNS exists, even for zero tasks
      - date columns are datetime64 (NaT when missing)
      - phase/status are plain strings
    """
    records = []
    for t in as_tasks(tasks):
        records.append({
            "id": t.id,
            "name": t.name,
            "phase": t.phase.value,
            "status": t.status.value,
            "start_date": t.start_date,
            "end_date": t.end_date,
            "baseline_end": t.baseline_end,
            "progress_percent": t.progress_percent,
            "is_milestone": t.is_milestone,
            "is_critical": t.is_critical,
        })

    df = pd.DataFrame(records, columns=TASK_FRAME_COLUMNS)
    for col in DATE_COLUMNS:
        df[col] = pd.to_datetime(df[col], errors="coerce")
    df["progress_percent"] = pd.to_numeric(df["progress_percent"], errors="coerce").fillna(0.0)
    df["is_milestone"] = df["is_milestone"].astype(bool)
    df["is_critical"] = df["is_critical"].astype(bool)
    return df


# ---------------------------------------------------------
# SCORE
# ---------------------------------------------------------

def compute_health_score(
    overdue_tasks: int,
    critical_overdue: int,
    blocked_tasks: int,
    avg_variance_days: float,
    variance_threshold: int = 7,
) -> Tuple[int, HealthStatus]:
    """
    Penalty-based schedule health score in [0, 100] and its status.

    Critical-path tasks running late force DELAYED whatever the score;
    otherwise the status follows the clamped score (>=80 on track,
    >=60 at risk, below that delayed).
    """
    score = 100
    status = HealthStatus.ON_TRACK
    forced_delayed = False

    if overdue_tasks > 0:
        score -= min(overdue_tasks * 5, 30)
        status = HealthStatus.AT_RISK

    if critical_overdue > 0:
        score -= min(critical_overdue * 10, 40)
        status = HealthStatus.DELAYED
        forced_delayed = True

    if blocked_tasks > 0:
        score -= min(blocked_tasks * 3, 15)
        if status == HealthStatus.ON_TRACK:
            status = HealthStatus.AT_RISK

    if avg_variance_days > variance_threshold:
        score -= min((avg_variance_days - variance_threshold) * 2, 20)
        if status == HealthStatus.ON_TRACK:
            status = HealthStatus.AT_RISK

    score = int(max(0, min(100, score)))

    if forced_delayed:
        return score, HealthStatus.DELAYED
    if score >= 80:
        return score, HealthStatus.ON_TRACK
    if score >= 60:
        return score, HealthStatus.AT_RISK
    return score, HealthStatus.DELAYED


def build_alerts(overdue_tasks: int, critical_overdue: int, blocked_tasks: int) -> List[Dict[str, str]]:
    alerts = []
    if overdue_tasks > 0:
        alerts.append({
            "type": "overdue",
            "severity": "high",
            "message": f"{_plural(overdue_tasks, 'task')} overdue",
        })
    if critical_overdue > 0:
        alerts.append({
            "type": "critical_overdue",
            "severity": "critical",
            "message": f"{_plural(critical_overdue, 'critical path task')} overdue",
        })
    if blocked_tasks > 0:
        alerts.append({
            "type": "blocked",
            "severity": "medium",
            "message": f"{_plural(blocked_tasks, 'task')} blocked or on hold",
        })
    return alerts


# ---------------------------------------------------------
# BREAKDOWNS
# ---------------------------------------------------------

def phase_breakdown(df: pd.DataFrame) -> Dict[str, Dict[str, int]]:
    """{phase: {total, completed, percent}} for every phase, including empty ones."""
    work = df.assign(completed=(df["status"] == TaskStatus.COMPLETED.value).astype(int))
    grouped = (
        work.groupby("phase")
        .agg(total=("id", "count"), completed=("completed", "sum"))
        .reindex(list(PHASES), fill_value=0)
    )

    out = {}
    for phase, row in grouped.iterrows():
        total = int(row["total"])
        completed = int(row["completed"])
        out[phase] = {
            "total": total,
            "completed": completed,
            "percent": _round_half_up(completed / total * 100) if total else 0,
        }
    return out


def upcoming_milestones(df: pd.DataFrame, today: pd.Timestamp, lookahead_days: int) -> List[Dict[str, Any]]:
    horizon = today + pd.Timedelta(days=lookahead_days)
    mask = (
        df["is_milestone"]
        & df["end_date"].notna()
        & (df["end_date"] >= today)
        & (df["end_date"] <= horizon)
    )
    rows = df[mask].sort_values("end_date", kind="stable")
    return [
        {
            "id": r["id"],
            "name": r["name"],
            "end_date": r["end_date"].date().isoformat(),
            "status": r["status"],
        }
        for _, r in rows.iterrows()
    ]


def float_distribution(cpm: CriticalPathResult) -> Dict[str, int]:
    """Number of scheduled tasks per total-float bucket."""
    floats = pd.Series([t.total_float for t in cpm.timings.values()], dtype=float)
    buckets = pd.cut(floats, bins=FLOAT_BINS, labels=FLOAT_LABELS, include_lowest=True)
    counts = buckets.value_counts(sort=False)
    return {str(label): int(counts.get(label, 0)) for label in FLOAT_LABELS}


# ---------------------------------------------------------
# EXPORTED ENTRY POINT
# ---------------------------------------------------------

def compute_schedule_health(
    tasks: Iterable,
    cpm: Optional[CriticalPathResult] = None,
    target_completion: Any = None,
    today: Optional[date] = None,
    lookahead_days: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Fold raw task state and an optional CPM result into a health report.

    When a valid CPM result is given, criticality comes from its zero-float
    set; otherwise each task's own is_critical flag is used.

    Returns a dict with:
      health_score, health_status, task counts, progress_percent,
      weighted_progress, avg_schedule_variance_days, critical_tasks,
      critical_overdue, phase_progress, upcoming_milestones, alerts,
      latest_task_end, days_slip_business and, with CPM, project_horizon,
      unscheduled_tasks and float_distribution.
    """
    today_ts = pd.Timestamp(today or date.today()).normalize()
    if lookahead_days is None:
        lookahead_days = settings.MILESTONE_LOOKAHEAD_DAYS

    df = tasks_to_frame(tasks)

    if cpm is not None and cpm.is_valid:
        df["is_critical"] = df["id"].isin(list(cpm.critical_task_ids))

    total = int(len(df))
    completed_mask = df["status"] == TaskStatus.COMPLETED.value
    overdue_mask = (~completed_mask) & (df["end_date"] < today_ts)
    blocked_mask = df["status"].isin([TaskStatus.BLOCKED.value, TaskStatus.ON_HOLD.value])

    completed = int(completed_mask.sum())
    overdue = int(overdue_mask.sum())
    blocked = int(blocked_mask.sum())
    in_progress = int((df["status"] == TaskStatus.IN_PROGRESS.value).sum())
    not_started = int((df["status"] == TaskStatus.NOT_STARTED.value).sum())

    critical = int(df["is_critical"].sum())
    critical_overdue = int((df["is_critical"] & overdue_mask).sum())

    progress = _round_half_up(completed / total * 100) if total else 0
    weighted = _round_half_up(float(df["progress_percent"].mean())) if total else 0

    # Schedule variance (current end vs baseline end)
    has_baseline = df["baseline_end"].notna() & df["end_date"].notna()
    variance = (df.loc[has_baseline, "end_date"] - df.loc[has_baseline, "baseline_end"]).dt.days
    tasks_with_baseline = int(has_baseline.sum())
    tasks_with_variance = int((variance != 0).sum())
    avg_variance = _round_half_up(float(variance.mean())) if tasks_with_baseline else 0

    score, status = compute_health_score(
        overdue, critical_overdue, blocked, avg_variance,
        variance_threshold=settings.VARIANCE_THRESHOLD_DAYS,
    )

    latest_end = df["end_date"].max() if total else pd.NaT
    latest_end = None if pd.isna(latest_end) else latest_end.date()

    report: Dict[str, Any] = {
        "health_score": score,
        "health_status": status.value,
        "total_tasks": total,
        "completed_tasks": completed,
        "in_progress_tasks": in_progress,
        "not_started_tasks": not_started,
        "overdue_tasks": overdue,
        "blocked_tasks": blocked,
        "critical_tasks": critical,
        "critical_overdue": critical_overdue,
        "progress_percent": progress,
        "weighted_progress": weighted,
        "avg_schedule_variance_days": avg_variance,
        "tasks_with_baseline": tasks_with_baseline,
        "tasks_with_variance": tasks_with_variance,
        "phase_progress": phase_breakdown(df),
        "upcoming_milestones": upcoming_milestones(df, today_ts, lookahead_days),
        "alerts": build_alerts(overdue, critical_overdue, blocked),
        "latest_task_end": latest_end.isoformat() if latest_end else None,
        "days_slip_business": schedule_slip_business_days(coerce_date(target_completion), latest_end),
    }

    if cpm is not None:
        report["cpm_valid"] = cpm.is_valid
        if cpm.is_valid:
            report["project_horizon"] = cpm.project_horizon
            report["unscheduled_tasks"] = list(cpm.unscheduled_task_ids)
            report["float_distribution"] = float_distribution(cpm)
        else:
            report["cycles"] = [list(c) for c in cpm.cycles]

    logger.debug(
        "Health: score=%d status=%s total=%d overdue=%d critical_overdue=%d",
        score, status.value, total, overdue, critical_overdue,
    )
    return report
