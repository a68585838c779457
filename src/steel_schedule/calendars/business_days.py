# steel_schedule/calendars/business_days.py

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Optional

import numpy as np

from steel_schedule.models import coerce_date

# RFI aging tiers, in business days open
RFI_AGING_WARNING = 10
RFI_AGING_URGENT = 15
RFI_AGING_OVERDUE = 16

CLOSED_RFI_STATUSES = ("answered", "closed")


def business_days_between(start: Any, end: Any) -> int:
    """
    Count Monday–Friday days from start to end, both endpoints included.

    No holiday calendar is applied. Returns 0 when either date is missing or
    start falls after end.
    """
    start = coerce_date(start)
    end = coerce_date(end)
    if start is None or end is None or start > end:
        return 0
    # busday_count excludes the end date, hence the extra day
    return int(np.busday_count(start, end + timedelta(days=1)))


def schedule_slip_business_days(target_completion: Any, latest_task_end: Any) -> int:
    """Business days the latest task end sits past the target completion (0 if not late)."""
    target = coerce_date(target_completion)
    latest = coerce_date(latest_task_end)
    if target is None or latest is None or latest <= target:
        return 0
    return business_days_between(target, latest)


def rfi_escalation_level(submitted_date: Any, status: Optional[str], today: Optional[date] = None) -> str:
    """
    Aging tier of an RFI: normal, warning, urgent or overdue.

    Answered and closed RFIs are always normal.
    """
    if status in CLOSED_RFI_STATUSES:
        return "normal"

    days_open = business_days_between(submitted_date, today or date.today())
    if days_open >= RFI_AGING_OVERDUE:
        return "overdue"
    if days_open >= RFI_AGING_URGENT:
        return "urgent"
    if days_open >= RFI_AGING_WARNING:
        return "warning"
    return "normal"
