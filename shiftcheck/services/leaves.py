"""Service for checking leave requests against booked shifts."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from shiftcheck.domain.models import LeaveCheckResponse, Schedule, ScheduleStatus

_BLOCKING_STATUSES = (ScheduleStatus.PENDING, ScheduleStatus.APPROVED)


def check_leave_conflicts(
    employee_id: str,
    start_date: date,
    end_date: date,
    schedules: Iterable[Schedule],
) -> LeaveCheckResponse:
    """Count the employee's pending/approved shifts inside the leave range (inclusive)."""
    count = sum(
        1
        for s in schedules
        if s.employee_id == employee_id
        and s.status in _BLOCKING_STATUSES
        and start_date <= s.date <= end_date
    )
    return LeaveCheckResponse(has_conflict=count > 0, conflict_count=count)
