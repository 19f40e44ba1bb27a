"""Service for expanding and validating bulk shift registrations."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable

from dateutil.rrule import WEEKLY, rrule

from shiftcheck.domain.models import (
    BulkCandidate,
    Conflict,
    ConflictType,
    Schedule,
    ScheduleStatus,
    Severity,
    Shift,
    ShiftType,
    Store,
    WeeklyPatternEntry,
)
from shiftcheck.services.conflicts import get_conflicts, week_bounds

logger = logging.getLogger(__name__)


def candidate_key(candidate: BulkCandidate) -> str:
    return f"{candidate.date.isoformat()}-{candidate.shift_id}"


def expand_weekly_pattern(
    start_date: date,
    weeks: int,
    pattern: dict[int, WeeklyPatternEntry],
) -> list[BulkCandidate]:
    """Expand a weekday -> shift pattern into dated candidates.

    The recurrence is anchored on the Monday of *start_date*'s week and runs
    for *weeks* weeks; days before *start_date* itself are dropped.
    """
    if not pattern or weeks <= 0:
        return []

    monday, _ = week_bounds(start_date)
    rule = rrule(
        WEEKLY,
        dtstart=datetime.combine(monday, datetime.min.time()),
        until=datetime.combine(monday + timedelta(weeks=weeks, days=-1), datetime.min.time()),
        byweekday=sorted(pattern),
    )

    candidates: list[BulkCandidate] = []
    for dt in rule:
        day = dt.date()
        if day < start_date:
            continue
        entry = pattern[day.weekday()]
        candidates.append(
            BulkCandidate(
                date=day,
                shift_id=entry.shift_id,
                custom_start_time=entry.custom_start_time,
                custom_end_time=entry.custom_end_time,
            )
        )
    return candidates


def precheck_registration(
    employee_id: str,
    day: date,
    schedules: Iterable[Schedule],
    today: date,
) -> list[Conflict]:
    """Registration rules that run before any overlap or capacity check.

    An employee cannot register for a past day, nor for a day that already
    holds one of their shifts awaiting approval.
    """
    findings: list[Conflict] = []
    if day < today:
        findings.append(
            Conflict(
                type=ConflictType.PAST_DATE,
                severity=Severity.ERROR,
                message=f"Cannot register for a past date ({day:%d/%m})",
            )
        )

    pending = next(
        (
            s
            for s in schedules
            if s.employee_id == employee_id
            and s.status == ScheduleStatus.PENDING
            and s.date == day
        ),
        None,
    )
    if pending is not None:
        findings.append(
            Conflict(
                type=ConflictType.DUPLICATE,
                severity=Severity.ERROR,
                message=f"A shift is already pending approval on {day:%d/%m}",
                schedule_id=pending.id,
            )
        )
    return findings


def check_bulk(
    employee_id: str,
    store_id: str,
    candidates: list[BulkCandidate],
    *,
    schedules: list[Schedule],
    shifts: list[Shift],
    store: Store | None,
    today: date,
    enable_weekly_hours_check: bool = False,
) -> dict[str, list[Conflict]]:
    """Check every candidate of a bulk registration.

    Returns findings keyed by ``YYYY-MM-DD-<shift_id>``; candidates with no
    findings are left out. A past date or an existing pending shift on the
    same day short-circuits the remaining checks for that candidate.
    """
    shift_index = {s.id: s for s in shifts}
    results: dict[str, list[Conflict]] = {}

    for candidate in candidates:
        key = candidate_key(candidate)
        findings = precheck_registration(employee_id, candidate.date, schedules, today)
        if not findings:
            shift = shift_index.get(candidate.shift_id)
            flexible = shift is not None and shift.type == ShiftType.PARTTIME
            findings = get_conflicts(
                employee_id,
                candidate.shift_id,
                candidate.date,
                store_id,
                schedules=schedules,
                shifts=shifts,
                shift=shift,
                store=store,
                custom_start_time=candidate.custom_start_time if flexible else None,
                custom_end_time=candidate.custom_end_time if flexible else None,
                enable_weekly_hours_check=enable_weekly_hours_check,
            )
        if findings:
            results[key] = findings

    logger.info(
        "Bulk check for employee %s: %d candidate(s), %d with findings",
        employee_id,
        len(candidates),
        len(results),
    )
    return results
