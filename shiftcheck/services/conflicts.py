"""Service for detecting conflicts in proposed shift assignments.

Every check reads caller-supplied snapshots of schedules and shifts and
returns either ``None`` or a :class:`Conflict`. Nothing here raises for a
finding and nothing is written back.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from dateutil.relativedelta import MO, relativedelta

from shiftcheck.domain.models import (
    Conflict,
    ConflictType,
    Schedule,
    ScheduleStatus,
    Severity,
    Shift,
    SlotAvailability,
    Store,
)
from shiftcheck.services.timerange import calculate_duration, resolve_range

logger = logging.getLogger(__name__)

DEFAULT_MAX_EMPLOYEES_PER_SHIFT = 10
DEFAULT_MAX_HOURS_PER_WEEK = 48
DEFAULT_SHIFT_DURATION_HOURS = 8
CAPACITY_WARNING_RATIO = 0.2
OVERTIME_WARNING_RATIO = 0.9
# No shift spans more than ~48h, so farther schedules cannot intersect.
OVERLAP_WINDOW = timedelta(days=2)


def _is_active(schedule: Schedule) -> bool:
    return schedule.status != ScheduleStatus.REJECTED


def _index_shifts(shifts: Iterable[Shift]) -> dict[str, Shift]:
    return {shift.id: shift for shift in shifts}


def _max_employees(shift: Shift | None, store: Store | None) -> int:
    if shift is not None and shift.max_employees:
        return shift.max_employees
    if store is not None and store.max_employees_per_shift:
        return store.max_employees_per_shift
    return DEFAULT_MAX_EMPLOYEES_PER_SHIFT


def _occupants(
    shift_id: str,
    day: date,
    store_id: str,
    schedules: Iterable[Schedule],
    exclude_schedule_id: str | None = None,
) -> list[Schedule]:
    return [
        s
        for s in schedules
        if s.id != exclude_schedule_id
        and s.shift_id == shift_id
        and s.store_id == store_id
        and _is_active(s)
        and s.date == day
    ]


def _fmt_hours(hours: float) -> str:
    return f"{hours:g}"


def find_overlap(
    employee_id: str,
    day: date,
    start_time: str,
    end_time: str,
    exclude_schedule_id: str | None,
    schedules: Iterable[Schedule],
    shifts: Iterable[Shift],
) -> Conflict | None:
    """Return the first of the employee's schedules whose window intersects.

    Overlap rule: conflict if new_start < other_end AND new_end > other_start.
    Windows that only touch at an endpoint do not conflict. Scanning stops
    at the first hit.
    """
    shift_index = _index_shifts(shifts)
    new_start, new_end = resolve_range(day, start_time, end_time)

    for schedule in schedules:
        if schedule.id == exclude_schedule_id:
            continue
        if schedule.employee_id != employee_id or not _is_active(schedule):
            continue

        shift = shift_index.get(schedule.shift_id)
        if shift is None:
            continue
        if abs(schedule.date - day) > OVERLAP_WINDOW:
            continue

        other_start_time = schedule.start_time or shift.start_time
        other_end_time = schedule.end_time or shift.end_time
        other_start, other_end = resolve_range(
            schedule.date, other_start_time, other_end_time
        )

        if new_start < other_end and new_end > other_start:
            logger.debug(
                "Overlap for employee %s on %s with schedule %s",
                employee_id,
                day,
                schedule.id,
            )
            return Conflict(
                type=ConflictType.OVERLAP,
                severity=Severity.ERROR,
                message=(
                    f"Overlaps another shift ({shift.name}: "
                    f"{other_start_time} - {other_end_time})"
                ),
                schedule_id=schedule.id,
            )

    return None


def check_capacity(
    shift_id: str,
    day: date,
    store_id: str,
    shift: Shift | None,
    store: Store | None,
    schedules: Iterable[Schedule],
    exclude_schedule_id: str | None = None,
) -> Conflict | None:
    """Flag a shift-day that is full or has at most 20% of its slots left."""
    max_employees = _max_employees(shift, store)
    current = len(_occupants(shift_id, day, store_id, schedules, exclude_schedule_id))
    available = max_employees - current

    if available <= 0:
        return Conflict(
            type=ConflictType.CAPACITY,
            severity=Severity.ERROR,
            message=f"Shift is full ({current}/{max_employees} employees)",
        )
    if available <= max_employees * CAPACITY_WARNING_RATIO:
        return Conflict(
            type=ConflictType.CAPACITY,
            severity=Severity.WARNING,
            message=f"Shift is nearly full ({current}/{max_employees} employees)",
        )
    return None


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing *day*."""
    monday = day + relativedelta(weekday=MO(-1))
    return monday, monday + timedelta(days=6)


def check_weekly_hours(
    employee_id: str,
    day: date,
    proposed_hours: float,
    store: Store | None,
    schedules: Iterable[Schedule],
    shifts: Iterable[Shift],
    exclude_schedule_id: str | None = None,
) -> Conflict | None:
    """Flag a proposal that pushes the employee's week past (or near) the cap."""
    max_hours = (store.max_hours_per_week if store else None) or DEFAULT_MAX_HOURS_PER_WEEK
    week_start, week_end = week_bounds(day)
    shift_index = _index_shifts(shifts)

    total = 0.0
    for schedule in schedules:
        if schedule.id == exclude_schedule_id:
            continue
        if schedule.employee_id != employee_id or not _is_active(schedule):
            continue
        if not week_start <= schedule.date <= week_end:
            continue
        if schedule.has_custom_time:
            total += calculate_duration(schedule.start_time, schedule.end_time)
        else:
            shift = shift_index.get(schedule.shift_id)
            total += shift.duration if shift else 0

    new_total = total + proposed_hours
    if new_total > max_hours:
        return Conflict(
            type=ConflictType.OVERTIME,
            severity=Severity.ERROR,
            message=(
                f"Weekly hour limit exceeded "
                f"({_fmt_hours(new_total)}/{_fmt_hours(max_hours)}h per week)"
            ),
        )
    if new_total > max_hours * OVERTIME_WARNING_RATIO:
        return Conflict(
            type=ConflictType.OVERTIME,
            severity=Severity.WARNING,
            message=(
                f"Approaching weekly hour limit "
                f"({_fmt_hours(new_total)}/{_fmt_hours(max_hours)}h per week)"
            ),
        )
    return None


def get_conflicts(
    employee_id: str,
    shift_id: str,
    day: date,
    store_id: str,
    *,
    schedules: Iterable[Schedule],
    shifts: Iterable[Shift],
    exclude_schedule_id: str | None = None,
    shift: Shift | None = None,
    store: Store | None = None,
    custom_start_time: str | None = None,
    custom_end_time: str | None = None,
    enable_weekly_hours_check: bool = False,
) -> list[Conflict]:
    """Run every check for one candidate assignment.

    Findings come back in a fixed order: overlap, capacity, then weekly
    hours when *enable_weekly_hours_check* is set. A candidate whose times
    cannot be resolved (no custom window and no shift definition) yields a
    single ``MISSING_SHIFT_DEFINITION`` error instead.
    """
    schedules = list(schedules)
    shifts = list(shifts)

    start_time = custom_start_time or (shift.start_time if shift else None)
    end_time = custom_end_time or (shift.end_time if shift else None)
    if not start_time or not end_time:
        logger.warning("No shift definition resolvable for shift %s", shift_id)
        return [
            Conflict(
                type=ConflictType.MISSING_SHIFT_DEFINITION,
                severity=Severity.ERROR,
                message=f"Shift {shift_id} has no definition to take times from",
            )
        ]

    conflicts: list[Conflict] = []

    overlap = find_overlap(
        employee_id, day, start_time, end_time, exclude_schedule_id, schedules, shifts
    )
    if overlap:
        conflicts.append(overlap)

    capacity = check_capacity(
        shift_id, day, store_id, shift, store, schedules, exclude_schedule_id
    )
    if capacity:
        conflicts.append(capacity)

    if enable_weekly_hours_check:
        if custom_start_time and custom_end_time:
            duration = calculate_duration(custom_start_time, custom_end_time)
        else:
            duration = shift.duration if shift else DEFAULT_SHIFT_DURATION_HOURS
        overtime = check_weekly_hours(
            employee_id, day, duration, store, schedules, shifts, exclude_schedule_id
        )
        if overtime:
            conflicts.append(overtime)

    logger.debug(
        "Checked employee %s shift %s on %s: %d finding(s)",
        employee_id,
        shift_id,
        day,
        len(conflicts),
    )
    return conflicts


def get_available_slots(
    shift_id: str,
    day: date,
    store_id: str,
    shift: Shift | None,
    store: Store | None,
    schedules: Iterable[Schedule],
) -> SlotAvailability:
    """Occupancy numbers for a shift-day, for display only."""
    total = _max_employees(shift, store)
    occupied = len(_occupants(shift_id, day, store_id, schedules))
    available = max(0, total - occupied)
    percentage = (available / total) * 100 if total > 0 else 0.0
    return SlotAvailability(
        total=total,
        occupied=occupied,
        available=available,
        percentage_available=percentage,
    )


def has_blocking_conflict(conflicts: Iterable[Conflict]) -> bool:
    """True when any finding must block submission."""
    return any(c.severity == Severity.ERROR for c in conflicts)
