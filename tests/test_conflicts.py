"""Tests for the conflict-detection service."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import shiftcheck.services.conflicts as conflicts_service
from shiftcheck.domain.models import (
    ConflictType,
    Schedule,
    ScheduleStatus,
    Severity,
    Shift,
    ShiftType,
    Store,
)
from shiftcheck.services.conflicts import (
    check_capacity,
    check_weekly_hours,
    find_overlap,
    get_available_slots,
    get_conflicts,
    has_blocking_conflict,
    week_bounds,
)
from shiftcheck.services.timerange import resolve_range

# Wednesday; its week runs Mon 2026-03-02 .. Sun 2026-03-08.
_DAY = date(2026, 3, 4)


def _make_shift(**overrides) -> Shift:
    defaults = dict(
        id="shift-day",
        name="Day",
        start_time="09:00",
        end_time="17:00",
        duration=8,
    )
    defaults.update(overrides)
    return Shift(**defaults)


def _make_schedule(**overrides) -> Schedule:
    defaults = dict(
        employee_id="emp-1",
        shift_id="shift-day",
        store_id="store-1",
        date=_DAY,
        status=ScheduleStatus.APPROVED,
    )
    defaults.update(overrides)
    return Schedule(**defaults)


# ---------------------------------------------------------------------------
# find_overlap
# ---------------------------------------------------------------------------


def test_overnight_shift_overlaps_next_morning():
    """A 22:00-06:00 shift runs into the next day and collides with 05:00-13:00."""
    night = _make_shift(id="shift-night", name="Night", start_time="22:00", end_time="06:00")
    existing = [_make_schedule(shift_id=night.id)]

    conflict = find_overlap(
        "emp-1", _DAY + timedelta(days=1), "05:00", "13:00", None, existing, [night]
    )

    assert conflict is not None
    assert conflict.type == ConflictType.OVERLAP
    assert conflict.severity == Severity.ERROR
    assert conflict.schedule_id == existing[0].id
    assert "Night" in conflict.message
    assert "22:00 - 06:00" in conflict.message


def test_touching_shifts_do_not_overlap():
    shift = _make_shift()
    existing = [_make_schedule()]

    assert find_overlap("emp-1", _DAY, "17:00", "23:00", None, existing, [shift]) is None


def test_rejected_schedule_is_ignored():
    shift = _make_shift()
    existing = [_make_schedule(status=ScheduleStatus.REJECTED)]

    assert find_overlap("emp-1", _DAY, "10:00", "14:00", None, existing, [shift]) is None


def test_schedule_does_not_conflict_with_itself_on_edit():
    shift = _make_shift()
    existing = [_make_schedule(id="sched-1")]

    assert (
        find_overlap("emp-1", _DAY, "09:00", "17:00", "sched-1", existing, [shift]) is None
    )


def test_other_employees_are_ignored():
    shift = _make_shift()
    existing = [_make_schedule(employee_id="emp-2")]

    assert find_overlap("emp-1", _DAY, "10:00", "14:00", None, existing, [shift]) is None


def test_schedule_with_unknown_shift_is_skipped():
    existing = [_make_schedule(shift_id="ghost")]

    assert find_overlap("emp-1", _DAY, "10:00", "14:00", None, existing, []) is None


def test_custom_times_override_shift_defaults():
    flexible = _make_shift(
        id="shift-flex", name="Part-time", duration=4, type=ShiftType.PARTTIME
    )
    existing = [_make_schedule(shift_id=flexible.id, start_time="10:00", end_time="12:00")]

    assert find_overlap("emp-1", _DAY, "12:00", "14:00", None, existing, [flexible]) is None

    conflict = find_overlap("emp-1", _DAY, "11:00", "13:00", None, existing, [flexible])
    assert conflict is not None
    assert "10:00 - 12:00" in conflict.message


def test_first_overlapping_schedule_wins():
    shift = _make_shift()
    first = _make_schedule(id="first")
    second = _make_schedule(id="second", start_time="12:00", end_time="15:00")

    conflict = find_overlap("emp-1", _DAY, "11:00", "13:00", None, [first, second], [shift])

    assert conflict is not None
    assert conflict.schedule_id == "first"


def test_schedules_beyond_two_days_are_never_resolved(monkeypatch):
    resolved_days = []

    def recording_resolve_range(day, start_time, end_time):
        resolved_days.append(day)
        return resolve_range(day, start_time, end_time)

    monkeypatch.setattr(conflicts_service, "resolve_range", recording_resolve_range)
    shift = _make_shift()
    existing = [
        _make_schedule(id="far", date=_DAY + timedelta(days=3)),
        _make_schedule(id="edge", date=_DAY - timedelta(days=2)),
    ]

    assert find_overlap("emp-1", _DAY, "10:00", "14:00", None, existing, [shift]) is None
    # the proposal itself, then only the schedule exactly two days back
    assert resolved_days == [_DAY, _DAY - timedelta(days=2)]


# ---------------------------------------------------------------------------
# check_capacity
# ---------------------------------------------------------------------------


def _bookings(count: int, **overrides) -> list[Schedule]:
    return [_make_schedule(employee_id=f"emp-{i}", **overrides) for i in range(count)]


def test_full_shift_is_an_error():
    shift = _make_shift(max_employees=5)

    conflict = check_capacity(shift.id, _DAY, "store-1", shift, None, _bookings(5))

    assert conflict is not None
    assert conflict.type == ConflictType.CAPACITY
    assert conflict.severity == Severity.ERROR
    assert "5/5" in conflict.message


def test_last_slot_is_a_warning():
    shift = _make_shift(max_employees=5)

    conflict = check_capacity(shift.id, _DAY, "store-1", shift, None, _bookings(4))

    assert conflict is not None
    assert conflict.severity == Severity.WARNING
    assert "4/5" in conflict.message


def test_plenty_of_room_has_no_finding():
    shift = _make_shift(max_employees=5)

    assert check_capacity(shift.id, _DAY, "store-1", shift, None, _bookings(3)) is None


def test_capacity_ignores_rejected_other_store_other_day_and_excluded():
    shift = _make_shift(max_employees=5)
    schedules = _bookings(3) + [
        _make_schedule(employee_id="rejected", status=ScheduleStatus.REJECTED),
        _make_schedule(employee_id="elsewhere", store_id="store-2"),
        _make_schedule(employee_id="tomorrow", date=_DAY + timedelta(days=1)),
        _make_schedule(id="editing", employee_id="editing"),
    ]

    assert (
        check_capacity(shift.id, _DAY, "store-1", shift, None, schedules, "editing") is None
    )


def test_capacity_falls_back_to_store_then_default():
    shift = _make_shift()

    store = Store(id="store-1", name="Main", max_employees_per_shift=5)
    assert check_capacity(shift.id, _DAY, "store-1", shift, store, _bookings(5)) is not None

    # default of 10: 8 booked leaves 2 slots, exactly 20%
    conflict = check_capacity(shift.id, _DAY, "store-1", shift, None, _bookings(8))
    assert conflict is not None
    assert conflict.severity == Severity.WARNING
    assert check_capacity(shift.id, _DAY, "store-1", shift, None, _bookings(7)) is None


# ---------------------------------------------------------------------------
# check_weekly_hours
# ---------------------------------------------------------------------------


def _week_of_work() -> list[Schedule]:
    return [
        _make_schedule(date=date(2026, 3, d), status=ScheduleStatus.COMPLETED)
        for d in (2, 3, 5)
    ]


def test_week_bounds_start_on_monday():
    assert week_bounds(_DAY) == (date(2026, 3, 2), date(2026, 3, 8))
    assert week_bounds(date(2026, 3, 2)) == (date(2026, 3, 2), date(2026, 3, 8))
    assert week_bounds(date(2026, 3, 8)) == (date(2026, 3, 2), date(2026, 3, 8))


def test_weekly_total_under_cap_has_no_finding():
    shift = _make_shift()
    store = Store(id="store-1", name="Main", max_hours_per_week=48)

    assert check_weekly_hours("emp-1", _DAY, 8, store, _week_of_work(), [shift]) is None


def test_weekly_total_over_cap_is_an_error():
    shift = _make_shift()
    store = Store(id="store-1", name="Main", max_hours_per_week=30)

    conflict = check_weekly_hours("emp-1", _DAY, 8, store, _week_of_work(), [shift])

    assert conflict is not None
    assert conflict.type == ConflictType.OVERTIME
    assert conflict.severity == Severity.ERROR
    assert "32/30" in conflict.message


def test_weekly_total_near_cap_is_a_warning():
    shift = _make_shift()
    store = Store(id="store-1", name="Main", max_hours_per_week=35)

    conflict = check_weekly_hours("emp-1", _DAY, 8, store, _week_of_work(), [shift])

    assert conflict is not None
    assert conflict.severity == Severity.WARNING


def test_weekly_sum_uses_custom_times_and_skips_other_weeks():
    shift = _make_shift()
    store = Store(id="store-1", name="Main", max_hours_per_week=10)
    schedules = [
        _make_schedule(date=date(2026, 3, 1)),  # previous Sunday
        _make_schedule(date=date(2026, 3, 9)),  # next Monday
        _make_schedule(date=date(2026, 3, 3), status=ScheduleStatus.REJECTED),
        _make_schedule(date=date(2026, 3, 3), start_time="10:00", end_time="14:00"),
    ]

    # 4h custom + 4h proposed = 8h, under 90% of 10h
    assert check_weekly_hours("emp-1", _DAY, 4, store, schedules, [shift]) is None
    # 4h + 6h = 10h, above 9h but not above 10h
    conflict = check_weekly_hours("emp-1", _DAY, 6, store, schedules, [shift])
    assert conflict is not None
    assert conflict.severity == Severity.WARNING


def test_weekly_sum_skips_the_schedule_being_edited():
    shift = _make_shift()
    store = Store(id="store-1", name="Main", max_hours_per_week=35)
    schedules = _week_of_work() + [_make_schedule(id="sched-1")]

    # 24h booked plus the edited 8h counted twice would be 40h
    conflict = check_weekly_hours("emp-1", _DAY, 8, store, schedules, [shift])
    assert conflict is not None
    assert conflict.severity == Severity.ERROR

    conflict = check_weekly_hours(
        "emp-1", _DAY, 8, store, schedules, [shift], exclude_schedule_id="sched-1"
    )
    assert conflict is not None
    assert conflict.severity == Severity.WARNING
    assert "32/35" in conflict.message


def test_edit_does_not_count_itself_toward_weekly_hours():
    shift = _make_shift()
    store = Store(id="store-1", name="Main", max_hours_per_week=35)
    schedules = _week_of_work() + [_make_schedule(id="sched-1")]

    findings = get_conflicts(
        "emp-1",
        shift.id,
        _DAY,
        "store-1",
        schedules=schedules,
        shifts=[shift],
        exclude_schedule_id="sched-1",
        shift=shift,
        store=store,
        enable_weekly_hours_check=True,
    )

    assert [c.type for c in findings] == [ConflictType.OVERTIME]
    assert findings[0].severity == Severity.WARNING


# ---------------------------------------------------------------------------
# get_conflicts
# ---------------------------------------------------------------------------


def test_overlap_is_reported_before_capacity():
    shift = _make_shift(max_employees=2)
    schedules = [_make_schedule(), _make_schedule(employee_id="emp-2")]

    conflicts = get_conflicts(
        "emp-1",
        shift.id,
        _DAY,
        "store-1",
        schedules=schedules,
        shifts=[shift],
        shift=shift,
    )

    assert [c.type for c in conflicts] == [ConflictType.OVERLAP, ConflictType.CAPACITY]
    assert has_blocking_conflict(conflicts)


def test_weekly_hours_check_is_off_by_default():
    shift = _make_shift()
    store = Store(id="store-1", name="Main", max_hours_per_week=10)
    schedules = [
        _make_schedule(date=date(2026, 3, 2)),
        _make_schedule(date=date(2026, 3, 3)),
    ]
    kwargs = dict(schedules=schedules, shifts=[shift], shift=shift, store=store)

    assert get_conflicts("emp-1", shift.id, _DAY, "store-1", **kwargs) == []

    conflicts = get_conflicts(
        "emp-1", shift.id, _DAY, "store-1", enable_weekly_hours_check=True, **kwargs
    )
    assert [c.type for c in conflicts] == [ConflictType.OVERTIME]
    assert conflicts[0].severity == Severity.ERROR


def test_weekly_hours_uses_custom_duration_when_enabled():
    shift = _make_shift(type=ShiftType.PARTTIME)
    store = Store(id="store-1", name="Main", max_hours_per_week=10)

    conflicts = get_conflicts(
        "emp-1",
        shift.id,
        _DAY,
        "store-1",
        schedules=[],
        shifts=[shift],
        shift=shift,
        store=store,
        custom_start_time="09:00",
        custom_end_time="12:00",
        enable_weekly_hours_check=True,
    )

    assert conflicts == []


def test_missing_shift_definition_is_an_error():
    conflicts = get_conflicts(
        "emp-1", "ghost", _DAY, "store-1", schedules=[_make_schedule()], shifts=[]
    )

    assert len(conflicts) == 1
    assert conflicts[0].type == ConflictType.MISSING_SHIFT_DEFINITION
    assert conflicts[0].severity == Severity.ERROR


def test_custom_times_stand_in_for_missing_shift():
    shift = _make_shift()
    conflicts = get_conflicts(
        "emp-1",
        "ghost",
        _DAY,
        "store-1",
        schedules=[_make_schedule()],
        shifts=[shift],
        custom_start_time="16:00",
        custom_end_time="18:00",
    )

    assert [c.type for c in conflicts] == [ConflictType.OVERLAP]


def test_get_conflicts_is_idempotent():
    shift = _make_shift(max_employees=5)
    schedules = _bookings(4) + [_make_schedule(employee_id="emp-x")]
    kwargs = dict(schedules=schedules, shifts=[shift], shift=shift)

    first = get_conflicts("emp-x", shift.id, _DAY, "store-1", **kwargs)
    second = get_conflicts("emp-x", shift.id, _DAY, "store-1", **kwargs)

    assert first == second
    assert [c.type for c in first] == [ConflictType.OVERLAP, ConflictType.CAPACITY]


def test_timestamp_dates_collapse_to_calendar_day():
    schedule = _make_schedule(date=datetime(2026, 3, 4, 23, 59))
    assert schedule.date == _DAY


# ---------------------------------------------------------------------------
# get_available_slots
# ---------------------------------------------------------------------------


def test_available_slots_counts_bookings():
    shift = _make_shift()
    schedules = _bookings(3) + [_make_schedule(status=ScheduleStatus.REJECTED)]

    slots = get_available_slots(shift.id, _DAY, "store-1", shift, None, schedules)

    assert slots.total == 10
    assert slots.occupied == 3
    assert slots.available == 7
    assert slots.percentage_available == 70.0


def test_available_slots_never_negative():
    shift = _make_shift(max_employees=2)

    slots = get_available_slots(shift.id, _DAY, "store-1", shift, None, _bookings(3))

    assert slots.occupied == 3
    assert slots.available == 0
    assert slots.percentage_available == 0.0
