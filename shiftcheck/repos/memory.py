"""In-memory repositories for stores, shifts, schedules and their timelines."""

from __future__ import annotations

from datetime import date, timedelta

from shiftcheck.domain.models import (
    Schedule,
    ScheduleStatus,
    Shift,
    ShiftType,
    Store,
    TimelineEntry,
)


class StoreRepository:
    """Dict-backed store for Store instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Store] = {}

    def add(self, store: Store) -> None:
        self._store[store.id] = store

    def get(self, store_id: str) -> Store | None:
        return self._store.get(store_id)

    def list_all(self) -> list[Store]:
        return list(self._store.values())


class ShiftRepository:
    """Dict-backed store for Shift definitions, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Shift] = {}

    def add(self, shift: Shift) -> None:
        self._store[shift.id] = shift

    def get(self, shift_id: str) -> Shift | None:
        return self._store.get(shift_id)

    def list_all(self) -> list[Shift]:
        return list(self._store.values())

    def list_active(self) -> list[Shift]:
        return [s for s in self._store.values() if s.is_active]


class ScheduleRepository:
    """Dict-backed store for Schedule instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Schedule] = {}

    def add(self, schedule: Schedule) -> None:
        self._store[schedule.id] = schedule

    def get(self, schedule_id: str) -> Schedule | None:
        return self._store.get(schedule_id)

    def list_all(self) -> list[Schedule]:
        return list(self._store.values())

    def list_for_store(self, store_id: str) -> list[Schedule]:
        return [s for s in self._store.values() if s.store_id == store_id]

    def list_for_employee(self, employee_id: str) -> list[Schedule]:
        return sorted(
            [s for s in self._store.values() if s.employee_id == employee_id],
            key=lambda s: s.date,
        )


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_schedule(self, schedule_id: str) -> list[TimelineEntry]:
        return sorted(
            [e for e in self._entries if e.schedule_id == schedule_id],
            key=lambda e: e.timestamp,
        )


# ---------------------------------------------------------------------------
# Seed data – one store with its standard shifts and a few bookings
# ---------------------------------------------------------------------------


def seed(
    store_repo: StoreRepository,
    shift_repo: ShiftRepository,
    schedule_repo: ScheduleRepository,
    today: date | None = None,
) -> None:
    today = today or date.today()

    store = Store(id="store-1", name="Main Street", max_employees_per_shift=5)
    store_repo.add(store)

    morning = Shift(
        id="shift-morning", name="Morning", start_time="06:30", end_time="14:30", duration=8
    )
    afternoon = Shift(
        id="shift-afternoon", name="Afternoon", start_time="14:30", end_time="22:30", duration=8
    )
    night = Shift(
        id="shift-night", name="Night", start_time="22:30", end_time="06:30", duration=8
    )
    flexible = Shift(
        id="shift-parttime",
        name="Part-time",
        start_time="09:00",
        end_time="13:00",
        duration=4,
        type=ShiftType.PARTTIME,
        max_employees=3,
    )
    for shift in (morning, afternoon, night, flexible):
        shift_repo.add(shift)

    tomorrow = today + timedelta(days=1)
    schedule_repo.add(
        Schedule(
            employee_id="emp-1",
            shift_id=morning.id,
            store_id=store.id,
            date=tomorrow,
            status=ScheduleStatus.APPROVED,
        )
    )
    schedule_repo.add(
        Schedule(
            employee_id="emp-2",
            shift_id=night.id,
            store_id=store.id,
            date=tomorrow,
        )
    )
    schedule_repo.add(
        Schedule(
            employee_id="emp-3",
            shift_id=flexible.id,
            store_id=store.id,
            date=tomorrow,
            start_time="10:00",
            end_time="12:00",
        )
    )
