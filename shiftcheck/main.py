"""FastAPI application: entry point for the shift conflict service."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from shiftcheck.config import load_settings
from shiftcheck.domain.bus import EventBus
from shiftcheck.domain.events import (
    ScheduleCreated,
    ScheduleStatusChanged,
    ScheduleUpdated,
)
from shiftcheck.domain.handlers import HandlerRegistry
from shiftcheck.domain.models import (
    AutoCompleteRequest,
    BulkCheckRequest,
    BulkCheckResponse,
    Conflict,
    ConflictCheckRequest,
    ConflictCheckResponse,
    CreateScheduleRequest,
    LeaveCheckRequest,
    LeaveCheckResponse,
    Schedule,
    ScheduleStatus,
    ScheduleWriteResponse,
    Shift,
    ShiftType,
    SlotAvailability,
    StatusChangeRequest,
    Store,
    TimelineEntry,
    UpdateScheduleRequest,
)
from shiftcheck.repos.memory import (
    ScheduleRepository,
    ShiftRepository,
    StoreRepository,
    TimelineRepository,
    seed,
)
from shiftcheck.services.bulk import (
    check_bulk,
    expand_weekly_pattern,
    precheck_registration,
)
from shiftcheck.services.conflicts import (
    get_available_slots,
    get_conflicts,
    has_blocking_conflict,
)
from shiftcheck.services.leaves import check_leave_conflicts
from shiftcheck.services.lifecycle import (
    InvalidTransition,
    auto_complete_past_schedules,
    transition,
)

settings = load_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("shiftcheck.api")

app = FastAPI(title="Shift Conflict Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
store_repo = StoreRepository()
shift_repo = ShiftRepository()
schedule_repo = ScheduleRepository()
timeline_repo = TimelineRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    schedule_repo=schedule_repo,
    timeline_repo=timeline_repo,
)

if settings.seed_data:
    seed(store_repo, shift_repo, schedule_repo)


# ── Helpers ───────────────────────────────────────────────────────────


def _conflict_detail(message: str, conflicts: list[Conflict]) -> dict:
    return {
        "message": message,
        "conflicts": [c.model_dump(mode="json") for c in conflicts],
    }


def _get_schedule_or_404(schedule_id: str) -> Schedule:
    schedule = schedule_repo.get(schedule_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return schedule


def _honours_custom_time(shift_id: str) -> bool:
    shift = shift_repo.get(shift_id)
    return shift is not None and shift.type == ShiftType.PARTTIME


def _check_candidate(
    employee_id: str,
    shift_id: str,
    day: date,
    store_id: str,
    start_time: str | None = None,
    end_time: str | None = None,
    exclude_schedule_id: str | None = None,
) -> list[Conflict]:
    return get_conflicts(
        employee_id,
        shift_id,
        day,
        store_id,
        schedules=schedule_repo.list_all(),
        shifts=shift_repo.list_all(),
        exclude_schedule_id=exclude_schedule_id,
        shift=shift_repo.get(shift_id),
        store=store_repo.get(store_id),
        custom_start_time=start_time,
        custom_end_time=end_time,
        enable_weekly_hours_check=settings.enable_weekly_hours_check,
    )


# ── Routes: reference data ────────────────────────────────────────────


@app.get("/stores", response_model=list[Store])
def list_stores() -> list[Store]:
    return store_repo.list_all()


@app.post("/stores", response_model=Store, status_code=201)
def create_store(store: Store) -> Store:
    store_repo.add(store)
    return store


@app.get("/shifts", response_model=list[Shift])
def list_shifts(active_only: bool = False) -> list[Shift]:
    return shift_repo.list_active() if active_only else shift_repo.list_all()


@app.post("/shifts", response_model=Shift, status_code=201)
def create_shift(shift: Shift) -> Shift:
    shift_repo.add(shift)
    return shift


# ── Routes: conflict checks ───────────────────────────────────────────


@app.post("/conflicts/check", response_model=ConflictCheckResponse)
def check_conflicts(payload: ConflictCheckRequest) -> ConflictCheckResponse:
    """Validate one candidate assignment without writing anything."""
    conflicts = _check_candidate(
        payload.employee_id,
        payload.shift_id,
        payload.date,
        payload.store_id,
        payload.custom_start_time,
        payload.custom_end_time,
        payload.exclude_schedule_id,
    )
    return ConflictCheckResponse(
        conflicts=conflicts, has_errors=has_blocking_conflict(conflicts)
    )


@app.post("/conflicts/check-bulk", response_model=BulkCheckResponse)
def check_conflicts_bulk(payload: BulkCheckRequest) -> BulkCheckResponse:
    """Validate explicit candidates plus any expanded weekly pattern."""
    candidates = list(payload.candidates)
    if payload.weekly_pattern:
        candidates.extend(
            expand_weekly_pattern(payload.start_date, payload.weeks, payload.weekly_pattern)
        )

    results = check_bulk(
        payload.employee_id,
        payload.store_id,
        candidates,
        schedules=schedule_repo.list_all(),
        shifts=shift_repo.list_all(),
        store=store_repo.get(payload.store_id),
        today=date.today(),
        enable_weekly_hours_check=settings.enable_weekly_hours_check,
    )
    return BulkCheckResponse(
        conflicts=results,
        has_errors=any(has_blocking_conflict(found) for found in results.values()),
    )


@app.get(
    "/stores/{store_id}/shifts/{shift_id}/slots", response_model=SlotAvailability
)
def shift_slots(store_id: str, shift_id: str, day: date) -> SlotAvailability:
    """Occupancy badge numbers for a shift on one day."""
    return get_available_slots(
        shift_id,
        day,
        store_id,
        shift_repo.get(shift_id),
        store_repo.get(store_id),
        schedule_repo.list_for_store(store_id),
    )


# ── Routes: schedules ─────────────────────────────────────────────────


@app.get("/schedules", response_model=list[Schedule])
def list_schedules(
    store_id: str | None = None, employee_id: str | None = None
) -> list[Schedule]:
    if employee_id is not None:
        schedules = schedule_repo.list_for_employee(employee_id)
    else:
        schedules = schedule_repo.list_all()
    if store_id is not None:
        schedules = [s for s in schedules if s.store_id == store_id]
    return schedules


@app.get("/schedules/{schedule_id}", response_model=Schedule)
def get_schedule(schedule_id: str) -> Schedule:
    return _get_schedule_or_404(schedule_id)


@app.post("/schedules", response_model=ScheduleWriteResponse, status_code=201)
def create_schedule(payload: CreateScheduleRequest) -> ScheduleWriteResponse:
    """Create a schedule once it clears every blocking conflict.

    Employees registering themselves are held to the registration rules
    (no past days, one pending shift per day). A manager assignment skips
    those and is stored already approved. Custom times only stick on
    part-time shifts.
    """
    if payload.assigned_by is None:
        findings = precheck_registration(
            payload.employee_id,
            payload.date,
            schedule_repo.list_for_employee(payload.employee_id),
            date.today(),
        )
        if findings:
            raise HTTPException(
                status_code=409,
                detail=_conflict_detail("Registration not allowed", findings),
            )

    if _honours_custom_time(payload.shift_id):
        start_time, end_time = payload.start_time, payload.end_time
    else:
        start_time = end_time = None

    conflicts = _check_candidate(
        payload.employee_id,
        payload.shift_id,
        payload.date,
        payload.store_id,
        start_time,
        end_time,
    )
    if has_blocking_conflict(conflicts):
        logger.info(
            "Rejected schedule for employee %s on %s: %s",
            payload.employee_id,
            payload.date,
            ", ".join(c.type for c in conflicts),
        )
        raise HTTPException(
            status_code=409,
            detail=_conflict_detail("Schedule conflicts with existing data", conflicts),
        )

    schedule = Schedule(
        employee_id=payload.employee_id,
        shift_id=payload.shift_id,
        store_id=payload.store_id,
        date=payload.date,
        start_time=start_time,
        end_time=end_time,
        created_by=payload.created_by or payload.assigned_by or payload.employee_id,
        assigned_by=payload.assigned_by,
        is_assigned=payload.assigned_by is not None,
    )
    if schedule.is_assigned:
        schedule.status = ScheduleStatus.APPROVED
        schedule.approved_by = payload.assigned_by
    schedule_repo.add(schedule)
    logger.info("Created schedule %s for employee %s", schedule.id, schedule.employee_id)

    event_bus.publish(
        ScheduleCreated(schedule_id=schedule.id, warnings=[c.message for c in conflicts])
    )
    return ScheduleWriteResponse(schedule=schedule, warnings=conflicts)


@app.put("/schedules/{schedule_id}", response_model=ScheduleWriteResponse)
def update_schedule(schedule_id: str, payload: UpdateScheduleRequest) -> ScheduleWriteResponse:
    """Edit a schedule, re-validating it without counting itself."""
    stored = _get_schedule_or_404(schedule_id)
    changes = payload.model_dump(exclude_unset=True)
    candidate = stored.model_copy(update=changes)
    has_any_time = candidate.start_time is not None or candidate.end_time is not None
    if has_any_time and not _honours_custom_time(candidate.shift_id):
        changes.update(start_time=None, end_time=None)
        candidate = stored.model_copy(update=changes)
    elif bool(candidate.start_time) != bool(candidate.end_time):
        raise HTTPException(
            status_code=422, detail="start_time and end_time must be given together"
        )

    conflicts = _check_candidate(
        candidate.employee_id,
        candidate.shift_id,
        candidate.date,
        candidate.store_id,
        candidate.start_time,
        candidate.end_time,
        exclude_schedule_id=schedule_id,
    )
    if has_blocking_conflict(conflicts):
        raise HTTPException(
            status_code=409,
            detail=_conflict_detail("Edited schedule conflicts with existing data", conflicts),
        )

    for field, value in changes.items():
        setattr(stored, field, value)
    event_bus.publish(ScheduleUpdated(schedule_id=schedule_id, changed_fields=sorted(changes)))
    return ScheduleWriteResponse(schedule=stored, warnings=conflicts)


@app.post("/schedules/{schedule_id}/status", response_model=Schedule)
def change_schedule_status(schedule_id: str, body: StatusChangeRequest) -> Schedule:
    """Apply a lifecycle transition (approve, reject, complete, undo)."""
    schedule = _get_schedule_or_404(schedule_id)
    try:
        previous = transition(schedule, body.status, actor_id=body.actor_id)
    except InvalidTransition as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    event_bus.publish(
        ScheduleStatusChanged(
            schedule_id=schedule_id,
            previous=previous,
            current=schedule.status,
            actor_id=body.actor_id,
        )
    )
    return schedule


@app.post("/schedules/auto-complete")
def auto_complete(body: AutoCompleteRequest) -> dict:
    """Mark approved schedules from past days as completed."""
    today = body.today or date.today()
    updated = auto_complete_past_schedules(
        schedule_repo.list_all(), today, store_id=body.store_id
    )
    for schedule_id in updated:
        event_bus.publish(
            ScheduleStatusChanged(
                schedule_id=schedule_id,
                previous=ScheduleStatus.APPROVED,
                current=ScheduleStatus.COMPLETED,
            )
        )
    return {"updated_count": len(updated), "schedule_ids": updated}


@app.get("/schedules/{schedule_id}/timeline", response_model=list[TimelineEntry])
def schedule_timeline(schedule_id: str) -> list[TimelineEntry]:
    _get_schedule_or_404(schedule_id)
    return timeline_repo.list_for_schedule(schedule_id)


# ── Routes: leaves ────────────────────────────────────────────────────


@app.post("/leaves/check", response_model=LeaveCheckResponse)
def check_leave(payload: LeaveCheckRequest) -> LeaveCheckResponse:
    """Report booked shifts that a leave request would collide with."""
    return check_leave_conflicts(
        payload.employee_id,
        payload.start_date,
        payload.end_date,
        schedule_repo.list_all(),
    )
