"""Domain models for the shift-scheduling conflict service."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, Field, field_validator, model_validator

try:
    from enum import StrEnum
except ImportError:  # pragma: no cover - fallback for older Python runtimes

    class StrEnum(str, Enum):
        pass


TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ScheduleStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class ShiftType(StrEnum):
    FULLTIME = "fulltime"
    PARTTIME = "parttime"


class ConflictType(StrEnum):
    DUPLICATE = "DUPLICATE"
    OVERTIME = "OVERTIME"
    CAPACITY = "CAPACITY"
    CONSECUTIVE = "CONSECUTIVE"  # reserved, never produced
    OVERLAP = "OVERLAP"
    MISSING_SHIFT_DEFINITION = "MISSING_SHIFT_DEFINITION"
    PAST_DATE = "PAST_DATE"


class Severity(StrEnum):
    WARNING = "warning"
    ERROR = "error"


class TimelineEntryType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _to_calendar_date(value):
    """Collapse a full timestamp to its calendar day.

    Dates arrive either as plain dates or as timestamps carrying an
    irrelevant time of day; only the day matters downstream.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


CalendarDate = Annotated[date, BeforeValidator(_to_calendar_date)]


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Store(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    max_employees_per_shift: int | None = Field(default=None, gt=0)
    max_hours_per_week: float | None = Field(default=None, gt=0)
    is_active: bool = True


class Shift(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    start_time: str = Field(pattern=TIME_OF_DAY_PATTERN)
    end_time: str = Field(pattern=TIME_OF_DAY_PATTERN)
    duration: float = Field(ge=0)
    type: ShiftType = ShiftType.FULLTIME
    is_active: bool = True
    max_employees: int | None = Field(default=None, gt=0)


class Schedule(BaseModel):
    id: str = Field(default_factory=_new_id)
    employee_id: str
    shift_id: str
    store_id: str
    date: CalendarDate
    status: ScheduleStatus = ScheduleStatus.PENDING
    start_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    end_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    created_by: str | None = None
    assigned_by: str | None = None
    is_assigned: bool = False
    approved_by: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None

    @property
    def has_custom_time(self) -> bool:
        return bool(self.start_time and self.end_time)


class Conflict(BaseModel):
    type: ConflictType
    severity: Severity
    message: str
    schedule_id: str | None = None


class SlotAvailability(BaseModel):
    total: int
    occupied: int
    available: int
    percentage_available: float


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    schedule_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class _CustomTimeMixin(BaseModel):
    custom_start_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    custom_end_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)

    @model_validator(mode="after")
    def _custom_times_paired(self) -> _CustomTimeMixin:
        if bool(self.custom_start_time) != bool(self.custom_end_time):
            raise ValueError("custom_start_time and custom_end_time must be given together")
        return self


class ConflictCheckRequest(_CustomTimeMixin):
    employee_id: str
    shift_id: str
    store_id: str
    date: CalendarDate
    exclude_schedule_id: str | None = None


class ConflictCheckResponse(BaseModel):
    conflicts: list[Conflict] = Field(default_factory=list)
    has_errors: bool = False


class BulkCandidate(_CustomTimeMixin):
    date: CalendarDate
    shift_id: str


class WeeklyPatternEntry(_CustomTimeMixin):
    shift_id: str


class BulkCheckRequest(BaseModel):
    employee_id: str
    store_id: str
    candidates: list[BulkCandidate] = Field(default_factory=list)
    start_date: CalendarDate | None = None
    weeks: int = Field(default=4, ge=1, le=52)
    weekly_pattern: dict[int, WeeklyPatternEntry] = Field(default_factory=dict)

    @field_validator("weekly_pattern")
    @classmethod
    def _weekday_keys(cls, value: dict[int, WeeklyPatternEntry]):
        for weekday in value:
            if not 0 <= weekday <= 6:
                raise ValueError("weekly_pattern keys must be weekday indexes 0-6")
        return value

    @model_validator(mode="after")
    def _pattern_needs_start(self) -> BulkCheckRequest:
        if self.weekly_pattern and self.start_date is None:
            raise ValueError("start_date is required with weekly_pattern")
        return self


class BulkCheckResponse(BaseModel):
    conflicts: dict[str, list[Conflict]] = Field(default_factory=dict)
    has_errors: bool = False


class CreateScheduleRequest(BaseModel):
    employee_id: str
    shift_id: str
    store_id: str
    date: CalendarDate
    start_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    end_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    created_by: str | None = None
    assigned_by: str | None = None

    @model_validator(mode="after")
    def _custom_times_paired(self) -> CreateScheduleRequest:
        if bool(self.start_time) != bool(self.end_time):
            raise ValueError("start_time and end_time must be given together")
        return self


class UpdateScheduleRequest(BaseModel):
    shift_id: str | None = None
    date: CalendarDate | None = None
    start_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    end_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)


class ScheduleWriteResponse(BaseModel):
    schedule: Schedule
    warnings: list[Conflict] = Field(default_factory=list)


class StatusChangeRequest(BaseModel):
    status: ScheduleStatus
    actor_id: str | None = None


class AutoCompleteRequest(BaseModel):
    today: CalendarDate | None = None
    store_id: str | None = None


class LeaveCheckRequest(BaseModel):
    employee_id: str
    start_date: CalendarDate
    end_date: CalendarDate

    @model_validator(mode="after")
    def _end_not_before_start(self) -> LeaveCheckRequest:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class LeaveCheckResponse(BaseModel):
    has_conflict: bool
    conflict_count: int
