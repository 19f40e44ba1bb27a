"""Domain events emitted as schedules are written."""

from __future__ import annotations

from pydantic import BaseModel

from shiftcheck.domain.models import ScheduleStatus


class ScheduleCreated(BaseModel):
    """Fired when a new Schedule passes its conflict check and is stored."""

    schedule_id: str
    warnings: list[str] = []


class ScheduleUpdated(BaseModel):
    """Fired when a stored Schedule is edited."""

    schedule_id: str
    changed_fields: list[str]


class ScheduleStatusChanged(BaseModel):
    """Fired after a lifecycle transition, including auto-completion."""

    schedule_id: str
    previous: ScheduleStatus
    current: ScheduleStatus
    actor_id: str | None = None
