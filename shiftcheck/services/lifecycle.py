"""Service for moving schedules through their status lifecycle."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Iterable

from shiftcheck.domain.models import Schedule, ScheduleStatus

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[ScheduleStatus, set[ScheduleStatus]] = {
    ScheduleStatus.PENDING: {ScheduleStatus.APPROVED, ScheduleStatus.REJECTED},
    ScheduleStatus.APPROVED: {
        ScheduleStatus.COMPLETED,
        ScheduleStatus.PENDING,
        ScheduleStatus.REJECTED,
    },
    ScheduleStatus.COMPLETED: {ScheduleStatus.REJECTED},
    ScheduleStatus.REJECTED: set(),
}


class InvalidTransition(ValueError):
    """Raised when a schedule cannot move to the requested status."""


def can_transition(current: ScheduleStatus, target: ScheduleStatus) -> bool:
    return target in _TRANSITIONS[current]


def transition(
    schedule: Schedule,
    target: ScheduleStatus,
    actor_id: str | None = None,
    now: datetime | None = None,
) -> ScheduleStatus:
    """Move *schedule* to *target* in place and return the previous status.

    Rejection is terminal: a rejected schedule takes no further moves.
    """
    previous = schedule.status
    if not can_transition(previous, target):
        raise InvalidTransition(f"Cannot move schedule from {previous} to {target}")

    schedule.status = target
    schedule.updated_at = now or datetime.now(timezone.utc)
    if target == ScheduleStatus.APPROVED:
        schedule.approved_by = actor_id
    elif target == ScheduleStatus.PENDING:
        schedule.approved_by = None

    logger.info("Schedule %s: %s -> %s", schedule.id, previous, target)
    return previous


def auto_complete_past_schedules(
    schedules: Iterable[Schedule],
    today: date,
    store_id: str | None = None,
) -> list[str]:
    """Mark approved schedules dated before *today* as completed.

    Returns the ids of the schedules that changed.
    """
    updated: list[str] = []
    for schedule in schedules:
        if schedule.status != ScheduleStatus.APPROVED:
            continue
        if store_id is not None and schedule.store_id != store_id:
            continue
        if schedule.date < today:
            transition(schedule, ScheduleStatus.COMPLETED)
            updated.append(schedule.id)

    logger.info("Auto-completed %d past schedule(s)", len(updated))
    return updated
