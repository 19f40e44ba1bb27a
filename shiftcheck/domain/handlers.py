"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

from shiftcheck.domain.bus import EventBus
from shiftcheck.domain.events import (
    ScheduleCreated,
    ScheduleStatusChanged,
    ScheduleUpdated,
)
from shiftcheck.domain.models import TimelineEntry, TimelineEntryType
from shiftcheck.repos.memory import ScheduleRepository, TimelineRepository


class HandlerRegistry:
    """Wires schedule-event handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        schedule_repo: ScheduleRepository,
        timeline_repo: TimelineRepository,
    ) -> None:
        self.bus = bus
        self.schedule_repo = schedule_repo
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(ScheduleCreated, self.on_schedule_created)
        self.bus.subscribe(ScheduleUpdated, self.on_schedule_updated)
        self.bus.subscribe(ScheduleStatusChanged, self.on_status_changed)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_schedule_created(self, event: ScheduleCreated) -> None:
        stored = self.schedule_repo.get(event.schedule_id)
        if stored is None:
            return

        self.timeline_repo.add(
            TimelineEntry(
                schedule_id=event.schedule_id,
                type=TimelineEntryType.CREATED,
                payload={
                    "status": stored.status,
                    "is_assigned": stored.is_assigned,
                    "warnings": event.warnings,
                },
            )
        )

    def on_schedule_updated(self, event: ScheduleUpdated) -> None:
        if self.schedule_repo.get(event.schedule_id) is None:
            return

        self.timeline_repo.add(
            TimelineEntry(
                schedule_id=event.schedule_id,
                type=TimelineEntryType.UPDATED,
                payload={"changed_fields": event.changed_fields},
            )
        )

    def on_status_changed(self, event: ScheduleStatusChanged) -> None:
        if self.schedule_repo.get(event.schedule_id) is None:
            return

        self.timeline_repo.add(
            TimelineEntry(
                schedule_id=event.schedule_id,
                type=TimelineEntryType.STATUS_CHANGED,
                payload={
                    "from": event.previous,
                    "to": event.current,
                    "actor_id": event.actor_id,
                },
            )
        )
