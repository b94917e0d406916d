"""Schedule Guard — keeps an organizer from running two overlapping events.

Invariants:
    - The conflict check and the event write share ONE store transaction
    - lock_organizer is taken before the check, so concurrent writers for the
      same organizer serialize instead of both passing the check
    - find_conflicts / check_event_schedule are read-only
    - update_event locks the event row, then the organizer, then each of the
      event's teams (ascending id) before changing team settings

Design Decisions:
    - Overlap rule lives in core.detect_conflicts; this module only orchestrates IO
    - Store failures propagate unchanged (no retry here; retries belong to callers)
"""

import logging
from datetime import datetime

from eventkeeper.core.detect_conflicts import find_overlapping
from eventkeeper.core.domain_types import (
    EventId, EventRecord, EventWindow, ScheduleCheck, TeamId, UserId,
)
from eventkeeper.core.enforce_event_settings import (
    check_event_settings,
    check_teams_fit,
    merge_event_update,
    touches_team_settings,
)
from eventkeeper.core.errors import (
    ErrorContext, ResourceNotFoundError, ScheduleConflictError,
)
from eventkeeper.core.repository_protocols import (
    EventRepository, Store, StoreTransaction,
)

logger = logging.getLogger(__name__)


class ScheduleGuard:
    """Scheduling conflict detector plus the guarded event writes."""

    def __init__(self, store: Store):
        self.store = store

    async def find_conflicts(
        self,
        organizer_id: UserId,
        exclude_event_id: EventId | None,
        proposed_start: datetime,
        proposed_end: datetime,
    ) -> list[EventWindow]:
        async with self.store.transaction() as tx:
            return await _conflicts_in(
                tx.events, organizer_id, exclude_event_id,
                proposed_start, proposed_end,
            )

    async def check_event_schedule(
        self,
        organizer_id: UserId,
        exclude_event_id: EventId | None,
        start: datetime,
        end: datetime,
    ) -> ScheduleCheck:
        conflicts = await self.find_conflicts(
            organizer_id, exclude_event_id, start, end,
        )
        return ScheduleCheck(conflicts=conflicts)

    async def create_event(self, event_data: dict) -> EventRecord:
        """Insert an event after re-checking the organizer's calendar under lock."""
        organizer_id = event_data["organizer_id"]
        async with self.store.transaction() as tx:
            await tx.events.lock_organizer(organizer_id)
            conflicts = await _conflicts_in(
                tx.events, organizer_id, None,
                event_data["start"], event_data["end"],
            )
            if conflicts:
                _reject(conflicts, organizer_id, None)
            event = await tx.events.insert_event(event_data)
        logger.info(
            f"Event {event.id} scheduled",
            extra={"event_id": event.id, "organizer_id": organizer_id},
        )
        return event

    async def update_event(
        self, event_id: EventId, event_data: dict,
    ) -> EventRecord:
        """Apply a partial update to an event.

        The merged record must be a valid event. Moves in time or owner are
        conflict-checked against the (new) organizer's calendar. Changes to
        team settings are checked against every existing team of the event,
        each locked, so no team ends up over capacity or orphaned.
        """
        async with self.store.transaction() as tx:
            current = await tx.events.lock_event(event_id)
            if current is None:
                raise ResourceNotFoundError(
                    "Event", event_id, ErrorContext(event_id=event_id),
                )
            merged = merge_event_update(current, event_data)
            error = check_event_settings(merged)
            if error:
                raise error

            organizer_id = merged.organizer_id
            await tx.events.lock_organizer(organizer_id)
            conflicts = await _conflicts_in(
                tx.events, organizer_id, event_id, merged.start, merged.end,
            )
            if conflicts:
                _reject(conflicts, organizer_id, event_id)

            if touches_team_settings(current, event_data):
                joined = await _lock_teams_and_count(tx, event_id)
                error = check_teams_fit(merged, joined)
                if error:
                    logger.warning(
                        f"Refused team settings change on event {event_id}: "
                        f"{error.message}",
                        extra={"event_id": event_id, "error_code": error.code},
                    )
                    raise error
            event = await tx.events.update_event(event_id, event_data)
        logger.info(
            f"Event {event_id} updated",
            extra={"event_id": event_id, "organizer_id": organizer_id},
        )
        return event


async def _conflicts_in(
    events: EventRepository,
    organizer_id: UserId,
    exclude_event_id: EventId | None,
    start: datetime,
    end: datetime,
) -> list[EventWindow]:
    windows = await events.find_organizer_events(organizer_id, exclude_event_id)
    return find_overlapping(windows, start, end, exclude_event_id)


async def _lock_teams_and_count(
    tx: StoreTransaction, event_id: EventId,
) -> dict[TeamId, int]:
    """Lock every team of the event (ascending id) and read its joined count."""
    joined: dict[TeamId, int] = {}
    teams = await tx.teams.list_event_teams(event_id)
    for team in sorted(teams, key=lambda t: t.id):
        if await tx.teams.lock_team(team.id) is not None:
            joined[team.id] = await tx.teams.count_joined(team.id)
    return joined


def _reject(
    conflicts: list[EventWindow], organizer_id: UserId, event_id: EventId | None,
) -> None:
    logger.warning(
        f"Schedule conflict for organizer {organizer_id}: "
        f"{[c.id for c in conflicts]}",
        extra={"organizer_id": organizer_id, "event_id": event_id},
    )
    raise ScheduleConflictError(
        conflicts, ErrorContext(event_id=event_id, organizer_id=organizer_id),
    )
