"""Event Routes — schedule checks and conflict-guarded event writes.

Invariants:
    - Request shape validated by Pydantic before reaching ScheduleGuard
    - Conflicts surface as ScheduleConflictError -> 409 via the global handler
"""

from fastapi import APIRouter, Depends, status

from eventkeeper.api.dependencies import get_schedule_guard
from eventkeeper.schemas.event import (
    ConflictResponse, EventCreate, EventResponse, EventUpdate,
    ScheduleCheckRequest, ScheduleCheckResponse,
)
from eventkeeper.services.schedule_guard import ScheduleGuard

router = APIRouter(prefix="/api/v1/events", tags=["events"])


@router.post("/schedule-check", response_model=ScheduleCheckResponse)
async def check_schedule(
    body: ScheduleCheckRequest,
    guard: ScheduleGuard = Depends(get_schedule_guard),
):
    """Report the organizer's events that overlap the proposed window."""
    check = await guard.check_event_schedule(
        body.organizer_id, body.exclude_event_id, body.start, body.end,
    )
    return ScheduleCheckResponse(
        ok=check.ok,
        conflicts=[ConflictResponse.from_window(c) for c in check.conflicts],
    )


@router.post(
    "", response_model=EventResponse, status_code=status.HTTP_201_CREATED,
)
async def create_event(
    body: EventCreate, guard: ScheduleGuard = Depends(get_schedule_guard),
):
    event = await guard.create_event(body.model_dump())
    return EventResponse.from_record(event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: int,
    body: EventUpdate,
    guard: ScheduleGuard = Depends(get_schedule_guard),
):
    event = await guard.update_event(event_id, body.model_dump(exclude_none=True))
    return EventResponse.from_record(event)
