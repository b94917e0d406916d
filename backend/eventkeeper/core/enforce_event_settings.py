"""Event Settings Enforcement — pure rules for changing an existing event.

Invariants:
    - A stored event always has end > start and 1 <= min_team_size <= max_team_size,
      judged on the MERGED record (stored values + partial changes), never on the
      changes alone
    - Lowering max_team_size below any team's joined count is rejected
    - team_event cannot be switched off while the event still has teams

Design Decisions:
    - Same shape as enforce_membership: check_* return an error or None, callers raise
    - Violations are 400-level domain errors, so a bad partial update never
      reaches the database CHECK constraints
"""

from dataclasses import replace

from eventkeeper.core.domain_types import EventRecord, TeamId, as_utc
from eventkeeper.core.errors import (
    CapacityExceededError, ErrorContext, EventKeeperError, InvalidStateError,
)

# Fields that can invalidate existing teams when they change
TEAM_SETTING_FIELDS = frozenset({"team_event", "min_team_size", "max_team_size"})

_MERGEABLE_FIELDS = (
    "organizer_id", "title", "start", "end",
    "team_event", "min_team_size", "max_team_size",
)


def merge_event_update(current: EventRecord, changes: dict) -> EventRecord:
    """The event as it would look after applying a partial update."""
    return replace(current, **{
        k: changes[k] for k in _MERGEABLE_FIELDS if k in changes
    })


def touches_team_settings(current: EventRecord, changes: dict) -> bool:
    return any(
        k in changes and changes[k] != getattr(current, k)
        for k in TEAM_SETTING_FIELDS
    )


def check_event_settings(event: EventRecord) -> InvalidStateError | None:
    context = ErrorContext(event_id=event.id, organizer_id=event.organizer_id)
    if as_utc(event.end) <= as_utc(event.start):
        return InvalidStateError(
            InvalidStateError.INVALID_WINDOW,
            "Event end must be after its start", context,
        )
    if event.min_team_size < 1 or event.min_team_size > event.max_team_size:
        return InvalidStateError(
            InvalidStateError.INVALID_TEAM_SIZE,
            f"Team size bounds {event.min_team_size}..{event.max_team_size} "
            f"are invalid (need 1 <= min <= max)",
            context,
        )
    return None


def check_teams_fit(
    event: EventRecord, joined_by_team: dict[TeamId, int],
) -> EventKeeperError | None:
    """Every existing team must still be allowed under the new settings."""
    if not joined_by_team:
        return None
    if not event.team_event:
        return InvalidStateError(
            InvalidStateError.TEAMS_EXIST,
            f"Event '{event.id}' still has {len(joined_by_team)} team(s); "
            f"delete them before disabling team participation",
            ErrorContext(event_id=event.id),
        )
    for team_id in sorted(joined_by_team):
        if joined_by_team[team_id] > event.max_team_size:
            return CapacityExceededError(
                event.max_team_size,
                ErrorContext(event_id=event.id, team_id=team_id),
            )
    return None
