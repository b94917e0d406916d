"""Membership Enforcement — pure rules for the per-team member state machine.

Invariants:
    - Transitions: invited -> joined | declined, joined -> removed; nothing leaves
      declined or removed except a fresh add_member
    - joined count never exceeds max_team_size
    - The leader's record never leaves joined while they lead
    - Leadership only moves to a joined member
    - Team names are unique within an event

Design Decisions:
    - check_* functions are PURE: return an error instance or None, never raise
      and never touch the store; services raise what they get back
    - min_team_size is a reporting threshold only (TeamSummary.meets_minimum),
      no write is ever rejected for being below it
"""

from eventkeeper.core.domain_types import (
    MemberRecord, MemberStatus, TeamRecord, UserId,
)
from eventkeeper.core.errors import (
    CapacityExceededError, DuplicateNameError, ErrorContext, InvalidMemberError,
    InvalidStateError,
)


VALID_TRANSITIONS: dict[MemberStatus, set[MemberStatus]] = {
    MemberStatus.INVITED: {MemberStatus.JOINED, MemberStatus.DECLINED},
    MemberStatus.JOINED: {MemberStatus.REMOVED},
    MemberStatus.DECLINED: set(),
    MemberStatus.REMOVED: set(),
}

# Statuses add_member may create or restore a record in
ADDABLE_STATUSES = frozenset({MemberStatus.INVITED, MemberStatus.JOINED})


def can_transition(current: MemberStatus, target: MemberStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


def is_terminal_status(status: MemberStatus) -> bool:
    return not VALID_TRANSITIONS.get(status)


def check_transition(
    member: MemberRecord, target: MemberStatus,
) -> InvalidStateError | None:
    if can_transition(member.status, target):
        return None
    return InvalidStateError(
        InvalidStateError.INVALID_TRANSITION,
        f"Cannot move member '{member.user_id}' from "
        f"'{member.status.value}' to '{target.value}'",
        ErrorContext(team_id=member.team_id, user_id=member.user_id),
    )


def check_add_status(
    existing: MemberRecord | None, requested: MemberStatus,
) -> InvalidStateError | None:
    """add_member may create invited/joined records and revive terminal ones.

    A joined member cannot be pushed back to invited.
    """
    if requested not in ADDABLE_STATUSES:
        return InvalidStateError(
            InvalidStateError.INVALID_TRANSITION,
            f"Members can only be added as 'invited' or 'joined', got '{requested.value}'",
        )
    if (
        existing is not None
        and existing.status == MemberStatus.JOINED
        and requested == MemberStatus.INVITED
    ):
        return check_transition(existing, requested)
    return None


def check_capacity(
    joined_count: int, max_team_size: int, context: ErrorContext | None = None,
) -> CapacityExceededError | None:
    """One more joined member must keep the count within max_team_size."""
    if joined_count + 1 > max_team_size:
        return CapacityExceededError(max_team_size, context)
    return None


def check_leader_removal(
    team: TeamRecord, user_id: UserId,
) -> InvalidStateError | None:
    """The current leader is never removable, whatever their record says."""
    if user_id == team.leader_id:
        return InvalidStateError(
            InvalidStateError.LEADER_SELF_REMOVAL,
            "Team leader cannot be removed directly. Transfer leadership first.",
            ErrorContext(team_id=team.id, user_id=user_id),
        )
    return None


def check_leadership_target(
    team: TeamRecord, new_leader_id: UserId, member: MemberRecord | None,
) -> InvalidMemberError | None:
    if member is None or member.status != MemberStatus.JOINED:
        return InvalidMemberError(
            team.id, new_leader_id,
            ErrorContext(team_id=team.id, user_id=new_leader_id),
        )
    return None


def check_team_name(
    holder: TeamRecord | None, team: TeamRecord | None, name: str, event_id: int,
) -> DuplicateNameError | None:
    """holder is the team currently using `name` in the event, if any.

    Renaming a team to its own name is not a clash.
    """
    if holder is None or (team is not None and holder.id == team.id):
        return None
    return DuplicateNameError(
        name, event_id, ErrorContext(event_id=event_id, team_id=holder.id),
    )
