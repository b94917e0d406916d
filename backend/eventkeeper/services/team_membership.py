"""Team Membership Engine — atomic team, member and leadership mutations.

Invariants:
    - Exactly one leader per team, always a joined member
    - joined members never exceed the event's max_team_size
    - At most one member record per (team, user); re-adding revives the record
    - Every mutation runs in ONE store transaction that first locks the team row,
      so no operation observes a partially updated team
    - create_team / rename_team also lock the event row (before the team), so
      name uniqueness and team_event are checked against a stable event

Design Decisions:
    - Rules live in core.enforce_membership (pure); this module locks, reads,
      asks the rules, raises what they return, then writes
    - Caller-side authorization (leader / self / admin) stays with request handlers
"""

import logging

from eventkeeper.core.domain_types import (
    EventId, MemberRecord, MemberStatus, TeamId, TeamRecord, TeamSummary,
    UserId, UserTeam,
)
from eventkeeper.core.enforce_membership import (
    check_add_status,
    check_capacity,
    check_leader_removal,
    check_leadership_target,
    check_team_name,
    check_transition,
)
from eventkeeper.core.errors import (
    ErrorContext, NotSupportedError, ResourceNotFoundError,
)
from eventkeeper.core.repository_protocols import Store, StoreTransaction

logger = logging.getLogger(__name__)


class TeamMembershipEngine:
    """Team lifecycle operations enforcing leadership and capacity invariants."""

    def __init__(self, store: Store):
        self.store = store

    async def create_team(
        self, name: str, event_id: EventId, leader_id: UserId,
    ) -> TeamRecord:
        """Create a team with its leader as the first joined member.

        The event row stays locked until commit, so the team cannot appear
        while update_event is switching team participation off.
        """
        async with self.store.transaction() as tx:
            event = await tx.events.lock_event(event_id)
            if event is None:
                raise ResourceNotFoundError(
                    "Event", event_id, ErrorContext(event_id=event_id),
                )
            if not event.team_event:
                raise NotSupportedError(event_id, ErrorContext(event_id=event_id))
            error = check_team_name(
                await tx.teams.find_team_by_name(event_id, name), None, name, event_id,
            )
            if error:
                raise error
            team = await tx.teams.insert_team(name, event_id, leader_id)
            await tx.teams.upsert_member(team.id, leader_id, MemberStatus.JOINED)
        logger.info(
            f"Team {team.id} created for event {event_id}",
            extra={"team_id": team.id, "event_id": event_id, "user_id": leader_id},
        )
        return team

    async def add_member(
        self,
        team_id: TeamId,
        user_id: UserId,
        status: MemberStatus = MemberStatus.JOINED,
    ) -> MemberRecord:
        async with self.store.transaction() as tx:
            team = await _lock_team_or_404(tx, team_id)
            existing = await tx.teams.get_member(team_id, user_id)
            error = check_add_status(existing, status)
            if error:
                raise error
            if existing is not None and existing.status == status:
                return existing
            if status == MemberStatus.JOINED:
                await _ensure_capacity(tx, team, user_id)
            member = await tx.teams.upsert_member(team_id, user_id, status)
        logger.info(
            f"User {user_id} added to team {team_id} as {status.value}",
            extra={"team_id": team_id, "user_id": user_id},
        )
        return member

    async def accept_invitation(
        self, team_id: TeamId, user_id: UserId,
    ) -> MemberRecord:
        """invited -> joined, subject to capacity."""
        async with self.store.transaction() as tx:
            team = await _lock_team_or_404(tx, team_id)
            member = await _member_or_404(tx, team_id, user_id)
            error = check_transition(member, MemberStatus.JOINED)
            if error:
                raise error
            await _ensure_capacity(tx, team, user_id)
            return await tx.teams.set_member_status(
                team_id, user_id, MemberStatus.JOINED,
            )

    async def decline_invitation(
        self, team_id: TeamId, user_id: UserId,
    ) -> MemberRecord:
        """invited -> declined."""
        async with self.store.transaction() as tx:
            await _lock_team_or_404(tx, team_id)
            member = await _member_or_404(tx, team_id, user_id)
            error = check_transition(member, MemberStatus.DECLINED)
            if error:
                raise error
            return await tx.teams.set_member_status(
                team_id, user_id, MemberStatus.DECLINED,
            )

    async def remove_member(self, team_id: TeamId, user_id: UserId) -> None:
        async with self.store.transaction() as tx:
            team = await _lock_team_or_404(tx, team_id)
            error = check_leader_removal(team, user_id)
            if error:
                logger.warning(
                    f"Refused to remove leader {user_id} from team {team_id}",
                    extra={"team_id": team_id, "user_id": user_id},
                )
                raise error
            member = await _member_or_404(tx, team_id, user_id)
            error = check_transition(member, MemberStatus.REMOVED)
            if error:
                raise error
            await tx.teams.set_member_status(
                team_id, user_id, MemberStatus.REMOVED,
            )
        logger.info(
            f"User {user_id} removed from team {team_id}",
            extra={"team_id": team_id, "user_id": user_id},
        )

    async def transfer_leadership(
        self, team_id: TeamId, new_leader_id: UserId,
    ) -> TeamRecord:
        async with self.store.transaction() as tx:
            team = await _lock_team_or_404(tx, team_id)
            member = await tx.teams.get_member(team_id, new_leader_id)
            error = check_leadership_target(team, new_leader_id, member)
            if error:
                raise error
            if team.leader_id == new_leader_id:
                return team
            team = await tx.teams.set_team_leader(team_id, new_leader_id)
        logger.info(
            f"Leadership of team {team_id} transferred to {new_leader_id}",
            extra={"team_id": team_id, "user_id": new_leader_id},
        )
        return team

    async def rename_team(self, team_id: TeamId, name: str) -> TeamRecord:
        """Rename a team; names stay unique within the event."""
        async with self.store.transaction() as tx:
            team = await tx.teams.get_team(team_id)
            if team is None:
                raise ResourceNotFoundError(
                    "Team", team_id, ErrorContext(team_id=team_id),
                )
            # Event lock first: serializes with create_team on the same event
            await tx.events.lock_event(team.event_id)
            team = await _lock_team_or_404(tx, team_id)
            if team.name == name:
                return team
            holder = await tx.teams.find_team_by_name(team.event_id, name)
            error = check_team_name(holder, team, name, team.event_id)
            if error:
                raise error
            team = await tx.teams.rename_team(team_id, name)
        logger.info(
            f"Team {team_id} renamed to {name!r}",
            extra={"team_id": team_id, "event_id": team.event_id},
        )
        return team

    async def delete_team(self, team_id: TeamId) -> None:
        async with self.store.transaction() as tx:
            if not await tx.teams.delete_team(team_id):
                raise ResourceNotFoundError(
                    "Team", team_id, ErrorContext(team_id=team_id),
                )
        logger.info(f"Team {team_id} deleted", extra={"team_id": team_id})

    async def get_team_summary(self, team_id: TeamId) -> TeamSummary:
        async with self.store.transaction() as tx:
            team = await tx.teams.get_team(team_id)
            if team is None:
                raise ResourceNotFoundError(
                    "Team", team_id, ErrorContext(team_id=team_id),
                )
            event = await tx.events.get_event(team.event_id)
            members = await tx.teams.list_members(team_id)
        return TeamSummary(
            team=team,
            members=members,
            min_team_size=event.min_team_size,
            max_team_size=event.max_team_size,
        )

    async def list_event_teams(self, event_id: EventId) -> list[TeamRecord]:
        async with self.store.transaction() as tx:
            if await tx.events.get_event(event_id) is None:
                raise ResourceNotFoundError(
                    "Event", event_id, ErrorContext(event_id=event_id),
                )
            return await tx.teams.list_event_teams(event_id)

    async def list_user_teams(self, user_id: UserId) -> list[UserTeam]:
        """Every team the user has a record in, newest event first."""
        async with self.store.transaction() as tx:
            return await tx.teams.list_user_teams(user_id)


async def _lock_team_or_404(tx: StoreTransaction, team_id: TeamId) -> TeamRecord:
    team = await tx.teams.lock_team(team_id)
    if team is None:
        raise ResourceNotFoundError("Team", team_id, ErrorContext(team_id=team_id))
    return team


async def _member_or_404(
    tx: StoreTransaction, team_id: TeamId, user_id: UserId,
) -> MemberRecord:
    member = await tx.teams.get_member(team_id, user_id)
    if member is None:
        raise ResourceNotFoundError(
            "Member", user_id, ErrorContext(team_id=team_id, user_id=user_id),
        )
    return member


async def _ensure_capacity(
    tx: StoreTransaction, team: TeamRecord, user_id: UserId,
) -> None:
    """Count joined members under the team lock and reject past max_team_size."""
    event = await tx.events.get_event(team.event_id)
    joined = await tx.teams.count_joined(team.id)
    error = check_capacity(
        joined, event.max_team_size,
        ErrorContext(team_id=team.id, event_id=team.event_id, user_id=user_id),
    )
    if error:
        logger.warning(
            f"Team {team.id} full ({joined}/{event.max_team_size})",
            extra={"team_id": team.id, "user_id": user_id},
        )
        raise error
