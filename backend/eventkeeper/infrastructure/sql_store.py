"""SQL Store — SQLAlchemy implementation of the core repository protocols.

Invariants:
    - One AsyncSession per transaction(); commit on clean exit, rollback otherwise
    - lock_organizer: pg_advisory_xact_lock keyed by organizer, released at commit/rollback
    - lock_event / lock_team: SELECT ... FOR UPDATE on the row, held until commit/rollback
    - joined_at is stamped only when a member (re-)enters joined
    - Repositories return frozen core records, never ORM instances

Design Decisions:
    - Dialect-gated locks: SQLite (tests, local dev) has no advisory locks and ignores
      FOR UPDATE; its single-writer database lock is the fallback
    - Advisory lock uses the two-key form (namespace, organizer_id) so other features
      can take advisory locks without colliding
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventkeeper.core.domain_types import (
    EventId, EventRecord, EventWindow, MemberRecord, MemberStatus,
    TeamId, TeamRecord, UserId, UserTeam, as_utc,
)
from eventkeeper.core.errors import ResourceNotFoundError
from eventkeeper.infrastructure.database import DatabaseSessionManager
from eventkeeper.models.event import Event
from eventkeeper.models.team import Team
from eventkeeper.models.team_member import TeamMember

ORGANIZER_LOCK_NAMESPACE = 4101

# Columns a caller may write through insert_event / update_event
EVENT_FIELDS = (
    "organizer_id", "title", "description", "location", "start", "end",
    "team_event", "min_team_size", "max_team_size",
)
_COLUMN_FOR_FIELD = {"start": "start_at", "end": "end_at"}


def _to_event_record(row: Event) -> EventRecord:
    return EventRecord(
        id=EventId(row.id),
        organizer_id=UserId(row.organizer_id),
        title=row.title,
        start=row.start_at,
        end=row.end_at,
        team_event=row.team_event,
        min_team_size=row.min_team_size,
        max_team_size=row.max_team_size,
    )


def _to_team_record(row: Team) -> TeamRecord:
    return TeamRecord(
        id=TeamId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        leader_id=UserId(row.leader_id),
    )


def _to_member_record(row: TeamMember) -> MemberRecord:
    return MemberRecord(
        team_id=TeamId(row.team_id),
        user_id=UserId(row.user_id),
        status=MemberStatus(row.status),
        joined_at=row.joined_at,
    )


def _is_postgres(db: AsyncSession) -> bool:
    return db.get_bind().dialect.name == "postgresql"


def _set_status(row: TeamMember, status: MemberStatus) -> None:
    """Revived invitations carry no join time; (re-)joining stamps a fresh one."""
    if status == MemberStatus.JOINED:
        row.joined_at = datetime.now(timezone.utc)
    elif status == MemberStatus.INVITED:
        row.joined_at = None
    row.status = status.value


class SqlEventRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def lock_event(self, event_id: EventId) -> EventRecord | None:
        result = await self.db.execute(
            select(Event)
            .where(Event.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        row = result.scalar_one_or_none()
        return _to_event_record(row) if row else None

    async def lock_organizer(self, organizer_id: UserId) -> None:
        if _is_postgres(self.db):
            await self.db.execute(
                select(func.pg_advisory_xact_lock(
                    ORGANIZER_LOCK_NAMESPACE, organizer_id,
                )),
            )

    async def find_organizer_events(
        self, organizer_id: UserId, exclude_event_id: EventId | None = None,
    ) -> list[EventWindow]:
        query = (
            select(Event.id, Event.title, Event.start_at, Event.end_at)
            .where(Event.organizer_id == organizer_id)
            .order_by(Event.start_at)
        )
        if exclude_event_id is not None:
            query = query.where(Event.id != exclude_event_id)
        result = await self.db.execute(query)
        return [
            EventWindow(id=EventId(r.id), start=r.start_at, end=r.end_at, title=r.title)
            for r in result
        ]

    async def get_event(self, event_id: EventId) -> EventRecord | None:
        row = await self.db.get(Event, event_id)
        return _to_event_record(row) if row else None

    async def insert_event(self, event_data: dict) -> EventRecord:
        row = Event()
        self._apply(row, event_data)
        self.db.add(row)
        await self.db.flush()
        return _to_event_record(row)

    async def update_event(
        self, event_id: EventId, event_data: dict,
    ) -> EventRecord:
        row = await self.db.get(Event, event_id)
        if row is None:
            raise ResourceNotFoundError("Event", event_id)
        self._apply(row, event_data)
        row.updated_at = datetime.now(timezone.utc)
        await self.db.flush()
        return _to_event_record(row)

    @staticmethod
    def _apply(row: Event, event_data: dict) -> None:
        for field in EVENT_FIELDS:
            if field not in event_data:
                continue
            value = event_data[field]
            if field in _COLUMN_FOR_FIELD:
                value = as_utc(value)
            setattr(row, _COLUMN_FOR_FIELD.get(field, field), value)


class SqlTeamRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_team(self, team_id: TeamId) -> TeamRecord | None:
        row = await self.db.get(Team, team_id)
        return _to_team_record(row) if row else None

    async def lock_team(self, team_id: TeamId) -> TeamRecord | None:
        result = await self.db.execute(
            select(Team)
            .where(Team.id == team_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        row = result.scalar_one_or_none()
        return _to_team_record(row) if row else None

    async def list_event_teams(self, event_id: EventId) -> list[TeamRecord]:
        result = await self.db.execute(
            select(Team).where(Team.event_id == event_id).order_by(Team.name),
        )
        return [_to_team_record(row) for row in result.scalars()]

    async def list_user_teams(self, user_id: UserId) -> list[UserTeam]:
        joined = (
            select(
                TeamMember.team_id,
                func.count(TeamMember.id).label("joined_count"),
            )
            .where(TeamMember.status == MemberStatus.JOINED.value)
            .group_by(TeamMember.team_id)
            .subquery()
        )
        result = await self.db.execute(
            select(
                Team, TeamMember.status, Event.title, Event.start_at,
                func.coalesce(joined.c.joined_count, 0),
            )
            .select_from(Team)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .join(Event, Event.id == Team.event_id)
            .outerjoin(joined, joined.c.team_id == Team.id)
            .where(TeamMember.user_id == user_id)
            .order_by(Event.start_at.desc(), Team.id),
        )
        return [
            UserTeam(
                team=_to_team_record(team),
                user_id=user_id,
                status=MemberStatus(status),
                event_title=title,
                event_start=start_at,
                joined_count=count,
            )
            for team, status, title, start_at, count in result
        ]

    async def find_team_by_name(
        self, event_id: EventId, name: str,
    ) -> TeamRecord | None:
        result = await self.db.execute(
            select(Team).where(Team.event_id == event_id).where(Team.name == name),
        )
        row = result.scalar_one_or_none()
        return _to_team_record(row) if row else None

    async def insert_team(
        self, name: str, event_id: EventId, leader_id: UserId,
    ) -> TeamRecord:
        row = Team(name=name, event_id=event_id, leader_id=leader_id)
        self.db.add(row)
        await self.db.flush()
        return _to_team_record(row)

    async def count_joined(self, team_id: TeamId) -> int:
        result = await self.db.execute(
            select(func.count(TeamMember.id))
            .where(TeamMember.team_id == team_id)
            .where(TeamMember.status == MemberStatus.JOINED.value),
        )
        return result.scalar_one()

    async def _member_row(
        self, team_id: TeamId, user_id: UserId,
    ) -> TeamMember | None:
        result = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.team_id == team_id)
            .where(TeamMember.user_id == user_id),
        )
        return result.scalar_one_or_none()

    async def get_member(
        self, team_id: TeamId, user_id: UserId,
    ) -> MemberRecord | None:
        row = await self._member_row(team_id, user_id)
        return _to_member_record(row) if row else None

    async def list_members(self, team_id: TeamId) -> list[MemberRecord]:
        result = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.id),
        )
        return [_to_member_record(row) for row in result.scalars()]

    async def upsert_member(
        self, team_id: TeamId, user_id: UserId, status: MemberStatus,
    ) -> MemberRecord:
        row = await self._member_row(team_id, user_id)
        if row is None:
            row = TeamMember(team_id=team_id, user_id=user_id)
            self.db.add(row)
        _set_status(row, status)
        await self.db.flush()
        return _to_member_record(row)

    async def set_member_status(
        self, team_id: TeamId, user_id: UserId, status: MemberStatus,
    ) -> MemberRecord:
        row = await self._member_row(team_id, user_id)
        if row is None:
            raise ResourceNotFoundError("Member", user_id)
        _set_status(row, status)
        await self.db.flush()
        return _to_member_record(row)

    async def set_team_leader(
        self, team_id: TeamId, user_id: UserId,
    ) -> TeamRecord:
        row = await self.db.get(Team, team_id)
        if row is None:
            raise ResourceNotFoundError("Team", team_id)
        row.leader_id = user_id
        await self.db.flush()
        return _to_team_record(row)

    async def rename_team(self, team_id: TeamId, name: str) -> TeamRecord:
        row = await self.db.get(Team, team_id)
        if row is None:
            raise ResourceNotFoundError("Team", team_id)
        row.name = name
        await self.db.flush()
        return _to_team_record(row)

    async def delete_team(self, team_id: TeamId) -> bool:
        row = await self.db.get(Team, team_id)
        if row is None:
            return False
        await self.db.delete(row)
        await self.db.flush()
        return True


class SqlTransaction:
    """Both repositories bound to the same session."""

    def __init__(self, db: AsyncSession):
        self.events = SqlEventRepository(db)
        self.teams = SqlTeamRepository(db)


class SqlStore:
    """Store backed by DatabaseSessionManager sessions."""

    def __init__(self, manager: DatabaseSessionManager):
        self.manager = manager

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[SqlTransaction, None]:
        async with self.manager.session() as db:
            async with db.begin():
                yield SqlTransaction(db)
