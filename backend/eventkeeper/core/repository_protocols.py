"""Boundary Protocols — contracts between the invariant core and the store.

Invariants:
    - Core NEVER imports from infrastructure — dependency arrows point inward only
    - Every repository call happens inside a StoreTransaction opened by the caller
      (the services, not the store, decide transaction boundaries)
    - lock_event / lock_organizer / lock_team hold until the transaction ends
    - Lock order is event -> organizer -> team; no caller takes them in reverse

Design Decisions:
    - Protocol over ABC: structural subtyping, SQL store and in-memory fake
      need no shared base class
    - Repositories return frozen records from core.domain_types, never ORM rows
"""

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from eventkeeper.core.domain_types import (
    EventId, EventRecord, EventWindow, MemberRecord, MemberStatus,
    TeamId, TeamRecord, UserId, UserTeam,
)


class EventRepository(Protocol):
    """Contract for event persistence — implemented by infrastructure."""
    async def lock_event(self, event_id: EventId) -> EventRecord | None: ...
    async def lock_organizer(self, organizer_id: UserId) -> None: ...
    async def find_organizer_events(
        self, organizer_id: UserId, exclude_event_id: EventId | None = None,
    ) -> list[EventWindow]: ...
    async def get_event(self, event_id: EventId) -> EventRecord | None: ...
    async def insert_event(self, event_data: dict) -> EventRecord: ...
    async def update_event(
        self, event_id: EventId, event_data: dict,
    ) -> EventRecord: ...


class TeamRepository(Protocol):
    """Contract for team and member persistence — implemented by infrastructure."""
    async def get_team(self, team_id: TeamId) -> TeamRecord | None: ...
    async def lock_team(self, team_id: TeamId) -> TeamRecord | None: ...
    async def list_event_teams(self, event_id: EventId) -> list[TeamRecord]: ...
    async def list_user_teams(self, user_id: UserId) -> list[UserTeam]: ...
    async def find_team_by_name(
        self, event_id: EventId, name: str,
    ) -> TeamRecord | None: ...
    async def insert_team(
        self, name: str, event_id: EventId, leader_id: UserId,
    ) -> TeamRecord: ...
    async def count_joined(self, team_id: TeamId) -> int: ...
    async def get_member(
        self, team_id: TeamId, user_id: UserId,
    ) -> MemberRecord | None: ...
    async def list_members(self, team_id: TeamId) -> list[MemberRecord]: ...
    async def upsert_member(
        self, team_id: TeamId, user_id: UserId, status: MemberStatus,
    ) -> MemberRecord: ...
    async def set_member_status(
        self, team_id: TeamId, user_id: UserId, status: MemberStatus,
    ) -> MemberRecord: ...
    async def set_team_leader(
        self, team_id: TeamId, user_id: UserId,
    ) -> TeamRecord: ...
    async def rename_team(self, team_id: TeamId, name: str) -> TeamRecord: ...
    async def delete_team(self, team_id: TeamId) -> bool: ...


class StoreTransaction(Protocol):
    """Repositories bound to one ambient transaction."""
    events: EventRepository
    teams: TeamRepository


class Store(Protocol):
    """Opens transactions. Commit on clean exit, rollback on any exception."""
    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]: ...
