"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - EventId, TeamId, UserId wrap ints — never use bare int ids in domain logic
    - All member states encoded as MemberStatus — no raw string matching
    - Instants compared in the core are timezone-aware UTC (as_utc)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - Frozen dataclass records: repositories hand the core immutable snapshots,
      never live ORM rows (core stays IO-free)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

EventId = NewType("EventId", int)
TeamId = NewType("TeamId", int)
UserId = NewType("UserId", int)


# ─── Enums ───────────────────────────────────────────────────────

class MemberStatus(str, Enum):
    """Team member states — maps to DB `team_members.status` column."""
    INVITED = "invited"
    JOINED = "joined"
    DECLINED = "declined"
    REMOVED = "removed"


# ─── Records ─────────────────────────────────────────────────────

def as_utc(instant: datetime) -> datetime:
    """Normalize an instant to aware UTC. Naive values are read as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


@dataclass(frozen=True)
class EventWindow:
    """The [start, end) interval an organizer is committed to."""
    id: EventId
    start: datetime
    end: datetime
    title: str = ""


@dataclass(frozen=True)
class EventRecord:
    id: EventId
    organizer_id: UserId
    title: str
    start: datetime
    end: datetime
    team_event: bool = False
    min_team_size: int = 1
    max_team_size: int = 1

    @property
    def window(self) -> EventWindow:
        return EventWindow(
            id=self.id, start=self.start, end=self.end, title=self.title,
        )


@dataclass(frozen=True)
class TeamRecord:
    id: TeamId
    event_id: EventId
    name: str
    leader_id: UserId


@dataclass(frozen=True)
class MemberRecord:
    team_id: TeamId
    user_id: UserId
    status: MemberStatus
    joined_at: datetime | None = None


@dataclass(frozen=True)
class ScheduleCheck:
    """Outcome of a schedule check: ok iff no conflicting windows."""
    conflicts: list[EventWindow] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.conflicts


@dataclass(frozen=True)
class TeamSummary:
    """Read model for display: team, its members and size thresholds."""
    team: TeamRecord
    members: list[MemberRecord]
    min_team_size: int
    max_team_size: int

    @property
    def joined_count(self) -> int:
        return sum(1 for m in self.members if m.status == MemberStatus.JOINED)

    @property
    def meets_minimum(self) -> bool:
        return self.joined_count >= self.min_team_size


@dataclass(frozen=True)
class UserTeam:
    """One team seen from a member's side."""
    team: TeamRecord
    user_id: UserId
    status: MemberStatus
    event_title: str
    event_start: datetime
    joined_count: int

    @property
    def is_leader(self) -> bool:
        return self.team.leader_id == self.user_id
