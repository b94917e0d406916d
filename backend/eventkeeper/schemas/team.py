"""Team Schemas — request/response models for team and membership routes.

Invariants:
    - MemberAdd.status is invited or joined; anything else rejected at the boundary
    - Team names are stripped and non-blank on create and rename
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from eventkeeper.core.domain_types import (
    MemberRecord, MemberStatus, TeamRecord, TeamSummary, UserTeam,
)


class TeamRename(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class TeamCreate(TeamRename):
    event_id: int = Field(ge=1)
    leader_id: int = Field(ge=1)


class MemberAdd(BaseModel):
    user_id: int = Field(ge=1)
    status: Literal["invited", "joined"] = "joined"

    @property
    def member_status(self) -> MemberStatus:
        return MemberStatus(self.status)


class LeadershipTransfer(BaseModel):
    new_leader_id: int = Field(ge=1)


class TeamResponse(BaseModel):
    id: int
    event_id: int
    name: str
    leader_id: int

    @classmethod
    def from_record(cls, team: TeamRecord) -> "TeamResponse":
        return cls(
            id=team.id, event_id=team.event_id,
            name=team.name, leader_id=team.leader_id,
        )


class MemberResponse(BaseModel):
    team_id: int
    user_id: int
    status: MemberStatus
    joined_at: datetime | None = None

    @classmethod
    def from_record(cls, member: MemberRecord) -> "MemberResponse":
        return cls(
            team_id=member.team_id, user_id=member.user_id,
            status=member.status, joined_at=member.joined_at,
        )


class TeamSummaryResponse(BaseModel):
    team: TeamResponse
    members: list[MemberResponse]
    joined_count: int
    min_team_size: int
    max_team_size: int
    meets_minimum: bool

    @classmethod
    def from_summary(cls, summary: TeamSummary) -> "TeamSummaryResponse":
        return cls(
            team=TeamResponse.from_record(summary.team),
            members=[MemberResponse.from_record(m) for m in summary.members],
            joined_count=summary.joined_count,
            min_team_size=summary.min_team_size,
            max_team_size=summary.max_team_size,
            meets_minimum=summary.meets_minimum,
        )


class UserTeamResponse(BaseModel):
    team: TeamResponse
    status: MemberStatus
    is_leader: bool
    event_title: str
    event_start: datetime
    joined_count: int

    @classmethod
    def from_user_team(cls, entry: UserTeam) -> "UserTeamResponse":
        return cls(
            team=TeamResponse.from_record(entry.team),
            status=entry.status,
            is_leader=entry.is_leader,
            event_title=entry.event_title,
            event_start=entry.event_start,
            joined_count=entry.joined_count,
        )
