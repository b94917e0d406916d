"""Team Routes — team lifecycle, membership and leadership transfer.

Invariants:
    - Every mutation delegates to TeamMembershipEngine (one transaction each)
    - Error kinds map to status codes only in the global error handler

Design Decisions:
    - Acting-user authorization (leader / self / admin) is enforced upstream
      by the gateway; these handlers trust the ids they receive
"""

from fastapi import APIRouter, Depends, Response, status

from eventkeeper.api.dependencies import get_team_engine
from eventkeeper.schemas.team import (
    LeadershipTransfer, MemberAdd, MemberResponse, TeamCreate, TeamRename,
    TeamResponse, TeamSummaryResponse, UserTeamResponse,
)
from eventkeeper.services.team_membership import TeamMembershipEngine

router = APIRouter(prefix="/api/v1/teams", tags=["teams"])


@router.post(
    "", response_model=TeamResponse, status_code=status.HTTP_201_CREATED,
)
async def create_team(
    body: TeamCreate, engine: TeamMembershipEngine = Depends(get_team_engine),
):
    team = await engine.create_team(body.name, body.event_id, body.leader_id)
    return TeamResponse.from_record(team)


@router.get("/event/{event_id}", response_model=list[TeamResponse])
async def list_event_teams(
    event_id: int, engine: TeamMembershipEngine = Depends(get_team_engine),
):
    teams = await engine.list_event_teams(event_id)
    return [TeamResponse.from_record(t) for t in teams]


@router.get("/user/{user_id}", response_model=list[UserTeamResponse])
async def list_user_teams(
    user_id: int, engine: TeamMembershipEngine = Depends(get_team_engine),
):
    """Teams the user belongs to or was invited to, with their status."""
    entries = await engine.list_user_teams(user_id)
    return [UserTeamResponse.from_user_team(e) for e in entries]


@router.get("/{team_id}", response_model=TeamSummaryResponse)
async def get_team(
    team_id: int, engine: TeamMembershipEngine = Depends(get_team_engine),
):
    """Team details with members and whether it reaches min_team_size."""
    summary = await engine.get_team_summary(team_id)
    return TeamSummaryResponse.from_summary(summary)


@router.patch("/{team_id}", response_model=TeamResponse)
async def rename_team(
    team_id: int,
    body: TeamRename,
    engine: TeamMembershipEngine = Depends(get_team_engine),
):
    team = await engine.rename_team(team_id, body.name)
    return TeamResponse.from_record(team)


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: int, engine: TeamMembershipEngine = Depends(get_team_engine),
):
    await engine.delete_team(team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{team_id}/members", response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    team_id: int,
    body: MemberAdd,
    engine: TeamMembershipEngine = Depends(get_team_engine),
):
    member = await engine.add_member(team_id, body.user_id, body.member_status)
    return MemberResponse.from_record(member)


@router.post("/{team_id}/members/{user_id}/accept", response_model=MemberResponse)
async def accept_invitation(
    team_id: int,
    user_id: int,
    engine: TeamMembershipEngine = Depends(get_team_engine),
):
    member = await engine.accept_invitation(team_id, user_id)
    return MemberResponse.from_record(member)


@router.post("/{team_id}/members/{user_id}/decline", response_model=MemberResponse)
async def decline_invitation(
    team_id: int,
    user_id: int,
    engine: TeamMembershipEngine = Depends(get_team_engine),
):
    member = await engine.decline_invitation(team_id, user_id)
    return MemberResponse.from_record(member)


@router.delete(
    "/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_member(
    team_id: int,
    user_id: int,
    engine: TeamMembershipEngine = Depends(get_team_engine),
):
    await engine.remove_member(team_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{team_id}/transfer-leadership", response_model=TeamResponse)
async def transfer_leadership(
    team_id: int,
    body: LeadershipTransfer,
    engine: TeamMembershipEngine = Depends(get_team_engine),
):
    team = await engine.transfer_leadership(team_id, body.new_leader_id)
    return TeamResponse.from_record(team)
