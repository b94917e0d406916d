"""Team Membership Engine — service tests against the in-memory store.

Tests cover:
    - create_team seeds the leader as a joined member; non-team events refused
    - Capacity counts joined members only and holds under concurrent adds
    - Re-adding a removed or declined user revives the same record
    - The leader can never be removed; leadership only moves to joined members
    - Invitations: accept (capacity-checked) and decline
    - delete_team, get_team_summary, list_event_teams, list_user_teams
    - Team names unique per event on create and rename
    - Failed mutations leave no partial writes behind
"""

import asyncio
from datetime import datetime, timezone

import pytest

from eventkeeper.core.domain_types import MemberStatus
from eventkeeper.core.errors import (
    CapacityExceededError, DuplicateNameError, ErrorKind, InvalidMemberError,
    InvalidStateError, NotSupportedError, ResourceNotFoundError, StoreFailureError,
)
from eventkeeper.services.schedule_guard import ScheduleGuard
from eventkeeper.services.team_membership import TeamMembershipEngine
from tests.fakes import InMemoryStore

LEADER = 100

INVITED = MemberStatus.INVITED
JOINED = MemberStatus.JOINED
DECLINED = MemberStatus.DECLINED
REMOVED = MemberStatus.REMOVED


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(store):
    return TeamMembershipEngine(store)


def _team_event(store: InMemoryStore, min_size: int = 1, max_size: int = 3):
    return store.seed_event(
        1,
        datetime(2025, 6, 1, 10, tzinfo=timezone.utc),
        datetime(2025, 6, 1, 18, tzinfo=timezone.utc),
        team_event=True, min_team_size=min_size, max_team_size=max_size,
    )


@pytest.fixture
def event(store):
    return _team_event(store)


# ─── create_team ────────────────────────────────────────────────

async def test_create_team_makes_leader_a_joined_member(store, engine, event):
    team = await engine.create_team("Rockets", event.id, LEADER)

    summary = await engine.get_team_summary(team.id)
    assert summary.team.leader_id == LEADER
    assert [(m.user_id, m.status) for m in summary.members] == [(LEADER, JOINED)]
    assert summary.joined_count == 1


async def test_create_team_on_solo_event_not_supported(store, engine):
    solo = store.seed_event(
        1,
        datetime(2025, 6, 1, 10, tzinfo=timezone.utc),
        datetime(2025, 6, 1, 12, tzinfo=timezone.utc),
    )
    with pytest.raises(NotSupportedError) as exc_info:
        await engine.create_team("Rockets", solo.id, LEADER)
    assert exc_info.value.kind == ErrorKind.NOT_SUPPORTED
    assert store.teams == {}


async def test_create_team_for_missing_event_not_found(engine):
    with pytest.raises(ResourceNotFoundError):
        await engine.create_team("Rockets", 999, LEADER)


async def test_create_team_rolls_back_team_when_leader_write_fails(store, engine, event):
    store.fail_on("upsert_member")
    with pytest.raises(StoreFailureError):
        await engine.create_team("Rockets", event.id, LEADER)
    assert store.teams == {}
    assert store.members == {}
    assert store.rollbacks == 1


# ─── capacity ───────────────────────────────────────────────────

async def test_fourth_joined_member_exceeds_capacity(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED, 3: JOINED})

    with pytest.raises(CapacityExceededError) as exc_info:
        await engine.add_member(team.id, 4, JOINED)

    assert exc_info.value.limit == 3
    assert store.joined_count(team.id) == 3
    assert (team.id, 4) not in store.members


async def test_invited_members_do_not_count_toward_capacity(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED})

    await engine.add_member(team.id, 3, INVITED)
    await engine.add_member(team.id, 4, INVITED)
    await engine.add_member(team.id, 5, JOINED)

    assert store.joined_count(team.id) == 3


async def test_accepting_invitation_into_full_team_fails(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED, 3: JOINED, 4: INVITED})

    with pytest.raises(CapacityExceededError):
        await engine.accept_invitation(team.id, 4)
    assert store.members[(team.id, 4)].status == INVITED


async def test_accepting_invitation_joins_member(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: INVITED})
    member = await engine.accept_invitation(team.id, 2)
    assert member.status == JOINED


async def test_concurrent_joins_never_exceed_capacity(store, engine, event):
    team = store.seed_team(event.id, LEADER)

    results = await asyncio.gather(
        *(engine.add_member(team.id, uid, JOINED) for uid in range(1, 11)),
        return_exceptions=True,
    )

    rejected = [r for r in results if isinstance(r, CapacityExceededError)]
    assert store.joined_count(team.id) == 3
    assert len(rejected) == 8


# ─── add_member semantics ───────────────────────────────────────

async def test_readding_removed_member_revives_single_record(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: REMOVED})

    member = await engine.add_member(team.id, 2, JOINED)

    assert member.status == JOINED
    team_records = [k for k in store.members if k[0] == team.id]
    assert len(team_records) == 2


async def test_readding_declined_member_as_invited(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: DECLINED})
    member = await engine.add_member(team.id, 2, INVITED)
    assert member.status == INVITED


async def test_adding_joined_member_again_is_idempotent(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED, 3: JOINED})

    # Team is full; re-adding an existing joined member must not trip capacity
    member = await engine.add_member(team.id, 2, JOINED)

    assert member.status == JOINED
    assert store.joined_count(team.id) == 3


async def test_joined_member_cannot_be_demoted_to_invited(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED})
    with pytest.raises(InvalidStateError):
        await engine.add_member(team.id, 2, INVITED)
    assert store.members[(team.id, 2)].status == JOINED


async def test_add_member_with_terminal_status_rejected(store, engine, event):
    team = store.seed_team(event.id, LEADER)
    with pytest.raises(InvalidStateError):
        await engine.add_member(team.id, 2, DECLINED)


async def test_add_member_to_missing_team_not_found(engine):
    with pytest.raises(ResourceNotFoundError):
        await engine.add_member(404, 2, JOINED)


# ─── removal & leadership ───────────────────────────────────────

async def test_leader_removal_fails_until_leadership_transferred(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED})

    with pytest.raises(InvalidStateError) as exc_info:
        await engine.remove_member(team.id, LEADER)
    assert exc_info.value.reason == InvalidStateError.LEADER_SELF_REMOVAL

    await engine.transfer_leadership(team.id, 2)
    await engine.remove_member(team.id, LEADER)

    assert store.teams[team.id].leader_id == 2
    assert store.members[(team.id, LEADER)].status == REMOVED


async def test_leader_removal_fails_every_time(store, engine, event):
    team = store.seed_team(event.id, LEADER)
    for _ in range(3):
        with pytest.raises(InvalidStateError):
            await engine.remove_member(team.id, LEADER)
    assert store.members[(team.id, LEADER)].status == JOINED


@pytest.mark.parametrize("status", [None, INVITED, DECLINED, REMOVED])
async def test_leadership_only_moves_to_joined_member(store, engine, event, status):
    roster = {2: status} if status else {}
    team = store.seed_team(event.id, LEADER, roster)

    with pytest.raises(InvalidMemberError):
        await engine.transfer_leadership(team.id, 2)
    assert store.teams[team.id].leader_id == LEADER


async def test_transfer_to_current_leader_is_noop(store, engine, event):
    team = store.seed_team(event.id, LEADER)
    result = await engine.transfer_leadership(team.id, LEADER)
    assert result == team


async def test_removing_stranger_not_found(store, engine, event):
    team = store.seed_team(event.id, LEADER)
    with pytest.raises(ResourceNotFoundError):
        await engine.remove_member(team.id, 2)


async def test_removing_invited_member_is_invalid_transition(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: INVITED})
    with pytest.raises(InvalidStateError) as exc_info:
        await engine.remove_member(team.id, 2)
    assert exc_info.value.reason == InvalidStateError.INVALID_TRANSITION


async def test_removed_member_frees_capacity(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED, 3: JOINED})
    await engine.remove_member(team.id, 3)
    await engine.add_member(team.id, 4, JOINED)
    assert store.joined_count(team.id) == 3


async def test_transfer_racing_removal_keeps_leader_joined(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED})

    results = await asyncio.gather(
        engine.transfer_leadership(team.id, 2),
        engine.remove_member(team.id, 2),
        return_exceptions=True,
    )

    leader = store.teams[team.id].leader_id
    assert store.members[(team.id, leader)].status == JOINED
    assert len([r for r in results if isinstance(r, Exception)]) == 1


# ─── invitations ────────────────────────────────────────────────

async def test_decline_invitation(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: INVITED})
    member = await engine.decline_invitation(team.id, 2)
    assert member.status == DECLINED


async def test_declining_twice_is_invalid(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: DECLINED})
    with pytest.raises(InvalidStateError):
        await engine.decline_invitation(team.id, 2)


async def test_accept_without_invitation_not_found(store, engine, event):
    team = store.seed_team(event.id, LEADER)
    with pytest.raises(ResourceNotFoundError):
        await engine.accept_invitation(team.id, 2)


# ─── delete / summary / listing ─────────────────────────────────

async def test_delete_team_removes_members(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: JOINED, 3: INVITED})

    await engine.delete_team(team.id)

    assert team.id not in store.teams
    assert not any(tid == team.id for tid, _ in store.members)


async def test_delete_missing_team_not_found(engine):
    with pytest.raises(ResourceNotFoundError):
        await engine.delete_team(404)


async def test_summary_reports_minimum_size(store, engine):
    event = _team_event(store, min_size=2, max_size=4)
    team = store.seed_team(event.id, LEADER, {2: INVITED})

    summary = await engine.get_team_summary(team.id)
    assert summary.meets_minimum is False

    await engine.accept_invitation(team.id, 2)
    summary = await engine.get_team_summary(team.id)
    assert summary.meets_minimum is True
    assert (summary.min_team_size, summary.max_team_size) == (2, 4)


async def test_list_event_teams_sorted_by_name(store, engine, event):
    store.seed_team(event.id, 1, name="Zebras")
    store.seed_team(event.id, 2, name="Ants")
    teams = await engine.list_event_teams(event.id)
    assert [t.name for t in teams] == ["Ants", "Zebras"]


async def test_list_teams_for_missing_event_not_found(engine):
    with pytest.raises(ResourceNotFoundError):
        await engine.list_event_teams(404)


# ─── names ──────────────────────────────────────────────────────

async def test_create_team_with_taken_name_is_duplicate(store, engine, event):
    store.seed_team(event.id, LEADER, name="Rockets")

    with pytest.raises(DuplicateNameError) as exc_info:
        await engine.create_team("Rockets", event.id, 200)

    assert exc_info.value.kind == ErrorKind.DUPLICATE_NAME
    assert exc_info.value.http_status == 409
    assert len(store.teams) == 1


async def test_same_name_allowed_in_another_event(store, engine, event):
    other = _team_event(store)
    store.seed_team(event.id, LEADER, name="Rockets")
    team = await engine.create_team("Rockets", other.id, 200)
    assert team.event_id == other.id


async def test_rename_team(store, engine, event):
    team = store.seed_team(event.id, LEADER, name="Rockets")
    renamed = await engine.rename_team(team.id, "Comets")
    assert renamed.name == "Comets"
    assert store.teams[team.id].name == "Comets"


async def test_rename_to_own_name_is_noop(store, engine, event):
    team = store.seed_team(event.id, LEADER, name="Rockets")
    assert await engine.rename_team(team.id, "Rockets") == team


async def test_rename_to_taken_name_is_duplicate(store, engine, event):
    store.seed_team(event.id, LEADER, name="Rockets")
    team = store.seed_team(event.id, 200, name="Comets")

    with pytest.raises(DuplicateNameError):
        await engine.rename_team(team.id, "Rockets")
    assert store.teams[team.id].name == "Comets"


async def test_rename_missing_team_not_found(engine):
    with pytest.raises(ResourceNotFoundError):
        await engine.rename_team(404, "Comets")


async def test_concurrent_creates_with_same_name_admit_one(store, engine, event):
    results = await asyncio.gather(
        *(engine.create_team("Rockets", event.id, uid) for uid in (1, 2, 3)),
        return_exceptions=True,
    )
    assert len([r for r in results if isinstance(r, DuplicateNameError)]) == 2
    assert len(store.teams) == 1


# ─── a user's teams ─────────────────────────────────────────────

async def test_list_user_teams_reports_status_and_leadership(store, engine):
    early = _team_event(store)
    late = store.seed_event(
        1,
        datetime(2025, 7, 1, 10, tzinfo=timezone.utc),
        datetime(2025, 7, 1, 18, tzinfo=timezone.utc),
        team_event=True, max_team_size=3, title="Summer",
    )
    led = store.seed_team(early.id, 7, {2: JOINED}, name="Led")
    invited = store.seed_team(late.id, LEADER, {7: INVITED}, name="Invited")

    entries = await engine.list_user_teams(7)

    assert [e.team.id for e in entries] == [invited.id, led.id]
    assert [e.status for e in entries] == [INVITED, JOINED]
    assert [e.is_leader for e in entries] == [False, True]
    assert entries[0].event_title == "Summer"
    assert entries[1].joined_count == 2


async def test_list_user_teams_empty_for_stranger(engine):
    assert await engine.list_user_teams(999) == []


# ─── join timestamps ────────────────────────────────────────────

async def test_revived_invitation_has_no_join_time(store, engine, event):
    team = store.seed_team(event.id, LEADER, {2: REMOVED})

    member = await engine.add_member(team.id, 2, INVITED)
    assert member.joined_at is None

    member = await engine.accept_invitation(team.id, 2)
    assert member.joined_at is not None


# ─── event settings vs team creation ────────────────────────────

async def test_team_creation_racing_team_disable_never_orphans(store, engine, event):
    guard = ScheduleGuard(store)

    await asyncio.gather(
        engine.create_team("Rockets", event.id, LEADER),
        guard.update_event(event.id, {"team_event": False}),
        return_exceptions=True,
    )

    teams_exist = any(t.event_id == event.id for t in store.teams.values())
    assert not (teams_exist and not store.events[event.id].team_event)
