import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.enums import TeamType
from teamhub.models.team import Team
from teamhub.models.team_member import TeamMember
from teamhub.routes.teams import (
    create_team,
    get_team_details,
    join_team,
    list_my_teams,
    list_teams_by_type,
)
from teamhub.schemas import TeamCreate

pytestmark = pytest.mark.anyio


def _team_payload(**overrides):
    data = dict(
        name="Night Owls",
        description="We ship at 3am",
        type=TeamType.wolf_pack,
        max_members=3,
        tags=["backend", "ml"],
    )
    data.update(overrides)
    return TeamCreate(**data)


async def test_create_team_adds_leader_membership(db, make_user):
    user = await make_user()

    team = await create_team(_team_payload(), db=db, user=user)

    assert team.status == "forming"
    assert team.current_members == 1
    members = (await db.execute(select(TeamMember).where(TeamMember.team_id == team.id))).scalars().all()
    assert [(m.user_id, m.role) for m in members] == [(user.id, "leader")]


async def test_join_increments_member_count(db, make_user):
    leader = await make_user()
    joiner = await make_user()
    team = await create_team(_team_payload(), db=db, user=leader)

    joined = await join_team(team.id, db=db, current_user=joiner)

    assert joined.current_members == 2
    membership = await db.scalar(
        select(TeamMember).where(TeamMember.team_id == team.id, TeamMember.user_id == joiner.id)
    )
    assert membership.role == "member"


async def test_join_full_team_conflicts_without_changing_count(db, make_user):
    leader = await make_user()
    second = await make_user()
    third = await make_user()
    team = await create_team(_team_payload(max_members=2), db=db, user=leader)
    await join_team(team.id, db=db, current_user=second)

    with pytest.raises(ConflictOfState) as excinfo:
        await join_team(team.id, db=db, current_user=third)
    assert excinfo.value.detail == "Team is full"

    refreshed = await db.get(Team, team.id)
    await db.refresh(refreshed)
    assert refreshed.current_members == 2
    count = len((await db.execute(select(TeamMember).where(TeamMember.team_id == team.id))).scalars().all())
    assert count == 2


async def test_join_twice_conflicts(db, make_user):
    leader = await make_user()
    joiner = await make_user()
    team = await create_team(_team_payload(), db=db, user=leader)
    await join_team(team.id, db=db, current_user=joiner)

    with pytest.raises(ConflictOfState):
        await join_team(team.id, db=db, current_user=joiner)
    with pytest.raises(ConflictOfState):
        await join_team(team.id, db=db, current_user=leader)


async def test_join_missing_team(db, make_user):
    user = await make_user()
    with pytest.raises(NotFound):
        await join_team(404, db=db, current_user=user)


async def test_membership_pair_is_unique(db, make_user):
    leader = await make_user()
    team = await create_team(_team_payload(), db=db, user=leader)

    db.add(TeamMember(team_id=team.id, user_id=leader.id, role="member"))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


async def test_list_by_type_only_returns_forming_teams(db, make_user):
    leader = await make_user(with_profile=True)
    wolf = await create_team(_team_payload(), db=db, user=leader)
    await create_team(_team_payload(name="Founders", type=TeamType.startup), db=db, user=leader)
    closed = await create_team(_team_payload(name="Done"), db=db, user=leader)
    closed.status = "completed"
    await db.commit()

    listed = await list_teams_by_type(type=TeamType.wolf_pack, db=db)

    assert [t.id for t in listed] == [wolf.id]
    assert listed[0].members_count == 1
    assert listed[0].creator.user_id == leader.id


async def test_my_teams_and_details(db, make_user):
    leader = await make_user(with_profile=True)
    member = await make_user()
    team = await create_team(_team_payload(), db=db, user=leader)
    await join_team(team.id, db=db, current_user=member)

    mine = await list_my_teams(db=db, user=member)
    assert [(t.id, t.role) for t in mine] == [(team.id, "member")]
    assert await list_my_teams(db=db, user=None) == []

    details = await get_team_details(team.id, db=db)
    assert [m.user_id for m in details.members] == [leader.id, member.id]
    assert details.members[0].profile.first_name == "User"
    assert details.members[1].profile is None

    assert await get_team_details(999, db=db) is None
