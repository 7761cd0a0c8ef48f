import pytest
from sqlalchemy import func, select

from teamhub.errors import ValidationFailure
from teamhub.models.application import Application
from teamhub.models.notification import Notification
from teamhub.models.team import Team
from teamhub.models.team_member import TeamMember
from teamhub.routes.teams import form_groups_from_applications
from teamhub.schemas import FormGroupsRequest
from teamhub.services.team_formation import group_size_from_env, partition_groups


@pytest.mark.parametrize(
    "count, sizes, leftover",
    [
        (0, [], 0),
        (1, [], 1),
        (4, [4], 0),
        (5, [4], 1),
        (6, [4, 2], 0),
        (7, [4, 3], 0),
        (9, [4, 4], 1),
    ],
)
def test_partition_groups_chunks_of_four(count, sizes, leftover):
    groups, rest = partition_groups(list(range(count)))
    assert [len(g) for g in groups] == sizes
    assert len(rest) == leftover


def test_partition_groups_keeps_order():
    groups, rest = partition_groups(["a", "b", "c", "d", "e", "f"])
    assert groups == [["a", "b", "c", "d"], ["e", "f"]]
    assert rest == []


def test_partition_groups_rejects_bad_bounds():
    with pytest.raises(ValueError):
        partition_groups([1, 2], size=0)
    with pytest.raises(ValueError):
        partition_groups([1, 2], size=2, minimum=3)


async def _applications(db, make_user, count):
    ids = []
    for _ in range(count):
        user = await make_user()
        application = Application(
            applicant_id=user.id, type="group_application", status="pending", resume_id="r"
        )
        db.add(application)
        await db.commit()
        ids.append(application.id)
    return ids


@pytest.mark.anyio
async def test_seven_applicants_form_teams_of_four_and_three(db, make_user):
    admin = await make_user(role="admin")
    ids = await _applications(db, make_user, 7)

    result = await form_groups_from_applications(FormGroupsRequest(application_ids=ids), db=db, admin=admin)

    assert len(result.team_ids) == 2
    assert result.unplaced_application_ids == []
    teams = [await db.get(Team, team_id) for team_id in result.team_ids]
    assert [t.current_members for t in teams] == [4, 3]
    assert [t.name for t in teams] == ["Group 1", "Group 2"]
    assert all(t.status == "active" and t.type == "group_application" for t in teams)

    statuses = (await db.execute(select(Application.status).where(Application.id.in_(ids)))).scalars().all()
    assert statuses == ["approved"] * 7
    roles = (await db.execute(select(TeamMember.role))).scalars().all()
    assert roles == ["member"] * 7
    assert await db.scalar(select(func.count(Notification.id)).where(Notification.type == "team_formed")) == 7


@pytest.mark.anyio
async def test_single_leftover_applicant_is_left_untouched(db, make_user):
    admin = await make_user(role="admin")
    ids = await _applications(db, make_user, 5)

    result = await form_groups_from_applications(FormGroupsRequest(application_ids=ids), db=db, admin=admin)

    assert len(result.team_ids) == 1
    assert result.unplaced_application_ids == [ids[4]]
    team = await db.get(Team, result.team_ids[0])
    assert team.current_members == 4

    leftover = await db.get(Application, ids[4])
    assert leftover.status == "pending"
    assert leftover.reviewed_at is None
    leftover_user_notes = await db.scalar(
        select(func.count(Notification.id)).where(Notification.user_id == leftover.applicant_id)
    )
    assert leftover_user_notes == 0
    assert await db.scalar(select(func.count(TeamMember.id))) == 4


@pytest.mark.anyio
async def test_missing_application_ids_are_reported(db, make_user):
    admin = await make_user(role="admin")
    ids = await _applications(db, make_user, 2)

    result = await form_groups_from_applications(
        FormGroupsRequest(application_ids=[ids[0], 999, ids[1], ids[0]]), db=db, admin=admin
    )

    assert len(result.team_ids) == 1
    assert result.missing_application_ids == [999]
    assert (await db.get(Team, result.team_ids[0])).current_members == 2


@pytest.mark.anyio
async def test_team_applications_cannot_be_batch_formed(db, make_user):
    admin = await make_user(role="admin")
    ids = await _applications(db, make_user, 2)
    applicant = await make_user()
    wolf = Application(applicant_id=applicant.id, type="wolf_pack", status="pending", resume_id="r")
    db.add(wolf)
    await db.commit()

    with pytest.raises(ValidationFailure):
        await form_groups_from_applications(
            FormGroupsRequest(application_ids=[*ids, wolf.id]), db=db, admin=admin
        )
    assert await db.scalar(select(func.count(Team.id))) == 0


@pytest.mark.parametrize("env, expected", [({}, 4), ({"GROUP_SIZE": "3"}, 3), ({"GROUP_SIZE": " 6 "}, 6)])
def test_group_size_from_env(env, expected):
    assert group_size_from_env(env) == expected


@pytest.mark.parametrize("raw", ["1", "0", "-4", "four"])
def test_group_size_from_env_rejects_unusable_values(raw):
    with pytest.raises(RuntimeError):
        group_size_from_env({"GROUP_SIZE": raw})
