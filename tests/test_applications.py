import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.application import Application
from teamhub.models.notification import Notification
from teamhub.models.team import Team
from teamhub.routes.applications import (
    list_my_applications,
    list_pending_group_applications,
    review_application,
    submit_group_application,
    submit_team_application,
)
from teamhub.schemas import ApplicationReview, GroupApplicationCreate, TeamApplicationCreate

pytestmark = pytest.mark.anyio


async def _team(db, creator, max_members=4, current_members=1):
    team = Team(
        name="Pack",
        description="",
        type="wolf_pack",
        status="forming",
        max_members=max_members,
        current_members=current_members,
        created_by=creator.id,
        tags=[],
    )
    db.add(team)
    await db.commit()
    await db.refresh(team)
    return team


async def test_group_application_creates_notification_stub(db, make_user, make_file):
    user = await make_user()
    resume = await make_file(user)

    application = await submit_group_application(
        GroupApplicationCreate(resume_id=resume, cover_letter="Hi"), db=db, user=user
    )

    assert application.status == "pending"
    assert application.type == "group_application"
    notes = (await db.execute(select(Notification).where(Notification.user_id == user.id))).scalars().all()
    assert [n.related_id for n in notes] == [str(application.id)]


async def test_second_pending_group_application_conflicts_until_reviewed(db, make_user, make_file):
    user = await make_user()
    admin = await make_user(role="admin")
    resume = await make_file(user)
    payload = GroupApplicationCreate(resume_id=resume)

    first = await submit_group_application(payload, db=db, user=user)
    with pytest.raises(ConflictOfState):
        await submit_group_application(payload, db=db, user=user)

    await review_application(first.id, ApplicationReview(status="rejected"), db=db, admin=admin)

    second = await submit_group_application(payload, db=db, user=user)
    assert second.id != first.id
    assert second.status == "pending"


async def test_pending_group_uniqueness_is_enforced_by_the_database(db, make_user):
    user = await make_user()
    for _ in range(2):
        db.add(Application(applicant_id=user.id, type="group_application", status="pending", resume_id="r"))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


async def test_group_application_requires_known_resume(db, make_user):
    user = await make_user()
    with pytest.raises(NotFound):
        await submit_group_application(GroupApplicationCreate(resume_id="nope"), db=db, user=user)


async def test_team_application_checks(db, make_user, make_file):
    leader = await make_user()
    applicant = await make_user()
    resume = await make_file(applicant)
    team = await _team(db, leader)

    with pytest.raises(NotFound):
        await submit_team_application(
            TeamApplicationCreate(team_id=9999, resume_id=resume), db=db, user=applicant
        )

    application = await submit_team_application(
        TeamApplicationCreate(team_id=team.id, resume_id=resume), db=db, user=applicant
    )
    assert application.type == "wolf_pack"
    assert application.team_id == team.id

    with pytest.raises(ConflictOfState):
        await submit_team_application(
            TeamApplicationCreate(team_id=team.id, resume_id=resume), db=db, user=applicant
        )


async def test_rejected_team_application_can_be_resubmitted(db, make_user, make_file):
    leader = await make_user()
    applicant = await make_user()
    admin = await make_user(role="admin")
    resume = await make_file(applicant)
    team = await _team(db, leader)
    payload = TeamApplicationCreate(team_id=team.id, resume_id=resume)

    first = await submit_team_application(payload, db=db, user=applicant)
    await review_application(first.id, ApplicationReview(status="rejected"), db=db, admin=admin)

    again = await submit_team_application(payload, db=db, user=applicant)
    assert again.status == "pending"


async def test_full_team_refuses_applications(db, make_user, make_file):
    leader = await make_user()
    applicant = await make_user()
    resume = await make_file(applicant)
    team = await _team(db, leader, max_members=2, current_members=2)

    with pytest.raises(ConflictOfState) as excinfo:
        await submit_team_application(
            TeamApplicationCreate(team_id=team.id, resume_id=resume), db=db, user=applicant
        )
    assert excinfo.value.detail == "Team is full"


async def test_review_sets_metadata_and_notifies_applicant(db, make_user, make_file):
    user = await make_user()
    admin = await make_user(role="admin")
    application = await submit_group_application(
        GroupApplicationCreate(resume_id=await make_file(user)), db=db, user=user
    )

    reviewed = await review_application(
        application.id,
        ApplicationReview(status="shortlisted", review_notes="Strong CV"),
        db=db,
        admin=admin,
    )

    assert reviewed.status == "shortlisted"
    assert reviewed.reviewed_by == admin.id
    assert reviewed.reviewed_at is not None
    assert reviewed.review_notes == "Strong CV"
    latest = (
        await db.execute(
            select(Notification)
            .where(Notification.user_id == user.id)
            .order_by(Notification.id.desc())
        )
    ).scalars().first()
    assert latest.message == "Your application has been shortlisted"


async def test_review_missing_application(db, make_user):
    admin = await make_user(role="admin")
    with pytest.raises(NotFound):
        await review_application(42, ApplicationReview(status="approved"), db=db, admin=admin)


async def test_listing_applications(db, make_user, make_file):
    leader = await make_user()
    applicant = await make_user(with_profile=True)
    admin = await make_user(role="admin")
    resume = await make_file(applicant)
    team = await _team(db, leader)

    group = await submit_group_application(GroupApplicationCreate(resume_id=resume), db=db, user=applicant)
    wolf = await submit_team_application(
        TeamApplicationCreate(team_id=team.id, resume_id=resume), db=db, user=applicant
    )

    mine = await list_my_applications(db=db, user=applicant)
    assert [a.id for a in mine] == [wolf.id, group.id]
    assert mine[0].team.id == team.id
    assert mine[1].team is None

    assert await list_my_applications(db=db, user=None) == []

    pending = await list_pending_group_applications(db=db, admin=admin)
    assert [a.id for a in pending] == [group.id]
    assert pending[0].profile.user_id == applicant.id

    count = await db.scalar(select(func.count(Application.id)))
    assert count == 2
