import pytest

from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.enums import ProjectCategory, ProjectStatus, TimeCommitment
from teamhub.routes.projects import (
    create_project,
    get_project_details,
    list_my_projects,
    list_projects,
    update_project_status,
)
from teamhub.schemas import ProjectCreate, ProjectStatusUpdate

pytestmark = pytest.mark.anyio


def _payload(**overrides):
    data = dict(
        title="Campus marketplace",
        description="Buy and sell textbooks",
        category=ProjectCategory.startup,
        required_skills=["react", "postgres"],
        time_commitment=TimeCommitment.part_time,
        spots_available=3,
        tags=["students"],
    )
    data.update(overrides)
    return ProjectCreate(**data)


async def test_create_and_fetch_with_creator(db, make_user):
    owner = await make_user(with_profile=True)

    project = await create_project(_payload(), db=db, user=owner)
    assert project.status == ProjectStatus.open.value

    details = await get_project_details(project.id, db=db)
    assert details.creator.user_id == owner.id
    assert details.required_skills == ["react", "postgres"]
    assert await get_project_details(999, db=db) is None


async def test_list_filters_prefer_category(db, make_user):
    owner = await make_user()
    startup = await create_project(_payload(), db=db, user=owner)
    learning = await create_project(
        _payload(title="Intro to compilers", category=ProjectCategory.learning), db=db, user=owner
    )
    learning.status = ProjectStatus.paused.value
    await db.commit()

    assert [p.id for p in await list_projects(category=None, status=None, db=db)] == [learning.id, startup.id]
    assert [p.id for p in await list_projects(category=ProjectCategory.startup, status=None, db=db)] == [startup.id]
    assert [p.id for p in await list_projects(category=None, status=ProjectStatus.paused, db=db)] == [learning.id]
    both = await list_projects(category=ProjectCategory.startup, status=ProjectStatus.paused, db=db)
    assert [p.id for p in both] == [startup.id]


async def test_mine_and_status_updates(db, make_user):
    owner = await make_user()
    other = await make_user()
    project = await create_project(_payload(), db=db, user=owner)

    assert [p.id for p in await list_my_projects(db=db, user=owner)] == [project.id]
    assert await list_my_projects(db=db, user=other) == []
    assert await list_my_projects(db=db, user=None) == []

    with pytest.raises(ConflictOfState):
        await update_project_status(project.id, ProjectStatusUpdate(status=ProjectStatus.paused), db=db, user=other)
    with pytest.raises(NotFound):
        await update_project_status(999, ProjectStatusUpdate(status=ProjectStatus.paused), db=db, user=owner)

    updated = await update_project_status(
        project.id, ProjectStatusUpdate(status=ProjectStatus.in_progress), db=db, user=owner
    )
    assert updated.status == "in_progress"
