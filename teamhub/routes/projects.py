from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth_token import get_current_user, get_optional_user
from teamhub.database import get_db
from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.enums import ProjectCategory, ProjectStatus
from teamhub.models.project import Project
from teamhub.models.user import User
from teamhub.schemas import (
    ProfileRead,
    ProjectCreate,
    ProjectRead,
    ProjectStatusUpdate,
    ProjectWithCreator,
)
from teamhub.services.change_feed import get_change_feed
from teamhub.services.membership import profiles_by_user

router = APIRouter(prefix="/projects", tags=["Projects"])


async def _with_creators(db: AsyncSession, projects) -> List[ProjectWithCreator]:
    creators = await profiles_by_user(db, (p.created_by for p in projects))
    items = []
    for project in projects:
        creator = creators.get(project.created_by)
        items.append(
            ProjectWithCreator(
                **ProjectRead.model_validate(project).model_dump(),
                creator=ProfileRead.model_validate(creator) if creator else None,
            )
        )
    return items


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    payload: ProjectCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    project = Project(
        title=payload.title,
        description=payload.description,
        category=payload.category.value,
        status=ProjectStatus.open.value,
        created_by=user.id,
        required_skills=payload.required_skills,
        time_commitment=payload.time_commitment.value,
        duration=payload.duration,
        compensation=payload.compensation,
        spots_available=payload.spots_available,
        application_deadline=payload.application_deadline,
        tags=payload.tags,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    get_change_feed().publish("projects")
    return project


@router.get("", response_model=List[ProjectWithCreator])
async def list_projects(
    category: Optional[ProjectCategory] = Query(default=None),
    status: Optional[ProjectStatus] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Project)
    # category wins when both filters are given
    if category is not None:
        stmt = stmt.where(Project.category == category.value)
    elif status is not None:
        stmt = stmt.where(Project.status == status.value)
    stmt = stmt.order_by(Project.created_at.desc(), Project.id.desc())
    projects = (await db.execute(stmt)).scalars().all()
    return await _with_creators(db, projects)


@router.get("/mine", response_model=List[ProjectRead])
async def list_my_projects(
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    if user is None:
        return []
    result = await db.execute(
        select(Project)
        .where(Project.created_by == user.id)
        .order_by(Project.created_at.desc(), Project.id.desc())
    )
    return result.scalars().all()


@router.get("/{project_id}", response_model=Optional[ProjectWithCreator])
async def get_project_details(project_id: int, db: AsyncSession = Depends(get_db)):
    project = await db.get(Project, project_id)
    if not project:
        return None
    return (await _with_creators(db, [project]))[0]


@router.patch("/{project_id}/status", response_model=ProjectRead)
async def update_project_status(
    project_id: int,
    payload: ProjectStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    project = await db.get(Project, project_id)
    if not project:
        raise NotFound("Project not found")
    if project.created_by != user.id:
        raise ConflictOfState("Not authorized to update this project")

    project.status = payload.status.value
    await db.commit()
    await db.refresh(project)
    get_change_feed().publish("projects")
    return project
