import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth_token import get_current_user
from teamhub.database import get_db
from teamhub.deps.security import require_admin
from teamhub.errors import NotFound
from teamhub.models.enums import NotificationType, TaskStatus
from teamhub.models.task import Task
from teamhub.models.team import Team
from teamhub.models.user import User
from teamhub.schemas import TaskCreate, TaskRead, TaskStatusUpdate, TaskWithTeam
from teamhub.services.change_feed import get_change_feed, team_topic
from teamhub.services.membership import require_membership, team_member_ids
from teamhub.services.notifications import notification_topic, notify_many
from teamhub.utils import utcnow

router = APIRouter(prefix="/tasks", tags=["Tasks"])
logger = logging.getLogger("tasks")


@router.post("", response_model=TaskRead, status_code=201)
async def assign_task(
    payload: TaskCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    team = await db.get(Team, payload.team_id)
    if not team:
        raise NotFound("Team not found")

    task = Task(
        team_id=team.id,
        title=payload.title,
        description=payload.description,
        assigned_by=admin.id,
        due_date=payload.due_date,
        status=TaskStatus.assigned.value,
        priority=payload.priority.value,
        week=payload.week,
    )
    db.add(task)
    await db.flush()

    member_ids = await team_member_ids(db, team.id)
    notify_many(
        db,
        member_ids,
        NotificationType.task_assigned,
        "New Task Assigned",
        f"Your team has been assigned: {payload.title}",
        related_id=task.id,
    )

    await db.commit()
    await db.refresh(task)
    get_change_feed().publish(team_topic(team.id, "tasks"), *(notification_topic(u) for u in member_ids))
    logger.info("Admin %s assigned task %s to team %s (%s members notified)", admin.id, task.id, team.id, len(member_ids))
    return task


@router.get("", response_model=List[TaskWithTeam])
async def list_all_tasks(
    week: Optional[int] = Query(default=None, ge=1, le=53),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    stmt = select(Task)
    if week is not None:
        stmt = stmt.where(Task.week == week)
    stmt = stmt.order_by(Task.assigned_at.desc(), Task.id.desc())
    return (await db.execute(stmt)).scalars().all()


@router.get("/team/{team_id}", response_model=List[TaskRead])
async def list_team_tasks(
    team_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not user.is_admin:
        await require_membership(db, team_id, user.id, "Not authorized to view tasks for this team")
    result = await db.execute(
        select(Task)
        .where(Task.team_id == team_id)
        .order_by(Task.assigned_at.desc(), Task.id.desc())
    )
    return result.scalars().all()


@router.patch("/{task_id}/status", response_model=TaskRead)
async def update_task_status(
    task_id: int,
    payload: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    task = await db.get(Task, task_id)
    if not task:
        raise NotFound("Task not found")

    await require_membership(db, task.team_id, user.id, "Not authorized to update this task")

    task.status = payload.status.value
    if payload.submission_notes:
        task.submission_notes = payload.submission_notes
    if payload.status is TaskStatus.completed:
        task.completed_at = utcnow()

    await db.commit()
    await db.refresh(task)
    get_change_feed().publish(team_topic(task.team_id, "tasks"))
    return task
