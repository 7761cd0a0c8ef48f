# teamhub/routes/applications.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth_token import get_current_user, get_optional_user
from teamhub.database import get_db
from teamhub.deps.security import require_admin
from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.application import Application
from teamhub.models.enums import ApplicationStatus, ApplicationType, NotificationType
from teamhub.models.team import Team
from teamhub.models.user import User
from teamhub.schemas import (
    ApplicationRead,
    ApplicationReview,
    ApplicationWithProfile,
    ApplicationWithTeam,
    GroupApplicationCreate,
    ProfileRead,
    TeamApplicationCreate,
)
from teamhub.services.change_feed import get_change_feed
from teamhub.services.membership import profiles_by_user
from teamhub.services.notifications import notification_topic, notify
from teamhub.services.storage import get_stored_file
from teamhub.utils import commit_or_conflict, utcnow

logger = logging.getLogger("applications")

PENDING_GROUP_CONFLICT = "You already have a pending group application"
DUPLICATE_TEAM_CONFLICT = "You have already applied to this team"

router = APIRouter(prefix="/applications", tags=["Applications"])


async def _ensure_resume_exists(db: AsyncSession, resume_id: str) -> None:
    stored = await get_stored_file(db, resume_id)
    if stored is None or not stored.is_uploaded:
        raise NotFound("Resume not found")


# Submit ------------------------------------------------------------

@router.post("/group", response_model=ApplicationRead, status_code=201)
async def submit_group_application(
    payload: GroupApplicationCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    existing = await db.scalar(
        select(Application.id).where(
            Application.applicant_id == user.id,
            Application.type == ApplicationType.group_application.value,
            Application.status == ApplicationStatus.pending.value,
        )
    )
    if existing:
        raise ConflictOfState(PENDING_GROUP_CONFLICT)

    await _ensure_resume_exists(db, payload.resume_id)

    application = Application(
        applicant_id=user.id,
        type=ApplicationType.group_application.value,
        status=ApplicationStatus.pending.value,
        resume_id=payload.resume_id,
        cover_letter=payload.cover_letter,
    )
    db.add(application)
    await db.flush()  # populate application.id

    # TODO: address this to the admin users once admins can opt into application alerts
    notify(
        db,
        user.id,
        NotificationType.application_update,
        "New Group Application",
        "A new group application has been submitted",
        related_id=application.id,
    )

    await commit_or_conflict(db, PENDING_GROUP_CONFLICT)
    await db.refresh(application)
    get_change_feed().publish("applications", notification_topic(user.id))
    logger.info("User %s submitted group application %s", user.id, application.id)
    return application


@router.post("/team", response_model=ApplicationRead, status_code=201)
async def submit_team_application(
    payload: TeamApplicationCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    team = await db.get(Team, payload.team_id)
    if not team:
        raise NotFound("Team not found")
    if team.is_full:
        raise ConflictOfState("Team is full")

    existing = await db.scalar(
        select(Application.id).where(
            Application.applicant_id == user.id,
            Application.team_id == team.id,
            Application.status != ApplicationStatus.rejected.value,
        )
    )
    if existing:
        raise ConflictOfState(DUPLICATE_TEAM_CONFLICT)

    await _ensure_resume_exists(db, payload.resume_id)

    application = Application(
        applicant_id=user.id,
        team_id=team.id,
        type=ApplicationType.wolf_pack.value,
        status=ApplicationStatus.pending.value,
        resume_id=payload.resume_id,
        cover_letter=payload.cover_letter,
    )
    db.add(application)
    await commit_or_conflict(db, DUPLICATE_TEAM_CONFLICT)
    await db.refresh(application)
    get_change_feed().publish("applications")
    logger.info("User %s applied to team %s", user.id, team.id)
    return application


# Read --------------------------------------------------------------

@router.get("/mine", response_model=List[ApplicationWithTeam])
async def list_my_applications(
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    if user is None:
        return []
    result = await db.execute(
        select(Application)
        .where(Application.applicant_id == user.id)
        .order_by(Application.applied_at.desc(), Application.id.desc())
    )
    return result.scalars().all()


@router.get("/pending-group", response_model=List[ApplicationWithProfile])
async def list_pending_group_applications(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    applications = (
        await db.execute(
            select(Application)
            .where(
                Application.type == ApplicationType.group_application.value,
                Application.status == ApplicationStatus.pending.value,
            )
            .order_by(Application.applied_at.desc(), Application.id.desc())
        )
    ).scalars().all()

    profiles = await profiles_by_user(db, (a.applicant_id for a in applications))
    items = []
    for application in applications:
        profile = profiles.get(application.applicant_id)
        items.append(
            ApplicationWithProfile(
                **ApplicationRead.model_validate(application).model_dump(),
                profile=ProfileRead.model_validate(profile) if profile else None,
            )
        )
    return items


# Review ------------------------------------------------------------

@router.post("/{application_id}/review", response_model=ApplicationRead)
async def review_application(
    application_id: int,
    payload: ApplicationReview,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    application = await db.get(Application, application_id)
    if not application:
        raise NotFound("Application not found")

    application.status = payload.status
    application.reviewed_at = utcnow()
    application.reviewed_by = admin.id
    application.review_notes = payload.review_notes

    notify(
        db,
        application.applicant_id,
        NotificationType.application_update,
        "Application Update",
        f"Your application has been {payload.status}",
        related_id=application.id,
    )

    await db.commit()
    await db.refresh(application)
    get_change_feed().publish("applications", notification_topic(application.applicant_id))
    logger.info("Admin %s marked application %s as %s", admin.id, application.id, payload.status)
    return application
