# teamhub/routes/teams.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth_token import get_current_user, get_optional_user
from teamhub.database import get_db
from teamhub.deps.security import require_admin
from teamhub.errors import ConflictOfState, NotFound, ValidationFailure
from teamhub.models.application import Application
from teamhub.models.enums import (
    ApplicationStatus,
    ApplicationType,
    MemberRole,
    NotificationType,
    TeamStatus,
    TeamType,
)
from teamhub.models.team import Team
from teamhub.models.team_member import TeamMember
from teamhub.models.user import User
from teamhub.schemas import (
    FormGroupsRequest,
    FormGroupsResult,
    ProfileRead,
    TeamCreate,
    TeamDetails,
    TeamListItem,
    TeamMemberRead,
    TeamRead,
    TeamWithRole,
)
from teamhub.services.change_feed import get_change_feed, membership_topic
from teamhub.services.membership import get_membership, profiles_by_user
from teamhub.services.notifications import notification_topic, notify_many
from teamhub.services.team_formation import DEFAULT_GROUP_SIZE, partition_groups
from teamhub.utils import commit_or_conflict, utcnow

logger = logging.getLogger("teams")

# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _profile_or_none(profile) -> Optional[ProfileRead]:
    return ProfileRead.model_validate(profile) if profile else None


async def member_counts(db: AsyncSession, team_ids: List[int]) -> dict[int, int]:
    if not team_ids:
        return {}
    rows = await db.execute(
        select(TeamMember.team_id, func.count(TeamMember.id))
        .where(TeamMember.team_id.in_(team_ids))
        .group_by(TeamMember.team_id)
    )
    return {team_id: count for team_id, count in rows.all()}

# -------------------------------------------------------------------
# Router
# -------------------------------------------------------------------

router = APIRouter(prefix="/teams", tags=["Teams"])

# Create team --------------------------------------------------------

@router.post("", response_model=TeamRead, status_code=201)
async def create_team(
    team: TeamCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    new_team = Team(
        name=team.name,
        description=team.description,
        type=team.type.value,
        status=TeamStatus.forming.value,
        max_members=team.max_members,
        current_members=1,
        created_by=user.id,
        tags=team.tags,
        requirements=team.requirements,
    )
    db.add(new_team)
    await db.flush()  # populate new_team.id

    # Creator is the initial leader
    db.add(TeamMember(team_id=new_team.id, user_id=user.id, role=MemberRole.leader.value))

    await db.commit()
    await db.refresh(new_team)
    get_change_feed().publish("teams", membership_topic(user.id))
    logger.info("User %s created team %s (%s)", user.id, new_team.id, new_team.type)
    return new_team

# List teams ---------------------------------------------------------

@router.get("", response_model=List[TeamListItem])
async def list_teams_by_type(
    type: TeamType = Query(...),
    db: AsyncSession = Depends(get_db),
):
    teams = (
        await db.execute(
            select(Team)
            .where(Team.type == type.value, Team.status == TeamStatus.forming.value)
            .order_by(Team.created_at.desc(), Team.id.desc())
        )
    ).scalars().all()

    creators = await profiles_by_user(db, (t.created_by for t in teams))
    counts = await member_counts(db, [t.id for t in teams])
    return [
        TeamListItem(
            **TeamRead.model_validate(t).model_dump(),
            creator=_profile_or_none(creators.get(t.created_by)),
            members_count=counts.get(t.id, 0),
        )
        for t in teams
    ]


@router.get("/mine", response_model=List[TeamWithRole])
async def list_my_teams(
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    if user is None:
        return []
    rows = await db.execute(
        select(Team, TeamMember.role)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user.id)
        .order_by(TeamMember.joined_at.desc(), TeamMember.id.desc())
    )
    return [
        TeamWithRole(**TeamRead.model_validate(team).model_dump(), role=role)
        for team, role in rows.all()
    ]

# Batch formation ----------------------------------------------------

@router.post("/form-groups", response_model=FormGroupsResult)
async def form_groups_from_applications(
    payload: FormGroupsRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    try:
        requested = list(dict.fromkeys(payload.application_ids))
        found = {
            a.id: a
            for a in (
                await db.execute(select(Application).where(Application.id.in_(requested)))
            ).scalars().all()
        }
        ordered = [found[i] for i in requested if i in found]
        missing = [i for i in requested if i not in found]
        wrong_type = [a.id for a in ordered if a.type != ApplicationType.group_application.value]
        if wrong_type:
            raise ValidationFailure(f"Not group applications: {wrong_type}")

        groups, leftover = partition_groups(ordered, size=DEFAULT_GROUP_SIZE)
        now = utcnow()
        team_ids: List[int] = []
        notified: List[int] = []

        for number, group in enumerate(groups, start=1):
            team = Team(
                name=f"Group {number}",
                description="Auto-formed group from applications",
                type=TeamType.group_application.value,
                status=TeamStatus.active.value,
                max_members=DEFAULT_GROUP_SIZE,
                current_members=len(group),
                created_by=admin.id,
                formed_at=now,
                tags=[],
            )
            db.add(team)
            await db.flush()

            for application in group:
                db.add(TeamMember(team_id=team.id, user_id=application.applicant_id, role=MemberRole.member.value))
                application.status = ApplicationStatus.approved.value
                application.reviewed_at = now
                application.reviewed_by = admin.id

            member_ids = [a.applicant_id for a in group]
            notify_many(
                db,
                member_ids,
                NotificationType.team_formed,
                "Team Formed!",
                "You've been placed in a team. Check your dashboard!",
                related_id=team.id,
            )
            notified.extend(member_ids)
            team_ids.append(team.id)

        await commit_or_conflict(db, "An applicant cannot be placed twice in the same group")

        get_change_feed().publish(
            "teams",
            "applications",
            *(notification_topic(u) for u in notified),
            *(membership_topic(u) for u in notified),
        )
        if leftover:
            logger.warning(
                "Group formation left %s application(s) unplaced: %s",
                len(leftover),
                [a.id for a in leftover],
            )
        logger.info("Admin %s formed %s team(s) from %s application(s)", admin.id, len(team_ids), len(ordered))
        return FormGroupsResult(
            team_ids=team_ids,
            unplaced_application_ids=[a.id for a in leftover],
            missing_application_ids=missing,
        )
    except HTTPException:
        raise
    except Exception:
        logger.error("Error forming groups from %s application(s)", len(payload.application_ids), exc_info=True)
        raise HTTPException(status_code=500, detail="Group formation failed.")


# Team details -------------------------------------------------------

@router.get("/{team_id}", response_model=Optional[TeamDetails])
async def get_team_details(team_id: int, db: AsyncSession = Depends(get_db)):
    team = await db.get(Team, team_id)
    if not team:
        return None

    members = (
        await db.execute(
            select(TeamMember)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.joined_at, TeamMember.id)
        )
    ).scalars().all()
    profiles = await profiles_by_user(db, (m.user_id for m in members))

    return TeamDetails(
        **TeamRead.model_validate(team).model_dump(),
        members=[
            TeamMemberRead(
                **TeamMemberRead.model_validate(m).model_dump(exclude={"profile"}),
                profile=_profile_or_none(profiles.get(m.user_id)),
            )
            for m in members
        ],
    )

# Join team ----------------------------------------------------------

@router.post("/{team_id}/join", response_model=TeamRead)
async def join_team(
    team_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        team = await db.get(Team, team_id)
        if not team:
            raise NotFound("Team not found")
        if team.is_full:
            raise ConflictOfState("Team is full")
        if await get_membership(db, team_id, current_user.id):
            raise ConflictOfState("Already a member of this team")

        # Capacity is re-checked by the UPDATE itself so concurrent joins cannot overfill
        result = await db.execute(
            update(Team)
            .where(Team.id == team_id, Team.current_members < Team.max_members)
            .values(current_members=Team.current_members + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise ConflictOfState("Team is full")

        db.add(TeamMember(team_id=team_id, user_id=current_user.id, role=MemberRole.member.value))
        await commit_or_conflict(db, "Already a member of this team")
        await db.refresh(team)
        get_change_feed().publish("teams", membership_topic(current_user.id))
        logger.info("User %s joined team %s", current_user.id, team_id)
        return team
    except HTTPException:
        raise
    except Exception:
        logger.error("Error joining team %s", team_id, exc_info=True)
        raise HTTPException(status_code=500, detail="Join team failed.")

