from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.errors import ConflictOfState
from teamhub.models.profile import Profile
from teamhub.models.team_member import TeamMember


async def get_membership(db: AsyncSession, team_id: int, user_id: int) -> Optional[TeamMember]:
    result = await db.execute(
        select(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def require_membership(db: AsyncSession, team_id: int, user_id: int, detail: str) -> TeamMember:
    membership = await get_membership(db, team_id, user_id)
    if membership is None:
        raise ConflictOfState(detail)
    return membership


async def team_member_ids(db: AsyncSession, team_id: int) -> list[int]:
    result = await db.execute(
        select(TeamMember.user_id).where(TeamMember.team_id == team_id).order_by(TeamMember.id)
    )
    return list(result.scalars().all())


async def profiles_by_user(db: AsyncSession, user_ids: Iterable[int]) -> dict[int, Profile]:
    ids = set(user_ids)
    if not ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.user_id.in_(ids)))
    return {p.user_id: p for p in result.scalars().all()}
