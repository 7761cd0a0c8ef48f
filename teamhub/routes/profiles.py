from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth_token import get_current_user, get_optional_user
from teamhub.database import get_db
from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.profile import Profile
from teamhub.models.user import User
from teamhub.schemas import FileUrlRead, ProfileCreate, ProfileRead, ProfileUpdate, ResumeUpload
from teamhub.services.storage import get_stored_file, resolve_file_url
from teamhub.utils import commit_or_conflict

router = APIRouter(prefix="/profiles", tags=["Profiles"])


async def get_profile_for_user(db: AsyncSession, user_id: int) -> Optional[Profile]:
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


async def _require_own_profile(db: AsyncSession, user: User) -> Profile:
    profile = await get_profile_for_user(db, user.id)
    if profile is None:
        raise NotFound("Profile not found")
    return profile


@router.get("/me", response_model=Optional[ProfileRead])
async def get_current_profile(
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    if user is None:
        return None
    return await get_profile_for_user(db, user.id)


@router.post("", response_model=ProfileRead, status_code=201)
async def create_profile(
    payload: ProfileCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if await get_profile_for_user(db, user.id) is not None:
        raise ConflictOfState("Profile already exists")

    profile = Profile(
        user_id=user.id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        bio=payload.bio,
        experience=payload.experience.value,
        linkedin_url=payload.linkedin_url,
        github_url=payload.github_url,
        portfolio_url=payload.portfolio_url,
        is_verified=False,
    )
    profile.set_skills(payload.skills)
    db.add(profile)
    await commit_or_conflict(db, "Profile already exists")
    await db.refresh(profile)
    return profile


@router.patch("/me", response_model=ProfileRead)
async def update_profile(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    profile = await _require_own_profile(db, user)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    skills = changes.pop("skills", None)
    if skills is not None:
        profile.set_skills(skills)
    if "experience" in changes:
        changes["experience"] = changes["experience"].value
    for field, value in changes.items():
        setattr(profile, field, value)

    await db.commit()
    await db.refresh(profile)
    return profile


@router.put("/me/resume", response_model=ProfileRead)
async def upload_resume(
    payload: ResumeUpload,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    profile = await _require_own_profile(db, user)

    stored = await get_stored_file(db, payload.resume_id)
    if stored is None or not stored.is_uploaded:
        raise NotFound("File not found")
    if stored.uploaded_by != user.id:
        raise ConflictOfState("Not authorized to use this file")

    profile.resume_id = stored.storage_id
    await db.commit()
    await db.refresh(profile)
    return profile


@router.get("/resume-url/{storage_id}", response_model=FileUrlRead)
async def get_resume_url(storage_id: str, db: AsyncSession = Depends(get_db)):
    return FileUrlRead(url=await resolve_file_url(db, storage_id))
