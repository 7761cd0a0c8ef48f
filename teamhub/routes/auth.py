import hmac
import logging
import os

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from teamhub.auth_token import create_access_token, get_current_user
from teamhub.database import get_db
from teamhub.errors import AuthenticationRequired, ConflictOfState, NotFound, PermissionDenied
from teamhub.models.enums import UserRole
from teamhub.models.user import User
from teamhub.schemas import AdminBootstrapRequest, UserRead, UserRegister
from teamhub.security import hash_password, verify_password
from teamhub.utils import commit_or_conflict

router = APIRouter(tags=["Auth"])
logger = logging.getLogger("auth")


@router.post("/register", response_model=UserRead, status_code=201)
async def register(user: UserRegister, db: AsyncSession = Depends(get_db)):
    conflict_result = await db.execute(
        select(User).where(
            or_(User.username == user.username, User.email == user.email)
        )
    )
    conflict = conflict_result.scalars().first()
    if conflict:
        if conflict.email == user.email:
            raise ConflictOfState("Email already exists")
        raise ConflictOfState("Username already exists")

    new_user = User(
        username=user.username,
        email=user.email,
        password_hash=hash_password(user.password),
        role=UserRole.player.value,
    )
    db.add(new_user)
    await commit_or_conflict(db, "Username or email already exists")
    await db.refresh(new_user)
    return new_user


@router.post("/login")
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(User).where(User.email == form_data.username))
    db_user = result.scalar_one_or_none()

    if not db_user:
        raise AuthenticationRequired("Invalid credentials")
    valid, new_hash = verify_password(form_data.password, db_user.password_hash)
    if not valid:
        raise AuthenticationRequired("Invalid credentials")
    if new_hash:
        db_user.password_hash = new_hash
        await db.commit()

    token = create_access_token({"user_id": db_user.id})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserRead)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/make-me-admin")
async def make_me_admin(
    payload: AdminBootstrapRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Bootstrap route for promoting a user to admin.

    Disabled unless ``ENABLE_ADMIN_BOOTSTRAP`` is truthy and
    ``ADMIN_BOOTSTRAP_TOKEN`` matches the token sent in the body.
    """

    if os.getenv("ENABLE_ADMIN_BOOTSTRAP", "").lower() not in {"1", "true", "yes"}:
        raise NotFound("Not Found")

    bootstrap_token = os.getenv("ADMIN_BOOTSTRAP_TOKEN")
    if not bootstrap_token:
        raise PermissionDenied("Admin bootstrap disabled")

    if not hmac.compare_digest(payload.token, bootstrap_token):
        raise PermissionDenied("Invalid bootstrap token")

    if user.role == UserRole.admin.value:
        return {"message": "User is already an admin"}

    user.role = UserRole.admin.value
    db.add(user)
    await db.commit()
    logger.info("User %s promoted to admin via bootstrap token", user.id)
    return {"message": "You are now an admin"}
