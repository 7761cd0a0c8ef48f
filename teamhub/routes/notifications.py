"""Per-user notification feed."""

import os
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth_token import get_current_user, get_optional_user
from teamhub.database import get_db
from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.notification import Notification
from teamhub.models.user import User
from teamhub.schemas import MarkAllReadResult, NotificationRead, UnreadCount
from teamhub.services.change_feed import get_change_feed
from teamhub.services.notifications import notification_topic

load_dotenv()

FEED_LIMIT = int(os.getenv("NOTIFICATION_FEED_LIMIT", "50"))

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationRead])
async def list_notifications(
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Most recent notifications first."""
    if user is None:
        return []
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(FEED_LIMIT)
    )
    return result.scalars().all()


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    if user is None:
        return UnreadCount(count=0)
    count = await db.scalar(
        select(func.count(Notification.id)).where(
            Notification.user_id == user.id,
            Notification.is_read.is_(False),
        )
    )
    return UnreadCount(count=count or 0)


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_as_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notification = await db.get(Notification, notification_id)
    if not notification:
        raise NotFound("Notification not found")
    if notification.user_id != user.id:
        raise ConflictOfState("Not authorized")

    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    get_change_feed().publish(notification_topic(user.id))
    return notification


@router.post("/read-all", response_model=MarkAllReadResult)
async def mark_all_as_read(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Flip every unread notification in one statement; returns how many changed."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    updated = result.rowcount or 0
    if updated:
        get_change_feed().publish(notification_topic(user.id))
    return MarkAllReadResult(updated=updated)
