"""Notification fan-out.

Rows are only added to the caller's session; they become visible with the
caller's commit, so a fan-out either lands completely or not at all.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.models.enums import NotificationType
from teamhub.models.notification import Notification


def notification_topic(user_id: int) -> str:
    return f"notifications:{user_id}"


def notify(
    db: AsyncSession,
    user_id: int,
    type: NotificationType,
    title: str,
    message: str,
    related_id: Optional[object] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        is_read=False,
        related_id=str(related_id) if related_id is not None else None,
    )
    db.add(notification)
    return notification


def notify_many(
    db: AsyncSession,
    user_ids: Iterable[int],
    type: NotificationType,
    title: str,
    message: str,
    related_id: Optional[object] = None,
) -> list[Notification]:
    return [notify(db, user_id, type, title, message, related_id) for user_id in user_ids]
