"""Websocket that tells live clients which reads to re-run."""

import asyncio
import contextlib
import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import teamhub.database as database
from teamhub.auth_token import decode_user_id
from teamhub.database import get_db
from teamhub.models.team_member import TeamMember
from teamhub.models.user import User
from teamhub.services.change_feed import ChangeFeed, get_change_feed, membership_topic, team_topic
from teamhub.services.notifications import notification_topic

router = APIRouter(tags=["Realtime"])
logger = logging.getLogger("realtime")

PUBLIC_TOPICS = ("teams", "applications", "projects")


async def topics_for_user(db: AsyncSession, user_id: int) -> List[str]:
    team_ids = (
        await db.execute(select(TeamMember.team_id).where(TeamMember.user_id == user_id))
    ).scalars().all()
    topics = [notification_topic(user_id), membership_topic(user_id), *PUBLIC_TOPICS]
    for team_id in team_ids:
        topics.append(team_topic(team_id, "messages"))
        topics.append(team_topic(team_id, "tasks"))
    return topics


async def refresh_topics(db: AsyncSession, feed: ChangeFeed, queue: asyncio.Queue, user_id: int) -> None:
    """Re-read the user's teams and point the subscription at them."""
    feed.resubscribe(queue, await topics_for_user(db, user_id))


async def _forward(
    websocket: WebSocket,
    feed: ChangeFeed,
    queue: asyncio.Queue,
    user_id: int,
    session_factory: Optional[Callable] = None,
) -> None:
    while True:
        topic = await queue.get()
        if topic == membership_topic(user_id):
            # short-lived session; the socket itself holds none
            async with (session_factory or database.SessionLocal)() as db:
                await refresh_topics(db, feed, queue, user_id)
        await websocket.send_json({"topic": topic})


async def stop_sender(sender: asyncio.Task, user_id: int) -> None:
    """Cancel the forwarding task and collect whatever it ended with."""
    sender.cancel()
    try:
        with contextlib.suppress(asyncio.CancelledError):
            await sender
    except Exception:
        logger.warning("Change feed sender for %s failed", user_id, exc_info=True)


@router.websocket("/ws/changes")
async def changes(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
):
    user_id = decode_user_id(token)
    user = await db.get(User, user_id) if user_id is not None else None
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    topics = await topics_for_user(db, user.id)
    # release the connection; the socket may stay open for hours
    await db.close()

    await websocket.accept()
    with feed.subscribe(topics) as queue:
        sender = asyncio.create_task(_forward(websocket, feed, queue, user.id))
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Change feed client %s disconnected", user.id)
        finally:
            await stop_sender(sender, user.id)
