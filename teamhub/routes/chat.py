from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth_token import get_current_user
from teamhub.database import get_db
from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.message import Message
from teamhub.models.user import User
from teamhub.schemas import MessageCreate, MessageRead, MessageWithSender, ProfileRead
from teamhub.services.change_feed import get_change_feed, team_topic
from teamhub.services.membership import profiles_by_user, require_membership
from teamhub.services.storage import get_stored_file, resolve_file_url

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.post("/teams/{team_id}/messages", response_model=MessageRead, status_code=201)
async def send_message(
    team_id: int,
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await require_membership(db, team_id, user.id, "Not authorized to send messages to this team")
    if payload.file_id:
        stored = await get_stored_file(db, payload.file_id)
        if stored is None or not stored.is_uploaded:
            raise NotFound("File not found")

    message = Message(
        team_id=team_id,
        sender_id=user.id,
        content=payload.content,
        type=payload.type.value,
        file_id=payload.file_id,
        is_deleted=False,
    )
    db.add(message)
    await db.commit()
    await db.refresh(message)
    get_change_feed().publish(team_topic(team_id, "messages"))
    return message


@router.get("/teams/{team_id}/messages", response_model=List[MessageWithSender])
async def list_team_messages(
    team_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    await require_membership(db, team_id, user.id, "Not authorized to view messages for this team")

    messages = (
        await db.execute(
            select(Message)
            .where(Message.team_id == team_id, Message.is_deleted.is_(False))
            .order_by(Message.sent_at, Message.id)
        )
    ).scalars().all()

    senders = await profiles_by_user(db, (m.sender_id for m in messages))
    file_urls: Dict[str, Optional[str]] = {}
    items = []
    for message in messages:
        if message.file_id and message.file_id not in file_urls:
            file_urls[message.file_id] = await resolve_file_url(db, message.file_id)
        sender = senders.get(message.sender_id)
        items.append(
            MessageWithSender(
                **MessageRead.model_validate(message).model_dump(),
                sender=ProfileRead.model_validate(sender) if sender else None,
                file_url=file_urls.get(message.file_id) if message.file_id else None,
            )
        )
    return items


@router.delete("/messages/{message_id}", response_model=MessageRead)
async def delete_message(
    message_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    message = await db.get(Message, message_id)
    if not message:
        raise NotFound("Message not found")
    if message.sender_id != user.id:
        raise ConflictOfState("Not authorized to delete this message")

    # Soft delete only; the row stays for history
    message.is_deleted = True
    await db.commit()
    await db.refresh(message)
    get_change_feed().publish(team_topic(message.team_id, "messages"))
    return message
