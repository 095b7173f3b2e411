from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, or_, and_, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.dependencies import get_current_user, get_user_repository
from app.core.responses import success_response
from app.models.message import Message
from app.models.notification import NotificationTypeEnum
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.schemas.message import MessageRead, MessageSend
from app.services.notification_service import notification_service

router = APIRouter(tags=["messages"])

PREVIEW_LENGTH = 80


def message_data(message: Message) -> dict:
    return MessageRead.model_validate(message).model_dump(mode="json")


def group_conversations(messages, user_id: int) -> list:
    """Latest message and unread count per counterpart, newest conversation first."""
    conversations = {}
    for message in messages:
        other_id = message.receiver_id if message.sender_id == user_id else message.sender_id
        entry = conversations.get(other_id)
        if entry is None:
            entry = conversations[other_id] = {"user_id": other_id, "last_message": message, "unread_count": 0}
        elif (message.created_at or datetime.min) > (entry["last_message"].created_at or datetime.min):
            entry["last_message"] = message
        if message.receiver_id == user_id and not message.is_read:
            entry["unread_count"] += 1
    return sorted(
        conversations.values(),
        key=lambda c: c["last_message"].created_at or datetime.min,
        reverse=True,
    )


@router.get("/conversations")
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    repo: UserRepository = Depends(get_user_repository),
):
    result = await db.execute(
        select(Message).where(or_(Message.sender_id == current_user.id, Message.receiver_id == current_user.id))
    )
    conversations = group_conversations(result.scalars().all(), current_user.id)

    data = []
    for conversation in conversations:
        other = await repo.get_by_id(conversation["user_id"])
        data.append({
            "user": {"id": other.id, "name": other.name, "email": other.email, "role": other.role.value}
            if other else {"id": conversation["user_id"]},
            "last_message": message_data(conversation["last_message"]),
            "unread_count": conversation["unread_count"],
        })
    return success_response(data)


@router.get("/conversation/{user_id}")
async def get_conversation(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Message)
        .where(or_(
            and_(Message.sender_id == current_user.id, Message.receiver_id == user_id),
            and_(Message.sender_id == user_id, Message.receiver_id == current_user.id),
        ))
        .order_by(Message.created_at.asc())
    )
    messages = result.scalars().all()

    await db.execute(
        update(Message)
        .where(Message.sender_id == user_id, Message.receiver_id == current_user.id, Message.is_read.is_(False))
        .values(is_read=True, read_at=datetime.utcnow())
    )
    await db.commit()
    return success_response([message_data(m) for m in messages])


@router.post("/send", status_code=status.HTTP_201_CREATED)
async def send_message(
    data: MessageSend,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    repo: UserRepository = Depends(get_user_repository),
):
    content = (data.content or "").strip()
    if data.receiver_id is None or not content:
        raise HTTPException(status_code=400, detail="Destinatario y contenido son requeridos")

    receiver = await repo.get_by_id(data.receiver_id)
    if receiver is None:
        raise HTTPException(status_code=404, detail="Destinatario no encontrado")

    message = Message(
        sender_id=current_user.id,
        receiver_id=receiver.id,
        content=content,
        is_read=False,
        created_at=datetime.utcnow(),
    )
    db.add(message)
    await db.flush()
    preview = content if len(content) <= PREVIEW_LENGTH else content[:PREVIEW_LENGTH] + "..."
    await notification_service.create_notification(
        db, receiver.id,
        f"Nuevo mensaje de {current_user.name}",
        preview,
        NotificationTypeEnum.message,
        {"message_id": message.id, "sender_id": current_user.id},
        commit=False,
    )
    await db.commit()
    return success_response(message_data(message), "Mensaje enviado")


@router.patch("/{message_id}/read")
async def mark_message_read(
    message_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Message).where(Message.id == message_id, Message.receiver_id == current_user.id)
    )
    message = result.scalar_one_or_none()
    if message is None:
        raise HTTPException(status_code=404, detail="Mensaje no encontrado")
    message.is_read = True
    message.read_at = datetime.utcnow()
    await db.commit()
    return success_response(message_data(message), "Mensaje marcado como leído")


@router.get("/unread-count")
async def unread_messages(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(func.count(Message.id)).where(Message.receiver_id == current_user.id, Message.is_read.is_(False))
    )
    return success_response({"count": result.scalar_one()})
