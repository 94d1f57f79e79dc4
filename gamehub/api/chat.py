"""
Direct chat endpoints. Clients poll: nothing here pushes.
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from gamehub import config
from gamehub.core import chat as chats
from .auth import get_current_user
from .database import get_db
from .models import User
from .serializers import message_to_dict, public_user

router = APIRouter(prefix="/chat")


class StartChatRequest(BaseModel):
    other_user_id: int


class SendMessageRequest(BaseModel):
    chat_id: int
    message: str = Field(max_length=config.MESSAGE_MAX_LENGTH)


@router.get("")
def get_chats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Caller's chats, most recent activity first, with last message and unread count."""
    out = []
    for chat in chats.list_chats(db, user.id):
        latest = chats.latest_message(db, chat.id)
        out.append({
            "id": chat.id,
            "other_user": public_user(chat.other_user(user.id)),
            "latest_message": {
                "message": latest.message,
                "sender_id": latest.sender_id,
                "created_at": latest.created_at.isoformat() if latest.created_at else None,
            } if latest else None,
            "unread_count": chats.chat_unread_count(db, chat.id, user.id),
            "updated_at": chat.updated_at.isoformat() if chat.updated_at else None,
        })
    return {"chats": out}


@router.post("/start")
def start_chat(
    request: StartChatRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = chats.start_chat(db, user.id, request.other_user_id, require_friendship=config.CHAT_REQUIRE_FRIENDSHIP)
    return {
        "chat": {
            "id": chat.id,
            "other_user": public_user(chat.other_user(user.id)),
            "created_at": chat.created_at.isoformat() if chat.created_at else None,
        }
    }


@router.get("/unread-count")
def get_unread_count(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"unread_count": chats.unread_count(db, user.id)}


@router.get("/{chat_id}/messages")
def get_chat_messages(
    chat_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(config.CHAT_PAGE_SIZE, ge=1, le=config.CHAT_PAGE_SIZE_MAX),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = chats.message_page(db, chat_id, user.id, page, per_page)
    pagination = result.meta()
    pagination["has_more_pages"] = result.has_more_pages
    return {
        "messages": [message_to_dict(m) for m in result.items],
        "pagination": pagination,
    }


@router.post("/message", status_code=201)
def send_message(
    request: SendMessageRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    message = chats.send_message(db, request.chat_id, user.id, request.message)
    return {"message": message_to_dict(message)}


@router.patch("/{chat_id}/read")
def mark_as_read(chat_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    updated = chats.mark_as_read(db, chat_id, user.id)
    return {"updated_count": updated, "message": "Messages marked as read"}


@router.delete("/{chat_id}")
def delete_chat(chat_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    chats.delete_chat(db, chat_id, user.id)
    return {"message": "Chat deleted"}
