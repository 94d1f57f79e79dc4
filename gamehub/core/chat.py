"""
Direct chat between two users.

A conversation is one Chat row per unordered pair of users, stored with the smaller
user id in user1_id. Only the creation path relies on that ordering; lookups by pair
check both orderings. Messages are append-only; the only mutation is the read flag,
which a reader can flip only on messages written by the other participant.
"""

import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from gamehub.api.models import Chat, ChatMessage, User, utc_now
from gamehub.config import MESSAGE_MAX_LENGTH
from .errors import Forbidden, NotFound, RuleViolation, ValidationFailed
from .relationships import are_friends
from .utils import Page, canonical_pair, paginate

logger = logging.getLogger(__name__)


def _pair_filter(a: int, b: int):
    return or_(
        and_(Chat.user1_id == a, Chat.user2_id == b),
        and_(Chat.user1_id == b, Chat.user2_id == a),
    )


def _participant_filter(user_id: int):
    return or_(Chat.user1_id == user_id, Chat.user2_id == user_id)


def find_chat_between(db: Session, a: int, b: int) -> Chat | None:
    return db.query(Chat).filter(_pair_filter(a, b)).first()


def start_chat(db: Session, user_id: int, other_user_id: int, require_friendship: bool = False) -> Chat:
    """Return the conversation between the two users, creating it on first use."""
    if user_id == other_user_id:
        raise Forbidden("You cannot start a chat with yourself")
    if db.query(User.id).filter(User.id == other_user_id).first() is None:
        raise ValidationFailed("other_user_id", "The selected user does not exist")
    if require_friendship and not are_friends(db, user_id, other_user_id):
        raise RuleViolation("You can only chat with your friends")

    chat = find_chat_between(db, user_id, other_user_id)
    if chat is not None:
        return chat

    user1_id, user2_id = canonical_pair(user_id, other_user_id)
    try:
        with db.begin_nested():
            chat = Chat(user1_id=user1_id, user2_id=user2_id)
            db.add(chat)
    except IntegrityError:
        # The other participant created it between our lookup and insert
        logger.info("Chat %s/%s created concurrently; reusing existing row", user1_id, user2_id)
        chat = db.query(Chat).filter(Chat.user1_id == user1_id, Chat.user2_id == user2_id).one()
    db.commit()
    return chat


def get_participant_chat(db: Session, chat_id: int, user_id: int) -> Chat:
    chat = db.query(Chat).filter(Chat.id == chat_id).first()
    if chat is None:
        raise NotFound("Chat not found")
    if not chat.has_participant(user_id):
        raise Forbidden("You are not a participant of this chat")
    return chat


def list_chats(db: Session, user_id: int) -> list[Chat]:
    """Chats of a user, most recently active first."""
    return (
        db.query(Chat)
        .options(joinedload(Chat.user1), joinedload(Chat.user2))
        .filter(_participant_filter(user_id))
        .order_by(Chat.updated_at.desc(), Chat.id.desc())
        .all()
    )


def latest_message(db: Session, chat_id: int) -> ChatMessage | None:
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.chat_id == chat_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .first()
    )


def chat_unread_count(db: Session, chat_id: int, user_id: int) -> int:
    return (
        db.query(ChatMessage)
        .filter(
            ChatMessage.chat_id == chat_id,
            ChatMessage.sender_id != user_id,
            ChatMessage.is_read.is_(False),
        )
        .count()
    )


def unread_count(db: Session, user_id: int) -> int:
    """Unread messages addressed to the user across all their chats. Always computed from rows."""
    return (
        db.query(ChatMessage)
        .join(Chat, Chat.id == ChatMessage.chat_id)
        .filter(
            _participant_filter(user_id),
            ChatMessage.sender_id != user_id,
            ChatMessage.is_read.is_(False),
        )
        .count()
    )


def message_page(db: Session, chat_id: int, user_id: int, page: int = 1, per_page: int = 50) -> Page:
    """
    One page of a chat's messages. Pages are counted from the newest message backwards
    (page 2 is strictly older than page 1); inside a page messages are in reading order.
    """
    get_participant_chat(db, chat_id, user_id)
    query = (
        db.query(ChatMessage)
        .options(joinedload(ChatMessage.sender))
        .filter(ChatMessage.chat_id == chat_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
    )
    result = paginate(query, page, per_page)
    result.items.reverse()
    return result


def send_message(db: Session, chat_id: int, user_id: int, text: str) -> ChatMessage:
    text = (text or "").strip()
    if not text:
        raise RuleViolation("Message cannot be empty")
    if len(text) > MESSAGE_MAX_LENGTH:
        raise ValidationFailed("message", f"Message cannot exceed {MESSAGE_MAX_LENGTH} characters")
    chat = get_participant_chat(db, chat_id, user_id)

    now = utc_now()
    message = ChatMessage(
        chat_id=chat.id,
        sender_id=user_id,
        message=text,
        is_read=False,
        created_at=now,
        updated_at=now,
    )
    db.add(message)
    chat.updated_at = now
    chat.last_message_at = now
    db.commit()
    db.refresh(message)
    return message


def mark_as_read(db: Session, chat_id: int, user_id: int) -> int:
    """Mark the other participant's unread messages as read. Returns how many flipped."""
    get_participant_chat(db, chat_id, user_id)
    updated = (
        db.query(ChatMessage)
        .filter(
            ChatMessage.chat_id == chat_id,
            ChatMessage.sender_id != user_id,
            ChatMessage.is_read.is_(False),
        )
        .update({"is_read": True, "read_at": utc_now()}, synchronize_session=False)
    )
    db.commit()
    return updated


def delete_chat(db: Session, chat_id: int, user_id: int) -> None:
    chat = get_participant_chat(db, chat_id, user_id)
    try:
        db.query(ChatMessage).filter(ChatMessage.chat_id == chat.id).delete(synchronize_session=False)
        db.delete(chat)
        db.commit()
    except Exception:
        db.rollback()
        raise
