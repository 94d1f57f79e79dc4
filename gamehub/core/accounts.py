"""
Account removal. Runs as one transaction so a failure part way leaves nothing orphaned.
"""

import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from gamehub.api.models import (
    AuthToken,
    BlockedUser,
    Chat,
    ChatMessage,
    Friendship,
    GameHistory,
    GameStatistic,
    User,
)

logger = logging.getLogger(__name__)


def delete_account(db: Session, user: User) -> dict[str, int]:
    """
    Delete a user and every row that belongs to them, in order: tokens, statistics,
    history, relationships, chats, then the user. Returns the deleted row counts.
    The caller removes the avatar file once this has committed.
    """
    user_id = user.id
    email = user.email
    logger.info("Deleting account for user %s", user_id)
    counts: dict[str, int] = {}
    try:
        counts["tokens"] = db.query(AuthToken).filter(AuthToken.user_id == user_id).delete(synchronize_session=False)
        counts["statistics"] = (
            db.query(GameStatistic).filter(GameStatistic.user_id == user_id).delete(synchronize_session=False)
        )
        counts["history"] = db.query(GameHistory).filter(GameHistory.user_id == user_id).delete(synchronize_session=False)
        # Other players' matches against this user stay, without the reference
        db.query(GameHistory).filter(GameHistory.opponent_id == user_id).update(
            {"opponent_id": None}, synchronize_session=False
        )
        counts["friendships"] = (
            db.query(Friendship)
            .filter(or_(Friendship.user_id == user_id, Friendship.friend_id == user_id))
            .delete(synchronize_session=False)
        )
        counts["blocks"] = (
            db.query(BlockedUser)
            .filter(or_(BlockedUser.user_id == user_id, BlockedUser.blocked_user_id == user_id))
            .delete(synchronize_session=False)
        )
        chat_ids = [
            row.id
            for row in db.query(Chat.id).filter(or_(Chat.user1_id == user_id, Chat.user2_id == user_id)).all()
        ]
        counts["messages"] = 0
        counts["chats"] = 0
        if chat_ids:
            counts["messages"] = (
                db.query(ChatMessage).filter(ChatMessage.chat_id.in_(chat_ids)).delete(synchronize_session=False)
            )
            counts["chats"] = db.query(Chat).filter(Chat.id.in_(chat_ids)).delete(synchronize_session=False)
        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Account deletion failed for user %s; rolled back", user_id)
        raise
    logger.info("Deleted user %s (%s): %s", user_id, email, counts)
    return counts
