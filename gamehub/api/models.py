"""
SQLAlchemy models for users, relationships, chats, games, statistics and play history.
"""

from datetime import datetime, timezone
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base

GAME_MODES = ("online", "offline", "both")
PLAY_MODES = ("online", "offline")
OPPONENT_TYPES = ("human", "ai", "local")
RESULTS = ("won", "lost", "draw", "abandoned")
FRIENDSHIP_PENDING = "pending"
FRIENDSHIP_ACCEPTED = "accepted"


def utc_now() -> datetime:
    """Naive UTC timestamp (all DateTime columns are stored as naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)  # lowercased
    username = Column(String(64), nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar_path = Column(String(255), nullable=True)  # relative to MEDIA_ROOT
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class AuthToken(Base):
    """One row per issued access token; deleting the row revokes the token."""

    __tablename__ = "auth_tokens"

    id = Column(String(36), primary_key=True)  # jti claim
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now)


class Friendship(Base):
    """
    Directional row: user_id sent the request, friend_id received it.
    pair_low/pair_high hold the same two ids in ascending order; one row per unordered pair.
    """

    __tablename__ = "friendships"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    friend_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pair_low = Column(Integer, nullable=False)
    pair_high = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=FRIENDSHIP_PENDING)  # pending | accepted
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("pair_low", "pair_high", name="uq_friendship_pair"),
        CheckConstraint("user_id <> friend_id", name="ck_friendship_not_self"),
        CheckConstraint("pair_low < pair_high", name="ck_friendship_pair_order"),
    )

    requester = relationship("User", foreign_keys=[user_id])
    recipient = relationship("User", foreign_keys=[friend_id])


class BlockedUser(Base):
    __tablename__ = "blocked_users"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    blocked_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (UniqueConstraint("user_id", "blocked_user_id", name="uq_block_pair"),)

    blocked = relationship("User", foreign_keys=[blocked_user_id])


class Chat(Base):
    """Two-party conversation stored as a canonical pair: user1_id < user2_id."""

    __tablename__ = "chats"

    id = Column(Integer, primary_key=True)
    user1_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user2_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    last_message_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_chat_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_chat_canonical_order"),
        Index("ix_chats_user1_activity", "user1_id", "last_message_at"),
        Index("ix_chats_user2_activity", "user2_id", "last_message_at"),
    )

    user1 = relationship("User", foreign_keys=[user1_id])
    user2 = relationship("User", foreign_keys=[user2_id])

    def other_user(self, user_id: int) -> User:
        return self.user2 if self.user1_id == user_id else self.user1

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True)
    chat_id = Column(Integer, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("ix_chat_messages_chat_created", "chat_id", "created_at"),
        Index("ix_chat_messages_sender_created", "sender_id", "created_at"),
        Index("ix_chat_messages_read_chat", "is_read", "chat_id"),
    )

    sender = relationship("User", foreign_keys=[sender_id])


class Game(Base):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    mode = Column(String(16), nullable=False, default="offline")  # online | offline | both
    description = Column(Text, nullable=True)
    icon_path = Column(String(255), nullable=True)  # relative to MEDIA_ROOT
    is_multiplayer = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class GameHistory(Base):
    """Append-only ledger: one row per finished match, including ones that do not count for stats."""

    __tablename__ = "game_history"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    mode = Column(String(16), nullable=False, default="offline")  # online | offline
    opponent_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    opponent_type = Column(String(16), nullable=False, default="ai")  # human | ai | local
    counts_for_stats = Column(Boolean, nullable=False, default=True)
    result = Column(String(16), nullable=True)  # won | lost | draw | abandoned
    score = Column(Integer, nullable=False, default=0)
    points_earned = Column(Integer, nullable=False, default=0)
    points_lost = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("ix_game_history_user_created", "user_id", "created_at"),
        Index("ix_game_history_user_game_mode", "user_id", "game_id", "mode"),
    )

    game = relationship("Game")


class GameStatistic(Base):
    """Aggregate per (user, game, mode); counters only grow, high_score is a running max."""

    __tablename__ = "game_statistics"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    mode = Column(String(16), nullable=False, default="offline")  # online | offline
    games_played = Column(Integer, nullable=False, default=0)
    games_won = Column(Integer, nullable=False, default=0)
    games_lost = Column(Integer, nullable=False, default=0)
    games_draw = Column(Integer, nullable=False, default=0)
    high_score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (UniqueConstraint("user_id", "game_id", "mode", name="uq_statistic_user_game_mode"),)

    game = relationship("Game")
