"""
Friendships and blocks.

A friendship is a single directional row (requester -> recipient) whose status goes
pending -> accepted; rejecting or removing deletes it. Anything that asks about a pair
of users has to look at both directions. Blocks are one-way.
"""

import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from gamehub.api.models import (
    FRIENDSHIP_ACCEPTED,
    FRIENDSHIP_PENDING,
    BlockedUser,
    Friendship,
    User,
)
from .errors import Forbidden, NotFound, RuleViolation
from .utils import canonical_pair

logger = logging.getLogger(__name__)


def _pair_filter(a: int, b: int):
    return or_(
        and_(Friendship.user_id == a, Friendship.friend_id == b),
        and_(Friendship.user_id == b, Friendship.friend_id == a),
    )


def _require_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user


def are_friends(db: Session, a: int, b: int) -> bool:
    return (
        db.query(Friendship.id)
        .filter(_pair_filter(a, b), Friendship.status == FRIENDSHIP_ACCEPTED)
        .first()
        is not None
    )


def has_pending_request_between(db: Session, a: int, b: int) -> bool:
    return (
        db.query(Friendship.id)
        .filter(_pair_filter(a, b), Friendship.status == FRIENDSHIP_PENDING)
        .first()
        is not None
    )


def has_blocked(db: Session, blocker_id: int, blocked_id: int) -> bool:
    return (
        db.query(BlockedUser.id)
        .filter(BlockedUser.user_id == blocker_id, BlockedUser.blocked_user_id == blocked_id)
        .first()
        is not None
    )


def list_friends(db: Session, user_id: int) -> list[User]:
    rows = (
        db.query(Friendship)
        .options(joinedload(Friendship.requester), joinedload(Friendship.recipient))
        .filter(
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
            Friendship.status == FRIENDSHIP_ACCEPTED,
        )
        .order_by(Friendship.id)
        .all()
    )
    friends: dict[int, User] = {}
    for row in rows:
        other = row.recipient if row.user_id == user_id else row.requester
        friends.setdefault(other.id, other)
    return list(friends.values())


def pending_requests(db: Session, user_id: int) -> list[Friendship]:
    """Pending requests addressed to the user."""
    return (
        db.query(Friendship)
        .options(joinedload(Friendship.requester))
        .filter(Friendship.friend_id == user_id, Friendship.status == FRIENDSHIP_PENDING)
        .order_by(Friendship.created_at.desc(), Friendship.id.desc())
        .all()
    )


def send_friend_request(db: Session, user_id: int, target_id: int) -> Friendship:
    # Order matters: the first failing check decides the error
    if user_id == target_id:
        raise Forbidden("You cannot send a friend request to yourself")
    _require_user(db, target_id)
    if are_friends(db, user_id, target_id):
        raise RuleViolation("You are already friends with this user")
    if has_pending_request_between(db, user_id, target_id):
        raise RuleViolation("A pending friend request already exists")
    if has_blocked(db, user_id, target_id) or has_blocked(db, target_id, user_id):
        raise RuleViolation("Cannot send a friend request to this user")

    pair_low, pair_high = canonical_pair(user_id, target_id)
    friendship = Friendship(
        user_id=user_id,
        friend_id=target_id,
        pair_low=pair_low,
        pair_high=pair_high,
        status=FRIENDSHIP_PENDING,
    )
    try:
        with db.begin_nested():
            db.add(friendship)
    except IntegrityError:
        # The other user's request for the same pair landed between our check and insert
        db.rollback()
        raise RuleViolation("A pending friend request already exists")
    db.commit()
    db.refresh(friendship)
    return friendship


def _pending_from(db: Session, requester_id: int, recipient_id: int) -> Friendship:
    friendship = (
        db.query(Friendship)
        .filter(
            Friendship.user_id == requester_id,
            Friendship.friend_id == recipient_id,
            Friendship.status == FRIENDSHIP_PENDING,
        )
        .first()
    )
    if friendship is None:
        raise NotFound("No pending friend request found")
    return friendship


def accept_friend_request(db: Session, user_id: int, requester_id: int) -> Friendship:
    """Accept a request that requester_id sent to user_id."""
    friendship = _pending_from(db, requester_id, user_id)
    friendship.status = FRIENDSHIP_ACCEPTED
    db.commit()
    db.refresh(friendship)
    return friendship


def reject_friend_request(db: Session, user_id: int, requester_id: int) -> None:
    friendship = _pending_from(db, requester_id, user_id)
    db.delete(friendship)
    db.commit()


def remove_friend(db: Session, user_id: int, other_id: int) -> None:
    deleted = db.query(Friendship).filter(_pair_filter(user_id, other_id)).delete(synchronize_session=False)
    if not deleted:
        db.rollback()
        raise NotFound("No friendship found to remove")
    db.commit()


def block_user(db: Session, user_id: int, target_id: int) -> BlockedUser:
    """Block target_id. Any friendship or pending request between the two is dropped."""
    if user_id == target_id:
        raise Forbidden("You cannot block yourself")
    _require_user(db, target_id)
    if has_blocked(db, user_id, target_id):
        raise RuleViolation("User is already blocked")
    try:
        removed = db.query(Friendship).filter(_pair_filter(user_id, target_id)).delete(synchronize_session=False)
        block = BlockedUser(user_id=user_id, blocked_user_id=target_id)
        db.add(block)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise RuleViolation("User is already blocked")
    if removed:
        logger.info("User %s blocked %s; removed %s friendship row(s)", user_id, target_id, removed)
    db.refresh(block)
    return block


def unblock_user(db: Session, user_id: int, target_id: int) -> None:
    deleted = (
        db.query(BlockedUser)
        .filter(BlockedUser.user_id == user_id, BlockedUser.blocked_user_id == target_id)
        .delete(synchronize_session=False)
    )
    if not deleted:
        db.rollback()
        raise NotFound("No block found for this user")
    db.commit()


def blocked_users(db: Session, user_id: int) -> list[User]:
    rows = (
        db.query(BlockedUser)
        .options(joinedload(BlockedUser.blocked))
        .filter(BlockedUser.user_id == user_id)
        .order_by(BlockedUser.id)
        .all()
    )
    return [row.blocked for row in rows]
