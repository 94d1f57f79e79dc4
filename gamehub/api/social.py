"""
Friend requests, friend list and blocking.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gamehub.core import relationships
from .auth import get_current_user
from .database import get_db
from .models import User
from .serializers import block_to_dict, friendship_to_dict, pending_request_to_dict, public_user

router = APIRouter()


# ----- Friends -----

@router.get("/friends")
def get_friends(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [public_user(u) for u in relationships.list_friends(db, user.id)]


@router.get("/friends/pending")
def get_pending_requests(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Requests other users have sent to the caller."""
    return [pending_request_to_dict(f) for f in relationships.pending_requests(db, user.id)]


@router.post("/friends/request/{user_id}", status_code=201)
def send_friend_request(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    friendship = relationships.send_friend_request(db, user.id, user_id)
    return {"message": "Friend request sent", "friendship": friendship_to_dict(friendship)}


@router.post("/friends/accept/{user_id}")
def accept_friend_request(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    friendship = relationships.accept_friend_request(db, user.id, user_id)
    return {"message": "Friend request accepted", "friendship": friendship_to_dict(friendship)}


@router.post("/friends/reject/{user_id}")
def reject_friend_request(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    relationships.reject_friend_request(db, user.id, user_id)
    return {"message": "Friend request rejected"}


@router.delete("/friends/{user_id}")
def remove_friend(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    relationships.remove_friend(db, user.id, user_id)
    return {"message": "Friend removed"}


# ----- Blocking -----

@router.get("/users/blocked")
def get_blocked_users(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [public_user(u) for u in relationships.blocked_users(db, user.id)]


@router.post("/users/block/{user_id}", status_code=201)
def block_user(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    block = relationships.block_user(db, user.id, user_id)
    return {"message": "User blocked", "block": block_to_dict(block)}


@router.post("/users/unblock/{user_id}")
def unblock_user(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    relationships.unblock_user(db, user.id, user_id)
    return {"message": "User unblocked"}
