"""
Convert ORM rows to JSON-serializable dicts for responses.
"""

from datetime import datetime
from typing import Any

from . import storage
from .models import BlockedUser, ChatMessage, Friendship, Game, GameHistory, GameStatistic, User


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def user_to_dict(user: User) -> dict[str, Any]:
    """Own account view (password hash never included)."""
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "avatar_url": storage.url_for(user.avatar_path),
        "is_admin": bool(user.is_admin),
        "created_at": _iso(user.created_at),
    }


def public_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "avatar_url": storage.url_for(user.avatar_path),
    }


def friendship_to_dict(friendship: Friendship) -> dict[str, Any]:
    return {
        "id": friendship.id,
        "user_id": friendship.user_id,
        "friend_id": friendship.friend_id,
        "status": friendship.status,
        "created_at": _iso(friendship.created_at),
        "updated_at": _iso(friendship.updated_at),
    }


def pending_request_to_dict(friendship: Friendship) -> dict[str, Any]:
    out = public_user(friendship.requester)
    out["request_id"] = friendship.id
    out["requested_at"] = _iso(friendship.created_at)
    return out


def block_to_dict(block: BlockedUser) -> dict[str, Any]:
    return {
        "id": block.id,
        "user_id": block.user_id,
        "blocked_user_id": block.blocked_user_id,
        "created_at": _iso(block.created_at),
    }


def message_to_dict(message: ChatMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "chat_id": message.chat_id,
        "message": message.message,
        "sender": public_user(message.sender),
        "is_read": bool(message.is_read),
        "read_at": _iso(message.read_at),
        "created_at": _iso(message.created_at),
    }


def game_to_dict(game: Game) -> dict[str, Any]:
    return {
        "id": game.id,
        "name": game.name,
        "mode": game.mode,
        "description": game.description,
        "icon_path": game.icon_path,
        "icon_url": storage.url_for(game.icon_path),
        "is_multiplayer": bool(game.is_multiplayer),
        "created_at": _iso(game.created_at),
        "updated_at": _iso(game.updated_at),
    }


def statistic_to_dict(stat: GameStatistic, with_game: bool = True) -> dict[str, Any]:
    out = {
        "id": stat.id,
        "user_id": stat.user_id,
        "game_id": stat.game_id,
        "mode": stat.mode,
        "games_played": stat.games_played,
        "games_won": stat.games_won,
        "games_lost": stat.games_lost,
        "games_draw": stat.games_draw,
        "high_score": stat.high_score,
        "updated_at": _iso(stat.updated_at),
    }
    if with_game:
        out["game"] = game_to_dict(stat.game)
    return out


def history_to_dict(entry: GameHistory, with_game: bool = True) -> dict[str, Any]:
    out = {
        "id": entry.id,
        "user_id": entry.user_id,
        "game_id": entry.game_id,
        "mode": entry.mode,
        "opponent_id": entry.opponent_id,
        "opponent_type": entry.opponent_type,
        "counts_for_stats": bool(entry.counts_for_stats),
        "result": entry.result,
        "score": entry.score,
        "points_earned": entry.points_earned,
        "points_lost": entry.points_lost,
        "created_at": _iso(entry.created_at),
    }
    if with_game:
        out["game"] = game_to_dict(entry.game)
    return out
