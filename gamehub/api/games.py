"""
Game catalog, result submission, statistics and play history.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from gamehub import config
from gamehub.core import stats
from gamehub.core.utils import paginate
from .auth import get_current_user
from .database import get_db
from .models import Game, User
from .serializers import game_to_dict, history_to_dict, statistic_to_dict

router = APIRouter()

PlayMode = Literal["online", "offline"]
Result = Literal["won", "lost", "draw", "abandoned"]


class RecordResultRequest(BaseModel):
    mode: PlayMode
    result: Result
    score: int = Field(ge=0)
    opponent_id: int | None = None
    opponent_type: Literal["ai", "human", "local"] | None = None
    points_earned: int | None = Field(default=None, ge=0)
    points_lost: int | None = Field(default=None, ge=0)


@router.get("/games")
def get_all_games(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [game_to_dict(g) for g in db.query(Game).order_by(Game.id).all()]


@router.post("/games/{game_id}/record-result", status_code=201)
def record_game_result(
    game_id: int,
    request: RecordResultRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Log a finished match; it also updates statistics unless played against a local opponent."""
    entry = stats.record_result(
        db,
        user.id,
        game_id,
        mode=request.mode,
        result=request.result,
        score=request.score,
        opponent_id=request.opponent_id,
        opponent_type=request.opponent_type,
        points_earned=request.points_earned or 0,
        points_lost=request.points_lost or 0,
    )
    return {"message": "Result recorded", "game_history": history_to_dict(entry, with_game=False)}


# ----- Statistics -----

@router.get("/statistics")
def get_all_statistics(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [statistic_to_dict(s) for s in stats.statistics_for(db, user.id)]


@router.get("/statistics/offline")
def get_offline_statistics(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [statistic_to_dict(s) for s in stats.statistics_for(db, user.id, mode="offline")]


@router.get("/statistics/online")
def get_online_statistics(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [statistic_to_dict(s) for s in stats.statistics_for(db, user.id, mode="online")]


@router.get("/statistics/game/{game_id}")
def get_game_statistics(game_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    game = stats.get_game(db, game_id)
    return {
        "game": game_to_dict(game),
        "statistics": [statistic_to_dict(s, with_game=False) for s in stats.statistics_for(db, user.id, game_id=game_id)],
    }


# ----- History -----

@router.get("/game-history")
def get_user_history(
    game_id: int | None = None,
    mode: PlayMode | None = None,
    result: Result | None = None,
    page: int | None = Query(None, ge=1),
    limit: int = Query(config.HISTORY_DEFAULT_LIMIT, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest first. Without page: a plain list of up to limit entries; with page: data + meta."""
    query = stats.history_query(db, user.id, game_id=game_id, mode=mode, result=result)
    if page is None:
        return [history_to_dict(h) for h in query.limit(limit).all()]
    result_page = paginate(query, page, limit)
    return {"data": [history_to_dict(h) for h in result_page.items], "meta": result_page.meta()}


@router.get("/game-history/{game_id}")
def get_game_history(
    game_id: int,
    mode: PlayMode | None = None,
    result: Result | None = None,
    page: int | None = Query(None, ge=1),
    limit: int = Query(config.HISTORY_DEFAULT_LIMIT, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = stats.get_game(db, game_id)
    query = stats.history_query(db, user.id, game_id=game_id, mode=mode, result=result)
    if page is None:
        return {"game": game_to_dict(game), "data": [history_to_dict(h, with_game=False) for h in query.limit(limit).all()]}
    result_page = paginate(query, page, limit)
    return {
        "game": game_to_dict(game),
        "data": [history_to_dict(h, with_game=False) for h in result_page.items],
        "meta": result_page.meta(),
    }
