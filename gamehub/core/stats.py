"""
Match result ingestion and the statistics fold.

Every submitted result is appended to game_history. Results against a real opponent
(human or ai) are also folded into the (user, game, mode) row of game_statistics:
games_played always grows by one, exactly one of won/lost/draw grows for those results
(abandoned grows none of them), and high_score keeps the running maximum. The history
insert and the fold share one transaction.
"""

import logging

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, joinedload

from gamehub.api.models import (
    OPPONENT_TYPES,
    PLAY_MODES,
    RESULTS,
    Game,
    GameHistory,
    GameStatistic,
    User,
)
from .errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

RESULT_COUNTERS = {
    "won": "games_won",
    "lost": "games_lost",
    "draw": "games_draw",
}


def counts_for_stats(opponent_type: str) -> bool:
    """Local (same-device) matches are logged but never aggregated."""
    return opponent_type != "local"


def get_game(db: Session, game_id: int) -> Game:
    game = db.query(Game).filter(Game.id == game_id).first()
    if game is None:
        raise NotFound("Game not found")
    return game


def find_statistic(db: Session, user_id: int, game_id: int, mode: str) -> GameStatistic | None:
    return (
        db.query(GameStatistic)
        .filter(GameStatistic.user_id == user_id, GameStatistic.game_id == game_id, GameStatistic.mode == mode)
        .first()
    )


def _ensure_statistic_row(db: Session, user_id: int, game_id: int, mode: str) -> None:
    if find_statistic(db, user_id, game_id, mode) is not None:
        return
    try:
        with db.begin_nested():
            db.add(
                GameStatistic(
                    user_id=user_id,
                    game_id=game_id,
                    mode=mode,
                    games_played=0,
                    games_won=0,
                    games_lost=0,
                    games_draw=0,
                    high_score=0,
                )
            )
    except IntegrityError:
        # A concurrent submission created the row first; the update below still applies
        logger.info("Statistic row (%s, %s, %s) created concurrently", user_id, game_id, mode)


def fold_result(db: Session, user_id: int, game_id: int, mode: str, result: str, score: int) -> None:
    """Upsert the aggregate row with store-level increments so concurrent folds never lose one."""
    _ensure_statistic_row(db, user_id, game_id, mode)
    values = {
        "games_played": GameStatistic.games_played + 1,
        "high_score": case((GameStatistic.high_score < score, score), else_=GameStatistic.high_score),
    }
    counter = RESULT_COUNTERS.get(result)
    if counter:
        values[counter] = getattr(GameStatistic, counter) + 1
    (
        db.query(GameStatistic)
        .filter(GameStatistic.user_id == user_id, GameStatistic.game_id == game_id, GameStatistic.mode == mode)
        .update(values, synchronize_session=False)
    )


def record_result(
    db: Session,
    user_id: int,
    game_id: int,
    mode: str,
    result: str,
    score: int,
    opponent_id: int | None = None,
    opponent_type: str | None = None,
    points_earned: int = 0,
    points_lost: int = 0,
) -> GameHistory:
    game = get_game(db, game_id)
    opponent_type = opponent_type or "ai"
    if mode not in PLAY_MODES:
        raise ValidationFailed("mode", f"mode must be one of: {', '.join(PLAY_MODES)}")
    if result not in RESULTS:
        raise ValidationFailed("result", f"result must be one of: {', '.join(RESULTS)}")
    if opponent_type not in OPPONENT_TYPES:
        raise ValidationFailed("opponent_type", f"opponent_type must be one of: {', '.join(OPPONENT_TYPES)}")
    if score < 0:
        raise ValidationFailed("score", "score must be zero or greater")
    if opponent_id is not None and db.query(User.id).filter(User.id == opponent_id).first() is None:
        raise ValidationFailed("opponent_id", "The selected opponent does not exist")

    counted = counts_for_stats(opponent_type)
    entry = GameHistory(
        user_id=user_id,
        game_id=game.id,
        mode=mode,
        opponent_id=opponent_id,
        opponent_type=opponent_type,
        counts_for_stats=counted,
        result=result,
        score=score,
        points_earned=points_earned or 0,
        points_lost=points_lost or 0,
    )
    try:
        db.add(entry)
        db.flush()
        if counted:
            fold_result(db, user_id, game.id, mode, result, score)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    return entry


def statistics_for(db: Session, user_id: int, mode: str | None = None, game_id: int | None = None) -> list[GameStatistic]:
    query = (
        db.query(GameStatistic)
        .options(joinedload(GameStatistic.game))
        .filter(GameStatistic.user_id == user_id)
    )
    if mode is not None:
        query = query.filter(GameStatistic.mode == mode)
    if game_id is not None:
        query = query.filter(GameStatistic.game_id == game_id)
    return query.order_by(GameStatistic.game_id, GameStatistic.mode).all()


def history_query(
    db: Session,
    user_id: int,
    game_id: int | None = None,
    mode: str | None = None,
    result: str | None = None,
) -> Query:
    """User's match history, newest first, optionally filtered."""
    query = db.query(GameHistory).options(joinedload(GameHistory.game)).filter(GameHistory.user_id == user_id)
    if game_id is not None:
        query = query.filter(GameHistory.game_id == game_id)
    if mode is not None:
        query = query.filter(GameHistory.mode == mode)
    if result is not None:
        query = query.filter(GameHistory.result == result)
    return query.order_by(GameHistory.created_at.desc(), GameHistory.id.desc())
