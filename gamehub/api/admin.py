"""
Admin-only management of the game catalog. Create/update take multipart forms so an icon can be uploaded.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from gamehub.core.stats import get_game
from . import storage
from .auth import require_admin
from .database import get_db
from .models import Game, User
from .serializers import game_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])

GameMode = Literal["online", "offline", "both"]


@router.get("/games")
def list_games(db: Session = Depends(get_db)):
    return [game_to_dict(g) for g in db.query(Game).order_by(Game.id).all()]


@router.post("/games", status_code=201)
def create_game(
    name: str = Form(..., min_length=1, max_length=255),
    mode: GameMode = Form(...),
    is_multiplayer: bool = Form(...),
    description: str | None = Form(None),
    icon: UploadFile | None = File(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    game = Game(name=name, mode=mode, description=description, is_multiplayer=is_multiplayer)
    if icon is not None and icon.filename:
        game.icon_path = storage.save_image(icon, "icons", field="icon")
    try:
        db.add(game)
        db.commit()
    except Exception:
        db.rollback()
        storage.delete_file(game.icon_path)
        raise
    db.refresh(game)
    logger.info("Admin %s created game %s (%s)", admin.id, game.id, game.name)
    return {"message": "Game created", "game": game_to_dict(game)}


@router.put("/games/{game_id}")
def update_game(
    game_id: int,
    name: str | None = Form(None, min_length=1, max_length=255),
    mode: GameMode | None = Form(None),
    is_multiplayer: bool | None = Form(None),
    description: str | None = Form(None),
    icon: UploadFile | None = File(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Partial update: only the fields sent are changed. A new icon replaces the old file."""
    game = get_game(db, game_id)
    if name is not None:
        game.name = name
    if mode is not None:
        game.mode = mode
    if description is not None:
        game.description = description
    if is_multiplayer is not None:
        game.is_multiplayer = is_multiplayer
    old_icon = new_icon = None
    if icon is not None and icon.filename:
        old_icon = game.icon_path
        new_icon = game.icon_path = storage.save_image(icon, "icons", field="icon")
    try:
        db.commit()
    except Exception:
        db.rollback()
        storage.delete_file(new_icon)
        raise
    storage.delete_file(old_icon)
    db.refresh(game)
    logger.info("Admin %s updated game %s", admin.id, game.id)
    return {"message": "Game updated", "game": game_to_dict(game)}


@router.delete("/games/{game_id}")
def delete_game(game_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    game = get_game(db, game_id)
    icon_path = game.icon_path
    db.delete(game)
    db.commit()
    storage.delete_file(icon_path)
    logger.info("Admin %s deleted game %s", admin.id, game_id)
    return {"message": "Game deleted"}
