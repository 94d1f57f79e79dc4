"""
Admin game catalog management over multipart forms.
"""

import os

import pytest
from sqlalchemy.orm import Session

from gamehub import config
from gamehub.api.models import Game, GameHistory, GameStatistic

PNG = ("icon.png", b"\x89PNG fake icon", "image/png")


def _icon_file(url):
    return os.path.join(config.MEDIA_ROOT, url[len(config.MEDIA_URL) + 1:])


@pytest.fixture
def admin(register, make_admin):
    return make_admin(register())


def test_admin_routes_require_admin(client, register):
    user = register()
    assert client.get("/admin/games").status_code == 401
    assert client.get("/admin/games", headers=user.headers).status_code == 403
    resp = client.post(
        "/admin/games",
        data={"name": "Snake", "mode": "offline", "is_multiplayer": "false"},
        headers=user.headers,
    )
    assert resp.status_code == 403


def test_create_game_with_icon(client, admin, register):
    resp = client.post(
        "/admin/games",
        data={"name": "Snake", "mode": "offline", "is_multiplayer": "false", "description": "Eat apples"},
        files={"icon": PNG},
        headers=admin.headers,
    )
    assert resp.status_code == 201, resp.text
    game = resp.json()["game"]
    assert game["name"] == "Snake"
    assert game["is_multiplayer"] is False
    assert os.path.exists(_icon_file(game["icon_url"]))

    # Visible in both catalogs, and to ordinary users
    assert [g["id"] for g in client.get("/admin/games", headers=admin.headers).json()] == [game["id"]]
    player = register()
    assert [g["name"] for g in client.get("/games", headers=player.headers).json()] == ["Snake"]


def test_create_game_without_icon(client, admin):
    resp = client.post(
        "/admin/games",
        data={"name": "Chess", "mode": "both", "is_multiplayer": "true"},
        headers=admin.headers,
    )
    assert resp.status_code == 201
    assert resp.json()["game"]["icon_url"] is None
    assert resp.json()["game"]["is_multiplayer"] is True


def test_create_game_validation(client, admin, session_scope):
    bad_mode = client.post(
        "/admin/games",
        data={"name": "Snake", "mode": "sometimes", "is_multiplayer": "false"},
        headers=admin.headers,
    )
    assert bad_mode.status_code == 422
    bad_icon = client.post(
        "/admin/games",
        data={"name": "Snake", "mode": "offline", "is_multiplayer": "false"},
        files={"icon": ("icon.txt", b"text", "text/plain")},
        headers=admin.headers,
    )
    assert bad_icon.status_code == 422
    assert "icon" in bad_icon.json()["errors"]
    with session_scope() as s:
        assert s.query(Game).count() == 0


def test_partial_update_and_icon_replacement(client, admin):
    created = client.post(
        "/admin/games",
        data={"name": "Snake", "mode": "offline", "is_multiplayer": "false", "description": "Eat apples"},
        files={"icon": PNG},
        headers=admin.headers,
    ).json()["game"]
    old_icon = _icon_file(created["icon_url"])

    resp = client.put(f"/admin/games/{created['id']}", data={"name": "Snake II"}, headers=admin.headers)
    assert resp.status_code == 200
    game = resp.json()["game"]
    assert game["name"] == "Snake II"
    assert game["description"] == "Eat apples"
    assert game["mode"] == "offline"
    assert game["icon_url"] == created["icon_url"]

    resp = client.put(
        f"/admin/games/{created['id']}",
        data={"mode": "both"},
        files={"icon": ("new.gif", b"GIF89a", "image/gif")},
        headers=admin.headers,
    )
    game = resp.json()["game"]
    assert game["mode"] == "both"
    assert game["icon_url"].endswith(".gif")
    assert os.path.exists(_icon_file(game["icon_url"]))
    assert not os.path.exists(old_icon)

    assert client.put("/admin/games/9999", data={"name": "Nope"}, headers=admin.headers).status_code == 404


def test_failed_update_keeps_old_icon_and_discards_new(client, admin, session_scope, monkeypatch):
    created = client.post(
        "/admin/games",
        data={"name": "Snake", "mode": "offline", "is_multiplayer": "false"},
        files={"icon": PNG},
        headers=admin.headers,
    ).json()["game"]
    icons_dir = os.path.join(config.MEDIA_ROOT, "icons")
    before = sorted(os.listdir(icons_dir))

    def failing_commit(self):
        raise RuntimeError("database unavailable")

    with monkeypatch.context() as m:
        m.setattr(Session, "commit", failing_commit)
        with pytest.raises(RuntimeError):
            client.put(
                f"/admin/games/{created['id']}",
                data={"name": "Snake II"},
                files={"icon": ("new.gif", b"GIF89a", "image/gif")},
                headers=admin.headers,
            )

    assert sorted(os.listdir(icons_dir)) == before
    assert os.path.exists(_icon_file(created["icon_url"]))
    with session_scope() as s:
        game = s.query(Game).one()
        assert game.name == "Snake"
        assert game.icon_path == created["icon_path"]


def test_delete_game_removes_icon_and_dependents(client, admin, session_scope):
    created = client.post(
        "/admin/games",
        data={"name": "Snake", "mode": "offline", "is_multiplayer": "false"},
        files={"icon": PNG},
        headers=admin.headers,
    ).json()["game"]
    client.post(
        f"/games/{created['id']}/record-result",
        json={"mode": "offline", "result": "won", "score": 10},
        headers=admin.headers,
    )

    assert client.delete(f"/admin/games/{created['id']}", headers=admin.headers).status_code == 200
    assert not os.path.exists(_icon_file(created["icon_url"]))
    with session_scope() as s:
        assert s.query(Game).count() == 0
        assert s.query(GameHistory).count() == 0
        assert s.query(GameStatistic).count() == 0
    assert client.delete(f"/admin/games/{created['id']}", headers=admin.headers).status_code == 404
