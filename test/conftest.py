"""
Shared fixtures: a throwaway SQLite database per test, a TestClient wired to it,
and helpers to register users, grant admin rights and create games.

Sessions opened in tests must be closed before the next HTTP call (use session_scope).
"""

import itertools
from contextlib import contextmanager
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from gamehub import config
from gamehub.api import auth
from gamehub.api.database import get_db, init_db, make_engine
from gamehub.api.main import app
from gamehub.api.models import Game, User
from gamehub.api.ratelimit import limiter


@dataclass
class TestUser:
    __test__ = False

    id: int
    email: str
    username: str
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session_scope(session_factory):
    @contextmanager
    def _scope():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    return _scope


@pytest.fixture
def client(session_factory, tmp_path, monkeypatch):
    monkeypatch.setattr(config, "MEDIA_ROOT", str(tmp_path / "media"))
    # Fast hashes for tests
    monkeypatch.setattr(auth, "BCRYPT_ROUNDS", 4)
    limiter.reset()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.reset()


@pytest.fixture
def register(client):
    counter = itertools.count(1)

    def _register(username: str | None = None, email: str | None = None, password: str = "secret123") -> TestUser:
        n = next(counter)
        username = username or f"player{n}"
        email = email or f"player{n}@example.com"
        resp = client.post("/register", json={"email": email, "username": username, "password": password})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return TestUser(
            id=body["user"]["id"],
            email=body["user"]["email"],
            username=body["user"]["username"],
            token=body["token"],
        )

    return _register


@pytest.fixture
def make_admin(session_scope):
    def _make_admin(user: TestUser) -> TestUser:
        with session_scope() as s:
            s.query(User).filter(User.id == user.id).update({"is_admin": True})
            s.commit()
        return user

    return _make_admin


@pytest.fixture
def make_game(session_scope):
    def _make_game(name: str = "Snake", mode: str = "both", is_multiplayer: bool = False) -> int:
        with session_scope() as s:
            game = Game(name=name, mode=mode, description=f"{name} description", is_multiplayer=is_multiplayer)
            s.add(game)
            s.commit()
            return game.id

    return _make_game
