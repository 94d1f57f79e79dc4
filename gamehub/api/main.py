"""
FastAPI backend for GameHub.
Provides the JSON API: accounts, friends, chat, games, statistics and history.
"""

import logging

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gamehub import __version__, config
from gamehub.core.accounts import delete_account
from gamehub.core.errors import (
    GameHubError,
    NotAuthorized,
    RateLimited,
    ValidationFailed,
)
from . import admin, chat, games, social, storage
from .auth import (
    check_email,
    check_password,
    check_username,
    create_access_token,
    get_current_user,
    hash_password,
    revoke_tokens,
    verify_password,
)
from .database import get_db, init_db
from .models import User
from .ratelimit import client_ip, limiter, throttle_login, throttle_register
from .serializers import public_user, user_to_dict

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="GameHub API",
    description="Backend API for GameHub - accounts, friends, chat, games and statistics",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = getattr(request, "method", "?")
    url = getattr(request, "url", None)
    path = url.path if url else "?"
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            logger.error("[%s] %s %s", response.status_code, method, path)
        return response
    except Exception:
        logger.error("[500] %s %s (exception)", method, path)
        raise


@app.exception_handler(GameHubError)
async def gamehub_error_handler(request, exc: GameHubError):
    content = {"detail": exc.message}
    headers = {}
    if isinstance(exc, ValidationFailed):
        content["errors"] = {exc.field: [exc.message]}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(exc.retry_after)
    if isinstance(exc, NotAuthorized):
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    """Log the full traceback server-side; the client only gets an opaque 500 (with CORS headers)."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    origin = request.headers.get("origin")
    allow_origin = origin if origin in config.CORS_ORIGINS else (config.CORS_ORIGINS or ["*"])[0]
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
        headers={
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Credentials": "true",
        },
    )


app.mount(config.MEDIA_URL, StaticFiles(directory=config.MEDIA_ROOT, check_dir=False), name="storage")

app.include_router(social.router)
app.include_router(chat.router)
app.include_router(games.router)
app.include_router(admin.router)


# ===== Pydantic Models =====

class RegisterRequest(BaseModel):
    email: str = Field(max_length=config.EMAIL_MAX_LENGTH)
    username: str
    password: str = Field(min_length=config.PASSWORD_MIN_LENGTH, max_length=config.PASSWORD_MAX_LENGTH)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return check_email(value)

    @field_validator("username")
    @classmethod
    def _username(cls, value: str) -> str:
        return check_username(value)

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        return check_password(value)


class LoginRequest(BaseModel):
    email: str = Field(max_length=config.EMAIL_MAX_LENGTH)
    password: str = Field(max_length=config.PASSWORD_MAX_LENGTH)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return value.strip().lower()


@app.on_event("startup")
def on_startup():
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "GameHub API", "version": __version__}


# ----- Auth -----

@app.post("/register", status_code=201)
def register(
    request: RegisterRequest,
    limit_key: str = Depends(throttle_register),
    db: Session = Depends(get_db),
):
    """Register with email, username and password. Returns the user and an access token."""
    if db.query(User.id).filter(User.email == request.email).first():
        raise ValidationFailed("email", "Email is already in use")
    user = User(
        email=request.email,
        username=request.username,
        password_hash=hash_password(request.password),
    )
    try:
        db.add(user)
        db.flush()
        token = create_access_token(db, user.id)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationFailed("email", "Email is already in use")
    limiter.clear(limit_key)
    logger.info("User registered: id=%s email=%s", user.id, user.email)
    return {"message": "User registered", "user": user_to_dict(user), "token": token}


@app.post("/login")
def login(
    request: LoginRequest,
    http_request: Request,
    limit_key: str = Depends(throttle_login),
    db: Session = Depends(get_db),
):
    """Login with email and password."""
    user = db.query(User).filter(User.email == request.email).first()
    if not user or not verify_password(request.password, user.password_hash):
        limiter.hit(limit_key)
        logger.warning("Failed login for %s from %s", request.email, client_ip(http_request))
        raise NotAuthorized("Invalid email or password")
    limiter.clear(limit_key)
    token = create_access_token(db, user.id)
    db.commit()
    logger.info("Login: user %s", user.id)
    return {"message": "Logged in", "user": user_to_dict(user), "token": token}


@app.post("/logout")
def logout(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Revoke every token of the caller (all sessions)."""
    revoked = revoke_tokens(db, user.id)
    db.commit()
    logger.info("Logout: user %s, %s token(s) revoked", user.id, revoked)
    return {"message": "Logged out"}


@app.get("/user")
def current_user(user: User = Depends(get_current_user)):
    return {"user": user_to_dict(user)}


# ----- Users -----

@app.get("/user/profile")
def get_profile(user: User = Depends(get_current_user)):
    return {"message": "Profile loaded", "user": user_to_dict(user)}


@app.post("/user/profile-image")
def update_profile_image(
    image: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Replace the avatar. The previous file is removed once the new path is saved."""
    new_path = storage.save_image(image, "avatars")
    old_path = user.avatar_path
    user.avatar_path = new_path
    try:
        db.commit()
    except Exception:
        db.rollback()
        storage.delete_file(new_path)
        raise
    storage.delete_file(old_path)
    db.refresh(user)
    return {"message": "Profile image updated", "user": user_to_dict(user)}


@app.delete("/user/delete-account")
def delete_user_account(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Permanently delete the caller's account and everything that belongs to it."""
    avatar_path = user.avatar_path
    delete_account(db, user)
    storage.delete_file(avatar_path)
    return {"message": "Account deleted"}


@app.get("/users")
def list_users(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [public_user(u) for u in db.query(User).order_by(User.id).all()]

