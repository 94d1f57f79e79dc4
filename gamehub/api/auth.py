"""
Auth helpers: password hashing, JWT access tokens and registration field checks.
Bcrypt accepts at most 72 bytes; we truncate manually before hashing.
Tokens carry a jti that must exist in auth_tokens, so logout can revoke them.
"""

import bcrypt
import re
import uuid
from datetime import datetime, timedelta, timezone
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from gamehub.config import (
    ACCESS_TOKEN_EXPIRE_DAYS,
    BCRYPT_ROUNDS,
    JWT_SECRET,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from gamehub.core.errors import Forbidden, NotAuthorized
from .database import get_db
from .models import AuthToken, User

ALGORITHM = "HS256"
BCRYPT_MAX_BYTES = 72

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PASSWORD_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
# Letters (Spanish accents included), digits, spaces, hyphen and underscore
USERNAME_PATTERN = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ0-9\s\-_]+$")
RESERVED_USERNAMES = {
    "admin", "administrator", "root", "system", "null", "undefined",
    "test", "demo", "example", "guest", "anonymous", "user", "default",
}
DANGEROUS_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"<script", r"javascript:", r"on\w+=", r"<iframe", r"<object", r"<embed",
        r"vbscript:", r"\x00", r"union.*select", r"select.*from", r"insert.*into",
        r"delete.*from", r"drop.*table",
    )
]

security = HTTPBearer(auto_error=False)


def _truncate_password(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    pwd_bytes = _truncate_password(password)
    return bcrypt.hashpw(pwd_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("ascii")


def verify_password(plain: str, hashed: str) -> bool:
    pwd_bytes = _truncate_password(plain)
    return bcrypt.checkpw(pwd_bytes, hashed.encode("ascii"))


def create_access_token(db: Session, user_id: int) -> str:
    """Issue a token and record its jti. Caller commits."""
    jti = str(uuid.uuid4())
    expire = datetime.now(timezone.utc) + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)
    payload = {"sub": str(user_id), "jti": jti, "exp": expire}
    db.add(AuthToken(id=jti, user_id=user_id))
    return jwt.encode(payload, JWT_SECRET, algorithm=ALGORITHM)


def decode_token(token: str) -> tuple[int, str] | None:
    """Return (user_id, jti), or None if the token is malformed or expired."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGORITHM])
        return int(payload["sub"]), payload["jti"]
    except (JWTError, KeyError, TypeError, ValueError):
        return None


def revoke_tokens(db: Session, user_id: int) -> int:
    """Delete every token of the user. Caller commits."""
    return db.query(AuthToken).filter(AuthToken.user_id == user_id).delete(synchronize_session=False)


def contains_dangerous_patterns(value: str) -> bool:
    return any(p.search(value) for p in DANGEROUS_PATTERNS)


def check_username(username: str) -> str:
    """Return the trimmed username or raise ValueError with the reason."""
    username = username.strip()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise ValueError(f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters")
    if not USERNAME_PATTERN.match(username):
        raise ValueError("Username may only contain letters, numbers, spaces, hyphens and underscores")
    if re.search(r"\s{2,}", username):
        raise ValueError("Username cannot contain consecutive spaces")
    if contains_dangerous_patterns(username):
        raise ValueError("Username contains forbidden characters")
    if username.lower() in RESERVED_USERNAMES:
        raise ValueError("Username is not allowed")
    return username


def check_email(email: str) -> str:
    """Return the normalized (trimmed, lowercased) email or raise ValueError."""
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Email format is not valid")
    if contains_dangerous_patterns(email):
        raise ValueError("Email contains forbidden characters")
    return email


def check_password(password: str) -> str:
    if not PASSWORD_PATTERN.match(password):
        raise ValueError("Password may only contain letters and numbers")
    return password


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if not credentials:
        raise NotAuthorized("Not authenticated")
    decoded = decode_token(credentials.credentials)
    if not decoded:
        raise NotAuthorized("Invalid or expired token")
    user_id, jti = decoded
    token = db.query(AuthToken).filter(AuthToken.id == jti, AuthToken.user_id == user_id).first()
    if token is None:
        raise NotAuthorized("Token has been revoked")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotAuthorized("User not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise Forbidden("Access denied. Administrator permissions required.")
    return user
