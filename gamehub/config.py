"""
Single place for runtime configuration.
Every value can be overridden with an environment variable of the same name.
"""

import os

PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Auth
JWT_SECRET = os.environ.get("JWT_SECRET", "change-me-in-production-use-env")
ACCESS_TOKEN_EXPIRE_DAYS = int(os.environ.get("ACCESS_TOKEN_EXPIRE_DAYS", "30"))
# Lower rounds = faster register/login; 10 is still strong and ~instant
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "10"))

# Chat: when off, any two users may open a conversation (friendship is not checked)
CHAT_REQUIRE_FRIENDSHIP = _env_bool("CHAT_REQUIRE_FRIENDSHIP", False)

# Uploaded avatars and game icons
MEDIA_ROOT = os.environ.get("MEDIA_ROOT", os.path.join(PACKAGE_DIR, "storage"))
MEDIA_URL = os.environ.get("MEDIA_URL", "/storage")

CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get(
        "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if o.strip()
]

# Rate limits (attempts, window seconds), keyed by client IP
REGISTER_MAX_ATTEMPTS = 3
REGISTER_WINDOW_SECONDS = 900
LOGIN_MAX_ATTEMPTS = 5
LOGIN_WINDOW_SECONDS = 300

# Field limits
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 50
MESSAGE_MAX_LENGTH = 1000
IMAGE_MAX_BYTES = 2 * 1024 * 1024
IMAGE_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

# Pagination
CHAT_PAGE_SIZE = 50
CHAT_PAGE_SIZE_MAX = 100
HISTORY_DEFAULT_LIMIT = 10
