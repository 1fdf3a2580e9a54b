import os
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
ALGORITHM = "HS256"
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "sweatfix_session")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(24 * 60 * 60)))
APP_ENV = os.getenv("APP_ENV", "development").strip().lower()


def is_production() -> bool:
    return APP_ENV == "production"


def create_session_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(seconds=SESSION_MAX_AGE_SECONDS)
    )
    to_encode: dict[str, Any] = {"sub": subject, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_session_token(token: str) -> str:
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    subject = payload.get("sub")
    if not subject:
        raise JWTError("Missing subject")
    return subject


def session_cookie_options() -> dict[str, Any]:
    """Cookie attributes for the session token.

    Production deployments sit behind a cross-site frame, so the cookie must be
    ``Secure`` with ``SameSite=None`` there; local development uses ``Lax``.
    """
    production = is_production()
    return {
        "max_age": SESSION_MAX_AGE_SECONDS,
        "httponly": True,
        "secure": production,
        "samesite": "none" if production else "lax",
    }
