import logging
import os
from typing import Any, Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse
from jose import JWTError
from pydantic import BaseModel, ConfigDict, StrictStr
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sweatfix.core.security import (
    SESSION_COOKIE_NAME,
    create_session_token,
    decode_session_token,
    session_cookie_options,
)
from sweatfix.db.models import User
from sweatfix.db.session import get_db

router = APIRouter(tags=["auth"])
logger = logging.getLogger("uvicorn.error")

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
GOOGLE_SCOPES = "openid profile email"

DEMO_GOOGLE_ID = "demo_user"
DEMO_NAME = "Demo User"
DEMO_EMAIL = "demo@sweatfix.com"
DEMO_AVATAR = "https://picsum.photos/seed/demo/200"

OAUTH_SUCCESS_PAGE = """
<html>
  <body>
    <script>
      if (window.opener) {
        window.opener.postMessage({ type: 'OAUTH_AUTH_SUCCESS' }, '*');
        window.close();
      } else {
        window.location.href = '/';
      }
    </script>
    <p>Authentication successful. This window should close automatically.</p>
  </body>
</html>
"""


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: StrictStr


class LogoutResponse(BaseModel):
    success: bool = True


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def _callback_url() -> str:
    return f"{APP_URL}/auth/google/callback"


def _set_session(response: Response, user: User) -> None:
    token = create_session_token(subject=str(user.id))
    response.set_cookie(SESSION_COOKIE_NAME, token, **session_cookie_options())


def get_optional_user(
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if not session_token:
        return None
    try:
        user_id = int(decode_session_token(session_token))
    except (JWTError, ValueError):
        return None
    return db.query(User).filter(User.id == user_id).first()


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise _unauthorized()
    return user


def get_or_create_user(
    db: Session,
    *,
    google_id: str,
    name: Optional[str],
    email: Optional[str],
    avatar: Optional[str],
) -> User:
    user = db.query(User).filter(User.google_id == google_id).first()
    if user:
        return user
    user = User(google_id=google_id, name=name, email=email, avatar=avatar)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_created user_id=%s google_id=%s", user.id, google_id)
    return user


def _exchange_code_for_profile(code: str) -> dict[str, Any]:
    token_response = httpx.post(
        GOOGLE_TOKEN_URL,
        data={
            "code": code,
            "client_id": GOOGLE_CLIENT_ID,
            "client_secret": GOOGLE_CLIENT_SECRET,
            "redirect_uri": _callback_url(),
            "grant_type": "authorization_code",
        },
        timeout=10.0,
    )
    token_response.raise_for_status()
    access_token = token_response.json()["access_token"]
    profile_response = httpx.get(
        GOOGLE_USERINFO_URL,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=10.0,
    )
    profile_response.raise_for_status()
    return profile_response.json()


@router.get("/api/me", response_model=Optional[UserResponse])
def read_me(user: Optional[User] = Depends(get_optional_user)) -> Optional[UserResponse]:
    if user is None:
        return None
    return UserResponse.model_validate(user)


@router.post("/api/auth/demo", response_model=UserResponse)
def demo_login(response: Response, db: Session = Depends(get_db)) -> UserResponse:
    try:
        user = get_or_create_user(
            db,
            google_id=DEMO_GOOGLE_ID,
            name=DEMO_NAME,
            email=DEMO_EMAIL,
            avatar=DEMO_AVATAR,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("demo_login_failed detail=%s", str(exc))
        raise HTTPException(status_code=500, detail="Login failed")
    _set_session(response, user)
    logger.info("demo_login user_id=%s", user.id)
    return UserResponse.model_validate(user)


@router.get("/api/auth/google")
def google_login() -> RedirectResponse:
    query = urlencode(
        {
            "client_id": GOOGLE_CLIENT_ID,
            "redirect_uri": _callback_url(),
            "response_type": "code",
            "scope": GOOGLE_SCOPES,
        }
    )
    return RedirectResponse(f"{GOOGLE_AUTH_URL}?{query}")


@router.get("/auth/google/callback")
def google_callback(code: Optional[str] = None, db: Session = Depends(get_db)) -> Response:
    if not code:
        return RedirectResponse("/")
    try:
        profile = _exchange_code_for_profile(code)
        google_id = str(profile["sub"])
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        logger.warning("google_callback_failed detail=%s", str(exc)[:220])
        return RedirectResponse("/")

    user = get_or_create_user(
        db,
        google_id=google_id,
        name=profile.get("name"),
        email=profile.get("email"),
        avatar=profile.get("picture"),
    )
    page = HTMLResponse(OAUTH_SUCCESS_PAGE)
    _set_session(page, user)
    return page


@router.get("/api/logout", response_model=LogoutResponse)
def logout(response: Response) -> LogoutResponse:
    options = session_cookie_options()
    response.delete_cookie(
        SESSION_COOKIE_NAME,
        httponly=options["httponly"],
        secure=options["secure"],
        samesite=options["samesite"],
    )
    return LogoutResponse()


@router.put("/api/user", response_model=UserResponse)
def update_user(
    payload: UserUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserResponse:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid name")
    user.name = name
    db.commit()
    db.refresh(user)
    return UserResponse.model_validate(user)
