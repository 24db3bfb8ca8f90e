"""Users API — registration, login, token refresh, logout, password change.

Learn: Routes for the account and session lifecycle:
- POST /users/register → create an account
- POST /users/login → username/email + password → tokens (+ cookies)
- POST /users/refresh-token → refresh token → rotated token pair
- POST /users/logout → revoke the stored refresh token, clear cookies
- GET /users/me → current user
- POST /users/change-password → re-hash, revoke sessions
- GET /users/me/history → watched videos

Tokens are returned in the body AND set as httpOnly cookies so both API
clients and browsers work without extra plumbing.
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.dependencies import get_current_user, get_user_service
from videotube.auth.errors import TokenError
from videotube.config import settings
from videotube.constants import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from videotube.db.engine import get_db
from videotube.db.models import User
from videotube.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenResponse,
    UserCreate,
    UserRead,
)
from videotube.schemas.video import VideoRead
from videotube.services.user_service import (
    InvalidCredentialsError,
    UserExistsError,
    UserService,
)
from videotube.services.video_service import VideoService

router = APIRouter(prefix="/users")


def _set_session_cookies(response: Response, access_token: str, refresh_token: str):
    secure = settings.environment != "development"
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        access_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        refresh_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=settings.refresh_token_expire_days * 24 * 3600,
    )


def _clear_session_cookies(response: Response):
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=UserRead, status_code=201)
async def register(body: UserCreate, users: UserService = Depends(get_user_service)):
    """Create a new user account."""
    try:
        return await users.register(body)
    except UserExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    users: UserService = Depends(get_user_service),
):
    """Login with username or email and password → tokens."""
    try:
        user, access_token, refresh_token = await users.authenticate(
            body.password, username=body.username, email=body.email
        )
    except InvalidCredentialsError:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    _set_session_cookies(response, access_token, refresh_token)
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserRead.model_validate(user),
    )


# ─── Refresh ────────────────────────────────────────────


@router.post("/refresh-token", response_model=TokenResponse)
async def refresh_token(
    response: Response,
    body: Optional[RefreshRequest] = None,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    users: UserService = Depends(get_user_service),
):
    """Exchange the current refresh token for a new access + refresh pair."""
    token = (body.refresh_token if body else None) or refresh_cookie
    if not token:
        raise HTTPException(status_code=401, detail="Refresh token required")

    try:
        _, access_token, new_refresh = await users.refresh(token)
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))

    _set_session_cookies(response, access_token, new_refresh)
    return TokenResponse(access_token=access_token, refresh_token=new_refresh)


# ─── Logout ─────────────────────────────────────────────


@router.post("/logout")
async def logout(
    response: Response,
    user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """End the session: the stored refresh token stops working."""
    await users.logout(user.id)
    _clear_session_cookies(response)
    return {"logged_out": True}


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(user: User = Depends(get_current_user)):
    """Get the current authenticated user's info."""
    return user


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Change password. Existing refresh tokens are revoked."""
    try:
        await users.change_password(user.id, body.old_password, body.new_password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _clear_session_cookies(response)
    return {"changed": True}


@router.get("/me/history", response_model=list[VideoRead])
async def get_watch_history(
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Videos the current user has watched, most recent first."""
    return await VideoService(db).watch_history(user.id, limit=limit)
