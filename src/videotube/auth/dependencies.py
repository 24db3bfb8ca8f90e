"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to build the shared
auth objects and to resolve the current user from the request.

The access token may arrive either way:
1. Authorization: Bearer <token> (API clients)
2. accessToken cookie (browsers, set at login)
"""

from functools import lru_cache
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.auth.errors import TokenError
from videotube.auth.password import PasswordHasher
from videotube.auth.session import SessionAuthority
from videotube.config import settings
from videotube.constants import ACCESS_TOKEN_COOKIE
from videotube.db.engine import get_db
from videotube.db.models import User
from videotube.services.user_service import UserService


@lru_cache
def get_authority() -> SessionAuthority:
    """Process-wide session authority built from settings."""
    return SessionAuthority(settings.token_config())


@lru_cache
def get_hasher() -> PasswordHasher:
    """Process-wide password hasher (shares one concurrency bound)."""
    return PasswordHasher(
        rounds=settings.bcrypt_rounds,
        max_concurrent=settings.max_concurrent_hashes,
    )


def get_user_service(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
    authority: SessionAuthority = Depends(get_authority),
) -> UserService:
    return UserService(db, hasher, authority)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    access_cookie: Optional[str] = Cookie(None, alias=ACCESS_TOKEN_COOKIE),
    authority: SessionAuthority = Depends(get_authority),
    users: UserService = Depends(get_user_service),
) -> Optional[User]:
    """Resolve the current user, or None when no token was presented.

    A token that is present but expired/invalid is still a 401 — only the
    complete absence of credentials yields None.
    """
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:]
    elif access_cookie:
        token = access_cookie
    if not token:
        return None

    try:
        verified = authority.verify_access_token(token)
    except TokenError as e:
        raise _unauthorized(str(e))

    user = await users.get(verified.claims.identifier)
    if not user:
        raise _unauthorized("User no longer exists")
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    """Resolve the current user (required — 401 if no auth)."""
    if not user:
        raise _unauthorized("Authentication required")
    return user
