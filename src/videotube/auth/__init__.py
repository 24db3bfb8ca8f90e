"""Authentication: password hashing and JWT session tokens.

Two token classes, each signed with its own secret:
1. Access token → short-lived, carries the user's identity claims
2. Refresh token → long-lived, carries only the user id, stored on the
   user row so it can be rotated or revoked

Everything here is stateless. Persistence of the hash and the stored
refresh token belongs to the user service.
"""

from videotube.auth.errors import (
    AuthError,
    CryptoFailure,
    TokenError,
    TokenExpired,
    TokenInvalid,
)
from videotube.auth.jwt import (
    SessionClaims,
    TokenConfig,
    VerifiedToken,
    issue_access_token,
    issue_refresh_token,
    verify_token,
)
from videotube.auth.password import PasswordHasher, hash_password, verify_password
from videotube.auth.session import SessionAuthority, SessionState

__all__ = [
    "AuthError",
    "CryptoFailure",
    "PasswordHasher",
    "SessionAuthority",
    "SessionClaims",
    "SessionState",
    "TokenConfig",
    "TokenError",
    "TokenExpired",
    "TokenInvalid",
    "VerifiedToken",
    "hash_password",
    "issue_access_token",
    "issue_refresh_token",
    "verify_password",
    "verify_token",
]
