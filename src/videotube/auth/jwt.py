"""JWT token creation and verification.

Two token classes, each with its own secret and lifetime:
- Access token: short-lived, carries {sub, email, username, fullname}
- Refresh token: long-lived, carries only {sub} plus a random jti

Expiry is checked against an explicit `now` instead of the wall clock
inside PyJWT, so callers (and tests) control time.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from videotube.auth.errors import TokenExpired, TokenInvalid

ACCESS = "access"
REFRESH = "refresh"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenConfig:
    """Signing secrets and lifetimes for both token classes."""

    access_secret: str
    access_ttl: timedelta
    refresh_secret: str
    refresh_ttl: timedelta
    algorithm: str = "HS256"

    def __post_init__(self):
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Token secrets must not be empty")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh tokens need distinct secrets")
        if self.access_ttl <= timedelta(0) or self.refresh_ttl <= timedelta(0):
            raise ValueError("Token lifetimes must be positive")


@dataclass(frozen=True)
class SessionClaims:
    """Identity fields embedded in a token (snapshot at issuance)."""

    identifier: str
    email: Optional[str] = None
    username: Optional[str] = None
    fullname: Optional[str] = None

    def to_payload(self) -> dict:
        payload = {"sub": self.identifier}
        for name in ("email", "username", "fullname"):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        return payload

    @classmethod
    def from_payload(cls, payload: dict) -> "SessionClaims":
        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise TokenInvalid("Invalid token: missing subject")
        return cls(
            identifier=sub,
            email=payload.get("email"),
            username=payload.get("username"),
            fullname=payload.get("fullname"),
        )


@dataclass(frozen=True)
class VerifiedToken:
    """Result of a successful verify_token call."""

    claims: SessionClaims
    token_type: str
    issued_at: datetime
    expires_at: datetime
    token_id: Optional[str] = field(default=None)


def _encode(payload: dict, secret: str, algorithm: str) -> str:
    return jwt.encode(payload, secret, algorithm=algorithm)


def issue_access_token(
    claims: SessionClaims,
    secret: str,
    ttl: timedelta,
    *,
    now: Optional[datetime] = None,
    algorithm: str = "HS256",
) -> str:
    """Create a signed access token carrying the full claims snapshot."""
    issued = now or utcnow()
    payload = {
        **claims.to_payload(),
        "type": ACCESS,
        "iat": issued,
        "exp": issued + ttl,
    }
    return _encode(payload, secret, algorithm)


def issue_refresh_token(
    identifier: str,
    secret: str,
    ttl: timedelta,
    *,
    now: Optional[datetime] = None,
    algorithm: str = "HS256",
) -> str:
    """Create a signed refresh token carrying only the identifier."""
    issued = now or utcnow()
    payload = {
        "sub": identifier,
        "type": REFRESH,
        "jti": uuid.uuid4().hex,
        "iat": issued,
        "exp": issued + ttl,
    }
    return _encode(payload, secret, algorithm)


def _timestamp(payload: dict, name: str) -> datetime:
    value = payload.get(name)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TokenInvalid(f"Invalid token: '{name}' is not a timestamp")
    return datetime.fromtimestamp(value, tz=timezone.utc)


def verify_token(
    token: str,
    secret: str,
    *,
    now: Optional[datetime] = None,
    algorithm: str = "HS256",
    expected_type: Optional[str] = None,
) -> VerifiedToken:
    """Verify signature and expiry, and decode a token.

    Raises TokenExpired once `now` reaches the expiry, TokenInvalid for any
    signature, format or claim problem.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={
                "require": ["sub", "iat", "exp"],
                "verify_exp": False,
                "verify_iat": False,
            },
        )
    except jwt.InvalidTokenError as e:
        raise TokenInvalid(f"Invalid token: {e}") from e

    issued_at = _timestamp(payload, "iat")
    expires_at = _timestamp(payload, "exp")
    token_type = payload.get("type")
    if token_type not in (ACCESS, REFRESH):
        raise TokenInvalid("Invalid token: unknown token type")
    if expected_type is not None and token_type != expected_type:
        raise TokenInvalid(f"Invalid token: expected a {expected_type} token")

    if (now or utcnow()) >= expires_at:
        raise TokenExpired("Token has expired")

    return VerifiedToken(
        claims=SessionClaims.from_payload(payload),
        token_type=token_type,
        issued_at=issued_at,
        expires_at=expires_at,
        token_id=payload.get("jti"),
    )
