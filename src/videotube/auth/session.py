"""Session authority — token issuance bound to an explicit config and clock.

The app builds one SessionAuthority from Settings.token_config() at
startup. Tests build their own with fixed secrets and a controllable clock.

Session lifecycle for one user:

    ANONYMOUS ──login──▶ AUTHENTICATED ──access exp──▶ EXPIRED
        ▲                      ▲                          │
        │                      └───── refresh token ──────┤
        └──────── refresh exp / logout ◀──────────────────┘
"""

import enum
from typing import Callable, Optional

import structlog

from videotube.auth.errors import TokenError, TokenExpired
from videotube.auth.jwt import (
    ACCESS,
    REFRESH,
    SessionClaims,
    TokenConfig,
    VerifiedToken,
    issue_access_token,
    issue_refresh_token,
    utcnow,
    verify_token,
)

logger = structlog.get_logger()


class SessionState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class SessionAuthority:
    """Issues and verifies access/refresh tokens."""

    def __init__(self, config: TokenConfig, clock: Callable = utcnow):
        self.config = config
        self.clock = clock

    # ─── Issue ──────────────────────────────────────────

    def issue_access_token(self, claims: SessionClaims) -> str:
        return issue_access_token(
            claims,
            self.config.access_secret,
            self.config.access_ttl,
            now=self.clock(),
            algorithm=self.config.algorithm,
        )

    def issue_refresh_token(self, identifier: str) -> str:
        return issue_refresh_token(
            identifier,
            self.config.refresh_secret,
            self.config.refresh_ttl,
            now=self.clock(),
            algorithm=self.config.algorithm,
        )

    def issue_pair(self, claims: SessionClaims) -> tuple[str, str]:
        """Issue (access_token, refresh_token) for a freshly authenticated user."""
        return (
            self.issue_access_token(claims),
            self.issue_refresh_token(claims.identifier),
        )

    # ─── Verify ─────────────────────────────────────────

    def verify_access_token(self, token: str) -> VerifiedToken:
        return verify_token(
            token,
            self.config.access_secret,
            now=self.clock(),
            algorithm=self.config.algorithm,
            expected_type=ACCESS,
        )

    def verify_refresh_token(self, token: str) -> VerifiedToken:
        return verify_token(
            token,
            self.config.refresh_secret,
            now=self.clock(),
            algorithm=self.config.algorithm,
            expected_type=REFRESH,
        )

    def session_state(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str] = None,
    ) -> SessionState:
        """Classify a presented token pair.

        Does not consult the stored refresh token; a revoked refresh token
        still reads as EXPIRED here and is rejected when actually used.
        """
        if access_token:
            try:
                self.verify_access_token(access_token)
                return SessionState.AUTHENTICATED
            except TokenExpired:
                pass
            except TokenError as e:
                logger.debug("session.access_token_rejected", reason=str(e))

        if refresh_token:
            try:
                self.verify_refresh_token(refresh_token)
                return SessionState.EXPIRED
            except TokenError:
                pass

        return SessionState.ANONYMOUS
