"""Health check endpoint.

Learn: Verifies the server is running, its dependencies (database, Redis)
are reachable, and the session authority can sign and verify its own
tokens with the configured secrets. Also reports the active bcrypt cost
and token lifetimes so a deploy can be checked at a glance.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from videotube import __version__
from videotube.auth import PasswordHasher, SessionAuthority, SessionClaims, TokenError
from videotube.auth.dependencies import get_authority, get_hasher
from videotube.db.engine import engine

router = APIRouter()

_SELF_CHECK_CLAIMS = SessionClaims(
    identifier="health-check",
    email="health@videotube.invalid",
    username="health",
    fullname="Health Check",
)


def _check_tokens(authority: SessionAuthority) -> str:
    """Round-trip one access and one refresh token through the authority."""
    try:
        access_token, refresh_token = authority.issue_pair(_SELF_CHECK_CLAIMS)
        authority.verify_access_token(access_token)
        authority.verify_refresh_token(refresh_token)
    except TokenError as e:
        return f"error: {e}"
    return "ok"


@router.get("/health")
async def health_check(
    authority: SessionAuthority = Depends(get_authority),
    hasher: PasswordHasher = Depends(get_hasher),
):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok"}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    # Redis only backs rate limiting; report it but don't require it
    try:
        from videotube.redis_pool import ping_redis

        await ping_redis()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    checks["tokens"] = _check_tokens(authority)

    status = "healthy" if all(v == "ok" for v in checks.values()) else "degraded"

    return {
        "status": status,
        "version": __version__,
        **checks,
        "auth": {
            "bcrypt_rounds": hasher.rounds,
            "access_token_ttl_seconds": int(authority.config.access_ttl.total_seconds()),
            "refresh_token_ttl_seconds": int(
                authority.config.refresh_ttl.total_seconds()
            ),
        },
    }
