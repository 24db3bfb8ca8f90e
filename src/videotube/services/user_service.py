"""User service — registration, login, token rotation, password changes.

Learn: This is where the stateless auth pieces meet the database.
- Passwords are hashed here, explicitly, before any write (no ORM hook).
- The refresh token issued at login is stored on the user row. Presenting
  it at /refresh-token must match the stored value; a match rotates it,
  logout and password change clear it. Only the latest token ever works.
"""

import secrets
import uuid

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from videotube.auth import (
    CryptoFailure,
    PasswordHasher,
    SessionAuthority,
    SessionClaims,
    TokenInvalid,
)
from videotube.db.models import User
from videotube.schemas.user import UserCreate

logger = structlog.get_logger()


class UserExistsError(Exception):
    """Username or email is already taken."""


class InvalidCredentialsError(Exception):
    """Unknown user or wrong password — deliberately indistinguishable."""


class UserNotFoundError(Exception):
    pass


def normalize(value: str) -> str:
    return value.strip().lower()


def claims_for(user: User) -> SessionClaims:
    """Snapshot of the identity fields that go into an access token."""
    return SessionClaims(
        identifier=str(user.id),
        email=user.email,
        username=user.username,
        fullname=user.fullname,
    )


class UserService:
    """Business logic for user accounts and their sessions."""

    def __init__(
        self,
        db: AsyncSession,
        hasher: PasswordHasher,
        authority: SessionAuthority,
    ):
        self.db = db
        self.hasher = hasher
        self.authority = authority

    # ─── Lookup ─────────────────────────────────────────

    async def get(self, user_id: uuid.UUID | str) -> User | None:
        if isinstance(user_id, str):
            try:
                user_id = uuid.UUID(user_id)
            except ValueError:
                return None
        return await self.db.get(User, user_id)

    async def find_by_login(
        self, username: str | None = None, email: str | None = None
    ) -> User | None:
        conditions = []
        if username:
            conditions.append(User.username == normalize(username))
        if email:
            conditions.append(User.email == normalize(email))
        if not conditions:
            return None
        result = await self.db.execute(select(User).where(or_(*conditions)))
        return result.scalars().first()

    # ─── Registration ───────────────────────────────────

    async def register(self, data: UserCreate) -> User:
        username = normalize(data.username)
        email = normalize(data.email)

        existing = await self.find_by_login(username=username, email=email)
        if existing:
            raise UserExistsError("User with this username or email already exists")

        user = User(
            username=username,
            email=email,
            fullname=data.fullname.strip(),
            avatar=data.avatar,
            cover_image=data.cover_image,
            password_hash=await self.hasher.hash(data.password),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration.
            await self.db.rollback()
            raise UserExistsError(
                "User with this username or email already exists"
            ) from e
        await self.db.refresh(user)

        logger.info("user.registered", user_id=str(user.id), username=username)
        return user

    # ─── Login / refresh / logout ───────────────────────

    async def authenticate(
        self,
        password: str,
        username: str | None = None,
        email: str | None = None,
    ) -> tuple[User, str, str]:
        """Check credentials and start a session.

        Returns (user, access_token, refresh_token). The refresh token
        replaces whatever was stored before.
        """
        user = await self.find_by_login(username=username, email=email)
        if not user:
            logger.info("user.login_failed", reason="unknown_user")
            raise InvalidCredentialsError("Invalid credentials")

        try:
            ok = await self.hasher.verify(password, user.password_hash)
        except CryptoFailure:
            logger.error("user.password_hash_corrupt", user_id=str(user.id))
            raise InvalidCredentialsError("Invalid credentials")
        if not ok:
            logger.info("user.login_failed", reason="bad_password", user_id=str(user.id))
            raise InvalidCredentialsError("Invalid credentials")

        # Re-hash with the current work factor while we have the plaintext
        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = await self.hasher.hash(password)
            logger.info("user.password_rehashed", user_id=str(user.id))

        access_token, refresh_token = self.authority.issue_pair(claims_for(user))
        user.refresh_token = refresh_token
        await self.db.commit()

        logger.info("user.logged_in", user_id=str(user.id))
        return user, access_token, refresh_token

    async def refresh(self, refresh_token: str) -> tuple[User, str, str]:
        """Exchange a valid, current refresh token for a new pair.

        Raises TokenExpired/TokenInvalid from verification, or TokenInvalid
        when the token is not the one stored for the user (rotated away,
        logged out, or password changed).
        """
        verified = self.authority.verify_refresh_token(refresh_token)
        user = await self.get(verified.claims.identifier)
        if not user:
            raise TokenInvalid("Invalid token: unknown user")
        if not user.refresh_token or not secrets.compare_digest(
            user.refresh_token, refresh_token
        ):
            logger.warning("user.refresh_token_reused", user_id=str(user.id))
            raise TokenInvalid("Refresh token has been revoked")

        user_id = user.id
        access_token, new_refresh = self.authority.issue_pair(claims_for(user))
        # Compare-and-swap: of two requests racing with the same token,
        # only the first to write rotates it.
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.refresh_token == refresh_token)
            .values(refresh_token=new_refresh)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            logger.warning("user.refresh_token_reused", user_id=str(user_id))
            raise TokenInvalid("Refresh token has been revoked")
        await self.db.commit()
        set_committed_value(user, "refresh_token", new_refresh)

        logger.info("user.token_refreshed", user_id=str(user_id))
        return user, access_token, new_refresh

    async def logout(self, user_id: uuid.UUID | str) -> None:
        user = await self.get(user_id)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        user.refresh_token = None
        await self.db.commit()
        logger.info("user.logged_out", user_id=str(user.id))

    # ─── Password ───────────────────────────────────────

    async def change_password(
        self, user_id: uuid.UUID | str, old_password: str, new_password: str
    ) -> User:
        """Replace the password and revoke the stored refresh token."""
        user = await self.get(user_id)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")

        try:
            ok = await self.hasher.verify(old_password, user.password_hash)
        except CryptoFailure:
            logger.error("user.password_hash_corrupt", user_id=str(user.id))
            ok = False
        if not ok:
            raise InvalidCredentialsError("Invalid old password")

        user.password_hash = await self.hasher.hash(new_password)
        user.refresh_token = None
        await self.db.commit()

        logger.info("user.password_changed", user_id=str(user.id))
        return user
