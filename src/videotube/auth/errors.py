"""Auth error taxonomy.

A wrong password is not an error (verify_password returns False).
Everything else that can go wrong surfaces as one of these.
"""


class AuthError(Exception):
    """Base class for authentication failures."""


class CryptoFailure(AuthError):
    """Stored password hash is malformed — data corruption, not user error."""


class TokenError(AuthError):
    """Raised when token verification fails."""


class TokenExpired(TokenError):
    """Token signature is valid but its expiry has passed."""


class TokenInvalid(TokenError):
    """Token is malformed, tampered with, or signed with another secret."""
