"""Shared constants."""

# Default database name used in the default DATABASE_URL.
DB_NAME = "videotube"

# Cookie names for the browser session.
ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"
