"""VideoTube CLI — run the server, manage the schema, talk to the API.

Usage:
    videotube serve                          # Run the API with uvicorn
    videotube init-db                        # Create tables (dev; use alembic in prod)
    videotube gen-secret                     # Print a random token secret
    videotube hash-password                  # Prompt for a password, print its bcrypt hash
    videotube login alice                    # Log in against a running API, print tokens
    videotube me --token <access token>      # Show the user behind a token
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import secrets
import sys
from typing import Optional

import click
import httpx

from videotube import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("VIDEOTUBE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the VideoTube backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _fail(message: str):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="videotube")
def main():
    """VideoTube — video-sharing backend."""


# ---------------------------------------------------------------------------
# Server / schema
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", help="Bind address (default: VIDEOTUBE_HOST)")
@click.option("--port", type=int, help="Port (default: VIDEOTUBE_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from videotube.config import settings

    uvicorn.run(
        "videotube.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables that don't exist yet."""
    from videotube.db.engine import create_all

    _run(create_all())
    click.secho("Database tables created", fg="green")


@main.command("gen-secret")
@click.option("--bytes", "nbytes", default=32, show_default=True)
def gen_secret(nbytes: int):
    """Print a URL-safe random secret for VIDEOTUBE_*_TOKEN_SECRET."""
    click.echo(secrets.token_urlsafe(nbytes))


@main.command("hash-password")
@click.password_option()
@click.option("--rounds", type=int, help="bcrypt cost (default: VIDEOTUBE_BCRYPT_ROUNDS)")
def hash_password_cmd(password: str, rounds: Optional[int]):
    """Hash a password with bcrypt (for seeding users)."""
    from videotube.auth.password import hash_password
    from videotube.config import settings

    try:
        click.echo(hash_password(password, rounds=rounds or settings.bcrypt_rounds))
    except ValueError as e:
        _fail(str(e))


# ---------------------------------------------------------------------------
# API client commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("login_name")
@click.password_option(confirmation_prompt=False)
def login(login_name: str, password: str):
    """Log in with a username (or an email) and print the tokens."""
    _run(_login_impl(login_name, password))


async def _login_impl(login_name: str, password: str):
    field = "email" if "@" in login_name else "username"
    async with _client() as c:
        r = await c.post(
            "/api/v1/users/login", json={field: login_name, "password": password}
        )
    if r.status_code != 200:
        _fail(r.json().get("detail", r.text))
    body = r.json()
    click.secho(f"Logged in as {body['user']['username']}", fg="green")
    click.echo(_pretty_json({
        "access_token": body["access_token"],
        "refresh_token": body["refresh_token"],
    }))


@main.command()
@click.option("--token", envvar="VIDEOTUBE_TOKEN", required=True,
              help="Access token (or set VIDEOTUBE_TOKEN)")
def me(token: str):
    """Show the user an access token belongs to."""
    _run(_me_impl(token))


async def _me_impl(token: str):
    async with _client() as c:
        r = await c.get(
            "/api/v1/users/me", headers={"Authorization": f"Bearer {token}"}
        )
    if r.status_code != 200:
        _fail(r.json().get("detail", r.text))
    click.echo(_pretty_json(r.json()))
