"""Passgate CLI — drive the account and password-reset API from a terminal.

Usage:
    passgate register --name Ann --surname Hay --email ann@example.com --telephone "+374 91234567"
    passgate login ann@example.com                 # prints a session token
    passgate forgot-password ann@example.com       # emails a code, prints a reset token
    passgate submit-code 123456 --token <reset>    # prints a password-change token
    passgate reset-password --token <change>       # prompts for the new password
    passgate whoami --token <session>
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from pathlib import Path
from typing import Optional

import click
import httpx

from passgate import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("PASSGATE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Passgate backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

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


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _unwrap(r: httpx.Response) -> dict:
    """Return the envelope's data, or print its error and exit 1."""
    try:
        body = r.json()
    except ValueError:
        click.secho(f"Error: unexpected {r.status_code} response from server", fg="red", err=True)
        sys.exit(1)

    error = (body.get("meta") or {}).get("error")
    if error:
        click.secho(f"Error: {error['message']} ({error['code']})", fg="red", err=True)
        sys.exit(1)
    return body.get("data") or {}


def _token_option(f):
    return click.option(
        "--token",
        envvar="PASSGATE_TOKEN",
        required=True,
        help="Bearer token (or set PASSGATE_TOKEN)",
    )(f)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="passgate")
def main():
    """Passgate — register, log in and reset passwords."""


# ---------------------------------------------------------------------------
# passgate register
# ---------------------------------------------------------------------------


@main.command()
@click.option("--name", required=True)
@click.option("--surname", required=True)
@click.option("--email", required=True)
@click.option("--telephone", required=True, help='Format: "+374 XXXXXXXX"')
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option(
    "--picture",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Optional profile picture",
)
def register(name: str, surname: str, email: str, telephone: str,
             password: str, picture: Optional[Path]):
    """Create a new account."""
    _run(_register_impl(name, surname, email, telephone, password, picture))


async def _register_impl(name: str, surname: str, email: str, telephone: str,
                         password: str, picture: Optional[Path]):
    form = {
        "name": name,
        "surname": surname,
        "email": email,
        "telephone": telephone,
        "password": password,
    }
    files = None
    if picture is not None:
        files = {"profile_picture": (picture.name, picture.read_bytes())}

    async with _client() as c:
        r = await c.post("/api/v1/auth/register", data=form, files=files)
    data = _unwrap(r)
    click.secho(data.get("message", "Registered."), fg="green")


# ---------------------------------------------------------------------------
# passgate login
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and print a session token."""
    _run(_login_impl(email, password))


async def _login_impl(email: str, password: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/login", json={"email": email, "password": password})
    click.echo(_unwrap(r)["token"])


# ---------------------------------------------------------------------------
# passgate forgot-password / submit-code / reset-password
# ---------------------------------------------------------------------------


@main.command("forgot-password")
@click.argument("email")
def forgot_password(email: str):
    """Email a reset code and print the token to use with submit-code."""
    _run(_forgot_password_impl(email))


async def _forgot_password_impl(email: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/forgetPassword", json={"email": email})
    token = _unwrap(r)["token"]
    click.secho(f"A reset code was sent to {email}.", fg="green", err=True)
    click.echo(token)


@main.command("submit-code")
@click.argument("code")
@_token_option
def submit_code(code: str, token: str):
    """Check the emailed CODE and print the token to use with reset-password."""
    _run(_submit_code_impl(code, token))


async def _submit_code_impl(code: str, token: str):
    async with _client() as c:
        r = await c.post(
            "/api/v1/auth/submitCode",
            json={"code": code},
            headers=_auth_headers(token),
        )
    click.echo(_unwrap(r)["token"])


@main.command("reset-password")
@_token_option
@click.option("--password", prompt="New password", hide_input=True, confirmation_prompt=True)
def reset_password(token: str, password: str):
    """Set a new password."""
    _run(_reset_password_impl(token, password))


async def _reset_password_impl(token: str, password: str):
    async with _client() as c:
        r = await c.put(
            "/api/v1/auth/resetPassword",
            json={"password": password},
            headers=_auth_headers(token),
        )
    data = _unwrap(r)
    click.secho(data.get("message", "Password changed."), fg="green")


# ---------------------------------------------------------------------------
# passgate whoami
# ---------------------------------------------------------------------------


@main.command()
@_token_option
def whoami(token: str):
    """Show the account a token belongs to."""
    _run(_whoami_impl(token))


async def _whoami_impl(token: str):
    async with _client() as c:
        r = await c.get("/api/v1/auth/me", headers=_auth_headers(token))
    click.echo(json.dumps(_unwrap(r)["user"], indent=2))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
