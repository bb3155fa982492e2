"""CampusHub CLI — run the server and drive the account API.

Usage:
    campushub serve                                  # Run the API with uvicorn
    campushub register "Alice" alice@x.com           # Create an account (prompts for password)
    campushub login alice@x.com                      # Sign in, token saved locally
    campushub me                                     # Show the signed-in user
    campushub profile --branch CSE --semester 5      # Patch profile fields
    campushub logout                                 # Revoke this session
    campushub logout-all                             # Revoke every session
    campushub forgot-password alice@x.com            # Start a password reset
    campushub reset-password TOKEN                   # Finish it (prompts for password)

The sign-in state is an AuthSession persisted as JSON in
~/.campushub/session.json (override with CAMPUSHUB_SESSION_FILE).
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

from campushub.client import ApiError, AuthSession, CampusHubClient

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3001"


def _api_url() -> str:
    return os.environ.get("CAMPUSHUB_API_URL", DEFAULT_API_URL).rstrip("/")


def _session_file() -> Path:
    default = Path.home() / ".campushub" / "session.json"
    return Path(os.environ.get("CAMPUSHUB_SESSION_FILE", default))


def load_session(path: Optional[Path] = None) -> AuthSession:
    """Read the saved AuthSession, or an empty one if there is none."""
    path = path or _session_file()
    try:
        data = json.loads(path.read_text())
    except (FileNotFoundError, ValueError):
        return AuthSession()
    return AuthSession(token=data.get("token"), user=data.get("user") or {})


def save_session(session: AuthSession, path: Optional[Path] = None) -> None:
    path = path or _session_file()
    if not session.is_authenticated:
        path.unlink(missing_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"token": session.token, "user": session.user}))
    path.chmod(0o600)


def _client(session: AuthSession) -> CampusHubClient:
    return CampusHubClient(_api_url(), session, timeout=30.0)


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


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


async def _call(method: str, *args, **kwargs):
    """Call a client method with the saved session, persist the result.

    The session is saved even on failure: a 401 clears it.
    """
    session = load_session()
    try:
        async with _client(session) as api:
            return await getattr(api, method)(*args, **kwargs)
    except ApiError as e:
        click.secho(f"Error: {e.detail} (HTTP {e.status_code})", fg="red", err=True)
        sys.exit(1)
    finally:
        save_session(session)


def _require_login() -> None:
    if not load_session().is_authenticated:
        click.secho("Not logged in. Run `campushub login` first.", fg="red", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="campushub")
def main():
    """CampusHub — campus information backend and account tools."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: CAMPUSHUB_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: CAMPUSHUB_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from campushub.config import settings

    uvicorn.run(
        "campushub.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
@click.argument("name")
@click.argument("email")
@click.password_option()
@click.option("--id-number", help="College roll / ID number")
@click.option("--department", help="Branch or department")
def register(name: str, email: str, password: str,
             id_number: Optional[str], department: Optional[str]):
    """Create an account and sign in."""
    data = _run(_call("register", name, email, password, id_number, department))
    click.secho(f"{data['message']} — signed in as {data['user']['email']}", fg="green")


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Sign in and save the session token."""
    data = _run(_call("login", email, password))
    click.secho(f"{data['message']} — signed in as {data['user']['email']}", fg="green")


@main.command()
def me():
    """Show the signed-in user."""
    _require_login()
    click.echo(_pretty_json(_run(_call("me"))))


@main.command()
@click.option("--name")
@click.option("--email")
@click.option("--roll-number")
@click.option("--branch")
@click.option("--semester")
@click.option("--section")
@click.option("--skill", "skills", multiple=True, help="Repeatable")
@click.option("--achievement", "achievements", multiple=True, help="Repeatable")
@click.option("--profile-image", help="Image URL")
def profile(**options):
    """Update profile fields. Only the options given are changed."""
    _require_login()
    camel = {
        "roll_number": "rollNumber",
        "profile_image": "profileImage",
    }
    fields = {
        camel.get(k, k): list(v) if isinstance(v, tuple) else v
        for k, v in options.items()
        if v not in (None, ())
    }
    if not fields:
        click.echo("Nothing to update.")
        return
    click.echo(_pretty_json(_run(_call("update_profile", **fields))))


@main.command()
def logout():
    """Revoke the current session."""
    if not load_session().is_authenticated:
        click.echo("Not logged in.")
        return
    data = _run(_call("logout"))
    click.secho(data["message"], fg="green")


@main.command("logout-all")
def logout_all():
    """Revoke every session of the signed-in user."""
    _require_login()
    data = _run(_call("logout_all"))
    click.secho(data["message"], fg="green")


@main.command("forgot-password")
@click.argument("email")
def forgot_password(email: str):
    """Request a password reset token."""
    data = _run(_call("forgot_password", email))
    click.echo(data["message"])
    if data.get("resetToken"):
        click.echo(f"Reset token: {data['resetToken']}")


@main.command("reset-password")
@click.argument("token")
@click.password_option("--new-password")
def reset_password(token: str, new_password: str):
    """Set a new password with a reset token."""
    data = _run(_call("reset_password", token, new_password))
    click.secho(data["message"], fg="green")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
