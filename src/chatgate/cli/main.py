"""chatgate CLI — sign in and chat from the terminal.

Usage:
    chatgate register --email a@b.com --name A     # Create an account (prompts for password)
    chatgate login --email a@b.com                 # Sign in, store the session
    chatgate whoami                                # Profile for the stored token
    chatgate chat "what is a JWT?"                 # Send a message to the assistant
    chatgate history                               # Show the cached transcript
    chatgate clear-history                         # Forget the cached transcript
    chatgate logout                                # Forget the session (transcript stays)
    chatgate serve                                 # Run the API server
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
import sys
from pathlib import Path
from typing import Optional

import click
import httpx

from chatgate.client.api import ApiError, ChatgateClient
from chatgate.client.session import SessionContext, SessionStorage

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("CHATGATE_API_URL", DEFAULT_API_URL).rstrip("/")


def _transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport override hook; None means real network."""
    return None


def _session(session_file: Optional[str]) -> SessionContext:
    path = Path(session_file) if session_file else None
    return SessionContext(SessionStorage(path)).load()


def _client(session: SessionContext) -> ChatgateClient:
    """Build an API client pointed at the chatgate backend."""
    return ChatgateClient(_api_url(), session, transport=_transport())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when an event loop is already running
    (e.g. CliRunner inside an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _call(coro):
    """Run an API call, turning server and network errors into CLI errors."""
    try:
        return _run(coro)
    except ApiError as e:
        _fail(e.message)
    except httpx.HTTPError as e:
        _fail(f"cannot reach {_api_url()} ({type(e).__name__})")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="chatgate")
@click.option(
    "--session-file",
    envvar="CHATGATE_SESSION_FILE",
    type=click.Path(dir_okay=False),
    help="Where the session is stored (default: ~/.chatgate/session.json)",
)
@click.pass_context
def main(ctx: click.Context, session_file: Optional[str]):
    """chatgate: authenticated chat with an LLM assistant."""
    ctx.obj = {"session_file": session_file}


def _ctx_session(ctx: click.Context) -> SessionContext:
    return _session(ctx.obj["session_file"])


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


async def _register_impl(session: SessionContext, email: str, password: str, name: str):
    async with _client(session) as c:
        return await c.register(email, password, name)


@main.command()
@click.option("--email", "-e", required=True)
@click.option("--name", "-n", required=True)
@click.password_option()
@click.pass_context
def register(ctx: click.Context, email: str, name: str, password: str):
    """Create an account and sign in."""
    session = _ctx_session(ctx)
    auth = _call(_register_impl(session, email, password, name))
    click.secho(f"Registered and signed in as {auth.user.name} <{auth.user.email}>", fg="green")


async def _login_impl(session: SessionContext, email: str, password: str):
    async with _client(session) as c:
        return await c.login(email, password)


@main.command()
@click.option("--email", "-e", required=True)
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
def login(ctx: click.Context, email: str, password: str):
    """Sign in with email and password."""
    session = _ctx_session(ctx)
    auth = _call(_login_impl(session, email, password))
    click.secho(f"Signed in as {auth.user.name} <{auth.user.email}>", fg="green")


@main.command()
@click.pass_context
def logout(ctx: click.Context):
    """Forget the stored session. The chat transcript is kept."""
    session = _ctx_session(ctx)
    session.logout()
    click.echo("Signed out.")


async def _whoami_impl(session: SessionContext):
    async with _client(session) as c:
        return await c.me()


@main.command()
@click.pass_context
def whoami(ctx: click.Context):
    """Show the profile for the stored token."""
    session = _ctx_session(ctx)
    if not session.is_authenticated:
        _fail("not signed in, run `chatgate login`")
    user = _call(_whoami_impl(session))
    click.echo(f"{user.name} <{user.email}>  id={user.id}")


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


async def _chat_impl(session: SessionContext, message: str):
    async with _client(session) as c:
        return await c.chat(message)


@main.command()
@click.argument("message")
@click.pass_context
def chat(ctx: click.Context, message: str):
    """Send MESSAGE to the assistant and print the reply."""
    session = _ctx_session(ctx)
    if not session.is_authenticated:
        _fail("not signed in, run `chatgate login`")
    reply = _call(_chat_impl(session, message))
    click.echo(reply)


@main.command()
@click.pass_context
def history(ctx: click.Context):
    """Show the cached chat transcript."""
    messages = _ctx_session(ctx).messages()
    if not messages:
        click.echo("No messages yet.")
        return
    for m in messages:
        who = click.style("you", fg="cyan") if m.role == "user" else click.style("assistant", fg="green")
        click.echo(f"{who}: {m.content}")


@main.command("clear-history")
@click.pass_context
def clear_history(ctx: click.Context):
    """Forget the cached chat transcript."""
    _ctx_session(ctx).clear_messages()
    click.echo("History cleared.")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: CHATGATE_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: CHATGATE_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the chatgate API server."""
    import uvicorn

    from chatgate.config import settings

    uvicorn.run(
        "chatgate.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
