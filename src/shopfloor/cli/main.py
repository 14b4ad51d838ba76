"""Shopfloor CLI — run the server, prepare the stores.

Usage:
    shopfloor serve                  # uvicorn on settings.port (8080)
    shopfloor serve -p 9000          # explicit port
    PORT=9000 shopfloor serve        # PORT env var wins over the flag
    shopfloor init-db                # create credential, message and catalog tables
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import os
from typing import Optional

import click

from shopfloor import __version__
from shopfloor.config import settings


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # No running loop: normal CLI invocation
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def resolve_port(flag: Optional[int]) -> int:
    """PORT env var, then --port, then settings.port."""
    env_port = os.environ.get("PORT")
    if env_port:
        try:
            return int(env_port)
        except ValueError:
            raise click.BadParameter(f"PORT={env_port!r} is not a number")
    return flag or settings.port


@click.group()
@click.version_option(version=__version__, prog_name="shopfloor")
def main():
    """Shopfloor — catalog and chat with real-time updates."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: settings.host)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: 8080)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP + WebSocket server."""
    import uvicorn

    bind_host = host or settings.host
    bind_port = resolve_port(port)
    click.echo(f"Listening on {bind_host}:{bind_port} (pid {os.getpid()})")
    uvicorn.run("shopfloor.main:app", host=bind_host, port=bind_port, reload=reload)


@main.command("init-db")
def init_db():
    """Create every store's tables (idempotent)."""
    from shopfloor.db.engine import Databases

    async def _init():
        databases = Databases.from_settings()
        try:
            await databases.create_all()
        finally:
            await databases.dispose()

    _run(_init())
    click.secho("Tables ready.", fg="green")


if __name__ == "__main__":
    main()
