"""bossme CLI — watch live updates and browse memes from a terminal.

Usage:
    bossme serve                        # API + WebSocket on BOSSME_PORT
    bossme updates                      # Everything currently buffered
    bossme updates --since 1700000000000
    bossme updates --follow             # Keep polling, print as they arrive
    bossme memes --sort upvoted         # Approved memes, most voted first
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys

import click
import httpx

DEFAULT_API_URL = "http://localhost:5001"


def _api_url() -> str:
    return os.environ.get("BOSSME_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


def _run(coro):
    """Run a coroutine from a synchronous click handler.

    Falls back to a worker thread when a loop is already running (e.g.
    CliRunner invoked from an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


async def _fetch_updates(client: httpx.AsyncClient, since: int) -> dict:
    resp = await client.get("/api/updates", params={"since": since})
    resp.raise_for_status()
    return resp.json()


def _print_update(update: dict) -> None:
    payload = update.get("payload") or {}
    label = payload.get("id", "") if isinstance(payload, dict) else ""
    click.secho(f"[{update['timestamp']}] {update['type']} {label}".rstrip(), fg="cyan")
    click.echo(_pretty_json(payload))


async def _poll(since: int, follow: bool, interval: float, max_polls: int | None) -> int:
    polls = 0
    async with _client() as client:
        while True:
            body = await _fetch_updates(client, since)
            for update in body["updates"]:
                _print_update(update)
            # Resume from the newest event seen
            if body["updates"]:
                since = body["updates"][-1]["timestamp"]
            polls += 1
            if not follow or (max_polls is not None and polls >= max_polls):
                return since
            await asyncio.sleep(interval)


@click.group()
def cli():
    """bossme.me command line client."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: BOSSME_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: BOSSME_PORT)")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the API and WebSocket server."""
    import uvicorn

    from bossme.config import settings

    uvicorn.run(
        "bossme.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command()
@click.option("--since", type=int, default=0, help="Only updates after this ms timestamp")
@click.option("--follow", is_flag=True, help="Keep polling for new updates")
@click.option("--interval", type=float, default=5.0, show_default=True, help="Seconds between polls")
@click.option("--max-polls", type=int, default=None, hidden=True)
def updates(since: int, follow: bool, interval: float, max_polls: int | None):
    """Print live updates via the HTTP polling fallback."""
    try:
        _run(_poll(since, follow, interval, max_polls))
    except httpx.HTTPError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


@cli.command()
@click.option("--sort", type=click.Choice(["recent", "upvoted"]), default="recent")
@click.option("--company", default=None)
def memes(sort: str, company: str | None):
    """List approved memes."""

    async def _list():
        async with _client() as client:
            params = {"sort": sort}
            if company:
                params["company"] = company
            resp = await client.get("/api/memes", params=params)
            resp.raise_for_status()
            return resp.json()

    try:
        rows = _run(_list())
    except httpx.HTTPError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    if not rows:
        click.echo("No memes yet.")
        return
    for meme in rows:
        click.echo(f"#{meme['id']:<6} {meme['votes']:>4} ▲  {meme['company']}  {meme.get('message') or ''}".rstrip())


if __name__ == "__main__":
    cli()
