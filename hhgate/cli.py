#!/usr/bin/env python3
"""
hhgate command line: run the API server and drive the hh.ru token flow by hand.

Configuration is read from the environment (and .env), same as the server.
"""

import asyncio
import sys

import click

from . import auth_service
from .config import Settings
from .context import build_context
from .errors import AppError, ConfigError


def _context():
    try:
        return build_context(Settings.from_env())
    except ConfigError as e:
        raise click.ClickException(str(e))


@click.group()
def cli():
    """hh.ru OAuth gateway."""
    pass


@cli.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", type=int, default=None, help="Defaults to PORT from the environment")
def serve(host: str, port: int | None) -> None:
    """Run the HTTP API with uvicorn."""
    from .main import main

    try:
        main(host=host, port=port)
    except ConfigError as e:
        raise click.ClickException(str(e))


@cli.command("auth-url")
def auth_url() -> None:
    """Print an hh.ru authorization URL."""
    ctx = _context()
    click.echo(auth_service.generate_authorization_url(ctx)["authUrl"])


@cli.command("refresh")
@click.argument("user_id")
def refresh(user_id: str) -> None:
    """Print a valid access token for USER_ID, refreshing it if it has expired."""
    ctx = _context()
    try:
        result = asyncio.run(auth_service.refresh_token(ctx, user_id))
    except AppError as e:
        click.echo(f"Error [{e.status_code}]: {e.message}", err=True)
        sys.exit(1)
    click.echo(result["accessToken"])


if __name__ == "__main__":
    cli()
