"""Flask CLI commands for refresh-token maintenance."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from gatekeeper.core.container import get_services


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh-token maintenance commands."""


@tokens_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Delete expired refresh tokens now instead of waiting for the sweep."""
    removed = get_services().refresh_tokens.clean_expired_tokens()
    click.echo(f"Purged {removed} expired refresh token(s).")
