"""``flask seed``: reference data every environment needs before sign-ups."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from gatekeeper.core.container import get_services
from gatekeeper.seeds import seed_data


def _report(summary: dict[str, dict[str, int]]) -> None:
    for table, counts in sorted(summary.items()):
        created = counts.get("created", 0)
        label = click.style(f"{table}:", bold=True)
        click.echo(f"{label} created={created:>2}  existing={counts.get('existing', 0):>2}")


@click.group("seed")
@click.option("-v", "--verbose", is_flag=True, help="Log every seeded row.")
def seed_cli(verbose: bool) -> None:
    """Seed reference tables (idempotent)."""
    logging.getLogger(seed_data.__name__).setLevel(logging.DEBUG if verbose else logging.INFO)


@seed_cli.command("roles")
@with_appcontext
def roles_command() -> None:
    """Insert the admin, manager and user roles when missing."""
    _report(seed_data.seed_roles(get_services().user_roles))
