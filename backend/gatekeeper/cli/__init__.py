"""Operator commands exposed through ``flask <group> <command>``."""

from __future__ import annotations

from flask import Flask

from .seed import seed_cli
from .tokens import tokens_cli

COMMAND_GROUPS = (seed_cli, tokens_cli)


def init_app(app: Flask) -> None:
    for group in COMMAND_GROUPS:
        app.cli.add_command(group)
