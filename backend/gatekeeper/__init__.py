"""Account, session and confirmation-token service.

``gunicorn "gatekeeper:create_app()"`` serves it; ``flask --app gatekeeper``
runs the CLI.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
