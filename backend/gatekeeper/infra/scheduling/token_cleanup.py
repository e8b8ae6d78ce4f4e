"""
Periodic sweep of expired refresh tokens.

Uses APScheduler's ``BackgroundScheduler`` so the sweep runs on its own
thread, independent of request traffic. The job only deletes rows, so each
WSGI worker may safely run its own copy.
"""

from __future__ import annotations

import atexit
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask

from gatekeeper.core.container import get_services

logger = logging.getLogger(__name__)

JOB_ID = "refresh-token-cleanup"
EXTENSION_KEY = "gatekeeper.token_cleanup"


class TokenCleanupScheduler:
    """
    Run :meth:`RefreshTokenService.clean_expired_tokens` every ``interval_seconds``.

    Missed runs are coalesced into one and a run never overlaps the previous
    one. Exceptions raised by a run are logged by APScheduler and the next run
    proceeds as scheduled.
    """

    def __init__(self, app: Flask, *, interval_seconds: int) -> None:
        self.app = app
        self.interval_seconds = int(interval_seconds)
        self.scheduler = BackgroundScheduler(timezone="UTC", daemon=True)

    def run_once(self) -> int:
        """Execute one sweep inside an application context."""
        with self.app.app_context():
            return get_services().refresh_tokens.clean_expired_tokens()

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Purge expired refresh tokens",
            coalesce=True,
            max_instances=1,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("Token cleanup scheduled every %ss", self.interval_seconds)

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)


def init_app(app: Flask) -> TokenCleanupScheduler | None:
    """Start the sweep when ``TOKEN_CLEANUP_ENABLED`` is set.

    :returns: The running scheduler, or ``None`` when disabled.
    """
    if not app.config.get("TOKEN_CLEANUP_ENABLED", False):
        return None
    cleanup = TokenCleanupScheduler(
        app, interval_seconds=app.config.get("TOKEN_CLEANUP_INTERVAL_SECONDS", 86_400)
    )
    cleanup.start()
    app.extensions[EXTENSION_KEY] = cleanup
    atexit.register(cleanup.shutdown)
    return cleanup
