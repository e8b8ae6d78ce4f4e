"""Background sweep of expired refresh tokens."""

from gatekeeper.infra.scheduling import token_cleanup
from gatekeeper.infra.scheduling.token_cleanup import JOB_ID, TokenCleanupScheduler
from gatekeeper.models import RefreshToken
from sqlalchemy import select
from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import UserFactory


def test_run_once_deletes_only_expired_rows(app, session):
    user = UserFactory()
    RefreshTokenFactory(user=user, expired=True)
    RefreshTokenFactory(user=user, expired=True)
    live = RefreshTokenFactory(user=user)
    session.commit()
    live_token = live.token

    removed = TokenCleanupScheduler(app, interval_seconds=60).run_once()

    assert removed == 2
    assert list(session.scalars(select(RefreshToken.token))) == [live_token]


def test_start_registers_a_single_coalescing_job(app):
    cleanup = TokenCleanupScheduler(app, interval_seconds=120)
    cleanup.start()
    try:
        job = cleanup.scheduler.get_job(JOB_ID)
        assert job is not None
        assert job.coalesce is True
        assert job.max_instances == 1
        assert job.trigger.interval.total_seconds() == 120
    finally:
        cleanup.shutdown()

    assert not cleanup.scheduler.running


def test_init_app_is_a_no_op_when_disabled(app):
    assert app.config["TOKEN_CLEANUP_ENABLED"] is False
    assert token_cleanup.init_app(app) is None
    assert token_cleanup.EXTENSION_KEY not in app.extensions
