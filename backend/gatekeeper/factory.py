"""Application factory wiring Flask extensions, services and blueprints."""

from __future__ import annotations

from flask import Flask

from gatekeeper.core.config import BaseConfig, get_config
from gatekeeper.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
    start_scheduler: bool = True,
) -> Flask:
    """Build and configure the Flask application.

    Parameters
    ----------
    config:
        Config object or import path; defaults to the class selected by
        ``APP_ENV``.
    instance_relative_config:
        Load ``instance/<instance_config_filename>`` on top when present.
    start_scheduler:
        Start the expired refresh-token sweep if ``TOKEN_CLEANUP_ENABLED``.
        CLI entry points and one-off scripts may pass ``False``.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from gatekeeper.core import cors

    cors.init_proxy(app)

    from gatekeeper.core import extensions

    extensions.init_app(app)

    init_logging(app)

    cors.init_app(app)

    from gatekeeper.core import container

    container.init_app(app)

    from gatekeeper.api import init_app as init_api

    init_api(app)

    from gatekeeper.core import errors

    errors.init_app(app)

    from gatekeeper import cli as app_cli

    app_cli.init_app(app)

    if start_scheduler:
        from gatekeeper.infra.scheduling import token_cleanup

        token_cleanup.init_app(app)

    return app
