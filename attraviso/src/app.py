"""
Attraviso Quart application.

Run with `python -m attraviso.src.app` or any ASGI server pointed at
`attraviso.src.app:app`.
"""

import logging
from typing import Optional

from quart import Quart
from quart_cors import cors

from attraviso.config import Config, LoggingConfig, get_config
from attraviso.src.components import EXTENSION_KEY, AppComponents
from attraviso.src.routes import register_blueprints


def configure_logging(logging_config: LoggingConfig) -> None:
    level = getattr(logging, logging_config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=logging_config.format)


def create_app(config: Optional[Config] = None, components: Optional[AppComponents] = None) -> Quart:
    """Build the Quart app.

    Args:
        config: Configuration; read from the environment when omitted
        components: Pre-built collaborators (tests pass fakes here)
    """
    config = config or get_config()
    configure_logging(config.logging_config)

    app = Quart(__name__)
    origins = config.cors_origins or ["*"]
    app = cors(app, allow_origin="*" if "*" in origins else origins)

    app.extensions[EXTENSION_KEY] = components or AppComponents.from_config(config)

    @app.before_serving
    async def startup():
        comps = app.extensions[EXTENSION_KEY]
        session = await comps.sessions.get_session()
        comps.attach_session(session)
        app.logger.info("HTTP session ready; %d Overpass endpoints configured", len(comps.overpass.urls))

    @app.after_serving
    async def shutdown():
        comps = app.extensions[EXTENSION_KEY]
        comps.attach_session(None)
        await comps.sessions.close()

    register_blueprints(app)
    return app


app = create_app()


if __name__ == "__main__":
    config = get_config()
    app.run(host="0.0.0.0", port=config.port, debug=config.debug)
