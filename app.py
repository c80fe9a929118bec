"""Flask API server for the world market."""

import logging

from worldmarket.api import create_app
from worldmarket.config import get_config

config = get_config()
app = create_app(config=config)

logger = logging.getLogger("worldmarket")


if __name__ == '__main__':
    logger.info("Starting Flask API server...")
    app.run(
        host=config.flask_host,
        port=config.flask_port,
        debug=config.flask_debug
    )
