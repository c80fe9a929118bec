"""Flask application for the market API."""

from typing import Optional
from flask import Flask
from flask_cors import CORS

from worldmarket.api.routes import market_api
from worldmarket.catalog import Catalog
from worldmarket.config import MarketConfig, get_config
from worldmarket.engine import MarketEngine
from worldmarket.utils import configure_logging


def create_app(
    engine: Optional[MarketEngine] = None,
    config: Optional[MarketConfig] = None,
    catalog: Optional[Catalog] = None
) -> Flask:
    """
    Create the Flask app with the market blueprint mounted.

    Args:
        engine: Market engine; built from config when omitted
        config: Configuration; loaded from the environment when omitted
        catalog: Item catalog; built from config.catalog_path when omitted

    Returns:
        Flask application
    """
    if config is None:
        config = get_config()

    configure_logging(config)

    app = Flask(__name__)
    CORS(app)

    app.extensions["worldmarket"] = {
        "engine": engine or MarketEngine.from_config(config),
        "catalog": catalog or Catalog(config.catalog_path),
        "snapshot_recent": config.snapshot_recent
    }
    app.register_blueprint(market_api, url_prefix=config.url_prefix)

    return app


__all__ = ["create_app", "market_api"]
