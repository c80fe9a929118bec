"""Market API blueprint: catalog, snapshot, quote and trade."""

import logging
from datetime import datetime
from typing import Any, Dict, Tuple
from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from worldmarket.api.schemas import QuoteRequest, TradeRequest, describe_validation_error
from worldmarket.catalog import Catalog
from worldmarket.engine import MarketEngine

logger = logging.getLogger(__name__)

market_api = Blueprint("market_api", __name__)

ENDPOINTS = ["/catalog", "/snapshot", "/quote", "/trade"]


def _engine() -> MarketEngine:
    return current_app.extensions["worldmarket"]["engine"]


def _catalog() -> Catalog:
    return current_app.extensions["worldmarket"]["catalog"]


def _error(message: str, status: int):
    return jsonify({'error': message}), status


def _json_body() -> Tuple[Dict[str, Any], bool]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return {}, False
    return body, True


@market_api.route('/', methods=['GET'])
def index():
    """List available endpoints."""
    return jsonify({'endpoints': ENDPOINTS})


@market_api.route('/health', methods=['GET'])
def health():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now().isoformat()
    })


@market_api.route('/catalog', methods=['GET'])
def get_catalog():
    """Tradable items; falls back to ids present in the market state."""
    try:
        catalog = _catalog()
        if catalog.entries:
            return jsonify(catalog.list_items())
        return jsonify(catalog.list_items(_engine().item_ids()))
    except Exception:
        logger.error("Failed to build catalog", exc_info=True)
        return _error('catalog error', 500)


@market_api.route('/snapshot', methods=['GET'])
def get_snapshot():
    """Full market state plus recent ledger entries."""
    recent = request.args.get('recent')
    if recent is None:
        recent_count = current_app.extensions["worldmarket"]["snapshot_recent"]
    else:
        try:
            recent_count = int(recent)
        except ValueError:
            return _error('invalid recent', 400)

    try:
        snapshot = _engine().get_market_snapshot(recent_ledger=recent_count)
        return jsonify(snapshot.to_dict())
    except Exception:
        logger.error("Failed to build market snapshot", exc_info=True)
        return _error('snapshot error', 500)


@market_api.route('/quote', methods=['POST'])
def quote():
    """Price a trade without executing it."""
    body, ok = _json_body()
    if not ok:
        return _error('request body must be a JSON object', 400)

    try:
        payload = QuoteRequest.model_validate(body)
    except ValidationError as e:
        return _error(describe_validation_error(e), 400)

    try:
        result = _engine().get_quote(
            item_id=payload.item_id,
            qty=payload.qty,
            country_id=payload.country_id,
            opts=payload.opts
        )
    except Exception:
        logger.error(f"Quote failed for {payload.item_id}", exc_info=True)
        return _error('quote error', 500)

    if not result.ok:
        return jsonify(result.to_dict()), 400
    return jsonify(result.to_dict())


@market_api.route('/trade', methods=['POST'])
def trade():
    """Execute a buy or sell against the market."""
    body, ok = _json_body()
    if not ok:
        return _error('request body must be a JSON object', 400)

    try:
        payload = TradeRequest.model_validate(body)
    except ValidationError as e:
        return _error(describe_validation_error(e), 400)

    try:
        result = _engine().execute_trade(
            item_id=payload.item_id,
            qty=payload.qty,
            side=payload.side,
            actor=payload.actor,
            country_id=payload.country_id,
            opts=payload.opts
        )
    except Exception:
        logger.error(f"Trade failed for {payload.item_id}", exc_info=True)
        return _error('trade error', 500)

    if not result.ok:
        return jsonify(result.to_dict()), 400
    return jsonify(result.to_dict())
