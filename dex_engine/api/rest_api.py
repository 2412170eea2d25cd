"""
REST API for the exchange engine.

This module provides HTTP endpoints for deposits, withdrawals, order
entry, balance and order book queries, and system statistics.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from .. import __version__
from ..config.settings import Settings, get_settings
from ..core.errors import ExchangeError, UnknownAsset
from ..core.exchange import Exchange
from .validators import (
    validate_account,
    validate_depth_request,
    validate_order_request,
    validate_order_side,
    validate_symbol,
    validate_transfer_request,
)

logger = logging.getLogger(__name__)


def create_app(exchange: Exchange, settings: Optional[Settings] = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        exchange: Exchange served by this application
        settings: Settings; the global settings when omitted

    Returns:
        Configured Flask application
    """
    settings = settings or get_settings()

    app = Flask(__name__)
    if settings.enable_cors:
        CORS(app, origins=settings.cors_origins)

    register_routes(app, exchange, settings)

    logger.info("REST API initialized")
    return app


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data


def register_routes(app: Flask, exchange: Exchange, settings: Settings) -> None:
    """Register all API routes."""

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'timestamp': _timestamp(),
            'version': __version__,
        })

    @app.route('/assets', methods=['GET'])
    def get_assets():
        """List registered assets and the quote asset."""
        assets = exchange.get_assets()
        return jsonify({
            'assets': [asset.symbol for asset in assets],
            'quote_asset': exchange.quote_symbol,
            'count': len(assets),
        }), 200

    @app.route('/deposits', methods=['POST'])
    def deposit():
        """
        Move an amount into custody and credit the account.

        Request body:
        {
            "symbol": "DAI",
            "amount": "100",
            "account": "trader1"
        }
        """
        data = _json_body()
        if data is None:
            return jsonify({'error': 'Request body must be a JSON object'}), 400

        is_valid, error, validated = validate_transfer_request(data)
        if not is_valid:
            return jsonify({'error': error}), 400

        balance = exchange.deposit(validated['amount'], validated['symbol'], validated['account'])
        return jsonify({
            'account': validated['account'],
            'symbol': validated['symbol'],
            'amount': str(validated['amount']),
            'balance': str(balance),
        }), 200

    @app.route('/withdrawals', methods=['POST'])
    def withdraw():
        """Debit the account and move an amount out of custody."""
        data = _json_body()
        if data is None:
            return jsonify({'error': 'Request body must be a JSON object'}), 400

        is_valid, error, validated = validate_transfer_request(data)
        if not is_valid:
            return jsonify({'error': error}), 400

        balance = exchange.withdraw(validated['amount'], validated['symbol'], validated['account'])
        return jsonify({
            'account': validated['account'],
            'symbol': validated['symbol'],
            'amount': str(validated['amount']),
            'balance': str(balance),
        }), 200

    @app.route('/orders', methods=['POST'])
    def submit_order():
        """
        Submit a new order.

        Request body:
        {
            "symbol": "REP",
            "order_type": "limit",
            "side": "buy",
            "amount": "100",
            "price": "10",
            "account": "trader1"
        }
        """
        data = _json_body()
        if data is None:
            return jsonify({'error': 'Request body must be a JSON object'}), 400

        is_valid, error, validated = validate_order_request(data, max_amount=settings.max_order_amount)
        if not is_valid:
            return jsonify({'error': error}), 400

        order, trades = exchange.submit_order(
            validated['symbol'],
            validated['order_type'],
            validated['side'],
            validated['amount'],
            validated['account'],
            validated['price'],
        )

        response_data = order.to_dict()
        response_data['trades'] = [trade.to_dict() for trade in trades]

        logger.info(f"Order submitted: {order.order_id}")
        return jsonify(response_data), 200

    @app.route('/orders/<symbol>', methods=['GET'])
    def get_orders(symbol: str):
        """
        Resting orders of one side of a book, best first.

        Query parameters:
        - side: buy or sell (required)
        """
        is_valid, error = validate_symbol(symbol)
        if not is_valid:
            return jsonify({'error': error}), 400

        is_valid, error, side = validate_order_side(request.args.get('side'))
        if not is_valid:
            return jsonify({'error': error}), 400

        if symbol not in exchange.registry:
            raise UnknownAsset(symbol)

        orders = exchange.get_orders(symbol, side)
        return jsonify({
            'symbol': symbol,
            'side': side.value,
            'orders': [order.to_dict() for order in orders],
            'count': len(orders),
        }), 200

    @app.route('/balances/<account>/<symbol>', methods=['GET'])
    def get_balance(account: str, symbol: str):
        """Balance of an account, with the part committed to resting orders."""
        is_valid, error = validate_account(account)
        if not is_valid:
            return jsonify({'error': error}), 400

        is_valid, error = validate_symbol(symbol)
        if not is_valid:
            return jsonify({'error': error}), 400

        if symbol not in exchange.registry:
            raise UnknownAsset(symbol)

        balance = exchange.balance_of(account, symbol)
        available = exchange.available_balance_of(account, symbol)
        return jsonify({
            'account': account,
            'symbol': symbol,
            'balance': str(balance),
            'available': str(available),
            'locked': str(balance - available),
        }), 200

    @app.route('/orderbook/<symbol>', methods=['GET'])
    def get_order_book(symbol: str):
        """
        Get order book for an asset.

        Query parameters:
        - depth: Number of price levels to return (default: 10)
        """
        is_valid, error, depth = validate_depth_request(
            symbol, request.args.get('depth'), max_depth=settings.max_book_depth
        )
        if not is_valid:
            return jsonify({'error': error}), 400

        return jsonify(exchange.get_market_data(symbol, depth)), 200

    @app.route('/trades/<symbol>', methods=['GET'])
    def get_trades(symbol: str):
        """
        Most recent trades of an asset, oldest first.

        Query parameters:
        - limit: Maximum number of trades (default: all kept)
        """
        is_valid, error = validate_symbol(symbol)
        if not is_valid:
            return jsonify({'error': error}), 400

        limit = request.args.get('limit')
        if limit is not None:
            try:
                limit = int(limit)
            except ValueError:
                return jsonify({'error': f"Invalid limit format: {limit}. Must be an integer"}), 400
            if limit < 0:
                return jsonify({'error': "Limit must not be negative"}), 400

        if symbol not in exchange.registry:
            raise UnknownAsset(symbol)

        trades = exchange.get_trades(symbol, limit)
        return jsonify({
            'symbol': symbol,
            'trades': [trade.to_dict() for trade in trades],
            'count': len(trades),
        }), 200

    @app.route('/statistics', methods=['GET'])
    def get_statistics():
        """Get engine statistics."""
        return jsonify(exchange.get_statistics()), 200

    @app.errorhandler(ExchangeError)
    def exchange_error(error: ExchangeError):
        """Map exchange rejections to their HTTP status."""
        logger.info(f"Request rejected: {error.message}")
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal server error: {str(error)}")
        return jsonify({'error': 'Internal server error'}), 500
