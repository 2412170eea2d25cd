"""
API layer for the exchange engine.

This module provides the REST API for custody and order entry and the
WebSocket feed for trades and order book updates.
"""

from .rest_api import create_app
from .websocket_api import WebSocketServer
from .validators import validate_order_request, validate_symbol

__all__ = [
    "create_app",
    "WebSocketServer",
    "validate_order_request",
    "validate_symbol",
]
