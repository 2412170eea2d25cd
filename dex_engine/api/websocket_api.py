"""
WebSocket API for real-time trade and order book feeds.

Clients subscribe per asset and receive every trade executed on that
asset and the order book after each operation that touched it. Engine
operations run on REST worker threads, so broadcasts are handed over to
the server's event loop.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from ..core.errors import ExchangeError
from ..core.exchange import Exchange
from ..core.order import Trade
from .validators import validate_depth_request, validate_symbol

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class WebSocketServer:
    """
    WebSocket server for real-time data streaming.

    Handles multiple client connections and broadcasts trades and order
    book updates to the clients subscribed to an asset.
    """

    def __init__(
        self,
        exchange: Exchange,
        host: str = 'localhost',
        port: int = 8765,
        ping_interval: int = 20,
        ping_timeout: int = 10,
    ):
        """
        Initialize WebSocket server.

        Args:
            exchange: Exchange whose events are streamed
            host: Host to bind to
            port: Port to bind to
            ping_interval: Seconds between keepalive pings
            ping_timeout: Seconds to wait for a pong
        """
        self.exchange = exchange
        self.host = host
        self.port = port
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout

        # Client management
        self.clients: Set[ServerConnection] = set()
        self.subscriptions: Dict[ServerConnection, Set[str]] = {}

        # Loop the server runs on, set by start()
        self.loop: Optional[asyncio.AbstractEventLoop] = None

        self.exchange.engine.add_trade_callback(self._on_trade)
        self.exchange.engine.add_market_data_callback(self._on_market_data)

        logger.info(f"WebSocket server initialized on {host}:{port}")

    async def start(self) -> None:
        """Start the WebSocket server and serve forever."""
        self.loop = asyncio.get_running_loop()
        logger.info(f"Starting WebSocket server on {self.host}:{self.port}")

        async with serve(
            self._handle_client,
            self.host,
            self.port,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
            close_timeout=10
        ):
            await asyncio.Future()  # Run forever

    async def _handle_client(self, websocket: ServerConnection) -> None:
        """
        Handle new client connection.

        Args:
            websocket: WebSocket connection
        """
        client_address = websocket.remote_address
        logger.info(f"Client connected: {client_address}")

        self.clients.add(websocket)
        self.subscriptions[websocket] = set()

        try:
            await self._send_message(websocket, {
                'type': 'connection',
                'status': 'connected',
                'timestamp': _timestamp(),
                'message': 'Connected to exchange WebSocket'
            })

            async for message in websocket:
                await self._handle_message(websocket, message)

        except ConnectionClosed:
            logger.info(f"Client disconnected: {client_address}")
        finally:
            self.clients.discard(websocket)
            self.subscriptions.pop(websocket, None)

    async def _handle_message(self, websocket: ServerConnection, message: str) -> None:
        """
        Handle message from client.

        Args:
            websocket: WebSocket connection
            message: Message from client
        """
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            await self._send_error(websocket, "Invalid JSON format")
            return

        if not isinstance(data, dict):
            await self._send_error(websocket, "Message must be a JSON object")
            return

        message_type = str(data.get('type', '')).lower()

        if message_type == 'subscribe':
            await self._handle_subscribe(websocket, data)
        elif message_type == 'unsubscribe':
            await self._handle_unsubscribe(websocket, data)
        elif message_type == 'ping':
            await self._send_message(websocket, {'type': 'pong', 'timestamp': _timestamp()})
        elif message_type == 'get_orderbook':
            await self._handle_get_orderbook(websocket, data)
        else:
            await self._send_error(websocket, f"Unknown message type: {message_type}")

    def _check_symbol(self, symbol: Any) -> Optional[str]:
        """Error message for a symbol clients cannot subscribe to, else None."""
        is_valid, error = validate_symbol(symbol)
        if not is_valid:
            return error
        if symbol not in self.exchange.registry:
            return f"This asset does not exist: {symbol}"
        return None

    async def _handle_subscribe(self, websocket: ServerConnection, data: Dict[str, Any]) -> None:
        """Handle subscription request."""
        symbol = data.get('symbol')

        error = self._check_symbol(symbol)
        if error:
            await self._send_error(websocket, error)
            return

        self.subscriptions[websocket].add(symbol)

        await self._send_message(websocket, {
            'type': 'subscription',
            'status': 'subscribed',
            'symbol': symbol,
            'timestamp': _timestamp()
        })

        # Current book first, then incremental broadcasts
        await self._send_orderbook_update(websocket, symbol)

        logger.info(f"Client subscribed to {symbol}")

    async def _handle_unsubscribe(self, websocket: ServerConnection, data: Dict[str, Any]) -> None:
        """Handle unsubscription request."""
        symbol = data.get('symbol')

        if symbol:
            self.subscriptions[websocket].discard(symbol)
            await self._send_message(websocket, {
                'type': 'subscription',
                'status': 'unsubscribed',
                'symbol': symbol,
                'timestamp': _timestamp()
            })
        else:
            self.subscriptions[websocket].clear()
            await self._send_message(websocket, {
                'type': 'subscription',
                'status': 'unsubscribed_all',
                'timestamp': _timestamp()
            })

        logger.info(f"Client unsubscribed from {symbol or 'all'}")

    async def _handle_get_orderbook(self, websocket: ServerConnection, data: Dict[str, Any]) -> None:
        """Handle get orderbook request."""
        symbol = data.get('symbol')

        error = self._check_symbol(symbol)
        if error:
            await self._send_error(websocket, error)
            return

        is_valid, error, depth = validate_depth_request(symbol, data.get('depth'))
        if not is_valid:
            await self._send_error(websocket, error)
            return

        await self._send_orderbook_update(websocket, symbol, depth)

    async def _send_orderbook_update(self, websocket: ServerConnection, symbol: str, depth: int = 10) -> None:
        """Send order book snapshot to client."""
        # The engine lock may be held by a REST worker; keep the loop free
        try:
            market_data = await asyncio.to_thread(self.exchange.get_market_data, symbol, depth)
        except ExchangeError as e:
            await self._send_error(websocket, e.message)
            return

        await self._send_message(websocket, {'type': 'orderbook', **market_data})

    async def _send_message(self, websocket: ServerConnection, message: Dict[str, Any]) -> None:
        """Send message to client."""
        try:
            await websocket.send(json.dumps(message))
        except ConnectionClosed:
            logger.debug("Client connection closed while sending message")

    async def _send_error(self, websocket: ServerConnection, error_message: str) -> None:
        """Send error message to client."""
        await self._send_message(websocket, {
            'type': 'error',
            'message': error_message,
            'timestamp': _timestamp()
        })

    def _schedule(self, coroutine) -> None:
        """Run a broadcast on the server loop from any thread."""
        if self.loop is None or self.loop.is_closed():
            coroutine.close()
            return
        asyncio.run_coroutine_threadsafe(coroutine, self.loop)

    def _on_trade(self, trade: Trade) -> None:
        """Handle trade execution callback."""
        if self.clients:
            self._schedule(self._broadcast_trade(trade))

    def _on_market_data(self, market_data: Dict[str, Any]) -> None:
        """Handle market data callback."""
        if self.clients:
            self._schedule(self._broadcast_market_data(market_data))

    async def _broadcast(self, asset: str, message: Dict[str, Any]) -> None:
        tasks = []
        for websocket in self.clients.copy():
            if asset in self.subscriptions.get(websocket, set()):
                tasks.append(self._send_message(websocket, message))

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _broadcast_trade(self, trade: Trade) -> None:
        """Broadcast trade to subscribed clients."""
        await self._broadcast(trade.asset, {'type': 'trade', **trade.to_dict()})

    async def _broadcast_market_data(self, market_data: Dict[str, Any]) -> None:
        """Broadcast order book update to subscribed clients."""
        asset = market_data.get('asset')
        if not asset:
            return
        await self._broadcast(asset, {'type': 'orderbook', **market_data})

    def get_client_count(self) -> int:
        """Get number of connected clients."""
        return len(self.clients)

    def get_subscription_count(self) -> Dict[str, int]:
        """Get subscription counts by asset."""
        counts: Dict[str, int] = {}
        for subscriptions in self.subscriptions.values():
            for symbol in subscriptions:
                counts[symbol] = counts.get(symbol, 0) + 1
        return counts
