#!/usr/bin/env python3
"""
Main entry point for the exchange engine.

This script registers the configured assets and starts both the REST API
and WebSocket servers for the exchange.
"""

import asyncio
import signal
import sys
import threading
import time
from typing import Optional

from dex_engine.api.rest_api import create_app
from dex_engine.api.websocket_api import WebSocketServer
from dex_engine.config.settings import Settings, get_settings
from dex_engine.core.exchange import Exchange
from dex_engine.core.order import Trade
from dex_engine.core.transfers import InMemoryToken
from dex_engine.utils.logger import create_audit_logger, get_logger, log_trade_audit, setup_logging
from dex_engine.utils.performance import get_performance_monitor

logger = get_logger(__name__)


def build_exchange(settings: Settings) -> Exchange:
    """
    Create an exchange with the configured assets registered.

    Every asset is backed by an in-memory token; production deployments
    register their own transfer handles instead.
    """
    monitor = get_performance_monitor() if settings.enable_performance_monitoring else None
    exchange = Exchange(
        quote_symbol=settings.quote_asset,
        monitor=monitor,
        trade_history=settings.trade_history,
    )
    for symbol in settings.assets:
        exchange.add_asset(symbol, InMemoryToken(symbol), quote=symbol == settings.quote_asset)
    return exchange


class ExchangeServer:
    """
    Main server class that manages both REST and WebSocket servers.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the server."""
        self.settings = settings or get_settings()

        setup_logging(
            level=self.settings.log_level,
            log_file=self.settings.log_file
        )

        self.exchange = build_exchange(self.settings)
        self.audit_logger = create_audit_logger(self.settings.audit_log_file)
        self.exchange.engine.add_trade_callback(self._audit_trade)

        self.rest_app = None
        self.websocket_server = None
        self.rest_thread = None

        logger.info(
            f"Exchange server initialized - quote {self.settings.quote_asset}, "
            f"assets {', '.join(self.settings.assets)}"
        )

    def _audit_trade(self, trade: Trade) -> None:
        log_trade_audit(self.audit_logger, trade.to_dict())

    def start(self) -> None:
        """Start both REST and WebSocket servers."""
        logger.info("Starting exchange server...")

        # REST API in a separate thread, WebSocket server in the main thread
        self._start_rest_server()
        self._start_websocket_server()

    def _start_rest_server(self) -> None:
        """Start REST API server in a separate thread."""
        self.rest_app = create_app(self.exchange, self.settings)

        def run_rest_server():
            logger.info(f"Starting REST API server on {self.settings.rest_host}:{self.settings.rest_port}")
            self.rest_app.run(
                host=self.settings.rest_host,
                port=self.settings.rest_port,
                debug=self.settings.debug,
                use_reloader=False,
                threaded=True
            )

        self.rest_thread = threading.Thread(target=run_rest_server, daemon=True)
        self.rest_thread.start()

        # Give the server time to start
        time.sleep(1)

    def _start_websocket_server(self) -> None:
        """Start WebSocket server."""
        self.websocket_server = WebSocketServer(
            self.exchange,
            host=self.settings.websocket_host,
            port=self.settings.websocket_port,
            ping_interval=self.settings.websocket_ping_interval,
            ping_timeout=self.settings.websocket_ping_timeout,
        )
        asyncio.run(self.websocket_server.start())

    def stop(self) -> None:
        """Stop the server."""
        logger.info("Stopping exchange server...")
        # Both servers stop with the process: the REST thread is a daemon and
        # the WebSocket loop exits with asyncio.run
        logger.info(f"Final statistics: {self.exchange.get_statistics()}")
        logger.info("Server stopped")


def signal_handler(signum, frame):
    """Handle shutdown signals."""
    logger.info(f"Received signal {signum}, shutting down...")
    sys.exit(0)


def main():
    """Main entry point."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    server = None
    try:
        server = ExchangeServer()
        server.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {str(e)}")
        sys.exit(1)
    finally:
        if server is not None:
            server.stop()


if __name__ == "__main__":
    main()
