"""
Tests for the WebSocket feed, using an in-process fake connection.
"""

import asyncio
import json
import threading
import unittest

from dex_engine.api.websocket_api import WebSocketServer
from dex_engine.core.exchange import Exchange
from dex_engine.core.order_types import OrderSide
from dex_engine.core.transfers import InMemoryToken


class FakeConnection:
    """Records what the server sends and replays scripted client messages."""

    def __init__(self, incoming=()):
        self.remote_address = ("127.0.0.1", 50000)
        self.sent = []
        self._incoming = list(incoming)

    async def send(self, message):
        self.sent.append(json.loads(message))

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._incoming:
            raise StopAsyncIteration
        return self._incoming.pop(0)

    def of_type(self, message_type):
        return [m for m in self.sent if m['type'] == message_type]


class TestWebSocketServer(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.exchange = Exchange()
        for symbol in ("DAI", "REP"):
            token = InMemoryToken(symbol)
            self.exchange.add_asset(symbol, token)
            token.faucet("trader1", 1000)
            token.faucet("trader2", 1000)
        self.server = WebSocketServer(self.exchange)
        self.server.loop = asyncio.get_running_loop()

    async def connect(self, *symbols):
        connection = FakeConnection()
        self.server.clients.add(connection)
        self.server.subscriptions[connection] = set()
        for symbol in symbols:
            await self.server._handle_message(connection, json.dumps({'type': 'subscribe', 'symbol': symbol}))
        return connection

    async def drain(self):
        await asyncio.sleep(0.05)

    async def test_session_lifecycle(self):
        connection = FakeConnection([
            json.dumps({'type': 'ping'}),
            json.dumps({'type': 'subscribe', 'symbol': 'REP'}),
        ])

        await self.server._handle_client(connection)

        types = [m['type'] for m in connection.sent]
        self.assertEqual(types, ['connection', 'pong', 'subscription', 'orderbook'])
        self.assertEqual(self.server.get_client_count(), 0)

    async def test_subscribe_unknown_asset(self):
        connection = await self.connect('MKR')
        errors = connection.of_type('error')
        self.assertEqual(len(errors), 1)
        self.assertIn('MKR', errors[0]['message'])
        self.assertEqual(self.server.get_subscription_count(), {})

    async def test_bad_messages(self):
        connection = await self.connect()
        await self.server._handle_message(connection, 'not json')
        await self.server._handle_message(connection, json.dumps(['subscribe']))
        await self.server._handle_message(connection, json.dumps({'type': 'shout'}))
        self.assertEqual(len(connection.of_type('error')), 3)

    async def test_trade_and_orderbook_broadcasts(self):
        subscriber = await self.connect('REP')
        bystander = await self.connect()
        subscriber.sent.clear()

        self.exchange.deposit(100, "DAI", "trader1")
        self.exchange.create_limit_order("REP", 10, 10, OrderSide.BUY, "trader1")
        self.exchange.deposit(100, "REP", "trader2")
        self.exchange.create_market_order("REP", 5, OrderSide.SELL, "trader2")
        await self.drain()

        trades = subscriber.of_type('trade')
        self.assertEqual(len(trades), 1)
        self.assertEqual(trades[0]['amount'], '5')
        self.assertEqual(trades[0]['buyer'], 'trader1')

        books = subscriber.of_type('orderbook')
        self.assertEqual(len(books), 2)
        self.assertEqual(books[-1]['bids'], [['10', '5']])
        self.assertEqual(bystander.sent, [])

    async def test_unsubscribe(self):
        connection = await self.connect('REP')
        await self.server._handle_message(connection, json.dumps({'type': 'unsubscribe', 'symbol': 'REP'}))
        connection.sent.clear()

        self.exchange.deposit(10, "REP", "trader2")
        self.exchange.create_limit_order("REP", 10, 10, OrderSide.SELL, "trader2")
        await self.drain()

        self.assertEqual(connection.sent, [])

    async def test_get_orderbook(self):
        connection = await self.connect()
        self.exchange.deposit(10, "REP", "trader2")
        self.exchange.create_limit_order("REP", 10, 7, OrderSide.SELL, "trader2")

        await self.server._handle_message(connection, json.dumps({'type': 'get_orderbook', 'symbol': 'REP', 'depth': 1}))

        book = connection.of_type('orderbook')[0]
        self.assertEqual(book['asks'], [['7', '10']])
        self.assertEqual(book['best_ask'], '7')

    async def test_orderbook_request_does_not_block_loop(self):
        """A snapshot waiting on the engine lock leaves other clients served."""
        held = threading.Event()
        release = threading.Event()

        def hold_engine_lock():
            with self.exchange.engine.lock:
                held.set()
                release.wait(2)

        holder = threading.Thread(target=hold_engine_lock)
        holder.start()
        held.wait(2)

        reader = await self.connect()
        other = await self.connect()
        request = asyncio.create_task(
            self.server._handle_message(reader, json.dumps({'type': 'get_orderbook', 'symbol': 'REP'}))
        )
        await self.drain()
        await self.server._handle_message(other, json.dumps({'type': 'ping'}))

        self.assertEqual(other.of_type('pong')[0]['type'], 'pong')
        self.assertEqual(reader.of_type('orderbook'), [])

        release.set()
        await request
        holder.join()
        self.assertEqual(len(reader.of_type('orderbook')), 1)

    async def test_no_loop_no_broadcast(self):
        self.server.loop = None
        connection = await self.connect('REP')
        connection.sent.clear()

        self.exchange.deposit(10, "REP", "trader2")
        self.exchange.create_limit_order("REP", 10, 10, OrderSide.SELL, "trader2")
        await self.drain()

        self.assertEqual(connection.sent, [])


if __name__ == '__main__':
    unittest.main()
