"""
Custodial exchange engine.

Holds asset balances per account in custody, matches BUY and SELL orders
for traded assets priced in one quote asset, and exposes the engine over
REST and WebSocket.
"""

__version__ = "1.0.0"
