"""
Error taxonomy for the exchange engine.

Every rejection surfaces as a specific ExchangeError subclass carrying a
stable numeric code and the HTTP status the REST layer answers with.

Code ranges:
  1xxx: Asset registry
  2xxx: Balances
  4xxx: Orders
  5xxx: External transfers
"""


class ExchangeError(Exception):
    """Base exchange error."""

    def __init__(self, code: int, message: str, http_status: int = 400) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


# --- 1xxx: Asset registry ---

class UnknownAsset(ExchangeError):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(1001, f"This asset does not exist: {symbol}", 404)


class DuplicateAsset(ExchangeError):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(1002, f"Asset already registered: {symbol}", 409)


class CannotTradeQuoteAsset(ExchangeError):
    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(1003, f"Cannot trade the quote asset {symbol}", 422)


# --- 2xxx: Balances ---

class InsufficientBalance(ExchangeError):
    def __init__(self, asset: str, required: int, available: int) -> None:
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Balance too low: required {required} {asset}, available {available}",
            422,
        )


class InsufficientAssetBalance(ExchangeError):
    def __init__(self, asset: str, required: int, available: int) -> None:
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            2002,
            f"Asset balance too low: required {required} {asset}, available {available}",
            422,
        )


class InsufficientQuoteBalance(ExchangeError):
    def __init__(self, asset: str, required: int, available: int) -> None:
        self.asset = asset
        self.required = required
        self.available = available
        super().__init__(
            2003,
            f"Quote balance too low: required {required} {asset}, available {available}",
            422,
        )


# --- 4xxx: Orders ---

class InvalidAmount(ExchangeError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid amount: {detail}", 400)


class AmountOverflow(ExchangeError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, f"Amount overflow: {detail}", 422)


class InvalidOrder(ExchangeError):
    def __init__(self, detail: str) -> None:
        super().__init__(4003, f"Invalid order: {detail}", 400)


# --- 5xxx: External transfers ---

class TransferError(ExchangeError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Transfer failed: {detail}", 502)
