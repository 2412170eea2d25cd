"""
Tests for the asset registry and the in-memory transfer handle.
"""

import unittest

from dex_engine.core.asset_registry import MAX_SYMBOL_BYTES, AssetRegistry, validate_symbol
from dex_engine.core.errors import DuplicateAsset, TransferError, UnknownAsset
from dex_engine.core.transfers import InMemoryToken


class TestAssetRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = AssetRegistry()
        self.dai = InMemoryToken("DAI")
        self.rep = InMemoryToken("REP")

    def test_first_registered_asset_is_quote(self):
        self.assertIsNone(self.registry.quote_symbol)
        self.registry.register("DAI", self.dai)
        self.registry.register("REP", self.rep)

        self.assertEqual(self.registry.quote_symbol, "DAI")
        self.assertTrue(self.registry.is_quote("DAI"))
        self.assertFalse(self.registry.is_quote("REP"))

    def test_quote_flag(self):
        self.registry.register("REP", self.rep)
        # REP became the default quote; designating DAI now is refused
        with self.assertRaises(ValueError):
            self.registry.register("DAI", self.dai, quote=True)

    def test_designated_quote_before_registration(self):
        registry = AssetRegistry(quote_symbol="DAI")
        registry.register("REP", self.rep)
        self.assertIsNone(registry.quote_symbol)
        self.assertFalse(registry.is_quote("REP"))

        registry.register("DAI", self.dai)
        self.assertEqual(registry.quote_symbol, "DAI")

    def test_lookup_and_resolve(self):
        self.registry.register("DAI", self.dai)

        self.assertIs(self.registry.lookup("DAI").handle, self.dai)
        self.assertIsNone(self.registry.lookup("ZRX"))
        self.assertIs(self.registry.resolve("DAI"), self.dai)
        with self.assertRaises(UnknownAsset) as ctx:
            self.registry.resolve("ZRX")
        self.assertEqual(ctx.exception.code, 1001)
        self.assertEqual(ctx.exception.http_status, 404)

    def test_duplicate(self):
        self.registry.register("DAI", self.dai)
        with self.assertRaises(DuplicateAsset):
            self.registry.register("DAI", InMemoryToken("DAI"))
        self.assertEqual(len(self.registry), 1)

    def test_assets_in_registration_order(self):
        for symbol in ("DAI", "BAT", "REP", "ZRX"):
            self.registry.register(symbol, InMemoryToken(symbol))

        self.assertEqual([a.symbol for a in self.registry.assets()], ["DAI", "BAT", "REP", "ZRX"])
        self.assertIn("BAT", self.registry)
        self.assertNotIn("MKR", self.registry)

    def test_symbol_validation(self):
        self.assertEqual(validate_symbol("X" * MAX_SYMBOL_BYTES), "X" * MAX_SYMBOL_BYTES)
        for bad in ("", "X" * (MAX_SYMBOL_BYTES + 1), "DAÏ", None, 42):
            with self.assertRaises(ValueError):
                validate_symbol(bad)
        with self.assertRaises(ValueError):
            self.registry.register("", self.dai)


class TestInMemoryToken(unittest.TestCase):

    def test_transfers(self):
        token = InMemoryToken("DAI")
        token.faucet("alice", 100)

        token.transfer_in("alice", 60)
        self.assertEqual(token.balance_of("alice"), 40)
        self.assertEqual(token.custody, 60)

        token.transfer_out("bob", 10)
        self.assertEqual(token.balance_of("bob"), 10)
        self.assertEqual(token.custody, 50)
        self.assertEqual(token.total_supply, 100)

    def test_refused_transfers_move_nothing(self):
        token = InMemoryToken("DAI")
        token.faucet("alice", 10)

        with self.assertRaises(TransferError):
            token.transfer_in("alice", 11)
        with self.assertRaises(TransferError):
            token.transfer_out("alice", 1)
        self.assertEqual(token.balance_of("alice"), 10)
        self.assertEqual(token.custody, 0)


if __name__ == '__main__':
    unittest.main()
