"""
Tests for environment-driven settings.
"""

import os
import unittest
from unittest import mock

from dex_engine.config.settings import Settings, get_settings, reload_settings


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = Settings()
            settings.validate()

        self.assertEqual(settings.quote_asset, "DAI")
        self.assertEqual(settings.assets, ["DAI", "BAT", "REP", "ZRX"])
        self.assertEqual(settings.rest_port, 5000)
        self.assertTrue(settings.enable_performance_monitoring)
        self.assertFalse(settings.debug)
        self.assertEqual(settings.to_dict()["assets"], ["DAI", "BAT", "REP", "ZRX"])

    def test_environment_overrides(self):
        env = {
            "QUOTE_ASSET": "USDC",
            "ASSETS": "USDC, WETH ,WBTC",
            "REST_PORT": "8080",
            "DEBUG": "TRUE",
            "CORS_ORIGINS": "https://a.example,https://b.example",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = reload_settings()

        self.assertIs(get_settings(), settings)
        self.assertEqual(settings.assets, ["USDC", "WETH", "WBTC"])
        self.assertEqual(settings.rest_port, 8080)
        self.assertTrue(settings.debug)
        self.assertEqual(settings.cors_origins, ["https://a.example", "https://b.example"])

    def test_validation_collects_errors(self):
        env = {"QUOTE_ASSET": "USDC", "REST_PORT": "70000", "MAX_BOOK_DEPTH": "0"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        with self.assertRaises(ValueError) as ctx:
            settings.validate()
        message = str(ctx.exception)
        self.assertIn("REST port", message)
        self.assertIn("Quote asset USDC", message)
        self.assertIn("book depth", message)

    def test_duplicate_assets(self):
        with mock.patch.dict(os.environ, {"ASSETS": "DAI,REP,REP"}, clear=True):
            settings = Settings()
        with self.assertRaises(ValueError):
            settings.validate()


if __name__ == '__main__':
    unittest.main()
