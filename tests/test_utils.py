"""
Tests for logging and performance utilities.
"""

import os
import tempfile
import unittest

from dex_engine.utils.logger import ExchangeLogger, create_audit_logger, log_order_audit, log_trade_audit
from dex_engine.utils.performance import PerformanceMonitor, measure_latency


class TestPerformanceMonitor(unittest.TestCase):

    def test_measure_latency(self):
        monitor = PerformanceMonitor()

        with measure_latency(monitor, "op"):
            pass
        with self.assertRaises(KeyError):
            with measure_latency(monitor, "op"):
                raise KeyError("boom")

        self.assertEqual(monitor.get_counter("op"), 2)
        self.assertEqual(monitor.get_counter("op_errors"), 1)
        self.assertEqual(monitor.get_metric_stats("op_latency_ms")["count"], 2)

    def test_samples_are_bounded(self):
        monitor = PerformanceMonitor(max_samples=3)
        for value in range(5):
            monitor.record_metric("m", value)

        stats = monitor.get_metric_stats("m")
        self.assertEqual(stats["count"], 3)
        self.assertEqual(stats["min"], 2)
        self.assertEqual(monitor.get_metric_stats("missing")["count"], 0)

        summary = monitor.get_summary()
        self.assertIn("m", summary["metrics"])
        monitor.reset()
        self.assertEqual(monitor.get_summary()["metrics"], {})


class TestExchangeLogger(unittest.TestCase):

    def test_structured_records(self):
        events = ExchangeLogger()

        with self.assertLogs("dex_engine.orders", level="INFO") as orders:
            events.log_order_submission("trader1", "REP", "limit", "buy", 10, 12)
            events.log_order_submission("trader1", "REP", "market", "sell", 5)
            events.log_rejection("trader1", "DAI", "CannotTradeQuoteAsset", "Cannot trade the quote asset DAI")
        self.assertIn("ORDER_SUBMIT|trader1|REP|limit|buy|10|12", orders.output[0])
        self.assertTrue(orders.output[1].endswith("|5|N/A"))
        self.assertTrue(orders.output[2].startswith("WARNING"))

        with self.assertLogs("dex_engine.trades", level="INFO") as trades:
            events.log_trade_execution(3, "REP", 10, 5, "sell")
        self.assertIn("TRADE_EXEC|3|REP|10|5|sell", trades.output[0])

        with self.assertLogs("dex_engine.custody", level="INFO") as custody:
            events.log_transfer("DEPOSIT", "trader1", "DAI", 100)
        self.assertIn("DEPOSIT|trader1|DAI|100", custody.output[0])

    def test_audit_log(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "audit", "audit.log")
            audit_logger = create_audit_logger(path)
            try:
                log_order_audit(audit_logger, "SUBMIT", {"order_id": 1, "trader": "trader1", "asset": "REP"})
                log_trade_audit(audit_logger, {"trade_id": 0, "asset": "REP", "price": "10", "amount": "5"})
                for handler in audit_logger.handlers:
                    handler.flush()

                with open(path) as f:
                    lines = f.read().splitlines()
            finally:
                for handler in list(audit_logger.handlers):
                    handler.close()
                    audit_logger.removeHandler(handler)

        self.assertEqual(len(lines), 2)
        self.assertIn("ORDER_SUBMIT|ID:1|TRADER:trader1|ASSET:REP", lines[0])
        self.assertIn("TRADE_EXECUTE|ID:0|ASSET:REP|PRICE:10|AMOUNT:5", lines[1])
        self.assertFalse(audit_logger.propagate)


if __name__ == '__main__':
    unittest.main()
