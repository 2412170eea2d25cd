"""
Utility modules for the exchange engine.

This module provides logging and performance monitoring for the engine
and its servers.
"""

from .logger import ExchangeLogger, create_audit_logger, get_logger, setup_logging
from .performance import PerformanceMonitor, get_performance_monitor, measure_latency

__all__ = [
    "ExchangeLogger",
    "create_audit_logger",
    "get_logger",
    "setup_logging",
    "PerformanceMonitor",
    "get_performance_monitor",
    "measure_latency",
]
