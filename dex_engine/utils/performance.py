"""
Performance monitoring utilities.

This module tracks operation latencies and counters for the exchange and
samples process resources through psutil.
"""

import time
import psutil
import threading
from contextlib import contextmanager
from typing import Dict, List, Any
import logging

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Performance monitoring for the exchange engine.

    Tracks latency samples, counters, memory usage and CPU of the process.
    """

    def __init__(self, max_samples: int = 10000):
        """
        Initialize performance monitor.

        Args:
            max_samples: Samples kept per metric; oldest are dropped first
        """
        self.metrics: Dict[str, List[float]] = {}
        self.counters: Dict[str, int] = {}
        self.max_samples = max_samples
        self.start_time = time.time()
        self.lock = threading.Lock()

        self.process = psutil.Process()
        self.initial_memory = self.process.memory_info().rss

        logger.info("Performance monitor initialized")

    def record_metric(self, name: str, value: float) -> None:
        """
        Record a performance metric.

        Args:
            name: Metric name
            value: Metric value
        """
        with self.lock:
            samples = self.metrics.setdefault(name, [])
            samples.append(value)
            if len(samples) > self.max_samples:
                del samples[0]

    def increment_counter(self, name: str, value: int = 1) -> None:
        """
        Increment a counter metric.

        Args:
            name: Counter name
            value: Increment value
        """
        with self.lock:
            self.counters[name] = self.counters.get(name, 0) + value

    def get_metric_stats(self, name: str) -> Dict[str, float]:
        """
        Get statistics for a metric.

        Args:
            name: Metric name

        Returns:
            Dictionary with min, max, avg, p99, count
        """
        with self.lock:
            values = list(self.metrics.get(name, ()))
        return _summarize(values)

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        with self.lock:
            return self.counters.get(name, 0)

    def get_system_stats(self) -> Dict[str, Any]:
        """Get current system statistics."""
        try:
            memory_info = self.process.memory_info()
            cpu_percent = self.process.cpu_percent()
        except psutil.Error as e:
            logger.error(f"Error getting system stats: {str(e)}")
            return {}

        return {
            "memory_rss_mb": memory_info.rss / 1024 / 1024,
            "memory_vms_mb": memory_info.vms / 1024 / 1024,
            "cpu_percent": cpu_percent,
            "thread_count": self.process.num_threads(),
            "uptime_seconds": time.time() - self.start_time,
            "memory_growth_mb": (memory_info.rss - self.initial_memory) / 1024 / 1024
        }

    def get_summary(self) -> Dict[str, Any]:
        """Get performance summary."""
        with self.lock:
            counters = dict(self.counters)
            metrics = {name: list(values) for name, values in self.metrics.items() if values}

        summary = {
            "uptime_seconds": time.time() - self.start_time,
            "counters": counters,
            "metrics": {name: _summarize(values) for name, values in metrics.items()},
        }
        summary.update(self.get_system_stats())
        return summary

    def reset(self) -> None:
        """Reset all metrics and counters."""
        with self.lock:
            self.metrics.clear()
            self.counters.clear()
            self.start_time = time.time()
            self.initial_memory = self.process.memory_info().rss


def _summarize(values: List[float]) -> Dict[str, float]:
    if not values:
        return {"min": 0, "max": 0, "avg": 0, "p99": 0, "count": 0}
    ordered = sorted(values)
    return {
        "min": ordered[0],
        "max": ordered[-1],
        "avg": sum(ordered) / len(ordered),
        "p99": ordered[min(int(0.99 * len(ordered)), len(ordered) - 1)],
        "count": len(ordered),
    }


@contextmanager
def measure_latency(monitor: PerformanceMonitor, operation_name: str):
    """
    Context manager to measure operation latency.

    Failed operations are counted under `<operation>_errors`; the exception
    propagates unchanged.

    Args:
        monitor: Performance monitor instance
        operation_name: Name of the operation being measured
    """
    start_time = time.perf_counter()
    try:
        yield
    except Exception:
        monitor.increment_counter(f"{operation_name}_errors")
        raise
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        monitor.record_metric(f"{operation_name}_latency_ms", latency_ms)
        monitor.increment_counter(operation_name)


# Global performance monitor instance, created on first use
_performance_monitor = None


def get_performance_monitor() -> PerformanceMonitor:
    """Get the global performance monitor instance."""
    global _performance_monitor
    if _performance_monitor is None:
        _performance_monitor = PerformanceMonitor()
    return _performance_monitor
