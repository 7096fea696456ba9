"""
Observability metrics for the storefront API.

Tracks per operation:
- Latency percentiles (p50, p95, p99)
- Request counts
- Error rates

Per-process and informational only; nothing reads these to make decisions.
"""

from typing import Dict, Optional
from collections import defaultdict, deque
from datetime import datetime, timezone
import statistics


class MetricsCollector:
    """
    In-memory metrics collector.

    For multi-instance deployments, scrape /metrics from each instance.
    """

    def __init__(self, window_size: int = 1000):
        """
        Args:
            window_size: Number of recent samples to keep for percentiles
        """
        self.window_size = window_size

        # Latency tracking (sliding window)
        self.latencies: Dict[str, deque] = defaultdict(lambda: deque(maxlen=window_size))

        self.request_counts: Dict[str, int] = defaultdict(int)
        self.error_counts: Dict[str, int] = defaultdict(int)

        self.start_time = datetime.now(timezone.utc)
        self.last_reset = self.start_time

    def record_latency(self, operation: str, latency_ms: float):
        """Record a latency sample for an operation."""
        self.latencies[operation].append(latency_ms)
        self.request_counts[operation] += 1

    def record_error(self, operation: str):
        """Record an error for an operation."""
        self.error_counts[operation] += 1

    def get_percentile(self, operation: str, percentile: float) -> Optional[float]:
        """
        Get a latency percentile for an operation.

        Returns:
            Latency in ms, or None if fewer than 10 samples
        """
        if operation not in self.latencies or len(self.latencies[operation]) == 0:
            return None

        values = sorted(self.latencies[operation])
        if len(values) < 10:
            return None

        index = int(len(values) * (percentile / 100.0))
        index = min(index, len(values) - 1)
        return values[index]

    def get_error_rate(self, operation: str) -> float:
        """Get the error rate for an operation as a percentage."""
        total_requests = self.request_counts[operation]
        if total_requests == 0:
            return 0.0
        return (self.error_counts[operation] / total_requests) * 100.0

    def get_summary(self) -> Dict:
        """Summary of all metrics, keyed by operation."""
        uptime_seconds = (datetime.now(timezone.utc) - self.start_time).total_seconds()

        summary = {
            "uptime_seconds": uptime_seconds,
            "operations": {}
        }

        for operation in list(self.request_counts.keys()):
            op_metrics = {
                "total_requests": self.request_counts[operation],
                "total_errors": self.error_counts[operation],
                "error_rate_pct": round(self.get_error_rate(operation), 2),
            }

            for label, pct in (("p50", 50), ("p95", 95), ("p99", 99)):
                value = self.get_percentile(operation, pct)
                if value is not None:
                    op_metrics[f"latency_{label}_ms"] = round(value, 2)

            if len(self.latencies[operation]) > 0:
                op_metrics["latency_avg_ms"] = round(
                    statistics.mean(self.latencies[operation]), 2
                )

            summary["operations"][operation] = op_metrics

        return summary

    def reset(self):
        """Reset all metrics (useful for testing)."""
        self.latencies.clear()
        self.request_counts.clear()
        self.error_counts.clear()
        self.last_reset = datetime.now(timezone.utc)


# Global metrics collector instance
metrics_collector = MetricsCollector()


def record_request_metrics(operation: str, latency_ms: float, is_error: bool = False):
    """
    Record latency and (optionally) an error for one operation call.

    Args:
        operation: Operation name (e.g. "create_order", "add_to_cart")
        latency_ms: Total latency in milliseconds
        is_error: Whether the call failed
    """
    metrics_collector.record_latency(operation, latency_ms)
    if is_error:
        metrics_collector.record_error(operation)
