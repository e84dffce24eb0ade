"""
Prometheus-compatible metrics for observability.

Tracks marketplace activity:
- Bookings created and lifecycle transitions
- Ratings submitted
- Guarded-transaction conflicts (optimistic retries)
- Authentication events

Usage:
    from src.lib.metrics import get_metrics_collector

    metrics = get_metrics_collector()
    metrics.increment_bookings_created(service="Home Cleaning")
    metrics.increment_transitions(target_status="accepted")

    # Export for Prometheus
    prometheus_output = metrics.export_prometheus()
"""

from typing import Dict, Tuple
from threading import Lock


class MetricsCollector:
    """
    Prometheus-style metrics collector.

    Counters:
    - bookings_created_total: Booking requests (labels: service)
    - booking_transitions_total: Lifecycle moves (labels: target_status, outcome)
    - ratings_submitted_total: Ratings folded in (labels: stars)
    - transaction_conflicts_total: Optimistic retries (labels: operation)
    - auth_events_total: Sign-ups, sign-ins, verifications (labels: event, method, outcome)

    Thread-safe for concurrent increments.
    """

    def __init__(self):
        self._lock = Lock()

        # key = (metric_name, labels_tuple), value = count
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], int] = {}

    def _get_counter_key(self, metric_name: str, labels: Dict[str, str]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        """Generate unique key for counter with sorted labels."""
        sorted_labels = tuple(sorted(labels.items()))
        return (metric_name, sorted_labels)

    def _increment(self, metric_name: str, labels: Dict[str, str], amount: int = 1):
        """Thread-safe increment of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def _get_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    # ===== Booking Metrics =====

    def increment_bookings_created(self, service: str, amount: int = 1):
        self._increment("bookings_created_total", {"service": service}, amount)

    def increment_transitions(self, target_status: str, outcome: str = "success", amount: int = 1):
        """
        Increment lifecycle transition counter.

        Args:
            target_status: Status the booking was moved to (accepted, declined, completed)
            outcome: success, denied, invalid
            amount: Increment amount
        """
        labels = {
            "target_status": target_status.lower(),
            "outcome": outcome.lower(),
        }
        self._increment("booking_transitions_total", labels, amount)

    def increment_ratings(self, stars: int, amount: int = 1):
        self._increment("ratings_submitted_total", {"stars": str(stars)}, amount)

    def increment_transaction_conflicts(self, operation: str, amount: int = 1):
        self._increment("transaction_conflicts_total", {"operation": operation.lower()}, amount)

    # ===== Auth Metrics =====

    def increment_auth_events(self, event: str, method: str = "password", outcome: str = "success", amount: int = 1):
        labels = {
            "event": event.lower(),
            "method": method.lower(),
            "outcome": outcome.lower(),
        }
        self._increment("auth_events_total", labels, amount)

    # ===== Export =====

    def export_prometheus(self) -> str:
        """
        Export all metrics in Prometheus text format.

        Returns:
            Prometheus-compatible text output
        """
        output_lines = []

        metrics_by_name: Dict[str, list] = {}
        with self._lock:
            for (metric_name, labels_tuple), value in self._counters.items():
                metrics_by_name.setdefault(metric_name, []).append((dict(labels_tuple), value))

        for metric_name in sorted(metrics_by_name.keys()):
            help_text = self._get_help_text(metric_name)
            output_lines.append(f"# HELP {metric_name} {help_text}")
            output_lines.append(f"# TYPE {metric_name} counter")

            for labels_dict, value in sorted(metrics_by_name[metric_name], key=lambda x: str(x[0])):
                labels_str = ",".join([f'{k}="{v}"' for k, v in sorted(labels_dict.items())])
                output_lines.append(f"{metric_name}{{{labels_str}}} {value}")

            output_lines.append("")

        return "\n".join(output_lines)

    def _get_help_text(self, metric_name: str) -> str:
        help_texts = {
            "bookings_created_total": "Total number of booking requests created",
            "booking_transitions_total": "Total number of booking lifecycle transitions attempted",
            "ratings_submitted_total": "Total number of customer ratings folded into provider averages",
            "transaction_conflicts_total": "Total number of guarded transactions retried after a conflict",
            "auth_events_total": "Total number of authentication events",
        }
        return help_texts.get(metric_name, "Counter metric")

    def get_counter_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """Get current value of a specific counter."""
        return self._get_value(metric_name, labels)

    def reset_all(self):
        """Reset all counters (for testing)."""
        with self._lock:
            self._counters.clear()


# Global singleton instance
_metrics_collector: MetricsCollector | None = None
_metrics_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get global metrics collector singleton."""
    global _metrics_collector
    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics():
    """Reset global metrics collector (for testing)."""
    global _metrics_collector
    with _metrics_lock:
        if _metrics_collector is not None:
            _metrics_collector.reset_all()
