"""
Prometheus Metrics Export for the chat gateway.

Formats internal metrics in Prometheus text exposition format.
No external dependencies required.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from chat_gateway.connection_manager import ConnectionManager


class MetricType(str, Enum):
    """Prometheus metric types."""

    COUNTER = "counter"
    GAUGE = "gauge"


# (stats key in metrics snapshot, exported name, help text)
_COUNTERS: tuple[tuple[str, str, str], ...] = (
    ("broadcasts_total", "broadcasts_total", "Total broadcast operations"),
    ("broadcasts_failed", "broadcasts_failed", "Broadcasts with at least one failed recipient"),
    ("broadcasts_failed_recipients", "broadcasts_failed_recipients", "Total failed recipients"),
    ("connections_accepted", "connections_accepted_total", "Connections promoted to active"),
    ("connections_closed_oversized", "connections_closed_oversized_total", "Connections closed for oversized frames"),
    ("messages_persisted", "messages_persisted_total", "Chat messages persisted and relayed"),
    ("messages_persist_failed", "messages_persist_failed_total", "Chat messages that failed to persist"),
    ("messages_empty_dropped", "messages_empty_dropped_total", "Empty chat messages dropped"),
    ("messages_protocol_errors", "protocol_errors_total", "Malformed or unknown inbound frames"),
    ("messages_typing_relayed", "typing_relayed_total", "Typing indicators relayed"),
    ("messages_renames", "renames_total", "Guest display name changes"),
)


class PrometheusFormatter:
    """
    Formats metrics in Prometheus text exposition format.

    Reference: https://prometheus.io/docs/instrumenting/exposition_formats/

    Usage:
        formatter = PrometheusFormatter()
        output = formatter.format_all_metrics(stats)
    """

    def __init__(self, prefix: str = "chatgateway"):
        self._prefix = prefix

    def format_metric(
        self,
        name: str,
        value: float | int,
        help_text: str,
        metric_type: MetricType,
        labels: dict[str, str] | None = None,
    ) -> str:
        """Format a single metric with its HELP and TYPE lines."""
        lines = [
            f"# HELP {name} {help_text}",
            f"# TYPE {name} {metric_type.value}",
        ]
        if labels:
            label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
            lines.append(f"{name}{{{label_str}}} {value}")
        else:
            lines.append(f"{name} {value}")
        return "\n".join(lines)

    def format_all_metrics(self, stats: dict[str, Any]) -> str:
        """
        Format all metrics from ConnectionManager stats.

        Args:
            stats: Stats dictionary from ConnectionManager.get_stats().

        Returns:
            Complete Prometheus exposition format string.
        """
        lines: list[str] = []
        metrics = stats.get("metrics", {})
        p = self._prefix

        lines.append(self.format_metric(
            f"{p}_connections_active",
            stats.get("total_connections", 0),
            "Current number of registered connections",
            MetricType.GAUGE,
        ))
        lines.append(self.format_metric(
            f"{p}_guests_active",
            stats.get("guest_connections", 0),
            "Registered connections on the anonymous endpoint",
            MetricType.GAUGE,
        ))

        for key, name, help_text in _COUNTERS:
            lines.append(self.format_metric(
                f"{p}_{name}",
                metrics.get(key, 0),
                help_text,
                MetricType.COUNTER,
            ))

        # Rejections share one metric family
        lines.append(f"# HELP {p}_connections_rejected_total Rejected connections by reason")
        lines.append(f"# TYPE {p}_connections_rejected_total counter")
        lines.append(f'{p}_connections_rejected_total{{reason="auth"}} {metrics.get("connections_rejected_auth", 0)}')
        lines.append(f'{p}_connections_rejected_total{{reason="origin"}} {metrics.get("connections_rejected_origin", 0)}')

        lines.append(self.format_metric(
            f"{p}_scrape_timestamp",
            int(time.time()),
            "Timestamp of metrics scrape",
            MetricType.GAUGE,
        ))

        return "\n".join(lines) + "\n"


_formatter: PrometheusFormatter | None = None


def get_prometheus_formatter() -> PrometheusFormatter:
    """Get singleton Prometheus formatter."""
    global _formatter
    if _formatter is None:
        _formatter = PrometheusFormatter()
    return _formatter


async def generate_prometheus_metrics(manager: "ConnectionManager") -> str:
    """Generate Prometheus metrics from ConnectionManager."""
    stats = await manager.get_stats()
    return get_prometheus_formatter().format_all_metrics(stats)
