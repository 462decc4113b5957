# src/vibeforge/observability/__init__.py
"""
Observability for the model router: a small metrics registry plus the
router telemetry facade that feeds it.
"""

from .metrics import Counter, Histogram, MetricLabels, MetricsRegistry, MetricUnit
from .telemetry import RouterTelemetry, SelectionOutcome

__all__ = [
    "Counter",
    "Histogram",
    "MetricLabels",
    "MetricUnit",
    "MetricsRegistry",
    "RouterTelemetry",
    "SelectionOutcome",
]
