# src/vibeforge/observability/telemetry.py
"""
Router-level telemetry built on :mod:`vibeforge.observability.metrics`.

Records three families of metrics:

- ``router_selections_total``: selections by outcome
  (``scored``, ``ab_test``, ``fallback``, ``cache_hit``) and category
- ``router_budget_alerts_total``: budget alerts by period and type
- ``router_reported_latency_ms``: latencies reported through ``track_usage``
  by provider and model
"""

from __future__ import annotations

from enum import Enum

from .metrics import MetricLabels, MetricsRegistry, MetricUnit

SELECTIONS_METRIC = "router_selections_total"
ALERTS_METRIC = "router_budget_alerts_total"
LATENCY_METRIC = "router_reported_latency_ms"
SPEND_METRIC = "router_reported_cost_usd"


class SelectionOutcome(str, Enum):
    """How a selection was produced."""

    SCORED = "scored"
    AB_TEST = "ab_test"
    FALLBACK = "fallback"
    CACHE_HIT = "cache_hit"


class RouterTelemetry:
    """Thin facade the router calls at each decision point."""

    def __init__(self, registry: MetricsRegistry | None = None):
        self.registry = registry or MetricsRegistry()
        self.selections = self.registry.counter(SELECTIONS_METRIC, "Model selections by outcome")
        self.alerts = self.registry.counter(ALERTS_METRIC, "Budget alerts by period and type")
        self.latency = self.registry.histogram(
            LATENCY_METRIC, "Latency reported after invocation", MetricUnit.MILLISECONDS
        )
        self.spend = self.registry.counter(SPEND_METRIC, "Reported spend", MetricUnit.USD)

    def record_selection(self, outcome: SelectionOutcome, category: str | None = None) -> None:
        self.selections.inc(labels=MetricLabels(outcome=outcome.value, category=category))

    def record_alert(self, period: str, alert_type: str) -> None:
        self.alerts.inc(labels=MetricLabels(period=period, alert_type=alert_type))

    def record_usage(self, provider: str, model: str, latency_ms: float, cost: float) -> None:
        labels = MetricLabels(provider=provider, model=model)
        self.latency.observe(latency_ms, labels)
        self.spend.inc(cost, labels)

    def selection_count(self, outcome: SelectionOutcome | None = None) -> float:
        """Selections for one outcome across categories, or all selections."""
        if outcome is None:
            return self.selections.total()
        wanted = MetricLabels(outcome=outcome.value).to_key()
        return sum(
            value
            for key, value in self.selections.get_all().items()
            if wanted in key.split(",")
        )


__all__ = ["RouterTelemetry", "SelectionOutcome"]
