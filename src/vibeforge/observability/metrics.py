# src/vibeforge/observability/metrics.py
"""
In-process metrics primitives for the model router.

Architecture:
    - MetricsRegistry: owns named metrics, one per name
    - Counter: monotonically increasing value per label set
    - Histogram: bounded sample store with mean and percentiles

There is no process-wide default registry; each router owns one through
its :class:`~vibeforge.observability.telemetry.RouterTelemetry`.

Thread Safety:
    All metric operations take a per-metric lock.

Usage:
    >>> registry = MetricsRegistry()
    >>> selections = registry.counter("router_selections_total", "Selections by outcome")
    >>> selections.inc(labels=MetricLabels(outcome="scored"))
    >>> latency = registry.histogram("model_latency_ms", "Reported latency")
    >>> latency.observe(420.0, MetricLabels(provider="openai", model="gpt-4o"))
"""

from __future__ import annotations

import math
import threading
from bisect import insort
from collections import defaultdict
from enum import Enum

from pydantic import BaseModel

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_PERCENTILES = [50, 95, 99]

# Oldest samples are dropped beyond this many per label set.
MAX_HISTOGRAM_SAMPLES = 5000

DEFAULT_KEY = "__default__"


class MetricUnit(str, Enum):
    """Units for metrics."""

    COUNT = "count"
    MILLISECONDS = "ms"
    USD = "usd"
    TOKENS = "tokens"


# =============================================================================
# LABELS
# =============================================================================


class MetricLabels(BaseModel):
    """Labels for metric dimensions."""

    provider: str | None = None
    model: str | None = None
    category: str | None = None
    outcome: str | None = None
    period: str | None = None
    alert_type: str | None = None

    def to_key(self) -> str:
        """Stable ``name=value`` key over the labels that are set."""
        parts = [f"{name}={value}" for name, value in self.model_dump(exclude_none=True).items()]
        return ",".join(parts) if parts else DEFAULT_KEY


def _key(labels: MetricLabels | None) -> str:
    return labels.to_key() if labels else DEFAULT_KEY


# =============================================================================
# METRIC CLASSES
# =============================================================================


class Counter:
    """
    A monotonically increasing counter.

    Args:
        name: Metric name.
        description: Human-readable description.
        unit: Unit of measurement.
    """

    def __init__(self, name: str, description: str = "", unit: MetricUnit = MetricUnit.COUNT):
        self.name = name
        self.description = description
        self.unit = unit
        self._values: dict[str, float] = defaultdict(float)
        self._lock = threading.Lock()

    def inc(self, value: float = 1.0, labels: MetricLabels | None = None) -> None:
        if value < 0:
            raise ValueError("Counter can only be incremented by a non-negative amount")
        with self._lock:
            self._values[_key(labels)] += value

    def get(self, labels: MetricLabels | None = None) -> float:
        with self._lock:
            return self._values.get(_key(labels), 0.0)

    def get_all(self) -> dict[str, float]:
        """All counter values by label key."""
        with self._lock:
            return dict(self._values)

    def total(self) -> float:
        with self._lock:
            return sum(self._values.values())

    def reset(self) -> None:
        with self._lock:
            self._values.clear()


class Histogram:
    """
    Distribution of observed values with percentile queries.

    Samples are kept sorted per label set; once ``max_samples`` is reached the
    oldest observation is evicted.
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        unit: MetricUnit = MetricUnit.MILLISECONDS,
        max_samples: int = MAX_HISTOGRAM_SAMPLES,
    ):
        self.name = name
        self.description = description
        self.unit = unit
        self.max_samples = max_samples
        self._sorted: dict[str, list[float]] = defaultdict(list)
        self._arrival: dict[str, list[float]] = defaultdict(list)
        self._sums: dict[str, float] = defaultdict(float)
        self._lock = threading.Lock()

    def observe(self, value: float, labels: MetricLabels | None = None) -> None:
        key = _key(labels)
        with self._lock:
            arrival = self._arrival[key]
            samples = self._sorted[key]
            if len(arrival) >= self.max_samples:
                oldest = arrival.pop(0)
                samples.remove(oldest)
                self._sums[key] -= oldest
            arrival.append(value)
            insort(samples, value)
            self._sums[key] += value

    def count(self, labels: MetricLabels | None = None) -> int:
        with self._lock:
            return len(self._sorted.get(_key(labels), []))

    def mean(self, labels: MetricLabels | None = None) -> float | None:
        key = _key(labels)
        with self._lock:
            samples = self._sorted.get(key)
            if not samples:
                return None
            return self._sums[key] / len(samples)

    def percentile(self, p: float, labels: MetricLabels | None = None) -> float | None:
        """Nearest-rank percentile for ``p`` in 0-100, or None without samples."""
        with self._lock:
            samples = self._sorted.get(_key(labels))
            if not samples:
                return None
            index = max(0, math.ceil(len(samples) * p / 100) - 1)
            return samples[min(index, len(samples) - 1)]

    def percentiles(
        self, labels: MetricLabels | None = None, which: list[float] | None = None
    ) -> dict[float, float]:
        result = {}
        for p in which or DEFAULT_PERCENTILES:
            value = self.percentile(p, labels)
            if value is not None:
                result[p] = value
        return result

    def reset(self) -> None:
        with self._lock:
            self._sorted.clear()
            self._arrival.clear()
            self._sums.clear()


# =============================================================================
# REGISTRY
# =============================================================================


class MetricsRegistry:
    """
    Owner of named metrics.

    ``counter()`` and ``histogram()`` are get-or-create, so repeated calls
    with the same name return the same instance.
    """

    def __init__(self):
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._registry_lock = threading.Lock()

    def counter(self, name: str, description: str = "", unit: MetricUnit = MetricUnit.COUNT) -> Counter:
        with self._registry_lock:
            if name not in self._counters:
                self._counters[name] = Counter(name, description, unit)
            return self._counters[name]

    def histogram(
        self,
        name: str,
        description: str = "",
        unit: MetricUnit = MetricUnit.MILLISECONDS,
    ) -> Histogram:
        with self._registry_lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name, description, unit)
            return self._histograms[name]

    def get_all_metrics(self) -> dict[str, Counter | Histogram]:
        with self._registry_lock:
            return {**self._counters, **self._histograms}

    def reset_all(self) -> None:
        with self._registry_lock:
            for counter in self._counters.values():
                counter.reset()
            for histogram in self._histograms.values():
                histogram.reset()


__all__ = [
    "DEFAULT_PERCENTILES",
    "MAX_HISTOGRAM_SAMPLES",
    "Counter",
    "Histogram",
    "MetricLabels",
    "MetricUnit",
    "MetricsRegistry",
]
