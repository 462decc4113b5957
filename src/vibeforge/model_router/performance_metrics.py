# src/vibeforge/model_router/performance_metrics.py
"""
Performance metrics collection, model availability and A/B testing.

Every reported invocation becomes a :class:`MetricEntry` in an append-only
log. Aggregates (mean and p50/p95/p99 latency, acceptance, satisfaction,
error rate) are derived on demand from the filtered log and never stored.

Availability is the one piece of state updated in place: an exponential
moving average of latency and error indicator per (provider, model), fed
into :func:`transition_availability`, a pure three-state classifier:

    error_ema > unavailable_error_rate                        -> unavailable
    error_ema > degraded_error_rate or latency > degraded_ms  -> degraded
    otherwise                                                 -> healthy

EMA updates for one key are serialized with a per-key lock so they apply in
arrival order; different keys update independently.
"""

from __future__ import annotations

import logging
import math
import random
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from ..config import AvailabilityConfig
from ..logging_config import log_display
from .types import (
    ABTestConfig,
    AvailabilityStatus,
    LLMProvider,
    MetricEntry,
    ModelAvailability,
    ModelComparison,
    ModelRef,
    PerformanceMetrics,
    TaskCategory,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

TIE_THRESHOLD = 0.05

# Comparison score weights and normalizers.
ACCEPTANCE_WEIGHT = 0.4
SPEED_WEIGHT = 0.3
COST_WEIGHT = 0.2
SATISFACTION_WEIGHT = 0.1
SPEED_NORMALIZATION_MS = 10000.0
COST_NORMALIZATION_USD = 0.1
MAX_RATING = 5.0

_STATUS_SEVERITY = {
    AvailabilityStatus.HEALTHY: 0,
    AvailabilityStatus.DEGRADED: 1,
    AvailabilityStatus.UNAVAILABLE: 2,
}


def model_key(model_id: str, provider: LLMProvider | str) -> str:
    """``"{provider}:{model_id}"`` key used for availability and category grouping."""
    return f"{LLMProvider(provider).value}:{model_id}"


def percentile(sorted_values: list[float], p: float) -> float:
    """Nearest-rank percentile: element at index ``ceil(n * p) - 1``, floored at 0."""
    if not sorted_values:
        return 0.0
    index = math.ceil(len(sorted_values) * p) - 1
    return sorted_values[max(0, index)]


def _mean(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def transition_availability(
    current: AvailabilityStatus,
    latency_ema: float,
    error_ema: float,
    config: AvailabilityConfig | None = None,
) -> AvailabilityStatus:
    """
    Next availability state for the given EMAs.

    The classification depends only on the EMAs; ``current`` is accepted so
    callers can treat this as a transition and detect changes.
    """
    config = config or AvailabilityConfig()
    if error_ema > config.unavailable_error_rate:
        return AvailabilityStatus.UNAVAILABLE
    if error_ema > config.degraded_error_rate or latency_ema > config.degraded_latency_ms:
        return AvailabilityStatus.DEGRADED
    return AvailabilityStatus.HEALTHY


def comparison_score(metrics: PerformanceMetrics) -> float:
    """Weighted 0-1 score used by :meth:`PerformanceMetricsCollector.compare`."""
    speed = max(0.0, 1 - metrics.avg_response_time_ms / SPEED_NORMALIZATION_MS)
    cost = max(0.0, 1 - metrics.avg_cost_per_request / COST_NORMALIZATION_USD)
    return (
        metrics.recommendation_acceptance_rate * ACCEPTANCE_WEIGHT
        + speed * SPEED_WEIGHT
        + cost * COST_WEIGHT
        + (metrics.user_satisfaction_score / MAX_RATING) * SATISFACTION_WEIGHT
    )


def _relative_gain(winner: float, loser: float) -> int:
    return round((loser - winner) / loser * 100)


def _comparison_reasons(label: str, win: PerformanceMetrics, lose: PerformanceMetrics) -> list[str]:
    reasons = []
    if win.avg_response_time_ms < lose.avg_response_time_ms:
        pct = _relative_gain(win.avg_response_time_ms, lose.avg_response_time_ms)
        reasons.append(f"Model {label} is {pct}% faster")
    if win.recommendation_acceptance_rate > lose.recommendation_acceptance_rate:
        pct = round(
            (win.recommendation_acceptance_rate - lose.recommendation_acceptance_rate) * 100
        )
        reasons.append(f"Model {label} has {pct}% higher acceptance rate")
    if win.avg_cost_per_request < lose.avg_cost_per_request:
        pct = _relative_gain(win.avg_cost_per_request, lose.avg_cost_per_request)
        reasons.append(f"Model {label} is {pct}% cheaper")
    return reasons


class PerformanceMetricsCollector:
    """Collects invocation metrics, tracks availability and runs A/B tests.

    Args:
        availability_config: EMA alpha and health thresholds.
        clock: Returns the current aware datetime. Defaults to UTC now.
        rng: Source of ``random()`` draws for A/B arm selection.
    """

    def __init__(
        self,
        availability_config: AvailabilityConfig | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.availability_config = availability_config or AvailabilityConfig()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._rng = rng or random.Random()

        self._lock = threading.RLock()
        self._entries: list[MetricEntry] = []
        self._ab_tests: dict[str, ABTestConfig] = {}
        self._availability: dict[str, ModelAvailability] = {}
        self._key_locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record(
        self,
        model_id: str,
        provider: LLMProvider,
        task_category: TaskCategory,
        response_time_ms: float,
        tokens: int,
        cost: float,
        accepted: bool,
        error_occurred: bool = False,
        user_rating: float | None = None,
    ) -> MetricEntry:
        """Append a timestamped entry and update availability for its model."""
        entry = MetricEntry(
            model_id=model_id,
            provider=provider,
            task_category=task_category,
            response_time_ms=response_time_ms,
            tokens=tokens,
            cost=cost,
            accepted=accepted,
            user_rating=user_rating,
            error_occurred=error_occurred,
            timestamp=self._clock(),
        )
        with self._lock:
            self._entries.append(entry)

        self._update_availability(entry)
        return entry

    def _update_availability(self, entry: MetricEntry) -> None:
        key = model_key(entry.model_id, entry.provider)
        with self._lock:
            key_lock = self._key_locks[key]

        with key_lock:
            alpha = self.availability_config.ema_alpha
            error_sample = 1.0 if entry.error_occurred else 0.0
            availability = self._availability.get(key)

            if availability is None:
                availability = ModelAvailability(
                    model_id=entry.model_id,
                    provider=entry.provider,
                    avg_latency_ms=entry.response_time_ms,
                    error_rate=alpha * error_sample,
                    last_checked=entry.timestamp,
                )
                previous = AvailabilityStatus.HEALTHY
                with self._lock:
                    self._availability[key] = availability
            else:
                previous = availability.status
                availability.avg_latency_ms = (
                    alpha * entry.response_time_ms + (1 - alpha) * availability.avg_latency_ms
                )
                availability.error_rate = alpha * error_sample + (1 - alpha) * availability.error_rate
                availability.last_checked = entry.timestamp

            status = transition_availability(
                previous,
                availability.avg_latency_ms,
                availability.error_rate,
                self.availability_config,
            )
            availability.status = status
            availability.is_available = status != AvailabilityStatus.UNAVAILABLE

        if status != previous:
            worse = _STATUS_SEVERITY[status] > _STATUS_SEVERITY[previous]
            log_display(
                logger,
                logging.WARNING if worse else logging.INFO,
                f"Model {key} availability changed: {previous.value} -> {status.value} "
                f"(error_ema={availability.error_rate:.2f}, latency_ema={availability.avg_latency_ms:.0f}ms)",
            )

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def _filter_entries(
        self,
        predicate: Callable[[MetricEntry], bool],
        start: datetime | None,
        end: datetime | None,
    ) -> list[MetricEntry]:
        with self._lock:
            return [
                e
                for e in self._entries
                if predicate(e)
                and (start is None or e.timestamp >= start)
                and (end is None or e.timestamp <= end)
            ]

    @staticmethod
    def _calculate_metrics(
        model_id: str,
        provider: LLMProvider,
        entries: list[MetricEntry],
        start: datetime | None,
        end: datetime | None,
    ) -> PerformanceMetrics:
        count = len(entries)
        response_times = sorted(e.response_time_ms for e in entries)
        total_tokens = sum(e.tokens for e in entries)
        total_cost = sum(e.cost for e in entries)
        ratings = [e.user_rating for e in entries if e.user_rating is not None]

        return PerformanceMetrics(
            model_id=model_id,
            provider=provider,
            avg_response_time_ms=_mean(response_times),
            p50_response_time_ms=percentile(response_times, 0.5),
            p95_response_time_ms=percentile(response_times, 0.95),
            p99_response_time_ms=percentile(response_times, 0.99),
            avg_tokens_per_request=total_tokens / count,
            avg_cost_per_request=total_cost / count,
            recommendation_acceptance_rate=sum(1 for e in entries if e.accepted) / count,
            user_satisfaction_score=_mean(ratings),
            error_rate=sum(1 for e in entries if e.error_occurred) / count,
            total_requests=count,
            total_tokens=total_tokens,
            total_cost=total_cost,
            period_start=start or entries[0].timestamp,
            period_end=end or entries[-1].timestamp,
        )

    def get_metrics(
        self,
        model_id: str,
        provider: LLMProvider,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> PerformanceMetrics | None:
        """Aggregate for one (model, provider), or None if nothing matches."""
        provider = LLMProvider(provider)
        entries = self._filter_entries(
            lambda e: e.model_id == model_id and e.provider == provider, start, end
        )
        if not entries:
            return None
        return self._calculate_metrics(model_id, provider, entries, start, end)

    def get_metrics_by_category(
        self,
        task_category: TaskCategory,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, PerformanceMetrics]:
        """Aggregates for every model seen in a category, keyed ``provider:model_id``."""
        task_category = TaskCategory(task_category)
        entries = self._filter_entries(lambda e: e.task_category == task_category, start, end)

        grouped: dict[str, list[MetricEntry]] = {}
        for entry in entries:
            grouped.setdefault(model_key(entry.model_id, entry.provider), []).append(entry)

        return {
            key: self._calculate_metrics(group[0].model_id, group[0].provider, group, start, end)
            for key, group in grouped.items()
        }

    def compare(
        self,
        model_a: ModelRef,
        model_b: ModelRef,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> ModelComparison:
        """Compare two models over a window.

        The winner is None when either side has no data, and "tie" when the
        comparison scores differ by less than 0.05.
        """
        metrics_a = self.get_metrics(model_a.model_id, model_a.provider, start, end)
        metrics_b = self.get_metrics(model_b.model_id, model_b.provider, start, end)

        if metrics_a is None or metrics_b is None:
            return ModelComparison(
                model_a=metrics_a,
                model_b=metrics_b,
                winner=None,
                reasons=["Insufficient data for comparison"],
            )

        score_a = comparison_score(metrics_a)
        score_b = comparison_score(metrics_b)

        if abs(score_a - score_b) < TIE_THRESHOLD:
            winner, reasons = "tie", ["Models perform similarly overall"]
        elif score_a > score_b:
            winner, reasons = "A", _comparison_reasons("A", metrics_a, metrics_b)
        else:
            winner, reasons = "B", _comparison_reasons("B", metrics_b, metrics_a)

        return ModelComparison(model_a=metrics_a, model_b=metrics_b, winner=winner, reasons=reasons)

    # -------------------------------------------------------------------------
    # A/B tests
    # -------------------------------------------------------------------------

    def start_ab_test(self, config: ABTestConfig) -> ABTestConfig:
        """Register a test, seed empty result snapshots and mark it active."""
        now = self._clock()
        test = config.model_copy(
            update={
                "is_active": True,
                "start_date": now,
                "end_date": None,
                "results_a": PerformanceMetrics.empty(
                    config.model_a.model_id, config.model_a.provider, now
                ),
                "results_b": PerformanceMetrics.empty(
                    config.model_b.model_id, config.model_b.provider, now
                ),
            }
        )
        with self._lock:
            self._ab_tests[test.id] = test

        logger.info(
            f"A/B test '{test.id}' started: {test.model_a.key} vs {test.model_b.key} "
            f"(split={test.split_ratio})"
        )
        return test

    def stop_ab_test(self, test_id: str) -> ABTestConfig | None:
        """Deactivate a test and freeze metrics for its active window."""
        with self._lock:
            test = self._ab_tests.get(test_id)
            if test is None:
                return None

            end = self._clock()
            results_a = self.get_metrics(test.model_a.model_id, test.model_a.provider, test.start_date, end)
            results_b = self.get_metrics(test.model_b.model_id, test.model_b.provider, test.start_date, end)
            test = test.model_copy(
                update={
                    "is_active": False,
                    "end_date": end,
                    "results_a": results_a or test.results_a,
                    "results_b": results_b or test.results_b,
                }
            )
            self._ab_tests[test_id] = test

        logger.info(f"A/B test '{test_id}' stopped")
        return test

    def get_ab_test(self, test_id: str) -> ABTestConfig | None:
        with self._lock:
            return self._ab_tests.get(test_id)

    def get_all_ab_tests(self) -> list[ABTestConfig]:
        with self._lock:
            return list(self._ab_tests.values())

    def select_for_ab_test(self, test_id: str) -> ModelRef | None:
        """Draw an arm: A when ``random() < split_ratio``, else B. None if inactive or unknown."""
        test = self.get_ab_test(test_id)
        if test is None or not test.is_active:
            return None
        return test.model_a if self._rng.random() < test.split_ratio else test.model_b

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    def get_availability(self, model_id: str, provider: LLMProvider) -> ModelAvailability | None:
        with self._lock:
            availability = self._availability.get(model_key(model_id, provider))
        return availability.model_copy() if availability is not None else None

    def get_all_availabilities(self) -> list[ModelAvailability]:
        with self._lock:
            return [a.model_copy() for a in self._availability.values()]

    def clear(self) -> None:
        """Drop entries, A/B tests and availability records."""
        with self._lock:
            self._entries = []
            self._ab_tests.clear()
            self._availability.clear()
            self._key_locks.clear()


__all__ = [
    "PerformanceMetricsCollector",
    "comparison_score",
    "model_key",
    "percentile",
    "transition_availability",
]
