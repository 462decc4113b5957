# src/vibeforge/model_router/router.py
"""
Model Router for per-task LLM selection.

Recommends which (model, provider) to call for a sub-task by filtering the
static capability catalog against the caller's constraints and scoring the
survivors under a routing strategy. The router never calls an LLM; callers
invoke the recommended model themselves and report the outcome back through
:meth:`ModelRouter.track_usage`.

Selection pipeline:
    1. Cache lookup by criteria fingerprint
    2. Active A/B test bypass (reasoning "A/B Test", confidence 0.8)
    3. Candidate filtering (providers, cost, latency, budget, availability,
       minimum quality)
    4. Fallback model when nothing survives, or NoModelsAvailableError
    5. Strategy scoring and ranking; runners-up become alternatives
    6. Cache store with TTL eviction

Strategies (divisors come from ``ScoringConfig``):
    cost-optimized:         0.7 * (1 - cost / cost_norm)       + 0.3 * quality
    performance-optimized:  0.7 * (1 - latency / latency_norm) + 0.3 * quality
    quality-optimized:      quality
    balanced:               0.3 * complexity_match + 0.2 * cost_score
                            + 0.25 * perf_score + 0.25 * quality
    custom:                 RouterConfig.custom_score_fn, else balanced

Usage:
    from vibeforge.model_router import create_model_router, TaskCategory

    router = create_model_router()
    criteria = router.build_criteria(
        TaskCategory.EXPLANATION, "Explain why Postgres fits here", expected_output_tokens=300
    )
    selection = router.select_model(criteria)

    # ... call selection.model_id through your LLM client ...
    router.track_usage(
        selection.model_id, selection.provider, TaskCategory.EXPLANATION,
        prompt_tokens=120, completion_tokens=280, response_time_ms=910, accepted=True,
    )
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from ..config import RouterConfig, VibeForgeConfig
from ..exceptions import ConfigError, NoModelsAvailableError
from ..observability import RouterTelemetry, SelectionOutcome
from .catalog import ModelCatalog
from .complexity_analyzer import ComplexityAnalyzer
from .cost_tracker import CostTracker
from .performance_metrics import PerformanceMetricsCollector
from .types import (
    COMPLEXITY_ORDER,
    AlertType,
    AlternativeModel,
    CostAlert,
    CostEntry,
    ExplanationFactor,
    LLMProvider,
    ModelCapabilities,
    ModelRecommendation,
    ModelRef,
    ModelSelection,
    ModelSelectionCriteria,
    RoutingStrategy,
    SelectionExplanation,
    TaskCategory,
    TaskComplexity,
)

logger = logging.getLogger(__name__)

FIXED_SELECTION_CONFIDENCE = 0.8
AB_TEST_REASONING = "A/B Test"
FALLBACK_REASONING = "Fallback (no models available)"
MAX_ALTERNATIVES = 3
NEUTRAL_PERFORMANCE_SCORE = 0.5
COMPLEXITY_DISTANCE_PENALTY = 0.3

# Balanced strategy weights.
COMPLEXITY_WEIGHT = 0.3
COST_WEIGHT = 0.2
PERFORMANCE_WEIGHT = 0.25
QUALITY_WEIGHT = 0.25

# Weights of the historical performance sub-score.
ACCEPTANCE_WEIGHT = 0.5
SPEED_WEIGHT = 0.3
RELIABILITY_WEIGHT = 0.2


@dataclass
class _CacheEntry:
    selection: ModelSelection
    expires_at: float


class ModelRouter:
    """
    Routes tasks to models by scoring the capability catalog.

    Every collaborator is injected; omitted ones are built fresh for this
    router, so two routers never share state unless handed the same objects.

    Args:
        config: Router configuration. Defaults to :class:`RouterConfig`.
        catalog: Capability catalog. Defaults to the built-in catalog.
        complexity_analyzer: Used by :meth:`build_criteria`.
        cost_tracker: Cost log and budget.
        performance_metrics: Metric log, availability and A/B tests.
        telemetry: Selection/alert/latency counters.
    """

    def __init__(
        self,
        config: RouterConfig | None = None,
        catalog: ModelCatalog | None = None,
        complexity_analyzer: ComplexityAnalyzer | None = None,
        cost_tracker: CostTracker | None = None,
        performance_metrics: PerformanceMetricsCollector | None = None,
        telemetry: RouterTelemetry | None = None,
    ):
        self._config = config or RouterConfig()
        self.catalog = catalog or ModelCatalog()
        self.complexity_analyzer = complexity_analyzer or ComplexityAnalyzer()
        self.cost_tracker = cost_tracker or CostTracker(catalog=self.catalog)
        self.performance_metrics = performance_metrics or PerformanceMetricsCollector()
        self.telemetry = telemetry or RouterTelemetry()

        self._lock = threading.RLock()
        self._cache: dict[str, _CacheEntry] = {}
        self._sweep_timer: threading.Timer | None = None
        self._sweep_at: float | None = None

        self._apply_budget(self._config)
        self._unsubscribe_alerts = self.cost_tracker.on_alert(self._on_budget_alert)

        logger.debug(
            f"ModelRouter initialized: strategy={self._config.strategy.value}, "
            f"models={len(self.catalog)}, caching={self._config.enable_caching}"
        )

    @property
    def config(self) -> RouterConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select_model(self, criteria: ModelSelectionCriteria) -> ModelSelection:
        """Select the best model for a task.

        Raises:
            NoModelsAvailableError: If no candidate survives filtering and
                fallback is disabled.
        """
        category = criteria.task_category.value
        cache_key = self._cache_key(criteria)

        if self._config.enable_caching:
            cached = self._cache_get(cache_key)
            if cached is not None:
                logger.debug(f"Selection cache hit: {cache_key}")
                self.telemetry.record_selection(SelectionOutcome.CACHE_HIT, category)
                return cached

        ab_arm = self._check_ab_tests(criteria.task_category)
        if ab_arm is not None:
            logger.info(f"A/B test routed {category} task to {ab_arm.key}")
            self.telemetry.record_selection(SelectionOutcome.AB_TEST, category)
            return self._create_selection(ab_arm, criteria, AB_TEST_REASONING)

        candidates = self.get_available_models(criteria)

        if not candidates:
            if self._config.enable_fallback:
                fallback = self._config.fallback_model
                logger.warning(
                    f"No models satisfy criteria for {category}/{criteria.task_complexity.value}; "
                    f"using fallback {fallback.key}"
                )
                self.telemetry.record_selection(SelectionOutcome.FALLBACK, category)
                return self._create_selection(fallback, criteria, FALLBACK_REASONING)
            raise NoModelsAvailableError(self._describe_criteria(criteria))

        scored = [(model, self.score_model(model, criteria)) for model in candidates]
        scored.sort(key=lambda pair: pair[1], reverse=True)

        best, best_score = scored[0]
        alternatives = [
            AlternativeModel(
                model_id=model.model_id,
                provider=model.provider,
                score=score,
                reason=self._reason_for_score(model, criteria, score),
            )
            for model, score in scored[1 : 1 + MAX_ALTERNATIVES]
        ]

        selection = ModelSelection(
            model_id=best.model_id,
            provider=best.provider,
            reasoning=self._reason_for_score(best, criteria, best_score),
            confidence=best_score,
            estimated_cost=self.estimate_cost(best, criteria),
            estimated_latency_ms=best.avg_response_time_ms,
            alternative_models=alternatives,
        )

        logger.info(
            f"Selected {best.provider.value}:{best.model_id} for {category}/"
            f"{criteria.task_complexity.value} (score={best_score:.3f}, "
            f"strategy={self._config.strategy.value}, candidates={len(candidates)})"
        )
        self.telemetry.record_selection(SelectionOutcome.SCORED, category)

        if self._config.enable_caching:
            self._cache_put(cache_key, selection)

        return selection

    def select_with_explanation(self, criteria: ModelSelectionCriteria) -> ModelRecommendation:
        """Select a model and attribute the balanced-strategy factors to it."""
        selection = self.select_model(criteria)
        model = self.catalog.get(selection.model_id)

        factors: list[ExplanationFactor] = []
        tradeoffs: list[str] = []

        if model is not None:
            complexity_match = self.complexity_match(model, criteria.task_complexity)
            cost_score = self.cost_score(model, criteria)
            perf_score = self.performance_score(model)
            quality_score = self.quality_score(model, criteria)
            best_for = ", ".join(t.value for t in COMPLEXITY_ORDER if t in model.best_for)

            factors = [
                ExplanationFactor(
                    factor="Task Complexity Match",
                    weight=COMPLEXITY_WEIGHT,
                    contribution=complexity_match * COMPLEXITY_WEIGHT,
                    description=(
                        f"Task is {criteria.task_complexity.value}, model is best for {best_for}"
                    ),
                ),
                ExplanationFactor(
                    factor="Cost Efficiency",
                    weight=COST_WEIGHT,
                    contribution=cost_score * COST_WEIGHT,
                    description=(
                        f"Estimated cost: ${self.estimate_cost(model, criteria):.4f} per request"
                    ),
                ),
                ExplanationFactor(
                    factor="Historical Performance",
                    weight=PERFORMANCE_WEIGHT,
                    contribution=perf_score * PERFORMANCE_WEIGHT,
                    description=(
                        f"Avg response time: {model.avg_response_time_ms:g}ms, "
                        "acceptance rate from history"
                    ),
                ),
                ExplanationFactor(
                    factor="Quality Requirements",
                    weight=QUALITY_WEIGHT,
                    contribution=quality_score * QUALITY_WEIGHT,
                    description=(
                        f"Reasoning: {model.reasoning_score:g}/10, "
                        f"Accuracy: {model.accuracy_score:g}/10"
                    ),
                ),
            ]

            alternatives = [
                (alt, self.catalog.get(alt.model_id)) for alt in selection.alternative_models
            ]
            cheaper = next(
                (
                    alt
                    for alt, alt_model in alternatives
                    if alt_model is not None
                    and self.estimate_cost(alt_model, criteria) < selection.estimated_cost
                ),
                None,
            )
            if cheaper is not None:
                tradeoffs.append(f"{cheaper.model_id} is cheaper but may have lower quality")

            faster = next(
                (
                    alt
                    for alt, alt_model in alternatives
                    if alt_model is not None
                    and alt_model.avg_response_time_ms < model.avg_response_time_ms
                ),
                None,
            )
            if faster is not None:
                tradeoffs.append(f"{faster.model_id} is faster but may be less accurate")

        summary = (
            f"Selected {selection.model_id} based on {self._config.strategy.value} strategy. "
            f"Confidence: {round(selection.confidence * 100)}%"
        )
        return ModelRecommendation(
            selection=selection,
            explanation=SelectionExplanation(summary=summary, factors=factors, tradeoffs=tradeoffs),
        )

    def build_criteria(
        self,
        task_category: TaskCategory,
        prompt_text: str,
        expected_output_tokens: int = 0,
        extra_factors: dict[str, Any] | None = None,
        **requirements: Any,
    ) -> ModelSelectionCriteria:
        """Selection criteria with complexity and prompt size taken from the analyzer.

        ``requirements`` are passed through to :class:`ModelSelectionCriteria`
        (``requires_reasoning``, ``max_cost_per_request``, ``avoid_providers``...).
        """
        analysis = self.complexity_analyzer.analyze_from_prompt(
            task_category, prompt_text, extra_factors
        )
        return ModelSelectionCriteria(
            task_complexity=analysis.complexity,
            task_category=task_category,
            prompt_tokens=analysis.factors.prompt_length,
            expected_output_tokens=expected_output_tokens,
            **requirements,
        )

    # -------------------------------------------------------------------------
    # Write-back
    # -------------------------------------------------------------------------

    def track_usage(
        self,
        model_id: str,
        provider: LLMProvider,
        task_category: TaskCategory,
        prompt_tokens: int,
        completion_tokens: int,
        response_time_ms: float,
        accepted: bool,
        error_occurred: bool = False,
    ) -> CostEntry:
        """Record cost and performance for one completed invocation.

        Errors from the cost tracker (an unknown model) propagate unchanged and
        nothing is recorded to the metrics collector in that case.
        """
        known = self.catalog.get(model_id)
        canonical_id = known.model_id if known is not None else model_id
        total_tokens = prompt_tokens + completion_tokens

        entry = self.cost_tracker.track(
            model_id=canonical_id,
            provider=provider,
            task_category=task_category,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
        )
        self.performance_metrics.record(
            model_id=canonical_id,
            provider=provider,
            task_category=task_category,
            response_time_ms=response_time_ms,
            tokens=total_tokens,
            cost=entry.total_cost,
            accepted=accepted,
            error_occurred=error_occurred,
        )
        self.telemetry.record_usage(
            LLMProvider(provider).value, canonical_id, response_time_ms, entry.total_cost
        )
        return entry

    # -------------------------------------------------------------------------
    # Filtering
    # -------------------------------------------------------------------------

    def get_available_models(self, criteria: ModelSelectionCriteria) -> list[ModelCapabilities]:
        """Catalog models that satisfy the criteria and router gates, in catalog order."""
        if self._config.budget is not None and self.cost_tracker.is_budget_exhausted():
            logger.debug("Budget exhausted; no candidates")
            return []

        max_latency = (
            criteria.max_latency_ms
            if criteria.max_latency_ms is not None
            else self._config.max_latency_ms
        )
        min_quality = self._config.min_quality_score
        available = []

        for model in self.catalog:
            if criteria.preferred_provider is not None and model.provider != criteria.preferred_provider:
                continue
            if model.provider in criteria.avoid_providers:
                continue
            if (
                criteria.max_cost_per_request is not None
                and self.estimate_cost(model, criteria) > criteria.max_cost_per_request
            ):
                continue
            if max_latency is not None and model.avg_response_time_ms > max_latency:
                continue
            availability = self.performance_metrics.get_availability(model.model_id, model.provider)
            if availability is not None and not availability.is_available:
                continue
            if min_quality is not None and self.quality_score(model, criteria) < min_quality:
                continue
            available.append(model)

        return available

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def score_model(self, model: ModelCapabilities, criteria: ModelSelectionCriteria) -> float:
        """Score one candidate under the configured strategy."""
        strategy = self._config.strategy
        scoring = self._config.scoring

        if strategy == RoutingStrategy.COST_OPTIMIZED:
            cost_part = 1 - self.estimate_cost(model, criteria) / scoring.cost_normalization_usd
            return cost_part * 0.7 + self.quality_score(model, criteria) * 0.3
        if strategy == RoutingStrategy.PERFORMANCE_OPTIMIZED:
            speed_part = 1 - model.avg_response_time_ms / scoring.latency_normalization_ms
            return speed_part * 0.7 + self.quality_score(model, criteria) * 0.3
        if strategy == RoutingStrategy.QUALITY_OPTIMIZED:
            return self.quality_score(model, criteria)
        if strategy == RoutingStrategy.CUSTOM and self._config.custom_score_fn is not None:
            return float(self._config.custom_score_fn(model, criteria))
        return self.balanced_score(model, criteria)

    def balanced_score(self, model: ModelCapabilities, criteria: ModelSelectionCriteria) -> float:
        return (
            self.complexity_match(model, criteria.task_complexity) * COMPLEXITY_WEIGHT
            + self.cost_score(model, criteria) * COST_WEIGHT
            + self.performance_score(model) * PERFORMANCE_WEIGHT
            + self.quality_score(model, criteria) * QUALITY_WEIGHT
        )

    @staticmethod
    def complexity_match(model: ModelCapabilities, complexity: TaskComplexity) -> float:
        """1.0 for a best-for tier, else 0.3 off per tier of distance from the model's top tier."""
        if complexity in model.best_for:
            return 1.0
        diff = abs(model.max_tier_rank - TaskComplexity(complexity).rank)
        return max(0.0, 1 - diff * COMPLEXITY_DISTANCE_PENALTY)

    def cost_score(self, model: ModelCapabilities, criteria: ModelSelectionCriteria) -> float:
        cost = self.estimate_cost(model, criteria)
        return max(0.0, 1 - cost / self._config.scoring.cost_normalization_usd)

    def performance_score(self, model: ModelCapabilities) -> float:
        """Blend of historical acceptance, speed and reliability; 0.5 without history."""
        metrics = self.performance_metrics.get_metrics(model.model_id, model.provider)
        if metrics is None:
            return NEUTRAL_PERFORMANCE_SCORE

        speed = max(
            0.0, 1 - metrics.avg_response_time_ms / self._config.scoring.latency_normalization_ms
        )
        return (
            metrics.recommendation_acceptance_rate * ACCEPTANCE_WEIGHT
            + speed * SPEED_WEIGHT
            + (1 - metrics.error_rate) * RELIABILITY_WEIGHT
        )

    @staticmethod
    def quality_score(model: ModelCapabilities, criteria: ModelSelectionCriteria) -> float:
        """Mean of the required capability scores (/10); reasoning and accuracy when none are required."""
        required = []
        if criteria.requires_reasoning:
            required.append(model.reasoning_score)
        if criteria.requires_creativity:
            required.append(model.creativity_score)
        if criteria.requires_accuracy:
            required.append(model.accuracy_score)

        if not required:
            return (model.reasoning_score + model.accuracy_score) / 20
        return sum(score / 10 for score in required) / len(required)

    @staticmethod
    def estimate_cost(model: ModelCapabilities, criteria: ModelSelectionCriteria) -> float:
        input_cost = (criteria.prompt_tokens / 1_000_000) * model.input_cost_per_1m
        output_cost = (criteria.expected_output_tokens / 1_000_000) * model.output_cost_per_1m
        return input_cost + output_cost

    def _reason_for_score(
        self, model: ModelCapabilities, criteria: ModelSelectionCriteria, score: float
    ) -> str:
        reasons = []
        if criteria.task_complexity in model.best_for:
            reasons.append(f"Optimized for {criteria.task_complexity.value} tasks")
        if criteria.requires_reasoning and model.reasoning_score >= 8:
            reasons.append(f"Strong reasoning capabilities ({model.reasoning_score:g}/10)")

        estimated_cost = self.estimate_cost(model, criteria)
        if estimated_cost < 0.001:
            reasons.append(f"Very cost-effective (${estimated_cost:.6f} per request)")
        if model.avg_response_time_ms < 1000:
            reasons.append(f"Fast response time (~{model.avg_response_time_ms:g}ms)")

        if not reasons:
            reasons.append(f"Best overall match with {round(score * 100)}% confidence")
        return ". ".join(reasons)

    # -------------------------------------------------------------------------
    # A/B tests and fixed selections
    # -------------------------------------------------------------------------

    def _check_ab_tests(self, task_category: TaskCategory) -> ModelRef | None:
        for configured in self._config.active_ab_tests:
            test = self.performance_metrics.get_ab_test(configured.id)
            if test is None or not test.is_active or not test.applies_to(task_category):
                continue
            arm = self.performance_metrics.select_for_ab_test(configured.id)
            if arm is not None:
                return arm
        return None

    def _create_selection(
        self, ref: ModelRef, criteria: ModelSelectionCriteria, reasoning: str
    ) -> ModelSelection:
        model = self.catalog.get(ref.model_id)
        return ModelSelection(
            model_id=ref.model_id,
            provider=ref.provider,
            reasoning=reasoning,
            confidence=FIXED_SELECTION_CONFIDENCE,
            estimated_cost=self.estimate_cost(model, criteria) if model is not None else 0.0,
            estimated_latency_ms=model.avg_response_time_ms if model is not None else 0.0,
        )

    @staticmethod
    def _describe_criteria(criteria: ModelSelectionCriteria) -> str:
        parts = [f"{criteria.task_category.value}/{criteria.task_complexity.value}"]
        if criteria.preferred_provider is not None:
            parts.append(f"provider={criteria.preferred_provider.value}")
        if criteria.avoid_providers:
            parts.append("avoid=" + ",".join(p.value for p in criteria.avoid_providers))
        if criteria.max_cost_per_request is not None:
            parts.append(f"max_cost=${criteria.max_cost_per_request}")
        if criteria.max_latency_ms is not None:
            parts.append(f"max_latency={criteria.max_latency_ms:g}ms")
        return " ".join(parts)

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    @staticmethod
    def _cache_key(criteria: ModelSelectionCriteria) -> str:
        preferred = criteria.preferred_provider.value if criteria.preferred_provider else "any"
        return (
            f"{criteria.task_category.value}_{criteria.task_complexity.value}_"
            f"{criteria.prompt_tokens}_{preferred}"
        )

    def _cache_get(self, key: str) -> ModelSelection | None:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if time.monotonic() >= entry.expires_at:
                del self._cache[key]
                return None
            return entry.selection

    def _cache_put(self, key: str, selection: ModelSelection) -> None:
        entry = _CacheEntry(
            selection=selection,
            expires_at=time.monotonic() + self._config.cache_ttl_seconds,
        )
        with self._lock:
            self._cache[key] = entry
            self._schedule_sweep(entry.expires_at)

    def _schedule_sweep(self, at: float) -> None:
        """Arm the single eviction timer for ``at`` unless it already fires sooner.

        Caller holds ``_lock``.
        """
        if self._sweep_timer is not None and self._sweep_at is not None and self._sweep_at <= at:
            return
        if self._sweep_timer is not None:
            self._sweep_timer.cancel()

        timer = threading.Timer(max(0.0, at - time.monotonic()), self._sweep)
        timer.daemon = True
        self._sweep_timer = timer
        self._sweep_at = at
        timer.start()

    def _sweep(self) -> None:
        with self._lock:
            now = time.monotonic()
            expired = [key for key, entry in self._cache.items() if entry.expires_at <= now]
            for key in expired:
                del self._cache[key]
            if expired:
                logger.debug(f"Evicted {len(expired)} expired selection(s)")

            # A newer timer took over while this one was waiting for the lock.
            if self._sweep_timer is not threading.current_thread():
                return
            self._sweep_timer = None
            self._sweep_at = None
            if self._cache:
                self._schedule_sweep(min(entry.expires_at for entry in self._cache.values()))

    def _cancel_sweep(self) -> None:
        if self._sweep_timer is not None:
            self._sweep_timer.cancel()
        self._sweep_timer = None
        self._sweep_at = None

    def clear_cache(self) -> None:
        """Drop every cached selection and cancel the pending eviction."""
        with self._lock:
            self._cache.clear()
            self._cancel_sweep()

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def update_config(self, **changes: Any) -> RouterConfig:
        """Apply a validated partial update and clear the cache.

        Raises:
            ConfigError: On unknown keys or values that fail validation.
        """
        unknown = set(changes) - set(RouterConfig.model_fields)
        if unknown:
            raise ConfigError(f"Unknown router config keys: {', '.join(sorted(unknown))}")

        current = {name: getattr(self._config, name) for name in RouterConfig.model_fields}
        try:
            new_config = RouterConfig(**{**current, **changes})
        except ValidationError as e:
            raise ConfigError(f"Invalid router config update: {e}") from e

        self._config = new_config
        if "budget" in changes:
            self._apply_budget(new_config, replace=True)
        self.clear_cache()

        logger.info(f"Router config updated: {', '.join(sorted(changes))}")
        return new_config

    def _apply_budget(self, config: RouterConfig, replace: bool = False) -> None:
        if config.budget is None:
            return
        if replace or self.cost_tracker.get_budget() is None:
            self.cost_tracker.set_budget(config.budget)

    def _on_budget_alert(self, alert: CostAlert) -> None:
        self.telemetry.record_alert(alert.period.value, alert.type.value)
        if alert.type == AlertType.CRITICAL:
            # Cached picks were made before the budget ran out.
            self.clear_cache()

    def close(self) -> None:
        """Detach from the cost tracker and cancel cache timers."""
        self._unsubscribe_alerts()
        self.clear_cache()


# =============================================================================
# FACTORY FUNCTION
# =============================================================================


def create_model_router(
    config: VibeForgeConfig | RouterConfig | None = None,
    catalog: ModelCatalog | None = None,
) -> ModelRouter:
    """Build a router and all of its collaborators from configuration.

    Example:
        config = load_config("vibeforge.toml")
        router = create_model_router(config)
    """
    if config is None:
        config = VibeForgeConfig()
    elif isinstance(config, RouterConfig):
        config = VibeForgeConfig(router=config)

    catalog = catalog or ModelCatalog()
    return ModelRouter(
        config=config.router,
        catalog=catalog,
        complexity_analyzer=ComplexityAnalyzer(
            weights=config.complexity.weights,
            category_defaults=config.complexity.category_defaults,
        ),
        cost_tracker=CostTracker(catalog=catalog),
        performance_metrics=PerformanceMetricsCollector(availability_config=config.availability),
        telemetry=RouterTelemetry(),
    )


__all__ = ["ModelRouter", "create_model_router"]
