# src/vibeforge/model_router/types.py
"""
Data models for the model router subsystem.

All models are Pydantic models with snake_case attributes. When serialized
with ``by_alias=True`` they use camelCase keys (``modelId``, ``promptTokens``,
``exportedAt``...) so cost exports stay compatible with documents produced by
the VibeForge front-end.

Enums:
    TaskComplexity, TaskCategory, OutputStructure, LLMProvider,
    RoutingStrategy, AvailabilityStatus, AlertType, BudgetPeriod

Models:
    ModelCapabilities   - static catalog profile (immutable)
    ComplexityFactors   - inputs to the complexity score
    ModelSelectionCriteria / ModelSelection / ModelRecommendation
    CostEntry / CostBudget / CostAlert / CostSummary
    MetricEntry / PerformanceMetrics / ModelAvailability
    ABTestConfig / ModelComparison
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


# =============================================================================
# ENUMS
# =============================================================================


class TaskComplexity(str, Enum):
    """Coarse complexity tiers, ordered from least to most demanding."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        """Position of this tier in the ordered tier list."""
        return COMPLEXITY_ORDER.index(self)


COMPLEXITY_ORDER: list[TaskComplexity] = [
    TaskComplexity.SIMPLE,
    TaskComplexity.MEDIUM,
    TaskComplexity.COMPLEX,
    TaskComplexity.EXPERT,
]


class TaskCategory(str, Enum):
    """Kinds of work the wizard asks an LLM to do."""

    STACK_RECOMMENDATION = "stack_recommendation"
    CODE_ANALYSIS = "code_analysis"
    EXPLANATION = "explanation"
    VALIDATION = "validation"
    GENERATION = "generation"
    REASONING = "reasoning"


class OutputStructure(str, Enum):
    """Shape of the output a task expects."""

    SIMPLE = "simple"
    STRUCTURED = "structured"
    COMPLEX = "complex"


class LLMProvider(str, Enum):
    """Providers reachable through the external LLM clients."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


class RoutingStrategy(str, Enum):
    """Scoring strategy used to rank candidate models."""

    COST_OPTIMIZED = "cost-optimized"  # Minimize cost
    PERFORMANCE_OPTIMIZED = "performance-optimized"  # Minimize latency
    QUALITY_OPTIMIZED = "quality-optimized"  # Maximize quality
    BALANCED = "balanced"  # Blend all factors
    CUSTOM = "custom"  # Host-supplied scoring function


class AvailabilityStatus(str, Enum):
    """Health classification of a (model, provider) pair."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


class AlertType(str, Enum):
    """Budget alert severity."""

    WARNING = "warning"
    CRITICAL = "critical"


class BudgetPeriod(str, Enum):
    """Rolling budget periods."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# =============================================================================
# BASE
# =============================================================================


class CamelModel(BaseModel):
    """Base model that accepts and emits camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class ModelRef(CamelModel):
    """A (model, provider) pair."""

    model_config = ConfigDict(frozen=True)

    model_id: str
    provider: LLMProvider

    @property
    def key(self) -> str:
        """Stable ``provider:model`` key."""
        return f"{self.provider.value}:{self.model_id}"


# =============================================================================
# CATALOG & COMPLEXITY
# =============================================================================


class ModelCapabilities(CamelModel):
    """Static capability profile of a model. Never mutated after load."""

    model_config = ConfigDict(frozen=True)

    model_id: str
    provider: LLMProvider
    display_name: str

    max_tokens: int = Field(ge=1)
    avg_response_time_ms: float = Field(ge=0)

    reasoning_score: float = Field(ge=0, le=10)
    creativity_score: float = Field(ge=0, le=10)
    accuracy_score: float = Field(ge=0, le=10)

    input_cost_per_1m: float = Field(ge=0, alias="inputCostPer1M")
    output_cost_per_1m: float = Field(ge=0, alias="outputCostPer1M")

    best_for: frozenset[TaskComplexity]
    good_for: frozenset[TaskCategory]

    @property
    def ref(self) -> ModelRef:
        return ModelRef(model_id=self.model_id, provider=self.provider)

    @property
    def max_tier_rank(self) -> int:
        """Rank of the most demanding tier this model is best for."""
        return max(tier.rank for tier in self.best_for)


class ComplexityFactors(CamelModel):
    """Fully populated complexity factors for one task."""

    prompt_length: int = Field(default=100, ge=0)
    reasoning_depth: float = Field(default=5, ge=0, le=10)
    domain_complexity: float = Field(default=5, ge=0, le=10)
    output_structure: OutputStructure = OutputStructure.SIMPLE
    requires_multi_step: bool = False
    context_size: int = Field(default=0, ge=0)


class ComplexityAnalysis(CamelModel):
    """Result of analyzing a free-text prompt."""

    complexity: TaskComplexity
    score: float
    factors: ComplexityFactors


# =============================================================================
# SELECTION
# =============================================================================


class ModelSelectionCriteria(CamelModel):
    """What the caller needs from a model."""

    task_complexity: TaskComplexity
    task_category: TaskCategory

    requires_reasoning: bool = False
    requires_creativity: bool = False
    requires_accuracy: bool = False

    max_cost_per_request: float | None = Field(default=None, ge=0)
    max_latency_ms: float | None = Field(default=None, ge=0)

    prompt_tokens: int = Field(default=0, ge=0)
    expected_output_tokens: int = Field(default=0, ge=0)

    preferred_provider: LLMProvider | None = None
    avoid_providers: list[LLMProvider] = Field(default_factory=list)


class AlternativeModel(CamelModel):
    """A ranked runner-up."""

    model_id: str
    provider: LLMProvider
    score: float
    reason: str


class ModelSelection(CamelModel):
    """Router recommendation. Transient, only ever cached."""

    model_id: str
    provider: LLMProvider
    reasoning: str
    confidence: float

    estimated_cost: float
    estimated_latency_ms: float

    alternative_models: list[AlternativeModel] = Field(default_factory=list)


class ExplanationFactor(CamelModel):
    factor: str
    weight: float
    contribution: float
    description: str


class SelectionExplanation(CamelModel):
    summary: str
    factors: list[ExplanationFactor] = Field(default_factory=list)
    tradeoffs: list[str] = Field(default_factory=list)


class ModelRecommendation(CamelModel):
    """Selection plus a factor-by-factor explanation."""

    selection: ModelSelection
    explanation: SelectionExplanation


# =============================================================================
# COST
# =============================================================================


class CostEntry(CamelModel):
    """One billed invocation. Append-only."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"cost_{uuid.uuid4().hex}")
    timestamp: datetime = Field(default_factory=utc_now)

    model_id: str
    provider: LLMProvider

    prompt_tokens: int = Field(ge=0)
    completion_tokens: int = Field(ge=0)
    total_tokens: int = Field(ge=0)

    input_cost: float = Field(ge=0)
    output_cost: float = Field(ge=0)
    total_cost: float = Field(ge=0)

    task_category: TaskCategory
    session_id: str | None = None
    user_id: str | None = None


class CostBudget(CamelModel):
    """Budget limits and rolling spend counters."""

    daily_limit: float | None = Field(default=None, gt=0)
    weekly_limit: float | None = Field(default=None, gt=0)
    monthly_limit: float | None = Field(default=None, gt=0)

    daily_spent: float = 0.0
    weekly_spent: float = 0.0
    monthly_spent: float = 0.0

    warning_threshold: float = Field(default=0.8, gt=0, le=1)

    daily_reset_at: datetime
    weekly_reset_at: datetime
    monthly_reset_at: datetime

    def limit_for(self, period: BudgetPeriod) -> float | None:
        return getattr(self, f"{period.value}_limit")

    def spent_for(self, period: BudgetPeriod) -> float:
        return getattr(self, f"{period.value}_spent")


class CostAlert(CamelModel):
    type: AlertType
    period: BudgetPeriod
    current_spent: float
    limit: float
    percentage: float
    message: str
    timestamp: datetime = Field(default_factory=utc_now)


class UsageBreakdown(CamelModel):
    cost: float = 0.0
    tokens: int = 0
    requests: int = 0


class CostSummary(CamelModel):
    """Aggregated cost over a date range."""

    total_cost: float = 0.0
    total_tokens: int = 0
    total_requests: int = 0
    by_provider: dict[str, UsageBreakdown] = Field(default_factory=dict)
    by_category: dict[str, UsageBreakdown] = Field(default_factory=dict)
    entries: list[CostEntry] = Field(default_factory=list)


class CostExport(CamelModel):
    """Wire shape of ``CostTracker.export()``."""

    entries: list[CostEntry] = Field(default_factory=list)
    budget: CostBudget | None = None
    exported_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# PERFORMANCE
# =============================================================================


class MetricEntry(CamelModel):
    """One observed invocation. Append-only."""

    model_config = ConfigDict(frozen=True)

    model_id: str
    provider: LLMProvider
    task_category: TaskCategory
    response_time_ms: float = Field(ge=0)
    tokens: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0)
    accepted: bool
    user_rating: float | None = Field(default=None, ge=0, le=5)
    error_occurred: bool = False
    timestamp: datetime = Field(default_factory=utc_now)


class PerformanceMetrics(CamelModel):
    """Aggregate statistics, derived on demand from metric entries."""

    model_id: str
    provider: LLMProvider

    avg_response_time_ms: float = 0.0
    p50_response_time_ms: float = 0.0
    p95_response_time_ms: float = 0.0
    p99_response_time_ms: float = 0.0

    avg_tokens_per_request: float = 0.0
    avg_cost_per_request: float = 0.0

    recommendation_acceptance_rate: float = 0.0
    user_satisfaction_score: float = 0.0
    error_rate: float = 0.0

    total_requests: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0

    period_start: datetime
    period_end: datetime

    @classmethod
    def empty(
        cls,
        model_id: str,
        provider: LLMProvider,
        at: datetime | None = None,
    ) -> PerformanceMetrics:
        """Zero-valued metrics, used to seed A/B test snapshots."""
        at = at or utc_now()
        return cls(model_id=model_id, provider=provider, period_start=at, period_end=at)


class ModelAvailability(CamelModel):
    """EMA-derived health of a (model, provider) pair. Updated in place."""

    model_id: str
    provider: LLMProvider
    is_available: bool = True
    last_checked: datetime = Field(default_factory=utc_now)
    error_rate: float = 0.0
    avg_latency_ms: float = 0.0
    status: AvailabilityStatus = AvailabilityStatus.HEALTHY


class ABTestConfig(CamelModel):
    """Two competing arms under a live traffic split."""

    id: str
    name: str = ""
    description: str = ""

    model_a: ModelRef
    model_b: ModelRef

    split_ratio: float = Field(default=0.5, ge=0, le=1)
    task_category: TaskCategory | None = None

    is_active: bool = False
    start_date: datetime | None = None
    end_date: datetime | None = None

    results_a: PerformanceMetrics | None = None
    results_b: PerformanceMetrics | None = None

    def applies_to(self, category: TaskCategory) -> bool:
        return self.task_category is None or self.task_category == category


class ModelComparison(CamelModel):
    model_a: PerformanceMetrics | None
    model_b: PerformanceMetrics | None
    winner: Literal["A", "B", "tie"] | None
    reasons: list[str] = Field(default_factory=list)


__all__ = [
    "COMPLEXITY_ORDER",
    "ABTestConfig",
    "AlertType",
    "AlternativeModel",
    "AvailabilityStatus",
    "BudgetPeriod",
    "CamelModel",
    "ComplexityAnalysis",
    "ComplexityFactors",
    "CostAlert",
    "CostBudget",
    "CostEntry",
    "CostExport",
    "CostSummary",
    "ExplanationFactor",
    "LLMProvider",
    "MetricEntry",
    "ModelAvailability",
    "ModelCapabilities",
    "ModelComparison",
    "ModelRecommendation",
    "ModelRef",
    "ModelSelection",
    "ModelSelectionCriteria",
    "OutputStructure",
    "PerformanceMetrics",
    "RoutingStrategy",
    "SelectionExplanation",
    "TaskCategory",
    "TaskComplexity",
    "UsageBreakdown",
    "utc_now",
]
