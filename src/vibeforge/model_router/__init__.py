# src/vibeforge/model_router/__init__.py
"""
Per-task LLM model routing.

Decides which (model, provider) should serve a sub-task of the VibeForge
wizard, and learns from reported outcomes.

Features:
    - Complexity analysis of tasks and free-text prompts
    - Static capability catalog with per-1M-token pricing
    - Cost tracking with daily/weekly/monthly budgets and alerts
    - Performance metrics, EMA-based availability and A/B tests
    - Five scoring strategies with explanations and a TTL cache

Usage:
    from vibeforge.model_router import create_model_router, TaskCategory

    router = create_model_router()
    criteria = router.build_criteria(TaskCategory.VALIDATION, "Is this TOML valid?")
    selection = router.select_model(criteria)
    print(f"Selected: {selection.provider.value}:{selection.model_id}")
"""

# types must load before anything that imports vibeforge.config
from .types import (
    COMPLEXITY_ORDER,
    ABTestConfig,
    AlertType,
    AlternativeModel,
    AvailabilityStatus,
    BudgetPeriod,
    ComplexityAnalysis,
    ComplexityFactors,
    CostAlert,
    CostBudget,
    CostEntry,
    CostExport,
    CostSummary,
    ExplanationFactor,
    LLMProvider,
    MetricEntry,
    ModelAvailability,
    ModelCapabilities,
    ModelComparison,
    ModelRecommendation,
    ModelRef,
    ModelSelection,
    ModelSelectionCriteria,
    OutputStructure,
    PerformanceMetrics,
    RoutingStrategy,
    SelectionExplanation,
    TaskCategory,
    TaskComplexity,
    UsageBreakdown,
)
from .catalog import (
    MODEL_CAPABILITIES,
    TASK_CATEGORY_DEFAULTS,
    ModelCatalog,
)
from .complexity_analyzer import ComplexityAnalyzer
from .cost_tracker import CostTracker, create_cost_tracker
from .performance_metrics import (
    PerformanceMetricsCollector,
    comparison_score,
    transition_availability,
)
from .router import ModelRouter, create_model_router

__all__ = [
    # Types
    "COMPLEXITY_ORDER",
    "ABTestConfig",
    "AlertType",
    "AlternativeModel",
    "AvailabilityStatus",
    "BudgetPeriod",
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
    # Catalog
    "MODEL_CAPABILITIES",
    "TASK_CATEGORY_DEFAULTS",
    "ModelCatalog",
    # Components
    "ComplexityAnalyzer",
    "CostTracker",
    "create_cost_tracker",
    "PerformanceMetricsCollector",
    "comparison_score",
    "transition_availability",
    # Router
    "ModelRouter",
    "create_model_router",
]
