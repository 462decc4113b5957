# src/vibeforge/__init__.py
"""
VibeForge - model routing for the VibeForge stack-recommendation wizard.

Given a sub-task of the wizard (analyze a codebase, recommend a stack,
validate a choice, explain a decision), the router recommends which LLM to
call, tracks what each call cost against a budget, and learns from reported
latency, errors and user acceptance.
"""

from importlib.metadata import PackageNotFoundError, version

from .exceptions import (
    ConfigError,
    CostDataImportError,
    NoModelsAvailableError,
    UnknownModelError,
    VibeForgeError,
)

# model_router must be imported before config
from .model_router import (
    ComplexityAnalyzer,
    CostTracker,
    LLMProvider,
    ModelCatalog,
    ModelRouter,
    ModelSelection,
    ModelSelectionCriteria,
    PerformanceMetricsCollector,
    RoutingStrategy,
    TaskCategory,
    TaskComplexity,
    create_model_router,
)
from .config import BudgetConfig, RouterConfig, VibeForgeConfig, load_config
from .logging_config import configure_logging

try:
    __version__ = version("vibeforge")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    "ComplexityAnalyzer",
    "ConfigError",
    "CostDataImportError",
    "CostTracker",
    "BudgetConfig",
    "LLMProvider",
    "ModelCatalog",
    "ModelRouter",
    "ModelSelection",
    "ModelSelectionCriteria",
    "NoModelsAvailableError",
    "PerformanceMetricsCollector",
    "RouterConfig",
    "RoutingStrategy",
    "TaskCategory",
    "TaskComplexity",
    "UnknownModelError",
    "VibeForgeConfig",
    "VibeForgeError",
    "configure_logging",
    "create_model_router",
    "load_config",
    "__version__",
]
