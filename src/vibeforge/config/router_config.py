# src/vibeforge/config/router_config.py
"""
Model router configuration models.

This module defines Pydantic models for every tunable piece of the model
router subsystem. These models are used for:
1. Type-safe configuration loading
2. Validation with sensible defaults
3. Runtime configuration updates (``ModelRouter.update_config``)

The configuration hierarchy:
    VibeForgeConfig (root)
    ├── RouterConfig          - Strategy, gates, fallback, caching, A/B tests
    │   ├── BudgetConfig      - Daily/weekly/monthly spend limits
    │   └── ScoringConfig     - Normalization divisors for cost and latency
    ├── ComplexityConfig      - Factor weights and per-category defaults
    ├── AvailabilityConfig    - EMA smoothing and health thresholds
    └── logging               - Passed through to ``configure_logging``

Usage:
    >>> from vibeforge.config import RouterConfig, load_config
    >>> config = RouterConfig()  # All defaults
    >>> config.strategy
    <RoutingStrategy.BALANCED: 'balanced'>

    >>> # Load from TOML
    >>> config = load_config(config_path=Path("vibeforge.toml"))

    >>> # Load with overrides
    >>> config = load_config(
    ...     config_dict={"vibeforge": {"router": {"strategy": "cost-optimized"}}}
    ... )
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import ConfigError
from ..model_router.types import (
    ABTestConfig,
    LLMProvider,
    ModelCapabilities,
    ModelRef,
    ModelSelectionCriteria,
    OutputStructure,
    RoutingStrategy,
    TaskCategory,
)

logger = logging.getLogger(__name__)

CustomScoreFn = Callable[[ModelCapabilities, ModelSelectionCriteria], float]

ENV_PREFIX = "VIBEFORGE__"


# =============================================================================
# COMPLEXITY ANALYZER CONFIG
# =============================================================================


class ComplexityWeights(BaseModel):
    """Relative weight of each complexity factor in the 0-100 score."""

    prompt_length: float = Field(default=0.2, ge=0, description="Prompt length bucket weight")
    reasoning_depth: float = Field(default=0.3, ge=0, description="Reasoning depth weight")
    domain_complexity: float = Field(default=0.25, ge=0, description="Domain complexity weight")
    output_structure: float = Field(default=0.15, ge=0, description="Output structure weight")
    context_size: float = Field(default=0.1, ge=0, description="Context size bucket weight")
    multi_step_bonus: float = Field(
        default=10.0, ge=0, description="Flat bonus added when the task is multi-step"
    )


class CategoryDefaults(BaseModel):
    """
    Factor defaults for one task category.

    Only fields that are set take part in the merge; ``None`` means
    "inherit from the global defaults".
    """

    prompt_length: int | None = Field(default=None, ge=0)
    reasoning_depth: float | None = Field(default=None, ge=0, le=10)
    domain_complexity: float | None = Field(default=None, ge=0, le=10)
    output_structure: OutputStructure | None = None
    requires_multi_step: bool | None = None
    context_size: int | None = Field(default=None, ge=0)


class ComplexityConfig(BaseModel):
    """Configuration for the complexity analyzer."""

    weights: ComplexityWeights = Field(
        default_factory=ComplexityWeights, description="Factor weights"
    )
    category_defaults: dict[TaskCategory, CategoryDefaults] = Field(
        default_factory=dict,
        description="Per-category overrides merged over the built-in table",
    )


# =============================================================================
# ROUTER CONFIG
# =============================================================================


class ScoringConfig(BaseModel):
    """Normalization divisors used by every scoring strategy."""

    cost_normalization_usd: float = Field(
        default=0.1, gt=0, description="Request cost (USD) that maps to a zero cost score"
    )
    latency_normalization_ms: float = Field(
        default=10000.0, gt=0, description="Latency (ms) that maps to a zero speed score"
    )


class AvailabilityConfig(BaseModel):
    """EMA smoothing factor and health thresholds for model availability."""

    ema_alpha: float = Field(default=0.2, gt=0, le=1, description="EMA smoothing factor")
    unavailable_error_rate: float = Field(
        default=0.5, ge=0, le=1, description="Error EMA above which a model is unavailable"
    )
    degraded_error_rate: float = Field(
        default=0.2, ge=0, le=1, description="Error EMA above which a model is degraded"
    )
    degraded_latency_ms: float = Field(
        default=10000.0, gt=0, description="Latency EMA above which a model is degraded"
    )

    @field_validator("degraded_error_rate")
    @classmethod
    def validate_degraded_below_unavailable(cls, v: float, info) -> float:
        unavailable = info.data.get("unavailable_error_rate")
        if unavailable is not None and v > unavailable:
            raise ValueError("degraded_error_rate must not exceed unavailable_error_rate")
        return v


class BudgetConfig(BaseModel):
    """Spend limits in USD. A limit of ``None`` disables that period."""

    daily_limit: float | None = Field(default=None, gt=0, description="Daily limit (USD)")
    weekly_limit: float | None = Field(default=None, gt=0, description="Weekly limit (USD)")
    monthly_limit: float | None = Field(default=None, gt=0, description="Monthly limit (USD)")
    warning_threshold: float = Field(
        default=0.8, gt=0, le=1, description="Fraction of a limit that triggers a warning"
    )


class RouterConfig(BaseModel):
    """
    Configuration for the model router.

    Corresponds to the ``[vibeforge.router]`` section in TOML configuration.
    ``custom_score_fn`` cannot come from a file; register it in code.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    strategy: RoutingStrategy = Field(
        default=RoutingStrategy.BALANCED, description="Scoring strategy"
    )
    budget: BudgetConfig | None = Field(
        default=None, description="Budget applied to the cost tracker"
    )
    max_latency_ms: float | None = Field(
        default=None, gt=0, description="Exclude models slower than this on average"
    )
    min_quality_score: float | None = Field(
        default=None, ge=0, le=1, description="Exclude models whose quality score is lower"
    )
    enable_fallback: bool = Field(
        default=True, description="Use the fallback model when nothing survives filtering"
    )
    fallback_model: ModelRef = Field(
        default_factory=lambda: ModelRef(model_id="gpt-3.5-turbo", provider=LLMProvider.OPENAI),
        description="Model returned when no candidate survives filtering",
    )
    enable_caching: bool = Field(default=True, description="Cache selections by criteria")
    cache_ttl_seconds: float = Field(
        default=3600.0, gt=0, description="Lifetime of a cached selection (seconds)"
    )
    active_ab_tests: list[ABTestConfig] = Field(
        default_factory=list, description="A/B tests consulted before scoring"
    )
    custom_score_fn: CustomScoreFn | None = Field(
        default=None, exclude=True, description="Scoring callable for the custom strategy"
    )
    scoring: ScoringConfig = Field(
        default_factory=ScoringConfig, description="Normalization divisors"
    )


# =============================================================================
# ROOT CONFIG
# =============================================================================


class VibeForgeConfig(BaseModel):
    """
    Root configuration model.

    Corresponds to the ``[vibeforge]`` table in TOML configuration.

    Usage:
        >>> config = VibeForgeConfig()
        >>> config.router.cache_ttl_seconds
        3600.0
    """

    router: RouterConfig = Field(default_factory=RouterConfig, description="Router settings")
    complexity: ComplexityConfig = Field(
        default_factory=ComplexityConfig, description="Complexity analyzer settings"
    )
    availability: AvailabilityConfig = Field(
        default_factory=AvailabilityConfig, description="Availability tracking settings"
    )
    logging: dict[str, Any] = Field(
        default_factory=dict, description="Settings passed to configure_logging()"
    )


# =============================================================================
# CONFIG LOADING
# =============================================================================


def load_config(
    config_path: Path | str | None = None,
    config_dict: dict[str, Any] | None = None,
    overrides: dict[str, Any] | None = None,
) -> VibeForgeConfig:
    """
    Load VibeForge configuration from a TOML file, a dictionary and the environment.

    Configuration is loaded and merged in order:
        1. Default values (from Pydantic models)
        2. ``[vibeforge]`` table of the TOML file (if provided)
        3. ``vibeforge`` key of the config dictionary (if provided)
        4. Environment variables (VIBEFORGE__<SECTION>__<KEY>)
        5. Runtime overrides (if provided)

    Args:
        config_path: Optional path to a TOML config file
        config_dict: Optional config dictionary with a top-level ``vibeforge`` key
        overrides: Optional runtime overrides, already scoped to the root model

    Returns:
        VibeForgeConfig instance

    Raises:
        ConfigError: If the merged configuration fails validation
    """
    merged_config: dict[str, Any] = {}

    if config_path is not None:
        try:
            with open(config_path, "rb") as f:
                full_config = tomllib.load(f)
            merged_config = _deep_merge(merged_config, full_config.get("vibeforge", {}))
            logger.debug(f"Loaded vibeforge config from {config_path}")
        except FileNotFoundError:
            logger.warning(f"Config file not found: {config_path}")
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Malformed TOML in {config_path}: {e}") from e

    if config_dict is not None:
        merged_config = _deep_merge(merged_config, config_dict.get("vibeforge", {}))

    merged_config = _apply_env_overrides(merged_config)

    if overrides is not None:
        merged_config = _deep_merge(merged_config, overrides)

    try:
        return VibeForgeConfig(**merged_config)
    except ValidationError as e:
        logger.error(f"Invalid vibeforge configuration: {e}")
        raise ConfigError(f"Invalid vibeforge configuration: {e}") from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Apply environment variable overrides.

    Environment variables follow the pattern:
        VIBEFORGE__<SECTION>__<KEY>=value

    Examples:
        VIBEFORGE__ROUTER__STRATEGY=cost-optimized
        VIBEFORGE__ROUTER__BUDGET__DAILY_LIMIT=5
        VIBEFORGE__AVAILABILITY__EMA_ALPHA=0.3
    """
    environ = os.environ if environ is None else environ

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        path_parts = key[len(ENV_PREFIX) :].lower().split("__")
        if len(path_parts) < 2:
            continue

        current = config
        for part in path_parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[path_parts[-1]] = _convert_env_value(value)

    return config


def _convert_env_value(value: str) -> Any:
    """Convert an environment variable string to bool, int, float or str."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


__all__ = [
    "AvailabilityConfig",
    "BudgetConfig",
    "CategoryDefaults",
    "ComplexityConfig",
    "ComplexityWeights",
    "CustomScoreFn",
    "RouterConfig",
    "ScoringConfig",
    "VibeForgeConfig",
    "load_config",
]
