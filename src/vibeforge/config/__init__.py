# src/vibeforge/config/__init__.py
"""
Configuration models and loader for VibeForge.

Usage:
    >>> from vibeforge.config import load_config
    >>> config = load_config(config_path="vibeforge.toml")
    >>> config.router.strategy
    <RoutingStrategy.BALANCED: 'balanced'>
"""

from .router_config import (
    AvailabilityConfig,
    BudgetConfig,
    CategoryDefaults,
    ComplexityConfig,
    ComplexityWeights,
    CustomScoreFn,
    RouterConfig,
    ScoringConfig,
    VibeForgeConfig,
    load_config,
)

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
