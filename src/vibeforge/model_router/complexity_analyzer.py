# src/vibeforge/model_router/complexity_analyzer.py
"""
Task complexity analysis.

Maps a task (category plus optional free-text prompt) to a 0-100 score and
a discrete tier. The score is a weighted sum of five factors plus a flat
bonus for multi-step work:

    score = bucket(prompt_length)   * w.prompt_length     * 10
          + reasoning_depth         * w.reasoning_depth   * 10
          + domain_complexity       * w.domain_complexity * 10
          + bucket(output_structure)* w.output_structure  * 10
          + bucket(context_size)    * w.context_size      * 10
          + (multi_step_bonus if requires_multi_step)

clamped to [0, 100]. Tiers: <25 simple, <50 medium, <75 complex, else expert.

Missing factors are filled from the per-category defaults, then from the
global defaults. Only ``None`` counts as missing; an explicit ``0`` is kept.
"""

from __future__ import annotations

import bisect
import logging
import math
from collections.abc import Mapping
from typing import Any

from ..config import CategoryDefaults, ComplexityWeights
from .catalog import TASK_CATEGORY_DEFAULTS
from .types import (
    ComplexityAnalysis,
    ComplexityFactors,
    OutputStructure,
    TaskCategory,
    TaskComplexity,
)

logger = logging.getLogger(__name__)

# Upper bounds (exclusive) of buckets 1..9; anything at or above the last is 10.
PROMPT_LENGTH_THRESHOLDS = (50, 100, 200, 400, 800, 1200, 1600, 2000, 3000)
CONTEXT_SIZE_THRESHOLDS = (100, 500, 1000, 2000, 3000, 4000, 5000, 6000, 7000)

OUTPUT_STRUCTURE_SCORES = {
    OutputStructure.SIMPLE: 3,
    OutputStructure.STRUCTURED: 6,
    OutputStructure.COMPLEX: 9,
}

MULTI_STEP_KEYWORDS = (
    "step by step",
    "first",
    "then",
    "finally",
    "analyze",
    "compare",
    "evaluate",
    "recommend",
    "multiple",
    "several",
    "various",
)

HIGH_REASONING_KEYWORDS = (
    "why",
    "explain",
    "reasoning",
    "rationale",
    "justify",
    "compare",
    "analyze",
    "evaluate",
)

LOW_REASONING_KEYWORDS = ("list", "name", "what is", "define", "simple")

GLOBAL_FACTOR_DEFAULTS: dict[str, Any] = {
    "prompt_length": 100,
    "reasoning_depth": 5,
    "domain_complexity": 5,
    "output_structure": OutputStructure.SIMPLE,
    "requires_multi_step": False,
    "context_size": 0,
}

# Tier lower bounds, highest first.
TIER_BOUNDARIES = (
    (75.0, TaskComplexity.EXPERT),
    (50.0, TaskComplexity.COMPLEX),
    (25.0, TaskComplexity.MEDIUM),
)


def _bucket(value: float, thresholds: tuple[int, ...]) -> int:
    return bisect.bisect_right(thresholds, value) + 1


class ComplexityAnalyzer:
    """
    Scores task complexity from explicit factors or a raw prompt.

    Weights and per-category defaults are injected so the analyzer can be
    tuned without touching the built-in tables.

    Args:
        weights: Factor weights. Defaults to :class:`ComplexityWeights`.
        category_defaults: Per-category overrides. Set fields replace the
            built-in defaults for that category; unset fields are inherited.
    """

    def __init__(
        self,
        weights: ComplexityWeights | None = None,
        category_defaults: Mapping[TaskCategory, CategoryDefaults | Mapping[str, Any]] | None = None,
    ):
        self.weights = weights or ComplexityWeights()
        self.category_defaults: dict[TaskCategory, dict[str, Any]] = {
            category: dict(defaults) for category, defaults in TASK_CATEGORY_DEFAULTS.items()
        }
        for category, override in (category_defaults or {}).items():
            if isinstance(override, CategoryDefaults):
                override = override.model_dump(exclude_none=True)
            merged = self.category_defaults.setdefault(TaskCategory(category), {})
            merged.update({k: v for k, v in override.items() if v is not None})

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def analyze_complexity(
        self,
        task_category: TaskCategory,
        factors: Mapping[str, Any] | ComplexityFactors | None = None,
    ) -> TaskComplexity:
        """Tier for a category and a (possibly partial) factor set."""
        full_factors = self.apply_defaults(task_category, factors)
        return self.score_to_complexity(self.calculate_complexity_score(full_factors))

    def analyze_from_prompt(
        self,
        task_category: TaskCategory,
        prompt_text: str,
        extra_factors: Mapping[str, Any] | None = None,
    ) -> ComplexityAnalysis:
        """
        Derive factors from free text, then score them.

        ``prompt_length`` is estimated at four characters per token;
        ``requires_multi_step`` and ``reasoning_depth`` come from keyword
        detection. ``extra_factors`` take precedence over detected values.
        """
        task_category = TaskCategory(task_category)
        detected: dict[str, Any] = {
            "prompt_length": math.ceil(len(prompt_text) / 4),
            "requires_multi_step": self.detect_multi_step(prompt_text),
            "reasoning_depth": self.detect_reasoning_depth(prompt_text),
        }
        if extra_factors:
            detected.update({k: v for k, v in extra_factors.items() if v is not None})

        full_factors = self.apply_defaults(task_category, detected)
        score = self.calculate_complexity_score(full_factors)
        complexity = self.score_to_complexity(score)

        logger.debug(
            f"Prompt analysis for {task_category.value}: score={score:.1f} "
            f"tier={complexity.value} tokens={full_factors.prompt_length}"
        )
        return ComplexityAnalysis(complexity=complexity, score=score, factors=full_factors)

    def calculate_complexity_score(self, factors: ComplexityFactors) -> float:
        """Weighted 0-100 score for a fully populated factor set."""
        w = self.weights
        score = 0.0
        score += self.score_prompt_length(factors.prompt_length) * w.prompt_length * 10
        score += factors.reasoning_depth * w.reasoning_depth * 10
        score += factors.domain_complexity * w.domain_complexity * 10
        score += self.score_output_structure(factors.output_structure) * w.output_structure * 10
        score += self.score_context_size(factors.context_size) * w.context_size * 10
        if factors.requires_multi_step:
            score += w.multi_step_bonus
        return min(100.0, max(0.0, score))

    @staticmethod
    def score_to_complexity(score: float) -> TaskComplexity:
        for lower_bound, tier in TIER_BOUNDARIES:
            if score >= lower_bound:
                return tier
        return TaskComplexity.SIMPLE

    # -------------------------------------------------------------------------
    # Bucket scorers
    # -------------------------------------------------------------------------

    @staticmethod
    def score_prompt_length(tokens: int) -> int:
        """1-10 bucket score for the prompt token estimate."""
        return _bucket(tokens, PROMPT_LENGTH_THRESHOLDS)

    @staticmethod
    def score_context_size(tokens: int) -> int:
        """1-10 bucket score for the context token estimate."""
        return _bucket(tokens, CONTEXT_SIZE_THRESHOLDS)

    @staticmethod
    def score_output_structure(structure: OutputStructure) -> int:
        return OUTPUT_STRUCTURE_SCORES[OutputStructure(structure)]

    # -------------------------------------------------------------------------
    # Keyword detection
    # -------------------------------------------------------------------------

    @staticmethod
    def detect_multi_step(prompt_text: str) -> bool:
        lower_text = prompt_text.lower()
        return any(keyword in lower_text for keyword in MULTI_STEP_KEYWORDS)

    @staticmethod
    def detect_reasoning_depth(prompt_text: str) -> int:
        """
        Reasoning depth from keywords: baseline 5, +1.5 per distinct
        high-reasoning keyword, -1 per low-reasoning keyword, clamped to [1, 10].
        """
        lower_text = prompt_text.lower()
        high_matches = sum(1 for kw in HIGH_REASONING_KEYWORDS if kw in lower_text)
        low_matches = sum(1 for kw in LOW_REASONING_KEYWORDS if kw in lower_text)
        depth = 5 + high_matches * 1.5 - low_matches
        # Half-up rounding, so 6.5 becomes 7.
        return int(min(10, max(1, math.floor(depth + 0.5))))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def apply_defaults(
        self,
        task_category: TaskCategory,
        factors: Mapping[str, Any] | ComplexityFactors | None,
    ) -> ComplexityFactors:
        """Fill missing factors from category defaults, then global defaults."""
        if isinstance(factors, ComplexityFactors):
            return factors

        provided = {k: v for k, v in (factors or {}).items() if v is not None}
        category = self.category_defaults.get(TaskCategory(task_category), {})
        merged = {**GLOBAL_FACTOR_DEFAULTS, **category, **provided}
        return ComplexityFactors(**merged)

    def explain_complexity(self, complexity: TaskComplexity, factors: ComplexityFactors) -> str:
        """Human-readable bullet summary of what drove a complexity rating."""
        parts = [f"Task complexity: **{complexity.value.upper()}**"]

        if factors.prompt_length > 1000:
            parts.append(f"• Large prompt ({factors.prompt_length} tokens)")
        if factors.reasoning_depth >= 7:
            parts.append(f"• Deep reasoning required ({factors.reasoning_depth:g}/10)")
        if factors.domain_complexity >= 7:
            parts.append(f"• Complex domain knowledge ({factors.domain_complexity:g}/10)")
        if factors.output_structure == OutputStructure.COMPLEX:
            parts.append("• Complex output structure needed")
        if factors.requires_multi_step:
            parts.append("• Multi-step reasoning required")
        if factors.context_size > 3000:
            parts.append(f"• Large context ({factors.context_size} tokens)")

        return "\n".join(parts)


__all__ = [
    "ComplexityAnalyzer",
    "CONTEXT_SIZE_THRESHOLDS",
    "GLOBAL_FACTOR_DEFAULTS",
    "PROMPT_LENGTH_THRESHOLDS",
]
