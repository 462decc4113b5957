# src/vibeforge/model_router/catalog.py
"""
Static model capability catalog and complexity tables.

The catalog is read-only configuration data seeded at import time. Keys are
short model names; a model's ``model_id`` may carry a release date or tag
(``claude-3-haiku`` -> ``claude-3-haiku-20240307``). ``ModelCatalog.get``
resolves either form so that a ``ModelSelection.model_id`` can be fed
straight back into cost tracking.

Pricing Sources:
    - OpenAI: https://openai.com/pricing
    - Anthropic: https://www.anthropic.com/pricing
    - Ollama: local models, free
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from ..exceptions import UnknownModelError
from .types import (
    LLMProvider,
    ModelCapabilities,
    OutputStructure,
    TaskCategory,
    TaskComplexity,
)

_S = TaskComplexity.SIMPLE
_M = TaskComplexity.MEDIUM
_C = TaskComplexity.COMPLEX
_X = TaskComplexity.EXPERT


def _model(
    model_id: str,
    provider: LLMProvider,
    display_name: str,
    max_tokens: int,
    avg_ms: float,
    scores: tuple[float, float, float],
    prices: tuple[float, float],
    best_for: list[TaskComplexity],
    good_for: list[TaskCategory],
) -> ModelCapabilities:
    reasoning, creativity, accuracy = scores
    input_price, output_price = prices
    return ModelCapabilities(
        model_id=model_id,
        provider=provider,
        display_name=display_name,
        max_tokens=max_tokens,
        avg_response_time_ms=avg_ms,
        reasoning_score=reasoning,
        creativity_score=creativity,
        accuracy_score=accuracy,
        input_cost_per_1m=input_price,
        output_cost_per_1m=output_price,
        best_for=frozenset(best_for),
        good_for=frozenset(good_for),
    )


# =============================================================================
# MODEL CAPABILITIES (prices are USD per 1M tokens)
# =============================================================================

_OPENAI = LLMProvider.OPENAI
_ANTHROPIC = LLMProvider.ANTHROPIC
_OLLAMA = LLMProvider.OLLAMA
_TC = TaskCategory

MODEL_CAPABILITIES: Mapping[str, ModelCapabilities] = MappingProxyType({
    # OpenAI
    "gpt-4": _model(
        "gpt-4", _OPENAI, "GPT-4", 8192, 3000, (10, 9, 10), (30.0, 60.0),
        [_C, _X], [_TC.STACK_RECOMMENDATION, _TC.REASONING, _TC.EXPLANATION],
    ),
    "gpt-4o": _model(
        "gpt-4o", _OPENAI, "GPT-4o", 16384, 2000, (10, 9, 10), (5.0, 15.0),
        [_M, _C, _X], [_TC.STACK_RECOMMENDATION, _TC.CODE_ANALYSIS, _TC.REASONING],
    ),
    "gpt-3.5-turbo": _model(
        "gpt-3.5-turbo", _OPENAI, "GPT-3.5 Turbo", 4096, 800, (7, 7, 8), (0.5, 1.5),
        [_S, _M], [_TC.VALIDATION, _TC.EXPLANATION, _TC.GENERATION],
    ),
    # Anthropic
    "claude-3-opus": _model(
        "claude-3-opus-20240229", _ANTHROPIC, "Claude 3 Opus", 4096, 2500, (10, 10, 10),
        (15.0, 75.0),
        [_C, _X], [_TC.STACK_RECOMMENDATION, _TC.REASONING, _TC.CODE_ANALYSIS],
    ),
    "claude-3-sonnet": _model(
        "claude-3-sonnet-20240229", _ANTHROPIC, "Claude 3 Sonnet", 4096, 1500, (9, 9, 9),
        (3.0, 15.0),
        [_M, _C], [_TC.STACK_RECOMMENDATION, _TC.EXPLANATION, _TC.REASONING],
    ),
    "claude-3-haiku": _model(
        "claude-3-haiku-20240307", _ANTHROPIC, "Claude 3 Haiku", 4096, 600, (7, 7, 8),
        (0.25, 1.25),
        [_S, _M], [_TC.VALIDATION, _TC.GENERATION, _TC.EXPLANATION],
    ),
    # Ollama (local)
    "llama2-13b": _model(
        "llama2:13b", _OLLAMA, "Llama 2 13B", 4096, 2000, (6, 6, 7), (0.0, 0.0),
        [_S, _M], [_TC.VALIDATION, _TC.GENERATION],
    ),
    "llama2-70b": _model(
        "llama2:70b", _OLLAMA, "Llama 2 70B", 4096, 5000, (8, 7, 8), (0.0, 0.0),
        [_M, _C], [_TC.STACK_RECOMMENDATION, _TC.REASONING],
    ),
})


# =============================================================================
# COMPLEXITY TABLES
# =============================================================================

TASK_CATEGORY_DEFAULTS: Mapping[TaskCategory, Mapping[str, object]] = MappingProxyType({
    TaskCategory.STACK_RECOMMENDATION: {
        "reasoning_depth": 8,
        "domain_complexity": 7,
        "output_structure": OutputStructure.STRUCTURED,
        "requires_multi_step": True,
    },
    TaskCategory.CODE_ANALYSIS: {
        "reasoning_depth": 7,
        "domain_complexity": 8,
        "output_structure": OutputStructure.COMPLEX,
        "requires_multi_step": True,
    },
    TaskCategory.EXPLANATION: {
        "reasoning_depth": 5,
        "domain_complexity": 5,
        "output_structure": OutputStructure.SIMPLE,
        "requires_multi_step": False,
    },
    TaskCategory.VALIDATION: {
        "reasoning_depth": 3,
        "domain_complexity": 4,
        "output_structure": OutputStructure.SIMPLE,
        "requires_multi_step": False,
    },
    TaskCategory.GENERATION: {
        "reasoning_depth": 6,
        "domain_complexity": 6,
        "output_structure": OutputStructure.STRUCTURED,
        "requires_multi_step": False,
    },
    TaskCategory.REASONING: {
        "reasoning_depth": 9,
        "domain_complexity": 7,
        "output_structure": OutputStructure.STRUCTURED,
        "requires_multi_step": True,
    },
})


# =============================================================================
# CATALOG
# =============================================================================


class ModelCatalog:
    """
    Read-only view over a table of model capabilities.

    Lookups accept either the catalog key (``"claude-3-opus"``) or the
    model's own ``model_id`` (``"claude-3-opus-20240229"``).
    """

    def __init__(self, models: Mapping[str, ModelCapabilities] | None = None):
        self._models: Mapping[str, ModelCapabilities] = MappingProxyType(
            dict(MODEL_CAPABILITIES if models is None else models)
        )
        self._by_model_id: dict[str, ModelCapabilities] = {
            m.model_id: m for m in self._models.values()
        }

    def get(self, model_ref: str) -> ModelCapabilities | None:
        """Return capabilities for a catalog key or model id, or None."""
        model = self._models.get(model_ref)
        if model is None:
            model = self._by_model_id.get(model_ref)
        return model

    def require(self, model_ref: str) -> ModelCapabilities:
        """Like :meth:`get` but raises :class:`UnknownModelError` on a miss."""
        model = self.get(model_ref)
        if model is None:
            raise UnknownModelError(model_ref)
        return model

    def models(self) -> list[ModelCapabilities]:
        """All models in catalog order."""
        return list(self._models.values())

    def keys(self) -> list[str]:
        return list(self._models.keys())

    def __contains__(self, model_ref: object) -> bool:
        return isinstance(model_ref, str) and self.get(model_ref) is not None

    def __len__(self) -> int:
        return len(self._models)

    def __iter__(self) -> Iterator[ModelCapabilities]:
        return iter(self._models.values())


__all__ = [
    "MODEL_CAPABILITIES",
    "TASK_CATEGORY_DEFAULTS",
    "ModelCatalog",
]
