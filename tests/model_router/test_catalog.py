# tests/model_router/test_catalog.py
"""Tests for the static capability catalog."""

import pytest
from pydantic import ValidationError

from vibeforge.exceptions import UnknownModelError
from vibeforge.model_router import (
    MODEL_CAPABILITIES,
    LLMProvider,
    ModelCatalog,
    TaskCategory,
    TaskComplexity,
)


class TestModelCatalog:
    """Tests for catalog lookups."""

    def test_default_catalog_has_eight_models(self) -> None:
        catalog = ModelCatalog()

        assert len(catalog) == 8
        assert catalog.keys()[:3] == ["gpt-4", "gpt-4o", "gpt-3.5-turbo"]
        assert {m.provider for m in catalog} == set(LLMProvider)

    def test_lookup_by_key_or_model_id(self) -> None:
        catalog = ModelCatalog()

        assert catalog.get("claude-3-opus") is catalog.get("claude-3-opus-20240229")
        assert "llama2:70b" in catalog
        assert "llama2-70b" in catalog
        assert catalog.get("gpt-5") is None
        assert 42 not in catalog

    def test_require_raises_for_unknown(self) -> None:
        with pytest.raises(UnknownModelError) as exc_info:
            ModelCatalog().require("gpt-5")
        assert exc_info.value.model_id == "gpt-5"

    def test_custom_table(self) -> None:
        haiku = MODEL_CAPABILITIES["claude-3-haiku"]
        catalog = ModelCatalog({"haiku": haiku})

        assert catalog.models() == [haiku]
        assert catalog.require("haiku").model_id == "claude-3-haiku-20240307"

    def test_catalog_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            MODEL_CAPABILITIES["new"] = MODEL_CAPABILITIES["gpt-4"]
        with pytest.raises(ValidationError):
            MODEL_CAPABILITIES["gpt-4"].reasoning_score = 1


class TestCapabilityProfiles:
    """Spot checks of the seeded profiles."""

    def test_gpt4_profile(self) -> None:
        gpt4 = MODEL_CAPABILITIES["gpt-4"]

        assert gpt4.input_cost_per_1m == 30.0
        assert gpt4.output_cost_per_1m == 60.0
        assert gpt4.best_for == {TaskComplexity.COMPLEX, TaskComplexity.EXPERT}
        assert gpt4.max_tier_rank == 3
        assert TaskCategory.REASONING in gpt4.good_for

    def test_local_models_are_free(self) -> None:
        for model in MODEL_CAPABILITIES.values():
            if model.provider == LLMProvider.OLLAMA:
                assert model.input_cost_per_1m == model.output_cost_per_1m == 0.0

    def test_camel_case_aliases(self) -> None:
        data = MODEL_CAPABILITIES["gpt-4o"].model_dump(by_alias=True)

        assert data["inputCostPer1M"] == 5.0
        assert data["avgResponseTimeMs"] == 2000
        assert data["bestFor"] == {TaskComplexity.MEDIUM, TaskComplexity.COMPLEX, TaskComplexity.EXPERT}

    def test_ref(self) -> None:
        ref = MODEL_CAPABILITIES["llama2-13b"].ref
        assert ref.key == "ollama:llama2:13b"
