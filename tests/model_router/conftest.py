# tests/model_router/conftest.py
"""Shared fixtures for model router tests."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from vibeforge.model_router import (
    CostTracker,
    LLMProvider,
    ModelCatalog,
    ModelRouter,
    PerformanceMetricsCollector,
    TaskCategory,
)
from vibeforge.config import RouterConfig
from vibeforge.observability import RouterTelemetry


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class StubRng:
    """Returns queued values from ``random()``, cycling when exhausted."""

    def __init__(self, *values: float):
        self.values = list(values) or [0.0]
        self.calls = 0

    def random(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


# Wednesday noon, UTC
START = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture
def catalog() -> ModelCatalog:
    return ModelCatalog()


@pytest.fixture
def cost_tracker(catalog, clock) -> CostTracker:
    return CostTracker(catalog=catalog, clock=clock, tz=timezone.utc)


@pytest.fixture
def stub_rng() -> StubRng:
    return StubRng(0.1)


@pytest.fixture
def metrics(clock, stub_rng) -> PerformanceMetricsCollector:
    return PerformanceMetricsCollector(clock=clock, rng=stub_rng)


@pytest.fixture
def make_router(catalog, cost_tracker, metrics):
    """Factory for routers sharing the fixture trackers."""
    routers = []

    def _make(**config_kwargs) -> ModelRouter:
        router = ModelRouter(
            config=RouterConfig(**config_kwargs),
            catalog=catalog,
            cost_tracker=cost_tracker,
            performance_metrics=metrics,
            telemetry=RouterTelemetry(),
        )
        routers.append(router)
        return router

    yield _make

    for router in routers:
        router.close()


@pytest.fixture
def record_usage(metrics):
    """Record ``count`` identical metric entries for a model."""

    def _record(
        model_id: str,
        provider: LLMProvider,
        count: int = 1,
        response_time_ms: float = 500.0,
        accepted: bool = True,
        error_occurred: bool = False,
        category: TaskCategory = TaskCategory.VALIDATION,
        cost: float = 0.0,
    ) -> None:
        for _ in range(count):
            metrics.record(
                model_id=model_id,
                provider=provider,
                task_category=category,
                response_time_ms=response_time_ms,
                tokens=100,
                cost=cost,
                accepted=accepted,
                error_occurred=error_occurred,
            )

    return _record
