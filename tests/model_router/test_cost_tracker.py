# tests/model_router/test_cost_tracker.py
"""
Tests for the cost tracker.

Tests cover:
- Cost calculation from catalog pricing
- Unknown model rejection
- Budget thresholds, per-period alerts and subscriber callbacks
- Lazy budget rollover at day/week/month boundaries
- Summary aggregation and date filtering
- JSON export/import
"""

import json
import logging
import time
from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from vibeforge.config import BudgetConfig
from vibeforge.exceptions import ConfigError, CostDataImportError, UnknownModelError
from vibeforge.model_router import (
    AlertType,
    BudgetPeriod,
    CostTracker,
    LLMProvider,
    TaskCategory,
    create_cost_tracker,
)
from vibeforge.model_router.cost_tracker import (
    next_day_reset,
    next_month_reset,
    next_week_reset,
)

from .conftest import FixedClock

OPENAI = LLMProvider.OPENAI
CHEAP = "gpt-3.5-turbo"  # $0.50 per 1M input tokens


def track_cheap(tracker: CostTracker, prompt_tokens: int, category=TaskCategory.VALIDATION):
    return tracker.track(
        model_id=CHEAP,
        provider=OPENAI,
        task_category=category,
        prompt_tokens=prompt_tokens,
        completion_tokens=0,
    )


# =============================================================================
# COST CALCULATION
# =============================================================================


class TestCostCalculation:
    """Tests for per-entry cost computation."""

    def test_one_million_tokens_costs_catalog_price(self, cost_tracker, catalog) -> None:
        gpt4 = catalog.require("gpt-4")
        entry = cost_tracker.track(
            model_id="gpt-4",
            provider=OPENAI,
            task_category=TaskCategory.REASONING,
            prompt_tokens=1_000_000,
            completion_tokens=1_000_000,
        )

        assert entry.input_cost == gpt4.input_cost_per_1m
        assert entry.output_cost == gpt4.output_cost_per_1m
        assert entry.total_cost == gpt4.input_cost_per_1m + gpt4.output_cost_per_1m
        assert entry.total_tokens == 2_000_000

    def test_entry_fields(self, cost_tracker, clock) -> None:
        entry = cost_tracker.track(
            model_id="claude-3-haiku",
            provider=LLMProvider.ANTHROPIC,
            task_category=TaskCategory.GENERATION,
            prompt_tokens=400,
            completion_tokens=100,
            session_id="sess-1",
            user_id="user-1",
        )

        assert entry.id.startswith("cost_")
        assert entry.timestamp == clock.now
        assert entry.model_id == "claude-3-haiku"
        assert entry.session_id == "sess-1"
        assert entry.user_id == "user-1"
        assert entry.total_cost == pytest.approx(400 / 1e6 * 0.25 + 100 / 1e6 * 1.25)

    def test_entry_ids_are_unique(self, cost_tracker) -> None:
        ids = {track_cheap(cost_tracker, 10).id for _ in range(5)}
        assert len(ids) == 5

    def test_local_model_is_free(self, cost_tracker) -> None:
        entry = cost_tracker.track(
            model_id="llama2:70b",
            provider=LLMProvider.OLLAMA,
            task_category=TaskCategory.REASONING,
            prompt_tokens=5000,
            completion_tokens=5000,
        )
        assert entry.total_cost == 0.0

    def test_unknown_model_raises(self, cost_tracker) -> None:
        with pytest.raises(UnknownModelError, match="Unknown model: not-a-real-model"):
            cost_tracker.track(
                model_id="not-a-real-model",
                provider=OPENAI,
                task_category=TaskCategory.VALIDATION,
                prompt_tokens=10,
                completion_tokens=10,
            )
        assert cost_tracker.get_entries() == []

    def test_unknown_model_is_a_config_error(self, cost_tracker) -> None:
        with pytest.raises(ConfigError):
            cost_tracker.track_usage(OPENAI, "gpt-99", TaskCategory.VALIDATION, 1, 1)

    def test_track_usage_positional(self, cost_tracker) -> None:
        entry = cost_tracker.track_usage(OPENAI, CHEAP, TaskCategory.EXPLANATION, 2_000_000, 0)

        assert entry.total_cost == 1.0
        assert entry.total_tokens == 2_000_000
        assert entry.task_category == TaskCategory.EXPLANATION


# =============================================================================
# BUDGET ALERTS
# =============================================================================


class TestBudgetAlerts:
    """Tests for threshold alerts."""

    @pytest.fixture
    def alerts(self, cost_tracker):
        received = []
        cost_tracker.on_alert(received.append)
        return received

    def test_exactly_at_warning_threshold(self, cost_tracker, alerts) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=10, warning_threshold=0.8))
        track_cheap(cost_tracker, 16_000_000)  # $8.00

        assert len(alerts) == 1
        assert alerts[0].type == AlertType.WARNING
        assert alerts[0].period == BudgetPeriod.DAILY
        assert alerts[0].percentage == pytest.approx(0.8)
        assert alerts[0].message == "Daily budget at 80%. Spent $8.00 of $10.00"

    def test_at_limit_is_critical(self, cost_tracker, alerts) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=10))
        track_cheap(cost_tracker, 20_000_000)  # $10.00

        assert [a.type for a in alerts] == [AlertType.CRITICAL]
        assert alerts[0].message == "Daily budget limit reached! Spent $10.00 of $10.00"

    def test_over_limit_is_critical(self, cost_tracker, alerts) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=10))
        track_cheap(cost_tracker, 30_000_000)  # $15.00

        assert [a.type for a in alerts] == [AlertType.CRITICAL]
        assert alerts[0].percentage == pytest.approx(1.5)

    def test_sub_cent_amounts_keep_precision(self, cost_tracker, alerts) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=0.001))
        track_cheap(cost_tracker, 10_000)  # $0.005

        assert alerts[0].message == "Daily budget limit reached! Spent $0.005 of $0.001"

    def test_just_below_threshold_is_silent(self, cost_tracker, alerts) -> None:
        cost_tracker.set_budget({"daily_limit": 10, "daily_spent": 7.49})
        track_cheap(cost_tracker, 1_000_000)  # $0.50 -> $7.99

        assert cost_tracker.get_budget().daily_spent == pytest.approx(7.99)
        assert alerts == []

    def test_periods_alert_independently(self, cost_tracker, alerts) -> None:
        cost_tracker.set_budget(
            BudgetConfig(daily_limit=10, weekly_limit=10, monthly_limit=100)
        )
        track_cheap(cost_tracker, 16_000_000)

        assert {(a.period, a.type) for a in alerts} == {
            (BudgetPeriod.DAILY, AlertType.WARNING),
            (BudgetPeriod.WEEKLY, AlertType.WARNING),
        }

    def test_no_budget_no_alerts(self, cost_tracker, alerts) -> None:
        track_cheap(cost_tracker, 30_000_000)

        assert alerts == []
        assert cost_tracker.check_budget_alerts() == []
        assert cost_tracker.get_budget() is None
        assert cost_tracker.is_budget_exhausted() is False

    def test_warning_then_critical_scenario(self, cost_tracker, alerts, catalog) -> None:
        """Three gpt-4 calls against a limit of two calls' worth at a 50% threshold."""
        unit_cost = 1000 / 1_000_000 * catalog.require("gpt-4").input_cost_per_1m
        cost_tracker.set_budget(BudgetConfig(daily_limit=unit_cost * 2, warning_threshold=0.5))

        types_after_each = []
        for _ in range(3):
            cost_tracker.track(
                model_id="gpt-4",
                provider=OPENAI,
                task_category=TaskCategory.REASONING,
                prompt_tokens=1000,
                completion_tokens=0,
            )
            types_after_each.append([a.type for a in alerts])
            alerts.clear()

        assert types_after_each == [
            [AlertType.WARNING],
            [AlertType.CRITICAL],
            [AlertType.CRITICAL],
        ]
        assert cost_tracker.is_budget_exhausted() is True

    def test_unsubscribe(self, cost_tracker) -> None:
        callback = Mock()
        unsubscribe = cost_tracker.on_alert(callback)
        cost_tracker.set_budget(BudgetConfig(daily_limit=1))

        track_cheap(cost_tracker, 2_000_000)
        unsubscribe()
        track_cheap(cost_tracker, 2_000_000)

        assert callback.call_count == 1
        unsubscribe()  # second call is a no-op

    def test_failing_callback_does_not_block_others(self, cost_tracker, caplog) -> None:
        good = Mock()
        cost_tracker.on_alert(Mock(side_effect=RuntimeError("boom")))
        cost_tracker.on_alert(good)
        cost_tracker.set_budget(BudgetConfig(daily_limit=1))

        with caplog.at_level(logging.ERROR, logger="vibeforge.model_router.cost_tracker"):
            track_cheap(cost_tracker, 2_000_000)

        good.assert_called_once()
        assert "Error in budget alert callback" in caplog.text

    def test_alerts_are_logged_for_display(self, cost_tracker, caplog) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=1))

        with caplog.at_level(logging.WARNING, logger="vibeforge.model_router.cost_tracker"):
            track_cheap(cost_tracker, 2_000_000)

        records = [r for r in caplog.records if "budget limit reached" in r.getMessage()]
        assert len(records) == 1
        assert records[0].levelno == logging.CRITICAL
        assert records[0].display is True


# =============================================================================
# BUDGET STATE AND ROLLOVER
# =============================================================================


class TestBudgetState:
    """Tests for budget installation and lazy rollover."""

    def test_set_budget_seeds_reset_boundaries(self, cost_tracker) -> None:
        budget = cost_tracker.set_budget(BudgetConfig(daily_limit=5))

        assert budget.daily_spent == 0.0
        assert budget.warning_threshold == 0.8
        assert budget.daily_reset_at == datetime(2024, 1, 11, tzinfo=UTC)
        assert budget.weekly_reset_at == datetime(2024, 1, 15, tzinfo=UTC)
        assert budget.monthly_reset_at == datetime(2024, 2, 1, tzinfo=UTC)

    def test_get_budget_returns_copy(self, cost_tracker) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=5))
        budget = cost_tracker.get_budget()
        budget.daily_spent = 99.0

        assert cost_tracker.get_budget().daily_spent == 0.0

    def test_spend_updates_all_periods(self, cost_tracker) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=5, weekly_limit=20, monthly_limit=50))
        track_cheap(cost_tracker, 2_000_000)

        budget = cost_tracker.get_budget()
        assert (budget.daily_spent, budget.weekly_spent, budget.monthly_spent) == (1.0, 1.0, 1.0)

    def test_daily_rollover(self, cost_tracker, clock) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=5, weekly_limit=20))
        track_cheap(cost_tracker, 2_000_000)

        clock.advance(hours=13)  # Thursday 01:00
        budget = cost_tracker.get_budget()

        assert budget.daily_spent == 0.0
        assert budget.weekly_spent == 1.0
        assert budget.daily_reset_at == datetime(2024, 1, 12, tzinfo=UTC)

    def test_weekly_and_monthly_rollover(self, cost_tracker, clock) -> None:
        cost_tracker.set_budget(BudgetConfig(weekly_limit=20, monthly_limit=50))
        track_cheap(cost_tracker, 2_000_000)

        clock.advance(days=5)  # Monday the 15th
        assert cost_tracker.get_budget().weekly_spent == 0.0
        assert cost_tracker.get_budget().monthly_spent == 1.0

        clock.advance(days=22)  # February 6th
        assert cost_tracker.get_budget().monthly_spent == 0.0

    def test_rollover_happens_before_new_spend(self, cost_tracker, clock) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=5))
        track_cheap(cost_tracker, 8_000_000)  # $4.00
        clock.advance(days=1)
        track_cheap(cost_tracker, 2_000_000)  # $1.00

        assert cost_tracker.get_budget().daily_spent == 1.0

    def test_exhaustion_clears_on_rollover(self, cost_tracker, clock) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=1))
        track_cheap(cost_tracker, 2_000_000)
        assert cost_tracker.is_budget_exhausted() is True

        clock.advance(days=1)
        assert cost_tracker.is_budget_exhausted() is False

    def test_create_cost_tracker_with_budget(self) -> None:
        tracker = create_cost_tracker(budget={"monthly_limit": 25})
        assert tracker.get_budget().monthly_limit == 25


class TestResetBoundaries:
    """Tests for next-period boundary computation."""

    def test_next_day(self) -> None:
        now = datetime(2024, 2, 29, 23, 59, tzinfo=UTC)
        assert next_day_reset(now, timezone.utc) == datetime(2024, 3, 1, tzinfo=UTC)

    def test_next_week_from_midweek(self) -> None:
        now = datetime(2024, 1, 10, 12, tzinfo=UTC)  # Wednesday
        assert next_week_reset(now, timezone.utc) == datetime(2024, 1, 15, tzinfo=UTC)

    def test_next_week_from_monday_is_following_monday(self) -> None:
        now = datetime(2024, 1, 15, 0, 0, tzinfo=UTC)
        assert next_week_reset(now, timezone.utc) == datetime(2024, 1, 22, tzinfo=UTC)

    def test_next_month_wraps_year(self) -> None:
        now = datetime(2024, 12, 31, 8, tzinfo=UTC)
        assert next_month_reset(now, timezone.utc) == datetime(2025, 1, 1, tzinfo=UTC)

    def test_boundaries_use_local_zone(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        now = datetime(2024, 1, 10, 23, 0, tzinfo=UTC)  # already the 11th in UTC+2

        assert next_day_reset(now, plus_two) == datetime(2024, 1, 12, tzinfo=plus_two)


# US Eastern as a POSIX rule, so no tz database is needed.
EASTERN_RULE = "EST5EDT,M3.2.0,M11.1.0"


@pytest.fixture
def eastern_system_zone(monkeypatch):
    """Switch the process local zone to US Eastern for one test."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    monkeypatch.setenv("TZ", EASTERN_RULE)
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestSystemZoneBoundaries:
    """Reset boundaries without an explicit zone follow the system zone's DST rules."""

    def test_week_boundary_after_spring_forward(self, eastern_system_zone) -> None:
        now = datetime(2024, 3, 9, 17, 0, tzinfo=UTC)  # Saturday noon EST
        reset = next_week_reset(now)

        assert reset == datetime(2024, 3, 11, 4, 0, tzinfo=UTC)  # Monday 00:00 EDT
        assert reset.utcoffset() == timedelta(hours=-4)

    def test_month_boundary_before_spring_forward(self, eastern_system_zone) -> None:
        now = datetime(2024, 2, 15, 17, 0, tzinfo=UTC)

        assert next_month_reset(now) == datetime(2024, 3, 1, 5, 0, tzinfo=UTC)

    def test_day_boundary_after_fall_back(self, eastern_system_zone) -> None:
        now = datetime(2024, 11, 2, 16, 0, tzinfo=UTC)  # Saturday noon EDT

        assert next_day_reset(now) == datetime(2024, 11, 3, 4, 0, tzinfo=UTC)
        assert next_day_reset(now + timedelta(days=1)) == datetime(2024, 11, 4, 5, 0, tzinfo=UTC)

    def test_tracker_default_zone(self, eastern_system_zone, catalog) -> None:
        tracker = CostTracker(catalog=catalog, clock=FixedClock(datetime(2024, 3, 9, 17, 0, tzinfo=UTC)))
        budget = tracker.set_budget(BudgetConfig(weekly_limit=5))

        assert budget.weekly_reset_at == datetime(2024, 3, 11, 4, 0, tzinfo=UTC)
        assert budget.daily_reset_at == datetime(2024, 3, 10, 5, 0, tzinfo=UTC)


# =============================================================================
# SUMMARY AND QUERIES
# =============================================================================


class TestSummary:
    """Tests for entry queries and summaries."""

    def test_summary_breakdowns(self, cost_tracker) -> None:
        track_cheap(cost_tracker, 2_000_000, TaskCategory.VALIDATION)
        track_cheap(cost_tracker, 4_000_000, TaskCategory.EXPLANATION)
        cost_tracker.track(
            model_id="claude-3-haiku-20240307",
            provider=LLMProvider.ANTHROPIC,
            task_category=TaskCategory.VALIDATION,
            prompt_tokens=4_000_000,
            completion_tokens=0,
        )

        summary = cost_tracker.get_summary()

        assert summary.total_requests == 3
        assert summary.total_cost == pytest.approx(4.0)
        assert summary.total_tokens == 10_000_000
        assert summary.by_provider["openai"].requests == 2
        assert summary.by_provider["openai"].cost == pytest.approx(3.0)
        assert summary.by_provider["anthropic"].tokens == 4_000_000
        assert summary.by_category["validation"].requests == 2
        assert summary.by_category["explanation"].cost == pytest.approx(2.0)
        assert len(summary.entries) == 3

    def test_date_filter_is_inclusive(self, cost_tracker, clock) -> None:
        first = track_cheap(cost_tracker, 100)
        clock.advance(hours=1)
        second = track_cheap(cost_tracker, 100)
        clock.advance(hours=1)
        track_cheap(cost_tracker, 100)

        entries = cost_tracker.get_entries(start=first.timestamp, end=second.timestamp)
        assert [e.id for e in entries] == [first.id, second.id]
        assert cost_tracker.get_summary(start=clock.now).total_requests == 1

    def test_empty_summary(self, cost_tracker) -> None:
        summary = cost_tracker.get_summary()

        assert summary.total_cost == 0.0
        assert summary.by_provider == {}

    def test_clear_keeps_budget(self, cost_tracker) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=5))
        track_cheap(cost_tracker, 2_000_000)
        cost_tracker.clear()

        assert cost_tracker.get_entries() == []
        assert cost_tracker.get_budget().daily_spent == 1.0


# =============================================================================
# EXPORT / IMPORT
# =============================================================================


class TestExportImport:
    """Tests for the JSON document round trip."""

    def test_round_trip(self, cost_tracker, catalog, clock) -> None:
        cost_tracker.set_budget(BudgetConfig(daily_limit=5, warning_threshold=0.6))
        track_cheap(cost_tracker, 2_000_000)
        cost_tracker.track(
            model_id="gpt-4o",
            provider=OPENAI,
            task_category=TaskCategory.CODE_ANALYSIS,
            prompt_tokens=1200,
            completion_tokens=400,
            session_id="abc",
        )

        fresh = CostTracker(catalog=catalog, clock=clock, tz=timezone.utc)
        fresh.import_data(cost_tracker.export())

        assert fresh.get_entries() == cost_tracker.get_entries()
        assert isinstance(fresh.get_entries()[0].timestamp, datetime)
        assert fresh.get_budget() == cost_tracker.get_budget()

    def test_export_document_shape(self, cost_tracker, clock) -> None:
        track_cheap(cost_tracker, 100)
        document = json.loads(cost_tracker.export())

        assert set(document) == {"entries", "budget", "exportedAt"}
        assert document["budget"] is None
        assert document["exportedAt"].startswith("2024-01-10T12:00:00")
        entry = document["entries"][0]
        assert entry["modelId"] == CHEAP
        assert entry["promptTokens"] == 100
        assert entry["provider"] == "openai"
        assert entry["taskCategory"] == "validation"

    def test_import_without_budget_keeps_current(self, cost_tracker, catalog) -> None:
        track_cheap(cost_tracker, 100)
        exported = cost_tracker.export()

        target = CostTracker(catalog=catalog)
        target.set_budget(BudgetConfig(daily_limit=3))
        target.import_data(exported)

        assert target.get_budget().daily_limit == 3
        assert len(target.get_entries()) == 1

    def test_import_replaces_entries(self, cost_tracker, catalog) -> None:
        exported = cost_tracker.export()
        track_cheap(cost_tracker, 100)

        cost_tracker.import_data(exported)
        assert cost_tracker.get_entries() == []

    @pytest.mark.parametrize(
        "payload",
        ["not json", '{"entries": [{"modelId": 1}]}', '{"entries": "nope"}'],
    )
    def test_malformed_import_raises(self, cost_tracker, payload) -> None:
        with pytest.raises(CostDataImportError) as exc_info:
            cost_tracker.import_data(payload)

        assert str(exc_info.value).startswith("Failed to import cost data: ")
        assert exc_info.value.__cause__ is not None
