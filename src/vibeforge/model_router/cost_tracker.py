# src/vibeforge/model_router/cost_tracker.py
"""
Cost Tracking for routed LLM calls.

This module tracks:
- Token usage (prompt/completion) for every reported invocation
- USD cost computed from the capability catalog's per-1M pricing
- Rolling daily/weekly/monthly spend against an optional budget
- Threshold alerts (warning/critical) delivered to subscribers

Budget periods roll over lazily: every read or write of the budget first
checks whether a reset boundary has passed. Boundaries are the next local
midnight, the next Monday midnight and the first of the next month,
computed in the tracker's time zone.

Usage:
    tracker = CostTracker()
    tracker.set_budget(BudgetConfig(daily_limit=5.0))
    unsubscribe = tracker.on_alert(lambda alert: print(alert.message))

    entry = tracker.track(
        model_id="gpt-4o",
        provider=LLMProvider.OPENAI,
        task_category=TaskCategory.CODE_ANALYSIS,
        prompt_tokens=1200,
        completion_tokens=400,
    )
    print(f"Cost: ${entry.total_cost:.6f}")

    summary = tracker.get_summary()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Any

from pydantic import BaseModel

from ..config import BudgetConfig
from ..exceptions import CostDataImportError
from ..logging_config import log_display
from .catalog import ModelCatalog
from .types import (
    AlertType,
    BudgetPeriod,
    CostAlert,
    CostBudget,
    CostEntry,
    CostExport,
    CostSummary,
    LLMProvider,
    TaskCategory,
    UsageBreakdown,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
AlertCallback = Callable[[CostAlert], None]

TOKENS_PER_PRICE_UNIT = 1_000_000


def _default_clock() -> datetime:
    return datetime.now(UTC)


def _usd(amount: float) -> str:
    """Two decimals, or two significant digits for sub-cent amounts."""
    if amount == 0 or abs(amount) >= 0.01:
        return f"{amount:.2f}"
    return f"{amount:.2g}"


def _midnight(day: date, tz: tzinfo | None) -> datetime:
    """Start of ``day`` in ``tz``, or in the system zone (DST-aware) when ``tz`` is None."""
    if tz is None:
        return datetime.combine(day, time(0)).astimezone()
    return datetime.combine(day, time(0), tzinfo=tz)


# =============================================================================
# RESET BOUNDARIES
# =============================================================================


def next_day_reset(now: datetime, tz: tzinfo | None = None) -> datetime:
    """Midnight at the start of the next local day."""
    local = now.astimezone(tz)
    return _midnight(local.date() + timedelta(days=1), tz)


def next_week_reset(now: datetime, tz: tzinfo | None = None) -> datetime:
    """Midnight at the start of the next local Monday (a Monday rolls to the following one)."""
    local = now.astimezone(tz)
    days_until_monday = 7 - local.weekday()
    return _midnight(local.date() + timedelta(days=days_until_monday), tz)


def next_month_reset(now: datetime, tz: tzinfo | None = None) -> datetime:
    """Midnight on the first day of the next local month."""
    local = now.astimezone(tz)
    if local.month == 12:
        first = local.date().replace(year=local.year + 1, month=1, day=1)
    else:
        first = local.date().replace(month=local.month + 1, day=1)
    return _midnight(first, tz)


_RESET_FUNCTIONS: dict[BudgetPeriod, Callable[[datetime, tzinfo | None], datetime]] = {
    BudgetPeriod.DAILY: next_day_reset,
    BudgetPeriod.WEEKLY: next_week_reset,
    BudgetPeriod.MONTHLY: next_month_reset,
}


# =============================================================================
# COST TRACKER
# =============================================================================


class CostTracker:
    """Track routed LLM costs and enforce spend budgets.

    Thread-safe: the entry log and the budget are guarded by one re-entrant
    lock. Alert callbacks run after the lock is released.

    Args:
        catalog: Pricing source. Defaults to the built-in catalog.
        clock: Returns the current aware datetime. Defaults to UTC now.
        tz: Time zone for budget reset boundaries. Defaults to the system
            local zone, resolved at each boundary so DST changes are honoured.
    """

    def __init__(
        self,
        catalog: ModelCatalog | None = None,
        clock: Clock | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self._catalog = catalog or ModelCatalog()
        self._clock = clock or _default_clock
        self._tz = tz
        self._lock = threading.RLock()

        self._entries: list[CostEntry] = []
        self._budget: CostBudget | None = None
        self._alert_callbacks: list[AlertCallback] = []

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def track(
        self,
        model_id: str,
        provider: LLMProvider,
        task_category: TaskCategory,
        prompt_tokens: int,
        completion_tokens: int,
        total_tokens: int | None = None,
        session_id: str | None = None,
        user_id: str | None = None,
    ) -> CostEntry:
        """Record one billed invocation and update the budget.

        Raises:
            UnknownModelError: If ``model_id`` is not in the catalog.
        """
        model = self._catalog.require(model_id)

        input_cost = (prompt_tokens / TOKENS_PER_PRICE_UNIT) * model.input_cost_per_1m
        output_cost = (completion_tokens / TOKENS_PER_PRICE_UNIT) * model.output_cost_per_1m

        entry = CostEntry(
            timestamp=self._clock(),
            model_id=model_id,
            provider=provider,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=(
                total_tokens if total_tokens is not None else prompt_tokens + completion_tokens
            ),
            input_cost=input_cost,
            output_cost=output_cost,
            total_cost=input_cost + output_cost,
            task_category=task_category,
            session_id=session_id,
            user_id=user_id,
        )

        with self._lock:
            self._entries.append(entry)
            if self._budget is not None:
                self._roll_over_periods()
                self._budget = self._budget.model_copy(
                    update={
                        "daily_spent": self._budget.daily_spent + entry.total_cost,
                        "weekly_spent": self._budget.weekly_spent + entry.total_cost,
                        "monthly_spent": self._budget.monthly_spent + entry.total_cost,
                    }
                )
                has_budget = True
            else:
                has_budget = False

        logger.debug(
            f"Tracked usage: {provider.value}/{model_id} tokens={entry.total_tokens} "
            f"cost=${entry.total_cost:.6f}"
        )

        if has_budget:
            self.check_budget_alerts()
        return entry

    def track_usage(
        self,
        provider: LLMProvider,
        model_id: str,
        task_category: TaskCategory,
        prompt_tokens: int,
        completion_tokens: int,
    ) -> CostEntry:
        """Positional convenience wrapper around :meth:`track`."""
        return self.track(
            model_id=model_id,
            provider=provider,
            task_category=task_category,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

    # -------------------------------------------------------------------------
    # Budget
    # -------------------------------------------------------------------------

    def set_budget(self, budget: BudgetConfig | CostBudget | Mapping[str, Any]) -> CostBudget:
        """Install a budget.

        Accepts a :class:`BudgetConfig`, a full :class:`CostBudget`, or a
        partial mapping of ``CostBudget`` fields. Spent counters default to
        zero and reset boundaries to the next period starts.
        """
        if isinstance(budget, BaseModel):
            data = budget.model_dump(exclude_none=True)
        else:
            data = {k: v for k, v in budget.items() if v is not None}

        now = self._clock()
        for period, reset in _RESET_FUNCTIONS.items():
            data.setdefault(f"{period.value}_reset_at", reset(now, self._tz))

        new_budget = CostBudget.model_validate(data)
        with self._lock:
            self._budget = new_budget

        logger.info(
            f"Budget set: daily={new_budget.daily_limit} weekly={new_budget.weekly_limit} "
            f"monthly={new_budget.monthly_limit} warn_at={new_budget.warning_threshold:.0%}"
        )
        return new_budget.model_copy()

    def get_budget(self) -> CostBudget | None:
        """Current budget after lazy rollover, as a copy."""
        with self._lock:
            if self._budget is None:
                return None
            self._roll_over_periods()
            return self._budget.model_copy()

    def is_budget_exhausted(self) -> bool:
        """True when any configured period has spent its full limit."""
        budget = self.get_budget()
        if budget is None:
            return False
        for period in BudgetPeriod:
            limit = budget.limit_for(period)
            if limit is not None and budget.spent_for(period) >= limit:
                return True
        return False

    def check_budget_alerts(self) -> list[CostAlert]:
        """Evaluate every configured period and notify subscribers.

        Each period is checked independently, so one entry can raise several
        alerts. Returns the alerts that were emitted.
        """
        budget = self.get_budget()
        if budget is None:
            return []

        alerts: list[CostAlert] = []
        for period in BudgetPeriod:
            limit = budget.limit_for(period)
            if limit is None:
                continue
            spent = budget.spent_for(period)
            percentage = spent / limit
            if percentage >= 1.0:
                alerts.append(self._create_alert(AlertType.CRITICAL, period, spent, limit, percentage))
            elif percentage >= budget.warning_threshold:
                alerts.append(self._create_alert(AlertType.WARNING, period, spent, limit, percentage))

        for alert in alerts:
            self._emit_alert(alert)
        return alerts

    def on_alert(self, callback: AlertCallback) -> Callable[[], None]:
        """Subscribe to budget alerts. Returns a function that unsubscribes."""
        with self._lock:
            self._alert_callbacks.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._alert_callbacks:
                    self._alert_callbacks.remove(callback)

        return unsubscribe

    def _roll_over_periods(self) -> None:
        """Zero any period whose reset boundary has passed. Caller holds the lock."""
        if self._budget is None:
            return

        now = self._clock()
        updates: dict[str, Any] = {}
        for period, reset in _RESET_FUNCTIONS.items():
            reset_at: datetime = getattr(self._budget, f"{period.value}_reset_at")
            if now >= reset_at:
                updates[f"{period.value}_spent"] = 0.0
                updates[f"{period.value}_reset_at"] = reset(now, self._tz)
                logger.info(f"{period.value.capitalize()} budget period rolled over")

        if updates:
            self._budget = self._budget.model_copy(update=updates)

    def _create_alert(
        self,
        alert_type: AlertType,
        period: BudgetPeriod,
        spent: float,
        limit: float,
        percentage: float,
    ) -> CostAlert:
        period_name = period.value.capitalize()
        if alert_type == AlertType.CRITICAL:
            message = (
                f"{period_name} budget limit reached! Spent ${_usd(spent)} of ${_usd(limit)}"
            )
        else:
            message = (
                f"{period_name} budget at {round(percentage * 100)}%. "
                f"Spent ${_usd(spent)} of ${_usd(limit)}"
            )
        return CostAlert(
            type=alert_type,
            period=period,
            current_spent=spent,
            limit=limit,
            percentage=percentage,
            message=message,
            timestamp=self._clock(),
        )

    def _emit_alert(self, alert: CostAlert) -> None:
        level = logging.CRITICAL if alert.type == AlertType.CRITICAL else logging.WARNING
        log_display(logger, level, alert.message)

        with self._lock:
            callbacks = list(self._alert_callbacks)
        for callback in callbacks:
            try:
                callback(alert)
            except Exception:
                logger.exception("Error in budget alert callback")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_entries(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> list[CostEntry]:
        """Entries with ``start <= timestamp <= end`` (either bound optional)."""
        with self._lock:
            return [
                e
                for e in self._entries
                if (start is None or e.timestamp >= start) and (end is None or e.timestamp <= end)
            ]

    def get_summary(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> CostSummary:
        """Totals plus per-provider and per-category breakdowns."""
        entries = self.get_entries(start, end)
        by_provider: dict[str, UsageBreakdown] = {}
        by_category: dict[str, UsageBreakdown] = {}
        total_cost = 0.0
        total_tokens = 0

        for entry in entries:
            total_cost += entry.total_cost
            total_tokens += entry.total_tokens
            for key, bucket in (
                (entry.provider.value, by_provider),
                (entry.task_category.value, by_category),
            ):
                breakdown = bucket.setdefault(key, UsageBreakdown())
                breakdown.cost += entry.total_cost
                breakdown.tokens += entry.total_tokens
                breakdown.requests += 1

        return CostSummary(
            total_cost=total_cost,
            total_tokens=total_tokens,
            total_requests=len(entries),
            by_provider=by_provider,
            by_category=by_category,
            entries=entries,
        )

    def clear(self) -> None:
        """Drop all entries. The budget is kept."""
        with self._lock:
            self._entries = []

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    def export(self) -> str:
        """Serialize entries and budget to JSON with ISO 8601 dates and camelCase keys."""
        with self._lock:
            document = CostExport(
                entries=list(self._entries),
                budget=self._budget,
                exported_at=self._clock(),
            )
        return document.model_dump_json(by_alias=True, indent=2)

    def import_data(self, json_text: str | bytes) -> None:
        """Replace the entry log (and budget, when present) from :meth:`export` output.

        Raises:
            CostDataImportError: If the document cannot be parsed or validated.
        """
        try:
            document = CostExport.model_validate_json(json_text)
        except (ValueError, TypeError) as e:
            raise CostDataImportError(e) from e

        with self._lock:
            self._entries = list(document.entries)
            if document.budget is not None:
                self._budget = document.budget

        logger.info(f"Imported {len(document.entries)} cost entries")


# =============================================================================
# FACTORY FUNCTION
# =============================================================================


def create_cost_tracker(
    budget: BudgetConfig | Mapping[str, Any] | None = None,
    catalog: ModelCatalog | None = None,
) -> CostTracker:
    """Create a CostTracker, optionally with a budget already installed."""
    tracker = CostTracker(catalog=catalog)
    if budget is not None:
        tracker.set_budget(budget)
    return tracker


__all__ = [
    "CostTracker",
    "create_cost_tracker",
    "next_day_reset",
    "next_month_reset",
    "next_week_reset",
]
