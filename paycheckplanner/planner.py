"""End-to-end planning run: income periods, obligations, allocation, paid status."""

import logging
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional

from dateutil.relativedelta import relativedelta

from . import constants
from .allocator import Allocator, lock_threshold
from .exceptions import InputValidationError
from .matcher import PaymentMatcher
from .obligations import ObligationMaterializer
from .payments import apply_payments
from .payoff import PayoffPlan, simulate
from .recurrence import RecurrenceEngine
from .schema import (
    Debt,
    IncomePeriod,
    Obligation,
    ObligationKey,
    PlannerFile,
    ScheduledAssignment,
)
from .store import ScheduleStore
from .types import PayoffStrategy

logger = logging.getLogger(__name__)


class PeriodPlan(NamedTuple):
    """One income period with what it pays."""

    period: IncomePeriod
    assignments: list[ScheduledAssignment]
    locked: bool
    frozen: bool

    @property
    def total_assigned(self) -> Decimal:
        return sum((a.amount for a in self.assignments), constants.ZERO)

    @property
    def remaining(self) -> Decimal:
        return self.period.amount - self.total_assigned

    @property
    def all_paid(self) -> bool:
        return all(a.is_paid for a in self.assignments)

    def is_history(self, today: date) -> bool:
        """Past periods with nothing left to pay move to history."""
        return self.period.date < today and self.all_paid


class PlanResult(NamedTuple):
    """Outcome of a planning run."""

    today: date
    window_start: date
    window_end: date
    periods: list[PeriodPlan]
    unassigned: list[Obligation]
    dismissed: list[Obligation]
    past_due: list[Obligation]
    rejected: list[InputValidationError]

    @property
    def active(self) -> list[PeriodPlan]:
        return [p for p in self.periods if not p.is_history(self.today)]

    @property
    def history(self) -> list[PeriodPlan]:
        return [p for p in self.periods if p.is_history(self.today)]

    @property
    def assignments(self) -> list[ScheduledAssignment]:
        return [a for p in self.periods for a in p.assignments]


class PaycheckPlanner:
    """Runs the scheduling pipeline for one household's planner file."""

    def __init__(self, planner: PlannerFile, store: ScheduleStore):
        """
        Initialize planner.

        Args:
            planner: Loaded planner file (config, sources, transactions, payments)
            store: Schedule store for locked assignments, paid toggles and dismissals
        """
        self.planner = planner
        self.config = planner.config
        self.store = store
        self.recurrence = RecurrenceEngine()
        self.materializer = ObligationMaterializer(self.config)
        self.allocator = Allocator(store, self.config)
        self.matcher = PaymentMatcher(self.config)

    def window(self, today: date) -> tuple[date, date]:
        """Scheduling window ``[today - lookback, today + lookahead)``."""
        return (
            today - relativedelta(months=self.config.lookback_months),
            today + relativedelta(months=self.config.lookahead_months),
        )

    def current_debts(self) -> list[Debt]:
        """Debts with balances derived from recorded payments."""
        return apply_payments(self.planner.debts, self.planner.debt_payments)

    def run(self, today: date) -> PlanResult:
        """
        Build the paycheck plan as of ``today``.

        Newly locked periods are written to the store as a side effect.
        """
        window_start, window_end = self.window(today)
        logger.info("Planning %s from %s to %s", self.config.household_id, window_start, window_end)

        periods = self.recurrence.project_all_income(self.planner.income, window_start, window_end)
        materialized = self.materializer.materialize(
            self.planner.bills,
            self.current_debts(),
            self.planner.budget_categories,
            window_start,
            window_end,
            today,
        )
        allocation = self.allocator.run(periods, materialized.obligations, today)

        assignments = self._apply_paid_overrides(allocation.assignments)
        assignments = self.matcher.reconcile(assignments, self.planner.transactions)

        by_period: dict[str, list[ScheduledAssignment]] = {}
        for assignment in assignments:
            by_period.setdefault(assignment.income_period_id, []).append(assignment)

        threshold = lock_threshold(today, self.config)
        period_plans = [
            PeriodPlan(
                period=period,
                assignments=by_period.get(period.id, []),
                locked=period.date < threshold,
                frozen=period.id in allocation.frozen_period_ids,
            )
            for period in periods
        ]
        return PlanResult(
            today=today,
            window_start=window_start,
            window_end=window_end,
            periods=period_plans,
            unassigned=allocation.unassigned,
            dismissed=allocation.dismissed,
            past_due=allocation.past_due,
            rejected=materialized.rejected,
        )

    def _apply_paid_overrides(
        self,
        assignments: list[ScheduledAssignment],
    ) -> list[ScheduledAssignment]:
        overrides = self.store.load_paid_overrides(self.config.household_id)
        if not overrides:
            return assignments
        result = []
        for assignment in assignments:
            if assignment.key in overrides and not assignment.paid_set_by_user:
                assignment = assignment.model_copy(
                    update={"is_paid": overrides[assignment.key], "paid_set_by_user": True}
                )
            result.append(assignment)
        return result

    def toggle_paid(self, key: ObligationKey, is_paid: bool) -> int:
        """Set paid status for an obligation instance; wins over transaction matching."""
        updated = self.store.set_paid(self.config.household_id, key, is_paid)
        logger.info("Marked %s %s", key.as_string(), "paid" if is_paid else "unpaid")
        return updated

    def dismiss(self, key: ObligationKey, dismissed: bool = True) -> None:
        """Hide an unassigned obligation from future runs (or restore it)."""
        self.store.set_dismissed(self.config.household_id, key, dismissed)
        logger.info("%s %s", "Dismissed" if dismissed else "Restored", key.as_string())

    def payoff(
        self,
        start_date: date,
        strategy: Optional[PayoffStrategy] = None,
        extra_payment: Optional[Decimal] = None,
    ) -> PayoffPlan:
        """Simulate debt payoff with the household's (or the given) strategy."""
        return simulate(
            self.current_debts(),
            strategy or self.config.strategy,
            self.config.extra_payment if extra_payment is None else extra_payment,
            start_date,
        )
