"""Multi-debt payoff simulation (avalanche and snowball with rollover)."""

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional

from dateutil.relativedelta import relativedelta

from . import constants
from .amortization import AmortizationStep, amortize, interest_for_month
from .schema import Debt
from .types import PayoffStrategy

logger = logging.getLogger(__name__)


class DebtPayoffSchedule(NamedTuple):
    """Projected payoff of one debt within a strategy simulation."""

    debt_id: str
    name: str
    start_date: date
    steps: tuple[AmortizationStep, ...]
    non_amortizing: bool

    @property
    def total_interest(self) -> Decimal:
        return sum((s.interest_portion for s in self.steps), constants.ZERO)

    @property
    def payoff_months(self) -> Optional[int]:
        if self.non_amortizing:
            return None
        return len(self.steps)

    @property
    def payoff_date(self) -> Optional[date]:
        months = self.payoff_months
        if months is None:
            return None
        return self.start_date + relativedelta(months=months)


class PayoffPlan(NamedTuple):
    """All debt schedules for one strategy."""

    strategy: PayoffStrategy
    extra_payment: Decimal
    start_date: date
    order: tuple[str, ...]  # Prioritized debt ids, focus first
    schedules: dict[str, DebtPayoffSchedule]

    @property
    def focus_debt_id(self) -> Optional[str]:
        for debt_id in self.order:
            if self.schedules[debt_id].steps:
                return debt_id
        return None

    @property
    def total_interest(self) -> Decimal:
        """Interest across all debts that pay off; non-amortizing debts are left out."""
        return sum(
            (s.total_interest for s in self.schedules.values() if not s.non_amortizing),
            constants.ZERO,
        )

    @property
    def payoff_date(self) -> Optional[date]:
        """Date the last amortizing debt is paid off."""
        dates = [s.payoff_date for s in self.schedules.values() if s.payoff_date is not None]
        return max(dates) if dates else None

    @property
    def months(self) -> Optional[int]:
        months = [s.payoff_months for s in self.schedules.values() if s.payoff_months is not None]
        return max(months) if months else None


class PayoffComparison(NamedTuple):
    """Summary row for comparing strategies side by side."""

    strategy: PayoffStrategy
    total_interest: Decimal
    payoff_date: Optional[date]
    months: Optional[int]


def order_debts(debts: Iterable[Debt], strategy: PayoffStrategy) -> list[Debt]:
    """
    Order debts for payoff, dropping those excluded from the strategy.

    Avalanche sorts by descending rate, snowball by ascending balance. Both
    sorts are stable, so ties keep input order.
    """
    strategy = PayoffStrategy(strategy)
    candidates = [d for d in debts if not d.exclude_from_payoff]
    if strategy == PayoffStrategy.AVALANCHE:
        return sorted(candidates, key=lambda d: d.annual_rate_percent, reverse=True)
    return sorted(candidates, key=lambda d: d.balance)


def focus_debt(debts: Iterable[Debt], strategy: PayoffStrategy) -> Optional[Debt]:
    """Return the debt currently receiving the extra payment, if any."""
    for debt in order_debts(debts, strategy):
        if debt.balance > 0:
            return debt
    return None


def _simulate_rollover(
    ordered: list[Debt],
    extra_payment: Decimal,
    max_months: int,
) -> tuple[dict[str, list[AmortizationStep]], dict[str, Decimal]]:
    """Run prioritized debts month by month with extra payment rollover.

    The pool (extra payment plus minimums freed by paid-off debts) goes to the
    first debt in order that still has a balance. Money left over when a debt
    is paid off flows to the next debt in the same month.
    """
    balances = {d.id: Decimal(d.balance) for d in ordered}
    steps: dict[str, list[AmortizationStep]] = {d.id: [] for d in ordered}
    freed_minimums = constants.ZERO

    month = 0
    while month < max_months and any(b > 0 for b in balances.values()):
        month += 1
        pool = Decimal(extra_payment) + freed_minimums
        progressed = False

        for debt in ordered:
            balance = balances[debt.id]
            if balance <= 0:
                continue

            interest = interest_for_month(balance, debt.annual_rate_percent)
            payment = Decimal(debt.minimum_payment) + pool
            pool = constants.ZERO

            principal = min(payment - interest, balance)
            if principal >= balance:
                pool = payment - interest - balance
                freed_minimums += Decimal(debt.minimum_payment)
            # Negative principal capitalizes unpaid interest onto the balance
            balance -= principal
            balances[debt.id] = balance
            if principal > 0:
                progressed = True

            steps[debt.id].append(
                AmortizationStep(
                    month_index=month,
                    payment=principal + interest,
                    interest_portion=interest,
                    principal_portion=principal,
                    ending_balance=balance,
                )
            )

        # Stop once no debt shrinks; debts still owing are non-amortizing
        if not progressed:
            logger.warning(
                "Payoff simulation stalled in month %d; %s never pay off",
                month,
                ", ".join(d.id for d in ordered if balances[d.id] > 0),
            )
            break

    return steps, balances


def simulate(
    debts: Iterable[Debt],
    strategy: PayoffStrategy,
    extra_payment: Decimal,
    start_date: date,
    max_months: int = constants.MAX_AMORTIZATION_MONTHS,
) -> PayoffPlan:
    """
    Simulate paying off all debts under a strategy.

    The focus debt pays minimum + extra payment (+ rolled-over minimums of
    debts already paid off); every other prioritized debt pays its minimum.
    Debts flagged ``exclude_from_payoff`` amortize on their own at minimum.

    Args:
        debts: Current debt states
        strategy: Avalanche or snowball
        extra_payment: Household-wide extra payment per month
        start_date: Anchor for payoff dates (month 1 = start_date + 1 month)
        max_months: Safety cap

    Returns:
        PayoffPlan keyed by debt id
    """
    debts = list(debts)
    strategy = PayoffStrategy(strategy)
    if extra_payment < 0:
        raise ValueError("extra_payment must be non-negative")

    ordered = order_debts(debts, strategy)
    schedules: dict[str, DebtPayoffSchedule] = {}

    for debt in debts:
        if not debt.exclude_from_payoff:
            continue
        result = amortize(debt.balance, debt.annual_rate_percent, debt.minimum_payment, max_months)
        schedules[debt.id] = DebtPayoffSchedule(
            debt_id=debt.id,
            name=debt.name,
            start_date=start_date,
            steps=result.steps,
            non_amortizing=result.non_amortizing or result.capped,
        )

    steps, balances = _simulate_rollover(ordered, extra_payment, max_months)
    for debt in ordered:
        schedules[debt.id] = DebtPayoffSchedule(
            debt_id=debt.id,
            name=debt.name,
            start_date=start_date,
            steps=tuple(steps[debt.id]),
            non_amortizing=balances[debt.id] > 0,
        )

    plan = PayoffPlan(
        strategy=strategy,
        extra_payment=Decimal(extra_payment),
        start_date=start_date,
        order=tuple(d.id for d in ordered),
        schedules=schedules,
    )
    logger.info(
        "Simulated %s payoff of %d debts: interest=%s, payoff=%s",
        strategy.value,
        len(schedules),
        plan.total_interest,
        plan.payoff_date,
    )
    return plan


def compare_strategies(
    debts: Iterable[Debt],
    extra_payment: Decimal,
    start_date: date,
) -> list[PayoffComparison]:
    """Simulate every strategy and summarize total interest and payoff date."""
    debts = list(debts)
    comparisons = []
    for strategy in PayoffStrategy:
        plan = simulate(debts, strategy, extra_payment, start_date)
        comparisons.append(
            PayoffComparison(
                strategy=strategy,
                total_interest=plan.total_interest,
                payoff_date=plan.payoff_date,
                months=plan.months,
            )
        )
    return comparisons
