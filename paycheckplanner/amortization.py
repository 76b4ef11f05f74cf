"""Amortization calculations for debt payoff projections.

Simulates a single debt's balance decay under a fixed monthly payment and
splits individual payments into interest and principal.
"""

import logging
from collections.abc import Iterator
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional

from dateutil.relativedelta import relativedelta

from . import constants

logger = logging.getLogger(__name__)


class AmortizationStep(NamedTuple):
    """One month of a debt's payoff."""

    month_index: int
    payment: Decimal
    interest_portion: Decimal
    principal_portion: Decimal
    ending_balance: Decimal


class PaymentSplit(NamedTuple):
    """Principal and interest components of a single payment."""

    principal: Decimal
    interest: Decimal
    remaining_balance: Decimal


class AmortizationResult(NamedTuple):
    """Outcome of amortizing one debt under a fixed payment.

    ``non_amortizing`` means the payment never covers the monthly interest:
    the horizon is infinite and ``steps`` is empty. ``capped`` means the
    safety cap was reached before the balance hit zero.
    """

    steps: tuple[AmortizationStep, ...]
    non_amortizing: bool
    capped: bool

    @property
    def months(self) -> Optional[int]:
        if self.non_amortizing or self.capped:
            return None
        return len(self.steps)

    @property
    def total_interest(self) -> Decimal:
        return sum((s.interest_portion for s in self.steps), constants.ZERO)

    @property
    def total_principal(self) -> Decimal:
        return sum((s.principal_portion for s in self.steps), constants.ZERO)

    def payoff_date(self, start_date: date) -> Optional[date]:
        """Anchor + payoff months, or None for an infinite horizon."""
        months = self.months
        if months is None:
            return None
        return start_date + relativedelta(months=months)


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert an APR in percent to a monthly rate (22 -> 0.22 / 12)."""
    return Decimal(annual_rate_percent) / constants.PERCENT / Decimal(constants.MONTHS_PER_YEAR)


def interest_for_month(balance: Decimal, annual_rate_percent: Decimal) -> Decimal:
    """Interest accrued on balance over one month, rounded to cents."""
    return (Decimal(balance) * monthly_rate(annual_rate_percent)).quantize(
        constants.CENTS_PRECISION
    )


def is_non_amortizing(balance: Decimal, annual_rate_percent: Decimal, payment: Decimal) -> bool:
    """True when a positive balance never shrinks because payment <= monthly interest."""
    if balance <= 0:
        return False
    return Decimal(payment) <= Decimal(balance) * monthly_rate(annual_rate_percent)


def split_payment(balance: Decimal, annual_rate_percent: Decimal, amount: Decimal) -> PaymentSplit:
    """Split a payment into interest and principal against the current balance.

    Interest is covered first. Principal never exceeds the balance, so the
    remaining balance never goes below zero.
    """
    balance = Decimal(balance)
    amount = Decimal(amount)
    interest = min(interest_for_month(balance, annual_rate_percent), amount)
    principal = min(max(amount - interest, constants.ZERO), balance)
    return PaymentSplit(
        principal=principal,
        interest=interest,
        remaining_balance=balance - principal,
    )


def iter_amortization(
    balance: Decimal,
    annual_rate_percent: Decimal,
    payment: Decimal,
    max_months: int = constants.MAX_AMORTIZATION_MONTHS,
) -> Iterator[AmortizationStep]:
    """
    Lazily yield the months of a debt's payoff.

    Stops when the balance reaches zero or after ``max_months``. Yields
    nothing for a zero balance or a non-amortizing payment.

    Args:
        balance: Starting balance
        annual_rate_percent: APR in percent
        payment: Fixed monthly payment
        max_months: Safety cap on the number of steps
    """
    balance = Decimal(balance)
    payment = Decimal(payment)
    if balance <= 0 or is_non_amortizing(balance, annual_rate_percent, payment):
        return

    month_index = 0
    while balance > 0 and month_index < max_months:
        month_index += 1
        interest = interest_for_month(balance, annual_rate_percent)
        principal = min(payment - interest, balance)
        balance -= principal
        yield AmortizationStep(
            month_index=month_index,
            payment=principal + interest,
            interest_portion=interest,
            principal_portion=principal,
            ending_balance=balance,
        )


def amortize(
    balance: Decimal,
    annual_rate_percent: Decimal,
    payment: Decimal,
    max_months: int = constants.MAX_AMORTIZATION_MONTHS,
) -> AmortizationResult:
    """
    Amortize one debt under a fixed payment.

    Example:
        >>> result = amortize(Decimal("1200"), Decimal("12"), Decimal("120"))
        >>> result.months
        11
        >>> result.steps[0].interest_portion
        Decimal('12.00')

    Returns:
        AmortizationResult; ``non_amortizing`` is set instead of looping when the
        payment does not cover the first month's interest.
    """
    if is_non_amortizing(balance, annual_rate_percent, payment):
        logger.warning(
            "Payment %s does not cover monthly interest on balance %s at %s%%; "
            "debt never pays off",
            payment,
            balance,
            annual_rate_percent,
        )
        return AmortizationResult(steps=(), non_amortizing=True, capped=False)

    steps = tuple(iter_amortization(balance, annual_rate_percent, payment, max_months))
    capped = bool(steps) and steps[-1].ending_balance > 0
    if capped:
        logger.warning(
            "Amortization hit the %d month cap with balance %s",
            max_months,
            steps[-1].ending_balance,
        )

    logger.debug(
        "Amortized balance=%s rate=%s%% payment=%s over %d months",
        balance,
        annual_rate_percent,
        payment,
        len(steps),
    )
    return AmortizationResult(steps=steps, non_amortizing=False, capped=capped)
