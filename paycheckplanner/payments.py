"""Recording debt payments against balances."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from . import constants
from .amortization import split_payment
from .schema import Debt, DebtPayment

logger = logging.getLogger(__name__)


class RecordedPayment(NamedTuple):
    """A payment record plus the debt state after applying it."""

    payment: DebtPayment
    debt: Debt


def record_payment(debt: Debt, payment_id: str, on_date: date, amount: Decimal) -> RecordedPayment:
    """
    Split a payment into interest and principal and lower the debt's balance.

    Interest is the debt's balance times its monthly rate; the rest goes to
    principal, capped at the balance.

    Args:
        debt: Debt being paid
        payment_id: Identifier for the new payment record
        on_date: Payment date
        amount: Total amount paid

    Returns:
        RecordedPayment with the payment record and the updated debt

    Raises:
        ValueError: If amount is not positive
    """
    amount = Decimal(amount)
    if amount <= 0:
        raise ValueError("payment amount must be positive")

    split = split_payment(debt.balance, debt.annual_rate_percent, amount)
    payment = DebtPayment(
        id=payment_id,
        debt_id=debt.id,
        date=on_date,
        amount=amount,
        principal_paid=split.principal,
        interest_paid=split.interest,
        remaining_balance=split.remaining_balance,
    )
    logger.info(
        "Recorded payment %s on %s: principal=%s interest=%s balance=%s",
        payment_id,
        debt.id,
        split.principal,
        split.interest,
        split.remaining_balance,
    )
    return RecordedPayment(
        payment=payment,
        debt=debt.model_copy(update={"balance": split.remaining_balance}),
    )


def reverse_payment(debt: Debt, payment: DebtPayment) -> Debt:
    """Undo a payment by restoring the principal it credited."""
    if payment.debt_id != debt.id:
        raise ValueError(f"Payment {payment.id} belongs to debt {payment.debt_id}, not {debt.id}")
    logger.info("Reversed payment %s on %s", payment.id, debt.id)
    return debt.model_copy(update={"balance": debt.balance + payment.principal_paid})


def apply_payments(debts: Iterable[Debt], payments: Iterable[DebtPayment]) -> list[Debt]:
    """
    Derive current balances from payment history.

    Debts with an ``original_balance`` get ``balance = original_balance - sum of
    principal paid``, never below zero. Debts without one keep their balance.
    Payments for unknown debts are ignored.
    """
    principal_by_debt: dict[str, Decimal] = defaultdict(lambda: constants.ZERO)
    for payment in payments:
        principal_by_debt[payment.debt_id] += payment.principal_paid

    updated = []
    for debt in debts:
        if debt.original_balance is not None:
            paid = principal_by_debt.get(debt.id, constants.ZERO)
            balance = max(debt.original_balance - paid, constants.ZERO)
            logger.debug("Debt %s: %s principal paid, balance now %s", debt.id, paid, balance)
            debt = debt.model_copy(update={"balance": balance})
        updated.append(debt)
    return updated
