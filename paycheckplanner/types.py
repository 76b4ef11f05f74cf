"""Type definitions and enums for paycheckplanner."""

from enum import Enum


class Frequency(str, Enum):
    """Paycheck and bill recurrence frequencies."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    SEMIMONTHLY = "semimonthly"  # Fixed 15-day step, not 1st/16th
    MONTHLY = "monthly"


class ObligationKind(str, Enum):
    """Discriminator for the obligation variants."""

    RECURRING_BILL = "recurring_bill"
    DEBT_MINIMUM_PAYMENT = "debt_minimum_payment"
    DEBT_EXTRA_PAYMENT = "debt_extra_payment"
    BUDGET_CATEGORY_ALLOTMENT = "budget_category_allotment"


# Kinds that may be deferred or split when a paycheck runs short
DISCRETIONARY_KINDS = frozenset(
    {ObligationKind.DEBT_EXTRA_PAYMENT, ObligationKind.BUDGET_CATEGORY_ALLOTMENT}
)

# Kinds reconciled against TransactionRecord.linked_debt_id
DEBT_KINDS = frozenset({ObligationKind.DEBT_MINIMUM_PAYMENT, ObligationKind.DEBT_EXTRA_PAYMENT})


class PayoffStrategy(str, Enum):
    """Debt ordering strategies."""

    AVALANCHE = "avalanche"  # Highest rate first
    SNOWBALL = "snowball"  # Smallest balance first


class WriteOutcome(str, Enum):
    """Result of writing a locked period through the schedule store."""

    WRITTEN = "written"
    CONFLICT = "conflict"


class PaymentTiming(str, Enum):
    """How far ahead of its due date an assignment is paid."""

    ON_TIME = "on-time"
    EARLY = "early"
    LATE = "late"
