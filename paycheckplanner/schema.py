"""Pydantic schema models for household planner data."""

import datetime
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import constants
from .types import DISCRETIONARY_KINDS, Frequency, ObligationKind, PaymentTiming, PayoffStrategy


def _validate_day_of_month(v: int) -> int:
    if v < constants.MIN_DAY_OF_MONTH or v > constants.MAX_DAY_OF_MONTH:
        msg = (
            f"due_day_of_month must be between {constants.MIN_DAY_OF_MONTH} "
            f"and {constants.MAX_DAY_OF_MONTH}"
        )
        raise ValueError(msg)
    return v


def _validate_positive(name: str, v: Decimal) -> Decimal:
    if v <= 0:
        raise ValueError(f"{name} must be positive")
    return v


def _validate_nonnegative(name: str, v: Decimal) -> Decimal:
    if v < 0:
        raise ValueError(f"{name} must be non-negative")
    return v


# ============================================================================
# Consumed data contracts
# ============================================================================


class IncomeSettings(BaseModel):
    """A recurring paycheck, anchored on its next pay date."""

    id: str = Field(..., description="Income source identifier")
    name: str = Field(..., description="Display name (e.g., employer)")
    net_amount: Decimal = Field(..., description="Take-home amount per paycheck")
    frequency: Frequency = Field(..., description="Pay frequency")
    next_date: date = Field(..., description="Anchor date for projecting paychecks")

    @field_validator("net_amount")
    @classmethod
    def validate_net_amount(cls, v: Decimal) -> Decimal:
        """Ensure net_amount is positive."""
        return _validate_positive("net_amount", v)


class Bill(BaseModel):
    """A recurring bill due on a day of the month."""

    id: str = Field(..., description="Bill identifier")
    company: str = Field(..., description="Company or payee name")
    amount: Decimal = Field(..., description="Amount due each occurrence")
    due_day_of_month: int = Field(..., description="Day of month the bill is due (1-31)")
    frequency: Frequency = Field(Frequency.MONTHLY, description="Bill frequency")
    active: bool = Field(True, description="Inactive bills produce no obligations")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Ensure amount is positive."""
        return _validate_positive("amount", v)

    @field_validator("due_day_of_month")
    @classmethod
    def validate_due_day(cls, v: int) -> int:
        """Ensure due_day_of_month is in valid range."""
        return _validate_day_of_month(v)


class Debt(BaseModel):
    """A debt with a minimum payment; also the state used by the payoff simulator."""

    id: str = Field(..., description="Debt identifier")
    name: str = Field(..., description="Display name")
    balance: Decimal = Field(..., description="Current balance owed")
    original_balance: Optional[Decimal] = Field(
        None, description="Balance before any recorded payments (see apply_payments)"
    )
    annual_rate_percent: Decimal = Field(..., description="APR in percent (e.g., 22 for 22%)")
    minimum_payment: Decimal = Field(..., description="Required monthly payment")
    due_day_of_month: int = Field(1, description="Day of month the payment is due (1-31)")
    extra_payment: Decimal = Field(Decimal("0"), description="Per-debt extra payment")
    exclude_from_payoff: bool = Field(
        False, description="Never receives extra payment and is never the focus debt"
    )

    @field_validator("balance")
    @classmethod
    def validate_balance(cls, v: Decimal) -> Decimal:
        """Ensure balance is non-negative."""
        return _validate_nonnegative("balance", v)

    @field_validator("original_balance")
    @classmethod
    def validate_original_balance(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        """Ensure original_balance is non-negative when given."""
        if v is None:
            return v
        return _validate_nonnegative("original_balance", v)

    @field_validator("annual_rate_percent")
    @classmethod
    def validate_rate(cls, v: Decimal) -> Decimal:
        """Ensure annual_rate_percent is non-negative."""
        return _validate_nonnegative("annual_rate_percent", v)

    @field_validator("minimum_payment")
    @classmethod
    def validate_minimum_payment(cls, v: Decimal) -> Decimal:
        """Ensure minimum_payment is positive."""
        return _validate_positive("minimum_payment", v)

    @field_validator("extra_payment")
    @classmethod
    def validate_extra_payment(cls, v: Decimal) -> Decimal:
        """Ensure extra_payment is non-negative."""
        return _validate_nonnegative("extra_payment", v)

    @field_validator("due_day_of_month")
    @classmethod
    def validate_due_day(cls, v: int) -> int:
        """Ensure due_day_of_month is in valid range."""
        return _validate_day_of_month(v)


DebtState = Debt


class BudgetCategoryAllotment(BaseModel):
    """Monthly budget amount set aside on a due day."""

    id: str = Field(..., description="Budget category identifier")
    name: str = Field(..., description="Category name")
    monthly_amount: Decimal = Field(..., description="Amount allotted per month")
    due_day_of_month: int = Field(..., description="Day of month the allotment is due (1-31)")

    @field_validator("monthly_amount")
    @classmethod
    def validate_monthly_amount(cls, v: Decimal) -> Decimal:
        """Ensure monthly_amount is positive."""
        return _validate_positive("monthly_amount", v)

    @field_validator("due_day_of_month")
    @classmethod
    def validate_due_day(cls, v: int) -> int:
        """Ensure due_day_of_month is in valid range."""
        return _validate_day_of_month(v)


class TransactionRecord(BaseModel):
    """A recorded bank transaction (read-only)."""

    id: str = Field(..., description="Transaction identifier")
    date: datetime.date = Field(..., description="Posting date")
    amount: Decimal = Field(..., description="Transaction amount")
    linked_debt_id: Optional[str] = Field(None, description="Debt this transaction paid")
    linked_bill_id: Optional[str] = Field(None, description="Bill this transaction paid")


class DebtPayment(BaseModel):
    """A payment recorded against a debt, split into interest and principal."""

    id: str = Field(..., description="Payment identifier")
    debt_id: str = Field(..., description="Debt the payment was applied to")
    date: datetime.date = Field(..., description="Payment date")
    amount: Decimal = Field(..., description="Total amount paid")
    principal_paid: Decimal = Field(..., description="Portion credited to principal")
    interest_paid: Decimal = Field(..., description="Portion covering interest")
    remaining_balance: Decimal = Field(..., description="Balance after the payment")

    @field_validator("principal_paid", "interest_paid")
    @classmethod
    def validate_portions(cls, v: Decimal) -> Decimal:
        """Ensure payment portions are non-negative."""
        return _validate_nonnegative("payment portion", v)


# ============================================================================
# Scheduler records
# ============================================================================


class IncomePeriod(BaseModel):
    """One projected paycheck occurrence."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="'<source_id>:<iso date>', see income_period_id()")
    source_id: str = Field(..., description="IncomeSettings id")
    source_name: str = Field(..., description="IncomeSettings name")
    amount: Decimal = Field(..., description="Paycheck amount")
    date: datetime.date = Field(..., description="Pay date")
    frequency: Frequency = Field(..., description="Frequency of the income source")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Ensure amount is positive."""
        return _validate_positive("amount", v)


def income_period_id(source_id: str, pay_date: date) -> str:
    """Build the id of the income period paid by ``source_id`` on ``pay_date``."""
    return f"{source_id}:{pay_date.isoformat()}"


class ObligationKey(NamedTuple):
    """Identity of one obligation instance: kind + source + due date."""

    kind: ObligationKind
    source_id: str
    due_date: date

    def as_string(self) -> str:
        return f"{self.kind.value}:{self.source_id}:{self.due_date.isoformat()}"

    @classmethod
    def parse(cls, value: str) -> "ObligationKey":
        kind, rest = value.split(":", 1)
        source_id, due = rest.rsplit(":", 1)
        return cls(ObligationKind(kind), source_id, date.fromisoformat(due))


class Obligation(BaseModel):
    """A single due-dated payment requirement, discriminated by ``kind``."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Instance id (the key string)")
    name: str = Field(..., description="Display name")
    amount: Decimal = Field(..., description="Amount due")
    due_date: date = Field(..., description="Due date")
    source_id: str = Field(..., description="Bill/debt/category id")
    kind: ObligationKind = Field(..., description="Variant discriminator")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Ensure amount is positive."""
        return _validate_positive("amount", v)

    @property
    def key(self) -> ObligationKey:
        return ObligationKey(self.kind, self.source_id, self.due_date)

    @property
    def discretionary(self) -> bool:
        """Extra debt payments and budget allotments may be deferred."""
        return self.kind in DISCRETIONARY_KINDS

    @classmethod
    def create(
        cls,
        kind: ObligationKind,
        source_id: str,
        name: str,
        amount: Decimal,
        due_date: date,
    ) -> "Obligation":
        key = ObligationKey(kind, source_id, due_date)
        return cls(
            id=key.as_string(),
            name=name,
            amount=amount,
            due_date=due_date,
            source_id=source_id,
            kind=kind,
        )


class ScheduledAssignment(BaseModel):
    """Link between one income period and one obligation (or a split part of it)."""

    income_period_id: str = Field(..., description="IncomePeriod id")
    period_date: date = Field(..., description="Pay date of the income period")
    obligation: Obligation = Field(..., description="Obligation being paid")
    amount: Decimal = Field(..., description="Amount paid from this period")
    is_paid: bool = Field(False, description="Whether this payment has been made")
    paid_set_by_user: bool = Field(
        False, description="Paid status was toggled explicitly and wins over reconciliation"
    )
    is_split: bool = Field(False, description="Part of an obligation split across periods")
    split_label: Optional[str] = Field(None, description="e.g. '1/2'")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Ensure amount is positive."""
        return _validate_positive("amount", v)

    @model_validator(mode="after")
    def validate_split_label(self) -> "ScheduledAssignment":
        """Split parts must carry a label."""
        if self.is_split and not self.split_label:
            raise ValueError("split assignments require split_label")
        return self

    @property
    def key(self) -> ObligationKey:
        return self.obligation.key

    def timing(
        self,
        early_threshold_days: int = constants.DEFAULT_EARLY_THRESHOLD_DAYS,
    ) -> PaymentTiming:
        """Classify how far ahead of the due date this period pays the obligation."""
        days_ahead = (self.obligation.due_date - self.period_date).days
        if days_ahead < 0:
            return PaymentTiming.LATE
        if days_ahead > early_threshold_days:
            return PaymentTiming.EARLY
        return PaymentTiming.ON_TIME


class DismissalTombstone(BaseModel):
    """User dismissal of one unassigned obligation instance."""

    household_id: str = Field(..., description="Household the dismissal belongs to")
    key: str = Field(..., description="ObligationKey.as_string()")
    dismissed: bool = Field(True, description="False restores the obligation")

    @property
    def obligation_key(self) -> ObligationKey:
        return ObligationKey.parse(self.key)


# ============================================================================
# Configuration and file structure
# ============================================================================


class HouseholdConfig(BaseModel):
    """Household-wide settings passed explicitly into every scheduling function."""

    household_id: str = Field("default", description="Household identifier")
    strategy: PayoffStrategy = Field(PayoffStrategy.AVALANCHE, description="Debt payoff strategy")
    extra_payment: Decimal = Field(
        Decimal("0"), description="Household-wide extra payment applied to the focus debt"
    )
    lock_window_days: int = Field(
        constants.DEFAULT_LOCK_WINDOW_DAYS, description="Days ahead of today that are frozen"
    )
    paid_match_window_days: int = Field(
        constants.DEFAULT_PAID_MATCH_WINDOW_DAYS,
        description="Max days between transaction and due date for paid matching",
    )
    lookback_months: int = Field(constants.DEFAULT_LOOKBACK_MONTHS, description="Months of history")
    lookahead_months: int = Field(
        constants.DEFAULT_LOOKAHEAD_MONTHS, description="Months projected ahead"
    )
    max_split_parts: int = Field(
        constants.DEFAULT_MAX_SPLIT_PARTS,
        description="Max paychecks a discretionary obligation may be split across",
    )
    early_threshold_days: int = Field(
        constants.DEFAULT_EARLY_THRESHOLD_DAYS,
        description="Days ahead of due date after which a payment counts as early",
    )

    @field_validator("extra_payment")
    @classmethod
    def validate_extra_payment(cls, v: Decimal) -> Decimal:
        """Ensure extra_payment is non-negative."""
        return _validate_nonnegative("extra_payment", v)

    @field_validator("lock_window_days", "paid_match_window_days", "early_threshold_days")
    @classmethod
    def validate_day_windows(cls, v: int) -> int:
        """Ensure day windows are non-negative."""
        if v < 0:
            raise ValueError("day windows must be non-negative")
        return v

    @field_validator("lookback_months", "lookahead_months")
    @classmethod
    def validate_month_windows(cls, v: int) -> int:
        """Ensure month windows are within the bounded horizon."""
        if v < 0 or v > 12:
            raise ValueError("month windows must be between 0 and 12")
        return v

    @field_validator("max_split_parts")
    @classmethod
    def validate_max_split_parts(cls, v: int) -> int:
        """Ensure max_split_parts is at least 1."""
        if v < 1:
            raise ValueError("max_split_parts must be at least 1")
        return v


class PlannerFile(BaseModel):
    """Root planner file structure."""

    version: str = Field(constants.PLANNER_FILE_VERSION, description="File format version")
    config: HouseholdConfig = Field(default_factory=HouseholdConfig)
    income: list[IncomeSettings] = Field(default_factory=list)
    bills: list[Bill] = Field(default_factory=list)
    debts: list[Debt] = Field(default_factory=list)
    budget_categories: list[BudgetCategoryAllotment] = Field(default_factory=list)
    transactions: list[TransactionRecord] = Field(default_factory=list)
    debt_payments: list[DebtPayment] = Field(default_factory=list)
