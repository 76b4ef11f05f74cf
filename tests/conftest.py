"""Pytest configuration and shared fixtures for paycheckplanner tests."""

from datetime import date
from decimal import Decimal

import pytest
import yaml

from paycheckplanner.schema import (
    Bill,
    BudgetCategoryAllotment,
    Debt,
    HouseholdConfig,
    IncomePeriod,
    IncomeSettings,
    Obligation,
    ScheduledAssignment,
    TransactionRecord,
    income_period_id,
)
from paycheckplanner.store import InMemoryScheduleStore
from paycheckplanner.types import Frequency, ObligationKind

# ============================================================================
# Source Record Builders
# ============================================================================


def make_income(
    income_id: str = "paycheck",
    net_amount: str = "2000",
    frequency: Frequency = Frequency.BIWEEKLY,
    next_date: date = date(2026, 10, 9),
    name: str = "Employer",
) -> IncomeSettings:
    """Create an IncomeSettings record."""
    return IncomeSettings(
        id=income_id,
        name=name,
        net_amount=Decimal(net_amount),
        frequency=frequency,
        next_date=next_date,
    )


def make_bill(
    bill_id: str,
    amount: str,
    due_day: int,
    frequency: Frequency = Frequency.MONTHLY,
    **kwargs,
) -> Bill:
    """Create a Bill; company defaults to the title-cased id."""
    return Bill(
        id=bill_id,
        company=kwargs.get("company", bill_id.title()),
        amount=Decimal(amount),
        due_day_of_month=due_day,
        frequency=frequency,
        active=kwargs.get("active", True),
    )


def make_debt(
    debt_id: str,
    balance: str,
    rate: str,
    minimum: str,
    due_day: int = 1,
    **kwargs,
) -> Debt:
    """Create a Debt with APR in percent."""
    return Debt(
        id=debt_id,
        name=kwargs.get("name", debt_id.title()),
        balance=Decimal(balance),
        annual_rate_percent=Decimal(rate),
        minimum_payment=Decimal(minimum),
        due_day_of_month=due_day,
        exclude_from_payoff=kwargs.get("exclude_from_payoff", False),
        original_balance=kwargs.get("original_balance"),
    )


def make_budget(category_id: str, amount: str, due_day: int) -> BudgetCategoryAllotment:
    """Create a BudgetCategoryAllotment."""
    return BudgetCategoryAllotment(
        id=category_id,
        name=category_id.title(),
        monthly_amount=Decimal(amount),
        due_day_of_month=due_day,
    )


def make_transaction(
    txn_id: str,
    date_: date,
    amount: str,
    bill_id: str = None,
    debt_id: str = None,
) -> TransactionRecord:
    """Create a TransactionRecord linked to a bill or debt."""
    return TransactionRecord(
        id=txn_id,
        date=date_,
        amount=Decimal(amount),
        linked_bill_id=bill_id,
        linked_debt_id=debt_id,
    )


# ============================================================================
# Scheduler Record Builders
# ============================================================================


def make_period(
    pay_date: date,
    amount: str = "1000",
    source_id: str = "paycheck",
    frequency: Frequency = Frequency.BIWEEKLY,
) -> IncomePeriod:
    """Create an IncomePeriod."""
    return IncomePeriod(
        id=income_period_id(source_id, pay_date),
        source_id=source_id,
        source_name=source_id.title(),
        amount=Decimal(amount),
        date=pay_date,
        frequency=frequency,
    )


def make_obligation(
    source_id: str,
    amount: str,
    due_date: date,
    kind: ObligationKind = ObligationKind.RECURRING_BILL,
) -> Obligation:
    """Create an Obligation instance."""
    return Obligation.create(kind, source_id, source_id.title(), Decimal(amount), due_date)


def make_assignment(
    period: IncomePeriod,
    obligation: Obligation,
    amount: str = None,
    **kwargs,
) -> ScheduledAssignment:
    """Create a ScheduledAssignment; amount defaults to the obligation amount."""
    return ScheduledAssignment(
        income_period_id=period.id,
        period_date=period.date,
        obligation=obligation,
        amount=Decimal(amount) if amount is not None else obligation.amount,
        **kwargs,
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def config():
    """Default household config."""
    return HouseholdConfig()


@pytest.fixture
def memory_store():
    """Empty in-memory schedule store."""
    return InMemoryScheduleStore()


@pytest.fixture
def planner_data():
    """Raw planner file content for a small household."""
    return {
        "version": "1.0",
        "config": {
            "household_id": "smiths",
            "strategy": "avalanche",
            "extra_payment": "100",
        },
        "income": [
            {
                "id": "paycheck",
                "name": "Employer",
                "net_amount": "2000",
                "frequency": "biweekly",
                "next_date": "2026-10-09",
            },
        ],
        "bills": [
            {"id": "rent", "company": "Landlord", "amount": "1200", "due_day_of_month": 1},
            {"id": "electric", "company": "Power Co", "amount": "90", "due_day_of_month": 15},
        ],
        "debts": [
            {
                "id": "visa",
                "name": "Visa",
                "balance": "3000",
                "annual_rate_percent": "22",
                "minimum_payment": "75",
                "due_day_of_month": 20,
            },
        ],
        "budget_categories": [
            {
                "id": "groceries",
                "name": "Groceries",
                "monthly_amount": "400",
                "due_day_of_month": 5,
            },
        ],
        "transactions": [
            {"id": "t1", "date": "2026-10-14", "amount": "-90", "linked_bill_id": "electric"},
        ],
        "debt_payments": [],
    }


@pytest.fixture
def planner_yaml_file(tmp_path, planner_data):
    """Planner file written to a temporary directory."""
    path = tmp_path / "planner.yaml"
    with path.open("w") as f:
        yaml.dump(planner_data, f)
    return path
