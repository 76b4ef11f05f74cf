"""Tests for obligation materialization."""

from datetime import date
from decimal import Decimal

import pytest

from paycheckplanner.exceptions import InputValidationError
from paycheckplanner.obligations import ObligationMaterializer, coerce_record, materialize
from paycheckplanner.schema import Bill, HouseholdConfig
from paycheckplanner.types import Frequency, ObligationKind, PayoffStrategy
from tests.conftest import make_bill, make_budget, make_debt

TODAY = date(2026, 10, 17)
START = date(2026, 10, 1)
END = date(2027, 1, 1)


def _materialize(bills=(), debts=(), categories=(), config=None):
    return materialize(bills, debts, categories, START, END, TODAY, config or HouseholdConfig())


class TestBills:
    """Tests for bill obligations."""

    def test_monthly_bill_due_dates(self):
        """A monthly bill yields one obligation per month in the window."""
        result = _materialize(bills=[make_bill("electric", "90", 15)])

        assert [o.due_date for o in result.obligations] == [
            date(2026, 10, 15),
            date(2026, 11, 15),
            date(2026, 12, 15),
        ]
        first = result.obligations[0]
        assert first.kind == ObligationKind.RECURRING_BILL
        assert first.id == "recurring_bill:electric:2026-10-15"
        assert first.name == "Electric"
        assert first.amount == Decimal("90")

    def test_inactive_bill_skipped(self):
        result = _materialize(bills=[make_bill("gym", "40", 3, active=False)])
        assert result.obligations == []

    def test_biweekly_bill_projects_from_next_due_date(self):
        bill = make_bill("daycare", "300", 20, frequency=Frequency.BIWEEKLY)
        result = materialize([bill], [], [], START, date(2026, 11, 1), TODAY, HouseholdConfig())

        assert [o.due_date for o in result.obligations] == [date(2026, 10, 6), date(2026, 10, 20)]


class TestDebts:
    """Tests for debt minimum and extra payment obligations."""

    def test_debt_minimums(self):
        result = _materialize(debts=[make_debt("visa", "3000", "22", "75", due_day=20)])

        assert len(result.obligations) == 3
        assert all(o.kind == ObligationKind.DEBT_MINIMUM_PAYMENT for o in result.obligations)
        assert all(o.amount == Decimal("75") for o in result.obligations)

    def test_paid_off_debt_skipped(self):
        result = _materialize(debts=[make_debt("visa", "0", "22", "75")])
        assert result.obligations == []

    def test_extra_payment_goes_to_focus_debt(self):
        """Only the focus debt gets a discretionary extra payment."""
        debts = [
            make_debt("visa", "3000", "22", "75", due_day=20),
            make_debt("loan", "800", "6", "40", due_day=10),
        ]
        config = HouseholdConfig(strategy=PayoffStrategy.AVALANCHE, extra_payment=Decimal("150"))
        result = _materialize(debts=debts, config=config)

        extras = [o for o in result.obligations if o.kind == ObligationKind.DEBT_EXTRA_PAYMENT]
        assert {o.source_id for o in extras} == {"visa"}
        assert all(o.amount == Decimal("150") and o.discretionary for o in extras)
        assert len(extras) == 3

    def test_snowball_focus(self):
        debts = [
            make_debt("visa", "3000", "22", "75", due_day=20),
            make_debt("loan", "800", "6", "40", due_day=10),
        ]
        config = HouseholdConfig(strategy=PayoffStrategy.SNOWBALL, extra_payment=Decimal("150"))
        result = _materialize(debts=debts, config=config)

        extras = [o for o in result.obligations if o.kind == ObligationKind.DEBT_EXTRA_PAYMENT]
        assert {o.source_id for o in extras} == {"loan"}

    def test_no_extra_payment_when_zero(self):
        result = _materialize(debts=[make_debt("visa", "3000", "22", "75")])
        assert not any(o.kind == ObligationKind.DEBT_EXTRA_PAYMENT for o in result.obligations)


class TestBudgetCategories:
    """Tests for budget allotments."""

    def test_budget_allotments_are_discretionary(self):
        result = _materialize(categories=[make_budget("groceries", "400", 5)])

        assert [o.due_date for o in result.obligations] == [
            date(2026, 10, 5),
            date(2026, 11, 5),
            date(2026, 12, 5),
        ]
        assert all(o.discretionary for o in result.obligations)


class TestValidation:
    """Tests for malformed source records."""

    def test_invalid_record_is_skipped(self, caplog):
        """A malformed bill is logged and skipped; the rest still materialize."""
        bills = [
            {"id": "broken", "company": "X", "amount": "-5", "due_day_of_month": 1},
            make_bill("electric", "90", 15),
        ]
        result = _materialize(bills=bills)

        assert len(result.rejected) == 1
        assert result.rejected[0].record_id == "broken"
        assert result.rejected[0].record_type == "bill"
        assert {o.source_id for o in result.obligations} == {"electric"}
        assert "Skipping" in caplog.text

    def test_invalid_due_day(self):
        bills = [{"id": "bad", "company": "X", "amount": "10", "due_day_of_month": 32}]
        assert _materialize(bills=bills).rejected[0].record_id == "bad"

    def test_coerce_non_mapping(self):
        with pytest.raises(InputValidationError):
            coerce_record(Bill, ["not", "a", "mapping"], "bill")

    def test_coerce_passes_models_through(self):
        bill = make_bill("electric", "90", 15)
        assert coerce_record(Bill, bill, "bill") is bill


class TestOrdering:
    """Tests for result ordering."""

    def test_sorted_by_due_date(self):
        materializer = ObligationMaterializer(HouseholdConfig())
        result = materializer.materialize(
            [make_bill("electric", "90", 15), make_bill("rent", "1200", 1)],
            [],
            [make_budget("groceries", "400", 5)],
            START,
            END,
            TODAY,
        )
        dates = [o.due_date for o in result.obligations]
        assert dates == sorted(dates)
        assert result.obligations[0].source_id == "rent"
