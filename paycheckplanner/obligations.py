"""Turn bills, debts and budget categories into due-dated obligation instances."""

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any, NamedTuple, Union

from pydantic import BaseModel, ValidationError

from .exceptions import InputValidationError
from .payoff import focus_debt
from .recurrence import monthly_due_dates, next_due_date, project
from .schema import Bill, BudgetCategoryAllotment, Debt, HouseholdConfig, Obligation
from .types import Frequency, ObligationKind

logger = logging.getLogger(__name__)

Record = Union[BaseModel, Mapping[str, Any]]


class MaterializeResult(NamedTuple):
    """Obligations for a window plus the source records that were skipped."""

    obligations: list[Obligation]
    rejected: list[InputValidationError]


def coerce_record(model_cls: type[BaseModel], record: Record, record_type: str) -> Any:
    """
    Validate one source record into its model.

    Raises:
        InputValidationError: If the record is malformed
    """
    if isinstance(record, model_cls):
        return record
    record_id = str(record.get("id", "<unknown>")) if isinstance(record, Mapping) else "<unknown>"
    if not isinstance(record, Mapping):
        reason = f"expected a mapping, got {type(record).__name__}"
        raise InputValidationError(record_type, record_id, reason)
    try:
        return model_cls.model_validate(dict(record))
    except ValidationError as e:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise InputValidationError(record_type, record_id, reasons) from e


class ObligationMaterializer:
    """Generates obligation instances for a scheduling window."""

    def __init__(self, config: HouseholdConfig):
        """
        Initialize materializer with household config.

        Args:
            config: Household settings (strategy and extra payment pick the focus debt)
        """
        self.config = config

    def materialize(
        self,
        bills: Iterable[Record],
        debts: Iterable[Record],
        budget_categories: Iterable[Record],
        window_start: date,
        window_end: date,
        today: date,
    ) -> MaterializeResult:
        """
        Materialize every source into obligations due in ``[window_start, window_end)``.

        Malformed records are logged and skipped; the run continues.

        Returns:
            MaterializeResult with obligations sorted by due date
        """
        rejected: list[InputValidationError] = []
        obligations: list[Obligation] = []

        valid_bills = self._coerce_all(Bill, bills, "bill", rejected)
        valid_debts = self._coerce_all(Debt, debts, "debt", rejected)
        valid_categories = self._coerce_all(
            BudgetCategoryAllotment, budget_categories, "budget category", rejected
        )

        for bill in valid_bills:
            obligations.extend(self._bill_obligations(bill, window_start, window_end, today))
        for debt in valid_debts:
            obligations.extend(self._debt_obligations(debt, window_start, window_end, today))
        for category in valid_categories:
            obligations.extend(
                self._budget_obligations(category, window_start, window_end, today)
            )
        obligations.extend(
            self._extra_payment_obligations(valid_debts, window_start, window_end, today)
        )

        obligations.sort(key=lambda o: (o.due_date, o.kind.value, o.source_id))
        logger.info(
            "Materialized %d obligations between %s and %s (%d records skipped)",
            len(obligations),
            window_start,
            window_end,
            len(rejected),
        )
        return MaterializeResult(obligations=obligations, rejected=rejected)

    def _coerce_all(
        self,
        model_cls: type[BaseModel],
        records: Iterable[Record],
        record_type: str,
        rejected: list[InputValidationError],
    ) -> list[Any]:
        valid = []
        for record in records:
            try:
                valid.append(coerce_record(model_cls, record, record_type))
            except InputValidationError as e:
                logger.warning("Skipping %s", e)
                rejected.append(e)
        return valid

    def _bill_obligations(
        self,
        bill: Bill,
        window_start: date,
        window_end: date,
        today: date,
    ) -> list[Obligation]:
        if not bill.active:
            return []
        if bill.frequency == Frequency.MONTHLY:
            due_dates = monthly_due_dates(bill.due_day_of_month, today, window_start, window_end)
        else:
            anchor = next_due_date(bill.due_day_of_month, today)
            due_dates = project(anchor, bill.frequency, window_start, window_end)
        return [
            Obligation.create(
                ObligationKind.RECURRING_BILL, bill.id, bill.company, bill.amount, due_date
            )
            for due_date in due_dates
        ]

    def _debt_obligations(
        self,
        debt: Debt,
        window_start: date,
        window_end: date,
        today: date,
    ) -> list[Obligation]:
        if debt.balance <= 0:
            logger.debug("Debt %s is paid off, no minimum payments", debt.id)
            return []
        due_dates = monthly_due_dates(debt.due_day_of_month, today, window_start, window_end)
        return [
            Obligation.create(
                ObligationKind.DEBT_MINIMUM_PAYMENT,
                debt.id,
                debt.name,
                debt.minimum_payment,
                due_date,
            )
            for due_date in due_dates
        ]

    def _budget_obligations(
        self,
        category: BudgetCategoryAllotment,
        window_start: date,
        window_end: date,
        today: date,
    ) -> list[Obligation]:
        due_dates = monthly_due_dates(category.due_day_of_month, today, window_start, window_end)
        return [
            Obligation.create(
                ObligationKind.BUDGET_CATEGORY_ALLOTMENT,
                category.id,
                category.name,
                category.monthly_amount,
                due_date,
            )
            for due_date in due_dates
        ]

    def _extra_payment_obligations(
        self,
        debts: list[Debt],
        window_start: date,
        window_end: date,
        today: date,
    ) -> list[Obligation]:
        """One discretionary extra payment per due date of the focus debt."""
        if self.config.extra_payment <= 0:
            return []
        focus = focus_debt(debts, self.config.strategy)
        if focus is None:
            return []
        logger.debug(
            "Focus debt under %s: %s (%s)", self.config.strategy.value, focus.id, focus.name
        )
        due_dates = monthly_due_dates(focus.due_day_of_month, today, window_start, window_end)
        return [
            Obligation.create(
                ObligationKind.DEBT_EXTRA_PAYMENT,
                focus.id,
                f"{focus.name} (extra)",
                self.config.extra_payment,
                due_date,
            )
            for due_date in due_dates
        ]


def materialize(
    bills: Iterable[Record],
    debts: Iterable[Record],
    budget_categories: Iterable[Record],
    window_start: date,
    window_end: date,
    today: date,
    config: HouseholdConfig,
) -> MaterializeResult:
    """Functional wrapper around ObligationMaterializer.materialize()."""
    return ObligationMaterializer(config).materialize(
        bills, debts, budget_categories, window_start, window_end, today
    )
