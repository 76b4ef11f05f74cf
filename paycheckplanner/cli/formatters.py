"""Output formatting functions for CLI commands."""

import csv
import json
import sys
from datetime import date
from typing import Any

import click
from dateutil.relativedelta import relativedelta

from paycheckplanner import constants
from paycheckplanner.payoff import PayoffComparison, PayoffPlan
from paycheckplanner.planner import PeriodPlan, PlanResult
from paycheckplanner.schema import Obligation


def _status(period_plan: PeriodPlan) -> str:
    if period_plan.frozen:
        return "frozen"
    if period_plan.locked:
        return "locked"
    return "open"


def _split_suffix(label) -> str:
    return f" ({label})" if label else ""


def print_plan_table(
    result: PlanResult,
    include_history: bool = False,
    early_threshold_days: int = constants.DEFAULT_EARLY_THRESHOLD_DAYS,
) -> None:
    """
    Print the paycheck plan as a formatted ASCII table.

    One block per income period: pay date, source, amount and status, followed
    by every obligation it pays and the remaining balance.

    Args:
        result: Planning run output
        include_history: Also show past periods that are fully paid
        early_threshold_days: Days ahead of due date that count as early
    """
    periods = result.periods if include_history else result.active
    name_width = max(
        [len("Obligation")]
        + [len(a.obligation.name) + 6 for p in periods for a in p.assignments]
    )
    name_width = min(name_width, constants.MAX_TABLE_COLUMN_WIDTH)

    for period_plan in periods:
        period = period_plan.period
        click.echo(
            f"{period.date.isoformat()}  {period.source_name}  "
            f"${period.amount:,.2f}  [{_status(period_plan)}]"
        )
        click.echo("-" * constants.LOG_DIVIDER_WIDTH)
        for a in period_plan.assignments:
            name = (a.obligation.name + _split_suffix(a.split_label))[:name_width]
            paid = "paid" if a.is_paid else ""
            click.echo(
                f"  {a.obligation.due_date.isoformat()}  {name:<{name_width}}  "
                f"${a.amount:>10,.2f}  {a.timing(early_threshold_days).value:<8}"
                f"  {paid}"
            )
        click.echo(
            f"  {'Remaining':<{name_width + 12}}  ${period_plan.remaining:>10,.2f}\n"
        )

    print_obligation_list("Unassigned", result.unassigned)
    print_obligation_list("Past due", result.past_due)
    print_obligation_list("Dismissed", result.dismissed)

    click.echo(
        f"Periods: {len(result.active)} active, {len(result.history)} history; "
        f"{len(result.unassigned)} unassigned"
    )


def print_obligation_list(title: str, obligations: list[Obligation]) -> None:
    """Print a titled list of obligations with their keys."""
    if not obligations:
        return
    click.echo(f"{title}:")
    for o in obligations:
        click.echo(f"  {o.due_date.isoformat()}  {o.name:<30}  ${o.amount:>10,.2f}  {o.id}")
    click.echo("")


def print_plan_csv(result: PlanResult, include_history: bool = False) -> None:
    """Print assignments as CSV, one row per assignment."""
    periods = result.periods if include_history else result.active
    writer = csv.writer(sys.stdout)
    writer.writerow(
        ["PeriodDate", "Source", "Obligation", "Kind", "DueDate", "Amount", "Split", "Paid", "Key"]
    )
    for period_plan in periods:
        for a in period_plan.assignments:
            writer.writerow(
                [
                    a.period_date.isoformat(),
                    period_plan.period.source_name,
                    a.obligation.name,
                    a.obligation.kind.value,
                    a.obligation.due_date.isoformat(),
                    f"{a.amount:.2f}",
                    a.split_label or "",
                    "true" if a.is_paid else "false",
                    a.obligation.id,
                ],
            )


def plan_to_dict(result: PlanResult, include_history: bool = False) -> dict[str, Any]:
    """JSON-ready representation of a planning run."""
    periods = result.periods if include_history else result.active
    return {
        "today": result.today.isoformat(),
        "window": [result.window_start.isoformat(), result.window_end.isoformat()],
        "periods": [
            {
                "period": p.period.model_dump(mode="json"),
                "status": _status(p),
                "total_assigned": str(p.total_assigned),
                "remaining": str(p.remaining),
                "assignments": [a.model_dump(mode="json") for a in p.assignments],
            }
            for p in periods
        ],
        "unassigned": [o.model_dump(mode="json") for o in result.unassigned],
        "past_due": [o.model_dump(mode="json") for o in result.past_due],
        "dismissed": [o.model_dump(mode="json") for o in result.dismissed],
        "rejected": [str(e) for e in result.rejected],
    }


def print_plan_json(result: PlanResult, include_history: bool = False) -> None:
    click.echo(json.dumps(plan_to_dict(result, include_history), indent=2))


def _months_label(months) -> str:
    return str(months) if months is not None else constants.NON_AMORTIZING_LABEL


def print_payoff_table(plan: PayoffPlan, comparisons: list[PayoffComparison]) -> None:
    """Print per-debt payoff projection and a strategy comparison."""
    click.echo(
        f"Strategy: {plan.strategy.value}  Extra payment: ${plan.extra_payment:,.2f}/month"
    )
    header = f"{'Debt':<24} {'Months':>8} {'Payoff':>12} {'Interest':>14}"
    click.echo(header)
    click.echo("-" * len(header))

    ordered_ids = list(plan.order) + [d for d in plan.schedules if d not in plan.order]
    for debt_id in ordered_ids:
        schedule = plan.schedules[debt_id]
        payoff = schedule.payoff_date.isoformat() if schedule.payoff_date else "-"
        marker = "*" if debt_id == plan.focus_debt_id else " "
        click.echo(
            f"{marker}{schedule.name[:23]:<23} {_months_label(schedule.payoff_months):>8} "
            f"{payoff:>12} ${schedule.total_interest:>13,.2f}"
        )

    click.echo("\nStrategy comparison:")
    for c in comparisons:
        payoff = c.payoff_date.isoformat() if c.payoff_date else "-"
        click.echo(
            f"  {c.strategy.value:<10} interest ${c.total_interest:>12,.2f}  "
            f"payoff {payoff}  ({_months_label(c.months)} months)"
        )


def print_payoff_json(plan: PayoffPlan, comparisons: list[PayoffComparison]) -> None:
    output = {
        "strategy": plan.strategy.value,
        "extra_payment": str(plan.extra_payment),
        "focus_debt_id": plan.focus_debt_id,
        "total_interest": str(plan.total_interest),
        "payoff_date": plan.payoff_date.isoformat() if plan.payoff_date else None,
        "debts": [
            {
                "debt_id": s.debt_id,
                "name": s.name,
                "months": s.payoff_months,
                "payoff_date": s.payoff_date.isoformat() if s.payoff_date else None,
                "total_interest": str(s.total_interest),
                "non_amortizing": s.non_amortizing,
            }
            for s in plan.schedules.values()
        ],
        "comparison": [
            {
                "strategy": c.strategy.value,
                "total_interest": str(c.total_interest),
                "payoff_date": c.payoff_date.isoformat() if c.payoff_date else None,
                "months": c.months,
            }
            for c in comparisons
        ],
    }
    click.echo(json.dumps(output, indent=2))


def print_amortization_table(steps, start_date: date):
    """Print amortization schedule as formatted table.

    Args:
        steps: AmortizationStep sequence
        start_date: Anchor date; step N is dated N months later
    """
    header = (
        f"{'#':>4} {'Date':>12} {'Payment':>12} {'Principal':>12} {'Interest':>12} {'Balance':>14}"
    )
    click.echo(header)
    click.echo("-" * len(header))

    for step in steps:
        payment_date = start_date + relativedelta(months=step.month_index)
        row = (
            f"{step.month_index:>4} "
            f"{payment_date.strftime('%Y-%m-%d'):>12} "
            f"${step.payment:>11,.2f} "
            f"${step.principal_portion:>11,.2f} "
            f"${step.interest_portion:>11,.2f} "
            f"${step.ending_balance:>13,.2f}"
        )
        click.echo(row)


def print_amortization_csv(steps, start_date: date):
    """Print amortization schedule as CSV."""
    writer = csv.writer(sys.stdout)
    writer.writerow(["#", "Date", "Payment", "Principal", "Interest", "Balance"])

    for step in steps:
        payment_date = start_date + relativedelta(months=step.month_index)
        writer.writerow(
            [
                step.month_index,
                payment_date.strftime("%Y-%m-%d"),
                f"{step.payment:.2f}",
                f"{step.principal_portion:.2f}",
                f"{step.interest_portion:.2f}",
                f"{step.ending_balance:.2f}",
            ],
        )


def print_amortization_json(steps, start_date: date, summary_info: dict[str, Any]):
    """Print amortization schedule as JSON.

    Args:
        steps: AmortizationStep sequence
        start_date: Anchor date
        summary_info: Dict of summary metadata to include at top of JSON output.
    """
    payments = [
        {
            "number": step.month_index,
            "date": (start_date + relativedelta(months=step.month_index)).strftime("%Y-%m-%d"),
            "payment": float(step.payment),
            "principal": float(step.principal_portion),
            "interest": float(step.interest_portion),
            "balance": float(step.ending_balance),
        }
        for step in steps
    ]
    click.echo(json.dumps({"summary": summary_info, "payments": payments}, indent=2))
