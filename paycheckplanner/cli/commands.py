"""Click CLI commands for paycheckplanner."""

import logging
import sys
import traceback
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import click

from paycheckplanner import __version__
from paycheckplanner.amortization import amortize as amortize_debt
from paycheckplanner.loader import LoadResult, find_store_path, load_planner_file
from paycheckplanner.payoff import compare_strategies
from paycheckplanner.planner import PaycheckPlanner
from paycheckplanner.schema import ObligationKey
from paycheckplanner.store import YamlScheduleStore
from paycheckplanner.types import PayoffStrategy

from .formatters import (
    print_amortization_csv,
    print_amortization_json,
    print_amortization_table,
    print_payoff_json,
    print_payoff_table,
    print_plan_csv,
    print_plan_json,
    print_plan_table,
)

logger = logging.getLogger(__name__)

DATE_FORMATS = ["%Y-%m-%d"]

planner_option = click.option(
    "--planner",
    "planner_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Planner file (default: $PAYCHECKPLANNER_FILE or ./planner.yaml)",
)
store_option = click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Schedule store file (default: $PAYCHECKPLANNER_STORE or next to the planner file)",
)
today_option = click.option(
    "--today",
    type=click.DateTime(formats=DATE_FORMATS),
    default=None,
    help="Plan as of this date (default: today)",
)


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    if logger.isEnabledFor(logging.DEBUG):
        traceback.print_exc()
    sys.exit(1)


def _load(planner_path: Optional[str]) -> LoadResult:
    result = load_planner_file(Path(planner_path) if planner_path else None)
    if result is None:
        click.echo("Error: No planner file found (use --planner or PAYCHECKPLANNER_FILE)", err=True)
        sys.exit(1)
    return result


def _planner(planner_path: Optional[str], store_path: Optional[str]) -> PaycheckPlanner:
    loaded = _load(planner_path)
    path = Path(store_path) if store_path else find_store_path(loaded.path)
    logger.debug("Using schedule store: %s", path)
    return PaycheckPlanner(loaded.planner, YamlScheduleStore(path))


def _parse_key(value: str) -> ObligationKey:
    try:
        return ObligationKey.parse(value)
    except ValueError as e:
        raise click.BadParameter(
            f"expected '<kind>:<source_id>:<YYYY-MM-DD>', got '{value}'"
        ) from e


def _as_date(value) -> date:
    return value.date() if value is not None else date.today()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.version_option(version=__version__)
def main(verbose: bool):
    """Paycheckplanner - assign bills, debts and budget allotments to paychecks."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def validate(path: str):
    """Validate a planner file for syntax and schema compliance.

    Examples:
        paycheckplanner validate planner.yaml
    """
    click.echo(f"Validating planner from: {path}")

    try:
        loaded = load_planner_file(Path(path))
    except Exception as e:
        click.echo(f"✗ Validation failed: {e}", err=True)
        if logger.isEnabledFor(logging.DEBUG):
            traceback.print_exc()
        sys.exit(1)

    planner = loaded.planner
    click.echo(f"  Income sources: {len(planner.income)}")
    click.echo(f"  Bills: {len(planner.bills)}")
    click.echo(f"  Debts: {len(planner.debts)}")
    click.echo(f"  Budget categories: {len(planner.budget_categories)}")
    click.echo(f"  Transactions: {len(planner.transactions)}")

    if loaded.rejected:
        click.echo(f"\n⚠ {len(loaded.rejected)} invalid records:", err=True)
        for error in loaded.rejected:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)

    click.echo("✓ Validation successful!")


@main.command()
@planner_option
@store_option
@today_option
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "csv"]),
    default="table",
    help="Output format (default: table)",
)
@click.option("--history", is_flag=True, help="Include past periods that are fully paid")
def plan(planner_path, store_path, today, output_format: str, history: bool):
    """Show which paycheck pays each obligation.

    Periods inside the lock window are written to the schedule store the first
    time they are planned and stay fixed afterwards.

    Examples:
        paycheckplanner plan
        paycheckplanner plan --today 2026-10-17 --format json
    """
    try:
        planner = _planner(planner_path, store_path)
        result = planner.run(_as_date(today))
    except Exception as e:
        _fail(e)

    if output_format == "table":
        print_plan_table(result, history, planner.config.early_threshold_days)
    elif output_format == "json":
        print_plan_json(result, history)
    elif output_format == "csv":
        print_plan_csv(result, history)


@main.command()
@planner_option
@click.option(
    "--strategy",
    type=click.Choice([s.value for s in PayoffStrategy]),
    default=None,
    help="Payoff strategy (default: from planner config)",
)
@click.option("--extra", type=str, default=None, help="Extra monthly payment (default: config)")
@click.option(
    "--start",
    type=click.DateTime(formats=DATE_FORMATS),
    default=None,
    help="Simulation start date (default: today)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table)",
)
def payoff(planner_path, strategy, extra, start, output_format: str):
    """Project debt payoff under avalanche or snowball.

    Examples:
        paycheckplanner payoff --strategy snowball --extra 200
    """
    try:
        extra_payment = Decimal(extra) if extra is not None else None
    except InvalidOperation:
        raise click.BadParameter(f"not a number: {extra}", param_hint="--extra")

    try:
        loaded = _load(planner_path)
        planner = PaycheckPlanner(loaded.planner, YamlScheduleStore(find_store_path(loaded.path)))
        start_date = _as_date(start)
        payoff_plan = planner.payoff(
            start_date,
            PayoffStrategy(strategy) if strategy else None,
            extra_payment,
        )
        comparisons = compare_strategies(
            planner.current_debts(),
            payoff_plan.extra_payment,
            start_date,
        )
    except Exception as e:
        _fail(e)

    if not payoff_plan.schedules:
        click.echo("No debts found")
        return
    if output_format == "table":
        print_payoff_table(payoff_plan, comparisons)
    else:
        print_payoff_json(payoff_plan, comparisons)


@main.command()
@click.argument("balance", type=str)
@click.argument("rate", type=str)
@click.argument("payment", type=str)
@click.option(
    "--start",
    type=click.DateTime(formats=DATE_FORMATS),
    default=None,
    help="Schedule start date (default: today)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "csv"]),
    default="table",
    help="Output format (default: table)",
)
def amortize(balance: str, rate: str, payment: str, start, output_format: str):
    """Show the month-by-month payoff of one debt.

    RATE is the APR in percent.

    Examples:
        paycheckplanner amortize 1200 12 120
        paycheckplanner amortize 5000 22 150 --format csv
    """
    try:
        balance_d, rate_d, payment_d = Decimal(balance), Decimal(rate), Decimal(payment)
    except InvalidOperation:
        raise click.BadParameter("BALANCE, RATE and PAYMENT must be numbers")

    start_date = _as_date(start)
    result = amortize_debt(balance_d, rate_d, payment_d)

    if result.non_amortizing:
        click.echo(
            f"Payment ${payment_d:,.2f} does not cover the monthly interest; "
            "this debt never pays off",
            err=True,
        )
        sys.exit(1)

    if output_format == "table":
        print_amortization_table(result.steps, start_date)
        click.echo(f"\nTotal interest: ${result.total_interest:,.2f}")
        if result.capped:
            click.echo("⚠ Stopped at the maximum schedule length", err=True)
        else:
            click.echo(f"Payoff date: {result.payoff_date(start_date)}")
    elif output_format == "csv":
        print_amortization_csv(result.steps, start_date)
    else:
        payoff_date = result.payoff_date(start_date)
        summary = {
            "balance": float(balance_d),
            "annual_rate_percent": float(rate_d),
            "payment": float(payment_d),
            "months": result.months,
            "total_interest": float(result.total_interest),
            "payoff_date": payoff_date.isoformat() if payoff_date else None,
        }
        print_amortization_json(result.steps, start_date, summary)


@main.command(name="mark-paid")
@click.argument("key")
@click.option("--unpaid", is_flag=True, help="Mark as unpaid instead")
@planner_option
@store_option
def mark_paid(key: str, unpaid: bool, planner_path, store_path):
    """Set the paid status of an obligation; overrides transaction matching.

    KEY is the obligation key shown by `plan`, e.g.
    recurring_bill:electric:2026-10-15
    """
    obligation_key = _parse_key(key)
    try:
        planner = _planner(planner_path, store_path)
        updated = planner.toggle_paid(obligation_key, not unpaid)
    except Exception as e:
        _fail(e)

    status = "unpaid" if unpaid else "paid"
    click.echo(f"✓ Marked {obligation_key.as_string()} {status} ({updated} stored assignments)")


@main.command()
@click.argument("key")
@click.option("--restore", is_flag=True, help="Undo a previous dismissal")
@planner_option
@store_option
def dismiss(key: str, restore: bool, planner_path, store_path):
    """Hide an unassigned obligation from future plans.

    Dismissed obligations are never assigned automatically.
    """
    obligation_key = _parse_key(key)
    try:
        planner = _planner(planner_path, store_path)
        planner.dismiss(obligation_key, dismissed=not restore)
    except Exception as e:
        _fail(e)

    action = "Restored" if restore else "Dismissed"
    click.echo(f"✓ {action} {obligation_key.as_string()}")
