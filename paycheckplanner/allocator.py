"""Allocation of obligations to income periods.

The scheduling pass is split in two layers:

1. ``schedule()`` - a pure function of (income periods, obligations, persisted
   assignments, dismissals, today, config). It classifies periods into frozen
   and open, walks open periods chronologically with a running balance, and
   reports what it could not fit instead of driving a paycheck negative.

2. ``Allocator`` - the I/O boundary. It loads persisted assignments and
   dismissals from a ``ScheduleStore``, runs ``schedule()``, and writes newly
   computed assignments for locked periods exactly once.

Lock window:
  A period dated before ``today + lock_window_days`` is locked. Locked periods
  already written to the store are frozen: loaded verbatim and never
  recomputed, and their obligations are removed from the pool. A period written
  with no assignments stays frozen and empty. Locked periods not yet written are
  scheduled like open ones and then written through the store (first writer
  wins), even when nothing fits in them.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, NamedTuple, Optional

from dateutil.relativedelta import relativedelta

from . import constants
from .recurrence import step
from .schema import HouseholdConfig, IncomePeriod, Obligation, ObligationKey, ScheduledAssignment
from .types import WriteOutcome

if TYPE_CHECKING:
    from .store import ScheduleStore

logger = logging.getLogger(__name__)


class PeriodPartition(NamedTuple):
    """Income periods classified before allocation."""

    frozen: list[IncomePeriod]
    open: list[IncomePeriod]
    lock_threshold: date


class AllocationResult(NamedTuple):
    """Outcome of one scheduling pass."""

    assignments: list[ScheduledAssignment]
    unassigned: list[Obligation]
    dismissed: list[Obligation]
    past_due: list[Obligation]
    frozen_period_ids: frozenset[str]
    to_persist: dict[str, list[ScheduledAssignment]]

    def by_period(self) -> dict[str, list[ScheduledAssignment]]:
        """Group assignments by income period id."""
        grouped: dict[str, list[ScheduledAssignment]] = defaultdict(list)
        for assignment in self.assignments:
            grouped[assignment.income_period_id].append(assignment)
        return dict(grouped)


class _OpenPeriod:
    """Working state for a period being scheduled."""

    def __init__(self, period: IncomePeriod, cycle_end: date, locked: bool):
        self.period = period
        self.cycle_end = cycle_end
        self.locked = locked
        self.available = Decimal(period.amount)
        self.assignments: list[ScheduledAssignment] = []

    def in_cycle(self, obligation: Obligation) -> bool:
        return self.period.date <= obligation.due_date <= self.cycle_end

    def assign(
        self,
        obligation: Obligation,
        amount: Decimal,
        split_label: Optional[str] = None,
    ) -> None:
        self.assignments.append(
            ScheduledAssignment(
                income_period_id=self.period.id,
                period_date=self.period.date,
                obligation=obligation,
                amount=amount,
                is_split=split_label is not None,
                split_label=split_label,
            )
        )
        self.available -= amount


def lock_threshold(today: date, config: HouseholdConfig) -> date:
    """Periods dated before this date are locked."""
    # Strict: a period dated exactly on the threshold is still open
    return today + timedelta(days=config.lock_window_days)


def classify_periods(
    periods: list[IncomePeriod],
    persisted: list[ScheduledAssignment],
    threshold: date,
    persisted_period_ids: Optional[set[str]] = None,
) -> PeriodPartition:
    """
    Partition periods into frozen (locked and already persisted) and open.

    Args:
        periods: All projected income periods
        persisted: Assignments loaded from the schedule store
        threshold: Lock threshold (today + lock window)
        persisted_period_ids: Ids of periods written to the store, including
            periods written empty; defaults to the periods of ``persisted``
    """
    if persisted_period_ids is None:
        persisted_period_ids = {a.income_period_id for a in persisted}
    frozen = []
    open_periods = []
    for period in sorted(periods, key=lambda p: (p.date, p.source_id)):
        if period.date < threshold and period.id in persisted_period_ids:
            frozen.append(period)
        else:
            open_periods.append(period)
    return PeriodPartition(frozen=frozen, open=open_periods, lock_threshold=threshold)


def _priority(obligation: Obligation) -> int:
    # Bills and debt minimums ahead of extra payments and budget allotments
    return 1 if obligation.discretionary else 0


def _pool_key(obligation: Obligation) -> tuple:
    return (
        obligation.due_date,
        _priority(obligation),
        obligation.amount,
        obligation.kind.value,
        obligation.source_id,
    )


def _cycle_key(obligation: Obligation) -> tuple:
    return (
        _priority(obligation),
        obligation.due_date,
        obligation.amount,
        obligation.kind.value,
        obligation.source_id,
    )


def _cycle_ends(periods: list[IncomePeriod]) -> dict[str, date]:
    """Each period's cycle runs until the next later pay date (inclusive).

    The last period's cycle ends one step of its own frequency later.
    """
    ordered = sorted(periods, key=lambda p: (p.date, p.source_id))
    distinct_dates = sorted({p.date for p in ordered})
    next_date = dict(zip(distinct_dates, distinct_dates[1:]))
    ends = {}
    for period in ordered:
        following = next_date.get(period.date)
        if following is None:
            following = period.date + step(period.frequency)
        ends[period.id] = following
    return ends


class _Walk:
    """Chronological walk over open periods for one scheduling pass."""

    def __init__(
        self,
        open_periods: list[_OpenPeriod],
        pool: list[Obligation],
        config: HouseholdConfig,
    ):
        self.periods = open_periods
        self.remaining: dict[str, Obligation] = {o.id: o for o in sorted(pool, key=_pool_key)}
        self.config = config

    def run(self) -> None:
        for index, current in enumerate(self.periods):
            candidates = sorted(
                (o for o in self.remaining.values() if current.in_cycle(o)),
                key=_cycle_key,
            )
            logger.debug(
                "Period %s: available=%s, %d candidates",
                current.period.id,
                current.available,
                len(candidates),
            )
            for obligation in candidates:
                if obligation.id not in self.remaining:
                    continue
                if obligation.amount <= current.available:
                    self._take(current, obligation)
                    continue
                if self._split(obligation, index):
                    continue
                if not obligation.discretionary:
                    self._overdraft_tie_break(current, candidates)
                    break
                logger.debug(
                    "Deferring discretionary %s (%s > %s)",
                    obligation.id,
                    obligation.amount,
                    current.available,
                )

    def _take(self, current: _OpenPeriod, obligation: Obligation) -> None:
        current.assign(obligation, obligation.amount)
        del self.remaining[obligation.id]

    def _overdraft_tie_break(self, current: _OpenPeriod, candidates: list[Obligation]) -> None:
        """Fill the period with the smallest obligations that still fit.

        Non-discretionary obligations are preferred; whatever does not fit is
        left for the unassigned report.
        """
        while True:
            fitting = [
                o
                for o in candidates
                if o.id in self.remaining and o.amount <= current.available
            ]
            if not fitting:
                return
            chosen = min(fitting, key=lambda o: (_priority(o), o.amount, o.due_date, o.source_id))
            logger.debug("Overdraft tie-break in %s picks %s", current.period.id, chosen.id)
            self._take(current, chosen)

    def _split(self, obligation: Obligation, index: int) -> bool:
        """Split an obligation across this period and earlier ones in its billing cycle.

        Parts come from this period first, then earlier open periods closest to
        the due date, all with the same lock status. Discretionary obligations
        are limited to ``max_split_parts`` parts. All-or-nothing: nothing is
        assigned unless the parts cover the full amount.

        Donors are bounded by the one-month billing cycle, not by the pay
        cycle window of this period, so a part may land in a period that
        closes well before the due date.
        """
        current = self.periods[index]
        if current.available <= 0:
            return False

        cycle_start = obligation.due_date - relativedelta(months=constants.BILLING_CYCLE_MONTHS)
        donors = [current] + [
            p
            for p in reversed(self.periods[:index])
            if p.available > 0
            and p.locked == current.locked
            and cycle_start <= p.period.date <= obligation.due_date
        ]
        max_parts = self.config.max_split_parts if obligation.discretionary else len(donors)

        chosen = []
        needed = obligation.amount
        for donor in donors[:max_parts]:
            if needed <= 0:
                break
            part = min(needed, donor.available)
            chosen.append((donor, part))
            needed -= part

        if needed > 0 or len(chosen) < 2:
            return False

        chosen.sort(key=lambda item: (item[0].period.date, item[0].period.source_id))
        for number, (donor, part) in enumerate(chosen, start=1):
            donor.assign(obligation, part, split_label=f"{number}/{len(chosen)}")
        del self.remaining[obligation.id]
        logger.debug("Split %s across %d periods", obligation.id, len(chosen))
        return True


def schedule(
    periods: list[IncomePeriod],
    obligations: list[Obligation],
    persisted: list[ScheduledAssignment],
    dismissed: set[ObligationKey],
    today: date,
    config: HouseholdConfig,
    persisted_period_ids: Optional[set[str]] = None,
) -> AllocationResult:
    """
    Assign obligations to income periods.

    Args:
        periods: Projected income periods for the window
        obligations: Materialized obligations for the window
        persisted: Assignments previously written for locked periods
        dismissed: Obligation keys the user dismissed
        today: Reference date for the lock window and past-due reporting
        config: Household settings
        persisted_period_ids: Ids of periods written to the store, including
            periods written empty

    Returns:
        AllocationResult; a budget shortfall shows up in ``unassigned``, never
        as an exception
    """
    threshold = lock_threshold(today, config)
    partition = classify_periods(periods, persisted, threshold, persisted_period_ids)
    frozen_ids = frozenset(p.id for p in partition.frozen)

    # Every locked persisted assignment blocks its obligation, even when its
    # period is no longer projected (e.g. the pay date moved).
    locked_persisted = [a for a in persisted if a.period_date < threshold]
    frozen_keys = {a.key for a in locked_persisted}
    frozen_assignments = [a for a in locked_persisted if a.income_period_id in frozen_ids]
    orphaned = len(locked_persisted) - len(frozen_assignments)
    if orphaned:
        logger.debug("%d persisted assignments belong to periods outside this run", orphaned)

    pool = []
    dismissed_obligations = []
    seen: set[ObligationKey] = set()
    for obligation in obligations:
        key = obligation.key
        if key in seen or key in frozen_keys:
            continue
        seen.add(key)
        if key in dismissed:
            dismissed_obligations.append(obligation)
            continue
        pool.append(obligation)

    ends = _cycle_ends(periods)
    open_periods = [
        _OpenPeriod(period, ends[period.id], locked=period.date < threshold)
        for period in partition.open
    ]
    walk = _Walk(open_periods, pool, config)
    walk.run()

    unassigned = []
    past_due = []
    for obligation in sorted(walk.remaining.values(), key=_pool_key):
        if obligation.due_date < today:
            past_due.append(obligation)
        else:
            unassigned.append(obligation)

    computed = [a for p in open_periods for a in p.assignments]
    # Locked periods are written even when empty so they stay frozen
    to_persist = {p.period.id: list(p.assignments) for p in open_periods if p.locked}
    assignments = sorted(
        frozen_assignments + computed,
        key=lambda a: (a.period_date, a.income_period_id, a.obligation.due_date, a.obligation.id),
    )

    logger.info(
        "Scheduled %d obligations into %d periods (%d frozen): %d unassigned, %d past due, "
        "%d dismissed",
        len(pool) - len(walk.remaining),
        len(periods),
        len(partition.frozen),
        len(unassigned),
        len(past_due),
        len(dismissed_obligations),
    )
    return AllocationResult(
        assignments=assignments,
        unassigned=unassigned,
        dismissed=sorted(dismissed_obligations, key=_pool_key),
        past_due=past_due,
        frozen_period_ids=frozen_ids,
        to_persist=to_persist,
    )


class Allocator:
    """Runs scheduling passes against a schedule store for one household."""

    def __init__(self, store: "ScheduleStore", config: HouseholdConfig):
        """
        Initialize allocator.

        Args:
            store: Schedule store holding locked assignments and dismissals
            config: Household settings
        """
        self.store = store
        self.config = config

    def run(
        self,
        periods: list[IncomePeriod],
        obligations: list[Obligation],
        today: date,
    ) -> AllocationResult:
        """Load persisted state, schedule, and write newly locked periods once."""
        household_id = self.config.household_id
        persisted = self.store.load_assignments(household_id)
        period_ids = self.store.load_period_ids(household_id)
        dismissed = self.store.load_dismissals(household_id)

        result = schedule(
            periods, obligations, persisted, dismissed, today, self.config, period_ids
        )
        self._persist(result)
        return result

    def _persist(self, result: AllocationResult) -> None:
        household_id = self.config.household_id
        for period_id, assignments in result.to_persist.items():
            outcome = self.store.save_period_assignments(household_id, period_id, assignments)
            if outcome == WriteOutcome.CONFLICT:
                logger.warning(
                    "Persistence conflict: period %s was already written; "
                    "keeping the stored set",
                    period_id,
                )
            else:
                logger.debug("Locked %d assignments for period %s", len(assignments), period_id)
