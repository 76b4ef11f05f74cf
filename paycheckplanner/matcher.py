"""Paid-status reconciliation of scheduled assignments against transactions."""

import logging
from collections import defaultdict
from typing import Optional

from .schema import HouseholdConfig, ObligationKey, ScheduledAssignment, TransactionRecord
from .types import DEBT_KINDS, ObligationKind

logger = logging.getLogger(__name__)


class PaymentMatcher:
    """Marks assignments paid when a linked transaction lands near the due date."""

    def __init__(self, config: HouseholdConfig):
        """
        Initialize matcher with household config.

        Args:
            config: Household settings with the paid match window
        """
        self.config = config

    def _linked_source_id(
        self,
        transaction: TransactionRecord,
        kind: ObligationKind,
    ) -> Optional[str]:
        """Source id a transaction is linked to for this obligation kind."""
        if kind == ObligationKind.RECURRING_BILL:
            return transaction.linked_bill_id
        if kind in DEBT_KINDS:
            return transaction.linked_debt_id
        # Budget allotments are never matched to transactions
        return None

    def _date_score(self, transaction: TransactionRecord, assignment: ScheduledAssignment) -> float:
        """
        Date proximity score.

        1.0 on the due date, declining linearly to 0.0 at the window boundary.
        Transactions outside the window score -1.0 so they never match.
        """
        window_days = self.config.paid_match_window_days
        diff_days = abs((transaction.date - assignment.obligation.due_date).days)
        if diff_days > window_days:
            return -1.0
        if window_days == 0:
            return 1.0
        return 1.0 - (diff_days / window_days)

    def find_best_match(
        self,
        assignment: ScheduledAssignment,
        transactions: list[TransactionRecord],
    ) -> Optional[TransactionRecord]:
        """
        Find the transaction that pays an assignment's obligation.

        Args:
            assignment: Scheduled assignment to check
            transactions: Candidate transactions

        Returns:
            Linked transaction nearest the due date (earlier id on ties),
            or None if none falls within the window
        """
        kind = assignment.obligation.kind
        best_match = None
        best_rank = None
        for transaction in transactions:
            if self._linked_source_id(transaction, kind) != assignment.obligation.source_id:
                continue
            score = self._date_score(transaction, assignment)
            if score < 0:
                continue
            rank = (-score, transaction.id)
            if best_rank is None or rank < best_rank:
                best_rank = rank
                best_match = transaction
        return best_match

    def reconcile(
        self,
        assignments: list[ScheduledAssignment],
        transactions: list[TransactionRecord],
    ) -> list[ScheduledAssignment]:
        """
        Return assignments with ``is_paid`` derived from transactions.

        Each transaction pays at most one obligation. Pairs are taken nearest
        the due date first; on equal distance bills and minimums go before
        discretionary obligations, then earlier due dates and lower ids.
        Assignments whose paid status was set by the user keep it and take no
        transaction. Every part of a split obligation gets the same status.
        """
        by_source: dict[str, list[TransactionRecord]] = defaultdict(list)
        for transaction in transactions:
            for source_id in {transaction.linked_bill_id, transaction.linked_debt_id}:
                if source_id:
                    by_source[source_id].append(transaction)

        # One representative per obligation; split parts share the match
        representatives: dict[ObligationKey, ScheduledAssignment] = {}
        for assignment in assignments:
            if not assignment.paid_set_by_user:
                representatives.setdefault(assignment.key, assignment)

        pairs = []
        for key, assignment in representatives.items():
            obligation = assignment.obligation
            for transaction in by_source.get(obligation.source_id, []):
                if self._linked_source_id(transaction, obligation.kind) != obligation.source_id:
                    continue
                score = self._date_score(transaction, assignment)
                if score < 0:
                    continue
                rank = (-score, obligation.discretionary, obligation.due_date, obligation.id)
                pairs.append((rank, transaction.id, key, transaction))

        matches: dict[ObligationKey, TransactionRecord] = {}
        used: set[str] = set()
        for _, transaction_id, key, transaction in sorted(pairs, key=lambda p: p[:2]):
            if key in matches or transaction_id in used:
                continue
            matches[key] = transaction
            used.add(transaction_id)
            logger.debug("Transaction %s pays %s", transaction_id, key.as_string())

        reconciled = []
        for assignment in assignments:
            if assignment.paid_set_by_user:
                reconciled.append(assignment)
                continue
            reconciled.append(assignment.model_copy(update={"is_paid": assignment.key in matches}))

        logger.info(
            "Reconciled %d assignments, %d obligations matched a transaction",
            len(assignments),
            len(matches),
        )
        return reconciled
