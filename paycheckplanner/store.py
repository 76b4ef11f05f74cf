"""Schedule store: persisted assignments for locked periods, paid toggles and dismissals.

The allocator only talks to ``ScheduleStore``. ``InMemoryScheduleStore`` backs
tests and one-off runs; ``YamlScheduleStore`` keeps state in a YAML file next
to the planner file. Layout of the YAML file::

    households:
      default:
        periods:
          "paycheck:2026-10-02":
            - {income_period_id: ..., obligation: {...}, amount: "120.00", ...}
        paid:
          "recurring_bill:electric:2026-10-15": true
        dismissals:
          "budget_category_allotment:groceries:2026-10-20": true
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Union

import yaml

from .schema import DismissalTombstone, ObligationKey, ScheduledAssignment
from .types import WriteOutcome

logger = logging.getLogger(__name__)


class ScheduleStore(ABC):
    """Persistence boundary for the allocator and the planner."""

    @abstractmethod
    def load_assignments(self, household_id: str) -> list[ScheduledAssignment]:
        """Return every persisted assignment for the household."""

    @abstractmethod
    def load_period_ids(self, household_id: str) -> set[str]:
        """Return ids of every locked period written to the store, including empty ones."""

    @abstractmethod
    def save_period_assignments(
        self,
        household_id: str,
        income_period_id: str,
        assignments: list[ScheduledAssignment],
    ) -> WriteOutcome:
        """
        Write the assignments of one locked period, once.

        Returns:
            WRITTEN on success, CONFLICT if the period was already written,
            even with an empty set (the stored set is kept)
        """

    @abstractmethod
    def load_paid_overrides(self, household_id: str) -> dict[ObligationKey, bool]:
        """Return paid status set explicitly by the user, keyed by obligation."""

    @abstractmethod
    def set_paid(self, household_id: str, key: ObligationKey, is_paid: bool) -> int:
        """
        Record a user paid toggle for an obligation instance.

        Updates every stored part of the obligation as well.

        Returns:
            Number of stored assignments updated
        """

    @abstractmethod
    def load_dismissals(self, household_id: str) -> set[ObligationKey]:
        """Return keys of obligations the user dismissed."""

    @abstractmethod
    def set_dismissed(self, household_id: str, key: ObligationKey, dismissed: bool = True) -> None:
        """Dismiss an obligation instance, or restore it with ``dismissed=False``."""

    def load_tombstones(self, household_id: str) -> list[DismissalTombstone]:
        """Dismissals as tombstone records (for display and export)."""
        return [
            DismissalTombstone(household_id=household_id, key=key.as_string())
            for key in sorted(self.load_dismissals(household_id))
        ]


def _apply_paid(
    assignments: list[ScheduledAssignment],
    key: ObligationKey,
    is_paid: bool,
) -> tuple[list[ScheduledAssignment], int]:
    updated = 0
    result = []
    for assignment in assignments:
        if assignment.key == key:
            assignment = assignment.model_copy(
                update={"is_paid": is_paid, "paid_set_by_user": True}
            )
            updated += 1
        result.append(assignment)
    return result, updated


class InMemoryScheduleStore(ScheduleStore):
    """Dict-backed store."""

    def __init__(self):
        self._periods: dict[str, dict[str, list[ScheduledAssignment]]] = {}
        self._paid: dict[str, dict[ObligationKey, bool]] = {}
        self._dismissed: dict[str, set[ObligationKey]] = {}

    def load_assignments(self, household_id: str) -> list[ScheduledAssignment]:
        periods = self._periods.get(household_id, {})
        return [a for assignments in periods.values() for a in assignments]

    def load_period_ids(self, household_id: str) -> set[str]:
        return set(self._periods.get(household_id, {}))

    def save_period_assignments(
        self,
        household_id: str,
        income_period_id: str,
        assignments: list[ScheduledAssignment],
    ) -> WriteOutcome:
        periods = self._periods.setdefault(household_id, {})
        if income_period_id in periods:
            return WriteOutcome.CONFLICT
        periods[income_period_id] = list(assignments)
        return WriteOutcome.WRITTEN

    def load_paid_overrides(self, household_id: str) -> dict[ObligationKey, bool]:
        return dict(self._paid.get(household_id, {}))

    def set_paid(self, household_id: str, key: ObligationKey, is_paid: bool) -> int:
        self._paid.setdefault(household_id, {})[key] = is_paid
        periods = self._periods.get(household_id, {})
        total = 0
        for period_id, assignments in periods.items():
            periods[period_id], updated = _apply_paid(assignments, key, is_paid)
            total += updated
        return total

    def load_dismissals(self, household_id: str) -> set[ObligationKey]:
        return set(self._dismissed.get(household_id, set()))

    def set_dismissed(self, household_id: str, key: ObligationKey, dismissed: bool = True) -> None:
        keys = self._dismissed.setdefault(household_id, set())
        if dismissed:
            keys.add(key)
        else:
            keys.discard(key)


class YamlScheduleStore(ScheduleStore):
    """Store persisted in a single YAML file.

    The file is read on every call and rewritten on every change. A missing
    file is an empty store; unreadable or malformed files raise.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"households": {}}
        with self.path.open() as f:
            data = yaml.safe_load(f)
        if data is None:
            return {"households": {}}
        if not isinstance(data, dict) or not isinstance(data.get("households", {}), dict):
            raise ValueError(f"Malformed schedule store: {self.path}")
        data.setdefault("households", {})
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)

    def _household(self, data: dict[str, Any], household_id: str) -> dict[str, Any]:
        household = data["households"].setdefault(household_id, {})
        household.setdefault("periods", {})
        household.setdefault("paid", {})
        household.setdefault("dismissals", {})
        return household

    def load_assignments(self, household_id: str) -> list[ScheduledAssignment]:
        household = self._household(self._read(), household_id)
        return [
            ScheduledAssignment.model_validate(raw)
            for raw_list in household["periods"].values()
            for raw in raw_list or []
        ]

    def load_period_ids(self, household_id: str) -> set[str]:
        household = self._household(self._read(), household_id)
        return set(household["periods"])

    def save_period_assignments(
        self,
        household_id: str,
        income_period_id: str,
        assignments: list[ScheduledAssignment],
    ) -> WriteOutcome:
        data = self._read()
        household = self._household(data, household_id)
        if income_period_id in household["periods"]:
            return WriteOutcome.CONFLICT
        household["periods"][income_period_id] = [a.model_dump(mode="json") for a in assignments]
        self._write(data)
        logger.debug(
            "Wrote %d assignments for %s to %s", len(assignments), income_period_id, self.path
        )
        return WriteOutcome.WRITTEN

    def load_paid_overrides(self, household_id: str) -> dict[ObligationKey, bool]:
        household = self._household(self._read(), household_id)
        return {ObligationKey.parse(k): bool(v) for k, v in household["paid"].items()}

    def set_paid(self, household_id: str, key: ObligationKey, is_paid: bool) -> int:
        data = self._read()
        household = self._household(data, household_id)
        household["paid"][key.as_string()] = is_paid

        total = 0
        for period_id, raw_list in household["periods"].items():
            assignments = [ScheduledAssignment.model_validate(raw) for raw in raw_list or []]
            assignments, updated = _apply_paid(assignments, key, is_paid)
            if updated:
                household["periods"][period_id] = [a.model_dump(mode="json") for a in assignments]
                total += updated
        self._write(data)
        return total

    def load_dismissals(self, household_id: str) -> set[ObligationKey]:
        household = self._household(self._read(), household_id)
        return {ObligationKey.parse(k) for k, v in household["dismissals"].items() if v}

    def set_dismissed(self, household_id: str, key: ObligationKey, dismissed: bool = True) -> None:
        data = self._read()
        household = self._household(data, household_id)
        if dismissed:
            household["dismissals"][key.as_string()] = True
        else:
            household["dismissals"].pop(key.as_string(), None)
        self._write(data)
