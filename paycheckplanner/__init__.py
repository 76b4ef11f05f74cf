"""Paycheckplanner - assign household obligations to paychecks.

Projects paychecks, bills, debt payments and budget allotments onto a rolling
window and decides which paycheck pays what. Periods close to today are
locked so the plan a household is acting on does not shift under them.

Main exports:
    PaycheckPlanner: End-to-end planning run over a planner file
    schedule: Pure allocation of obligations to income periods
    simulate: Avalanche/snowball debt payoff simulation
"""

__version__ = "1.0.0"

from .allocator import AllocationResult, Allocator, schedule
from .amortization import amortize
from .exceptions import InputValidationError
from .planner import PaycheckPlanner, PlanResult
from .payoff import compare_strategies, simulate
from .store import InMemoryScheduleStore, ScheduleStore, YamlScheduleStore

__all__ = [
    "AllocationResult",
    "Allocator",
    "InMemoryScheduleStore",
    "InputValidationError",
    "PaycheckPlanner",
    "PlanResult",
    "ScheduleStore",
    "YamlScheduleStore",
    "amortize",
    "compare_strategies",
    "schedule",
    "simulate",
]
