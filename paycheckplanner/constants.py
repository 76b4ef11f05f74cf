"""
Global constants for paycheckplanner.

This module centralizes all magic strings, thresholds, and default values
to improve maintainability and make configuration easier.
"""

from decimal import Decimal

# ============================================================================
# File Paths and Environment
# ============================================================================

DEFAULT_PLANNER_FILE = "planner.yaml"
DEFAULT_STORE_FILE = "schedule-store.yaml"
PLANNER_FILE_VERSION = "1.0"

# Environment variables for planner/store location discovery
ENV_PLANNER_FILE = "PAYCHECKPLANNER_FILE"
ENV_STORE_FILE = "PAYCHECKPLANNER_STORE"

# ============================================================================
# Scheduling Windows
# ============================================================================

DEFAULT_LOCK_WINDOW_DAYS = 7  # Periods dated before today + 7 days are frozen
DEFAULT_PAID_MATCH_WINDOW_DAYS = 7  # Transaction must be within ±7 days of due date
DEFAULT_LOOKBACK_MONTHS = 6
DEFAULT_LOOKAHEAD_MONTHS = 3
DEFAULT_MAX_SPLIT_PARTS = 2  # Discretionary obligations only
DEFAULT_EARLY_THRESHOLD_DAYS = 5  # Paid more than 5 days ahead counts as early
BILLING_CYCLE_MONTHS = 1  # Paychecks within one month before a due date may pay it

# ============================================================================
# Frequency Steps
# ============================================================================

WEEKLY_STEP_DAYS = 7
BIWEEKLY_STEP_DAYS = 14
SEMIMONTHLY_STEP_DAYS = 15
MONTHLY_STEP_MONTHS = 1

# ============================================================================
# Validation Constraints
# ============================================================================

MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 31

# ============================================================================
# Financial/Decimal Constants
# ============================================================================

CENTS_PRECISION = Decimal("0.01")  # Currency rounding precision
MONTHS_PER_YEAR = 12
PERCENT = Decimal("100")
ZERO = Decimal("0")
MAX_AMORTIZATION_MONTHS = 600  # Safety cap (50 years)

# ============================================================================
# Display/Formatting Constants
# ============================================================================

LOG_DIVIDER_WIDTH = 70
MAX_TABLE_COLUMN_WIDTH = 30
NON_AMORTIZING_LABEL = "never"
