"""YAML planner file loader and validator."""

import logging
import os
from pathlib import Path
from typing import Any, NamedTuple, Optional

import yaml
from pydantic import BaseModel, ValidationError

from . import constants
from .exceptions import InputValidationError
from .obligations import coerce_record
from .schema import (
    Bill,
    BudgetCategoryAllotment,
    Debt,
    DebtPayment,
    HouseholdConfig,
    IncomeSettings,
    PlannerFile,
    TransactionRecord,
)

logger = logging.getLogger(__name__)

# Planner file section -> (model, record type used in messages)
SECTIONS: dict[str, tuple[type[BaseModel], str]] = {
    "income": (IncomeSettings, "income"),
    "bills": (Bill, "bill"),
    "debts": (Debt, "debt"),
    "budget_categories": (BudgetCategoryAllotment, "budget category"),
    "transactions": (TransactionRecord, "transaction"),
    "debt_payments": (DebtPayment, "debt payment"),
}


class LoadResult(NamedTuple):
    """Planner file plus the records skipped while loading it."""

    planner: PlannerFile
    rejected: list[InputValidationError]
    path: Optional[Path]


def find_planner_file() -> Optional[Path]:
    """
    Locate the planner file.

    Search order:
    1. PAYCHECKPLANNER_FILE environment variable
    2. planner.yaml in current directory

    Returns:
        Path to planner file or None if not found
    """
    if env_file := os.getenv(constants.ENV_PLANNER_FILE):
        path = Path(env_file)
        if path.is_file():
            return path
        logger.warning("%s points to non-existent file: %s", constants.ENV_PLANNER_FILE, env_file)

    cwd_file = Path.cwd() / constants.DEFAULT_PLANNER_FILE
    if cwd_file.is_file():
        return cwd_file

    return None


def find_store_path(planner_path: Optional[Path] = None) -> Path:
    """
    Locate the schedule store file.

    Search order:
    1. PAYCHECKPLANNER_STORE environment variable
    2. schedule-store.yaml next to the planner file (or in the current directory)

    The file does not need to exist yet.
    """
    if env_file := os.getenv(constants.ENV_STORE_FILE):
        return Path(env_file)
    base = planner_path.parent if planner_path is not None else Path.cwd()
    return base / constants.DEFAULT_STORE_FILE


def _load_section(
    name: str,
    raw_records: Any,
    rejected: list[InputValidationError],
) -> list[BaseModel]:
    """Validate one list section, skipping malformed records."""
    model_cls, record_type = SECTIONS[name]
    if raw_records is None:
        return []
    if not isinstance(raw_records, list):
        raise ValueError(f"'{name}' must be a list, got {type(raw_records).__name__}")

    records = []
    seen_ids: set[str] = set()
    for raw in raw_records:
        try:
            record = coerce_record(model_cls, raw, record_type)
        except InputValidationError as e:
            logger.warning("Skipping %s", e)
            rejected.append(e)
            continue
        if record.id in seen_ids:
            logger.error(
                "Duplicate %s id '%s'; the duplicate will be ignored", record_type, record.id
            )
            continue
        seen_ids.add(record.id)
        records.append(record)
    return records


def parse_planner_data(
    data: Optional[dict[str, Any]],
) -> tuple[PlannerFile, list[InputValidationError]]:
    """
    Build a PlannerFile from parsed YAML.

    Malformed records are skipped and returned as rejected; a malformed
    ``config`` section raises.

    Raises:
        ValueError: If the document or its config section is invalid
    """
    if data is None:
        return PlannerFile(), []
    if not isinstance(data, dict):
        raise ValueError(f"Planner file must be a mapping, got {type(data).__name__}")

    try:
        config = HouseholdConfig(**(data.get("config") or {}))
    except ValidationError as e:
        raise ValueError(f"Invalid config: {e}") from e

    rejected: list[InputValidationError] = []
    sections = {name: _load_section(name, data.get(name), rejected) for name in SECTIONS}
    planner = PlannerFile(
        version=str(data.get("version", constants.PLANNER_FILE_VERSION)),
        config=config,
        **sections,
    )
    return planner, rejected


def load_planner_file(filepath: Optional[Path] = None) -> Optional[LoadResult]:
    """
    Load and validate the planner file.

    Args:
        filepath: Optional explicit path. If None, uses find_planner_file().

    Returns:
        LoadResult or None if no planner file was found

    Raises:
        yaml.YAMLError: If YAML parsing fails
        ValueError: If the document or its config section is invalid
    """
    if filepath is None:
        filepath = find_planner_file()
        if filepath is None:
            logger.info("No planner file found")
            return None

    logger.info("Loading planner from: %s", filepath)
    try:
        with filepath.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error("YAML parsing error in %s: %s", filepath, e)
        raise

    if data is None:
        logger.warning("Empty planner file: %s", filepath)

    try:
        planner, rejected = parse_planner_data(data)
    except ValueError as e:
        logger.error("Error loading planner from %s: %s", filepath, e)
        raise

    logger.info(
        "Loaded %d income sources, %d bills, %d debts, %d budget categories (%d records skipped)",
        len(planner.income),
        len(planner.bills),
        len(planner.debts),
        len(planner.budget_categories),
        len(rejected),
    )
    return LoadResult(planner=planner, rejected=rejected, path=filepath)
