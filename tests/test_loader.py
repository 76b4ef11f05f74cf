"""Tests for the planner file loader."""

from decimal import Decimal

import pytest
import yaml

from paycheckplanner import constants
from paycheckplanner.loader import (
    find_planner_file,
    find_store_path,
    load_planner_file,
    parse_planner_data,
)
from paycheckplanner.types import Frequency, PayoffStrategy


class TestLoadPlannerFile:
    """Tests for loading planner.yaml."""

    def test_load_valid_file(self, planner_yaml_file):
        result = load_planner_file(planner_yaml_file)

        assert result is not None
        assert result.path == planner_yaml_file
        assert result.rejected == []
        planner = result.planner
        assert planner.config.household_id == "smiths"
        assert planner.config.strategy == PayoffStrategy.AVALANCHE
        assert planner.config.extra_payment == Decimal("100")
        assert planner.income[0].frequency == Frequency.BIWEEKLY
        assert [b.id for b in planner.bills] == ["rent", "electric"]
        assert planner.debts[0].annual_rate_percent == Decimal("22")
        assert planner.transactions[0].linked_bill_id == "electric"

    def test_invalid_records_skipped(self, tmp_path, planner_data, caplog):
        planner_data["bills"].append({"id": "bad", "company": "X", "amount": "10"})
        planner_data["debts"].append(
            {
                "id": "neg",
                "name": "Neg",
                "balance": "-1",
                "annual_rate_percent": "5",
                "minimum_payment": "10",
            }
        )
        path = tmp_path / "planner.yaml"
        path.write_text(yaml.dump(planner_data))

        result = load_planner_file(path)

        assert sorted(e.record_id for e in result.rejected) == ["bad", "neg"]
        assert [b.id for b in result.planner.bills] == ["rent", "electric"]
        assert "Skipping" in caplog.text

    def test_empty_file(self, tmp_path):
        path = tmp_path / "planner.yaml"
        path.write_text("")

        result = load_planner_file(path)

        assert result.planner.bills == []
        assert result.planner.config.household_id == "default"

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "planner.yaml"
        path.write_text("bills: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_planner_file(path)

    def test_invalid_config_raises(self, tmp_path):
        path = tmp_path / "planner.yaml"
        path.write_text("config:\n  lookahead_months: 40\n")

        with pytest.raises(ValueError, match="Invalid config"):
            load_planner_file(path)

    def test_no_file_found(self, tmp_path, monkeypatch):
        monkeypatch.delenv(constants.ENV_PLANNER_FILE, raising=False)
        monkeypatch.chdir(tmp_path)
        assert load_planner_file() is None


class TestParsePlannerData:
    """Tests for building a PlannerFile from parsed YAML."""

    def test_duplicate_ids_keep_first(self, planner_data, caplog):
        planner_data["bills"].append(
            {"id": "rent", "company": "Other", "amount": "5", "due_day_of_month": 2}
        )
        planner, rejected = parse_planner_data(planner_data)

        rents = [b for b in planner.bills if b.id == "rent"]
        assert len(rents) == 1
        assert rents[0].company == "Landlord"
        assert rejected == []
        assert "Duplicate" in caplog.text

    def test_non_list_section_raises(self, planner_data):
        planner_data["bills"] = {"rent": 1200}
        with pytest.raises(ValueError, match="must be a list"):
            parse_planner_data(planner_data)

    def test_non_mapping_document_raises(self):
        with pytest.raises(ValueError):
            parse_planner_data(["not", "a", "mapping"])

    def test_missing_sections_default_empty(self):
        planner, rejected = parse_planner_data({"config": {"household_id": "solo"}})
        assert planner.income == []
        assert planner.debt_payments == []
        assert rejected == []


class TestDiscovery:
    """Tests for planner and store file discovery."""

    def test_env_var_wins(self, planner_yaml_file, tmp_path, monkeypatch):
        monkeypatch.setenv(constants.ENV_PLANNER_FILE, str(planner_yaml_file))
        monkeypatch.chdir(tmp_path.parent)
        assert find_planner_file() == planner_yaml_file

    def test_missing_env_file_falls_back_to_cwd(self, planner_yaml_file, tmp_path, monkeypatch):
        monkeypatch.setenv(constants.ENV_PLANNER_FILE, str(tmp_path / "nope.yaml"))
        monkeypatch.chdir(tmp_path)
        assert find_planner_file().name == "planner.yaml"

    def test_cwd_file(self, planner_yaml_file, tmp_path, monkeypatch):
        monkeypatch.delenv(constants.ENV_PLANNER_FILE, raising=False)
        monkeypatch.chdir(tmp_path)
        assert find_planner_file().resolve() == planner_yaml_file.resolve()

    def test_store_next_to_planner(self, planner_yaml_file, monkeypatch):
        monkeypatch.delenv(constants.ENV_STORE_FILE, raising=False)
        expected = planner_yaml_file.parent / constants.DEFAULT_STORE_FILE
        assert find_store_path(planner_yaml_file) == expected

    def test_store_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv(constants.ENV_STORE_FILE, str(tmp_path / "custom.yaml"))
        assert find_store_path() == tmp_path / "custom.yaml"
