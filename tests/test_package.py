"""Tests for the package surface."""

import importlib

import pytest

import paycheckplanner


class TestImports:
    """Tests that every module imports cleanly."""

    @pytest.mark.parametrize(
        "module",
        [
            "paycheckplanner.schema",
            "paycheckplanner.allocator",
            "paycheckplanner.matcher",
            "paycheckplanner.payoff",
            "paycheckplanner.store",
            "paycheckplanner.planner",
            "paycheckplanner.cli",
        ],
    )
    def test_module_imports(self, module):
        assert importlib.import_module(module)

    def test_exports(self):
        assert paycheckplanner.__version__
        for name in paycheckplanner.__all__:
            assert getattr(paycheckplanner, name) is not None
