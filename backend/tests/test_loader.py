"""Tests for loading pluggable converters and deployers."""

import pytest

from sqlshift.conversion.base import DryRunDeployer
from sqlshift.conversion.loader import load_deployer, load_object
from sqlshift.models.db import FileRecord


class TestLoadObject:
    """Tests for load_object."""

    def test_class_is_instantiated(self):
        deployer = load_object("sqlshift.conversion.base:DryRunDeployer")

        assert isinstance(deployer, DryRunDeployer)

    def test_function_returned_as_is(self):
        func = load_object("sqlshift.utils.hashing:calculate_content_hash")

        assert callable(func)
        assert len(func("x")) == 64

    @pytest.mark.parametrize("path", ["sqlshift.conversion.base", ":Thing", "mod:"])
    def test_malformed_path(self, path):
        with pytest.raises(ValueError):
            load_object(path)

    def test_missing_attribute(self):
        with pytest.raises(ValueError):
            load_object("sqlshift.conversion.base:NoSuchThing")

    def test_missing_module(self):
        with pytest.raises(ImportError):
            load_object("sqlshift.no_such_module:Thing")

    def test_load_deployer_uses_settings(self):
        assert isinstance(load_deployer(), DryRunDeployer)


class TestDryRunDeployer:
    """Tests for DryRunDeployer."""

    def test_accepts_converted_files(self):
        DryRunDeployer().deploy([FileRecord(file_name="a.sql", converted_content="X")])

    def test_rejects_missing_content(self):
        with pytest.raises(ValueError):
            DryRunDeployer().deploy([FileRecord(file_name="a.sql", converted_content=None)])
