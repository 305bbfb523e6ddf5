"""Shared fixtures for the grouper test suite."""

from pathlib import Path

import pytest

from chs_drg_grouper import DRGGrouper, load_rule_tables

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture(scope="session")
def data_dir():
    return DATA_DIR


@pytest.fixture(scope="session")
def tables():
    return load_rule_tables(DATA_DIR)


@pytest.fixture(scope="session")
def grouper(tables):
    return DRGGrouper(tables=tables)
