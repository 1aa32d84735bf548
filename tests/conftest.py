"""Pytest configuration and fixtures for hcl2json tests."""

import logging
import sys
from pathlib import Path

import pytest

# Make the repository root importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

FIXTURES = Path(__file__).parent / "fixtures"

SCENARIO = 'resource "aws_redshift_cluster" "denied" { logging { enable = true } }'


@pytest.fixture(autouse=True)
def hcl2json_home(tmp_path, monkeypatch):
    """Keep the CLI's config and log files inside the test's temp dir."""
    home = tmp_path / "hcl2json-home"
    monkeypatch.setenv("HCL2JSON_HOME", str(home))
    yield home
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_hcl2json", False):
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def fixtures_dir():
    return FIXTURES


@pytest.fixture
def redshift_tf():
    return (FIXTURES / "redshift.tf").read_bytes()


@pytest.fixture
def s3_tf():
    return (FIXTURES / "s3.tf").read_text()
