"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from datetime import date
from pathlib import Path

# File logging off for tests; settings come from REWARDS_* variables
os.environ["REWARDS_LOG_FILE"] = ""
os.environ.setdefault("REWARDS_LOG_LEVEL", "WARNING")

# Add project root and the tests directory to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from sample_data import SAMPLE_PLAN_YAML, sample_rows
from validator_rewards.core.models import PerformanceWindow
from validator_rewards.core.plan import parse_plan
from validator_rewards.sources import InMemoryParticipationSource


@pytest.fixture
def sample_plan_yaml() -> str:
    """Plan document with one mechanics version and three rounds."""
    return SAMPLE_PLAN_YAML


@pytest.fixture
def sample_plan(sample_plan_yaml):
    """Parsed and validated sample plan."""
    return parse_plan(sample_plan_yaml)


@pytest.fixture
def sample_source() -> InMemoryParticipationSource:
    """In-memory participation rows for March and April 2024."""
    return InMemoryParticipationSource(**sample_rows())


@pytest.fixture
def full_window() -> PerformanceWindow:
    """Performance data covering March and April 2024."""
    return PerformanceWindow(earliest=date(2024, 3, 1), latest=date(2024, 4, 30))
