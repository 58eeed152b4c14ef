"""Pytest configuration for local package import resolution and shared builders."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    # Ensure tests can import `stock_count` and `count_report` without package installation.
    sys.path.insert(0, project_root_str)

from stock_count.config import Settings  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the caller's environment."""

    return Settings(_env_file=None, PAGE_SIZE=2)
