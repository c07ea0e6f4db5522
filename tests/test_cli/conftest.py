"""Shared fixtures for CLI module tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def run_file(run_dir: Path) -> Path:
    """Path to the synthetic chip's run description."""
    return run_dir / "run.yaml"
