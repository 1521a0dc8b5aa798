# tests/conftest.py

"""Shared pytest fixtures for all tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path: Path) -> Generator[Path, None, None]:
    """Point data and log paths at a temp dir so tests never touch the repo."""
    data_dir = tmp_path / "data"
    with patch.multiple(
        Settings,
        DATA_DIR=data_dir,
        PRICES_PATH=data_dir / "prices.json",
        HISTORY_PATH=data_dir / "price-history.json",
        LOGS_DIR=tmp_path / "logs",
    ):
        yield tmp_path
